"""
Error codes returned in the ``error_code`` field of error responses
"""

INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
ACCOUNT_NOT_APPROVED = "ACCOUNT_NOT_APPROVED"
INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"

EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
CERTIFICATE_NOT_FOUND = "CERTIFICATE_NOT_FOUND"
EVENT_ALREADY_EXISTS = "EVENT_ALREADY_EXISTS"

MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
INVALID_ACTION = "INVALID_ACTION"

DATABASE_ERROR = "DATABASE_ERROR"
SHEET_UNAVAILABLE = "SHEET_UNAVAILABLE"
