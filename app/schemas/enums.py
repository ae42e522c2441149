"""
Enumeration definitions for roles, lifecycle states and certificate categories.
"""

from enum import Enum


class UserRole(str, Enum):
    """Admin portal roles. ``mod`` accounts are read-only."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MOD = "mod"


class AccountStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class CertificateStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class MetadataFieldType(str, Enum):
    TEXT = "text"
    ARRAY = "array"
    JSON = "json"


class CertificateCategory(str, Enum):
    """
    Known certificate categories. Free-text category strings from the sheet or
    the create form are mapped onto these by ``classify_category``; anything
    unrecognised becomes OTHER (volunteer, organizer, speaker, trainer, ...).
    """
    DELEGATE = "delegate"
    SECRETARIAT = "secretariat"
    EXECUTIVE_BOARD = "executive board"
    CAMPUS_AMBASSADOR = "campus ambassador"
    OTHER = "other"


class CertificateAction(str, Enum):
    REVOKE = "revoke"
    RESTORE = "restore"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
