"""
Models package initialization
"""

from .user import User
from .event import Event
from .certificate import Certificate, CertificateMetadata
from .verification_log import VerificationLog

__all__ = [
    "User", "Event", "Certificate", "CertificateMetadata", "VerificationLog"
]
