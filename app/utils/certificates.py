"""
Certificate identifier helpers and category field rules.

Certificate ids are short public codes (6 or 7 chars of ``[a-z0-9]``). They are
not secrets and carry no checksum; uniqueness is checked by the caller against
the database. Categories arrive as free text from the sheet or the create form,
so every rule here goes through ``classify_category`` first.
"""

import random
import string
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple

from app.core.config import settings
from app.schemas.enums import CertificateCategory

CERTIFICATE_ID_ALPHABET = string.ascii_lowercase + string.digits

CERTIFICATE_TYPES = [
    "delegate",
    "secretariat",
    "executive board",
    "campus ambassador",
    "volunteer",
    "organizer",
    "speaker",
    "trainer",
]

# Extra descriptive fields collected per category, as (metadata field, label)
CATEGORY_FIELDS: Dict[CertificateCategory, Tuple[Tuple[str, str], ...]] = {
    CertificateCategory.DELEGATE: (("committee", "Committee"), ("country", "Country")),
    CertificateCategory.SECRETARIAT: (("department", "Department"), ("designation", "Designation")),
    CertificateCategory.EXECUTIVE_BOARD: (("committee", "Committee"), ("position", "Position")),
    CertificateCategory.CAMPUS_AMBASSADOR: (),
    CertificateCategory.OTHER: (),
}


def generate_certificate_id() -> str:
    """Return a random 6 or 7 character lowercase alphanumeric code"""
    length = 7 if random.random() > 0.5 else 6
    return "".join(random.choice(CERTIFICATE_ID_ALPHABET) for _ in range(length))


def generate_verification_url(certificate_id: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.CERTIFICATE_PORTAL_URL).rstrip("/")
    return f"{base}/{certificate_id}"


def get_today_date() -> date:
    return date.today()


def get_default_event_name() -> str:
    return settings.DEFAULT_EVENT_NAME


def classify_category(cert_type: Optional[str]) -> CertificateCategory:
    """
    Map a free-text category onto a known one.
    Matching is case-insensitive and tolerates surrounding text, so
    "Best Delegate" counts as a delegate. The first matching rule wins.
    """
    value = (cert_type or "").lower().strip()
    if "delegate" in value:
        return CertificateCategory.DELEGATE
    if "secretariat" in value:
        return CertificateCategory.SECRETARIAT
    if "executive board" in value or value == "eb":
        return CertificateCategory.EXECUTIVE_BOARD
    if "campus ambassador" in value:
        return CertificateCategory.CAMPUS_AMBASSADOR
    return CertificateCategory.OTHER


def requires_committee_and_country(cert_type: Optional[str]) -> bool:
    return classify_category(cert_type) == CertificateCategory.DELEGATE


def requires_department_and_designation(cert_type: Optional[str]) -> bool:
    return classify_category(cert_type) == CertificateCategory.SECRETARIAT


def requires_committee_and_position(cert_type: Optional[str]) -> bool:
    return classify_category(cert_type) == CertificateCategory.EXECUTIVE_BOARD


def is_campus_ambassador(cert_type: Optional[str]) -> bool:
    return classify_category(cert_type) == CertificateCategory.CAMPUS_AMBASSADOR


def required_fields(cert_type: Optional[str]) -> List[str]:
    """Metadata field names a category collects beyond the participant name"""
    return [name for name, _ in CATEGORY_FIELDS[classify_category(cert_type)]]


@dataclass
class FieldValidation:
    valid: bool
    missing_fields: List[str] = field(default_factory=list)


def _blank(value) -> bool:
    return not (value and str(value).strip())


def validate_certificate_fields(cert_type: Optional[str], data: Mapping[str, Optional[str]]) -> FieldValidation:
    """
    Check the fields every certificate of ``cert_type`` must carry.

    Only the participant name is always required. Delegates additionally need
    committee and country. Secretariat and executive board fields are collected
    when present but are not enforced here.
    """
    missing: List[str] = []
    if _blank(data.get("participant_name")):
        missing.append("Participant Name")

    if requires_committee_and_country(cert_type):
        if _blank(data.get("committee")):
            missing.append("Committee")
        if _blank(data.get("country")):
            missing.append("Country")

    return FieldValidation(valid=not missing, missing_fields=missing)


def build_metadata_fields(
    cert_type: Optional[str],
    email: Optional[str] = None,
    committee: Optional[str] = None,
    country: Optional[str] = None,
    department: Optional[str] = None,
    designation: Optional[str] = None,
    position: Optional[str] = None,
) -> Dict[str, str]:
    """
    Metadata for a new certificate: the category tag, the email and the
    category specific fields. Blank values are skipped.
    """
    values = {
        "committee": committee,
        "country": country,
        "department": department,
        "designation": designation,
        "position": position,
    }
    fields: Dict[str, str] = {}
    if not _blank(cert_type):
        fields["cert_type"] = cert_type.strip()
    if not _blank(email):
        fields["email"] = email.strip()
    for name in required_fields(cert_type):
        if not _blank(values[name]):
            fields[name] = values[name].strip()
    return fields


def import_metadata_fields(
    certificate_type: Optional[str],
    committee: Optional[str] = None,
    country: Optional[str] = None,
    award: Optional[str] = None,
    secretariat_role: Optional[str] = None,
) -> Dict[str, str]:
    """Metadata kept by the bulk JSON import: delegate placement and award, or the secretariat role"""
    category = classify_category(certificate_type)
    if category == CertificateCategory.DELEGATE:
        values = {"committee": committee, "country": country, "award": award}
    elif category == CertificateCategory.SECRETARIAT:
        values = {"secretariat_role": secretariat_role}
    else:
        values = {}
    return {name: value.strip() for name, value in values.items() if not _blank(value)}


def sheet_detail_columns(cert_type: Optional[str], metadata: Mapping[str, Optional[str]]) -> Tuple[str, str]:
    """
    Values for the sheet's Committee and Country columns.

    The sheet has only these two detail columns, so secretariat rows keep
    department/designation in them and executive board rows keep
    committee/position.
    """
    category = classify_category(cert_type)
    if category == CertificateCategory.SECRETARIAT:
        return metadata.get("department") or "", metadata.get("designation") or ""
    if category == CertificateCategory.EXECUTIVE_BOARD:
        return metadata.get("committee") or "", metadata.get("position") or ""
    return metadata.get("committee") or "", metadata.get("country") or ""


def detail_fields_from_sheet(cert_type: Optional[str], committee: Optional[str], country: Optional[str]) -> Dict[str, Optional[str]]:
    """
    Reverse of ``sheet_detail_columns`` for the sheet import: interpret the
    Committee/Country columns by category. Executive board and other rows
    carry no detail fields on import.
    """
    category = classify_category(cert_type)
    if category == CertificateCategory.DELEGATE:
        return {"committee": committee, "country": country}
    if category == CertificateCategory.SECRETARIAT:
        return {"department": committee, "designation": country}
    return {}
