import re

import pytest

from app.schemas.enums import CertificateCategory
from app.utils.certificates import (
    CERTIFICATE_TYPES,
    build_metadata_fields,
    classify_category,
    detail_fields_from_sheet,
    generate_certificate_id,
    generate_verification_url,
    import_metadata_fields,
    is_campus_ambassador,
    required_fields,
    requires_committee_and_country,
    requires_committee_and_position,
    requires_department_and_designation,
    sheet_detail_columns,
    validate_certificate_fields,
)


class TestCertificateId:
    def test_ids_are_short_lowercase_alphanumeric(self):
        for _ in range(500):
            assert re.fullmatch(r"[a-z0-9]{6,7}", generate_certificate_id())

    def test_both_lengths_occur(self):
        lengths = {len(generate_certificate_id()) for _ in range(500)}
        assert lengths == {6, 7}

    def test_verification_url_ends_with_id(self):
        url = generate_verification_url("abc123", base_url="https://portal.test/certs/")
        assert url == "https://portal.test/certs/abc123"


class TestClassifyCategory:
    @pytest.mark.parametrize("value,expected", [
        ("delegate", CertificateCategory.DELEGATE),
        ("Best Delegate", CertificateCategory.DELEGATE),
        ("  SECRETARIAT ", CertificateCategory.SECRETARIAT),
        ("Executive Board", CertificateCategory.EXECUTIVE_BOARD),
        ("eb", CertificateCategory.EXECUTIVE_BOARD),
        ("campus ambassador", CertificateCategory.CAMPUS_AMBASSADOR),
        ("volunteer", CertificateCategory.OTHER),
        ("", CertificateCategory.OTHER),
        (None, CertificateCategory.OTHER),
    ])
    def test_classification(self, value, expected):
        assert classify_category(value) == expected

    def test_first_match_wins(self):
        assert classify_category("secretariat delegate") == CertificateCategory.DELEGATE

    def test_eb_only_matches_exactly(self):
        assert classify_category("web team") == CertificateCategory.OTHER

    def test_required_fields_per_category(self):
        assert required_fields("delegate") == ["committee", "country"]
        assert required_fields("secretariat") == ["department", "designation"]
        assert required_fields("executive board") == ["committee", "position"]
        assert required_fields("speaker") == []


class TestValidateCertificateFields:
    def test_participant_name_always_required(self):
        result = validate_certificate_fields("volunteer", {"participant_name": "   "})
        assert not result.valid
        assert result.missing_fields == ["Participant Name"]

    def test_delegate_needs_committee_and_country(self):
        result = validate_certificate_fields("delegate", {"participant_name": "Jane Doe", "committee": "UNSC"})
        assert not result.valid
        assert result.missing_fields == ["Country"]

    def test_complete_delegate_is_valid(self):
        result = validate_certificate_fields(
            "delegate", {"participant_name": "Jane Doe", "committee": "UNSC", "country": "France"}
        )
        assert result.valid
        assert result.missing_fields == []

    def test_secretariat_fields_are_not_enforced(self):
        result = validate_certificate_fields("secretariat", {"participant_name": "Sam"})
        assert result.valid

    def test_executive_board_fields_are_not_enforced(self):
        result = validate_certificate_fields("executive board", {"participant_name": "Alex"})
        assert result.valid


class TestMetadataMapping:
    def test_delegate_metadata(self):
        fields = build_metadata_fields(
            "delegate", email="jane@example.com", committee="UNSC", country="France", position="ignored"
        )
        assert fields == {
            "cert_type": "delegate",
            "email": "jane@example.com",
            "committee": "UNSC",
            "country": "France",
        }

    def test_blank_values_are_skipped(self):
        fields = build_metadata_fields("secretariat", email="  ", department="Logistics", designation="")
        assert fields == {"cert_type": "secretariat", "department": "Logistics"}

    def test_executive_board_metadata(self):
        fields = build_metadata_fields("executive board", committee="DISEC", position="Chairperson")
        assert fields == {"cert_type": "executive board", "committee": "DISEC", "position": "Chairperson"}

    def test_import_metadata_keeps_award_for_delegates_only(self):
        assert import_metadata_fields("Delegate", committee="UNSC", country="France", award="Best Delegate") == {
            "committee": "UNSC",
            "country": "France",
            "award": "Best Delegate",
        }
        assert import_metadata_fields("volunteer", committee="UNSC", award="Gold") == {}

    def test_import_metadata_keeps_only_the_secretariat_role(self):
        fields = import_metadata_fields("Secretariat", committee="Logistics", award="Gold", secretariat_role="Head")
        assert fields == {"secretariat_role": "Head"}

    def test_sheet_columns_reuse_detail_fields(self):
        assert sheet_detail_columns("secretariat", {"department": "IT", "designation": "Head"}) == ("IT", "Head")
        assert sheet_detail_columns("eb", {"committee": "DISEC", "position": "Chair"}) == ("DISEC", "Chair")
        assert sheet_detail_columns("delegate", {"committee": "UNSC", "country": "France"}) == ("UNSC", "France")

    def test_detail_fields_from_sheet(self):
        assert detail_fields_from_sheet("delegate", "UNSC", "France") == {"committee": "UNSC", "country": "France"}
        assert detail_fields_from_sheet("secretariat", "IT", "Head") == {"department": "IT", "designation": "Head"}
        assert detail_fields_from_sheet("executive board", "DISEC", "Chair") == {}
        assert detail_fields_from_sheet("volunteer", "x", "y") == {}


def test_known_types_map_to_one_rule_each():
    rules = [
        requires_committee_and_country,
        requires_department_and_designation,
        requires_committee_and_position,
        is_campus_ambassador,
    ]
    matches = {cert_type: [rule(cert_type) for rule in rules].count(True) for cert_type in CERTIFICATE_TYPES}

    assert matches["delegate"] == matches["secretariat"] == matches["executive board"] == 1
    assert matches["campus ambassador"] == 1
    assert matches["volunteer"] == matches["speaker"] == 0
