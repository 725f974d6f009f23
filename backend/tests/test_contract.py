"""
Unit tests for the answer section contract.
"""
from app.services.ai.contract import (
    REQUIRED_SECTIONS,
    format_validation_warning,
    validate_response_contract,
)

from conftest import FULL_ANSWER


def test_all_sections_present():
    validation = validate_response_contract(FULL_ANSWER)
    assert validation.valid is True
    assert validation.missing_sections == []
    assert validation.present_sections == list(REQUIRED_SECTIONS)


def test_missing_clarifying_questions():
    markdown = "\n\n".join(f"{section}\nText" for section in REQUIRED_SECTIONS[:6])
    validation = validate_response_contract(markdown)
    assert validation.valid is False
    assert validation.missing_sections == ["## Clarifying Questions"]
    assert len(validation.present_sections) == 6


def test_order_is_not_checked():
    markdown = "\n".join(reversed(REQUIRED_SECTIONS))
    assert validate_response_contract(markdown).valid is True


def test_headings_must_match_exactly():
    markdown = FULL_ANSWER.replace("## Red Flags & Don'ts", "## Red Flags and Don'ts")
    validation = validate_response_contract(markdown)
    assert validation.missing_sections == ["## Red Flags & Don'ts"]


def test_empty_answer_misses_everything():
    validation = validate_response_contract("")
    assert validation.missing_sections == list(REQUIRED_SECTIONS)
    assert validation.present_sections == []


def test_to_dict_uses_camel_case():
    data = validate_response_contract("## Immediate Actions").to_dict()
    assert data["valid"] is False
    assert data["presentSections"] == ["## Immediate Actions"]
    assert len(data["missingSections"]) == 6


def test_warning_lists_missing_sections():
    validation = validate_response_contract(FULL_ANSWER.replace("## Likely Causes", ""))
    warning = format_validation_warning(validation)
    assert "INTERNAL WARNING" in warning
    assert "- ## Likely Causes" in warning
    assert warning.startswith("\n\n---\n")


def test_no_warning_for_valid_answer():
    assert format_validation_warning(validate_response_contract(FULL_ANSWER)) == ""
