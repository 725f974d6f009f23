"""
Answer section contract.

An answer is valid when every required heading appears somewhere in the
markdown as an exact substring. Order and intervening content are not checked.
"""
from dataclasses import dataclass, field
from typing import List, Tuple

REQUIRED_SECTIONS: Tuple[str, ...] = (
    "## Immediate Actions",
    "## Likely Causes",
    "## Cost & Effort Range",
    "## What Changes the Price",
    "## Hiring & Next Steps",
    "## Red Flags & Don'ts",
    "## Clarifying Questions",
)


@dataclass(frozen=True)
class ContractValidation:
    valid: bool
    missing_sections: List[str] = field(default_factory=list)
    present_sections: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "missingSections": list(self.missing_sections),
            "presentSections": list(self.present_sections),
        }


def validate_response_contract(markdown: str) -> ContractValidation:
    missing: List[str] = []
    present: List[str] = []

    for section in REQUIRED_SECTIONS:
        if section in markdown:
            present.append(section)
        else:
            missing.append(section)

    return ContractValidation(
        valid=not missing,
        missing_sections=missing,
        present_sections=present,
    )


def format_validation_warning(validation: ContractValidation) -> str:
    """Visible warning block appended to an answer that broke the contract."""
    if validation.valid:
        return ""

    missing = "\n".join(f"- {section}" for section in validation.missing_sections)
    return (
        "\n\n---\n"
        "**⚠️ INTERNAL WARNING: Response missing required sections:**\n"
        f"{missing}\n"
        "---"
    )
