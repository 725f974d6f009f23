"""
Triage taxonomies and the keyword risk scorer.

Risk scoring is a prioritized substring scan over the lower-cased message:
1. the high-risk list, in order; first hit returns HIGH
2. the medium-risk list, in order; first hit returns MEDIUM
3. otherwise LOW

There is no tokenization or stemming, so a keyword embedded in a longer
word still matches ("lead" matches "misleading").
"""
from enum import Enum
from typing import Any, List, Tuple


class Domain(str, Enum):
    STRUCTURAL = "structural"
    FOUNDATION = "foundation"
    ROOFING = "roofing"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    HVAC = "hvac"
    INTERIOR_FINISH = "interior_finish"
    MOLD_ENV = "mold_env"
    PEST = "pest"
    LANDSCAPING = "landscaping"
    GENERAL = "general"


class DecisionType(str, Enum):
    DIAGNOSE = "diagnose"
    ESTIMATE_COST = "estimate_cost"
    HIRE_CONTRACTOR = "hire_contractor"
    DIY_STEPS = "DIY_steps"
    PERMIT_CODE = "permit_code"
    PRODUCT_RECOMMENDATION = "product_recommendation"
    COMPARISON = "comparison"
    PLANNING = "planning"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Posture(str, Enum):
    EXPLAINER = "explainer"
    TRIAGER = "triager"
    RISK_MANAGER = "risk_manager"
    OPTIMIZER = "optimizer"


HIGH_RISK_KEYWORDS: Tuple[str, ...] = (
    # Electrical
    "fire",
    "burning",
    "smoke",
    "spark",
    "arc",
    "shock",
    "electrocuted",
    "breaker trip",
    "electrical fire",
    # Gas
    "gas",
    "gas leak",
    "smell gas",
    "propane",
    "natural gas",
    "carbon monoxide",
    # Structural
    "collapse",
    "crack",
    "foundation",
    "sagging",
    "structural",
    "settling",
    "movement",
    "sinking",
    # Mold / toxins
    "mold",
    "black mold",
    "asbestos",
    "lead",
    "toxic",
    "poisoning",
    # Water / flood
    "flood",
    "flooding",
    "water damage",
    "standing water",
)

MEDIUM_RISK_KEYWORDS: Tuple[str, ...] = (
    "leak",
    "leaking",
    "drip",
    "moisture",
    "damp",
    "condensation",
    "hvac",
    "furnace",
    "heating",
    "cooling",
    "ventilation",
    "sewer",
    "backup",
)

# Checked in this order; the first list with a hit decides.
RISK_RULES: Tuple[Tuple[RiskLevel, Tuple[str, ...]], ...] = (
    (RiskLevel.HIGH, HIGH_RISK_KEYWORDS),
    (RiskLevel.MEDIUM, MEDIUM_RISK_KEYWORDS),
)

POSTURES_BY_RISK = {
    RiskLevel.HIGH: (Posture.TRIAGER, Posture.RISK_MANAGER),
    RiskLevel.MEDIUM: (Posture.EXPLAINER, Posture.RISK_MANAGER),
    RiskLevel.LOW: (Posture.EXPLAINER,),
}


def classify_risk(message: str) -> RiskLevel:
    """Score a free-text message as LOW, MEDIUM or HIGH risk."""
    lower_message = message.lower()

    for level, keywords in RISK_RULES:
        for keyword in keywords:
            if keyword in lower_message:
                return level

    return RiskLevel.LOW


def postures_for_risk(risk: Any) -> List[Posture]:
    """Map a risk level to answer postures. Unrecognized input gets [EXPLAINER]."""
    try:
        level = RiskLevel(risk)
    except (ValueError, TypeError):
        return [Posture.EXPLAINER]
    return list(POSTURES_BY_RISK[level])
