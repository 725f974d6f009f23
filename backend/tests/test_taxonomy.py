"""
Unit tests for the keyword risk scorer and the risk -> posture table.
"""
import pytest

from app.services.ai.taxonomy import (
    HIGH_RISK_KEYWORDS,
    MEDIUM_RISK_KEYWORDS,
    Posture,
    RiskLevel,
    classify_risk,
    postures_for_risk,
)


class TestClassifyRisk:
    """classify_risk is a prioritized substring scan."""

    def test_gas_smell_is_high_risk(self):
        assert classify_risk("I smell gas in my kitchen") == RiskLevel.HIGH

    def test_paint_question_is_low_risk(self):
        assert classify_risk("What color should I paint my bedroom?") == RiskLevel.LOW

    def test_medium_keyword(self):
        assert classify_risk("My bathroom faucet keeps dripping") == RiskLevel.MEDIUM

    def test_high_list_wins_over_medium(self):
        # "leak" is medium, "water damage" is high
        assert classify_risk("A slow leak caused water damage to the ceiling") == RiskLevel.HIGH

    def test_case_insensitive(self):
        assert classify_risk("SMOKE COMING FROM THE OUTLET") == RiskLevel.HIGH
        assert classify_risk("Furnace Makes A Noise") == RiskLevel.MEDIUM

    def test_substring_matches_inside_words(self):
        # no word boundaries: "lead" is found in "misleading"
        assert classify_risk("The label was misleading") == RiskLevel.HIGH

    def test_breaker_tripping_without_keyword_is_low(self):
        # "breaker trip" is not a substring of "breaker keeps tripping"
        assert classify_risk("Circuit breaker keeps tripping") == RiskLevel.LOW

    def test_empty_message_is_low(self):
        assert classify_risk("") == RiskLevel.LOW

    @pytest.mark.parametrize("keyword", HIGH_RISK_KEYWORDS)
    def test_every_high_keyword(self, keyword):
        assert classify_risk(f"there is {keyword} here") == RiskLevel.HIGH

    def test_medium_keywords_score_medium(self):
        for keyword in MEDIUM_RISK_KEYWORDS:
            # a medium keyword on its own must not already be a high hit
            if not any(high in keyword for high in HIGH_RISK_KEYWORDS):
                assert classify_risk(keyword) == RiskLevel.MEDIUM


class TestPosturesForRisk:
    def test_high(self):
        assert postures_for_risk(RiskLevel.HIGH) == [Posture.TRIAGER, Posture.RISK_MANAGER]

    def test_medium(self):
        assert postures_for_risk(RiskLevel.MEDIUM) == [Posture.EXPLAINER, Posture.RISK_MANAGER]

    def test_low(self):
        assert postures_for_risk(RiskLevel.LOW) == [Posture.EXPLAINER]

    def test_accepts_plain_strings(self):
        assert postures_for_risk("high") == [Posture.TRIAGER, Posture.RISK_MANAGER]

    @pytest.mark.parametrize("value", ["critical", None, 3])
    def test_unknown_risk_gets_explainer(self, value):
        assert postures_for_risk(value) == [Posture.EXPLAINER]

    def test_result_is_a_fresh_list(self):
        postures = postures_for_risk(RiskLevel.LOW)
        postures.append(Posture.OPTIMIZER)
        assert postures_for_risk(RiskLevel.LOW) == [Posture.EXPLAINER]
