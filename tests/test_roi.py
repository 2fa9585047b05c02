"""Tests for context-dependent investigation ROI."""

import pytest

from fraud_engine.exceptions import UnknownFraudType, UnknownLineOfBusiness
from fraud_engine.roi import (
    Complexity,
    CostStructure,
    FraudContext,
    FraudType,
    LineOfBusiness,
    ROICalculator,
    format_for_display,
)


def _build_calculator() -> ROICalculator:
    return ROICalculator()


# ── Costs ────────────────────────────────────────────────────────────


def test_human_cost_table():
    costs = CostStructure()
    assert costs.human_cost(Complexity.SIMPLE) == 90
    assert costs.human_cost(Complexity.MEDIUM) == 265
    assert costs.human_cost(Complexity.COMPLEX) == 920


def test_investigation_costs():
    breakdown = _build_calculator().investigation_costs("medium", 10)
    assert breakdown.human_cost == 265
    assert breakdown.technology_cost == 2.5
    assert breakdown.opportunity_cost == pytest.approx(265)
    assert breakdown.total_cost == pytest.approx(532.5)


# ── Context models ───────────────────────────────────────────────────


def test_claim_regression_pin():
    roi = _build_calculator().calculate(
        FraudType.DOCUMENT_FORGED,
        FraudContext.CLAIM,
        LineOfBusiness.AUTO,
        3200,
        Complexity.MEDIUM,
    )
    assert roi.human_cost == 265
    assert roi.technology_cost == 2.5
    assert roi.opportunity_cost == pytest.approx(265)
    assert roi.total_cost == pytest.approx(532.5)
    assert roi.immediate_recovery == pytest.approx(3200)
    assert roi.benefit == pytest.approx(4640)
    assert roi.net_roi == pytest.approx(4107.5)
    assert roi.ratio == pytest.approx(4107.5 / 532.5)
    assert roi.payback_days == pytest.approx(3.0)


def test_subscription_model():
    roi = _build_calculator().calculate(
        "identity_theft", "subscription", "health", 1000, "simple"
    )
    premium = 1000 * 3.2 * 1.2
    lifetime = 1200 * 1.2
    assert roi.annual_premium_at_risk == pytest.approx(premium)
    assert roi.customer_lifetime_value == pytest.approx(lifetime)
    assert roi.risk_multiplier == 2.5
    assert roi.benefit == pytest.approx((premium + lifetime) * 2.5)
    assert roi.opportunity_cost == pytest.approx(15 * 0.1 * 90)
    assert roi.payback_days == pytest.approx(12.0)


def test_subscription_risk_multiplier_defaults_to_one():
    roi = _build_calculator().calculate("document_forged", "subscription", "auto", 1000)
    assert roi.risk_multiplier == 1.0


def test_management_model():
    calc = _build_calculator()
    sub = calc.calculate("document_forged", "subscription", "auto", 3200)
    claim = calc.calculate("document_forged", "claim", "auto", 3200)
    mgmt = calc.calculate("document_forged", "management", "auto", 3200)
    assert mgmt.benefit == pytest.approx(0.7 * (sub.benefit + claim.benefit) / 2)
    assert mgmt.total_cost == pytest.approx(claim.total_cost)
    assert mgmt.payback_days == pytest.approx((sub.payback_days + claim.payback_days) / 2)


def test_generic_model():
    roi = _build_calculator().calculate("money_laundering", "generic", "professional", 10000)
    assert roi.benefit == pytest.approx(10000 * 1.5 * 2)
    assert roi.opportunity_cost == pytest.approx(14 * 0.1 * 265)
    assert roi.payback_days == 14


def test_zero_amount_uses_typical_amount():
    roi = _build_calculator().calculate("document_forged", "claim", "auto")
    assert roi.detected_amount == 3200
    assert roi.benefit == pytest.approx(4640)


def test_payback_has_one_day_floor():
    roi = _build_calculator().calculate("cyber_fraud", "claim", "auto", 1000)
    assert roi.payback_days == 1.0


def test_ratio_identity_holds_everywhere():
    calc = _build_calculator()
    for fraud_type in FraudType:
        for context in FraudContext:
            for line in LineOfBusiness:
                for complexity in Complexity:
                    roi = calc.calculate(fraud_type, context, line, 1500, complexity)
                    assert roi.net_roi == pytest.approx(roi.benefit - roi.total_cost)
                    assert roi.ratio == pytest.approx(
                        (roi.benefit - roi.total_cost) / roi.total_cost
                    )


def test_calculate_is_deterministic():
    calc = _build_calculator()
    first = calc.calculate("fictitious_claim", "claim", "home", 5000, "complex")
    assert calc.calculate("fictitious_claim", "claim", "home", 5000, "complex") == first


def test_custom_cost_structure():
    calc = ROICalculator(CostStructure(technology_cost=10.0, analyst_hourly=50.0))
    roi = calc.calculate("document_forged", "claim", "auto", 3200)
    assert roi.technology_cost == 10.0
    assert roi.human_cost == 3 * 50 + 2 * 65


# ── Errors ───────────────────────────────────────────────────────────


def test_unknown_fraud_type():
    with pytest.raises(UnknownFraudType):
        _build_calculator().calculate("alien_abduction", "claim", "auto", 100)


def test_unknown_fraud_type_is_value_error():
    with pytest.raises(ValueError):
        _build_calculator().calculate("alien_abduction", "claim", "auto", 100)


def test_unknown_line_of_business():
    with pytest.raises(UnknownLineOfBusiness):
        _build_calculator().calculate("document_forged", "claim", "marine", 100)


def test_invalid_context_and_amount():
    calc = _build_calculator()
    with pytest.raises(ValueError):
        calc.calculate("document_forged", "renewal", "auto", 100)
    with pytest.raises(ValueError):
        calc.calculate("document_forged", "claim", "auto", -1)


# ── Comparison and display ───────────────────────────────────────────


def test_compare_contexts():
    frame = _build_calculator().compare_contexts("document_forged", "auto", 3200)
    assert list(frame.index) == ["subscription", "claim", "management", "generic"]
    assert frame.loc["claim", "benefit"] == pytest.approx(4640)


def test_format_claim_for_display():
    roi = _build_calculator().calculate("document_forged", "claim", "auto", 3200)
    display = format_for_display(roi)
    assert display["summary"].startswith("Claim ROI: EUR 4,108")
    assert "Amount recovered: EUR 3,200" in display["details"]
    assert "Investigation cost: EUR 265" in display["details"]
    assert display["recommendations"] == ["Exceptional ROI - immediate impact"]


def test_format_subscription_for_display():
    roi = _build_calculator().calculate("identity_theft", "subscription", "auto", 2500)
    display = format_for_display(roi)
    assert display["summary"].startswith("Subscription ROI:")
    assert any(d.startswith("Annual premium protected") for d in display["details"])
    assert "Excellent ROI - prioritise this detection type" in display["recommendations"]


def test_format_negative_roi_warns():
    roi = _build_calculator().calculate("address_change", "generic", "travel", 10, "complex")
    assert roi.ratio < 0
    display = format_for_display(roi)
    assert any("exceeds" in r for r in display["recommendations"])


def test_to_dict_uses_plain_values():
    d = _build_calculator().calculate("document_forged", "claim", "auto").to_dict()
    assert d["fraud_type"] == "document_forged"
    assert d["context"] == "claim"
    assert d["complexity"] == "medium"
