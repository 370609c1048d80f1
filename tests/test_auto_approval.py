"""
Unit tests for the auto-approval evaluator.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from reseller_portal.models.commission import CommissionStatus
from reseller_portal.services.auto_approval import (
    NO_MATCH,
    apply_decision,
    evaluate,
    order_rules,
)
from reseller_portal.services.schedule import CommissionDraft

BASE_TIME = datetime(2026, 1, 1)


def make_rule(rule_id, priority=0, max_amount=None, trusted_only=False, enabled=True, created_offset=0):
    return SimpleNamespace(
        id=rule_id,
        name=f"rule {rule_id}",
        enabled=enabled,
        priority=priority,
        max_amount=Decimal(str(max_amount)) if max_amount is not None else None,
        trusted_resellers_only=trusted_only,
        created_at=BASE_TIME + timedelta(minutes=created_offset),
    )


def make_draft(amount="2400"):
    return CommissionDraft(
        reseller_id="r1",
        customer_id="c1",
        amount=Decimal(amount),
        year_number=1,
        period="Year 1",
        description="",
        contract_value=Decimal("12000"),
        commission_rate=Decimal("20"),
        is_one_off_payment=False,
        currency="EUR",
        requested_at=BASE_TIME,
    )


TRUSTED = SimpleNamespace(is_trusted=True)
UNTRUSTED = SimpleNamespace(is_trusted=False)


class TestRuleMatching:

    def test_no_rules_means_no_approval(self):
        assert evaluate(make_draft(), UNTRUSTED, []) == NO_MATCH

    def test_unbounded_rule_matches_any_amount(self):
        decision = evaluate(make_draft("1000000"), UNTRUSTED, [make_rule("a")])

        assert decision.approve is True
        assert decision.matched_rule_id == "a"
        assert decision.matched_rule_name == "rule a"

    def test_max_amount_is_inclusive(self):
        rules = [make_rule("a", max_amount=2400)]

        assert evaluate(make_draft("2400"), UNTRUSTED, rules).approve is True
        assert evaluate(make_draft("2400.01"), UNTRUSTED, rules).approve is False

    def test_trusted_only_rule_skips_untrusted_reseller(self):
        rules = [make_rule("a", trusted_only=True)]

        assert evaluate(make_draft(), UNTRUSTED, rules).approve is False
        assert evaluate(make_draft(), TRUSTED, rules).matched_rule_id == "a"

    def test_all_conditions_must_hold(self):
        rules = [make_rule("a", max_amount=3000, trusted_only=True)]

        assert evaluate(make_draft("2000"), UNTRUSTED, rules).approve is False
        assert evaluate(make_draft("4000"), TRUSTED, rules).approve is False
        assert evaluate(make_draft("2000"), TRUSTED, rules).approve is True

    def test_disabled_rules_are_ignored(self):
        rules = [make_rule("a", enabled=False)]

        assert evaluate(make_draft(), TRUSTED, rules).approve is False


class TestRuleOrdering:

    def test_highest_priority_wins(self):
        rules = [make_rule("low", priority=1), make_rule("high", priority=10)]

        assert evaluate(make_draft(), UNTRUSTED, rules).matched_rule_id == "high"

    def test_falls_through_to_lower_priority(self):
        rules = [
            make_rule("strict", priority=10, max_amount=100),
            make_rule("loose", priority=1),
        ]

        assert evaluate(make_draft(), UNTRUSTED, rules).matched_rule_id == "loose"

    def test_priority_tie_goes_to_earliest_created(self):
        rules = [
            make_rule("newer", priority=5, created_offset=10),
            make_rule("older", priority=5, created_offset=1),
        ]

        assert evaluate(make_draft(), UNTRUSTED, rules).matched_rule_id == "older"

    def test_full_tie_keeps_input_order(self):
        rules = [make_rule("first", priority=5), make_rule("second", priority=5)]

        assert [r.id for r in order_rules(rules)] == ["first", "second"]

    def test_evaluation_is_deterministic(self):
        rules = [
            make_rule("c", priority=3, created_offset=3),
            make_rule("a", priority=7, created_offset=2),
            make_rule("b", priority=7, created_offset=1),
            make_rule("d", priority=9, enabled=False),
        ]
        draft = make_draft()

        results = {evaluate(draft, UNTRUSTED, rules).matched_rule_id for _ in range(20)}
        results |= {evaluate(draft, UNTRUSTED, list(reversed(rules))).matched_rule_id for _ in range(20)}

        assert results == {"b"}


class TestApplyDecision:

    def test_approved_draft_becomes_system_approved(self):
        draft = make_draft()
        now = BASE_TIME + timedelta(hours=1)

        apply_decision(draft, evaluate(draft, UNTRUSTED, [make_rule("a")]), now=now)

        assert draft.status == CommissionStatus.APPROVED
        assert draft.approved_at == now
        assert draft.approved_by_id is None
        assert draft.auto_approved is True
        assert draft.auto_approval_rule_id == "a"

    def test_no_match_leaves_draft_pending(self):
        draft = make_draft()

        apply_decision(draft, NO_MATCH)

        assert draft.status == CommissionStatus.PENDING
        assert draft.approved_at is None
        assert draft.auto_approval_rule_id is None


@pytest.mark.parametrize("amount,expected", [("2999.99", True), ("3000", True), ("3000.01", False)])
def test_spec_style_rule_threshold(amount, expected):
    rule = make_rule("r10", priority=10, max_amount=3000)

    assert evaluate(make_draft(amount), UNTRUSTED, [rule]).approve is expected
