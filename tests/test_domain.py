import re

import pytest

from api_contract_gen.analysis.domain import DomainHint, DomainRule, DomainScorer, top_hint


class TestDomainScorer:
    def test_financial_field(self):
        hints = DomainScorer().score("price")
        assert [h.type for h in hints] == ["financial"]
        assert hints[0].confidence == pytest.approx(0.3)

    def test_currency_specific_type(self):
        hints = DomainScorer().score("currency")
        assert hints[0].type == "financial"
        assert hints[0].specific_type == "currency"

    def test_format_adds_weight(self):
        hints = DomainScorer().score("email", ["requestBody", "email"], "", "email")
        assert hints[0].type == "personal"
        assert hints[0].confidence == pytest.approx(0.8)
        assert hints[0].specific_type == "email"

    def test_temporal_format_overrides_specific_type(self):
        hints = DomainScorer().score("created_date", fmt="date-time")
        assert hints[0].type == "temporal"
        assert hints[0].specific_type == "date-time"

    def test_no_match_below_threshold(self):
        assert DomainScorer().score("zzz") == []

    def test_sorted_by_confidence(self):
        hints = DomainScorer().score("customer_email", fmt="email")
        confidences = [h.confidence for h in hints]
        assert confidences == sorted(confidences, reverse=True)
        assert hints[0].type == "personal"

    def test_custom_rules(self):
        scorer = DomainScorer(rules=(DomainRule("medical", (re.compile("diagnosis"),)),))
        hints = scorer.score("diagnosis_code")
        assert hints == [DomainHint(type="medical", confidence=0.3)]


class TestTopHint:
    def test_first_hint(self):
        hints = [DomainHint(type="personal", confidence=0.8), DomainHint(type="technical", confidence=0.3)]
        assert top_hint(hints).type == "personal"

    def test_restricted_to_domain(self):
        hints = [DomainHint(type="personal", confidence=0.8), DomainHint(type="technical", confidence=0.3)]
        assert top_hint(hints, "technical").confidence == 0.3
        assert top_hint(hints, "financial") is None
