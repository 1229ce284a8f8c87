"""Table-driven domain classification for schema fields.

Each DomainRule lists the patterns, formats and specific types that point a
field at one business domain. DomainScorer adds up the weights and returns
the hints that clear the threshold.
"""

import re
from dataclasses import dataclass, field

from pydantic import BaseModel

PATTERN_WEIGHT = 0.3
FORMAT_WEIGHT = 0.5
NAME_WEIGHT = 0.4
THRESHOLD = 0.2


class DomainHint(BaseModel):
    """Advisory guess at what a field represents."""

    type: str  # financial / temporal / personal / geographic / technical / business
    confidence: float
    specific_type: str | None = None


@dataclass(frozen=True)
class DomainRule:
    domain: str
    patterns: tuple[re.Pattern, ...]
    formats: tuple[str, ...] = ()
    # (regex over the combined text, specific type) applied after a pattern match
    specific_types: tuple[tuple[re.Pattern, str], ...] = field(default_factory=tuple)


def _rx(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


DEFAULT_RULES: tuple[DomainRule, ...] = (
    DomainRule(
        "financial",
        _rx(
            r"price|cost|amount|fee|rate|salary|wage|income|revenue|profit|budget|balance|payment|billing|invoice|currency",
            r"\b(usd|eur|gbp|jpy|cad|aud|chf|cny|inr|brl)\b",
            r"\$([\d,]+\.?\d*)|€([\d,]+\.?\d*)|£([\d,]+\.?\d*)",
        ),
        specific_types=((re.compile(r"currency|money"), "currency"),),
    ),
    DomainRule(
        "temporal",
        _rx(
            r"date|time|timestamp|created|updated|modified|published|expired|start|end|begin|finish|duration|period|schedule",
            r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday|jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\b",
        ),
        formats=("date", "date-time", "time"),
        specific_types=((re.compile(r"date"), "date"),),
    ),
    DomainRule(
        "personal",
        _rx(
            r"name|first|last|full|email|phone|address|age|birth|gender|title|bio|profile|avatar|photo|contact",
            r"user|person|customer|client|employee|member|account|profile",
        ),
        formats=("email",),
        specific_types=((re.compile(r"email"), "email"),),
    ),
    DomainRule(
        "geographic",
        _rx(
            r"country|state|province|city|region|location|address|postal|zip|latitude|longitude|coordinates|place|area",
            r"\b(usa|canada|uk|france|germany|australia|japan|china|india|brazil)\b",
        ),
    ),
    DomainRule(
        "technical",
        _rx(
            r"id|uuid|token|key|secret|hash|url|uri|api|endpoint|version|status|code|type|format|protocol",
            r"\b(http|https|ftp|ssh|tcp|udp|ip|dns|ssl|tls|oauth|jwt|rest|graphql|json|xml|yaml)\b",
        ),
        formats=("uuid", "uri", "uri-reference"),
    ),
    DomainRule(
        "business",
        _rx(
            r"order|product|service|category|brand|company|organization|department|role|permission|scope|license",
            r"\b(b2b|b2c|saas|enterprise|startup|corporation|llc|inc|ltd)\b",
        ),
    ),
)


class DomainScorer:
    """Scores field name, path, description and format against DomainRules."""

    def __init__(self, rules: tuple[DomainRule, ...] = DEFAULT_RULES):
        self.rules = rules

    def score(self, field_name: str, path: list[str] | str = "", description: str = "", fmt: str | None = None) -> list[DomainHint]:
        """Return hints above the threshold, highest confidence first."""
        full_path = ".".join(path) if isinstance(path, list) else path
        text = f"{field_name} {full_path} {description}".lower()
        name = field_name.lower()

        hints = []
        for rule in self.rules:
            confidence, specific = self._score_rule(rule, text, name, fmt)
            if confidence > THRESHOLD:
                hints.append(DomainHint(type=rule.domain, confidence=min(confidence, 1.0), specific_type=specific))

        hints.sort(key=lambda h: h.confidence, reverse=True)
        return hints

    def _score_rule(self, rule: DomainRule, text: str, name: str, fmt: str | None) -> tuple[float, str | None]:
        confidence = 0.0
        specific = None
        for pattern in rule.patterns:
            if pattern.search(text):
                confidence += PATTERN_WEIGHT
                for specific_rx, specific_type in rule.specific_types:
                    if specific_rx.search(text):
                        specific = specific_type

        if fmt and fmt in rule.formats:
            confidence += FORMAT_WEIGHT
            specific = fmt

        if rule.domain in name:
            confidence += NAME_WEIGHT

        return round(confidence, 6), specific


def top_hint(hints: list[DomainHint], domain: str | None = None) -> DomainHint | None:
    """Highest-confidence hint, optionally restricted to one domain."""
    for hint in hints:
        if domain is None or hint.type == domain:
            return hint
    return None
