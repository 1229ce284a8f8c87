"""Edge synthesizer — enum, temporal, currency and locale variants plus business rules."""

import logging

from api_contract_gen.analysis.schema import ResolvedSchema
from api_contract_gen.generator.models import Variant, TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, Synthesizer
from .rules import BusinessRule, default_rules

logger = logging.getLogger(__name__)

CURRENCY_WORDS = ("price", "amount", "cost", "fee", "currency")
LOCALE_WORDS = ("locale", "language", "region", "country")
TEMPORAL_WORDS = ("date", "time")

INVALID_ENUM = "INVALID_ENUM_VALUE"


class EdgeSynthesizer(Synthesizer):
    category = "edge"

    def __init__(self, analyzer, mock, security=None, rules: list[BusinessRule] | None = None):
        super().__init__(analyzer, mock, security)
        self.rules = list(rules) if rules is not None else default_rules()

    def register_rule(self, rule: BusinessRule) -> None:
        self.rules.append(rule)

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        cases = []
        for resolved, label, tags in self.field_nodes(operation):
            for variant in self.variants_for(resolved, label):
                cases.append(self.variant_case(analysis, variant, tags))

        body = analysis.base_request.body
        for rule in self.rules:
            if not rule.matches(operation):
                continue
            logger.debug("Business rule %s applies to %s %s", rule.name, operation.method, operation.path)
            for variant in rule.synthesize(operation):
                if variant.field == "requestBody" and isinstance(variant.value, dict) and isinstance(body, dict):
                    variant = variant.model_copy(update={"value": {**body, **variant.value}})
                cases.append(self.variant_case(analysis, variant, ["business-rule"]))
        return cases

    def variants_for(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        variants = []
        variants.extend(self.enum_variants(resolved, label))
        variants.extend(self.temporal_variants(resolved, label))
        variants.extend(self.currency_variants(resolved, label))
        variants.extend(self.locale_variants(resolved, label))
        return variants

    # -- enum -----------------------------------------------------------------

    def enum_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        values = resolved.constraints.get("enum")
        if not values:
            return []
        field = resolved.path
        variants = [
            _invalid(label, "invalid_enum_value", field, INVALID_ENUM, "enum",
                     f"Invalid value. Must be one of: {', '.join(str(v) for v in values)}"),
        ]
        first_string = next((v for v in values if isinstance(v, str)), None)
        if first_string is not None and first_string.upper() not in values:
            variants.append(_invalid(label, "enum_case_sensitivity", field, first_string.upper(), "enum",
                                   "Enum values are case sensitive"))
        variants.append(_invalid(label, "enum_null_value", field, None, "enum", "Enum field cannot be null"))
        return variants

    # -- temporal -------------------------------------------------------------

    def temporal_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type != "string":
            return []
        fmt = resolved.constraints.get("format")
        name = resolved.name.lower()
        if fmt not in ("date", "date-time") and not any(w in name for w in TEMPORAL_WORDS):
            return []
        if resolved.constraints.get("enum"):
            return []

        field = resolved.path
        date_only = fmt == "date"

        def stamp(date: str, time: str = "12:00:00", offset: str = "Z") -> str:
            return date if date_only else f"{date}T{time}{offset}"

        variants = [
            _invalid(label, "past_date_invalid", field, stamp("2020-01-01", "00:00:00"), "temporal",
                     "Date must be in the future"),
            _invalid(label, "far_future_date", field, stamp("2099-12-31", "23:59:59"), "temporal",
                     "Date too far in the future"),
            _valid(label, "leap_year_feb_29", field, stamp("2024-02-29"), "temporal"),
            _invalid(label, "non_leap_year_feb_29", field, stamp("2023-02-29"), "temporal",
                     "Invalid date: February 29th in non-leap year"),
        ]
        if not date_only:
            variants.append(_valid(label, "timezone_utc_plus_14", field, stamp("2024-01-01", offset="+14:00"), "temporal"))
            variants.append(_valid(label, "timezone_utc_minus_12", field, stamp("2024-01-01", offset="-12:00"), "temporal"))
        return variants

    # -- currency -------------------------------------------------------------

    def currency_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type not in ("number", "integer"):
            return []
        name = resolved.name.lower()
        if not any(w in name for w in CURRENCY_WORDS):
            return []
        field = resolved.path
        return [
            _invalid(label, "negative_amount", field, -100.50, "currency", "Currency amount cannot be negative"),
            _invalid(label, "extremely_large_amount", field, 999999999999.99, "currency",
                     "Amount exceeds maximum allowed value"),
            _invalid(label, "high_precision", field, 100.12345, "currency",
                     "Currency precision cannot exceed 2 decimal places"),
            _invalid(label, "zero_amount", field, 0.0, "currency", "Amount must be greater than zero"),
        ]

    # -- locale ---------------------------------------------------------------

    def locale_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type != "string":
            return []
        name = resolved.name.lower()
        if not any(w in name for w in LOCALE_WORDS):
            return []
        field = resolved.path
        return [
            _invalid(label, "invalid_locale_format", field, "invalid_locale", "locale",
                     "Invalid locale format. Expected format: en-US"),
            _invalid(label, "unsupported_locale", field, "xx-XX", "locale", "Unsupported locale"),
            _invalid(label, "locale_case_sensitivity", field, "EN-us", "locale",
                     "Locale must be in correct case format (en-US)"),
        ]


def _valid(label: str, suffix: str, field: str, value, category: str) -> Variant:
    return Variant(name=f"{label}_{suffix}", field=field, value=value, category=category, expected="valid")


def _invalid(label: str, suffix: str, field: str, value, category: str, message: str) -> Variant:
    return Variant(name=f"{label}_{suffix}", field=field, value=value, category=category,
                 expected="invalid", error_code=400, error_message=message)
