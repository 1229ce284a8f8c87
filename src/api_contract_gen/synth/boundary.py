"""Boundary synthesizer — limit values for every constrained field.

Walks the request body as 'requestBody', path and header parameters as
'parameter.<name>' and query parameters as 'query.<name>', recursing into
object properties. Each variant is applied to an otherwise valid request.
"""

import math

from api_contract_gen.analysis.schema import ResolvedSchema
from api_contract_gen.generator.models import Variant, TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, Synthesizer

MISMATCH_VALUES = {
    "string": "test string",
    "number": 42,
    "integer": 42,
    "boolean": True,
    "array": ["item1", "item2"],
    "object": {"key": "value"},
}

INVALID_FORMATS = {
    "email": "invalid-email",
    "uri": "not-a-uri",
    "uuid": "not-a-uuid",
    "date": "invalid-date",
    "date-time": "invalid-datetime",
    "ipv4": "999.999.999.999",
    "ipv6": "not-an-ipv6",
    "hostname": "invalid..hostname",
    "json-pointer": "not/a/pointer",
    "regex": "[invalid regex",
}

PATTERN_MISMATCH = "invalid_pattern_value_123!@#"


class BoundarySynthesizer(Synthesizer):
    category = "boundary"

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        cases = []
        for resolved, label, tags in self.field_nodes(operation):
            for variant in self.variants_for(resolved, label):
                cases.append(self.variant_case(analysis, variant, tags))
        return cases

    # -- variants ---------------------------------------------------------------

    def variants_for(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        variants = []
        variants.extend(self.numeric_variants(resolved, label))
        variants.extend(self.string_variants(resolved, label))
        variants.extend(self.array_variants(resolved, label))
        variants.extend(self.null_variants(resolved, label))
        variants.extend(self.type_mismatch_variants(resolved, label))
        return variants

    def numeric_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type not in ("number", "integer"):
            return []
        c = resolved.constraints
        field = resolved.path
        step = 1 if resolved.type == "integer" else 0.1
        variants = []

        minimum = c.get("minimum")
        if minimum is not None:
            if c.get("exclusiveMinimum"):
                variants.append(_invalid(label, "exclusive_minimum_invalid", field, minimum, "numeric",
                                       f"Value must be greater than {minimum}"))
                variants.append(_valid(label, "above_exclusive_minimum", field, _num(minimum + step), "numeric"))
            else:
                variants.append(_valid(label, "minimum_valid", field, minimum, "numeric"))
            variants.append(_invalid(label, "below_minimum", field, minimum - 1, "numeric",
                                   f"Value must be greater than or equal to {minimum}"))

        maximum = c.get("maximum")
        if maximum is not None:
            if c.get("exclusiveMaximum"):
                variants.append(_invalid(label, "exclusive_maximum_invalid", field, maximum, "numeric",
                                       f"Value must be less than {maximum}"))
                variants.append(_valid(label, "below_exclusive_maximum", field, _num(maximum - step), "numeric"))
            else:
                variants.append(_valid(label, "maximum_valid", field, maximum, "numeric"))
            variants.append(_invalid(label, "above_maximum", field, maximum + 1, "numeric",
                                   f"Value must be less than or equal to {maximum}"))

        multiple = c.get("multipleOf")
        if multiple:
            valid, invalid = _multiples(multiple, minimum, maximum)
            variants.append(_valid(label, "multiple_of_valid", field, valid, "numeric"))
            variants.append(_invalid(label, "not_multiple_of", field, invalid, "numeric",
                                   f"Value must be a multiple of {multiple}"))
        return variants

    def string_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type != "string":
            return []
        c = resolved.constraints
        field = resolved.path
        variants = []

        min_length = c.get("minLength")
        if min_length is not None:
            variants.append(_valid(label, "min_length_valid", field, "a" * min_length, "string"))
            if min_length > 0:
                variants.append(_invalid(label, "below_min_length", field, "a" * (min_length - 1), "string",
                                       f"String must be at least {min_length} characters long"))

        max_length = c.get("maxLength")
        if max_length is not None:
            variants.append(_valid(label, "max_length_valid", field, "a" * max_length, "string"))
            variants.append(_invalid(label, "above_max_length", field, "a" * (max_length + 1), "string",
                                   f"String must not exceed {max_length} characters"))

        if c.get("pattern"):
            variants.append(_invalid(label, "pattern_invalid", field, PATTERN_MISMATCH, "string",
                                   f"Value does not match required pattern: {c['pattern']}"))

        fmt = c.get("format")
        if fmt in INVALID_FORMATS:
            variants.append(_invalid(label, "invalid_format", field, INVALID_FORMATS[fmt], "string",
                                   f"Value must be a valid {fmt}"))
        return variants

    def array_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        if resolved.type != "array":
            return []
        c = resolved.constraints
        field = resolved.path
        variants = []

        min_items = c.get("minItems")
        if min_items is not None:
            variants.append(_valid(label, "min_items_valid", field, ["item"] * min_items, "array"))
            if min_items > 0:
                variants.append(_invalid(label, "below_min_items", field, ["item"] * (min_items - 1), "array",
                                       f"Array must contain at least {min_items} items"))

        max_items = c.get("maxItems")
        if max_items is not None:
            variants.append(_valid(label, "max_items_valid", field, ["item"] * max_items, "array"))
            variants.append(_invalid(label, "above_max_items", field, ["item"] * (max_items + 1), "array",
                                   f"Array must not contain more than {max_items} items"))
        return variants

    def null_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        field = resolved.path
        if resolved.is_required:
            message = f"Field {field} is required"
            return [
                _invalid(label, "null_required", field, None, "null", message),
                Variant(name=f"{label}_undefined_required", field=field, value=None, category="null",
                      expected="invalid", error_code=400, error_message=message, omit=True),
            ]
        return [_valid(label, "null_optional", field, None, "null")]

    def type_mismatch_variants(self, resolved: ResolvedSchema, label: str) -> list[Variant]:
        own = resolved.type
        excluded = {"number", "integer"} if own in ("number", "integer") else {own}
        variants = []
        index = 0
        for other, value in MISMATCH_VALUES.items():
            if other in excluded:
                continue
            variants.append(_invalid(label, f"type_mismatch_{index}", resolved.path, value, "type_mismatch",
                                   f"Expected {own} but received {other}"))
            index += 1
        return variants


def _valid(label: str, suffix: str, field: str, value, category: str) -> Variant:
    return Variant(name=f"{label}_{suffix}", field=field, value=value, category=category, expected="valid")


def _invalid(label: str, suffix: str, field: str, value, category: str, message: str, code: int = 400) -> Variant:
    return Variant(name=f"{label}_{suffix}", field=field, value=value, category=category,
                 expected="invalid", error_code=code, error_message=message)


def _num(value):
    return round(value, 10) if isinstance(value, float) else value


def _multiples(step, minimum, maximum) -> tuple:
    """A multiple of step inside the bounds, and a non-multiple next to it."""
    valid = step * 3
    if (minimum is not None and valid < minimum) or (maximum is not None and valid > maximum):
        low = minimum if minimum is not None else 0
        valid = math.ceil(low / step) * step
    invalid = valid + step / 2
    if maximum is not None and invalid > maximum:
        invalid = valid - step / 2
    return _num(valid), _num(invalid)
