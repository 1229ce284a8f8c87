"""Size and complexity estimate for a parsed API document."""

from pydantic import BaseModel

from .base import ParsedSpec

MAX_DEPTH = 32


class SpecComplexity(BaseModel):
    size: str  # small / medium / large / xl
    endpoint_count: int
    schema_count: int
    average_parameters: float
    max_schema_depth: int
    score: int
    estimated_processing_ms: int
    warnings: list[str] = []


def analyze_complexity(spec: ParsedSpec) -> SpecComplexity:
    """Score a document by endpoint count, schema count, parameters and nesting."""
    endpoint_count = len(spec.operations)
    schema_count = len(spec.schemas)
    total_params = sum(len(op.parameters) for op in spec.operations)
    average_parameters = total_params / endpoint_count if endpoint_count else 0.0
    max_depth = max((_schema_depth(s, set()) for s in spec.schemas.values()), default=0)

    score = round(endpoint_count * 0.5 + schema_count * 1.0 + average_parameters * 2.0 + max_depth * 3.0)

    if endpoint_count < 50:
        size = "small"
    elif endpoint_count < 200:
        size = "medium"
    elif endpoint_count < 500:
        size = "large"
    else:
        size = "xl"

    multiplier = 1 + score / 100
    estimated = round((2000 + endpoint_count * 50 + schema_count * 100) * multiplier)

    warnings = []
    if size == "xl":
        warnings.append("Very large specification - generation may take several minutes")
    elif size == "large":
        warnings.append("Large specification - generation may take a few minutes")
    if max_depth > 10:
        warnings.append("Deep schema nesting detected - may increase processing time")
    if average_parameters > 10:
        warnings.append("High parameter density - complex endpoint configurations detected")
    missing_ids = [f"{op.method} {op.path}" for op in spec.operations if not op.operation_id]
    if missing_ids:
        warnings.append(f"{len(missing_ids)} operations have no operationId")

    return SpecComplexity(
        size=size,
        endpoint_count=endpoint_count,
        schema_count=schema_count,
        average_parameters=round(average_parameters, 2),
        max_schema_depth=max_depth,
        score=score,
        estimated_processing_ms=estimated,
        warnings=warnings,
    )


def _schema_depth(schema, visiting: set[int], level: int = 0) -> int:
    if not isinstance(schema, dict) or id(schema) in visiting or level > MAX_DEPTH:
        return 0
    visiting = visiting | {id(schema)}

    depth = 1
    for prop in (schema.get("properties") or {}).values():
        depth = max(depth, 1 + _schema_depth(prop, visiting, level + 1))
    if isinstance(schema.get("items"), dict):
        depth = max(depth, 1 + _schema_depth(schema["items"], visiting, level + 1))
    for key in ("allOf", "oneOf", "anyOf"):
        for branch in schema.get(key) or []:
            depth = max(depth, _schema_depth(branch, visiting, level + 1))
    return depth
