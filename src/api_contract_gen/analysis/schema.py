"""Schema analyzer: composition resolution, constraint extraction and domain hints."""

import logging
import re

from pydantic import BaseModel

from .domain import DomainHint, DomainScorer

logger = logging.getLogger(__name__)

MAX_DEPTH = 12

COMPOSITION_STRATEGIES = ("first", "all")

CONSTRAINT_KEYS = (
    "format", "pattern", "minLength", "maxLength", "minimum", "maximum",
    "multipleOf", "exclusiveMinimum", "exclusiveMaximum", "enum", "example",
    "default", "items", "properties", "minItems", "maxItems", "uniqueItems",
    "nullable", "description", "readOnly", "writeOnly", "deprecated",
    "additionalProperties",
)

FORMAT_PATTERNS = {
    "date-time": re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?([+-]\d{2}:\d{2}|Z)$"),
    "date": re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    "time": re.compile(r"^\d{2}:\d{2}:\d{2}(\.\d+)?([+-]\d{2}:\d{2}|Z)?$"),
    "email": re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
    "idn-email": re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$"),
    "hostname": re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"),
    "ipv4": re.compile(r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"),
    "ipv6": re.compile(r"^([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$"),
    "uri": re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:\S*$"),
    "uri-reference": re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*:)?\S*$"),
    "uuid": re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE),
    "json-pointer": re.compile(r"^(/([^/~]|~[01])*)*$"),
    "password": re.compile(r"^.{8,}$"),
    "byte": re.compile(r"^[A-Za-z0-9+/]*={0,2}$"),
    "phone": re.compile(r"^\+?[0-9 ()-]{7,20}$"),
}


class SchemaContext(BaseModel):
    field_path: list[str] = []
    parent_type: str | None = None
    is_required: bool = False
    depth: int = 0
    domain_hints: list[DomainHint] = []


class ResolvedSchema(BaseModel):
    """A schema after composition resolution, with its field context."""

    type: str
    constraints: dict
    context: SchemaContext
    warnings: list[str] = []

    @property
    def path(self) -> str:
        return ".".join(self.context.field_path)

    @property
    def name(self) -> str:
        return self.context.field_path[-1] if self.context.field_path else ""

    @property
    def is_required(self) -> bool:
        return self.context.is_required

    def properties(self) -> dict[str, dict]:
        return self.constraints.get("properties") or {}

    def required_fields(self) -> list[str]:
        return list(self.constraints.get("required") or [])

    def hint(self, domain: str) -> DomainHint | None:
        for h in self.context.domain_hints:
            if h.type == domain:
                return h
        return None


class SchemaAnalyzer:
    """Resolves allOf/oneOf/anyOf and annotates schemas with domain hints."""

    def __init__(self, scorer: DomainScorer | None = None, composition_strategy: str = "first", max_depth: int = MAX_DEPTH):
        if composition_strategy not in COMPOSITION_STRATEGIES:
            raise ValueError(f"composition_strategy must be one of {COMPOSITION_STRATEGIES}")
        self.scorer = scorer or DomainScorer()
        self.composition_strategy = composition_strategy
        self.max_depth = max_depth

    def analyze_schema(self, schema, field_name: str = "field", context: SchemaContext | None = None) -> ResolvedSchema:
        """Resolve one schema node in the context of its parent."""
        parent = context or SchemaContext()
        ctx = SchemaContext(
            field_path=[*parent.field_path, field_name],
            parent_type=parent.parent_type,
            is_required=parent.is_required,
            depth=parent.depth + 1,
            domain_hints=list(parent.domain_hints),
        )
        path = ".".join(ctx.field_path)

        warnings: list[str] = []
        if ctx.depth > self.max_depth:
            warnings.append(f"Maximum schema depth exceeded at {path}")
            resolved = {"type": "string", "description": f"Truncated at depth {ctx.depth}"}
        else:
            resolved = self.resolve_composition(schema, warnings, path)

        constraints = self._extract_constraints(resolved)
        ctx.domain_hints = [
            *ctx.domain_hints,
            *self.scorer.score(field_name, ctx.field_path, resolved.get("description") or "", resolved.get("format")),
        ]

        for w in warnings:
            logger.debug(w)
        return ResolvedSchema(type=constraints["type"], constraints=constraints, context=ctx, warnings=warnings)

    def analyze_properties(self, resolved: ResolvedSchema) -> list[ResolvedSchema]:
        """Analyze every object property, propagating required-ness from the parent."""
        required = set(resolved.required_fields())
        children = []
        for name, prop in resolved.properties().items():
            ctx = SchemaContext(
                field_path=resolved.context.field_path,
                parent_type=resolved.type,
                is_required=name in required,
                depth=resolved.context.depth,
            )
            children.append(self.analyze_schema(prop, name, ctx))
        return children

    def analyze_items(self, resolved: ResolvedSchema) -> ResolvedSchema | None:
        items = resolved.constraints.get("items")
        if not isinstance(items, dict):
            return None
        ctx = SchemaContext(
            field_path=resolved.context.field_path,
            parent_type="array",
            is_required=True,
            depth=resolved.context.depth,
        )
        return self.analyze_schema(items, "items", ctx)

    def alternatives(self, schema) -> list:
        """Branches to analyze for a schema under the configured strategy.

        With 'first' this is always a single schema. With 'all' a oneOf/anyOf
        node expands to one entry per branch, siblings merged in.
        """
        if self.composition_strategy != "all" or not isinstance(schema, dict):
            return [schema]
        for key in ("oneOf", "anyOf"):
            branches = schema.get(key)
            if isinstance(branches, list) and branches:
                base = {k: v for k, v in schema.items() if k not in ("oneOf", "anyOf")}
                return [{**base, **b} if isinstance(b, dict) else b for b in branches]
        return [schema]

    # -- composition ----------------------------------------------------------

    def resolve_composition(self, schema, warnings: list[str] | None = None, path: str = "", _active: frozenset = frozenset()) -> dict:
        """Flatten allOf and pick the first oneOf/anyOf branch."""
        warnings = warnings if warnings is not None else []
        if not isinstance(schema, dict):
            warnings.append(f"Non-object schema at {path or 'root'} treated as string")
            return {"type": "string"}

        if "$ref" in schema:
            ref = schema["$ref"]
            warnings.append(f"Unresolved reference {ref} at {path or 'root'}")
            return {"type": "string", "description": f"Reference: {ref}"}

        if id(schema) in _active:
            warnings.append(f"Circular composition at {path or 'root'}")
            return {"type": "string", "description": "Circular composition"}
        active = _active | {id(schema)}

        all_of = schema.get("allOf")
        if isinstance(all_of, list):
            merged = {k: v for k, v in schema.items() if k != "allOf"}
            for sub in all_of:
                resolved = self.resolve_composition(sub, warnings, path, active)
                properties = {**(merged.get("properties") or {}), **(resolved.get("properties") or {})}
                required = [*(merged.get("required") or []), *(resolved.get("required") or [])]
                merged.update(resolved)
                if properties:
                    merged["properties"] = properties
                if required:
                    merged["required"] = list(dict.fromkeys(required))
            if "type" not in merged and "properties" in merged:
                merged["type"] = "object"
            return merged

        for key in ("oneOf", "anyOf"):
            branches = schema.get(key)
            if isinstance(branches, list) and branches:
                base = {k: v for k, v in schema.items() if k not in ("oneOf", "anyOf")}
                first = self.resolve_composition(branches[0], warnings, path, active)
                return {**base, **first}

        return schema

    def _extract_constraints(self, schema: dict) -> dict:
        constraints = {key: schema[key] for key in CONSTRAINT_KEYS if key in schema}

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            # OpenAPI 3.1 style type arrays
            non_null = [t for t in schema_type if t != "null"]
            if len(non_null) < len(schema_type):
                constraints["nullable"] = True
            schema_type = non_null[0] if non_null else "string"
        if not schema_type:
            if "properties" in schema:
                schema_type = "object"
            elif "items" in schema:
                schema_type = "array"
            else:
                schema_type = "string"
        constraints["type"] = schema_type

        if isinstance(schema.get("required"), list):
            constraints["required"] = list(schema["required"])

        # OpenAPI 3.1 numeric exclusive bounds
        for bound, exclusive in (("minimum", "exclusiveMinimum"), ("maximum", "exclusiveMaximum")):
            value = constraints.get(exclusive)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                constraints[bound] = value
                constraints[exclusive] = True
        return constraints


def is_valid_format(value, fmt: str) -> bool:
    """Check a string against a known format. Unknown formats always pass."""
    pattern = FORMAT_PATTERNS.get(fmt)
    if pattern is None:
        return True
    return isinstance(value, str) and bool(pattern.match(value))


def get_boundary_values(constraints: dict) -> list:
    """Representative limit values for a constraint set.

    Strings yield strings of the boundary lengths, numbers yield the bounds
    and their off-by-one neighbours, arrays yield item counts.
    """
    values: list = []
    schema_type = constraints.get("type")

    if schema_type == "string":
        min_length = constraints.get("minLength")
        max_length = constraints.get("maxLength")
        if min_length is not None:
            values.append("A" * min_length)
            if min_length > 0:
                values.append("A" * (min_length - 1))
        if max_length is not None:
            values.append("A" * max_length)
            values.append("A" * (max_length + 1))

    elif schema_type in ("number", "integer"):
        minimum = constraints.get("minimum")
        maximum = constraints.get("maximum")
        if minimum is not None:
            values.append(minimum)
            if not constraints.get("exclusiveMinimum"):
                values.append(minimum - 1)
        if maximum is not None:
            values.append(maximum)
            if not constraints.get("exclusiveMaximum"):
                values.append(maximum + 1)

    elif schema_type == "array":
        min_items = constraints.get("minItems")
        max_items = constraints.get("maxItems")
        if min_items is not None and max_items is not None:
            values.append(min_items)
            values.append(max_items)
            if min_items > 0:
                values.append(min_items - 1)
            values.append(max_items + 1)

    return values
