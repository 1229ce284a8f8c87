"""Shared building blocks for the test-case synthesizers.

A synthesizer turns one operation plus its OperationAnalysis into TestCases
of a single category. Names follow <method>_<path>_<category>_<discriminator>.
"""

import copy
import re
from typing import Any, Iterator

from pydantic import BaseModel, Field

from api_contract_gen.analysis.schema import ResolvedSchema, SchemaAnalyzer, SchemaContext
from api_contract_gen.analysis.security import SecurityAnalyzer, SecurityRequirement
from api_contract_gen.generator.mock_data import MockDataGenerator
from api_contract_gen.generator.models import (
    Variant,
    RequestSpec,
    ResponseSpec,
    Scenario,
    TestCase,
)
from api_contract_gen.parser.base import ParsedOperation

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class RequestParts(BaseModel):
    """A valid request broken into editable parts."""

    path_values: dict[str, Any] = {}
    query: dict[str, Any] = {}
    headers: dict[str, str] = {}
    body: Any = None

    def to_spec(self, operation: ParsedOperation) -> RequestSpec:
        return RequestSpec(
            method=operation.method,
            path=concrete_path(operation.path, self.path_values),
            headers=self.headers,
            body=self.body,
            query=self.query,
        )


class OperationAnalysis(BaseModel):
    """Everything the synthesizers need to know about one operation."""

    operation: ParsedOperation
    request_schema: ResolvedSchema | None = None
    parameter_schemas: dict[str, ResolvedSchema] = {}  # keyed by variant root: parameter.<name> / query.<name>
    security: list[SecurityRequirement] = []
    success_status: int = 200
    declared_statuses: list[int] = []
    path_methods: list[str] = []  # every method declared on the same path
    base_request: RequestParts = Field(default_factory=RequestParts)
    success_body: Any = None

    @property
    def is_secured(self) -> bool:
        return bool(self.security)


class Synthesizer:
    """Base class: one category of TestCases per operation."""

    category = ""

    def __init__(self, analyzer: SchemaAnalyzer, mock: MockDataGenerator, security: SecurityAnalyzer | None = None):
        self.analyzer = analyzer
        self.mock = mock
        self.security = security

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        raise NotImplementedError

    def field_nodes(self, operation: ParsedOperation) -> Iterator[tuple[ResolvedSchema, str, list[str]]]:
        """Every request field as (resolved schema, label, extra tags).

        The body is walked as 'requestBody', path and header parameters as
        'parameter.<name>' and query parameters as 'query.<name>'. Under the
        'all' composition strategy, branch i>0 of a oneOf/anyOf is labelled
        '<path>.branch<i>' and tagged 'branch<i>'.
        """
        schema = operation.request_schema()
        if schema is not None:
            required = bool((operation.request_body or {}).get("required", False))
            yield from self._walk(schema, "requestBody", SchemaContext(is_required=required), None, [])

        for param in operation.parameters:
            if param.location == "cookie":
                continue
            root = "query" if param.location == "query" else "parameter"
            ctx = SchemaContext(field_path=[root], is_required=param.required)
            yield from self._walk(param.param_schema, param.name, ctx, None, [])

    def variant_case(self, analysis: OperationAnalysis, variant: Variant, tags: list[str] | None = None) -> TestCase:
        """Apply one variant to the minimal valid request and wrap it as a TestCase.

        Valid variants expect 200 with the success body; invalid ones expect
        their error_code with a VALIDATION_ERROR body naming the field.
        """
        operation = analysis.operation
        parts = apply_field(analysis.base_request, operation, variant.field, variant.value, variant.omit)
        if variant.expected == "valid":
            response = ResponseSpec(status=200, headers={"Content-Type": "application/json"}, body=analysis.success_body)
            then = f"{variant.field} is accepted"
        else:
            code = "CONFLICT" if variant.error_code == 409 else "VALIDATION_ERROR"
            response = error_response(variant.error_code, error_body(code, variant.error_message, field=variant.field))
            then = f"the provider rejects {variant.field} with {variant.error_code}"
        return self.make_case(
            analysis,
            variant.name,
            f"{self.category.capitalize()} check {variant.name.replace('_', ' ')}",
            parts.to_spec(operation),
            response,
            provider_state=variant.provider_state,
            then=then,
            tags=[variant.category, *(tags or [])],
            variant=variant,
        )

    def _walk(self, raw, field_name: str, ctx: SchemaContext, label: str | None, tags: list[str]):
        for index, branch in enumerate(self.analyzer.alternatives(raw)):
            resolved = self.analyzer.analyze_schema(branch, field_name, ctx)
            node_label = label or resolved.path
            node_tags = list(tags)
            if index > 0:
                node_label = f"{node_label}.branch{index}"
                node_tags.append(f"branch{index}")
            yield resolved, node_label, node_tags

            if resolved.type == "object":
                required = set(resolved.required_fields())
                for name, child in resolved.properties().items():
                    child_ctx = SchemaContext(
                        field_path=resolved.context.field_path,
                        parent_type="object",
                        is_required=name in required,
                        depth=resolved.context.depth,
                    )
                    yield from self._walk(child, name, child_ctx, f"{node_label}.{name}", node_tags)

    def make_case(
        self,
        analysis: OperationAnalysis,
        discriminator: str | None,
        description: str,
        request: RequestSpec,
        response: ResponseSpec,
        provider_state: str | None = None,
        then: str | None = None,
        tags: list[str] | None = None,
        **details,
    ) -> TestCase:
        operation = analysis.operation
        name = case_name(operation, self.category, discriminator)
        state = provider_state or default_provider_state(operation)
        if operation.path not in description:
            description = f"{description} on {operation.method} {operation.path}"
        return TestCase(
            id=name,
            name=name,
            description=description,
            type=self.category,
            scenario=Scenario(
                given=state,
                when=f"a {operation.method} request is made to {operation.path}",
                then=then or f"the response status is {response.status}",
            ),
            request=request,
            response=response,
            provider_state=state,
            tags=[self.category, *(operation.tags or []), *(tags or [])],
            **details,
        )


# -- naming -------------------------------------------------------------------

def sanitize_path(path: str) -> str:
    """'/users/{id}/posts' -> 'users_id_posts'."""
    cleaned = path.replace("{", "").replace("}", "")
    cleaned = re.sub(r"[^A-Za-z0-9]+", "_", cleaned).strip("_")
    return cleaned or "root"


def slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", str(text)).strip("_")


def case_name(operation: ParsedOperation, category: str, discriminator: str | None = None) -> str:
    name = f"{operation.method.lower()}_{sanitize_path(operation.path)}_{category}"
    if discriminator:
        name += f"_{slug(discriminator)}"
    return name


def resource_name(path: str) -> str:
    """Last literal path segment: '/users/{id}' -> 'users'."""
    segments = [s for s in path.split("/") if s and not s.startswith("{")]
    return segments[-1] if segments else "resource"


def default_provider_state(operation: ParsedOperation) -> str:
    resource = resource_name(operation.path)
    if "{" in operation.path:
        singular = resource[:-1] if resource.endswith("s") else resource
        return f"{singular} exists"
    if operation.method == "POST":
        return f"{resource} can be created"
    return f"{resource} exist"


# -- request helpers ----------------------------------------------------------

def concrete_path(path: str, values: dict[str, Any]) -> str:
    def replace(match):
        name = match.group(1)
        if name not in values:
            return match.group(0)
        value = values[name]
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    return re.sub(r"\{([^}]+)\}", replace, path)


def build_base_request(
    operation: ParsedOperation,
    mock: MockDataGenerator,
    security: SecurityAnalyzer | None = None,
    optional_fields: str = "none",
) -> RequestParts:
    """A valid request: path values, query, JSON headers, auth and body."""
    path_values = {}
    query = {}
    headers = {}
    for param in operation.parameters:
        if param.location == "query" and not param.required and optional_fields == "none":
            continue
        if param.location == "query" and not param.required and optional_fields == "documented" and param.example is None:
            continue
        if param.location == "cookie":
            continue
        value = param.example
        if value is None:
            value = param.param_schema.get("example", param.param_schema.get("default"))
        if value is None:
            value = mock.generate_realistic_data(param.name, param.param_schema, "valid")
        if param.location == "path":
            path_values[param.name] = value
        elif param.location == "query":
            query[param.name] = value
        elif param.location == "header":
            headers[param.name] = str(value)

    body = None
    schema = operation.request_schema()
    if schema is not None:
        body = mock.generate_realistic_data("requestBody", schema, "valid", optional_fields, request=True)
        headers = {**JSON_HEADERS, **headers}
    else:
        headers = {"Accept": "application/json", **headers}

    if security is not None:
        headers.update(security.auth_headers(operation))
        query.update(security.auth_query(operation))

    return RequestParts(path_values=path_values, query=query, headers=headers, body=body)


def apply_field(parts: RequestParts, operation: ParsedOperation, field: str, value: Any, omit: bool = False) -> RequestParts:
    """Copy of parts with one dotted field replaced (or removed when omit).

    Roots: 'requestBody' addresses the body, 'parameter.<name>' a path or
    header parameter and 'query.<name>' a query parameter.
    """
    parts = parts.model_copy(deep=True)
    segments = field.split(".")
    root = segments[0]

    if root == "requestBody":
        if len(segments) == 1:
            parts.body = None if omit else copy.deepcopy(value)
        else:
            if not isinstance(parts.body, dict):
                parts.body = {}
            _set_in(parts.body, segments[1:], value, omit)
        return parts

    if root == "query" and len(segments) > 1:
        name = ".".join(segments[1:])
        if omit:
            parts.query.pop(name, None)
        else:
            parts.query[name] = value
        return parts

    if root == "parameter" and len(segments) > 1:
        name = ".".join(segments[1:])
        location = next((p.location for p in operation.parameters if p.name == name), "path")
        if location == "header":
            if omit or value is None:
                parts.headers.pop(name, None)
            else:
                parts.headers[name] = value if isinstance(value, str) else str(value)
        else:
            parts.path_values[name] = None if omit else value
        return parts

    # anything else is treated as a nested body path
    if not isinstance(parts.body, dict):
        parts.body = {}
    _set_in(parts.body, segments, value, omit)
    return parts


def _set_in(target: dict, segments: list[str], value: Any, omit: bool) -> None:
    current = target
    for key in segments[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    if omit:
        current.pop(segments[-1], None)
    else:
        current[segments[-1]] = copy.deepcopy(value)


# -- response helpers ---------------------------------------------------------

def error_body(code: str, message: str, **details) -> dict:
    body = {"error": {"code": code, "message": message}}
    if details:
        body["error"]["details"] = details
    return body


def success_response(analysis: OperationAnalysis) -> ResponseSpec:
    body = analysis.success_body
    if body is None and analysis.success_status != 204:
        body = {"success": True}
    return ResponseSpec(status=analysis.success_status, headers={"Content-Type": "application/json"}, body=body)


def error_response(status: int, body: Any) -> ResponseSpec:
    return ResponseSpec(status=status, headers={"Content-Type": "application/json"}, body=body)
