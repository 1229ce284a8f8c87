"""OpenAPI / Swagger document loader.

Parses OpenAPI 3.x and Swagger 2.0 documents into a dereferenced ParsedSpec.
"""

import copy
import logging
from pathlib import Path

import yaml

from api_contract_gen.errors import SpecLoadError
from .base import Parameter, ParsedOperation, ParsedSpec

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")


def detect_format(doc: dict) -> str:
    """Detect the document flavour.

    Returns: 'openapi', 'swagger', or 'unknown'.
    """
    if not isinstance(doc, dict):
        return "unknown"
    if str(doc.get("openapi", "")).startswith("3"):
        return "openapi"
    if str(doc.get("swagger", "")).startswith("2"):
        return "swagger"
    return "unknown"


def load_openapi(file_path: Path) -> ParsedSpec:
    """Read an OpenAPI/Swagger file (YAML or JSON) into a ParsedSpec."""
    try:
        text = file_path.read_text(encoding="utf-8")
        doc = yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as e:
        raise SpecLoadError(f"Cannot read {file_path}: {e}") from e
    return parse_document(doc)


def parse_document(doc: dict) -> ParsedSpec:
    """Convert an already-loaded document dict into a ParsedSpec."""
    fmt = detect_format(doc)
    if fmt == "unknown":
        raise SpecLoadError("Document is not an OpenAPI 3.x or Swagger 2.0 specification")
    if not isinstance(doc.get("paths"), dict) or not doc["paths"]:
        raise SpecLoadError("Document has no paths")

    resolved = dereference(doc)
    info = resolved.get("info", {})

    if fmt == "swagger":
        schemas = resolved.get("definitions", {})
        security_schemes = resolved.get("securityDefinitions", {})
        servers = _swagger_servers(resolved)
    else:
        components = resolved.get("components", {})
        schemas = components.get("schemas", {})
        security_schemes = components.get("securitySchemes", {})
        servers = [s.get("url", "") for s in resolved.get("servers", []) if isinstance(s, dict)]

    operations = []
    for path, path_item in resolved["paths"].items():
        if not isinstance(path_item, dict):
            continue
        shared_params = path_item.get("parameters", [])
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            operations.append(_parse_operation(path, method, operation, shared_params, fmt))

    logger.debug("Loaded %d operations from '%s'", len(operations), info.get("title", ""))
    return ParsedSpec(
        title=info.get("title", "API"),
        version=str(info.get("version", "1.0.0")),
        description=info.get("description", ""),
        operations=operations,
        schemas=schemas,
        security_schemes=_normalize_schemes(security_schemes),
        security=resolved.get("security", []),
        servers=servers,
    )


# -- dereferencing ------------------------------------------------------------

def dereference(doc: dict) -> dict:
    """Inline local '#/...' references.

    A reference that points back into its own expansion is left as a
    '$ref' node so downstream analysis can degrade it.
    """
    return _resolve(copy.deepcopy(doc), doc, ())


def _resolve(node, root: dict, active: tuple):
    if isinstance(node, list):
        return [_resolve(item, root, active) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str):
        if not ref.startswith("#/") or ref in active:
            return node
        target = _lookup(root, ref)
        if target is None:
            logger.debug("Unresolvable reference %s", ref)
            return node
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        resolved = _resolve(copy.deepcopy(target), root, active + (ref,))
        if siblings and isinstance(resolved, dict):
            resolved = {**resolved, **_resolve(siblings, root, active)}
        return resolved

    return {key: _resolve(value, root, active) for key, value in node.items()}


def _lookup(root: dict, ref: str):
    current = root
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


# -- operations ---------------------------------------------------------------

def _parse_operation(path: str, method: str, operation: dict, shared_params: list, fmt: str) -> ParsedOperation:
    merged = {(p.get("name"), p.get("in")): p for p in shared_params if isinstance(p, dict)}
    for p in operation.get("parameters", []):
        if isinstance(p, dict):
            merged[(p.get("name"), p.get("in"))] = p
    raw_params = list(merged.values())

    request_body = operation.get("requestBody")
    if fmt == "swagger":
        request_body = _swagger_body(raw_params, operation)
        raw_params = [p for p in raw_params if p.get("in") not in ("body", "formData")]

    return ParsedOperation(
        path=path,
        method=method.upper(),
        operation_id=operation.get("operationId"),
        summary=operation.get("summary") or operation.get("description", ""),
        description=operation.get("description", ""),
        tags=operation.get("tags") or ["default"],
        parameters=_parse_parameters(raw_params),
        request_body=request_body,
        responses=_parse_responses(operation.get("responses", {}), fmt, operation),
        security=operation.get("security"),
        deprecated=bool(operation.get("deprecated", False)),
    )


def _parse_parameters(params: list[dict]) -> list[Parameter]:
    result = []
    for p in params:
        schema = p.get("schema")
        if schema is None:
            # Swagger 2.0 keeps the schema keywords on the parameter itself
            schema = {
                k: v for k, v in p.items()
                if k not in ("name", "in", "required", "description", "example")
            }
        location = p.get("in", "query")
        result.append(
            Parameter(
                name=p["name"],
                location=location,
                required=bool(p.get("required", location == "path")),
                param_schema=schema or {"type": "string"},
                description=p.get("description", ""),
                example=p.get("example"),
            )
        )
    return result


def _parse_responses(responses: dict, fmt: str, operation: dict) -> dict[str, dict]:
    result = {}
    produces = operation.get("produces") or ["application/json"]
    for status_code, resp in responses.items():
        if not isinstance(resp, dict):
            continue
        entry = {"description": resp.get("description", "")}
        if fmt == "swagger" and "schema" in resp:
            entry["content"] = {produces[0]: {"schema": resp["schema"]}}
        elif "content" in resp:
            entry["content"] = resp["content"]
        if "headers" in resp:
            entry["headers"] = resp["headers"]
        result[str(status_code)] = entry
    return result


def _swagger_body(params: list[dict], operation: dict) -> dict | None:
    consumes = operation.get("consumes") or ["application/json"]
    for p in params:
        if p.get("in") == "body":
            return {
                "required": bool(p.get("required", False)),
                "content": {consumes[0]: {"schema": p.get("schema", {})}},
            }
    form = [p for p in params if p.get("in") == "formData"]
    if form:
        schema = {
            "type": "object",
            "properties": {p["name"]: {"type": p.get("type", "string")} for p in form},
            "required": [p["name"] for p in form if p.get("required")],
        }
        return {"required": True, "content": {"multipart/form-data": {"schema": schema}}}
    return None


def _swagger_servers(doc: dict) -> list[str]:
    host = doc.get("host")
    if not host:
        return []
    scheme = (doc.get("schemes") or ["https"])[0]
    return [f"{scheme}://{host}{doc.get('basePath', '')}"]


def _normalize_schemes(schemes: dict) -> dict[str, dict]:
    """Map Swagger 2.0 'basic' schemes onto the OpenAPI 3 'http' shape."""
    result = {}
    for name, scheme in schemes.items():
        if not isinstance(scheme, dict):
            continue
        if scheme.get("type") == "basic":
            scheme = {**scheme, "type": "http", "scheme": "basic"}
        result[name] = scheme
    return result
