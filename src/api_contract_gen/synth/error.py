"""Error synthesizer — canonical HTTP failure scenarios per operation.

Each case records the RequestModification applied to the valid request and
the ExpectedError body. A case survives only when its status is declared by
the operation or is one of the statuses every API is assumed to produce.
"""

from typing import Any

from api_contract_gen.analysis.security import Credential
from api_contract_gen.generator.models import ExpectedError, RequestModification, TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, RequestParts, Synthesizer, error_body, error_response

ALWAYS_KEPT = {400, 401, 403, 404, 500}

AUTH_INDICATORS = ("security", "authorization", "auth", "protected", "private", "user", "profile", "account")
AUTH_HEADERS = ["Authorization", "X-API-Key", "Bearer"]

ALTERNATE_METHODS = ("DELETE", "PATCH", "PUT", "POST", "GET")


class ErrorSynthesizer(Synthesizer):
    category = "error"

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        cases = []
        for spec in self.scenarios(operation, analysis):
            status = spec["status"]
            if status not in analysis.declared_statuses and status not in ALWAYS_KEPT:
                continue
            cases.append(self._case(analysis, spec))
        return cases

    def scenarios(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[dict]:
        """Candidate error scenarios before filtering by declared status."""
        out = []
        if self._looks_secured(operation, analysis):
            out.extend(self._auth_scenarios(analysis))

        schema = analysis.request_schema
        if schema is not None:
            out.append(_scenario(
                "invalid_request_body", 400, "Invalid JSON in request body", "INVALID_JSON",
                "request has invalid JSON body", "Request with invalid JSON body",
                RequestModification(modify_body="invalid_json_string", replace_body=True),
            ))
            required = schema.required_fields()[:2]
            if required:
                out.append(_scenario(
                    "missing_required_fields", 400, "Missing required fields", "VALIDATION_ERROR",
                    "request missing required fields", "Request missing required fields",
                    RequestModification(remove_body_fields=required),
                    details={"missing_fields": required},
                ))
            invalid = list(schema.properties())[:2]
            if invalid:
                out.append(_scenario(
                    "invalid_field_types", 400, "Invalid field types in request", "VALIDATION_ERROR",
                    "request has invalid field types", "Request with invalid field types",
                    RequestModification(invalidate_body_fields=invalid),
                ))

        if "{" in operation.path and operation.method in ("GET", "PUT", "PATCH", "DELETE"):
            out.append(_scenario(
                "resource_not_found", 404, "Resource not found", "NOT_FOUND",
                "resource does not exist", "Request for non-existent resource",
            ))

        out.append(_scenario(
            "method_not_allowed", 405, "Method not allowed", "METHOD_NOT_ALLOWED",
            "endpoint does not support this method", "Request with unsupported HTTP method",
        ))

        if operation.method in ("POST", "PUT") and schema is not None:
            out.append(_scenario(
                "conflict", 409, "Resource already exists", "CONFLICT",
                "resource already exists", "Request conflicting with existing resource state",
            ))

        if operation.request_body:
            out.append(_scenario(
                "unsupported_media_type", 415, "Unsupported media type", "UNSUPPORTED_MEDIA_TYPE",
                "request has unsupported content type", "Request with unsupported content type",
                RequestModification(add_headers={"Content-Type": "application/xml"}),
            ))

        out.append(_scenario(
            "rate_limit_exceeded", 429, "Rate limit exceeded", "RATE_LIMIT_EXCEEDED",
            "rate limit has been exceeded", "Request exceeding rate limits",
            RequestModification(add_headers={"X-Rate-Limit-Remaining": "0"}),
            details={"retry_after": 60},
        ))
        out.append(_scenario(
            "internal_server_error", 500, "Internal server error", "INTERNAL_ERROR",
            "server is experiencing internal error", "Server experiencing internal error",
        ))
        out.append(_scenario(
            "service_unavailable", 503, "Service temporarily unavailable", "SERVICE_UNAVAILABLE",
            "service is temporarily unavailable", "Service temporarily unavailable",
            details={"retry_after": 30},
        ))
        return out

    def _auth_scenarios(self, analysis: OperationAnalysis) -> list[dict]:
        headers, query = list(AUTH_HEADERS), []
        invalid = Credential(headers={"Authorization": "Bearer invalid_token_123"})
        expired = Credential(headers={"Authorization": "Bearer expired_token_456"})
        insufficient = None
        if self.security is not None and analysis.security:
            for requirement in analysis.security:
                slot = self.security.invalid_credentials(requirement)
                headers += [name for name in slot.as_headers() if name not in headers]
                query += [name for name in slot.query if name not in query]
            first = analysis.security[0]
            invalid = self.security.invalid_credentials(first)
            expired = self.security.expired_credentials(first)
            insufficient = self.security.insufficient_credentials(first)

        def replace_with(credential: Credential | None) -> RequestModification:
            # every real credential goes before the substitute is added
            if credential is None:
                return RequestModification()
            return RequestModification(remove_headers=headers, remove_query=query,
                                       add_headers=credential.as_headers(), add_query=credential.query)

        return [
            _scenario(
                "missing_authentication", 401, "Authentication required", "UNAUTHORIZED",
                "user is not authenticated", "Request without authentication token",
                RequestModification(remove_headers=headers, remove_query=query),
            ),
            _scenario(
                "invalid_token", 401, "Invalid authentication token", "INVALID_TOKEN",
                "user has invalid token", "Request with invalid authentication token",
                replace_with(invalid),
            ),
            _scenario(
                "expired_token", 401, "Authentication token has expired", "TOKEN_EXPIRED",
                "user has expired token", "Request with expired authentication token",
                replace_with(expired),
            ),
            _scenario(
                "insufficient_permissions", 403, "Insufficient permissions to access this resource", "FORBIDDEN",
                "user lacks required permissions", "Request with insufficient permissions",
                replace_with(insufficient),
            ),
        ]

    def _looks_secured(self, operation: ParsedOperation, analysis: OperationAnalysis) -> bool:
        if analysis.is_secured:
            return True
        text = " ".join([
            operation.path, operation.operation_id or "", operation.summary, operation.description, *operation.tags,
        ]).lower()
        return any(word in text for word in AUTH_INDICATORS)

    # -- test cases -----------------------------------------------------------

    def _case(self, analysis: OperationAnalysis, spec: dict) -> TestCase:
        operation = analysis.operation
        modification: RequestModification = spec["modification"]
        parts = apply_modification(analysis.base_request, modification)
        request = parts.to_spec(operation)

        if spec["name"] == "resource_not_found":
            request = _missing_resource(operation, parts).to_spec(operation)
        elif spec["name"] == "method_not_allowed":
            request.method = _alternate_method(operation, analysis.path_methods)

        expected = ExpectedError(
            status=spec["status"], message=spec["message"], code=spec["code"], details=spec["details"],
        )
        response = error_response(spec["status"], error_body(expected.code, expected.message, **expected.details))
        if "retry_after" in expected.details:
            response.headers["Retry-After"] = str(expected.details["retry_after"])

        return self.make_case(
            analysis,
            spec["name"],
            spec["description"],
            request,
            response,
            provider_state=spec["state"],
            then=f"the provider responds with {spec['status']} {expected.code}",
            tags=[str(spec["status"])],
            modification=modification,
            expected_error=expected,
        )


def apply_modification(base: RequestParts, modification: RequestModification) -> RequestParts:
    """Copy of base with a RequestModification applied."""
    parts = base.model_copy(deep=True)
    for name in modification.remove_headers:
        parts.headers.pop(name, None)
    parts.headers.update(modification.add_headers)
    for name in modification.remove_query:
        parts.query.pop(name, None)
    parts.query.update(modification.add_query)

    if modification.replace_body:
        parts.body = modification.modify_body
    elif isinstance(modification.modify_body, dict) and isinstance(parts.body, dict):
        parts.body.update(modification.modify_body)

    if isinstance(parts.body, dict):
        for name in modification.remove_body_fields:
            parts.body.pop(name, None)
        for name in modification.invalidate_body_fields:
            parts.body[name] = _wrong_type(parts.body.get(name))
    return parts


def _wrong_type(value: Any) -> Any:
    if isinstance(value, str):
        return 12345
    if isinstance(value, bool):
        return "not-a-boolean"
    if isinstance(value, (int, float)):
        return "not-a-number"
    if isinstance(value, (list, dict)):
        return "invalid_type"
    return {"unexpected": True}


def _missing_resource(operation: ParsedOperation, parts: RequestParts) -> RequestParts:
    missing = parts.model_copy(deep=True)
    for param in operation.parameters_in("path"):
        if param.param_schema.get("type") in ("integer", "number"):
            missing.path_values[param.name] = 999999999
        else:
            missing.path_values[param.name] = "nonexistent-id-999"
    return missing


def _alternate_method(operation: ParsedOperation, path_methods: list[str]) -> str:
    taken = {m.upper() for m in path_methods} | {operation.method}
    for method in ALTERNATE_METHODS:
        if method not in taken:
            return method
    return "OPTIONS"


def _scenario(name: str, status: int, message: str, code: str, state: str, description: str,
              modification: RequestModification | None = None, details: dict | None = None) -> dict:
    return {
        "name": name,
        "status": status,
        "message": message,
        "code": code,
        "state": state,
        "description": description,
        "modification": modification or RequestModification(),
        "details": details or {},
    }
