"""Auth synthesizer — missing, invalid, expired and under-scoped credentials.

One case of each kind per security scheme guarding the operation. The
offending credential replaces the valid one for that scheme only; other
schemes keep their valid credentials.
"""

from api_contract_gen.analysis.security import Credential, SecurityRequirement
from api_contract_gen.generator.models import AuthDetail, TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, RequestParts, Synthesizer, error_response

MESSAGES = {
    "missing": "Authentication required",
    "invalid": "Invalid authentication credentials",
    "expired": "Authentication token has expired",
    "insufficient_scope": "Insufficient permissions to access this resource",
}


class AuthSynthesizer(Synthesizer):
    category = "auth"

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        if self.security is None or not analysis.security:
            return []

        cases = []
        for requirement in analysis.security:
            cases.append(self._case(analysis, requirement, "missing", None))
            cases.append(self._case(analysis, requirement, "invalid", self.security.invalid_credentials(requirement)))
            cases.append(self._case(analysis, requirement, "expired", self.security.expired_credentials(requirement)))
            if requirement.scopes:
                cases.append(
                    self._case(analysis, requirement, "insufficient_scope",
                               self.security.insufficient_credentials(requirement))
                )
        return cases

    def _case(self, analysis: OperationAnalysis, requirement: SecurityRequirement, kind: str,
              credential: Credential | None) -> TestCase:
        operation = analysis.operation
        scheme = requirement.scheme
        parts = self._strip(analysis.base_request, requirement)
        if credential is not None:
            parts.headers.update(credential.as_headers())
            parts.query.update(credential.query)

        status = 403 if kind == "insufficient_scope" else 401
        body = {"error": {"code": status, "message": MESSAGES[kind], "type": kind}}
        response = error_response(status, body)
        if status == 401 and scheme.kind in ("bearer", "oauth2", "openIdConnect"):
            response.headers["WWW-Authenticate"] = "Bearer"

        readable = kind.replace("_", " ")
        return self.make_case(
            analysis,
            f"{scheme.name}_{kind}",
            f"{operation.method} {operation.path} rejects {readable} {scheme.kind} credentials",
            parts.to_spec(operation),
            response,
            provider_state=_state(kind, requirement),
            then=f"the provider responds with {status}",
            tags=[scheme.kind, kind],
            auth=AuthDetail(scheme=scheme.name, scheme_type=scheme.kind, kind=kind, scopes=requirement.scopes),
        )

    def _strip(self, base: RequestParts, requirement: SecurityRequirement) -> RequestParts:
        """Copy of base without the credential for one scheme."""
        parts = base.model_copy(deep=True)
        valid = self.security.valid_credentials(requirement)
        for name in valid.as_headers():
            parts.headers.pop(name, None)
        for name in valid.query:
            parts.query.pop(name, None)
        return parts


def _state(kind: str, requirement: SecurityRequirement) -> str:
    if kind == "missing":
        return "no credentials are supplied"
    if kind == "insufficient_scope":
        return f"user lacks scopes {', '.join(requirement.scopes)}"
    return f"{kind} {requirement.scheme.kind} credentials are supplied"
