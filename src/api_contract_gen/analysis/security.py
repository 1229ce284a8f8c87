"""Security scheme analysis and test credential generation."""

import base64
import json
import random
import time
from typing import Callable

from pydantic import BaseModel

from api_contract_gen.parser.base import ParsedOperation, ParsedSpec

TOKEN_TTL = 3600


class SecurityScheme(BaseModel):
    """One entry of components.securitySchemes."""

    name: str
    type: str  # apiKey / http / oauth2 / openIdConnect
    scheme: str | None = None  # bearer / basic / ... for http
    bearer_format: str | None = None
    location: str | None = None  # header / query / cookie for apiKey
    param_name: str | None = None
    flows: dict = {}
    open_id_connect_url: str | None = None
    description: str = ""

    @property
    def kind(self) -> str:
        """Short label: bearer, basic, apiKey, oauth2 or openIdConnect."""
        if self.type == "http":
            return (self.scheme or "bearer").lower()
        return self.type


class SecurityRequirement(BaseModel):
    scheme: SecurityScheme
    scopes: list[str] = []


class Credential(BaseModel):
    """Where a credential goes on the request."""

    headers: dict[str, str] = {}
    query: dict[str, str] = {}
    cookies: dict[str, str] = {}

    def as_headers(self) -> dict[str, str]:
        """Headers including a Cookie header for cookie credentials."""
        headers = dict(self.headers)
        if self.cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        return headers


class SecurityAnalyzer:
    """Reads security schemes and requirements from a ParsedSpec."""

    def __init__(self, spec: ParsedSpec, rng: random.Random | None = None, clock: Callable[[], float] = time.time):
        self.schemes = {name: parse_scheme(name, raw) for name, raw in spec.security_schemes.items()}
        self.global_security = spec.security
        self.rng = rng or random.Random()
        self.clock = clock

    def requirements_for(self, operation: ParsedOperation) -> list[SecurityRequirement]:
        """Schemes guarding an operation, one entry per scheme.

        Operation-level security overrides the document-level requirement.
        A scheme listed in several alternatives appears once with its scopes
        merged. Unknown scheme names are ignored.
        """
        raw = operation.security if operation.security is not None else self.global_security
        merged: dict[str, list[str]] = {}
        for requirement in raw or []:
            for name, scopes in requirement.items():
                if name not in self.schemes:
                    continue
                current = merged.setdefault(name, [])
                for scope in scopes or []:
                    if scope not in current:
                        current.append(scope)
        return [SecurityRequirement(scheme=self.schemes[name], scopes=scopes) for name, scopes in merged.items()]

    def is_secured(self, operation: ParsedOperation) -> bool:
        return bool(self.requirements_for(operation))

    # -- credentials ----------------------------------------------------------

    def valid_credentials(self, requirement: SecurityRequirement) -> Credential:
        return self._credential(requirement, "valid")

    def invalid_credentials(self, requirement: SecurityRequirement) -> Credential:
        return self._credential(requirement, "invalid")

    def expired_credentials(self, requirement: SecurityRequirement) -> Credential:
        return self._credential(requirement, "expired")

    def insufficient_credentials(self, requirement: SecurityRequirement) -> Credential:
        return self._credential(requirement, "insufficient")

    def auth_headers(self, operation: ParsedOperation) -> dict[str, str]:
        """Valid headers for every scheme guarding the operation."""
        headers: dict[str, str] = {}
        for requirement in self.requirements_for(operation):
            headers.update(self.valid_credentials(requirement).as_headers())
        return headers

    def auth_query(self, operation: ParsedOperation) -> dict[str, str]:
        query: dict[str, str] = {}
        for requirement in self.requirements_for(operation):
            query.update(self.valid_credentials(requirement).query)
        return query

    def _credential(self, requirement: SecurityRequirement, quality: str) -> Credential:
        scheme = requirement.scheme
        scopes = requirement.scopes

        if scheme.type == "apiKey":
            value = {
                "valid": f"test-api-key-{self._hex(16)}",
                "invalid": "invalid-api-key",
                "expired": f"expired-api-key-{self._hex(16)}",
                "insufficient": f"limited-api-key-{self._hex(16)}",
            }[quality]
            name = scheme.param_name or "X-API-Key"
            if scheme.location == "query":
                return Credential(query={name: value})
            if scheme.location == "cookie":
                return Credential(cookies={name: value})
            return Credential(headers={name: value})

        if scheme.kind == "basic":
            user, password = {
                "valid": ("testuser", "testpass123"),
                "invalid": ("testuser", "wrongpass"),
                "expired": ("expireduser", "testpass123"),
                "insufficient": ("readonlyuser", "testpass123"),
            }[quality]
            encoded = base64.b64encode(f"{user}:{password}".encode()).decode()
            return Credential(headers={"Authorization": f"Basic {encoded}"})

        if scheme.type in ("oauth2", "openIdConnect") or scheme.kind == "bearer":
            if quality == "invalid":
                token = "invalid.jwt.token"
            elif quality == "expired":
                token = self.jwt(scopes, expired=True)
            elif quality == "insufficient":
                token = self.jwt(limited_scopes(scopes))
            else:
                token = self.jwt(scopes)
            return Credential(headers={"Authorization": f"Bearer {token}"})

        # Other http schemes (digest, hoba, ...) get an opaque credential
        value = "invalid-credentials" if quality == "invalid" else f"{quality}-credentials-{self._hex(8)}"
        return Credential(headers={"Authorization": f"{(scheme.scheme or 'Token').capitalize()} {value}"})

    def jwt(self, scopes: list[str], expired: bool = False) -> str:
        """Unsigned JWT-shaped token carrying the given scopes."""
        now = int(self.clock())
        issued = now - 2 * TOKEN_TTL if expired else now
        payload = {
            "sub": "1234567890",
            "name": "Test User",
            "iat": issued,
            "exp": issued + TOKEN_TTL,
            "scope": " ".join(scopes),
            "permissions": scopes,
        }
        header = _b64url({"alg": "HS256", "typ": "JWT"})
        return f"{header}.{_b64url(payload)}.test-signature"

    def _hex(self, length: int) -> str:
        return "".join(self.rng.choice("0123456789abcdef") for _ in range(length))


def parse_scheme(name: str, raw: dict) -> SecurityScheme:
    return SecurityScheme(
        name=name,
        type=raw.get("type", "http"),
        scheme=raw.get("scheme"),
        bearer_format=raw.get("bearerFormat"),
        location=raw.get("in"),
        param_name=raw.get("name"),
        flows=raw.get("flows") or {},
        open_id_connect_url=raw.get("openIdConnectUrl"),
        description=raw.get("description", ""),
    )


def limited_scopes(scopes: list[str]) -> list[str]:
    """A scope set that does not cover the required scopes."""
    return [] if "read" in scopes else ["read"]


def _b64url(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")
