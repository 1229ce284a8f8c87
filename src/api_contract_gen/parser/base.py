"""Data models for a parsed, dereferenced API document.

The loader converts OpenAPI 3.x and Swagger 2.0 input into these models.
Everything downstream of the loader only sees ParsedSpec.
"""

from typing import Any

from pydantic import BaseModel, Field


class Parameter(BaseModel):
    """A single operation parameter (query, path, header, or cookie)."""

    name: str
    location: str  # query / path / header / cookie
    required: bool = False
    param_schema: dict = {}
    description: str = ""
    example: Any = None


class ParsedOperation(BaseModel):
    """One HTTP method + path entry of the API document."""

    path: str  # /users/{id}
    method: str  # GET / POST / PUT / DELETE / PATCH
    operation_id: str | None = None
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=lambda: ["default"])
    parameters: list[Parameter] = []
    request_body: dict | None = None  # {required, content: {media_type: {schema}}}
    responses: dict[str, dict] = {}  # {status_code: {description, content}}
    security: list[dict] | None = None  # None inherits the document-level requirement
    deprecated: bool = False

    def request_schema(self) -> dict | None:
        """JSON request body schema, falling back to the first media type."""
        if not self.request_body:
            return None
        content = self.request_body.get("content", {})
        if "application/json" in content:
            return content["application/json"].get("schema")
        for media in content.values():
            return media.get("schema")
        return None

    def response_schema(self, status: int | str) -> dict | None:
        """JSON response schema for a status code, if declared."""
        response = self.responses.get(str(status), {})
        content = response.get("content", {})
        if "application/json" in content:
            return content["application/json"].get("schema")
        for media in content.values():
            return media.get("schema")
        return None

    def declared_statuses(self) -> list[int]:
        """Numeric status codes declared in responses, in document order."""
        statuses = []
        for code in self.responses:
            if str(code).isdigit():
                statuses.append(int(code))
        return statuses

    def success_status(self) -> int:
        """First declared 2xx status, 200 when none is declared."""
        for status in self.declared_statuses():
            if 200 <= status < 300:
                return status
        return 200

    def parameters_in(self, location: str) -> list[Parameter]:
        return [p for p in self.parameters if p.location == location]


class ParsedSpec(BaseModel):
    """A whole API document after loading and dereferencing."""

    title: str
    version: str = "1.0.0"
    description: str = ""
    operations: list[ParsedOperation] = []
    schemas: dict[str, dict] = {}
    security_schemes: dict[str, dict] = {}
    security: list[dict] = []
    servers: list[str] = []
