"""Exception hierarchy shared by the loader, the generators and the backends."""

from pydantic import BaseModel


class ConfigIssue(BaseModel):
    """A single configuration problem reported by a backend."""

    field: str
    message: str
    code: str


class ContractGenError(Exception):
    """Base class for all errors raised by api-contract-gen."""


class SpecLoadError(ContractGenError):
    """The API document could not be read or is not OpenAPI/Swagger."""


class UnsupportedLanguage(ContractGenError):
    """No backend is registered for the requested language."""

    def __init__(self, language: str, supported: list[str]):
        self.language = language
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported language '{language}'. "
            f"Supported languages: {', '.join(self.supported)}"
        )


class InvalidConfiguration(ContractGenError):
    """A LanguageConfig failed backend validation.

    Raised before any file is produced.
    """

    def __init__(self, issues: list[ConfigIssue]):
        self.issues = issues
        details = "; ".join(f"{i.field}: {i.message} ({i.code})" for i in issues)
        super().__init__(f"Invalid configuration: {details}")


class OperationSynthesisError(ContractGenError):
    """A synthesizer failed on one operation."""

    def __init__(self, method: str, path: str, cause: Exception):
        self.method = method
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to synthesize tests for {method} {path}: {cause}")
