"""Language configuration models, per-language metadata and the YAML config file."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from api_contract_gen.errors import ConfigIssue, InvalidConfiguration


class NamingConvention(BaseModel):
    test_classes: str = "PascalCase"
    test_methods: str = "camelCase"
    variables: str = "camelCase"
    constants: str = "UPPER_SNAKE_CASE"


class CodeStyle(BaseModel):
    indentation: str = "spaces"  # spaces / tabs
    indent_size: int = 2
    max_line_length: int = 100
    semicolons: bool = True
    quotes: str = "single"  # single / double

    def indent(self, level: int = 1) -> str:
        unit = "\t" if self.indentation == "tabs" else " " * self.indent_size
        return unit * level


class TimeoutConfig(BaseModel):
    request: int = 30000  # ms
    test: int = 60000
    connection: int = 10000


class LoggingConfig(BaseModel):
    level: str = "info"
    include_request_body: bool = False
    include_response_body: bool = False


class NetworkConfig(BaseModel):
    base_url: str | None = None
    default_headers: dict[str, str] = {}
    verify_ssl: bool = True


class RetryConfig(BaseModel):
    enabled: bool = False
    max_attempts: int = 3
    backoff_strategy: str = "exponential"  # fixed / linear / exponential
    base_delay: int = 1000  # ms
    retry_on_status: list[int] = [502, 503, 504]


class ExecutionConfig(BaseModel):
    parallel: bool = False
    max_concurrency: int = 4
    verbose: bool = False


class AdvancedConfig(BaseModel):
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)


class LanguageConfig(BaseModel):
    language: str
    framework: str
    package_manager: str
    version: str = "1.0.0"
    naming_convention: NamingConvention = Field(default_factory=NamingConvention)
    code_style: CodeStyle = Field(default_factory=CodeStyle)
    advanced_config: AdvancedConfig | None = None
    custom_settings: dict[str, Any] = {}

    @property
    def advanced(self) -> AdvancedConfig:
        return self.advanced_config or AdvancedConfig()


class LanguageMetadata(BaseModel):
    name: str
    display_name: str
    file_extension: str
    default_framework: str
    default_package_manager: str
    supported_frameworks: list[str]
    supported_package_managers: list[str]
    documentation: str
    naming_convention: NamingConvention
    code_style: CodeStyle


LANGUAGE_METADATA: dict[str, LanguageMetadata] = {
    "javascript": LanguageMetadata(
        name="javascript",
        display_name="JavaScript",
        file_extension=".js",
        default_framework="jest",
        default_package_manager="npm",
        supported_frameworks=["jest", "mocha", "jasmine", "vitest"],
        supported_package_managers=["npm", "yarn", "pnpm", "bun"],
        documentation="https://docs.pact.io/implementation_guides/javascript",
        naming_convention=NamingConvention(),
        code_style=CodeStyle(),
    ),
    "java": LanguageMetadata(
        name="java",
        display_name="Java",
        file_extension=".java",
        default_framework="junit5",
        default_package_manager="maven",
        supported_frameworks=["junit5", "junit4", "testng", "spock"],
        supported_package_managers=["maven", "gradle"],
        documentation="https://docs.pact.io/implementation_guides/jvm",
        naming_convention=NamingConvention(),
        code_style=CodeStyle(indent_size=4, max_line_length=120, quotes="double"),
    ),
    "csharp": LanguageMetadata(
        name="csharp",
        display_name="C#",
        file_extension=".cs",
        default_framework="nunit",
        default_package_manager="nuget",
        supported_frameworks=["nunit", "xunit", "mstest"],
        supported_package_managers=["nuget"],
        documentation="https://docs.pact.io/implementation_guides/net",
        naming_convention=NamingConvention(test_methods="PascalCase", constants="PascalCase"),
        code_style=CodeStyle(indent_size=4, max_line_length=120, quotes="double"),
    ),
    "python": LanguageMetadata(
        name="python",
        display_name="Python",
        file_extension=".py",
        default_framework="pytest",
        default_package_manager="pip",
        supported_frameworks=["pytest", "unittest", "nose2"],
        supported_package_managers=["pip", "pipenv", "poetry", "conda"],
        documentation="https://docs.pact.io/implementation_guides/python",
        naming_convention=NamingConvention(test_methods="snake_case", variables="snake_case"),
        code_style=CodeStyle(indent_size=4, max_line_length=88, semicolons=False, quotes="double"),
    ),
    "go": LanguageMetadata(
        name="go",
        display_name="Go",
        file_extension=".go",
        default_framework="testing",
        default_package_manager="go-mod",
        supported_frameworks=["testing", "ginkgo", "testify"],
        supported_package_managers=["go-mod"],
        documentation="https://docs.pact.io/implementation_guides/go",
        naming_convention=NamingConvention(test_methods="PascalCase"),
        code_style=CodeStyle(indentation="tabs", indent_size=1, semicolons=False, quotes="double"),
    ),
}


def default_config(language: str, framework: str | None = None, package_manager: str | None = None) -> LanguageConfig:
    """LanguageConfig populated from LANGUAGE_METADATA."""
    meta = LANGUAGE_METADATA.get(language)
    if meta is None:
        return LanguageConfig(language=language, framework=framework or "", package_manager=package_manager or "")
    return LanguageConfig(
        language=language,
        framework=framework or meta.default_framework,
        package_manager=package_manager or meta.default_package_manager,
        naming_convention=meta.naming_convention.model_copy(),
        code_style=meta.code_style.model_copy(),
    )


# -- config file --------------------------------------------------------------

class FileConfig(BaseModel):
    """Contents of an api-contract-gen YAML config file."""

    language: str = "javascript"
    framework: str | None = None
    package_manager: str | None = None
    provider_mode: bool = False
    categories: list[str] | None = None
    seed: int | None = None
    composition_strategy: str = "first"
    consumer: str | None = None
    provider: str | None = None
    custom_settings: dict[str, Any] = {}
    advanced: AdvancedConfig | None = None

    def language_config(self) -> LanguageConfig:
        config = default_config(self.language, self.framework, self.package_manager)
        return config.model_copy(update={
            "custom_settings": dict(self.custom_settings),
            "advanced_config": self.advanced,
        })


def load_config(path: Path) -> FileConfig:
    """Read a YAML config file.

    Raises InvalidConfiguration when the file is unreadable or does not
    match the expected keys.
    """
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InvalidConfiguration([ConfigIssue(field="config", message=str(e), code="UNREADABLE")]) from e
    if not isinstance(raw, dict):
        raise InvalidConfiguration([ConfigIssue(field="config", message="Config must be a mapping", code="INVALID_TYPE")])
    try:
        return FileConfig.model_validate(raw)
    except ValidationError as e:
        issues = [
            ConfigIssue(field=".".join(str(p) for p in err["loc"]), message=err["msg"], code="INVALID_VALUE")
            for err in e.errors()
        ]
        raise InvalidConfiguration(issues) from e
