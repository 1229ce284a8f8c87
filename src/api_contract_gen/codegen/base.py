"""Language backend contract shared by the five code generators.

A backend turns a TestSuite plus a LanguageConfig into GeneratedOutput for
exactly one mode: consumer pact tests, or provider verification plus
performance tests, chosen by TestSuite.is_provider_mode.
"""

import json
import logging
import math
from typing import Any
from urllib.parse import urlencode

from api_contract_gen.errors import ConfigIssue, InvalidConfiguration
from api_contract_gen.generator.models import TestCase, TestSuite
from api_contract_gen.synth.performance import payload_bytes
from .config import LANGUAGE_METADATA, LanguageConfig
from .naming import identifier, to_kebab, to_pascal, to_snake
from .output import Dependency, GeneratedFile, GeneratedOutput, ProjectConfiguration, ProjectStructure
from .template import TemplateEngine

logger = logging.getLogger(__name__)

NAMING_STYLES = ("PascalCase", "camelCase", "snake_case", "kebab-case", "UPPER_SNAKE_CASE")

README_TEMPLATE = """# {{title}}

Contract tests for **{{provider}}** generated for {{display_name}} ({{framework}}, {{package_manager}}).

Mode: {{mode}}. Test cases: {{test_count}}.

## Setup

{{#each instructions}}- {{this}}
{{/each}}
## Dependencies

{{#each dependencies}}- `{{name}}` {{version}} ({{scope}})
{{/each}}
## Files

{{#each files}}- `{{this}}`
{{/each}}
{{#if skipped}}
## Skipped operations

{{skipped}}
{{/if}}"""


class LanguageBackend:
    """Base class for a per-language contract-test generator."""

    language = ""
    # used when LANGUAGE_METADATA has no entry for the language
    frameworks: list[str] = []
    package_managers: list[str] = []

    def __init__(self, engine: TemplateEngine | None = None):
        self.engine = engine or TemplateEngine()

    # -- capability queries ---------------------------------------------------

    @classmethod
    def get_supported_frameworks(cls) -> list[str]:
        meta = LANGUAGE_METADATA.get(cls.language)
        return list(meta.supported_frameworks if meta else cls.frameworks)

    @classmethod
    def get_supported_package_managers(cls) -> list[str]:
        meta = LANGUAGE_METADATA.get(cls.language)
        return list(meta.supported_package_managers if meta else cls.package_managers)

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {
            "consumer_tests": True,
            "provider_verification": True,
            "performance_tests": True,
            "state_handlers": True,
        }

    # -- generation -----------------------------------------------------------

    def generate_test_suite(self, suite: TestSuite, config: LanguageConfig) -> GeneratedOutput:
        issues = self.validate_config(config)
        if issues:
            raise InvalidConfiguration(issues)

        if suite.is_provider_mode:
            files = self.provider_files(suite, config)
        else:
            files = self.consumer_files(suite, config)
        files.extend(self.project_files(suite, config))

        dependencies = self.dependencies(config)
        instructions = self.setup_instructions(suite, config)
        files.append(self.readme(suite, config, files, dependencies, instructions))
        logger.debug("%s backend produced %d files", self.language, len(files))

        return GeneratedOutput(
            files=files,
            project_structure=self.project_structure(suite, config, files),
            dependencies=dependencies,
            setup_instructions=instructions,
            configuration=ProjectConfiguration(
                package_manager=config.package_manager,
                test_framework=config.framework,
                language=self.language,
                version=config.version,
                scripts=self.scripts(config),
                settings=dict(config.custom_settings),
            ),
        )

    def validate_config(self, config: LanguageConfig) -> list[ConfigIssue]:
        issues = []
        if config.language != self.language:
            issues.append(ConfigIssue(
                field="language",
                message=f"Backend '{self.language}' cannot generate '{config.language}'",
                code="LANGUAGE_MISMATCH",
            ))
        if config.framework not in self.get_supported_frameworks():
            issues.append(ConfigIssue(
                field="framework",
                message=f"Framework '{config.framework}' is not supported for {self.language}. "
                        f"Supported: {', '.join(self.get_supported_frameworks())}",
                code="UNSUPPORTED_FRAMEWORK",
            ))
        if config.package_manager not in self.get_supported_package_managers():
            issues.append(ConfigIssue(
                field="package_manager",
                message=f"Package manager '{config.package_manager}' is not supported for {self.language}. "
                        f"Supported: {', '.join(self.get_supported_package_managers())}",
                code="UNSUPPORTED_PACKAGE_MANAGER",
            ))
        if config.code_style.indent_size < 1:
            issues.append(ConfigIssue(field="code_style.indent_size", message="Must be at least 1", code="INVALID_VALUE"))
        if config.code_style.indentation not in ("spaces", "tabs"):
            issues.append(ConfigIssue(
                field="code_style.indentation", message="Must be 'spaces' or 'tabs'", code="INVALID_VALUE",
            ))
        for name, value in config.naming_convention.model_dump().items():
            if value not in NAMING_STYLES:
                issues.append(ConfigIssue(
                    field=f"naming_convention.{name}",
                    message=f"Unknown naming style '{value}'",
                    code="INVALID_VALUE",
                ))
        return issues

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        raise NotImplementedError

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        raise NotImplementedError

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        raise NotImplementedError

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        raise NotImplementedError

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        raise NotImplementedError

    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        return {}

    def test_dir(self, suite: TestSuite) -> str:
        raise NotImplementedError

    def project_structure(self, suite: TestSuite, config: LanguageConfig, files: list[GeneratedFile]) -> ProjectStructure:
        by_type: dict[str, list[str]] = {}
        for f in files:
            by_type.setdefault(f.type, []).append(f.path)
        dependency_files = by_type.get("dependency", [])
        build_files = by_type.get("build", [])
        return ProjectStructure(
            test_dir=self.test_dir(suite),
            config_files=by_type.get("config", []),
            source_files=by_type.get("test", []),
            package_file=(dependency_files or build_files or [""])[0],
            build_file=build_files[0] if build_files else None,
        )

    def readme(self, suite: TestSuite, config: LanguageConfig, files: list[GeneratedFile],
               dependencies: list[Dependency], instructions: list[str]) -> GeneratedFile:
        meta = LANGUAGE_METADATA.get(self.language)
        context = {
            "title": suite.name,
            "provider": suite.provider,
            "display_name": meta.display_name if meta else self.language,
            "framework": config.framework,
            "package_manager": config.package_manager,
            "mode": "provider verification" if suite.is_provider_mode else "consumer",
            "test_count": len(suite.tests),
            "instructions": instructions,
            "dependencies": [d.model_dump() for d in dependencies],
            "files": [f.path for f in files],
            "skipped": ", ".join(suite.metadata.skipped),
        }
        return GeneratedFile(
            path="README.md",
            content=self.render(README_TEMPLATE, context, "README.md"),
            type="documentation",
            language=self.language,
            description="Setup instructions and file overview",
        )

    def render(self, template: str, context: dict, label: str) -> str:
        """Stamp one template, logging any placeholder the context left unresolved."""
        result = self.engine.render_with_warnings(template, context)
        for placeholder in result.unresolved:
            logger.warning("Unresolved placeholder in %s: %s", label, placeholder)
        return result.text

    def file(self, path: str, content: str, file_type: str, description: str = "") -> GeneratedFile:
        return GeneratedFile(path=path, content=content, type=file_type, language=self.language, description=description)

    # -- shared helpers -------------------------------------------------------

    def method_name(self, test: TestCase, config: LanguageConfig) -> str:
        return identifier(test.name, config.naming_convention.test_methods)

    def class_name(self, base: str, config: LanguageConfig) -> str:
        return identifier(base, config.naming_convention.test_classes)


def contract_cases(suite: TestSuite) -> list[TestCase]:
    return suite.contract_tests()


def performance_cases(suite: TestSuite) -> list[TestCase]:
    return suite.by_type("performance")


def performance_row(test: TestCase) -> dict:
    """Flat, language-neutral view of one performance case."""
    perf = test.performance
    load = perf.test_config
    body = test.request.body
    return {
        "name": test.name,
        "category": perf.category,
        "method": test.request.method,
        "path": test.request.path,
        "query": query_string(test.request.query),
        "headers": dict(test.request.headers),
        "body": to_json(body) if body is not None else "",
        "concurrency": load.concurrency,
        "request_count": load.request_count,
        "duration": load.duration,
        "timeout": load.timeout,
        "retry_attempts": load.retry_attempts,
        "payload_bytes": payload_bytes(load.payload_size) if perf.category == "volume" else 0,
        "max_response_time": perf.failure_threshold.max_response_time,
        "min_success_rate": perf.failure_threshold.min_success_rate,
        "max_error_rate": perf.failure_threshold.max_error_rate,
    }


def json_safe(value: Any) -> Any:
    """Replace NaN and infinities, which JSON cannot carry, with None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def to_json(value: Any, indent: int | None = None) -> str:
    return json.dumps(json_safe(value), indent=indent, ensure_ascii=False)


def query_string(query: dict) -> str:
    """'a=1&b=x' with booleans lower-cased and lists repeated."""
    pairs = []
    for key, value in query.items():
        values = value if isinstance(value, list) else [value]
        for v in values:
            pairs.append((key, query_value(v)))
    return urlencode(pairs)


def query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return to_json(value)
    return str(value)


def c_string(text: str) -> str:
    """Double-quoted literal with C-style escapes (Java, C#, Go, JS)."""
    escaped = (
        str(text)
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def package_segment(name: str) -> str:
    """Lower-case identifier usable as a Java package or Go module path segment."""
    segment = to_snake(name).replace("_", "")
    if not segment or segment[0].isdigit():
        segment = "p" + segment
    return segment


def pascal(name: str) -> str:
    return to_pascal(name) or "Api"


def kebab(name: str) -> str:
    return to_kebab(name) or "api"


def reindent(text: str, unit: str, target: str) -> str:
    """Re-express leading indentation written in `unit` steps using `target`."""
    if unit == target:
        return text
    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip(" ")
        levels, rest = divmod(len(line) - len(stripped), len(unit))
        lines.append(target * levels + " " * rest + stripped)
    return "\n".join(lines)
