import math
from pathlib import Path

import pytest

from api_contract_gen.codegen.base import c_string, json_safe, package_segment, query_string, reindent, to_json
from api_contract_gen.codegen.config import (
    LANGUAGE_METADATA,
    AdvancedConfig,
    CodeStyle,
    LanguageConfig,
    default_config,
    load_config,
)
from api_contract_gen.codegen.output import GeneratedFile, GeneratedOutput, ProjectConfiguration, ProjectStructure
from api_contract_gen.errors import ConfigIssue, InvalidConfiguration

FIXTURES = Path(__file__).parent / "fixtures"


class TestMetadata:
    def test_five_languages(self):
        assert set(LANGUAGE_METADATA) == {"javascript", "java", "csharp", "python", "go"}

    def test_defaults_are_supported(self):
        for meta in LANGUAGE_METADATA.values():
            assert meta.default_framework in meta.supported_frameworks
            assert meta.default_package_manager in meta.supported_package_managers


class TestDefaultConfig:
    def test_python_defaults(self):
        config = default_config("python")
        assert config.framework == "pytest"
        assert config.package_manager == "pip"
        assert config.naming_convention.test_methods == "snake_case"
        assert config.code_style.indent_size == 4
        assert config.code_style.semicolons is False

    def test_overrides(self):
        config = default_config("go", "testify")
        assert config.framework == "testify"
        assert config.package_manager == "go-mod"
        assert config.code_style.indent() == "\t"

    def test_unknown_language(self):
        config = default_config("cobol", "cobunit")
        assert config.framework == "cobunit"
        assert config.package_manager == ""

    def test_advanced_defaults(self):
        config = LanguageConfig(language="javascript", framework="jest", package_manager="npm")
        assert config.advanced_config is None
        assert config.advanced.timeouts.request == 30000
        assert config.advanced.retry.retry_on_status == [502, 503, 504]

    def test_indent(self):
        assert CodeStyle(indent_size=4).indent(2) == " " * 8


class TestLoadConfig:
    def test_fixture(self):
        config = load_config(FIXTURES / "config.yaml")
        assert config.language == "java"
        assert config.framework == "junit4"
        assert config.package_manager == "gradle"
        assert config.provider_mode is True
        assert config.categories == ["success", "error", "performance"]
        assert config.seed == 7
        assert config.consumer == "web-frontend"
        assert config.composition_strategy == "first"

    def test_language_config(self):
        language_config = load_config(FIXTURES / "config.yaml").language_config()
        assert language_config.framework == "junit4"
        assert language_config.custom_settings == {"team": "payments"}
        assert language_config.advanced.logging.level == "debug"
        assert language_config.advanced.retry.enabled is True
        assert language_config.advanced.retry.max_attempts == 5
        assert language_config.advanced.timeouts.request == 30000
        assert language_config.code_style.indent_size == 4

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.language == "javascript"
        assert config.language_config().framework == "jest"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfiguration) as excinfo:
            load_config(tmp_path / "absent.yaml")
        assert excinfo.value.issues[0].code == "UNREADABLE"

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- java\n- go\n")
        with pytest.raises(InvalidConfiguration) as excinfo:
            load_config(path)
        assert excinfo.value.issues[0].code == "INVALID_TYPE"

    def test_bad_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("seed: lots\n")
        with pytest.raises(InvalidConfiguration) as excinfo:
            load_config(path)
        assert [i.field for i in excinfo.value.issues] == ["seed"]
        assert "seed" in str(excinfo.value)


class TestErrors:
    def test_invalid_configuration_message(self):
        error = InvalidConfiguration([
            ConfigIssue(field="framework", message="nope", code="UNSUPPORTED_FRAMEWORK"),
            ConfigIssue(field="language", message="wrong", code="LANGUAGE_MISMATCH"),
        ])
        assert str(error) == "Invalid configuration: framework: nope (UNSUPPORTED_FRAMEWORK); language: wrong (LANGUAGE_MISMATCH)"


class TestRenderingHelpers:
    def test_query_string(self):
        assert query_string({"a": 1, "b": True, "c": [1, 2]}) == "a=1&b=true&c=1&c=2"
        assert query_string({}) == ""

    def test_c_string(self):
        assert c_string('say "hi"\n') == '"say \\"hi\\"\\n"'

    def test_package_segment(self):
        assert package_segment("Pet Store API") == "petstoreapi"
        assert package_segment("3d api") == "p3dapi"

    def test_json_safe(self):
        assert json_safe({"a": [math.nan, 1.5], "b": math.inf}) == {"a": [None, 1.5], "b": None}
        assert to_json({"x": math.nan}) == '{"x": null}'

    def test_reindent(self):
        assert reindent("a\n  b\n    c", "  ", "\t") == "a\n\tb\n\t\tc"
        assert reindent("a\n  b", "  ", "  ") == "a\n  b"


class TestGeneratedOutput:
    def _output(self) -> GeneratedOutput:
        return GeneratedOutput(
            files=[
                GeneratedFile(path="README.md", content="# Pets\n", type="documentation", language="go"),
                GeneratedFile(path="pkg/pets_test.go", content="package pets\n", type="test", language="go"),
            ],
            project_structure=ProjectStructure(test_dir="pkg", package_file="go.mod"),
            configuration=ProjectConfiguration(package_manager="go-mod", test_framework="testing", language="go"),
        )

    def test_file_map_and_get(self):
        output = self._output()
        assert output.file_map() == {"README.md": "# Pets\n", "pkg/pets_test.go": "package pets\n"}
        assert output.get("pkg/pets_test.go").type == "test"
        assert output.get("nope") is None

    def test_write(self, tmp_path):
        written = self._output().write(tmp_path)
        assert len(written) == 2
        assert (tmp_path / "pkg" / "pets_test.go").read_text() == "package pets\n"

    def test_advanced_config_round_trip(self):
        advanced = AdvancedConfig.model_validate({"retry": {"enabled": True}})
        assert advanced.retry.enabled is True
        assert advanced.retry.backoff_strategy == "exponential"
