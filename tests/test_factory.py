import pytest

from api_contract_gen.codegen.base import LanguageBackend
from api_contract_gen.codegen.config import default_config
from api_contract_gen.codegen.factory import BACKENDS, LanguageGeneratorFactory
from api_contract_gen.codegen.go import GoGenerator
from api_contract_gen.codegen.output import GeneratedFile, GeneratedOutput, ProjectConfiguration, ProjectStructure
from api_contract_gen.codegen.python import PythonGenerator
from api_contract_gen.errors import UnsupportedLanguage
from api_contract_gen.generator.suite import GeneratorOptions, generate_test_suite


class RubyGenerator:
    """Minimal stand-in backend exposing only what the factory touches."""

    @classmethod
    def get_supported_frameworks(cls):
        return ["rspec"]

    @classmethod
    def get_supported_package_managers(cls):
        return ["bundler"]

    @classmethod
    def get_features(cls):
        return {"consumer_tests": True}

    def generate_test_suite(self, suite, config):
        return GeneratedOutput(
            files=[GeneratedFile(path="spec/pets_spec.rb", content="", type="test", language="ruby")],
            project_structure=ProjectStructure(test_dir="spec", package_file="Gemfile"),
            configuration=ProjectConfiguration(package_manager="bundler", test_framework="rspec", language="ruby"),
        )


class RubyBackend(LanguageBackend):
    language = "ruby"
    frameworks = ["rspec", "minitest"]
    package_managers = ["bundler"]


class TestCreateGenerator:
    def test_known_languages(self):
        factory = LanguageGeneratorFactory()
        assert isinstance(factory.create_generator("go"), GoGenerator)
        assert isinstance(factory.create_generator("python"), PythonGenerator)

    def test_fresh_instance_each_call(self):
        factory = LanguageGeneratorFactory()
        assert factory.create_generator("go") is not factory.create_generator("go")

    def test_unsupported(self):
        with pytest.raises(UnsupportedLanguage) as excinfo:
            LanguageGeneratorFactory().create_generator("ruby")
        assert excinfo.value.language == "ruby"
        assert "csharp, go, java, javascript, python" in str(excinfo.value)

    def test_supported_languages(self):
        assert LanguageGeneratorFactory().get_supported_languages() == ["javascript", "java", "csharp", "python", "go"]


class TestRegistration:
    def test_register_generator(self):
        factory = LanguageGeneratorFactory()
        factory.register_generator("ruby", RubyGenerator)
        assert "ruby" in factory.get_supported_languages()
        assert isinstance(factory.create_generator("ruby"), RubyGenerator)
        assert factory.validate_language_support("ruby", "rspec") is True

    def test_registration_is_per_instance(self):
        factory = LanguageGeneratorFactory()
        factory.register_generator("ruby", RubyGenerator)
        assert "ruby" not in LanguageGeneratorFactory().get_supported_languages()
        assert "ruby" not in BACKENDS

    def test_replace_backend(self):
        factory = LanguageGeneratorFactory()
        factory.register_generator("go", RubyGenerator)
        assert factory.validate_language_support("go", "testing") is False
        assert factory.validate_language_support("go", "rspec") is True

    def test_custom_registry(self):
        factory = LanguageGeneratorFactory({"ruby": RubyGenerator})
        assert factory.get_supported_languages() == ["ruby"]


class TestBackendWithoutMetadata:
    def test_supported_lists_from_class(self):
        assert RubyBackend.get_supported_frameworks() == ["rspec", "minitest"]
        assert RubyBackend.get_supported_package_managers() == ["bundler"]

    def test_validate_language_support(self):
        factory = LanguageGeneratorFactory()
        factory.register_generator("ruby", RubyBackend)
        assert factory.validate_language_support("ruby", "minitest") is True
        assert factory.validate_language_support("ruby", "jest") is False
        assert factory.get_generator_capabilities("ruby")["package_managers"] == ["bundler"]

    def test_validate_config(self):
        issues = RubyBackend().validate_config(default_config("ruby", "rspec", "bundler"))
        assert issues == []
        issues = RubyBackend().validate_config(default_config("ruby", "rspec", "npm"))
        assert [issue.field for issue in issues] == ["package_manager"]


class TestValidateLanguageSupport:
    @pytest.mark.parametrize(
        "language,framework,expected",
        [
            ("java", None, True),
            ("java", "spock", True),
            ("java", "pytest", False),
            ("csharp", "xunit", True),
            ("rust", None, False),
            ("rust", "cargo-test", False),
        ],
    )
    def test_support(self, language, framework, expected):
        assert LanguageGeneratorFactory().validate_language_support(language, framework) is expected


class TestCapabilities:
    def test_keys(self):
        caps = LanguageGeneratorFactory().get_generator_capabilities("javascript")
        assert set(caps) == {"language", "frameworks", "package_managers", "features", "metadata"}
        assert caps["frameworks"] == ["jest", "mocha", "jasmine", "vitest"]
        assert caps["package_managers"] == ["npm", "yarn", "pnpm", "bun"]
        assert caps["features"]["async_await"] is True
        assert caps["metadata"]["display_name"] == "JavaScript"
        assert caps["metadata"]["default_framework"] == "jest"

    def test_go_features(self):
        caps = LanguageGeneratorFactory().get_generator_capabilities("go")
        assert caps["features"]["goroutines"] is True
        assert caps["features"]["provider_verification"] is True

    def test_registered_backend_without_metadata(self):
        factory = LanguageGeneratorFactory()
        factory.register_generator("ruby", RubyGenerator)
        caps = factory.get_generator_capabilities("ruby")
        assert caps["frameworks"] == ["rspec"]
        assert caps["metadata"] == {}

    def test_unsupported(self):
        with pytest.raises(UnsupportedLanguage):
            LanguageGeneratorFactory().get_generator_capabilities("cobol")


class TestGenerateTests:
    def test_dispatches_on_config_language(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        output = LanguageGeneratorFactory().generate_tests(suite, default_config("go"))
        assert output.configuration.language == "go"
        assert output.get("go.mod") is not None

    def test_registered_backend_used(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        factory = LanguageGeneratorFactory()
        factory.register_generator("ruby", RubyGenerator)
        output = factory.generate_tests(suite, default_config("ruby", "rspec"))
        assert output.file_map() == {"spec/pets_spec.rb": ""}

    def test_unknown_language(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        with pytest.raises(UnsupportedLanguage):
            LanguageGeneratorFactory().generate_tests(suite, default_config("cobol", "cobunit"))
