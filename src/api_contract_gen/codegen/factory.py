"""Backend registry — maps a language id to the LanguageBackend that renders it."""

import logging

from api_contract_gen.errors import UnsupportedLanguage
from api_contract_gen.generator.models import TestSuite
from .base import LanguageBackend
from .config import LANGUAGE_METADATA, LanguageConfig
from .csharp import CSharpGenerator
from .go import GoGenerator
from .java import JavaGenerator
from .javascript import JavaScriptGenerator
from .output import GeneratedOutput
from .python import PythonGenerator

logger = logging.getLogger(__name__)

BACKENDS: dict[str, type[LanguageBackend]] = {
    "javascript": JavaScriptGenerator,
    "java": JavaGenerator,
    "csharp": CSharpGenerator,
    "python": PythonGenerator,
    "go": GoGenerator,
}


class LanguageGeneratorFactory:
    """Creates backends by language id.

    Each factory owns a copy of BACKENDS, so registering a test double on
    one instance leaves the others untouched.
    """

    def __init__(self, backends: dict[str, type[LanguageBackend]] | None = None):
        self._backends = dict(BACKENDS if backends is None else backends)

    def create_generator(self, language: str) -> LanguageBackend:
        backend_cls = self._backends.get(language)
        if backend_cls is None:
            raise UnsupportedLanguage(language, list(self._backends))
        return backend_cls()

    def get_supported_languages(self) -> list[str]:
        return list(self._backends)

    def register_generator(self, language: str, backend_cls: type[LanguageBackend]) -> None:
        if language in self._backends:
            logger.debug("Replacing %s backend with %s", language, backend_cls.__name__)
        self._backends[language] = backend_cls

    def generate_tests(self, suite: TestSuite, config: LanguageConfig) -> GeneratedOutput:
        """Render suite with the backend named by config.language."""
        generator = self.create_generator(config.language)
        logger.info("Generating %s tests with %s (%s)", config.language, config.framework,
                    "provider" if suite.is_provider_mode else "consumer")
        return generator.generate_test_suite(suite, config)

    def validate_language_support(self, language: str, framework: str | None = None) -> bool:
        backend_cls = self._backends.get(language)
        if backend_cls is None:
            return False
        if framework is None:
            return True
        return framework in backend_cls.get_supported_frameworks()

    def get_generator_capabilities(self, language: str) -> dict:
        """Frameworks, package managers, features and metadata for one language."""
        backend_cls = self._backends.get(language)
        if backend_cls is None:
            raise UnsupportedLanguage(language, list(self._backends))
        meta = LANGUAGE_METADATA.get(language)
        return {
            "language": language,
            "frameworks": backend_cls.get_supported_frameworks(),
            "package_managers": backend_cls.get_supported_package_managers(),
            "features": backend_cls.get_features(),
            "metadata": meta.model_dump(include={"display_name", "file_extension", "default_framework",
                                                 "default_package_manager", "documentation"}) if meta else {},
        }
