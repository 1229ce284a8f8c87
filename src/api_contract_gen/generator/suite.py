"""Test suite generator — runs the synthesizers over every operation of a ParsedSpec."""

import logging
from collections import Counter
from datetime import datetime, timezone

from pydantic import BaseModel

from api_contract_gen.analysis.schema import SchemaAnalyzer, SchemaContext
from api_contract_gen.analysis.security import SecurityAnalyzer
from api_contract_gen.codegen.naming import sanitize_name
from api_contract_gen.errors import OperationSynthesisError
from api_contract_gen.generator.mock_data import MockDataGenerator
from api_contract_gen.generator.models import TEST_TYPES, SuiteMetadata, TestCase, TestSetup, TestSuite
from api_contract_gen.parser.base import ParsedOperation, ParsedSpec
from api_contract_gen.synth.auth import AuthSynthesizer
from api_contract_gen.synth.base import OperationAnalysis, Synthesizer, build_base_request
from api_contract_gen.synth.boundary import BoundarySynthesizer
from api_contract_gen.synth.edge import EdgeSynthesizer
from api_contract_gen.synth.error import ErrorSynthesizer
from api_contract_gen.synth.performance import PerformanceSynthesizer
from api_contract_gen.synth.rules import BusinessRule
from api_contract_gen.synth.success import SuccessSynthesizer

logger = logging.getLogger(__name__)

SUITE_VERSION = "1.0.0"
DEFAULT_BASE_URL = "http://localhost:8080"

SYNTHESIZERS: dict[str, type[Synthesizer]] = {
    "success": SuccessSynthesizer,
    "boundary": BoundarySynthesizer,
    "edge": EdgeSynthesizer,
    "auth": AuthSynthesizer,
    "error": ErrorSynthesizer,
    "performance": PerformanceSynthesizer,
}


class GeneratorOptions(BaseModel):
    """Knobs for one generation run."""

    language: str = "javascript"
    framework: str = "jest"
    is_provider_mode: bool = False
    categories: list[str] = list(TEST_TYPES)
    composition_strategy: str = "first"
    seed: int | None = None
    strict: bool = True
    consumer: str | None = None
    provider: str | None = None
    base_url: str | None = None


class TestGenerator:
    """Builds a TestSuite from a ParsedSpec."""

    __test__ = False

    def __init__(self, options: GeneratorOptions | None = None, rules: list[BusinessRule] | None = None):
        self.options = options or GeneratorOptions()
        unknown = [c for c in self.options.categories if c not in SYNTHESIZERS]
        if unknown:
            raise ValueError(f"Unknown test categories: {', '.join(unknown)}")
        self.rules = rules

    def generate_test_suite(self, spec: ParsedSpec, options: GeneratorOptions | None = None) -> TestSuite:
        options = options or self.options
        analyzer = SchemaAnalyzer(composition_strategy=options.composition_strategy)
        mock = MockDataGenerator(analyzer, seed=options.seed)
        security = SecurityAnalyzer(spec, rng=mock.rng)
        synthesizers = self._build_synthesizers(options, analyzer, mock, security)

        methods_by_path: dict[str, list[str]] = {}
        for operation in spec.operations:
            methods_by_path.setdefault(operation.path, []).append(operation.method)

        tests: list[TestCase] = []
        skipped: list[str] = []
        for operation in spec.operations:
            label = f"{operation.method} {operation.path}"
            try:
                analysis = self.analyze_operation(operation, analyzer, mock, security, methods_by_path[operation.path])
                for synthesizer in synthesizers:
                    tests.extend(synthesizer.synthesize(operation, analysis))
            except Exception as e:
                if options.strict:
                    raise OperationSynthesisError(operation.method, operation.path, e) from e
                logger.warning("Skipping %s: %s", label, e)
                skipped.append(label)

        tests = dedupe_ids(tests)
        provider = options.provider or _provider_name(spec)
        consumer = options.consumer or f"{provider}Consumer"
        states = sorted({t.provider_state for t in tests if t.provider_state})

        return TestSuite(
            name=f"{spec.title} Contract Tests",
            consumer=consumer,
            provider=provider,
            tests=tests,
            setup=TestSetup(
                dependencies=[],
                imports=[],
                base_url=options.base_url or (spec.servers[0] if spec.servers else DEFAULT_BASE_URL),
                provider_states=states,
            ),
            metadata=SuiteMetadata(
                endpoint_count=len(spec.operations),
                language=options.language,
                framework=options.framework,
                generated_at=datetime.now(timezone.utc).isoformat(),
                version=SUITE_VERSION,
                is_provider_mode=options.is_provider_mode,
                categories=list(options.categories),
                skipped=skipped,
                title=spec.title,
            ),
            is_provider_mode=options.is_provider_mode,
        )

    def analyze_operation(
        self,
        operation: ParsedOperation,
        analyzer: SchemaAnalyzer,
        mock: MockDataGenerator,
        security: SecurityAnalyzer,
        path_methods: list[str] | None = None,
    ) -> OperationAnalysis:
        """Resolve schemas, security and a valid base request for one operation."""
        request_schema = None
        raw = operation.request_schema()
        if raw is not None:
            required = bool((operation.request_body or {}).get("required", False))
            request_schema = analyzer.analyze_schema(raw, "requestBody", SchemaContext(is_required=required))

        parameter_schemas = {}
        for param in operation.parameters:
            root = "query" if param.location == "query" else "parameter"
            ctx = SchemaContext(field_path=[root], is_required=param.required)
            resolved = analyzer.analyze_schema(param.param_schema, param.name, ctx)
            parameter_schemas[resolved.path] = resolved

        success_status = operation.success_status()
        success_body = None
        response_schema = operation.response_schema(success_status)
        if response_schema is not None:
            success_body = mock.generate_realistic_data("response", response_schema, "valid", "all")

        return OperationAnalysis(
            operation=operation,
            request_schema=request_schema,
            parameter_schemas=parameter_schemas,
            security=security.requirements_for(operation),
            success_status=success_status,
            declared_statuses=operation.declared_statuses(),
            path_methods=path_methods or [operation.method],
            base_request=build_base_request(operation, mock, security, "none"),
            success_body=success_body,
        )

    def _build_synthesizers(self, options: GeneratorOptions, analyzer, mock, security) -> list[Synthesizer]:
        synthesizers = []
        for category in TEST_TYPES:
            if category not in options.categories:
                continue
            if category == "edge":
                synthesizers.append(EdgeSynthesizer(analyzer, mock, security, rules=self.rules))
            else:
                synthesizers.append(SYNTHESIZERS[category](analyzer, mock, security))
        return synthesizers


def generate_test_suite(spec: ParsedSpec, options: GeneratorOptions | None = None) -> TestSuite:
    """Module-level shortcut for TestGenerator(options).generate_test_suite(spec)."""
    return TestGenerator(options).generate_test_suite(spec)


def dedupe_ids(tests: list[TestCase]) -> list[TestCase]:
    """Suffix repeated ids with _2, _3, ... keeping first occurrences intact."""
    seen: Counter = Counter()
    taken = {t.id for t in tests}
    out = []
    for test in tests:
        seen[test.id] += 1
        if seen[test.id] == 1:
            out.append(test)
            continue
        n = seen[test.id]
        candidate = f"{test.id}_{n}"
        while candidate in taken:
            n += 1
            candidate = f"{test.id}_{n}"
        taken.add(candidate)
        logger.debug("Duplicate test id %s renamed to %s", test.id, candidate)
        out.append(test.model_copy(update={
            "id": candidate, "name": candidate, "description": f"{test.description} (#{candidate[len(test.id) + 1:]})",
        }))
    return out


def _provider_name(spec: ParsedSpec) -> str:
    return sanitize_name(spec.title) or "Provider"
