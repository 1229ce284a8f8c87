from unittest.mock import patch

import pytest
from pydantic import ValidationError

from api_contract_gen.errors import OperationSynthesisError
from api_contract_gen.generator.suite import (
    GeneratorOptions,
    TestGenerator,
    dedupe_ids,
    generate_test_suite,
)
from api_contract_gen.synth.success import SuccessSynthesizer


class TestSuiteShape:
    def test_metadata(self, petstore):
        suite = TestGenerator(GeneratorOptions(seed=1)).generate_test_suite(petstore)
        assert suite.name == "Pet Store API Contract Tests"
        assert suite.provider == "PetStoreAPI"
        assert suite.consumer == "PetStoreAPIConsumer"
        assert suite.setup.base_url == "https://api.petstore.test/v1"
        assert suite.metadata.endpoint_count == 6
        assert suite.metadata.title == "Pet Store API"
        assert suite.metadata.skipped == []
        assert suite.metadata.generated_at

    def test_every_category_present(self, petstore):
        suite = TestGenerator(GeneratorOptions(seed=1)).generate_test_suite(petstore)
        assert {t.type for t in suite.tests} == {"success", "boundary", "edge", "auth", "error", "performance"}
        assert all(t.type != "performance" for t in suite.contract_tests())
        assert len(suite.by_type("success")) == 18

    def test_ids_and_descriptions_unique(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1))
        ids = [t.id for t in suite.tests]
        descriptions = [t.description for t in suite.tests]
        assert len(ids) == len(set(ids))
        assert len(descriptions) == len(set(descriptions))

    def test_provider_states_collected(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1))
        states = suite.setup.provider_states
        assert states == sorted(states)
        assert "pets exist" in states
        assert "User with email duplicate@example.com exists" in states

    def test_suite_is_frozen(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        with pytest.raises(ValidationError):
            suite.name = "renamed"


class TestOptions:
    def test_categories_filter(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success", "auth"]))
        assert {t.type for t in suite.tests} == {"success", "auth"}
        assert suite.metadata.categories == ["success", "auth"]

    def test_unknown_category(self):
        with pytest.raises(ValueError, match="smoke"):
            TestGenerator(GeneratorOptions(categories=["success", "smoke"]))

    def test_overrides(self, petstore):
        options = GeneratorOptions(
            seed=1, categories=["success"], consumer="web", provider="pets-api",
            base_url="http://localhost:3000", is_provider_mode=True, language="go", framework="testify",
        )
        suite = generate_test_suite(petstore, options)
        assert suite.consumer == "web"
        assert suite.provider == "pets-api"
        assert suite.setup.base_url == "http://localhost:3000"
        assert suite.is_provider_mode is True
        assert suite.metadata.language == "go"

    def test_names_from_title(self, petstore):
        spec = petstore.model_copy(update={"title": "Store! v2 (beta)"})
        suite = generate_test_suite(spec, GeneratorOptions(seed=1, categories=["success"]))
        assert suite.provider == "Storev2beta"
        assert suite.consumer == "Storev2betaConsumer"

    def test_consumer_follows_provider_override(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"], provider="Inventory"))
        assert suite.consumer == "InventoryConsumer"

    def test_title_without_letters(self, petstore):
        spec = petstore.model_copy(update={"title": "*** ---"})
        suite = generate_test_suite(spec, GeneratorOptions(seed=1, categories=["success"]))
        assert suite.provider == "Provider"
        assert suite.consumer == "ProviderConsumer"

    def test_seeded_bodies_reproducible(self, petstore):
        options = GeneratorOptions(seed=99, categories=["boundary"])
        first = generate_test_suite(petstore, options)
        second = generate_test_suite(petstore, options)
        assert [t.request.body for t in first.tests] == [t.request.body for t in second.tests]
        assert [t.id for t in first.tests] == [t.id for t in second.tests]


class TestFailures:
    def test_strict_raises(self, petstore):
        with patch.object(SuccessSynthesizer, "synthesize", side_effect=RuntimeError("boom")):
            with pytest.raises(OperationSynthesisError) as excinfo:
                generate_test_suite(petstore, GeneratorOptions(seed=1))
        assert "boom" in str(excinfo.value)
        assert isinstance(excinfo.value.cause, RuntimeError)

    def test_lenient_skips(self, petstore):
        with patch.object(SuccessSynthesizer, "synthesize", side_effect=RuntimeError("boom")):
            suite = generate_test_suite(petstore, GeneratorOptions(seed=1, strict=False))
        assert len(suite.metadata.skipped) == 6
        assert "GET /pets" in suite.metadata.skipped
        assert suite.tests == []


class TestDedupe:
    def test_repeats_suffixed(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        case = suite.tests[0]
        out = dedupe_ids([case, case, case])
        assert [t.id for t in out] == [case.id, f"{case.id}_2", f"{case.id}_3"]
        assert out[1].name == f"{case.id}_2"
        assert out[2].description == f"{case.description} (#3)"
        assert out[0] is case

    def test_suffix_skips_taken_ids(self, petstore):
        suite = generate_test_suite(petstore, GeneratorOptions(seed=1, categories=["success"]))
        case = suite.tests[0]
        taken = case.model_copy(update={"id": f"{case.id}_2"})
        out = dedupe_ids([case, taken, case])
        assert [t.id for t in out] == [case.id, f"{case.id}_2", f"{case.id}_3"]
