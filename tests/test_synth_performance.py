import pytest

from api_contract_gen.synth.performance import PROFILES, PerformanceSynthesizer, payload_bytes


def _performance(ctx) -> PerformanceSynthesizer:
    return PerformanceSynthesizer(ctx.analyzer, ctx.mock, ctx.security)


class TestPerformanceSynthesizer:
    @pytest.mark.parametrize(
        "method,path,expected",
        [
            ("GET", "/pets", 9),
            ("POST", "/pets", 12),
            ("DELETE", "/pets/{petId}", 13),
        ],
    )
    def test_profile_counts(self, petstore, analyze, method, path, expected):
        ctx = analyze(petstore, method, path)
        assert len(_performance(ctx).synthesize(ctx.operation, ctx.analysis)) == expected

    def test_read_operations_skip_volume(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        categories = {c.performance.category for c in _performance(ctx).synthesize(ctx.operation, ctx.analysis)}
        assert categories == {"load", "stress", "timeout", "concurrency", "retry"}

    def test_deadlock_only_for_locking_methods(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        names = [c.name for c in _performance(ctx).synthesize(ctx.operation, ctx.analysis)]
        assert "post_pets_performance_deadlock_prevention" not in names
        ctx = analyze(petstore, "DELETE", "/pets/{petId}")
        names = [c.name for c in _performance(ctx).synthesize(ctx.operation, ctx.analysis)]
        assert "delete_pets_petId_performance_deadlock_prevention" in names

    def test_normal_load_profile(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        case = _performance(ctx).synthesize(ctx.operation, ctx.analysis)[0]
        assert case.name == "get_pets_performance_normal_load"
        config = case.performance
        assert config.test_config.concurrency == 10
        assert config.test_config.request_count == 100
        assert config.failure_threshold.max_response_time == 2000
        assert config.failure_threshold.min_success_rate == 0.99
        assert config.failure_threshold.max_error_rate == 0.01
        assert case.response.status == 200
        assert "load" in case.tags

    def test_requests_are_the_valid_request(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        expected = ctx.analysis.base_request.to_spec(ctx.operation)
        assert all(c.request == expected for c in _performance(ctx).synthesize(ctx.operation, ctx.analysis))

    def test_retry_profile(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = {c.name: c for c in _performance(ctx).synthesize(ctx.operation, ctx.analysis)}
        assert cases["post_pets_performance_exponential_backoff"].performance.test_config.retry_attempts == 5
        assert cases["post_pets_performance_extreme_payload"].performance.test_config.payload_size == "extreme"


class TestProfiles:
    def test_thirteen_profiles(self):
        assert len(PROFILES) == 13

    def test_payload_bytes(self):
        assert payload_bytes("small") == 100
        assert payload_bytes("large") == 1024 * 1024
