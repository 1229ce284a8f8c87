"""Performance synthesizer — declarative load, stress, volume, timeout, concurrency and retry profiles.

Nothing here sends traffic or builds payloads; backends turn the
PerformanceConfig into executable load loops.
"""

from api_contract_gen.generator.models import FailureThreshold, LoadConfig, PerformanceConfig, TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, Synthesizer, success_response

PAYLOAD_BYTES = {
    "small": 100,
    "medium": 10 * 1024,
    "large": 1024 * 1024,
    "extreme": 10 * 1024 * 1024,
}

# name, category, scenario, expected behaviour, load config, (max ms, min success rate)
PROFILES = (
    ("normal_load", "load", "Normal expected load",
     "System handles normal load efficiently",
     dict(concurrency=10, duration=60, request_count=100), (2000, 0.99)),
    ("peak_load", "load", "Peak expected load",
     "System handles peak load with acceptable performance",
     dict(concurrency=50, duration=120, request_count=1000), (5000, 0.95)),
    ("breaking_point", "stress", "Gradually increasing load until system breaks",
     "System gracefully degrades or fails with proper error responses",
     dict(concurrency=100, duration=300, request_count=5000), (10000, 0.50)),
    ("spike_test", "stress", "Sudden increase in load",
     "System handles sudden spikes without crashing",
     dict(concurrency=200, duration=30, request_count=2000), (15000, 0.70)),
    ("small_payload", "volume", "Small payload processing",
     "System processes small payloads efficiently",
     dict(concurrency=20, duration=0, request_count=500, payload_size="small"), (1000, 0.99)),
    ("large_payload", "volume", "Large payload processing",
     "System handles large payloads without memory issues",
     dict(concurrency=5, duration=0, request_count=50, payload_size="large"), (30000, 0.95)),
    ("extreme_payload", "volume", "Extreme payload size near limits",
     "System rejects or handles extreme payloads gracefully",
     dict(concurrency=1, duration=0, request_count=10, payload_size="extreme"), (60000, 0.80)),
    ("network_timeout", "timeout", "Network delays and timeouts",
     "System handles network timeouts gracefully",
     dict(concurrency=10, duration=0, request_count=50, timeout=5000), (5000, 0.90)),
    ("processing_timeout", "timeout", "Long processing operations",
     "System completes processing within timeout or returns appropriate error",
     dict(concurrency=5, duration=0, request_count=20, timeout=30000), (30000, 0.85)),
    ("race_condition", "concurrency", "Multiple simultaneous operations on same resource",
     "System handles concurrent access without data corruption",
     dict(concurrency=50, duration=30, request_count=200), (5000, 0.95)),
    ("deadlock_prevention", "concurrency", "Potential deadlock scenarios",
     "System prevents deadlocks and completes operations",
     dict(concurrency=20, duration=60, request_count=100), (10000, 0.90)),
    ("retry_logic", "retry", "Transient failures requiring retries",
     "System retries failed requests according to retry policy",
     dict(concurrency=10, duration=0, request_count=100, retry_attempts=3), (15000, 0.90)),
    ("exponential_backoff", "retry", "Progressive retry delays",
     "System implements exponential backoff for retries",
     dict(concurrency=5, duration=0, request_count=50, retry_attempts=5), (30000, 0.85)),
)

LOCKING_METHODS = ("PUT", "PATCH", "DELETE")


class PerformanceSynthesizer(Synthesizer):
    category = "performance"

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        cases = []
        request = analysis.base_request.to_spec(operation)
        for name, category, scenario, behaviour, load, (max_ms, min_success) in PROFILES:
            if category == "volume" and operation.method == "GET":
                continue
            if name == "deadlock_prevention" and operation.method not in LOCKING_METHODS:
                continue
            config = PerformanceConfig(
                category=category,
                scenario=scenario,
                test_config=LoadConfig(**load),
                expected_behavior=behaviour,
                failure_threshold=FailureThreshold(
                    max_response_time=max_ms,
                    min_success_rate=min_success,
                    max_error_rate=round(1 - min_success, 2),
                ),
            )
            cases.append(
                self.make_case(
                    analysis,
                    name,
                    f"{scenario} for {operation.method} {operation.path}",
                    request,
                    success_response(analysis),
                    then=behaviour,
                    tags=[category],
                    performance=config,
                )
            )
        return cases


def payload_bytes(size: str) -> int:
    """Nominal byte size for a payload class."""
    return PAYLOAD_BYTES[size]
