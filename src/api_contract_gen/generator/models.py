"""Intermediate test representation shared by synthesizers and backends."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

TEST_TYPES = ("success", "boundary", "edge", "auth", "error", "performance")


class Scenario(BaseModel):
    given: str
    when: str
    then: str
    and_: list[str] = []


class RequestSpec(BaseModel):
    method: str
    path: str
    headers: dict[str, str] = {}
    body: Any = None
    query: dict[str, Any] = {}


class ResponseSpec(BaseModel):
    status: int
    headers: dict[str, str] = {}
    body: Any = None


class Variant(BaseModel):
    """A boundary or edge variation applied to one field."""

    name: str  # requestBody.email_null_required
    field: str  # requestBody.email
    value: Any = None
    category: str  # numeric / string / array / null / type_mismatch / enum / temporal / ...
    expected: str  # valid / invalid
    error_code: int = 400
    error_message: str = ""
    omit: bool = False  # drop the field instead of setting value
    provider_state: str | None = None


class RequestModification(BaseModel):
    remove_headers: list[str] = []
    add_headers: dict[str, str] = {}
    remove_query: list[str] = []
    add_query: dict[str, str] = {}
    modify_body: Any = None
    remove_body_fields: list[str] = []
    invalidate_body_fields: list[str] = []
    replace_body: bool = False


class ExpectedError(BaseModel):
    status: int
    message: str
    code: str
    details: dict[str, Any] = {}


class AuthDetail(BaseModel):
    scheme: str
    scheme_type: str  # bearer / basic / apiKey / oauth2 / openIdConnect
    kind: str  # missing / invalid / expired / insufficient_scope
    scopes: list[str] = []


class LoadConfig(BaseModel):
    concurrency: int
    duration: int  # seconds
    request_count: int
    payload_size: str = "small"  # small / medium / large / extreme
    timeout: int = 30000  # ms
    retry_attempts: int = 0


class FailureThreshold(BaseModel):
    max_response_time: int  # ms
    min_success_rate: float
    max_error_rate: float


class PerformanceConfig(BaseModel):
    category: str  # load / stress / volume / timeout / concurrency / retry
    scenario: str
    test_config: LoadConfig
    expected_behavior: str
    failure_threshold: FailureThreshold


class TestCase(BaseModel):
    """One synthesized contract-test scenario."""

    __test__ = False

    id: str
    name: str
    description: str
    type: str  # success / boundary / edge / auth / error / performance
    scenario: Scenario
    request: RequestSpec
    response: ResponseSpec
    provider_state: str | None = None
    tags: list[str] = []
    variant: Variant | None = None
    modification: RequestModification | None = None
    expected_error: ExpectedError | None = None
    auth: AuthDetail | None = None
    performance: PerformanceConfig | None = None


class TestSetup(BaseModel):
    __test__ = False

    dependencies: list[str] = []
    imports: list[str] = []
    base_url: str = "http://localhost:8080"
    provider_states: list[str] = []


class SuiteMetadata(BaseModel):
    endpoint_count: int = 0
    language: str = "javascript"
    framework: str = "jest"
    generated_at: str = ""
    version: str = "1.0.0"
    is_provider_mode: bool = False
    categories: list[str] = list(TEST_TYPES)
    skipped: list[str] = []
    title: str = ""


class TestSuite(BaseModel):
    """All test cases for one generation run. Immutable once built."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    name: str
    consumer: str
    provider: str
    tests: list[TestCase] = Field(default_factory=list)
    setup: TestSetup = Field(default_factory=TestSetup)
    metadata: SuiteMetadata = Field(default_factory=SuiteMetadata)
    is_provider_mode: bool = False

    def by_type(self, test_type: str) -> list[TestCase]:
        return [t for t in self.tests if t.type == test_type]

    def contract_tests(self) -> list[TestCase]:
        """Tests with a concrete request/response pair."""
        return [t for t in self.tests if t.type != "performance"]
