"""Go backend — pact-go v2 consumer tests, provider verification and load tests."""

import re
from typing import Any

from api_contract_gen.generator.models import TestCase, TestSuite
from .base import (
    LanguageBackend,
    c_string,
    contract_cases,
    json_safe,
    package_segment,
    performance_cases,
    performance_row,
    query_string,
    query_value,
    reindent,
    to_json,
)
from .config import LanguageConfig
from .naming import to_snake
from .output import Dependency, GeneratedFile

GO_VERSION = "1.21"
PACKAGE = "contract"

MODULES = [
    ("github.com/pact-foundation/pact-go/v2", "v2.0.2"),
]

FRAMEWORK_MODULES = {
    "testing": [],
    "testify": [("github.com/stretchr/testify", "v1.8.4")],
    "ginkgo": [("github.com/onsi/ginkgo/v2", "v2.13.0"), ("github.com/onsi/gomega", "v1.29.0")],
}

# import path -> token whose presence in the file body means the import is used
IMPORT_USAGE = {
    "encoding/json": "json.",
    "io": "io.",
    "log": "log.",
    "net/http": "http.",
    "os": "os.",
    "strconv": "strconv.",
    "strings": "strings.",
    "sync": "sync.",
    "testing": "testing.",
    "time": "time.",
    "github.com/pact-foundation/pact-go/v2/consumer": "consumer.",
    "github.com/pact-foundation/pact-go/v2/matchers": "matchers.",
    "github.com/pact-foundation/pact-go/v2/models": "models.",
    "github.com/pact-foundation/pact-go/v2/provider": "provider.",
    "github.com/stretchr/testify/assert": "assert.",
}

GINKGO_IMPORT = '. "github.com/onsi/ginkgo/v2"'
GOMEGA_IMPORT = '. "github.com/onsi/gomega"'

STRING_LITERAL = re.compile(r'"(?:[^"\\\n]|\\.)*"')

SEND_HELPER = '''func send(config consumer.MockServerConfig, method, path, query string, headers map[string]string, body string) (*http.Response, error) {
    url := "http://" + config.Host + ":" + strconv.Itoa(config.Port) + path
    if query != "" {
        url += "?" + query
    }
    var reader io.Reader
    if body != "" {
        reader = strings.NewReader(body)
    }
    req, err := http.NewRequest(method, url, reader)
    if err != nil {
        return nil, err
    }
    for key, value := range headers {
        req.Header.Set(key, value)
    }
    return http.DefaultClient.Do(req)
}
'''

LOAD_HELPERS = '''type loadScenario struct {
    Name            string
    Method          string
    Path            string
    Query           string
    Headers         map[string]string
    Body            string
    Concurrency     int
    RequestCount    int
    Duration        int
    Timeout         int
    RetryAttempts   int
    PayloadBytes    int
    MaxResponseTime int64
    MinSuccessRate  float64
    MaxErrorRate    float64
}

type loadResult struct {
    Total           int
    SuccessRate     float64
    ErrorRate       float64
    MaxResponseTime int64
}

func buildBody(s loadScenario) string {
    if s.Body == "" && s.PayloadBytes == 0 {
        return ""
    }
    body := s.Body
    if body == "" {
        body = "{}"
    }
    if s.PayloadBytes > 0 {
        var obj map[string]interface{}
        if err := json.Unmarshal([]byte(body), &obj); err == nil && obj != nil {
            obj["padding"] = strings.Repeat("x", s.PayloadBytes)
            if data, err := json.Marshal(obj); err == nil {
                body = string(data)
            }
        }
    }
    return body
}

func timedRequest(client *http.Client, s loadScenario, body string) (bool, int64) {
    url := baseURL() + s.Path
    if s.Query != "" {
        url += "?" + s.Query
    }
    for attempt := 0; attempt <= s.RetryAttempts; attempt++ {
        last := attempt == s.RetryAttempts
        var reader io.Reader
        if body != "" {
            reader = strings.NewReader(body)
        }
        req, err := http.NewRequest(s.Method, url, reader)
        if err != nil {
            return false, 0
        }
        for key, value := range s.Headers {
            req.Header.Set(key, value)
        }
        started := time.Now()
        resp, err := client.Do(req)
        elapsed := time.Since(started).Milliseconds()
        if err == nil {
            io.Copy(io.Discard, resp.Body)
            resp.Body.Close()
            if resp.StatusCode < 500 || last {
                return resp.StatusCode < 400, elapsed
            }
        } else if last {
            return false, elapsed
        }
        time.Sleep(time.Duration(100<<attempt) * time.Millisecond)
    }
    return false, 0
}

func runLoad(s loadScenario) loadResult {
    body := buildBody(s)
    client := &http.Client{Timeout: time.Duration(s.Timeout) * time.Millisecond}
    var deadline time.Time
    if s.Duration > 0 {
        deadline = time.Now().Add(time.Duration(s.Duration) * time.Second)
    }
    var mu sync.Mutex
    var wg sync.WaitGroup
    var issued, completed, successes int
    var slowest int64
    for i := 0; i < s.Concurrency; i++ {
        wg.Add(1)
        go func() {
            defer wg.Done()
            for {
                mu.Lock()
                if issued >= s.RequestCount || (!deadline.IsZero() && time.Now().After(deadline)) {
                    mu.Unlock()
                    return
                }
                issued++
                mu.Unlock()
                ok, elapsed := timedRequest(client, s, body)
                mu.Lock()
                completed++
                if ok {
                    successes++
                }
                if elapsed > slowest {
                    slowest = elapsed
                }
                mu.Unlock()
            }
        }()
    }
    wg.Wait()
    total := completed
    if total == 0 {
        total = 1
    }
    return loadResult{
        Total:           completed,
        SuccessRate:     float64(successes) / float64(total),
        ErrorRate:       float64(completed-successes) / float64(total),
        MaxResponseTime: slowest,
    }
}
'''


FILE_TEMPLATE = """package {{package}}

import (
{{imports}}
)

{{body}}"""

TEST_FUNC_TEMPLATE = """func Test{{func_name}}(t *testing.T) {
{{code}}}
"""

IT_TEMPLATE = """    It({{title}}, func() {
{{code}}    })
"""

DESCRIBE_TEMPLATE = """var _ = Describe({{title}}, func() {
{{tests}}})
"""

SUITE_TEMPLATE = """package {{package}}

import (
    "testing"

    . "github.com/onsi/ginkgo/v2"
    . "github.com/onsi/gomega"
)

// suiteT is the *testing.T of the running suite, for APIs that need one.
var suiteT *testing.T

func TestContractSuite(t *testing.T) {
    suiteT = t
    RegisterFailHandler(Fail)
    RunSpecs(t, {{title}})
}
"""

CONSUMER_TEMPLATE = """{{tests}}
func newPact(t *testing.T) *consumer.V3HTTPMockProvider {
    mockProvider, err := consumer.NewV3Pact(consumer.MockHTTPProviderConfig{
        Consumer: {{consumer}},
        Provider: {{provider}},
        PactDir:  "../pacts",
    })
    if err != nil {
        t.Fatal(err)
    }
    return mockProvider
}

{{send_helper}}"""

INTERACTION_TEMPLATE = """    err := newPact(t).
        AddInteraction().
        Given({{given}}).
        UponReceiving({{description}}).
        WithRequest({{method}}, {{path}}{{request_builder}}).
        WillRespondWith({{status}}{{response_builder}}).
        ExecuteTest(t, func(config consumer.MockServerConfig) error {
            resp, err := send(config, {{method}}, {{path}}, {{query}},
                {{headers}}, {{body}})
            if err != nil {
                return err
            }
            defer resp.Body.Close()
            {{check_status}}
            return nil
        })
    {{check_error}}
"""

PROVIDER_TEMPLATE = """{{tests}}
func baseURL() string {
    if url := os.Getenv("PROVIDER_BASE_URL"); url != "" {
        return url
    }
    return {{base_url}}
}
"""

VERIFY_TEMPLATE = """    verifier := provider.NewVerifier()
    err := verifier.VerifyProvider(t, provider.VerifyRequest{
        Provider:        {{provider}},
        ProviderBaseURL: baseURL(),
        PactFiles:       {{pact_files}},
        StateHandlers: models.StateHandlers{
{{#each states}}            {{this}}: func(setup bool, s models.ProviderState) (models.ProviderStateResponse, error) {
                log.Printf("Preparing provider state: %s (setup=%v)", s.Name, setup)
                return nil, nil
            },
{{/each}}        },
    })
    {{check_error}}
"""

PERFORMANCE_TEMPLATE = """var scenarios = []loadScenario{
{{#each scenarios}}    {
        Name:            {{name}},
        Method:          {{method}},
        Path:            {{path}},
        Query:           {{query}},
        Headers:         {{headers}},
        Body:            {{body}},
        Concurrency:     {{concurrency}},
        RequestCount:    {{request_count}},
        Duration:        {{duration}},
        Timeout:         {{timeout}},
        RetryAttempts:   {{retry_attempts}},
        PayloadBytes:    {{payload_bytes}},
        MaxResponseTime: {{max_response_time}},
        MinSuccessRate:  {{min_success_rate}},
        MaxErrorRate:    {{max_error_rate}},
    },
{{/each}}}

{{tests}}
{{load_helpers}}"""

# ginkgo reports scenarios with By; the others get one subtest per scenario.
LOAD_LOOP_TEMPLATES = {
    "ginkgo": """    for _, scenario := range scenarios {
        By(scenario.Name)
        result := runLoad(scenario)
        {{check_success}}
        {{check_errors}}
        {{check_latency}}
    }
""",
    "default": """    for _, scenario := range scenarios {
        scenario := scenario
        t.Run(scenario.Name, func(t *testing.T) {
            result := runLoad(scenario)
            {{check_success}}
            {{check_errors}}
            {{check_latency}}
        })
    }
""",
}

GO_MOD_TEMPLATE = """module {{module}}

go {{go_version}}

require (
{{#each modules}}\t{{name}} {{version}}
{{/each}})
"""

MAIN_TEMPLATE = """package main

import (
\t"encoding/json"
\t"log"
\t"net/http"
\t"os"
)

func main() {
\taddr := os.Getenv("LISTEN_ADDR")
\tif addr == "" {
\t\taddr = ":8080"
\t}

\tmux := http.NewServeMux()
\tmux.HandleFunc("/health", func(w http.ResponseWriter, r *http.Request) {
\t\tw.Header().Set("Content-Type", "application/json")
\t\t_ = json.NewEncoder(w).Encode(map[string]string{"status": "ok", "service": {{provider}}})
\t})

\tlog.Printf("%s listening on %s", {{provider}}, addr)
\tlog.Fatal(http.ListenAndServe(addr, mux))
}
"""

MAKEFILE_TEMPLATE = """.PHONY: all deps build test clean fmt

PACT_DIR = ./pacts
LOG_DIR = ./logs

all: test

deps:
\tgo mod download
\tgo mod tidy

build:
\tgo build -o bin/server ./cmd

test:
\tgo test -v {{target}}

fmt:
\tgo fmt ./...

clean:
\trm -rf $(PACT_DIR)/ $(LOG_DIR)/ bin/
"""


class GoGenerator(LanguageBackend):
    language = "go"

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {**super().get_features(), "goroutines": True, "table_driven_tests": True}

    def test_dir(self, suite: TestSuite) -> str:
        return "provider" if suite.is_provider_mode else "consumer"

    # -- test files -----------------------------------------------------------

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        name = to_snake(suite.consumer) or "consumer"
        files = [self.file(f"consumer/{name}_consumer_test.go",
                           self._style(self._render_consumer(suite, config), config),
                           "test", f"pact-go consumer tests for {suite.consumer}")]
        if config.framework == "ginkgo":
            files.append(self._suite_file("consumer", f"{suite.consumer} consumer contract", config))
        return files

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        name = to_snake(suite.provider) or "provider"
        files = [
            self.file(f"provider/{name}_provider_test.go",
                      self._style(self._render_provider(suite, config), config),
                      "test", f"pact-go provider verification for {suite.provider}"),
            self.file(f"provider/{name}_performance_test.go",
                      self._style(self._render_performance(suite, config), config),
                      "test", f"Load tests for {suite.provider}"),
        ]
        if config.framework == "ginkgo":
            files.append(self._suite_file("provider", f"{suite.provider} provider contract", config))
        return files

    def _suite_file(self, directory: str, title: str, config: LanguageConfig) -> GeneratedFile:
        content = self.render(SUITE_TEMPLATE, {"package": PACKAGE, "title": c_string(title)}, "suite_test.go")
        return self.file(f"{directory}/suite_test.go", self._style(content, config), "test", "Ginkgo suite bootstrap")

    def _render_consumer(self, suite: TestSuite, config: LanguageConfig) -> str:
        tests = [self._render_interaction(test, config) for test in contract_cases(suite)]
        context = {
            "tests": self._wrap(config, f"{suite.consumer} -> {suite.provider}", tests),
            "consumer": c_string(suite.consumer),
            "provider": c_string(suite.provider),
            "send_helper": SEND_HELPER,
        }
        return self._file(self.render(CONSUMER_TEMPLATE, context, "consumer test"), config)

    def _render_interaction(self, test: TestCase, config: LanguageConfig) -> str:
        request = test.request
        response = test.response
        request_lines = []
        for key, value in request.query.items():
            values = value if isinstance(value, list) else [value]
            matchers = ", ".join(f"matchers.String({c_string(query_value(v))})" for v in values)
            request_lines.append(f"b.Query({c_string(key)}, {matchers})")
        request_lines += self._headers_and_body(request.headers, request.body)
        response_lines = self._headers_and_body(response.headers, response.body)
        body = "" if request.body is None else (request.body if isinstance(request.body, str) else to_json(request.body))
        context = {
            "given": c_string(test.provider_state or test.scenario.given),
            "description": c_string(test.description),
            "method": c_string(request.method),
            "path": c_string(request.path),
            "query": c_string(query_string(request.query)),
            "headers": go_string_map(request.headers),
            "body": c_string(body),
            "status": response.status,
            "request_builder": self._builder("consumer.V3RequestBuilder", request_lines),
            "response_builder": self._builder("consumer.V3ResponseBuilder", response_lines),
            "check_status": self._check_equal(config, str(response.status), "resp.StatusCode"),
            "check_error": self._check_no_error(config, "err"),
        }
        code = self.render(INTERACTION_TEMPLATE, context, "consumer interaction")
        return self._test(config, self.method_name(test, config), test.name, code, uses_t=True)

    def _headers_and_body(self, headers: dict, body) -> list[str]:
        lines = []
        content_type = next((v for k, v in headers.items() if k.lower() == "content-type"), None)
        for key, value in headers.items():
            if key.lower() == "content-type" and body is not None and not isinstance(body, str):
                continue
            lines.append(f"b.Header({c_string(key)}, matchers.String({c_string(value)}))")
        if body is None:
            return lines
        if isinstance(body, str):
            lines.append(f"b.Body({c_string(content_type or 'text/plain')}, []byte({c_string(body)}))")
        else:
            lines.append(f"b.JSONBody({go_literal(json_safe(body), '            ')})")
        return lines

    def _builder(self, type_name: str, lines: list[str]) -> str:
        if not lines:
            return ""
        inner = "\n".join(f"            {line}" for line in lines)
        return f", func(b *{type_name}) {{\n{inner}\n        }}"

    def _render_provider(self, suite: TestSuite, config: LanguageConfig) -> str:
        pact_file = f"../pacts/{suite.consumer}-{suite.provider}.json"
        verify = {
            "provider": c_string(suite.provider),
            "pact_files": f"[]string{{{c_string(pact_file)}}}",
            "states": [c_string(state) for state in suite.setup.provider_states],
            "check_error": self._check_no_error(config, "err"),
        }
        code = self.render(VERIFY_TEMPLATE, verify, "provider verification")
        test = self._test(config, "VerifyProvider", f"honours the {suite.consumer} pact", code, uses_t=True)
        context = {
            "tests": self._wrap(config, f"{suite.provider} provider verification", [test]),
            "base_url": c_string(suite.setup.base_url),
        }
        return self._file(self.render(PROVIDER_TEMPLATE, context, "provider test"), config)

    def _render_performance(self, suite: TestSuite, config: LanguageConfig) -> str:
        ginkgo = config.framework == "ginkgo"
        checks = {
            "check_success": self._check_true(config, "result.SuccessRate >= scenario.MinSuccessRate",
                                              "success rate", "result.SuccessRate"),
            "check_errors": self._check_true(config, "result.ErrorRate <= scenario.MaxErrorRate",
                                             "error rate", "result.ErrorRate"),
            "check_latency": self._check_true(config, "result.MaxResponseTime <= scenario.MaxResponseTime",
                                              "max response time", "result.MaxResponseTime"),
        }
        loop = LOAD_LOOP_TEMPLATES["ginkgo" if ginkgo else "default"]
        code = self.render(loop, checks, "load loop")
        test = self._test(config, "LoadThresholds", "meets load thresholds", code, uses_t=not ginkgo)
        context = {
            "scenarios": [self._scenario_row(performance_row(test)) for test in performance_cases(suite)],
            "tests": self._wrap(config, f"{suite.provider} performance", [test]),
            "load_helpers": LOAD_HELPERS,
        }
        return self._file(self.render(PERFORMANCE_TEMPLATE, context, "performance test"), config)

    def _scenario_row(self, row: dict) -> dict:
        return {
            **row,
            "name": c_string(row["name"]),
            "method": c_string(row["method"]),
            "path": c_string(row["path"]),
            "query": c_string(row["query"]),
            "headers": go_string_map(row["headers"]),
            "body": c_string(row["body"]),
        }

    # -- framework helpers ----------------------------------------------------

    def _test(self, config: LanguageConfig, func_name: str, title: str, code: str, uses_t: bool) -> str:
        if config.framework == "ginkgo":
            prelude = "    t := suiteT\n" if uses_t else ""
            indented = re.sub(r"(?m)^(?=.)", "    ", prelude + code)
            return self.render(IT_TEMPLATE, {"title": c_string(title), "code": indented}, "ginkgo spec")
        context = {"func_name": func_name[:1].upper() + func_name[1:], "code": code}
        return self.render(TEST_FUNC_TEMPLATE, context, "test function")

    def _wrap(self, config: LanguageConfig, title: str, tests: list[str]) -> str:
        if config.framework == "ginkgo":
            return self.render(DESCRIBE_TEMPLATE, {"title": c_string(title), "tests": "\n".join(tests)}, "ginkgo suite")
        return "\n".join(tests)

    def _check_equal(self, config: LanguageConfig, expected: str, actual: str) -> str:
        if config.framework == "testify":
            return f"assert.Equal(t, {expected}, {actual})"
        if config.framework == "ginkgo":
            return f"Expect({actual}).To(Equal({expected}))"
        return f'if {actual} != {expected} {{ t.Errorf("expected %v, got %v", {expected}, {actual}) }}'

    def _check_no_error(self, config: LanguageConfig, err: str) -> str:
        if config.framework == "testify":
            return f"assert.NoError(t, {err})"
        if config.framework == "ginkgo":
            return f"Expect({err}).NotTo(HaveOccurred())"
        return f"if {err} != nil {{ t.Fatal({err}) }}"

    def _check_true(self, config: LanguageConfig, condition: str, label: str, value: str) -> str:
        if config.framework == "testify":
            return f'assert.True(t, {condition}, "{label} %v", {value})'
        if config.framework == "ginkgo":
            return f'Expect({condition}).To(BeTrue(), "{label} %v", {value})'
        return f'if !({condition}) {{ t.Errorf("{label} %v", {value}) }}'

    def _file(self, body: str, config: LanguageConfig) -> str:
        """Prefix a rendered body with the imports its identifiers actually use."""
        code = STRING_LITERAL.sub('""', body)
        stdlib, external = [], []
        for path, token in IMPORT_USAGE.items():
            if re.search(r"(?<![\w.])" + re.escape(token), code):
                (external if "." in path.split("/")[0] else stdlib).append(f'"{path}"')
        if config.framework == "ginkgo":
            external.append(GINKGO_IMPORT)
            if "Expect(" in code:
                external.append(GOMEGA_IMPORT)
        groups = [g for g in (stdlib, external) if g]
        imports = "\n\n".join("\n".join(f"    {line}" for line in group) for group in groups)
        return self.render(FILE_TEMPLATE, {"package": PACKAGE, "imports": imports, "body": body}, "go source")

    def _style(self, text: str, config: LanguageConfig) -> str:
        return reindent(text, "    ", config.code_style.indent())

    # -- project files --------------------------------------------------------

    def module_path(self, suite: TestSuite) -> str:
        return f"github.com/example/{package_segment(suite.provider)}-contract-tests"

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        context = {
            "module": self.module_path(suite),
            "go_version": GO_VERSION,
            "modules": [{"name": name, "version": version} for name, version in self._modules(config)],
            "provider": c_string(suite.provider),
            "target": "./provider/..." if suite.is_provider_mode else "./consumer/...",
        }
        return [
            self.file("go.mod", self.render(GO_MOD_TEMPLATE, context, "go.mod"), "dependency", "Go module file"),
            self.file("cmd/main.go", self.render(MAIN_TEMPLATE, context, "cmd/main.go"), "setup",
                      "Stub provider with a health endpoint"),
            self.file("Makefile", self.render(MAKEFILE_TEMPLATE, context, "Makefile"), "build", "Make targets"),
            self.file(".gitignore", "*.test\n*.out\nvendor/\ngo.work\npacts/\nlogs/\n", "setup", "Git ignore rules"),
        ]

    def _modules(self, config: LanguageConfig) -> list[tuple[str, str]]:
        return MODULES + FRAMEWORK_MODULES[config.framework]

    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        return {"test": "go test -v ./...", "deps": "go mod tidy"}

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        return [
            Dependency(name=name, version=version, scope="test", manager="go-mod")
            for name, version in self._modules(config)
        ]

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        steps = [
            f"Install Go {GO_VERSION} or newer",
            "Install the pact FFI library: go install github.com/pact-foundation/pact-go/v2 && pact-go install",
            "Download modules: make deps",
        ]
        if suite.is_provider_mode:
            steps.append(f"Copy the consumer pact file into pacts/{suite.consumer}-{suite.provider}.json")
            steps.append(f"Start the provider and export PROVIDER_BASE_URL (default {suite.setup.base_url})")
        steps.append("Run the tests: make test")
        return steps


def go_string_map(values: dict) -> str:
    if not values:
        return "map[string]string{}"
    entries = ", ".join(f"{c_string(k)}: {c_string(str(v))}" for k, v in values.items())
    return f"map[string]string{{{entries}}}"


def go_literal(value: Any, indent: str = "") -> str:
    """Render a JSON-like value as a Go interface{} literal."""
    inner = indent + "    "
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return c_string(value)
    if isinstance(value, dict):
        if not value:
            return "map[string]interface{}{}"
        items = "\n".join(f"{inner}{c_string(str(k))}: {go_literal(v, inner)}," for k, v in value.items())
        return f"map[string]interface{{}}{{\n{items}\n{indent}}}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]interface{}{}"
        items = "\n".join(f"{inner}{go_literal(v, inner)}," for v in value)
        return f"[]interface{{}}{{\n{items}\n{indent}}}"
    return c_string(str(value))
