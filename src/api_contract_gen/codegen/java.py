"""Java backend — pact-jvm consumer tests, provider verification and load tests."""

from api_contract_gen.generator.models import TestCase, TestSuite
from .base import (
    LanguageBackend,
    c_string,
    contract_cases,
    package_segment,
    pascal,
    performance_cases,
    performance_row,
    query_string,
    reindent,
    to_json,
)
from .config import LanguageConfig
from .naming import identifier
from .output import Dependency, GeneratedFile

PACT_VERSION = "4.6.5"
JUNIT5_VERSION = "5.10.1"
JUNIT4_VERSION = "4.13.2"
TESTNG_VERSION = "7.8.0"
SPOCK_VERSION = "2.3-groovy-4.0"
LOGBACK_VERSION = "1.4.14"

# (group:artifact, version) per test framework
FRAMEWORK_ARTIFACTS = {
    "junit5": [
        ("au.com.dius.pact.consumer:junit5", PACT_VERSION),
        ("org.junit.jupiter:junit-jupiter", JUNIT5_VERSION),
    ],
    "junit4": [
        ("au.com.dius.pact.consumer:junit", PACT_VERSION),
        ("junit:junit", JUNIT4_VERSION),
    ],
    "testng": [
        ("au.com.dius.pact:consumer", PACT_VERSION),
        ("org.testng:testng", TESTNG_VERSION),
    ],
    "spock": [
        ("au.com.dius.pact.consumer:junit5", PACT_VERSION),
        ("org.junit.jupiter:junit-jupiter", JUNIT5_VERSION),
        ("org.spockframework:spock-core", SPOCK_VERSION),
    ],
}

PROVIDER_ARTIFACTS = {
    "junit4": [("au.com.dius.pact.provider:junit", PACT_VERSION)],
}
DEFAULT_PROVIDER_ARTIFACTS = [
    ("au.com.dius.pact.provider:junit5", PACT_VERSION),
    ("org.junit.jupiter:junit-jupiter", JUNIT5_VERSION),
]

ASSERT_IMPORTS = {
    "junit5": "import static org.junit.jupiter.api.Assertions.*;",
    "junit4": "import static org.junit.Assert.*;",
    "testng": "import static org.testng.Assert.*;",
    "spock": "import static org.junit.jupiter.api.Assertions.*;",
}

TEST_IMPORTS = {
    "junit5": "import org.junit.jupiter.api.Test;",
    "junit4": "import org.junit.Test;",
    "testng": "import org.testng.annotations.Test;",
    "spock": "import org.junit.jupiter.api.Test;",
}

SEND_HELPER = '''    static HttpResponse<String> send(String baseUrl, String method, String path, String query,
                                     Map<String, String> headers, String body) throws IOException {
        String url = baseUrl + path + (query.isEmpty() ? "" : "?" + query);
        HttpRequest.BodyPublisher publisher = body == null
            ? HttpRequest.BodyPublishers.noBody()
            : HttpRequest.BodyPublishers.ofString(body);
        HttpRequest.Builder builder = HttpRequest.newBuilder(URI.create(url)).method(method, publisher);
        headers.forEach(builder::header);
        try {
            return CLIENT.send(builder.build(), HttpResponse.BodyHandlers.ofString());
        } catch (InterruptedException e) {
            Thread.currentThread().interrupt();
            throw new IOException("Request interrupted", e);
        }
    }
'''

LOAD_HELPERS = '''    record Scenario(String name, String method, String path, String query, Map<String, String> headers,
                    String body, int concurrency, int requestCount, int duration, int timeout,
                    int retryAttempts, int payloadBytes, long maxResponseTime, double minSuccessRate,
                    double maxErrorRate) {
    }

    record LoadResult(int total, double successRate, double errorRate, long maxResponseTime) {
    }

    static String buildBody(Scenario scenario) {
        if (scenario.body().isEmpty() && scenario.payloadBytes() == 0) {
            return null;
        }
        String body = scenario.body().isEmpty() ? "{}" : scenario.body();
        if (scenario.payloadBytes() > 0 && body.startsWith("{")) {
            String padding = "\\"padding\\":\\"" + "x".repeat(scenario.payloadBytes()) + "\\"";
            String inner = body.substring(1, body.length() - 1).trim();
            body = "{" + (inner.isEmpty() ? "" : inner + ",") + padding + "}";
        }
        return body;
    }

    static boolean timedRequest(Scenario scenario, String body) {
        String url = BASE_URL + scenario.path() + (scenario.query().isEmpty() ? "" : "?" + scenario.query());
        for (int attempt = 0; attempt <= scenario.retryAttempts(); attempt++) {
            try {
                HttpRequest.Builder builder = HttpRequest.newBuilder(URI.create(url))
                    .timeout(Duration.ofMillis(scenario.timeout()))
                    .method(scenario.method(), body == null
                        ? HttpRequest.BodyPublishers.noBody()
                        : HttpRequest.BodyPublishers.ofString(body));
                scenario.headers().forEach(builder::header);
                int status = CLIENT.send(builder.build(), HttpResponse.BodyHandlers.discarding()).statusCode();
                if (status < 500 || attempt == scenario.retryAttempts()) {
                    return status < 400;
                }
            } catch (IOException e) {
                if (attempt == scenario.retryAttempts()) {
                    return false;
                }
            } catch (InterruptedException e) {
                Thread.currentThread().interrupt();
                return false;
            }
            try {
                Thread.sleep(100L << attempt);
            } catch (InterruptedException e) {
                Thread.currentThread().interrupt();
                return false;
            }
        }
        return false;
    }

    static LoadResult runLoad(Scenario scenario) throws InterruptedException {
        ExecutorService pool = Executors.newFixedThreadPool(scenario.concurrency());
        AtomicInteger issued = new AtomicInteger();
        AtomicInteger completed = new AtomicInteger();
        AtomicInteger successes = new AtomicInteger();
        AtomicLong slowest = new AtomicLong();
        long deadline = scenario.duration() > 0
            ? System.currentTimeMillis() + scenario.duration() * 1000L
            : Long.MAX_VALUE;
        String body = buildBody(scenario);
        for (int i = 0; i < scenario.concurrency(); i++) {
            pool.submit(() -> {
                while (issued.incrementAndGet() <= scenario.requestCount()
                        && System.currentTimeMillis() < deadline) {
                    long started = System.nanoTime();
                    boolean ok = timedRequest(scenario, body);
                    slowest.accumulateAndGet((System.nanoTime() - started) / 1_000_000, Math::max);
                    completed.incrementAndGet();
                    if (ok) {
                        successes.incrementAndGet();
                    }
                }
            });
        }
        pool.shutdown();
        pool.awaitTermination(scenario.duration() + 300L, TimeUnit.SECONDS);
        int total = Math.max(completed.get(), 1);
        double successRate = successes.get() / (double) total;
        return new LoadResult(completed.get(), successRate, (completed.get() - successes.get()) / (double) total,
            slowest.get());
    }
'''

CONSUMER_TEMPLATE = """package {{package}};

{{imports}}

{{annotations}}public class {{class_name}} {

    private static final HttpClient CLIENT = HttpClient.newHttpClient();

{{rule}}{{#each interactions}}{{pact_annotation}}    public RequestResponsePact {{method}}(PactDslWithProvider builder) {
        return builder
            .given({{given}})
            .uponReceiving({{description}})
                .path({{path}})
                .method({{http_method}})
                .headers({{request_headers}}){{request_extras}}
            .willRespondWith()
                .status({{status}})
                .headers({{response_headers}}){{response_body}}
            .toPact();
    }

{{test_method}}
{{/each}}{{send_helper}}}
"""

# One consumer test method per framework, stamped once per interaction.
TEST_METHOD_TEMPLATES = {
    "junit5": """    @Test
    @PactTestFor(pactMethod = {{method_literal}})
    void {{method}}Test(MockServer mockServer) throws IOException {
        HttpResponse<String> response = send(mockServer.getUrl(), {{call}});
        assertEquals({{status}}, response.statusCode());
    }
""",
    "junit4": """    @Test
    @PactVerification(fragment = {{method_literal}})
    public void {{method}}Test() throws IOException {
        HttpResponse<String> response = send(mockProvider.getUrl(), {{call}});
        assertEquals({{status}}, response.statusCode());
    }
""",
    "testng": """    @Test
    public void {{method}}Test() {
        RequestResponsePact pact = {{method}}(
            ConsumerPactBuilder.consumer({{consumer}}).hasPactWith({{provider}}));
        PactVerificationResult result = runConsumerTest(pact, MockProviderConfig.createDefault(), (mockServer, context) -> {
            HttpResponse<String> response = send(mockServer.getUrl(), {{call}});
            assertEquals(response.statusCode(), {{status}});
            return null;
        });
        assertTrue(result instanceof PactVerificationResult.Ok, result.toString());
    }
""",
}
TEST_METHOD_TEMPLATES["spock"] = TEST_METHOD_TEMPLATES["junit5"]

JUNIT5_PROVIDER_TEMPLATE = """package {{package}};

import au.com.dius.pact.provider.junit5.HttpTestTarget;
import au.com.dius.pact.provider.junit5.PactVerificationContext;
import au.com.dius.pact.provider.junit5.PactVerificationInvocationContextProvider;
import au.com.dius.pact.provider.junitsupport.Provider;
import au.com.dius.pact.provider.junitsupport.State;
import au.com.dius.pact.provider.junitsupport.loader.PactFolder;
import org.junit.jupiter.api.BeforeEach;
import org.junit.jupiter.api.TestTemplate;
import org.junit.jupiter.api.extension.ExtendWith;
import org.slf4j.Logger;
import org.slf4j.LoggerFactory;

import java.net.URI;

@Provider({{provider}})
@PactFolder("pacts")
public class {{class_name}} {

    private static final Logger LOGGER = LoggerFactory.getLogger({{class_name}}.class);
    private static final URI BASE_URL = URI.create(
        System.getenv().getOrDefault("PROVIDER_BASE_URL", {{base_url}}));

    @BeforeEach
    void before(PactVerificationContext context) {
        int port = BASE_URL.getPort() == -1 ? 80 : BASE_URL.getPort();
        String path = BASE_URL.getPath().isEmpty() ? "/" : BASE_URL.getPath();
        context.setTarget(new HttpTestTarget(BASE_URL.getHost(), port, path));
    }

    @TestTemplate
    @ExtendWith(PactVerificationInvocationContextProvider.class)
    void verifyPact(PactVerificationContext context) {
        context.verifyInteraction();
    }
{{#each states}}
    @State({{state}})
    public void {{method}}() {
        LOGGER.info("Preparing provider state: {}", {{state}});
    }
{{/each}}}
"""

JUNIT4_PROVIDER_TEMPLATE = """package {{package}};

import au.com.dius.pact.provider.junit.PactRunner;
import au.com.dius.pact.provider.junit.target.HttpTarget;
import au.com.dius.pact.provider.junitsupport.Provider;
import au.com.dius.pact.provider.junitsupport.State;
import au.com.dius.pact.provider.junitsupport.loader.PactFolder;
import au.com.dius.pact.provider.junitsupport.target.Target;
import au.com.dius.pact.provider.junitsupport.target.TestTarget;
import org.junit.runner.RunWith;
import org.slf4j.Logger;
import org.slf4j.LoggerFactory;

import java.net.URI;

@RunWith(PactRunner.class)
@Provider({{provider}})
@PactFolder("pacts")
public class {{class_name}} {

    private static final Logger LOGGER = LoggerFactory.getLogger({{class_name}}.class);
    private static final URI BASE_URL = URI.create(
        System.getenv().getOrDefault("PROVIDER_BASE_URL", {{base_url}}));

    @TestTarget
    public final Target target = new HttpTarget(BASE_URL.getScheme(), BASE_URL.getHost(), port());
{{#each states}}
    @State({{state}})
    public void {{method}}() {
        LOGGER.info("Preparing provider state: {}", {{state}});
    }
{{/each}}
    private static int port() {
        return BASE_URL.getPort() == -1 ? 80 : BASE_URL.getPort();
    }
}
"""

PERFORMANCE_TEMPLATE = """package {{package}};

{{test_import}}

import java.io.IOException;
import java.net.URI;
import java.net.http.HttpClient;
import java.net.http.HttpRequest;
import java.net.http.HttpResponse;
import java.time.Duration;
import java.util.Map;
import java.util.concurrent.ExecutorService;
import java.util.concurrent.Executors;
import java.util.concurrent.TimeUnit;
import java.util.concurrent.atomic.AtomicInteger;
import java.util.concurrent.atomic.AtomicLong;

{{assert_import}}

public class {{class_name}} {

    private static final String BASE_URL = System.getenv()
        .getOrDefault("PROVIDER_BASE_URL", {{base_url}});
    private static final HttpClient CLIENT = HttpClient.newBuilder()
        .connectTimeout(Duration.ofMillis({{connection_timeout}}))
        .build();

{{#each scenarios}}    @Test
    {{visibility}}void {{method}}() throws InterruptedException {
        assertLoad(new Scenario({{name}}, {{http_method}}, {{path}},
            {{query}}, {{headers}}, {{body}},
            {{concurrency}}, {{request_count}}, {{duration}}, {{timeout}}, {{retry_attempts}}, {{payload_bytes}},
            {{max_response_time}}L, {{min_success_rate}}, {{max_error_rate}}));
    }

{{/each}}    static void assertLoad(Scenario scenario) throws InterruptedException {
        LoadResult result = runLoad(scenario);
        {{check_success}}
        {{check_errors}}
        {{check_latency}}
    }

{{load_helpers}}}
"""

POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0"
         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
         xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 http://maven.apache.org/xsd/maven-4.0.0.xsd">
    <modelVersion>4.0.0</modelVersion>

    <groupId>com.example</groupId>
    <artifactId>{{artifact_id}}</artifactId>
    <version>{{project_version}}</version>

    <properties>
        <maven.compiler.release>17</maven.compiler.release>
        <project.build.sourceEncoding>UTF-8</project.build.sourceEncoding>
        <pact.version>{{pact_version}}</pact.version>
    </properties>

    <dependencies>
{{#each dependencies}}        <dependency>
            <groupId>{{group}}</groupId>
            <artifactId>{{artifact}}</artifactId>
            <version>{{version}}</version>
            <scope>test</scope>
        </dependency>
{{/each}}    </dependencies>

    <build>
        <plugins>
            <plugin>
                <groupId>org.apache.maven.plugins</groupId>
                <artifactId>maven-surefire-plugin</artifactId>
                <version>3.2.2</version>
                <configuration>
                    <systemPropertyVariables>
                        <pact.rootDir>pacts</pact.rootDir>
                    </systemPropertyVariables>
                </configuration>
            </plugin>
            <plugin>
                <groupId>au.com.dius.pact.provider</groupId>
                <artifactId>maven</artifactId>
                <version>${pact.version}</version>
            </plugin>
        </plugins>
    </build>
</project>
"""

GRADLE_TEMPLATE = """plugins {
    id 'java'
    id 'au.com.dius.pact' version '{{pact_version}}'
}

group = 'com.example'
version = '{{project_version}}'

java {
    toolchain {
        languageVersion = JavaLanguageVersion.of(17)
    }
}

repositories {
    mavenCentral()
}

dependencies {
{{#each dependencies}}    testImplementation '{{group}}:{{artifact}}:{{version}}'
{{/each}}}

test {
    {{platform}}
    systemProperty 'pact.rootDir', 'pacts'
}
"""

SETTINGS_TEMPLATE = "rootProject.name = '{{artifact_id}}'\n"

PROPERTIES_TEMPLATE = """# Test configuration
logging.level.au.com.dius.pact={{level}}
pact.verifier.publishResults=false
pact.provider.version={{project_version}}
"""

LOGBACK_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<configuration>
    <appender name="STDOUT" class="ch.qos.logback.core.ConsoleAppender">
        <encoder>
            <pattern>%d{HH:mm:ss.SSS} [%thread] %-5level %logger{36} - %msg%n</pattern>
        </encoder>
    </appender>

    <logger name="au.com.dius.pact" level="{{level}}"/>

    <root level="INFO">
        <appender-ref ref="STDOUT"/>
    </root>
</configuration>
"""

PLATFORMS = {"testng": "useTestNG()", "junit4": "useJUnit()"}


class JavaGenerator(LanguageBackend):
    language = "java"

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {**super().get_features(), "annotations": True, "records": True}

    def test_dir(self, suite: TestSuite) -> str:
        return "src/test/java"

    def package(self, suite: TestSuite, role: str | None = None) -> str:
        base = f"com.example.{package_segment(suite.provider)}"
        return f"{base}.{role}" if role else base

    def source_path(self, suite: TestSuite, class_name: str, role: str) -> str:
        return f"src/test/java/{self.package(suite, role).replace('.', '/')}/{class_name}.java"

    # -- test files -----------------------------------------------------------

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        base = pascal(suite.consumer)
        if not base.endswith("Consumer"):
            base += "Consumer"
        name = self.class_name(f"{base}Test", config)
        content = self._style(self._render_consumer(suite, config, name), config)
        return [self.file(self.source_path(suite, name, "consumer"), content, "test", f"Pact consumer tests for {suite.consumer}")]

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        provider_class = self.class_name(f"{pascal(suite.provider)}ProviderTest", config)
        perf_class = self.class_name(f"{pascal(suite.provider)}PerformanceTest", config)
        return [
            self.file(self.source_path(suite, provider_class, "provider"),
                      self._style(self._render_provider(suite, config, provider_class), config),
                      "test", f"Pact provider verification for {suite.provider}"),
            self.file(self.source_path(suite, perf_class, "provider"),
                      self._style(self._render_performance(suite, config, perf_class), config),
                      "test", f"Load tests for {suite.provider}"),
        ]

    def _render_consumer(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        framework = config.framework
        annotations = rule = ""
        if framework in ("junit5", "spock"):
            annotations = f"@ExtendWith(PactConsumerTestExt.class)\n@PactTestFor(providerName = {c_string(suite.provider)})\n"
        elif framework == "junit4":
            rule = ("    @Rule\n"
                    f"    public PactProviderRule mockProvider = new PactProviderRule({c_string(suite.provider)}, this);\n\n")
        context = {
            "package": self.package(suite, "consumer"),
            "imports": "\n".join(self._consumer_imports(framework)),
            "annotations": annotations,
            "class_name": class_name,
            "rule": rule,
            "interactions": [self._interaction_row(test, suite, config) for test in contract_cases(suite)],
            "send_helper": SEND_HELPER,
        }
        return self.render(CONSUMER_TEMPLATE, context, "consumer test")

    def _consumer_imports(self, framework: str) -> list[str]:
        imports = [
            "import au.com.dius.pact.consumer.dsl.PactDslWithProvider;",
            "import au.com.dius.pact.core.model.RequestResponsePact;",
        ]
        if framework != "testng":
            imports.append("import au.com.dius.pact.core.model.annotations.Pact;")
        if framework in ("junit5", "spock"):
            imports += [
                "import au.com.dius.pact.consumer.MockServer;",
                "import au.com.dius.pact.consumer.junit5.PactConsumerTestExt;",
                "import au.com.dius.pact.consumer.junit5.PactTestFor;",
                "import org.junit.jupiter.api.extension.ExtendWith;",
            ]
        elif framework == "junit4":
            imports += [
                "import au.com.dius.pact.consumer.junit.PactProviderRule;",
                "import au.com.dius.pact.consumer.junit.PactVerification;",
                "import org.junit.Rule;",
            ]
        else:
            imports += [
                "import au.com.dius.pact.consumer.ConsumerPactBuilder;",
                "import au.com.dius.pact.consumer.PactVerificationResult;",
                "import au.com.dius.pact.consumer.model.MockProviderConfig;",
                "import static au.com.dius.pact.consumer.ConsumerPactRunnerKt.runConsumerTest;",
            ]
        return imports + [
            TEST_IMPORTS[framework],
            "",
            "import java.io.IOException;",
            "import java.net.URI;",
            "import java.net.http.HttpClient;",
            "import java.net.http.HttpRequest;",
            "import java.net.http.HttpResponse;",
            "import java.util.Map;",
            "",
            ASSERT_IMPORTS[framework],
        ]

    def _interaction_row(self, test: TestCase, suite: TestSuite, config: LanguageConfig) -> dict:
        method = self.method_name(test, config)
        request_extras = ""
        if test.request.query:
            request_extras += f"\n                .query({c_string(query_string(test.request.query))})"
        if test.request.body is not None:
            request_extras += f"\n                .body({self._body_literal(test.request.body)})"
        response_body = ""
        if test.response.body is not None:
            response_body = f"\n                .body({self._body_literal(test.response.body)})"
        body = "null" if test.request.body is None else self._body_literal(test.request.body)
        row = {
            "method": method,
            "method_literal": c_string(method),
            "pact_annotation": "" if config.framework == "testng" else f"    @Pact(consumer = {c_string(suite.consumer)})\n",
            "given": c_string(test.provider_state or test.scenario.given),
            "description": c_string(test.description),
            "path": c_string(test.request.path),
            "http_method": c_string(test.request.method),
            "request_headers": java_map(test.request.headers),
            "request_extras": request_extras,
            "status": test.response.status,
            "response_headers": java_map(test.response.headers),
            "response_body": response_body,
            "call": (f"{c_string(test.request.method)}, {c_string(test.request.path)}, "
                     f"{c_string(query_string(test.request.query))},\n"
                     f"            {java_map(test.request.headers)}, {body}"),
            "consumer": c_string(suite.consumer),
            "provider": c_string(suite.provider),
        }
        row["test_method"] = self.render(TEST_METHOD_TEMPLATES[config.framework], row, "consumer test method")
        return row

    def _body_literal(self, body) -> str:
        if isinstance(body, str):
            return c_string(body)
        return c_string(to_json(body))

    def _render_provider(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        context = {
            "package": self.package(suite, "provider"),
            "provider": c_string(suite.provider),
            "class_name": class_name,
            "base_url": c_string(suite.setup.base_url),
            "states": [
                {"state": c_string(state), "method": self.method_name_for(state, config)}
                for state in suite.setup.provider_states
            ],
        }
        template = JUNIT4_PROVIDER_TEMPLATE if config.framework == "junit4" else JUNIT5_PROVIDER_TEMPLATE
        return self.render(template, context, "provider test")

    def method_name_for(self, text: str, config: LanguageConfig) -> str:
        return identifier(text, config.naming_convention.test_methods) or "state"

    def _render_performance(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        framework = config.framework

        def check(condition: str, message: str) -> str:
            if framework == "junit4":
                return f"assertTrue({message}, {condition});"
            return f"assertTrue({condition}, {message});"

        context = {
            "package": self.package(suite, "provider"),
            "test_import": TEST_IMPORTS[framework],
            "assert_import": ASSERT_IMPORTS[framework],
            "class_name": class_name,
            "base_url": c_string(suite.setup.base_url),
            "connection_timeout": config.advanced.timeouts.connection,
            "scenarios": [self._scenario_row(test, config) for test in performance_cases(suite)],
            "check_success": check("result.successRate() >= scenario.minSuccessRate()",
                                   '"success rate " + result.successRate()'),
            "check_errors": check("result.errorRate() <= scenario.maxErrorRate()",
                                  '"error rate " + result.errorRate()'),
            "check_latency": check("result.maxResponseTime() <= scenario.maxResponseTime()",
                                   '"max response time " + result.maxResponseTime()'),
            "load_helpers": LOAD_HELPERS,
        }
        return self.render(PERFORMANCE_TEMPLATE, context, "performance test")

    def _scenario_row(self, test: TestCase, config: LanguageConfig) -> dict:
        row = performance_row(test)
        return {
            **row,
            "method": self.method_name(test, config),
            "visibility": "" if config.framework in ("junit5", "spock") else "public ",
            "name": c_string(row["name"]),
            "http_method": c_string(row["method"]),
            "path": c_string(row["path"]),
            "query": c_string(row["query"]),
            "headers": java_map(row["headers"]),
            "body": c_string(row["body"]),
        }

    def _style(self, text: str, config: LanguageConfig) -> str:
        return reindent(text, "    ", config.code_style.indent())

    # -- project files --------------------------------------------------------

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        context = {
            "artifact_id": f"{package_segment(suite.provider)}-contract-tests",
            "project_version": config.version,
            "pact_version": PACT_VERSION,
            "level": config.advanced.logging.level.upper(),
            "platform": PLATFORMS.get(config.framework, "useJUnitPlatform()"),
            "dependencies": self._dependency_rows(config, suite.is_provider_mode),
        }
        files = []
        if config.package_manager == "gradle":
            files.append(self.file("build.gradle", self.render(GRADLE_TEMPLATE, context, "build.gradle"),
                                   "build", "Gradle build"))
            files.append(self.file("settings.gradle", self.render(SETTINGS_TEMPLATE, context, "settings.gradle"),
                                   "build", "Gradle settings"))
        else:
            files.append(self.file("pom.xml", self.render(POM_TEMPLATE, context, "pom.xml"), "build", "Maven build"))
        files.append(self.file("src/test/resources/application-test.properties",
                               self.render(PROPERTIES_TEMPLATE, context, "application-test.properties"),
                               "config", "Test application properties"))
        files.append(self.file("src/test/resources/logback-test.xml",
                               self.render(LOGBACK_TEMPLATE, context, "logback-test.xml"),
                               "config", "Logback test configuration"))
        files.append(self.file(".gitignore", "target/\nbuild/\n.gradle/\npacts/\n*.class\n", "setup",
                               "Git ignore rules"))
        return files

    def _artifacts(self, config: LanguageConfig, provider_mode: bool) -> list[tuple[str, str]]:
        artifacts = list(FRAMEWORK_ARTIFACTS[config.framework])
        if provider_mode:
            artifacts += PROVIDER_ARTIFACTS.get(config.framework, DEFAULT_PROVIDER_ARTIFACTS)
        artifacts.append(("ch.qos.logback:logback-classic", LOGBACK_VERSION))
        seen, unique = set(), []
        for coordinate, version in artifacts:
            if coordinate not in seen:
                seen.add(coordinate)
                unique.append((coordinate, version))
        return unique

    def _dependency_rows(self, config: LanguageConfig, provider_mode: bool) -> list[dict]:
        rows = []
        for coordinate, version in self._artifacts(config, provider_mode):
            group, artifact = coordinate.split(":")
            rows.append({"group": group, "artifact": artifact, "version": version})
        return rows
    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        if config.package_manager == "gradle":
            return {"test": "gradle test", "build": "gradle build", "pact:verify": "gradle pactVerify"}
        return {"test": "mvn test", "build": "mvn compile", "pact:verify": "mvn pact:verify"}

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        deps = []
        for coordinate, version in self._artifacts(config, provider_mode=True):
            deps.append(Dependency(name=coordinate, version=version, scope="test", manager=config.package_manager))
        return deps

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        tool = "gradle" if config.package_manager == "gradle" else "mvn"
        steps = [f"Install JDK 17 and {'Gradle' if tool == 'gradle' else 'Maven'}"]
        if suite.is_provider_mode:
            steps.append(f"Copy the consumer pact file into pacts/{suite.consumer}-{suite.provider}.json")
            steps.append(f"Start the provider and export PROVIDER_BASE_URL (default {suite.setup.base_url})")
        steps.append(f"Run the tests: {tool} test")
        if not suite.is_provider_mode:
            steps.append("Pact files are written to target/pacts or build/pacts")
        return steps


def java_map(values: dict) -> str:
    if not values:
        return "Map.of()"
    entries = ", ".join(f"Map.entry({c_string(k)}, {c_string(str(v))})" for k, v in values.items())
    return f"Map.ofEntries({entries})"
