"""C# backend — PactNet consumer tests, provider verification and load tests."""

import json

from api_contract_gen.generator.models import TestCase, TestSuite
from .base import (
    LanguageBackend,
    c_string,
    contract_cases,
    pascal,
    performance_cases,
    performance_row,
    query_string,
    query_value,
    reindent,
    to_json,
)
from .config import LanguageConfig
from .output import Dependency, GeneratedFile

TARGET_FRAMEWORK = "net8.0"

COMMON_PACKAGES = [
    ("PactNet", "4.5.0"),
    ("Newtonsoft.Json", "13.0.3"),
    ("Microsoft.NET.Test.Sdk", "17.8.0"),
]

FRAMEWORK_PACKAGES = {
    "nunit": [("NUnit", "3.14.0"), ("NUnit3TestAdapter", "4.5.0")],
    "xunit": [("xunit", "2.6.2"), ("xunit.runner.visualstudio", "2.5.4")],
    "mstest": [("MSTest.TestFramework", "3.1.1"), ("MSTest.TestAdapter", "3.1.1")],
}

USINGS = {
    "nunit": "using NUnit.Framework;",
    "xunit": "using Xunit;",
    "mstest": "using Microsoft.VisualStudio.TestTools.UnitTesting;",
}

CLASS_ATTRIBUTES = {"nunit": "[TestFixture]\n", "xunit": "", "mstest": "[TestClass]\n"}
TEST_ATTRIBUTES = {"nunit": "[Test]", "xunit": "[Fact]", "mstest": "[TestMethod]"}

LOG_LEVELS = {"trace": "Trace", "debug": "Debug", "info": "Information", "warn": "Warn", "error": "Error"}

SEND_HELPER = '''    private static async Task<HttpResponseMessage> SendAsync(Uri baseUri, string method, string path,
        string query, IDictionary<string, string> headers, string body)
    {
        var target = new Uri(baseUri, path + (query.Length == 0 ? "" : "?" + query));
        using var request = new HttpRequestMessage(new HttpMethod(method), target);
        string contentType = null;
        foreach (var header in headers)
        {
            if (string.Equals(header.Key, "Content-Type", StringComparison.OrdinalIgnoreCase))
            {
                contentType = header.Value;
                continue;
            }
            request.Headers.TryAddWithoutValidation(header.Key, header.Value);
        }
        if (body != null)
        {
            request.Content = new StringContent(body, Encoding.UTF8);
            request.Content.Headers.ContentType = MediaTypeHeaderValue.Parse(contentType ?? "application/json");
        }
        return await Client.SendAsync(request);
    }
'''

LOAD_HELPERS = '''    private sealed record Scenario(string Name, string Method, string Path, string Query,
        Dictionary<string, string> Headers, string Body, int Concurrency, int RequestCount, int Duration,
        int Timeout, int RetryAttempts, int PayloadBytes, long MaxResponseTime, double MinSuccessRate,
        double MaxErrorRate);

    private sealed record LoadResult(int Total, double SuccessRate, double ErrorRate, long MaxResponseTime);

    private static string BuildBody(Scenario scenario)
    {
        if (scenario.Body.Length == 0 && scenario.PayloadBytes == 0)
        {
            return null;
        }
        var body = scenario.Body.Length == 0 ? "{}" : scenario.Body;
        if (scenario.PayloadBytes > 0 && JToken.Parse(body) is JObject json)
        {
            json["padding"] = new string('x', scenario.PayloadBytes);
            body = json.ToString(Formatting.None);
        }
        return body;
    }

    private static HttpRequestMessage BuildRequest(Scenario scenario, string body)
    {
        var target = BaseUrl + scenario.Path + (scenario.Query.Length == 0 ? "" : "?" + scenario.Query);
        var request = new HttpRequestMessage(new HttpMethod(scenario.Method), target);
        foreach (var header in scenario.Headers)
        {
            if (!string.Equals(header.Key, "Content-Type", StringComparison.OrdinalIgnoreCase))
            {
                request.Headers.TryAddWithoutValidation(header.Key, header.Value);
            }
        }
        if (body != null)
        {
            request.Content = new StringContent(body, Encoding.UTF8, "application/json");
        }
        return request;
    }

    private static async Task<bool> TimedRequestAsync(Scenario scenario, string body)
    {
        for (var attempt = 0; attempt <= scenario.RetryAttempts; attempt++)
        {
            using var cts = new CancellationTokenSource(scenario.Timeout);
            try
            {
                using var request = BuildRequest(scenario, body);
                using var response = await Client.SendAsync(request, cts.Token);
                var status = (int)response.StatusCode;
                if (status < 500 || attempt == scenario.RetryAttempts)
                {
                    return status < 400;
                }
            }
            catch (Exception e) when (e is HttpRequestException || e is TaskCanceledException)
            {
                if (attempt == scenario.RetryAttempts)
                {
                    return false;
                }
            }
            await Task.Delay(100 * (1 << attempt));
        }
        return false;
    }

    private static async Task<LoadResult> RunLoadAsync(Scenario scenario)
    {
        var body = BuildBody(scenario);
        var deadline = scenario.Duration > 0 ? DateTime.UtcNow.AddSeconds(scenario.Duration) : DateTime.MaxValue;
        var gate = new object();
        int issued = 0, completed = 0, successes = 0;
        long slowest = 0;
        var workers = Enumerable.Range(0, scenario.Concurrency).Select(_ => Task.Run(async () =>
        {
            while (Interlocked.Increment(ref issued) <= scenario.RequestCount && DateTime.UtcNow < deadline)
            {
                var watch = Stopwatch.StartNew();
                var ok = await TimedRequestAsync(scenario, body);
                watch.Stop();
                lock (gate)
                {
                    slowest = Math.Max(slowest, watch.ElapsedMilliseconds);
                    completed++;
                    if (ok)
                    {
                        successes++;
                    }
                }
            }
        }));
        await Task.WhenAll(workers);
        var total = Math.Max(completed, 1);
        return new LoadResult(completed, successes / (double)total, (completed - successes) / (double)total, slowest);
    }
'''


CONSUMER_TEMPLATE = """using System;
using System.Collections.Generic;
using System.IO;
using System.Net;
using System.Net.Http;
using System.Net.Http.Headers;
using System.Text;
using System.Threading.Tasks;
using Newtonsoft.Json.Linq;
using PactNet;
{{using}}

namespace {{namespace}};

{{class_attribute}}public class {{class_name}}
{
    private static readonly HttpClient Client = new HttpClient();

    private static IPactBuilderV3 NewPact()
    {
        var config = new PactConfig
        {
            PactDir = Path.Combine(AppContext.BaseDirectory, "..", "..", "..", "pacts"),
            LogLevel = PactLogLevel.{{log_level}},
        };
        return Pact.V3({{consumer}}, {{provider}}, config).WithHttpInteractions();
    }

{{#each interactions}}    {{test_attribute}}
    public async Task {{method}}()
    {
        var pact = NewPact();
        pact
{{builder}}

        await pact.VerifyAsync(async ctx =>
        {
            var response = await SendAsync(ctx.MockServerUri, {{http_method}}, {{path}},
                {{query}}, {{headers}}, {{body}});
            {{assertion}};
        });
    }

{{/each}}{{send_helper}}}
"""

PROVIDER_TEMPLATE = """using System;
using System.Collections.Generic;
using System.IO;
using System.Net;
using System.Threading;
using System.Threading.Tasks;
using Newtonsoft.Json.Linq;
using PactNet;
using PactNet.Verifier;
{{using}}

namespace {{namespace}};

{{class_attribute}}public class {{class_name}}
{
    private const string StateServerUrl = "http://localhost:9001/";

    private static readonly string ProviderBaseUrl =
        Environment.GetEnvironmentVariable("PROVIDER_BASE_URL") ?? {{base_url}};

    // Seed or reset provider data for each state the consumer pacts reference.
    private static readonly IDictionary<string, Action> StateHandlers = new Dictionary<string, Action>
    {
{{#each states}}        [{{state}}] = () => Console.WriteLine({{message}}),
{{/each}}    };

    {{test_attribute}}
    public async Task VerifyPacts()
    {
        using var listener = new HttpListener();
        listener.Prefixes.Add(StateServerUrl);
        listener.Start();
        using var cts = new CancellationTokenSource();
        var stateServer = ServeStatesAsync(listener, cts.Token);

        try
        {
            var config = new PactVerifierConfig { LogLevel = PactLogLevel.{{log_level}} };
            using var verifier = new PactVerifier(config);
            var pactPath = Path.Combine(AppContext.BaseDirectory, "..", "..", "..", "pacts", {{pact_file}});
            verifier
                .ServiceProvider({{provider}}, new Uri(ProviderBaseUrl))
                .WithFileSource(new FileInfo(pactPath))
                .WithProviderStateUrl(new Uri(new Uri(StateServerUrl), "provider-states"))
                .Verify();
        }
        finally
        {
            cts.Cancel();
            listener.Stop();
            await stateServer;
        }
    }

    private static async Task ServeStatesAsync(HttpListener listener, CancellationToken token)
    {
        while (!token.IsCancellationRequested)
        {
            HttpListenerContext context;
            try
            {
                context = await listener.GetContextAsync();
            }
            catch (Exception e) when (e is HttpListenerException || e is ObjectDisposedException)
            {
                return;
            }
            using (var reader = new StreamReader(context.Request.InputStream))
            {
                var payload = JObject.Parse(await reader.ReadToEndAsync());
                var state = payload.Value<string>("state");
                if (state != null && StateHandlers.TryGetValue(state, out var handler))
                {
                    handler();
                }
            }
            context.Response.StatusCode = 200;
            context.Response.Close();
        }
    }
}
"""

PERFORMANCE_TEMPLATE = """using System;
using System.Collections.Generic;
using System.Diagnostics;
using System.Linq;
using System.Net.Http;
using System.Text;
using System.Threading;
using System.Threading.Tasks;
using Newtonsoft.Json;
using Newtonsoft.Json.Linq;
{{using}}

namespace {{namespace}};

{{class_attribute}}public class {{class_name}}
{
    private static readonly string BaseUrl =
        Environment.GetEnvironmentVariable("PROVIDER_BASE_URL") ?? {{base_url}};

    private static readonly HttpClient Client = new HttpClient
    {
        Timeout = TimeSpan.FromMilliseconds({{test_timeout}}),
    };

{{#each scenarios}}    {{test_attribute}}
    public async Task {{method}}()
    {
        await AssertLoadAsync(new Scenario({{name}}, {{http_method}},
            {{path}}, {{query}}, {{headers}},
            {{body}}, {{concurrency}}, {{request_count}}, {{duration}},
            {{timeout}}, {{retry_attempts}}, {{payload_bytes}}, {{max_response_time}},
            {{min_success_rate}}, {{max_error_rate}}));
    }

{{/each}}    private static async Task AssertLoadAsync(Scenario scenario)
    {
        var result = await RunLoadAsync(scenario);
        {{check_success}};
        {{check_errors}};
        {{check_latency}};
    }

{{load_helpers}}}
"""

CSPROJ_TEMPLATE = """<Project Sdk="Microsoft.NET.Sdk">

  <PropertyGroup>
    <TargetFramework>{{target_framework}}</TargetFramework>
    <ImplicitUsings>disable</ImplicitUsings>
    <Nullable>disable</Nullable>
    <IsPackable>false</IsPackable>
    <IsTestProject>true</IsTestProject>
    <RootNamespace>{{namespace}}</RootNamespace>
    <Version>{{project_version}}</Version>
  </PropertyGroup>

  <ItemGroup>
{{#each references}}    <PackageReference Include="{{name}}" Version="{{version}}" />
{{/each}}  </ItemGroup>

  <ItemGroup>
    <None Update="appsettings.Test.json">
      <CopyToOutputDirectory>PreserveNewest</CopyToOutputDirectory>
    </None>
  </ItemGroup>

</Project>
"""


class CSharpGenerator(LanguageBackend):
    language = "csharp"

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {**super().get_features(), "async_await": True, "records": True}

    def test_dir(self, suite: TestSuite) -> str:
        return "Provider" if suite.is_provider_mode else "Consumer"

    def namespace(self, suite: TestSuite) -> str:
        return f"{pascal(suite.provider)}.Tests"

    # -- test files -----------------------------------------------------------

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        name = self.class_name(f"{pascal(suite.consumer)}ConsumerTests", config)
        content = self._style(self._render_consumer(suite, config, name), config)
        return [self.file(f"Consumer/{name}.cs", content, "test", f"PactNet consumer tests for {suite.consumer}")]

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        provider_class = self.class_name(f"{pascal(suite.provider)}ProviderTests", config)
        perf_class = self.class_name(f"{pascal(suite.provider)}PerformanceTests", config)
        return [
            self.file(f"Provider/{provider_class}.cs",
                      self._style(self._render_provider(suite, config, provider_class), config),
                      "test", f"PactNet provider verification for {suite.provider}"),
            self.file(f"Provider/{perf_class}.cs",
                      self._style(self._render_performance(suite, config, perf_class), config),
                      "test", f"Load tests for {suite.provider}"),
        ]

    def _class_context(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> dict:
        return {
            "using": USINGS[config.framework],
            "namespace": self.namespace(suite),
            "class_attribute": CLASS_ATTRIBUTES[config.framework],
            "class_name": class_name,
            "test_attribute": TEST_ATTRIBUTES[config.framework],
            "log_level": pact_log_level(config),
            "consumer": c_string(suite.consumer),
            "provider": c_string(suite.provider),
            "base_url": c_string(suite.setup.base_url),
        }

    def _render_consumer(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        context = {
            **self._class_context(suite, config, class_name),
            "interactions": [self._interaction_row(test, config) for test in contract_cases(suite)],
            "send_helper": SEND_HELPER,
        }
        return self.render(CONSUMER_TEMPLATE, context, "consumer test")

    def _interaction_row(self, test: TestCase, config: LanguageConfig) -> dict:
        request = test.request
        response = test.response
        builder = [
            f"            .UponReceiving({c_string(test.description)})",
            f"            .Given({c_string(test.provider_state or test.scenario.given)})",
            f"            .WithRequest(new HttpMethod({c_string(request.method)}), {c_string(request.path)})",
        ]
        for key, value in request.query.items():
            for item in value if isinstance(value, list) else [value]:
                builder.append(f"            .WithQuery({c_string(key)}, {c_string(query_value(item))})")
        builder += self._headers_and_body(request.headers, request.body)
        builder.append("            .WillRespond()")
        builder.append(f"            .WithStatus((HttpStatusCode){response.status})")
        builder += self._headers_and_body(response.headers, response.body)
        builder[-1] += ";"
        return {
            "method": self.method_name(test, config),
            "builder": "\n".join(builder),
            "http_method": c_string(request.method),
            "path": c_string(request.path),
            "query": c_string(query_string(request.query)),
            "headers": csharp_dictionary(request.headers),
            "body": "null" if request.body is None else c_string(self._body_text(request.body)),
            "assertion": self._assert_equal(config, str(response.status), "(int)response.StatusCode"),
        }

    def _headers_and_body(self, headers: dict, body) -> list[str]:
        lines = []
        content_type = next((v for k, v in headers.items() if k.lower() == "content-type"), None)
        for key, value in headers.items():
            if key.lower() == "content-type" and body is not None:
                continue
            lines.append(f"            .WithHeader({c_string(key)}, {c_string(value)})")
        if body is None:
            return lines
        if isinstance(body, str):
            lines.append(f"            .WithBody({c_string(body)}, {c_string(content_type or 'text/plain')})")
        else:
            lines.append(f"            .WithJsonBody(JToken.Parse({c_string(to_json(body))}))")
        return lines

    def _body_text(self, body) -> str:
        return body if isinstance(body, str) else to_json(body)

    def _assert_equal(self, config: LanguageConfig, expected: str, actual: str) -> str:
        if config.framework == "nunit":
            return f"Assert.That({actual}, Is.EqualTo({expected}))"
        if config.framework == "xunit":
            return f"Assert.Equal({expected}, {actual})"
        return f"Assert.AreEqual({expected}, {actual})"

    def _assert_true(self, config: LanguageConfig, condition: str, message: str) -> str:
        if config.framework == "nunit":
            return f"Assert.That({condition}, {message})"
        if config.framework == "xunit":
            return f"Assert.True({condition}, {message})"
        return f"Assert.IsTrue({condition}, {message})"

    def _render_provider(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        context = {
            **self._class_context(suite, config, class_name),
            "states": [
                {"state": c_string(state), "message": c_string(f"Preparing provider state: {state}")}
                for state in suite.setup.provider_states
            ],
            "pact_file": c_string(f"{suite.consumer}-{suite.provider}.json"),
        }
        return self.render(PROVIDER_TEMPLATE, context, "provider test")

    def _render_performance(self, suite: TestSuite, config: LanguageConfig, class_name: str) -> str:
        context = {
            **self._class_context(suite, config, class_name),
            "test_timeout": config.advanced.timeouts.test,
            "scenarios": [self._scenario_row(test, config) for test in performance_cases(suite)],
            "check_success": self._assert_true(config, "result.SuccessRate >= scenario.MinSuccessRate",
                                               '$"success rate {result.SuccessRate}"'),
            "check_errors": self._assert_true(config, "result.ErrorRate <= scenario.MaxErrorRate",
                                              '$"error rate {result.ErrorRate}"'),
            "check_latency": self._assert_true(config, "result.MaxResponseTime <= scenario.MaxResponseTime",
                                               '$"max response time {result.MaxResponseTime}"'),
            "load_helpers": LOAD_HELPERS,
        }
        return self.render(PERFORMANCE_TEMPLATE, context, "performance test")

    def _scenario_row(self, test: TestCase, config: LanguageConfig) -> dict:
        row = performance_row(test)
        return {
            **row,
            "method": self.method_name(test, config),
            "name": c_string(row["name"]),
            "http_method": c_string(row["method"]),
            "path": c_string(row["path"]),
            "query": c_string(row["query"]),
            "headers": csharp_dictionary(row["headers"]),
            "body": c_string(row["body"]),
        }

    def _style(self, text: str, config: LanguageConfig) -> str:
        return reindent(text, "    ", config.code_style.indent())

    # -- project files --------------------------------------------------------

    def project_name(self, suite: TestSuite) -> str:
        return f"{pascal(suite.provider)}.Tests"

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        return [
            self.file(f"{self.project_name(suite)}.csproj", self._render_csproj(suite, config), "build",
                      "Test project"),
            self.file("appsettings.Test.json", self._render_appsettings(config), "config", "Test settings"),
            self.file("global.json", json.dumps({"sdk": {"version": "8.0.100", "rollForward": "latestMajor"}},
                                                indent=2) + "\n", "config", "Global SDK configuration"),
            self.file(".gitignore", "bin/\nobj/\npacts/\n*.user\n", "setup", "Git ignore rules"),
        ]

    def _render_csproj(self, suite: TestSuite, config: LanguageConfig) -> str:
        context = {
            "target_framework": TARGET_FRAMEWORK,
            "namespace": self.namespace(suite),
            "project_version": config.version,
            "references": [{"name": d.name, "version": d.version} for d in self.dependencies(config)],
        }
        return self.render(CSPROJ_TEMPLATE, context, f"{self.project_name(suite)}.csproj")
    def _render_appsettings(self, config: LanguageConfig) -> str:
        settings = {
            "Logging": {"LogLevel": {"Default": "Information", "PactNet": pact_log_level(config)}},
            "Pact": {"PublishResults": False, "ProviderVersion": config.version},
            "Timeouts": {
                "RequestMs": config.advanced.timeouts.request,
                "TestMs": config.advanced.timeouts.test,
            },
        }
        return json.dumps(settings, indent=2) + "\n"

    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        return {"test": "dotnet test", "build": "dotnet build", "restore": "dotnet restore"}

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        packages = COMMON_PACKAGES + FRAMEWORK_PACKAGES[config.framework]
        return [Dependency(name=name, version=version, scope="test", manager="nuget") for name, version in packages]

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        steps = ["Install the .NET 8 SDK", "Restore packages: dotnet restore"]
        if suite.is_provider_mode:
            steps.append(f"Copy the consumer pact file into pacts/{suite.consumer}-{suite.provider}.json")
            steps.append(f"Start the provider and export PROVIDER_BASE_URL (default {suite.setup.base_url})")
        steps.append("Run the tests: dotnet test")
        return steps


def pact_log_level(config: LanguageConfig) -> str:
    return LOG_LEVELS.get(config.advanced.logging.level.lower(), "Information")


def csharp_dictionary(values: dict) -> str:
    if not values:
        return "new Dictionary<string, string>()"
    entries = ", ".join(f"[{c_string(k)}] = {c_string(str(v))}" for k, v in values.items())
    return f"new Dictionary<string, string> {{ {entries} }}"
