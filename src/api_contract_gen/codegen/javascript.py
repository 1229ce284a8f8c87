"""JavaScript backend — pact-js consumer tests, provider verification and load tests."""

import json
import math
import re
from typing import Any

from api_contract_gen.generator.models import TestCase, TestSuite
from .base import (
    LanguageBackend,
    contract_cases,
    kebab,
    performance_cases,
    performance_row,
    query_value,
    reindent,
)
from .config import LanguageConfig
from .naming import sanitize_name
from .output import Dependency, GeneratedFile

PACT_VERSION = "^12.0.0"

FRAMEWORK_PACKAGES = {
    "jest": [("jest", "^29.7.0")],
    "mocha": [("mocha", "^10.2.0"), ("chai", "^4.3.10")],
    "jasmine": [("jasmine", "^5.1.0")],
    "vitest": [("vitest", "^1.2.0")],
}

TEST_SCRIPTS = {
    "jest": "jest",
    "mocha": "mocha",
    "jasmine": "jasmine",
    "vitest": "vitest run",
}

RUN_COMMANDS = {"npm": "npm test", "yarn": "yarn test", "pnpm": "pnpm test", "bun": "bun run test"}

IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Templates are written with two-space indentation; _style re-indents them.

CONSUMER_TEMPLATE = """{{imports}}
const provider = new PactV3({
  consumer: {{consumer}},
  provider: {{provider}},
  dir: path.resolve(process.cwd(), 'pacts'),
  logLevel: {{log_level}},
});

function send(baseUrl, request) {
  const url = new URL(request.path, baseUrl);
  Object.entries(request.query || {}).forEach(([key, value]) => [].concat(value).forEach((item) => url.searchParams.append(key, item)));
  let body;
  if (request.body !== undefined) {
    body = typeof request.body === 'string' ? request.body : JSON.stringify(request.body);
  }
  return fetch(url.toString(), { method: request.method, headers: request.headers, body });
}

describe({{title}}, () => {
{{#each interactions}}{{group_open}}    it({{name}}, () => {
      const request = {{request}};
      const expected = {{response}};

      provider
        .given({{given}})
        .uponReceiving({{description}})
        .withRequest(request)
        .willRespondWith(expected);

      return provider.executeTest(async (mockServer) => {
        const response = await send(mockServer.url, request);
        {{status_check}};
      });
    });
{{group_close}}{{/each}}});
"""

PROVIDER_TEMPLATE = """{{imports}}
const PROVIDER_BASE_URL = process.env.PROVIDER_BASE_URL || {{base_url}};

// Seed or reset provider data for each state the consumer pacts reference.
const stateHandlers = {
{{#each states}}  {{this}}: async () => {
    return { description: {{this}} };
  },
{{/each}}};

describe({{title}}, () => {
  {{verify_open}}
    return new Verifier({
      provider: {{provider}},
      providerBaseUrl: PROVIDER_BASE_URL,
      pactUrls: [path.resolve(process.cwd(), 'pacts', {{pact_file}})],
      stateHandlers,
      logLevel: {{log_level}},
      timeout: {{request_timeout}},
    }).verifyProvider();
  {{verify_close}}
});
"""

PERFORMANCE_TEMPLATE = """{{imports}}
const BASE_URL = process.env.PROVIDER_BASE_URL || {{base_url}};

const scenarios = {{scenarios}};

function sleep(ms) {
  return new Promise((resolve) => setTimeout(resolve, ms));
}

function buildBody(scenario) {
  if (!scenario.body && !scenario.payload_bytes) {
    return undefined;
  }
  const body = scenario.body ? JSON.parse(scenario.body) : {};
  if (scenario.payload_bytes && body && typeof body === 'object' && !Array.isArray(body)) {
    body.padding = 'x'.repeat(scenario.payload_bytes);
  }
  return JSON.stringify(body);
}

async function timedRequest(scenario, body) {
  const url = BASE_URL + scenario.path + (scenario.query ? '?' + scenario.query : '');
  for (let attempt = 0; attempt <= scenario.retry_attempts; attempt += 1) {
    const controller = new AbortController();
    const timer = setTimeout(() => controller.abort(), scenario.timeout);
    const started = Date.now();
    try {
      const response = await fetch(url, {
        method: scenario.method,
        headers: scenario.headers,
        body,
        signal: controller.signal,
      });
      const elapsed = Date.now() - started;
      if (response.status < 500 || attempt === scenario.retry_attempts) {
        return { ok: response.status < 400, elapsed };
      }
    } catch (error) {
      if (attempt === scenario.retry_attempts) {
        return { ok: false, elapsed: Date.now() - started };
      }
    } finally {
      clearTimeout(timer);
    }
    await sleep(100 * 2 ** attempt);
  }
  return { ok: false, elapsed: 0 };
}

async function runLoad(scenario) {
  const body = buildBody(scenario);
  const deadline = scenario.duration ? Date.now() + scenario.duration * 1000 : Infinity;
  const results = [];
  let issued = 0;

  async function worker() {
    while (issued < scenario.request_count && Date.now() < deadline) {
      issued += 1;
      results.push(await timedRequest(scenario, body));
    }
  }

  await Promise.all(Array.from({ length: scenario.concurrency }, worker));
  const total = results.length || 1;
  const successes = results.filter((r) => r.ok).length;
  return {
    total: results.length,
    successRate: successes / total,
    errorRate: (results.length - successes) / total,
    maxResponseTime: results.reduce((max, r) => Math.max(max, r.elapsed), 0),
  };
}

describe({{title}}, () => {
  if (scenarios.length === 0) {
    {{skip}}('has no performance scenarios', () => {});
  }
  scenarios.forEach((scenario) => {
    const budget = (scenario.duration || 60) * 1000 + scenario.max_response_time + 60000;
    {{load_open}}
      const result = await runLoad(scenario);
      {{check_success}};
      {{check_errors}};
      {{check_latency}};
    {{load_close}}
  });
});
"""

JEST_CONFIG_TEMPLATE = """module.exports = {
  testEnvironment: 'node',
  testMatch: ['**/tests/**/*.test.js'],
  testTimeout: {{timeout}},
  verbose: true,
};
"""

VITEST_CONFIG_TEMPLATE = """import { defineConfig } from 'vitest/config';

export default defineConfig({
  test: {
    include: ['tests/**/*.test.js'],
    testTimeout: {{timeout}},
  },
});
"""


class JavaScriptGenerator(LanguageBackend):
    language = "javascript"

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {**super().get_features(), "async_await": True, "esm_modules": True}

    def test_dir(self, suite: TestSuite) -> str:
        return "tests"

    # -- test files -----------------------------------------------------------

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        path = f"tests/{sanitize_name(suite.consumer) or 'consumer'}_consumer.test.js"
        content = self._style(self._render_consumer(suite, config), config)
        return [self.file(path, content, "test", f"Pact consumer tests for {suite.consumer}")]

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        name = sanitize_name(suite.provider) or "provider"
        return [
            self.file(f"tests/{name}_provider.test.js",
                      self._style(self._render_provider(suite, config), config),
                      "test", f"Pact provider verification for {suite.provider}"),
            self.file(f"tests/{name}_performance.test.js",
                      self._style(self._render_performance(suite, config), config),
                      "test", f"Load tests for {suite.provider}"),
        ]

    def _render_consumer(self, suite: TestSuite, config: LanguageConfig) -> str:
        q = self._quote(config)
        context = {
            "imports": self._imports(config, ["PactV3"]),
            "consumer": q(suite.consumer),
            "provider": q(suite.provider),
            "log_level": q(config.advanced.logging.level),
            "title": q(f"{suite.consumer} -> {suite.provider}"),
            "interactions": self._interaction_rows(suite, config),
            "status_check": self._assert_equal(config, "response.status", "expected.status"),
        }
        return self.render(CONSUMER_TEMPLATE, context, "consumer test")

    def _interaction_rows(self, suite: TestSuite, config: LanguageConfig) -> list[dict]:
        """One row per contract case, grouped by type into describe blocks."""
        q = self._quote(config)
        quotes = config.code_style.quotes
        groups: dict[str, list[TestCase]] = {}
        for test in contract_cases(suite):
            groups.setdefault(test.type, []).append(test)

        rows = []
        for group_index, (test_type, tests) in enumerate(groups.items()):
            last_group = group_index == len(groups) - 1
            for index, test in enumerate(tests):
                last = index == len(tests) - 1
                if last:
                    close = "  });\n" if last_group else "  });\n\n"
                else:
                    close = "\n"
                rows.append({
                    "group_open": f"  describe({q(test_type)}, () => {{\n" if index == 0 else "",
                    "name": q(test.name),
                    "request": js_literal(self._request(test), "      ", quotes),
                    "response": js_literal(self._response(test), "      ", quotes),
                    "given": q(test.provider_state or test.scenario.given),
                    "description": q(test.description),
                    "group_close": close,
                })
        return rows

    def _request(self, test: TestCase) -> dict[str, Any]:
        request: dict[str, Any] = {"method": test.request.method, "path": test.request.path}
        if test.request.query:
            request["query"] = {
                k: [query_value(i) for i in v] if isinstance(v, list) else query_value(v)
                for k, v in test.request.query.items()
            }
        if test.request.headers:
            request["headers"] = test.request.headers
        if test.request.body is not None:
            request["body"] = test.request.body
        return request

    def _response(self, test: TestCase) -> dict[str, Any]:
        response: dict[str, Any] = {"status": test.response.status}
        if test.response.headers:
            response["headers"] = test.response.headers
        if test.response.body is not None:
            response["body"] = test.response.body
        return response

    def _render_provider(self, suite: TestSuite, config: LanguageConfig) -> str:
        q = self._quote(config)
        title = q("validates the expectations of " + suite.consumer)
        verify_open, verify_close = self._it(config, title, config.advanced.timeouts.test)
        context = {
            "imports": self._imports(config, ["Verifier"]),
            "base_url": q(suite.setup.base_url),
            "states": [q(state) for state in suite.setup.provider_states],
            "title": q(suite.provider + " provider verification"),
            "verify_open": verify_open,
            "verify_close": verify_close,
            "provider": q(suite.provider),
            "pact_file": q(f"{suite.consumer}-{suite.provider}.json"),
            "log_level": q(config.advanced.logging.level),
            "request_timeout": config.advanced.timeouts.request,
        }
        return self.render(PROVIDER_TEMPLATE, context, "provider test")

    def _render_performance(self, suite: TestSuite, config: LanguageConfig) -> str:
        q = self._quote(config)
        rows = [performance_row(t) for t in performance_cases(suite)]
        load_open, load_close = self._it(config, "scenario.name", "budget", is_async=True, indent="    ")
        context = {
            "imports": self._imports(config, []),
            "base_url": q(suite.setup.base_url),
            "scenarios": js_literal(rows, "", config.code_style.quotes),
            "title": q(suite.provider + " performance"),
            "skip": "xit" if config.framework == "jasmine" else "it.skip",
            "load_open": load_open,
            "load_close": load_close,
            "check_success": self._assert_at_least(config, "result.successRate", "scenario.min_success_rate"),
            "check_errors": self._assert_at_most(config, "result.errorRate", "scenario.max_error_rate"),
            "check_latency": self._assert_at_most(config, "result.maxResponseTime", "scenario.max_response_time"),
        }
        return self.render(PERFORMANCE_TEMPLATE, context, "performance test")

    # -- framework helpers ----------------------------------------------------

    def _imports(self, config: LanguageConfig, pact_names: list[str]) -> str:
        lines = []
        if config.framework == "vitest":
            lines.append("import { describe, it, expect } from 'vitest';")
            lines.append("import path from 'path';")
            if pact_names:
                lines.append(f"import {{ {', '.join(pact_names)} }} from '@pact-foundation/pact';")
        else:
            lines.append("const path = require('path');")
            if pact_names:
                lines.append(f"const {{ {', '.join(pact_names)} }} = require('@pact-foundation/pact');")
            if config.framework == "mocha":
                lines.append("const { expect } = require('chai');")
        return "\n".join(lines) + "\n"

    def _it(self, config: LanguageConfig, title: str, timeout,
            is_async: bool = False, indent: str = "  ") -> tuple[str, str]:
        """Opening and closing lines of a test block with a per-test timeout; title is a JS expression."""
        prefix = "async " if is_async else ""
        if config.framework == "mocha":
            return f"it({title}, {prefix}function () {{\n{indent}  this.timeout({timeout});", "});"
        return f"it({title}, {prefix}() => {{", f"}}, {timeout});"

    def _assert_equal(self, config: LanguageConfig, actual: str, expected: str) -> str:
        if config.framework == "mocha":
            return f"expect({actual}).to.equal({expected})"
        return f"expect({actual}).toBe({expected})"

    def _assert_at_least(self, config: LanguageConfig, actual: str, bound: str) -> str:
        if config.framework == "mocha":
            return f"expect({actual}).to.be.at.least({bound})"
        return f"expect({actual}).toBeGreaterThanOrEqual({bound})"

    def _assert_at_most(self, config: LanguageConfig, actual: str, bound: str) -> str:
        if config.framework == "mocha":
            return f"expect({actual}).to.be.at.most({bound})"
        return f"expect({actual}).toBeLessThanOrEqual({bound})"

    def _quote(self, config: LanguageConfig):
        return lambda text: js_string(text, config.code_style.quotes)

    def _style(self, text: str, config: LanguageConfig) -> str:
        style = config.code_style
        if not style.semicolons:
            text = re.sub(r";$", "", text, flags=re.MULTILINE)
        return reindent(text, "  ", style.indent())

    # -- project files --------------------------------------------------------

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        files = [self.file("package.json", self._render_package_json(suite, config), "dependency",
                           "npm manifest with pact and test framework")]
        timeout = config.advanced.timeouts.test
        if config.framework == "jest":
            jest_config = self.render(JEST_CONFIG_TEMPLATE, {"timeout": timeout}, "jest.config.js")
            files.append(self.file("jest.config.js", jest_config, "config", "Jest configuration"))
        elif config.framework == "mocha":
            mocharc = {"spec": "tests/**/*.test.js", "timeout": timeout}
            files.append(self.file(".mocharc.json", json.dumps(mocharc, indent=2) + "\n", "config", "Mocha configuration"))
        elif config.framework == "jasmine":
            jasmine = {"spec_dir": "tests", "spec_files": ["**/*.test.js"], "random": False}
            files.append(self.file("spec/support/jasmine.json", json.dumps(jasmine, indent=2) + "\n", "config",
                                   "Jasmine configuration"))
        elif config.framework == "vitest":
            vitest_config = self.render(VITEST_CONFIG_TEMPLATE, {"timeout": timeout}, "vitest.config.js")
            files.append(self.file("vitest.config.js", vitest_config, "config", "Vitest configuration"))
        files.append(self.file(".gitignore", "node_modules/\npacts/\nlogs/\ncoverage/\n", "setup", "Git ignore rules"))
        return files

    def _render_package_json(self, suite: TestSuite, config: LanguageConfig) -> str:
        name = kebab(suite.provider if suite.is_provider_mode else suite.consumer)
        manifest = {
            "name": f"{name}-contract-tests",
            "version": config.version,
            "private": True,
            "description": suite.name,
            "scripts": self.scripts(config),
            "devDependencies": {d.name: d.version for d in self.dependencies(config)},
            "engines": {"node": ">=18"},
        }
        if config.framework == "vitest":
            manifest["type"] = "module"
        return json.dumps(manifest, indent=2) + "\n"


    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        return {"test": TEST_SCRIPTS[config.framework]}

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        deps = [Dependency(name="@pact-foundation/pact", version=PACT_VERSION, scope="test",
                           manager=config.package_manager, description="Pact consumer and provider DSL")]
        for name, version in FRAMEWORK_PACKAGES[config.framework]:
            deps.append(Dependency(name=name, version=version, scope="test", manager=config.package_manager,
                                   description=f"{config.framework} test runner"))
        return deps

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        manager = config.package_manager
        steps = [
            "Install Node.js 18 or newer",
            f"Install dependencies: {manager} install",
        ]
        if suite.is_provider_mode:
            steps.append(f"Copy the consumer pact file into pacts/{suite.consumer}-{suite.provider}.json")
            steps.append(f"Start the provider and export PROVIDER_BASE_URL (default {suite.setup.base_url})")
        steps.append(f"Run the tests: {RUN_COMMANDS[manager]}")
        if not suite.is_provider_mode:
            steps.append("Share the generated pacts/ directory with the provider team")
        return steps


# -- literals -----------------------------------------------------------------

def js_string(text: str, quotes: str = "single") -> str:
    quote = '"' if quotes == "double" else "'"
    escaped = (
        str(text)
        .replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"{quote}{escaped}{quote}"


def js_literal(value: Any, indent: str = "", quotes: str = "single") -> str:
    """Render a JSON-like value as a JavaScript literal, keeping NaN and Infinity."""
    inner = indent + "  "
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return js_string(value, quotes)
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = []
        for key, item in value.items():
            key = str(key)
            rendered_key = key if IDENTIFIER.match(key) else js_string(key, quotes)
            items.append(f"{inner}{rendered_key}: {js_literal(item, inner, quotes)},")
        return "{\n" + "\n".join(items) + f"\n{indent}}}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{inner}{js_literal(item, inner, quotes)}," for item in value]
        return "[\n" + "\n".join(items) + f"\n{indent}]"
    return js_string(str(value), quotes)
