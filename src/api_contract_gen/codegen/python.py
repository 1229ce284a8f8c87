"""Python backend — pact-python consumer tests, provider verification and load tests."""

import math
from typing import Any

from api_contract_gen.generator.models import TestCase, TestSuite
from .base import (
    LanguageBackend,
    contract_cases,
    performance_cases,
    performance_row,
    query_string,
    reindent,
)
from .config import LanguageConfig
from .naming import to_snake
from .output import Dependency, GeneratedFile

PACKAGES = [
    ("pact-python", "2.0.1"),
    ("requests", "2.31.0"),
]

FRAMEWORK_PACKAGES = {
    "pytest": [("pytest", "7.4.0")],
    "unittest": [],
    "nose2": [("nose2", "0.14.0")],
}

RUN_COMMANDS = {"pytest": "pytest", "unittest": "python -m unittest discover -s tests", "nose2": "nose2 -v"}

CONSUMER_TEMPLATE = '''"""Pact consumer tests: {{consumer_name}} -> {{provider_name}}."""

import os
{{#if unittest_style}}import unittest
{{/if}}
{{#if pytest_style}}import pytest
{{/if}}import requests
from pact import Consumer, Provider

PACT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "pacts")
MOCK_PORT = int(os.environ.get("PACT_MOCK_PORT", "1234"))

pact = Consumer({{consumer}}).has_pact_with(
    Provider({{provider}}), port=MOCK_PORT, pact_dir=PACT_DIR, log_dir=PACT_DIR,
)


def send(method, path, query="", headers=None, body=None):
    url = pact.uri + path + ("?" + query if query else "")
    if isinstance(body, str):
        return requests.request(method, url, headers=headers, data=body, timeout={{timeout}})
    return requests.request(method, url, headers=headers, json=body, timeout={{timeout}})
{{#if pytest_style}}

@pytest.fixture(scope="module", autouse=True)
def pact_service():
    pact.start_service()
    yield
    pact.stop_service()
{{/if}}{{#if unittest_style}}

class {{class_name}}(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        pact.start_service()

    @classmethod
    def tearDownClass(cls):
        pact.stop_service()
{{/if}}{{#each interactions}}{{lead}}
{{indent}}{{signature}}
{{inner}}(pact
{{inner}} .given({{given}})
{{inner}} .upon_receiving({{description}})
{{inner}} .with_request({{request_args}})
{{inner}} .will_respond_with({{response_args}}))

{{inner}}with pact:
{{inner}}    response = send({{send_args}})

{{inner}}{{check}}
{{/each}}'''

PROVIDER_TEMPLATE = '''"""Pact provider verification for {{provider_name}}."""

import json
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
{{#if unittest_style}}import unittest
{{/if}}
from pact import Verifier

logger = logging.getLogger(__name__)

PROVIDER_BASE_URL = os.environ.get("PROVIDER_BASE_URL", {{base_url}})
PACT_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "pacts", {{pact_file}})
STATE_PORT = int(os.environ.get("PROVIDER_STATE_PORT", "9001"))


def prepare_state(state):
    """Seed or reset provider data for one consumer state."""
    logger.info("Preparing provider state: %s", state)


PROVIDER_STATES = {
{{#each states}}    {{this}}: prepare_state,
{{/each}}}


class StateHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        payload = json.loads(self.rfile.read(length) or b"{}")
        state = payload.get("state")
        handler = PROVIDER_STATES.get(state)
        if handler is not None:
            handler(state)
        self.send_response(200)
        self.end_headers()

    def log_message(self, format, *args):
        logger.debug(format, *args)


def verify_pacts():
    server = HTTPServer(("localhost", STATE_PORT), StateHandler)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    try:
        verifier = Verifier(provider={{provider}}, provider_base_url=PROVIDER_BASE_URL)
        return verifier.verify_pacts(
            PACT_FILE,
            provider_states_setup_url=f"http://localhost:{STATE_PORT}/_pact/provider_states",
        )
    finally:
        server.shutdown()
        server.server_close()
{{#if pytest_style}}

def test_provider_honours_consumer_pacts():
    return_code, logs = verify_pacts()
    assert return_code == 0, logs
{{/if}}{{#if unittest_style}}

class {{class_name}}(unittest.TestCase):
    def test_provider_honours_consumer_pacts(self):
        return_code, logs = verify_pacts()
        self.assertEqual(return_code, 0, logs)
{{/if}}'''

PERFORMANCE_TEMPLATE = '''"""Load tests for {{provider_name}}."""

import json
import math
import os
import threading
import time
{{#if unittest_style}}import unittest
{{/if}}from concurrent.futures import ThreadPoolExecutor

{{#if pytest_style}}import pytest
{{/if}}import requests

BASE_URL = os.environ.get("PROVIDER_BASE_URL", {{base_url}})

SCENARIOS = {{scenarios}}


def build_body(scenario):
    if not scenario["body"] and not scenario["payload_bytes"]:
        return None
    body = json.loads(scenario["body"]) if scenario["body"] else {}
    if scenario["payload_bytes"] and isinstance(body, dict):
        body["padding"] = "x" * scenario["payload_bytes"]
    return json.dumps(body)


def timed_request(session, scenario, body):
    """Returns (ok, elapsed_ms) after up to retry_attempts retries on 5xx or network errors."""
    url = BASE_URL + scenario["path"] + ("?" + scenario["query"] if scenario["query"] else "")
    for attempt in range(scenario["retry_attempts"] + 1):
        started = time.monotonic()
        last = attempt == scenario["retry_attempts"]
        try:
            response = session.request(
                scenario["method"], url, headers=scenario["headers"], data=body,
                timeout=scenario["timeout"] / 1000,
            )
            elapsed = (time.monotonic() - started) * 1000
            if response.status_code < 500 or last:
                return response.status_code < 400, elapsed
        except requests.RequestException:
            if last:
                return False, (time.monotonic() - started) * 1000
        time.sleep(0.1 * 2 ** attempt)
    return False, 0


def run_load(scenario):
    body = build_body(scenario)
    deadline = time.monotonic() + scenario["duration"] if scenario["duration"] else math.inf
    lock = threading.Lock()
    issued = [0]

    def next_slot():
        with lock:
            if issued[0] >= scenario["request_count"] or time.monotonic() >= deadline:
                return False
            issued[0] += 1
            return True

    def worker():
        results = []
        with requests.Session() as session:
            while next_slot():
                results.append(timed_request(session, scenario, body))
        return results

    with ThreadPoolExecutor(max_workers=scenario["concurrency"]) as pool:
        futures = [pool.submit(worker) for _ in range(scenario["concurrency"])]
        results = [r for f in futures for r in f.result()]

    total = len(results) or 1
    successes = sum(1 for ok, _ in results if ok)
    return {
        "total": len(results),
        "success_rate": successes / total,
        "error_rate": (len(results) - successes) / total,
        "max_response_time": max((elapsed for _, elapsed in results), default=0),
    }
{{#if pytest_style}}

@pytest.mark.parametrize("scenario", SCENARIOS, ids=[s["name"] for s in SCENARIOS])
def test_load(scenario):
    result = run_load(scenario)
    assert result["success_rate"] >= scenario["min_success_rate"], result
    assert result["error_rate"] <= scenario["max_error_rate"], result
    assert result["max_response_time"] <= scenario["max_response_time"], result
{{/if}}{{#if unittest_style}}

class {{class_name}}(unittest.TestCase):
    def test_load(self):
        for scenario in SCENARIOS:
            with self.subTest(scenario["name"]):
                result = run_load(scenario)
                self.assertGreaterEqual(result["success_rate"], scenario["min_success_rate"], result)
                self.assertLessEqual(result["error_rate"], scenario["max_error_rate"], result)
                self.assertLessEqual(result["max_response_time"], scenario["max_response_time"], result)
{{/if}}'''

REQUIREMENTS_TEMPLATE = "{{#each packages}}{{name}}=={{version}}\n{{/each}}"

PYTEST_INI_TEMPLATE = """[pytest]
testpaths = tests
log_cli = true
log_cli_level = {{level}}
"""

CONFTEST_TEMPLATE = '''"""Shared pytest configuration."""

import logging

import pytest


@pytest.fixture(scope="session", autouse=True)
def pact_logging():
    logging.getLogger("pact").setLevel(logging.{{level}})
'''

NOSE2_TEMPLATE = """[unittest]
start-dir = tests
code-directories = tests

[log-capture]
always-on = True
"""

SETUP_TEMPLATE = """from setuptools import setup

setup(
    name="{{dist_name}}",
    version="{{project_version}}",
    description="Generated contract tests",
    python_requires=">=3.9",
    packages=[],
    install_requires=[
{{#each packages}}        "{{name}}=={{version}}",
{{/each}}    ],
)
"""

PYPROJECT_TEMPLATE = """[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "{{dist_name}}"
version = "{{project_version}}"
description = "Generated contract tests"
requires-python = ">=3.9"
dependencies = [
{{#each packages}}    "{{name}}=={{version}}",
{{/each}}]

[tool.setuptools]
packages = []
"""

POETRY_TEMPLATE = """[tool.poetry]
name = "{{name}}"
version = "{{project_version}}"
description = "Generated contract tests"
authors = []
package-mode = false

[tool.poetry.dependencies]
python = "^3.9"
{{#each packages}}{{name}} = "{{version}}"
{{/each}}
[build-system]
requires = ["poetry-core"]
build-backend = "poetry.core.masonry.api"
"""

PIPFILE_TEMPLATE = """[[source]]
url = "https://pypi.org/simple"
verify_ssl = true
name = "pypi"

[dev-packages]
{{#each packages}}{{name}} = "=={{version}}"
{{/each}}
[requires]
python_version = "3.11"
"""

CONDA_TEMPLATE = """name: {{name}}
channels:
  - conda-forge
dependencies:
  - python=3.11
  - pip
  - pip:
{{#each packages}}      - {{name}}=={{version}}
{{/each}}"""


class PythonGenerator(LanguageBackend):
    language = "python"

    @classmethod
    def get_features(cls) -> dict[str, bool]:
        return {**super().get_features(), "fixtures": True, "type_hints": True}

    def test_dir(self, suite: TestSuite) -> str:
        return "tests"

    def _module(self, name: str) -> str:
        return to_snake(name) or "api"

    # -- test files -----------------------------------------------------------

    def consumer_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        path = f"tests/consumer/test_{self._module(suite.consumer)}_consumer.py"
        content = self._style(self._render_consumer(suite, config), config)
        return [self.file(path, content, "test", f"pact-python consumer tests for {suite.consumer}")]

    def provider_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        name = self._module(suite.provider)
        return [
            self.file(f"tests/provider/test_{name}_provider.py", self._style(self._render_provider(suite, config), config),
                      "test", f"pact-python provider verification for {suite.provider}"),
            self.file(f"tests/provider/test_{name}_performance.py",
                      self._style(self._render_performance(suite, config), config),
                      "test", f"Load tests for {suite.provider}"),
        ]

    def _style_flags(self, config: LanguageConfig) -> dict[str, bool]:
        pytest_style = config.framework == "pytest"
        return {"pytest_style": pytest_style, "unittest_style": not pytest_style}

    def _render_consumer(self, suite: TestSuite, config: LanguageConfig) -> str:
        flags = self._style_flags(config)
        indent = "" if flags["pytest_style"] else "    "
        context = {
            **flags,
            "consumer_name": suite.consumer,
            "provider_name": suite.provider,
            "consumer": py_literal(suite.consumer),
            "provider": py_literal(suite.provider),
            "timeout": config.advanced.timeouts.request / 1000,
            "class_name": self.class_name(f"{suite.consumer}ConsumerPactTest", config),
            "interactions": [self._interaction_row(test, config, indent) for test in contract_cases(suite)],
        }
        return self.render(CONSUMER_TEMPLATE, context, "consumer test").rstrip("\n") + "\n"

    def _interaction_row(self, test: TestCase, config: LanguageConfig, indent: str) -> dict:
        request = test.request
        response = test.response
        inner = indent + "    "
        width = config.code_style.max_line_length
        request_args = [py_literal(request.method), py_literal(request.path)]
        if request.body is not None:
            request_args.append(f"body={py_literal(request.body, inner + '     ', width)}")
        if request.headers:
            request_args.append(f"headers={py_literal(request.headers, inner + '     ', width)}")
        if request.query:
            request_args.append(f"query={py_literal(query_string(request.query))}")
        response_args = [str(response.status)]
        if response.headers:
            response_args.append(f"headers={py_literal(response.headers, inner + '     ', width)}")
        if response.body is not None:
            response_args.append(f"body={py_literal(response.body, inner + '     ', width)}")

        send_args = [py_literal(request.method), py_literal(request.path), py_literal(query_string(request.query))]
        send_args.append(py_literal(request.headers, inner + "    ", width) if request.headers else "None")
        if request.body is not None:
            send_args.append(py_literal(request.body, inner + "    ", width))

        method = f"test_{self.method_name(test, config)}"
        return {
            "lead": "" if indent else "\n",
            "indent": indent,
            "inner": inner,
            "signature": f"def {method}(self):" if indent else f"def {method}():",
            "given": py_literal(test.provider_state or test.scenario.given),
            "description": py_literal(test.description),
            "request_args": ", ".join(request_args),
            "response_args": ", ".join(response_args),
            "send_args": ", ".join(send_args),
            "check": (f"self.assertEqual(response.status_code, {response.status})" if indent
                      else f"assert response.status_code == {response.status}"),
        }

    def _render_provider(self, suite: TestSuite, config: LanguageConfig) -> str:
        context = {
            **self._style_flags(config),
            "provider_name": suite.provider,
            "provider": py_literal(suite.provider),
            "base_url": py_literal(suite.setup.base_url),
            "pact_file": py_literal(f"{suite.consumer}-{suite.provider}.json"),
            "states": [py_literal(state) for state in suite.setup.provider_states],
            "class_name": self.class_name(f"{suite.provider}ProviderPactTest", config),
        }
        return self.render(PROVIDER_TEMPLATE, context, "provider test")

    def _render_performance(self, suite: TestSuite, config: LanguageConfig) -> str:
        rows = [performance_row(t) for t in performance_cases(suite)]
        context = {
            **self._style_flags(config),
            "provider_name": suite.provider,
            "base_url": py_literal(suite.setup.base_url),
            "scenarios": py_literal(rows, "", config.code_style.max_line_length),
            "class_name": self.class_name(f"{suite.provider}PerformanceTest", config),
        }
        return self.render(PERFORMANCE_TEMPLATE, context, "performance test")

    def _style(self, text: str, config: LanguageConfig) -> str:
        return reindent(text, "    ", config.code_style.indent())

    # -- project files --------------------------------------------------------

    def project_files(self, suite: TestSuite, config: LanguageConfig) -> list[GeneratedFile]:
        role = "provider" if suite.is_provider_mode else "consumer"
        name = f"{self._module(suite.provider)}_contract_tests"
        context = {
            "name": name,
            "dist_name": name.replace("_", "-"),
            "project_version": config.version,
            "level": config.advanced.logging.level.upper(),
            "packages": [{"name": pkg, "version": version} for pkg, version in self._packages(config)],
        }
        files = [
            self.file("requirements.txt", self.render(REQUIREMENTS_TEMPLATE, context, "requirements.txt"),
                      "dependency", "pip requirements"),
            self.file("tests/__init__.py", "", "setup", "Test package marker"),
            self.file(f"tests/{role}/__init__.py", "", "setup", "Test package marker"),
        ]
        if config.framework == "pytest":
            files.append(self.file("pytest.ini", self.render(PYTEST_INI_TEMPLATE, context, "pytest.ini"),
                                   "config", "pytest configuration"))
            files.append(self.file("tests/conftest.py", self.render(CONFTEST_TEMPLATE, context, "conftest.py"),
                                   "config", "pytest fixtures"))
        elif config.framework == "nose2":
            files.append(self.file("nose2.cfg", NOSE2_TEMPLATE, "config", "nose2 configuration"))

        files.append(self.file("setup.py", self.render(SETUP_TEMPLATE, context, "setup.py"), "dependency",
                               "setuptools metadata"))
        if config.package_manager == "poetry":
            files.append(self.file("pyproject.toml", self.render(POETRY_TEMPLATE, context, "pyproject.toml"),
                                   "dependency", "Poetry project"))
        else:
            files.append(self.file("pyproject.toml", self.render(PYPROJECT_TEMPLATE, context, "pyproject.toml"),
                                   "dependency", "Project metadata"))
        if config.package_manager == "pipenv":
            files.append(self.file("Pipfile", self.render(PIPFILE_TEMPLATE, context, "Pipfile"), "dependency",
                                   "Pipenv manifest"))
        elif config.package_manager == "conda":
            files.append(self.file("environment.yml", self.render(CONDA_TEMPLATE, context, "environment.yml"),
                                   "dependency", "Conda environment"))
        files.append(self.file(".gitignore", "__pycache__/\n.pytest_cache/\npacts/\n*.log\n.venv/\n", "setup",
                               "Git ignore rules"))
        return files

    def _packages(self, config: LanguageConfig) -> list[tuple[str, str]]:
        return PACKAGES + FRAMEWORK_PACKAGES[config.framework]

    def scripts(self, config: LanguageConfig) -> dict[str, str]:
        return {"test": RUN_COMMANDS[config.framework]}

    def dependencies(self, config: LanguageConfig) -> list[Dependency]:
        return [
            Dependency(name=name, version=version, scope="test", manager=config.package_manager)
            for name, version in self._packages(config)
        ]

    def setup_instructions(self, suite: TestSuite, config: LanguageConfig) -> list[str]:
        install = {
            "pip": "pip install -r requirements.txt",
            "pipenv": "pipenv install --dev",
            "poetry": "poetry install",
            "conda": "conda env create -f environment.yml",
        }[config.package_manager]
        steps = ["Install Python 3.9 or newer", f"Install dependencies: {install}"]
        if suite.is_provider_mode:
            steps.append(f"Copy the consumer pact file into pacts/{suite.consumer}-{suite.provider}.json")
            steps.append(f"Start the provider and export PROVIDER_BASE_URL (default {suite.setup.base_url})")
        steps.append(f"Run the tests: {RUN_COMMANDS[config.framework]}")
        return steps


def py_literal(value: Any, indent: str = "", width: int = 88) -> str:
    """Render a JSON-like value as Python source, keeping NaN and infinities."""
    flat = _flat(value)
    if len(indent) + len(flat) <= width or not isinstance(value, (dict, list, tuple)) or not value:
        return flat
    inner = indent + "    "
    if isinstance(value, dict):
        items = [f"{inner}{py_literal(str(k))}: {py_literal(v, inner, width)}," for k, v in value.items()]
        return "{\n" + "\n".join(items) + f"\n{indent}}}"
    items = [f"{inner}{py_literal(v, inner, width)}," for v in value]
    return "[\n" + "\n".join(items) + f"\n{indent}]"


def _flat(value: Any) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return 'float("nan")'
        if math.isinf(value):
            return 'float("inf")' if value > 0 else 'float("-inf")'
        return repr(value)
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_flat(str(k))}: {_flat(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_flat(v) for v in value) + "]"
    if isinstance(value, str):
        return _string(value)
    return repr(value)


def _string(text: str) -> str:
    """Double-quoted string literal."""
    body = repr(text)
    if body.startswith("'") and '"' not in text:
        body = '"' + body[1:-1].replace("\\'", "'") + '"'
    return body
