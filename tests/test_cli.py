import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from api_contract_gen.cli import main
from api_contract_gen.errors import ContractGenError

FIXTURES = Path(__file__).parent / "fixtures"


class TestCliGenerate:
    def test_generate_defaults(self, tmp_path):
        out_dir = tmp_path / "out"
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(out_dir), "--seed", "1",
        ])

        assert result.exit_code == 0, result.output
        assert "Found 6 operations in 'Pet Store API'." in result.output
        assert (out_dir / "tests" / "PetStoreAPIConsumer_consumer.test.js").exists()
        assert (out_dir / "package.json").exists()
        assert (out_dir / "README.md").exists()

    def test_generate_go_provider_with_validation(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path),
            "--language", "go",
            "--provider-mode",
            "--seed", "3",
            "--validate",
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "provider" / "pet_store_api_provider_test.go").exists()
        assert (tmp_path / "go.mod").read_text().startswith("module ")
        assert "All generated files passed validation." in result.output

    def test_generate_categories(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path),
            "--language", "python",
            "--category", "success",
            "--category", "auth",
        ])

        assert result.exit_code == 0, result.output
        source = (tmp_path / "tests" / "consumer" / "test_pet_store_api_consumer_consumer.py").read_text()
        assert "def test_get_pets_success" in source
        assert "boundary" not in source

    def test_generate_from_config_file(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path),
            "--config", str(FIXTURES / "config.yaml"),
        ])

        assert result.exit_code == 0, result.output
        assert "Rendering java (junit4, gradle)..." in result.output
        assert (tmp_path / "build.gradle").exists()
        provider_dir = tmp_path / "src" / "test" / "java" / "com" / "example" / "petstoreapi" / "provider"
        assert (provider_dir / "PetStoreApiProviderTest.java").exists()

    def test_cli_flags_override_config(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path),
            "--config", str(FIXTURES / "config.yaml"),
            "--package-manager", "maven",
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "pom.xml").exists()
        assert not (tmp_path / "build.gradle").exists()

    def test_invalid_framework(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "generate", str(FIXTURES / "petstore.yaml"),
            "-o", str(tmp_path / "out"),
            "--language", "go",
            "--framework", "jest",
        ])

        assert result.exit_code == 1
        assert "Invalid configuration:" in result.output
        assert "framework: Framework 'jest' is not supported for go" in result.output
        assert not (tmp_path / "out").exists()

    def test_parse_failure(self, tmp_path):
        broken = tmp_path / "broken.yaml"
        broken.write_text("openapi: 3.0.0\n")
        runner = CliRunner()
        with patch("api_contract_gen.cli.load_openapi", side_effect=ContractGenError("no paths")):
            result = runner.invoke(main, ["generate", str(broken), "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "no paths" in result.output

    def test_missing_document(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["generate", str(tmp_path / "absent.yaml"), "-o", str(tmp_path)])
        assert result.exit_code != 0


class TestCliAnalyze:
    def test_analyze(self):
        runner = CliRunner()
        result = runner.invoke(main, ["analyze", str(FIXTURES / "petstore.yaml")])

        assert result.exit_code == 0, result.output
        assert "Pet Store API" in result.output
        assert "Endpoints:         6" in result.output


class TestCliLanguages:
    def test_lists_every_backend(self):
        runner = CliRunner()
        result = runner.invoke(main, ["languages"])

        assert result.exit_code == 0, result.output
        for line in ("javascript (JavaScript)", "java (Java)", "csharp (C#)", "python (Python)", "go (Go)"):
            assert line in result.output
        assert "junit5, junit4, testng, spock" in result.output


class TestCliSuite:
    def test_suite_json(self, tmp_path):
        output_file = tmp_path / "suite" / "petstore.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "suite", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
            "--seed", "1",
            "--category", "error",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output_file.read_text())
        assert data["provider"] == "PetStoreAPI"
        assert data["consumer"] == "PetStoreAPIConsumer"
        assert data["is_provider_mode"] is False
        assert {t["type"] for t in data["tests"]} == {"error"}

    def test_suite_provider_mode(self, tmp_path):
        output_file = tmp_path / "suite.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "suite", str(FIXTURES / "petstore.yaml"),
            "-o", str(output_file),
            "--provider-mode",
            "--category", "success",
        ])

        assert result.exit_code == 0, result.output
        assert json.loads(output_file.read_text())["is_provider_mode"] is True
