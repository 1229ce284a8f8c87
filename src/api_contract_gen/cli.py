"""CLI entry point for api-contract-gen."""

import logging
from pathlib import Path

import click

from api_contract_gen.analysis.schema import COMPOSITION_STRATEGIES
from api_contract_gen.codegen.config import FileConfig, LANGUAGE_METADATA, load_config
from api_contract_gen.codegen.factory import LanguageGeneratorFactory
from api_contract_gen.errors import ContractGenError, InvalidConfiguration
from api_contract_gen.generator.models import TEST_TYPES, TestSuite
from api_contract_gen.generator.suite import GeneratorOptions, TestGenerator
from api_contract_gen.generator.validator import validate_files
from api_contract_gen.parser.complexity import analyze_complexity
from api_contract_gen.parser.swagger import load_openapi


def _fail(error: Exception) -> click.ClickException:
    """Turn a library error into a one-issue-per-line CLI error."""
    if isinstance(error, InvalidConfiguration):
        lines = ["Invalid configuration:"]
        lines += [f"  {i.field}: {i.message} ({i.code})" for i in error.issues]
        return click.ClickException("\n".join(lines))
    return click.ClickException(str(error))


def _build_suite(doc_path: Path, file_config: FileConfig) -> TestSuite:
    click.echo(f"Parsing {doc_path}...")
    spec = load_openapi(doc_path)
    click.echo(f"Found {len(spec.operations)} operations in '{spec.title}'.")

    meta = LANGUAGE_METADATA.get(file_config.language)
    options = GeneratorOptions(
        language=file_config.language,
        framework=file_config.framework or (meta.default_framework if meta else ""),
        is_provider_mode=file_config.provider_mode,
        categories=file_config.categories or list(TEST_TYPES),
        composition_strategy=file_config.composition_strategy,
        seed=file_config.seed,
        consumer=file_config.consumer,
        provider=file_config.provider,
    )
    suite = TestGenerator(options).generate_test_suite(spec)
    click.echo(f"Synthesized {len(suite.tests)} test cases for provider '{suite.provider}'.")
    for label in suite.metadata.skipped:
        click.echo(f"  Skipped {label}")
    return suite


def _merge_config(config_path: Path | None, **overrides) -> FileConfig:
    file_config = load_config(config_path) if config_path else FileConfig()
    updates = {k: v for k, v in overrides.items() if v not in (None, ())}
    if "categories" in updates:
        updates["categories"] = list(updates["categories"])
    return file_config.model_copy(update=updates)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Contract Gen — generate Pact contract tests from OpenAPI documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output directory for the generated project.")
@click.option("--language", type=click.Choice(sorted(LANGUAGE_METADATA)), default=None, help="Target language.")
@click.option("--framework", default=None, help="Test framework (defaults to the language default).")
@click.option("--package-manager", default=None, help="Package manager (defaults to the language default).")
@click.option("--provider-mode", is_flag=True, help="Emit provider verification and load tests.")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), default=None, help="YAML config file.")
@click.option("--seed", type=int, default=None, help="Seed for reproducible mock data.")
@click.option("--category", "categories", multiple=True, type=click.Choice(TEST_TYPES), help="Test category to include (repeatable).")
@click.option("--composition-strategy", type=click.Choice(COMPOSITION_STRATEGIES), default=None, help="How oneOf/anyOf schemas are resolved.")
@click.option("--validate", is_flag=True, help="Check generated files for syntax problems.")
def generate(doc_path: Path, output: Path, language, framework, package_manager, provider_mode, config_path,
             seed, categories, composition_strategy, validate: bool):
    """Generate a contract-test project from an OpenAPI document."""
    try:
        file_config = _merge_config(
            config_path,
            language=language,
            framework=framework,
            package_manager=package_manager,
            provider_mode=provider_mode or None,
            seed=seed,
            categories=categories,
            composition_strategy=composition_strategy,
        )
        suite = _build_suite(doc_path, file_config)
        language_config = file_config.language_config()
        click.echo(f"Rendering {language_config.language} ({language_config.framework}, "
                   f"{language_config.package_manager})...")
        result = LanguageGeneratorFactory().generate_tests(suite, language_config)
    except (ContractGenError, ValueError) as e:
        raise _fail(e) from e

    output.mkdir(parents=True, exist_ok=True)
    for path in result.write(output):
        click.echo(f"  Created {path}")
    click.echo(f"Generated {len(result.files)} files in {output}")

    if validate:
        errors = validate_files(result.file_map())
        if errors:
            for filename, error in errors.items():
                click.echo(f"  {filename}: {error}", err=True)
            raise click.ClickException(f"{len(errors)} generated file(s) failed validation")
        click.echo("All generated files passed validation.")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
def analyze(doc_path: Path):
    """Estimate the size and complexity of an API document."""
    try:
        spec = load_openapi(doc_path)
    except ContractGenError as e:
        raise _fail(e) from e
    complexity = analyze_complexity(spec)
    click.echo(f"Title:             {spec.title}")
    click.echo(f"Size:              {complexity.size}")
    click.echo(f"Endpoints:         {complexity.endpoint_count}")
    click.echo(f"Schemas:           {complexity.schema_count}")
    click.echo(f"Avg parameters:    {complexity.average_parameters:.1f}")
    click.echo(f"Max schema depth:  {complexity.max_schema_depth}")
    click.echo(f"Score:             {complexity.score}")
    click.echo(f"Estimated time:    {complexity.estimated_processing_ms} ms")
    for warning in complexity.warnings:
        click.echo(f"Warning: {warning}")


@main.command()
def languages():
    """List the available language backends."""
    factory = LanguageGeneratorFactory()
    for language in factory.get_supported_languages():
        caps = factory.get_generator_capabilities(language)
        meta = caps["metadata"]
        click.echo(f"{language} ({meta.get('display_name', language)})")
        click.echo(f"  frameworks:       {', '.join(caps['frameworks'])}")
        click.echo(f"  package managers: {', '.join(caps['package_managers'])}")
        features = [name for name, enabled in caps["features"].items() if enabled]
        click.echo(f"  features:         {', '.join(features)}")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output JSON file for the test suite.")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path), default=None, help="YAML config file.")
@click.option("--provider-mode", is_flag=True, help="Mark the suite as provider mode.")
@click.option("--seed", type=int, default=None, help="Seed for reproducible mock data.")
@click.option("--category", "categories", multiple=True, type=click.Choice(TEST_TYPES), help="Test category to include (repeatable).")
def suite(doc_path: Path, output: Path, config_path, provider_mode, seed, categories):
    """Dump the synthesized TestSuite as JSON."""
    try:
        file_config = _merge_config(config_path, provider_mode=provider_mode or None, seed=seed, categories=categories)
        test_suite = _build_suite(doc_path, file_config)
    except (ContractGenError, ValueError) as e:
        raise _fail(e) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(test_suite.model_dump_json(indent=2), encoding="utf-8")
    click.echo(f"Test suite saved to {output}")
