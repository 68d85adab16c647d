"""Unit tests for CLI command behavior."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from flexmap.cli import cli as cli_module
from flexmap.errors import ConfigurationError

runner = CliRunner()

MAPPING_MODULE = '''
from dataclasses import dataclass

from flexmap import MappingConfiguration


@dataclass
class Person:
    name: str = ""
    age: int = 0


@dataclass
class PersonDto:
    name: str = ""
    age: str = ""


def good():
    return MappingConfiguration().for_types(Person, PersonDto).map_property("name", "name")


def bad():
    return MappingConfiguration().for_types(Person, PersonDto).map_property("age", "age")


def not_a_config():
    return 42
'''


@pytest.fixture
def mapping_module(tmp_path: Path) -> Path:
    """Write a module exposing configuration factories."""
    path = tmp_path / "mapping_factories.py"
    path.write_text(MAPPING_MODULE)
    return path


def test_help_shows_commands() -> None:
    """Ensure top-level help lists the subcommands."""
    result = runner.invoke(cli_module.app, ["--help"])
    assert result.exit_code == 0
    assert "describe" in result.output
    assert "validate" in result.output
    assert "providers" in result.output


def test_describe_prints_descriptors() -> None:
    """Print each property with its type and access flags."""
    result = runner.invoke(cli_module.app, ["describe", "flexmap.configuration:PropertyMapping"])
    assert result.exit_code == 0, result.output
    assert "flexmap.configuration.PropertyMapping" in result.output
    assert "source_property: str [r-]" in result.output
    assert "priority: int [r-]" in result.output


def test_describe_rejects_malformed_reference() -> None:
    """Exit with the argument error code for references without a colon."""
    result = runner.invoke(cli_module.app, ["describe", "flexmap.configuration"])
    assert result.exit_code == 2
    assert "MODULE:NAME" in result.output


def test_describe_rejects_non_class(mapping_module: Path) -> None:
    """Refuse to describe functions."""
    result = runner.invoke(cli_module.app, ["describe", f"{mapping_module}:good"])
    assert result.exit_code == 2
    assert "not a class" in result.output


def test_validate_success(mapping_module: Path) -> None:
    """Report validated pairs and mapping counts."""
    result = runner.invoke(cli_module.app, ["validate", f"{mapping_module}:good"])
    assert result.exit_code == 0, result.output
    assert "1 type pair(s), 1 property mapping(s)" in result.output
    assert "Person -> PersonDto" in result.output


def test_validate_failure_uses_configuration_exit_code(mapping_module: Path) -> None:
    """Exit with the configuration error code on failed validation."""
    result = runner.invoke(cli_module.app, ["validate", f"{mapping_module}:bad"])
    assert result.exit_code == ConfigurationError.exit_code
    assert "ConfigurationError" in result.output
    assert "Traceback" not in result.output


def test_validate_debug_prints_traceback(mapping_module: Path) -> None:
    """Include traceback details with --debug."""
    result = runner.invoke(cli_module.app, ["--debug", "validate", f"{mapping_module}:bad"])
    assert result.exit_code == ConfigurationError.exit_code
    assert "Traceback" in result.output


def test_validate_requires_configuration(mapping_module: Path) -> None:
    """Reject factories that do not return a configuration."""
    result = runner.invoke(cli_module.app, ["validate", f"{mapping_module}:not_a_config"])
    assert result.exit_code == 2
    assert "did not produce a MappingConfiguration" in result.output


def test_validate_restricted_to_pairs(mapping_module: Path) -> None:
    """Validate only the pairs named with --pair."""
    result = runner.invoke(
        cli_module.app,
        ["validate", f"{mapping_module}:good", "--pair", "PersonDto:Person"],
    )
    assert result.exit_code == 0, result.output
    assert "1 type pair(s), 0 property mapping(s)" in result.output


def test_validate_rejects_malformed_pair(mapping_module: Path) -> None:
    """Reject --pair values without a separator."""
    result = runner.invoke(
        cli_module.app, ["validate", f"{mapping_module}:good", "--pair", "Person"]
    )
    assert result.exit_code != 0
    assert "SOURCE:DESTINATION" in result.output


def test_providers_lists_builtin_conversions() -> None:
    """List the built-in provider and its conversions."""
    result = runner.invoke(cli_module.app, ["providers"])
    assert result.exit_code == 0, result.output
    assert "builtin" in result.output
    assert "bool -> str (_bool_to_text)" in result.output


def test_providers_reports_bad_module() -> None:
    """Exit non-zero when a provider module cannot be imported."""
    result = runner.invoke(
        cli_module.app, ["providers", "--provider-module", "flexmap_missing_module_xyz"]
    )
    assert result.exit_code == 1
    assert "ProviderError" in result.output
