#!/usr/bin/env python3
"""
flexmap.cli.cli

Typer-based CLI for inspecting mapped types, validating mapping
configurations and listing fallback converter providers.

Examples
--------
Install core + CLI:

    uv pip install -e ".[cli]"

Describe a type and validate a configuration factory:

    flexmap describe myapp.models:UserRecord
    flexmap validate myapp.mapping:build_config --pair UserRecord:UserDto
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

import typer

from flexmap.errors import ArgumentError, FlexmapError

app = typer.Typer(
    name="flexmap",
    help="Inspect and validate flexmap object-mapping configurations.",
    no_args_is_help=True,
)


# -----------------------------
# Utilities
# -----------------------------
def _print_error(exc: Exception, debug: bool) -> int:
    """Print a user-friendly error and return the process exit code.

    Parameters
    ----------
    exc : Exception
        Exception raised by a command.
    debug : bool
        Whether to include traceback details.

    Returns
    -------
    int
        Process exit code.
    """
    typer.echo(f"✗ {type(exc).__name__}: {exc}", err=True)
    if debug:
        typer.echo("\nTraceback:", err=True)
        typer.echo("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)
    code = getattr(exc, "exit_code", None)
    if isinstance(code, int) and code > 0:
        return code
    return 1


def _resolve_target(reference: str) -> tuple[Any, Any]:
    """Resolve ``module:attribute`` into ``(module, attribute)``.

    The module part may be an import path or a ``.py`` file path.
    """
    from flexmap.plugins.registry import import_module_or_path

    module_part, sep, attribute = reference.rpartition(":")
    if not sep or not module_part or not attribute:
        raise ArgumentError(f"Invalid reference '{reference}'. Use MODULE:NAME format.")
    module = import_module_or_path(module_part)
    try:
        return module, getattr(module, attribute)
    except AttributeError as exc:
        raise ArgumentError(f"Module '{module_part}' has no attribute '{attribute}'.") from exc


def _parse_pairs(module: Any, pair_items: list[str] | None) -> list[tuple[type, type]] | None:
    """Parse repeatable ``Source:Destination`` options against ``module``."""
    if not pair_items:
        return None
    parsed: list[tuple[type, type]] = []
    for item in pair_items:
        source_name, sep, destination_name = item.partition(":")
        if not sep or not source_name.strip() or not destination_name.strip():
            raise typer.BadParameter(f"Invalid pair '{item}'. Use SOURCE:DESTINATION format.")
        try:
            parsed.append(
                (getattr(module, source_name.strip()), getattr(module, destination_name.strip()))
            )
        except AttributeError as exc:
            raise typer.BadParameter(f"Unknown type in pair '{item}': {exc}") from exc
    return parsed


def _type_label(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


# -----------------------------
# Global options
# -----------------------------
@app.callback()
def _main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False, "--debug", help="Show full tracebacks and debug logging on error."
    ),
) -> None:
    """Initialize shared CLI state."""
    if debug:
        logging.basicConfig(level=logging.DEBUG)
    ctx.obj = {"debug": debug}


# -----------------------------
# Commands
# -----------------------------
@app.command("describe")
def describe_cmd(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Type reference as MODULE:TYPE."),
) -> None:
    """Print the property descriptors the mapper sees for a type."""
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        from flexmap.descriptors import descriptor_cache

        _module, tp = _resolve_target(target)
        if not isinstance(tp, type):
            raise ArgumentError(f"'{target}' is not a class.")
        typer.echo(f"{tp.__module__}.{tp.__qualname__}")
        for prop in descriptor_cache.properties_of(tp):
            access = ("r" if prop.readable else "-") + ("w" if prop.writable else "-")
            line = f"  {prop.name}: {_type_label(prop.value_type)} [{access}]"
            if prop.map_to:
                line += f" -> {prop.map_to}"
            typer.echo(line)
    except (FlexmapError, TypeError) as exc:
        raise typer.Exit(code=_print_error(exc, debug))


@app.command("validate")
def validate_cmd(
    ctx: typer.Context,
    target: str = typer.Argument(
        ...,
        help="Zero-argument factory returning a MappingConfiguration, as MODULE:FUNCTION.",
    ),
    pair: list[str] | None = typer.Option(
        None,
        "--pair",
        help="Restrict validation to SOURCE:DESTINATION types from the same module (repeatable).",
    ),
) -> None:
    """Run strict configuration validation and report the result."""
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        from flexmap.configuration import MappingConfiguration

        module, factory = _resolve_target(target)
        config = factory() if callable(factory) else factory
        if not isinstance(config, MappingConfiguration):
            raise ArgumentError(f"'{target}' did not produce a MappingConfiguration.")
        report = config.validate(pairs=_parse_pairs(module, pair))
        typer.echo(
            f"✓ Valid: {len(report.pairs)} type pair(s), "
            f"{report.property_mappings} property mapping(s)"
        )
        for item in report.pairs:
            typer.echo(f"  {item}")
        typer.echo(f"checks: {', '.join(report.checks)}")
    except FlexmapError as exc:
        raise typer.Exit(code=_print_error(exc, debug))


@app.command("providers")
def providers_cmd(
    ctx: typer.Context,
    provider_module: list[str] | None = typer.Option(
        None,
        "--provider-module",
        help="Provider module import path or file path (repeatable).",
    ),
) -> None:
    """List registered converter providers and the conversions they offer."""
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        from flexmap.plugins.registry import create_default_registry

        registry = create_default_registry(provider_module)
        for name in registry.names():
            typer.echo(name)
            for source, destination, func in registry.get(name).get_converters():
                label = getattr(func, "__name__", repr(func))
                typer.echo(f"  {_type_label(source)} -> {_type_label(destination)} ({label})")
    except FlexmapError as exc:
        raise typer.Exit(code=_print_error(exc, debug))


if __name__ == "__main__":
    app()
