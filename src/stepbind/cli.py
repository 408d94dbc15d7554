"""Command line interface for stepbind."""

import asyncio
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from stepbind.context import ResolverContext
from stepbind.core.config.settings import load_settings
from stepbind.core.domain.types import Binding, GherkinStep, MatchStatus, StepKeyword
from stepbind.core.matching.normalization import normalize_whitespace

_ROOTS_ARGUMENT = click.argument(
    "roots", nargs=-1, type=click.Path(exists=True, file_okay=False, path_type=Path)
)

_STATUS_ICONS = {
    MatchStatus.UNIQUE: "✅",
    MatchStatus.AMBIGUOUS: "⚠️ ",
    MatchStatus.UNMATCHED: "❌",
}


def echo_info(message: str) -> None:
    click.echo(f"ℹ️  {message}")


def _build_context(roots: tuple[Path, ...], **overrides: object) -> ResolverContext:
    """Create a resolver context from CLI roots and option overrides."""
    paths = list(roots) or [Path.cwd()]
    try:
        settings = load_settings(paths[0], **overrides)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return ResolverContext.create(paths, settings)


def parse_step(step_text: str) -> GherkinStep:
    """Split ``Given some text`` into a step with its keyword.

    Raises:
        click.BadParameter: If the keyword is missing or is And/But.
    """
    keyword_text, _, text = step_text.strip().partition(" ")
    try:
        keyword = StepKeyword(keyword_text.capitalize())
    except ValueError as e:
        raise click.BadParameter(
            f"Step must start with Given, When or Then: {step_text!r}",
            param_hint="--step",
        ) from e
    if keyword.is_conjunction:
        raise click.BadParameter(
            f"{keyword.value} needs a preceding step; use Given, When or Then",
            param_hint="--step",
        )
    return GherkinStep(
        keyword=keyword,
        effective_keyword=keyword,
        text=text.strip(),
        full_text=step_text.strip(),
    )


def _format_location(binding: Binding) -> str:
    return f"{binding.location.path}:{binding.location.line + 1}"


@click.group()
@click.version_option(package_name="stepbind")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """stepbind - Resolve BDD feature steps to their step definitions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_ROOTS_ARGUMENT
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum confidence for a provider to be active (overrides config)",
)
@click.option("--debug", is_flag=True, help="Log detection details")
@click.option(
    "--output-format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format for the report",
)
def detect(
    roots: tuple[Path, ...],
    threshold: float | None,
    debug: bool,
    output_format: str,
) -> None:
    """Detect which BDD frameworks the workspace uses."""
    context = _build_context(roots, active_threshold=threshold, debug=debug or None)
    selection = asyncio.run(context.provider_manager.detect_providers())

    if output_format == "json":
        payload = {
            "detected_at": selection.detected_at.isoformat(),
            "active": list(selection.active_ids),
            "primary": selection.primary.id if selection.primary else None,
            "active_threshold": selection.active_threshold,
            "providers": [entry.to_dict() for entry in selection.report],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(context.provider_manager.get_detection_report())


@cli.command()
@_ROOTS_ARGUMENT
@click.option(
    "--case-insensitive",
    is_flag=True,
    help="Compile binding patterns case-insensitively",
)
@click.option(
    "--output-format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format for the binding list",
)
def bindings(
    roots: tuple[Path, ...], case_insensitive: bool, output_format: str
) -> None:
    """List step bindings found in the workspace."""
    context = _build_context(roots, case_insensitive=case_insensitive or None)
    stats = asyncio.run(context.refresh())
    found = context.index.all_bindings()

    if output_format == "json":
        click.echo(
            json.dumps(
                {
                    "stats": stats.to_dict(),
                    "bindings": [binding.to_dict() for binding in found],
                },
                indent=2,
            )
        )
        return

    if not found:
        echo_info("No bindings found")
        return

    table = Table(title=f"{stats.binding_count} bindings in {stats.file_count} files")
    table.add_column("Keyword", style="cyan")
    table.add_column("Pattern")
    table.add_column("Symbol", style="green")
    table.add_column("Location", style="dim")
    for binding in found:
        table.add_row(
            binding.keyword.value,
            binding.pattern_raw,
            binding.declaring_symbol,
            _format_location(binding),
        )
    Console().print(table)


@cli.command()
@_ROOTS_ARGUMENT
@click.option(
    "--step",
    "step_text",
    required=True,
    help='Step to resolve, keyword included (e.g. "Given a user named Alice")',
)
@click.option(
    "--case-insensitive",
    is_flag=True,
    help="Compile binding patterns case-insensitively",
)
@click.pass_context
def resolve(
    ctx: click.Context,
    roots: tuple[Path, ...],
    step_text: str,
    case_insensitive: bool,
) -> None:
    """Resolve one step to its binding; exits 1 unless exactly one matches."""
    step = parse_step(step_text)
    context = _build_context(roots, case_insensitive=case_insensitive or None)
    asyncio.run(context.refresh())
    result = context.resolve(step)

    icon = _STATUS_ICONS[result.status]
    click.echo(f"{icon} {result.status.value}: {step.full_text}")
    for binding in result.bindings:
        click.echo(
            f"  {binding.keyword.value}({binding.pattern_raw!r}) -> "
            f"{binding.declaring_symbol} at {_format_location(binding)}"
        )
        arguments = binding.matcher.arguments(normalize_whitespace(step.text))
        if arguments:
            click.echo(f"    arguments: {', '.join(repr(a) for a in arguments)}")

    if result.status is not MatchStatus.UNIQUE:
        ctx.exit(1)
