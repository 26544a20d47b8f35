"""Command-line interface for model-adapters."""

import asyncio
import json
import logging
import sys
from typing import Optional, Tuple

import click

from .adapters.base import Message
from .config import RegistryConfig
from .registry import AdapterRegistry
from .tokens import estimate_tokens


@click.group()
@click.version_option(version="0.1.0", prog_name="model-adapters")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Call AI providers through resilient adapters."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_registry() -> AdapterRegistry:
    """Create a registry from environment variables."""
    return AdapterRegistry(RegistryConfig.from_env())


async def _send(name: str, message: str, system: str):
    async with get_registry() as registry:
        adapter = registry.get_adapter(name)
        if adapter is None:
            raise click.ClickException(f"No adapter available for '{name}'")
        return await adapter.generate_response([Message.user("cli-1", message)], system)


@cli.command()
@click.argument("name")
@click.argument("message")
@click.option("--system", "-s", default="You are a helpful assistant.", help="System prompt")
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
@click.pass_context
def send(ctx: click.Context, name: str, message: str, system: str, json_output: bool) -> None:
    """Send a single message to the adapter NAME.

    Example:
        model-adapters send claude "What is 2+2?"
        model-adapters send anthropic/claude-3.5-sonnet "Hello"
    """
    try:
        response = asyncio.run(_send(name, message, system))
    except click.ClickException:
        raise
    except Exception as e:
        if ctx.obj["verbose"]:
            import traceback
            click.echo(traceback.format_exc(), err=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(response.to_dict(), indent=2))
    else:
        click.echo(response.content)


@cli.command()
@click.option("--json-output", "-j", is_flag=True, help="Output as JSON")
def adapters(json_output: bool) -> None:
    """List registered adapter names.

    Example:
        model-adapters adapters
    """
    registry = get_registry()
    names = registry.get_available_adapters()

    if json_output:
        click.echo(json.dumps(names, indent=2))
        return

    if not names:
        click.echo("No adapters registered.")
    for name in names:
        adapter = registry.get_adapter(name)
        click.echo(f"  - {name} ({adapter.get_model_name()}, {adapter.get_max_context_window()} tokens)")


@cli.command()
@click.argument("text", nargs=-1, required=True)
def tokens(text: Tuple[str, ...]) -> None:
    """Estimate the token count of TEXT.

    Example:
        model-adapters tokens "How many tokens is this?"
    """
    click.echo(estimate_tokens(" ".join(text)))


def main(argv: Optional[list] = None) -> None:
    """Entry point for CLI."""
    cli(args=argv, obj={})


if __name__ == "__main__":
    main()
