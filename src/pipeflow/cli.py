"""pipeflow CLI entry point."""

import sys

import click

from .config import load_flow
from .errors import FlowError
from .executor import Executor
from .explain import explain_action
from .settings import resolve_settings


@click.command()
@click.argument("flow_file", type=click.Path(dir_okay=False))
@click.argument("action")
@click.option("--shell", help="Command interpreter (overrides $PIPEFLOW_SHELL)")
@click.option(
    "--chunk-size",
    type=int,
    help="Relay buffer size in bytes (overrides $PIPEFLOW_CHUNK_SIZE)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail when any command exits non-zero (or set $PIPEFLOW_STRICT)",
)
@click.option(
    "--verbose", "-v", is_flag=True, help="Trace execution on stderr"
)
@click.option(
    "--explain", is_flag=True, help="Print the item tree instead of running it"
)
def cli(flow_file, action, shell, chunk_size, strict, verbose, explain):
    """Run ACTION from FLOW_FILE.

    Items in the flow file are wired together with pipes and processes,
    starting from the action and ending when every process has exited.

    Examples:
        pipeflow build.flow sorted_list
        pipeflow build.flow sorted_list --explain
    """
    try:
        settings = resolve_settings(
            shell=shell,
            chunk_size=chunk_size,
            strict=True if strict else None,
            verbose=True if verbose else None,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        registry = load_flow(flow_file)
        if explain:
            click.echo(explain_action(registry, action))
            return
        Executor(registry, settings).run(action)
    except FlowError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
