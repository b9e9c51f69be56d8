"""
Main CLI entry point.
"""

import typer

from strata import __version__
from strata.cli import keys, show


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"strata version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="strata",
    help="Strata - layered configuration from defaults, config files and environment variables",
    add_completion=False,
)

# Register subcommands
app.command(name="keys", help="List configuration keys and their environment variables")(keys.keys)
app.command(name="show", help="Show resolved configuration values")(show.show)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Strata - layered configuration loader.

    Run 'strata <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
