"""
strata show - Show resolved configuration.

Loads a schema and shows each key's effective value and which source supplied it.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from strata.cli.common import (
    ConfigNameOption,
    ConfigPathOption,
    ConfigTypeOption,
    EnvPrefixOption,
    build_loader,
    import_schema,
)
from strata.exceptions import StrataError

console = Console()

SOURCE_STYLES = {
    "DEFAULT": "dim",
    "FILE": "green",
    "ENVIRONMENT": "magenta",
}


def show(
    schema: str = typer.Argument(..., help="Schema reference, e.g. 'myapp.settings:AppConfig'"),
    config_name: str | None = ConfigNameOption,
    config_path: list[Path] | None = ConfigPathOption,
    config_type: str | None = ConfigTypeOption,
    env_prefix: str | None = EnvPrefixOption,
) -> None:
    """
    Load configuration and show each key's value and source.
    """
    target = import_schema(schema)
    loader = build_loader(config_name, config_path, config_type, env_prefix)

    try:
        resolved = loader.describe(target)
    except StrataError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1) from None

    table = Table(title="Resolved configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source")
    table.add_column("Environment variable", style="dim")

    for item in resolved:
        source = item.source.name if item.source is not None else "-"
        style = SOURCE_STYLES.get(source, "")
        table.add_row(item.path, escape(repr(item.value)), f"[{style}]{source}[/{style}]" if style else source, item.env_var)

    console.print(table)
