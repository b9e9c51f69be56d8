"""
strata keys - List configuration keys.

Shows every key path of a schema and the environment variable that overrides it.
"""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from strata.cli.common import EnvPrefixOption, import_schema
from strata.config.flatten import flatten_keys
from strata.config.resolver import SourceResolver
from strata.config.settings import LoaderConfig
from strata.exceptions import StrataError

console = Console()


def keys(
    schema: str = typer.Argument(..., help="Schema reference, e.g. 'myapp.settings:AppConfig'"),
    env_prefix: str | None = EnvPrefixOption,
) -> None:
    """
    List every key path of a schema with its environment variable name.
    """
    target = import_schema(schema)
    resolver = SourceResolver(LoaderConfig().with_options(env_prefix=env_prefix))

    try:
        paths = flatten_keys(target)
    except StrataError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1) from None

    if not paths:
        console.print("[yellow]Schema has no configuration keys[/yellow]")
        return

    table = Table(title=f"Keys ({len(paths)})", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Environment variable", style="green")
    for path in paths:
        table.add_row(path, resolver.env_name(path))
    console.print(table)
