"""Config command: inspect the effective configuration."""

import json

import typer
from rich.console import Console
from rich.table import Table

from httpecho.config.settings import ConfigurationError, Settings

from .serve import get_config_path_from_context


app = typer.Typer(
    name="config",
    help="Configuration management commands",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _load_settings() -> Settings:
    try:
        return Settings.from_config(config_path=get_config_path_from_context())
    except ConfigurationError as e:
        Console(stderr=True).print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1) from e


@app.command(name="list")
def config_list() -> None:
    """Show current configuration."""
    settings = _load_settings()
    console = Console()

    for section, values in settings.model_dump_safe().items():
        table = Table(
            title=f"{section.title()} Configuration",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Setting", style="cyan", width=20)
        table.add_column("Value", style="green")
        table.add_column("Description", style="dim")

        model = getattr(settings, section)
        for name, value in values.items():
            field = type(model).model_fields[name]
            table.add_row(name, repr(value), field.description or "")
        console.print(table)


@app.command(name="json")
def config_json() -> None:
    """Print the effective configuration as JSON."""
    settings = _load_settings()
    typer.echo(json.dumps(settings.model_dump_safe(), indent=2))
