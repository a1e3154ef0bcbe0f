"""Command line entry point for the echo server."""

from pathlib import Path

import typer

from httpecho._version import __version__

from .commands.config import app as config_app
from .commands.serve import serve


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"httpecho {__version__}")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=True,
    no_args_is_help=False,
    pretty_exceptions_enable=False,
)


@app.callback()
def app_main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """HTTP echo server mirroring request headers and bodies."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


app.add_typer(config_app)
app.command(name="serve")(serve)


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    import sys

    sys.exit(app())
