"""CLI commands for the recipe API.

Provides command-line interface using Typer:
- chop serve: Run the API server
- chop cache clear: Flush the Redis cache

Usage:
    chop --help
    chop serve --port 8080
    chop cache clear
"""

import typer

from chop.cli.cache_cmd import app as cache_app
from chop.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="chop",
    help="Chop: recipe catalog API",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """Chop: recipe catalog API."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
