# elsrc/cli.py
"""
Main CLI entry point for elsrc.

This module sets up the Typer application and registers all commands.
"""
import typer
from rich.console import Console

from elsrc.commands import (
    install,
    upgrade_all,
    recipes,
    update_recipes,
    config,
)

import importlib.metadata
import pathlib
import sys
import tomllib

app = typer.Typer(
    name="elsrc",
    help="elsrc - Build and install Emacs Lisp packages from source recipes",
    add_completion=False,
    no_args_is_help=True,
)

# Register commands
install.register(app)
upgrade_all.register(app)
recipes.register(app)
update_recipes.register(app)
config.register(app)

def get_package_version():
    package_name = "elsrc"

    # Installed distribution first
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        pass

    # Source checkout: elsrc/cli.py -> project root
    project_root = pathlib.Path(__file__).parent.parent
    pyproject_path = project_root / "pyproject.toml"

    if pyproject_path.exists():
        try:
            with open(pyproject_path, "rb") as f:
                pyproject_data = tomllib.load(f)
            return pyproject_data.get("project", {}).get("version", "unknown")
        except (OSError, tomllib.TOMLDecodeError) as e:
            print(f"Warning: Could not read version from pyproject.toml: {e}", file=sys.stderr)
            return "unknown"

    return "unknown"

@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the version of elsrc and exit.",
        callback=lambda value: _version_callback(value),
        is_eager=True,
    )
):
    """
    elsrc CLI.
    """
    pass

def _version_callback(value: bool):
    if value:
        console = Console(log_path=False)
        current_version = get_package_version()
        console.print(f"[bold green]elsrc[/] version [cyan]{current_version}[/]")
        raise typer.Exit()

if __name__ == "__main__":
    app()
