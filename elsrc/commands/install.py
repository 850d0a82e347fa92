# elsrc/commands/install.py

"""
elsrc install command: build a package from its recipe and install it,
together with its missing dependencies.
"""

from typing import Optional

import typer
from rich.console import Console

from elsrc.core.console import ConsoleAware
from elsrc.core.exceptions import ElsrcError
from elsrc.core.file_reading import parse_recipe_string
from elsrc.core.global_config import load_config
from elsrc.core.models import RecipeRequest
from elsrc.core.pipeline import Session

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def install_command(name: Optional[str], recipe_text: Optional[str], upgrade: Optional[bool],
                    interactive: bool, console: Console, verbose: bool):
    """Command wrapper for Session.run."""
    config = load_config().model_copy(update={"verbose": verbose})
    session = Session(config=config, console=console)

    request: Optional[RecipeRequest] = name
    if recipe_text:
        recipe_name, recipe = parse_recipe_string(recipe_text)
        if name and name != recipe_name:
            session.warn(f"Recipe is for '{recipe_name}', ignoring package name '{name}'")
        request = (recipe_name, recipe)

    session.run(request, upgrade=upgrade, interactive=interactive)

# ==============================================================
# CLI REGISTRATION
# ==============================================================

def register(app: typer.Typer):

    @app.command()
    def install(
        name: Optional[str] = typer.Argument(None, help="Package name to look up in the recipe mirror"),
        recipe: Optional[str] = typer.Option(
            None,
            "--recipe",
            "-r",
            help="Inline recipe, e.g. '(foo :fetcher github :repo \"me/foo\")'"
        ),
        upgrade: Optional[bool] = typer.Option(
            None,
            "--upgrade/--no-upgrade",
            help="Rebuild even if the package is installed (overrides the configured default for this run)"
        ),
        interactive: bool = typer.Option(
            False,
            "--interactive",
            "-i",
            help="Choose the package among all mirrored recipes"
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            help="Show detailed output"
        )
    ):
        """Build a package from source and install it with its dependencies."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            install_command(name, recipe, upgrade, interactive, console, verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Install cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except ElsrcError as e:
            console_awr.print(f"\n[bold red]❌ Install failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
