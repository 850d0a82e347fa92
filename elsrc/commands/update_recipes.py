# elsrc/commands/update_recipes.py

import typer
from rich.console import Console

from elsrc.core.console import ConsoleAware
from elsrc.core.exceptions import ElsrcError
from elsrc.core.global_config import load_config
from elsrc.core.pipeline import Session

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def update_recipes_command(console: Console, verbose: bool):
    """Command wrapper for Session.update_recipes."""
    config = load_config().model_copy(update={"verbose": verbose})
    session = Session(config=config, console=console)
    session.update_recipes()
    session.print(f"🔄 [bold green]Recipes updated[/bold green] → [cyan]{session.mirror.recipes_dir}[/cyan]")


def register(app: typer.Typer):

    @app.command("update-recipes")
    def update_recipes(
        verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
    ):
        """Pull the latest recipes into the local mirror."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            update_recipes_command(console, verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Update cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except ElsrcError as e:
            console_awr.print(f"\n[bold red]❌ Recipe update failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
