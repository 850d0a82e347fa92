# elsrc/commands/recipes.py

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from elsrc.core.console import ConsoleAware
from elsrc.core.exceptions import ElsrcError
from elsrc.core.global_config import load_config
from elsrc.core.pipeline import Session, setup_environment

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def recipes_command(pattern: Optional[str], console: Console, verbose: bool):
    """List mirrored recipes, optionally filtered."""
    config = load_config().model_copy(update={"verbose": verbose})
    session = Session(config=config, console=console)
    setup_environment(session)

    names = session.list_recipes(pattern)
    if not names:
        session.print("  [cyan]No recipes found.[/cyan]")
        return

    installed = session.cache.load().get("packages", {})

    table = Table(title="Recipes", show_header=True, header_style="bold cyan")
    table.add_column("Package", style="bold")
    table.add_column("Installed", justify="right")
    for name in names:
        entry = installed.get(name)
        table.add_row(name, f"[green]{entry['version']}[/green]" if entry else "[dim]-[/dim]")
    console.print(table)
    session.print(f"  Total: [cyan]{len(names)}[/cyan]")


def register(app: typer.Typer):

    @app.command()
    def recipes(
        pattern: Optional[str] = typer.Argument(None, help="Glob or substring to filter recipe names"),
        verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
    ):
        """List recipes available in the local mirror."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            recipes_command(pattern, console, verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Listing cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except ElsrcError as e:
            console_awr.print(f"\n[bold red]❌ Listing recipes failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
