# elsrc/commands/upgrade_all.py

import typer
from rich.console import Console

from elsrc.core.console import ConsoleAware
from elsrc.core.exceptions import ElsrcError
from elsrc.core.global_config import load_config
from elsrc.core.pipeline import Session

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def upgrade_all_command(console: Console, verbose: bool):
    """Command wrapper for Session.upgrade_all."""
    config = load_config().model_copy(update={"verbose": verbose})
    session = Session(config=config, console=console)

    count = session.upgrade_all()
    if count == 0:
        session.print("[cyan]No packages were installed with elsrc yet.[/cyan]")
    else:
        session.print(f"[bold green]✔ Checked {count} package(s)[/bold green]")


def register(app: typer.Typer):

    @app.command("upgrade-all")
    def upgrade_all(
        verbose: bool = typer.Option(False, "--verbose", help="Show detailed output")
    ):
        """Rebuild every package previously installed with elsrc."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            upgrade_all_command(console, verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Upgrade cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except ElsrcError as e:
            console_awr.print(f"\n[bold red]❌ Upgrade failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
