# elsrc/commands/config.py

from typing import Optional
from pathlib import Path
import typer
from rich.console import Console

from elsrc.core.console import ConsoleAware
from elsrc.core.exceptions import ElsrcError
from elsrc.core.global_config import (
    load_config,
    set_global_root,
    set_global_upgrade,
)

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def config_command(set_root: Optional[Path], upgrade: Optional[bool], console: Console):
    """Command wrapper for config command."""
    console_awr = ConsoleAware(console=console, verbose=False)

    if set_root:
        set_global_root(set_root.expanduser().resolve())
        console_awr.print(f"📁 [bold green]Root directory set[/bold green] → [cyan]{set_root}[/cyan]")

    if upgrade is not None:
        set_global_upgrade(upgrade)
        console_awr.print(f"⚙️ [green]Upgrade by default[/green] → [cyan]{upgrade}[/cyan]")

    config = load_config()
    console_awr.print("")
    console_awr.print("⚙️  [bold cyan]Effective configuration[/]:")
    console_awr.print(f"   → Root: [cyan]{config.root_dir}[/cyan]")
    console_awr.print(f"   → Build: [cyan]{config.build_dir}[/cyan]")
    console_awr.print(f"   → Packages: [cyan]{config.packages_dir}[/cyan]")
    console_awr.print(f"   → Recipes mirror: [cyan]{config.mirror_dir}[/cyan] ({config.recipes_repo_url})")
    console_awr.print(f"   → Store: [cyan]{config.store_dir}[/cyan]")
    console_awr.print(f"   → Upgrade: [cyan]{config.upgrade}[/cyan]")
    console_awr.print(f"   → Update recipes on start: [cyan]{config.update_recipes}[/cyan]")


def register(app: typer.Typer):

    @app.command()
    def config(
        set_root: Optional[Path] = typer.Option(
            None,
            "--set-root",
            help="Set the root directory for build, packages, mirror and store directories"
        ),
        upgrade: Optional[bool] = typer.Option(
            None,
            "--upgrade/--no-upgrade",
            help="Set whether installs rebuild already installed packages by default"
        ),
    ):
        """Show or change the global elsrc configuration."""
        console = Console(log_path=False)

        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            config_command(set_root, upgrade, console)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Config setting cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except ElsrcError as e:
            console_awr.print(f"\n[bold red]❌ Config setting failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
