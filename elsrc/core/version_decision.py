# elsrc/core/version_decision.py

"""
Install / skip / upgrade decisions.

Two stages: a cheap pre-check before any source is fetched, and an
authoritative comparison once the checkout has revealed the real version.
"""

from typing import Optional, Sequence, Union

from elsrc.core.console import Console, ConsoleAware
from elsrc.core.models import Recipe
from elsrc.core.package_store import HostPackageManager
from elsrc.core.version_handling import Version, format_version, parse_version, version_at_least


class VersionDecisionEngine(ConsoleAware):
    """Decides whether a package has to be (re)built."""

    def __init__(self, host: HostPackageManager, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)
        self.host: HostPackageManager = host

    def should_build(self, name: str, recipe: Optional[Recipe], allow_upgrade: bool) -> bool:
        """
        Pre-check, before any build service call.

        False when the package is installed and upgrades are not allowed, or
        when there is no recipe for it.
        """
        installed = self.host.installed_version(name)
        if installed is not None and not allow_upgrade:
            self.log(f"[dim]Skip[/] {name} (installed: {format_version(installed)})")
            return False

        if recipe is None:
            self.print(f"[yellow]No recipe found for package[/] [bold]{name}[/]")
            return False

        return True

    def decide_version(self, name: str, candidate: Union[str, Sequence[int], None]) -> Optional[Version]:
        """
        Post-checkout comparison.

        Returns the candidate version when it should be installed, None when
        the installed version is at least as new or a built-in package
        already satisfies it.
        """
        if candidate is None:
            self.log(f"[dim]Skip[/] {name} (checkout produced no version)")
            return None

        version = parse_version(candidate)

        installed = self.host.installed_version(name)
        if installed is not None and version_at_least(installed, version):
            self.log(
                f"[dim]Up to date[/] {name} : {format_version(installed)} "
                f"(candidate {format_version(version)})"
            )
            return None

        if self.host.is_builtin(name, version):
            self.log(f"[dim]Built-in[/] {name} satisfies {format_version(version)}")
            return None

        return version
