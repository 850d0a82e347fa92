# elsrc/core/builder.py

"""
Build orchestration: pre-check, checkout, version decision, packaging.
"""

from pathlib import Path
from typing import Optional, Sequence

from elsrc.core.build_service import SourceBuildService
from elsrc.core.console import Console, ConsoleAware
from elsrc.core.global_config import ElsrcConfig
from elsrc.core.models import Artifact, BuildOutcome, NoActionNeeded, PackageKind, Recipe
from elsrc.core.version_decision import VersionDecisionEngine
from elsrc.core.version_handling import format_version


class BuildOrchestrator(ConsoleAware):
    """Drives the source build service for one package at a time."""

    def __init__(self, config: ElsrcConfig, service: SourceBuildService, decision: VersionDecisionEngine,
                 console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)
        self.config: ElsrcConfig = config
        self.service: SourceBuildService = service
        self.decision: VersionDecisionEngine = decision

    def build_dir_for(self, name: str) -> Path:
        """Checkout directory of a package, reused across runs."""
        return self.config.build_dir / name  # type: ignore[operator]

    def artifact_path(self, name: str, version: Sequence[int], kind: PackageKind) -> Path:
        """`{packages_dir}/{name}-{version}.{el|tar}`"""
        return self.config.packages_dir / f"{name}-{format_version(version)}.{kind.extension}"  # type: ignore[operator]

    def build(self, name: str, recipe: Optional[Recipe], allow_upgrade: bool) -> BuildOutcome:
        """
        Build a package if it needs building.

        Returns:
            Artifact with the built file, or NoActionNeeded.

        Raises:
            BuildError: Checkout or packaging failed.
        """
        if not self.decision.should_build(name, recipe, allow_upgrade):
            return NoActionNeeded(name, "no recipe" if recipe is None else "already installed")

        build_dir = self.build_dir_for(name)
        candidate = self.service.checkout(name, recipe, build_dir)  # type: ignore[arg-type]

        version = self.decision.decide_version(name, candidate)
        if version is None:
            return NoActionNeeded(name, "up to date")

        version_str = format_version(version)
        self.print(f"[bold magenta]Building[/] {name} : {version_str}")
        built = self.service.package(
            name, version_str, recipe.files, build_dir, self.config.packages_dir  # type: ignore[union-attr, arg-type]
        )

        path = self.artifact_path(name, version, built.kind)
        if built.path is not None and Path(built.path) != path:
            self.log(f"[yellow]Build service wrote[/] {built.path}, expected {path}")
        return Artifact(path=path, kind=built.kind, version=version)
