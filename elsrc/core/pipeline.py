# elsrc/core/pipeline.py

"""
Pipeline controller.

A Session holds the process-wide state: configuration, working directories,
the recipe mirror, the build service and the host package store. It is
initialized by its "before" hooks on the first run and reused afterwards;
its "after" hooks purge the transient packages directory at the end of
every top-level run.
"""

from __future__ import annotations

import fnmatch
import shutil
from typing import Callable, List, Optional, Sequence

from rich.prompt import Prompt

from elsrc.core.build_service import GitBuildService, SourceBuildService
from elsrc.core.builder import BuildOrchestrator
from elsrc.core.console import Console, ConsoleAware
from elsrc.core.descriptor import DescriptorExtractor
from elsrc.core.exceptions import InvalidUsageError
from elsrc.core.global_config import ElsrcConfig, load_config
from elsrc.core.installer import DependencyInstaller
from elsrc.core.models import RecipeRequest
from elsrc.core.package_store import HostPackageManager, LocalPackageStore
from elsrc.core.recipe_cache import RecipeCache
from elsrc.core.recipes import RecipeMirror, RecipeResolver
from elsrc.core.version_decision import VersionDecisionEngine

Hook = Callable[["Session"], None]
Chooser = Callable[[List[str]], str]

# ==============================================================
# DEFAULT HOOKS
# ==============================================================

def setup_environment(session: "Session") -> None:
    """Create working directories and bootstrap the recipe mirror, once."""
    if session.initialized:
        return

    config = session.config
    for directory in (config.root_dir, config.build_dir, config.packages_dir, config.store_dir):
        directory.mkdir(parents=True, exist_ok=True)  # type: ignore[union-attr]

    session.mirror.bootstrap()
    if config.update_recipes:
        session.mirror.update()

    session.initialized = True


def cleanup_packages_dir(session: "Session") -> None:
    """Remove built artifacts; once installed they are no longer needed."""
    packages_dir = session.config.packages_dir
    if packages_dir is not None and packages_dir.exists():
        session.log(f"[dim]Removing[/] {packages_dir}")
        shutil.rmtree(packages_dir)


def prompt_for_package(names: List[str]) -> str:
    """Ask the user to pick one of the mirrored recipe names."""
    return Prompt.ask("Package to install", choices=names, show_choices=False)

# ==============================================================
# SESSION
# ==============================================================

class Session(ConsoleAware):
    """Process-wide pipeline state and the public install entry points."""

    def __init__(self, config: Optional[ElsrcConfig] = None,
                 service: Optional[SourceBuildService] = None,
                 host: Optional[HostPackageManager] = None,
                 before_hooks: Optional[Sequence[Hook]] = None,
                 after_hooks: Optional[Sequence[Hook]] = None,
                 chooser: Optional[Chooser] = None,
                 console: Optional[Console] = None):
        self.config: ElsrcConfig = config if config is not None else load_config()
        super().__init__(console, self.config.verbose)

        verbose = self.config.verbose
        self.mirror = RecipeMirror(
            self.config.mirror_dir, self.config.recipes_repo_url,  # type: ignore[arg-type]
            self.config.recipes_subdir, console, verbose
        )
        self.resolver = RecipeResolver(self.mirror, console, verbose)
        self.service: SourceBuildService = service if service is not None else GitBuildService(console, verbose)
        self.host: HostPackageManager = host if host is not None else LocalPackageStore(
            self.config.store_dir, self.config.builtins, console, verbose  # type: ignore[arg-type]
        )
        self.extractor = DescriptorExtractor(console, verbose)
        self.cache = RecipeCache(self.config.root_dir)

        self.before_hooks: List[Hook] = list(before_hooks) if before_hooks is not None else [setup_environment]
        self.after_hooks: List[Hook] = list(after_hooks) if after_hooks is not None else [cleanup_packages_dir]
        self.chooser: Chooser = chooser or prompt_for_package
        self.initialized: bool = False

    def run(self, request: Optional[RecipeRequest] = None, upgrade: Optional[bool] = None,
            interactive: bool = False) -> None:
        """
        Install one package and its missing dependencies.

        Args:
            request: Package name or explicit (name, recipe) pair.
            upgrade: Per-call override of the configured upgrade flag. It only
                applies to this call.
            interactive: Pick the package among all mirrored recipes.

        Raises:
            InvalidUsageError: No request and not interactive, or no recipes
                to choose from.
            BuildError, PackageStoreError: Propagated from the pipeline.
        """
        self._run_hooks(self.before_hooks)
        try:
            if interactive:
                request = self._choose()
            if request is None:
                raise InvalidUsageError("No package given")

            resolved = self.resolver.resolve(request)
            config = self.config.with_options(upgrade=upgrade)
            self._installer(config).install(resolved)
        finally:
            self._run_hooks(self.after_hooks)

    def upgrade_all(self) -> int:
        """Rebuild every package installed through elsrc. Returns how many were checked."""
        self._run_hooks(self.before_hooks)
        try:
            entries = self.cache.entries()
            installer = self._installer(self.config.with_options(upgrade=True))
            for entry in entries:
                self.print(f"[cyan]▶️  Checking[/] [bold]{entry.name}[/]")
                installer.install(entry)
            return len(entries)
        finally:
            self._run_hooks(self.after_hooks)

    def update_recipes(self) -> None:
        """Pull the latest recipes into the mirror."""
        self.mirror.update()

    def list_recipes(self, pattern: Optional[str] = None) -> List[str]:
        """Mirrored recipe names, optionally filtered by a glob or substring."""
        names = self.mirror.list_names()
        if not pattern:
            return names
        if any(ch in pattern for ch in "*?["):
            return [name for name in names if fnmatch.fnmatch(name, pattern)]
        return [name for name in names if pattern.lower() in name.lower()]

    def _choose(self) -> str:
        names = self.mirror.list_names()
        if not names:
            raise InvalidUsageError(f"No recipes available in {self.mirror.recipes_dir}")
        return self.chooser(names)

    def _installer(self, config: ElsrcConfig) -> DependencyInstaller:
        decision = VersionDecisionEngine(self.host, self.console, self.verbose)
        builder = BuildOrchestrator(config, self.service, decision, self.console, self.verbose)
        return DependencyInstaller(
            config, self.resolver, builder, self.extractor, self.host, self.cache,
            self.console, self.verbose
        )

    def _run_hooks(self, hooks: Sequence[Hook]) -> None:
        for hook in hooks:
            hook(self)

# ==============================================================
# PROCESS-WIDE ENTRY POINT
# ==============================================================

_session: Optional[Session] = None


def get_session(console: Optional[Console] = None) -> Session:
    """The process-wide session, created on first use."""
    global _session
    if _session is None:
        _session = Session(console=console)
    return _session


def install(request: Optional[RecipeRequest] = None, upgrade: Optional[bool] = None,
            interactive: bool = False, console: Optional[Console] = None) -> None:
    """Install a package with the process-wide session."""
    get_session(console).run(request, upgrade=upgrade, interactive=interactive)
