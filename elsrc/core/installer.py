# elsrc/core/installer.py

"""
Recursive dependency installation.

Builds the requested package, reads its descriptor and installs every
declared dependency (except the host runtime pseudo-dependency) before the
package itself, so dependencies are always registered with the host before
their dependents. A visited set per top-level call guarantees termination
on dependency cycles.
"""

from __future__ import annotations

from typing import Optional, Set

from elsrc.core.builder import BuildOrchestrator
from elsrc.core.console import Console, ConsoleAware
from elsrc.core.descriptor import DescriptorExtractor
from elsrc.core.global_config import ElsrcConfig
from elsrc.core.models import Artifact, RecipeRequest
from elsrc.core.package_store import HostPackageManager
from elsrc.core.recipe_cache import RecipeCache
from elsrc.core.recipes import RecipeResolver

# ==============================================================
# DEPENDENCY INSTALLER CLASS
# ==============================================================

class DependencyInstaller(ConsoleAware):
    """
    Installs a package and, recursively, its missing dependencies.

    Attributes:
        config: Effective configuration for this installation
        resolver: Resolves dependency names to recipes
        builder: Builds packages that need (re)building
        extractor: Reads descriptors of built artifacts
        host: Host package manager receiving install calls
        cache: Optional record of installed recipes
    """

    def __init__(self, config: ElsrcConfig, resolver: RecipeResolver, builder: BuildOrchestrator,
                 extractor: DescriptorExtractor, host: HostPackageManager,
                 cache: Optional[RecipeCache] = None,
                 console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console=console, verbose=verbose)
        self.config: ElsrcConfig = config
        self.resolver: RecipeResolver = resolver
        self.builder: BuildOrchestrator = builder
        self.extractor: DescriptorExtractor = extractor
        self.host: HostPackageManager = host
        self.cache: Optional[RecipeCache] = cache

    def install(self, request: RecipeRequest) -> None:
        """
        Install a package and its dependencies.

        Already satisfied and unresolvable packages are silent no-ops.

        Raises:
            BuildError: A checkout or packaging step failed; this aborts the
                whole request, including sibling dependencies.
            PackageStoreError: The host could not install an artifact.
        """
        self._install(request, visited=set(), depth=0)

    def _install(self, request: RecipeRequest, visited: Set[str], depth: int) -> None:
        name, recipe = self.resolver.resolve(request)

        if name in visited:
            self.log(f"[dim]Skip[/] {name} (already visited in this run)")
            return
        visited.add(name)

        outcome = self.builder.build(name, recipe, self.config.upgrade)
        if not isinstance(outcome, Artifact):
            self.log(f"[dim]Nothing to do for[/] {name} ({outcome.reason})")
            return

        result = self.extractor.extract(outcome.path)
        if result.descriptor is not None:
            dependencies = [
                dep for dep in result.descriptor.requirement_names()
                if dep != self.config.runtime_name
            ]
            if dependencies:
                self.log(f"[dim]Recursive:[/] {name} → {len(dependencies)} dep(s)")
            for dep in dependencies:
                self.print(f"{'  ' * depth}[dim cyan]↳ processing dependency[/] [bold]{dep}[/] of {name}")
                self._install(dep, visited, depth + 1)
        else:
            failure = result.failure
            self.warn(
                f"No usable metadata for '{name}' ({failure.reason.value if failure else 'unknown'}); "
                f"installing without dependencies"
            )

        self.host.install_file(outcome.path)

        if self.cache is not None and recipe is not None:
            self.cache.record(name, recipe, outcome.version)
