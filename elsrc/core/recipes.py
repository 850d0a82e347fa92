# elsrc/core/recipes.py

"""
Recipe mirror and recipe resolution.

The mirror is a local clone of a recipe repository: a directory of files,
one per package, each holding the package's fetch configuration. The
resolver turns a bare package name or an explicit recipe into a canonical
(name, recipe-or-None) pair.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import git
from pydantic import ValidationError

from elsrc.core.console import Console, ConsoleAware
from elsrc.core.exceptions import RecipeLoadError, RecipeMirrorError
from elsrc.core.file_reading import YAML_SUFFIXES, load_recipe_file
from elsrc.core.models import Recipe, RecipeRequest, ResolvedRecipe

# ==============================================================
# RECIPE MIRROR
# ==============================================================

class RecipeMirror(ConsoleAware):
    """Local clone of the recipe repository."""

    def __init__(self, mirror_dir: Path, repo_url: str, recipes_subdir: str = "recipes",
                 console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)
        self.mirror_dir: Path = Path(mirror_dir)
        self.repo_url: str = repo_url
        self.recipes_dir: Path = self.mirror_dir / recipes_subdir

    def bootstrap(self) -> None:
        """Clone the recipe repository unless a recipes directory already exists."""
        if self.recipes_dir.is_dir():
            self.log(f"[dim]Recipes[/] {self.recipes_dir}")
            return

        self.print(f"[cyan]Cloning recipes[/] → {self.repo_url}")
        try:
            self.mirror_dir.parent.mkdir(parents=True, exist_ok=True)
            git.Repo.clone_from(self.repo_url, self.mirror_dir, depth=1)
        except Exception as e:
            raise RecipeMirrorError(self.repo_url, str(e))

    def update(self) -> None:
        """Pull the latest recipes, cloning first if there is no mirror yet."""
        try:
            repo = git.Repo(self.mirror_dir)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            self.bootstrap()
            return

        self.print(f"[cyan]Updating recipes[/] → {self.mirror_dir}")
        try:
            repo.remotes.origin.pull()
        except Exception as e:
            raise RecipeMirrorError(self.repo_url, str(e))

    def list_names(self) -> List[str]:
        """Names of all mirrored recipes, sorted."""
        if not self.recipes_dir.is_dir():
            return []
        return sorted(
            self._recipe_name(path) for path in self.recipes_dir.iterdir()
            if path.is_file() and not path.name.startswith(".")
        )

    def find_recipe_file(self, name: str) -> Optional[Path]:
        """
        Locate the recipe file for a package.

        Exact file name first, then a case-insensitive match of either the
        full file name or the file name without its extension.
        """
        if not self.recipes_dir.is_dir():
            return None

        exact = self.recipes_dir / name
        if exact.is_file():
            return exact

        wanted = name.lower()
        for path in sorted(self.recipes_dir.iterdir()):
            if not path.is_file() or path.name.startswith("."):
                continue
            if path.name.lower() == wanted or path.name.lower().startswith(wanted + "."):
                return path
        return None

    def read_recipe(self, name: str) -> Optional[Recipe]:
        """
        Read a package's recipe, None if the mirror has none.

        Raises:
            RecipeLoadError: The recipe file exists but is invalid.
        """
        path = self.find_recipe_file(name)
        if path is None:
            return None
        self.log(f"[dim]Recipe file[/] {path}")
        return load_recipe_file(path)

    @staticmethod
    def _recipe_name(path: Path) -> str:
        return path.stem if path.suffix in YAML_SUFFIXES else path.name

# ==============================================================
# RECIPE RESOLVER
# ==============================================================

class RecipeResolver(ConsoleAware):
    """Turns a name or an explicit recipe into a canonical (name, recipe) pair."""

    def __init__(self, mirror: RecipeMirror, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)
        self.mirror: RecipeMirror = mirror

    def resolve(self, request: RecipeRequest) -> ResolvedRecipe:
        """
        Resolve a request.

        Explicit (name, recipe) pairs are returned as given; they never
        consult the mirror. A bare name is looked up in the mirror and an
        unknown name resolves to (name, None) without raising.
        """
        if isinstance(request, ResolvedRecipe):
            return request

        if isinstance(request, tuple):
            name, recipe = request
            return ResolvedRecipe(str(name), self._coerce(str(name), recipe))

        name = str(request)
        recipe = self.mirror.read_recipe(name)
        if recipe is None:
            self.log(f"[dim]No recipe in mirror for[/] {name}")
        return ResolvedRecipe(name, recipe)

    @staticmethod
    def _coerce(name: str, recipe: Union[Recipe, Dict[str, Any], None]) -> Optional[Recipe]:
        if recipe is None or isinstance(recipe, Recipe):
            return recipe
        try:
            return Recipe(**recipe)
        except ValidationError as e:
            raise RecipeLoadError(f"<recipe for {name}>", str(e))
