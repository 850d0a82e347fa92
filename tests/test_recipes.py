# tests/test_recipes.py

from pathlib import Path
from unittest.mock import patch

import git
import pytest
from pydantic import ValidationError

from elsrc.core.exceptions import RecipeLoadError, RecipeMirrorError
from elsrc.core.models import Recipe, ResolvedRecipe
from elsrc.core.recipes import RecipeMirror, RecipeResolver


@pytest.fixture
def mirror(tmp_path: Path) -> RecipeMirror:
    m = RecipeMirror(tmp_path / "melpa", "https://example.com/recipes.git")
    m.recipes_dir.mkdir(parents=True)
    (m.recipes_dir / "magit").write_text('(magit :fetcher github :repo "magit/magit")\n', encoding="utf-8")
    (m.recipes_dir / "Dash").write_text('(dash :fetcher github :repo "magnars/dash.el")\n', encoding="utf-8")
    (m.recipes_dir / "evil.yaml").write_text("fetcher: gitlab\nrepo: emacs-evil/evil\n", encoding="utf-8")
    (m.recipes_dir / ".gitignore").write_text("*\n", encoding="utf-8")
    return m


def test_list_names(mirror: RecipeMirror):
    assert mirror.list_names() == ["Dash", "evil", "magit"]


def test_exact_and_case_insensitive_lookup(mirror: RecipeMirror):
    assert mirror.find_recipe_file("magit") == mirror.recipes_dir / "magit"
    assert mirror.find_recipe_file("dash") == mirror.recipes_dir / "Dash"
    assert mirror.find_recipe_file("evil") == mirror.recipes_dir / "evil.yaml"
    assert mirror.find_recipe_file("mag") is None


def test_resolver_reads_mirror(mirror: RecipeMirror):
    resolver = RecipeResolver(mirror)

    name, recipe = resolver.resolve("evil")

    assert name == "evil"
    assert recipe == Recipe(fetcher="gitlab", repo="emacs-evil/evil")


def test_resolver_unknown_name(mirror: RecipeMirror):
    assert RecipeResolver(mirror).resolve("nonexistent") == ResolvedRecipe("nonexistent", None)


def test_resolver_explicit_recipe_does_not_consult_mirror(tmp_path: Path):
    empty = RecipeMirror(tmp_path / "none", "https://example.com/recipes.git")
    resolver = RecipeResolver(empty)
    recipe = Recipe(fetcher="github", repo="me/magit")

    assert resolver.resolve(("magit", recipe)) == ResolvedRecipe("magit", recipe)
    assert resolver.resolve(("magit", {"fetcher": "github", "repo": "me/magit"})).recipe == recipe
    assert resolver.resolve(ResolvedRecipe("x", None)) == ("x", None)


def test_resolver_rejects_invalid_explicit_recipe(mirror: RecipeMirror):
    with pytest.raises(RecipeLoadError):
        RecipeResolver(mirror).resolve(("bad", {"fetcher": "github"}))


def test_recipe_validation():
    with pytest.raises(ValidationError):
        Recipe(fetcher="github", repo="no-slash")
    with pytest.raises(ValidationError):
        Recipe(fetcher="file")
    assert Recipe(fetcher="git", url="https://example.com/x.git").stable is False


def test_bootstrap_skips_existing_mirror(mirror: RecipeMirror):
    with patch.object(git.Repo, "clone_from") as clone:
        mirror.bootstrap()
    clone.assert_not_called()


def test_bootstrap_clone_failure(tmp_path: Path):
    mirror = RecipeMirror(tmp_path / "melpa", "https://example.com/recipes.git")

    with patch.object(git.Repo, "clone_from", side_effect=git.GitCommandError("clone", 128)) as clone:
        with pytest.raises(RecipeMirrorError):
            mirror.bootstrap()

    clone.assert_called_once_with("https://example.com/recipes.git", tmp_path / "melpa", depth=1)


def test_update_without_repository_bootstraps(tmp_path: Path):
    mirror = RecipeMirror(tmp_path / "melpa", "https://example.com/recipes.git")

    with patch.object(git.Repo, "clone_from") as clone:
        mirror.update()

    clone.assert_called_once()
