# tests/test_config.py

"""Tests for global configuration and the recipe cache."""

import json
from pathlib import Path

import yaml

from elsrc.core.global_config import (
    ROOT_DIR_ENV,
    ElsrcConfig,
    load_config,
    set_global_root,
    set_global_upgrade,
)
from elsrc.core.models import Recipe, ResolvedRecipe
from elsrc.core.recipe_cache import CACHE_FILE, RecipeCache

# ==============================================================
# CONFIGURATION
# ==============================================================

def test_directories_derive_from_root(tmp_path: Path):
    config = ElsrcConfig(root_dir=tmp_path)

    assert config.build_dir == tmp_path / "build"
    assert config.packages_dir == tmp_path / "packages"
    assert config.mirror_dir == tmp_path / "melpa"
    assert config.store_dir == tmp_path / "elpa"
    assert config.recipes_dir == tmp_path / "melpa" / "recipes"


def test_explicit_directories_are_kept(tmp_path: Path):
    config = ElsrcConfig(root_dir=tmp_path, store_dir=tmp_path / "custom")

    assert config.store_dir == tmp_path / "custom"
    assert config.build_dir == tmp_path / "build"


def test_load_config_from_yaml(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(ROOT_DIR_ENV, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"root_dir": str(tmp_path / "root"), "upgrade": True, "unknown": 1}),
                    encoding="utf-8")

    config = load_config(path)

    assert config.root_dir == tmp_path / "root"
    assert config.upgrade is True
    assert config.packages_dir == tmp_path / "root" / "packages"


def test_environment_overrides_root(tmp_path: Path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"root_dir": str(tmp_path / "root")}), encoding="utf-8")
    monkeypatch.setenv(ROOT_DIR_ENV, str(tmp_path / "env"))

    assert load_config(path).root_dir == tmp_path / "env"


def test_missing_or_broken_config_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(ROOT_DIR_ENV, raising=False)
    broken = tmp_path / "broken.yaml"
    broken.write_text("root_dir: [unclosed", encoding="utf-8")

    assert load_config(tmp_path / "absent.yaml") == ElsrcConfig()
    assert load_config(broken) == ElsrcConfig()


def test_set_global_writes_keys(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(ROOT_DIR_ENV, raising=False)
    path = tmp_path / "dir" / "config.yaml"

    set_global_root(tmp_path / "root", path)
    set_global_upgrade(True, path)

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data == {"root_dir": str(tmp_path / "root"), "upgrade": True}
    assert load_config(path).upgrade is True


def test_with_options_does_not_mutate(tmp_path: Path):
    config = ElsrcConfig(root_dir=tmp_path)

    upgraded = config.with_options(upgrade=True)

    assert upgraded.upgrade is True
    assert config.upgrade is False
    assert config.with_options() is config

# ==============================================================
# RECIPE CACHE
# ==============================================================

def test_recipe_cache_round_trip(tmp_path: Path):
    recipe = Recipe(fetcher="github", repo="me/foo", files=["*.el"])
    RecipeCache(tmp_path).record("foo", recipe, (1, 2))

    cache = RecipeCache(tmp_path)

    assert cache.entries() == [ResolvedRecipe("foo", recipe)]
    data = json.loads((tmp_path / CACHE_FILE).read_text(encoding="utf-8"))
    assert data["packages"]["foo"]["version"] == "1.2"


def test_recipe_cache_ignores_corrupt_file(tmp_path: Path):
    (tmp_path / CACHE_FILE).write_text("{not json", encoding="utf-8")

    assert RecipeCache(tmp_path).entries() == []
