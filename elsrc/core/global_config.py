# elsrc/core/global_config.py

"""
Global configuration for elsrc.

Configuration lives in ~/.elsrc/config.yaml. The ELSRC_DIR environment
variable overrides the root directory; every other directory defaults to a
subdirectory of the root unless set explicitly.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_ROOT_DIR = Path.home() / ".elsrc"
DEFAULT_RECIPES_REPO = "https://github.com/melpa/melpa.git"
CONFIG_FILE = Path.home() / ".elsrc" / "config.yaml"
ROOT_DIR_ENV = "ELSRC_DIR"

# ==============================================================
# CONFIG MODEL
# ==============================================================

class ElsrcConfig(BaseModel):
    """Explicit configuration threaded through every pipeline component."""

    model_config = ConfigDict(extra="ignore")

    root_dir: Path = Field(default=DEFAULT_ROOT_DIR, description="Root of all working directories")
    build_dir: Optional[Path] = Field(default=None, description="Per-package checkout directories")
    packages_dir: Optional[Path] = Field(default=None, description="Transient built artifacts")
    mirror_dir: Optional[Path] = Field(default=None, description="Clone of the recipe repository")
    store_dir: Optional[Path] = Field(default=None, description="Installed packages")

    recipes_repo_url: str = Field(default=DEFAULT_RECIPES_REPO)
    recipes_subdir: str = Field(default="recipes", description="Recipe directory inside the mirror")
    update_recipes: bool = Field(default=False, description="Pull the mirror when a session starts")

    upgrade: bool = Field(default=False, description="Rebuild installed packages when newer sources exist")
    verbose: bool = Field(default=False)

    runtime_name: str = Field(default="emacs", description="Pseudo-dependency naming the host runtime")
    builtins: Dict[str, str] = Field(
        default_factory=lambda: {"emacs": "29.1"},
        description="Packages bundled with the host runtime: name -> version"
    )

    @model_validator(mode="after")
    def derive_directories(self) -> "ElsrcConfig":
        """Fill unset directories from root_dir."""
        if self.build_dir is None:
            self.build_dir = self.root_dir / "build"
        if self.packages_dir is None:
            self.packages_dir = self.root_dir / "packages"
        if self.mirror_dir is None:
            self.mirror_dir = self.root_dir / "melpa"
        if self.store_dir is None:
            self.store_dir = self.root_dir / "elpa"
        return self

    @property
    def recipes_dir(self) -> Path:
        return self.mirror_dir / self.recipes_subdir  # type: ignore[operator]

    def with_options(self, upgrade: Optional[bool] = None) -> "ElsrcConfig":
        """Copy of this config with per-call options applied."""
        if upgrade is None:
            return self
        return self.model_copy(update={"upgrade": upgrade})

# ==============================================================
# LOADING AND SAVING
# ==============================================================

def load_global_config(config_path: Optional[Path] = None) -> Optional[dict]:
    """Load raw config data from ~/.elsrc/config.yaml"""
    config_path = config_path or CONFIG_FILE

    if not config_path.exists():
        return None

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        return None
    return data if isinstance(data, dict) else None


def load_config(config_path: Optional[Path] = None) -> ElsrcConfig:
    """
    Build the effective configuration from:
    1. Environment variable ELSRC_DIR (root directory only)
    2. Global config ~/.elsrc/config.yaml
    3. Defaults
    """
    data: Dict[str, Any] = load_global_config(config_path) or {}

    if env_root := os.getenv(ROOT_DIR_ENV):
        data["root_dir"] = env_root

    return ElsrcConfig(**data)


def set_global(key: str, value: Any, config_path: Optional[Path] = None) -> None:
    """Set a global configuration key in ~/.elsrc/config.yaml"""
    config_path = config_path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config = load_global_config(config_path) or {}
    config[key] = value

    config_path.write_text(yaml.dump(config, default_flow_style=False), encoding="utf-8")


def set_global_root(root_dir: Path, config_path: Optional[Path] = None) -> None:
    set_global("root_dir", str(root_dir), config_path)

def set_global_upgrade(enabled: bool, config_path: Optional[Path] = None) -> None:
    set_global("upgrade", enabled, config_path)
