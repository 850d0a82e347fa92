# elsrc/core/models.py

"""
Core models for elsrc.

This module contains recipe definitions, the normalized package descriptor,
the two raw metadata shapes it is built from, and build outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    Field,
    ConfigDict,
    model_validator,
)

# ==============================================================
# COMMON ENUMS
# ==============================================================

class PackageKind(str, Enum):
    """Shape of a built artifact."""
    SINGLE = "single"  # One .el file
    TAR = "tar"        # Multi-file tarball

    @property
    def extension(self) -> str:
        return "el" if self is PackageKind.SINGLE else "tar"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["PackageKind"]:
        """Package kind implied by a file extension, None if it is not a package."""
        suffix = Path(path).suffix
        if suffix == ".tar":
            return cls.TAR
        if suffix == ".el":
            return cls.SINGLE
        return None

class Fetcher(str, Enum):
    """Source locations the default build service knows how to fetch."""
    GITHUB = "github"
    GITLAB = "gitlab"
    CODEBERG = "codeberg"
    GIT = "git"
    FILE = "file"

# ==============================================================
# RECIPES
# ==============================================================

class Recipe(BaseModel):
    """
    Fetch configuration of one package.

    Unknown keys are kept so that recipes written for other fetchers still
    load; the build service decides whether it can handle them.
    """

    model_config = ConfigDict(extra="allow")

    fetcher: str = Field(
        ...,
        description="Fetch method (github, gitlab, codeberg, git, file, ...)"
    )

    repo: Optional[str] = Field(
        default=None,
        description="'owner/name' repository for hosted fetchers"
    )

    url: Optional[str] = Field(
        default=None,
        description="Clone URL for the plain git fetcher"
    )

    path: Optional[str] = Field(
        default=None,
        description="Local directory for the file fetcher"
    )

    branch: Optional[str] = Field(default=None, description="Branch to check out")

    commit: Optional[str] = Field(default=None, description="Commit to check out")

    files: Optional[List[Any]] = Field(
        default=None,
        description="File specification (glob patterns, (:exclude ...) lists)"
    )

    stable: bool = Field(
        default=False,
        description="Build the newest version tag instead of the branch head"
    )

    @model_validator(mode="after")
    def validate_location(self) -> "Recipe":
        """Hosted fetchers need a repo, git needs a url, file needs a path."""
        fetcher = self.fetcher
        if fetcher in (Fetcher.GITHUB.value, Fetcher.GITLAB.value, Fetcher.CODEBERG.value):
            if not self.repo or "/" not in self.repo:
                raise ValueError(f"fetcher '{fetcher}' requires repo in 'owner/name' form")
        elif fetcher == Fetcher.GIT.value and not self.url:
            raise ValueError("fetcher 'git' requires url")
        elif fetcher == Fetcher.FILE.value and not self.path:
            raise ValueError("fetcher 'file' requires path")
        return self

class ResolvedRecipe(NamedTuple):
    """Canonical (name, recipe) pair; recipe is None when none was found."""
    name: str
    recipe: Optional[Recipe]

RecipeRequest = Union[str, Tuple[str, Union[Recipe, Dict[str, Any], None]], ResolvedRecipe]

# ==============================================================
# PACKAGE DESCRIPTOR
# ==============================================================

class Requirement(BaseModel):
    """A declared runtime dependency and the minimum version it needs."""
    model_config = ConfigDict(frozen=True)

    name: str
    min_version: Tuple[int, ...] = ()

class PackageDescriptor(BaseModel):
    """Normalized package metadata, independent of the format it came from."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    version: Tuple[int, ...]
    summary: str
    requires: FrozenSet[Requirement] = frozenset()
    kind: PackageKind
    extras: Dict[str, Any] = Field(default_factory=dict)

    def requirement_names(self) -> List[str]:
        """Dependency names in a stable order."""
        return sorted(req.name for req in self.requires)

# ==============================================================
# RAW METADATA (tagged union)
# ==============================================================

@dataclass(frozen=True)
class LegacyPackageInfo:
    """
    Positional metadata vector as produced by library header scanning.

    Layout: [name, requires, summary, version, commentary?]
    where requires is a list of (name, version-string) pairs.
    """
    vector: Tuple[Any, ...]

@dataclass(frozen=True)
class NamedPackageInfo:
    """Named-field metadata as declared by a define-package form."""
    name: str
    version: str
    summary: str = ""
    requires: List[Tuple[str, str]] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

RawPackageInfo = Union[LegacyPackageInfo, NamedPackageInfo]

# ==============================================================
# BUILD OUTCOMES
# ==============================================================

@dataclass(frozen=True)
class BuiltPackage:
    """What the source build service reports after packaging."""
    kind: PackageKind
    path: Optional[Path] = None

@dataclass(frozen=True)
class NoActionNeeded:
    """The package is up to date, built in, or has no recipe."""
    name: str
    reason: str

@dataclass(frozen=True)
class Artifact:
    """A freshly built, installable package file."""
    path: Path
    kind: PackageKind
    version: Tuple[int, ...] = ()

BuildOutcome = Union[NoActionNeeded, Artifact]
