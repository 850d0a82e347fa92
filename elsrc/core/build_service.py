# elsrc/core/build_service.py

"""
Source build service.

Fetches a package's source into a build directory, reports the version it
found there, and packages the selected files into a single .el file or a
.tar archive. The pipeline depends only on the SourceBuildService protocol;
GitBuildService is the default implementation.
"""

from __future__ import annotations

import fnmatch
import re
import shutil
import tarfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Tuple

import git

from elsrc.core import sexp
from elsrc.core.console import Console, ConsoleAware
from elsrc.core.exceptions import (
    CheckoutError,
    DescriptorError,
    PackagingError,
    UnsupportedFetcherError,
    VersionFormatError,
)
from elsrc.core.file_reading import parse_library_headers, read_source_file_smart, set_library_name
from elsrc.core.models import BuiltPackage, Fetcher, PackageKind, Recipe
from elsrc.core.version_handling import format_version, parse_version

HOSTED_FETCHERS = {
    Fetcher.GITHUB.value: "https://github.com/{repo}.git",
    Fetcher.GITLAB.value: "https://gitlab.com/{repo}.git",
    Fetcher.CODEBERG.value: "https://codeberg.org/{repo}.git",
}

DEFAULT_FILES: List[Any] = [
    "*.el", "lisp/*.el", "dir", "*.info", "*.texi", "*.texinfo",
    [":exclude", ".dir-locals.el", "test.el", "tests.el", "*-test.el", "*-tests.el", "*-pkg.el"],
]

SNAPSHOT_FORMAT = "%Y%m%d.%H%M"

# ==============================================================
# CONTRACT
# ==============================================================

class SourceBuildService(Protocol):
    """Calls the pipeline consumes from the source build service."""

    def checkout(self, name: str, recipe: Recipe, build_dir: Path) -> Optional[str]:
        ...

    def package(self, name: str, version: str, files: Optional[List[Any]],
                build_dir: Path, out_dir: Path) -> BuiltPackage:
        ...

# ==============================================================
# FILE SPECIFICATIONS
# ==============================================================

def expand_file_specs(source_dir: Path, specs: Optional[List[Any]]) -> List[Tuple[Path, Path]]:
    """
    Expand a recipe file specification into (source, destination) pairs.

    - "glob": matching files, placed at the top of the package
    - ["subdir", "glob", ...]: matching files, placed under subdir
    - [":exclude", "glob", ...]: drop previously matched files
    - ":defaults": the default specification
    """
    if specs is None:
        specs = DEFAULT_FILES

    selected: dict[Path, Path] = {}
    for spec in specs:
        if spec == ":defaults":
            selected.update(expand_file_specs(source_dir, DEFAULT_FILES))
        elif isinstance(spec, str):
            for src in _glob(source_dir, spec):
                selected[src] = Path(src.name)
        elif isinstance(spec, list) and spec and spec[0] == ":exclude":
            for src in list(selected):
                if any(fnmatch.fnmatch(str(src), pattern) or fnmatch.fnmatch(src.name, pattern)
                       for pattern in spec[1:]):
                    del selected[src]
        elif isinstance(spec, list) and spec and isinstance(spec[0], str):
            subdir = Path(spec[0])
            for dst_src, dst in expand_file_specs(source_dir, spec[1:]):
                selected[dst_src] = subdir / dst
    return sorted(selected.items())


def _glob(source_dir: Path, pattern: str) -> List[Path]:
    return sorted(
        path.relative_to(source_dir) for path in source_dir.glob(pattern)
        if path.is_file() and ".git" not in path.relative_to(source_dir).parts
    )

# ==============================================================
# GIT BUILD SERVICE
# ==============================================================

class GitBuildService(ConsoleAware):
    """Fetches sources with GitPython (or from a local directory) and packages them."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)

    # ---- checkout ------------------------------------------------

    def checkout(self, name: str, recipe: Recipe, build_dir: Path) -> Optional[str]:
        """
        Fetch the source of a package into build_dir.

        Returns:
            The version found: the newest version tag for stable recipes,
            otherwise a timestamp snapshot version of the checked out commit.

        Raises:
            UnsupportedFetcherError: Unknown fetcher.
            CheckoutError: Fetching failed.
        """
        fetcher = recipe.fetcher
        if fetcher in HOSTED_FETCHERS:
            url = HOSTED_FETCHERS[fetcher].format(repo=recipe.repo)
            return self._checkout_git(name, url, recipe, build_dir)
        if fetcher == Fetcher.GIT.value:
            return self._checkout_git(name, recipe.url, recipe, build_dir)  # type: ignore[arg-type]
        if fetcher == Fetcher.FILE.value:
            return self._checkout_file(name, Path(recipe.path).expanduser(), build_dir)  # type: ignore[arg-type]
        raise UnsupportedFetcherError(name, fetcher)

    def _checkout_git(self, name: str, url: str, recipe: Recipe, build_dir: Path) -> Optional[str]:
        self.print(f"[dim cyan]↳ fetching[/] [bold]{name}[/] ← {url}")
        repo = self._open_or_clone(name, url, build_dir)

        try:
            if recipe.stable:
                tag = self._newest_version_tag(repo)
                if tag is None:
                    self.warn(f"No version tags found for '{name}'")
                    return None
                repo.git.checkout("--force", "--detach", tag[1])
                return format_version(tag[0])

            if recipe.commit:
                ref = recipe.commit
            elif recipe.branch:
                ref = f"origin/{recipe.branch}"
            else:
                ref = "origin/HEAD"
            repo.git.checkout("--force", "--detach", ref)
            committed = repo.head.commit.committed_datetime.astimezone(timezone.utc)
        except Exception as e:
            raise CheckoutError(name, str(e))

        return self._snapshot_version(committed)

    def _open_or_clone(self, name: str, url: str, build_dir: Path) -> git.Repo:
        if (build_dir / ".git").exists():
            try:
                repo = git.Repo(build_dir)
                if repo.remotes and repo.remotes.origin.url == url:
                    self.log(f"[dim]Updating checkout[/] {build_dir}")
                    repo.git.fetch("origin", "--tags", "--force")
                    return repo
            except Exception as e:
                self.log(f"[dim]Discarding unusable checkout[/] {build_dir}: {e}")
            shutil.rmtree(build_dir)
        elif build_dir.exists():
            shutil.rmtree(build_dir)

        try:
            build_dir.parent.mkdir(parents=True, exist_ok=True)
            return git.Repo.clone_from(url, build_dir)
        except Exception as e:
            raise CheckoutError(name, f"clone of {url} failed: {e}")

    @staticmethod
    def _newest_version_tag(repo: git.Repo) -> Optional[Tuple[Tuple[int, ...], str]]:
        candidates = []
        for tag in repo.tags:
            try:
                candidates.append((parse_version(re.sub(r"^[vV]", "", tag.name)), tag.name))
            except VersionFormatError:
                continue
        return max(candidates) if candidates else None

    def _checkout_file(self, name: str, source: Path, build_dir: Path) -> Optional[str]:
        if not source.is_dir():
            raise CheckoutError(name, f"source directory {source} does not exist")
        self.print(f"[dim cyan]↳ copying[/] [bold]{name}[/] ← {source}")
        try:
            if build_dir.exists():
                shutil.rmtree(build_dir)
            shutil.copytree(source, build_dir, ignore=shutil.ignore_patterns(".git"))
        except OSError as e:
            raise CheckoutError(name, str(e))

        mtimes = [p.stat().st_mtime for p in build_dir.rglob("*") if p.is_file()]
        if not mtimes:
            return None
        return self._snapshot_version(datetime.fromtimestamp(max(mtimes), tz=timezone.utc))

    @staticmethod
    def _snapshot_version(moment: datetime) -> str:
        # 20240105.0930 -> 20240105.930
        return format_version(parse_version(moment.strftime(SNAPSHOT_FORMAT)))

    # ---- packaging -----------------------------------------------

    def package(self, name: str, version: str, files: Optional[List[Any]],
                build_dir: Path, out_dir: Path) -> BuiltPackage:
        """
        Package the selected files of a checkout.

        A selection of exactly one .el file becomes a single-file package;
        anything else becomes a tarball with a generated <name>-pkg.el.

        Raises:
            PackagingError: No files selected or metadata unreadable.
        """
        selected = expand_file_specs(build_dir, files)
        if not selected:
            raise PackagingError(name, f"no files matched in {build_dir}")

        out_dir.mkdir(parents=True, exist_ok=True)

        if len(selected) == 1 and selected[0][1].suffix == ".el":
            target = out_dir / f"{name}-{version}.el"
            self._write_single(name, version, build_dir / selected[0][0], target)
            return BuiltPackage(kind=PackageKind.SINGLE, path=target)

        target = out_dir / f"{name}-{version}.tar"
        self._write_tar(name, version, build_dir, selected, target)
        return BuiltPackage(kind=PackageKind.TAR, path=target)

    def _write_single(self, name: str, version: str, source: Path, target: Path) -> None:
        text = read_source_file_smart(source)
        lines = text.split("\n")
        set_library_name(lines, name)
        header = f";; Package-Version: {version}"
        for index, line in enumerate(lines):
            if re.match(r"^;+\s*Package-Version\s*:", line, re.IGNORECASE):
                lines[index] = header
                break
        else:
            lines.insert(1 if lines else 0, header)
        target.write_text("\n".join(lines), encoding="utf-8")
        self.log(f"[dim]packaged[/] {name} → {target.name}")

    def _write_tar(self, name: str, version: str, build_dir: Path,
                   selected: Sequence[Tuple[Path, Path]], target: Path) -> None:
        summary, requires = self._main_file_metadata(name, build_dir, selected)
        define_package = sexp.dumps([
            sexp.Symbol("define-package"), name, version, summary,
            [sexp.QUOTE, [[sexp.Symbol(dep), dep_version] for dep, dep_version in requires]],
        ])

        top = f"{name}-{version}"
        pkg_file = build_dir / f"{name}-pkg.el"
        try:
            pkg_file.write_text(define_package + "\n", encoding="utf-8")
            with tarfile.open(target, "w") as archive:
                for src, dst in selected:
                    archive.add(build_dir / src, arcname=f"{top}/{dst.as_posix()}")
                archive.add(pkg_file, arcname=f"{top}/{name}-pkg.el")
        except (OSError, tarfile.TarError) as e:
            raise PackagingError(name, str(e))
        self.log(f"[dim]packaged[/] {name} → {target.name} ({len(selected)} file(s))")

    @staticmethod
    def _main_file_metadata(name: str, build_dir: Path,
                            selected: Sequence[Tuple[Path, Path]]) -> Tuple[str, List[Tuple[str, str]]]:
        for src, dst in selected:
            if dst.name == f"{name}.el":
                try:
                    vector = parse_library_headers(
                        read_source_file_smart(build_dir / src), dst.name, require_version=False
                    ).vector
                except DescriptorError as e:
                    raise PackagingError(name, str(e))
                return vector[2], vector[1]
        return "", []
