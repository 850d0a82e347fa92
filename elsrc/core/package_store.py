# elsrc/core/package_store.py

"""
Host package manager contract and a directory-backed implementation.

The pipeline only needs three calls from the host: which version of a
package is installed, whether a version is satisfied by a bundled package,
and installing an artifact file. LocalPackageStore provides them on top of
a plain directory with a YAML registry of installed packages.
"""

from __future__ import annotations

import shutil
import tarfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Sequence, Tuple

import yaml

from elsrc.core.console import Console, ConsoleAware
from elsrc.core.descriptor import DescriptorExtractor
from elsrc.core.exceptions import PackageInstallError, VersionFormatError
from elsrc.core.file_reading import ARTIFACT_NAME_RE
from elsrc.core.models import PackageKind
from elsrc.core.version_handling import Version, format_version, parse_version, version_at_least

REGISTRY_FILE = "installed.yaml"

# ==============================================================
# CONTRACT
# ==============================================================

class HostPackageManager(Protocol):
    """Calls the pipeline consumes from the host package manager."""

    def installed_version(self, name: str) -> Optional[Version]:
        ...

    def is_builtin(self, name: str, version: Sequence[int]) -> bool:
        ...

    def install_file(self, path: Path) -> None:
        ...

# ==============================================================
# LOCAL PACKAGE STORE
# ==============================================================

class LocalPackageStore(ConsoleAware):
    """Installs artifacts into `store_dir/<name>-<version>/`."""

    def __init__(self, store_dir: Path, builtins: Optional[Dict[str, str]] = None,
                 console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)
        self.store_dir: Path = Path(store_dir)
        self.registry_path: Path = self.store_dir / REGISTRY_FILE
        self.builtins: Dict[str, Version] = {
            name: parse_version(version) for name, version in (builtins or {}).items()
        }
        self.extractor = DescriptorExtractor(console, verbose)
        self._data: Optional[Dict[str, Dict]] = None

    # ---- registry ------------------------------------------------

    def load(self) -> Dict[str, Dict]:
        """Load registry data and cache it."""
        data: Dict[str, Dict] = {}
        if self.registry_path.exists():
            loaded = yaml.safe_load(self.registry_path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                data = loaded
        self._data = data
        return data

    def save(self) -> None:
        """Save cached registry data."""
        if self._data is None:
            return
        self.store_dir.mkdir(parents=True, exist_ok=True)
        content = yaml.dump(self._data, default_flow_style=False, sort_keys=True)
        self.registry_path.write_text(content, encoding="utf-8")

    def installed(self) -> Dict[str, Dict]:
        """All registry entries keyed by package name."""
        if self._data is None:
            self.load()
        return dict(self._data)  # type: ignore[arg-type]

    # ---- host contract -------------------------------------------

    def installed_version(self, name: str) -> Optional[Version]:
        entry = self.installed().get(name)
        if not entry or "version" not in entry:
            return None
        try:
            return parse_version(str(entry["version"]))
        except VersionFormatError:
            return None

    def is_builtin(self, name: str, version: Sequence[int]) -> bool:
        builtin = self.builtins.get(name)
        return builtin is not None and version_at_least(builtin, version)

    def install_file(self, path: Path) -> None:
        """
        Install a single-file or tarball artifact.

        Raises:
            PackageInstallError: The file is missing, not a package, or its
                name and version cannot be determined.
        """
        path = Path(path)
        kind = PackageKind.from_path(path)
        if kind is None:
            raise PackageInstallError(str(path), "not a package file")
        if not path.is_file():
            raise PackageInstallError(str(path), "file does not exist")

        name, version, summary = self._identify(path)
        version_str = format_version(version)
        target = self.store_dir / f"{name}-{version_str}"

        self._remove_previous(name, target)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        try:
            if kind is PackageKind.SINGLE:
                target.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, target / f"{name}.el")
            else:
                self._unpack(path, target)
        except (OSError, tarfile.TarError) as e:
            raise PackageInstallError(str(path), str(e))

        if self._data is None:
            self.load()
        self._data[name] = {  # type: ignore[index]
            "version": version_str,
            "kind": kind.value,
            "summary": summary,
            "path": str(target),
        }
        self.save()
        self.print(f"[green]✔[/] Installed [bold]{name}[/] : {version_str}")

    # ---- helpers -------------------------------------------------

    def _identify(self, path: Path) -> Tuple[str, Version, str]:
        descriptor = self.extractor.extract_descriptor(path)
        if descriptor is not None:
            return descriptor.name, descriptor.version, descriptor.summary

        # No usable metadata: fall back to the artifact naming scheme
        match = ARTIFACT_NAME_RE.match(path.name)
        if not match:
            raise PackageInstallError(str(path), "cannot determine package name and version")
        try:
            version = parse_version(match.group("version"))
        except VersionFormatError as e:
            raise PackageInstallError(str(path), str(e))
        return match.group("name"), version, ""

    def _remove_previous(self, name: str, target: Path) -> None:
        entry = self.installed().get(name)
        if entry and entry.get("path"):
            previous = Path(entry["path"])
            if previous.exists() and previous != target:
                self.log(f"[dim]Removing previous version[/] {previous.name}")
                shutil.rmtree(previous)
        if target.exists():
            shutil.rmtree(target)

    def _unpack(self, path: Path, target: Path) -> None:
        staging = self.store_dir / f".unpack-{target.name}"
        if staging.exists():
            shutil.rmtree(staging)
        try:
            with tarfile.open(path, "r") as archive:
                top_dirs = {Path(member.name).parts[0] for member in archive.getmembers() if member.name}
                if len(top_dirs) != 1:
                    raise PackageInstallError(str(path), "archive must contain exactly one top directory")
                archive.extractall(staging, filter="data")
            (staging / top_dirs.pop()).rename(target)
        finally:
            if staging.exists():
                shutil.rmtree(staging)
