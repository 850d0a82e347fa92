# tests/conftest.py

import io
import tarfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from elsrc.core.global_config import ElsrcConfig
from elsrc.core.models import BuiltPackage, PackageKind
from elsrc.core.pipeline import Session
from elsrc.core.version_handling import parse_version


class MockConsole:
    """
    A mock console that captures all output for testing purposes.
    Simulates the rich.Console interface.
    """
    def __init__(self):
        self.logs = []
        self.prints = []

    def log(self, *objects, **kwargs):
        self.logs.append(" ".join(map(str, objects)))

    def print(self, *objects, **kwargs):
        self.prints.append(" ".join(map(str, objects)))

    def output(self) -> str:
        return "\n".join(self.prints + self.logs)


class FakeBuildService:
    """
    Build service double: records calls and writes a real single-file
    package whose headers declare the configured requirements. Names in
    tar_packages are written as tarballs with a define-package form instead.
    """
    def __init__(self, versions: Optional[Dict[str, str]] = None,
                 requires: Optional[Dict[str, List[Tuple[str, str]]]] = None,
                 without_metadata: Sequence[str] = (),
                 tar_packages: Sequence[str] = ()):
        self.versions = dict(versions or {})
        self.requires = dict(requires or {})
        self.without_metadata = set(without_metadata)
        self.tar_packages = set(tar_packages)
        self.checkouts: List[str] = []
        self.packages: List[str] = []

    def checkout(self, name, recipe, build_dir):
        self.checkouts.append(name)
        return self.versions.get(name, "1.0")

    def package(self, name, version, files, build_dir, out_dir):
        self.packages.append(name)
        out_dir.mkdir(parents=True, exist_ok=True)
        if name in self.tar_packages:
            return self._write_tar(name, version, out_dir)
        path = out_dir / f"{name}-{version}.el"
        if name in self.without_metadata:
            path.write_text(f"(provide '{name})\n", encoding="utf-8")
        else:
            reqs = " ".join(f'({dep} "{ver}")' for dep, ver in self.requires.get(name, []))
            path.write_text(
                f";;; {name}.el --- The {name} package\n"
                f";; Version: {version}\n"
                f";; Package-Requires: ({reqs})\n"
                f";;; Code:\n"
                f"(provide '{name})\n",
                encoding="utf-8",
            )
        return BuiltPackage(kind=PackageKind.SINGLE, path=path)

    def _write_tar(self, name, version, out_dir):
        reqs = " ".join(f'({dep} "{ver}")' for dep, ver in self.requires.get(name, []))
        members = {
            f"{name}-{version}/{name}-pkg.el":
                f"(define-package \"{name}\" \"{version}\" \"The {name} package\" '({reqs}))\n",
            f"{name}-{version}/{name}.el": f"(provide '{name})\n",
        }
        path = out_dir / f"{name}-{version}.tar"
        with tarfile.open(path, "w") as archive:
            for arcname, text in members.items():
                data = text.encode("utf-8")
                info = tarfile.TarInfo(arcname)
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
        return BuiltPackage(kind=PackageKind.TAR, path=path)


class FakeHost:
    """Host package manager double recording install order."""
    def __init__(self, installed: Optional[Dict[str, str]] = None,
                 builtins: Optional[Dict[str, str]] = None):
        self.versions = {name: parse_version(v) for name, v in (installed or {}).items()}
        self.builtins = {name: parse_version(v) for name, v in (builtins or {}).items()}
        self.installed_files: List[str] = []

    def installed_version(self, name):
        return self.versions.get(name)

    def is_builtin(self, name, version):
        builtin = self.builtins.get(name)
        return builtin is not None and builtin >= tuple(version)

    def install_file(self, path):
        path = Path(path)
        self.installed_files.append(path.name)
        name, _, version = path.stem.rpartition("-")
        self.versions[name] = parse_version(version)

    @property
    def install_order(self) -> List[str]:
        return [Path(f).stem.rpartition("-")[0] for f in self.installed_files]


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def config(tmp_path: Path) -> ElsrcConfig:
    return ElsrcConfig(root_dir=tmp_path / "elsrc")


@pytest.fixture
def recipes_dir(config: ElsrcConfig) -> Path:
    """A populated mirror, so sessions never try to clone."""
    recipes = config.recipes_dir
    recipes.mkdir(parents=True)
    return recipes


def write_recipe(recipes: Path, name: str) -> None:
    (recipes / name).write_text(f'({name} :fetcher github :repo "someone/{name}")\n', encoding="utf-8")


@pytest.fixture
def make_session(config, recipes_dir, console):
    """Session factory wired to the given fakes and a mirror holding the named recipes."""
    def factory(service, host, recipes: Sequence[str] = (), session_config: Optional[ElsrcConfig] = None,
                **kwargs) -> Session:
        for name in recipes:
            write_recipe(recipes_dir, name)
        return Session(
            config=session_config or config,
            service=service,
            host=host,
            console=console,
            **kwargs,
        )
    return factory
