# elsrc/core/file_reading.py

"""
File reading utilities for elsrc.

This module reads recipe files (Lisp forms or YAML), Lisp source files with
proper encoding detection, library header blocks of single-file packages
and define-package forms inside package tarballs.
"""

import codecs
import re
import tarfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import chardet
import yaml
from pydantic import ValidationError

from elsrc.core import sexp
from elsrc.core.models import LegacyPackageInfo, NamedPackageInfo, Recipe
from elsrc.core.exceptions import DescriptorError, RecipeLoadError

YAML_SUFFIXES = (".yaml", ".yml")

# ==============================================================
# SOURCE DECODING
# ==============================================================

def _normalize_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\x00", "")


def decode_source_bytes(raw: bytes) -> str:
    """
    Decode source bytes with the correct encoding (UTF-8, UTF-16, etc.)
    and normalize line endings.
    """
    # BOM-aware encodings first
    encodings = ["utf-8-sig"]
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        encodings.insert(0, "utf-16")
    for encoding in encodings:
        try:
            return _normalize_text(raw.decode(encoding))
        except UnicodeDecodeError:
            continue

    detected = chardet.detect(raw)
    encoding = detected["encoding"] or "utf-8"
    try:
        return _normalize_text(raw.decode(encoding))
    except (UnicodeDecodeError, LookupError):
        pass

    # Last resort: force UTF-8 with replacement
    return _normalize_text(raw.decode("utf-8", errors="replace"))


def read_source_file_smart(path: Path) -> str:
    """Read a Lisp source file regardless of its encoding."""
    return decode_source_bytes(path.read_bytes())

# ==============================================================
# RECIPES
# ==============================================================

def parse_recipe_form(form: Any, source: str = "<recipe>") -> Tuple[str, Recipe]:
    """
    Turn a read recipe form into (name, Recipe).

    Accepts both `(name :fetcher github :repo "x/y")` and
    `(name (:fetcher github :repo "x/y"))`.
    """
    if not isinstance(form, list) or not form or not isinstance(form[0], str):
        raise RecipeLoadError(source, "expected a list starting with the package name")

    name = str(form[0])
    props = form[1:]
    if len(props) == 1 and isinstance(props[0], list):
        props = props[0]

    try:
        data = sexp.plist_to_dict(props)
    except sexp.SexpError as e:
        raise RecipeLoadError(source, str(e))
    return name, _recipe_from_dict(data, source)


def parse_recipe_string(text: str) -> Tuple[str, Recipe]:
    """Parse an explicit recipe given as text, e.g. on the command line."""
    try:
        form = sexp.loads(text)
    except sexp.SexpError as e:
        raise RecipeLoadError("<string>", str(e))
    return parse_recipe_form(form, "<string>")


def load_recipe_file(path: Path) -> Recipe:
    """
    Load a recipe file from the mirror.

    Files with a .yaml/.yml suffix hold a YAML mapping; any other file holds
    a single Lisp recipe form.

    Raises:
        RecipeLoadError: The file cannot be read or is not a valid recipe.
    """
    try:
        text = read_source_file_smart(path)
    except OSError as e:
        raise RecipeLoadError(str(path), str(e))

    if path.suffix in YAML_SUFFIXES:
        return _load_from_yaml(path, text)

    try:
        form = sexp.loads(text)
    except sexp.SexpError as e:
        raise RecipeLoadError(str(path), str(e))
    return parse_recipe_form(form, str(path))[1]


def _load_from_yaml(path: Path, text: str) -> Recipe:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RecipeLoadError(str(path), str(e))
    if not isinstance(data, dict):
        raise RecipeLoadError(str(path), "recipe file is empty or not a mapping")
    data.pop("name", None)
    return _recipe_from_dict(data, str(path))


def _recipe_from_dict(data: Dict[str, Any], source: str) -> Recipe:
    try:
        return Recipe(**data)
    except ValidationError as e:
        raise RecipeLoadError(source, str(e))

# ==============================================================
# LIBRARY HEADERS (single-file packages)
# ==============================================================

ARTIFACT_NAME_RE = re.compile(r"^(?P<name>.+)-(?P<version>\d[^-]*)\.(?:el|tar)$")

_FIRST_LINE_RE = re.compile(r"^;;;\s*(?P<file>\S+?)(?:\.el)?\s+---\s*(?P<summary>.*?)\s*$")
_MODE_LINE_RE = re.compile(r"\s*-\*-.*-\*-\s*")
_HEADER_RE = re.compile(r"^;+\s*(?P<key>[A-Za-z][\w-]*)\s*:\s*(?P<value>.*?)\s*$")
_SECTION_RE = re.compile(r"^;;;\s*(Commentary|Code)\s*:", re.IGNORECASE)


def parse_library_headers(text: str, filename: str, require_version: bool = True) -> LegacyPackageInfo:
    """
    Scan the header block of a single-file package.

    Returns the positional vector [name, requires, summary, version,
    commentary].

    Raises:
        DescriptorError: No version header (when require_version is set) or
            unreadable Package-Requires.
    """
    lines = text.split("\n")
    name = library_name_from_filename(filename)
    summary = ""

    if lines:
        match = _FIRST_LINE_RE.match(lines[0])
        if match:
            name = match.group("file")
            summary = _MODE_LINE_RE.sub(" ", match.group("summary")).strip()

    headers = _collect_headers(lines)

    version = headers.get("package-version") or headers.get("version") or ""
    if not version and require_version:
        raise DescriptorError(filename, "no Version or Package-Version header")

    requires: List[Tuple[str, str]] = []
    if headers.get("package-requires"):
        requires = _parse_requires(headers["package-requires"], filename)

    return LegacyPackageInfo((name, requires, summary, version, _commentary(lines)))


def library_name_from_filename(filename: str) -> str:
    """`bar-1.2.el` -> `bar`; plain source names keep their stem."""
    match = ARTIFACT_NAME_RE.match(Path(filename).name)
    if match:
        return match.group("name")
    return Path(filename).stem


def set_library_name(lines: List[str], name: str) -> None:
    """
    Make the first line of a library read `;;; NAME.el --- SUMMARY`.

    An existing summary and `-*- ... -*-` cookie are kept; a missing title
    line is inserted.
    """
    title = f";;; {name}.el ---"
    if lines:
        match = _FIRST_LINE_RE.match(lines[0])
        if match:
            lines[0] = f"{title} {match.group('summary')}".rstrip()
            return
        cookie = _MODE_LINE_RE.search(lines[0])
        if cookie and lines[0].startswith(";"):
            lines[0] = f"{title} {cookie.group(0).strip()}"
            return
    lines.insert(0, title)


def _collect_headers(lines: List[str]) -> Dict[str, str]:
    """Collect `;; Key: value` headers up to the Commentary/Code section."""
    headers: Dict[str, str] = {}
    index = 1
    while index < len(lines):
        line = lines[index]
        if _SECTION_RE.match(line):
            break
        match = _HEADER_RE.match(line)
        if match:
            key = match.group("key").lower()
            value = match.group("value")
            # Package-Requires may continue on following comment lines
            if key == "package-requires":
                while value.count("(") > value.count(")") and index + 1 < len(lines):
                    index += 1
                    value += " " + lines[index].lstrip(";").strip()
            headers.setdefault(key, value)
        index += 1
    return headers


def _commentary(lines: List[str]) -> str:
    collecting = False
    body: List[str] = []
    for line in lines:
        section = _SECTION_RE.match(line)
        if section:
            if collecting:
                break
            collecting = section.group(1).lower() == "commentary"
            continue
        if collecting:
            body.append(re.sub(r"^;+ ?", "", line))
    return "\n".join(body).strip()


def _parse_requires(value: Any, source: str) -> List[Tuple[str, str]]:
    """Parse a requirement list into (name, version-string) pairs."""
    if isinstance(value, str):
        try:
            value = sexp.loads(value)
        except sexp.SexpError as e:
            raise DescriptorError(source, f"unreadable Package-Requires: {e}")

    value = sexp.unquote(value)
    if value is None or value == sexp.NIL:
        return []
    if not isinstance(value, list):
        raise DescriptorError(source, "Package-Requires must be a list")

    pairs: List[Tuple[str, str]] = []
    for entry in value:
        if isinstance(entry, str):
            pairs.append((str(entry), "0"))
            continue
        if not isinstance(entry, list) or not entry or not isinstance(entry[0], str):
            raise DescriptorError(source, f"invalid requirement entry: {entry!r}")
        version = str(entry[1]) if len(entry) > 1 else "0"
        pairs.append((str(entry[0]), version))
    return pairs

# ==============================================================
# DEFINE-PACKAGE FORMS (tarball packages)
# ==============================================================

def parse_define_package(text: str, source: str = "<pkg>") -> NamedPackageInfo:
    """
    Read a `(define-package NAME VERSION SUMMARY REQUIRES &rest PROPS)` form.

    Raises:
        DescriptorError: The text does not hold a valid define-package form.
    """
    try:
        form = sexp.loads(text)
    except sexp.SexpError as e:
        raise DescriptorError(source, str(e))

    if not isinstance(form, list) or len(form) < 3 or form[0] != "define-package":
        raise DescriptorError(source, "expected a define-package form")

    name, version = form[1], form[2]
    if not _is_string(name) or not _is_string(version):
        raise DescriptorError(source, "package name and version must be strings")

    summary = form[3] if len(form) > 3 and _is_string(form[3]) else ""
    requires = _parse_requires(form[4], source) if len(form) > 4 else []

    try:
        extras = sexp.plist_to_dict(form[5:])
    except sexp.SexpError as e:
        raise DescriptorError(source, str(e))

    return NamedPackageInfo(
        name=str(name),
        version=version,
        summary=str(summary),
        requires=requires,
        extras=extras,
    )


def _is_string(value: Any) -> bool:
    """Lisp string literal (symbols are str subclasses too)."""
    return isinstance(value, str) and not isinstance(value, sexp.Symbol)


def read_archive_metadata(path: Union[str, Path]) -> NamedPackageInfo:
    """
    Read the `<name>-pkg.el` file from the top directory of a package tarball.

    Raises:
        DescriptorError: No package description file in the archive.
        tarfile.TarError, OSError: The archive cannot be read.
    """
    path = Path(path)
    with tarfile.open(path, "r") as archive:
        member = _find_pkg_member(archive.getmembers())
        if member is None:
            raise DescriptorError(str(path), "no <name>-pkg.el file in archive")
        handle = archive.extractfile(member)
        if handle is None:
            raise DescriptorError(str(path), f"{member.name} is not a regular file")
        text = decode_source_bytes(handle.read())
    return parse_define_package(text, f"{path}:{member.name}")


def _find_pkg_member(members: List[tarfile.TarInfo]) -> Optional[tarfile.TarInfo]:
    for member in members:
        parts = Path(member.name).parts
        if len(parts) == 2 and parts[1].endswith("-pkg.el") and member.isfile():
            return member
    return None
