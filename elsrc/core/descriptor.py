# elsrc/core/descriptor.py

"""
Descriptor extraction.

Reads the metadata block of a built artifact and normalizes it into a
PackageDescriptor. Single-file packages carry their metadata in library
headers (read as a legacy positional vector); tarballs carry a
define-package form (read as named fields). Both variants are converted
here, at the ingestion boundary, and nowhere else.

Extraction never raises: failures come back as typed ExtractionFailure
values so callers can tell "not a package" from "malformed metadata" from
"I/O error" while still degrading gracefully.
"""

from __future__ import annotations

import tarfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple, Union

from elsrc.core.console import Console, ConsoleAware
from elsrc.core.exceptions import DescriptorError, VersionFormatError
from elsrc.core.file_reading import (
    parse_library_headers,
    read_archive_metadata,
    read_source_file_smart,
)
from elsrc.core.models import (
    LegacyPackageInfo,
    PackageDescriptor,
    PackageKind,
    RawPackageInfo,
    Requirement,
)
from elsrc.core.version_handling import parse_version

DEFAULT_SUMMARY = "No description available."

# ==============================================================
# RESULT TYPES
# ==============================================================

class FailureReason(str, Enum):
    NOT_A_PACKAGE = "not-a-package"
    MALFORMED_METADATA = "malformed-metadata"
    IO_ERROR = "io-error"

@dataclass(frozen=True)
class ExtractionFailure:
    reason: FailureReason
    detail: str

@dataclass(frozen=True)
class ExtractionResult:
    """Either a descriptor or the reason none could be produced."""
    descriptor: Optional[PackageDescriptor] = None
    failure: Optional[ExtractionFailure] = None

    @property
    def ok(self) -> bool:
        return self.descriptor is not None

# ==============================================================
# NORMALIZATION
# ==============================================================

def _requirements(pairs: Iterable[Tuple[Any, Any]]) -> frozenset:
    return frozenset(
        Requirement(name=str(name), min_version=parse_version(str(version)))
        for name, version in pairs
    )


def normalize_package_info(info: RawPackageInfo, kind: PackageKind) -> PackageDescriptor:
    """
    Convert either raw metadata variant into a PackageDescriptor.

    Legacy vectors map field 0 to name, 1 to requires, 2 to summary and 3 to
    version; an empty summary is replaced by a default string.

    Raises:
        DescriptorError: The vector is too short.
        VersionFormatError: A version string does not parse.
    """
    if isinstance(info, LegacyPackageInfo):
        vector = info.vector
        if len(vector) < 4:
            raise DescriptorError("<legacy>", f"expected at least 4 fields, got {len(vector)}")
        extras = {"commentary": vector[4]} if len(vector) > 4 and vector[4] else {}
        return PackageDescriptor(
            name=str(vector[0]),
            version=parse_version(str(vector[3])),
            summary=vector[2] or DEFAULT_SUMMARY,
            requires=_requirements(vector[1] or []),
            kind=kind,
            extras=extras,
        )

    return PackageDescriptor(
        name=info.name,
        version=parse_version(info.version),
        summary=info.summary or DEFAULT_SUMMARY,
        requires=_requirements(info.requires),
        kind=kind,
        extras=dict(info.extras),
    )

# ==============================================================
# EXTRACTOR
# ==============================================================

class DescriptorExtractor(ConsoleAware):
    """Reads artifact metadata into descriptors, never raising."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        super().__init__(console, verbose)

    def extract(self, path: Union[str, Path]) -> ExtractionResult:
        path = Path(path)
        kind = PackageKind.from_path(path)
        if kind is None:
            return self._fail(FailureReason.NOT_A_PACKAGE, f"{path.name} is not a package file")

        try:
            info = self._read_raw(path, kind)
            descriptor = normalize_package_info(info, kind)
        except (DescriptorError, VersionFormatError) as e:
            return self._fail(FailureReason.MALFORMED_METADATA, str(e))
        except (OSError, tarfile.TarError) as e:
            return self._fail(FailureReason.IO_ERROR, f"{path}: {e}")
        except Exception as e:
            return self._fail(FailureReason.MALFORMED_METADATA, f"{path}: {e}")

        self.log(f"[dim]Descriptor[/] {descriptor.name} → {path.name}")
        return ExtractionResult(descriptor=descriptor)

    def extract_descriptor(self, path: Union[str, Path]) -> Optional[PackageDescriptor]:
        """Descriptor of the artifact, or None when extraction failed."""
        return self.extract(path).descriptor

    def _read_raw(self, path: Path, kind: PackageKind) -> RawPackageInfo:
        if kind is PackageKind.TAR:
            return read_archive_metadata(path)
        return parse_library_headers(read_source_file_smart(path), path.name)

    def _fail(self, reason: FailureReason, detail: str) -> ExtractionResult:
        self.log(f"[yellow]No package metadata[/] ({reason.value}): {detail}")
        return ExtractionResult(failure=ExtractionFailure(reason, detail))
