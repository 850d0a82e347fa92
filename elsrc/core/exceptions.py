# elsrc/core/exceptions.py

from typing import Optional

"""
elsrc domain-specific exceptions.

Library code raises these; CLI commands catch ElsrcError and present the
message to the user. "Nothing to do" outcomes (already installed, no recipe,
unreadable metadata) are never signalled through exceptions.
"""

class ElsrcError(Exception):
    """Base exception for all elsrc errors."""
    pass

# ==============================================================
# RECIPE ERRORS
# ==============================================================

class RecipeError(ElsrcError):
    """Base exception for recipe-related errors."""
    pass

class RecipeLoadError(RecipeError):
    """Raised when a recipe file or recipe string cannot be parsed."""
    def __init__(self, source: str, details: str):
        self.source = source
        self.details = details
        super().__init__(f"Failed to load recipe from {source}: {details}")

class RecipeMirrorError(RecipeError):
    """Raised when the recipe mirror cannot be cloned or updated."""
    def __init__(self, url: str, details: str):
        self.url = url
        self.details = details
        super().__init__(f"Recipe mirror operation failed for {url}: {details}")

# ==============================================================
# VERSION ERRORS
# ==============================================================

class VersionFormatError(ElsrcError):
    """Raised when a version string cannot be parsed."""
    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid version string: '{version}'")

# ==============================================================
# BUILD ERRORS
# ==============================================================

class BuildError(ElsrcError):
    """Base exception for source build failures."""
    pass

class UnsupportedFetcherError(BuildError):
    """Raised when a recipe names a fetcher the build service cannot handle."""
    def __init__(self, name: str, fetcher: Optional[str]):
        self.name = name
        self.fetcher = fetcher
        super().__init__(f"Unsupported fetcher '{fetcher}' in recipe for '{name}'")

class CheckoutError(BuildError):
    """Raised when fetching the source of a package fails."""
    def __init__(self, name: str, details: str):
        self.name = name
        self.details = details
        super().__init__(f"Checkout of '{name}' failed: {details}")

class PackagingError(BuildError):
    """Raised when a checked out source tree cannot be packaged."""
    def __init__(self, name: str, details: str):
        self.name = name
        self.details = details
        super().__init__(f"Packaging of '{name}' failed: {details}")

# ==============================================================
# DESCRIPTOR ERRORS
# ==============================================================

class DescriptorError(ElsrcError):
    """Raised by metadata readers when an artifact's metadata is malformed."""
    def __init__(self, path: str, details: str):
        self.path = path
        self.details = details
        super().__init__(f"Malformed package metadata in {path}: {details}")

# ==============================================================
# PACKAGE STORE ERRORS
# ==============================================================

class PackageStoreError(ElsrcError):
    """Base exception for host package store errors."""
    pass

class PackageInstallError(PackageStoreError):
    """Raised when an artifact cannot be installed into the package store."""
    def __init__(self, path: str, details: str):
        self.path = path
        self.details = details
        super().__init__(f"Cannot install {path}: {details}")

# ==============================================================
# USAGE ERRORS
# ==============================================================

class InvalidUsageError(ElsrcError):
    """Raised when the CLI is used with inconsistent arguments."""
    pass
