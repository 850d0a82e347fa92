# elsrc/__init__.py

from .core.exceptions import (
    ElsrcError,
    RecipeError,
    RecipeLoadError,
    RecipeMirrorError,
    VersionFormatError,
    BuildError,
    UnsupportedFetcherError,
    CheckoutError,
    PackagingError,
    DescriptorError,
    PackageStoreError,
    PackageInstallError,
    InvalidUsageError,
)

__all__ = [
    'ElsrcError',
    'RecipeError',
    'RecipeLoadError',
    'RecipeMirrorError',
    'VersionFormatError',
    'BuildError',
    'UnsupportedFetcherError',
    'CheckoutError',
    'PackagingError',
    'DescriptorError',
    'PackageStoreError',
    'PackageInstallError',
    'InvalidUsageError',
]
