"""Exception hierarchy raised by the product build pipeline."""

from __future__ import annotations


class ForgeError(Exception):
    """Base class for product_forge failures."""


class StagingError(ForgeError, OSError):
    """Raised when the build directory cannot be created or written."""


class StructuralError(ForgeError, AssertionError):
    """Raised when document groups are opened and closed out of order."""


class ProjectConfigError(ForgeError, ValueError):
    """Raised when a project tree is invalid or incomplete."""


class ProductNotFoundError(ForgeError, LookupError):
    """Raised when the porter cannot find the requested product."""


__all__ = [
    "ForgeError",
    "ProductNotFoundError",
    "ProjectConfigError",
    "StagingError",
    "StructuralError",
]
