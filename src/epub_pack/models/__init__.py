"""Data models."""

from epub_pack.models.media import SniffState
from epub_pack.models.navigation import (
    NavigationDocument,
    NavigationHierarchy,
    NavigationItem,
    NavigationSlot,
)
from epub_pack.models.package import (
    BuildOptions,
    BuildResult,
    FileEntry,
    ManifestItem,
    Resource,
)

__all__ = [
    # Media
    "SniffState",
    # Navigation models
    "NavigationItem",
    "NavigationHierarchy",
    "NavigationDocument",
    "NavigationSlot",
    # Package models
    "FileEntry",
    "Resource",
    "ManifestItem",
    "BuildOptions",
    "BuildResult",
]
