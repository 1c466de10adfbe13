"""Data models for package contents and build configuration."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from epub_pack.core.errors import FatalError

LEGALESE_PREFIXES = ("readme", "license", "copying", "fontlog", "changelog")


class FileEntry(BaseModel):
    """A file of the input directory, or a generated one."""

    path: str  # archive path, '/'-separated
    size: int = 0
    source: Path | None = None
    data: bytes | None = None

    @property
    def file_name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def stem(self) -> str:
        name = self.file_name
        dot = name.rfind(".")
        if dot <= 0:  # a leading dot is not an extension dot
            return name
        return name[:dot]

    @property
    def extension(self) -> str:
        name = self.file_name
        dot = name.rfind(".")
        if dot <= 0:
            return ""
        return name[dot + 1 :].lower()

    @property
    def is_hidden(self) -> bool:
        return self.file_name.startswith(".")

    @property
    def is_legalese(self) -> bool:
        ext = self.extension
        if ext in ("txt", "md"):
            return True
        if ext:
            return False
        return self.file_name.lower().startswith(LEGALESE_PREFIXES)

    @property
    def is_auto_included(self) -> bool:
        return not self.is_hidden and not self.is_legalese

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.source is None:
            raise FatalError(f"No content for {self.path}.")
        try:
            return self.source.read_bytes()
        except FileNotFoundError:
            raise FatalError(f"File went away during program execution: {self.path}")
        except OSError as e:
            raise FatalError(f"Unable to read file: {self.path} ({e})")


class Resource(BaseModel):
    """A file on its way into the archive."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    entry: FileEntry
    media_type: str | None = None
    tree: Any = None  # lxml ElementTree once parsed
    dirty: bool = False  # tree must be serialized instead of copying bytes

    @property
    def path(self) -> str:
        return self.entry.path


class ManifestItem(BaseModel):
    """One `<item>` of the OPF manifest."""

    id: str
    href: str
    media_type: str
    properties: list[str] = Field(default_factory=list)


class BuildOptions(BaseModel):
    """Options of a single build run."""

    output: Path | None = None  # None = <directory>.epub beside the directory
    force: bool = False
    refresh_manifest: bool = False
    remove_scripting: bool = False
    language: str = "en"


class BuildResult(BaseModel):
    """Summary of a finished build."""

    output: Path
    opf_path: str
    manifest: list[ManifestItem]
    spine: list[str]
    unplaced: list[str] = Field(default_factory=list)
    converted: list[str] = Field(default_factory=list)
    warning_count: int = 0
    error_count: int = 0
