"""Data models for navigation structures (NCX and EPUB3 nav)."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NavigationSlot(str, Enum):
    """The three top-level lists a navigation document may carry."""

    TOC = "toc"
    PAGE_LIST = "page-list"
    LANDMARKS = "landmarks"

    @property
    def label(self) -> str:
        return {
            NavigationSlot.TOC: "table of contents",
            NavigationSlot.PAGE_LIST: "page list",
            NavigationSlot.LANDMARKS: "list of landmarks",
        }[self]

    @property
    def field_name(self) -> str:
        return self.value.replace("-", "_")


class NavigationItem(BaseModel):
    """Single entry of a table of contents, page list or landmarks list.

    `href` is an archive path, optionally followed by a fragment.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    href: str | None = None
    children: tuple["NavigationItem", ...] = ()

    @model_validator(mode="after")
    def _leaf_has_target(self) -> "NavigationItem":
        if self.href is None and not self.children:
            raise ValueError(f"navigation item {self.title!r} leads nowhere")
        return self

    @property
    def path(self) -> str | None:
        """Target without its fragment."""
        if self.href is None:
            return None
        return self.href.split("#", 1)[0]

    def iter_items(self):
        """Yield this item and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter_items()


class NavigationHierarchy(BaseModel):
    """One `nav` element or one NCX `navMap`/`pageList`/`navList`."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    items: tuple[NavigationItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def has_title(self) -> bool:
        return self.title is not None

    def iter_items(self):
        for item in self.items:
            yield from item.iter_items()


class NavigationDocument(BaseModel):
    """Up to three hierarchies read from one file, or reconciled from two."""

    model_config = ConfigDict(frozen=True)

    toc: NavigationHierarchy | None = None
    page_list: NavigationHierarchy | None = None
    landmarks: NavigationHierarchy | None = None

    def get(self, slot: NavigationSlot) -> NavigationHierarchy | None:
        return getattr(self, slot.field_name)

    @property
    def has_toc(self) -> bool:
        return self.toc is not None

    @property
    def has_non_empty_toc(self) -> bool:
        return self.toc is not None and not self.toc.is_empty

    def toc_documents(self, documents) -> list[str]:
        """Distinct documents reachable from the TOC, in first-occurrence order.

        Only paths contained in `documents` are listed.
        """
        if self.toc is None:
            return []
        seen: dict[str, None] = {}
        for item in self.toc.iter_items():
            path = item.path
            if path is not None and path in documents and path not in seen:
                seen[path] = None
        return list(seen)
