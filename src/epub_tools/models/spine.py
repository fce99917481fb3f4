"""Data models for the manifest and spine of an EPUB package."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MediaType(str, Enum):
    """Media types an EPUB package commonly declares."""

    XHTML = "application/xhtml+xml"
    HTML = "text/html"
    NCX = "application/x-dtbncx+xml"
    OPF = "application/oebps-package+xml"
    CSS = "text/css"
    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    SVG = "image/svg+xml"


class ManifestItem(BaseModel):
    """Single file declared in the package manifest."""

    model_config = ConfigDict(frozen=True)

    id: str
    href: str
    media_type: str = ""


class SpineItem(BaseModel):
    """Single entry of the reading order."""

    model_config = ConfigDict(frozen=True)

    id: str
    href: str
    media_type: str = MediaType.XHTML.value

    @property
    def is_xhtml(self) -> bool:
        return self.media_type in (MediaType.XHTML.value, MediaType.HTML.value)


class Spine(BaseModel):
    """Ordered spine items plus the path of the TOC document."""

    items: list[SpineItem] = Field(default_factory=list)
    toc_source: str = ""

    def add_item(self, item: SpineItem) -> None:
        self.items.append(item)

    def __len__(self) -> int:
        return len(self.items)

    def get_item(self, index: int) -> SpineItem:
        return self.items[index]

    @property
    def first_item(self) -> SpineItem | None:
        return self.items[0] if self.items else None

    @property
    def last_item(self) -> SpineItem | None:
        return self.items[-1] if self.items else None

    def find_item(self, item_id: str) -> SpineItem | None:
        """Find a spine item by its manifest id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_by_href(self, href: str) -> SpineItem | None:
        """Find a spine item by its path, ignoring any fragment."""
        href = href.split("#")[0]
        for item in self.items:
            if item.href == href:
                return item
        return None
