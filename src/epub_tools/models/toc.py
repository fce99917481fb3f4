"""Data models for the NCX table of contents."""

import posixpath
from collections.abc import Iterator
from urllib.parse import unquote

from pydantic import BaseModel, Field


def _normalize_href(href: str) -> str:
    """File part of an href: fragment dropped, escapes decoded, path normalized."""
    path = unquote(href.split("#")[0])
    return posixpath.normpath(path) if path else ""


class NavPoint(BaseModel):
    """Single entry in the table of contents."""

    id: str = ""
    nav_class: str = ""
    # Advisory only; entries are never sorted by it.
    play_order: str | None = None
    label: str = ""
    content_source: str = ""
    children: "NavPointList" = Field(default_factory=lambda: NavPointList())

    @property
    def content_source_file(self) -> str:
        """Normalized path part of the content source, percent escapes decoded."""
        return _normalize_href(self.content_source)

    @property
    def content_source_fragment(self) -> str | None:
        """Fragment id of the content source, if any."""
        _, sep, fragment = self.content_source.partition("#")
        return fragment if sep and fragment else None


class NavPointList(BaseModel):
    """Sibling nav points at one level of the tree."""

    nav_points: list[NavPoint] = Field(default_factory=list)

    def add(self, nav_point: NavPoint) -> None:
        self.nav_points.append(nav_point)

    def __len__(self) -> int:
        return len(self.nav_points)

    @property
    def first(self) -> NavPoint | None:
        return self.nav_points[0] if self.nav_points else None

    @property
    def last(self) -> NavPoint | None:
        return self.nav_points[-1] if self.nav_points else None

    def walk(self) -> Iterator[NavPoint]:
        """Yield every nav point of this subtree in pre-order."""
        stack = list(reversed(self.nav_points))
        while stack:
            nav_point = stack.pop()
            yield nav_point
            stack.extend(reversed(nav_point.children.nav_points))

    def find_nav_points_for_file(self, href: str) -> list[NavPoint]:
        """Find all nav points pointing into the given file, at any depth."""
        href = _normalize_href(href)
        return [np for np in self.walk() if np.content_source_file == href]


class Toc(BaseModel):
    """Table of contents with its document header."""

    title: str = ""
    author: str = ""
    nav_map: NavPointList = Field(default_factory=NavPointList)

    def walk(self) -> Iterator[NavPoint]:
        return self.nav_map.walk()

    def count(self) -> int:
        """Total number of nav points, nested ones included."""
        return sum(1 for _ in self.walk())


NavPoint.model_rebuild()
