"""Build the spine and table of contents from parsed documents."""

import logging
from urllib.parse import unquote

from lxml import etree

from epub_tools.core.dom import NAMESPACES, text_of
from epub_tools.core.package import PackageDocument
from epub_tools.errors import (
    DanglingSpineReference,
    MissingNavigationMap,
    MissingSpine,
    MissingTocReference,
)
from epub_tools.models.spine import Spine, SpineItem
from epub_tools.models.toc import NavPoint, NavPointList, Toc

log = logging.getLogger(__name__)


def _get_toc_source(package: PackageDocument, spine_node: etree._Element) -> str:
    """Path of the TOC document the spine points to."""
    toc_id = spine_node.get("toc", "")
    if not toc_id:
        raise MissingTocReference("No toc ID given in spine", package.path)
    toc_item = package.manifest_item(toc_id)
    if toc_item is None:
        raise MissingTocReference(f"TOC item {toc_id!r} referenced by spine missing in manifest", package.path)
    if not toc_item.href:
        raise MissingTocReference(f"TOC item {toc_id!r} has no href", package.path)
    return unquote(toc_item.href)


def build_spine(package: PackageDocument) -> Spine:
    """Build the reading order from the package document.

    Items keep the order of the itemrefs; it is never re-sorted.
    """
    spine_node = package.first("//opf:spine")
    if spine_node is None:
        raise MissingSpine("No spine element found in epub", package.path)

    spine = Spine(toc_source=_get_toc_source(package, spine_node))
    for itemref in spine_node.iterfind("opf:itemref", namespaces=NAMESPACES):
        item_id = itemref.get("idref", "")
        item = package.manifest_item(item_id)
        if item is None:
            raise DanglingSpineReference(
                f"Item {item_id!r} referenced in spine missing in manifest", package.path
            )
        spine.add_item(SpineItem(id=item_id, href=unquote(item.href), media_type=item.media_type))

    log.info(f"Built spine with {len(spine)} item(s), TOC at {spine.toc_source}")
    return spine


def _first_text(node: etree._Element, path: str) -> str:
    found = node.find(path, namespaces=NAMESPACES)
    return text_of(found) if found is not None else ""


def _load_nav_points(parent: etree._Element, nav_points: NavPointList) -> None:
    """Load nested navPoints depth first, in document order."""
    for node in parent.iterfind("ncx:navPoint", namespaces=NAMESPACES):
        content = node.find("ncx:content", namespaces=NAMESPACES)
        nav_point = NavPoint(
            id=node.get("id", ""),
            nav_class=node.get("class", ""),
            play_order=node.get("playOrder"),
            label=_first_text(node, "ncx:navLabel/ncx:text"),
            content_source=content.get("src", "") if content is not None else "",
        )
        nav_points.add(nav_point)
        _load_nav_points(node, nav_point.children)


def build_toc(root: etree._Element, path: str | None = None) -> Toc:
    """Build the table of contents from an NCX document."""
    nav_map = root.find(".//ncx:navMap", namespaces=NAMESPACES)
    if nav_map is None:
        raise MissingNavigationMap("No navMap found in TOC document", path)

    toc = Toc(
        title=_first_text(root, ".//ncx:docTitle/ncx:text"),
        author=_first_text(root, ".//ncx:docAuthor/ncx:text"),
    )
    _load_nav_points(nav_map, toc.nav_map)

    log.info(f"Built TOC with {toc.count()} nav point(s)")
    return toc
