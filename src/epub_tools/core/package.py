"""Package document (.opf) access: manifest lookup and metadata fields.

Every mutating method returns a fresh :class:`PackageDocument` built by
serializing and re-parsing the edited tree. Callers must drop the receiver and
keep the returned document; queries are only guaranteed to see the edit on the
returned one.
"""

import logging
from collections.abc import Iterable
from urllib.parse import unquote

from lxml import etree

from epub_tools.core.dom import (
    NAMESPACES,
    delete_node,
    get_attrib,
    new_child,
    parse_xml,
    reparse,
    serialize,
    set_text,
    text_of,
)
from epub_tools.models.spine import ManifestItem

log = logging.getLogger(__name__)


def build_meta_xpath(
    element: str,
    attribute: str | None = None,
    values: str | Iterable[str] | None = None,
    case_sensitive: bool = True,
) -> tuple[str, dict[str, str]]:
    """Build an XPath selecting elements of the metadata section.

    Returns the expression and the XPath variables it refers to. Without
    ``case_sensitive`` each value matches in all lower or all upper case only;
    XPath 1.0 has no lower-case function.
    """
    xpath = f"//opf:metadata/{element}"
    variables: dict[str, str] = {}
    if attribute:
        condition = f"@{attribute}"
        if values:
            values = [values] if isinstance(values, str) else list(values)
            if not case_sensitive:
                values = [v for value in values for v in (value.lower(), value.upper())]
            values = list(dict.fromkeys(values))
            clauses = []
            for i, value in enumerate(values):
                variables[f"v{i}"] = value
                clauses.append(f"@{attribute}=$v{i}")
            condition = " or ".join(clauses)
        xpath += f"[{condition}]"
    return xpath, variables


def _split_list(value: str | Iterable[str]) -> list[str]:
    """Accept a list or a comma separated string."""
    if isinstance(value, str):
        if value == "":
            return []
        return [part.strip() for part in value.split(",")]
    return list(value)


class PackageDocument:
    """Parsed package document of an EPUB."""

    def __init__(self, root: etree._Element, path: str | None = None):
        self.root = root
        self.path = path

    @classmethod
    def parse(cls, data: bytes, path: str | None = None) -> "PackageDocument":
        return cls(parse_xml(data, path), path)

    def serialize(self) -> bytes:
        return serialize(self.root)

    def reparse(self) -> "PackageDocument":
        return PackageDocument(reparse(self.root), self.path)

    def xpath(self, expression: str, **variables: str) -> list:
        return self.root.xpath(expression, namespaces=NAMESPACES, **variables)

    def first(self, expression: str, **variables: str) -> etree._Element | None:
        nodes = self.xpath(expression, **variables)
        return nodes[0] if nodes else None

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def manifest_item(self, item_id: str) -> ManifestItem | None:
        node = self.first("//opf:manifest/opf:item[@id=$id]", id=item_id)
        if node is None:
            return None
        return ManifestItem(
            id=item_id,
            href=node.get("href", ""),
            media_type=node.get("media-type", ""),
        )

    def manifest_items(self) -> list[ManifestItem]:
        return [
            ManifestItem(
                id=node.get("id", ""),
                href=node.get("href", ""),
                media_type=node.get("media-type", ""),
            )
            for node in self.xpath("//opf:manifest/opf:item")
        ]

    # ------------------------------------------------------------------
    # Simple fields
    # ------------------------------------------------------------------

    def query_meta(
        self,
        element: str,
        attribute: str | None = None,
        values: str | Iterable[str] | None = None,
        case_sensitive: bool = True,
    ) -> list[etree._Element]:
        xpath, variables = build_meta_xpath(element, attribute, values, case_sensitive)
        return self.xpath(xpath, **variables)

    def get_meta(
        self,
        element: str,
        attribute: str | None = None,
        values: str | Iterable[str] | None = None,
        case_sensitive: bool = True,
    ) -> str:
        """Text of the first matching node, or an empty string."""
        nodes = self.query_meta(element, attribute, values, case_sensitive)
        return text_of(nodes[0]) if nodes else ""

    def set_meta(
        self,
        element: str,
        value: str,
        attribute: str | None = None,
        values: str | Iterable[str] | None = None,
        case_sensitive: bool = True,
    ) -> "PackageDocument":
        """Set a field expected to be unique. An empty value removes it."""
        nodes = self.query_meta(element, attribute, values, case_sensitive)
        if len(nodes) == 1:
            if value == "":
                delete_node(nodes[0])
            else:
                set_text(nodes[0], value)
        else:
            # several matches: replace them all with a single one
            for node in nodes:
                delete_node(node)
            if value:
                attributes = {}
                if attribute:
                    if values is None or isinstance(values, str):
                        attributes[attribute] = values or ""
                    else:
                        attributes[attribute] = next(iter(values), "")
                new_child(self._metadata(), element, value, attributes)

        log.debug(f"Set {element} to {value!r}")
        return self.reparse()

    def _metadata(self) -> etree._Element:
        node = self.first("//opf:metadata")
        if node is None:
            node = new_child(self.root, "opf:metadata", index=0)
        return node

    # ------------------------------------------------------------------
    # Authors and subjects
    # ------------------------------------------------------------------

    def get_authors(self) -> dict[str, str]:
        """Authors as a mapping of file-as key to display name."""
        nodes = self.xpath('//opf:metadata/dc:creator[@opf:role="aut"]')
        if not nodes:
            # no roles given, take every creator
            nodes = self.xpath("//opf:metadata/dc:creator")
        authors: dict[str, str] = {}
        for node in nodes:
            name = text_of(node)
            file_as = get_attrib(node, "opf:file-as") or name
            authors[file_as] = name
        return authors

    def set_authors(self, authors: dict[str, str] | str | Iterable[str]) -> "PackageDocument":
        """Replace the authors.

        A mapping gives file-as keys; names given as a list or comma separated
        string are filed under themselves.
        """
        if not isinstance(authors, dict):
            authors = {name: name for name in _split_list(authors)}

        for node in self.xpath('//opf:metadata/dc:creator[@opf:role="aut"]'):
            delete_node(node)
        metadata = self._metadata()
        for file_as, name in authors.items():
            new_child(
                metadata,
                "dc:creator",
                name,
                {"opf:role": "aut", "opf:file-as": file_as},
            )
        return self.reparse()

    def get_subjects(self) -> list[str]:
        return [text_of(node) for node in self.xpath("//opf:metadata/dc:subject")]

    def set_subjects(self, subjects: str | Iterable[str]) -> "PackageDocument":
        """Replace the subjects, keeping order and duplicates."""
        for node in self.xpath("//opf:metadata/dc:subject"):
            delete_node(node)
        metadata = self._metadata()
        for subject in _split_list(subjects):
            new_child(metadata, "dc:subject", subject)
        return self.reparse()

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def get_identifier(self, schemes: str | Iterable[str], case_sensitive: bool = False) -> str:
        return self.get_meta("dc:identifier", "opf:scheme", schemes, case_sensitive)

    def set_identifier(
        self,
        schemes: str | Iterable[str],
        value: str,
        case_sensitive: bool = False,
    ) -> "PackageDocument":
        """Set an identifier; all matching schemes collapse into the first one."""
        if not isinstance(schemes, str):
            schemes = list(schemes)
        return self.set_meta("dc:identifier", value, "opf:scheme", schemes, case_sensitive)

    @property
    def unique_identifier_ref(self) -> str:
        return self.root.get("unique-identifier", "")

    def get_unique_identifier(self, normalize: bool = False) -> str:
        value = self.get_meta("dc:identifier", "id", self.unique_identifier_ref)
        if normalize:
            value = value.lower().replace("urn:uuid:", "")
        return value

    def set_unique_identifier(self, value: str) -> "PackageDocument":
        return self.set_meta("dc:identifier", value, "id", self.unique_identifier_ref)

    # ------------------------------------------------------------------
    # Cover pointer
    # ------------------------------------------------------------------

    def get_cover_id(self) -> str | None:
        node = self.first('//opf:metadata/opf:meta[@name="cover"]')
        if node is None:
            return None
        return get_attrib(node, "opf:content") or None

    def get_cover_href(self, decode: bool = True) -> str | None:
        """Path of the cover image relative to the package document.

        With ``decode=False`` the manifest href is returned as written, for use
        in links.
        """
        cover_id = self.get_cover_id()
        if not cover_id:
            return None
        item = self.manifest_item(cover_id)
        if item is None or not item.href:
            return None
        return unquote(item.href) if decode else item.href

    def set_cover_pointer(self, item_id: str, href: str, media_type: str) -> "PackageDocument":
        new_child(self._metadata(), "opf:meta", attributes={"opf:name": "cover", "opf:content": item_id})
        manifest = self.first("//opf:manifest")
        if manifest is None:
            manifest = new_child(self.root, "opf:manifest")
        new_child(
            manifest,
            "opf:item",
            attributes={"id": item_id, "opf:href": href, "opf:media-type": media_type},
        )
        return self.reparse()

    def clear_cover_pointer(self, item_id: str) -> "PackageDocument":
        """Drop the cover meta entry and our own manifest item for it."""
        for node in self.xpath('//opf:metadata/opf:meta[@name="cover"]'):
            delete_node(node)
        for node in self.xpath("//opf:manifest/opf:item[@id=$id]", id=item_id):
            delete_node(node)
        return self.reparse()

    # ------------------------------------------------------------------
    # Title page
    # ------------------------------------------------------------------

    def add_title_page(self, item_id: str, href: str) -> "PackageDocument":
        """Prepend a title page to manifest, spine and guide."""
        manifest = self.first("//opf:manifest")
        if manifest is None:
            manifest = new_child(self.root, "opf:manifest")
        new_child(
            manifest,
            "opf:item",
            attributes={"id": item_id, "opf:href": href, "opf:media-type": "application/xhtml+xml"},
            index=0,
        )

        spine = self.first("//opf:spine")
        if spine is None:
            spine = new_child(self.root, "opf:spine")
        new_child(spine, "opf:itemref", attributes={"idref": item_id}, index=0)

        guide = self.first("//opf:guide")
        if guide is None:
            guide = new_child(self.root, "opf:guide")
        new_child(
            guide,
            "opf:reference",
            attributes={"opf:href": href, "opf:type": "cover", "opf:title": "Title Page"},
            index=0,
        )
        return self.reparse()

    def remove_title_page(self, item_id: str, href: str) -> "PackageDocument":
        for node in self.xpath("//opf:manifest/opf:item[@id=$id]", id=item_id):
            delete_node(node)
        for node in self.xpath("//opf:spine/opf:itemref[@idref=$id]", id=item_id):
            delete_node(node)
        for node in self.xpath("//opf:guide/opf:reference[@href=$href]", href=href):
            delete_node(node)
        return self.reparse()
