"""Namespace-aware helpers for the XML documents of an EPUB."""

import logging
import re
from html.entities import name2codepoint

from lxml import etree

from epub_tools.errors import MalformedDocument

log = logging.getLogger(__name__)

NAMESPACES = {
    "opf": "http://www.idpf.org/2007/opf",
    "dc": "http://purl.org/dc/elements/1.1/",
    "ncx": "http://www.daisy.org/z3986/2005/ncx/",
    "ocf": "urn:oasis:names:tc:opendocument:xmlns:container",
    "xhtml": "http://www.w3.org/1999/xhtml",
    "epub": "http://www.idpf.org/2007/ops",
}

# Entities XML defines itself and must be left alone
_XML_ENTITIES = {"amp", "lt", "gt", "quot", "apos"}
_ENTITY_RE = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def parse_xml(data: bytes, path: str | None = None) -> etree._Element:
    """Parse XML bytes into the root element of a document."""
    try:
        root = etree.fromstring(data, _parser())
    except etree.XMLSyntaxError as e:
        raise MalformedDocument(f"Failed to parse XML: {e}", path) from e
    log.debug(f"Parsed {path or 'document'} (root <{etree.QName(root).localname}>)")
    return root


def serialize(root: etree._Element) -> bytes:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def reparse(root: etree._Element) -> etree._Element:
    """Serialize and parse again, yielding a fresh tree."""
    return parse_xml(serialize(root))


def split_qname(qname: str) -> tuple[str | None, str]:
    """Split 'prefix:local' into its parts."""
    prefix, sep, local = qname.partition(":")
    if not sep:
        return None, qname
    return prefix, local


def qualify(qname: str) -> str:
    """Turn 'prefix:local' into lxml's '{uri}local' notation."""
    prefix, local = split_qname(qname)
    if prefix is None:
        return local
    return f"{{{NAMESPACES[prefix]}}}{local}"


def local_name(node: etree._Element) -> str:
    return etree.QName(node).localname


def get_attrib(node: etree._Element, qname: str) -> str:
    """Read an attribute by prefixed name, falling back to the bare name."""
    prefix, local = split_qname(qname)
    if prefix is not None:
        value = node.get(qualify(qname))
        if value is not None:
            return value
    return node.get(local, "")


def set_attrib(node: etree._Element, qname: str, value: str) -> None:
    """Set an attribute by prefixed name.

    Attributes in the element's own namespace are written unprefixed, as
    package documents do for e.g. ``<item href="...">``.
    """
    prefix, local = split_qname(qname)
    if prefix is None or etree.QName(node).namespace == NAMESPACES[prefix]:
        node.set(local, value)
    else:
        node.set(qualify(qname), value)


def text_of(node: etree._Element) -> str:
    """Entity-decoded text content of a node."""
    return "".join(node.itertext())


def set_text(node: etree._Element, value: str) -> None:
    for child in list(node):
        node.remove(child)
    node.text = value


def delete_node(node: etree._Element) -> None:
    """Remove a node from its parent, keeping any non-blank trailing text."""
    parent = node.getparent()
    if parent is None:
        return
    if node.tail and node.tail.strip():
        previous = node.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + node.tail
        else:
            parent.text = (parent.text or "") + node.tail
    parent.remove(node)


def new_child(
    parent: etree._Element,
    qname: str,
    text: str | None = None,
    attributes: dict[str, str] | None = None,
    index: int | None = None,
) -> etree._Element:
    """Create a child element, declaring any prefix not yet in scope.

    The child is appended unless ``index`` is given.
    """
    attributes = attributes or {}
    # attributes cannot use the default namespace
    prefixed_scope = {uri for prefix, uri in parent.nsmap.items() if prefix}
    nsmap = {}
    prefix, local = split_qname(qname)
    if prefix is not None and NAMESPACES[prefix] not in parent.nsmap.values():
        nsmap[prefix] = NAMESPACES[prefix]
    if prefix is None:
        # unprefixed names live in the parent's namespace
        namespace = etree.QName(parent).namespace
        tag = f"{{{namespace}}}{local}" if namespace else local
    else:
        namespace = NAMESPACES[prefix]
        tag = qualify(qname)

    for name in attributes:
        attr_prefix, _ = split_qname(name)
        if attr_prefix is None or NAMESPACES[attr_prefix] == namespace:
            continue
        if NAMESPACES[attr_prefix] not in prefixed_scope:
            nsmap[attr_prefix] = NAMESPACES[attr_prefix]

    node = etree.SubElement(parent, tag, nsmap=nsmap or None)
    if index is not None:
        parent.insert(index, node)
    if text is not None:
        node.text = text
    for name, value in attributes.items():
        set_attrib(node, name, value)
    return node


def convert_named_entities(data: bytes) -> bytes:
    """Rewrite HTML named entities as numeric references.

    XHTML content documents routinely use entities like ``&nbsp;`` that an
    XML parser does not know about.
    """

    def replace(match: re.Match) -> bytes:
        name = match.group(1).decode("ascii")
        if name in _XML_ENTITIES:
            return match.group(0)
        codepoint = name2codepoint.get(name)
        if codepoint is None:
            return match.group(0)
        return f"&#{codepoint};".encode("ascii")

    return _ENTITY_RE.sub(replace, data)
