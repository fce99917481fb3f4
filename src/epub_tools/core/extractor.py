"""Extract plain text or filtered markup from a range of a content document."""

import html
import logging

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from epub_tools.core.dom import convert_named_entities, parse_xml
from epub_tools.errors import FragmentEndNotFound, FragmentStartNotFound

log = logging.getLogger(__name__)

# Tags copied to the output when markup is kept, without attributes.
ALLOWED_TAGS = frozenset(
    {
        "br",
        "p",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "span",
        "div",
        "i",
        "strong",
        "b",
        "table",
        "td",
        "th",
        "tr",
    }
)

# HTML block-level elements; their content ends with a line break.
BLOCK_LEVEL_TAGS = frozenset(
    {
        "address",
        "article",
        "aside",
        "blockquote",
        "canvas",
        "dd",
        "div",
        "dl",
        "dt",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "li",
        "main",
        "nav",
        "noscript",
        "ol",
        "output",
        "p",
        "pre",
        "section",
        "table",
        "tfoot",
        "ul",
        "video",
    }
)


def load_content_document(data: bytes, path: str | None = None) -> BeautifulSoup:
    """Parse an XHTML content document.

    The soup builder repairs broken markup silently, so the document is
    checked with a strict XML parse first.
    """
    data = convert_named_entities(data)
    parse_xml(data, path)
    return BeautifulSoup(data, "xml")


def _is_element(node: PageElement) -> bool:
    # the BeautifulSoup object is the document, not an element
    return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)


def _is_text(node: PageElement) -> bool:
    # comments, doctypes and processing instructions are not text
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _local_name(tag: Tag) -> str:
    return tag.name.rpartition(":")[2]


class FragmentExtractor:
    """Walk a content document between two element ids."""

    def extract(
        self,
        document: BeautifulSoup,
        begin: str | None = None,
        end: str | None = None,
        keep_markup: bool = False,
        path: str | None = None,
    ) -> str:
        """Concatenate the contents of the node range ``[begin, end)``.

        Without ``begin`` the walk starts at the body (or the root element);
        without ``end`` it runs to the end of the document. The walk is
        iterative: every element entered pushes the text that closes it
        (an end tag, a line break for block elements, or nothing) onto a
        stack that is popped when the element is left.
        """
        node = self._find_start(document, begin, path)

        contents: list[str] = []
        end_tags: list[str] = []
        while node is not None and not self._is_end(node, end):
            if _is_text(node):
                contents.append(html.escape(str(node), quote=False) if keep_markup else str(node))
            elif _is_element(node):
                tag = _local_name(node)
                if keep_markup and tag in ALLOWED_TAGS:
                    contents.append(f"<{tag}>")
                    end_tags.append(f"</{tag}>")
                elif tag in BLOCK_LEVEL_TAGS:
                    # keep adjacent blocks apart
                    end_tags.append("\n")
                else:
                    end_tags.append("")

                if node.contents:
                    # step into
                    node = node.contents[0]
                    continue

            # leave node
            while node is not None:
                # ancestors of the start node were never entered
                if _is_element(node) and end_tags:
                    contents.append(end_tags.pop())

                if node.next_sibling is not None:
                    node = node.next_sibling
                    break
                node = node.parent
                if node is None and end:
                    raise FragmentEndNotFound(f"End of fragment not found: No element with ID {end}", path)

        while end_tags:
            contents.append(end_tags.pop())

        result = "".join(contents)
        log.debug(f"Extracted {len(result)} characters from {path or 'document'}")
        return result

    def _find_start(self, document: BeautifulSoup, begin: str | None, path: str | None) -> PageElement:
        if begin:
            node = document.find(attrs={"id": begin})
            if node is None:
                raise FragmentStartNotFound(f"Begin of fragment not found: No element with ID {begin}", path)
            return node
        return document.find("body") or document.find(True)

    @staticmethod
    def _is_end(node: PageElement, end: str | None) -> bool:
        return bool(end) and _is_element(node) and node.get("id") == end
