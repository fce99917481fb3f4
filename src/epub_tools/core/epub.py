"""An open EPUB file: structure, contents and metadata."""

import html
import logging
import posixpath
from pathlib import Path

from epub_tools.core.archive import EpubArchive
from epub_tools.core.dom import parse_xml
from epub_tools.core.extractor import FragmentExtractor, load_content_document
from epub_tools.core.loader import build_spine, build_toc
from epub_tools.core.package import PackageDocument
from epub_tools.models.spine import Spine, SpineItem
from epub_tools.models.toc import NavPoint, Toc

log = logging.getLogger(__name__)


class Epub:
    """Representation of an EPUB document.

    Use it as a context manager so the archive is closed on every path::

        with Epub(path) as book:
            print(book.get_title())

    Not thread safe: the package document, the spine and the TOC are shared
    state of one handle.
    """

    # Identifier for a cover image inserted by this library
    COVER_ID = "epub-tools-cover"
    # Identifier for a title page inserted by this library
    TITLE_PAGE_ID = "epub-tools-titlepage"
    TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "templates" / "titlepage.xhtml"

    UUID_SCHEMES = ["UUID", "uuid", "URN", "urn"]

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.archive = EpubArchive(self.path)
        self._package: PackageDocument | None = None
        self._spine: Spine | None = None
        self._toc: Toc | None = None
        self._extractor = FragmentExtractor()

    def close(self) -> None:
        self.archive.close()

    def __enter__(self) -> "Epub":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def package(self) -> PackageDocument:
        """The package document, parsed on first use."""
        if self._package is None:
            root_file = self.archive.root_file
            data = self.archive.read_entry(root_file, relative=False)
            self._package = PackageDocument.parse(data, root_file)
        return self._package

    def save(self) -> None:
        """Write metadata changes and added files back to the archive."""
        if self._package is not None:
            self.archive.write_entry(self.archive.root_file, self._package.serialize(), relative=False)
        self.archive.save()
        log.info(f"Saved {self.path}")

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def get_spine(self) -> Spine:
        if self._spine is None:
            self._spine = build_spine(self.package)
        return self._spine

    def get_toc(self) -> Toc:
        if self._toc is None:
            toc_source = self.get_spine().toc_source
            root = parse_xml(self.archive.read_entry(toc_source), toc_source)
            self._toc = build_toc(root, toc_source)
        return self._toc

    def _toc_dir(self) -> str:
        return posixpath.dirname(self.get_spine().toc_source)

    def nav_points_for(self, spine_item: SpineItem) -> list[NavPoint]:
        """All TOC entries pointing into the given spine item."""
        toc_dir = self._toc_dir()
        href = posixpath.relpath(spine_item.href, toc_dir) if toc_dir else spine_item.href
        return self.get_toc().nav_map.find_nav_points_for_file(href)

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    def get_contents(
        self,
        href: str,
        begin: str | None = None,
        end: str | None = None,
        keep_markup: bool = False,
    ) -> str:
        """Extract (a part of) a content document.

        Args:
            href: Path of the document, relative to the package document
            begin: ID of the element where to start reading
            end: ID of the element where to stop reading (exclusive)
            keep_markup: Keep a limited set of XHTML tags instead of plain text

        Raises:
            FragmentStartNotFound: If no element has the ``begin`` ID
            FragmentEndNotFound: If no element has the ``end`` ID
            MalformedDocument: If the document is not well-formed XML
        """
        href = href.split("#")[0]
        document = load_content_document(self.archive.read_entry(href), href)
        return self._extractor.extract(document, begin, end, keep_markup, path=href)

    def get_nav_point_contents(self, nav_point: NavPoint, keep_markup: bool = False) -> str:
        """Contents from a TOC entry up to the next entry in the same file."""
        nav_points = list(self.get_toc().walk())
        # by identity; equal entries may appear more than once
        index = next((i for i, np in enumerate(nav_points) if np is nav_point), None)
        if index is None:
            raise ValueError(f"Nav point {nav_point.id!r} is not part of this book's TOC")
        source_file = nav_point.content_source_file
        begin = nav_point.content_source_fragment

        end = None
        for following in nav_points[index + 1 :]:
            fragment = following.content_source_fragment
            if following.content_source_file == source_file and fragment and fragment != begin:
                end = fragment
                break

        href = posixpath.normpath(posixpath.join(self._toc_dir(), source_file))
        return self.get_contents(href, begin, end, keep_markup)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_title(self) -> str:
        return self.package.get_meta("dc:title")

    def set_title(self, title: str) -> None:
        self._package = self.package.set_meta("dc:title", title)

    def get_language(self) -> str:
        return self.package.get_meta("dc:language")

    def set_language(self, language: str) -> None:
        self._package = self.package.set_meta("dc:language", language)

    def get_publisher(self) -> str:
        return self.package.get_meta("dc:publisher")

    def set_publisher(self, publisher: str) -> None:
        self._package = self.package.set_meta("dc:publisher", publisher)

    def get_copyright(self) -> str:
        return self.package.get_meta("dc:rights")

    def set_copyright(self, rights: str) -> None:
        self._package = self.package.set_meta("dc:rights", rights)

    def get_description(self) -> str:
        return self.package.get_meta("dc:description")

    def set_description(self, description: str) -> None:
        self._package = self.package.set_meta("dc:description", description)

    def get_authors(self) -> dict[str, str]:
        """Authors keyed by their file-as (sort) name.

        Example: ``{"Pratchett, Terry": "Terry Pratchett"}``
        """
        return self.package.get_authors()

    def set_authors(self, authors: dict[str, str] | list[str] | str) -> None:
        self._package = self.package.set_authors(authors)

    def get_subjects(self) -> list[str]:
        return self.package.get_subjects()

    def set_subjects(self, subjects: list[str] | str) -> None:
        self._package = self.package.set_subjects(subjects)

    def get_identifier(self, schemes: str | list[str], case_sensitive: bool = False) -> str:
        return self.package.get_identifier(schemes, case_sensitive)

    def set_identifier(self, schemes: str | list[str], value: str, case_sensitive: bool = False) -> None:
        self._package = self.package.set_identifier(schemes, value, case_sensitive)

    def get_unique_identifier(self, normalize: bool = False) -> str:
        return self.package.get_unique_identifier(normalize)

    def set_unique_identifier(self, value: str) -> None:
        self._package = self.package.set_unique_identifier(value)

    def get_uuid(self) -> str:
        return self.get_identifier(["uuid", "urn"])

    def set_uuid(self, uuid: str) -> None:
        self.set_identifier(self.UUID_SCHEMES, uuid)

    def get_uri(self) -> str:
        return self.get_identifier("uri")

    def set_uri(self, uri: str) -> None:
        self.set_identifier("uri", uri)

    def get_isbn(self) -> str:
        return self.get_identifier("isbn")

    def set_isbn(self, isbn: str) -> None:
        self.set_identifier("isbn", isbn)

    # ------------------------------------------------------------------
    # Cover
    # ------------------------------------------------------------------

    def has_cover(self) -> bool:
        return bool(self.package.get_cover_id())

    def get_cover(self) -> bytes | None:
        """Binary image data of the cover, if there is one."""
        href = self.package.get_cover_href()
        if not href or not self.archive.has_entry(href):
            return None
        return self.archive.read_entry(href)

    def set_cover(self, path: Path | str, mime: str) -> None:
        """Replace the cover with a local image file."""
        if not path:
            raise ValueError("Parameter path must not be empty!")
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Cannot add {path} as new cover image since that file is not readable!")

        self.clear_cover()
        image_href = f"{self.COVER_ID}.img"
        self._package = self.package.set_cover_pointer(self.COVER_ID, image_href, mime)
        self.archive.write_entry(image_href, path.read_bytes())
        log.info(f"Set cover image from {path} ({mime})")

    def clear_cover(self) -> None:
        """Remove the cover.

        The image file is only deleted if this library added it; other files
        may still reference an image that came with the book.
        """
        if not self.has_cover():
            return
        self.archive.delete_entry(f"{self.COVER_ID}.img")
        self._package = self.package.clear_cover_pointer(self.COVER_ID)

    def add_cover_image_title_page(self, template_path: Path | str | None = None) -> None:
        """Add a title page showing the cover image."""
        xhtml_href = f"{self.TITLE_PAGE_ID}.xhtml"
        template = Path(template_path or self.TEMPLATE_PATH).read_text(encoding="utf-8")
        replacements = {
            "{{ title }}": html.escape(self.get_title()),
            "{{ coverPath }}": html.escape(self.package.get_cover_href(decode=False) or ""),
        }
        for placeholder, value in replacements.items():
            template = template.replace(placeholder, value)

        self.archive.write_entry(xhtml_href, template.encode("utf-8"))
        self._package = self.package.add_title_page(self.TITLE_PAGE_ID, xhtml_href)

    def remove_title_page(self) -> None:
        """Remove the title page added by this library."""
        xhtml_href = f"{self.TITLE_PAGE_ID}.xhtml"
        self.archive.delete_entry(xhtml_href)
        self._package = self.package.remove_title_page(self.TITLE_PAGE_ID, xhtml_href)
