"""Shared fixtures. All EPUBs are built in memory and written to tmp_path."""

import zipfile
from pathlib import Path

import pytest

CONTAINER_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container" version="1.0">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

DEFAULT_METADATA = """\
    <dc:title>Test Book</dc:title>
    <dc:creator opf:role="aut" opf:file-as="Pratchett, Terry">Terry Pratchett</dc:creator>
    <dc:language>en</dc:language>
    <dc:publisher>Test Press</dc:publisher>
    <dc:identifier id="bookid" opf:scheme="UUID">urn:uuid:1234ABCD-0000</dc:identifier>
    <dc:identifier opf:scheme="ISBN">9780000000001</dc:identifier>
    <dc:subject>Fantasy</dc:subject>
    <meta name="cover" content="cover-image"/>"""

# manifest order deliberately differs from the spine order
DEFAULT_MANIFEST = [
    ("ncx", "toc.ncx", "application/x-dtbncx+xml"),
    ("ch3", "chapter3.xhtml", "application/xhtml+xml"),
    ("cover-image", "images/cover.jpg", "image/jpeg"),
    ("ch1", "chapter%201.xhtml", "application/xhtml+xml"),
    ("ch2", "chapter2.xhtml", "application/xhtml+xml"),
]

DEFAULT_SPINE = ["ch1", "ch2", "ch3"]

# (id, label, src, playOrder, children); playOrder of the last two is swapped
DEFAULT_NAV_POINTS = [
    (
        "np1",
        "Chapter 1",
        "chapter%201.xhtml",
        "1",
        [
            ("np1-1", "Section 1.1", "chapter%201.xhtml#sec11", "2", []),
            ("np1-2", "Section 1.2", "chapter%201.xhtml#sec12", "3", []),
        ],
    ),
    ("np2", "Chapter 2", "chapter2.xhtml", "5", []),
    ("np3", "Chapter 3", "chapter3.xhtml", "4", []),
]

CHAPTER_1_BODY = (
    '<h1 id="top">Chapter 1</h1>'
    '<p id="sec11">Hello</p>'
    "<p>World</p>"
    '<p id="sec12">Bye &amp; farewell</p>'
)


def build_opf(
    metadata: str = DEFAULT_METADATA,
    manifest: list[tuple[str, str, str]] | None = None,
    spine: list[str] | None = None,
    toc_id: str | None = "ncx",
    with_spine: bool = True,
) -> str:
    """Build an EPUB 2 package document."""
    if manifest is None:
        manifest = DEFAULT_MANIFEST
    if spine is None:
        spine = DEFAULT_SPINE

    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="{media_type}"/>'
        for item_id, href, media_type in manifest
    )
    spine_xml = ""
    if with_spine:
        toc_attr = f' toc="{toc_id}"' if toc_id else ""
        refs = "\n".join(f'    <itemref idref="{idref}"/>' for idref in spine)
        spine_xml = f"  <spine{toc_attr}>\n{refs}\n  </spine>"

    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" unique-identifier="bookid" version="2.0">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
{metadata}
  </metadata>
  <manifest>
{items}
  </manifest>
{spine_xml}
  <guide>
    <reference type="text" title="Start" href="chapter%201.xhtml"/>
  </guide>
</package>"""


def _nav_point_xml(nav_point: tuple, indent: str = "    ") -> str:
    nav_id, label, src, play_order, children = nav_point
    inner = "\n".join(_nav_point_xml(child, indent + "  ") for child in children)
    return (
        f'{indent}<navPoint id="{nav_id}" class="chapter" playOrder="{play_order}">\n'
        f"{indent}  <navLabel><text>{label}</text></navLabel>\n"
        f'{indent}  <content src="{src}"/>\n'
        f"{inner}\n"
        f"{indent}</navPoint>"
    )


def build_ncx(nav_points: list[tuple] | None = None, title: str = "Test Book", author: str = "Terry Pratchett") -> str:
    """Build an NCX document from (id, label, src, playOrder, children) tuples."""
    if nav_points is None:
        nav_points = DEFAULT_NAV_POINTS
    points = "\n".join(_nav_point_xml(np) for np in nav_points)
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head><meta name="dtb:uid" content="urn:uuid:1234ABCD-0000"/></head>
  <docTitle><text>{title}</text></docTitle>
  <docAuthor><text>{author}</text></docAuthor>
  <navMap>
{points}
  </navMap>
</ncx>"""


def build_chapter(body: str) -> str:
    """Wrap body markup in an XHTML document, without whitespace around it."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        "<head><title>Chapter</title></head>"
        f"<body>{body}</body>"
        "</html>"
    )


def write_epub(path: Path, files: dict[str, str | bytes], opf_path: str = "OEBPS/content.opf") -> Path:
    """Write an EPUB archive with the given entries next to mimetype and container."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=opf_path))
        for name, data in files.items():
            zf.writestr(name, data)
    return path


def default_files(prefix: str = "OEBPS/") -> dict[str, str | bytes]:
    return {
        f"{prefix}content.opf": build_opf(),
        f"{prefix}toc.ncx": build_ncx(),
        f"{prefix}chapter 1.xhtml": build_chapter(CHAPTER_1_BODY),
        f"{prefix}chapter2.xhtml": build_chapter("<p>Second chapter</p>"),
        f"{prefix}chapter3.xhtml": build_chapter("<p>Third chapter</p>"),
        f"{prefix}images/cover.jpg": b"JPEGDATA",
    }


@pytest.fixture
def epub_path(tmp_path: Path) -> Path:
    """A well-formed EPUB 2 book with its package document in OEBPS/."""
    return write_epub(tmp_path / "book.epub", default_files())


@pytest.fixture
def make_epub(tmp_path: Path):
    """Factory writing an EPUB from a dict of archive entries."""

    def _make(files: dict[str, str | bytes], opf_path: str = "OEBPS/content.opf", name: str = "custom.epub") -> Path:
        return write_epub(tmp_path / name, files, opf_path)

    return _make
