"""Tests for the ZIP container layer."""

import zipfile

import pytest
from conftest import default_files

from epub_tools.core.archive import EpubArchive
from epub_tools.errors import ContainerUnreadable


def test_locates_package_document(epub_path):
    with EpubArchive(epub_path) as archive:
        assert archive.root_file == "OEBPS/content.opf"
        assert archive.root_dir == "OEBPS"
        assert archive.resolve("chapter 1.xhtml") == "OEBPS/chapter 1.xhtml"
        assert archive.resolve("../META-INF/container.xml") == "META-INF/container.xml"
        assert archive.resolve("mimetype", relative=False) == "mimetype"


def test_package_document_at_archive_root(make_epub):
    path = make_epub(default_files(prefix=""), opf_path="content.opf")

    with EpubArchive(path) as archive:
        assert archive.root_dir == ""
        assert archive.resolve("toc.ncx") == "toc.ncx"
        assert archive.read_entry("images/cover.jpg") == b"JPEGDATA"


def test_missing_file_is_unreadable(tmp_path):
    with pytest.raises(ContainerUnreadable, match="No such file"):
        EpubArchive(tmp_path / "missing.epub")


def test_non_zip_file_is_unreadable(tmp_path):
    path = tmp_path / "book.epub"
    path.write_text("definitely not a zip archive")

    with pytest.raises(ContainerUnreadable, match="Not a zip archive"):
        EpubArchive(path)


def test_archive_without_container_is_unreadable(tmp_path):
    path = tmp_path / "book.epub"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip")

    with pytest.raises(ContainerUnreadable):
        EpubArchive(path)


def test_container_without_package_rootfile_is_unreadable(tmp_path):
    path = tmp_path / "book.epub"
    container = (
        '<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container" version="1.0">'
        '<rootfiles><rootfile full-path="x.pdf" media-type="application/pdf"/></rootfiles>'
        "</container>"
    )
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/container.xml", container)

    with pytest.raises(ContainerUnreadable, match="No package document"):
        EpubArchive(path)


def test_missing_entry_is_unreadable(epub_path):
    with EpubArchive(epub_path) as archive:
        assert not archive.has_entry("nothing.xhtml")
        with pytest.raises(ContainerUnreadable, match="OEBPS/nothing.xhtml"):
            archive.read_entry("nothing.xhtml")


def test_staged_changes_are_visible_before_save(epub_path):
    with EpubArchive(epub_path) as archive:
        archive.write_entry("new.txt", b"new")
        archive.delete_entry("chapter2.xhtml")

        assert archive.read_entry("new.txt") == b"new"
        assert archive.has_entry("new.txt")
        assert not archive.has_entry("chapter2.xhtml")
        assert "OEBPS/new.txt" in archive.names()
        assert "OEBPS/chapter2.xhtml" not in archive.names()
        with pytest.raises(ContainerUnreadable):
            archive.read_entry("chapter2.xhtml")

    # nothing was written to disk
    with zipfile.ZipFile(epub_path) as zf:
        assert "OEBPS/new.txt" not in zf.namelist()
        assert "OEBPS/chapter2.xhtml" in zf.namelist()


def test_deleting_missing_entry_is_a_no_op(epub_path):
    with EpubArchive(epub_path) as archive:
        archive.delete_entry("nothing.xhtml")
        assert archive._pending == {}


def test_save_writes_changes_and_keeps_mimetype_first(epub_path):
    with EpubArchive(epub_path) as archive:
        archive.write_entry("new.txt", b"new")
        archive.write_entry("chapter3.xhtml", b"<html/>")
        archive.delete_entry("chapter2.xhtml")
        archive.save()

        # the archive is usable after saving
        assert archive.read_entry("new.txt") == b"new"

    with zipfile.ZipFile(epub_path) as zf:
        infos = zf.infolist()
        assert infos[0].filename == "mimetype"
        assert infos[0].compress_type == zipfile.ZIP_STORED
        assert zf.read("mimetype") == b"application/epub+zip"
        assert zf.read("OEBPS/new.txt") == b"new"
        assert zf.read("OEBPS/chapter3.xhtml") == b"<html/>"
        assert zf.read("OEBPS/images/cover.jpg") == b"JPEGDATA"
        assert "OEBPS/chapter2.xhtml" not in zf.namelist()
        assert len(zf.namelist()) == len(set(zf.namelist()))
        assert zf.testzip() is None


def test_save_without_changes_leaves_file_alone(epub_path):
    before = epub_path.stat().st_mtime_ns
    with EpubArchive(epub_path) as archive:
        archive.save()
    assert epub_path.stat().st_mtime_ns == before


def test_save_leaves_no_temporary_files(epub_path):
    with EpubArchive(epub_path) as archive:
        archive.write_entry("new.txt", b"new")
        archive.save()

    assert sorted(p.name for p in epub_path.parent.iterdir()) == ["book.epub"]
