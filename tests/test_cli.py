"""Tests for the command line interface."""

from typer.testing import CliRunner

from epub_tools.cli import app
from epub_tools.core.epub import Epub

runner = CliRunner()


def test_info(epub_path):
    result = runner.invoke(app, ["info", str(epub_path)])

    assert result.exit_code == 0, result.output
    assert "Test Book" in result.output
    assert "Terry Pratchett" in result.output
    assert "chapter2.xhtml" in result.output


def test_toc(epub_path):
    result = runner.invoke(app, ["toc", str(epub_path)])

    assert result.exit_code == 0, result.output
    assert "Chapter 1" in result.output
    assert "Section 1.2" in result.output
    assert "5 entries" in result.output


def test_extract(epub_path):
    result = runner.invoke(app, ["extract", str(epub_path), "chapter 1.xhtml", "--begin", "sec11", "--end", "sec12"])

    assert result.exit_code == 0, result.output
    assert result.output == "Hello\nWorld\n"


def test_extract_with_markup(epub_path):
    result = runner.invoke(app, ["extract", str(epub_path), "chapter2.xhtml", "-m"])

    assert result.exit_code == 0, result.output
    assert result.output == "<p>Second chapter</p>"


def test_extract_missing_id_fails(epub_path):
    result = runner.invoke(app, ["extract", str(epub_path), "chapter2.xhtml", "-b", "nowhere"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_missing_book_is_rejected(tmp_path):
    result = runner.invoke(app, ["info", str(tmp_path / "missing.epub")])
    assert result.exit_code != 0


def test_meta_sets_and_saves(epub_path):
    result = runner.invoke(app, ["meta", str(epub_path), "--title", "CLI Title", "--subjects", "a, b"])

    assert result.exit_code == 0, result.output
    assert "CLI Title" in result.output
    with Epub(epub_path) as book:
        assert book.get_title() == "CLI Title"
        assert book.get_subjects() == ["a", "b"]


def test_meta_without_fields_does_nothing(epub_path):
    before = epub_path.read_bytes()

    result = runner.invoke(app, ["meta", str(epub_path)])

    assert result.exit_code == 0, result.output
    assert "Nothing to do" in result.output
    assert epub_path.read_bytes() == before
