"""Extract command implementation."""

from pathlib import Path

from rich.console import Console

from epub_tools.core.epub import Epub
from epub_tools.models.extraction import ExtractOptions


def execute_extract(book_path: Path, options: ExtractOptions, console: Console) -> str:
    """Print the contents of a document range and return them."""
    with Epub(book_path) as book:
        content = book.get_contents(
            options.href,
            begin=options.begin,
            end=options.end,
            keep_markup=options.keep_markup,
        )

    # raw output: no markup, no wrapping
    console.out(content, highlight=False, end="")
    return content
