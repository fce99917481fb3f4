"""Meta command implementation."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from epub_tools.core.epub import Epub

# option name -> Epub setter
SETTERS = {
    "title": Epub.set_title,
    "language": Epub.set_language,
    "publisher": Epub.set_publisher,
    "rights": Epub.set_copyright,
    "description": Epub.set_description,
    "authors": Epub.set_authors,
    "subjects": Epub.set_subjects,
    "isbn": Epub.set_isbn,
    "uuid": Epub.set_uuid,
}


def execute_meta(book_path: Path, fields: dict[str, str | None], console: Console) -> list[str]:
    """Write the given metadata fields and save the book.

    Fields set to None are left alone; an empty string removes the field.
    Returns the names of the fields written.
    """
    changes = {name: value for name, value in fields.items() if value is not None}
    if not changes:
        console.print("[yellow]No fields given. Nothing to do.[/]")
        return []

    with Epub(book_path) as book:
        for name, value in changes.items():
            SETTERS[name](book, value)
        book.save()

    for name, value in changes.items():
        shown = escape(value) if value else "[dim](removed)[/]"
        console.print(f"[green]{name}[/]: {shown}")
    return list(changes)
