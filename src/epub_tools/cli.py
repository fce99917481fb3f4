"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from epub_tools.commands.extract import execute_extract
from epub_tools.commands.info import execute_info, execute_toc
from epub_tools.commands.meta import execute_meta
from epub_tools.errors import EpubError
from epub_tools.models.extraction import ExtractOptions, OutputMode

app = typer.Typer(
    name="epub-tools",
    help="Inspect EPUB structure, extract text and edit metadata.",
    add_completion=False,
)

console = Console()

BookArgument = Annotated[
    Path,
    typer.Argument(
        help="Path to the EPUB file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {escape(str(error))}")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log what is being read and written"),
    ] = False,
) -> None:
    """Inspect EPUB structure, extract text and edit metadata."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@app.command()
def info(book_path: BookArgument) -> None:
    """Display book metadata and the spine."""
    try:
        execute_info(book_path, console)
    except EpubError as e:
        _fail(e)


@app.command()
def toc(book_path: BookArgument) -> None:
    """Display the table of contents."""
    try:
        execute_toc(book_path, console)
    except EpubError as e:
        _fail(e)


@app.command()
def extract(
    book_path: BookArgument,
    href: Annotated[
        str,
        typer.Argument(help="Content document, relative to the package document (see 'epub-tools info')"),
    ],
    begin: Annotated[
        Optional[str],
        typer.Option("--begin", "-b", help="ID of the element to start at"),
    ] = None,
    end: Annotated[
        Optional[str],
        typer.Option("--end", "-e", help="ID of the element to stop before"),
    ] = None,
    markup: Annotated[
        bool,
        typer.Option("--markup", "-m", help="Keep basic XHTML markup instead of plain text"),
    ] = False,
) -> None:
    """Extract text from a content document, optionally between two IDs."""
    options = ExtractOptions(
        href=href,
        begin=begin,
        end=end,
        mode=OutputMode.MARKUP if markup else OutputMode.TEXT,
    )
    try:
        execute_extract(book_path, options, console)
    except EpubError as e:
        _fail(e)


@app.command()
def meta(
    book_path: BookArgument,
    title: Annotated[Optional[str], typer.Option(help="Book title")] = None,
    language: Annotated[Optional[str], typer.Option(help="Language code, e.g. 'en'")] = None,
    publisher: Annotated[Optional[str], typer.Option(help="Publisher")] = None,
    rights: Annotated[Optional[str], typer.Option(help="Copyright statement")] = None,
    description: Annotated[Optional[str], typer.Option(help="Description")] = None,
    authors: Annotated[Optional[str], typer.Option(help="Comma separated author names")] = None,
    subjects: Annotated[Optional[str], typer.Option(help="Comma separated subjects")] = None,
    isbn: Annotated[Optional[str], typer.Option(help="ISBN")] = None,
    uuid: Annotated[Optional[str], typer.Option(help="UUID identifier")] = None,
) -> None:
    """Set metadata fields and save the book. Pass '' to remove a field."""
    fields = {
        "title": title,
        "language": language,
        "publisher": publisher,
        "rights": rights,
        "description": description,
        "authors": authors,
        "subjects": subjects,
        "isbn": isbn,
        "uuid": uuid,
    }
    try:
        execute_meta(book_path, fields, console)
    except EpubError as e:
        _fail(e)


if __name__ == "__main__":
    app()
