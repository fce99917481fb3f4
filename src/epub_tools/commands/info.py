"""Info and toc command implementations."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from epub_tools.core.epub import Epub
from epub_tools.models.toc import NavPointList


def _info_lines(book: Epub) -> list[str]:
    authors = book.get_authors()
    subjects = book.get_subjects()
    lines = [
        f"[bold]{escape(book.get_title() or 'Unknown Title')}[/]",
        "",
        f"[dim]Author(s):[/] {escape(', '.join(authors.values())) or 'Unknown'}",
        f"[dim]Language:[/] {escape(book.get_language()) or 'Unknown'}",
        f"[dim]Publisher:[/] {escape(book.get_publisher()) or 'Unknown'}",
        f"[dim]Identifier:[/] {escape(book.get_unique_identifier()) or 'None'}",
    ]
    if isbn := book.get_isbn():
        lines.append(f"[dim]ISBN:[/] {escape(isbn)}")
    if subjects:
        lines.append(f"[dim]Subjects:[/] {escape(', '.join(subjects))}")
    lines.append(f"[dim]Cover:[/] {'yes' if book.has_cover() else 'no'}")
    return lines


def execute_info(book_path: Path, console: Console) -> None:
    """Display book metadata and the spine."""
    with Epub(book_path) as book:
        spine = book.get_spine()

        console.print()
        console.print(Panel("\n".join(_info_lines(book)), title="Book Information", border_style="green"))

        console.print()
        table = Table(title="Spine", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("ID", style="white")
        table.add_column("Href", style="white")
        table.add_column("Media Type", style="dim")
        table.add_column("TOC Entries", justify="right", style="green")

        for index, item in enumerate(spine.items):
            table.add_row(
                str(index + 1),
                escape(item.id),
                escape(item.href),
                item.media_type,
                str(len(book.nav_points_for(item))),
            )

        console.print(table)
        console.print()


def _add_nav_points(tree: Tree, nav_points: NavPointList) -> None:
    for nav_point in nav_points.nav_points:
        label = escape(nav_point.label or "Untitled")
        branch = tree.add(f"{label} [dim]{escape(nav_point.content_source)}[/]")
        _add_nav_points(branch, nav_point.children)


def execute_toc(book_path: Path, console: Console) -> None:
    """Display the table of contents as a tree."""
    with Epub(book_path) as book:
        toc = book.get_toc()
        title = toc.title or book.get_title() or "Table of Contents"
        tree = Tree(f"[bold]{escape(title)}[/]")
        _add_nav_points(tree, toc.nav_map)

        console.print(tree)
        console.print(f"[dim]{toc.count()} entries[/]")
