"""Unified Rich theme and reusable UI helper functions for the CLI."""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

from models.activity import calculate_version, format_time_spent

HERZENSBUCH_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
    "page.active": "bold magenta",
    "comment.user": "bold cyan",
})


def get_console() -> Console:
    """Return a Console instance with the herzensbuch theme applied."""
    return Console(theme=HERZENSBUCH_THEME)


def app_header(title: str = "herzensbuch") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "Neues Buch").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def book_summary_panel(book, stats) -> Panel:
    """Return a Panel with version, word count and time spent.

    Args:
        book: Book with .title, .id, .status and .description.
        stats: BookStats of the book.
    """
    description = book.description or ""
    if len(description) > 150:
        description = description[:150] + "..."

    body = (
        f"  [stat.label]Version:[/] [stat.value]{calculate_version(book)}[/]  "
        f"[muted]|[/]  [stat.label]Status:[/] {book.status.value}  "
        f"[muted]|[/]  [stat.label]Zeit:[/] {format_time_spent(book.time_spent_seconds)}\n"
        f"  [stat.label]Kapitel:[/] [stat.value]{stats.total_chapters}[/]  "
        f"[muted]|[/]  [stat.label]Seiten:[/] [stat.value]{stats.total_pages}[/]  "
        f"[muted]|[/]  [stat.label]Wörter:[/] [stat.value]{stats.formatted_words}[/]  "
        f"[muted]|[/]  [stat.label]A4:[/] ~{stats.estimated_a4_pages}\n"
        f"  [stat.label]Beschreibung:[/] {description}"
    )
    return Panel(
        body,
        title=f"[bold]{book.title}[/] [muted](ID: {book.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def book_tree(book, active_page_id: Optional[str] = None) -> Tree:
    """Build a Rich Tree of chapters and pages with their ids."""
    tree = Tree(f"[bold]{book.title}[/]")
    for chapter in book.chapters:
        branch = tree.add(
            f"[chapter.num]Kapitel {chapter.number}[/] {chapter.title} [muted]({chapter.id})[/]"
        )
        for page in chapter.pages:
            style = "page.active" if page.id == active_page_id else "muted"
            label = f"[{style}]Seite {page.number}[/] {page.title} [muted]({page.id})[/]"
            if page.comments:
                label += f" [accent]💬 {len(page.comments)}[/]"
            branch.add(label)
    return tree


def activity_table(entries, limit: int = 10) -> Table:
    """Build a table of the newest activity entries."""
    table = Table(title="Aktivitäten", box=box.ROUNDED, border_style="dim")
    table.add_column("Zeit", style="muted")
    table.add_column("Aktion", style="bold")
    table.add_column("Details")
    for entry in list(entries)[:limit]:
        table.add_row(entry.timestamp, entry.action, entry.details)
    return table


def task_table(tasks: list[dict]) -> Table:
    """Build the reviewer task table of pending comments."""
    table = Table(title="Offene Aufgaben", box=box.ROUNDED, border_style="dim", show_lines=True)
    table.add_column("Buch", style="bold")
    table.add_column("Kapitel / Seite")
    table.add_column("Von", style="comment.user")
    table.add_column("Kommentar")

    for task in tasks:
        text = task["comment_text"] or "[muted](Sprachnachricht)[/]"
        if len(text) > 40:
            text = text[:40] + "..."
        table.add_row(
            task["book_title"],
            f"{task['chapter_title']} / {task['page_title']} [muted]({task['page_id']})[/]",
            task["comment_user"],
            text,
        )
    return table
