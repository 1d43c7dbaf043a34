"""CLI entry point for the herzensbuch book editor.

Usage:
  herzensbuch register -e anna@example.com -n Anna
  herzensbuch login -e anna@example.com
  herzensbuch new -t "Unser Sommer"
  herzensbuch add-chapter BOOK_ID
  herzensbuch write BOOK_ID PAGE_ID "Es war einmal..."
  herzensbuch --help
"""

import json
import logging
import sys
from dataclasses import dataclass
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from cli.theme import (
    activity_table,
    app_header,
    book_summary_panel,
    book_tree,
    command_panel,
    get_console,
    success_panel,
    task_table,
)
from config.exceptions import AccountNotApprovedError, AuthError, InvalidConfigError
from config.logging_config import setup_logging
from config.settings import Settings, load_settings
from editor.callbacks import RecordingCallback
from editor.scheduler import VirtualClock
from editor.stats import compute_stats
from editor.tree_editor import BookEditor
from models import operations as ops
from models.activity import calculate_version
from models.book import Book
from models.document import user_from_document
from models.user import User
from store.accounts import LocalAccountService
from store.blob_store import LocalBlobStore
from store.commands import UserDirectory
from store.sqlite_store import SQLiteDocumentStore
from store.sync import USERS_COLLECTION, SyncAdapter

console = get_console()
logger = logging.getLogger(__name__)


def _load_settings() -> Settings:
    try:
        return load_settings()
    except InvalidConfigError as e:
        console.print(f"[error]{e.message}[/]")
        console.print(f"[muted]{escape(e.details.get('errors', ''))}[/]")
        sys.exit(2)


def _init_logging(verbose: bool):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    settings = _load_settings()
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


@dataclass
class _Services:
    settings: Settings
    store: SQLiteDocumentStore
    sync: SyncAdapter
    accounts: LocalAccountService


def _services() -> _Services:
    settings = _load_settings()
    store = SQLiteDocumentStore(settings.sqlite_db_path)
    blobs = LocalBlobStore(settings.blob_dir)
    return _Services(
        settings=settings,
        store=store,
        sync=SyncAdapter(store, blobs),
        accounts=LocalAccountService(store, settings.employee_emails, blobs),
    )


# ---------------------------------------------------------------------------
# Session file helpers
# ---------------------------------------------------------------------------

def _save_session(settings: Settings, user: Optional[User]) -> None:
    if user is None:
        settings.session_path.unlink(missing_ok=True)
        return
    settings.session_path.write_text(
        json.dumps({"uid": user.id, "email": user.email}), encoding="utf-8",
    )


def _current_user(svc: _Services) -> User:
    """Load the signed-in user's profile or exit."""
    path = svc.settings.session_path
    if not path.exists():
        console.print("[error]Nicht angemeldet. Bitte zuerst [info]herzensbuch login[/] ausführen.[/]")
        sys.exit(1)
    uid = json.loads(path.read_text(encoding="utf-8"))["uid"]
    data = svc.store.get_document(f"{USERS_COLLECTION}/{uid}")
    if data is None:
        console.print("[error]Profil nicht gefunden. Bitte erneut anmelden.[/]")
        sys.exit(1)
    return user_from_document(uid, data)


def _load_book(svc: _Services, user: User, book_id: str) -> Book:
    if user.is_employee:
        book = next((b for b in svc.sync.list_all_books() if b.id == book_id), None)
    else:
        book = svc.sync.load_book(user.id, book_id)
    if book is None:
        console.print(f"[error]Buch {book_id} nicht gefunden[/]")
        sys.exit(1)
    return book


def _open_editor(svc: _Services, book_id: str, page_id: Optional[str] = None) -> BookEditor:
    user = _current_user(svc)
    book = _load_book(svc, user, book_id)
    return BookEditor(
        book,
        svc.sync,
        user,
        VirtualClock(),
        settings=svc.settings,
        callback=RecordingCallback(),
        initial_page_id=page_id,
    )


def _finish(editor: BookEditor, changed: bool, message: str) -> None:
    """Close the editor, print notices and the outcome."""
    editor.close()
    for notice in editor.callback.notices:
        console.print(f"[warning]{notice}[/]")
    if not changed:
        console.print("[warning]Keine Änderung.[/]")
        return
    console.print(f"[success]{message}[/] [muted](Version {editor.version})[/]")


def _require_structure(editor: BookEditor) -> None:
    if not editor.can_edit_structure:
        console.print("[error]Nur Autor:innen können die Struktur ändern.[/]")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """herzensbuch: Bücher schreiben, gliedern und kommentieren.

    \b
    Konto:
      herzensbuch register -e anna@example.com -n Anna
      herzensbuch login -e anna@example.com

    \b
    Bücher:
      herzensbuch new -t "Unser Sommer"
      herzensbuch books
      herzensbuch show BOOK_ID
    """
    _init_logging(verbose)


# ---------------------------------------------------------------------------
# Account commands
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--email", "-e", required=True, help="E-Mail-Adresse")
@click.option("--name", "-n", required=True, help="Anzeigename")
@click.password_option("--password", "-p", help="Passwort (min. 6 Zeichen)")
def register(email, name, password):
    """Neues Konto anlegen und anmelden."""
    svc = _services()
    try:
        user = svc.accounts.register(email, password, name)
    except AuthError as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    _save_session(svc.settings, user)
    console.print(success_panel("Registriert", (
        f"  Name: [stat.value]{user.name}[/]\n"
        f"  Rolle: [stat.value]{user.role.value}[/]"
    )))
    if user.is_blocked:
        console.print("[warning]Dein Konto muss noch freigeschaltet werden.[/]")


@cli.command()
@click.option("--email", "-e", required=True, help="E-Mail-Adresse")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Passwort")
def login(email, password):
    """Anmelden; die Sitzung wird lokal gespeichert."""
    svc = _services()
    try:
        user = svc.accounts.authenticate(email, password)
    except AuthError as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    _save_session(svc.settings, user)
    console.print(f"[success]Angemeldet als {user.name}[/] [muted]({user.role.value})[/]")


@cli.command()
def logout():
    """Lokale Sitzung beenden."""
    svc = _services()
    svc.accounts.sign_out()
    _save_session(svc.settings, None)
    console.print("[success]Abgemeldet.[/]")


# ---------------------------------------------------------------------------
# Book commands
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--title", "-t", default="Neues Buch", help="Buchtitel")
@click.option("--description", "-d", default=None, help="Kurzbeschreibung")
def new(title, description):
    """Neues Buchprojekt anlegen."""
    svc = _services()
    user = _current_user(svc)
    console.print(app_header())
    console.print(command_panel("Neues Buch", {"Titel": title, "Autor:in": user.name}))
    try:
        if description is None:
            book = svc.sync.create_book(user, title)
        else:
            book = svc.sync.create_book(user, title, description)
    except AccountNotApprovedError as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    console.print(f"[success]Buch erstellt:[/] [stat.value]{book.id}[/]")
    console.print(f"Nächster Schritt: [info]herzensbuch add-chapter {book.id}[/]")


@cli.command()
def books():
    """Eigene Bücher (Mitarbeitende: alle Bücher) auflisten."""
    svc = _services()
    user = _current_user(svc)
    items = svc.sync.list_all_books() if user.is_employee else svc.sync.list_books(user.id)
    if not items:
        console.print("[warning]Noch keine Bücher. Mit [info]herzensbuch new[/] anlegen.[/]")
        return

    table = Table(title="Bücher", show_lines=True, border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Titel", style="bold")
    table.add_column("Autor:in")
    table.add_column("Status")
    table.add_column("Version")
    table.add_column("Seiten", justify="right")
    table.add_column("Zuletzt geändert", style="muted")
    for book in items:
        table.add_row(
            book.id,
            book.title,
            book.author_name,
            book.status.value,
            calculate_version(book),
            str(book.page_count),
            book.updated_at or "-",
        )
    console.print(table)


@cli.command()
@click.argument("book_id")
@click.option("--page", "-p", "page_id", default=None, help="Seite anzeigen")
def show(book_id, page_id):
    """Gliederung und Statistik eines Buches anzeigen."""
    svc = _services()
    user = _current_user(svc)
    book = _load_book(svc, user, book_id)

    console.print(app_header())
    console.print(book_summary_panel(book, compute_stats(book)))
    console.print(book_tree(book, page_id))

    if page_id:
        page = ops.find_page(book, page_id)
        if page is None:
            console.print(f"[error]Seite {page_id} nicht gefunden[/]")
            sys.exit(1)
        console.print()
        console.print(f"[bold]{page.title}[/] [muted](Seite {ops.global_page_number(book, page_id)})[/]")
        console.print(escape(page.content) if page.content else "[muted](leer)[/]")
        for comment in page.comments:
            anchor = f' [muted]zu "{comment.selected_text}"[/]' if comment.selected_text else ""
            text = comment.text or "(Sprachnachricht)"
            console.print(f"  [comment.user]{comment.user_name}[/]{anchor}: {text}")


@cli.command(name="add-chapter")
@click.argument("book_id")
@click.option("--title", "-t", default=ops.DEFAULT_CHAPTER_TITLE, help="Kapiteltitel")
def add_chapter(book_id, title):
    """Kapitel am Ende anfügen."""
    editor = _open_editor(_services(), book_id)
    _require_structure(editor)
    chapter = editor.add_chapter(title)
    _finish(editor, chapter is not None, f"Kapitel {chapter.number} erstellt: {chapter.id}" if chapter else "")


@cli.command(name="add-page")
@click.argument("book_id")
@click.argument("chapter_id")
@click.option("--title", "-t", default=ops.DEFAULT_PAGE_TITLE, help="Seitentitel")
def add_page(book_id, chapter_id, title):
    """Seite an ein Kapitel anfügen."""
    editor = _open_editor(_services(), book_id)
    _require_structure(editor)
    page = editor.add_page(chapter_id, title)
    if page is None:
        editor.close()
        console.print(f"[error]Kapitel {chapter_id} nicht gefunden[/]")
        sys.exit(1)
    _finish(editor, True, f"Seite {page.number} erstellt: {page.id}")


@cli.command()
@click.argument("book_id")
@click.argument("item_id")
@click.argument("title")
def rename(book_id, item_id, title):
    """Kapitel oder Seite umbenennen."""
    editor = _open_editor(_services(), book_id)
    _require_structure(editor)
    _finish(editor, editor.rename(item_id, title), f'Umbenannt zu "{title}"')


@cli.command(name="move-page")
@click.argument("book_id")
@click.argument("chapter_id")
@click.argument("position", type=int)
@click.option("--direction", "-d", type=click.Choice(["up", "down"]), default="up",
              help="Richtung der Verschiebung")
def move_page(book_id, chapter_id, position, direction):
    """Seite an POSITION (ab 1) innerhalb des Kapitels verschieben."""
    editor = _open_editor(_services(), book_id)
    _require_structure(editor)
    step = -1 if direction == "up" else 1
    _finish(editor, editor.move_page(chapter_id, position - 1, step), "Seite verschoben")


@cli.command(name="move-chapter")
@click.argument("book_id")
@click.argument("from_position", type=int)
@click.argument("to_position", type=int)
def move_chapter(book_id, from_position, to_position):
    """Kapitel von FROM_POSITION nach TO_POSITION (ab 1) verschieben."""
    editor = _open_editor(_services(), book_id)
    _require_structure(editor)
    changed = editor.reorder_chapters(from_position - 1, to_position - 1)
    _finish(editor, changed, "Kapitel neu angeordnet")


@cli.command()
@click.argument("book_id")
@click.argument("page_id")
@click.argument("text")
def write(book_id, page_id, text):
    """Seiteninhalt ersetzen (TEXT "-" liest von stdin)."""
    if text == "-":
        text = click.get_text_stream("stdin").read()
    editor = _open_editor(_services(), book_id, page_id)
    if not editor.select_page(page_id):
        editor.close()
        console.print(f"[error]Seite {page_id} nicht gefunden[/]")
        sys.exit(1)
    changed = text != editor.current_content
    editor.edit_content(text)
    stats = editor.stats
    _finish(editor, changed, "Gespeichert")
    console.print(
        f"  [stat.label]Wörter:[/] [stat.value]{stats.formatted_words}[/]  "
        f"[muted]|[/]  [stat.label]A4:[/] ~{stats.estimated_a4_pages}"
    )


@cli.command()
@click.argument("book_id")
@click.argument("page_id")
@click.argument("text", default="")
@click.option("--anchor", "-a", default=None, help="Markierte Textstelle")
@click.option("--audio", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Sprachnachricht (Audiodatei)")
def comment(book_id, page_id, text, anchor, audio):
    """Kommentar zu einer Seite hinzufügen."""
    editor = _open_editor(_services(), book_id, page_id)
    if not editor.select_page(page_id):
        editor.close()
        console.print(f"[error]Seite {page_id} nicht gefunden[/]")
        sys.exit(1)
    audio_url = None
    if audio:
        with open(audio, "rb") as f:
            audio_url = editor.attach_comment_audio(f.read())
    if not ops.is_valid_comment(text, audio_url):
        editor.close()
        console.print("[error]Kommentar braucht Text oder eine Sprachnachricht.[/]")
        sys.exit(1)
    created = editor.add_comment(text, audio_url=audio_url, selected_text=anchor)
    _finish(editor, created is not None, "Kommentar erstellt")


@cli.command()
@click.argument("book_id")
@click.option("--limit", "-l", default=10, help="Anzahl Einträge")
def activity(book_id, limit):
    """Letzte Aktivitäten eines Buches anzeigen."""
    svc = _services()
    user = _current_user(svc)
    book = _load_book(svc, user, book_id)
    console.print(activity_table(book.activity_log, limit))


@cli.command()
@click.argument("book_id")
def preview(book_id):
    """Buch in Leserichtung ausgeben: Cover, dann alle Seiten."""
    svc = _services()
    user = _current_user(svc)
    book = _load_book(svc, user, book_id)
    for index, entry in enumerate(ops.preview_sequence(book)):
        if entry["type"] == "cover":
            console.print(f"[bold]{book.title}[/]")
            console.print(f"[muted]{book.description or ''}[/]")
            continue
        page = entry["page"]
        console.rule(f"[chapter.num]{entry['chapter_title']}[/] · Seite {index}")
        console.print(f"[bold]{page.title}[/]")
        console.print(escape(page.content) if page.content else "[muted](leer)[/]")


@cli.command()
def tasks():
    """Offene Kommentare als Aufgabenliste anzeigen."""
    svc = _services()
    user = _current_user(svc)
    items = svc.sync.list_all_books() if user.is_employee else svc.sync.list_books(user.id)
    pending = ops.pending_tasks(items)
    if not pending:
        console.print("[success]Keine offenen Aufgaben.[/]")
        return
    console.print(task_table(pending))


# ---------------------------------------------------------------------------
# Reviewer commands
# ---------------------------------------------------------------------------

def _directory(svc: _Services) -> UserDirectory:
    user = _current_user(svc)
    if not user.is_employee:
        console.print("[error]Nur für Mitarbeitende.[/]")
        sys.exit(1)
    directory = UserDirectory(svc.store, user)
    directory.load()
    if directory.error:
        console.print(f"[error]{directory.error}[/]")
        sys.exit(1)
    return directory


@cli.command()
def users():
    """Alle Konten auflisten (Mitarbeitende)."""
    directory = _directory(_services())
    table = Table(title="Benutzer", border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Name", style="bold")
    table.add_column("E-Mail")
    table.add_column("Rolle")
    table.add_column("Freigeschaltet")
    for user in directory.users:
        approved = "[success]ja[/]" if user.is_approved else "[warning]nein[/]"
        table.add_row(user.id, user.name, user.email, user.role.value, approved)
    console.print(table)


@cli.command()
@click.argument("user_id")
def approve(user_id):
    """Freischaltung eines Kontos umschalten (Mitarbeitende)."""
    directory = _directory(_services())
    target = directory.get(user_id)
    if target is None:
        console.print(f"[error]Benutzer {user_id} nicht gefunden[/]")
        sys.exit(1)
    result = directory.toggle_approval(target)
    if not result.ok:
        console.print(f"[error]{result.message}[/]")
        sys.exit(1)
    state = "freigeschaltet" if directory.get(user_id).is_approved else "gesperrt"
    console.print(f"[success]{target.name} ist jetzt {state}.[/]")


@cli.command()
@click.argument("user_id")
def role(user_id):
    """Rolle eines Kontos umschalten (Mitarbeitende)."""
    directory = _directory(_services())
    target = directory.get(user_id)
    if target is None:
        console.print(f"[error]Benutzer {user_id} nicht gefunden[/]")
        sys.exit(1)
    result = directory.toggle_role(target)
    if not result.ok:
        console.print(f"[error]{result.message}[/]")
        sys.exit(1)
    console.print(f"[success]{target.name} ist jetzt {directory.get(user_id).role.value}.[/]")


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
