"""Command-line interface for pagepace.

Built with Typer for commands and Rich for output.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, SessionType
from .errors import PagePaceError
from .log import configure_logging

# Create the main app
app = typer.Typer(
    name="pagepace",
    help="Track reading progress and get page targets that fit your time.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
book_app = typer.Typer(help="Manage the book catalog.")
app.add_typer(book_app, name="book")
shelf_app = typer.Typer(help="Manage your shelf.")
app.add_typer(shelf_app, name="shelf")
session_app = typer.Typer(help="Start and finish reading sessions.")
app.add_typer(session_app, name="session")
profile_app = typer.Typer(help="Manage your reading profile.")
app.add_typer(profile_app, name="profile")

# Rich console for pretty output
console = Console()

UserOption = typer.Option(None, "--user", "-u", help="User id (default: PAGEPACE_USER)")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else get_config().log_level)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def resolve_user(user: Optional[str]) -> str:
    return user or get_config().default_user


def format_shelf_table(items: list, title: str = "Shelf") -> Table:
    """Create a rich table for displaying shelf items."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Status", style="yellow")
    table.add_column("Page", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Book ID", style="dim")

    for item in items:
        pages = f"{item.current_page}/{item.page_count}" if item.page_count else str(item.current_page)
        table.add_row(item.title, item.status.value, pages, f"{item.progress:.0f}%", item.book_id)

    return table


# ============================================================================
# Catalog Commands
# ============================================================================


@book_app.command("add")
def book_add(
    title: str = typer.Argument(..., help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Page count"),
    category: Optional[list[str]] = typer.Option(None, "--category", "-c", help="Category label (repeatable)"),
) -> None:
    """Add a book to the catalog."""
    db = get_db()
    try:
        book = db.create_book(
            BookCreate(title=title, author=author, page_count=pages, categories=category or [])
        )
    except (PagePaceError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Added '{book.title}'")
    console.print(f"[dim]Book ID: {book.id}[/dim]")


# ============================================================================
# Profile Commands
# ============================================================================


@profile_app.command("set-ppm")
def profile_set_ppm(
    ppm: float = typer.Argument(..., help="Baseline pages per minute"),
    user: Optional[str] = UserOption,
) -> None:
    """Set your baseline reading speed."""
    if ppm <= 0:
        print_error("Pages per minute must be positive.")
        raise typer.Exit(1)

    db = get_db()
    user_id = resolve_user(user)
    try:
        db.set_base_ppm(user_id, ppm)
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Reading speed for {user_id} set to {ppm} pages/minute")


# ============================================================================
# Shelf Commands
# ============================================================================


@shelf_app.command("add")
def shelf_add(
    book_id: str = typer.Argument(..., help="Catalog book ID"),
    user: Optional[str] = UserOption,
) -> None:
    """Put a book on your shelf as planned."""
    from .reading import ShelfTracker

    tracker = ShelfTracker(get_db())
    try:
        item, already_exists = tracker.add_to_shelf(resolve_user(user), book_id)
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if already_exists:
        print_warning(f"'{item.title}' is already on your shelf ({item.status.value}).")
    else:
        print_success(f"Shelved '{item.title}'")
    console.print(f"[dim]Shelf entry ID: {item.shelf_entry_id}[/dim]")


@shelf_app.command("list")
def shelf_list(
    user: Optional[str] = UserOption,
) -> None:
    """Show your whole shelf grouped by status."""
    from .db.schemas import ShelfStatus
    from .reading import ShelfTracker

    try:
        shelf = ShelfTracker(get_db()).bookshelf(resolve_user(user))
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if shelf.total == 0:
        console.print("[dim]Your shelf is empty.[/dim]")
        return

    for status in ShelfStatus:
        items = shelf.group(status)
        if items:
            console.print(format_shelf_table(items, title=status.value.capitalize()))


@shelf_app.command("current")
def shelf_current(
    user: Optional[str] = UserOption,
) -> None:
    """Show books you are currently reading."""
    from .reading import ShelfTracker

    try:
        items = ShelfTracker(get_db()).current_reading(resolve_user(user))
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not items:
        console.print("[dim]Nothing in progress.[/dim]")
        return
    console.print(format_shelf_table(items, title="Currently Reading"))


# ============================================================================
# Recommendation Commands
# ============================================================================


@app.command()
def recommend(
    book_id: str = typer.Argument(..., help="Book ID on your shelf"),
    minutes: float = typer.Option(..., "--minutes", "-m", help="Minutes available to read"),
    user: Optional[str] = UserOption,
) -> None:
    """Recommend how many pages to read in the time you have."""
    from .pace import PaceRecommender

    try:
        result = PaceRecommender(get_db()).recommend(resolve_user(user), book_id, minutes)
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if result.is_already_completed:
        console.print(f"[green]'{result.title or result.book_id}' is already finished.[/green]")
        return

    lines = [
        f"[bold]Read pages {result.start_page}-{result.end_page}[/bold] ({result.pages_to_read} pages)",
        f"Progress: {result.current_page}/{result.page_count} ({result.remaining_pages} left)",
        "",
        f"[dim]Speed {result.used_ppm:g} ppm x difficulty {result.difficulty_factor:g} "
        f"x slack {result.slack_factor:g} over {result.available_minutes:g} min[/dim]",
    ]
    console.print(Panel("\n".join(lines), title=result.title or "Recommendation"))


# ============================================================================
# Session Commands
# ============================================================================


@session_app.command("start")
def session_start(
    book_id: str = typer.Argument(..., help="Book ID on your shelf"),
    start_page: int = typer.Option(..., "--from", help="First planned page"),
    end_page: int = typer.Option(..., "--to", help="Last planned page"),
    planned_pages: Optional[int] = typer.Option(None, "--planned", help="Planned page count"),
    session_type: SessionType = typer.Option(SessionType.TIMER, "--type", "-t", help="Session type"),
    user: Optional[str] = UserOption,
) -> None:
    """Start a reading session."""
    from .reading import SessionManager

    db = get_db()
    user_id = resolve_user(user)
    entry = db.get_shelf_entry_for_book(user_id, book_id)
    if not entry:
        print_error(f"Book is not on your shelf: {book_id}")
        raise typer.Exit(1)

    try:
        session = SessionManager(db).start_session(
            user_id=user_id,
            shelf_entry_id=entry.id,
            book_id=book_id,
            start_page=start_page,
            end_page=end_page,
            planned_pages=planned_pages,
            session_type=session_type,
        )
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Session started for pages {start_page}-{end_page}")
    console.print(f"[dim]Session ID: {session.id}[/dim]")


@session_app.command("finish")
def session_finish(
    session_id: str = typer.Argument(..., help="Session ID"),
    end_page: int = typer.Option(..., "--page", "-p", help="Last page read"),
    minutes: float = typer.Option(..., "--minutes", "-m", help="Minutes spent reading"),
    user: Optional[str] = UserOption,
) -> None:
    """Finish a reading session and update shelf progress."""
    from .reading import SessionManager

    try:
        outcome = SessionManager(get_db()).finish_session(
            resolve_user(user), session_id, end_page, minutes
        )
    except PagePaceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    session = outcome.session
    console.print(
        f"[green]Session closed:[/green] pages {session.actual_start_page}-"
        f"{session.actual_end_page} ({session.actual_pages} pages, "
        f"{session.effective_minutes:g} min)"
    )
    if outcome.progress_merged and outcome.shelf_entry:
        entry = outcome.shelf_entry
        console.print(f"  Shelf progress: page {entry.current_page} ({entry.status})")
    else:
        print_warning("Shelf progress was not updated. Run this command again to retry.")


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"pagepace version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
