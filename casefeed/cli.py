import asyncio

import typer
from rich.console import Console
from rich.table import Table

from casefeed.core.exceptions import CaseFeedError

console = Console()
cli_app = typer.Typer(name="casefeed-admin", help="Casefeed administrative CLI")


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


async def _ensure_db():
    from casefeed.core.database import init_db
    await init_db()


def _print_page(page, title: str) -> None:
    table = Table(title=title)
    table.add_column("Date", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Title")
    table.add_column("Client")
    table.add_column("ID", style="dim")

    for record in page.records:
        table.add_row(
            record.date.isoformat(),
            record.type,
            record.title,
            record.subject_name or "-",
            record.id,
        )

    console.print(table)
    meta = page.meta
    console.print(f"  Page {meta.page}/{meta.total_pages}  ·  {meta.total} total")
    if page.grouped:
        counts = ", ".join(f"{k}={v}" for k, v in sorted(page.grouped.items()))
        console.print(f"  Grouped: {counts}")
    if page.failed_sources:
        console.print(f"  [yellow]Partial result; unavailable: {', '.join(page.failed_sources)}[/yellow]")
    if page.truncated_sources:
        console.print(f"  [yellow]Row cap reached for: {', '.join(page.truncated_sources)}[/yellow]")


def _run_feed(build):
    """Run a feed coroutine factory, turning API errors into a non-zero exit."""
    async def _go():
        await _ensure_db()
        from casefeed.services.activity import ActivityFeedService
        return await build(ActivityFeedService())

    try:
        return _run_async(_go())
    except CaseFeedError as exc:
        console.print(f"[bold red]{exc.code}:[/bold red] {exc.message}")
        for field, messages in (exc.details.get("fields") or {}).items():
            console.print(f"  {field}: {'; '.join(messages)}")
        raise typer.Exit(code=1)


@cli_app.command("issue-token")
def issue_token(
    user_id: str = typer.Option(..., "--user-id", help="Staff user id (token subject)"),
    role: str = typer.Option(..., "--role", help="Role claim, e.g. admin or specialist"),
    name: str = typer.Option("", "--name", help="Display name"),
):
    """Sign a bearer token for a staff user."""
    from casefeed.services.jwt_service import JWTService

    token = JWTService().create_token(user_id=user_id, role=role, name=name)
    console.print(f"\n  [bold yellow]{token}[/bold yellow]\n")


@cli_app.command("search")
def search(
    query: str = typer.Option("", "--query", "-q", help="Matches activity title or client name"),
    activity_type: str = typer.Option("all", "--type", help="all, a base type, or schedule_<kind>"),
    start_date: str = typer.Option(None, "--start", help="YYYY-MM-DD, inclusive"),
    end_date: str = typer.Option(None, "--end", help="YYYY-MM-DD, inclusive"),
    actor_id: str = typer.Option(None, "--actor", help="Only activities created by this user"),
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(None, "--limit"),
    as_user: str = typer.Option("casefeed-cli", "--as-user", help="Actor id recorded in the audit log"),
    as_role: str = typer.Option("admin", "--as-role"),
):
    """Search activities across all clients."""
    from casefeed.services.activity import ActivityFilter, Actor

    async def _build(service):
        flt = ActivityFilter.build(
            query=query,
            activity_type=activity_type,
            start_date=start_date,
            end_date=end_date,
            actor_id=actor_id,
            page=page,
            limit=limit,
        )
        return await service.search(Actor(id=as_user, role=as_role), flt)

    _print_page(_run_feed(_build), title=f"Activities matching '{query}'" if query else "All activities")


@cli_app.command("client-feed")
def client_feed(
    client_id: str = typer.Argument(help="Client id"),
    activity_type: str = typer.Option("all", "--type"),
    start_date: str = typer.Option(None, "--start"),
    end_date: str = typer.Option(None, "--end"),
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(None, "--limit"),
    as_user: str = typer.Option("casefeed-cli", "--as-user"),
    as_role: str = typer.Option("admin", "--as-role"),
):
    """Show one client's activity timeline."""
    from casefeed.services.activity import ActivityFilter, Actor

    async def _build(service):
        flt = ActivityFilter.build(
            activity_type=activity_type,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
        return await service.client_activities(Actor(id=as_user, role=as_role), client_id, flt)

    _print_page(_run_feed(_build), title=f"Activities of client {client_id}")


def main():
    cli_app()


if __name__ == "__main__":
    main()
