"""WorldForge CLI entry point."""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Config
from .core.job_queue import GenerationQueue
from .core.worker import GenerationWorker
from .db.session import init_db
from .db.world_store import WorldStore
from .exceptions import ValidationError
from .logging_config import setup_logging

console = Console()


def print_banner():
    banner = Text()
    banner.append("WorldForge", style="bold cyan")
    banner.append(" - phased world generation\n", style="cyan")
    banner.append(f"LLM provider: {Config.get_primary_provider()}", style="dim")
    console.print(Panel(banner, border_style="cyan", padding=(0, 2)))


def cmd_worker(args) -> int:
    issues = Config.validate()
    if issues:
        for issue in issues:
            console.print(f"[red]Config: {issue}[/red]")
        return 1
    print_banner()
    worker = GenerationWorker(poll_seconds=args.poll)
    try:
        if args.once:
            ran = asyncio.run(worker.drain())
            console.print(f"[green]Ran {ran} job(s)[/green]")
        else:
            asyncio.run(worker.run_forever())
    except KeyboardInterrupt:
        console.print("[dim]Worker interrupted[/dim]")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    print_banner()
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create(args) -> int:
    characters = [{"name": name, "backstory": ""} for name in args.character or []]
    campaign_id = WorldStore.create_campaign(args.name, args.description, characters=characters)
    console.print(f"[green]Created campaign {campaign_id}[/green]")
    return 0


def cmd_enqueue(args) -> int:
    try:
        result = GenerationQueue().enqueue(args.campaign_id)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    verb = "Already queued" if result.already_exists else "Queued"
    console.print(f"{verb}: campaign {args.campaign_id} is [yellow]{result.job.status}[/yellow]")
    return 0


def cmd_status(args) -> int:
    job = GenerationQueue().get_status(args.campaign_id)
    if job is None:
        console.print(f"Campaign {args.campaign_id}: [dim]not started[/dim]")
        return 0

    store = WorldStore(args.campaign_id)
    try:
        counts = store.get_counts()
        seed = store.get_world_seed()
        score = seed.coherence_score if seed else None
    finally:
        store.close()

    table = Table(title=f"Campaign {args.campaign_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", str(job.status))
    table.add_row("Phase", job.current_phase or "-")
    table.add_row("Error", job.error or "-")
    table.add_row("Coherence", "-" if score is None else str(score))
    for key, value in counts.items():
        table.add_row(key.title(), str(value))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worldforge", description="WorldForge world generation")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    worker = sub.add_parser("worker", help="Run the generation worker")
    worker.add_argument("--once", action="store_true", help="Drain pending jobs and exit")
    worker.add_argument("--poll", type=float, default=None, help="Seconds between polls")
    worker.set_defaults(func=cmd_worker)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    create = sub.add_parser("create", help="Create a campaign")
    create.add_argument("name")
    create.add_argument("description")
    create.add_argument("--character", action="append", help="Character name (repeatable)")
    create.set_defaults(func=cmd_create)

    enqueue = sub.add_parser("enqueue", help="Queue world generation for a campaign")
    enqueue.add_argument("campaign_id", type=int)
    enqueue.set_defaults(func=cmd_enqueue)

    status = sub.add_parser("status", help="Show generation status")
    status.add_argument("campaign_id", type=int)
    status.set_defaults(func=cmd_status)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    init_db()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
