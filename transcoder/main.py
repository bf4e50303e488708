# CLI entrypoint - runs one transcode job per invocation; exit code 0 on success, 1 on failure

import logging
from typing import Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from transcoder.core.config import load_settings
from transcoder.core.database import create_db_engine, create_tables
from transcoder.worker import build_worker

load_dotenv()

app = typer.Typer(help="Video transcode job runner", no_args_is_help=True)
console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _load_settings_or_exit():
    try:
        return load_settings()
    except ValidationError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """
    Transcode a source video to web-playable H.264 MP4 plus a thumbnail.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


@app.command()
def run(
    video_id: Optional[str] = typer.Option(
        None, "--video-id", envvar="VIDEO_ID", help="Record id of the video to transcode"
    ),
    force: bool = typer.Option(False, "--force", help="Re-run a job that is not queued"),
):
    """Run the transcode job for one video."""
    if not video_id:
        console.print("[bold red]No VIDEO_ID environment variable provided.[/bold red]")
        raise typer.Exit(code=1)

    settings = _load_settings_or_exit()
    try:
        worker = build_worker(settings)
        result = worker.process_video(video_id, force=force)
    except Exception as e:
        logging.getLogger(__name__).debug("Transcoder failure", exc_info=True)
        console.print(f"[bold red]❌ Transcoder failed:[/bold red] {type(e).__name__}: {escape(str(e))}")
        raise typer.Exit(code=1)

    table = Table(title=f"Video {escape(video_id)}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("status", result.status.value)
    table.add_row("video_url_h264", escape(result.video_url or "-"))
    table.add_row("thumbnail_url", escape(result.thumbnail_url) if result.thumbnail_url else "[dim]none[/dim]")
    console.print(table)


@app.command("init-db")
def init_db():
    """Create the videos table if it does not exist."""
    settings = _load_settings_or_exit()
    try:
        create_tables(create_db_engine(settings))
    except Exception as e:
        console.print(f"[bold red]❌ Failed to create tables:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)
    console.print("[green]videos table ready[/green]")


if __name__ == "__main__":
    app()
