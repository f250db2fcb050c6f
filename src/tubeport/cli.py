"""CLI interface for tubeport."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING

import typer
from pydantic import SecretStr
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from tubeport.config import ensure_dirs, get_log_dir, load_config, save_config
from tubeport.convert.errors import ConversionError
from tubeport.convert.models import RunState, TrackStatus
from tubeport.convert.progress import ProgressSnapshot

if TYPE_CHECKING:
    from tubeport.convert.models import ConversionRun

app = typer.Typer(
    name="tubeport",
    help="Convert Spotify playlists into YouTube playlists.",
    add_completion=False,
)
console = Console()

_PLAYLIST_URL = "https://www.youtube.com/playlist?list={id}"

_STATUS_STYLES = {
    TrackStatus.PENDING: "dim",
    TrackStatus.FOUND_ADDED: "green",
    TrackStatus.NOT_FOUND: "yellow",
    TrackStatus.ERROR: "red",
}


def main() -> None:
    """Entry point that wraps ``app()`` with a clean KeyboardInterrupt handler."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("Interrupted.")
        raise SystemExit(130) from None


def _resolve_token(token: str) -> str:
    """Prefer an explicit --token / env value, fall back to the config file."""
    if token:
        return token
    return load_config().youtube.access_token.get_secret_value()


# ---------------------------------------------------------------------------
# Progress rendering
# ---------------------------------------------------------------------------


class RichProgressReporter:
    """Render orchestrator snapshots as a Rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("Waiting", total=100, start=False)

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        if snapshot.state is RunState.FETCHING_SOURCE:
            self._progress.update(self._task, description="Fetching Spotify playlist")
            return

        if snapshot.overall_progress is not None:
            self._progress.start_task(self._task)
            self._progress.update(self._task, completed=snapshot.overall_progress)

        track = snapshot.changed_track
        if track is not None:
            style = _STATUS_STYLES[track.status]
            artists = ", ".join(track.artists)
            self._progress.console.print(
                f"  [{style}]{track.status.value:>9}[/{style}]  {escape(track.title)} — {escape(artists)}",
                highlight=False,
            )
            self._progress.update(self._task, description=f"{track.position + 1}/{len(snapshot.tracks)} tracks")
        elif snapshot.state is RunState.CONVERTING:
            self._progress.update(self._task, description=f"Converting {len(snapshot.tracks)} tracks")
        elif snapshot.state is RunState.COMPLETED:
            self._progress.update(self._task, description="Done")


def _print_summary(run: ConversionRun) -> None:
    table = Table(title=run.source_playlist.name if run.source_playlist else None)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Artists")
    table.add_column("Album", style="dim")
    table.add_column("Status")

    for state in run.tracks:
        style = _STATUS_STYLES[state.status]
        table.add_row(
            str(state.position + 1),
            escape(state.track.title),
            escape(", ".join(state.track.artists)),
            escape(state.track.album_name),
            f"[{style}]{state.message or state.status.value}[/{style}]",
        )

    if run.tracks:
        console.print(table)
    console.print(
        f"[green]{run.added} added[/green], "
        f"[yellow]{run.not_found} not found[/yellow], "
        f"[red]{run.errors} errors[/red]"
    )
    if run.target_playlist_id:
        console.print(f"Playlist: [link]{_PLAYLIST_URL.format(id=run.target_playlist_id)}[/link]")
    else:
        console.print("[dim]No YouTube playlist was created (empty source playlist).[/dim]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def convert(
    reference: str = typer.Argument(help="Spotify playlist URL (or anything containing playlist/<id>)"),
    token: str = typer.Option("", "--token", envvar="TUBEPORT_YOUTUBE_TOKEN", help="YouTube OAuth access token"),
) -> None:
    """Convert a Spotify playlist into a new YouTube playlist."""
    from tubeport.convert.orchestrator import ConversionOrchestrator
    from tubeport.logging import setup_logging

    cfg = load_config()
    ensure_dirs()
    setup_logging(cfg.general.log_level, cfg.log_dir)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        orchestrator = ConversionOrchestrator(cfg, reporter=RichProgressReporter(progress))
        try:
            run = asyncio.run(orchestrator.convert(reference, _resolve_token(token)))
        except ConversionError as exc:
            progress.stop()
            console.print(f"[red]Conversion failed:[/red] {escape(str(exc))}")
            raise typer.Exit(1) from exc

    _print_summary(run)


@app.command()
def playlists(
    token: str = typer.Option("", "--token", envvar="TUBEPORT_YOUTUBE_TOKEN", help="YouTube OAuth access token"),
) -> None:
    """List the YouTube playlists owned by the authenticated user."""
    from tubeport.convert.youtube import YouTubeClient

    access_token = _resolve_token(token)
    if not access_token:
        console.print("[red]No YouTube access token available.[/red]  Use --token or `tubeport config set`.")
        raise typer.Exit(1)

    cfg = load_config()

    async def _fetch():
        async with YouTubeClient(timeout=cfg.general.http_timeout) as client:
            return await client.list_playlists(access_token)

    try:
        items = asyncio.run(_fetch())
    except ConversionError as exc:
        console.print(f"[red]Could not list playlists:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    if not items:
        console.print("[dim]No playlists found.[/dim]")
        return

    table = Table(title="Your YouTube Playlists")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Description")
    for item in items:
        table.add_row(item.id, escape(item.title), escape(item.description))
    console.print(table)


@app.command()
def logs(
    tail_lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    convert_log: bool = typer.Option(False, "--convert", help="Show convert.log (JSON) instead of tubeport.log"),
) -> None:
    """Show recent log output."""
    filename = "convert.log" if convert_log else "tubeport.log"
    log_file = get_log_dir() / filename
    if not log_file.exists():
        console.print(f"[yellow]Log file not found:[/yellow] {log_file}")
        raise typer.Exit(1)

    with open(log_file, encoding="utf-8") as fh:
        last_lines = deque(fh, maxlen=tail_lines)

    if not last_lines:
        console.print("[dim]Log file is empty.[/dim]")
        return

    for line in last_lines:
        _print_log_line(line)


def _log_line_style(line: str) -> str | None:
    """Return a Rich style string based on the log level found in *line*.

    Matches structlog formats only:
    - ConsoleRenderer: ``[error    ]``
    - JSONRenderer: ``"level": "error"``
    """
    lower = line.lower()
    if "[error" in lower or "[critical" in lower or '"level": "error"' in lower or '"level": "critical"' in lower:
        return "red"
    if "[warning" in lower or '"level": "warning"' in lower:
        return "yellow"
    if "[debug" in lower or '"level": "debug"' in lower:
        return "dim"
    return None


def _print_log_line(line: str) -> None:
    line = line.rstrip("\n")
    if not line:
        return
    console.print(line, style=_log_line_style(line), highlight=False, markup=False)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def _mask(secret: SecretStr) -> str:
    """Return '***' if the secret is non-empty, else '(not set)'."""
    return "[bold]***[/bold]" if secret.get_secret_value() else "[dim](not set)[/dim]"


config_app = typer.Typer(name="config", help="View and modify configuration.", add_completion=False)
app.add_typer(config_app)


@config_app.command(name="show")
def config_show() -> None:
    """Show current configuration (secrets are masked)."""
    cfg = load_config()

    console.print("\n[bold]Current Configuration[/bold]\n")

    console.print("[bold cyan]\\[general][/bold cyan]")
    console.print(f"  log_level    = {cfg.general.log_level}")
    console.print(f"  http_timeout = {cfg.general.http_timeout}")

    console.print("\n[bold cyan]\\[spotify][/bold cyan]")
    console.print(f"  client_id     = {cfg.spotify.client_id or '[dim](not set)[/dim]'}")
    console.print(f"  client_secret = {_mask(cfg.spotify.client_secret)}")

    console.print("\n[bold cyan]\\[youtube][/bold cyan]")
    console.print(f"  access_token   = {_mask(cfg.youtube.access_token)}")
    console.print(f"  privacy_status = {cfg.youtube.privacy_status}")
    console.print()


@config_app.command(name="set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. youtube.privacy_status"),
    value: str = typer.Argument(help="New value"),
) -> None:
    """Set a configuration value (e.g. tubeport config set youtube.privacy_status unlisted)."""

    parts = key.split(".", maxsplit=1)
    if len(parts) != 2:
        console.print("[red]Key must be in section.field format (e.g. general.log_level).[/red]")
        raise typer.Exit(1)

    section_name, field_name = parts

    cfg = load_config()
    section_map = {
        "general": cfg.general,
        "spotify": cfg.spotify,
        "youtube": cfg.youtube,
    }

    if section_name not in section_map:
        console.print(f"[red]Unknown section:[/red] {section_name}")
        console.print(f"[dim]Valid sections: {', '.join(section_map)}[/dim]")
        raise typer.Exit(1)

    section_model = section_map[section_name]
    fields = type(section_model).model_fields
    if field_name not in fields:
        console.print(f"[red]Unknown field:[/red] {section_name}.{field_name}")
        console.print(f"[dim]Valid fields: {', '.join(fields)}[/dim]")
        raise typer.Exit(1)

    section_data = section_model.model_dump(mode="python")
    try:
        coerced = _coerce_value(value, fields[field_name].annotation)
        section_data[field_name] = coerced
        # pydantic's ValidationError is a ValueError (e.g. http_timeout <= 0)
        new_section = type(section_model)(**section_data)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid value:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    setattr(cfg, section_name, new_section)
    save_config(cfg)

    display_val = "***" if isinstance(coerced, SecretStr) else coerced
    console.print(f"[green]Set[/green] {key} = {display_val}")


def _coerce_value(raw: str, field_type: type) -> object:
    """Coerce a string value to the expected field type."""
    import typing

    origin = typing.get_origin(field_type)
    args = typing.get_args(field_type)

    if field_type is SecretStr:
        return SecretStr(raw)

    if field_type is float:
        return float(raw)

    if origin is typing.Literal:
        if raw not in args:
            msg = f"'{raw}' is not a valid option (choose from: {', '.join(str(a) for a in args)})"
            raise ValueError(msg)
        return raw

    return raw
