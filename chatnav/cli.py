from __future__ import annotations

import json
import logging
import time
from pathlib import Path

import typer
from rich import print

from . import __version__
from .adapters import UNKNOWN, detect_platform, get_adapter
from .config import get_config_path, load_config
from .dom import LiveDocument
from .extraction import extract_units
from .presentation import ConsolePresenter
from .session import NavigatorSession
from .timers import TimerQueue

logger = logging.getLogger(__name__)

app = typer.Typer(help="chatnav: turn navigation for AI-chat pages")


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def detect(url: str = typer.Argument(..., help="Page URL or hostname")) -> None:
    """Print the platform id detected for a URL."""

    print(detect_platform(url))


@app.command()
def outline(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved page HTML"),
    url: str = typer.Option(..., "--url", help="URL the page was served from"),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON"),
    preview: bool = typer.Option(True, "--preview/--no-preview", help="Show reply previews"),
    title_length: int = typer.Option(None, help="Override title max length"),
    preview_length: int = typer.Option(None, help="Override preview max length"),
) -> None:
    """Extract the prompt/reply outline from a saved page."""

    overrides: dict[str, int] = {}
    if title_length is not None:
        overrides["title_max_length"] = title_length
    if preview_length is not None:
        overrides["preview_max_length"] = preview_length
    config = load_config(overrides=overrides)

    adapter = get_adapter(url)
    if adapter is None:
        print(f"[red]Platform not supported:[/red] {url}")
        raise typer.Exit(code=1)
    document = LiveDocument.from_file(path, url)
    units = extract_units(adapter, document, config).units

    if json_output:
        payload = [
            {
                "index": idx,
                "title": unit.title,
                "preview": unit.preview if preview else "",
                "raw_text": unit.raw_text,
                "has_reply": unit.reply_end_node is not None,
            }
            for idx, unit in enumerate(units)
        ]
        typer.echo(json.dumps({"platform": adapter.platform, "units": payload}, ensure_ascii=False))
        return

    presenter = ConsolePresenter(show_preview=preview)
    presenter.render_list(units, -1)


@app.command()
def watch(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Page HTML to follow"),
    url: str = typer.Option(
        ..., "--url", help="URL the page was served from; a canonical link in the page wins"
    ),
    interval: float = typer.Option(0.2, help="Seconds between file checks"),
) -> None:
    """Follow a page file that keeps being rewritten and redraw the outline on change.

    A canonical link in the rewritten page is treated as the new page URL,
    so switching chats or platforms re-initializes the navigator.
    """

    markup = path.read_text(encoding="utf-8", errors="replace")
    document = LiveDocument(markup, canonical_url(markup) or url)
    presenter = ConsolePresenter()
    session = NavigatorSession(document, presenter, timers=TimerQueue.monotonic())
    if not session.init():
        print(f"[red]Platform not supported:[/red] {document.url}")
        raise typer.Exit(code=1)
    session.follow_location()
    last_mtime = path.stat().st_mtime
    try:
        while True:
            delay_ms = session.timers.next_delay_ms()
            time.sleep(interval if delay_ms is None else min(interval, delay_ms / 1000.0))
            try:
                mtime = path.stat().st_mtime
            except OSError as exc:
                logger.warning("watch stat failed", exc_info=exc)
                continue
            if mtime != last_mtime:
                last_mtime = mtime
                markup = path.read_text(encoding="utf-8", errors="replace")
                document.set_body(markup)
                page_url = canonical_url(markup)
                if page_url:
                    document.navigate(page_url)
            session.timers.run_due()
    except KeyboardInterrupt:
        pass
    finally:
        session.close()


def canonical_url(markup: str) -> str | None:
    """Return the page's `<link rel="canonical">` target, if it has one."""

    link = LiveDocument(markup).select_one('link[rel~="canonical"][href]')
    if link is None:
        return None
    href = link.get("href")
    if not isinstance(href, str) or not href.strip():
        return None
    return href.strip()


@app.command("config")
def show_config() -> None:
    """Print the effective configuration."""

    print(f"[dim]{get_config_path()}[/dim]")
    typer.echo(json.dumps(load_config().to_dict(), indent=2))


@app.command("platforms")
def platforms() -> None:
    """List supported platforms and their host patterns."""

    from .adapters import DEFAULT_REGISTRY

    for platform in DEFAULT_REGISTRY.platforms():
        adapter = DEFAULT_REGISTRY.get_adapter_by_platform(platform)
        hosts = ", ".join(adapter.host_patterns) if adapter else ""
        print(f"- {platform}: {hosts}")
    print(f"[dim](anything else is '{UNKNOWN}')[/dim]")


def main() -> None:
    app()


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)
