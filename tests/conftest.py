from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from chatnav.config import NavigatorConfig
from chatnav.dom import LiveDocument, RecordingViewport
from chatnav.presentation import RecordingPresenter
from chatnav.session import NavigatorSession
from chatnav.settings import SettingsStore
from chatnav.timers import TimerQueue

CHATGPT_URL = "https://chatgpt.com/c/abc"

CHATGPT_PAGE = """
<html><body>
<nav>history</nav>
<main>
  <div data-message-author-role="user">First question</div>
  <div data-message-author-role="assistant">First answer</div>
  <div data-message-author-role="user">Second question</div>
  <div data-message-author-role="assistant">Second answer</div>
</main>
</body></html>
"""


@pytest.fixture(autouse=True)
def _isolate_config_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CHATNAV_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("CHATNAV_SETTINGS", str(tmp_path / "settings.json"))
    for name in (
        "CHATNAV_PREVIEW_MAX_LENGTH",
        "CHATNAV_TITLE_MAX_LENGTH",
        "CHATNAV_DEBOUNCE_MS",
        "CHATNAV_SCROLL_BEHAVIOR",
    ):
        monkeypatch.delenv(name, raising=False)


SessionParts = tuple[NavigatorSession, RecordingPresenter, TimerQueue]


@pytest.fixture
def make_document() -> Callable[..., LiveDocument]:
    def _make(markup: str = CHATGPT_PAGE, url: str = CHATGPT_URL) -> LiveDocument:
        return LiveDocument(markup, url, viewport=RecordingViewport(height=800.0))

    return _make


@pytest.fixture
def chatgpt_document(make_document: Callable[..., LiveDocument]) -> LiveDocument:
    return make_document()


@pytest.fixture
def make_session(tmp_path: Path) -> Callable[..., SessionParts]:
    def _make(document: LiveDocument, config: NavigatorConfig | None = None) -> SessionParts:
        presenter = RecordingPresenter()
        timers = TimerQueue()
        session = NavigatorSession(
            document,
            presenter,
            config=config or NavigatorConfig(),
            settings_store=SettingsStore(tmp_path / "settings.json"),
            timers=timers,
        )
        return session, presenter, timers

    return _make


@pytest.fixture
def chatgpt_page_file(tmp_path: Path) -> Path:
    page = tmp_path / "page.html"
    page.write_text(CHATGPT_PAGE)
    return page
