from __future__ import annotations

from collections.abc import Callable

from bs4 import Tag

from chatnav.config import NavigatorConfig
from chatnav.dom import LiveDocument, RecordingViewport
from chatnav.navigation import Highlighter, IntersectionEntry, NavState, parse_root_margin
from chatnav.timers import TimerQueue

MakeDocument = Callable[..., LiveDocument]

KIMI_PAGE = """
<html><body>
<div class="chat-content">
  <div class="chat-content-item chat-content-item-user">Kimi question</div>
  <div class="chat-content-item chat-content-item-assistant">Kimi answer</div>
</div>
</body></html>
"""


def _viewport(document: LiveDocument) -> RecordingViewport:
    viewport = document.viewport
    assert isinstance(viewport, RecordingViewport)
    return viewport


def _users(document: LiveDocument) -> list[Tag]:
    return document.select('[data-message-author-role="user"]')


def test_navigate_scrolls_to_live_anchor(chatgpt_document: LiveDocument, make_session) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    anchor = _users(chatgpt_document)[1]

    assert session.navigate(1) is True

    request = _viewport(chatgpt_document).requests[-1]
    assert request.node is anchor
    assert request.behavior == "smooth"
    assert request.block == "start"
    assert session.active_index == 1
    assert presenter.active_index == 1
    assert session.navigation is not None
    assert session.navigation.state is NavState.SCROLLED

    timers.advance(500)
    assert session.navigation.state is NavState.IDLE


def test_out_of_range_navigation_is_a_no_op(chatgpt_document: LiveDocument, make_session) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()

    assert session.navigate(2) is False
    assert session.navigate(-1) is False
    assert _viewport(chatgpt_document).requests == []
    assert session.active_index == -1


def test_stale_anchor_resolves_by_title(chatgpt_document: LiveDocument, make_session) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    stale = _users(chatgpt_document)[0]
    # Re-render the prompt; the committed units still point at the old node.
    chatgpt_document.replace_html(
        stale, '<div data-message-author-role="user">First question</div>'
    )
    assert session.units[0].anchor_node is stale

    assert session.navigate(0) is True

    target = _viewport(chatgpt_document).requests[-1].node
    assert target is not stale
    assert chatgpt_document.is_connected(target)
    assert target is _users(chatgpt_document)[0]


def test_title_match_wins_over_same_index(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    stale = _users(chatgpt_document)[1]
    # A prompt shows up before the re-rendered one, shifting it to index 2.
    chatgpt_document.replace_html(
        stale,
        '<div data-message-author-role="user">Inserted question</div>'
        '<div data-message-author-role="user">Second question</div>',
    )
    inserted, moved = _users(chatgpt_document)[1:]

    assert session.navigate(1) is True

    target = _viewport(chatgpt_document).requests[-1].node
    assert target is moved
    assert target is not inserted


def test_stale_anchor_falls_back_to_same_index(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    stale = _users(chatgpt_document)[1]
    chatgpt_document.replace_html(
        stale, '<div data-message-author-role="user">Second question (edited)</div>'
    )

    assert session.navigate(1) is True

    target = _viewport(chatgpt_document).requests[-1].node
    assert target.get_text() == "Second question (edited)"


def test_navigation_aborts_when_nothing_resolves(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    main = chatgpt_document.select_one("main")
    assert main is not None
    chatgpt_document.remove(main)

    assert session.navigate(0) is False

    assert _viewport(chatgpt_document).requests == []
    assert session.active_index == -1
    assert session.navigation is not None
    assert session.navigation.state is NavState.IDLE


def test_aborted_navigation_keeps_earlier_grace_window(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    assert session.navigate(1) is True
    main = chatgpt_document.select_one("main")
    assert main is not None
    chatgpt_document.remove(main)

    assert session.navigate(0) is False
    assert session.navigation is not None
    assert session.navigation.state is NavState.SCROLLED
    assert session.active_index == 1

    timers.advance(100)
    assert session.navigation.in_progress is True

    timers.advance(400)
    assert session.navigation.state is NavState.IDLE


def test_highlight_restores_prior_inline_style(make_document: MakeDocument, make_session) -> None:
    document = make_document(
        """
        <main>
          <div data-message-author-role="user" style="color: red">Styled</div>
          <div data-message-author-role="user">Plain</div>
        </main>
        """
    )
    session, presenter, timers = make_session(document)
    session.init()
    styled, plain = _users(document)

    session.navigate(0)
    session.navigate(1)
    assert document.get_style_property(styled, "background") == "rgba(0, 108, 255, 0.12)"
    assert document.get_style_property(styled, "border-radius") == "18px"

    timers.advance(1500)
    assert document.get_style_property(styled, "background") == ""
    assert document.get_style_property(styled, "transition") != ""

    timers.advance(300)
    assert document.style_attribute(styled) == "color: red"
    assert document.style_attribute(plain) is None


def test_overlapping_pulses_restore_the_original_style(make_document: MakeDocument) -> None:
    document = make_document('<div id="n" style="margin: 1px">x</div>')
    node = document.select_one("#n")
    assert node is not None
    timers = TimerQueue()
    highlighter = Highlighter(document, timers, NavigatorConfig())

    highlighter.pulse(node, "4px")
    timers.advance(1000)
    highlighter.pulse(node, "4px")
    timers.advance(900)
    # first pulse's timers are superseded
    assert document.get_style_property(node, "background") != ""

    timers.advance(900)
    assert document.style_attribute(node) == "margin: 1px"
    assert highlighter.active_count == 0


def test_reflowing_platform_gets_one_rescroll(make_document: MakeDocument, make_session) -> None:
    document = make_document(KIMI_PAGE, "https://www.kimi.com/chat/1")
    session, presenter, timers = make_session(document)
    session.init()

    session.navigate(0)
    timers.advance(150)

    requests = _viewport(document).requests
    assert [r.behavior for r in requests] == ["smooth", "auto"]
    assert requests[0].node is requests[1].node

    timers.advance(1000)
    assert len(requests) == 2


def test_other_platforms_do_not_rescroll(chatgpt_document: LiveDocument, make_session) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()

    session.navigate(0)
    timers.advance(1000)

    assert len(_viewport(chatgpt_document).requests) == 1


def _entry(node: Tag, top: float, height: float = 50.0) -> IntersectionEntry:
    return IntersectionEntry(target=node, is_intersecting=True, top=top, height=height)


def test_tracker_picks_anchor_nearest_viewport_center(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    first, second = _users(chatgpt_document)

    changed = session.handle_entries([_entry(first, 100), _entry(second, 380)])

    assert changed == 1
    assert session.active_index == 1
    assert presenter.active_index == 1


def test_tracker_tie_keeps_previous_active_index(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    first, second = _users(chatgpt_document)
    session.handle_entries([_entry(second, 375)])
    assert session.active_index == 1

    # viewport center is 400; both centers are 75px away
    changed = session.handle_entries([_entry(first, 300), _entry(second, 450)])

    assert changed is None
    assert session.active_index == 1


def test_tracker_tie_without_previous_takes_document_order(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    first, second = _users(chatgpt_document)

    session.handle_entries([_entry(second, 450), _entry(first, 300)])

    assert session.active_index == 0


def test_tracker_ignores_non_intersecting_and_unknown_nodes(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    nav = chatgpt_document.select_one("nav")
    first = _users(chatgpt_document)[0]
    assert nav is not None

    changed = session.handle_entries(
        [
            IntersectionEntry(target=first, is_intersecting=False, top=375, height=50),
            _entry(nav, 375),
        ]
    )

    assert changed is None
    assert session.active_index == -1


def test_tracker_is_suppressed_during_navigation(
    chatgpt_document: LiveDocument, make_session
) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    first, second = _users(chatgpt_document)

    session.navigate(1)
    assert session.handle_entries([_entry(first, 375)]) is None
    assert session.active_index == 1

    timers.advance(500)
    assert session.handle_entries([_entry(first, 375)]) == 0


def test_entries_for_uses_root_margin_band(chatgpt_document: LiveDocument, make_session) -> None:
    session, presenter, timers = make_session(chatgpt_document)
    session.init()
    first, second = _users(chatgpt_document)
    assert session.tracker is not None

    entries = session.tracker.entries_for([(first, 0.0, 100.0), (second, 380.0, 20.0)])

    assert [e.is_intersecting for e in entries] == [False, True]


def test_parse_root_margin() -> None:
    assert parse_root_margin("-45% 0px -45% 0px", 800) == (-360.0, -360.0)
    assert parse_root_margin("10px", 800) == (10.0, 10.0)
    assert parse_root_margin("", 800) == (0.0, 0.0)
    assert parse_root_margin("bogus", 800) == (0.0, 0.0)
