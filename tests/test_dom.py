from __future__ import annotations

from chatnav.dom import ATTRIBUTES, CHILD_LIST, LOCATION, LiveDocument, MutationRecord

PAGE = """
<html><body>
<main id="main">
  <section id="s1"><p>same</p><p>same</p></section>
  <section id="s2"><span id="inner">text</span></section>
</main>
<aside id="aside">side</aside>
</body></html>
"""


def test_compare_position_uses_document_order() -> None:
    document = LiveDocument(PAGE)
    s1 = document.select_one("#s1")
    s2 = document.select_one("#s2")
    inner = document.select_one("#inner")
    assert s1 is not None and s2 is not None and inner is not None

    assert document.compare_position(s1, s2) == -1
    assert document.compare_position(s2, s1) == 1
    assert document.compare_position(s2, inner) == -1
    assert document.compare_position(inner, s2) == 1
    assert document.compare_position(s1, s1) == 0


def test_compare_position_distinguishes_identical_siblings() -> None:
    document = LiveDocument(PAGE)
    first, second = document.select("#s1 p")
    assert document.compare_position(first, second) == -1
    assert document.compare_position(second, first) == 1


def test_detached_nodes_are_not_connected_and_unordered() -> None:
    document = LiveDocument(PAGE)
    s2 = document.select_one("#s2")
    aside = document.select_one("#aside")
    assert s2 is not None and aside is not None
    assert document.is_connected(s2)

    document.remove(s2)

    assert not document.is_connected(s2)
    assert document.compare_position(s2, aside) == 0


def test_invalid_selector_yields_no_matches() -> None:
    document = LiveDocument(PAGE)
    assert document.select("div[") == []
    assert document.select_one("p[") is None
    assert document.select("section") != []


def test_subtree_subscription_sees_only_its_subtree() -> None:
    document = LiveDocument(PAGE)
    main = document.select_one("#main")
    aside = document.select_one("#aside")
    inner = document.select_one("#inner")
    assert main is not None and aside is not None and inner is not None
    records: list[MutationRecord] = []

    subscription = document.observe(main, records.append)
    document.append_text(inner, " more")
    document.append_html(aside, "<b>outside</b>")
    document.set_attribute(inner, "class", "ignored")

    assert len(records) == 1
    assert records[0].target is inner

    subscription.disconnect()
    document.append_text(inner, " again")
    assert len(records) == 1
    assert document.subscription_count == 0


def test_attribute_filter_limits_attribute_records() -> None:
    document = LiveDocument(PAGE)
    body = document.body
    records: list[MutationRecord] = []
    document.observe(
        body,
        records.append,
        child_list=False,
        character_data=False,
        attributes=True,
        subtree=False,
        attribute_filter=["class"],
    )

    document.set_attribute(body, "data-x", "1")
    document.set_attribute(body, "class", "dark")

    assert [r.kind for r in records] == [ATTRIBUTES]
    assert records[0].attribute_name == "class"


def test_replace_html_detaches_old_node_and_notifies_parent() -> None:
    document = LiveDocument(PAGE)
    main = document.select_one("#main")
    s2 = document.select_one("#s2")
    assert main is not None and s2 is not None
    records: list[MutationRecord] = []
    document.observe(main, records.append)

    added = document.replace_html(s2, '<section id="s2">fresh</section>')

    assert not document.is_connected(s2)
    assert len(added) == 1 and document.is_connected(added[0])
    assert document.select_one("#s2") is added[0]
    assert records[-1].kind == CHILD_LIST and records[-1].target is main


def test_inline_style_round_trip() -> None:
    document = LiveDocument('<div id="d" style="color: red; margin:0">x</div>')
    node = document.select_one("#d")
    assert node is not None

    document.set_style_property(node, "background", "blue")
    assert document.get_style_property(node, "background") == "blue"
    assert document.get_style_property(node, "color") == "red"

    document.set_style_property(node, "background", "")
    assert document.get_style_property(node, "background") == ""
    assert document.style_attribute(node) == "color: red; margin: 0"


def test_set_body_replaces_content_and_root_attributes() -> None:
    document = LiveDocument(PAGE)
    old_main = document.select_one("#main")

    document.set_body('<html class="dark"><body><main id="main">new</main></body></html>')

    new_main = document.select_one("#main")
    assert new_main is not None and new_main is not old_main
    assert old_main is not None and not document.is_connected(old_main)
    assert document.style_attribute(document.root) is None
    assert document.root.get("class") == "dark"


def test_position_index_follows_document_order() -> None:
    document = LiveDocument(PAGE)
    s1 = document.select_one("#s1")
    inner = document.select_one("#inner")
    aside = document.select_one("#aside")
    assert s1 is not None and inner is not None and aside is not None

    positions = document.position_index()

    assert positions[id(s1)] < positions[id(inner)] < positions[id(aside)]
    document.remove(aside)
    assert id(aside) not in document.position_index()


def test_navigate_notifies_location_subscribers_only() -> None:
    document = LiveDocument(PAGE, "https://chatgpt.com/c/1")
    location: list[MutationRecord] = []
    other: list[MutationRecord] = []
    document.observe(document.root, location.append, location=True, subtree=False)
    document.observe(document.root, other.append, attributes=True)

    document.navigate("https://chatgpt.com/c/2")
    document.navigate("https://chatgpt.com/c/2")

    assert document.url == "https://chatgpt.com/c/2"
    assert [record.kind for record in location] == [LOCATION]
    assert other == []
