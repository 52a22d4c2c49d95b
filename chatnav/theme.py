from __future__ import annotations

from bs4 import Tag

from .dom import LiveDocument

DARK_CLASSES = ("dark", "dark-mode", "night-mode", "theme-dark", "dark-theme")
DARK_ATTRIBUTES = ("data-theme", "data-mode", "data-color-scheme", "color-scheme")

# Attribute changes on <html>/<body> that can flip the page theme.
ROOT_THEME_ATTRIBUTES = ("class", "data-theme", "data-mode", "data-color-scheme", "style")
BODY_THEME_ATTRIBUTES = ("class", "data-theme", "data-mode")


def _classes(node: Tag | None) -> set[str]:
    if node is None:
        return set()
    value = node.get("class")
    if value is None:
        return set()
    if isinstance(value, str):
        return set(value.split())
    return set(value)


def is_dark_mode(document: LiveDocument) -> bool:
    html = document.soup.html
    body = document.soup.body
    for node in (html, body):
        if _classes(node) & set(DARK_CLASSES):
            return True
    for attr in DARK_ATTRIBUTES:
        for node in (html, body):
            if node is not None and node.get(attr) == "dark":
                return True
    if html is not None and "color-scheme: dark" in (document.style_attribute(html) or ""):
        return True
    return False
