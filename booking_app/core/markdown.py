# booking_app/core/markdown.py
"""
Markdown helpers for user-authored text (bios, event descriptions).

  - markdown_to_safe_html: render + sanitize for embedding in a page
  - strip_markdown: plain-text summary for SEO descriptions
"""

import html
import re

import bleach
import markdown as md

ALLOWED_TAGS = [
    "p",
    "br",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "del",
    "a",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "blockquote",
    "code",
    "pre",
]

ALLOWED_ATTRIBUTES = {"a": ["href", "title", "target", "rel"], "ul": ["class"]}


def _set_link_target(attrs, new=False):
    """bleach linkify callback: open links in a new tab."""
    attrs[(None, "target")] = "_blank"
    attrs[(None, "rel")] = "noopener noreferrer"
    return attrs


def markdown_to_safe_html(markdown: str | None) -> str:
    """
    Render markdown to HTML that is safe to inject into a page.

    Returns "" for empty input. Disallowed tags are stripped (their text
    is kept), links open in a new tab.
    """
    if not markdown:
        return ""

    rendered = md.markdown(markdown)
    clean_html = bleach.clean(
        rendered,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True,
    )
    return bleach.linkify(clean_html, callbacks=[_set_link_target])


def strip_markdown(markdown: str | None) -> str:
    """
    Reduce markdown to plain text.

    Formatting and tags are dropped, whitespace is collapsed to single
    spaces.
    """
    if not markdown:
        return ""

    rendered = md.markdown(markdown)
    text = bleach.clean(rendered, tags=[], strip=True)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()
