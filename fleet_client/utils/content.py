"""Content sniffing helpers shared by the executor and the decoder."""

from __future__ import annotations

HTML_MARKERS = ("<!doctype html", "<html")


def looks_like_html(text: str) -> bool:
    """Return True when text starts with an HTML document marker.

    Leading whitespace is ignored and the comparison is case-insensitive.
    """

    head = text.lstrip()[:32].lower()
    return head.startswith(HTML_MARKERS)


def is_json_content_type(content_type: str) -> bool:
    """Match ``application/json`` and ``+json`` media types."""

    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def is_html_content_type(content_type: str) -> bool:
    return content_type.split(";", 1)[0].strip().lower() == "text/html"


def is_html_body(content_type: str, text: str) -> bool:
    """Return True for a non-empty body that is labeled or shaped as HTML."""

    if not text.strip():
        return False
    return is_html_content_type(content_type) or looks_like_html(text)
