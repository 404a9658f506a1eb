"""Pure extraction helpers for channel preview HTML.

Everything here works on BeautifulSoup elements and never touches the network, so listing
pages and single-post pages go through exactly the same rules.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from selector_table import resolve_selectors

STYLE_URL_PATTERN = re.compile(r"url\((?:'|\")?(.*?)(?:'|\")?\)")
DECORATIVE_URL_PATTERN = re.compile(r"emoji|userpic|avatar|svg", re.IGNORECASE)
BLANK_LINES_PATTERN = re.compile(r"\n\s*\n")


def normalize_https(url: str | None) -> str:
    if not url:
        return ""
    value = url.strip()
    if value.startswith("//"):
        return f"https:{value}"
    if value[:7].lower() == "http://":
        return f"https://{value[7:]}"
    return value


def extract_urls_from_style(style_value: str | None) -> list[str]:
    if not style_value:
        return []
    return [match.group(1) for match in STYLE_URL_PATTERN.finditer(style_value) if match.group(1)]


def is_decorative_url(url: str) -> bool:
    return bool(DECORATIVE_URL_PATTERN.search(url or ""))


def find_last(root: Tag, selector: str, predicate=None) -> Tag | None:
    """Return the last element under ``root`` matching ``selector`` and ``predicate``."""
    for element in reversed(root.select(selector)):
        if predicate is None or predicate(element):
            return element
    return None


def select_main_text(root: Tag, selectors: dict[str, Any] | None = None) -> Tag | None:
    # Quoted replies come first in document order, so the new content is the last match.
    selectors = selectors or resolve_selectors()
    specific = find_last(root, selectors["main_text"])
    if specific is not None:
        return specific

    reply_class = selectors["reply_text_class"]
    return find_last(root, selectors["any_text"], lambda element: reply_class not in (element.get("class") or []))


def extract_text(element: Tag | None) -> str | None:
    if element is None:
        return None

    clone = copy.copy(element)
    for br in clone.find_all("br"):
        br.replace_with("\n")

    text = BLANK_LINES_PATTERN.sub("\n", clone.get_text().strip())
    return text or None


def extract_main_text(root: Tag, selectors: dict[str, Any] | None = None) -> str | None:
    return extract_text(select_main_text(root, selectors))


def extract_media(root: Tag, selectors: dict[str, Any] | None = None) -> tuple[list[str], list[str]]:
    selectors = selectors or resolve_selectors()
    images: dict[str, None] = {}
    videos: dict[str, None] = {}

    def add(bucket: dict[str, None], raw_url: str | None) -> None:
        url = normalize_https(raw_url)
        if url:
            bucket.setdefault(url, None)

    for container_selector in selectors["media_containers"]:
        for block in root.select(container_selector):
            # Re-parse so the container itself is searchable and quoted replies can be dropped
            # without touching the caller's tree.
            clone = BeautifulSoup(str(block), "html.parser")
            for reply in clone.select(selectors["reply_blocks"]):
                reply.extract()

            for img in clone.select("img[src]"):
                src = img.get("src")
                if src and not is_decorative_url(src):
                    add(images, src)

            for styled in clone.select("[style]"):
                for url in extract_urls_from_style(styled.get("style")):
                    if not is_decorative_url(url):
                        add(images, url)

            for video in clone.select("video[src]"):
                add(videos, video.get("src"))

            for source in clone.select("video source[src]"):
                add(videos, source.get("src"))

    return list(images), list(videos)
