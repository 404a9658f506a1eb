from __future__ import annotations

from types import SimpleNamespace

import requests


class FakeSession:
    """Maps URLs to HTML bodies; anything else answers 404."""

    def __init__(self, pages: dict[str, object] | None = None) -> None:
        self.pages = pages or {}
        self.requested: list[tuple[str, float]] = []
        self.closed = False

    def get(self, url: str, timeout: float):
        self.requested.append((url, timeout))
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            return SimpleNamespace(status_code=404, text="")
        if isinstance(page, tuple):
            status, body = page
            return SimpleNamespace(status_code=status, text=body)
        return SimpleNamespace(status_code=200, text=page)

    def close(self) -> None:
        self.closed = True


def message_html(
    post_id: str,
    datetime_attr: str | None,
    text: str | None = None,
    author: str | None = None,
    extra: str = "",
) -> str:
    time_tag = f'<time datetime="{datetime_attr}" class="time">x</time>' if datetime_attr else ""
    author_tag = f'<a class="tgme_widget_message_owner_name"><span>{author}</span></a>' if author else ""
    text_tag = f'<div class="tgme_widget_message_text js-message_text">{text}</div>' if text is not None else ""
    return (
        '<div class="tgme_widget_message_wrap">'
        f'<div class="tgme_widget_message" data-post="{post_id}">'
        f"{author_tag}{extra}{text_tag}"
        f'<div class="tgme_widget_message_footer">{time_tag}</div>'
        "</div></div>"
    )


def listing_html(*messages: str) -> str:
    return f"<html><body><section class=\"tgme_channel_history\">{''.join(messages)}</section></body></html>"


TIMEOUT_ERROR = requests.Timeout("read timed out")
