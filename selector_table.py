from __future__ import annotations

from typing import Any

PLATFORM_TELEGRAM = "Telegram"

SELECTOR_TABLE: dict[str, dict[str, dict[str, Any]]] = {
    PLATFORM_TELEGRAM: {
        "v1": {
            "message": ".tgme_widget_message",
            "post_id_attr": "data-post",
            "post_time": "time[datetime]",
            "author": ".tgme_widget_message_owner_name",
            "main_text": ".tgme_widget_message_text.js-message_text",
            "any_text": ".tgme_widget_message_text",
            "reply_text_class": "js-message_reply_text",
            "reply_blocks": ".tgme_widget_message_reply, .js-message_reply_text",
            "media_containers": [
                ".tgme_widget_message_text.js-message_text",
                ".media_supported_cont",
                ".tgme_widget_message_grouped_wrap",
                ".tgme_widget_message_video_player",
                ".tgme_widget_message_photo_wrap",
            ],
        }
    },
}


def resolve_selectors(platform: str = PLATFORM_TELEGRAM, version: str = "v1") -> dict[str, Any]:
    platform_versions = SELECTOR_TABLE.get(platform)
    if not platform_versions:
        raise ValueError(f"Unsupported selector platform: {platform}")

    if version in platform_versions:
        return platform_versions[version]

    if "v1" in platform_versions:
        return platform_versions["v1"]

    latest_version = sorted(platform_versions.keys())[-1]
    return platform_versions[latest_version]
