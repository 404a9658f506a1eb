import time
from datetime import datetime

from bs4 import BeautifulSoup, Tag

from collectors.base_collector import BaseCollector
from html_extractor import extract_main_text, extract_media
from models import DEFAULT_TIMEZONE, Post, SinglePostContent
from selector_table import PLATFORM_TELEGRAM, resolve_selectors

DEFAULT_BASE_URL = "https://t.me"


class TelegramCollector(BaseCollector):
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        fallback_delay_sec: float = 0.5,
        display_timezone: str = DEFAULT_TIMEZONE,
        selector_version: str = "v1",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.fallback_delay_sec = max(0.0, float(fallback_delay_sec))
        self.display_timezone = display_timezone
        self.selectors = resolve_selectors(PLATFORM_TELEGRAM, selector_version)

    def listing_url(self, channel: str) -> str:
        return f"{self.base_url}/s/{channel}"

    def single_post_url(self, post_id: str) -> str:
        return f"{self.base_url}/{post_id}?single"

    def fetch_single_post(self, post_id: str) -> SinglePostContent:
        url = self.single_post_url(post_id)
        self.log(f"single post fallback: {url}")
        result = self.fetch_html(url)
        if not result.ok:
            self.logger.warning(f"single post fetch failed: {url} ({result.error})")
            return SinglePostContent()

        soup = BeautifulSoup(result.html, "html.parser")
        root = soup.body or soup
        images, videos = extract_media(root, self.selectors)
        return SinglePostContent(
            text=extract_main_text(root, self.selectors),
            images=tuple(images),
            videos=tuple(videos),
        )

    def collect(self, channel: str, since: datetime) -> list[Post]:
        url = self.listing_url(channel)
        self.log(f"listing: {url}")
        result = self.fetch_html(url)
        if not result.ok:
            self.logger.warning(f"channel fetch failed: {channel} ({result.error})")
            return []

        soup = BeautifulSoup(result.html, "html.parser")
        posts: list[Post] = []
        for message in soup.select(self.selectors["message"]):
            post = self._build_post(channel, message, since)
            if post is not None:
                posts.append(post)
        return posts

    def _build_post(self, channel: str, message: Tag, since: datetime) -> Post | None:
        time_tag = message.select_one(self.selectors["post_time"])
        posted_at = self.parse_datetime(time_tag.get("datetime") if time_tag else None)
        # Entries are not strictly time-ordered on a page, so old ones are skipped, not a stop signal.
        if not self.is_within_cutoff(posted_at, since):
            return None

        images, videos = extract_media(message, self.selectors)
        content = SinglePostContent(
            text=extract_main_text(message, self.selectors),
            images=tuple(images),
            videos=tuple(videos),
        )

        if not content.text:
            post_id = message.get(self.selectors["post_id_attr"])
            if post_id:
                content = self._merge_fallback(content, post_id)

        if not content.text:
            return None

        author_tag = message.select_one(self.selectors["author"])
        author = author_tag.get_text().strip() if author_tag else ""
        return Post(
            channel=channel,
            author=author or channel,
            timestamp=posted_at,
            text=content.text,
            images=content.images,
            videos=content.videos,
            display_timezone=self.display_timezone,
        )

    def _merge_fallback(self, listing: SinglePostContent, post_id: str) -> SinglePostContent:
        if self.fallback_delay_sec > 0:
            time.sleep(self.fallback_delay_sec)
        fallback = self.fetch_single_post(post_id)
        # Listing media is already scoped to the message, so it wins when present.
        media = listing if listing.has_media else fallback
        return SinglePostContent(text=fallback.text, images=media.images, videos=media.videos)
