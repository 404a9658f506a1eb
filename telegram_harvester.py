from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Iterable
from zoneinfo import ZoneInfo

from collectors.base_collector import BaseCollector
from collectors.telegram_collector import TelegramCollector
from events import ProgressEvent, ProgressSink, null_sink
from models import DEFAULT_TIMEZONE, Post


class NoPostsError(ValueError):
    pass


def start_of_day(timezone_name: str = DEFAULT_TIMEZONE, now: datetime | None = None) -> datetime:
    """Midnight of the current calendar day in ``timezone_name``, as a UTC instant."""
    zone = ZoneInfo(timezone_name)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    midnight = datetime(current.year, current.month, current.day, tzinfo=zone)
    return midnight.astimezone(timezone.utc)


class TelegramHarvester:
    def __init__(
        self,
        collector: BaseCollector | None = None,
        channel_delay_sec: float = 1.0,
        target_timezone: str = DEFAULT_TIMEZONE,
        verbose: bool = True,
    ) -> None:
        self.collector = collector if collector is not None else TelegramCollector(
            display_timezone=target_timezone, verbose=verbose
        )
        self.channel_delay_sec = max(0.0, float(channel_delay_sec))
        self.target_timezone = target_timezone
        self.verbose = bool(verbose)
        self.logger = logging.getLogger(self.__class__.__name__)

    def harvest_all(
        self,
        channels: Iterable[str],
        on_progress: ProgressSink | None = None,
        now: datetime | None = None,
    ) -> list[Post]:
        channel_list = list(channels)
        emit = on_progress or null_sink
        since = start_of_day(self.target_timezone, now)
        total = len(channel_list)

        self._log(
            f"start (channels={total}, since={since.astimezone(ZoneInfo(self.target_timezone)):%Y-%m-%d %H:%M %Z})"
        )

        collected: list[Post] = []
        for index, channel in enumerate(channel_list):
            emit(
                ProgressEvent.progress(
                    f"Parsing channel {index + 1}/{total}: {channel}...",
                    channel=channel,
                    index=index,
                    total=total,
                )
            )
            started = time.perf_counter()
            posts = self.collector.collect(channel, since)
            collected.extend(posts)
            self._log(
                f"[{index + 1}/{total}] {channel}: {len(posts)} posts "
                f"(elapsed={time.perf_counter() - started:.2f}s)"
            )

            if index < total - 1 and self.channel_delay_sec > 0:
                time.sleep(self.channel_delay_sec)

        # sorted() is stable, so equal timestamps keep channel-list order.
        collected = sorted(collected, key=lambda post: post.timestamp, reverse=True)
        self._log(f"done (total_collected={len(collected)}, channels={total})")

        if not collected:
            raise NoPostsError("No posts found. Check the channel list and the time window.")
        return collected

    def close(self) -> None:
        close = getattr(self.collector, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "TelegramHarvester":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _log(self, message: str) -> None:
        if not self.verbose:
            return
        self.logger.info(message)
