import logging
import random
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import requests

from models import FetchResult, Post

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"


class BaseCollector(ABC):
    def __init__(
        self,
        timeout_sec: float = 15.0,
        fetch_retries: int = 0,
        retry_base_ms: int = 800,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Any = None,
        verbose: bool = True,
    ):
        self.timeout_sec = max(1.0, float(timeout_sec))
        self.fetch_retries = max(0, int(fetch_retries))
        self.retry_base_ms = max(100, int(retry_base_ms))
        self.verbose = bool(verbose)
        self.session = session if session is not None else self._build_session(user_agent)
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def collect(self, channel: str, since: datetime) -> list[Post]:
        pass

    def log(self, message: str) -> None:
        if not self.verbose:
            return
        self.logger.info(message)

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if callable(close):
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _build_session(user_agent: str) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": user_agent})
        return session

    def fetch_html(self, url: str) -> FetchResult:
        last = FetchResult(url=url, error="not attempted")
        for attempt in range(self.fetch_retries + 1):
            last = self._fetch_once(url)
            if last.ok:
                return last
            if attempt < self.fetch_retries:
                delay_ms = self.backoff_ms(attempt, self.retry_base_ms)
                self.log(f"fetch retry {attempt + 1}/{self.fetch_retries}: {url} ({last.error}), wait={delay_ms}ms")
                time.sleep(delay_ms / 1000)
        return last

    def _fetch_once(self, url: str) -> FetchResult:
        try:
            response = self.session.get(url, timeout=self.timeout_sec)
        except requests.Timeout:
            return FetchResult(url=url, error=f"timeout after {self.timeout_sec:g}s")
        except requests.RequestException as exc:
            return FetchResult(url=url, error=f"{exc.__class__.__name__}: {exc}")

        status = int(response.status_code)
        if not 200 <= status < 300:
            return FetchResult(url=url, status=status, error=f"HTTP error status {status}")
        return FetchResult(url=url, status=status, html=response.text)

    @staticmethod
    def is_within_cutoff(posted_at: datetime | None, cutoff: datetime) -> bool:
        if posted_at is None:
            return False
        return posted_at >= cutoff

    @staticmethod
    def backoff_ms(attempt: int, base_ms: int) -> int:
        jitter = random.uniform(0.8, 1.2)
        return int(base_ms * (2**attempt) * jitter)

    @staticmethod
    def parse_datetime(value: str | None) -> datetime | None:
        if not value:
            return None
        text = value.strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
