from __future__ import annotations

import json
import logging
import math
import random
import re
import time
import warnings
from typing import Any, Sequence

from events import ProgressEvent, ProgressSink, null_sink
from models import Post

DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"
FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class SummarizationError(RuntimeError):
    pass


def format_post(post: Post) -> str:
    return (
        f"Source: {post.channel}\n"
        f"Author: {post.author}\n"
        f"Date: {post.formatted_timestamp}\n\n"
        f"{post.text}\n\n"
        f"Images: {', '.join(post.images)}\n\n"
        "---\n\n"
    )


def format_posts(posts: Sequence[Post]) -> str:
    return "".join(format_post(post) for post in posts)


def split_text_into_chunks(text: str, chunk_count: int) -> list[str]:
    """Cut ``text`` on raw character offsets into at most ``chunk_count`` ceiling-sized pieces."""
    if not text:
        return []
    chunk_size = math.ceil(len(text) / max(1, int(chunk_count)))
    return [text[start : start + chunk_size] for start in range(0, len(text), chunk_size)]


def fallback_summary(text: str) -> str:
    chunks = [chunk.strip() for chunk in re.split(r"[.!?\n]", text) if chunk.strip()]
    if not chunks:
        return "No content"

    return " / ".join(chunks[:3])[:500]


def fallback_records(posts: Sequence[Post]) -> list[dict[str, Any]]:
    return [
        {
            "section": post.channel,
            "title": f"{post.author} ({post.formatted_timestamp})",
            "text": fallback_summary(post.text),
            "images": list(post.images),
        }
        for post in posts
    ]


class GeminiSummarizer:
    def __init__(
        self,
        api_key: str = "",
        model_name: str = DEFAULT_GEMINI_MODEL,
        timeout_sec: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.timeout_sec = max(1.0, float(timeout_sec))
        self._genai = None
        self._model_cache: dict[str, object] = {}
        self._model_candidates = self._build_model_candidates(model_name)
        self._active_model_idx = 0
        self.max_api_retries = 2
        self.api_retry_base_delay_sec = 1.0
        self.logger = logging.getLogger(self.__class__.__name__)

    def summarize_chunk(self, chunk: str) -> list[Any]:
        try:
            generated = self._generate_text(self._build_prompt(chunk))
        except SummarizationError:
            raise
        except Exception as exc:
            raise SummarizationError(f"Gemini API error: {self._short_error(exc)}") from exc

        items = self._parse_json_array(generated)
        if items is None:
            raise SummarizationError(f"Gemini returned no JSON array: {generated[:220]!r}")
        return items

    def _ensure_client(self):
        if self._genai is not None:
            return self._genai
        if not self.api_key:
            raise SummarizationError("GEMINI_API_KEY is not set")

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", FutureWarning)
            import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        self._genai = genai
        return genai

    @staticmethod
    def _build_model_candidates(primary_model: str) -> list[str]:
        candidates = [
            primary_model.strip(),
            DEFAULT_GEMINI_MODEL,
            "gemini-2.5-flash",
            "gemini-2.5-flash-lite",
        ]
        unique: list[str] = []
        for model in candidates:
            if model and model not in unique:
                unique.append(model)
        return unique

    @staticmethod
    def _is_model_not_found_error(exc: Exception) -> bool:
        message = str(exc).lower()
        return "404" in message or "not found" in message

    @staticmethod
    def _is_retryable_error(exc: Exception) -> bool:
        message = str(exc).lower()
        if not message:
            return False
        if "perday" in message or "requestsperday" in message:
            return False
        retry_tokens = [
            "429",
            "rate limit",
            "quota exceeded",
            "timed out",
            "timeout",
            "temporarily unavailable",
            "unavailable",
            "internal",
            "503",
            "500",
            "connection reset",
            "deadline exceeded",
        ]
        return any(token in message for token in retry_tokens)

    def _sleep_backoff(self, attempt: int) -> None:
        jitter = random.uniform(0.8, 1.2)
        delay = self.api_retry_base_delay_sec * (2**attempt) * jitter
        time.sleep(max(0.1, delay))

    def _get_model(self, model_name: str):
        genai = self._ensure_client()
        if model_name not in self._model_cache:
            self._model_cache[model_name] = genai.GenerativeModel(model_name)
        return self._model_cache[model_name]

    def _generate_text(self, prompt: str) -> str:
        last_error: Exception | None = None
        for offset in range(len(self._model_candidates)):
            idx = (self._active_model_idx + offset) % len(self._model_candidates)
            model_name = self._model_candidates[idx]
            model = self._get_model(model_name)
            for attempt in range(self.max_api_retries + 1):
                try:
                    response = model.generate_content(
                        prompt,
                        generation_config={"response_mime_type": "application/json"},
                        request_options={"timeout": self.timeout_sec},
                    )
                    self._active_model_idx = idx
                    return (response.text or "").strip()
                except Exception as exc:
                    last_error = exc
                    # Renamed or retired model IDs fall through to the next candidate.
                    if self._is_model_not_found_error(exc):
                        self.logger.warning(f"model unavailable: {model_name}")
                        break
                    if self._is_retryable_error(exc) and attempt < self.max_api_retries:
                        self._sleep_backoff(attempt)
                        continue
                    raise

        if last_error is not None:
            raise last_error
        return ""

    @staticmethod
    def _build_prompt(text: str) -> str:
        return (
            "You are given a digest of today's posts from several news channels. "
            "Each post lists its source, author, date, body and image URLs and ends with '---'.\n"
            "Group the news into thematic sections and summarize each story in one or two sentences.\n"
            "Return ONLY a JSON array. Every element must follow the schema: "
            '{"section":"...","title":"...","text":"...","images":["..."]}\n'
            "Keep image URLs exactly as given and only for the story they belong to.\n\n"
            f"[POSTS]\n{text}"
        )

    @staticmethod
    def _parse_json_array(text: str) -> list[Any] | None:
        text = FENCE_PATTERN.sub("", (text or "").strip())
        if not text:
            return None

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            first = text.find("[")
            last = text.rfind("]")
            if first == -1 or last == -1 or first >= last:
                return None
            try:
                parsed = json.loads(text[first : last + 1])
            except json.JSONDecodeError:
                return None

        if isinstance(parsed, dict):
            for key in ("items", "results"):
                if isinstance(parsed.get(key), list):
                    return parsed[key]
            return None
        if isinstance(parsed, list):
            return parsed
        return None

    @staticmethod
    def _short_error(exc: Exception) -> str:
        message = str(exc).strip()
        if not message:
            return exc.__class__.__name__
        return message.splitlines()[0][:220]


class BatchDispatcher:
    def __init__(
        self,
        summarizer: GeminiSummarizer,
        chunk_count: int = 1,
        batch_delay_sec: float = 65.0,
        verbose: bool = True,
    ) -> None:
        self.summarizer = summarizer
        self.chunk_count = max(1, int(chunk_count))
        self.batch_delay_sec = max(0.0, float(batch_delay_sec))
        self.verbose = verbose
        self.logger = logging.getLogger(self.__class__.__name__)

    def dispatch(
        self,
        posts: Sequence[Post],
        chunk_count: int | None = None,
        on_progress: ProgressSink | None = None,
    ) -> list[Any]:
        emit = on_progress or null_sink
        corpus = format_posts(posts)
        chunks = split_text_into_chunks(corpus, chunk_count or self.chunk_count)
        total = len(chunks)
        if self.verbose:
            self.logger.info(f"input posts: {len(posts)}, corpus chars: {len(corpus)}, chunks: {total}")

        emit(ProgressEvent.progress(f"Text split into {total} parts. Starting analysis..."))

        partial_results: list[list[Any]] = []
        for index, chunk in enumerate(chunks, start=1):
            emit(ProgressEvent.progress(f"Sending part {index}/{total} for analysis...", chunk=index, total=total))
            try:
                result = self.summarizer.summarize_chunk(chunk)
            except SummarizationError:
                raise
            except Exception as exc:
                raise SummarizationError(f"part {index}/{total} failed: {exc}") from exc
            partial_results.append(list(result))
            emit(ProgressEvent.progress(f"Part {index}/{total} processed.", chunk=index, total=total))

            if index < total and self.batch_delay_sec > 0:
                emit(ProgressEvent.progress(f"Pausing {self.batch_delay_sec:g} seconds for API rate limits..."))
                time.sleep(self.batch_delay_sec)

        flattened = [item for part in partial_results for item in part]
        if self.verbose:
            self.logger.info(f"results: {len(flattened)} items from {total} parts")
        return flattened
