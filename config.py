import argparse
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from data_processor import DEFAULT_GEMINI_MODEL
from models import DEFAULT_TIMEZONE

# Load environment variables once when module is imported
load_dotenv()


@dataclass(frozen=True)
class RuntimeConfig:
    chunk_count: int
    channel_delay_sec: float
    fallback_delay_sec: float
    api_delay_sec: float
    request_timeout_sec: float
    fetch_retries: int
    target_timezone: str
    gemini_model: str
    gemini_timeout_sec: float


def _env_int(name: str, default: int, minimum: int) -> int:
    try:
        return max(minimum, int(os.getenv(name, str(default))))
    except ValueError:
        return default


def _env_float(name: str, default: float, minimum: float) -> float:
    try:
        return max(minimum, float(os.getenv(name, str(default))))
    except ValueError:
        return default


def default_chunk_count() -> int:
    return _env_int("NUM_CHUNKS", 1, 1)


def default_channel_delay_sec() -> float:
    return _env_float("CHANNEL_DELAY_SEC", 1.0, 0.0)


def default_fallback_delay_sec() -> float:
    return _env_float("FALLBACK_DELAY_SEC", 0.5, 0.0)


def default_api_delay_sec() -> float:
    return _env_float("API_DELAY_SEC", 65.0, 0.0)


def default_request_timeout_sec() -> float:
    return _env_float("REQUEST_TIMEOUT_SEC", 15.0, 1.0)


def default_fetch_retries() -> int:
    return _env_int("FETCH_RETRIES", 0, 0)


def default_gemini_timeout_sec() -> float:
    return _env_float("GEMINI_TIMEOUT_SEC", 120.0, 1.0)


def default_target_timezone() -> str:
    return os.getenv("TARGET_TIMEZONE", "").strip() or DEFAULT_TIMEZONE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Telegram channel digest: harvest today's posts and summarize them")
    parser.add_argument("--channels", default=os.getenv("CHANNELS_FILE", "channels.txt"), help="channel list file")
    parser.add_argument("--output", default="Telegram_Digest.xlsx", help="output Excel file path")
    parser.add_argument("--sheet", default="Digest", help="output sheet name")
    parser.add_argument("--create-channels", action="store_true", help="write an example channel list and exit")
    parser.add_argument("--chunks", type=int, default=default_chunk_count(), help="number of parts sent to Gemini")
    parser.add_argument("--channel-delay", type=float, default=default_channel_delay_sec(), help="pause between channels (sec)")
    parser.add_argument("--fallback-delay", type=float, default=default_fallback_delay_sec(), help="pause before each single-post fetch (sec)")
    parser.add_argument("--api-delay", type=float, default=default_api_delay_sec(), help="pause between Gemini calls (sec)")
    parser.add_argument("--timeout", type=float, default=default_request_timeout_sec(), help="HTTP timeout per request (sec)")
    parser.add_argument("--fetch-retries", type=int, default=default_fetch_retries(), help="retries per failed page fetch")
    parser.add_argument("--timezone", default=default_target_timezone(), help="timezone for the day window and dates")
    parser.add_argument("--no-ai", action="store_true", help="skip Gemini and write rule-based summaries")
    parser.add_argument("--gemini-model", default=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL))
    parser.add_argument("--sse", action="store_true", help="write progress as server-sent events to stdout")
    parser.add_argument("--quiet", action="store_true", help="minimal progress logs")
    return parser


def build_runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    return RuntimeConfig(
        chunk_count=max(1, int(args.chunks)),
        channel_delay_sec=max(0.0, float(args.channel_delay)),
        fallback_delay_sec=max(0.0, float(args.fallback_delay)),
        api_delay_sec=max(0.0, float(args.api_delay)),
        request_timeout_sec=max(1.0, float(args.timeout)),
        fetch_retries=max(0, int(args.fetch_retries)),
        target_timezone=str(args.timezone).strip() or DEFAULT_TIMEZONE,
        gemini_model=str(args.gemini_model).strip() or DEFAULT_GEMINI_MODEL,
        gemini_timeout_sec=default_gemini_timeout_sec(),
    )
