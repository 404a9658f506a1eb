import logging
from pathlib import Path
from typing import Iterable

log = logging.getLogger("ChannelManager")

EXAMPLE_CHANNELS = [
    "# One channel per line: bare name, @name or https://t.me/name",
    "durov",
    "telegram",
]


def normalize_channel(value: str) -> str:
    """
    Accepts:
      - https://t.me/SomeChannel
      - t.me/s/SomeChannel
      - @SomeChannel
      - SomeChannel
    Returns the bare channel name.
    """
    text = (value or "").strip()
    if "t.me/" in text:
        text = text.split("t.me/", 1)[1]
        if text.startswith("s/"):
            text = text[2:]
    text = text.split("?")[0].strip().strip("/")
    text = text.split("/")[0]
    return text.lstrip("@")


def _iter_channel_lines(lines: Iterable[str]) -> Iterable[str]:
    seen: set[str] = set()
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        channel = normalize_channel(stripped)
        if not channel:
            continue
        if channel in seen:
            log.warning(f"duplicate channel skipped: {stripped} (already listed as {channel})")
            continue
        seen.add(channel)
        yield channel


def ensure_channels_file(path: str | Path = "channels.txt") -> Path:
    channels_path = Path(path)
    if channels_path.exists():
        return channels_path

    channels_path.parent.mkdir(parents=True, exist_ok=True)
    channels_path.write_text("\n".join(EXAMPLE_CHANNELS) + "\n", encoding="utf-8")
    return channels_path


def load_channels(path: str | Path = "channels.txt") -> list[str]:
    channels_path = Path(path)
    if not channels_path.exists():
        raise FileNotFoundError(
            f"Channel file not found: {channels_path}. Run `python create_channels.py` first."
        )

    channels = list(_iter_channel_lines(channels_path.read_text(encoding="utf-8").splitlines()))
    if not channels:
        raise ValueError(f"Channel file '{channels_path}' has no channels.")

    return channels
