from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TextIO

EVENT_PROGRESS = "progress"
EVENT_FINAL_DATA = "final_data"
EVENT_ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def progress(cls, message: str, **details: Any) -> "ProgressEvent":
        return cls(EVENT_PROGRESS, {"message": message, **details})

    @classmethod
    def final_data(cls, payload: dict[str, Any]) -> "ProgressEvent":
        return cls(EVENT_FINAL_DATA, dict(payload))

    @classmethod
    def error(cls, message: str) -> "ProgressEvent":
        return cls(EVENT_ERROR, {"message": message})

    @property
    def message(self) -> str:
        return str(self.payload.get("message", ""))

    def to_sse(self) -> str:
        data = json.dumps(self.payload, ensure_ascii=False, default=str)
        return f"event: {self.name}\ndata: {data}\n\n"


ProgressSink = Callable[[ProgressEvent], None]


def null_sink(event: ProgressEvent) -> None:
    return None


class LoggingSink:
    def __init__(self, logger_name: str = "Progress") -> None:
        self.logger = logging.getLogger(logger_name)

    def __call__(self, event: ProgressEvent) -> None:
        if event.name == EVENT_ERROR:
            self.logger.error(event.message)
        elif event.name == EVENT_FINAL_DATA:
            self.logger.info(f"final data ready ({', '.join(sorted(event.payload))})")
        else:
            self.logger.info(event.message)


class SSEStreamSink:
    """Writes server-sent-event frames to a text stream.

    The producer never waits on the consumer: once the stream goes away the sink
    closes itself and further events are dropped.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.closed = False
        self.logger = logging.getLogger(self.__class__.__name__)

    def __call__(self, event: ProgressEvent) -> None:
        if self.closed:
            return
        try:
            self.stream.write(event.to_sse())
            self.stream.flush()
        except (OSError, ValueError) as exc:
            self.closed = True
            self.logger.debug(f"event stream closed by consumer: {exc.__class__.__name__}")


def fan_out(*sinks: ProgressSink) -> ProgressSink:
    def dispatch(event: ProgressEvent) -> None:
        for sink in sinks:
            sink(event)

    return dispatch
