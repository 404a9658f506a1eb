import argparse
import logging
import os
import sys
import time
from typing import Sequence

import config
import logger
from channel_manager import ensure_channels_file, load_channels
from collectors.telegram_collector import TelegramCollector
from data_processor import BatchDispatcher, GeminiSummarizer, SummarizationError, fallback_records
from events import LoggingSink, ProgressEvent, ProgressSink, SSEStreamSink, fan_out
from storage_manager import ExcelStorageManager
from telegram_harvester import NoPostsError, TelegramHarvester

log = logging.getLogger("Pipeline")


def _log_pipeline_start(args: argparse.Namespace, conf: config.RuntimeConfig, channels: list[str]) -> None:
    log.info("start")
    log.info(f"channels file: {args.channels}")
    log.info(f"loaded channels: {len(channels)} ({', '.join(channels)})")
    log.info(f"timezone: {conf.target_timezone}")
    log.info(f"chunks: {conf.chunk_count}, api delay: {conf.api_delay_sec:g}s")
    log.info(f"channel delay: {conf.channel_delay_sec:g}s, fallback delay: {conf.fallback_delay_sec:g}s")
    log.info(f"ai: {'off' if args.no_ai else conf.gemini_model}")


def _build_sink(args: argparse.Namespace) -> ProgressSink:
    if args.sse:
        return fan_out(LoggingSink(), SSEStreamSink(sys.stdout))
    return LoggingSink()


def _build_harvester(conf: config.RuntimeConfig, verbose: bool) -> TelegramHarvester:
    collector = TelegramCollector(
        fallback_delay_sec=conf.fallback_delay_sec,
        display_timezone=conf.target_timezone,
        timeout_sec=conf.request_timeout_sec,
        fetch_retries=conf.fetch_retries,
        verbose=verbose,
    )
    return TelegramHarvester(
        collector=collector,
        channel_delay_sec=conf.channel_delay_sec,
        target_timezone=conf.target_timezone,
        verbose=verbose,
    )


def _build_summarizer(conf: config.RuntimeConfig) -> GeminiSummarizer:
    api_key = os.getenv("GEMINI_API_KEY", "")
    if not api_key:
        log.warning("GEMINI_API_KEY is not set; use --no-ai for rule-based summaries")
    return GeminiSummarizer(api_key=api_key, model_name=conf.gemini_model, timeout_sec=conf.gemini_timeout_sec)


def run_pipeline(
    args: argparse.Namespace,
    sink: ProgressSink | None = None,
    harvester: TelegramHarvester | None = None,
    summarizer: GeminiSummarizer | None = None,
) -> int:
    verbose = not args.quiet
    logger.setup_logging(verbose=verbose, stream=sys.stderr if args.sse else None)
    emit = sink or _build_sink(args)
    conf = config.build_runtime_config(args)
    started = time.perf_counter()

    try:
        emit(ProgressEvent.progress("Starting to parse Telegram channels..."))
        channels = load_channels(args.channels)
        if verbose:
            _log_pipeline_start(args, conf, channels)

        if harvester is not None:
            posts = harvester.harvest_all(channels, on_progress=emit)
        else:
            with _build_harvester(conf, verbose) as owned_harvester:
                posts = owned_harvester.harvest_all(channels, on_progress=emit)
        emit(ProgressEvent.progress(f"Parsing complete. Collected {len(posts)} posts.", count=len(posts)))

        if args.no_ai:
            results = fallback_records(posts)
        else:
            dispatcher = BatchDispatcher(
                summarizer or _build_summarizer(conf),
                chunk_count=conf.chunk_count,
                batch_delay_sec=conf.api_delay_sec,
                verbose=verbose,
            )
            results = dispatcher.dispatch(posts, conf.chunk_count, on_progress=emit)

        emit(ProgressEvent.progress("Analysis of all parts complete. Writing the document..."))
        storage = ExcelStorageManager(output_path=args.output, sheet_name=args.sheet, verbose=verbose)
        storage.save(results)
        emit(ProgressEvent.final_data({"results": results, "output": str(args.output)}))
    except (FileNotFoundError, NoPostsError, SummarizationError, ValueError, PermissionError) as exc:
        emit(ProgressEvent.error(str(exc)))
        return 1
    except Exception as exc:
        log.exception("unexpected failure")
        emit(ProgressEvent.error(f"Unexpected server error: {exc.__class__.__name__}: {exc}"))
        return 1

    if verbose:
        log.info(f"done (elapsed={time.perf_counter() - started:.2f}s)")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = config.build_parser()
    args = parser.parse_args(argv)

    if args.create_channels:
        path = ensure_channels_file(args.channels)
        print(f"channel file ready: {path.resolve()}")
        return 0

    return run_pipeline(args)


if __name__ == "__main__":
    raise SystemExit(main())
