"""Command-line entry point: decode a captured stream.

Usage::

    crux-stream decode capture.ndjson
    curl -sN ... | crux-stream decode --records
    python -m crux_stream decode capture.ndjson --chunk-size 7

Exit codes: 0 success, 1 final aggregation failure, 2 transport failure,
3 invalid configuration.
"""

from __future__ import annotations

import argparse
import functools
import json
import sys
from typing import BinaryIO, Iterator, List, Optional, TextIO

from .base.errors import FinalAggregationFailure, StreamError
from .base.logging import configure_logger, get_logger, log_event
from .config import get_stream_config
from .streaming import StreamPipeline

EXIT_OK = 0
EXIT_FINAL_AGGREGATION = 1
EXIT_TRANSPORT = 2
EXIT_CONFIG = 3

_DEFAULT_CHUNK_SIZE = 64 * 1024


def _read_chunks(stream: BinaryIO, size: int) -> Iterator[bytes]:
    yield from iter(functools.partial(stream.read, size), b"")


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI parser (no side effects)."""
    p = argparse.ArgumentParser(prog="crux-stream", description="Decode chunked NDJSON generation streams")
    sub = p.add_subparsers(dest="cmd")

    p_dec = sub.add_parser("decode", help="Decode a captured stream into its final payload")
    p_dec.add_argument("path", nargs="?", default="-", help="Capture file ('-' or omitted for stdin)")
    p_dec.add_argument("--chunk-size", type=int, default=_DEFAULT_CHUNK_SIZE, help="Bytes per simulated transport chunk")
    p_dec.add_argument("--records", action="store_true", help="Print every decoded record as NDJSON instead")
    p_dec.add_argument("--no-repair", action="store_true", help="Disable tolerant JSON repair")
    p_dec.add_argument("--no-split", action="store_true", help="Disable splitting of glued records")
    p_dec.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    p_dec.add_argument("--plain-logs", action="store_true", help="Human-readable logs instead of JSON")
    return p


def _decode(args: argparse.Namespace, stdin: BinaryIO, stdout: TextIO) -> int:
    configure_logger(level=args.log_level, json_mode=not args.plain_logs)
    logger = get_logger("crux_stream.cli", json_mode=not args.plain_logs)
    try:
        config = get_stream_config(
            {
                "repair_enabled": False if args.no_repair else None,
                "split_glued_records": False if args.no_split else None,
            }
        )
    except ValueError as e:
        log_event(logger, "cli.config.error", error=str(e))
        return EXIT_CONFIG
    if args.chunk_size <= 0:
        log_event(logger, "cli.config.error", error="--chunk-size must be positive")
        return EXIT_CONFIG

    if args.path == "-":
        fh, owned = stdin, False
    else:
        try:
            fh, owned = open(args.path, "rb"), True
        except OSError as e:
            log_event(logger, "cli.decode.error", error=str(e))
            return EXIT_TRANSPORT
    try:
        pipeline = StreamPipeline(
            _read_chunks(fh, args.chunk_size),
            config=config,
            source_name=args.path,
        )
        if args.records:
            for record in pipeline.records():
                stdout.write(json.dumps(record.raw, ensure_ascii=False) + "\n")
        else:
            payload = pipeline.run()
            stdout.write(json.dumps(payload.to_dict(), ensure_ascii=False, indent=2) + "\n")
    except FinalAggregationFailure as e:
        log_event(logger, "cli.decode.error", error=str(e))
        return EXIT_FINAL_AGGREGATION
    except StreamError as e:
        # Read errors surface as TransportFailure (or TIMEOUT-coded variants).
        log_event(logger, "cli.decode.error", error=str(e))
        return EXIT_TRANSPORT
    finally:
        if owned:
            fh.close()
    return EXIT_OK


def main(argv: Optional[List[str]] = None, *, stdin: Optional[BinaryIO] = None, stdout: Optional[TextIO] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd != "decode":
        parser.print_help()
        return EXIT_OK
    return _decode(args, stdin or sys.stdin.buffer, stdout or sys.stdout)


__all__ = ["build_parser", "main"]
