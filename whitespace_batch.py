"""
Batch whitespace audit over a folder of PDFs.

Example:

    python whitespace_batch.py -s scans/ -c 8 > report.csv

One discoverer thread feeds a bounded queue of paths; a fixed pool of worker
threads renders and counts each document and appends the finished stats to a
lock-guarded list. The first error from any thread fails the whole run.
"""

from __future__ import annotations

import argparse
import logging
import queue
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple

import pandas as pd

from pdf_whitespace import (
    DEFAULT_DPI,
    DiscoveryError,
    DocumentStats,
    WhitespaceError,
    analyze_pdf,
    iter_pdf_paths,
)

log = logging.getLogger(__name__)

DEFAULT_SOURCE = "./"
DEFAULT_CONCURRENCY = 4
REPORT_COLUMNS = ["Name", "White Pixels", "Non-White Pixels", "Percentage White Pixels"]
NO_RESULTS_MESSAGE = "No results to display as no PDFs were processed."

_DONE = object()


class ProcessingError(WhitespaceError):
    def __init__(self, path, cause):
        super().__init__(f"error processing PDF {path}: {cause}")
        self.path = path


class OutputDirError(WhitespaceError):
    pass


@dataclass(frozen=True)
class RunConfig:
    source: str = DEFAULT_SOURCE
    concurrency: int = DEFAULT_CONCURRENCY
    dpi: int = DEFAULT_DPI
    strict_white: bool = False
    skip_errors: bool = False
    dump_dir: Optional[Path] = None

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.dpi < 1:
            raise ValueError(f"dpi must be at least 1, got {self.dpi}")


@dataclass
class RunResult:
    stats: List[DocumentStats] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (path, reason)


class BatchRunner:
    """Runs one discoverer and config.concurrency workers over a shared queue."""

    def __init__(self, config: RunConfig, analyze: Callable[..., DocumentStats] = analyze_pdf):
        self.config = config
        self._analyze = analyze
        self._paths: "queue.Queue[object]" = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._failed = threading.Event()
        self._error: Optional[BaseException] = None
        self._stats: List[DocumentStats] = []
        self._skipped: List[Tuple[str, str]] = []

    def _fail(self, exc: BaseException) -> None:
        with self._lock:
            if self._error is None:
                self._error = exc
                self._failed.set()
            else:
                log.warning("Ignoring error after the run already failed: %s", exc)

    def _discover(self) -> None:
        try:
            log.info("Reading PDFs from source %s", self.config.source)
            for path in iter_pdf_paths(self.config.source):
                if self._failed.is_set():
                    break
                log.info("Queueing PDF for processing: %s", path)
                self._paths.put(path)
        except WhitespaceError as exc:
            self._fail(exc)
        except Exception as exc:
            err = DiscoveryError(f"error reading PDFs from source {self.config.source}: {exc}")
            err.__cause__ = exc
            self._fail(err)
        finally:
            # one sentinel per worker closes the queue for all of them
            for _ in range(self.config.concurrency):
                self._paths.put(_DONE)

    def _work(self) -> None:
        while True:
            path = self._paths.get()
            if path is _DONE:
                return
            if self._failed.is_set():
                continue  # drain

            try:
                stats = self._analyze(path, dpi=self.config.dpi,
                                      strict=self.config.strict_white,
                                      dump_dir=self.config.dump_dir)
            except WhitespaceError as exc:
                if self.config.skip_errors:
                    log.warning("Skipping %s: %s", path, exc)
                    with self._lock:
                        self._skipped.append((path, str(exc)))
                    continue
                self._fail(_wrap(path, exc))
                continue
            except Exception as exc:
                self._fail(_wrap(path, exc))
                continue

            log.info("Processed %s: %.2f%% white", path, stats.white_percentage)
            with self._lock:
                self._stats.append(stats)

    def run(self) -> RunResult:
        """Process every discovered PDF; raise the first error recorded."""
        if self.config.dump_dir is not None:
            try:
                Path(self.config.dump_dir).mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise OutputDirError(f"unable to create page dump directory {self.config.dump_dir}: {exc}") from exc

        with ThreadPoolExecutor(max_workers=self.config.concurrency + 1,
                                thread_name_prefix="whitespace") as pool:
            futures = [pool.submit(self._discover)]
            futures += [pool.submit(self._work) for _ in range(self.config.concurrency)]
            wait(futures)

        for fut in futures:
            fut.result()
        if self._error is not None:
            raise self._error
        return RunResult(stats=list(self._stats), skipped=list(self._skipped))


def _wrap(path, exc: Exception) -> ProcessingError:
    err = ProcessingError(path, exc)
    err.__cause__ = exc
    return err


def run(config: RunConfig) -> RunResult:
    return BatchRunner(config).run()


# ---------- Report ----------
def stats_frame(stats: List[DocumentStats]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Name": s.name,
                "White Pixels": s.white_pixels,
                "Non-White Pixels": s.non_white_pixels,
                "Percentage White Pixels": s.white_percentage,
            }
            for s in stats
        ],
        columns=REPORT_COLUMNS,
    )


def report_csv(stats: List[DocumentStats]) -> str:
    return stats_frame(stats).to_csv(index=False, na_rep="NaN", lineterminator="\n")


def write_report(stats: List[DocumentStats], out: Optional[TextIO] = None) -> None:
    out = out if out is not None else sys.stdout
    if not stats:
        print(NO_RESULTS_MESSAGE, file=out)
        return
    out.write(report_csv(stats))


# ---------- CLI ----------
def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Report the share of white pixels for each PDF in a folder.")
    ap.add_argument("-s", "--source", default=DEFAULT_SOURCE,
                    help="Either a directory containing PDF files or a single PDF file")
    ap.add_argument("-c", "--concurrency", type=int, default=DEFAULT_CONCURRENCY,
                    help="Max number of PDFs processed concurrently")
    ap.add_argument("--dpi", type=int, default=DEFAULT_DPI, help="Render DPI (lower for speed)")
    ap.add_argument("--strict-white", action="store_true",
                    help="Require red, green and blue to be saturated instead of red only")
    ap.add_argument("--skip-errors", action="store_true",
                    help="Log and skip PDFs that fail to open or render instead of failing the run")
    ap.add_argument("--dump-dir", type=Path, default=None,
                    help="Also write every rendered page as JPEG into this directory")
    ap.add_argument("--log-level", default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = ap.parse_args(argv)
    if args.concurrency < 1:
        ap.error("concurrency must be at least 1")
    if args.dpi < 1:
        ap.error("dpi must be at least 1")
    return args


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        source=args.source,
        concurrency=args.concurrency,
        dpi=args.dpi,
        strict_white=args.strict_white,
        skip_errors=args.skip_errors,
        dump_dir=args.dump_dir,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = config_from_args(args)

    t0 = time.perf_counter()
    try:
        result = run(config)
    except WhitespaceError as exc:
        log.error("Run failed: %s", exc)
        return 1
    t1 = time.perf_counter()

    log.info("Processed %d PDFs (%d skipped) in %.2f seconds",
             len(result.stats), len(result.skipped), t1 - t0)
    write_report(result.stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
