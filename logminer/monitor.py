"""Hourly exception and adapter-error monitoring."""

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from .adapter_errors import AdapterErrorParser, dedupe_adapter_errors
from .aggregation import build_adapter_digest, build_exception_digest
from .clustering import BlockClusterer
from .config import Settings
from .delivery import LoggingNotifier, Notifier, RecordSink
from .detection import ExceptionBlockDetector
from .errors import IOUnavailable
from .ingestion import read_path
from .models import AdapterError, Digest, ExceptionBlock, ScanResult
from .normalization import BlockClassifier, dedupe_blocks
from .parsing import filter_by_window

logger = logging.getLogger(__name__)


class ExceptionMonitor:
    """
    Orchestrates the scheduled scans.

    Coordinates:
    - Time-window filtering of the monitored file
    - Exception block detection, classification and de-duplication
    - Adapter error extraction and de-duplication
    - Digest building and delivery
    """

    def __init__(
        self,
        settings: Settings,
        notifier: Optional[Notifier] = None,
        sink: Optional[RecordSink] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the monitor.

        Args:
            settings: Service configuration
            notifier: Delivery channel for digests (logs them by default)
            sink: Optional persistence for unique adapter errors
            clock: Source of "now" for scheduled runs
        """
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self.sink = sink
        self.clock = clock
        self.detector = ExceptionBlockDetector(context_size=settings.context_lines)
        self.classifier = BlockClassifier()
        self.adapter_parser = AdapterErrorParser()
        self.clusterer = BlockClusterer(max_clusters=settings.max_clusters)

    def find_developer_blocks(self, lines: Iterable[str]) -> list[ExceptionBlock]:
        """Detect, classify and de-duplicate exception blocks."""
        blocks = self.detector.detect(lines)
        return dedupe_blocks(self.classifier.classify(blocks))

    def find_adapter_errors(self, lines: Iterable[str]) -> list[AdapterError]:
        return dedupe_adapter_errors(self.adapter_parser.parse(lines))

    def analyze_lines(self, lines: list[str]) -> ScanResult:
        """
        Run both pipelines over ``lines`` without a time window.

        Args:
            lines: Log lines in file order

        Returns:
            ScanResult with unique blocks, their clusters and adapter errors
        """
        start_time = time.perf_counter()
        blocks = self.find_developer_blocks(lines)
        clusters = self.clusterer.cluster(blocks)
        adapter_errors = self.find_adapter_errors(lines)
        return ScanResult(
            total_lines=len(lines),
            blocks=blocks,
            clusters=clusters,
            adapter_errors=adapter_errors,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    def preview(self, hours: int = 1, now: Optional[datetime] = None) -> ScanResult:
        """Scan the last ``hours`` of the monitored file without delivering anything."""
        now = now or self.clock()
        window = self._window_lines(now - timedelta(hours=hours), now)
        return self.analyze_lines(window)

    def run_exception_scan(self, now: Optional[datetime] = None) -> Optional[Digest]:
        """
        Scheduled entry point: mail the unique exceptions of the last window.

        Never raises; a failed run is logged and the next one proceeds.
        """
        if not self.settings.monitor_enabled:
            return None
        try:
            now = now or self.clock()
            lines = self._window_lines(now - timedelta(hours=self.settings.window_hours), now)
            blocks = self.find_developer_blocks(lines)
            logger.info("Exception scan: %d line(s), %d unique block(s)", len(lines), len(blocks))
            if not blocks:
                return None

            digest = build_exception_digest(blocks, self.clusterer.cluster(blocks), now)
            self._deliver(digest)
            return digest
        except Exception:
            logger.exception("Exception scan failed")
            return None

    def run_adapter_error_scan(self, now: Optional[datetime] = None) -> Optional[Digest]:
        """Scheduled entry point: report and persist unique adapter errors."""
        if not self.settings.monitor_enabled:
            return None
        try:
            now = now or self.clock()
            lines = self._window_lines(now - timedelta(hours=self.settings.window_hours), now)
            errors = self.find_adapter_errors(lines)
            logger.info("Adapter error scan: %d line(s), %d unique error(s)", len(lines), len(errors))
            if not errors:
                return None

            if self.sink is not None:
                self.sink.save_all(errors)
            digest = build_adapter_digest(errors, now)
            self._deliver(digest)
            return digest
        except Exception:
            logger.exception("Adapter error scan failed")
            return None

    def _window_lines(self, start: datetime, end: datetime) -> list[str]:
        try:
            lines = read_path(self.settings.monitor_file)
        except IOUnavailable as e:
            logger.warning("Monitored file unavailable: %s", e)
            return []
        return filter_by_window(lines, start, end, keep_continuations=True)

    def _deliver(self, digest: Digest) -> None:
        recipients = self.settings.recipients
        if not recipients:
            logger.warning("No recipients configured for log monitor. Skipping send.")
            return
        self.notifier.send(digest.subject, digest.body, recipients, digest.attachment)
