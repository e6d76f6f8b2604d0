"""Directory scanning - run the pipeline over every PDF in a folder.

Documents are independent: each one's temporary artifact is named after
its own source file, so they can be processed in parallel with no locking.
In parallel mode every document runs in its own child process, so a
document that exceeds its timeout can be stopped without holding up the
rest of the batch.
"""

import logging
import multiprocessing
import signal
import threading
import time
from collections import deque
from multiprocessing.connection import wait as wait_for_connections
from pathlib import Path
from typing import Callable, Optional

from barsort.config import settings
from barsort.exceptions import ScanError
from barsort.logging import configure_logging, get_logger
from barsort.models import (
    BatchSummary,
    DocumentResult,
    DocumentState,
    OutcomeStatus,
    SourceDocument,
)
from barsort.pipeline.runner import DocumentPipeline

logger = get_logger(__name__)

POLL_INTERVAL = 0.1
STOP_GRACE_SECONDS = 5.0

ResultCallback = Callable[[DocumentResult], None]


def list_directory(input_folder: Path) -> list[Path]:
    """List direct entries of a folder (non-recursive), sorted by name."""
    try:
        return sorted(Path(input_folder).iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise ScanError(f"Cannot list input folder {input_folder}: {exc}", path=input_folder) from exc


def run_document(pipeline, source, output_folder, connection, log_level, commit_lock) -> None:
    """Child process entry point: process one document and send back its result."""
    # Ctrl-C reaches the whole process group; only the parent acts on it
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    configure_logging(log_level)
    try:
        connection.send(pipeline.run(source, output_folder, commit_lock=commit_lock))
    finally:
        connection.close()


class DocumentWorker:
    """A child process running the pipeline for one document."""

    def __init__(self, context, pipeline, source: Path, output_folder: Path, log_level: int):
        self.source = source
        self.artifact = SourceDocument.from_path(source).artifact_path
        self.owns_artifact = not self.artifact.exists()
        self.result: Optional[DocumentResult] = None
        self.exited = False

        self.commit_lock = context.Lock()
        self.connection, sender = context.Pipe(duplex=False)
        self.process = context.Process(
            target=run_document,
            args=(pipeline, source, output_folder, sender, log_level, self.commit_lock),
            daemon=True,
        )
        self.started = time.monotonic()
        self.process.start()
        sender.close()

    @property
    def finished(self) -> bool:
        return self.result is not None or self.exited

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def receive(self) -> None:
        """Read whatever the child has sent without blocking."""
        try:
            while self.connection.poll():
                self.result = self.connection.recv()
        except (EOFError, OSError):
            self.exited = True

    def try_claim(self) -> bool:
        """Take the commit lock; fails once the child has started disposition."""
        return self.commit_lock.acquire(block=False)

    def stop(self) -> None:
        """Terminate the child, escalating to kill if it does not exit."""
        if self.process.is_alive():
            self.process.terminate()
            self.process.join(STOP_GRACE_SECONDS)
            if self.process.is_alive():
                self.process.kill()
        self.process.join()

    def close(self) -> None:
        """Wait for the child to exit and release the pipe."""
        self.process.join()
        self.connection.close()


class DirectoryScanner:
    """Drives one pipeline invocation per PDF in the input folder.

    With one worker and no timeout, documents are processed in-process one
    at a time. Otherwise each document runs in a child process, at most
    ``max_workers`` at once, and ``document_timeout`` is enforced per
    document.
    """

    def __init__(
        self,
        pipeline: Optional[DocumentPipeline] = None,
        max_workers: Optional[int] = None,
        document_timeout: Optional[float] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        """Initialize scanner.

        Args:
            pipeline: Per-document pipeline (default stages from settings).
            max_workers: Maximum parallel documents (default from settings).
            document_timeout: Seconds a document may spend before disposition
                starts; it is then stopped and reported as timed out
                (default from settings, None disables).
            poll_interval: Seconds between cancellation/timeout checks.
        """
        self.pipeline = pipeline or DocumentPipeline()
        self.max_workers = max(1, max_workers or settings.max_workers)
        self.document_timeout = (
            document_timeout if document_timeout is not None else settings.document_timeout
        )
        self.poll_interval = poll_interval

    @property
    def parallel(self) -> bool:
        return self.max_workers > 1 or self.document_timeout is not None

    def list_sources(self, input_folder: Path) -> tuple[list[Path], int]:
        """Split folder entries into eligible PDFs and a count of skipped entries.

        Args:
            input_folder: Folder to list.

        Returns:
            Tuple of (pdf_paths, skipped_count)
        """
        sources = []
        skipped = 0
        for entry in list_directory(input_folder):
            if SourceDocument.is_eligible(entry):
                sources.append(entry)
            else:
                logger.debug("Skipping %s", entry)
                skipped += 1
        return sources, skipped

    def scan(
        self,
        input_folder: Path,
        output_folder: Path,
        cancel_event: Optional[threading.Event] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> BatchSummary:
        """Process a snapshot of the input folder.

        Args:
            input_folder: Folder holding scanned PDFs.
            output_folder: Folder receiving relocated documents.
            cancel_event: When set, no further documents are started;
                documents already in progress finish normally.
            on_result: Called with each document's result as soon as it
                is known, in completion order.

        Returns:
            BatchSummary with one result per PDF.

        Raises:
            ScanError: The input folder cannot be listed.
        """
        input_folder = Path(input_folder)
        output_folder = Path(output_folder)
        logger.info("Scanning %s -> %s", input_folder, output_folder)

        sources, skipped = self.list_sources(input_folder)
        results: list[DocumentResult] = []

        def report(result: DocumentResult) -> None:
            results.append(result)
            if on_result is not None:
                on_result(result)

        if self.parallel and len(sources) > 0:
            self._scan_parallel(sources, output_folder, cancel_event, report)
        else:
            self._scan_sequential(sources, output_folder, cancel_event, report)

        summary = BatchSummary(
            input_folder=str(input_folder),
            output_folder=str(output_folder),
            results=results,
            skipped=skipped,
        )
        logger.info(
            "Batch complete: %d relocated, %d left in place, %d failed, %d cancelled, %d skipped",
            summary.relocated,
            summary.left_in_place,
            summary.failed,
            summary.cancelled,
            summary.skipped,
        )
        return summary

    def _scan_sequential(
        self,
        sources: list[Path],
        output_folder: Path,
        cancel_event: Optional[threading.Event],
        report: ResultCallback,
    ) -> None:
        for index, source in enumerate(sources):
            if cancel_event is not None and cancel_event.is_set():
                remaining = sources[index:]
                logger.warning("Scan cancelled, %d documents not started", len(remaining))
                for path in remaining:
                    report(self._cancelled(path))
                break
            report(self.pipeline.run(source, output_folder))

    def _scan_parallel(
        self,
        sources: list[Path],
        output_folder: Path,
        cancel_event: Optional[threading.Event],
        report: ResultCallback,
    ) -> None:
        """Process documents in child processes, at most ``max_workers`` at a time.

        An overdue document is stopped only if the scanner wins its commit
        lock, i.e. before disposition has started; a document already being
        moved is left to finish.
        """
        context = multiprocessing.get_context()
        log_level = logging.getLogger().getEffectiveLevel()
        queue = deque(sources)
        running: list[DocumentWorker] = []

        try:
            while queue or running:
                if cancel_event is not None and cancel_event.is_set() and queue:
                    logger.warning("Scan cancelled, %d documents not started", len(queue))
                    while queue:
                        report(self._cancelled(queue.popleft()))

                while queue and len(running) < self.max_workers:
                    worker = DocumentWorker(
                        context, self.pipeline, queue.popleft(), output_folder, log_level
                    )
                    running.append(worker)

                if not running:
                    continue

                wait_for_connections(
                    [worker.connection for worker in running], timeout=self.poll_interval
                )
                for worker in list(running):
                    worker.receive()
                    if worker.finished:
                        running.remove(worker)
                        worker.close()
                        report(self._collect(worker))
                    elif self._overdue(worker) and worker.try_claim():
                        running.remove(worker)
                        worker.stop()
                        result = self._timed_out(worker)
                        worker.close()
                        report(result)
        finally:
            # Reached with workers still running only if the loop raised
            for worker in running:
                if worker.try_claim():
                    worker.stop()
                    if worker.owns_artifact:
                        self.pipeline.disposer.cleanup(worker.artifact)
                worker.close()

    def _overdue(self, worker: DocumentWorker) -> bool:
        return self.document_timeout is not None and worker.elapsed() > self.document_timeout

    def _collect(self, worker: DocumentWorker) -> DocumentResult:
        if worker.result is not None:
            return worker.result

        exit_code = worker.process.exitcode
        logger.error("Worker for %s exited with code %s", worker.source, exit_code)
        return self._abandoned(
            worker,
            error_type="WorkerError",
            reason=f"worker exited with code {exit_code}",
        )

    def _timed_out(self, worker: DocumentWorker) -> DocumentResult:
        # The child may have finished in the same instant it was stopped
        worker.receive()
        if worker.result is not None:
            return worker.result

        logger.error("%s: timed out after %.1fs", worker.source, self.document_timeout)
        return self._abandoned(
            worker,
            error_type="TimeoutError",
            reason=f"timed out after {self.document_timeout:.1f}s",
        )

    def _abandoned(self, worker: DocumentWorker, error_type: str, reason: str) -> DocumentResult:
        """Result for a child that never reported; removes its artifact here."""
        removed = self.pipeline.disposer.cleanup(worker.artifact) if worker.owns_artifact else True
        return DocumentResult(
            source_path=str(worker.source),
            status=OutcomeStatus.FAILED,
            error_type=error_type,
            reason=reason,
            states=[DocumentState.DISCOVERED, DocumentState.CLEANED_UP],
            artifact_removed=removed,
        )

    @staticmethod
    def _cancelled(source: Path) -> DocumentResult:
        return DocumentResult(
            source_path=str(source),
            status=OutcomeStatus.CANCELLED,
            reason="scan cancelled",
            states=[DocumentState.DISCOVERED],
            artifact_removed=True,
        )
