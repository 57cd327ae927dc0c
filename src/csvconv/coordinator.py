"""Coordinator: fans CSV files out to worker processes and aggregates the results.

Workers are plain `multiprocessing` processes, one per chunk. Each one gets a
one-way pipe for its progress signals. The coordinator is a single-threaded
loop blocked in `multiprocessing.connection.wait()` on every pipe and every
process sentinel, so the running total is only ever touched from one place.

Key behaviors:
- Termination is detected through process exit, not completion signals
- A worker that exits without finishing its chunk is reported as crashed;
  its remaining files are listed as unconverted, never retried
- Optional stall timeout terminates a worker that stops reporting
- Files that would write the same JSON name as an earlier file are rejected
  up front, so no two workers ever write one path
"""

import logging
import multiprocessing
import os
from dataclasses import dataclass, field
from multiprocessing.connection import Connection, wait
from pathlib import Path
from time import monotonic, time

from csvconv import prometheus as prom
from csvconv.errors import DirectoryError
from csvconv.models import ProgressSignal, RunSummary, SignalKind, WorkerReport
from csvconv.partition import partition
from csvconv.utils import ensure_dir, get_worker_count
from csvconv.worker import output_path_for, run_worker


logger = logging.getLogger(__name__)

CSV_EXTENSION = '.csv'


def list_csv_files(directory: str | Path) -> list[str]:
    """List names of regular files in `directory` with a .csv extension (any case).

    Names are sorted so chunk assignment is reproducible.

    Raises:
        DirectoryError: If the directory doesn't exist or can't be listed
    """
    try:
        entries = os.listdir(directory)
    except OSError as e:
        raise DirectoryError(str(directory), e.strerror or str(e)) from e

    return sorted(
        name
        for name in entries
        if os.path.splitext(name)[1].lower() == CSV_EXTENSION and os.path.isfile(os.path.join(directory, name))
    )


def drop_output_collisions(files: list[str]) -> tuple[list[str], dict[str, str]]:
    """Keep the first file for each JSON output name and reject the rest.

    `a.csv` and `a.CSV` both map to `a.json`; only `files` order decides which
    one is converted.

    Returns:
        Tuple of (files to convert, rejected file -> reason)
    """
    owners: dict[str, str] = {}
    kept: list[str] = []
    rejected: dict[str, str] = {}
    for name in files:
        target = output_path_for(name, '').name
        if target in owners:
            rejected[name] = f'output {target} already produced by {owners[target]}'
            continue
        owners[target] = name
        kept.append(name)
    return kept, rejected


@dataclass
class WorkerHandle:
    """Runtime state of one spawned worker, owned by the coordinator loop."""

    process: multiprocessing.process.BaseProcess
    conn: Connection
    report: WorkerReport
    last_seen: float = field(default_factory=monotonic)


class Coordinator:
    """Converts a directory of CSV files using a pool of worker processes."""

    def __init__(
        self,
        output_dir: str | Path,
        workers: int | None = None,
        stall_timeout: float | None = None,
        mp_context=None,
    ):
        """Initialize the coordinator.

        Args:
            output_dir: Directory receiving the JSON files (created if missing)
            workers: Maximum worker processes; defaults to CSVCONV_WORKERS or the CPU count
            stall_timeout: Seconds without a signal before a worker is terminated; None disables
            mp_context: multiprocessing context to spawn workers with; defaults to the platform's
        """
        self.output_dir = Path(output_dir)
        self.worker_count = get_worker_count(workers)
        self.stall_timeout = stall_timeout
        self.mp_context = mp_context or multiprocessing.get_context()

    def run_all(self, directory: str | Path) -> RunSummary:
        """Convert every CSV file in `directory` and return the run summary.

        Raises:
            DirectoryError: If the input directory can't be listed
        """
        ensure_dir(self.output_dir)
        found = list_csv_files(directory)
        files, rejected = drop_output_collisions(found)
        chunks = partition(files, self.worker_count)

        summary = RunSummary(
            input_dir=str(directory),
            output_dir=str(self.output_dir),
            worker_count=self.worker_count,
            files_found=len(found),
            rejected=rejected,
        )
        for name, reason in rejected.items():
            logger.error(f'Skipping {name}: {reason}')
            prom.files_failed_total.inc()
        logger.info(f'Master process ID: {os.getpid()}')
        logger.debug(f'[RUN] {len(files)} CSV files in {directory}, {len(chunks)} chunks for {self.worker_count} workers')

        summary.start_time = time()
        handles = [self._spawn(worker_id, chunk, directory) for worker_id, chunk in enumerate(chunks)]
        summary.workers = [h.report for h in handles]

        try:
            self._event_loop(handles, summary)
        finally:
            self._terminate_remaining(handles)

        summary.duration_ms = int((time() - summary.start_time) * 1000)
        self._record_metrics(summary)
        logger.debug(
            f'[RUN] Completed: {summary.total_records} records, {summary.files_converted} converted, '
            f'{len(summary.files_failed)} failed, {len(summary.unconverted_files)} unconverted '
            f'in {summary.duration_ms}ms'
        )
        return summary

    def _spawn(self, worker_id: int, chunk: list[str], directory: str | Path) -> WorkerHandle:
        reader, writer = self.mp_context.Pipe(duplex=False)
        log_level = logging.getLevelName(logging.getLogger().getEffectiveLevel())
        process = self.mp_context.Process(
            target=run_worker,
            args=(worker_id, chunk, str(directory), str(self.output_dir), writer, log_level),
            name=f'csvconv-worker-{worker_id}',
            daemon=True,
        )
        process.start()
        # Only the child holds the write end, so its exit closes the pipe
        writer.close()

        prom.workers_spawned_total.inc()
        prom.active_workers.inc()
        logger.debug(f'[RUN] Worker {worker_id} (pid {process.pid}) started with {len(chunk)} files')
        return WorkerHandle(
            process=process,
            conn=reader,
            report=WorkerReport(worker_id=worker_id, pid=process.pid, files=list(chunk)),
        )

    def _event_loop(self, handles: list[WorkerHandle], summary: RunSummary) -> None:
        """Consume signals until every worker process has exited."""
        running: dict[int, WorkerHandle] = {h.process.sentinel: h for h in handles}
        readers: dict[Connection, WorkerHandle] = {h.conn: h for h in handles}

        while running:
            ready = wait([*readers, *running], timeout=self._next_timeout(running.values()))
            if not ready:
                self._stop_stalled(running.values())
                continue

            for obj in ready:
                if obj in readers:
                    handle = readers[obj]
                    if not self._receive(handle, summary):
                        del readers[obj]
                elif obj in running:
                    handle = running.pop(obj)
                    self._drain(handle, summary)
                    readers.pop(handle.conn, None)
                    self._reap(handle)

    def _receive(self, handle: WorkerHandle, summary: RunSummary) -> bool:
        """Read one message from a worker; False once its pipe is at EOF."""
        try:
            message = handle.conn.recv()
        except EOFError:
            return False
        self._apply(handle, ProgressSignal.model_validate(message), summary)
        return True

    def _drain(self, handle: WorkerHandle, summary: RunSummary) -> None:
        """Apply whatever the worker sent before exiting, then close its pipe."""
        try:
            while handle.conn.poll():
                self._apply(handle, ProgressSignal.model_validate(handle.conn.recv()), summary)
        except EOFError:
            pass
        finally:
            handle.conn.close()

    def _apply(self, handle: WorkerHandle, signal: ProgressSignal, summary: RunSummary) -> None:
        handle.last_seen = monotonic()
        report = handle.report

        if signal.kind == SignalKind.COUNT:
            count = signal.value or 0
            summary.total_records += count
            report.records += count
            report.converted.append(signal.file)
            prom.files_converted_total.inc()
            prom.records_converted_total.inc(count)
            prom.records_per_file.observe(count)
            logger.debug(f'[RUN] Worker {report.worker_id}: {signal.file} -> {count} records')
        elif signal.kind == SignalKind.ERROR:
            report.failed[signal.file] = signal.error or ''
            prom.files_failed_total.inc()
            logger.debug(f'[RUN] Worker {report.worker_id}: {signal.file} failed: {signal.error}')
        elif signal.kind == SignalKind.COMPLETED:
            report.completed = True
            logger.info(f'Worker process {report.pid} completed.')

    def _reap(self, handle: WorkerHandle) -> None:
        handle.process.join()
        report = handle.report
        report.exit_code = handle.process.exitcode
        prom.active_workers.dec()
        logger.info(f'Worker process {report.pid} exited with code {report.exit_code}.')

        if report.crashed:
            prom.worker_crashes_total.labels(reason='stalled' if report.stalled else 'exit').inc()
            logger.warning(
                f'Worker process {report.pid} did not finish its chunk; '
                f'{len(report.unconverted)} files left unconverted: {report.unconverted}'
            )

    def _next_timeout(self, handles) -> float | None:
        """Seconds until the earliest live worker would count as stalled."""
        if self.stall_timeout is None:
            return None
        deadlines = [h.last_seen + self.stall_timeout for h in handles if not h.report.stalled]
        if not deadlines:
            return None
        return max(min(deadlines) - monotonic(), 0.0)

    def _stop_stalled(self, handles) -> None:
        now = monotonic()
        for handle in handles:
            if handle.report.stalled or now - handle.last_seen < self.stall_timeout:
                continue
            logger.warning(
                f'Worker process {handle.report.pid} sent nothing for {self.stall_timeout:g}s, terminating'
            )
            handle.report.stalled = True
            handle.process.terminate()

    def _terminate_remaining(self, handles: list[WorkerHandle]) -> None:
        """Stop workers still alive when the loop is left early (e.g. KeyboardInterrupt)."""
        for handle in handles:
            if handle.process.is_alive():
                logger.warning(f'Terminating worker process {handle.report.pid}')
                handle.process.terminate()
                handle.process.join()
                prom.active_workers.dec()

    def _record_metrics(self, summary: RunSummary) -> None:
        prom.runs_total.labels(status='clean' if summary.clean else 'partial').inc()
        prom.run_duration_seconds.observe(summary.duration_ms / 1000)
        prom.files_found_total.inc(summary.files_found)
        prom.files_unconverted_total.inc(len(summary.unconverted_files))
