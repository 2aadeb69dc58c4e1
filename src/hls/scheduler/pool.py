"""
A fixed-size worker pool that runs engine jobs from a shared FIFO queue.

Workers are threads; each one blocks on its ffmpeg subprocess for the whole
job, so the worker count bounds how many encodes run at once. Termination
uses one stop marker per worker: once the producer is done, process()
enqueues the markers after the real jobs and joins every worker.

Pool states move from ACCEPTING to DRAINING (no new jobs) to TERMINATED
(all workers have exited). shutdown() is advisory. Workers finish their
current job and discard whatever is still queued, but a running ffmpeg is
not interrupted unless ``terminate=True`` asks for its process group to be
signalled. request_shutdown() only sets flags, so signal handlers use it.
"""
import os
import queue
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from hls.errors import JobExecutionError, SchedulingError
from hls.utils import LogLevel, logger, system_util, time_util
from hls.utils.constants import (
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    STATUS_TIMEOUT,
    WORKER_THREAD_PREFIX,
    default_workers,
)

_STOP = object()


@dataclass(frozen=True)
class Job:
    """One engine invocation plus a label used in logs."""

    command: Tuple[str, ...]
    label: str

    def __post_init__(self):
        object.__setattr__(self, "command", tuple(str(c) for c in self.command))

    @classmethod
    def of(cls, command: Sequence, label: str) -> "Job":
        return cls(tuple(command), label)


@dataclass(frozen=True)
class JobResult:
    job: Job
    status: str
    returncode: Optional[int] = None
    elapsed: float = 0.0
    error: Optional[JobExecutionError] = None

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_OK, STATUS_DRY_RUN)


class PoolState(Enum):
    ACCEPTING = "accepting"
    DRAINING = "draining"
    TERMINATED = "terminated"


Runner = Callable[[Job], Tuple[int, str]]


class Pool:
    """Bounded-concurrency executor for engine jobs.

    Args:
        workers: Number of worker threads (default: cpu count - 1, at least 1).
        runner: Callable that executes a job and returns (exit code, stderr).
            Defaults to running the job's command as a subprocess.
        timeout: Optional per-job limit in seconds; an expired job's process
            group is killed and the job is recorded as timed out.
        dry_run: Log jobs without running them.
    """

    def __init__(self, workers: Optional[int] = None, runner: Optional[Runner] = None,
                 timeout: Optional[float] = None, dry_run: bool = False):
        self.workers = default_workers() if workers is None else workers
        if self.workers < 1:
            raise ValueError(f"Pool needs at least one worker, got {self.workers}")
        self.timeout = timeout
        self.dry_run = dry_run
        self._runner = runner or self._run_subprocess
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._state = PoolState.ACCEPTING
        # Plain flags, written without locks so a signal handler can set them.
        self._stopping = False
        self._terminate = False
        self._stops_sent = False
        self._shutdown_logged = False
        self._terminate_sent = False
        self._results: list[JobResult] = []
        self._running: dict[int, subprocess.Popen] = {}
        self._threads = [
            threading.Thread(target=self._work, name=f"{WORKER_THREAD_PREFIX}{i + 1}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.log("pool.start", LogLevel.DEBUG, workers=self.workers, timeout=timeout, dry_run=dry_run)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.shutdown()
        self.process()
        return False

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def stopping(self) -> bool:
        return self._stopping

    @property
    def results(self) -> list[JobResult]:
        with self._lock:
            return list(self._results)

    def schedule(self, job: Job, strict: bool = False) -> bool:
        """
        Queue a job for execution.

        Returns False (and logs a warning) once the pool has stopped accepting
        work. With ``strict=True`` that case raises SchedulingError instead.
        """
        with self._lock:
            if self._state is PoolState.ACCEPTING and not self._stopping:
                self._queue.put(job)
                return True
        logger.log("pool.rejected", LogLevel.WARN, job=job.label, state=self._state.value)
        if strict:
            raise SchedulingError(f"Pool is {self._state.value}; job '{job.label}' was not scheduled")
        return False

    def process(self) -> list[JobResult]:
        """Stop accepting jobs, run everything queued, and wait for every worker to exit."""
        with self._lock:
            self._send_stops()
        for thread in self._threads:
            while thread.is_alive():
                thread.join(0.1)
                if self._stopping:
                    self._apply_shutdown()
        with self._lock:
            self._state = PoolState.TERMINATED
            results = list(self._results)
        logger.log("pool.terminated", LogLevel.DEBUG,
                   jobs=len(results),
                   failed=sum(1 for r in results if not r.ok))
        return results

    def request_shutdown(self, terminate: bool = False) -> None:
        """
        Ask the pool to stop without taking any lock.

        Safe to call from a signal handler. Workers stop picking up queued
        jobs at once; the stop markers, logging, and any process-group
        signals are applied by process() on its next wake-up.
        """
        if terminate:
            self._terminate = True
        self._stopping = True

    def shutdown(self, terminate: bool = False) -> None:
        """
        Signal workers to stop after their current job; queued jobs are discarded.

        Does not block. In-flight ffmpeg processes keep running unless
        ``terminate`` is true, in which case their process groups get SIGTERM.
        Not for use inside a signal handler; see request_shutdown().
        """
        self.request_shutdown(terminate)
        self._apply_shutdown()

    def _apply_shutdown(self) -> None:
        with self._lock:
            self._send_stops()
            running = list(self._running.values())
            log_shutdown = not self._shutdown_logged
            self._shutdown_logged = True
            kill = self._terminate and not self._terminate_sent
            if kill:
                self._terminate_sent = True
        if log_shutdown or kill:
            logger.log("pool.shutdown", LogLevel.WARN, running=len(running), terminate=kill)
        if kill:
            for proc in running:
                _signal_group(proc, signal.SIGTERM)

    def _send_stops(self) -> None:
        # Caller holds self._lock.
        if self._stops_sent:
            return
        self._stops_sent = True
        if self._state is PoolState.ACCEPTING:
            self._state = PoolState.DRAINING
        for _ in self._threads:
            self._queue.put(_STOP)

    def _work(self) -> None:
        while True:
            job = self._queue.get()
            if job is _STOP:
                break
            if self._stopping:
                logger.log("pool.discarded", LogLevel.WARN, job=job.label)
                result = JobResult(job, STATUS_SKIP)
            else:
                try:
                    result = self._execute(job)
                except Exception as e:
                    # A broken runner must not cost the queue its worker.
                    logger.log("job.error", LogLevel.ERROR, job=job.label, error=repr(e))
                    error = JobExecutionError(job.label, job.command, None, reason=f"could not be run: {e!r}")
                    result = JobResult(job, STATUS_FAIL, error=error)
            with self._lock:
                self._results.append(result)
        logger.log("worker.exit", LogLevel.TRACE)

    def _execute(self, job: Job) -> JobResult:
        logger.log("job.start", LogLevel.INFO, job=job.label, cmd=system_util.shell_join(job.command))
        if self.dry_run:
            return JobResult(job, STATUS_DRY_RUN)

        start = time.monotonic()
        stderr = ""
        try:
            returncode, stderr = self._runner(job)
        except subprocess.TimeoutExpired:
            returncode = None
        except OSError as e:
            # ffmpeg missing or not executable; same convention as a shell
            returncode = 127
            stderr = str(e)
        elapsed = time.monotonic() - start

        if returncode == 0:
            logger.log("job.complete", LogLevel.INFO, job=job.label,
                       elapsed=time_util.format_duration(elapsed))
            return JobResult(job, STATUS_OK, returncode, elapsed)

        error = JobExecutionError(job.label, job.command, returncode, stderr or "")
        if returncode is None:
            logger.log("job.timeout", LogLevel.ERROR, job=job.label, timeout=self.timeout,
                       cmd=system_util.shell_join(job.command))
            status = STATUS_TIMEOUT
        else:
            logger.log("job.failed", LogLevel.ERROR, job=job.label, exit_code=returncode,
                       cmd=system_util.shell_join(job.command),
                       error=(stderr or "")[-200:].strip())
            status = STATUS_FAIL
        return JobResult(job, status, returncode, elapsed, error)

    def _run_subprocess(self, job: Job) -> Tuple[int, str]:
        # Own session so an operator interrupt reaches the pool, not ffmpeg.
        proc = subprocess.Popen(
            list(job.command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
        ident = threading.get_ident()
        with self._lock:
            self._running[ident] = proc
        try:
            try:
                _, stderr = proc.communicate(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                _signal_group(proc, signal.SIGKILL if hasattr(signal, "SIGKILL") else signal.SIGTERM)
                proc.communicate()
                raise
        finally:
            with self._lock:
                self._running.pop(ident, None)
        return proc.returncode, stderr


def _signal_group(proc: subprocess.Popen, sig) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, sig)
        else:
            proc.terminate()
    except ProcessLookupError:
        pass
