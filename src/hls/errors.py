"""
Exceptions raised while probing, planning, and running encode jobs.

Per-file and per-job failures are reported rather than propagated through
a whole batch: a ProbeError skips one source, and a JobExecutionError is
attached to that job's result record.
"""
from typing import Sequence


class HLSError(Exception):
    """Base exception for HLS packaging errors."""

    pass


class ProbeError(HLSError):
    """ffprobe failed to run or its output could not be turned into a MediaInfo."""

    def __init__(self, path, reason: str):
        super().__init__(f"Could not probe {path}: {reason}")
        self.path = path
        self.reason = reason


class PlanningError(HLSError):
    """An invalid rendition or ladder was requested."""

    pass


class JobExecutionError(HLSError):
    """The engine exited non-zero (or never exited) for a job."""

    def __init__(self, label: str, command: Sequence[str], returncode: int | None, stderr: str = "",
                 reason: str | None = None):
        if reason:
            status = reason
        else:
            status = "timed out" if returncode is None else f"exited with code {returncode}"
        super().__init__(f"{label}: ffmpeg {status}")
        self.label = label
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class SchedulingError(HLSError):
    """A job was submitted to a pool that is no longer accepting work."""

    pass
