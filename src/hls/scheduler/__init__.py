"""Bounded concurrent execution of engine jobs.

- pool: Job and JobResult records, the PoolState machine, and the Pool
  itself (fixed worker threads, FIFO queue, one stop marker per worker)
"""

from .pool import Job, JobResult, Pool, PoolState

__all__ = ["Job", "JobResult", "Pool", "PoolState"]
