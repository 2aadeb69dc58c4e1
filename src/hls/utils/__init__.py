"""
Constants, structured logging, and system helpers shared by the ladder
planner, the command builders, and the worker pool.
"""

from .constants import (
    AUDIO_BITRATE,
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    BUFSIZE_FACTOR,
    DEFAULT_FRAME_RATE,
    DEFAULT_GLOB,
    JOB_TIMEOUT,
    MANIFEST_FILENAME,
    MANIFEST_VERSION,
    MASTER_PLAYLIST,
    MAXRATE_FACTOR,
    PLAYLIST_TYPE,
    POSTER_FILENAME,
    SEGMENT_DURATION,
    SEGMENT_PATTERN,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    STATUS_TIMEOUT,
    VARIANT_PLACEHOLDER,
    VARIANT_PLAYLIST,
    VIDEO_ENCODER,
    VIDEO_EXTENSIONS,
    WORKERS,
    WORKER_THREAD_PREFIX,
    default_workers,
)
from .logger import LogLevel

__all__ = [
    "AUDIO_BITRATE",
    "AUDIO_CHANNELS",
    "AUDIO_CODEC",
    "BUFSIZE_FACTOR",
    "DEFAULT_FRAME_RATE",
    "DEFAULT_GLOB",
    "JOB_TIMEOUT",
    "MANIFEST_FILENAME",
    "MANIFEST_VERSION",
    "MASTER_PLAYLIST",
    "MAXRATE_FACTOR",
    "PLAYLIST_TYPE",
    "POSTER_FILENAME",
    "SEGMENT_DURATION",
    "SEGMENT_PATTERN",
    "STATUS_DRY_RUN",
    "STATUS_FAIL",
    "STATUS_OK",
    "STATUS_SKIP",
    "STATUS_TIMEOUT",
    "VARIANT_PLACEHOLDER",
    "VARIANT_PLAYLIST",
    "VIDEO_ENCODER",
    "VIDEO_EXTENSIONS",
    "WORKERS",
    "WORKER_THREAD_PREFIX",
    "default_workers",
    "LogLevel",
]
