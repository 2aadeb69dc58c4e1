"""
Constants and configuration settings for HLS packaging.

This module holds the fixed output layout (playlist, segment, and poster
file names), encoding defaults, and the handful of settings that can be
overridden from the environment or a ``.env`` file.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Output layout
MASTER_PLAYLIST = "master.m3u8"
VARIANT_PLAYLIST = "index.m3u8"
SEGMENT_PATTERN = "%03d.ts"
POSTER_FILENAME = "poster.jpg"
VARIANT_PLACEHOLDER = "%v"
MANIFEST_FILENAME = "manifest.json"
MANIFEST_VERSION = 1

# HLS segmenting
SEGMENT_DURATION = 4  # seconds, also the GOP length
PLAYLIST_TYPE = "vod"
DEFAULT_FRAME_RATE = 30

# Rate control
MAXRATE_FACTOR = 1.1
BUFSIZE_FACTOR = 2

# Audio
AUDIO_CODEC = "aac"
AUDIO_BITRATE = 128  # kbps
AUDIO_CHANNELS = 2

# Video
DEFAULT_VIDEO_ENCODER = "libx264"
VIDEO_EXTENSIONS = {".mkv", ".mp4", ".avi", ".mov", ".m4v", ".webm"}
DEFAULT_GLOB = "**/*.mp4"

# Scaled ladder tuning (bits per pixel by content type)
BPP_SCREENCAST = 3
BPP_MIXED = 4
BPP_HIGH_MOTION = 6
MAX_BITRATE = 15000  # kbps, 4K-class ceiling


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def default_workers() -> int:
    """Leave one core free for orchestration; never fewer than one worker."""
    return max(1, (os.cpu_count() or 1) - 1)


# Pool threads are named <prefix><n>; the logger reports them as w<n>.
WORKER_THREAD_PREFIX = "hls-worker-"


# Run settings
WORKERS = _env_int("HLS_WORKERS") or default_workers()
VIDEO_ENCODER = os.getenv("HLS_VIDEO_ENCODER")
JOB_TIMEOUT = _env_int("HLS_JOB_TIMEOUT")
LOG_LEVEL = os.getenv("HLS_LOG_LEVEL", "INFO").upper()

# Job status codes
STATUS_OK = "OK"
STATUS_FAIL = "FAIL"
STATUS_SKIP = "SKIP"
STATUS_TIMEOUT = "TIMEOUT"
STATUS_DRY_RUN = "DRY-RUN"
