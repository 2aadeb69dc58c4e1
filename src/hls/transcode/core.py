"""
Functions to inspect source videos with ffprobe and pick an H.264 encoder.

This module extracts the first video stream's size, codec, frame rate and
bit rate plus the container duration, and chooses an ffmpeg encoder with
platform-aware fallbacks. Encoders are classified as hardware or software
because only software encoders receive profile/level/preset/tune flags.
"""
import json
import platform
from dataclasses import dataclass
from fractions import Fraction
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from hls.errors import ProbeError
from hls.utils import system_util, logger, LogLevel
from hls.utils.constants import DEFAULT_VIDEO_ENCODER

HARDWARE_ENCODER_SUFFIXES = ("_videotoolbox", "_nvenc", "_qsv", "_amf", "_vaapi", "_v4l2m2m", "_mf", "_omx")


@dataclass(frozen=True)
class MediaInfo:
    path: Path
    width: Optional[int]
    height: Optional[int]
    duration: float
    codec: str
    frame_rate: Optional[float] = None
    bit_rate: Optional[int] = None
    has_audio: bool = True

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
                raise ValueError(f"MediaInfo {name} must be a positive integer, got {value!r}")

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


def _parse_frame_rate(value) -> Optional[float]:
    """Parse an ffprobe rational such as ``30000/1001``; ``0/0`` means unknown."""
    if not value:
        return None
    try:
        rate = Fraction(str(value))
    except (ValueError, ZeroDivisionError):
        return None
    return float(rate) if rate > 0 else None


def _parse_positive_int(value) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def ffprobe_media_info(path: Path) -> MediaInfo:
    """
    Probe a video file for its first video stream, audio presence, and duration.

    Raises:
        ProbeError: If ffprobe fails, prints something that is not JSON, or
            reports no usable video stream or duration.
    """
    path = Path(path)
    cmd = [
        "ffprobe", "-v", "error",
        "-show_entries",
        "stream=codec_type,codec_name,width,height,r_frame_rate,bit_rate"
        ":stream_disposition=attached_pic:format=duration",
        "-of", "json",
        str(path)
    ]
    try:
        code, out, err = system_util.run_cmd(cmd)
    except OSError as e:
        raise ProbeError(path, f"ffprobe could not be started: {e}") from e
    if code != 0:
        raise ProbeError(path, f"ffprobe exited with code {code}: {err.strip()[:200]}")

    try:
        data = json.loads(out)
    except json.JSONDecodeError as e:
        raise ProbeError(path, f"ffprobe output is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProbeError(path, "ffprobe output is not a JSON object")

    streams = [s for s in data.get("streams") or [] if isinstance(s, dict)]
    # Cover art shows up as a video stream flagged attached_pic.
    video = [s for s in streams
             if s.get("codec_type") == "video" and not (s.get("disposition") or {}).get("attached_pic")]
    if not video:
        raise ProbeError(path, "no video stream found")
    s = video[0]

    width = _parse_positive_int(s.get("width"))
    height = _parse_positive_int(s.get("height"))
    if width is None or height is None:
        raise ProbeError(path, f"invalid video size {s.get('width')!r}x{s.get('height')!r}")

    codec = s.get("codec_name")
    if not codec:
        raise ProbeError(path, "video stream has no codec name")

    try:
        duration = float((data.get("format") or {})["duration"])
    except (KeyError, TypeError, ValueError) as e:
        raise ProbeError(path, "container duration is missing or invalid") from e

    info = MediaInfo(
        path=path,
        width=width,
        height=height,
        duration=duration,
        codec=codec,
        frame_rate=_parse_frame_rate(s.get("r_frame_rate")),
        bit_rate=_parse_positive_int(s.get("bit_rate")),
        has_audio=any(st.get("codec_type") == "audio" for st in streams),
    )
    logger.log("probe.complete", LogLevel.DEBUG,
               file=path.name,
               codec=info.codec,
               res=info.resolution,
               fps=info.frame_rate,
               duration=info.duration,
               audio=info.has_audio)
    return info


def is_hardware_encoder(codec: str) -> bool:
    """Check if an ffmpeg encoder name refers to a hardware-accelerated encoder."""
    return codec.endswith(HARDWARE_ENCODER_SUFFIXES)


@lru_cache(maxsize=1)
def available_ffmpeg_encoders() -> List[str]:
    """Return a cached list of available ffmpeg video encoders."""
    try:
        code, out, _ = system_util.run_cmd(["ffmpeg", "-hide_banner", "-encoders"])
    except OSError:
        return []
    if code != 0:
        return []

    encoders = []
    for line in out.splitlines():
        parts = line.split()
        # Lines look like: " V....D h264_videotoolbox ..."
        if len(parts) >= 2 and parts[0].startswith("V") and parts[1] != "=":
            encoders.append(parts[1])
    return encoders


def select_encoder(preferred: Optional[str] = None) -> str:
    """Pick an ffmpeg H.264 encoder with platform-aware fallbacks."""
    encoders = set(available_ffmpeg_encoders())

    if preferred:
        if preferred in encoders:
            return preferred
        logger.log("encoder.fallback", LogLevel.WARN, requested=preferred,
                   msg="Requested encoder not found, falling back automatically")

    system = platform.system()
    candidates: List[str]
    if system == "Darwin":
        candidates = ["h264_videotoolbox", DEFAULT_VIDEO_ENCODER]
    elif system == "Windows":
        candidates = ["h264_nvenc", "h264_qsv", "h264_amf", DEFAULT_VIDEO_ENCODER]
    else:
        candidates = ["h264_nvenc", "h264_qsv", DEFAULT_VIDEO_ENCODER]

    for encoder in candidates:
        if encoder in encoders:
            return encoder

    # Last resort, ffmpeg will report a clear error if it is missing too
    return DEFAULT_VIDEO_ENCODER
