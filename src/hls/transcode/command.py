"""
Build ffmpeg argument vectors for HLS packages and poster frames.

A Package ties one probed source to its output root and planned ladder.
build_encode_command() turns it into a single ffmpeg invocation that splits
the source video into one scaled branch per rendition and writes every
variant, plus a master playlist, in one pass::

    out/master.m3u8
    out/360p/index.m3u8, out/360p/000.ts, ...
    out/720p/index.m3u8, ...

Stream indices are taken from ladder order everywhere: branch ``[vN]`` of
the filter graph, the ``:v:i``/``:a:i`` encoder options, and entry ``i`` of
the variant stream map all describe the same rendition.

Commands are always lists of arguments. They are only joined into a
shell-quoted string for logging.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from hls.ladder import Ladder, LadderStrategy, Rendition, plan
from hls.transcode.core import MediaInfo, is_hardware_encoder
from hls.utils.constants import (
    AUDIO_BITRATE,
    AUDIO_CHANNELS,
    AUDIO_CODEC,
    DEFAULT_FRAME_RATE,
    DEFAULT_VIDEO_ENCODER,
    MASTER_PLAYLIST,
    PLAYLIST_TYPE,
    POSTER_FILENAME,
    SEGMENT_DURATION,
    SEGMENT_PATTERN,
    VARIANT_PLACEHOLDER,
    VARIANT_PLAYLIST,
)


@dataclass(frozen=True)
class EncodeSettings:
    video_codec: str = DEFAULT_VIDEO_ENCODER
    audio_codec: str = AUDIO_CODEC
    audio_bitrate: int = AUDIO_BITRATE  # kbps
    audio_channels: int = AUDIO_CHANNELS
    frame_rate: float = DEFAULT_FRAME_RATE  # assumed when the probe has none
    preset: str = "medium"
    tune: Optional[str] = "film"

    def gop_size(self, frame_rate: Optional[float] = None) -> int:
        """Frames per segment, so every segment starts on a keyframe."""
        return max(1, round((frame_rate or self.frame_rate) * SEGMENT_DURATION))

    def tuning_args(self, index: int, rendition: Rendition) -> List[str]:
        """Codec tuning for software encoders; hardware encoders get none."""
        codec = self.video_codec
        if is_hardware_encoder(codec):
            return []
        if codec == "libx264":
            args = [
                f"-profile:v:{index}", "high",
                f"-level:v:{index}", h264_level(rendition),
                f"-preset:v:{index}", self.preset,
            ]
            if self.tune:
                args += [f"-tune:v:{index}", self.tune]
            return args
        if codec == "libx265":
            return [
                f"-profile:v:{index}", "main",
                f"-preset:v:{index}", self.preset,
            ]
        return []


DEFAULT_SETTINGS = EncodeSettings()


def h264_level(rendition: Rendition) -> str:
    if rendition.height <= 480:
        return "3.1"
    if rendition.height <= 1080:
        return "4.1"
    return "5.1"


@dataclass(frozen=True)
class Package:
    input: MediaInfo
    output: Path
    ladder: Ladder = field(default_factory=Ladder)

    def __post_init__(self):
        object.__setattr__(self, "output", Path(self.output))

    @classmethod
    def plan(cls, info: MediaInfo, output: Path, strategy: LadderStrategy) -> "Package":
        return cls(info, Path(output), plan(info.width, info.height, strategy))

    def variant_dir(self, index: int) -> Path:
        return self.output / self.ladder[index].label

    @property
    def variant_dirs(self) -> List[Path]:
        return [self.output / label for label in self.ladder.labels]

    @property
    def master_playlist(self) -> Path:
        return self.output / MASTER_PLAYLIST

    def encoded_size(self, index: int) -> Tuple[int, int]:
        """
        Frame size ffmpeg will produce for rendition ``index``.

        Mirrors the scale filter: the rendition box is clamped to the source,
        shrunk to the source aspect ratio with rounding to nearest, then
        floored to even numbers. A wide source therefore encodes its 720p
        rendition shorter than 720 lines.
        """
        rendition = self.ladder[index]
        src_w, src_h = self.input.width, self.input.height
        width = _clamp(src_w, rendition.width)
        height = _clamp(src_h, rendition.height)
        if src_w and src_h:
            width, height = (min(width, (height * src_w + src_h // 2) // src_h),
                             min(height, (width * src_h + src_w // 2) // src_w))
        return width // 2 * 2, height // 2 * 2

    @property
    def stream_map(self) -> str:
        """
        One ``v:i,a:i`` pair per rendition, named so ``%v`` becomes its label.

        Sources without audio map ``v:i`` alone.
        """
        if not self.input.has_audio:
            return " ".join(f"v:{i},name:{r.label}" for i, r in enumerate(self.ladder))
        return " ".join(f"v:{i},a:{i},name:{r.label}" for i, r in enumerate(self.ladder))


def _scale_filter(width, height) -> str:
    return f"scale=w={width}:h={height}:force_original_aspect_ratio=decrease"


def _clamp(limit: Optional[int], value: int) -> int:
    return value if limit is None else min(limit, value)


def build_filter_graph(info: MediaInfo, ladder: Ladder) -> str:
    """
    Split the source video into one scaled, labeled branch per rendition.

    Branch ``i`` (1-indexed) is bounded by the rendition size, clamped to the
    source size, and shrunk to keep the source aspect ratio with even
    dimensions. Its output label is ``[v<i>out]``. An empty ladder discards
    the video with ``nullsink``.
    """
    n = len(ladder)
    if n == 0:
        return "[0:v]nullsink"

    branches = "".join(f"[v{i}]" for i in range(1, n + 1))
    parts = [f"[0:v]split={n}{branches}"]
    for i, rendition in enumerate(ladder, start=1):
        width = _clamp(info.width, rendition.width)
        height = _clamp(info.height, rendition.height)
        parts.append(f"[v{i}]{_scale_filter(width, height)}:force_divisible_by=2[v{i}out]")
    return ";".join(parts)


def _video_args(index: int, rendition: Rendition, gop: int, settings: EncodeSettings) -> List[str]:
    return [
        f"-c:v:{index}", settings.video_codec,
        f"-b:v:{index}", f"{rendition.bitrate}k",
        f"-maxrate:v:{index}", f"{rendition.maxrate}k",
        f"-bufsize:v:{index}", f"{rendition.bufsize}k",
        f"-g:v:{index}", str(gop),
        f"-keyint_min:v:{index}", str(gop),
        f"-sc_threshold:v:{index}", "0",
    ] + settings.tuning_args(index, rendition)


def _audio_args(index: int, settings: EncodeSettings) -> List[str]:
    return [
        "-map", "0:a:0",
        f"-c:a:{index}", settings.audio_codec,
        f"-b:a:{index}", f"{settings.audio_bitrate}k",
        f"-ac:a:{index}", str(settings.audio_channels),
    ]


def _hls_args(segment_pattern: Path, playlist: Path) -> List[str]:
    return [
        "-hls_time", str(SEGMENT_DURATION),
        "-hls_playlist_type", PLAYLIST_TYPE,
        "-hls_segment_filename", str(segment_pattern),
        str(playlist),
    ]


def build_encode_command(package: Package, settings: EncodeSettings = DEFAULT_SETTINGS) -> List[str]:
    """
    Build the single ffmpeg command that encodes every rendition of a package.

    The variant stream map is left out for an empty ladder; the rest of the
    command keeps its shape. Sources without an audio stream get no audio
    maps or encoder options.
    """
    info = package.input
    ladder = package.ladder
    gop = settings.gop_size(info.frame_rate)
    variant_root = package.output / VARIANT_PLACEHOLDER

    cmd = [
        "ffmpeg",
        "-y",
        "-i", str(info.path),
        "-filter_complex", build_filter_graph(info, ladder),
    ]
    for i, rendition in enumerate(ladder):
        cmd += ["-map", f"[v{i + 1}out]"] + _video_args(i, rendition, gop, settings)
    if info.has_audio:
        for i in range(len(ladder)):
            cmd += _audio_args(i, settings)

    cmd += ["-f", "hls"]
    if ladder:
        cmd += ["-var_stream_map", package.stream_map]
    cmd += ["-master_pl_name", MASTER_PLAYLIST]
    cmd += _hls_args(variant_root / SEGMENT_PATTERN, variant_root / VARIANT_PLAYLIST)
    return cmd


def build_variant_command(package: Package, index: int,
                          settings: EncodeSettings = DEFAULT_SETTINGS) -> List[str]:
    """Build an ffmpeg command that encodes one rendition into its own variant directory."""
    info = package.input
    rendition = package.ladder[index]
    gop = settings.gop_size(info.frame_rate)
    output = package.variant_dir(index)
    width = _clamp(info.width, rendition.width)
    height = _clamp(info.height, rendition.height)

    cmd = [
        "ffmpeg",
        "-y",
        "-i", str(info.path),
        "-vf", f"{_scale_filter(width, height)}:force_divisible_by=2",
        "-map", "0:v:0",
    ]
    cmd += _video_args(0, rendition, gop, settings)
    if info.has_audio:
        cmd += _audio_args(0, settings)
    cmd += ["-f", "hls"]
    cmd += _hls_args(output / SEGMENT_PATTERN, output / VARIANT_PLAYLIST)
    return cmd


def build_poster_command(info: MediaInfo, output_dir: Path,
                         width: Optional[int] = None, height: Optional[int] = None) -> List[str]:
    """Build an ffmpeg command that writes the first frame as ``poster.jpg`` in output_dir."""
    w = width or info.width or "iw"
    h = height or info.height or "ih"
    return [
        "ffmpeg",
        "-y",
        "-i", str(info.path),
        "-vf", _scale_filter(w, h),
        "-frames:v", "1",
        str(Path(output_dir) / POSTER_FILENAME),
    ]
