"""HLS transcoding for adaptive-bitrate packages.

This package provides two levels of functionality:
- core, command, manifest: ffprobe inspection, encoder selection, Package and
  ffmpeg command builders, manifest records
- batch: directory discovery and high-level scheduling of packages on a pool
"""

from .core import (
    MediaInfo,
    available_ffmpeg_encoders,
    ffprobe_media_info,
    is_hardware_encoder,
    select_encoder,
)
from .command import (
    DEFAULT_SETTINGS,
    EncodeSettings,
    Package,
    build_encode_command,
    build_filter_graph,
    build_poster_command,
    build_variant_command,
)
from .manifest import Manifest, ManifestEntry, build_manifest
from .batch import (
    BatchReport,
    iter_sources,
    package_jobs,
    run_batch,
    schedule_package,
    write_manifest,
)

__all__ = [
    # Media info
    "MediaInfo",
    "ffprobe_media_info",
    "available_ffmpeg_encoders",
    "is_hardware_encoder",
    "select_encoder",
    # Commands
    "DEFAULT_SETTINGS",
    "EncodeSettings",
    "Package",
    "build_encode_command",
    "build_filter_graph",
    "build_poster_command",
    "build_variant_command",
    # Manifest
    "Manifest",
    "ManifestEntry",
    "build_manifest",
    # Batch
    "BatchReport",
    "iter_sources",
    "package_jobs",
    "run_batch",
    "schedule_package",
    "write_manifest",
]
