"""
Adaptive-bitrate HLS packaging for batches of source videos.

This package decides which renditions to produce for a source video,
builds the exact ffmpeg argument vectors that encode them into an HLS
variant set, and runs many such encodes concurrently with a bounded
worker pool that can be shut down gracefully.

The package is organized into several categories:
- ladder: rendition values and ladder strategies (fixed presets or
  resolution-scaled ladders with estimated bitrates).
- transcode: ffprobe inspection, encoder selection, command synthesis,
  manifests, and batch orchestration over a source directory.
- scheduler: the fixed-size worker pool that executes engine jobs.
- utils: constants, structured logging, and small system helpers.
"""

__version__ = "1.0.0"

# Debug flag for controlling verbose output
DEBUG: bool = False

__all__ = ["__version__", "DEBUG"]
