"""
Manifest records describing the renditions written for one package.

The manifest is handed to an external consumer. Playlist text is carried
as opaque content; paths are relative to the package's output root.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from hls.transcode.command import Package
from hls.utils.constants import MANIFEST_VERSION, POSTER_FILENAME, VARIANT_PLAYLIST


@dataclass(frozen=True)
class ManifestEntry:
    name: str
    width: int
    height: int
    bitrate: int
    playlist: Optional[str]
    video: str
    poster: str


@dataclass(frozen=True)
class Manifest:
    version: int = MANIFEST_VERSION
    renditions: List[ManifestEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "renditions": [
                {
                    "name": e.name,
                    "width": e.width,
                    "height": e.height,
                    "bitrate": e.bitrate,
                    "playlist": e.playlist,
                    "video": e.video,
                    "poster": e.poster,
                }
                for e in self.renditions
            ],
        }


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def build_manifest(package: Package) -> Manifest:
    """
    Collect one entry per rendition; playlists not yet written are recorded as None.

    ``name`` is the rendition label, which is also the variant directory.
    ``width`` and ``height`` are the frame size actually encoded, which can
    be smaller than the label suggests when the source is wider than 16:9.
    """
    entries = []
    for index, rendition in enumerate(package.ladder):
        variant = package.variant_dir(index)
        playlist = variant / VARIANT_PLAYLIST
        width, height = package.encoded_size(index)
        entries.append(ManifestEntry(
            name=rendition.label,
            width=width,
            height=height,
            bitrate=rendition.bitrate,
            playlist=_read_text(playlist),
            video=playlist.relative_to(package.output).as_posix(),
            poster=(variant / POSTER_FILENAME).relative_to(package.output).as_posix(),
        ))
    return Manifest(renditions=entries)
