"""
Rendition and ladder value types.

A Rendition is one width/height/bitrate output variant. A Ladder is the
ordered sequence of renditions produced for one source; its order fixes the
stream indices used in the synthesized ffmpeg command.
"""
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from hls.errors import PlanningError
from hls.utils.constants import BUFSIZE_FACTOR, MAXRATE_FACTOR


@dataclass(frozen=True)
class Rendition:
    width: int
    height: int
    bitrate: int  # kbps
    maxrate_factor: float = field(default=MAXRATE_FACTOR, compare=False)

    def __post_init__(self):
        for name in ("width", "height", "bitrate"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise PlanningError(f"Rendition {name} must be a positive integer, got {value!r}")
        if self.maxrate_factor < 1:
            raise PlanningError(f"maxrate factor must be at least 1, got {self.maxrate_factor!r}")

    @property
    def maxrate(self) -> int:
        """Peak bitrate cap in kbps."""
        return round(self.bitrate * self.maxrate_factor)

    @property
    def bufsize(self) -> int:
        """Rate-control buffer size in kbps."""
        return self.bitrate * BUFSIZE_FACTOR

    @property
    def label(self) -> str:
        return f"{self.height}p"

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Ladder:
    """Renditions in ascending resolution order with non-decreasing bitrate."""

    renditions: tuple[Rendition, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "renditions", tuple(self.renditions))
        labels = set()
        previous = None
        for rendition in self.renditions:
            if not isinstance(rendition, Rendition):
                raise PlanningError(f"Ladder entries must be Rendition values, got {rendition!r}")
            if previous is not None and rendition.bitrate < previous.bitrate:
                raise PlanningError(
                    f"Ladder bitrate must not decrease: {previous.label}@{previous.bitrate}k "
                    f"is followed by {rendition.label}@{rendition.bitrate}k"
                )
            # Labels name the variant directories, so they must be distinct.
            if rendition.label in labels:
                raise PlanningError(f"Duplicate rendition label in ladder: {rendition.label}")
            labels.add(rendition.label)
            previous = rendition

    @classmethod
    def of(cls, renditions: Sequence[Rendition]) -> "Ladder":
        return cls(tuple(renditions))

    def __iter__(self) -> Iterator[Rendition]:
        return iter(self.renditions)

    def __len__(self) -> int:
        return len(self.renditions)

    def __getitem__(self, index: int) -> Rendition:
        return self.renditions[index]

    def __bool__(self) -> bool:
        return bool(self.renditions)

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.renditions]
