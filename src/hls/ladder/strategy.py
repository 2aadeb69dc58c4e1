"""
Ladder strategies and the planner that applies them to a source.

Two strategy families are supported:

- FixedLadder: an explicit list of (width, height, bitrate) presets, such as
  the common web ladder or a single-rendition preset for quick previews.
- ScaledLadder: renditions derived from the source resolution at fixed scale
  factors, with bitrates estimated from the pixel count and a bits-per-pixel
  constant chosen by content type.

Whichever strategy is selected, plan() drops renditions wider than the
source so nothing is ever upscaled.
"""
import math
from dataclasses import dataclass
from typing import Union

from hls.errors import PlanningError
from hls.ladder.rendition import Ladder, Rendition
from hls.utils import LogLevel, logger
from hls.utils.constants import BPP_HIGH_MOTION, BPP_MIXED, BPP_SCREENCAST, MAX_BITRATE


@dataclass(frozen=True)
class FixedLadder:
    name: str
    presets: tuple[tuple[int, int, int], ...]

    def candidates(self, source_width: int, source_height: int) -> list[Rendition]:
        return [Rendition(width, height, bitrate) for width, height, bitrate in self.presets]


@dataclass(frozen=True)
class ScaledLadder:
    name: str
    bits_per_pixel: float = BPP_MIXED
    max_bitrate: int = MAX_BITRATE
    scales: tuple[float, ...] = (0.25, 0.5, 1.0)

    def __post_init__(self):
        if self.bits_per_pixel <= 0:
            raise PlanningError(f"bits per pixel must be positive, got {self.bits_per_pixel!r}")
        if self.max_bitrate <= 0:
            raise PlanningError(f"max bitrate must be positive, got {self.max_bitrate!r}")

    def estimate_bitrate(self, width: int, height: int) -> int:
        """
        Estimate a target bitrate in kbps for a frame size.

        The raw rate (pixels x bits per pixel / 1000) is rounded up to the next
        100 kbps and then capped at ``max_bitrate``. 1920x1080 at 3 bpp gives a
        raw 6220.8 kbps, which rounds up to 6300.
        """
        pixels = width * height
        rounded = math.ceil(pixels * self.bits_per_pixel / 100_000) * 100
        return min(rounded, self.max_bitrate)

    def candidates(self, source_width: int, source_height: int) -> list[Rendition]:
        renditions = []
        for scale in sorted(self.scales):
            width = math.floor(source_width * scale)
            height = math.floor(source_height * scale)
            # Tiny sources can collapse to zero at the lower scales.
            if width <= 0 or height <= 0:
                continue
            renditions.append(Rendition(width, height, self.estimate_bitrate(width, height)))
        return renditions


LadderStrategy = Union[FixedLadder, ScaledLadder]

WEB = FixedLadder(
    "web",
    (
        (640, 360, 500),
        (854, 480, 1000),
        (1280, 720, 3000),
        (1920, 1080, 6000),
        (3840, 2160, 12000),
    ),
)
FAST = FixedLadder("fast", ((640, 360, 500),))
AUTO = ScaledLadder("auto", bits_per_pixel=BPP_MIXED)
SCREENCAST = ScaledLadder("screencast", bits_per_pixel=BPP_SCREENCAST)
HIGH_MOTION = ScaledLadder("high-motion", bits_per_pixel=BPP_HIGH_MOTION)

PRESETS: dict[str, LadderStrategy] = {s.name: s for s in (WEB, FAST, AUTO, SCREENCAST, HIGH_MOTION)}


def get_preset(name: str) -> LadderStrategy:
    try:
        return PRESETS[name]
    except KeyError:
        raise PlanningError(f"Unknown ladder preset '{name}' (choose from {', '.join(PRESETS)})") from None


def plan(source_width: int, source_height: int, strategy: LadderStrategy) -> Ladder:
    """
    Build the ladder for a source of the given size.

    Renditions wider than the source are dropped. The result may be empty
    when the source is narrower than every candidate.

    Raises:
        PlanningError: If the source size is not positive or the strategy
            produces an invalid rendition.
    """
    if not isinstance(strategy, (FixedLadder, ScaledLadder)):
        raise PlanningError(f"Unsupported ladder strategy: {strategy!r}")
    if not source_width or not source_height or source_width <= 0 or source_height <= 0:
        raise PlanningError(f"Source size must be positive, got {source_width}x{source_height}")

    candidates = strategy.candidates(source_width, source_height)
    kept = [r for r in candidates if r.width <= source_width]
    ladder = Ladder.of(kept)

    logger.log("plan.ladder", LogLevel.DEBUG,
               strategy=strategy.name,
               source=f"{source_width}x{source_height}",
               renditions=",".join(f"{r.label}@{r.bitrate}k" for r in ladder),
               dropped=len(candidates) - len(kept))
    return ladder
