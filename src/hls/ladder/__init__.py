"""Rendition ladders: value types, strategies, and the no-upscale planner.

- rendition: Rendition and Ladder value types (validated on construction)
- strategy: fixed and resolution-scaled ladder strategies, named presets,
  and plan()
"""

from .rendition import Ladder, Rendition
from .strategy import (
    AUTO,
    FAST,
    HIGH_MOTION,
    PRESETS,
    SCREENCAST,
    WEB,
    FixedLadder,
    LadderStrategy,
    ScaledLadder,
    get_preset,
    plan,
)

__all__ = [
    "Rendition",
    "Ladder",
    "FixedLadder",
    "ScaledLadder",
    "LadderStrategy",
    "WEB",
    "FAST",
    "AUTO",
    "SCREENCAST",
    "HIGH_MOTION",
    "PRESETS",
    "get_preset",
    "plan",
]
