"""
Sampling Layer
==============

Bounded Context: Reproducible point generation inside the boundary.

Responsibilities:
- Seeded generator (Mulberry32)
- Rejection sampling against the occupancy mask
"""

from presence_zone.sampling.rng import Mulberry32
from presence_zone.sampling.sampler import (
    DEFAULT_SEED,
    MAX_PICK_TRIES,
    SAFE_INSET,
    DeterministicSampler,
)

__all__ = [
    "Mulberry32",
    "DeterministicSampler",
    "DEFAULT_SEED",
    "MAX_PICK_TRIES",
    "SAFE_INSET",
]
