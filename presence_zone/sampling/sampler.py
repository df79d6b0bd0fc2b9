"""
Deterministic Sampler Module
============================

Rejection sampling of points inside the boundary mask.

Design:
- Owns its generator (no process-wide RNG state)
- Proposals are inset from the view box edges
- Bounded attempts; on exhaustion the last rejected candidate is returned

The fallback trades strict containment for liveness on boundaries that
cover a vanishingly small part of their view box. Renderers clip at draw
time, so such a point is never visible outside the outline.
"""

import logging
from typing import Optional, Tuple

from presence_zone.geometry.mask import Mask
from presence_zone.sampling.rng import Mulberry32

logger = logging.getLogger(__name__)

DEFAULT_SEED = 123456
SAFE_INSET = 0.04
MAX_PICK_TRIES = 5000


class DeterministicSampler:
    """
    Proposes uniformly random view box points and keeps those the mask accepts.

    Usage:
        sampler = DeterministicSampler(mask, seed=123456)
        x, y = sampler.sample()
    """

    def __init__(
        self,
        mask: Mask,
        seed: int = DEFAULT_SEED,
        inset: float = SAFE_INSET,
        max_tries: int = MAX_PICK_TRIES,
        rng: Optional[Mulberry32] = None,
    ):
        """
        Args:
            mask: Occupancy mask to test proposals against
            seed: Generator seed (ignored when ``rng`` is given)
            inset: Fraction of width/height kept clear on each side
            max_tries: Attempts before falling back to the last proposal
            rng: Pre-built generator, for sharing or resuming state
        """
        if not 0 <= inset < 0.5:
            raise ValueError(f"inset must be in [0, 0.5), got {inset}")
        if max_tries < 1:
            raise ValueError(f"max_tries must be >= 1, got {max_tries}")

        self.mask = mask
        self.inset = inset
        self.max_tries = max_tries
        self.rng = rng if rng is not None else Mulberry32(seed)

        self.sample_count = 0
        self.fallback_count = 0

    def propose(self) -> Tuple[float, float]:
        """Draw one candidate inside the inset view box (x drawn before y)."""
        vb = self.mask.view_box
        mx = vb.width * self.inset
        my = vb.height * self.inset
        x = vb.x + mx + self.rng.random() * (vb.width - 2 * mx)
        y = vb.y + my + self.rng.random() * (vb.height - 2 * my)
        return x, y

    def sample(self) -> Tuple[float, float]:
        """
        Return a point whose mask cell is occupied.

        After ``max_tries`` rejected proposals the last candidate is returned
        as is (see module docstring).
        """
        self.sample_count += 1
        candidate = None
        for _ in range(self.max_tries):
            candidate = self.propose()
            if self.mask.contains(*candidate):
                return candidate

        self.fallback_count += 1
        logger.warning(
            f"No accepted point after {self.max_tries} tries; "
            f"using last candidate ({candidate[0]:.2f}, {candidate[1]:.2f})"
        )
        return candidate
