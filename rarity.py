from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from errors import ConfigurationError

# Uniform source of floats in [0, 1)
RandomSource = Callable[[], float]

TOTAL_CHANCE = 100


@dataclass(frozen=True)
class Rarity:
    name: str
    chance: int


def default_random(seed=None) -> RandomSource:
    """Return a uniform [0, 1) source backed by a numpy Generator."""
    return np.random.default_rng(seed).random


def random_percent(random: RandomSource) -> int:
    """Draw an integer in [0, 100)."""
    return int(np.floor(random() * TOTAL_CHANCE))


def random_index(random: RandomSource, length: int) -> int:
    """Draw an index in [0, length) with equal probability."""
    return min(int(np.floor(random() * length)), length - 1)


def check_chances(rarities: Sequence[Rarity]) -> None:
    """Raise ConfigurationError unless the chances add up to 100."""
    if not rarities:
        raise ConfigurationError("Rarity list is empty")
    for rarity in rarities:
        if rarity.chance < 0:
            raise ConfigurationError(
                f"Rarity {rarity.name!r} has a negative chance ({rarity.chance})"
            )
    total = sum(rarity.chance for rarity in rarities)
    if total != TOTAL_CHANCE:
        raise ConfigurationError(
            f"Sum of rarity chance is not equal to {TOTAL_CHANCE} (got {total})"
        )


class RarityDistribution:
    """Weighted draw over named rarity buckets.

    Each rarity covers the half-open interval ``[offset, offset + chance)``
    where offsets accumulate the chances in input order, so the same input
    order always yields the same bucket boundaries. A draw takes an integer
    in [0, 100) and returns the bucket whose interval contains it.
    """

    def __init__(
        self, rarities: Sequence[Rarity], random: Optional[RandomSource] = None
    ):
        check_chances(rarities)
        self.rarities = tuple(rarities)
        self.upper_bounds = np.cumsum([rarity.chance for rarity in self.rarities])
        self.random = random or default_random()

    def bucket_for(self, n: int) -> Rarity:
        """Return the rarity whose interval contains ``n``."""
        if not 0 <= n < TOTAL_CHANCE:
            raise ValueError(f"Value out of range [0, {TOTAL_CHANCE}): {n}")
        # side="right" skips zero-width buckets and keeps upper bounds exclusive
        index = int(np.searchsorted(self.upper_bounds, n, side="right"))
        return self.rarities[index]

    def draw(self, random: Optional[RandomSource] = None) -> Rarity:
        return self.bucket_for(random_percent(random or self.random))

    def probabilities(self):
        """Target share of each bucket, keyed by rarity name."""
        return {rarity.name: rarity.chance / TOTAL_CHANCE for rarity in self.rarities}
