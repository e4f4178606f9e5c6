import json
import pathlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from config import Config, TraitRule
from errors import GenerationError, ReorderInvariantViolation
from rarity import RandomSource
from rules import TraitTypeRuleEngine
from traits import Trait, TraitCatalog


@dataclass(frozen=True)
class Attribute:
    name: str
    rarity: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "rarity": self.rarity, "value": self.value}

    @classmethod
    def from_dict(cls, raw) -> "Attribute":
        return cls(name=raw["name"], rarity=raw["rarity"], value=raw["value"])


@dataclass(frozen=True)
class Collectible:
    id: int
    attributes: Tuple[Attribute, ...]

    def key(self) -> Tuple[Tuple[str, str], ...]:
        """Ordered (trait type, value) pairs identifying the combination."""
        return tuple((a.name, a.value) for a in self.attributes)

    def to_dict(self):
        return {"id": self.id, "attributes": [a.to_dict() for a in self.attributes]}

    @classmethod
    def from_dict(cls, raw) -> "Collectible":
        return cls(
            id=int(raw["id"]),
            attributes=tuple(Attribute.from_dict(a) for a in raw["attributes"]),
        )


# One slot per configured trait type, trait is None when the type stayed empty
Slot = Tuple[str, Optional[Trait]]


def reorder_traits(
    slots: Sequence[Slot], trait_rules: Sequence[TraitRule]
) -> List[Slot]:
    """Move ordered traits right after their ``after`` trait type.

    Rules apply in the order of the original sequence. A trait whose
    ``after`` type is absent or empty keeps its position.
    """
    rules = {(rule.type, rule.name): rule for rule in trait_rules}
    result = list(slots)
    for slot in slots:
        trait_type, trait = slot
        if trait is None:
            continue
        rule = rules.get((trait_type, trait.file_name))
        if rule is None or rule.order is None or not rule.order.after:
            continue
        others = [s for s in result if s is not slot]
        target = next(
            (
                i
                for i, (t, tr) in enumerate(others)
                if t == rule.order.after and tr is not None
            ),
            None,
        )
        if target is None:
            continue
        result = others[: target + 1] + [slot] + others[target + 1 :]

    if len(result) != len(slots):
        raise ReorderInvariantViolation(
            f"Reordering changed trait count from {len(slots)} to {len(result)}"
        )
    return result


class AttributeSelector:
    """Draw the attribute set of one collectible."""

    def __init__(
        self,
        config: Config,
        catalog: TraitCatalog,
        random: Optional[RandomSource] = None,
    ):
        self.config = config
        self.engine = TraitTypeRuleEngine(config, catalog, random)

    def draw_traits(self, random: Optional[RandomSource] = None) -> List[Slot]:
        chosen: Dict[str, Optional[Trait]] = {}
        for rule in self.config.types:
            chosen[rule.name] = self.engine.choose(rule, chosen, random)
        return list(chosen.items())

    def select(self, random: Optional[RandomSource] = None) -> List[Attribute]:
        slots = reorder_traits(self.draw_traits(random), self.config.traits)
        return [
            Attribute(name=trait_type, rarity=trait.rarity, value=trait.file_name)
            for trait_type, trait in slots
            if trait is not None
        ]


def generate_collectibles(
    config: Config,
    catalog: TraitCatalog,
    count: int,
    seed=None,
    random: Optional[RandomSource] = None,
    workers: int = 1,
    unique: bool = False,
    max_attempts: int = 100,
) -> List[Collectible]:
    """Generate ``count`` collectibles with ids 1..count.

    With ``random`` every draw reads from that single source, in id order.
    Otherwise each collectible draws from its own generator spawned from
    ``seed``, so a seed gives the same collection for any number of workers.

    With ``unique`` a collectible repeating an earlier combination is
    redrawn, up to ``max_attempts`` times.
    """
    if count < 0:
        raise ValueError(f"Number of collectibles must not be negative, got {count}")
    selector = AttributeSelector(config, catalog, random)

    if random is not None:
        sources = [random] * count
    else:
        children = np.random.SeedSequence(seed).spawn(count)
        sources = [np.random.default_rng(child).random for child in children]

    if workers > 1 and random is None:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            drawn = list(executor.map(selector.select, sources))
    else:
        drawn = [selector.select(source) for source in sources]

    collectibles = []
    seen = set()
    for idx, attributes in enumerate(drawn):
        collectible = Collectible(id=idx + 1, attributes=tuple(attributes))
        if unique:
            attempts = 0
            while collectible.key() in seen:
                attempts += 1
                if attempts > max_attempts:
                    raise GenerationError(
                        f"Could not find a unique combination for collectible "
                        f"#{collectible.id} after {max_attempts} attempts"
                    )
                collectible = Collectible(
                    id=collectible.id, attributes=tuple(selector.select(sources[idx]))
                )
            seen.add(collectible.key())
        collectibles.append(collectible)
    return collectibles


def save_collectibles(collectibles: Sequence[Collectible], path) -> pathlib.Path:
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([c.to_dict() for c in collectibles], f, indent=2, ensure_ascii=False)
    return path


def load_collectibles(path) -> List[Collectible]:
    with open(path, encoding="utf-8") as f:
        return [Collectible.from_dict(raw) for raw in json.load(f)]
