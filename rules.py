"""Per trait type generation rules: occurrence chance, requirements and affinities."""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

from config import NONE_VALUE, Config, TraitTypeRule
from rarity import (
    RandomSource,
    RarityDistribution,
    default_random,
    random_index,
    random_percent,
)
from traits import Trait, TraitCatalog

# Traits chosen so far in the current draw, by trait type (None when empty)
Chosen = Mapping[str, Optional[Trait]]


@dataclass(frozen=True)
class TraitAffinity:
    exist: bool
    labels: FrozenSet[str] = field(default_factory=frozenset)

    def accepts(self, trait: Trait) -> bool:
        shared = bool(trait.labels & self.labels)
        return shared if self.exist else not shared


def chosen_value(chosen: Chosen, trait_type: str) -> str:
    trait = chosen.get(trait_type)
    return trait.file_name if trait is not None else NONE_VALUE


def requirements_satisfied(rule: TraitTypeRule, chosen: Chosen) -> bool:
    """True when every ``requires`` entry allows the value chosen for its type."""
    for require in rule.requires or ():
        if chosen_value(chosen, require.type) not in require.values:
            return False
    return True


def resolve_affinities(rule: TraitTypeRule, chosen: Chosen) -> List[TraitAffinity]:
    affinities = []
    for affinity in rule.affinities or ():
        trait = chosen.get(affinity.type)
        labels = trait.labels if trait is not None else frozenset()
        affinities.append(TraitAffinity(exist=affinity.exist, labels=labels))
    return affinities


def filter_by_affinities(
    traits: Sequence[Trait], affinities: Sequence[TraitAffinity]
) -> List[Trait]:
    """Keep traits compatible with every affinity.

    Traits without labels are neutral and always kept.
    """
    if not affinities:
        return list(traits)
    return [
        trait
        for trait in traits
        if not trait.labels or all(affinity.accepts(trait) for affinity in affinities)
    ]


class TraitTypeRuleEngine:
    """Decide, for one trait type, whether and which trait is drawn."""

    def __init__(
        self,
        config: Config,
        catalog: TraitCatalog,
        random: Optional[RandomSource] = None,
    ):
        self.catalog = catalog
        self.random = random or default_random()
        self.default_distribution = RarityDistribution(config.rarities, self.random)
        self.distributions: Dict[str, RarityDistribution] = {
            rule.name: RarityDistribution(rule.rarities, self.random)
            for rule in config.types
            if rule.rarities
        }

    def distribution_for(self, rule: TraitTypeRule) -> RarityDistribution:
        return self.distributions.get(rule.name, self.default_distribution)

    def occurs(self, rule: TraitTypeRule, chosen: Chosen, random: RandomSource) -> bool:
        n = random_percent(random)
        return n < rule.chance and requirements_satisfied(rule, chosen)

    def choose(
        self, rule: TraitTypeRule, chosen: Chosen, random: Optional[RandomSource] = None
    ) -> Optional[Trait]:
        """Return the trait drawn for ``rule`` or None when the type stays empty."""
        random = random or self.random
        if not self.occurs(rule, chosen, random):
            return None

        affinities = resolve_affinities(rule, chosen)
        rarity = self.distribution_for(rule).draw(random)
        candidates = filter_by_affinities(
            self.catalog.traits_for(rule.name, rarity.name), affinities
        )
        if not candidates:
            return None
        return candidates[random_index(random, len(candidates))]
