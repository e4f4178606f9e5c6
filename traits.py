"""Layer assets: trait images grouped by trait type and rarity bucket.

Layers are laid out as ``<root>/<trait type>/<rarity>/<file>``. A file name
may carry labels after a double underscore, e.g. ``cap__red_summer.png`` is
the trait ``cap`` with labels ``{"red", "summer"}``.
"""
import pathlib
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

LABEL_DELIMITER = "__"
LABEL_SEPARATOR = "_"
IMAGE_EXTENSIONS = (".png", ".webp")


@dataclass(frozen=True)
class Trait:
    file_name: str
    name: str
    type: str
    rarity: str
    labels: FrozenSet[str] = field(default_factory=frozenset)


def parse_trait_filename(file_name: str) -> Tuple[str, FrozenSet[str]]:
    """Split a layer file name into display name and labels.

    Only the first delimiter counts: ``a__b__c.png`` gives name ``a`` and
    labels ``{"b", "c"}``. Empty labels are dropped, so ``cap__.png`` has no
    labels and passes every affinity.
    """
    stem = pathlib.PurePath(file_name).stem
    name, delimiter, rest = stem.partition(LABEL_DELIMITER)
    if not delimiter:
        return stem, frozenset()
    labels = frozenset(label for label in rest.split(LABEL_SEPARATOR) if label)
    return name, labels


def is_image(path: pathlib.Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


class TraitCatalog:
    """Read-only index of traits by trait type then rarity bucket."""

    def __init__(self, traits: Dict[str, Dict[str, List[Trait]]]):
        self._traits = {
            trait_type: {rarity: tuple(items) for rarity, items in buckets.items()}
            for trait_type, buckets in traits.items()
        }

    @classmethod
    def from_traits(cls, traits) -> "TraitCatalog":
        """Build a catalog from a flat iterable of traits."""
        grouped: Dict[str, Dict[str, List[Trait]]] = {}
        for trait in traits:
            by_rarity = grouped.setdefault(trait.type, {})
            by_rarity.setdefault(trait.rarity, []).append(trait)
        return cls(grouped)

    def __contains__(self, trait_type: str) -> bool:
        return trait_type in self._traits

    def __iter__(self) -> Iterator[Trait]:
        for buckets in self._traits.values():
            for items in buckets.values():
                yield from items

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def trait_types(self) -> List[str]:
        return list(self._traits)

    def rarities_for(self, trait_type: str) -> List[str]:
        return list(self._traits.get(trait_type, {}))

    def traits_for(self, trait_type: str, rarity: str) -> Tuple[Trait, ...]:
        return self._traits.get(trait_type, {}).get(rarity, ())

    def find(self, trait_type: str, file_name: str) -> Optional[Trait]:
        for items in self._traits.get(trait_type, {}).values():
            for trait in items:
                if trait.file_name == file_name:
                    return trait
        return None


def scan_layers(layer_path) -> TraitCatalog:
    """Scan a layer directory tree into a TraitCatalog.

    Every level is sorted by name so that the same tree always yields the
    same candidate order.
    """
    layer_path = pathlib.Path(layer_path)
    if not layer_path.is_dir():
        raise FileNotFoundError(f"Layer directory not found: {layer_path}")

    traits: Dict[str, Dict[str, List[Trait]]] = {}
    for type_dir in sorted(p for p in layer_path.iterdir() if p.is_dir()):
        buckets = traits.setdefault(type_dir.name, {})
        for rarity_dir in sorted(p for p in type_dir.iterdir() if p.is_dir()):
            items = []
            for image_path in sorted(p for p in rarity_dir.iterdir() if is_image(p)):
                name, labels = parse_trait_filename(image_path.name)
                items.append(
                    Trait(
                        file_name=image_path.name,
                        name=name,
                        type=type_dir.name,
                        rarity=rarity_dir.name,
                        labels=labels,
                    )
                )
            buckets[rarity_dir.name] = items
    return TraitCatalog(traits)
