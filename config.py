"""Collection configuration: rarities, trait type rules and output settings.

The configuration file is JSON::

    {
      "rarities": [{"name": "common", "chance": 70}, {"name": "rare", "chance": 30}],
      "metadata": {"name": "Bobiboum #", "description": "", "image": ""},
      "imageSize": {"width": 1000, "height": 1000},
      "layerDirectory": "layers",
      "types": [
        {"name": "background"},
        {"name": "hat", "chance": 40,
         "requires": [{"type": "background", "value": ["blue.png", "none"]}],
         "affinities": [{"type": "background", "exist": true}]}
      ],
      "traits": [{"type": "hat", "name": "cap.png", "order": {"after": "background"}}]
    }

Trait types are evaluated in the order they are listed.
"""
import json
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from errors import ConfigurationError
from rarity import Rarity, check_chances

DEFAULT_CHANCE = 100
NONE_VALUE = "none"
DEFAULT_LAYER_DIRECTORY = pathlib.Path("layers")


@dataclass(frozen=True)
class RequireRule:
    type: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class AffinityRule:
    type: str
    exist: bool


@dataclass(frozen=True)
class TraitTypeRule:
    name: str
    chance: int = DEFAULT_CHANCE
    rarities: Optional[Tuple[Rarity, ...]] = None
    requires: Optional[Tuple[RequireRule, ...]] = None
    affinities: Optional[Tuple[AffinityRule, ...]] = None


@dataclass(frozen=True)
class OrderRule:
    after: Optional[str] = None


@dataclass(frozen=True)
class TraitRule:
    type: str
    name: str
    order: Optional[OrderRule] = None


@dataclass(frozen=True)
class MetadataConfig:
    name: str = ""
    description: str = ""
    image: str = ""


@dataclass(frozen=True)
class ImageSize:
    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class Config:
    rarities: Tuple[Rarity, ...]
    types: Tuple[TraitTypeRule, ...]
    traits: Tuple[TraitRule, ...] = ()
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    image_size: Optional[ImageSize] = None
    layer_directory: pathlib.Path = DEFAULT_LAYER_DIRECTORY

    def type_names(self) -> List[str]:
        return [rule.name for rule in self.types]

    def trait_rule(self, trait_type: str, name: str) -> Optional[TraitRule]:
        for rule in self.traits:
            if rule.type == trait_type and rule.name == name:
                return rule
        return None


def _require(raw: Dict[str, Any], key: str, where: str):
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{where} must be an object, got {type(raw).__name__}")
    if key not in raw:
        raise ConfigurationError(f"{where} is missing '{key}'")
    return raw[key]


def _as_list(value, where: str) -> list:
    if not isinstance(value, list):
        raise ConfigurationError(f"{where} must be a list")
    return value


def _as_int(value, where: str) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{where} must be an integer, got {value!r}")
    return value


def _as_str(value, where: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{where} must be a string, got {value!r}")
    return value


def _parse_rarities(raw, where: str) -> Tuple[Rarity, ...]:
    rarities = tuple(
        Rarity(
            name=str(_require(item, "name", f"{where}[{i}]")),
            chance=_as_int(
                _require(item, "chance", f"{where}[{i}]"), f"{where}[{i}].chance"
            ),
        )
        for i, item in enumerate(_as_list(raw, where))
    )
    try:
        check_chances(rarities)
    except ConfigurationError as e:
        raise ConfigurationError(f"{where}: {e}") from e
    return rarities


def _parse_type_rule(raw, where: str) -> TraitTypeRule:
    name = str(_require(raw, "name", where))
    chance = _as_int(raw.get("chance", DEFAULT_CHANCE), f"{where}.chance")
    if not 0 <= chance <= 100:
        raise ConfigurationError(
            f"{where}.chance must be between 0 and 100, got {chance}"
        )

    rarities = None
    if raw.get("rarities") is not None:
        rarities = _parse_rarities(raw["rarities"], f"{where}.rarities")

    requires = None
    if raw.get("requires") is not None:
        requires = []
        for i, item in enumerate(_as_list(raw["requires"], f"{where}.requires")):
            item_where = f"{where}.requires[{i}]"
            values = _require(item, "value", item_where)
            if isinstance(values, str):
                values = [values]
            requires.append(
                RequireRule(
                    type=str(_require(item, "type", item_where)),
                    values=tuple(_as_list(values, f"{item_where}.value")),
                )
            )
        requires = tuple(requires)

    affinities = None
    if raw.get("affinities") is not None:
        affinities = []
        for i, item in enumerate(_as_list(raw["affinities"], f"{where}.affinities")):
            item_where = f"{where}.affinities[{i}]"
            affinity_type = str(_require(item, "type", item_where))
            exist = item.get("exist", True)
            if not isinstance(exist, bool):
                raise ConfigurationError(
                    f"{item_where}.exist must be true or false, got {exist!r}"
                )
            affinities.append(AffinityRule(type=affinity_type, exist=exist))
        affinities = tuple(affinities)

    return TraitTypeRule(
        name=name,
        chance=chance,
        rarities=rarities,
        requires=requires,
        affinities=affinities,
    )


def _parse_trait_rule(raw, where: str) -> TraitRule:
    trait_type = str(_require(raw, "type", where))
    name = str(_require(raw, "name", where))
    order = None
    if raw.get("order") is not None:
        order_raw = raw["order"]
        if not isinstance(order_raw, dict):
            raise ConfigurationError(f"{where}.order must be an object")
        order = OrderRule(after=order_raw.get("after"))
    return TraitRule(type=trait_type, name=name, order=order)


def parse_config(raw: Dict[str, Any]) -> Config:
    """Build a Config from the decoded JSON document."""
    rarities = _parse_rarities(_require(raw, "rarities", "config"), "rarities")

    types = tuple(
        _parse_type_rule(item, f"types[{i}]")
        for i, item in enumerate(_as_list(_require(raw, "types", "config"), "types"))
    )
    names = [rule.name for rule in types]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate trait types: {', '.join(duplicates)}")

    traits = tuple(
        _parse_trait_rule(item, f"traits[{i}]")
        for i, item in enumerate(_as_list(raw.get("traits") or [], "traits"))
    )

    metadata_raw = raw.get("metadata")
    if metadata_raw is None:
        metadata_raw = {}
    if not isinstance(metadata_raw, dict):
        raise ConfigurationError(
            f"metadata must be an object, got {type(metadata_raw).__name__}"
        )
    metadata = MetadataConfig(
        name=_as_str(metadata_raw.get("name", ""), "metadata.name"),
        description=_as_str(
            metadata_raw.get("description", ""), "metadata.description"
        ),
        image=_as_str(metadata_raw.get("image", ""), "metadata.image"),
    )

    image_size = None
    if raw.get("imageSize") is not None:
        size = raw["imageSize"]
        image_size = ImageSize(
            width=_as_int(_require(size, "width", "imageSize"), "imageSize.width"),
            height=_as_int(_require(size, "height", "imageSize"), "imageSize.height"),
        )
        if image_size.width <= 0 or image_size.height <= 0:
            raise ConfigurationError(
                f"Invalid image size: {image_size.width}x{image_size.height}"
            )

    return Config(
        rarities=rarities,
        types=types,
        traits=traits,
        metadata=metadata,
        image_size=image_size,
        layer_directory=pathlib.Path(
            raw.get("layerDirectory") or DEFAULT_LAYER_DIRECTORY
        ),
    )


def load_config(path) -> Config:
    """Read and validate a JSON configuration file."""
    path = pathlib.Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    with open(path, encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    return parse_config(raw)


def validate_against_catalog(config: Config, catalog) -> None:
    """Check that every trait referenced by the configuration exists.

    Raises ConfigurationError listing all problems found.
    """
    problems = []
    type_names = set(config.type_names())

    for rule in config.types:
        if rule.name not in catalog:
            problems.append(f"Layer directory not found for trait type '{rule.name}'")
        for require in rule.requires or ():
            if require.type not in type_names:
                problems.append(
                    f"'{rule.name}' requires unknown trait type '{require.type}'"
                )
                continue
            for value in require.values:
                if value != NONE_VALUE and catalog.find(require.type, value) is None:
                    problems.append(
                        f"'{rule.name}' requires missing trait '{require.type}/{value}'"
                    )
        for affinity in rule.affinities or ():
            if affinity.type not in type_names:
                problems.append(
                    f"'{rule.name}' has affinity with unknown "
                    f"trait type '{affinity.type}'"
                )

    for trait in config.traits:
        if catalog.find(trait.type, trait.name) is None:
            problems.append(f"Trait image not found: '{trait.type}/{trait.name}'")
        if trait.order and trait.order.after and trait.order.after not in type_names:
            problems.append(
                f"Trait '{trait.type}/{trait.name}' is ordered after unknown "
                f"trait type '{trait.order.after}'"
            )

    if problems:
        raise ConfigurationError("\n".join(problems))
