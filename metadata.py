import json
import pathlib
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from progressbar import progressbar

from config import NONE_VALUE, MetadataConfig
from selector import Collectible
from traits import parse_trait_filename


def create_base_metadata(metadata: MetadataConfig) -> Dict[str, Any]:
    """Create base metadata template."""
    return {
        "name": metadata.name,
        "description": metadata.description,
        "image": metadata.image,
        "attributes": [],
    }


def format_attribute_value(value: str) -> str:
    """Turn a layer file name into the value shown in metadata.

    Labels and extension are dropped and every "-" becomes "_".
    """
    name, _ = parse_trait_filename(value)
    return name.replace("-", "_")


def image_url(image_url_prefix: str, collectible_id: int) -> str:
    return f"{image_url_prefix.rstrip('/')}/{collectible_id}.png"


def collectible_metadata(
    collectible: Collectible, metadata: MetadataConfig, image: str
) -> Dict[str, Any]:
    item_metadata = create_base_metadata(metadata)
    item_metadata["name"] = f"{metadata.name}{collectible.id}"
    item_metadata["image"] = image
    for attribute in collectible.attributes:
        item_metadata["attributes"].append(
            {
                "trait_type": attribute.name,
                "value": format_attribute_value(attribute.value),
            }
        )
    return item_metadata


def pre_reveal_metadata(
    collectible: Collectible, metadata: MetadataConfig, image: str
) -> Dict[str, Any]:
    """Metadata shown before reveal: shared image, no attributes."""
    item_metadata = create_base_metadata(metadata)
    del item_metadata["attributes"]
    item_metadata["name"] = f"{metadata.name}{collectible.id}"
    item_metadata["image"] = image
    return item_metadata


def attributes_from_metadata(record: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Read back the ordered (trait type, value) pairs of a metadata record."""
    return [
        (item["trait_type"], item["value"]) for item in record.get("attributes", [])
    ]


def generate_json_metadata(
    collectibles: Sequence[Collectible],
    metadata: MetadataConfig,
    metadata_dir,
    image_url_prefix: Optional[str] = None,
    unrevealed_image: Optional[str] = None,
) -> pathlib.Path:
    """Generate JSON metadata files for all collectibles, named by id.

    With ``unrevealed_image`` every record points at that image and has no
    attributes.
    """
    if unrevealed_image is None and image_url_prefix is None:
        raise ValueError(
            "Either an image URL prefix or an unrevealed image is required"
        )
    metadata_dir = pathlib.Path(metadata_dir)
    metadata_dir.mkdir(parents=True, exist_ok=True)

    print(f"Generating JSON metadata for {len(collectibles)} NFTs...")

    for collectible in progressbar(collectibles):
        if unrevealed_image is not None:
            item_metadata = pre_reveal_metadata(collectible, metadata, unrevealed_image)
        else:
            item_metadata = collectible_metadata(
                collectible, metadata, image_url(image_url_prefix, collectible.id)
            )

        json_file = metadata_dir / str(collectible.id)
        with open(json_file, "w", encoding="utf-8") as f:
            json.dump(item_metadata, f, indent=2, ensure_ascii=False)

    return metadata_dir


def collectibles_to_dataframe(
    collectibles: Sequence[Collectible],
    trait_types: Sequence[str],
    rarity: bool = False,
) -> pd.DataFrame:
    """One row per collectible, one column per trait type ("none" when empty).

    Cells hold the trait name, or its rarity bucket when ``rarity`` is set.
    """
    rows = []
    for collectible in collectibles:
        row = {trait_type: NONE_VALUE for trait_type in trait_types}
        for attribute in collectible.attributes:
            if rarity:
                row[attribute.name] = attribute.rarity
            else:
                row[attribute.name] = parse_trait_filename(attribute.value)[0]
        rows.append(row)
    df = pd.DataFrame(
        rows, columns=list(trait_types), index=[c.id for c in collectibles]
    )
    df.index.name = "id"
    return df


def export_metadata_csv(df: pd.DataFrame, metadata_path) -> pathlib.Path:
    metadata_path = pathlib.Path(metadata_path)
    metadata_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(metadata_path)
    return metadata_path
