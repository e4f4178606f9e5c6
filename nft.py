import argparse
import pathlib
import sys
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from scipy.stats import chisquare

from compositor import create_images
from config import Config, load_config, validate_against_catalog
from errors import AssetIOError, ConfigurationError, GenerationError
from metadata import (
    collectibles_to_dataframe,
    export_metadata_csv,
    generate_json_metadata,
)
from rarity import RarityDistribution
from selector import generate_collectibles, load_collectibles, save_collectibles
from traits import TraitCatalog, scan_layers

# Path constants
OUTPUT_PATH = pathlib.Path("build")
COLLECTIBLES_PATH = OUTPUT_PATH / "collectibles.json"
IMAGES_PATH = OUTPUT_PATH / "images"
METADATA_PATH = OUTPUT_PATH / "metadata"


def load_assets(config: Config, layer_path=None) -> TraitCatalog:
    """Scan the layers and check them against the configuration."""
    catalog = scan_layers(layer_path or config.layer_directory)
    validate_against_catalog(config, catalog)
    return catalog


def get_total_combinations(config: Config, catalog: TraitCatalog) -> int:
    """Upper bound of distinct combinations.

    "No trait" counts as an option when a type can be empty.
    """
    total = 1
    for rule in config.types:
        options = sum(
            len(catalog.traits_for(rule.name, rarity))
            for rarity in catalog.rarities_for(rule.name)
        )
        if rule.chance < 100 or rule.requires or rule.affinities:
            options += 1
        total = total * max(options, 1)
    return total


def rarity_stats(rarity_df: pd.DataFrame, config: Config) -> Dict[str, pd.DataFrame]:
    """Compare drawn rarity buckets with their target shares, per trait type.

    Only collectibles where the trait type has a value are counted. Each
    frame has columns target, actual and diff, indexed by rarity name, and
    carries the chi-square p-value in ``attrs["p_value"]``.
    """
    stats = {}
    for rule in config.types:
        if rule.name not in rarity_df.columns:
            continue
        distribution = RarityDistribution(rule.rarities or config.rarities)
        target = pd.Series(distribution.probabilities(), name="target")

        drawn = rarity_df[rule.name][rarity_df[rule.name].isin(target.index)]
        counts = drawn.value_counts().reindex(target.index, fill_value=0)
        total = int(counts.sum())
        actual = counts / total if total else counts.astype(float)

        frame = pd.DataFrame({"target": target, "actual": actual})
        frame["diff"] = (frame["actual"] - frame["target"]).abs()

        p_value = np.nan
        possible = target > 0
        if total and possible.sum() > 1:
            expected = (target[possible] * total).to_numpy()
            p_value = float(chisquare(counts[possible].to_numpy(), expected).pvalue)
        frame.attrs["p_value"] = p_value
        stats[rule.name] = frame
    return stats


def generate_rarity_stats(rarity_df: pd.DataFrame, config: Config) -> None:
    """Display rarity statistics comparing actual vs target distributions."""
    for layer_name, frame in rarity_stats(rarity_df, config).items():
        print(f"\n{layer_name.upper()}:")
        for rarity, row in frame.iterrows():
            print(
                f"    {rarity}: {row['actual']:.4f} "
                f"(target: {row['target']:.4f}, diff: {row['diff']:.4f})"
            )
        print(f"  Max difference: {frame['diff'].max():.4f}")
        print(f"  Chi-square p-value: {frame.attrs['p_value']:.4f}")


def generate(args) -> int:
    print("Checking assets...")
    config = load_config(args.config)
    catalog = load_assets(config, args.layer_directory)
    print("✅ Assets validated successfully!\n")

    total_combinations = get_total_combinations(config, catalog)
    print(f"You can create up to {total_combinations} distinct collectibles\n")

    print(f"Generating {args.limit} collectibles...")
    collectibles = generate_collectibles(
        config,
        catalog,
        args.limit,
        seed=args.seed,
        workers=args.workers,
        unique=args.unique,
    )
    output = save_collectibles(collectibles, args.output)
    print(f"Collectibles written to {output}")

    metadata_df = collectibles_to_dataframe(collectibles, config.type_names())
    metadata_path = export_metadata_csv(metadata_df, output.with_name("metadata.csv"))
    print(f"Metadata table written to {metadata_path}")

    print("\n=== Rarity Statistics ===")
    rarity_df = collectibles_to_dataframe(
        collectibles, config.type_names(), rarity=True
    )
    generate_rarity_stats(rarity_df, config)
    return 0


def images(args) -> int:
    config = load_config(args.config)
    if config.image_size is None:
        raise ConfigurationError("imageSize is required to create images")
    collectibles = load_collectibles(args.source)
    layer_path = args.layer_directory or config.layer_directory

    if args.filter is not None:
        if not any(collectible.id == args.filter for collectible in collectibles):
            print(f"❌ Collectible #{args.filter} not found in {args.source}")
            return 1
        print(f"Creating image for collectible #{args.filter}...")
    else:
        print(f"Creating images for {len(collectibles)} collectibles...")
    failures = create_images(
        collectibles,
        layer_path,
        args.output_directory,
        config.image_size.as_tuple(),
        workers=args.workers,
        only_id=args.filter,
        fail_fast=args.fail_fast,
    )
    if failures:
        print(f"❌ {len(failures)} images could not be created")
        return 1
    print(f"✅ Images written to {args.output_directory}")
    return 0


def metadata(args) -> int:
    config = load_config(args.config)
    collectibles = load_collectibles(args.source)
    if args.unreveal:
        metadata_dir = generate_json_metadata(
            collectibles,
            config.metadata,
            args.output_directory,
            unrevealed_image=args.image_path,
        )
    else:
        metadata_dir = generate_json_metadata(
            collectibles,
            config.metadata,
            args.output_directory,
            image_url_prefix=args.image_path,
        )
    print(f"✅ Metadata generated in {metadata_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nft", description="Generate layered collectible images and metadata"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("generate", help="Generate collectibles")
    p.add_argument(
        "-c", "--config", default="config.json", help="path to configuration file"
    )
    p.add_argument(
        "-n", "--limit", type=int, default=10, help="number of collectibles to create"
    )
    p.add_argument("-o", "--output", default=str(COLLECTIBLES_PATH), help="output file")
    p.add_argument(
        "-l", "--layer-directory", help="layer directory (overrides configuration)"
    )
    p.add_argument("--seed", type=int, help="random seed")
    p.add_argument("--workers", type=int, default=1, help="number of worker threads")
    p.add_argument(
        "--unique", action="store_true", help="redraw duplicate combinations"
    )
    p.set_defaults(func=generate)

    p = subparsers.add_parser("create-images", help="Create collectible images")
    p.add_argument(
        "-c", "--config", default="config.json", help="path to configuration file"
    )
    p.add_argument(
        "-s",
        "--source",
        default=str(COLLECTIBLES_PATH),
        help="generated collectibles file",
    )
    p.add_argument(
        "-o", "--output-directory", default=str(IMAGES_PATH), help="output directory"
    )
    p.add_argument(
        "-l", "--layer-directory", help="layer directory (overrides configuration)"
    )
    p.add_argument(
        "-f", "--filter", type=int, help="only create the image of this collectible id"
    )
    p.add_argument("--workers", type=int, default=1, help="number of worker threads")
    p.add_argument(
        "--fail-fast", action="store_true", help="stop at the first image error"
    )
    p.set_defaults(func=images)

    p = subparsers.add_parser("create-metadata", help="Create metadata")
    p.add_argument(
        "-c", "--config", default="config.json", help="path to configuration file"
    )
    p.add_argument(
        "-s",
        "--source",
        default=str(COLLECTIBLES_PATH),
        help="generated collectibles file",
    )
    p.add_argument(
        "-u", "--unreveal", action="store_true", help="write pre-reveal metadata"
    )
    p.add_argument(
        "-p",
        "--image-path",
        required=True,
        help="unrevealed image with --unreveal, otherwise image path prefix",
    )
    p.add_argument(
        "-o", "--output-directory", default=str(METADATA_PATH), help="output directory"
    )
    p.set_defaults(func=metadata)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main NFT generation workflow."""
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ConfigurationError, GenerationError, AssetIOError, FileNotFoundError) as e:
        print(f"❌ Error running {args.command}: {e}")
        return 1


# Run the main function
if __name__ == "__main__":
    sys.exit(main())
