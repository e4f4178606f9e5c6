import pathlib
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError
from progressbar import progressbar

from errors import AssetIOError
from selector import Attribute, Collectible

TRANSPARENT = (0, 0, 0, 0)


def trait_path(layer_path: pathlib.Path, attribute: Attribute) -> pathlib.Path:
    """Location of the layer image of an attribute: type/rarity/file."""
    layer_path = pathlib.Path(layer_path)
    return layer_path / attribute.name / attribute.rarity / attribute.value


def load_layer(filepath: pathlib.Path, size: Tuple[int, int]) -> Image.Image:
    """Open a layer as RGBA on a canvas-sized transparent frame.

    The layer keeps its native pixel size and sits at (0, 0); anything
    outside the canvas is clipped.
    """
    with Image.open(filepath) as img:
        img = img.convert("RGBA")
    if img.size == size:
        return img
    frame = Image.new("RGBA", size, TRANSPARENT)
    frame.paste(img, (0, 0))
    return frame


def generate_single_image(
    layers: Sequence[Image.Image], size: Tuple[int, int]
) -> Image.Image:
    """Stack canvas-sized RGBA layers in order, later layers on top."""
    canvas = Image.new("RGBA", size, TRANSPARENT)
    for layer in layers:
        canvas = Image.alpha_composite(canvas, layer)
    return canvas


def render_collectible(
    collectible: Collectible, layer_path: pathlib.Path, size: Tuple[int, int]
) -> Image.Image:
    """Render one collectible, raising AssetIOError on a missing or bad layer."""
    layers = []
    for attribute in collectible.attributes:
        filepath = trait_path(layer_path, attribute)
        try:
            layer = load_layer(filepath, size)
        except FileNotFoundError as e:
            raise AssetIOError(collectible.id, filepath, "file not found") from e
        except (UnidentifiedImageError, OSError) as e:
            raise AssetIOError(collectible.id, filepath, str(e)) from e
        layers.append(layer)
    return generate_single_image(layers, size)


def save_collectible_image(
    collectible: Collectible,
    layer_path: pathlib.Path,
    images_dir: pathlib.Path,
    size: Tuple[int, int],
) -> pathlib.Path:
    output_filename = images_dir / f"{collectible.id}.png"
    render_collectible(collectible, layer_path, size).save(output_filename)
    return output_filename


def create_images(
    collectibles: Sequence[Collectible],
    layer_path,
    images_dir,
    size: Tuple[int, int],
    workers: int = 1,
    only_id: Optional[int] = None,
    fail_fast: bool = False,
) -> List[AssetIOError]:
    """Render ``<id>.png`` for every collectible.

    A collectible whose layers cannot be loaded is skipped and its error is
    returned; the rest of the batch is still rendered. With ``fail_fast``
    the first error is raised instead.
    """
    layer_path = pathlib.Path(layer_path)
    images_dir = pathlib.Path(images_dir)
    images_dir.mkdir(parents=True, exist_ok=True)

    if only_id is not None:
        collectibles = [c for c in collectibles if c.id == only_id]
    if not collectibles:
        return []

    def render(collectible: Collectible) -> Optional[AssetIOError]:
        try:
            save_collectible_image(collectible, layer_path, images_dir, size)
        except AssetIOError as e:
            if fail_fast:
                raise
            return e
        return None

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            rendered = executor.map(render, collectibles)
            results = list(progressbar(rendered, max_value=len(collectibles)))
    else:
        results = [render(collectible) for collectible in progressbar(collectibles)]

    failures = [e for e in results if e is not None]
    for failure in failures:
        print(f"Error creating image: {failure}")
    return failures
