"""Pytest configuration and fixtures."""
import json

import pytest

from config import parse_config
from helpers import BACKGROUNDS, HATS, SIZE, write_layer
from traits import scan_layers


@pytest.fixture
def layer_dir(tmp_path):
    """Two trait types: three backgrounds, a common and a rare hat."""
    root = tmp_path / "layers"
    for name, color in BACKGROUNDS.items():
        write_layer(root / "background" / "common" / name, color)
    for (rarity, name), color in HATS.items():
        write_layer(root / "hat" / rarity / name, color, rows=1)
    (root / "hat" / "common" / "notes.txt").write_text("not a layer")
    return root


@pytest.fixture
def raw_config(layer_dir):
    return {
        "rarities": [{"name": "common", "chance": 70}, {"name": "rare", "chance": 30}],
        "metadata": {"name": "Bobiboum #", "description": "Test collection"},
        "imageSize": {"width": SIZE[0], "height": SIZE[1]},
        "layerDirectory": str(layer_dir),
        "types": [
            {"name": "background", "rarities": [{"name": "common", "chance": 100}]},
            {"name": "hat"},
        ],
    }


@pytest.fixture
def config(raw_config):
    return parse_config(raw_config)


@pytest.fixture
def catalog(layer_dir):
    return scan_layers(layer_dir)


@pytest.fixture
def config_file(tmp_path, raw_config):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(raw_config))
    return path
