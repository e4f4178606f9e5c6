"""Tests for the command line workflow."""
import json

import pandas as pd
import pytest

from nft import get_total_combinations, main, rarity_stats
from selector import Attribute, Collectible, save_collectibles

BLUE_BACKGROUND = Attribute("background", "common", "blue.png")
RED_BACKGROUND = Attribute("background", "common", "red.png")
CAP = Attribute("hat", "common", "cap.png")


@pytest.fixture
def source(tmp_path):
    return save_collectibles(
        [Collectible(1, (BLUE_BACKGROUND, CAP)), Collectible(2, (RED_BACKGROUND,))],
        tmp_path / "collectibles.json",
    )


def test_total_combinations(config, catalog):
    assert get_total_combinations(config, catalog) == 3 * 2


def test_total_combinations_counts_empty_option(raw_config, catalog):
    from config import parse_config

    raw_config["types"][1]["chance"] = 50
    assert get_total_combinations(parse_config(raw_config), catalog) == 3 * 3


def test_rarity_stats(config):
    rarity_df = pd.DataFrame(
        {
            "background": ["common"] * 10,
            "hat": ["common"] * 7 + ["rare"] * 2 + ["none"],
        },
        index=range(1, 11),
    )
    stats = rarity_stats(rarity_df, config)
    hat = stats["hat"]
    assert hat.loc["common", "target"] == pytest.approx(0.7)
    assert hat.loc["rare", "actual"] == pytest.approx(2 / 9)
    assert 0 < hat.attrs["p_value"] <= 1
    # a single bucket has nothing to test
    assert pd.isna(stats["background"].attrs["p_value"])


def test_generate_command(tmp_path, config_file):
    output = tmp_path / "build" / "collectibles.json"
    code = main(
        ["generate", "-c", str(config_file), "-n", "20", "-o", str(output)]
        + ["--seed", "1"]
    )
    assert code == 0
    collectibles = json.loads(output.read_text())
    assert [c["id"] for c in collectibles] == list(range(1, 21))
    df = pd.read_csv(output.with_name("metadata.csv"), index_col="id")
    assert list(df.columns) == ["background", "hat"]
    assert len(df) == 20


def test_generate_rejects_invalid_layers(tmp_path, raw_config):
    raw_config["traits"] = [{"type": "hat", "name": "tiara.png"}]
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(raw_config))
    output = tmp_path / "collectibles.json"
    assert main(["generate", "-c", str(config_file), "-o", str(output)]) == 1
    assert not output.exists()


@pytest.mark.parametrize(
    "change",
    [
        lambda raw: raw.update(metadata="Bobiboum"),
        lambda raw: raw["types"][1].update(
            affinities=[{"type": "background", "exist": "false"}]
        ),
    ],
)
def test_generate_rejects_wrongly_shaped_config(tmp_path, raw_config, capsys, change):
    change(raw_config)
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(raw_config))
    output = tmp_path / "collectibles.json"
    assert main(["generate", "-c", str(config_file), "-o", str(output)]) == 1
    assert "❌ Error running generate" in capsys.readouterr().out
    assert not output.exists()


def test_missing_config_returns_error(tmp_path, capsys):
    assert main(["generate", "-c", str(tmp_path / "missing.json")]) == 1
    assert "Configuration file not found" in capsys.readouterr().out


def test_create_images_command(tmp_path, config_file, source):
    images_dir = tmp_path / "images"
    code = main(
        ["create-images", "-c", str(config_file), "-s", str(source)]
        + ["-o", str(images_dir)]
    )
    assert code == 0
    assert sorted(p.name for p in images_dir.iterdir()) == ["1.png", "2.png"]


def test_create_images_filter(tmp_path, config_file, source):
    images_dir = tmp_path / "images"
    code = main(
        ["create-images", "-c", str(config_file), "-s", str(source)]
        + ["-o", str(images_dir), "--filter", "2"]
    )
    assert code == 0
    assert [p.name for p in images_dir.iterdir()] == ["2.png"]


def test_create_images_filter_unknown_id(tmp_path, config_file, source, capsys):
    images_dir = tmp_path / "images"
    code = main(
        ["create-images", "-c", str(config_file), "-s", str(source)]
        + ["-o", str(images_dir), "--filter", "42"]
    )
    assert code == 1
    out = capsys.readouterr().out
    assert "Collectible #42 not found" in out
    assert "Images written" not in out
    assert not images_dir.exists()


def test_create_images_reports_failures(tmp_path, config_file):
    source = save_collectibles(
        [Collectible(1, (Attribute("hat", "rare", "tiara.png"),))],
        tmp_path / "collectibles.json",
    )
    code = main(
        ["create-images", "-c", str(config_file), "-s", str(source)]
        + ["-o", str(tmp_path / "images")]
    )
    assert code == 1


def test_create_metadata_command(tmp_path, config_file, source):
    out = tmp_path / "metadata"
    code = main(
        ["create-metadata", "-c", str(config_file), "-s", str(source)]
        + ["-p", "ipfs://cid", "-o", str(out)]
    )
    assert code == 0
    record = json.loads((out / "1").read_text())
    assert record["name"] == "Bobiboum #1"
    assert record["image"] == "ipfs://cid/1.png"


def test_create_pre_reveal_metadata_command(tmp_path, config_file, source):
    out = tmp_path / "metadata"
    code = main(
        ["create-metadata", "-c", str(config_file), "-s", str(source)]
        + ["-u", "-p", "ipfs://hidden.png", "-o", str(out)]
    )
    assert code == 0
    assert "attributes" not in json.loads((out / "1").read_text())
