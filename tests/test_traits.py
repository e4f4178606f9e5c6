import pytest

from helpers import write_layer
from traits import Trait, TraitCatalog, parse_trait_filename, scan_layers


@pytest.mark.parametrize(
    "file_name, name, labels",
    [
        ("cap.png", "cap", set()),
        ("cap__red.png", "cap", {"red"}),
        ("cap__red_summer.png", "cap", {"red", "summer"}),
        ("cap__red__summer.png", "cap", {"red", "summer"}),
        ("big_cap.png", "big_cap", set()),
        ("cap__.png", "cap", set()),
    ],
)
def test_parse_trait_filename(file_name, name, labels):
    assert parse_trait_filename(file_name) == (name, frozenset(labels))


def test_scan_layers(catalog):
    assert catalog.trait_types() == ["background", "hat"]
    assert catalog.rarities_for("hat") == ["common", "rare"]
    assert [t.file_name for t in catalog.traits_for("background", "common")] == [
        "blue.png",
        "green.png",
        "red.png",
    ]
    assert len(catalog) == 5
    assert "hat" in catalog
    assert "shoes" not in catalog


def test_scan_skips_non_images(catalog):
    assert [t.file_name for t in catalog.traits_for("hat", "common")] == ["cap.png"]


def test_scan_parses_labels(tmp_path):
    write_layer(tmp_path / "eyes" / "rare" / "laser__red_angry.png", (255, 0, 0, 255))
    trait = scan_layers(tmp_path).traits_for("eyes", "rare")[0]
    assert trait == Trait(
        file_name="laser__red_angry.png",
        name="laser",
        type="eyes",
        rarity="rare",
        labels=frozenset({"red", "angry"}),
    )


def test_traits_for_unknown_is_empty(catalog):
    assert catalog.traits_for("hat", "legendary") == ()
    assert catalog.traits_for("shoes", "common") == ()


def test_find(catalog):
    assert catalog.find("hat", "crown.png").rarity == "rare"
    assert catalog.find("hat", "blue.png") is None


def test_scan_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_layers(tmp_path / "missing")


def test_from_traits():
    catalog = TraitCatalog.from_traits(
        [Trait("a.png", "a", "hat", "common"), Trait("b.png", "b", "hat", "rare")]
    )
    assert catalog.rarities_for("hat") == ["common", "rare"]
    assert catalog.traits_for("hat", "rare")[0].name == "b"
