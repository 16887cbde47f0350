"""Tests for the built-in pattern catalog."""

import pytest

from custom_components.oelo_lights_zone.catalog import PatternCatalog
from custom_components.oelo_lights_zone.pattern_utils import validate_command_params


@pytest.fixture(scope="module")
def packaged_catalog():
    return PatternCatalog.load()


def test_packaged_catalog_loads(packaged_catalog):
    assert len(packaged_catalog) == 65
    assert packaged_catalog.names() == sorted(packaged_catalog.names())
    assert "Birthdays: Birthday Confetti" in packaged_catalog


def test_packaged_patterns_are_valid(packaged_catalog):
    for name in packaged_catalog.names():
        params = packaged_catalog.command_params(name, 3)
        assert params is not None, name
        assert params["zones"] == "3"
        assert validate_command_params(params), name


def test_command_params_substitutes_zone(packaged_catalog):
    params = packaged_catalog.command_params("American Liberty: Marching with Red White and Blue", 5)

    assert params["patternType"] == "march"
    assert params["zones"] == "5"
    assert params["num_colors"] == "6"
    assert not params["colors"].endswith(",")


def test_find_name_for_type(packaged_catalog):
    assert packaged_catalog.find_name_for_type("march") == "American Liberty: Marching with Red White and Blue"
    assert packaged_catalog.find_name_for_type("river") == "Birthdays: Birthday Confetti"
    assert packaged_catalog.find_name_for_type("spotlight") is None


def test_unknown_name(catalog):
    assert catalog.command_params("Missing", 1) is None
    assert catalog.template("Missing") is None


def test_catalog_is_read_only(catalog):
    with pytest.raises(TypeError):
        catalog._templates["New"] = "patternType=off"
    assert "New" not in catalog
