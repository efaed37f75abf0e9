import pytest
from tile_catalog import DEFAULT_TILE_CATALOG, TileCatalog, TileDefinition, REINFORCED_OFFSET


def test_known_codes_have_gaps():
    catalog = DEFAULT_TILE_CATALOG
    for code in (1, 14, 26, 38, 42, 46, 53, 58, 60, 65, 76, 103, 112, 114, 115, 124, 126, 141, 143, 158, 160, 162, 163, 165):
        assert catalog.is_known(code), code
    for code in (0, 54, 55, 56, 57, 59, 66, 75, 104, 111, 113, 142, 159, 166):
        assert not catalog.is_known(code), code


def test_slug_hole_variant_and_undocumented_codes():
    catalog = DEFAULT_TILE_CATALOG
    variant = catalog.get(112)
    assert variant.category == "hazard"
    assert catalog.is_drillable(112)
    assert not variant.is_reinforced
    assert catalog.base_code(112) == 112
    assert [catalog.get(code).category for code in (127, 135, 150, 161)] == ["hazard", "special", "wall", "rubble"]
    assert not catalog.is_walkable(150)
    assert catalog.move_cost(150, can_mine=True) is None


def test_walkable_and_drillable():
    catalog = DEFAULT_TILE_CATALOG
    assert catalog.is_walkable(1)
    assert catalog.is_walkable(14)
    assert not catalog.is_walkable(38)
    assert not catalog.is_drillable(38)
    assert catalog.is_drillable(30)
    assert catalog.is_drillable(42)
    assert not catalog.is_walkable(6)
    assert not catalog.is_walkable(999)


def test_move_cost_depends_on_mining():
    catalog = DEFAULT_TILE_CATALOG
    assert catalog.move_cost(1) == 1
    assert catalog.move_cost(30) is None
    assert catalog.move_cost(30, can_mine=True) == 2
    assert catalog.move_cost(34, can_mine=True) == 6
    assert catalog.move_cost(38, can_mine=True) is None
    assert catalog.move_cost(999, can_mine=True) is None


def test_reinforced_variants_cost_double_and_map_back():
    catalog = DEFAULT_TILE_CATALOG
    for base in range(26, 54):
        reinforced = catalog.get(base + REINFORCED_OFFSET)
        assert reinforced.is_reinforced
        assert catalog.base_code(base + REINFORCED_OFFSET) == base
        if catalog.get(base).drill_cost is not None:
            assert reinforced.drill_cost == catalog.get(base).drill_cost * 2
    assert catalog.base_code(114) == 64
    assert catalog.base_code(1) == 1


def test_resource_codes():
    catalog = DEFAULT_TILE_CATALOG
    assert catalog.get(42).resource == "crystal"
    assert catalog.get(96).resource == "ore"
    assert catalog.is_resource(45)
    assert catalog.is_resource(92)
    # Recharge seams are not collectable resources
    assert not catalog.is_resource(50)


def test_custom_catalog_is_read_only():
    catalog = TileCatalog([TileDefinition(7, "Floor", "ground", True, False)])
    assert len(catalog) == 1
    assert catalog.codes() == [7]
    assert 7 in catalog
    with pytest.raises(TypeError):
        catalog._table[8] = None
