import pytest
from dat_model import (
    Coordinates,
    ResourceObjective,
    BuildingObjective,
    DiscoverTileObjective,
    VariableObjective,
    FindBuildingObjective,
    FindMinerObjective,
)
from dat_parser import DatParser


def parse_text(text):
    parser = DatParser(text)
    return parser.parse(), parser


def test_info_values_are_typed(sample_dat):
    document, _ = parse_text(sample_dat)
    info = document.info
    assert info.rowcount == 5
    assert info.colcount == 5
    assert info.get("biome") == "rock"
    assert info.get("creator") == "Tester"
    assert info.get("oxygen") == 1000.0
    assert info.get("erosioninitialwaittime") == 10.0
    assert isinstance(info.get("camerapos"), Coordinates)
    assert info.get("camerapos").translation == (750.0, 750.0, 0.0)
    assert info.key_lines["rowcount"] == 4


def test_info_semicolon_separated_and_unknown_keys():
    document, _ = parse_text("info{rowcount:2;colcount:3;futurefield:abc}\n")
    assert document.info.rowcount == 2
    assert document.info.colcount == 3
    assert document.info.get("futurefield") == "abc"


def test_info_invalid_number_is_omitted():
    document, parser = parse_text("info{\nrowcount:abc;\ncolcount:3;\n}\n")
    assert "rowcount" not in document.info
    assert document.info.colcount == 3
    assert len(parser.errors) == 1
    assert parser.errors[0].kind == "invalid-number"
    assert parser.errors[0].line == 1


def test_grid_rows_and_positions():
    document, _ = parse_text("tiles{\n1,2,3,\n4,5,\n}\n")
    tiles = document.tiles
    assert tiles.rows == [[1, 2, 3], [4, 5]]
    assert tiles.row_lines == [1, 2]
    assert tiles.cell_columns[0] == [0, 2, 4]
    assert tiles.width == 3


def test_grid_invalid_cell_is_reported_and_skipped():
    document, parser = parse_text("height{\n1,x,3,\n}\n")
    assert document.height.rows == [[1, 3]]
    assert parser.errors[0].kind == "invalid-number"
    assert parser.errors[0].column == 2


def test_resources_split_on_labels():
    document, parser = parse_text("resources{\n9,9,\ncrystals:\n1,0,\n0,2,\nore:\n0,3,\n}\n")
    assert set(document.resources) == {"crystals", "ore"}
    assert document.resources["crystals"].rows == [[1, 0], [0, 2]]
    assert document.resources["ore"].rows == [[0, 3]]
    assert [w.kind for w in parser.warnings] == ["orphan-resource-row"]


def test_objectives_dispatch_on_keyword():
    text = ("objectives{\n"
            "resources: 10,5,0\n"
            "building:BuildingPowerStation_C\n"
            "discovertile:3,4/Find the cave\n"
            "variable:Counter>2/Count to three\n"
            "findbuilding:7,8\n"
            "findminer:2\n"
            "}\n")
    document, parser = parse_text(text)
    assert document.objectives == [
        ResourceObjective(10, 5, 0),
        BuildingObjective("BuildingPowerStation_C"),
        DiscoverTileObjective(3, 4, "Find the cave"),
        VariableObjective("Counter>2", "Count to three"),
        FindBuildingObjective(7, 8),
        FindMinerObjective("2"),
    ]
    assert [o.line for o in document.objectives] == [1, 2, 3, 4, 5, 6]
    assert parser.issues == []


def test_unknown_and_malformed_objectives_are_warnings():
    document, parser = parse_text("objectives{\nteleport:1\ndiscovertile:nope\nresources:1,2,3\n}\n")
    assert document.objectives == [ResourceObjective(1, 2, 3)]
    assert [w.kind for w in parser.warnings] == ["unknown-objective", "malformed-objective"]
    assert parser.errors == []


def test_entity_with_properties():
    text = ("vehicles{\n"
            "VehicleHoverScout_C,Translation: X=900.000 Y=300.000 Z=10.000 Rotation: P=0.000000 Y=90.000000 "
            "R=0.000000 Scale X=1.000 Y=1.000 Z=1.000,ID=scout,Essential=True\n"
            "}\n")
    document, parser = parse_text(text)
    vehicle = document.vehicles[0]
    assert vehicle.type_name == "VehicleHoverScout_C"
    assert vehicle.id == "scout"
    assert vehicle.properties == {"ID": "scout", "Essential": "True"}
    assert vehicle.coordinates.translation == (900.0, 300.0, 10.0)
    assert vehicle.coordinates.rotation == (0.0, 90.0, 0.0)
    assert vehicle.coordinates.tile_position() == (1, 3)
    assert vehicle.collection == "vehicles"
    assert vehicle.line == 1
    assert parser.issues == []


def test_malformed_coordinates_default_to_origin():
    text = "creatures{\nCreatureRockMonster_C,Translation: X=abc Y=1 Z=2,ID=rm\n}\n"
    document, parser = parse_text(text)
    creature = document.creatures[0]
    assert creature.coordinates == Coordinates()
    assert creature.id == "rm"
    assert [w.kind for w in parser.warnings] == ["malformed-coordinates"]


def test_entity_without_coordinates_is_kept():
    document, parser = parse_text("miners{\nPilot_C,ID=0\n}\n")
    assert len(document.miners) == 1
    assert document.miners[0].coordinates == Coordinates()
    assert parser.warnings[0].kind == "malformed-coordinates"


def test_text_sections_are_trimmed(sample_dat):
    document, _ = parse_text(sample_dat + "briefing{\n  Dig deep.\n}\n")
    assert document.comments == "A small test level"
    assert document.briefing == "Dig deep."
    assert document.briefingsuccess is None
