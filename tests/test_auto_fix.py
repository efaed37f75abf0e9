from auto_fix import AutoFixEngine, propose_fix
from dat_parser import parse
from dat_validator import validate
from test_utils import TOOL_STORE_LINE, make_dat

ROOM = [
    [38, 38, 38],
    [38, 1, 38],
    [38, 38, 38],
]


def load(text):
    document, _ = parse(text)
    return document, validate(document)


def first(diagnostics, code):
    return next(d for d in diagnostics if d.code == code)


def test_pad_short_row():
    document, diagnostics = load(make_dat(ROOM).replace("38,1,38,", "38,1,"))
    fixed = propose_fix(document, first(diagnostics, "row-length"))
    assert fixed is not None
    assert fixed.tiles.rows[1] == [38, 1, 1]
    assert "row-length" not in [d.code for d in validate(fixed)]
    assert document.tiles.rows[1] == [38, 1]


def test_pad_short_row_keeps_comments_and_bad_cells():
    text = make_dat(ROOM).replace("38,1,38,\n", "38,1,\n# keep me\n")
    text = text.replace("tiles{\n38,38,38,", "tiles{\n38,38,38,x,")
    document, diagnostics = load(text)
    fixed = propose_fix(document, first(diagnostics, "row-length"))
    assert fixed.source == text.replace("38,1,\n", "38,1,1,\n")
    assert "# keep me" in fixed.source


def test_long_row_is_not_trimmed():
    document, diagnostics = load(make_dat(ROOM).replace("38,1,38,", "38,1,38,38,"))
    assert propose_fix(document, first(diagnostics, "row-length")) is None


def test_pad_resource_row(sample_dat):
    document, diagnostics = load(sample_dat.replace("0,0,5,0,0,", "0,0,5,"))
    diagnostic = first(diagnostics, "row-length")
    assert diagnostic.data["grid"] == "crystals"
    fixed = propose_fix(document, diagnostic)
    assert fixed.resources["crystals"].rows[2] == [0, 0, 5, 0, 0]
    assert fixed.resources["ore"] == document.resources["ore"]
    assert validate(fixed) == []
    assert fixed.source == sample_dat


def test_append_missing_rows():
    document, diagnostics = load(make_dat([[1, 1, 1]] * 3).replace("rowcount:3;", "rowcount:4;"))
    tiles_diagnostic = next(d for d in diagnostics if d.code == "row-count" and d.data["grid"] == "tiles")
    fixed = propose_fix(document, tiles_diagnostic)
    assert len(fixed.tiles) == 4
    assert fixed.tiles.rows[3] == [1, 1, 1]
    assert fixed.source == document.source.replace("1,1,1,\n}\nheight", "1,1,1,\n1,1,1,\n}\nheight")
    remaining = [d.data["grid"] for d in validate(fixed) if d.code == "row-count"]
    assert remaining == ["height"]

    height_diagnostic = first(validate(fixed), "row-count")
    fixed_again = propose_fix(fixed, height_diagnostic)
    assert fixed_again.height.rows[3] == [0, 0, 0]
    assert "row-count" not in [d.code for d in validate(fixed_again)]


def test_append_rows_keeps_comments_inside_the_grid():
    text = make_dat([[1, 1, 1]] * 3).replace("rowcount:3;", "rowcount:4;")
    text = text.replace("tiles{\n1,1,1,\n", "tiles{\n# first row\n1,1,1,\n")
    document, diagnostics = load(text)
    fixed = propose_fix(document, next(d for d in diagnostics if d.code == "row-count" and d.data["grid"] == "tiles"))
    assert fixed.source.startswith(text[:text.index("# first row")] + "# first row\n1,1,1,\n")
    assert fixed.tiles.rows == [[1, 1, 1]] * 4


def test_insert_missing_height():
    document, diagnostics = load(make_dat(ROOM, height=False))
    fixed = propose_fix(document, first(diagnostics, "missing-section"))
    assert fixed.height.rows == [[0, 0, 0]] * 3
    assert list(fixed.sections) == ["info", "tiles", "height", "buildings"]
    assert validate(fixed) == []
    assert document.height is None


def test_missing_required_section_is_not_fixed():
    document, diagnostics = load("info{\nrowcount:1;\ncolcount:1;\n}\n")
    tiles_missing = next(d for d in diagnostics if d.code == "missing-section" and d.data["section"] == "tiles")
    assert propose_fix(document, tiles_missing) is None


def test_rename_duplicate_id():
    document, diagnostics = load(make_dat(ROOM, buildings=[TOOL_STORE_LINE + ",ID=base1",
                                                           TOOL_STORE_LINE + ",ID=base1"]))
    fixed = propose_fix(document, first(diagnostics, "duplicate-id"))
    assert [b.id for b in fixed.buildings] == ["base1", "base1_2"]
    assert fixed.buildings[1].line == 16
    assert fixed.buildings[1].coordinates == document.buildings[1].coordinates
    assert validate(fixed) == []


def test_rename_edits_only_the_id_on_the_renamed_line():
    precise = TOOL_STORE_LINE.replace("X=450.000", "X=450.1234")
    buildings = [precise + ",ID=base1", TOOL_STORE_LINE + ",ID=base1", "BuildingPowerStation_C,Level=2,ID=ps"]
    text = make_dat(ROOM, buildings=buildings)
    document, diagnostics = load(text)
    fixed = propose_fix(document, first(diagnostics, "duplicate-id"))
    before, after = text.split("\n"), fixed.source.split("\n")
    assert [index for index, line in enumerate(before) if line != after[index]] == [16]
    assert after[16] == TOOL_STORE_LINE + ",ID=base1_2"
    assert fixed.buildings[0].coordinates.translation[0] == 450.1234
    assert fixed.buildings[2].properties == {"Level": "2", "ID": "ps"}


def test_rename_skips_taken_suffixes():
    buildings = [TOOL_STORE_LINE + ",ID=base1", TOOL_STORE_LINE + ",ID=base1_2", TOOL_STORE_LINE + ",ID=base1"]
    document, diagnostics = load(make_dat(ROOM, buildings=buildings))
    fixed = propose_fix(document, first(diagnostics, "duplicate-id"))
    assert [b.id for b in fixed.buildings] == ["base1", "base1_2", "base1_3"]


def test_fixing_twice_changes_nothing_more():
    document, diagnostics = load(make_dat(ROOM, buildings=[TOOL_STORE_LINE + ",ID=base1",
                                                           TOOL_STORE_LINE + ",ID=base1"]))
    diagnostic = first(diagnostics, "duplicate-id")
    fixed = propose_fix(document, diagnostic)
    again = propose_fix(fixed, diagnostic)
    assert again.semantic_content() == fixed.semantic_content()


def test_no_fix_for_missing_tool_store():
    document, diagnostics = load(make_dat(ROOM, buildings=[]))
    assert propose_fix(document, first(diagnostics, "no-tool-store")) is None


def test_input_document_is_untouched():
    text = make_dat(ROOM, height=False).replace("38,1,38,", "38,1,")
    document, diagnostics = load(text)
    before = document.semantic_content()
    for diagnostic in diagnostics:
        propose_fix(document, diagnostic)
    assert document.source == text
    assert document.semantic_content() == before


def test_engine_only_uses_registered_fixes(capsys):
    document, diagnostics = load(make_dat(ROOM).replace("38,1,38,", "38,1,"))
    engine = AutoFixEngine(fixes=[], verbose=True)
    assert engine.propose_fix(document, first(diagnostics, "row-length")) is None
    assert "No automatic fix for 'row-length'" in capsys.readouterr().out
