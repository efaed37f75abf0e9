import pytest
from dat_parser import DatParser, DatParseError, EmptyDocumentError, parse, get_section, get_section_at_position


def test_parse_returns_document_and_issues(sample_dat):
    document, issues = parse(sample_dat)
    assert issues == []
    assert document.issues == []
    assert document.source == sample_dat
    assert document.tiles.rows[2] == [38, 1, 42, 1, 38]
    assert document.buildings[0].id == "base1"


def test_absent_sections_are_none():
    document, _ = parse("info{\nrowcount:1;\ncolcount:1;\n}\ntiles{\n1,\n}\n")
    assert document.height is None
    assert document.resources is None
    assert document.objectives is None
    assert document.buildings is None
    assert document.script is None
    assert document.briefing is None


def test_empty_sections_are_not_none():
    document, _ = parse("info{\n}\nbuildings{\n}\nobjectives{\n}\n")
    assert document.buildings == []
    assert document.objectives == []


@pytest.mark.parametrize("text", ["", "   \n\t\n"])
def test_empty_input_is_a_hard_failure(text):
    with pytest.raises(EmptyDocumentError):
        parse(text)
    assert issubclass(EmptyDocumentError, DatParseError)


def test_text_without_sections_is_not_fatal():
    document, issues = parse("just some words\n")
    assert document.sections == {}
    assert issues == []


def test_get_section_is_case_insensitive(sample_dat):
    document, _ = parse(sample_dat)
    assert get_section(document, "TILES") is document.sections["tiles"]
    assert get_section(document, "Info").name == "info"
    assert get_section(document, "lavaspread") is None


def test_section_at_position_covers_every_line(sample_dat):
    document, _ = parse(sample_dat)
    for section in document.sections.values():
        for line in range(section.start_line, section.end_line + 1):
            assert get_section_at_position(document, line) is section


def test_section_at_position_between_sections():
    text = "info{\nrowcount:1;\n}\n\n\ntiles{\n1,\n}\n"
    document, _ = parse(text)
    assert get_section_at_position(document, 3) is None
    assert get_section_at_position(document, 4) is None
    assert get_section_at_position(document, 5).name == "tiles"
    assert get_section_at_position(document, 100) is None


def test_section_order_does_not_change_content(sample_dat):
    document, _ = parse(sample_dat)
    blocks = []
    for section in document.sections.values():
        lines = sample_dat.split("\n")[section.start_line:section.end_line + 1]
        blocks.append("\n".join(lines))
    reordered_text = "\n".join(reversed(blocks)) + "\n"
    reordered, issues = parse(reordered_text)
    assert issues == []
    assert reordered.semantic_content() == document.semantic_content()
    assert reordered.sections["info"].start_line != document.sections["info"].start_line


def test_broken_section_does_not_hide_others(sample_dat):
    broken = sample_dat.replace("objectives{\nresources: 5,0,0\n}", "objectives{\nresources: 5,0,0\n")
    document, issues = parse(broken)
    malformed = [issue for issue in issues if issue.kind == "malformed-section"]
    assert len(malformed) == 1
    assert malformed[0].section == "objectives"
    assert document.objectives is None
    assert document.info.rowcount == 5
    assert document.tiles.rows[1] == [38, 1, 1, 1, 38]
    assert document.buildings[0].type_name == "BuildingToolStore_C"
    assert document.script.event_names() == ["Tick", "Done"]


def test_verbose_logging(capsys):
    parser = DatParser("info{\nrowcount:x;\n}\n", verbose=True)
    parser.parse()
    out = capsys.readouterr().out
    assert "[DEBUG]" in out
    assert "[ERROR] line 2:" in out


def test_quiet_by_default(capsys):
    DatParser("info{\nrowcount:x;\n}\n").parse()
    assert capsys.readouterr().out == ""
