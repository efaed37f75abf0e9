from dat_parser import DatParser
from script_parser import condition_identifiers


def parse_script(body):
    parser = DatParser("script{\n" + body + "}\n")
    document = parser.parse()
    return document.script, parser


def test_sample_script(sample_dat):
    document = DatParser(sample_dat).parse()
    script = document.script
    assert list(script.variables) == ["Counter", "WinMsg"]
    assert script.variables["Counter"].value == 0
    assert script.variables["WinMsg"].value == "Well done"
    assert script.event_names() == ["Tick", "Done"]
    assert script.get_event("Done").condition == "Counter>=3"
    assert script.get_event("Tick").condition is None
    assert [(c.kind, c.name, c.parameters) for c in script.get_event("Done").commands] == [
        ("command", "msg", "WinMsg"),
        ("command", "win", ""),
    ]
    assert [(c.kind, c.name, c.parameters) for c in script.get_event("Tick").commands] == [
        ("assign", "Counter", "+=1"),
    ]
    assert len(script.triggers) == 1
    assert script.triggers[0].kind == "when"
    assert script.triggers[0].targets == ["Done"]


def test_variable_types():
    script, parser = parse_script(
        "int a=5\nfloat b=1.5\nbool c=true\nstring d=\"hi there\"\narrow e=green\ntimer t=10,5,15,Tick\n"
        "\nTick::\nwait:1;\n")
    assert script.variables["a"].value == 5
    assert script.variables["b"].value == 1.5
    assert script.variables["c"].value is True
    assert script.variables["d"].value == "hi there"
    assert script.variables["e"].value == "green"
    assert script.variables["t"].raw_value == "10,5,15,Tick"
    timer_refs = [r for r in script.references if r.kind == "event"]
    assert [(r.name, r.declared) for r in timer_refs] == [("Tick", True)]
    assert parser.issues == []


def test_invalid_variable_value_is_a_warning():
    script, parser = parse_script("int a=lots\n")
    assert script.variables["a"].value == "lots"
    assert [w.kind for w in parser.warnings] == ["invalid-variable-value"]


def test_chain_ends_at_blank_line():
    script, parser = parse_script("Start::\nmsg:One;\n\nmsg:Two;\n")
    assert len(script.get_event("Start").commands) == 1
    assert [w.kind for w in parser.warnings] == ["malformed-script-line"]
    assert parser.warnings[0].line == 4


def test_inline_statements_and_calls():
    script, _ = parse_script("Start::pan:5,5;Next;\nNext::\nshake:2;\n")
    commands = script.get_event("Start").commands
    assert [(c.kind, c.name) for c in commands] == [("command", "pan"), ("call", "Next")]
    assert script.get_event("Next").commands[0].name == "shake"


def test_conditional_statement():
    script, _ = parse_script("int x=0\n\nStart::\n((x>1))[Yes][No];\n\nYes::\nwin:;\n\nNo::\nlose:;\n")
    command = script.get_event("Start").commands[0]
    assert command.kind == "conditional"
    assert command.name == "x>1"
    assert command.parameters == "Yes No"
    event_refs = [r.name for r in script.references if r.kind == "event"]
    assert event_refs == ["Yes", "No"]


def test_single_paren_conditional_calls_an_event():
    script, parser = parse_script("int a=0\n\nGo::\n(a>1)Done;\n\nDone::\nwin:;\n")
    command = script.get_event("Go").commands[0]
    assert (command.kind, command.name, command.parameters) == ("conditional", "a>1", "Done")
    assert [(r.name, r.forward, r.declared) for r in script.references if r.kind == "event"] == [("Done", True, True)]
    assert parser.issues == []


def test_if_trigger_with_else():
    script, _ = parse_script("if(crystals>=10)[Rich][Poor]\nRich::\nwin:;\n\nPoor::\nlose:;\n")
    trigger = script.triggers[0]
    assert trigger.kind == "if"
    assert trigger.condition == "crystals>=10"
    assert trigger.targets == ["Rich", "Poor"]
    assert script.get_event("Rich").condition == "crystals>=10"


def test_malformed_trigger_is_a_warning():
    script, parser = parse_script("when(x>1[Broken]\n")
    assert script.triggers == []
    assert [w.kind for w in parser.warnings] == ["malformed-trigger"]


def test_forward_and_undeclared_references():
    script, _ = parse_script("when(late>1)[Go]\nGo::\nghost=late+1;\n\nint late=0\n")
    variable_refs = [(r.name, r.forward, r.declared) for r in script.references if r.kind == "variable"]
    assert ("late", True, True) in variable_refs
    assert ("ghost", False, False) in variable_refs


def test_reference_positions_are_absolute():
    script, _ = parse_script("int x=0\nwhen(x>1)[Go]\n")
    reference = [r for r in script.references if r.kind == "variable"][0]
    assert reference.line == 2
    assert reference.column == 5
    event_reference = [r for r in script.references if r.kind == "event"][0]
    assert event_reference.column == 10
    assert event_reference.declared is False


def test_condition_identifiers_skip_macros_keywords_and_classes():
    names = [name for name, _ in condition_identifiers(
        'buildings.BuildingToolStore_C>0 and timer1.expired and score>=2 and "quoted"==msg')]
    assert names == ["timer1", "score", "msg"]
