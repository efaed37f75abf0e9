"""
Script section parsing helpers for DatParser.

Recognized line shapes:
    type name=value             variable declaration
    Name::[statements]          event chain declaration, runs to the next blank line
    when(condition)[Event]      trigger
    if(condition)[Then][Else]   one-shot trigger
Inside a chain, statements are separated by ';':
    command:parameters, var=expr, ((condition))[Then][Else], (condition)EventName, EventName
"""

import re
from typing import Dict, List, Optional, Tuple

from lark.exceptions import LarkError

from dat_grammar import parse_trigger, parse_conditional
from dat_model import (
    ScriptCommand,
    ScriptDocument,
    ScriptEvent,
    ScriptReference,
    ScriptTrigger,
    ScriptVariable,
    Section,
)

VARIABLE_TYPES = ("int", "float", "bool", "string", "arrow", "timer", "intarray",
                  "building", "vehicle", "creature", "miner")

# (minimum, maximum) parameter count of each command; None means no upper bound
COMMAND_ARITY = {
    "msg": (1, 1), "qmsg": (1, 1), "msgchief": (3, 3), "crystals": (1, 1), "ore": (1, 1),
    "studs": (1, 1), "air": (1, 1), "drain": (1, 1), "place": (3, 3), "drill": (2, 2),
    "placerubble": (3, 3), "heighttrigger": (2, 2), "hiddencavern": (4, 4), "emerge": (5, 5),
    "miners": (3, 3), "pan": (2, 2), "shake": (2, 2), "speed": (1, 1), "resetspeed": (0, 0),
    "showarrow": (3, 3), "hidearrow": (1, 1), "highlight": (3, 3), "highlightarrow": (3, 3),
    "removearrow": (1, 1), "win": (0, 1), "lose": (0, 1), "reset": (0, 0), "resume": (0, 0),
    "objective": (1, 1), "pause": (0, 0), "unpause": (0, 0), "sound": (1, 1), "playsound": (1, 1),
    "wait": (1, 1), "truewait": (1, 1), "heal": (2, 2), "kill": (1, 1), "flee": (3, 3),
    "disable": (1, 1), "enable": (1, 1), "starttimer": (1, 1), "stoptimer": (1, 1),
    "addrandomspawn": (3, 3), "spawncap": (3, 3), "spawnwave": (3, 3), "startrandomspawn": (1, 1),
    "stoprandomspawn": (1, 1), "lastminer": (1, 1), "save": (1, 1), "lastvehicle": (1, 1),
    "savevehicle": (1, 1), "lastbuilding": (1, 1), "savebuilding": (1, 1), "lastcreature": (1, 1),
    "savecreature": (1, 1), "landslide": (0, None),
}
SCRIPT_COMMANDS = frozenset(COMMAND_ARITY)

SCRIPT_MACROS = frozenset([
    "time", "crystals", "ore", "studs", "air", "miners", "vehicles", "buildings", "creatures", "pilot",
])

# Words that may appear in conditions without naming a variable
SCRIPT_KEYWORDS = frozenset([
    "and", "or", "not", "true", "false",
    "init", "time", "drill", "walk", "drive", "change", "laser", "laserhit", "dynamite",
    "sonicblaster", "enter", "exit", "discovertile", "discoverall", "reinforce", "collect",
    "built", "dead", "death", "hover", "click", "new",
])

DECLARATION_RE = re.compile(
    r'^(' + '|'.join(VARIABLE_TYPES) + r')\s+([A-Za-z_]\w*)\s*(?:=\s*(.*?))?\s*;?\s*$')
EVENT_RE = re.compile(r'^([A-Za-z_]\w*)\s*::(.*)$')
TRIGGER_START_RE = re.compile(r'^(when|if)\s*\(')
COMMAND_RE = re.compile(r'^([A-Za-z_]\w*)\s*:(.*)$')
# timer name=delay[,min[,max]][,Event]
TIMER_RE = re.compile(r'^(\d+(?:\.\d+)?)(?:,(\d+(?:\.\d+)?))?(?:,(\d+(?:\.\d+)?))?(?:,(\w+))?$')
ASSIGN_RE = re.compile(r'^([A-Za-z_]\w*)\s*(\+=|-=|\*=|/=|=)\s*(.*)$')
NAME_RE = re.compile(r'^[A-Za-z_]\w*$')
IDENTIFIER_RE = re.compile(r'[A-Za-z_][\w]*(?:\.[A-Za-z_]\w*)*')
QUOTED_RE = re.compile(r'"[^"]*"')
NUMBER_RE = re.compile(r'^-?\d+(\.\d+)?$')


def _blank_strings(text: str) -> str:
    return QUOTED_RE.sub(lambda m: " " * len(m.group(0)), text)


def command_parameters(text: str) -> List[str]:
    """
    Split a command's parameter text. Parameters are separated by ':' when one
    appears outside quotes, otherwise by ','.
    """
    if not text.strip():
        return []
    blanked = _blank_strings(text)
    separator = ":" if ":" in blanked else ","
    parameters, start = [], 0
    for index, char in enumerate(blanked):
        if char == separator:
            parameters.append(text[start:index].strip())
            start = index + 1
    parameters.append(text[start:].strip())
    return parameters


def _split_statements(text: str) -> List[Tuple[int, str]]:
    """Split on ';' outside quotes, returning (offset, statement) pairs."""
    statements = []
    start = 0
    in_quote = False
    for index, char in enumerate(text):
        if char == '"':
            in_quote = not in_quote
        elif char == ';' and not in_quote:
            statements.append((start, text[start:index]))
            start = index + 1
    statements.append((start, text[start:]))
    return [(offset, s) for offset, s in statements if s.strip()]


def condition_identifiers(text: str) -> List[Tuple[str, int]]:
    """
    Names in an expression that could refer to script variables, with their offsets.
    Macros, keywords, quoted strings and game class names (ending in _C) are left out;
    for dotted names only the head is returned.
    """
    names = []
    for match in IDENTIFIER_RE.finditer(_blank_strings(text)):
        start = match.start()
        # Tail of a number such as 1e5
        if start > 0 and (text[start - 1].isdigit() or text[start - 1] == "."):
            continue
        head = match.group(0).split(".", 1)[0]
        if head.endswith("_C") or head.lower() in SCRIPT_MACROS or head.lower() in SCRIPT_KEYWORDS:
            continue
        names.append((head, start))
    return names


def _target_column(text: str, target: str) -> int:
    index = text.find("[" + target + "]")
    if index >= 0:
        return index + 1
    return max(text.rfind(target), 0)


def _typed_value(var_type: str, raw: str):
    if var_type == "int":
        return int(raw)
    if var_type == "float":
        return float(raw)
    if var_type == "bool":
        lowered = raw.lower()
        if lowered not in ("true", "false"):
            raise ValueError(raw)
        return lowered == "true"
    if var_type == "string":
        if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
            return raw[1:-1]
        return raw
    return raw


class _ScriptBuilder:
    """
    Line-by-line state for one script section. References are collected raw
    and resolved once every declaration is known.
    """

    def __init__(self, owner, section: Section):
        self.owner = owner
        self.section = section
        self.script = ScriptDocument()
        self.current: Optional[ScriptEvent] = None
        # (kind, name, line, column, strict) where strict means undeclared names are recorded
        self.raw_references: List[Tuple[str, str, int, int, bool]] = []

    def warn(self, kind: str, message: str, line: int, column: int) -> None:
        self.owner.log_warning(kind, message, line, column, "script")

    def add_identifiers(self, text: str, line: int, column: int, strict: bool) -> None:
        for name, start in condition_identifiers(text):
            self.raw_references.append(("variable", name, line, column + start, strict))

    def add_event_reference(self, name: str, line: int, column: int) -> None:
        self.raw_references.append(("event", name, line, column, True))

    def declare_variable(self, match, line: int, column: int) -> None:
        var_type, name, raw = match.group(1), match.group(2), (match.group(3) or "").strip()
        value = raw
        try:
            value = _typed_value(var_type, raw) if raw else None
        except ValueError:
            self.warn("invalid-variable-value", f"Value '{raw}' is not a valid {var_type}", line, column)
        variable = ScriptVariable(name, var_type, value, raw, line, column + match.start(2))
        self.script.declarations.append(variable)
        if name not in self.script.variables:
            self.script.variables[name] = variable
        if var_type == "timer" and raw:
            parts = [part.strip() for part in raw.split(",")]
            if parts and NAME_RE.match(parts[-1]) and not NUMBER_RE.match(parts[-1]):
                self.add_event_reference(parts[-1], line, column + match.start(3) + raw.rfind(parts[-1]))

    def parse_trigger_line(self, text: str, line: int, column: int) -> None:
        try:
            parsed = parse_trigger(text)
        except LarkError as e:
            self.warn("malformed-trigger", f"Malformed trigger '{text}': {str(e).splitlines()[0]}", line, column)
            return
        self.script.triggers.append(ScriptTrigger(parsed.kind, parsed.condition, parsed.targets, line))
        self.add_identifiers(parsed.condition, line, column + parsed.condition_start, True)
        for target in parsed.targets:
            self.add_event_reference(target, line, column + _target_column(text, target))

    def parse_statement(self, text: str, line: int, column: int) -> None:
        stripped = text.strip()
        column += len(text) - len(text.lstrip())
        event = self.current

        if stripped.startswith("("):
            try:
                parsed = parse_conditional(stripped)
            except LarkError as e:
                self.warn("malformed-statement", f"Malformed conditional '{stripped}': {str(e).splitlines()[0]}",
                          line, column)
                return
            event.commands.append(ScriptCommand(parsed.condition, " ".join(parsed.targets), line,
                                                "conditional", column))
            self.add_identifiers(parsed.condition, line, column + parsed.condition_start, True)
            for target in parsed.targets:
                self.add_event_reference(target, line, column + _target_column(stripped, target))
            return

        command = COMMAND_RE.match(stripped)
        if command:
            name, parameters = command.group(1), command.group(2).strip()
            event.commands.append(ScriptCommand(name, parameters, line, "command", column))
            self.add_identifiers(parameters, line, column + command.start(2), False)
            return

        assign = ASSIGN_RE.match(stripped)
        if assign:
            target, operator, expression = assign.group(1), assign.group(2), assign.group(3)
            event.commands.append(ScriptCommand(target, f"{operator}{expression}", line, "assign", column))
            self.add_identifiers(target, line, column, True)
            self.add_identifiers(expression, line, column + assign.start(3), True)
            return

        if NAME_RE.match(stripped):
            if stripped.lower() in SCRIPT_COMMANDS:
                event.commands.append(ScriptCommand(stripped, "", line, "command", column))
            else:
                event.commands.append(ScriptCommand(stripped, "", line, "call", column))
                self.add_event_reference(stripped, line, column)
            return

        self.warn("malformed-statement", f"Cannot parse script statement '{stripped}'", line, column)

    def parse_statements(self, text: str, line: int, column: int) -> None:
        for offset, statement in _split_statements(text):
            self.parse_statement(statement, line, column + offset)

    def parse_line(self, raw: str, line: int, column: int) -> None:
        text = raw.strip()
        column += len(raw) - len(raw.lstrip())

        declaration = DECLARATION_RE.match(text)
        if declaration:
            self.current = None
            self.declare_variable(declaration, line, column)
            return

        event = EVENT_RE.match(text)
        if event:
            self.current = ScriptEvent(event.group(1), line, column=column)
            self.script.events.append(self.current)
            self.owner.debug_print(f"Event chain '{event.group(1)}' at line {line}")
            self.parse_statements(event.group(2), line, column + event.start(2))
            return

        if TRIGGER_START_RE.match(text):
            self.current = None
            self.parse_trigger_line(text, line, column)
            return

        if self.current is not None:
            self.parse_statements(text, line, column)
            return

        self.warn("malformed-script-line", f"Script line is not a declaration, event or trigger: '{text}'",
                  line, column)

    def resolve(self) -> None:
        first_event_lines: Dict[str, int] = {}
        for event in self.script.events:
            first_event_lines.setdefault(event.name, event.line)

        for kind, name, line, column, strict in self.raw_references:
            if kind == "event":
                declared_line = first_event_lines.get(name)
            else:
                variable = self.script.variables.get(name)
                declared_line = variable.line if variable is not None else None
                if declared_line is None and not strict:
                    continue
            declared = declared_line is not None
            self.script.references.append(ScriptReference(
                kind, name, line, column,
                forward=declared and line < declared_line,
                declared=declared))

        for trigger in self.script.triggers:
            for target in trigger.targets:
                chain = self.script.get_event(target)
                if chain is not None and chain.condition is None:
                    chain.condition = trigger.condition


def _parse_script(self, section: Section) -> ScriptDocument:
    builder = _ScriptBuilder(self, section)
    for offset, raw in enumerate(section.lines()):
        raw = raw.rstrip("\r")
        if not raw.strip():
            builder.current = None
            continue
        builder.parse_line(raw, section.line_of(offset), section.column_of(offset, 0))
    builder.resolve()
    self.debug_print(f"Parsed script: {len(builder.script.variables)} variables, {len(builder.script.events)} events")
    return builder.script
