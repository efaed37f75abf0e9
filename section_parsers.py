"""
Per-section parsing helpers for DatParser.
Each helper takes the owning parser (for issue collection and logging) and one Section.
None of them raise for bad content; problems are logged as issues and the
offending line or cell is skipped.
"""

import re
from typing import Dict, List, Optional, Tuple

from lark.exceptions import LarkError

from dat_grammar import parse_coordinates
from dat_model import (
    Coordinates,
    Entity,
    Grid,
    InfoSection,
    Objective,
    ResourceObjective,
    BuildingObjective,
    DiscoverTileObjective,
    VariableObjective,
    FindBuildingObjective,
    FindMinerObjective,
    Section,
)

INT_INFO_KEYS = ("rowcount", "colcount", "initialcrystals", "initialore", "spiderrate", "spidermin", "spidermax")
FLOAT_INFO_KEYS = ("camerazoom", "oxygen", "erosioninitialwaittime", "erosionscale")

INT_RE = re.compile(r'^[-+]?\d+$')
RESOURCE_LABEL_RE = re.compile(r'^(crystals|ore|studs)\s*:\s*$', re.IGNORECASE)
ROW_COL_RE = re.compile(r'^\s*(-?\d+)\s*,\s*(-?\d+)\s*$')


def _iter_lines(section: Section):
    """Yield (line index within content, start column, stripped text) of non-blank lines."""
    for offset, raw in enumerate(section.lines()):
        text = raw.rstrip("\r")
        stripped = text.strip()
        if not stripped:
            continue
        column = len(text) - len(text.lstrip())
        yield offset, section.column_of(offset, column), stripped


def _parse_coordinates_text(self, text: str, line: int, column: int, section_name: str) -> Coordinates:
    try:
        return parse_coordinates(text)
    except LarkError as e:
        self.log_warning(
            "malformed-coordinates",
            f"Malformed coordinates '{text}', using the origin: {str(e).splitlines()[0]}",
            line, column, section_name)
        return Coordinates()


def _parse_info(self, section: Section) -> InfoSection:
    info = InfoSection()
    for offset, column, text in _iter_lines(section):
        line = section.line_of(offset)
        for entry in text.split(";"):
            entry = entry.strip()
            if not entry:
                continue
            if ":" not in entry:
                self.log_warning("malformed-info", f"Info entry '{entry}' has no ':'", line, column, "info")
                continue
            key, value = entry.split(":", 1)
            key = key.strip().lower()
            value = value.strip()
            if key in INT_INFO_KEYS:
                if not INT_RE.match(value):
                    self.log_error("invalid-number", f"Info field '{key}' must be an integer, got '{value}'",
                                   line, column, "info")
                    continue
                info.values[key] = int(value)
            elif key in FLOAT_INFO_KEYS:
                # oxygen is written as current/maximum
                number = value.split("/", 1)[0] if key == "oxygen" else value
                try:
                    info.values[key] = float(number)
                except ValueError:
                    self.log_error("invalid-number", f"Info field '{key}' must be a number, got '{value}'",
                                   line, column, "info")
                    continue
            elif key == "camerapos":
                info.values[key] = _parse_coordinates_text(self, value, line, column, "info")
            else:
                info.values[key] = value
            info.key_lines[key] = line
            self.debug_print(f"info.{key} = {info.values[key]!r}")
    return info


def _parse_grid_row(self, text: str, line: int, column: int, section_name: str) -> Tuple[List[int], List[int]]:
    row = []
    columns = []
    position = 0
    for token in text.split(","):
        value = token.strip()
        token_column = column + position + (len(token) - len(token.lstrip()))
        position += len(token) + 1
        if not value:
            continue
        if not INT_RE.match(value):
            self.log_error("invalid-number", f"Grid value '{value}' in '{section_name}' is not an integer",
                           line, token_column, section_name)
            continue
        row.append(int(value))
        columns.append(token_column)
    return row, columns


def _parse_grid(self, section: Section, name: Optional[str] = None) -> Grid:
    name = name or section.name
    rows, row_lines, cell_columns = [], [], []
    for offset, column, text in _iter_lines(section):
        row, columns = _parse_grid_row(self, text, section.line_of(offset), column, name)
        if not row and not text.strip(", \t"):
            continue
        rows.append(row)
        row_lines.append(section.line_of(offset))
        cell_columns.append(columns)
    self.debug_print(f"Parsed grid '{name}' with {len(rows)} rows")
    return Grid(rows, row_lines, cell_columns)


def _parse_resources(self, section: Section) -> Dict[str, Grid]:
    grids: Dict[str, Grid] = {}
    current: Optional[str] = None
    for offset, column, text in _iter_lines(section):
        line = section.line_of(offset)
        label = RESOURCE_LABEL_RE.match(text)
        if label:
            current = label.group(1).lower()
            if current in grids:
                self.log_warning("duplicate-resource", f"Resource grid '{current}' is declared again",
                                 line, column, "resources")
            grids[current] = Grid([], [], [])
            continue
        if current is None:
            self.log_warning("orphan-resource-row",
                             "Resource row appears before any 'crystals:', 'ore:' or 'studs:' label",
                             line, column, "resources")
            continue
        row, columns = _parse_grid_row(self, text, line, column, current)
        grid = grids[current]
        grid.rows.append(row)
        grid.row_lines.append(line)
        grid.cell_columns.append(columns)
    return grids


def _parse_row_col(value: str) -> Optional[Tuple[int, int]]:
    match = ROW_COL_RE.match(value)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _parse_objective(keyword: str, argument: str, line: int) -> Optional[Objective]:
    if keyword == "resources":
        values = [v.strip() for v in argument.split(",")]
        if len(values) != 3 or not all(INT_RE.match(v) for v in values):
            return None
        return ResourceObjective(int(values[0]), int(values[1]), int(values[2]), line)
    if keyword == "building":
        return BuildingObjective(argument, line) if argument else None
    if keyword == "discovertile":
        if "/" not in argument:
            return None
        position, description = argument.split("/", 1)
        row_col = _parse_row_col(position)
        if row_col is None:
            return None
        return DiscoverTileObjective(row_col[0], row_col[1], description.strip(), line)
    if keyword == "variable":
        if "/" not in argument:
            return None
        condition, description = argument.split("/", 1)
        if not condition.strip():
            return None
        return VariableObjective(condition.strip(), description.strip(), line)
    if keyword == "findbuilding":
        row_col = _parse_row_col(argument)
        if row_col is None:
            return None
        return FindBuildingObjective(row_col[0], row_col[1], line)
    if keyword == "findminer":
        return FindMinerObjective(argument, line) if argument else None
    return None


OBJECTIVE_KEYWORDS = ("resources", "building", "discovertile", "variable", "findbuilding", "findminer")


def _parse_objectives(self, section: Section) -> List[Objective]:
    objectives = []
    for offset, column, text in _iter_lines(section):
        line = section.line_of(offset)
        keyword, _, argument = text.partition(":")
        keyword = keyword.strip().lower()
        if keyword not in OBJECTIVE_KEYWORDS:
            self.log_warning("unknown-objective", f"Unknown objective type '{keyword}'", line, column, "objectives")
            continue
        objective = _parse_objective(keyword, argument.strip(), line)
        if objective is None:
            self.log_warning("malformed-objective", f"Malformed {keyword} objective '{text}'",
                             line, column, "objectives")
            continue
        objectives.append(objective)
    return objectives


def _parse_entities(self, section: Section) -> List[Entity]:
    entities = []
    for offset, column, text in _iter_lines(section):
        line = section.line_of(offset)
        parts = [part.strip() for part in text.split(",")]
        type_name = parts[0]
        coordinates = None
        properties: Dict[str, str] = {}
        for part in parts[1:]:
            if not part:
                continue
            if part.startswith("Translation"):
                coordinates = _parse_coordinates_text(self, part, line, column, section.name)
            elif "=" in part:
                key, value = part.split("=", 1)
                properties[key.strip()] = value.strip()
            else:
                properties[part] = ""
        if coordinates is None:
            self.log_warning("malformed-coordinates",
                             f"Entity '{type_name}' has no coordinate block, using the origin",
                             line, column, section.name)
            coordinates = Coordinates()
        entities.append(Entity(type_name, coordinates, properties, line, section.name))
    self.debug_print(f"Parsed {len(entities)} entities in '{section.name}'")
    return entities


def _parse_text(self, section: Section) -> str:
    return section.content.strip()
