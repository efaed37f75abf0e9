"""
dat_validator.py
Structural checks over a parsed DatDocument. Every rule is independent and
produces Diagnostic values; the document is never modified.
"""
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from dat_model import (
    DatDocument,
    Diagnostic,
    DiscoverTileObjective,
    FindBuildingObjective,
    FindMinerObjective,
    Grid,
    ResourceObjective,
    VariableObjective,
    ENTITY_SECTIONS,
    ERROR,
    KNOWN_SECTIONS,
    TOOL_STORE_TYPE,
    WARNING,
)
from script_parser import COMMAND_ARITY, TIMER_RE, command_parameters, condition_identifiers
from tile_catalog import DEFAULT_TILE_CATALOG, TileCatalog

OPTIONAL_GRIDS = ("height", "blocks", "landslidefrequency", "lavaspread")
KNOWN_BIOMES = ("rock", "ice", "lava")
MAX_DIMENSION = 256


class DatValidator:
    """
    Runs every structural rule over a document and returns the diagnostics
    sorted by position.
    """

    def __init__(self, catalog: Optional[TileCatalog] = None, verbose: bool = False):
        self.catalog = catalog or DEFAULT_TILE_CATALOG
        self.verbose = verbose
        self.rules = [
            self._check_required_sections,
            self._check_info,
            self._check_grid_dimensions,
            self._check_tile_codes,
            self._check_heights,
            self._check_tool_store,
            self._check_objectives,
            self._check_entity_ids,
            self._check_entity_bounds,
            self._check_unknown_sections,
            self._check_script,
        ]

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def validate(self, document: DatDocument) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for rule in self.rules:
            found = rule(document)
            self.debug_print(f"{rule.__name__}: {len(found)} diagnostics")
            diagnostics.extend(found)
        diagnostics.sort(key=lambda d: d.sort_key())
        if self.verbose:
            for diagnostic in diagnostics:
                print(f"[{diagnostic.severity.upper()}] {diagnostic}")
        return diagnostics

    # Helpers

    def _dimensions(self, document: DatDocument) -> Tuple[Optional[int], Optional[int]]:
        """(rows, cols) from info, falling back to the tiles grid."""
        rows = cols = None
        if document.info is not None:
            rows, cols = document.info.rowcount, document.info.colcount
        if document.tiles is not None:
            if not rows or rows <= 0:
                rows = len(document.tiles)
            if not cols or cols <= 0:
                cols = document.tiles.width
        return rows, cols

    def _section_line(self, document: DatDocument, name: str) -> int:
        section = document.get_section(name)
        return section.start_line if section is not None else 0

    def _named_grids(self, document: DatDocument) -> List[Tuple[str, str, Grid]]:
        """(grid name, section name, grid) for every grid the document carries."""
        grids = []
        if document.tiles is not None:
            grids.append(("tiles", "tiles", document.tiles))
        for name in OPTIONAL_GRIDS:
            grid = getattr(document, name)
            if grid is not None:
                grids.append((name, name, grid))
        if document.resources is not None:
            for name, grid in document.resources.items():
                grids.append((name, "resources", grid))
        return grids

    # Rules

    def _check_required_sections(self, document: DatDocument) -> List[Diagnostic]:
        diagnostics = []
        for name in ("info", "tiles"):
            if document.get_section(name) is None:
                diagnostics.append(Diagnostic(
                    ERROR, f"Missing required section '{name}'", 0, 0, name,
                    "missing-section", {"section": name, "required": True}))
        if document.get_section("height") is None:
            diagnostics.append(Diagnostic(
                WARNING, "Missing section 'height'", 0, 0, "height",
                "missing-section", {"section": "height", "required": False}))
        return diagnostics

    def _check_info(self, document: DatDocument) -> List[Diagnostic]:
        info = document.info
        if info is None:
            return []
        diagnostics = []
        info_line = self._section_line(document, "info")

        def line_of(key):
            return info.key_lines.get(key, info_line)

        for key in ("rowcount", "colcount"):
            value = info.get(key)
            if value is None:
                diagnostics.append(Diagnostic(
                    ERROR, f"Info field '{key}' is missing", info_line, 0, "info",
                    "missing-info-field", {"field": key}))
            elif value <= 0:
                diagnostics.append(Diagnostic(
                    ERROR, f"Info field '{key}' must be positive, got {value}", line_of(key), 0, "info",
                    "missing-info-field", {"field": key}))
            elif value > MAX_DIMENSION:
                diagnostics.append(Diagnostic(
                    WARNING, f"Info field '{key}' is {value}; maps larger than {MAX_DIMENSION} may perform poorly",
                    line_of(key), 0, "info", "info-range", {"field": key}))

        for key in ("initialcrystals", "initialore", "oxygen"):
            value = info.get(key)
            if value is not None and value < 0:
                diagnostics.append(Diagnostic(
                    ERROR, f"Info field '{key}' cannot be negative, got {value}", line_of(key), 0, "info",
                    "info-range", {"field": key}))

        spiderrate = info.get("spiderrate")
        if spiderrate is not None and not 0 <= spiderrate <= 100:
            diagnostics.append(Diagnostic(
                WARNING, f"Info field 'spiderrate' should be between 0 and 100, got {spiderrate}",
                line_of("spiderrate"), 0, "info", "info-range", {"field": "spiderrate"}))

        biome = info.get("biome")
        if isinstance(biome, str) and biome.lower() not in KNOWN_BIOMES:
            diagnostics.append(Diagnostic(
                WARNING, f"Unknown biome '{biome}'; expected one of {', '.join(KNOWN_BIOMES)}",
                line_of("biome"), 0, "info", "info-range", {"field": "biome"}))
        return diagnostics

    def _check_grid_dimensions(self, document: DatDocument) -> List[Diagnostic]:
        if document.info is None:
            return []
        rowcount, colcount = document.info.rowcount, document.info.colcount
        diagnostics = []
        for grid_name, section_name, grid in self._named_grids(document):
            section = document.get_section(section_name)
            end_line = section.end_line if section is not None else 0

            if rowcount is not None and rowcount > 0:
                for row in range(len(grid), rowcount):
                    diagnostics.append(Diagnostic(
                        ERROR, f"{grid_name} is missing row {row + 1} of {rowcount}", end_line, 0, section_name,
                        "row-count", {"grid": grid_name, "row": row, "expected": rowcount, "actual": len(grid)}))
                for row in range(rowcount, len(grid)):
                    diagnostics.append(Diagnostic(
                        ERROR, f"{grid_name} has extra row {row + 1}; rowcount is {rowcount}",
                        grid.row_lines[row], 0, section_name,
                        "row-count", {"grid": grid_name, "row": row, "expected": rowcount, "actual": len(grid)}))

            if colcount is not None and colcount > 0:
                for row, values in enumerate(grid.rows):
                    if len(values) == colcount:
                        continue
                    columns = grid.cell_columns[row]
                    column = columns[0] if columns else 0
                    diagnostics.append(Diagnostic(
                        ERROR, f"{grid_name} row {row + 1} has {len(values)} values, expected {colcount}",
                        grid.row_lines[row], column, section_name,
                        "row-length", {"grid": grid_name, "row": row, "expected": colcount, "actual": len(values)}))
        return diagnostics

    def _check_tile_codes(self, document: DatDocument) -> List[Diagnostic]:
        tiles = document.tiles
        if tiles is None:
            return []
        diagnostics = []
        for row, values in enumerate(tiles.rows):
            for col, code in enumerate(values):
                if code not in self.catalog:
                    diagnostics.append(Diagnostic(
                        ERROR, f"Unknown tile code {code} at row {row}, column {col}",
                        tiles.row_lines[row], tiles.cell_columns[row][col], "tiles",
                        "unknown-tile", {"grid": "tiles", "row": row, "col": col, "code": code}))
        return diagnostics

    def _check_heights(self, document: DatDocument) -> List[Diagnostic]:
        height = document.height
        if height is None:
            return []
        diagnostics = []
        for row, values in enumerate(height.rows):
            for col, value in enumerate(values):
                if value < 0:
                    diagnostics.append(Diagnostic(
                        ERROR, f"Negative height {value} at row {row}, column {col}",
                        height.row_lines[row], height.cell_columns[row][col], "height",
                        "negative-height", {"grid": "height", "row": row, "col": col}))
        return diagnostics

    def _check_tool_store(self, document: DatDocument) -> List[Diagnostic]:
        buildings = document.buildings or []
        if any(building.type_name == TOOL_STORE_TYPE for building in buildings):
            return []
        return [Diagnostic(
            ERROR, "No Tool Store building; the map cannot be played without one",
            self._section_line(document, "buildings"), 0, "buildings", "no-tool-store", {})]

    def _available_resource(self, document: DatDocument, resource: str) -> int:
        info_key = "initialcrystals" if resource == "crystal" else "initialore"
        total = document.info.get(info_key, 0) if document.info is not None else 0
        grid = document.resources.get("crystals" if resource == "crystal" else "ore") if document.resources else None
        if grid is not None:
            total += sum(value for row in grid.rows for value in row if value > 0)
        if document.tiles is not None:
            for row in document.tiles.rows:
                for code in row:
                    definition = self.catalog.get(code)
                    if definition is not None and definition.resource == resource:
                        total += 1
        return total

    def _check_objectives(self, document: DatDocument) -> List[Diagnostic]:
        if not document.objectives:
            return []
        rows, cols = self._dimensions(document)
        variables = document.script.variables if document.script is not None else {}
        miner_ids = {miner.id for miner in document.miners or [] if miner.id is not None}
        diagnostics = []
        for objective in document.objectives:
            if isinstance(objective, (DiscoverTileObjective, FindBuildingObjective)):
                if rows is None or cols is None:
                    continue
                if not (0 <= objective.row < rows and 0 <= objective.col < cols):
                    diagnostics.append(Diagnostic(
                        ERROR, f"{objective.kind} objective at ({objective.row}, {objective.col}) "
                               f"is outside the {rows}x{cols} map",
                        objective.line, 0, "objectives", "objective-out-of-bounds",
                        {"row": objective.row, "col": objective.col}))
            elif isinstance(objective, VariableObjective):
                for name, _ in condition_identifiers(objective.condition):
                    if name not in variables:
                        diagnostics.append(Diagnostic(
                            WARNING, f"Objective condition uses undeclared variable '{name}'",
                            objective.line, 0, "objectives", "objective-undeclared-variable", {"variable": name}))
            elif isinstance(objective, FindMinerObjective):
                if objective.miner_id not in miner_ids:
                    diagnostics.append(Diagnostic(
                        WARNING, f"findminer objective names miner '{objective.miner_id}' which no miner carries",
                        objective.line, 0, "objectives", "objective-unknown-miner", {"id": objective.miner_id}))
            elif isinstance(objective, ResourceObjective):
                for resource, needed in (("crystal", objective.crystals), ("ore", objective.ore)):
                    available = self._available_resource(document, resource)
                    if needed > available:
                        diagnostics.append(Diagnostic(
                            WARNING, f"Objective needs {needed} {resource}s but only {available} are available",
                            objective.line, 0, "objectives", "objective-resources",
                            {"resource": resource, "needed": needed, "available": available}))
        return diagnostics

    def _check_entity_ids(self, document: DatDocument) -> List[Diagnostic]:
        diagnostics = []
        for collection in ENTITY_SECTIONS:
            entities = document.entities(collection)
            if not entities:
                continue
            by_id: Dict[str, list] = OrderedDict()
            for entity in entities:
                if entity.id is not None:
                    by_id.setdefault(entity.id, []).append(entity)
            for entity_id, owners in by_id.items():
                if len(owners) < 2:
                    continue
                lines = ", ".join(str(owner.line + 1) for owner in owners)
                diagnostics.append(Diagnostic(
                    ERROR, f"ID collision: '{entity_id}' is used by {len(owners)} {collection} (lines {lines})",
                    owners[1].line, 0, collection, "duplicate-id", {"collection": collection, "id": entity_id}))
        return diagnostics

    def _check_entity_bounds(self, document: DatDocument) -> List[Diagnostic]:
        rows, cols = self._dimensions(document)
        if rows is None or cols is None:
            return []
        diagnostics = []
        for collection in ENTITY_SECTIONS:
            for entity in document.entities(collection) or []:
                row, col = entity.coordinates.tile_position()
                if not (0 <= row < rows and 0 <= col < cols):
                    diagnostics.append(Diagnostic(
                        WARNING, f"{entity.type_name} is placed at tile ({row}, {col}), outside the {rows}x{cols} map",
                        entity.line, 0, collection, "entity-out-of-bounds", {"collection": collection}))
        return diagnostics

    def _check_unknown_sections(self, document: DatDocument) -> List[Diagnostic]:
        return [
            Diagnostic(WARNING, f"Unknown section '{name}'", section.start_line, 0, name, "unknown-section", {})
            for name, section in document.sections.items()
            if name not in KNOWN_SECTIONS
        ]

    def _check_script(self, document: DatDocument) -> List[Diagnostic]:
        script = document.script
        if script is None:
            return []
        diagnostics = []

        seen_events = set()
        for event in script.events:
            if event.name in seen_events:
                diagnostics.append(Diagnostic(
                    ERROR, f"Event chain '{event.name}' is declared more than once", event.line, event.column,
                    "script", "duplicate-event", {"event": event.name}))
            seen_events.add(event.name)

        seen_variables = set()
        for variable in script.declarations:
            if variable.name in seen_variables:
                diagnostics.append(Diagnostic(
                    ERROR, f"Variable '{variable.name}' is declared more than once", variable.line, variable.column,
                    "script", "duplicate-variable", {"variable": variable.name}))
            seen_variables.add(variable.name)

        for reference in script.references:
            if reference.kind == "event" and not reference.declared:
                diagnostics.append(Diagnostic(
                    ERROR, f"Event '{reference.name}' is referenced but never declared", reference.line,
                    reference.column, "script", "undefined-event", {"event": reference.name}))
            elif reference.kind == "variable" and reference.forward:
                diagnostics.append(Diagnostic(
                    WARNING, f"Variable '{reference.name}' is used before its declaration", reference.line,
                    reference.column, "script", "variable-before-declaration", {"variable": reference.name}))
            elif reference.kind == "variable" and not reference.declared:
                diagnostics.append(Diagnostic(
                    WARNING, f"Undeclared variable '{reference.name}'", reference.line,
                    reference.column, "script", "undeclared-variable", {"variable": reference.name}))

        for event in script.events:
            for command in event.commands:
                if command.kind == "command":
                    diagnostics.extend(self._check_command(command))

        for variable in script.declarations:
            if variable.var_type == "timer" and variable.raw_value:
                diagnostics.extend(self._check_timer(variable))
        return diagnostics

    def _check_command(self, command) -> List[Diagnostic]:
        name = command.name.lower()
        if name not in COMMAND_ARITY:
            return [Diagnostic(
                WARNING, f"Unknown script command '{command.name}'", command.line, command.column,
                "script", "unknown-command", {"command": command.name})]
        minimum, maximum = COMMAND_ARITY[name]
        count = len(command_parameters(command.parameters))
        data = {"command": command.name, "count": count, "minimum": minimum, "maximum": maximum}
        if count < minimum:
            return [Diagnostic(
                ERROR, f"'{command.name}' requires at least {minimum} parameter(s), got {count}",
                command.line, command.column, "script", "command-arity", data)]
        if maximum is not None and count > maximum:
            return [Diagnostic(
                ERROR, f"'{command.name}' accepts at most {maximum} parameter(s), got {count}",
                command.line, command.column, "script", "command-arity", data)]
        return []

    def _check_timer(self, variable) -> List[Diagnostic]:
        match = TIMER_RE.match(variable.raw_value.replace(" ", ""))
        if match is None:
            return [Diagnostic(
                ERROR, f"Timer '{variable.name}' must be delay[,min[,max]][,Event], got '{variable.raw_value}'",
                variable.line, variable.column, "script", "timer-syntax", {"variable": variable.name})]
        if match.group(2) and match.group(3) and float(match.group(2)) > float(match.group(3)):
            return [Diagnostic(
                WARNING, f"Timer '{variable.name}' has a minimum above its maximum",
                variable.line, variable.column, "script", "timer-range",
                {"variable": variable.name, "min": float(match.group(2)), "max": float(match.group(3))})]
        return []


def validate(document: DatDocument, catalog: Optional[TileCatalog] = None) -> List[Diagnostic]:
    return DatValidator(catalog).validate(document)
