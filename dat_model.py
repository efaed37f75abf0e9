"""
dat_model.py
In-memory representation of a parsed DAT level file. Every position is a 0-based
absolute document line and a 0-based character column.
"""
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

# World units per tile along X and Y
TILE_SIZE = 300.0

ERROR = "error"
WARNING = "warning"

KNOWN_SECTIONS = (
    "comments", "info", "tiles", "height", "resources", "objectives",
    "buildings", "vehicles", "creatures", "miners", "blocks", "script",
    "briefing", "briefingsuccess", "briefingfailure", "landslidefrequency", "lavaspread",
)
REQUIRED_SECTIONS = ("info", "tiles")
GRID_SECTIONS = ("tiles", "height", "blocks", "landslidefrequency", "lavaspread")
ENTITY_SECTIONS = ("buildings", "vehicles", "creatures", "miners")
TEXT_SECTIONS = ("comments", "briefing", "briefingsuccess", "briefingfailure")

TOOL_STORE_TYPE = "BuildingToolStore_C"


class Section:
    """
    A named, brace-delimited span of the source.
    start_line is the line holding `name{`, end_line the line holding the matching `}`.
    content is the text strictly between the braces with comments blanked out.
    """

    def __init__(self, name: str, start_line: int, end_line: int, content: str, content_column: int = 0,
                 start_offset: Optional[int] = None, end_offset: Optional[int] = None):
        self.name = name
        self.start_line = start_line
        self.end_line = end_line
        self.content = content
        self.content_column = content_column
        # Character span of `name{...}` in the source, closing brace included
        self.start_offset = start_offset
        self.end_offset = end_offset

    def line_of(self, offset: int) -> int:
        """Absolute document line of the given line index within content."""
        return self.start_line + offset

    def column_of(self, offset: int, column: int) -> int:
        if offset == 0:
            return self.content_column + column
        return column

    def lines(self) -> List[str]:
        return self.content.split("\n")

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def __eq__(self, other):
        if not isinstance(other, Section):
            return NotImplemented
        return (self.name, self.start_line, self.end_line, self.content) == \
            (other.name, other.start_line, other.end_line, other.content)

    def __hash__(self):
        return hash((self.name, self.start_line, self.end_line))

    def __repr__(self):
        return f"Section(name={self.name!r}, start_line={self.start_line}, end_line={self.end_line})"


class Grid:
    """
    Rows of integer cells as written in the source. Ragged rows are kept as-is.
    """

    def __init__(self, rows: List[List[int]], row_lines: List[int], cell_columns: Optional[List[List[int]]] = None):
        self.rows = rows
        self.row_lines = row_lines
        self.cell_columns = cell_columns if cell_columns is not None else [[0] * len(row) for row in rows]

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    @property
    def height(self) -> int:
        return len(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    def __iter__(self) -> Iterator[List[int]]:
        return iter(self.rows)

    def get(self, row: int, col: int) -> Optional[int]:
        if 0 <= row < len(self.rows) and 0 <= col < len(self.rows[row]):
            return self.rows[row][col]
        return None

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return self.rows == other.rows

    def __repr__(self):
        return f"Grid({len(self.rows)}x{self.width})"


class Coordinates:
    def __init__(self, translation: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 rotation: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 scale: Tuple[float, float, float] = (1.0, 1.0, 1.0)):
        self.translation = tuple(translation)
        self.rotation = tuple(rotation)
        self.scale = tuple(scale)

    def tile_position(self) -> Tuple[int, int]:
        """(row, col) of the tile under this translation."""
        x, y = self.translation[0], self.translation[1]
        return int(y // TILE_SIZE), int(x // TILE_SIZE)

    def __eq__(self, other):
        if not isinstance(other, Coordinates):
            return NotImplemented
        return (self.translation, self.rotation, self.scale) == (other.translation, other.rotation, other.scale)

    def __repr__(self):
        return f"Coordinates(translation={self.translation!r}, rotation={self.rotation!r}, scale={self.scale!r})"


class InfoSection:
    def __init__(self, values: Optional[Dict[str, object]] = None, key_lines: Optional[Dict[str, int]] = None):
        self.values = values if values is not None else {}
        self.key_lines = key_lines if key_lines is not None else {}

    @property
    def rowcount(self) -> Optional[int]:
        return self.values.get("rowcount")

    @property
    def colcount(self) -> Optional[int]:
        return self.values.get("colcount")

    def get(self, key: str, default=None):
        return self.values.get(key.lower(), default)

    def __contains__(self, key: str) -> bool:
        return key.lower() in self.values

    def __eq__(self, other):
        if not isinstance(other, InfoSection):
            return NotImplemented
        return self.values == other.values

    def __repr__(self):
        return f"InfoSection({self.values!r})"


class Entity:
    """
    A placed building, vehicle, creature or miner.
    properties holds every trailing Key=Value pair, including ID.
    """

    def __init__(self, type_name: str, coordinates: Coordinates, properties: Optional[Dict[str, str]] = None,
                 line: int = 0, collection: str = ""):
        self.type_name = type_name
        self.coordinates = coordinates
        self.properties = properties if properties is not None else {}
        self.line = line
        self.collection = collection

    @property
    def id(self) -> Optional[str]:
        return self.properties.get("ID")

    def __eq__(self, other):
        if not isinstance(other, Entity):
            return NotImplemented
        return (self.type_name, self.coordinates, self.properties, self.collection) == \
            (other.type_name, other.coordinates, other.properties, other.collection)

    def __repr__(self):
        return f"Entity(type_name={self.type_name!r}, id={self.id!r}, line={self.line})"


class Objective:
    kind = "objective"

    def __init__(self, line: int = 0):
        self.line = line

    def _fields(self) -> tuple:
        return ()

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._fields() == other._fields()

    def __repr__(self):
        return f"{type(self).__name__}{self._fields()!r}"


class ResourceObjective(Objective):
    kind = "resources"

    def __init__(self, crystals: int, ore: int, studs: int, line: int = 0):
        super().__init__(line)
        self.crystals = crystals
        self.ore = ore
        self.studs = studs

    def _fields(self):
        return (self.crystals, self.ore, self.studs)


class BuildingObjective(Objective):
    kind = "building"

    def __init__(self, building: str, line: int = 0):
        super().__init__(line)
        self.building = building

    def _fields(self):
        return (self.building,)


class DiscoverTileObjective(Objective):
    kind = "discovertile"

    def __init__(self, row: int, col: int, description: str, line: int = 0):
        super().__init__(line)
        self.row = row
        self.col = col
        self.description = description

    def _fields(self):
        return (self.row, self.col, self.description)


class VariableObjective(Objective):
    kind = "variable"

    def __init__(self, condition: str, description: str, line: int = 0):
        super().__init__(line)
        self.condition = condition
        self.description = description

    def _fields(self):
        return (self.condition, self.description)


class FindBuildingObjective(Objective):
    kind = "findbuilding"

    def __init__(self, row: int, col: int, line: int = 0):
        super().__init__(line)
        self.row = row
        self.col = col

    def _fields(self):
        return (self.row, self.col)


class FindMinerObjective(Objective):
    kind = "findminer"

    def __init__(self, miner_id: str, line: int = 0):
        super().__init__(line)
        self.miner_id = miner_id

    def _fields(self):
        return (self.miner_id,)


class ScriptVariable:
    def __init__(self, name: str, var_type: str, value, raw_value: str, line: int, column: int = 0):
        self.name = name
        self.var_type = var_type
        self.value = value
        self.raw_value = raw_value
        self.line = line
        self.column = column

    def __eq__(self, other):
        if not isinstance(other, ScriptVariable):
            return NotImplemented
        return (self.name, self.var_type, self.value) == (other.name, other.var_type, other.value)

    def __repr__(self):
        return f"ScriptVariable({self.var_type} {self.name}={self.raw_value!r})"


class ScriptCommand:
    """
    One statement of an event chain. kind is 'command', 'call', 'assign' or 'conditional'.
    """

    def __init__(self, name: str, parameters: str, line: int, kind: str = "command", column: int = 0):
        self.name = name
        self.parameters = parameters
        self.line = line
        self.kind = kind
        self.column = column

    def __eq__(self, other):
        if not isinstance(other, ScriptCommand):
            return NotImplemented
        return (self.name, self.parameters, self.kind) == (other.name, other.parameters, other.kind)

    def __repr__(self):
        return f"ScriptCommand({self.kind}:{self.name}:{self.parameters!r})"


class ScriptTrigger:
    def __init__(self, kind: str, condition: str, targets: List[str], line: int):
        self.kind = kind  # 'when' or 'if'
        self.condition = condition
        self.targets = targets
        self.line = line

    def __eq__(self, other):
        if not isinstance(other, ScriptTrigger):
            return NotImplemented
        return (self.kind, self.condition, self.targets) == (other.kind, other.condition, other.targets)

    def __repr__(self):
        return f"ScriptTrigger({self.kind}({self.condition}){self.targets!r})"


class ScriptEvent:
    def __init__(self, name: str, line: int, commands: Optional[List[ScriptCommand]] = None,
                 condition: Optional[str] = None, column: int = 0):
        self.name = name
        self.line = line
        self.commands = commands if commands is not None else []
        self.condition = condition
        self.column = column

    def __eq__(self, other):
        if not isinstance(other, ScriptEvent):
            return NotImplemented
        return (self.name, self.commands, self.condition) == (other.name, other.commands, other.condition)

    def __repr__(self):
        return f"ScriptEvent({self.name!r}, {len(self.commands)} commands)"


class ScriptReference:
    """
    A use of a variable or event name inside the script.
    forward is True when the use precedes the declaration; declared is False when
    no declaration exists at all.
    """

    def __init__(self, kind: str, name: str, line: int, column: int = 0,
                 forward: bool = False, declared: bool = True):
        self.kind = kind  # 'variable' or 'event'
        self.name = name
        self.line = line
        self.column = column
        self.forward = forward
        self.declared = declared

    def __eq__(self, other):
        if not isinstance(other, ScriptReference):
            return NotImplemented
        return (self.kind, self.name, self.line, self.column, self.forward, self.declared) == \
            (other.kind, other.name, other.line, other.column, other.forward, other.declared)

    def __repr__(self):
        return f"ScriptReference({self.kind}:{self.name}@{self.line}:{self.column})"


class ScriptDocument:
    def __init__(self):
        # First declaration of each name; every declaration, in order, is in declarations
        self.variables: Dict[str, ScriptVariable] = {}
        self.declarations: List[ScriptVariable] = []
        self.events: List[ScriptEvent] = []
        self.triggers: List[ScriptTrigger] = []
        self.references: List[ScriptReference] = []

    def get_event(self, name: str) -> Optional[ScriptEvent]:
        for event in self.events:
            if event.name == name:
                return event
        return None

    def event_names(self) -> List[str]:
        return [event.name for event in self.events]

    def __eq__(self, other):
        if not isinstance(other, ScriptDocument):
            return NotImplemented
        return (self.declarations, self.events, self.triggers) == (other.declarations, other.events, other.triggers)

    def __repr__(self):
        return f"ScriptDocument({len(self.variables)} variables, {len(self.events)} events)"


class ParseIssue:
    def __init__(self, kind: str, message: str, line: int, column: int = 0,
                 section: Optional[str] = None, severity: str = ERROR):
        self.kind = kind
        self.message = message
        self.line = line
        self.column = column
        self.section = section
        self.severity = severity

    def __eq__(self, other):
        if not isinstance(other, ParseIssue):
            return NotImplemented
        return (self.kind, self.message, self.line, self.column, self.section, self.severity) == \
            (other.kind, other.message, other.line, other.column, other.section, other.severity)

    def __repr__(self):
        return f"ParseIssue({self.severity} {self.kind} line {self.line}: {self.message})"


class Diagnostic:
    """
    Severity-tagged validator finding. code names the rule that produced it and
    data carries whatever an automatic fix needs to locate the problem.
    """

    def __init__(self, severity: str, message: str, line: int, column: int = 0,
                 section: Optional[str] = None, code: str = "", data: Optional[dict] = None):
        self.severity = severity
        self.message = message
        self.line = line
        self.column = column
        self.section = section
        self.code = code
        self.data = data if data is not None else {}

    def sort_key(self):
        return (self.line, self.column, self.code, self.message)

    def __eq__(self, other):
        if not isinstance(other, Diagnostic):
            return NotImplemented
        return (self.severity, self.message, self.line, self.column, self.section, self.code) == \
            (other.severity, other.message, other.line, other.column, other.section, other.code)

    def __hash__(self):
        return hash((self.severity, self.message, self.line, self.column, self.section, self.code))

    def __str__(self):
        return f"{self.line + 1}:{self.column + 1}: {self.severity}: {self.message} [{self.code}]"

    def __repr__(self):
        return f"Diagnostic({self.severity!r}, {self.message!r}, line={self.line}, code={self.code!r})"


class DatDocument:
    """
    Root aggregate of a parsed DAT file. Absent sections stay None.
    """

    def __init__(self, source: str = ""):
        self.source = source
        self.sections: Dict[str, Section] = {}
        self.info: Optional[InfoSection] = None
        self.tiles: Optional[Grid] = None
        self.height: Optional[Grid] = None
        self.resources: Optional[Dict[str, Grid]] = None
        self.objectives: Optional[List[Objective]] = None
        self.buildings: Optional[List[Entity]] = None
        self.vehicles: Optional[List[Entity]] = None
        self.creatures: Optional[List[Entity]] = None
        self.miners: Optional[List[Entity]] = None
        self.blocks: Optional[Grid] = None
        self.landslidefrequency: Optional[Grid] = None
        self.lavaspread: Optional[Grid] = None
        self.briefing: Optional[str] = None
        self.briefingsuccess: Optional[str] = None
        self.briefingfailure: Optional[str] = None
        self.comments: Optional[str] = None
        self.script: Optional[ScriptDocument] = None
        self.issues: List[ParseIssue] = []

    def get_section(self, name: str) -> Optional[Section]:
        return self.sections.get(name.lower())

    def get_section_at_position(self, line: int) -> Optional[Section]:
        for section in self.sections.values():
            if section.contains(line):
                return section
        return None

    def grid(self, name: str) -> Optional[Grid]:
        """Grid by section name; crystals/ore/studs resolve inside resources."""
        if name in GRID_SECTIONS:
            return getattr(self, name)
        if self.resources is not None:
            return self.resources.get(name)
        return None

    def entities(self, collection: str) -> Optional[List[Entity]]:
        return getattr(self, collection) if collection in ENTITY_SECTIONS else None

    def semantic_content(self) -> tuple:
        """Everything parsed from the sections, without source positions."""
        return (self.info, self.tiles, self.height, self.resources, self.objectives,
                self.buildings, self.vehicles, self.creatures, self.miners, self.blocks,
                self.landslidefrequency, self.lavaspread, self.briefing, self.briefingsuccess,
                self.briefingfailure, self.comments, self.script)

    def __repr__(self):
        return f"DatDocument(sections={list(self.sections)!r})"


class ReachabilityResult:
    def __init__(self, origin: Tuple[int, int], reachable: FrozenSet[Tuple[int, int]] = frozenset(),
                 distances: Optional[Dict[Tuple[int, int], int]] = None,
                 reachable_floor: int = 0, total_floor: int = 0, isolated_regions: int = 0,
                 choke_points: Optional[List[Tuple[int, int]]] = None,
                 reachable_resources: int = 0, total_resources: int = 0,
                 unreachable_resources: Optional[List[Tuple[int, int]]] = None,
                 unreachable_objectives: Optional[List[Objective]] = None):
        self.origin = origin
        self.reachable = frozenset(reachable)
        self.distances = distances if distances is not None else {}
        self.reachable_floor = reachable_floor
        self.total_floor = total_floor
        self.isolated_regions = isolated_regions
        self.choke_points = choke_points if choke_points is not None else []
        self.reachable_resources = reachable_resources
        self.total_resources = total_resources
        self.unreachable_resources = unreachable_resources if unreachable_resources is not None else []
        self.unreachable_objectives = unreachable_objectives if unreachable_objectives is not None else []

    @property
    def accessibility_ratio(self) -> float:
        if self.total_floor == 0:
            return 0.0
        return self.reachable_floor / self.total_floor

    def _fields(self) -> tuple:
        return (self.origin, self.reachable, self.distances, self.reachable_floor, self.total_floor,
                self.isolated_regions, self.choke_points, self.reachable_resources, self.total_resources,
                self.unreachable_resources, self.unreachable_objectives)

    def __eq__(self, other):
        if not isinstance(other, ReachabilityResult):
            return NotImplemented
        return self._fields() == other._fields()

    def __repr__(self):
        return (f"ReachabilityResult(origin={self.origin!r}, reachable={len(self.reachable)}, "
                f"ratio={self.accessibility_ratio:.3f}, isolated={self.isolated_regions}, "
                f"choke_points={len(self.choke_points)})")
