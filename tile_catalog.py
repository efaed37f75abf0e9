"""
tile_catalog.py
Immutable lookup table of the tile codes the game understands. Components that
need tile metadata receive a TileCatalog instance instead of consulting module state.
"""
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

GROUND = "ground"
RUBBLE = "rubble"
HAZARD = "hazard"
SPECIAL = "special"
WALL = "wall"
RESOURCE = "resource"

REINFORCED_OFFSET = 50
DEFAULT_FLOOR_CODE = 1


class TileDefinition:
    def __init__(self, code: int, name: str, category: str, walkable: bool, drillable: bool,
                 buildable: bool = False, drill_cost: Optional[int] = None, resource: Optional[str] = None):
        self.code = code
        self.name = name
        self.category = category
        self.walkable = walkable
        self.drillable = drillable
        self.buildable = buildable
        # Only meaningful when drillable; walkable tiles always cost 1
        self.drill_cost = drill_cost
        self.resource = resource  # 'crystal', 'ore', 'recharge' or None

    @property
    def is_reinforced(self) -> bool:
        return self.name.endswith("(Reinforced)")

    def __repr__(self):
        return f"TileDefinition(code={self.code!r}, name={self.name!r}, category={self.category!r})"


class TileCatalog:
    """
    Read-only mapping from tile code to TileDefinition.
    Membership, not numeric range, decides whether a code is valid.
    """

    def __init__(self, definitions: Iterable[TileDefinition]):
        table: Dict[int, TileDefinition] = {}
        for definition in definitions:
            table[definition.code] = definition
        self._table: Mapping[int, TileDefinition] = MappingProxyType(table)

    def __contains__(self, code) -> bool:
        return code in self._table

    def __len__(self) -> int:
        return len(self._table)

    def codes(self):
        return sorted(self._table)

    def get(self, code: int) -> Optional[TileDefinition]:
        return self._table.get(code)

    def is_known(self, code: int) -> bool:
        return code in self._table

    def is_walkable(self, code: int) -> bool:
        definition = self._table.get(code)
        return bool(definition and definition.walkable)

    def is_drillable(self, code: int) -> bool:
        definition = self._table.get(code)
        return bool(definition and definition.drillable)

    def is_resource(self, code: int) -> bool:
        definition = self._table.get(code)
        return bool(definition and definition.resource in ("crystal", "ore"))

    def move_cost(self, code: int, can_mine: bool = False) -> Optional[int]:
        """
        Cost of entering a tile, or None when it cannot be entered.
        """
        definition = self._table.get(code)
        if definition is None:
            return None
        if definition.walkable:
            return 1
        if can_mine and definition.drillable:
            return definition.drill_cost or 1
        return None

    def base_code(self, code: int) -> int:
        """
        Map a reinforced variant back to the tile it reinforces.
        """
        definition = self._table.get(code)
        if definition is not None and definition.is_reinforced:
            return code - REINFORCED_OFFSET
        return code


def _wall_family(first_code: int, family: str, category: str, drill_cost: Optional[int],
                 resource: Optional[str] = None):
    shapes = ("Regular", "Corner", "Edge", "Intersect")
    drillable = drill_cost is not None
    return [
        TileDefinition(first_code + index, f"{family} {shape}", category, False, drillable,
                       drill_cost=drill_cost, resource=resource)
        for index, shape in enumerate(shapes)
    ]


def _placeholder_category(code: int) -> str:
    if code <= 129:
        return HAZARD
    if code <= 141:
        return SPECIAL
    if code <= 158:
        return WALL
    return RUBBLE


def _build_default_definitions():
    definitions = [
        TileDefinition(1, "Ground", GROUND, True, False, buildable=True),
        TileDefinition(2, "Rubble Level 1", RUBBLE, True, True, drill_cost=1),
        TileDefinition(3, "Rubble Level 2", RUBBLE, True, True, drill_cost=1),
        TileDefinition(4, "Rubble Level 3", RUBBLE, True, True, drill_cost=1),
        TileDefinition(5, "Rubble Level 4", RUBBLE, True, True, drill_cost=1),
        TileDefinition(6, "Lava", HAZARD, False, False),
        TileDefinition(7, "Erosion Level 4", HAZARD, True, False),
        TileDefinition(8, "Erosion Level 3", HAZARD, True, False),
        TileDefinition(9, "Erosion Level 2", HAZARD, True, False),
        TileDefinition(10, "Erosion Level 1", HAZARD, True, False, buildable=True),
        TileDefinition(11, "Water", HAZARD, False, False),
        TileDefinition(12, "Slimy Slug Hole", HAZARD, False, True, drill_cost=5),
        TileDefinition(13, "Power Path In Progress", SPECIAL, True, False),
        TileDefinition(14, "Power Path Building", SPECIAL, True, False),
        TileDefinition(15, "Power Path Building Powered", SPECIAL, True, False),
        TileDefinition(16, "Power Path 1", SPECIAL, True, False),
        TileDefinition(17, "Power Path 1 Powered", SPECIAL, True, False),
        TileDefinition(18, "Power Path 2 Adjacent", SPECIAL, True, False),
        TileDefinition(19, "Power Path 2 Adjacent Powered", SPECIAL, True, False),
        TileDefinition(20, "Power Path 2 Opposite", SPECIAL, True, False),
        TileDefinition(21, "Power Path 2 Opposite Powered", SPECIAL, True, False),
        TileDefinition(22, "Power Path 3", SPECIAL, True, False),
        TileDefinition(23, "Power Path 3 Powered", SPECIAL, True, False),
        TileDefinition(24, "Power Path 4", SPECIAL, True, False),
        TileDefinition(25, "Power Path 4 Powered", SPECIAL, True, False),
    ]
    definitions += _wall_family(26, "Dirt", WALL, 3)
    definitions += _wall_family(30, "Loose Rock", WALL, 2)
    definitions += _wall_family(34, "Hard Rock", WALL, 6)
    definitions += _wall_family(38, "Solid Rock", WALL, None)
    definitions += _wall_family(42, "Crystal Seam", RESOURCE, 4, resource="crystal")
    definitions += _wall_family(46, "Ore Seam", RESOURCE, 4, resource="ore")
    definitions += _wall_family(50, "Recharge Seam", RESOURCE, 4, resource="recharge")
    definitions += [
        TileDefinition(58, "Roof", SPECIAL, False, False),
        TileDefinition(60, "Fake Rubble 1", SPECIAL, True, False),
        TileDefinition(61, "Fake Rubble 2", SPECIAL, True, False),
        TileDefinition(62, "Fake Rubble 3", SPECIAL, True, False),
        TileDefinition(63, "Fake Rubble 4", SPECIAL, True, False),
        TileDefinition(64, "Cliff Type 1 (Experimental)", SPECIAL, False, False),
        TileDefinition(65, "Cliff Type 2 (Experimental)", SPECIAL, False, False),
    ]

    # Reinforced variants of 26-53 and of the two cliff types sit 50 codes higher
    reinforced = []
    for definition in definitions:
        if 26 <= definition.code <= 53 or definition.code in (64, 65):
            cost = definition.drill_cost * 2 if definition.drill_cost is not None else None
            reinforced.append(TileDefinition(
                definition.code + REINFORCED_OFFSET, f"{definition.name} (Reinforced)",
                definition.category, False, definition.drillable,
                drill_cost=cost, resource=definition.resource))
    definitions += reinforced

    definitions += [
        TileDefinition(112, "Slimy Slug Hole (Variant)", HAZARD, False, True, drill_cost=5),
        TileDefinition(116, "Special Ground 1", SPECIAL, True, False),
        TileDefinition(117, "Special Ground 2", SPECIAL, True, False),
        TileDefinition(118, "Special Ground 3", SPECIAL, True, False),
        TileDefinition(119, "Special Ground 4", SPECIAL, True, False),
        TileDefinition(120, "Special Wall 1", WALL, False, True, drill_cost=3),
        TileDefinition(121, "Special Wall 2", WALL, False, True, drill_cost=3),
        TileDefinition(122, "Special Wall 3", WALL, False, True, drill_cost=3),
        TileDefinition(123, "Special Wall 4", WALL, False, True, drill_cost=3),
        TileDefinition(124, "Floating Panels", SPECIAL, True, False),
        TileDefinition(125, "Special Hazard 1", HAZARD, False, False),
    ]
    # Codes seen in shipped levels whose behaviour is not documented; 142 and 159 never occur
    for code in range(126, 163):
        if code in (142, 159):
            continue
        definitions.append(TileDefinition(code, f"Tile {code}", _placeholder_category(code), False, False))

    definitions += [
        TileDefinition(163, "Landslide Rubble", RUBBLE, True, True, drill_cost=1),
        TileDefinition(164, "Dense Rubble", RUBBLE, True, True, drill_cost=1),
        TileDefinition(165, "Unstable Rubble", RUBBLE, True, True, drill_cost=1),
    ]
    return definitions


DEFAULT_TILE_CATALOG = TileCatalog(_build_default_definitions())
