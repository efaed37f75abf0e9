"""
auto_fix.py
Proposes corrected documents for individual diagnostics. A fix edits the source
text in place, touching only the lines it has to, and the result is parsed again
so the returned document carries accurate positions. The input document is
never modified.
"""
import re
from typing import Dict, List, Optional, Protocol

from dat_model import DatDocument, Diagnostic, Grid, GRID_SECTIONS, ENTITY_SECTIONS, TEXT_SECTIONS
from dat_parser import DatParser
from dat_validator import DatValidator
from dat_writer import (
    append_rows,
    extend_row,
    line_start,
    line_text,
    render_grid,
    replace_span,
    splice_section,
)
from tile_catalog import DEFAULT_FLOOR_CODE, DEFAULT_TILE_CATALOG, TileCatalog

RESOURCE_GRIDS = ("crystals", "ore", "studs")

# Diagnostic data keys that identify the problem a fix targets
IDENTITY_KEYS = {
    "row-length": ("grid", "row"),
    "row-count": ("grid",),
    "missing-section": ("section",),
    "duplicate-id": ("collection", "id"),
}

# Where an inserted optional section goes, relative to existing sections
INSERT_AFTER = {
    "height": "tiles",
    "resources": "height",
}


def default_code(grid_name: str) -> int:
    return DEFAULT_FLOOR_CODE if grid_name == "tiles" else 0


def owning_section(grid_name: str) -> str:
    return "resources" if grid_name in RESOURCE_GRIDS else grid_name


class DatFix(Protocol):
    code: str

    def apply(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[str]:
        """Return the corrected source text, or None when no safe fix exists."""
        ...


class PadShortRowFix:
    code = "row-length"

    def apply(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[str]:
        grid_name = diagnostic.data.get("grid")
        row = diagnostic.data.get("row")
        expected = diagnostic.data.get("expected")
        grid = document.grid(grid_name) if grid_name else None
        if grid is None or row is None or expected is None or row >= len(grid):
            return None
        missing = expected - len(grid.rows[row])
        if missing <= 0:
            # Trimming a long row would drop data
            return None
        return extend_row(document.source, grid, row, [default_code(grid_name)] * missing)


class AppendMissingRowsFix:
    code = "row-count"

    def apply(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[str]:
        grid_name = diagnostic.data.get("grid")
        grid = document.grid(grid_name) if grid_name else None
        section = document.get_section(owning_section(grid_name)) if grid_name else None
        if grid is None or section is None or document.info is None:
            return None
        rowcount, colcount = document.info.rowcount, document.info.colcount
        if not rowcount or not colcount or len(grid) >= rowcount:
            return None
        if not len(grid) and grid_name in RESOURCE_GRIDS:
            # The label line is not tracked, so there is nowhere safe to put the rows
            return None
        rows = [[default_code(grid_name)] * colcount for _ in range(rowcount - len(grid))]
        return append_rows(document.source, grid, section, rows)


class InsertMissingSectionFix:
    code = "missing-section"

    def apply(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[str]:
        name = diagnostic.data.get("section")
        if not name or diagnostic.data.get("required") or document.get_section(name) is not None:
            return None
        if name in GRID_SECTIONS:
            if document.info is None or not document.info.rowcount or not document.info.colcount:
                return None
            rows = [[default_code(name)] * document.info.colcount for _ in range(document.info.rowcount)]
            content = render_grid(Grid(rows, []))
        elif name in ENTITY_SECTIONS or name in TEXT_SECTIONS or name in ("objectives", "script", "resources"):
            content = "\n"
        else:
            return None
        after = document.get_section(INSERT_AFTER.get(name, "")) or document.get_section("tiles")
        return splice_section(document.source, None, name, content, after)


class RenameDuplicateIdFix:
    """
    Gives every later entity sharing an ID the first free `<id>_<n>` name, n >= 2.
    Only the ID value on each renamed entity's line changes.
    """
    code = "duplicate-id"

    def apply(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[str]:
        collection = diagnostic.data.get("collection")
        entity_id = diagnostic.data.get("id")
        entities = document.entities(collection) if collection else None
        if not entities or entity_id is None:
            return None
        id_re = re.compile(r'(?:^|,)\s*ID\s*=\s*(' + re.escape(entity_id) + r')\s*(?=,|\r?$)')
        used = {entity.id for entity in entities if entity.id is not None}
        edits = []
        for entity in [e for e in entities if e.id == entity_id][1:]:
            match = id_re.search(line_text(document.source, entity.line))
            if match is None:
                return None
            suffix = 2
            while f"{entity_id}_{suffix}" in used:
                suffix += 1
            used.add(f"{entity_id}_{suffix}")
            start = line_start(document.source, entity.line)
            edits.append((start + match.start(1), start + match.end(1), f"{entity_id}_{suffix}"))
        source = document.source
        for start, end, text in reversed(edits):
            source = replace_span(source, start, end, text)
        return source


class AutoFixEngine:
    """
    Dispatches a diagnostic to the fix registered for its code.
    """

    def __init__(self, catalog: Optional[TileCatalog] = None, verbose: bool = False,
                 fixes: Optional[List[DatFix]] = None):
        self.catalog = catalog or DEFAULT_TILE_CATALOG
        self.verbose = verbose
        if fixes is None:
            fixes = [PadShortRowFix(), AppendMissingRowsFix(), InsertMissingSectionFix(), RenameDuplicateIdFix()]
        self.fixes: Dict[str, DatFix] = {fix.code: fix for fix in fixes}

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def _still_present(self, target: Diagnostic, diagnostics: List[Diagnostic]) -> bool:
        keys = IDENTITY_KEYS.get(target.code, ())
        for candidate in diagnostics:
            if candidate.code != target.code:
                continue
            if all(candidate.data.get(key) == target.data.get(key) for key in keys):
                return True
        return False

    def propose_fix(self, document: DatDocument, diagnostic: Diagnostic) -> Optional[DatDocument]:
        fix = self.fixes.get(diagnostic.code)
        if fix is None:
            self.debug_print(f"No automatic fix for '{diagnostic.code}'")
            return None
        source = fix.apply(document, diagnostic)
        if source is None:
            self.debug_print(f"{type(fix).__name__} declined: {diagnostic.message}")
            return None
        fixed = DatParser(source, self.verbose).parse()
        if __debug__:
            remaining = DatValidator(self.catalog).validate(fixed)
            if self._still_present(diagnostic, remaining):
                self.debug_print(f"{type(fix).__name__} did not resolve: {diagnostic.message}")
                return None
        return fixed


def propose_fix(document: DatDocument, diagnostic: Diagnostic,
                catalog: Optional[TileCatalog] = None) -> Optional[DatDocument]:
    return AutoFixEngine(catalog).propose_fix(document, diagnostic)
