"""
dat_writer.py
Text edits on DAT source. New sections are rendered whole; existing sections are
changed in place so that every untouched line keeps its exact bytes.
"""
from typing import List, Optional

from dat_model import Grid, Section

# Characters that end a grid cell token
CELL_DELIMITERS = ",;}\r\n\t "


def render_rows(rows: List[List[int]]) -> str:
    return "".join(",".join(str(value) for value in row) + ",\n" for row in rows)


def render_grid(grid: Grid) -> str:
    return "\n" + render_rows(grid.rows)


def render_section(name: str, content: str) -> str:
    return f"{name}{{{content}}}"


def splice_section(source: str, section: Optional[Section], name: str, content: str,
                   after: Optional[Section] = None) -> str:
    """
    Replace an existing section's text with name{content}. When section is None the
    new section is inserted after `after`, or appended at the end of the source.
    """
    rendered = render_section(name, content)
    if section is not None:
        return source[:section.start_offset] + rendered + source[section.end_offset:]
    if after is not None:
        return source[:after.end_offset] + "\n" + rendered + source[after.end_offset:]
    if source and not source.endswith("\n"):
        source += "\n"
    return source + rendered + "\n"


def line_start(source: str, line: int) -> int:
    """Offset of the first character of a 0-based line."""
    offset = 0
    for _ in range(line):
        offset = source.index("\n", offset) + 1
    return offset


def line_text(source: str, line: int) -> str:
    start = line_start(source, line)
    end = source.find("\n", start)
    return source[start:] if end < 0 else source[start:end]


def token_end(source: str, offset: int) -> int:
    while offset < len(source) and source[offset] not in CELL_DELIMITERS:
        offset += 1
    return offset


def insert_text(source: str, offset: int, text: str) -> str:
    return source[:offset] + text + source[offset:]


def replace_span(source: str, start: int, end: int, text: str) -> str:
    return source[:start] + text + source[end:]


def extend_row(source: str, grid: Grid, row: int, values: List[int]) -> Optional[str]:
    """Append cells after the last cell of a row, on the row's own line."""
    columns = grid.cell_columns[row]
    if not columns or not values:
        return None
    last = line_start(source, grid.row_lines[row]) + columns[-1]
    return insert_text(source, token_end(source, last), "".join(f",{value}" for value in values))


def append_rows(source: str, grid: Grid, section: Section, rows: List[List[int]]) -> Optional[str]:
    """
    Add rows after the last row of a grid. An empty grid gets them just before the
    section's closing brace.
    """
    if not rows:
        return None
    if len(grid):
        last_row = len(grid) - 1
        if not grid.cell_columns[last_row]:
            return None
        offset = line_start(source, grid.row_lines[last_row]) + grid.cell_columns[last_row][-1]
        offset = token_end(source, offset)
        if offset < len(source) and source[offset] == ",":
            offset += 1
        return insert_text(source, offset, "\n" + render_rows(rows).rstrip("\n"))

    brace = section.end_offset - 1
    opening = source.rfind("\n", 0, brace) + 1
    if source[opening:brace].strip():
        return insert_text(source, brace, "\n" + render_rows(rows))
    return insert_text(source, opening, render_rows(rows))
