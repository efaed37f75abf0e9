# section_scanner.py
# Splits DAT source text into named, brace-delimited sections

import re
from bisect import bisect_right
from typing import Dict, List, Optional, Tuple

from dat_model import ParseIssue, Section, ERROR, WARNING

HEADER_RE = re.compile(r'([A-Za-z_][A-Za-z0-9_]*)[ \t]*\{')
WORD_RE = re.compile(r'\w+')
COMMENT_RE = re.compile(r'^([ \t]*)(#.*)$', re.MULTILINE)


def blank_comments(text: str) -> str:
    """
    Replace every `#` comment line with spaces of the same length, so line and
    column positions are unchanged.
    """
    return COMMENT_RE.sub(lambda m: m.group(1) + " " * len(m.group(2)), text)


class SectionScanner:
    def __init__(self, text: str, verbose: bool = False):
        self.text = blank_comments(text)
        self.verbose = verbose
        self.sections: Dict[str, Section] = {}
        self.issues: List[ParseIssue] = []
        self._line_starts = [0] + [m.end() for m in re.finditer(r'\n', self.text)]

    def debug_print(self, message: str) -> None:
        if self.verbose:
            print(f"[DEBUG] {message}")

    def position(self, offset: int) -> Tuple[int, int]:
        """(line, column) of an absolute character offset."""
        line = bisect_right(self._line_starts, offset) - 1
        return line, offset - self._line_starts[line]

    def _next_line_start(self, offset: int) -> int:
        line, _ = self.position(offset)
        if line + 1 < len(self._line_starts):
            return self._line_starts[line + 1]
        return len(self.text)

    def _find_closing_brace(self, open_offset: int) -> Optional[int]:
        depth = 0
        text = self.text
        for offset in range(open_offset, len(text)):
            char = text[offset]
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return offset
        return None

    def scan(self) -> Tuple[Dict[str, Section], List[ParseIssue]]:
        text = self.text
        pos = 0
        previous: Optional[str] = None
        while pos < len(text):
            char = text[pos]
            if char.isspace():
                pos += 1
                continue

            header = HEADER_RE.match(text, pos)
            if header:
                name = header.group(1).lower()
                open_offset = header.end() - 1
                start_line, column = self.position(pos)
                close_offset = self._find_closing_brace(open_offset)
                if close_offset is None:
                    self.issues.append(ParseIssue(
                        "malformed-section",
                        f"Section '{name}' has unbalanced braces",
                        start_line, column, name, ERROR))
                    self.debug_print(f"Unbalanced section '{name}' at line {start_line}")
                    pos = self._next_line_start(pos)
                    continue

                end_line, _ = self.position(close_offset)
                _, content_column = self.position(open_offset + 1)
                section = Section(name, start_line, end_line, text[open_offset + 1:close_offset], content_column,
                                  pos, close_offset + 1)
                if name in self.sections:
                    first = self.sections[name]
                    self.issues.append(ParseIssue(
                        "duplicate-section",
                        f"Section '{name}' is declared again; the one at line {first.start_line + 1} is used",
                        start_line, column, name, WARNING))
                else:
                    self.sections[name] = section
                    self.debug_print(f"Found section '{name}' lines {start_line}-{end_line}")
                previous = name
                pos = close_offset + 1
                continue

            if char == '}':
                line, column = self.position(pos)
                self.issues.append(ParseIssue(
                    "malformed-section",
                    "Unmatched closing brace" + (f" after section '{previous}'" if previous else ""),
                    line, column, previous, ERROR))
                pos += 1
                continue

            # Text outside any section is ignored
            word = WORD_RE.match(text, pos)
            if word:
                self.debug_print(f"Ignoring stray text '{word.group(0)}' at line {self.position(pos)[0]}")
                pos = word.end()
            else:
                pos += 1
        return self.sections, self.issues


def scan_sections(text: str, verbose: bool = False) -> Tuple[Dict[str, Section], List[ParseIssue]]:
    return SectionScanner(text, verbose).scan()
