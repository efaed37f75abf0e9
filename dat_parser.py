"""
DAT Parser

This module turns DAT level source text into a DatDocument. Section boundaries
come from section_scanner; each section body is handed to the matching helper in
section_parsers or script_parser. Recoverable problems are collected as
ParseIssue values on the document; only empty input is a hard failure.
"""

from typing import List, Optional, Tuple

from dat_model import (
    DatDocument,
    ParseIssue,
    Section,
    ERROR,
    WARNING,
)
from section_scanner import scan_sections
from section_parsers import (
    _parse_info,
    _parse_grid,
    _parse_resources,
    _parse_objectives,
    _parse_entities,
    _parse_text,
)
from script_parser import _parse_script


class DatParseError(Exception):
    """
    Unrecoverable parse failure.
    """

    def __init__(self, message: str, line: int = 0, column: int = 0, section: Optional[str] = None):
        super().__init__(message)
        self.line = line
        self.column = column
        self.section = section


class EmptyDocumentError(DatParseError):
    pass


SECTION_HANDLERS = {
    "info": _parse_info,
    "tiles": _parse_grid,
    "height": _parse_grid,
    "blocks": _parse_grid,
    "landslidefrequency": _parse_grid,
    "lavaspread": _parse_grid,
    "resources": _parse_resources,
    "objectives": _parse_objectives,
    "buildings": _parse_entities,
    "vehicles": _parse_entities,
    "creatures": _parse_entities,
    "miners": _parse_entities,
    "script": _parse_script,
    "comments": _parse_text,
    "briefing": _parse_text,
    "briefingsuccess": _parse_text,
    "briefingfailure": _parse_text,
}


class DatParser:
    """
    Parser for DAT level files.
    Converts source text to a DatDocument.
    """

    def __init__(self, text: str, verbose: bool = False):
        """
        Initialize the parser with the source text.

        Args:
            text: Full DAT source
            verbose: Whether to print debug information (default: False)
        """
        self.text = text
        self.verbose = verbose
        self.issues: List[ParseIssue] = []
        self.errors: List[ParseIssue] = []
        self.warnings: List[ParseIssue] = []

    def debug_print(self, message: str) -> None:
        """
        Print a debug message if verbose mode is enabled.

        Args:
            message: The message to print
        """
        if self.verbose:
            print(f"[DEBUG] {message}")

    def log_error(self, kind: str, message: str, line: int, column: int = 0, section: Optional[str] = None) -> None:
        """
        Record a recoverable error as a ParseIssue.

        Args:
            kind: Issue identifier such as 'invalid-number'
            message: Human readable description
            line: 0-based document line
            column: 0-based column
            section: Name of the section the issue belongs to
        """
        issue = ParseIssue(kind, message, line, column, section, ERROR)
        self.issues.append(issue)
        self.errors.append(issue)
        if self.verbose:
            print(f"[ERROR] line {line + 1}: {message}")

    def log_warning(self, kind: str, message: str, line: int, column: int = 0, section: Optional[str] = None) -> None:
        issue = ParseIssue(kind, message, line, column, section, WARNING)
        self.issues.append(issue)
        self.warnings.append(issue)
        if self.verbose:
            print(f"[WARNING] line {line + 1}: {message}")

    def _record_scan_issue(self, issue: ParseIssue) -> None:
        self.issues.append(issue)
        if issue.severity == ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)
        if self.verbose:
            print(f"[{issue.severity.upper()}] line {issue.line + 1}: {issue.message}")

    def parse(self) -> DatDocument:
        """
        Parse the source text and return the resulting document.

        Returns:
            The parsed DatDocument; recoverable issues are on its issues list

        Raises:
            EmptyDocumentError: when the text is empty or only whitespace
        """
        self.issues = []
        self.errors = []
        self.warnings = []

        if not self.text or not self.text.strip():
            raise EmptyDocumentError("DAT source is empty")

        sections, scan_issues = scan_sections(self.text, self.verbose)
        for issue in scan_issues:
            self._record_scan_issue(issue)

        document = DatDocument(self.text)
        document.sections = sections
        for name, section in sections.items():
            handler = SECTION_HANDLERS.get(name)
            if handler is None:
                self.debug_print(f"Keeping unrecognized section '{name}' as raw text")
                continue
            self.debug_print(f"Parsing section '{name}' (lines {section.start_line}-{section.end_line})")
            setattr(document, name, handler(self, section))

        document.issues = list(self.issues)
        return document


def parse(text: str, verbose: bool = False) -> Tuple[DatDocument, List[ParseIssue]]:
    """
    Parse DAT source text.

    Returns:
        (document, issues); the issues list is also available as document.issues
    """
    document = DatParser(text, verbose).parse()
    return document, document.issues


def get_section_at_position(document: DatDocument, line: int) -> Optional[Section]:
    return document.get_section_at_position(line)


def get_section(document: DatDocument, name: str) -> Optional[Section]:
    return document.get_section(name)
