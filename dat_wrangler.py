#!/usr/bin/env python3
"""
DatWrangler

This script checks Manic Miners level files (.dat). It parses the file into
sections, reports parse issues and structural diagnostics, can run a
reachability analysis from the Tool Store, and can apply the automatic fixes
that exist for some diagnostics.

Usage:
    python dat_wrangler.py --input <level.dat> [--analyze] [--can-mine] [--origin ROW COL] [--fix] [--output <file>] [--verbose]

Arguments:
    --input, -i     : Path to the level file
    --analyze       : Print a reachability summary
    --can-mine      : Let the reachability analysis drill through drillable walls
    --origin        : Start tile for the analysis (default: first Tool Store, else 0 0)
    --fix           : Apply every available automatic fix
    --output, -o    : Where to write the fixed level (default: overwrite the input)
    --verbose, -v   : Print debug information
    --help, -h      : Show this help message

Environment:
    DW_INPUT_FILE and DW_VERBOSE override --input and --verbose.
    DW_VERBOSE=0 (or false, no, off, empty) turns verbose output off.

Example:
    python dat_wrangler.py --input level.dat
    python dat_wrangler.py --input level.dat --analyze --can-mine
    python dat_wrangler.py --input level.dat --fix --output level_fixed.dat

Exit status is 1 when the file cannot be read or parsed, or when any error remains.
"""

import argparse
import os
import sys
from typing import List, Optional, Tuple

from auto_fix import AutoFixEngine
from dat_model import DatDocument, Diagnostic, ERROR
from dat_parser import DatParser, DatParseError
from dat_validator import DatValidator
from reachability import ReachabilityAnalyzer

FALSE_VALUES = ("", "0", "false", "no", "off")


class DatWrangler:
    """
    Loads one level file and runs the requested checks over it.
    """

    def __init__(self, input_file: str, verbose: bool = False):
        self.input_file = input_file
        self.verbose = verbose
        self.document: Optional[DatDocument] = None
        self.diagnostics: List[Diagnostic] = []

    def report(self, line: int, column: int, severity: str, message: str) -> None:
        print(f"{self.input_file}:{line + 1}:{column + 1}: {severity}: {message}")

    def parse_input_file(self) -> bool:
        """
        Read and parse the input file.

        Returns:
            bool: True if a document was produced, False otherwise
        """
        if not os.path.exists(self.input_file):
            print(f"Error: Input file '{self.input_file}' does not exist.")
            return False
        with open(self.input_file, 'r', encoding='utf-8', errors='replace') as f:
            text = f.read()
        try:
            self.document = DatParser(text, self.verbose).parse()
        except DatParseError as e:
            print(f"Error: {self.input_file}: {e}")
            return False
        for issue in self.document.issues:
            self.report(issue.line, issue.column, issue.severity, f"{issue.message} [{issue.kind}]")
        return True

    def validate(self) -> List[Diagnostic]:
        self.diagnostics = DatValidator(verbose=self.verbose).validate(self.document)
        for diagnostic in self.diagnostics:
            self.report(diagnostic.line, diagnostic.column, diagnostic.severity,
                        f"{diagnostic.message} [{diagnostic.code}]")
        return self.diagnostics

    def analyze(self, can_mine: bool = False, origin: Optional[Tuple[int, int]] = None) -> None:
        result = ReachabilityAnalyzer(can_mine=can_mine, verbose=self.verbose).analyze(self.document, origin)
        print(f"Origin: {result.origin}")
        print(f"Reachable floor: {result.reachable_floor}/{result.total_floor} "
              f"({result.accessibility_ratio:.1%})")
        print(f"Isolated regions: {result.isolated_regions}")
        print(f"Choke points: {len(result.choke_points)}")
        print(f"Reachable resources: {result.reachable_resources}/{result.total_resources}")
        for objective in result.unreachable_objectives:
            print(f"Unreachable objective: {objective!r}")

    def apply_fixes(self) -> int:
        """
        Apply available fixes one at a time until none applies.

        Returns:
            int: number of fixes applied
        """
        engine = AutoFixEngine(verbose=self.verbose)
        applied = 0
        diagnostics = DatValidator().validate(self.document)
        progress = True
        while progress:
            progress = False
            for diagnostic in diagnostics:
                fixed = engine.propose_fix(self.document, diagnostic)
                if fixed is None:
                    continue
                print(f"Fixed: {diagnostic.message}")
                self.document = fixed
                applied += 1
                diagnostics = DatValidator().validate(self.document)
                progress = True
                break
        return applied

    def write_output(self, output_file: str) -> None:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(self.document.source)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Validate, analyze and fix Manic Miners level files",
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument('--input', '-i', required='DW_INPUT_FILE' not in os.environ,
                        help='Path to the level file')
    parser.add_argument('--analyze', action='store_true', help='Print a reachability summary')
    parser.add_argument('--can-mine', action='store_true', help='Allow drilling through drillable walls')
    parser.add_argument('--origin', nargs=2, type=int, metavar=('ROW', 'COL'),
                        help='Start tile for the reachability analysis')
    parser.add_argument('--fix', action='store_true', help='Apply every available automatic fix')
    parser.add_argument('--output', '-o', help='Where to write the fixed level (default: overwrite the input)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output for debugging')

    return parser.parse_args(argv)


def env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in FALSE_VALUES


def main(argv: Optional[List[str]] = None):
    """
    Main entry point of the script.
    """
    args = parse_arguments(argv)

    # Override with environment variables if set
    input_file = os.environ.get('DW_INPUT_FILE', args.input)
    verbose = env_flag('DW_VERBOSE', args.verbose)

    wrangler = DatWrangler(input_file, verbose)
    if not wrangler.parse_input_file():
        sys.exit(1)

    if args.fix:
        applied = wrangler.apply_fixes()
        output_file = args.output or input_file
        wrangler.write_output(output_file)
        print(f"Applied {applied} fix(es); wrote {output_file}")

    diagnostics = wrangler.validate()

    if args.analyze:
        origin = tuple(args.origin) if args.origin else None
        wrangler.analyze(args.can_mine, origin)

    has_errors = any(d.severity == ERROR for d in diagnostics) or \
        any(issue.severity == ERROR for issue in wrangler.document.issues)
    if has_errors:
        print("Validation completed with errors.")
        sys.exit(1)
    print("Validation completed successfully.")


if __name__ == '__main__':
    main()
