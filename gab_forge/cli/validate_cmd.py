"""
Validation script for .gab dialogue files with line-level error reporting.

Uses ScriptParser in collecting mode, then runs the graph checks and lints.
"""

import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Dict, List, Optional

from gab_forge.config import DEFAULT_TERMINATING_COMMANDS
from gab_forge.examine import load_regions, validate_regions
from gab_forge.logging_config import setup_logging
from gab_forge.parser.graph import (
    GraphReport,
    find_multiple_commands,
    find_undefined_speakers,
    validate_graph,
)
from gab_forge.parser.parser import ParsedScript, ParseIssue, ScriptParser


# ANSI color codes for terminal output
class Colors:
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


@dataclass
class ValidationError:
    """Represents a validation error with location info"""

    line_number: int
    column: int
    severity: str  # 'error' or 'warning'
    message: str
    context: Optional[str] = None
    suggestion: Optional[str] = None


class ScriptValidator:
    """Validator for .gab files.

    Structural parse problems are errors; reachability, termination and
    speaker findings are warnings. ``validate`` returns True when there are
    no errors.
    """

    def __init__(
        self,
        file_path: Path,
        start: Optional[str] = None,
        regions_path: Optional[Path] = None,
        quiet: bool = False,
        terminating_commands: Optional[AbstractSet[str]] = None,
    ):
        self.file_path = Path(file_path)
        self.start = start
        if terminating_commands is None:
            terminating_commands = DEFAULT_TERMINATING_COMMANDS
        self.terminating_commands = terminating_commands
        self.regions_path = regions_path
        self.quiet = quiet
        self.lines: List[str] = []
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []

        self.script: Optional[ParsedScript] = None
        self.report: Optional[GraphReport] = None

    def validate(self) -> bool:
        """Main validation method"""
        if not self.file_path.exists():
            self._print(f"❌ File not found: {self.file_path}")
            return False

        with open(self.file_path, "r", encoding="utf-8") as f:
            text = f.read()

        self._run_checks(text)
        if self.regions_path is not None:
            self._validate_regions()

        if not self.quiet:
            self.print_report()

        return len(self.errors) == 0

    def validate_text(self, text: str) -> bool:
        """Validate script text that has not been saved to disk"""
        self._run_checks(text)
        return len(self.errors) == 0

    def _run_checks(self, text: str):
        self.lines = text.splitlines()

        issues: List[ParseIssue] = []
        self.script = ScriptParser().parse_file(text, issues)
        for issue in issues:
            # Drop the "Line N: " prefix, the report prints the line itself
            self._add_error(issue.line, 1, issue.message.partition(": ")[2] or issue.message)

        self._validate_titles()
        self._validate_graph()
        self._validate_speakers()
        self._validate_commands()

    @property
    def start_title(self) -> str:
        """Explicit start node, else the first node in the file"""
        if self.start:
            return self.start
        if self.script and self.script.nodes:
            return self.script.nodes[0].title
        return ""

    def node_line(self, title: str) -> int:
        """Source line of a node's ``title:`` line"""
        for node in self.script.nodes:
            if node.title == title:
                return node.line_number
        return 1

    def _validate_titles(self):
        """Check for duplicate titles and a missing start node"""
        counts = Counter(node.title for node in self.script.nodes)
        seen: Dict[str, int] = {}
        for node in self.script.nodes:
            if counts[node.title] > 1:
                seen[node.title] = seen.get(node.title, 0) + 1
                if seen[node.title] > 1:
                    self._add_error(
                        node.line_number,
                        1,
                        f"Duplicate node title '{node.title}'",
                        "The last definition wins at runtime; rename one of them",
                    )

        if not self.script.nodes:
            self._add_warning(1, 1, "File defines no nodes")
        elif self.start_title not in counts:
            self._add_error(1, 1, f"Start node '{self.start_title}' does not exist")

    def _validate_graph(self):
        """Run reachability and termination analysis"""
        self.report = validate_graph(self.script.nodes, self.start_title, self.terminating_commands)

        for source, target in self.report.dangling:
            self._add_error(
                self.node_line(source), 1, f"Node '{source}' references missing node '{target}'"
            )
        for title in self.report.unreachable:
            self._add_warning(self.node_line(title), 1, f"Unreachable node: {title}")
        for title in self.report.nonterminating:
            self._add_warning(
                self.node_line(title),
                1,
                f"Non-terminating node: {title}",
                "Every path should reach a loadPuzzle/loadLevel command, a dead end or a node tagged 'final'",
            )

    def _validate_speakers(self):
        """Check that every speaker line names a defined speaker"""
        for issue in find_undefined_speakers(self.script):
            self._add_warning(issue.line, 1, f"Speaker '{issue.speaker}' is not defined (node '{issue.node}')")

    def _validate_commands(self):
        """Flag nodes where a later command silently replaces an earlier one"""
        for title in find_multiple_commands(self.script.nodes):
            self._add_warning(
                self.node_line(title),
                1,
                f"Node '{title}' has more than one command; only the last one runs",
                "Split the commands across nodes joined with <<jump>>",
            )

    def _validate_regions(self):
        """Check examine regions against the scripts next to this file"""
        rooms = load_regions(self.regions_path)
        findings = validate_regions(rooms, self.file_path.parent)
        for location, messages in findings.items():
            for message in messages:
                self._add_error(0, 1, f"Examine region {location}: {message}")

    def _add_error(self, line: int, column: int, message: str, suggestion: str = None):
        """Add an error"""
        context = self.lines[line - 1].rstrip() if 0 < line <= len(self.lines) else None
        self.errors.append(ValidationError(line, column, "error", message, context, suggestion))

    def _add_warning(self, line: int, column: int, message: str, suggestion: str = None):
        """Add a warning"""
        context = self.lines[line - 1].rstrip() if 0 < line <= len(self.lines) else None
        self.warnings.append(ValidationError(line, column, "warning", message, context, suggestion))

    def _print(self, text: str):
        if not self.quiet:
            print(text)

    def print_report(self):
        """Report validation results"""
        print(f"\n{Colors.BOLD}{'=' * 80}{Colors.RESET}")
        print(f"{Colors.BOLD}VALIDATION REPORT: {Colors.CYAN}{self.file_path.name}{Colors.RESET}")
        print(f"{Colors.BOLD}{'=' * 80}{Colors.RESET}")

        if not self.errors and not self.warnings:
            print(f"\n{Colors.GREEN}{Colors.BOLD}✅ VALIDATION PASSED - No issues found!{Colors.RESET}")
            self._print_statistics()
            return

        if self.errors:
            print(f"\n{Colors.RED}{Colors.BOLD}❌ ERRORS ({len(self.errors)}):{Colors.RESET}")
            for error in sorted(self.errors, key=lambda e: e.line_number):
                self._print_issue(error, Colors.RED)

        if self.warnings:
            print(f"\n{Colors.YELLOW}{Colors.BOLD}⚠️  WARNINGS ({len(self.warnings)}):{Colors.RESET}")
            for warning in sorted(self.warnings, key=lambda w: w.line_number):
                self._print_issue(warning, Colors.YELLOW)

        print(f"\n{Colors.BOLD}{'=' * 80}{Colors.RESET}")
        error_text = f"{Colors.RED}{len(self.errors)} error(s){Colors.RESET}"
        warning_text = f"{Colors.YELLOW}{len(self.warnings)} warning(s){Colors.RESET}"
        print(f"{Colors.BOLD}Summary:{Colors.RESET} {error_text}, {warning_text}")

        if self.errors:
            print(f"{Colors.RED}{Colors.BOLD}❌ VALIDATION FAILED{Colors.RESET}")
        else:
            print(f"{Colors.GREEN}{Colors.BOLD}✅ VALIDATION PASSED WITH WARNINGS{Colors.RESET}")

        self._print_statistics()

    def _print_issue(self, issue: ValidationError, color: str):
        """Print a single issue with context"""
        line_info = f"{color}{Colors.BOLD}Line {issue.line_number}{Colors.RESET}"
        print(f"\n  {line_info} - {Colors.BOLD}{issue.message}{Colors.RESET}")

        if issue.context:
            print(f"    {color}{issue.line_number:4d}{Colors.RESET} │ {issue.context}")

        if issue.suggestion:
            print(f"    {Colors.CYAN}💡 Suggestion:{Colors.RESET} {issue.suggestion}")

    def _print_statistics(self):
        """Print file statistics"""
        print(f"\n{Colors.BOLD}{Colors.BLUE}📊 STATISTICS:{Colors.RESET}")
        print(f"  • Nodes: {Colors.CYAN}{len(self.script.nodes)}{Colors.RESET}")
        print(f"  • Speakers: {Colors.CYAN}{len(self.script.speakers)}{Colors.RESET}")
        print(f"  • Start node: {Colors.CYAN}{self.start_title}{Colors.RESET}")
        print(f"  • Total lines: {Colors.CYAN}{len(self.lines)}{Colors.RESET}")


def main():
    """Main entry point"""
    setup_logging()

    if len(sys.argv) < 2:
        print("Usage: gab-validate <dialogue_file.gab> [start_node]")
        print("\nExample:")
        print("  gab-validate dialogue/cryoroom.gab CryoRoom_Intro")
        sys.exit(1)

    file_path = Path(sys.argv[1])
    start = sys.argv[2] if len(sys.argv) >= 3 else None

    validator = ScriptValidator(file_path, start=start)
    success = validator.validate()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
