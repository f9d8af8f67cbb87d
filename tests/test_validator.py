"""Tests for the .gab file validator."""

import json
from pathlib import Path
from tempfile import NamedTemporaryFile

from gab_forge.cli.validate_cmd import ScriptValidator


def create_temp_gab(content: str) -> Path:
    """Create a temporary .gab file with the given content."""
    with NamedTemporaryFile(mode="w", suffix=".gab", delete=False, encoding="utf-8") as f:
        f.write(content)
        return Path(f.name)


VALID = """speaker: Guide
---
talkAnim: guide_talk
===
title: Start
---
Guide: Hello!
-> Leave
<<jump End>>
===
title: End
---
Guide: Bye
===
"""


class TestValidatorBasic:
    """Test basic validator functionality."""

    def test_valid_simple_dialogue(self):
        """Test validation of a simple valid dialogue."""
        path = create_temp_gab(VALID)
        try:
            validator = ScriptValidator(path, quiet=True)
            assert validator.validate() is True
            assert validator.errors == []
            assert validator.warnings == []
        finally:
            path.unlink()

    def test_missing_file(self):
        """Test validation of non-existent file."""
        validator = ScriptValidator(Path("/nonexistent/file.gab"), quiet=True)
        assert validator.validate() is False

    def test_report_prints(self, capsys):
        """The colored report names the file."""
        path = create_temp_gab(VALID)
        try:
            ScriptValidator(path).validate()
        finally:
            path.unlink()

        out = capsys.readouterr().out
        assert "VALIDATION REPORT" in out
        assert "VALIDATION PASSED" in out

    def test_default_start_is_first_node(self):
        """Without --start the first node is the start."""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)
        validator.validate_text(VALID)
        assert validator.start_title == "Start"


class TestValidatorErrors:
    """Test errors reported with line numbers."""

    def test_unknown_metadata(self):
        """Structural parse errors are errors at their line."""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)
        ok = validator.validate_text("title: Start\ncolor: red\n---\n===")

        assert ok is False
        assert len(validator.errors) == 1
        assert validator.errors[0].line_number == 2
        assert validator.errors[0].context == "color: red"
        assert "Unknown metadata field 'color'" in validator.errors[0].message

    def test_dangling_target(self):
        """References to missing nodes are errors at the node's title line."""
        content = """title: Start
---
-> Go
<<jump Nowhere>>
==="""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)

        assert validator.validate_text(content) is False
        assert validator.errors[0].line_number == 1
        assert "Nowhere" in validator.errors[0].message

    def test_missing_start(self):
        """An explicit start node must exist."""
        validator = ScriptValidator(Path("inline.gab"), start="Intro", quiet=True)

        assert validator.validate_text(VALID) is False
        assert any("Intro" in error.message for error in validator.errors)

    def test_duplicate_titles(self):
        """Duplicate titles are errors at the later definition."""
        content = """title: A
---
===
title: A
---
==="""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)
        validator.validate_text(content)

        assert [error.line_number for error in validator.errors] == [4]


class TestValidatorWarnings:
    """Test lint warnings."""

    def test_unreachable_and_nonterminating(self):
        """Reachability findings are warnings mapped to title lines."""
        content = """title: Start
---
Guide: Again
<<jump Start>>
===
title: Orphan
---
==="""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)

        assert validator.validate_text(content) is True
        messages = {warning.line_number: warning.message for warning in validator.warnings}
        assert messages[1] == "Non-terminating node: Start"
        assert messages[6] == "Unreachable node: Orphan"

    def test_undefined_speaker(self):
        """Undefined speakers are warnings at the dialogue line."""
        content = """title: Start
---
Stranger: Hello?
==="""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)
        validator.validate_text(content)

        assert len(validator.warnings) == 1
        assert validator.warnings[0].line_number == 3
        assert "Stranger" in validator.warnings[0].message

    def test_multiple_commands(self):
        """Several commands in one node are flagged."""
        content = """title: Start
---
<<loadPuzzle one>>
<<loadLevel two>>
==="""
        validator = ScriptValidator(Path("inline.gab"), quiet=True)
        validator.validate_text(content)

        assert any("more than one command" in warning.message for warning in validator.warnings)

    def test_empty_terminating_commands(self):
        """An explicitly empty set means no command ends a dialogue."""
        content = """title: Start
---
<<loadPuzzle lockpick>>
==="""
        default = ScriptValidator(Path("inline.gab"), quiet=True)
        default.validate_text(content)
        assert default.warnings == []

        strict = ScriptValidator(Path("inline.gab"), quiet=True, terminating_commands=frozenset())
        strict.validate_text(content)
        assert [warning.message for warning in strict.warnings] == ["Non-terminating node: Start"]


class TestValidatorRegions:
    """Test examine region cross-checks."""

    def test_region_errors(self, tmp_path):
        """Regions naming missing nodes are errors."""
        script = tmp_path / "cryoroom.gab"
        script.write_text(VALID, encoding="utf-8")
        regions = tmp_path / "regions.json"
        regions.write_text(
            json.dumps(
                {
                    "cryoroom": [
                        {"x": 0, "y": 0, "width": 10, "height": 10, "type": "dialogue",
                         "level": "cryoroom", "dialogueNode": "Start"},
                        {"x": 0, "y": 0, "width": 10, "height": 10, "type": "dialogue",
                         "level": "cryoroom", "dialogueNode": "Missing"},
                    ]
                }
            ),
            encoding="utf-8",
        )

        validator = ScriptValidator(script, regions_path=regions, quiet=True)

        assert validator.validate() is False
        assert len(validator.errors) == 1
        assert "cryoroom[1]" in validator.errors[0].message
        assert "Missing" in validator.errors[0].message
