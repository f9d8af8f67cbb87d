"""
Core parser for .gab dialogue scripts
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from gab_forge.errors import ScriptParseError

logger = logging.getLogger(__name__)

BODY_SEPARATOR = "---"
BLOCK_TERMINATOR = "==="

# Metadata keys allowed before the body separator of a node block
KNOWN_METADATA = frozenset({"tags", "position"})

# Values that mean "this speaker has no talking animation"
NO_ANIMATION = frozenset({"", "none"})

SPEAKER_PROPERTY = re.compile(r"^(\w+)\s*:?\s*(.*)$")


@dataclass(frozen=True)
class ScriptNode:
    """A titled block of script, unparsed beyond its metadata"""

    title: str
    metadata: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    line_number: int = 0
    body_line_number: int = 0

    @property
    def tags(self) -> List[str]:
        """Comma-separated ``tags`` metadata as a list"""
        raw = self.metadata.get("tags", "")
        return [tag.strip() for tag in raw.split(",") if tag.strip()]


@dataclass(frozen=True)
class SpeakerDef:
    """A speaker and the animation played while they talk"""

    name: str
    talk_anim: Optional[str] = None
    line_number: int = 0

    @property
    def animation(self) -> Optional[str]:
        """The animation name, or None when absent, empty or 'none'"""
        if self.talk_anim is None or self.talk_anim.strip().lower() in NO_ANIMATION:
            return None
        return self.talk_anim


@dataclass(frozen=True)
class ParseIssue:
    """A structural problem found in collecting mode"""

    line: int
    message: str


@dataclass
class ParsedScript:
    """A complete parsed script file"""

    nodes: List[ScriptNode] = field(default_factory=list)
    speakers: Dict[str, SpeakerDef] = field(default_factory=dict)

    def node_table(self) -> Dict[str, ScriptNode]:
        """Nodes keyed by title; a later duplicate replaces an earlier one"""
        return {node.title: node for node in self.nodes}

    def animation_for(self, name: str) -> Optional[str]:
        """Animation lookup that raises KeyError for undefined speakers"""
        return self.speakers[name].animation


def strip_comment(line: str) -> str:
    """Remove a ``#`` comment and everything after it"""
    pos = line.find("#")
    if pos == -1:
        return line
    return line[:pos]


class ScriptParser:
    """Parser for .gab dialogue scripts

    A script is a sequence of blocks terminated by ``===``::

        speaker: Guide
        ---
        talkAnim: guide_talk
        ===

        title: Start
        tags: examine
        ---
        Guide: Welcome!
        ===

    Structural errors either raise ``ScriptParseError`` (strict mode, the
    default) or are appended to a caller-supplied list (collecting mode).
    """

    def parse(self, text: str, errors: Optional[List[ParseIssue]] = None) -> List[ScriptNode]:
        """Parse script text into nodes, ignoring speaker definitions"""
        return self.parse_file(text, errors).nodes

    def parse_file(self, text: str, errors: Optional[List[ParseIssue]] = None) -> ParsedScript:
        """Parse script text into nodes and a speaker table"""
        lines = [strip_comment(line).rstrip() for line in text.splitlines()]
        script = ParsedScript()

        i = 0
        while i < len(lines):
            stripped = lines[i].strip()

            if stripped.startswith("title:"):
                node, i = self._parse_node(lines, i, errors)
                script.nodes.append(node)
                continue

            if stripped.startswith("speaker:"):
                speaker, i = self._parse_speaker(lines, i)
                if speaker.name in script.speakers:
                    logger.debug("Speaker '%s' redefined on line %d", speaker.name, speaker.line_number)
                script.speakers[speaker.name] = speaker
                continue

            i += 1

        logger.debug("Parsed %d nodes and %d speakers", len(script.nodes), len(script.speakers))
        return script

    def parse_path(self, file_path: Path, errors: Optional[List[ParseIssue]] = None) -> ParsedScript:
        """Parse a .gab file from disk"""
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Dialogue file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            text = f.read()

        return self.parse_file(text, errors)

    def _parse_node(
        self, lines: List[str], start_index: int, errors: Optional[List[ParseIssue]]
    ) -> Tuple[ScriptNode, int]:
        """Parse one ``title:`` block, returns the node and the next line index"""
        title = lines[start_index].strip()[len("title:"):].strip()
        metadata: Dict[str, str] = {}
        body: List[str] = []
        body_start = 0
        in_body = False

        i = start_index + 1
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()

            if stripped == BLOCK_TERMINATOR:
                i += 1
                break

            if in_body:
                body.append(line)
            elif stripped == BODY_SEPARATOR:
                in_body = True
                body_start = i + 2
            elif stripped:
                self._parse_metadata(stripped, i + 1, title, metadata, errors)

            i += 1

        while body and not body[0].strip():
            body.pop(0)
            body_start += 1
        while body and not body[-1].strip():
            body.pop()

        node = ScriptNode(
            title=title,
            metadata=metadata,
            body="\n".join(body),
            line_number=start_index + 1,
            body_line_number=body_start,
        )
        return node, i

    def _parse_metadata(
        self,
        line: str,
        line_number: int,
        title: str,
        metadata: Dict[str, str],
        errors: Optional[List[ParseIssue]],
    ):
        """Record one ``key: value`` metadata line, reporting unknown fields"""
        key, sep, value = line.partition(":")
        key = key.strip()

        if not sep:
            self._report(errors, line_number, f"Malformed metadata line '{line}' in node '{title}'")
            return

        if key not in KNOWN_METADATA:
            self._report(errors, line_number, f"Unknown metadata field '{key}' in node '{title}'")
            return

        metadata[key] = value.strip()

    def _parse_speaker(self, lines: List[str], start_index: int) -> Tuple[SpeakerDef, int]:
        """Parse one ``speaker:`` block, returns the speaker and the next line index"""
        name = lines[start_index].strip()[len("speaker:"):].strip()
        talk_anim: Optional[str] = None

        i = start_index + 1
        while i < len(lines):
            stripped = lines[i].strip()
            i += 1

            if stripped == BLOCK_TERMINATOR:
                break
            if not stripped or stripped == BODY_SEPARATOR:
                continue

            match = SPEAKER_PROPERTY.match(stripped)
            if match and match.group(1) == "talkAnim":
                talk_anim = match.group(2).strip()

        return SpeakerDef(name=name, talk_anim=talk_anim, line_number=start_index + 1), i

    @staticmethod
    def _report(errors: Optional[List[ParseIssue]], line_number: int, message: str):
        """Raise in strict mode, collect in collecting mode"""
        message = f"Line {line_number}: {message}"
        if errors is None:
            raise ScriptParseError(message, line=line_number)
        errors.append(ParseIssue(line=line_number, message=message))
