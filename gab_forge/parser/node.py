"""
Node body compilation: turns a node's raw body into lines, options and directives
"""

import logging
import re
from dataclasses import dataclass, field
from typing import AbstractSet, FrozenSet, List, Optional, Tuple

from .parser import ScriptNode

logger = logging.getLogger(__name__)

COMMAND_NAMES = ("loadPuzzle", "loadLevel", "return")

OPTION_MARKER = "->"

JUMP_PATTERN = re.compile(r"^<<\s*jump\s+(\w+)\s*>>$")
EDGE_PATTERN = re.compile(r"^<<\s*(jump|detour)\s+(\w+)\s*>>$")
LOAD_PATTERN = re.compile(r"^<<\s*(loadPuzzle|loadLevel)\s+([^>]+?)\s*>>$")
RETURN_PATTERN = re.compile(r"^<<\s*return\s*>>$")
GATE_PATTERN = re.compile(r"^\{(!?)([^}]+)\}\s*(.*)$")
SPEAKER_PATTERN = re.compile(r"^([^:]+?):\s*(.*)$")


@dataclass(frozen=True)
class Option:
    """A player choice shown at the end of a node"""

    text: str
    target: Optional[str] = None
    visited: bool = False
    detour: bool = False


@dataclass(frozen=True)
class Command:
    """A side-effecting directive handed to the host"""

    name: str
    args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompiledNode:
    """A node body resolved against a snapshot of the visited set"""

    title: str
    tags: FrozenSet[str] = frozenset()
    lines: Tuple[str, ...] = ()
    options: Tuple[Option, ...] = ()
    fallthrough_target: Optional[str] = None
    command: Optional[Command] = None

    def is_terminal(self) -> bool:
        """True for a dead end: nothing to say, choose, run or jump to"""
        return not (self.lines or self.options or self.fallthrough_target or self.command)


@dataclass(frozen=True)
class Edge:
    target: str
    detour: bool = False


@dataclass
class NodeEdges:
    """Gate-independent outgoing edges of a node, used for graph analysis"""

    targets: List[Edge] = field(default_factory=list)
    command: Optional[Command] = None
    command_count: int = 0


def parse_command(directive: str) -> Optional[Command]:
    """Match a ``<<loadPuzzle X>>``, ``<<loadLevel X>>`` or ``<<return>>`` directive"""
    match = LOAD_PATTERN.match(directive)
    if match:
        return Command(name=match.group(1), args=tuple(match.group(2).split()))
    if RETURN_PATTERN.match(directive):
        return Command(name="return")
    return None


def split_gate(text: str) -> Tuple[Optional[Tuple[bool, str]], str]:
    """Split a ``{Title}`` / ``{!Title}`` prefix off a line.

    Returns ``((negate, title), remainder)``, or ``(None, text)`` when the
    line is not gated.
    """
    match = GATE_PATTERN.match(text)
    if not match:
        return None, text
    return (match.group(1) == "!", match.group(2).strip()), match.group(3).strip()


def gate_passes(gate: Optional[Tuple[bool, str]], visited: AbstractSet[str]) -> bool:
    """Evaluate a gate against the visited set; ungated lines always pass"""
    if gate is None:
        return True
    negate, title = gate
    return (title not in visited) if negate else (title in visited)


def split_speaker(line: str) -> Tuple[Optional[str], str]:
    """Split ``"Speaker: text"`` into its parts; bare text has no speaker"""
    match = SPEAKER_PATTERN.match(line)
    if not match:
        return None, line
    return match.group(1).strip(), match.group(2)


def compile_node(node: ScriptNode, visited: AbstractSet[str]) -> CompiledNode:
    """Compile a node body against the set of visited titles"""
    body_lines = node.body.split("\n") if node.body else []
    texts: List[str] = []
    options: List[Option] = []
    fallthrough: Optional[str] = None
    command: Optional[Command] = None

    i = 0
    # Dialogue lines, until the first option
    while i < len(body_lines):
        stripped = body_lines[i].strip()
        if stripped.startswith(OPTION_MARKER):
            break
        i += 1

        if not stripped:
            continue

        if stripped.startswith("<<"):
            jump = JUMP_PATTERN.match(stripped)
            if jump:
                fallthrough = jump.group(1)
                continue
            parsed = parse_command(stripped)
            if parsed is not None:
                if command is not None:
                    logger.warning(
                        "Node '%s' has more than one command; '%s' replaces '%s'",
                        node.title,
                        parsed.name,
                        command.name,
                    )
                command = parsed
            continue

        gate, text = split_gate(stripped)
        if gate_passes(gate, visited) and text:
            texts.append(text)

    # Options
    while i < len(body_lines):
        stripped = body_lines[i].strip()
        i += 1
        if not stripped.startswith(OPTION_MARKER):
            continue

        gate, text = split_gate(stripped[len(OPTION_MARKER):].strip())
        directive = body_lines[i].strip() if i < len(body_lines) else ""

        if not gate_passes(gate, visited):
            if directive.startswith("<<"):
                i += 1
            continue

        target: Optional[str] = None
        detour = False
        edge = EDGE_PATTERN.match(directive)
        if edge:
            detour = edge.group(1) == "detour"
            target = edge.group(2)
            i += 1

        options.append(
            Option(
                text=text,
                target=target,
                visited=target is not None and target in visited,
                detour=detour,
            )
        )

    return CompiledNode(
        title=node.title,
        tags=frozenset(node.tags),
        lines=tuple(texts),
        options=tuple(options),
        fallthrough_target=fallthrough,
        command=command,
    )


def collect_edges(node: ScriptNode) -> NodeEdges:
    """Collect every jump/detour target of a node, ignoring gating conditions"""
    body_lines = node.body.split("\n") if node.body else []
    edges = NodeEdges()

    i = 0
    while i < len(body_lines):
        stripped = body_lines[i].strip()
        if stripped.startswith(OPTION_MARKER):
            break
        i += 1

        jump = JUMP_PATTERN.match(stripped)
        if jump:
            edges.targets.append(Edge(target=jump.group(1)))
            continue
        parsed = parse_command(stripped)
        if parsed is not None:
            edges.command = parsed
            edges.command_count += 1

    while i < len(body_lines):
        stripped = body_lines[i].strip()
        i += 1
        if not stripped.startswith(OPTION_MARKER) or i >= len(body_lines):
            continue
        edge = EDGE_PATTERN.match(body_lines[i].strip())
        if edge:
            edges.targets.append(Edge(target=edge.group(2), detour=edge.group(1) == "detour"))
            i += 1

    return edges
