"""
Static graph analysis of parsed scripts: reachability, termination and lints.

These checks never raise on bad data; findings are returned for the caller
to report.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Tuple

from gab_forge.config import DEFAULT_TERMINATING_COMMANDS

from .node import OPTION_MARKER, collect_edges, split_gate, split_speaker
from .parser import ParsedScript, ScriptNode

EXAMINE_TAG = "examine"
DISABLED_TAG = "disabled"
FINAL_TAG = "final"


@dataclass
class GraphReport:
    """Result of ``validate_graph``"""

    unreachable: List[str] = field(default_factory=list)
    nonterminating: List[str] = field(default_factory=list)
    # (source title, missing target title)
    dangling: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.unreachable or self.nonterminating or self.dangling)


@dataclass(frozen=True)
class SpeakerIssue:
    """A dialogue line whose speaker is missing from the speaker table"""

    node: str
    speaker: str
    line: int


def _breadth_first(roots: Iterable[str], edges: Dict[str, List[str]]) -> Set[str]:
    seen: Set[str] = set()
    queue = deque(roots)
    while queue:
        current = queue.popleft()
        if current in seen:
            continue
        seen.add(current)
        for nxt in edges.get(current, []):
            if nxt not in seen:
                queue.append(nxt)
    return seen


def validate_graph(
    nodes: List[ScriptNode],
    start: str,
    terminating_commands: Optional[AbstractSet[str]] = None,
) -> GraphReport:
    """Find unreachable and non-terminating nodes.

    Jump and detour targets are forward edges; a detour also adds the
    reverse edge, since the detour target returns to its caller. Nodes
    tagged ``examine`` are extra roots. A node is terminal when it runs a
    terminating command, is a dead end, or is tagged ``final``.
    """
    if terminating_commands is None:
        terminating_commands = DEFAULT_TERMINATING_COMMANDS

    titles = {node.title for node in nodes}
    edges: Dict[str, List[str]] = {}
    terminals: Set[str] = set()
    report = GraphReport()

    def add_edge(source: str, target: str):
        edges.setdefault(source, []).append(target)

    for node in nodes:
        node_edges = collect_edges(node)
        command = node_edges.command

        if command is not None and command.name in terminating_commands:
            terminals.add(node.title)
        elif command is None and not node_edges.targets:
            terminals.add(node.title)
        if FINAL_TAG in node.tags:
            terminals.add(node.title)

        for edge in node_edges.targets:
            if edge.target not in titles:
                report.dangling.append((node.title, edge.target))
                continue
            add_edge(node.title, edge.target)
            if edge.detour:
                add_edge(edge.target, node.title)

    roots = [start] if start in titles else []
    roots.extend(node.title for node in nodes if EXAMINE_TAG in node.tags)
    reachable = _breadth_first(roots, edges)

    reverse: Dict[str, List[str]] = {}
    for source, targets in edges.items():
        for target in targets:
            reverse.setdefault(target, []).append(source)
    can_terminate = _breadth_first(terminals, reverse)

    reported: Set[str] = set()
    for node in nodes:
        if node.title in reported:
            continue
        reported.add(node.title)
        tags = node.tags

        if node.title not in reachable:
            if DISABLED_TAG not in tags and EXAMINE_TAG not in tags:
                report.unreachable.append(node.title)
        elif node.title not in can_terminate and EXAMINE_TAG not in tags:
            report.nonterminating.append(node.title)

    return report


def find_undefined_speakers(script: ParsedScript) -> List[SpeakerIssue]:
    """Report ``Speaker: text`` lines whose speaker has no speaker block"""
    issues: List[SpeakerIssue] = []

    for node in script.nodes:
        for offset, raw in enumerate(node.body.split("\n") if node.body else []):
            stripped = raw.strip()
            if stripped.startswith(OPTION_MARKER):
                break
            if not stripped or stripped.startswith("<<"):
                continue

            _, text = split_gate(stripped)
            speaker, _ = split_speaker(text)
            if speaker is not None and speaker not in script.speakers:
                issues.append(
                    SpeakerIssue(node=node.title, speaker=speaker, line=node.body_line_number + offset)
                )

    return issues


def find_multiple_commands(nodes: List[ScriptNode]) -> List[str]:
    """Titles of nodes with more than one command directive (last one wins)"""
    return [node.title for node in nodes if collect_edges(node).command_count > 1]
