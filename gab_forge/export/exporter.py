"""
Export parsed scripts to JSON for external renderers
"""

import json
from pathlib import Path
from typing import Any, Dict

from ..parser.node import CompiledNode, collect_edges, compile_node
from ..parser.parser import ParsedScript, ScriptNode

FORMAT_VERSION = "1.0"


class ScriptExporter:
    """Export parsed scripts to various formats"""

    def node_to_dict(self, node: ScriptNode) -> Dict[str, Any]:
        """One node, compiled as on a first visit"""
        compiled: CompiledNode = compile_node(node, frozenset())
        edges = collect_edges(node)

        return {
            "title": node.title,
            "line": node.line_number,
            "metadata": dict(node.metadata),
            "tags": node.tags,
            "lines": list(compiled.lines),
            "options": [
                {"text": option.text, "target": option.target, "detour": option.detour}
                for option in compiled.options
            ],
            "jump": compiled.fallthrough_target,
            "command": (
                {"name": compiled.command.name, "args": list(compiled.command.args)}
                if compiled.command is not None
                else None
            ),
            "edges": [{"target": edge.target, "detour": edge.detour} for edge in edges.targets],
        }

    def to_dict(self, script: ParsedScript) -> Dict[str, Any]:
        return {
            "speakers": {
                name: {"talkAnim": speaker.animation} for name, speaker in script.speakers.items()
            },
            "nodes": {node.title: self.node_to_dict(node) for node in script.nodes},
            "metadata": {
                "version": FORMAT_VERSION,
                "node_count": len(script.nodes),
                "speaker_count": len(script.speakers),
                "start_node": script.nodes[0].title if script.nodes else None,
            },
        }

    def export_to_json(self, script: ParsedScript, output_path: Path):
        """Export to JSON format"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(script), f, indent=2, ensure_ascii=False)
