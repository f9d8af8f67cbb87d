"""
Flask web application for gab-forge - editor diagnostics and replay API
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from gab_forge.cli.validate_cmd import ScriptValidator, ValidationError
from gab_forge.config import ForgeConfig
from gab_forge.errors import GabError
from gab_forge.export.exporter import ScriptExporter
from gab_forge.logging_config import setup_logging
from gab_forge.parser.node import collect_edges
from gab_forge.parser.parser import ParsedScript
from gab_forge.runtime.session import (
    ChoiceEvent,
    CommandEvent,
    DialogueEvent,
    DialogueSession,
    LineEvent,
)

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".gab"

# Replays stop here so a script that loops through dialogue lines forever still answers
MAX_REPLAY_EVENTS = 1000


def diagnostic_to_dict(issue: ValidationError) -> Dict[str, Any]:
    return {
        "line": issue.line_number,
        "column": issue.column,
        "severity": issue.severity,
        "message": issue.message,
        "suggestion": issue.suggestion,
    }


def graph_data(script: ParsedScript, start: str) -> Dict[str, List[Dict[str, Any]]]:
    """Nodes and edges in Cytoscape's element format"""
    titles = {node.title for node in script.nodes}
    nodes = []
    edges = []

    for node in script.nodes:
        node_edges = collect_edges(node)
        nodes.append(
            {
                "data": {
                    "id": node.title,
                    "label": node.title,
                    "line": node.line_number,
                    "tags": node.tags,
                    "is_start": node.title == start,
                    "command": node_edges.command.name if node_edges.command else None,
                }
            }
        )
        for edge in node_edges.targets:
            edges.append(
                {
                    "data": {
                        "id": f"{node.title}->{edge.target}",
                        "source": node.title,
                        "target": edge.target,
                        "detour": edge.detour,
                        "dangling": edge.target not in titles,
                    }
                }
            )

    return {"nodes": nodes, "edges": edges}


def event_to_dict(event: DialogueEvent) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": event.type, "node": event.node.title}
    if isinstance(event, LineEvent):
        data.update(speaker=event.speaker, text=event.text)
    elif isinstance(event, ChoiceEvent):
        data["options"] = [
            {"text": option.text, "target": option.target, "visited": option.visited}
            for option in event.options
        ]
    elif isinstance(event, CommandEvent):
        data.update(command=event.command, args=list(event.args))
    return data


def replay(content: str, start: Optional[str], choices: List[int]) -> Dict[str, Any]:
    """Run a fresh session from ``start``, answering choices in order.

    Stops at the end of the dialogue, or at the first choice with no
    answer left (``waiting`` is then True).
    """
    session = DialogueSession(content)
    if not start:
        if not session.script.nodes:
            raise GabError("Script defines no nodes")
        start = session.script.nodes[0].title

    session.start(start)
    answers = list(choices)
    events: List[Dict[str, Any]] = []
    waiting = False
    truncated = False

    event = session.advance()
    while event is not None:
        events.append(event_to_dict(event))
        if len(events) >= MAX_REPLAY_EVENTS:
            truncated = True
            break

        if isinstance(event, ChoiceEvent):
            if not answers:
                waiting = True
                break
            event = session.choose(answers.pop(0))
        else:
            event = session.advance()

    return {
        "start": start,
        "events": events,
        "ended": event is None,
        "waiting": waiting,
        "truncated": truncated,
        "visited": sorted(session.visited),
    }


def _inside(root: Path, candidate: Path) -> bool:
    try:
        return candidate.resolve().is_relative_to(root.resolve())
    except (OSError, ValueError):
        return False


def create_app(dialogues_root=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    config = ForgeConfig.from_env(dialogues_root)
    app.config["DIALOGUES_ROOT"] = config.dialogues_root
    app.config["TERMINATING_COMMANDS"] = config.terminating_commands

    @app.route("/api/dialogues")
    def list_dialogues():
        """List all dialogue files"""
        dialogue_dir = app.config["DIALOGUES_ROOT"]
        files = []

        if dialogue_dir.exists():
            for gab_file in sorted(dialogue_dir.rglob(f"*{SCRIPT_SUFFIX}")):
                rel_path = gab_file.relative_to(dialogue_dir)
                files.append(
                    {
                        "path": str(gab_file),
                        "relative_path": rel_path.as_posix(),
                        "name": gab_file.stem,
                        "category": rel_path.parent.name if str(rel_path.parent) != "." else "root",
                    }
                )

        return jsonify({"files": files})

    @app.route("/api/file/<path:filename>")
    def get_file(filename):
        """Get content of a dialogue file"""
        dialogue_dir = app.config["DIALOGUES_ROOT"]
        file_path = dialogue_dir / filename

        if not _inside(dialogue_dir, file_path) or not file_path.is_file():
            return jsonify({"error": "File not found"}), 404

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            logger.exception("Could not read %s", file_path)
            return jsonify({"error": str(e)}), 500

        return jsonify({"content": content, "path": str(file_path), "name": file_path.stem})

    @app.route("/api/parse", methods=["POST"])
    def parse_dialogue():
        """Parse dialogue content and return diagnostics and graph data"""
        data = request.get_json(silent=True) or {}
        content = data.get("content", "")

        validator = ScriptValidator(
            Path(data.get("name") or "untitled.gab"),
            start=data.get("start"),
            quiet=True,
            terminating_commands=app.config["TERMINATING_COMMANDS"],
        )
        is_valid = validator.validate_text(content)
        diagnostics = sorted(validator.errors + validator.warnings, key=lambda issue: issue.line_number)

        return jsonify(
            {
                "valid": is_valid,
                "start_node": validator.start_title or None,
                "diagnostics": [diagnostic_to_dict(issue) for issue in diagnostics],
                "speakers": {name: speaker.animation for name, speaker in validator.script.speakers.items()},
                "graph": graph_data(validator.script, validator.start_title),
                "stats": {
                    "nodes": len(validator.script.nodes),
                    "speakers": len(validator.script.speakers),
                    "errors": len(validator.errors),
                    "warnings": len(validator.warnings),
                },
            }
        )

    @app.route("/api/replay", methods=["POST"])
    def replay_dialogue():
        """Replay a session from a start node with a list of choice indices"""
        data = request.get_json(silent=True) or {}
        content = data.get("content", "")
        choices = data.get("choices", [])

        if not isinstance(choices, list) or not all(isinstance(choice, int) for choice in choices):
            return jsonify({"error": "choices must be a list of option indices"}), 400

        try:
            result = replay(content, data.get("start"), choices)
        except GabError as e:
            return jsonify({"error": str(e), "kind": type(e).__name__}), 400

        return jsonify({"success": True, **result})

    @app.route("/api/export", methods=["POST"])
    def export_dialogue():
        """Export dialogue content to the JSON interchange format"""
        data = request.get_json(silent=True) or {}
        validator = ScriptValidator(Path("export.gab"), quiet=True)
        validator.validate_text(data.get("content", ""))

        return jsonify({"success": True, "json": ScriptExporter().to_dict(validator.script)})

    @app.route("/api/save", methods=["POST"])
    def save_file():
        """Save content to a dialogue file"""
        data = request.get_json(silent=True) or {}
        relative_path = data.get("path", "")
        content = data.get("content", "")

        if not relative_path:
            return jsonify({"error": "No file path specified"}), 400

        dialogue_dir = app.config["DIALOGUES_ROOT"]
        file_path = dialogue_dir / relative_path

        if not _inside(dialogue_dir, file_path):
            return jsonify({"error": "Invalid file path"}), 403

        if file_path.suffix != SCRIPT_SUFFIX:
            return jsonify({"error": f"Can only save {SCRIPT_SUFFIX} files"}), 400

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.exception("Could not save %s", file_path)
            return jsonify({"error": str(e)}), 500

        logger.info("Saved %s", file_path)
        return jsonify({"success": True, "message": f"Saved to {relative_path}"})

    return app


def main():
    """Run the development server"""
    import argparse

    parser = argparse.ArgumentParser(description="gab-forge Web Editor API")
    parser.add_argument("--dialogues", "-d", help="Path to dialogues directory", default=None)
    parser.add_argument("--port", "-p", help="Port to run on", type=int, default=5000)
    parser.add_argument("--debug", help="Run in debug mode", action="store_true")

    args = parser.parse_args()
    setup_logging(verbose=args.debug)

    app = create_app(dialogues_root=args.dialogues)

    print(f"\n{'=' * 60}")
    print("🎭 gab-forge Web Editor API")
    print(f"{'=' * 60}")
    print(f"\n📂 Dialogues directory: {app.config['DIALOGUES_ROOT']}")
    print(f"🌐 Server running at: http://localhost:{args.port}")
    print("\nPress Ctrl+C to stop\n")

    app.run(host="127.0.0.1", port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
