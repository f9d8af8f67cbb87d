"""
Inspection ("examine") regions and their cross-reference checks.

Rooms carry clickable regions; a ``dialogue`` region opens the named node
of its level's script. Regions are stored as JSON::

    {"cryoroom": [{"x": 10, "y": 20, "width": 50, "height": 40,
                   "type": "dialogue", "level": "cryoroom",
                   "dialogueNode": "Cryo_Pod"}]}
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Any, Dict, List, Mapping, Optional

from gab_forge.parser.parser import ParseIssue, ScriptParser

logger = logging.getLogger(__name__)

REGION_TYPES = ("none", "dialogue", "inventory")


@dataclass(frozen=True)
class ExamineRegion:
    """A clickable rectangle in a room background"""

    x: float
    y: float
    width: float
    height: float
    type: str = "none"
    level: Optional[str] = None
    dialogue_node: Optional[str] = None
    item: Optional[str] = None
    args: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExamineRegion":
        return cls(
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=data.get("width", 0),
            height=data.get("height", 0),
            type=data.get("type", "none"),
            level=data.get("level"),
            dialogue_node=data.get("dialogueNode", data.get("dialogue_node")),
            item=data.get("item"),
            args=data.get("args"),
        )


def load_regions(path: Path) -> Dict[str, List[ExamineRegion]]:
    """Load regions keyed by room name from a JSON file.

    Raises ValueError when the file is not an object of room name to a
    list of region objects.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object of rooms, got {type(data).__name__}")

    rooms: Dict[str, List[ExamineRegion]] = {}
    for room, items in data.items():
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ValueError(f"{path}: room '{room}' must be a list of region objects")
        rooms[room] = [ExamineRegion.from_dict(item) for item in items]
    return rooms


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_region(region: ExamineRegion, titles_by_level: Mapping[str, AbstractSet[str]]) -> List[str]:
    """Check one region; returns problems as messages"""
    errors: List[str] = []

    for label, value, allow_zero in (
        ("x coordinate", region.x, True),
        ("y coordinate", region.y, True),
        ("width", region.width, False),
        ("height", region.height, False),
    ):
        if not _is_number(value):
            errors.append(f"Invalid {label}: {value!r}")
        elif value < 0 or (value == 0 and not allow_zero):
            errors.append(f"Invalid {label}: {value}")

    if region.type == "dialogue":
        if _blank(region.level):
            errors.append("Missing level parameter for dialogue region")
        if _blank(region.dialogue_node):
            errors.append("Missing dialogueNode parameter for dialogue region")
        elif not _blank(region.level):
            titles = titles_by_level.get(region.level)
            if titles is None:
                errors.append(f"No dialogue script for level '{region.level}'")
            elif region.dialogue_node not in titles:
                errors.append(f"Dialogue node '{region.dialogue_node}' not found in {region.level}.gab")
    elif region.type == "inventory":
        if _blank(region.item):
            errors.append("Missing item parameter for inventory region")
    elif region.type == "none":
        if _blank(region.args):
            errors.append("Missing args parameter for none region")
    else:
        errors.append(f"Unknown region type '{region.type}', expected one of {', '.join(REGION_TYPES)}")

    return errors


def validate_regions(
    rooms: Mapping[str, List[ExamineRegion]], dialogues_root: Path
) -> Dict[str, List[str]]:
    """Check every region of every room against ``<level>.gab`` scripts in ``dialogues_root``.

    Returns messages keyed by ``"room[index]"``; rooms without problems are
    omitted.
    """
    parser = ScriptParser()
    titles_by_level: Dict[str, AbstractSet[str]] = {}

    levels = {region.level for regions in rooms.values() for region in regions if not _blank(region.level)}
    for level in sorted(levels):
        script_path = Path(dialogues_root) / f"{level}.gab"
        if not script_path.exists():
            logger.debug("No script for level '%s' at %s", level, script_path)
            continue
        # Structural problems are the script validator's job; collect and move on
        issues: List[ParseIssue] = []
        script = parser.parse_path(script_path, issues)
        titles_by_level[level] = {node.title for node in script.nodes}

    findings: Dict[str, List[str]] = {}
    for room, regions in rooms.items():
        for index, region in enumerate(regions):
            errors = validate_region(region, titles_by_level)
            if errors:
                findings[f"{room}[{index}]"] = errors

    return findings
