"""
Runtime configuration for gab-forge, read from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

DIALOGUES_ROOT_ENV = "GAB_FORGE_DIALOGUES_ROOT"
VERBOSE_ENV = "GAB_FORGE_VERBOSE"

DEFAULT_TERMINATING_COMMANDS: FrozenSet[str] = frozenset({"loadPuzzle", "loadLevel"})


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ForgeConfig:
    """Settings shared by the CLI and the web editor"""

    dialogues_root: Path
    verbose: bool = False
    terminating_commands: FrozenSet[str] = field(default=DEFAULT_TERMINATING_COMMANDS)

    @classmethod
    def from_env(cls, dialogues_root: Optional[str] = None) -> "ForgeConfig":
        """Build config from environment variables; explicit arguments win"""
        root = dialogues_root or os.getenv(DIALOGUES_ROOT_ENV) or str(Path.cwd() / "dialogue")
        return cls(dialogues_root=Path(root), verbose=env_flag(VERBOSE_ENV))
