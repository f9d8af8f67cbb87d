"""
Gab Forge - compiler, linter and runtime for .gab dialogue scripts
"""

__version__ = "0.1.0"

from .export import ScriptExporter
from .parser import ScriptParser, validate_graph
from .runtime import DialogueSession

__all__ = ["ScriptParser", "ScriptExporter", "DialogueSession", "validate_graph"]
