"""
Parser, compiler and graph checks for .gab dialogue scripts
"""

from .graph import GraphReport, SpeakerIssue, find_multiple_commands, find_undefined_speakers, validate_graph
from .node import Command, CompiledNode, NodeEdges, Option, collect_edges, compile_node, split_speaker
from .parser import ParsedScript, ParseIssue, ScriptNode, ScriptParser, SpeakerDef

__all__ = [
    "ScriptParser",
    "ScriptNode",
    "SpeakerDef",
    "ParsedScript",
    "ParseIssue",
    # Node body compilation
    "CompiledNode",
    "Option",
    "Command",
    "NodeEdges",
    "compile_node",
    "collect_edges",
    "split_speaker",
    # Graph analysis
    "GraphReport",
    "SpeakerIssue",
    "validate_graph",
    "find_undefined_speakers",
    "find_multiple_commands",
]
