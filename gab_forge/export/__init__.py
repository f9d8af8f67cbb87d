"""Export formats for parsed scripts"""

from .exporter import ScriptExporter

__all__ = ["ScriptExporter"]
