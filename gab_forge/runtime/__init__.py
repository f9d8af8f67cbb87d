"""
Runtime for stepping through dialogue scripts
"""

from .session import (
    ChoiceEvent,
    ChoiceInput,
    CommandEvent,
    DialogueEvent,
    DialogueSession,
    LineEvent,
    SessionPhase,
    SessionState,
    transition,
)

__all__ = [
    "DialogueSession",
    "DialogueEvent",
    "LineEvent",
    "ChoiceEvent",
    "CommandEvent",
    "ChoiceInput",
    "SessionPhase",
    "SessionState",
    "transition",
]
