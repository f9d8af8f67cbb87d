"""
Dialogue session: a resumable interpreter over a parsed script.

The session is a small state machine. ``transition`` is a pure function
from ``(state, input)`` to ``(state, event)``; ``DialogueSession`` owns the
current state and is the object a host talks to::

    session = DialogueSession(text, handlers={"loadPuzzle": start_puzzle})
    session.start("Start")
    event = session.advance()
    while event is not None:
        if isinstance(event, ChoiceEvent):
            event = session.choose(pick(event.options))
        else:
            event = session.advance()
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    Union,
)

from gab_forge.errors import (
    ScriptReferenceError,
    SessionLoopError,
    SessionProtocolError,
    UnknownSpeakerError,
)
from gab_forge.parser.graph import EXAMINE_TAG
from gab_forge.parser.node import COMMAND_NAMES, CompiledNode, Option, compile_node, split_speaker
from gab_forge.parser.parser import ParsedScript, ScriptNode, ScriptParser

logger = logging.getLogger(__name__)

CommandHandler = Callable[[List[str]], None]


class SessionPhase(str, Enum):
    IDLE = "idle"
    EMITTING = "emitting"
    CHOICE_PENDING = "choice_pending"
    COMMAND_PENDING = "command_pending"
    ENDED = "ended"


@dataclass(frozen=True)
class LineEvent:
    """One line of dialogue; ``speaker`` is None for bare narration"""

    type: ClassVar[str] = "line"

    text: str
    speaker: Optional[str]
    node: CompiledNode


@dataclass(frozen=True)
class ChoiceEvent:
    """The player must pick one of ``options`` before the session continues"""

    type: ClassVar[str] = "choice"

    options: Tuple[Option, ...]
    node: CompiledNode


@dataclass(frozen=True)
class CommandEvent:
    """The host should run ``command`` before advancing again"""

    type: ClassVar[str] = "command"

    command: str
    args: Tuple[str, ...]
    node: CompiledNode


DialogueEvent = Union[LineEvent, ChoiceEvent, CommandEvent]


@dataclass(frozen=True)
class ChoiceInput:
    """Input that resolves a pending choice event"""

    option_index: int


@dataclass(frozen=True)
class SessionState:
    """Complete, immutable state of a session"""

    phase: SessionPhase = SessionPhase.IDLE
    current: Optional[str] = None
    content: Optional[CompiledNode] = None
    line_index: int = 0
    visited: FrozenSet[str] = frozenset()
    return_stack: Tuple[str, ...] = ()
    active_speaker: Optional[str] = None
    pending: Optional[ChoiceEvent] = None


NodeTable = Mapping[str, ScriptNode]


def _push_return(state: SessionState, title: str) -> SessionState:
    return replace(state, return_stack=state.return_stack + (title,))


def _pop_return(state: SessionState) -> Tuple[str, SessionState]:
    return state.return_stack[-1], replace(state, return_stack=state.return_stack[:-1])


def _goto(nodes: NodeTable, state: SessionState, title: Optional[str], skip_to_choices: bool = False) -> SessionState:
    """Enter a node; with ``skip_to_choices`` its lines are not delivered again"""
    if not title:
        raise ScriptReferenceError("Cannot go to an empty node title")
    node = nodes.get(title)
    if node is None:
        raise ScriptReferenceError(f"Node '{title}' does not exist", title=title)

    # Compiled before the node itself is marked visited
    content = compile_node(node, state.visited)
    logger.debug("Entering node '%s'%s", title, " (returning to choices)" if skip_to_choices else "")

    return replace(
        state,
        phase=SessionPhase.EMITTING,
        current=title,
        content=content,
        line_index=len(content.lines) if skip_to_choices else 0,
        visited=state.visited | {title},
        pending=None,
    )


def _navigate(nodes: NodeTable, state: SessionState) -> SessionState:
    """Leave the current node: fallthrough, then return stack, else end"""
    content = state.content
    if content is not None and content.fallthrough_target:
        return _goto(nodes, state, content.fallthrough_target)

    if state.return_stack:
        title, state = _pop_return(state)
        return _goto(nodes, state, title, skip_to_choices=True)

    logger.debug("Dialogue ended at node '%s'", state.current)
    return replace(state, phase=SessionPhase.ENDED, pending=None)


def _resolve_choice(nodes: NodeTable, state: SessionState, choice: ChoiceInput) -> SessionState:
    event = state.pending
    index = choice.option_index
    if event is None:
        raise SessionProtocolError("No choice is pending")
    if not isinstance(index, int) or not 0 <= index < len(event.options):
        raise SessionProtocolError(
            f"Invalid option index {index!r}; node '{state.current}' has {len(event.options)} options"
        )

    option = event.options[index]
    if option.target is None:
        raise ScriptReferenceError(f"Option '{option.text}' in node '{state.current}' has no target")

    if option.detour:
        state = _push_return(state, state.current)
    return _goto(nodes, state, option.target)


def _emit(nodes: NodeTable, state: SessionState) -> Tuple[SessionState, Optional[DialogueEvent]]:
    """Run until the next observable event, or the end of the dialogue"""
    # Visited only grows, so a repeated key means the jumps made no progress
    seen: Set[Tuple[Optional[str], int, Tuple[str, ...], FrozenSet[str]]] = set()

    while state.phase is SessionPhase.EMITTING:
        content = state.content

        if state.line_index < len(content.lines):
            speaker, text = split_speaker(content.lines[state.line_index])
            event = LineEvent(text=text, speaker=speaker, node=content)
            return replace(
                state,
                line_index=state.line_index + 1,
                active_speaker=speaker or state.active_speaker,
            ), event

        if content.options:
            event = ChoiceEvent(options=content.options, node=content)
            return replace(state, phase=SessionPhase.CHOICE_PENDING, pending=event), event

        if content.command is not None:
            event = CommandEvent(command=content.command.name, args=content.command.args, node=content)
            return replace(state, phase=SessionPhase.COMMAND_PENDING), event

        key = (state.current, state.line_index, state.return_stack, state.visited)
        if key in seen:
            raise SessionLoopError(f"Node '{state.current}' loops without producing any dialogue")
        seen.add(key)
        state = _navigate(nodes, state)

    return state, None


def start_state(nodes: NodeTable, state: SessionState, title: str) -> SessionState:
    """State for (re)starting at ``title``; the visited set is kept"""
    return _goto(nodes, replace(state, return_stack=(), active_speaker=None), title)


def transition(
    nodes: NodeTable, state: SessionState, choice: Optional[ChoiceInput] = None
) -> Tuple[SessionState, Optional[DialogueEvent]]:
    """Advance ``state`` by one observable event.

    Returns the new state and the event, or None once the dialogue has
    ended. A pending choice must be resolved with a ``ChoiceInput``; any
    other input is a protocol error.
    """
    phase = state.phase

    if phase is SessionPhase.IDLE:
        raise SessionProtocolError("Session has not been started")

    if phase is SessionPhase.CHOICE_PENDING:
        if choice is None:
            raise SessionProtocolError(
                f"A choice is pending in node '{state.current}'; advance() needs a ChoiceInput"
            )
        return _emit(nodes, _resolve_choice(nodes, state, choice))

    if choice is not None:
        raise SessionProtocolError(f"No choice is pending (session is {phase.value})")

    if phase is SessionPhase.ENDED:
        return state, None

    if phase is SessionPhase.COMMAND_PENDING:
        state = _navigate(nodes, state)

    return _emit(nodes, state)


class DialogueSession:
    """Drives a dialogue one event at a time on behalf of a host.

    Args:
        script: Script text, or an already parsed script
        handlers: Optional command handlers keyed by command name. A handler
            is called with the command args when its command event is
            emitted; the session does not wait for it.
        visited: Titles visited in an earlier session, for hosts that carry
            dialogue memory from one session to the next
    """

    def __init__(
        self,
        script: Union[str, ParsedScript],
        handlers: Optional[Mapping[str, CommandHandler]] = None,
        visited: Optional[Iterable[str]] = None,
    ):
        if isinstance(script, str):
            script = ScriptParser().parse_file(script)
        self._script = script
        self._nodes: Dict[str, ScriptNode] = script.node_table()

        handlers = dict(handlers or {})
        unknown = sorted(set(handlers) - set(COMMAND_NAMES))
        if unknown:
            raise ValueError(f"Unknown command handler(s): {', '.join(unknown)}")
        self._handlers = handlers

        self._state = SessionState(visited=frozenset(visited or ()))

    @property
    def script(self) -> ParsedScript:
        return self._script

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def current_title(self) -> Optional[str]:
        return self._state.current

    @property
    def current_node(self) -> Optional[CompiledNode]:
        return self._state.content

    @property
    def pending_choice(self) -> Optional[ChoiceEvent]:
        return self._state.pending

    @property
    def visited(self) -> FrozenSet[str]:
        return self._state.visited

    @property
    def return_depth(self) -> int:
        return len(self._state.return_stack)

    @property
    def active_speaker(self) -> Optional[str]:
        """Last named speaker; bare lines keep the previous speaker talking"""
        return self._state.active_speaker

    def is_visited(self, title: str) -> bool:
        return title in self._state.visited

    def start(self, title: str):
        """Enter ``title`` and mark it visited. History is kept across restarts."""
        self._state = start_state(self._nodes, self._state, title)

    def advance(self, choice: Optional[ChoiceInput] = None) -> Optional[DialogueEvent]:
        """Return the next event, or None when the dialogue is over"""
        self._state, event = transition(self._nodes, self._state, choice)

        if isinstance(event, CommandEvent):
            handler = self._handlers.get(event.command)
            if handler is not None:
                logger.debug("Running handler for %s %s", event.command, list(event.args))
                handler(list(event.args))

        return event

    def choose(self, option_index: int) -> Optional[DialogueEvent]:
        """Resolve the pending choice by index"""
        return self.advance(ChoiceInput(option_index))

    def get_animation_for_speaker(self, name: str) -> Optional[str]:
        """Talking animation for a speaker; None when the speaker has none"""
        speaker = self._script.speakers.get(name)
        if speaker is None:
            raise UnknownSpeakerError(f"No animation defined for speaker {name}")
        return speaker.animation

    def current_animation(self) -> Optional[str]:
        """Animation of the active speaker, if any"""
        if self._state.active_speaker is None:
            return None
        return self.get_animation_for_speaker(self._state.active_speaker)

    def is_current_node_examine(self) -> bool:
        content = self._state.content
        return content is not None and EXAMINE_TAG in content.tags
