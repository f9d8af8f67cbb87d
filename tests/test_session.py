"""Tests for the dialogue session state machine."""

import pytest

from gab_forge.errors import (
    ScriptReferenceError,
    SessionLoopError,
    SessionProtocolError,
    UnknownSpeakerError,
)
from gab_forge.parser import ScriptParser
from gab_forge.runtime import (
    ChoiceEvent,
    ChoiceInput,
    CommandEvent,
    DialogueSession,
    LineEvent,
    SessionPhase,
    SessionState,
    transition,
)
from gab_forge.runtime.session import start_state


SHOP_SCRIPT = """speaker: Guide
---
talkAnim: guide_talk
===
speaker: Merchant
---
talkAnim: none
===

title: Start
---
Guide: Welcome!
-> Visit shop
<<detour Shop>>
-> Continue
<<jump End>>
===

title: Shop
---
Merchant: Hi!
===

title: End
---
Guide: Bye
===
"""

COMMAND_SCRIPT = """title: Start
---
Guide: First
Guide: Second
<<loadPuzzle lockpick>>
<<jump After>>
===

title: After
---
Guide: Puzzle solved
===
"""


def collect(session: DialogueSession, choices=()):
    """Drive a session to the end, answering choices in order"""
    answers = list(choices)
    events = []
    event = session.advance()
    while event is not None:
        events.append(event)
        if isinstance(event, ChoiceEvent):
            event = session.choose(answers.pop(0))
        else:
            event = session.advance()
    return events


def describe(events):
    out = []
    for event in events:
        if isinstance(event, LineEvent):
            out.append(("line", event.speaker, event.text))
        elif isinstance(event, ChoiceEvent):
            out.append(("choice", tuple(option.text for option in event.options)))
        else:
            out.append(("command", event.command, event.args))
    return out


class TestShopScenario:
    """Walk through the detour sample."""

    def test_first_events(self):
        """A line, then a choice with two unvisited options."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")

        event = session.advance()
        assert isinstance(event, LineEvent)
        assert event.text == "Welcome!"
        assert event.speaker == "Guide"

        event = session.advance()
        assert isinstance(event, ChoiceEvent)
        assert len(event.options) == 2
        assert [option.visited for option in event.options] == [False, False]
        assert event.options[0].detour is True
        assert event.options[1].detour is False
        assert session.phase is SessionPhase.CHOICE_PENDING

    def test_detour_returns_to_choices(self):
        """After the detour ends the caller's choices come back, now visited."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        session.advance()
        session.advance()

        event = session.choose(0)
        assert isinstance(event, LineEvent)
        assert event.text == "Hi!"
        assert event.speaker == "Merchant"
        assert session.return_depth == 1

        event = session.advance()
        assert isinstance(event, ChoiceEvent)
        assert event.options[0].visited is True
        assert event.options[1].visited is False
        assert session.current_title == "Start"
        assert session.return_depth == 0

    def test_full_run(self):
        """Welcome is not repeated when returning from the detour."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        events = describe(collect(session, [0, 1]))

        assert events == [
            ("line", "Guide", "Welcome!"),
            ("choice", ("Visit shop", "Continue")),
            ("line", "Merchant", "Hi!"),
            ("choice", ("Visit shop", "Continue")),
            ("line", "Guide", "Bye"),
        ]
        assert session.phase is SessionPhase.ENDED

    def test_advance_after_end(self):
        """advance() keeps returning None once the dialogue ended."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("End")
        collect(session)

        assert session.advance() is None
        assert session.advance() is None


class TestCommandOrdering:
    """Commands come after lines and before the jump."""

    def test_lines_then_command_then_jump(self):
        """line, line, command, then the jump target's line."""
        session = DialogueSession(COMMAND_SCRIPT)
        session.start("Start")

        assert describe(collect(session)) == [
            ("line", "Guide", "First"),
            ("line", "Guide", "Second"),
            ("command", "loadPuzzle", ("lockpick",)),
            ("line", "Guide", "Puzzle solved"),
        ]

    def test_command_pending_phase(self):
        """The session waits in COMMAND_PENDING until advanced."""
        session = DialogueSession(COMMAND_SCRIPT)
        session.start("Start")
        session.advance()
        session.advance()

        event = session.advance()
        assert isinstance(event, CommandEvent)
        assert session.phase is SessionPhase.COMMAND_PENDING
        assert session.current_title == "Start"

    def test_handler_called_on_emission(self):
        """Handlers get the args when the command event is emitted."""
        calls = []
        session = DialogueSession(COMMAND_SCRIPT, handlers={"loadPuzzle": calls.append})
        session.start("Start")
        session.advance()
        session.advance()
        assert calls == []

        session.advance()
        assert calls == [["lockpick"]]

    def test_unknown_handler_rejected(self):
        """Handlers must be keyed by a known command."""
        with pytest.raises(ValueError):
            DialogueSession(COMMAND_SCRIPT, handlers={"explode": print})


class TestProtocolErrors:
    """Out-of-protocol calls fail fast."""

    def _at_choice(self):
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        session.advance()
        session.advance()
        return session

    def test_advance_before_start(self):
        """A session must be started first."""
        with pytest.raises(SessionProtocolError):
            DialogueSession(SHOP_SCRIPT).advance()

    def test_advance_without_choice(self):
        """A pending choice must be resolved."""
        session = self._at_choice()
        with pytest.raises(SessionProtocolError):
            session.advance()

    def test_choice_when_none_pending(self):
        """Supplying a choice with nothing pending is an error."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        with pytest.raises(SessionProtocolError):
            session.choose(0)

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_out_of_range_choice(self, index):
        """Indexes outside the option list are rejected."""
        session = self._at_choice()
        with pytest.raises(SessionProtocolError):
            session.choose(index)

    def test_state_unchanged_after_error(self):
        """A rejected call leaves the session where it was."""
        session = self._at_choice()
        with pytest.raises(SessionProtocolError):
            session.choose(5)

        assert session.phase is SessionPhase.CHOICE_PENDING
        assert isinstance(session.choose(1), LineEvent)


class TestReferenceErrors:
    """Missing titles are fatal at traversal time."""

    def test_start_missing(self):
        """Starting at a missing node fails."""
        session = DialogueSession(SHOP_SCRIPT)
        with pytest.raises(ScriptReferenceError) as exc:
            session.start("Nowhere")
        assert exc.value.title == "Nowhere"

    def test_jump_to_missing(self):
        """A jump to a missing node fails when reached."""
        session = DialogueSession("title: A\n---\nGuide: Hi\n<<jump Ghost>>\n===")
        session.start("A")
        session.advance()

        with pytest.raises(ScriptReferenceError) as exc:
            session.advance()
        assert "Ghost" in str(exc.value)

    def test_option_without_target(self):
        """Choosing an option with no directive fails."""
        session = DialogueSession("title: A\n---\n-> Nothing happens\n===")
        session.start("A")
        session.advance()

        with pytest.raises(ScriptReferenceError):
            session.choose(0)

    def test_silent_loop(self):
        """Jumps that never produce an event are caught."""
        session = DialogueSession("title: A\n---\n<<jump B>>\n===\ntitle: B\n---\n<<jump A>>\n===")
        session.start("A")

        with pytest.raises(SessionLoopError):
            session.advance()

    def test_jump_cycle_that_unlocks_an_option(self):
        """A silent cycle is fine when a later pass reveals a gated option."""
        session = DialogueSession(
            "title: A\n---\n<<jump B>>\n===\n"
            "title: B\n---\n<<jump C>>\n-> {C} Leave\n<<jump End>>\n===\n"
            "title: C\n---\n<<jump A>>\n===\n"
            "title: End\n---\nGuide: Bye\n==="
        )
        session.start("A")

        event = session.advance()
        assert isinstance(event, ChoiceEvent)
        assert event.node.title == "B"
        assert [option.text for option in event.options] == ["Leave"]

        event = session.choose(0)
        assert isinstance(event, LineEvent)
        assert event.text == "Bye"


class TestVisited:
    """Visited set behavior."""

    def test_start_marks_visited(self):
        """start() marks the node visited."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")

        assert session.is_visited("Start")
        assert not session.is_visited("Shop")

    def test_restart_keeps_history(self):
        """Restarting keeps the visited set and clears the return stack."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        session.advance()
        session.advance()
        session.choose(0)
        assert session.return_depth == 1

        session.start("Start")
        assert session.return_depth == 0
        assert session.is_visited("Shop")

        session.advance()
        event = session.advance()
        assert event.options[0].visited is True

    def test_seeded_visited(self):
        """An external visited set carries memory between sessions."""
        first = DialogueSession(SHOP_SCRIPT)
        first.start("Start")
        collect(first, [0, 1])

        second = DialogueSession(SHOP_SCRIPT, visited=first.visited)
        second.start("Start")
        second.advance()
        event = second.advance()

        assert event.options[0].visited is True
        assert event.options[1].visited is True

    def test_visited_only_grows(self):
        """Each snapshot contains the previous one."""
        session = DialogueSession(SHOP_SCRIPT)
        session.start("Start")
        previous = session.visited

        for event in collect(session, [0, 1]):
            assert previous <= session.visited
            previous = session.visited


class TestDeterminism:
    """Replaying the same inputs gives the same events."""

    def test_replay(self):
        """Fresh sessions with the same inputs agree."""
        runs = []
        for _ in range(2):
            session = DialogueSession(SHOP_SCRIPT)
            session.start("Start")
            runs.append(describe(collect(session, [0, 0, 1])))

        assert runs[0] == runs[1]


class TestPureTransition:
    """The transition function over immutable state."""

    def test_transition_does_not_mutate(self):
        """Old states stay valid after a transition."""
        nodes = ScriptParser().parse_file(SHOP_SCRIPT).node_table()
        state = start_state(nodes, SessionState(), "Start")

        first_state, first_event = transition(nodes, state)
        again_state, again_event = transition(nodes, state)

        assert first_event == again_event
        assert first_state == again_state
        assert state.line_index == 0

    def test_choice_input(self):
        """A ChoiceInput resolves the pending choice."""
        nodes = ScriptParser().parse_file(SHOP_SCRIPT).node_table()
        state = start_state(nodes, SessionState(), "Start")
        state, _ = transition(nodes, state)
        state, event = transition(nodes, state)
        assert isinstance(event, ChoiceEvent)

        state, event = transition(nodes, state, ChoiceInput(1))
        assert event.text == "Bye"
        assert state.current == "End"


class TestSpeakers:
    """Animation lookup and examine flag."""

    def test_animation_lookup(self):
        """Defined speakers return their animation or None."""
        session = DialogueSession(SHOP_SCRIPT)

        assert session.get_animation_for_speaker("Guide") == "guide_talk"
        assert session.get_animation_for_speaker("Merchant") is None

    def test_undefined_speaker(self):
        """Undefined speakers raise."""
        session = DialogueSession(SHOP_SCRIPT)
        with pytest.raises(UnknownSpeakerError):
            session.get_animation_for_speaker("Nobody")

    def test_active_speaker_carries_over(self):
        """Bare lines keep the previous speaker active but emit no speaker."""
        session = DialogueSession("speaker: Guide\n---\ntalkAnim: wave\n===\ntitle: A\n---\nGuide: Hi\n...\n===")
        session.start("A")
        session.advance()
        event = session.advance()

        assert event.speaker is None
        assert session.active_speaker == "Guide"
        assert session.current_animation() == "wave"

    def test_is_current_node_examine(self):
        """The examine tag is visible on the current node."""
        session = DialogueSession("title: Poster\ntags: examine\n---\nAn old poster.\n===")
        assert session.is_current_node_examine() is False

        session.start("Poster")
        assert session.is_current_node_examine() is True
