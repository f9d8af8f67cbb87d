"""
Interactive Dialogue Player - Walk through .gab dialogues and make choices in real-time!
"""

import logging
import shutil
import sys
import textwrap
from pathlib import Path
from typing import List, Optional

from gab_forge.errors import GabError
from gab_forge.logging_config import setup_logging
from gab_forge.parser.parser import ScriptParser
from gab_forge.runtime.session import ChoiceEvent, CommandEvent, DialogueSession, LineEvent

logger = logging.getLogger(__name__)


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    ITALIC = "\033[3m"

    RED = "\033[31m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

    BRIGHT_BLACK = "\033[90m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"
    BRIGHT_WHITE = "\033[97m"


QUIT_WORDS = ("quit", "exit", "q")


class DialoguePlayer:
    """Interactive dialogue player built on DialogueSession"""

    def __init__(self, dialogue_path: Path, start: Optional[str] = None):
        self.dialogue_path = Path(dialogue_path)
        self.script = ScriptParser().parse_path(self.dialogue_path)
        if not self.script.nodes:
            raise GabError(f"No nodes found in {self.dialogue_path}")

        self.start = start or self.script.nodes[0].title
        self.commands: List[str] = []
        self.session = DialogueSession(
            self.script,
            handlers={
                "loadPuzzle": lambda args: self._on_command("loadPuzzle", args),
                "loadLevel": lambda args: self._on_command("loadLevel", args),
            },
        )

        self.term_width = shutil.get_terminal_size(fallback=(80, 24)).columns

    def _on_command(self, name: str, args: List[str]):
        self.commands.append(f"{name} {' '.join(args)}".strip())
        print(f"\n  {Colors.BRIGHT_BLUE}▶ {name}{Colors.RESET} {Colors.CYAN}{' '.join(args)}{Colors.RESET}")

    def format_dialogue_box(self, text: str, speaker: str, color: str, max_width: int = 60) -> str:
        """Format dialogue text in a nice box"""
        actual_max = max(20, min(max_width, self.term_width - 8))
        lines = textwrap.wrap(text, width=actual_max) or [""]

        box_width = max(max(len(line) for line in lines), len(speaker) + 2)

        result = [f"\n  {color}╭─ {speaker} {'─' * (box_width - len(speaker) - 1)}╮{Colors.RESET}"]
        for line in lines:
            result.append(f"  {color}│{Colors.RESET} {line.ljust(box_width)} {color}│{Colors.RESET}")
        result.append(f"  {color}╰{'─' * (box_width + 2)}╯{Colors.RESET}")
        return "\n".join(result)

    def play(self):
        """Start playing the dialogue"""
        print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        print(f"{Colors.BRIGHT_YELLOW}{Colors.BOLD}🎭 INTERACTIVE DIALOGUE PLAYER{Colors.RESET}")
        print(f"{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        print(f"\n{Colors.BRIGHT_WHITE}Controls:{Colors.RESET}")
        print(f"  {Colors.CYAN}•{Colors.RESET} Enter the number to select a choice")
        print(f"  {Colors.CYAN}•{Colors.RESET} Type {Colors.YELLOW}'quit'{Colors.RESET} to stop")
        print(f"  {Colors.CYAN}•{Colors.RESET} Type {Colors.YELLOW}'state'{Colors.RESET} to see visited nodes")
        print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")

        self.session.start(self.start)
        last_node = None
        event = self.session.advance()

        while event is not None:
            if self.session.current_title != last_node:
                last_node = self.session.current_title
                print(f"\n{Colors.DIM}[{last_node}]{Colors.RESET}")

            if isinstance(event, LineEvent):
                self.show_line(event)
                event = self.session.advance()
            elif isinstance(event, ChoiceEvent):
                index = self.ask_choice(event)
                if index is None:
                    print(f"\n{Colors.BRIGHT_YELLOW}👋 Thanks for playing!{Colors.RESET}")
                    return
                event = self.session.choose(index)
            elif isinstance(event, CommandEvent):
                event = self.session.advance()

        print(f"\n{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        print(f"{Colors.BRIGHT_YELLOW}{Colors.BOLD}🎬 THE END{Colors.RESET}")
        print(f"{Colors.BRIGHT_CYAN}{'=' * 70}{Colors.RESET}")
        self.show_state()

    def show_line(self, event: LineEvent):
        if event.speaker is None:
            print(f"\n  {Colors.ITALIC}{Colors.BRIGHT_BLACK}📖 {event.text}{Colors.RESET}")
            return

        animation = None
        if event.speaker in self.script.speakers:
            animation = self.script.speakers[event.speaker].animation
        box = self.format_dialogue_box(event.text, event.speaker, Colors.BRIGHT_CYAN)
        print(box)
        if animation:
            print(f"  {Colors.DIM}(anim: {animation}){Colors.RESET}")

    def ask_choice(self, event: ChoiceEvent) -> Optional[int]:
        """Prompt for an option; returns its index, or None to quit"""
        print(f"\n{Colors.DIM}{'─' * 50}{Colors.RESET}")
        for i, option in enumerate(event.options, 1):
            seen = f" {Colors.DIM}(seen){Colors.RESET}" if option.visited else ""
            print(f"  {Colors.BRIGHT_YELLOW}[{i}]{Colors.RESET} {Colors.YELLOW}{option.text}{Colors.RESET}{seen}")

        while True:
            try:
                user_input = input(f"\n{Colors.BRIGHT_MAGENTA}>{Colors.RESET} ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                return None

            if user_input in QUIT_WORDS:
                return None
            if user_input == "state":
                self.show_state()
                continue

            try:
                choice_num = int(user_input)
            except ValueError:
                print(f"{Colors.RED}❌ Please enter a valid number or command.{Colors.RESET}")
                continue

            if 1 <= choice_num <= len(event.options):
                selected = event.options[choice_num - 1]
                print(self.format_dialogue_box(selected.text, "You", Colors.BRIGHT_GREEN))
                return choice_num - 1

            print(f"{Colors.RED}❌ Invalid choice. Please enter a number from the list.{Colors.RESET}")

    def show_state(self):
        """Display visited nodes and commands run so far"""
        print(f"\n{Colors.BRIGHT_BLUE}{'=' * 50}{Colors.RESET}")
        print(f"{Colors.BRIGHT_WHITE}Visited:{Colors.RESET} {', '.join(sorted(self.session.visited)) or '(none)'}")
        if self.session.return_depth:
            print(f"{Colors.BRIGHT_WHITE}Detour depth:{Colors.RESET} {self.session.return_depth}")
        if self.commands:
            print(f"{Colors.BRIGHT_WHITE}Commands:{Colors.RESET}")
            for command in self.commands:
                print(f"  • {command}")
        print(f"{Colors.BRIGHT_BLUE}{'=' * 50}{Colors.RESET}")


def main():
    """Main entry point"""
    setup_logging()

    if len(sys.argv) < 2:
        print("Usage: gab-play <dialogue_file.gab> [start_node]")
        sys.exit(1)

    dialogue_path = Path(sys.argv[1])
    start = sys.argv[2] if len(sys.argv) >= 3 else None

    if not dialogue_path.exists():
        print(f"❌ File not found: {dialogue_path}")
        sys.exit(1)

    if dialogue_path.suffix != ".gab":
        print("⚠️  Warning: File doesn't have .gab extension")

    try:
        player = DialoguePlayer(dialogue_path, start=start)
        player.play()
    except GabError as e:
        print(f"\n❌ Error: {e}")
        logger.debug("Playback failed", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
