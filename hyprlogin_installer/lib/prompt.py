from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, TextIO

RULE = "═" * 67
THIN_RULE = "─" * 65

_COLORS = {
    "red": "\033[0;31m",
    "green": "\033[0;32m",
    "yellow": "\033[1;33m",
    "blue": "\033[0;34m",
    "cyan": "\033[0;36m",
    "bold": "\033[1m",
    "reset": "\033[0m",
}


class InputCancelled(EOFError):
    pass


@dataclass(frozen=True)
class MenuOption:
    """A menu entry; selection returns `key`, never a list position."""

    key: str
    label: str


class Console:
    """Operator I/O. Every prompt reads one line through `read_line`."""

    def __init__(
        self,
        *,
        read_line: Optional[Callable[[str], str]] = None,
        out: Optional[TextIO] = None,
        color: Optional[bool] = None,
        dry_run: bool = False,
    ) -> None:
        self._read_line = read_line or input
        self.out = out or sys.stdout
        self.color = self.out.isatty() if color is None else color
        self.dry_run = dry_run

    def paint(self, text: str, *styles: str) -> str:
        if not self.color or not styles:
            return text
        return "".join(_COLORS[s] for s in styles) + text + _COLORS["reset"]

    # -- output -------------------------------------------------------

    def say(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def lines(self, lines: Sequence[str]) -> None:
        for line in lines:
            self.say(line)

    def info(self, msg: str) -> None:
        self.say(f"{self.paint('[INFO]', 'blue')} {msg}")

    def success(self, msg: str) -> None:
        self.say(f"{self.paint('[OK]', 'green')} {msg}")

    def warn(self, msg: str) -> None:
        self.say(f"{self.paint('[WARN]', 'yellow')} {msg}")

    def error(self, msg: str) -> None:
        self.say(f"{self.paint('[ERROR]', 'red')} {msg}")

    def preview(self, msg: str) -> None:
        self.say(f"{self.paint('[DRY-RUN]', 'cyan')} {msg}")

    def banner(self, title: str, *styles: str) -> None:
        self.say()
        self.say(RULE)
        self.say("  " + self.paint(title, "bold", *styles))
        self.say(RULE)
        self.say()

    # -- input --------------------------------------------------------

    def read(self, prompt: str) -> str:
        try:
            return self._read_line(prompt).strip()
        except EOFError as e:
            raise InputCancelled("Input cancelled") from e

    def ask(self, question: str) -> bool:
        """Default No: only y/Y confirms."""

        return self.read(f"{self.paint('[?]', 'yellow')} {question} [y/N] ") in {"y", "Y"}

    def ask_yes(self, question: str) -> bool:
        """Default Yes: only n/N declines."""

        return self.read(f"{self.paint('[?]', 'yellow')} {question} [Y/n] ") not in {"n", "N"}

    def ask_critical(self, question: str, required_word: str = "yes") -> bool:
        """Require typing the exact word; case-sensitive, no default."""

        prompt = f"{self.paint('[!]', 'red')} {question} (type '{self.paint(required_word, 'bold')}' to confirm): "
        try:
            answer = self._read_line(prompt)
        except EOFError:
            return False
        return answer.rstrip("\n") == required_word

    def pause(self, prompt: str = "Press Enter to continue...") -> None:
        self.read(prompt)

    def select(
        self,
        prompt: str,
        options: Sequence[MenuOption],
        *,
        default: Optional[str] = None,
    ) -> str:
        """Numbered menu; loops until a valid choice.

        Blank input picks `default` when one is given.
        """

        if not options:
            raise ValueError("select() needs at least one option")
        for i, opt in enumerate(options, start=1):
            self.say(f"    {i}) {opt.label}")
        self.say()
        hint = f"1-{len(options)}" + (", blank=default" if default is not None else "")
        while True:
            choice = self.read(f"  {prompt} [{hint}]: ")
            if not choice and default is not None:
                return default
            if choice.isdigit() and 1 <= int(choice) <= len(options):
                return options[int(choice) - 1].key
            self.warn(f"Invalid choice. Please enter 1-{len(options)}.")
