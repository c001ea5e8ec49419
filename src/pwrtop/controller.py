"""Keyboard command handling for pwrtop."""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from pwrtop.models import KillResult, SortKey, ViewState
from pwrtop.sources import MetricSource

logger = logging.getLogger(__name__)

# Shows a prompt and returns the entered line, or None when cancelled
Ask = Callable[[str], Awaitable[str | None]]

FILTER_PROMPT = "Filter (empty = clear): "
KILL_PROMPT = "Kill PID> "

# Ctrl+C as delivered by a raw terminal
INTERRUPT = "\x03"


class KeyOutcome(Enum):
    """What the application should do after a keystroke."""

    IGNORED = "ignored"
    VIEW_CHANGED = "view_changed"
    FILTER_PROMPT = "filter_prompt"
    KILL_PROMPT = "kill_prompt"
    QUIT = "quit"


SORT_KEYS = {
    "c": SortKey.CPU,
    "m": SortKey.MEM,
    "p": SortKey.PID,
    "n": SortKey.NAME,
    "w": SortKey.POWER,
}


class PromptGate:
    """Allows a single line-mode prompt at a time."""

    __slots__ = ("_active",)

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def try_acquire(self) -> bool:
        """Take the gate; False if a prompt already holds it."""
        if self._active:
            return False
        self._active = True
        return True

    def release(self) -> None:
        self._active = False


class InputController:
    """
    Applies keystrokes and prompt answers to the view state.

    Single keys mutate the view directly. Line-mode prompts are driven
    through an ``ask`` callable supplied by the display, and hold the
    prompt gate until they finish on any path.
    """

    def __init__(self, view: ViewState, source: MetricSource, gate: PromptGate | None = None) -> None:
        self.view = view
        self._source = source
        self.gate = gate or PromptGate()

    @property
    def prompt_active(self) -> bool:
        return self.gate.active

    def handle_key(self, key: str) -> KeyOutcome:
        """Apply a single keystroke."""
        if key in ("q", INTERRUPT):
            return KeyOutcome.QUIT
        if key in SORT_KEYS:
            self.view.set_sort(SORT_KEYS[key])
        elif key == "r":
            self.view.reverse()
        elif key == "+":
            self.view.faster()
        elif key == "-":
            self.view.slower()
        elif key in ("/", "k"):
            if self.gate.active:
                return KeyOutcome.IGNORED
            return KeyOutcome.FILTER_PROMPT if key == "/" else KeyOutcome.KILL_PROMPT
        else:
            return KeyOutcome.IGNORED
        return KeyOutcome.VIEW_CHANGED

    async def prompt_filter(self, ask: Ask) -> bool:
        """Prompt for a filter string. Returns False if another prompt is active."""
        if not self.gate.try_acquire():
            return False
        try:
            answer = await ask(FILTER_PROMPT)
            if answer is not None:
                self.view.set_filter(answer)
                logger.debug("Filter set to %r", self.view.filter_text)
            return True
        finally:
            self.gate.release()

    async def prompt_kill(self, ask: Ask) -> KillResult | None:
        """
        Prompt for a pid and a confirmation, then kill the process.

        Returns:
            The kill outcome, or None when the input was invalid, the
            request was declined, or another prompt is active.
        """
        if not self.gate.try_acquire():
            return None
        try:
            answer = await ask(KILL_PROMPT)
            pid = parse_pid(answer)
            if pid is None:
                return None
            confirm = await ask(f"Confirm kill PID {pid}? (y/N) ")
            if not confirm or not confirm.strip().lower().startswith("y"):
                return None
            result = await self._source.kill_process(pid)
            if result.ok:
                logger.info("Killed PID %d", pid)
            else:
                logger.warning("%s", result.message)
            return result
        finally:
            self.gate.release()


def parse_pid(text: str | None) -> int | None:
    """Parse a positive pid, None for anything else."""
    if text is None:
        return None
    try:
        pid = int(text.strip())
    except ValueError:
        return None
    return pid if pid > 0 else None
