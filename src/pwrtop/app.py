"""pwrtop - Main Textual application."""

import logging
from datetime import datetime

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Static

from pwrtop.config import MonitorConfig
from pwrtop.controller import INTERRUPT, InputController, KeyOutcome
from pwrtop.ranking import rank_processes
from pwrtop.render import render_frame
from pwrtop.scheduler import Scheduler, TickResult
from pwrtop.sources import MetricSource, PsutilSource

logger = logging.getLogger(__name__)

# Actions held back while a line-mode prompt is open
SINGLE_KEY_ACTIONS = {"press"}


class PromptScreen(ModalScreen[str | None]):
    """Single-line prompt. Dismisses with the entered text, or None on escape."""

    DEFAULT_CSS = """
    PromptScreen {
        align: center bottom;
    }

    PromptScreen > Vertical {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, prompt: str) -> None:
        """Initialize PromptScreen."""
        super().__init__()
        self._prompt = prompt

    def compose(self) -> ComposeResult:
        """Compose the prompt layout."""
        yield Vertical(
            Label(self._prompt, id="prompt-label"),
            Input(id="prompt-input"),
        )

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class PwrtopApp(App):
    """Main pwrtop application."""

    TITLE = "pwrtop"
    SUB_TITLE = "Process and Power Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #frame {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "press('q')", "Quit"),
        Binding("ctrl+c", "press('\\x03')", "Quit", show=False, priority=True),
        Binding("c", "press('c')", "CPU"),
        Binding("m", "press('m')", "MEM"),
        Binding("p", "press('p')", "PID"),
        Binding("n", "press('n')", "NAME"),
        Binding("w", "press('w')", "POWER"),
        Binding("r", "press('r')", "Reverse"),
        Binding("plus", "press('+')", "Faster"),
        Binding("minus", "press('-')", "Slower"),
        Binding("slash", "press('/')", "Filter"),
        Binding("k", "press('k')", "Kill"),
    ]

    def __init__(self, config: MonitorConfig | None = None, source: MetricSource | None = None) -> None:
        """Initialize the PwrtopApp."""
        super().__init__()
        self._monitor_config = config or MonitorConfig()
        self._metric_source = source or PsutilSource()
        self.view = self._monitor_config.initial_view()
        self.scheduler = Scheduler(self._metric_source, self.view, self._monitor_config.power_model)
        self.controller = InputController(self.view, self._metric_source)
        self._last_tick: TickResult | None = None
        self._last_frame: Text | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        self._frame_view = Static("Sampling...", id="frame")
        yield self._frame_view

    def on_mount(self) -> None:
        """Start the sampling loop when the app is mounted."""
        self._run_scheduler()

    @work(exclusive=True, group="scheduler")
    async def _run_scheduler(self) -> None:
        await self.scheduler.start()
        await self.scheduler.run(self._present)
        self.exit()

    def _present(self, result: TickResult) -> None:
        self._last_tick = result
        self._redraw()

    def _redraw(self) -> None:
        """Render the latest tick at the current terminal width and view."""
        if self._last_tick is None:
            return
        result = self._last_tick
        frame = render_frame(
            system=result.system,
            processes=rank_processes(result.samples, self.view),
            battery=result.battery,
            power_profile=result.power_profile,
            view=self.view,
            host=self.scheduler.host,
            power=self.scheduler.power,
            width=self.size.width,
            clock_label=datetime.now().strftime("%H:%M:%S"),
        )
        self._last_frame = frame
        self._frame_view.update(frame)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Hold back single-key commands while a prompt is open, except Ctrl+C."""
        if action in SINGLE_KEY_ACTIONS and self.controller.prompt_active:
            return parameters == (INTERRUPT,)
        return True

    def action_press(self, key: str) -> None:
        """Dispatch a single-key command to the controller."""
        match self.controller.handle_key(key):
            case KeyOutcome.QUIT:
                self.action_quit()
            case KeyOutcome.FILTER_PROMPT:
                self._filter_prompt()
            case KeyOutcome.KILL_PROMPT:
                self._kill_prompt()
            case KeyOutcome.VIEW_CHANGED:
                self._redraw()
            case KeyOutcome.IGNORED:
                pass

    async def _ask(self, prompt: str) -> str | None:
        return await self.push_screen_wait(PromptScreen(prompt))

    @work
    async def _filter_prompt(self) -> None:
        if await self.controller.prompt_filter(self._ask):
            self._redraw()

    @work
    async def _kill_prompt(self) -> None:
        result = await self.controller.prompt_kill(self._ask)
        if result is not None:
            self.notify(result.message, severity="information" if result.ok else "error")

    def action_quit(self) -> None:
        """Quit now if idle, otherwise once the current tick completes."""
        self.scheduler.stop()
        if not self.scheduler.ticking:
            self.exit()
