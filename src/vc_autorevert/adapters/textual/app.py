"""Executable Textual app listing watched buffers and running Git commands."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Callable, Optional, Sequence, Type

try:  # pragma: no cover - imported only when the app is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.containers import Vertical
    from textual.driver import Driver
    from textual.widgets import Footer, Header, Input, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use vc_autorevert.adapters.textual.app"
    ) from exc

from vc_autorevert.buffer import BufferView, InMemoryBufferRegistry, MonitorState
from vc_autorevert.config import AutoRevertConfig
from vc_autorevert.revert import RevertCoordinator
from vc_autorevert.runtime import telemetry
from vc_autorevert.runtime.terminal import PendingInput, terminal_input_probe
from vc_autorevert.vc import GitBackend, GitRunner

from .controller import TextualRevertAdapter, TextualRevertHooks


def create_adapter(
    root: Path,
    hooks: TextualRevertHooks,
    *,
    config: Optional[AutoRevertConfig] = None,
    input_pending: Optional[Callable[[], bool]] = None,
) -> TextualRevertAdapter:
    """Build registry, coordinator and runner for the repository at ``root``.

    ``input_pending`` feeds the stop-on-input budget; without one, stdin is
    polled directly.
    """

    backend = GitBackend()
    registry = InMemoryBufferRegistry(logger_name="vc_autorevert.buffers")
    coordinator = RevertCoordinator(
        registry,
        backend,
        config=config or AutoRevertConfig.from_env(),
        input_pending=input_pending or terminal_input_probe(),
    )
    runner = GitRunner(coordinator, root)
    return TextualRevertAdapter(coordinator, registry, runner, hooks)


def pending_input_driver(base: Type[Driver], pending: PendingInput) -> Type[Driver]:
    """Subclass ``base`` so every key read from the terminal is counted.

    Drivers parse input on their own thread, so keys are counted even while a
    revert pass is holding the event loop.
    """

    class PendingInputDriver(base):  # type: ignore[misc, valid-type]
        def process_message(self, message) -> None:
            if isinstance(message, events.Key):
                pending.received()
            super().process_message(message)

    return PendingInputDriver


def render_row(view: BufferView) -> str:
    flags = "*" if view.modified else " "
    watch = "W" if view.monitor is MonitorState.MONITORED else "-"
    state = view.vc_state.value if view.vc_state else "unversioned"
    mode = view.vc_mode or ""
    return f"{flags}{watch} {view.name:<32} {state:<13} {mode}"


class AutoRevertApp(App[None]):
    """Shows open buffers with their monitor flag and version-control state."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#buffer-view {
		height: 1fr;
		border: round $accent;
		padding: 0 1;
		overflow: auto;
	}

	#output-view {
		height: 8;
		border: round $panel;
		padding: 0 1;
		overflow: auto;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        root: Path,
        files: Sequence[Path] = (),
        *,
        config: Optional[AutoRevertConfig] = None,
        deferred_interval: float = 0.5,
    ) -> None:
        # read by get_driver_class during App.__init__
        self.pending_input = PendingInput()
        super().__init__()
        self.root = root
        self._files = tuple(files)
        self._config = config
        self._deferred_interval = deferred_interval
        self.adapter: TextualRevertAdapter | None = None
        self._buffer_widget: Static | None = None
        self._output_widget: Static | None = None
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="main-area"):
            self._buffer_widget = Static("", id="buffer-view")
            yield self._buffer_widget
            self._output_widget = Static("", id="output-view")
            yield self._output_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Input(
            placeholder="git command, or :revert / :monitor on|off",
            id="command-line",
        )
        yield Footer()

    def get_driver_class(self) -> Type[Driver]:
        return pending_input_driver(super().get_driver_class(), self.pending_input)

    async def on_event(self, event: events.Event) -> None:
        if isinstance(event, events.Key) and not event.is_forwarded:
            self.pending_input.handled()
        await super().on_event(event)

    def on_mount(self) -> None:
        hooks = TextualRevertHooks(
            update_buffers=self._update_buffers,
            update_status=self._update_status,
            show_output=self._show_output,
            log=self._log_line,
        )
        self.adapter = create_adapter(
            self.root, hooks, config=self._config, input_pending=self.pending_input
        )
        for path in self._files:
            self.adapter.open_file(path)
        self._update_status(f"repository {self.root}")
        self.set_interval(self._deferred_interval, self._process_deferred)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if self.adapter is None:
            return
        self.adapter.submit_command(event.value)
        event.input.value = ""

    def _process_deferred(self) -> None:
        if self.adapter:
            self.adapter.process_deferred()

    def _update_buffers(self, rows: Sequence[BufferView]) -> None:
        if self._buffer_widget:
            text = "\n".join(render_row(row) for row in rows) or "(no buffers)"
            self._buffer_widget.update(text)

    def _update_status(self, status: str) -> None:
        if self._status_widget:
            self._status_widget.update(status)

    def _show_output(self, output: str) -> None:
        if self._output_widget:
            self._output_widget.update(output.rstrip())

    def _log_line(self, line: str) -> None:
        telemetry.emit(telemetry.get_logger("vc_autorevert.app"), "debug", line)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch repository buffers and revert them after Git commands."
    )
    parser.add_argument("files", nargs="*", type=Path, help="Files to visit")
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path(os.environ.get("VC_AUTOREVERT_REPO", ".")),
        help="Repository to run Git commands in (default: current directory)",
    )
    parser.add_argument(
        "--budget",
        type=float,
        default=None,
        help="Seconds a single revert pass may run (default: 0.2)",
    )
    parser.add_argument(
        "--stop-on-input",
        action="store_true",
        help="Stop a revert pass as soon as a key is pressed instead of on a timeout",
    )
    parser.add_argument(
        "--all-files",
        action="store_true",
        help="Also monitor files that are not tracked by Git",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    telemetry.configure(preset="quiet")
    root = GitBackend().toplevel_of(args.repo.resolve())
    if root is None:
        raise SystemExit(f"{args.repo} is not inside a Git repository")
    overrides = {"tracked_only": False} if args.all_files else {}
    config = AutoRevertConfig.from_env(**overrides).with_budget(
        timeout=args.budget, stop_on_input=args.stop_on_input
    )
    AutoRevertApp(root, args.files, config=config).run()


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
