"""Textual application hosting the interaction machine."""

from __future__ import annotations

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Header, Static

from chors.models.exceptions import StorageError
from chors.services.interaction import InteractionMachine
from chors.services.storage_service import StorageService
from chors.ui.keymap import SAVE_KEY, command_for
from chors.ui.render import render_body, render_input, render_status
from chors.utils.logger import get_logger


class TaskBody(Static):
    """Main area; redraws when its size changes so the list window fits."""

    def on_resize(self, event: events.Resize) -> None:
        self.app.refresh_frame()


class ChorsApp(App):
    """Full-screen task list. Keys go to the machine; the screen is redrawn from its frame."""

    TITLE = "Chors"
    CSS = """
    Screen {
        layout: vertical;
    }

    #body {
        height: 1fr;
        padding: 0 1;
    }

    #input {
        height: auto;
        padding: 0 1;
    }

    #status {
        height: 1;
        background: $panel;
    }
    """

    def __init__(self, machine: InteractionMachine, storage: StorageService):
        super().__init__()
        self.machine = machine
        self.storage = storage
        self.sub_title = str(storage.path)
        self._save_failed = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield TaskBody(id="body")
        yield Static(id="input")
        yield Static(id="status")

    def on_mount(self) -> None:
        self.refresh_frame()

    def refresh_frame(self) -> None:
        frame = self.machine.frame()
        body = self.query_one("#body", TaskBody)
        body.update(render_body(frame, height=body.size.height))

        input_line = render_input(frame)
        input_widget = self.query_one("#input", Static)
        input_widget.display = input_line is not None
        input_widget.update(input_line or "")

        self.query_one("#status", Static).update(render_status(frame))

    def save(self) -> bool:
        """Write the whole session to the task file; failures go to the status line."""
        try:
            self.storage.save(self.machine.snapshot())
        except StorageError as e:
            self.machine.report(f"{e} (press q again to quit without saving)", "error")
            return False
        self.machine.mark_saved()
        self.machine.report(f"Saved to {self.storage.path}")
        return True

    async def action_quit(self) -> None:
        if self.save() or self._save_failed:
            self.exit()
            return
        self._save_failed = True
        self.refresh_frame()

    async def on_key(self, event: events.Key) -> None:
        get_logger("ui").debug("key %s in %s mode", event.key, self.machine.mode)
        event.stop()
        event.prevent_default()

        if event.key == SAVE_KEY:
            self.save()
            self.refresh_frame()
            return

        command = command_for(self.machine.mode, event.key, event.character)
        if command is None:
            return

        self.machine.dispatch(command)
        if self.machine.quit_requested:
            self.machine.quit_requested = False
            await self.action_quit()
            return
        self.refresh_frame()


def run_app(machine: InteractionMachine, storage: StorageService) -> None:
    ChorsApp(machine, storage).run()
