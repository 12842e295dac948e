"""Textual TUI for browsing an IFC graph."""

from __future__ import annotations

import functools
import json
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.theme import Theme
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    SelectionList,
    Static,
)
from textual.widgets.selection_list import Selection
from textual.worker import Worker, get_current_worker

from ifc_graph_viewer.display.hover import HoverAffordanceCoordinator, TextualScheduler
from ifc_graph_viewer.display.layout import Intent
from ifc_graph_viewer.display.synchronizer import SyncResult
from ifc_graph_viewer.errors import IngestError
from ifc_graph_viewer.export import write_html
from ifc_graph_viewer.graph.entity_types import resolve_entity_type
from ifc_graph_viewer.graph.models import GraphPayload, Node
from ifc_graph_viewer.paths import find_output_dir
from ifc_graph_viewer.session import ViewerSession

# Maximum attribute lines shown in the inspector.
_INSPECTOR_MAX_LINES = 40

# ---------------------------------------------------------------------------
# Catppuccin Mocha theme (https://catppuccin.com/palette)
# ---------------------------------------------------------------------------
_CATPPUCCIN_MOCHA = Theme(
    name="catppuccin-mocha",
    primary="#89b4fa",  # Blue
    secondary="#cba6f7",  # Mauve
    accent="#fab387",  # Peach
    foreground="#cdd6f4",  # Text
    background="#1e1e2e",  # Base
    surface="#313244",  # Surface0
    panel="#181825",  # Mantle
    success="#a6e3a1",  # Green
    warning="#f9e2af",  # Yellow
    error="#f38ba8",  # Red
    dark=True,
)


class NodeRow(ListItem):
    """One displayed node; reports pointer enter/leave for the hover affordance."""

    class PointerEnter(Message):
        def __init__(self, node_id: str) -> None:
            super().__init__()
            self.node_id = node_id

    class PointerLeave(Message):
        def __init__(self, node_id: str) -> None:
            super().__init__()
            self.node_id = node_id

    def __init__(self, node: Node) -> None:
        super().__init__(Label(f"{node.label}  ({node.type})", markup=False))
        self.node_id = node.id

    def on_enter(self, event: events.Enter) -> None:
        self.post_message(self.PointerEnter(self.node_id))

    def on_leave(self, event: events.Leave) -> None:
        self.post_message(self.PointerLeave(self.node_id))


class ButtonAffordanceView:
    """Shows the hover affordance as a single docked button."""

    def __init__(self, button: Button) -> None:
        self._button = button

    def show(self, node_id: str) -> None:
        self._button.label = f"Expand {node_id}"
        self._button.remove_class("fading")
        self._button.display = True

    def fade_out(self, node_id: str) -> None:
        self._button.add_class("fading")

    def remove(self, node_id: str) -> None:
        self._button.display = False
        self._button.remove_class("fading")


class ViewerApp(App[None]):
    """Type toggles on the left, displayed nodes in the middle, inspector right."""

    CSS = """
    Screen {
        background: $background;
    }

    #sidebar {
        width: 34;
        border: solid $primary;
        padding: 0 1;
    }

    #type-list {
        height: 1fr;
    }

    #node-list {
        width: 1fr;
        border: solid $primary;
    }

    #details {
        width: 44;
        border: solid $secondary;
        padding: 0 1;
    }

    #inspector {
        height: 1fr;
    }

    #expand-affordance {
        width: 100%;
    }

    #expand-affordance.fading {
        opacity: 40%;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $panel;
        color: $foreground;
        padding: 0 2;
    }

    #upload-input {
        dock: bottom;
        margin: 0 1 1 1;
    }

    .heading {
        color: $accent;
        text-style: bold;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
        ("r", "reset_view", "Reset view"),
        ("e", "expand_selected", "Expand"),
        ("i", "isolate_selected", "Isolate"),
        ("escape", "clear_selection", "Deselect"),
        ("x", "export_html", "Export HTML"),
    ]

    def __init__(
        self,
        session: ViewerSession,
        *,
        initial_file: Path | None = None,
        load_default: bool = True,
    ) -> None:
        super().__init__()
        self.session = session
        self._initial_file = initial_file
        self._load_default = load_default
        self.hover: HoverAffordanceCoordinator | None = None
        # Handle to the active upload worker (None when idle).
        self._worker: Worker | None = None

    def compose(self) -> ComposeResult:
        """Build the widget tree."""
        yield Header(show_clock=True)

        with Horizontal():
            with Vertical(id="sidebar"):
                yield Static("Entity types", classes="heading")
                yield SelectionList[str](id="type-list")
                yield Input(placeholder="Toggle type (e.g. wall)", id="type-input")
                yield Input(
                    placeholder=f"Display cap ({self.session.sync.display_cap})",
                    id="cap-input",
                    type="integer",
                )
            yield ListView(id="node-list")
            with Vertical(id="details"):
                yield Static("Inspector", classes="heading")
                yield Static("(no node selected)", id="inspector", markup=False)
                yield Button("Expand", id="expand-affordance", variant="primary")

        yield Static("", id="status-bar", markup=False)
        yield Input(placeholder="Path to an .ifc file to upload...", id="upload-input")
        yield Footer()

    def on_load(self) -> None:
        """Register the Catppuccin Mocha theme before the UI is composed."""
        self.register_theme(_CATPPUCCIN_MOCHA)
        self.theme = "catppuccin-mocha"

    def on_mount(self) -> None:
        button = self.query_one("#expand-affordance", Button)
        button.display = False
        config = self.session.config
        self.hover = HoverAffordanceCoordinator(
            TextualScheduler(self),
            ButtonAffordanceView(button),
            on_expand=self.session.sync.expand,
            is_displayed=self.session.surface.has_node,
            show_delay=config.hover_delay,
            visible_for=config.hover_visible,
            fade_for=config.hover_fade,
        )
        self.session.sync.add_listener(self._on_sync)

        if self._initial_file is not None:
            self._start_upload(self._initial_file)
        elif self._load_default:
            self.session.load_default()
        if not self.session.store.is_empty:
            # graph loaded before mount (--graph)
            self._rebuild_types()
            self._refresh_nodes()
        self._update_status()
        self.query_one("#upload-input", Input).focus()

    # ------------------------------------------------------------------ actions

    async def action_quit(self) -> None:
        """Cancel any running upload, stop hover timers, then exit."""
        self._teardown()
        self.exit()

    def on_unmount(self) -> None:
        self._teardown()

    def action_reset_view(self) -> None:
        self.session.sync.reset_view()

    def action_expand_selected(self) -> None:
        selected = self.session.sync.selected_node_id
        if selected is None:
            self.notify("Select a node first", severity="warning")
            return
        self.session.sync.expand(selected)

    def action_isolate_selected(self) -> None:
        selected = self.session.sync.selected_node_id
        if selected is None:
            self.notify("Select a node first", severity="warning")
            return
        self.session.sync.isolate(selected)

    def action_clear_selection(self) -> None:
        self.session.sync.clear_selection()
        self._show_inspector(None)
        self._update_status()

    def action_export_html(self) -> None:
        path = find_output_dir() / "viewer_graph.html"
        write_html(self.session.surface, path)
        self.notify(f"Exported {path}")

    # --------------------------------------------------------------- input flow

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        if not value:
            return
        event.input.value = ""

        if event.input.id == "upload-input":
            self._start_upload(Path(value).expanduser())
        elif event.input.id == "type-input":
            self._toggle_by_name(value)
        elif event.input.id == "cap-input":
            try:
                self.session.sync.set_display_cap(int(value))
            except ValueError as exc:
                self.notify(str(exc), severity="error")
                return
            event.input.placeholder = f"Display cap ({self.session.sync.display_cap})"

    def on_selection_list_selection_toggled(
        self, event: SelectionList.SelectionToggled
    ) -> None:
        self.session.sync.toggle_type(event.selection.value)

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if not isinstance(event.item, NodeRow):
            return
        if self.session.sync.select_node(event.item.node_id):
            self._show_inspector(self.session.sync.selected_node())
        self._update_status()

    def on_node_row_pointer_enter(self, event: NodeRow.PointerEnter) -> None:
        if self.hover is not None:
            self.hover.pointer_enter(event.node_id)

    def on_node_row_pointer_leave(self, event: NodeRow.PointerLeave) -> None:
        if self.hover is not None:
            self.hover.pointer_leave(event.node_id)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "expand-affordance" and self.hover is not None:
            self.hover.click()

    def _toggle_by_name(self, value: str) -> None:
        universe = self.session.store.entity_types
        entity_type = resolve_entity_type(value, universe)
        if entity_type is None:
            self.notify(f"Unknown entity type: {value}", severity="warning")
            return
        self.session.sync.toggle_type(entity_type)
        type_list = self.query_one("#type-list", SelectionList)
        if entity_type in self.session.sync.active_types:
            type_list.select(entity_type)
        else:
            type_list.deselect(entity_type)

    # ------------------------------------------------------------------ upload

    def _start_upload(self, path: Path) -> None:
        if self._worker is not None and not self._worker.is_finished:
            self.notify("An upload is already running", severity="warning")
            return
        if self.hover is not None:
            self.hover.teardown()
        self.session.begin_upload(str(path))
        self._update_status()
        self._worker = self.run_worker(
            functools.partial(self._upload_worker, path),
            exclusive=True,
            thread=True,
        )

    def _upload_worker(self, path: Path) -> None:
        """Run the upload in a worker thread.

        All UI mutations are marshalled back to the main event loop via
        call_from_thread.
        """
        worker = get_current_worker()
        try:
            payload = self.session.fetch(path, progress=self._post_progress)
        except IngestError as exc:
            if not worker.is_cancelled:
                self.call_from_thread(self._upload_failed, exc)
            return
        if worker.is_cancelled:
            return
        self.call_from_thread(self._upload_done, payload)

    def _post_progress(self, percent: int) -> None:
        self.call_from_thread(self._on_progress, percent)

    def _on_progress(self, percent: int) -> None:
        self.session.report_progress(percent)
        self._update_status()

    def _upload_done(self, payload: GraphPayload) -> None:
        if not self.session.finish_upload(payload):
            self.notify(self.session.last_error or "Upload failed", severity="error")
        self._update_status()

    def _upload_failed(self, exc: IngestError) -> None:
        self.session.fail_upload(exc)
        self.notify(str(exc), severity="error", timeout=8)
        self._update_status()

    # ----------------------------------------------------------------- display

    def _on_sync(self, result: SyncResult) -> None:
        if self.hover is not None:
            for node_id in result.removed_nodes:
                self.hover.node_removed(node_id)
        if result.intent in (Intent.LOAD, Intent.CLEAR):
            self._rebuild_types()
        self._refresh_nodes()
        self._show_inspector(self.session.sync.selected_node())
        self._update_status()

    def _rebuild_types(self) -> None:
        type_list = self.query_one("#type-list", SelectionList)
        type_list.clear_options()
        active = self.session.sync.active_types
        type_list.add_options(
            [Selection(t, t, t in active) for t in self.session.store.entity_types]
        )

    def _refresh_nodes(self) -> None:
        node_list = self.query_one("#node-list", ListView)
        node_list.clear()
        node_list.extend(NodeRow(node) for node in self.session.surface.nodes())

    def _show_inspector(self, node: Node | None) -> None:
        inspector = self.query_one("#inspector", Static)
        if node is None:
            inspector.update("(no node selected)")
            return
        lines = [f"id:    {node.id}", f"type:  {node.type}", f"label: {node.label}"]
        if node.attributes:
            lines.append("")
            lines.extend(
                json.dumps(dict(node.attributes), indent=2, default=str).splitlines()
            )
        if len(lines) > _INSPECTOR_MAX_LINES:
            lines = lines[:_INSPECTOR_MAX_LINES] + ["... (truncated)"]
        inspector.update("\n".join(lines))

    def _update_status(self) -> None:
        self.query_one("#status-bar", Static).update(self._status_text())

    def _status_text(self) -> str:
        """Source | shown/total nodes | active types | cap [| progress] [| error]."""
        s = self.session.summary()
        parts: list[str] = [f"Source: {Path(s['source']).name if s['source'] else '-'}"]
        if s["loading"]:
            parts.append(f"uploading {s['progress']}%")
        else:
            parts.append(f"{s['displayed_nodes']}/{s['graph_nodes']} nodes")
            parts.append(f"{len(s['active_types'])}/{len(s['entity_types'])} types")
            parts.append(f"cap {s['display_cap']}")
        if s["selected"]:
            parts.append(f"selected {s['selected']}")
        if s["error"]:
            parts.append(f"error: {s['error']}")
        return " | ".join(parts)

    def _teardown(self) -> None:
        if self._worker is not None and not self._worker.is_finished:
            self._worker.cancel()
        if self.hover is not None:
            self.hover.teardown()


def run_viewer_app(
    session: ViewerSession,
    *,
    initial_file: Path | None = None,
    load_default: bool = True,
) -> None:
    """Launch the Textual viewer.

    Args:
        session: Session to drive; the caller closes it afterwards.
        initial_file: IFC file to upload as soon as the app is mounted.
        load_default: Load the default graph asset when no file is given.
    """
    app = ViewerApp(session, initial_file=initial_file, load_default=load_default)
    app.run()
