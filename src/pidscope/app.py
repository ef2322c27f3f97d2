"""pidscope - Textual report viewer."""

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Footer, Input, Static

from pidscope.inspector import InspectionReport, Inspector, InvalidPidError, PidSelection


class ReportPanel(Static):
    """Panel showing one plain-text report section."""

    DEFAULT_CSS = """
    ReportPanel {
        height: auto;
        padding: 0 1;
        margin-bottom: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ReportPanel without markup so brackets render literally."""
        super().__init__(*args, markup=False, **kwargs)

    def show(self, text: str) -> None:
        self.update(text.rstrip("\n"))


class PidscopeApp(App):
    """Interactive viewer for process reports."""

    TITLE = "pidscope"
    SUB_TITLE = "Process Inspector"

    CSS = """
    Screen {
        layout: vertical;
    }

    #pid-input {
        dock: top;
    }

    #reports {
        height: 1fr;
        border: solid $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
    ]

    def __init__(self, inspector: Inspector, pid: str | None = None) -> None:
        """
        Initialize the PidscopeApp.

        Args:
            inspector: Inspector used to build reports.
            pid: Optional PID text to inspect on startup.
        """
        super().__init__()
        self._inspector = inspector
        self._selection = PidSelection()
        self._initial_pid = pid
        self._report: InspectionReport | None = None

    @property
    def selection(self) -> PidSelection:
        return self._selection

    @property
    def report(self) -> InspectionReport | None:
        """The most recently displayed report."""
        return self._report

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Input(placeholder="Enter a PID and press Enter", id="pid-input")
        with VerticalScroll(id="reports"):
            yield ReportPanel("Enter a PID to inspect.", id="process-panel")
            yield ReportPanel(id="threads-panel")
            yield ReportPanel(id="sockets-panel")
        yield Footer()

    def on_mount(self) -> None:
        """Inspect the startup PID, if one was given."""
        if self._initial_pid is not None:
            self._selection.write(self._initial_pid)
            self.query_one("#pid-input", Input).value = self._selection.text
            self.action_refresh()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Select the submitted PID and rebuild the report."""
        self._selection.write(event.value)
        self.action_refresh()

    def action_refresh(self) -> None:
        """Rebuild the report for the selected PID."""
        process = self.query_one("#process-panel", ReportPanel)
        threads = self.query_one("#threads-panel", ReportPanel)
        sockets = self.query_one("#sockets-panel", ReportPanel)

        try:
            pid = self._selection.pid
        except InvalidPidError as e:
            self._report = None
            process.show(str(e))
            threads.show("")
            sockets.show("")
            return

        self._report = self._inspector.inspect(pid)
        process.show(self._report.process.render() if self._report.process else "")
        threads.show(self._report.threads.render() if self._report.threads else "")
        sockets.show(self._report.sockets.render() if self._report.sockets else "")
        self.sub_title = f"PID {pid}"


def run_app(inspector: Inspector, pid: str | None = None) -> None:
    """Run the viewer until the user quits."""
    PidscopeApp(inspector, pid).run()
