"""Tests for the pidscope report viewer."""

import pytest

from pidscope.app import PidscopeApp, ReportPanel
from pidscope.inspector import Inspector


@pytest.mark.asyncio
async def test_app_creation(provider):
    """Test PidscopeApp can be instantiated."""
    app = PidscopeApp(Inspector(provider))
    assert app.title == "pidscope"
    assert app.sub_title == "Process Inspector"
    assert app.report is None


@pytest.mark.asyncio
async def test_app_compose(provider):
    """Test PidscopeApp composes the input and the three panels."""
    app = PidscopeApp(Inspector(provider))
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#pid-input") is not None
        assert pilot.app.query_one("#process-panel", ReportPanel) is not None
        assert pilot.app.query_one("#threads-panel", ReportPanel) is not None
        assert pilot.app.query_one("#sockets-panel", ReportPanel) is not None


@pytest.mark.asyncio
async def test_app_startup_pid(provider):
    """A PID given at startup is inspected on mount."""
    app = PidscopeApp(Inspector(provider), pid="4242")
    async with app.run_test() as pilot:
        await pilot.pause()
        assert pilot.app.report is not None
        assert pilot.app.report.pid == 4242
        assert pilot.app.sub_title == "PID 4242"


@pytest.mark.asyncio
async def test_app_submit_pid(provider):
    """Submitting a PID selects it and builds a report."""
    app = PidscopeApp(Inspector(provider))
    async with app.run_test() as pilot:
        await pilot.click("#pid-input")
        await pilot.press("4", "2", "4", "2", "enter")
        await pilot.pause()
        assert pilot.app.selection.text == "4242"
        assert pilot.app.report.threads.thread_count == 2


@pytest.mark.asyncio
async def test_app_invalid_pid(provider):
    """Invalid input is shown inline and no snapshot is requested."""
    app = PidscopeApp(Inspector(provider), pid="abc")
    async with app.run_test() as pilot:
        await pilot.pause()
        assert pilot.app.report is None
        assert provider.calls == []


@pytest.mark.asyncio
async def test_app_refresh_binding(provider):
    """The r binding re-inspects the selected PID."""
    app = PidscopeApp(Inspector(provider), pid="4242")
    async with app.run_test() as pilot:
        await pilot.pause()
        pilot.app.set_focus(None)
        await pilot.press("r")
        await pilot.pause()
        assert provider.calls.count(("process", 4242)) == 2


@pytest.mark.asyncio
async def test_app_quit_binding(provider):
    """Test q binding exits the app."""
    app = PidscopeApp(Inspector(provider))
    async with app.run_test() as pilot:
        pilot.app.set_focus(None)
        await pilot.press("q")
        await pilot.pause()
    assert app.return_code == 0 or app.return_code is None
