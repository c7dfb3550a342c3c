"""
Tests for the workspace file watcher and debounced catalog refresh.
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from part_render.mcp_server.workspace import SourceChangeHandler, Workspace


def fake_event(path, event_type="modified", is_directory=False, dest_path=""):
    event = MagicMock()
    event.src_path = str(path)
    event.dest_path = dest_path
    event.event_type = event_type
    event.is_directory = is_directory
    return event


def stub_renderer():
    renderer = MagicMock()
    renderer.initialize = AsyncMock()
    renderer.refresh = AsyncMock()
    return renderer


class TestSourceChangeHandler:
    """Test cases for event filtering."""

    def test_source_files_schedule_refresh(self, sample_config):
        workspace = Workspace(sample_config, renderer=stub_renderer())
        workspace.schedule_refresh = MagicMock()
        handler = SourceChangeHandler(workspace)

        handler.on_any_event(fake_event(workspace.project_root / "src" / "New.tsx", "created"))

        workspace.schedule_refresh.assert_called_once()

    def test_irrelevant_events_ignored(self, sample_config):
        workspace = Workspace(sample_config, renderer=stub_renderer())
        workspace.schedule_refresh = MagicMock()
        handler = SourceChangeHandler(workspace)

        handler.on_any_event(fake_event(workspace.project_root / "README.md"))
        handler.on_any_event(fake_event(workspace.project_root / "node_modules" / "x" / "index.js"))
        handler.on_any_event(fake_event(workspace.project_root / "src", is_directory=True))
        handler.on_any_event(fake_event(workspace.project_root / "src" / "A.tsx", event_type="opened"))

        workspace.schedule_refresh.assert_not_called()

    def test_moves_into_the_project_count(self, sample_config):
        workspace = Workspace(sample_config, renderer=stub_renderer())
        workspace.schedule_refresh = MagicMock()
        handler = SourceChangeHandler(workspace)

        handler.on_any_event(fake_event(
            "/elsewhere/draft.txt", "moved", dest_path=str(workspace.project_root / "src" / "Draft.tsx")
        ))

        workspace.schedule_refresh.assert_called_once()


class TestWorkspace:
    """Test cases for Workspace lifecycle and debouncing."""

    def test_is_ignored_path(self, sample_config, write_file):
        write_file(Path(sample_config.project_root), ".gitignore", "generated/\n")
        workspace = Workspace(sample_config, renderer=stub_renderer())
        root = workspace.project_root

        assert workspace.is_ignored_path(root / "node_modules" / "a.js")
        assert workspace.is_ignored_path(root / "generated" / "b.ts")
        assert workspace.is_ignored_path(Path("/outside/c.ts"))
        assert not workspace.is_ignored_path(root / "src" / "d.ts")

    @pytest.mark.asyncio
    async def test_start_without_watching(self, sample_config):
        renderer = stub_renderer()
        workspace = Workspace(sample_config, renderer=renderer)

        await workspace.start()

        renderer.initialize.assert_awaited_once()
        assert workspace.observer is None
        workspace.shutdown()
        renderer.dispose.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_with_watching(self, sample_config):
        sample_config.watch_enabled = True
        workspace = Workspace(sample_config, renderer=stub_renderer())

        with patch("part_render.mcp_server.workspace.watchdog.observers.Observer") as observer_class:
            await workspace.start()

        observer = observer_class.return_value
        observer.schedule.assert_called_once()
        assert observer.schedule.call_args.args[1] == str(workspace.project_root)
        observer.start.assert_called_once()

        workspace.shutdown()
        observer.stop.assert_called_once()
        observer.join.assert_called_once()
        assert workspace.observer is None

    @pytest.mark.asyncio
    async def test_refresh_is_debounced(self, sample_config):
        sample_config.watch_debounce_seconds = 0.05
        renderer = stub_renderer()
        workspace = Workspace(sample_config, renderer=renderer)
        await workspace.start()

        for _ in range(5):
            workspace.schedule_refresh()
        await asyncio.sleep(0.3)

        renderer.refresh.assert_awaited_once()
        workspace.shutdown()

    def test_schedule_refresh_without_loop_is_noop(self, sample_config):
        renderer = stub_renderer()
        workspace = Workspace(sample_config, renderer=renderer)

        workspace.schedule_refresh()

        renderer.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_failure_is_logged(self, sample_config, caplog):
        renderer = stub_renderer()
        renderer.refresh.side_effect = RuntimeError("disk gone")
        workspace = Workspace(sample_config, renderer=renderer)

        await workspace._refresh()

        assert "Catalog refresh failed: disk gone" in caplog.text
