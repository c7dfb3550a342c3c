import asyncio
import logging
from pathlib import Path
from typing import Optional

import watchdog.observers
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from part_render.core.config import PartRenderConfig
from part_render.core.partial_renderer import PartialRenderer
from part_render.core.utils import get_gitignore_patterns, is_path_ignored, matches_any_pattern

logger = logging.getLogger("part_render.mcp")


class SourceChangeHandler(FileSystemEventHandler):
    """Schedules a catalog refresh when a project source file changes."""

    def __init__(self, workspace: "Workspace"):
        self.workspace = workspace
        self.extensions = tuple(ext.lower() for ext in workspace.config.source_extensions) + (".json",)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in {"created", "modified", "deleted", "moved"}:
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        for raw in paths:
            if not raw:
                continue
            path = Path(raw)
            if not path.is_absolute():
                path = (self.workspace.project_root / path).resolve()
            if str(path).lower().endswith(self.extensions) and not self.workspace.is_ignored_path(path):
                logger.debug(f"Source change detected: {path}")
                self.workspace.schedule_refresh()
                return


class Workspace:
    """The renderer for one project plus its optional file watcher."""

    def __init__(self, config: PartRenderConfig, renderer: Optional[PartialRenderer] = None):
        self.config = config
        self.project_root = config.resolved_root()
        self.renderer = renderer or PartialRenderer(config)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.observer = None
        self._pending_refresh: Optional[asyncio.TimerHandle] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._gitignore = get_gitignore_patterns(self.project_root)

    @property
    def is_ready(self) -> bool:
        return self.renderer.is_initialized

    async def start(self) -> None:
        self.loop = asyncio.get_running_loop()
        await self.renderer.initialize()
        if self.config.watch_enabled:
            self.start_watching()

    def start_watching(self) -> None:
        observer = watchdog.observers.Observer()
        observer.schedule(SourceChangeHandler(self), str(self.project_root), recursive=True)
        observer.start()
        self.observer = observer
        logger.info(f"Started watching directory: {self.project_root}")

    def is_ignored_path(self, path: Path) -> bool:
        try:
            relative = path.relative_to(self.project_root).as_posix()
        except ValueError:
            return True
        if any(is_path_ignored(relative, pattern) for pattern in self.config.ignored_patterns):
            return True
        return matches_any_pattern(path, self._gitignore)

    def schedule_refresh(self) -> None:
        """Thread-safe: (re)arm the debounce timer on the server loop."""
        loop = self.loop
        if loop is None or loop.is_closed() or not loop.is_running():
            logger.debug("Skipping refresh: event loop is not available")
            return
        loop.call_soon_threadsafe(self._arm_refresh)

    def _arm_refresh(self) -> None:
        if self._pending_refresh is not None:
            self._pending_refresh.cancel()
        self._pending_refresh = self.loop.call_later(self.config.watch_debounce_seconds, self._start_refresh)

    def _start_refresh(self) -> None:
        self._pending_refresh = None
        self._refresh_task = self.loop.create_task(self._refresh())

    async def _refresh(self) -> None:
        try:
            await self.renderer.refresh()
        except Exception as e:
            logger.error(f"Catalog refresh failed: {e}", exc_info=True)

    def shutdown(self) -> None:
        if self._pending_refresh is not None:
            self._pending_refresh.cancel()
            self._pending_refresh = None
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        self.renderer.dispose()
