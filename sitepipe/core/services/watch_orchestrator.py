"""
Watch orchestrator — rebuild on change, then signal the browser.

Subscriptions
─────────────
  name     directory            depth  name       delay  then
  styles   {scss.src}           **     *.scss     200ms  reload:css
  markup   {src}                .      {index}    300ms  reload:page
           {html.src}           .      *.html
           {src}/templates      **     *.html
  assets   {public.src}/fonts   **     *          300ms  reload:page
           {public.src}/img     **     *
           {public.src}         .      {favicon}
           {js.src}             **     *
           (nothing under {scss.src})

``**`` matches at any depth below the directory, ``.`` only direct
children. Names are matched with :mod:`fnmatch`.

Only content changes (created, modified, deleted, moved) count. Rebuilds
read their own sources, so access events (opened, closed) are dropped.

Threading model
───────────────
- A watchdog ``Observer`` thread receives filesystem events and hands
  each path to the event loop with ``call_soon_threadsafe``.
- Everything else (matching, debounce timers, rebuild tasks) runs on the
  loop thread, so subscriptions need no locks.

Debounce
────────
Each event on a subscription cancels and restarts its timer. When the
timer fires while that subscription's rebuild is still running, a single
follow-up rebuild is queued behind it. A failed rebuild is logged and
published as ``build:error``; watching continues.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from sitepipe.core.models.build import PathMode
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.build_orchestrator import BuildOrchestrator
from sitepipe.core.services.event_bus import BUILD_ERROR, EventBus, bus as default_bus

logger = logging.getLogger(__name__)

DEFAULT_DELAYS = {"styles": 0.2, "markup": 0.3, "assets": 0.3}

CONTENT_EVENTS = frozenset({
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
})


@dataclass(frozen=True)
class WatchPattern:
    """Files named like ``name`` in ``directory`` (or below it)."""

    directory: Path
    name: str = "*"
    recursive: bool = True

    def matches(self, path: Path) -> bool:
        if self.recursive:
            if self.directory not in path.parents:
                return False
        elif path.parent != self.directory:
            return False
        return fnmatch.fnmatchcase(path.name, self.name)


@dataclass
class WatchSubscription:
    """One debounced rebuild trigger."""

    name: str
    patterns: tuple[WatchPattern, ...]
    action: Callable[[], Awaitable[None]]
    delay: float
    ignore: tuple[Path, ...] = ()
    timer: asyncio.TimerHandle | None = None
    task: asyncio.Task | None = None
    rerun: bool = False
    runs: int = 0

    def matches(self, path: Path | str) -> bool:
        path = Path(path)
        if any(d == path or d in path.parents for d in self.ignore):
            return False
        return any(p.matches(path) for p in self.patterns)

    @property
    def busy(self) -> bool:
        return self.task is not None and not self.task.done()


class _EventForwarder(FileSystemEventHandler):
    """Runs on the observer thread; forwards changed paths to the loop."""

    def __init__(self, watcher: WatchOrchestrator, loop: asyncio.AbstractEventLoop) -> None:
        self.watcher = watcher
        self.loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in CONTENT_EVENTS:
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        for raw in paths:
            if raw:
                self.loop.call_soon_threadsafe(self.watcher.dispatch, Path(os.fsdecode(raw)))


class WatchOrchestrator:
    """Supervises a live development build.

    Args:
        config: The loaded site configuration.
        builder: Orchestrator whose single-stage entry points are re-run.
        event_bus: Where reload signals go (default: the module bus).
        delays: Per-subscription debounce override, in seconds.
    """

    def __init__(
        self,
        config: BuildConfig,
        builder: BuildOrchestrator,
        event_bus: EventBus | None = None,
        *,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.config = config
        self.builder = builder
        self.bus = event_bus or default_bus
        self.delays = {**DEFAULT_DELAYS, **(delays or {})}
        self.subscriptions = self._subscriptions()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Observer | None = None
        self._stopped: asyncio.Event | None = None

    def _subscriptions(self) -> list[WatchSubscription]:
        c = self.config
        return [
            WatchSubscription(
                "styles",
                (WatchPattern(c.styles_src, "*.scss"),),
                self._rebuild_styles,
                self.delays["styles"],
            ),
            WatchSubscription(
                "markup",
                (
                    WatchPattern(c.src_dir, c.files.html.index, recursive=False),
                    WatchPattern(c.html_src, "*.html", recursive=False),
                    WatchPattern(c.src_dir / "templates", "*.html"),
                ),
                self._rebuild_markup,
                self.delays["markup"],
            ),
            WatchSubscription(
                "assets",
                (
                    WatchPattern(c.public_src / "fonts"),
                    WatchPattern(c.public_src / "img"),
                    WatchPattern(c.public_src, c.files.favicon, recursive=False),
                    WatchPattern(c.scripts_src),
                ),
                self._rebuild_assets,
                self.delays["assets"],
                ignore=(c.styles_src,),
            ),
        ]

    def watch_roots(self) -> list[Path]:
        """Existing directories to observe, nested ones folded away."""
        c = self.config
        candidates = [c.src_dir, c.styles_src, c.html_src, c.scripts_src, c.public_src]
        roots: list[Path] = []
        for path in sorted(set(candidates), key=lambda p: (len(p.parts), str(p))):
            if not path.is_dir():
                continue
            if any(path == r or r in path.parents for r in roots):
                continue
            roots.append(path)
        return roots

    # ── Event handling (loop thread) ────────────────────────────

    def dispatch(self, path: Path) -> list[str]:
        """Route one changed path to every matching subscription.

        Returns the names of the subscriptions that were (re)armed.
        """
        path = Path(path).resolve()
        hit = []
        for sub in self.subscriptions:
            if sub.matches(path):
                self._arm(sub)
                hit.append(sub.name)
        if hit:
            logger.debug("Change %s → %s", path, ", ".join(hit))
        return hit

    def _arm(self, sub: WatchSubscription) -> None:
        if sub.timer is not None:
            sub.timer.cancel()
        loop = self._loop or asyncio.get_running_loop()
        sub.timer = loop.call_later(sub.delay, self._fire, sub)

    def _fire(self, sub: WatchSubscription) -> None:
        sub.timer = None
        if sub.busy:
            sub.rerun = True
            return
        loop = self._loop or asyncio.get_running_loop()
        sub.task = loop.create_task(self._run(sub))

    async def _run(self, sub: WatchSubscription) -> None:
        while True:
            sub.rerun = False
            logger.info("Rebuilding %s", sub.name)
            try:
                await sub.action()
            except Exception as e:
                logger.error("Rebuild of %s failed: %s", sub.name, e)
                self.bus.publish(BUILD_ERROR, key=sub.name, data={"error": str(e)})
            else:
                logger.info(
                    "Rebuilt %s, notified %d browser(s)", sub.name, self.bus.subscriber_count,
                )
            sub.runs += 1
            if not sub.rerun:
                break

    async def idle(self) -> None:
        """Wait until no timer is pending and no rebuild is running."""
        while any(s.timer is not None or s.busy for s in self.subscriptions):
            tasks = [s.task for s in self.subscriptions if s.busy]
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            else:
                await asyncio.sleep(0.05)

    # ── Rebuild actions ─────────────────────────────────────────

    async def _rebuild_styles(self) -> None:
        await self.builder.run_styles()
        if self.config.style_output.exists():
            self.bus.reload_css(self.config.files.scss.output)
        else:
            self.bus.reload_page("styles")

    async def _rebuild_markup(self) -> None:
        await self.builder.run_markup(PathMode.DEVELOPMENT)
        self.bus.reload_page("markup")

    async def _rebuild_assets(self) -> None:
        await self.builder.run_assets()
        self.bus.reload_page("assets")

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start the observer thread. Must be called with a loop available."""
        self._loop = loop or asyncio.get_running_loop()
        self._stopped = asyncio.Event()
        handler = _EventForwarder(self, self._loop)
        observer = Observer()
        roots = self.watch_roots()
        for root in roots:
            observer.schedule(handler, str(root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("Watching %s", ", ".join(str(r) for r in roots) or "(nothing)")

    async def run(self) -> None:
        """Watch until :meth:`stop` is called or the task is cancelled."""
        if self._observer is None:
            self.start()
        try:
            await self._stopped.wait()
        finally:
            self.stop()

    def stop(self) -> None:
        for sub in self.subscriptions:
            if sub.timer is not None:
                sub.timer.cancel()
                sub.timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("Watcher stopped")
        if self._stopped is not None:
            self._stopped.set()
