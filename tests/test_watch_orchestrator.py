"""
Tests for the watch orchestrator — pattern routing, debounce, single
follow-up rebuilds and reload signals.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileClosedNoWriteEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
)

from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.event_bus import BUILD_ERROR, RELOAD_CSS, RELOAD_PAGE, EventBus
from sitepipe.core.services.watch_orchestrator import (
    WatchOrchestrator,
    WatchPattern,
    WatchSubscription,
    _EventForwarder,
)

FAST = {"styles": 0.05, "markup": 0.05, "assets": 0.05}


class FakeBuilder:
    """Counts single-stage runs; optionally slow or failing."""

    def __init__(self, config: BuildConfig) -> None:
        self.config = config
        self.runs = {"styles": 0, "markup": 0, "assets": 0}
        self.delay = 0.0
        self.fail_assets = False
        self.write_css = True
        self.read_sources = False

    async def run_styles(self):
        self.runs["styles"] += 1
        if self.write_css:
            self.config.style_output.parent.mkdir(parents=True, exist_ok=True)
            self.config.style_output.write_text("body{}")

    async def run_markup(self, mode=None):
        self.runs["markup"] += 1
        if self.read_sources:
            self.config.index_source.read_text()
            for page in self.config.html_src.glob("*.html"):
                page.read_text()
            for template in (self.config.src_dir / "templates").rglob("*.html"):
                template.read_text()
        await asyncio.sleep(self.delay)

    async def run_assets(self):
        self.runs["assets"] += 1
        if self.fail_assets:
            raise RuntimeError("disk full")


@pytest.fixture
def builder(config: BuildConfig) -> FakeBuilder:
    return FakeBuilder(config)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def watcher(config: BuildConfig, builder: FakeBuilder, bus: EventBus) -> WatchOrchestrator:
    return WatchOrchestrator(config, builder, bus, delays=FAST)


class TestPatterns:
    def test_recursive_spans_directories(self, tmp_path: Path):
        pattern = WatchPattern(tmp_path / "styles", "*.scss")
        assert pattern.matches(tmp_path / "styles" / "x.scss")
        assert pattern.matches(tmp_path / "styles" / "deep" / "er" / "x.scss")
        assert not pattern.matches(tmp_path / "styles" / "x.css")
        assert not pattern.matches(tmp_path / "x.scss")

    def test_direct_children_only(self, tmp_path: Path):
        pattern = WatchPattern(tmp_path / "pages", "*.html", recursive=False)
        assert pattern.matches(tmp_path / "pages" / "about.html")
        assert not pattern.matches(tmp_path / "pages" / "sub" / "about.html")

    def test_exact_name(self, tmp_path: Path):
        pattern = WatchPattern(tmp_path, "favicon.svg", recursive=False)
        assert pattern.matches(tmp_path / "favicon.svg")
        assert not pattern.matches(tmp_path / "favicon.svg.bak")

    def test_ignore_wins(self, tmp_path: Path):
        async def noop():
            pass

        sub = WatchSubscription(
            "s", (WatchPattern(tmp_path),), noop, 0.1, ignore=(tmp_path / "styles",),
        )
        assert sub.matches(tmp_path / "js" / "app.js")
        assert not sub.matches(tmp_path / "styles" / "app.js")


class RecordingLoop:
    def __init__(self) -> None:
        self.calls = []

    def call_soon_threadsafe(self, callback, *args):
        self.calls.append(args)


class TestEventForwarding:
    def test_access_events_dropped(self, config: BuildConfig, watcher: WatchOrchestrator):
        loop = RecordingLoop()
        forwarder = _EventForwarder(watcher, loop)
        path = str(config.index_source)

        forwarder.dispatch(FileOpenedEvent(path))
        forwarder.dispatch(FileClosedNoWriteEvent(path))
        forwarder.dispatch(FileClosedEvent(path))
        forwarder.dispatch(DirModifiedEvent(str(config.src_dir)))
        assert loop.calls == []

    def test_content_events_forwarded(self, config: BuildConfig, watcher: WatchOrchestrator):
        loop = RecordingLoop()
        forwarder = _EventForwarder(watcher, loop)
        index = str(config.index_source)
        moved_to = str(config.html_src / "moved.html")

        forwarder.dispatch(FileModifiedEvent(index))
        forwarder.dispatch(FileMovedEvent(index, moved_to))
        assert loop.calls == [
            (Path(index),),
            (Path(index),),
            (Path(moved_to),),
        ]


class TestRouting:
    def test_paths_route_to_subscriptions(self, config: BuildConfig, watcher: WatchOrchestrator):
        async def scenario():
            routes = {
                "style": watcher.dispatch(config.styles_src / "components" / "_button.scss"),
                "index": watcher.dispatch(config.index_source),
                "page": watcher.dispatch(config.html_src / "about.html"),
                "template": watcher.dispatch(config.src_dir / "templates" / "nav" / "_menu.html"),
                "image": watcher.dispatch(config.public_src / "img" / "ui" / "a.png"),
                "favicon": watcher.dispatch(config.public_src / "favicon.svg"),
                "script": watcher.dispatch(config.scripts_src / "app.js"),
                "nested_page": watcher.dispatch(config.html_src / "drafts" / "x.html"),
                "other": watcher.dispatch(config.root / "README.md"),
            }
            watcher.stop()
            return routes

        routes = asyncio.run(scenario())
        assert routes["style"] == ["styles"]
        assert routes["index"] == ["markup"]
        assert routes["page"] == ["markup"]
        assert routes["template"] == ["markup"]
        assert routes["image"] == ["assets"]
        assert routes["favicon"] == ["assets"]
        assert routes["script"] == ["assets"]
        assert routes["nested_page"] == []
        assert routes["other"] == []

    def test_watch_roots_fold_nested(self, config: BuildConfig, watcher: WatchOrchestrator):
        assert sorted(watcher.watch_roots()) == sorted([config.src_dir, config.public_src])


class TestDebounce:
    def test_burst_triggers_one_rebuild(self, config, watcher, builder):
        async def scenario():
            for _ in range(5):
                watcher.dispatch(config.styles_src / "styles.scss")
                await asyncio.sleep(0.005)
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        assert builder.runs["styles"] == 1

    def test_separate_bursts_rebuild_separately(self, config, watcher, builder):
        async def scenario():
            watcher.dispatch(config.index_source)
            await asyncio.sleep(0.1)
            await watcher.idle()
            watcher.dispatch(config.index_source)
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        assert builder.runs["markup"] == 2

    def test_subscriptions_are_independent(self, config, watcher, builder):
        async def scenario():
            watcher.dispatch(config.styles_src / "styles.scss")
            watcher.dispatch(config.index_source)
            watcher.dispatch(config.public_src / "img" / "a.png")
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        assert builder.runs == {"styles": 1, "markup": 1, "assets": 1}

    def test_single_follow_up_while_in_flight(self, config, watcher, builder):
        builder.delay = 0.3

        async def scenario():
            watcher.dispatch(config.index_source)
            await asyncio.sleep(0.1)        # first rebuild running
            watcher.dispatch(config.index_source)
            await asyncio.sleep(0.05)
            watcher.dispatch(config.index_source)
            await asyncio.sleep(0.05)
            await watcher.idle()

        asyncio.run(scenario())
        assert builder.runs["markup"] == 2


class TestSignals:
    def test_css_reload_when_output_exists(self, config, watcher, bus):
        async def scenario():
            watcher.dispatch(config.styles_src / "styles.scss")
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        events = bus.recent()
        assert [e["type"] for e in events] == [RELOAD_CSS]
        assert events[0]["key"] == "styles.css"

    def test_page_reload_when_css_missing(self, config, watcher, builder, bus):
        builder.write_css = False

        async def scenario():
            watcher.dispatch(config.styles_src / "styles.scss")
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        assert [e["type"] for e in bus.recent()] == [RELOAD_PAGE]

    def test_failed_rebuild_keeps_watching(self, config, watcher, builder, bus):
        builder.fail_assets = True

        async def scenario():
            watcher.dispatch(config.scripts_src / "app.js")
            await asyncio.sleep(0.1)
            await watcher.idle()
            builder.fail_assets = False
            watcher.dispatch(config.scripts_src / "app.js")
            await asyncio.sleep(0.1)
            await watcher.idle()

        asyncio.run(scenario())
        assert builder.runs["assets"] == 2
        types = [e["type"] for e in bus.recent()]
        assert types == [BUILD_ERROR, RELOAD_PAGE]
        assert bus.recent()[0]["data"]["error"] == "disk full"


class TestLifecycle:
    def test_stop_cancels_pending_timers(self, config, watcher, builder):
        async def scenario():
            watcher.dispatch(config.index_source)
            watcher.stop()
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert builder.runs["markup"] == 0

    def test_run_until_stopped(self, config, watcher):
        async def scenario():
            task = asyncio.create_task(watcher.run())
            await asyncio.sleep(0.05)
            watcher.stop()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
        assert watcher._observer is None

    def test_one_edit_one_rebuild_with_real_observer(self, config, bus, builder):
        builder.read_sources = True
        watcher = WatchOrchestrator(config, builder, bus, delays={"markup": 0.2})

        async def scenario():
            watcher.start()
            try:
                await asyncio.sleep(0.3)
                config.index_source.write_text(config.index_source.read_text() + "\n")
                await asyncio.sleep(1.5)
                await watcher.idle()
            finally:
                watcher.stop()

        asyncio.run(scenario())
        assert builder.runs["markup"] == 1
        assert [e["type"] for e in bus.recent()] == [RELOAD_PAGE]
