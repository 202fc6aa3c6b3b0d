"""Smoke tests for the Textual front end."""

import asyncio
from pathlib import Path

import pytest

from app import HelpScreen, MapitoutApp, tier_style, TIER_STYLES
from interaction import Mode
import snapshot_io


@pytest.fixture
def in_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MAPITOUT_LAYOUT", raising=False)
    return tmp_path


def test_keyboard_builds_tree(in_tmp: Path) -> None:
    async def scenario() -> MapitoutApp:
        app = MapitoutApp()
        async with app.run_test() as pilot:
            app.controller.select(app.controller.store.root_id)
            await pilot.press("tab")
            await pilot.press("enter")
            await pilot.press("f2")
            assert app.controller.mode is Mode.EDITING
            await pilot.press("x")
            await pilot.press("enter")
            await pilot.pause()
        return app

    app = asyncio.run(scenario())
    store = app.controller.store
    root = store.get(store.root_id)
    assert len(root.children) == 2
    assert store.get(root.children[1]).text == "x"
    assert app.controller.mode is Mode.NAVIGATING


def test_save_and_export_actions(in_tmp: Path) -> None:
    async def scenario() -> MapitoutApp:
        app = MapitoutApp(export_dir=in_tmp)
        async with app.run_test() as pilot:
            app.controller.select(app.controller.store.root_id)
            await pilot.press("tab")
            await pilot.press("ctrl+s")
            await pilot.press("ctrl+e")
            await pilot.pause()
        return app

    app = asyncio.run(scenario())
    saved, layout_mode = snapshot_io.load(in_tmp / "mapitout.json")
    assert len(saved) == 2
    assert layout_mode == "center"
    assert (in_tmp / "mapitout.png").exists()
    assert "Exported" in app.sub_title


def test_opens_snapshot_from_path(in_tmp: Path, deep_store) -> None:
    path = snapshot_io.save(in_tmp / "deep.json", deep_store, "top")

    async def scenario() -> MapitoutApp:
        app = MapitoutApp(path)
        async with app.run_test() as pilot:
            await pilot.pause()
        return app

    app = asyncio.run(scenario())
    assert len(app.controller.store) == 6
    assert app.controller.layout_mode == "top"
    assert set(app.controller.positions) == set(deep_store.nodes)
    assert "Loaded" in app.sub_title


def test_missing_snapshot_keeps_fresh_tree(in_tmp: Path) -> None:
    async def scenario() -> MapitoutApp:
        app = MapitoutApp(in_tmp / "absent.json")
        async with app.run_test() as pilot:
            await pilot.pause()
        return app

    app = asyncio.run(scenario())
    assert len(app.controller.store) == 1
    assert "not found" in app.sub_title


def test_tier_style_caps_at_last_colour() -> None:
    assert tier_style(0) == TIER_STYLES[0]
    assert tier_style(99) == TIER_STYLES[-1]


def test_help_screen_toggles_and_blocks_map_keys(in_tmp: Path) -> None:
    async def scenario() -> tuple[MapitoutApp, bool, bool]:
        app = MapitoutApp()
        async with app.run_test() as pilot:
            await pilot.press("question_mark")
            await pilot.pause()
            opened = isinstance(app.screen, HelpScreen)
            await pilot.press("tab")
            await pilot.press("escape")
            await pilot.pause()
            closed = not isinstance(app.screen, HelpScreen)
        return app, opened, closed

    app, opened, closed = asyncio.run(scenario())
    assert opened
    assert closed
    assert len(app.controller.store) == 1
