import asyncio

import pytest

from app.core.lifecycle import ViewScope
from app.models.media import MovieSummary
from app.services.hero import HERO_WINDOW_SIZE, HeroRotator


def _items(count):
    return [MovieSummary(id=i, title=f"M{i}") for i in range(count)]


@pytest.mark.parametrize("ticks", [0, 1, 4, 5, 13])
def test_cursor_after_ticks_wraps(ticks):
    rotator = HeroRotator(_items(5), ViewScope())

    for _ in range(ticks):
        rotator.tick()

    assert rotator.cursor == ticks % 5


def test_manual_selection_then_tick():
    rotator = HeroRotator(_items(4), ViewScope())
    rotator.tick()

    rotator.select(3)
    assert rotator.current.id == 3

    rotator.tick()
    assert rotator.cursor == 0


def test_select_out_of_window():
    rotator = HeroRotator(_items(3), ViewScope())

    with pytest.raises(IndexError):
        rotator.select(3)


def test_window_capped():
    rotator = HeroRotator(_items(25), ViewScope())

    assert len(rotator.items) == HERO_WINDOW_SIZE


@pytest.mark.asyncio
async def test_empty_window_never_starts():
    rotator = HeroRotator([], ViewScope())

    rotator.start()
    rotator.tick()

    assert rotator.running is False
    assert rotator.current is None
    assert rotator.cursor == 0


@pytest.mark.asyncio
async def test_timer_advances_and_stops():
    rotator = HeroRotator(_items(3), ViewScope(), interval=0.01)

    rotator.start()
    await asyncio.sleep(0.05)
    await rotator.stop()
    cursor = rotator.cursor
    await asyncio.sleep(0.03)

    assert rotator.running is False
    assert rotator.cursor == cursor


@pytest.mark.asyncio
async def test_closing_scope_tears_down_timer():
    scope = ViewScope("landing")
    rotator = HeroRotator(_items(3), scope, interval=0.01)
    rotator.start()
    assert rotator.running is True

    await scope.close()

    assert rotator.running is False
    rotator.start()
    assert rotator.running is False


@pytest.mark.asyncio
async def test_manual_selection_does_not_restart_timer():
    rotator = HeroRotator(_items(3), ViewScope(), interval=10)
    rotator.start()
    task = rotator._task

    rotator.select(2)

    assert rotator._task is task
    await rotator.stop()
