"""Tests for the process-lifetime application context."""

import pytest

from snapedit.app_context import AppContext
from snapedit.engine import TransformEngine


@pytest.fixture
def context():
    ctx = AppContext.start(engine=TransformEngine(max_workers=1))
    yield ctx
    AppContext.shutdown()


def test_start_returns_single_instance(context):
    assert AppContext.start() is context
    assert AppContext.current() is context


def test_current_before_start_fails():
    AppContext.shutdown()
    with pytest.raises(RuntimeError):
        AppContext.current()


def test_registering_twice_reuses_the_handle(context):
    calls = []
    first = context.register_drop_handler(lambda paths: calls.append(("first", paths)))
    second = context.register_drop_handler(lambda paths: calls.append(("second", paths)))
    assert first is second
    context.dispatch_drop(["a.png"])
    assert [name for name, _ in calls] == ["second"]


def test_dispatch_filters_unsupported_paths(context):
    received = []
    context.register_drop_handler(received.append)
    accepted = context.dispatch_drop(["a.png", "notes.txt", "b.JPG"])
    assert [p.name for p in accepted] == ["a.png", "b.JPG"]
    assert [p.name for p in received[0]] == ["a.png", "b.JPG"]
    received.clear()
    context.dispatch_drop(["notes.txt"])
    assert received == []


def test_shutdown_closes_registration_and_engine():
    ctx = AppContext.start(engine=TransformEngine(max_workers=1))
    registration = ctx.register_drop_handler(lambda paths: None)
    AppContext.shutdown()
    assert not registration.active
    assert registration.callback is None
    with pytest.raises(RuntimeError):
        ctx.engine.run_in_pool(print)
    AppContext.shutdown()
