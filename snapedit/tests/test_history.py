"""Tests for the linear undo/redo stack."""

import random

import pytest

from snapedit.history import HistoryStack, history_add, history_redo, history_undo
from snapedit.models import ImageBuffer, ImageFormat


def _img(n):
    return ImageBuffer(n, 1, ImageFormat.PNG, bytes([n % 256]))


def test_empty_stack():
    stack = HistoryStack()
    assert stack.pointer == -1
    assert stack.current() is None
    assert stack.is_empty()
    stack.undo()
    stack.redo()
    assert stack.pointer == -1


def test_add_undo_redo():
    stack = HistoryStack()
    for n in (1, 2, 3):
        stack.add_edit(_img(n))
    assert stack.pointer == 2
    assert stack.undo().width == 2
    assert stack.undo().width == 1
    # Undo at the first entry is a no-op
    assert stack.undo().width == 1
    assert stack.redo().width == 2
    assert stack.redo().width == 3
    assert stack.redo().width == 3


def test_new_edit_truncates_redo_tail():
    stack = HistoryStack()
    for n in (1, 2, 3):
        stack.add_edit(_img(n))
    stack.undo()
    stack.undo()
    stack.add_edit(_img(9))
    assert len(stack) == 2
    assert stack.pointer == 1
    assert [e.snapshot.width for e in stack.entries] == [1, 9]
    assert not stack.can_redo()


def test_labels():
    stack = HistoryStack()
    stack.add_edit(_img(1), "Open")
    stack.add_edit(_img(2), "Crop")
    assert stack.undo_label() == "Crop"
    assert stack.redo_label() is None
    stack.undo()
    assert stack.undo_label() is None
    assert stack.redo_label() == "Crop"
    assert stack.current_entry().label == "Open"


def test_reset():
    stack = HistoryStack()
    stack.add_edit(_img(1))
    stack.reset()
    assert stack.pointer == -1
    assert stack.entries == []


def test_functional_surface_returns_stack():
    stack = HistoryStack()
    assert history_add(stack, _img(1)) is stack
    history_add(stack, _img(2))
    assert history_undo(stack).pointer == 0
    assert history_redo(stack).pointer == 1


@pytest.mark.parametrize("seed", range(5))
def test_random_sequences_stay_linear(seed):
    """After any add, nothing survives past the pointer."""
    rng = random.Random(seed)
    stack = HistoryStack()
    for step in range(200):
        action = rng.choice(["add", "undo", "redo"])
        if action == "add":
            stack.add_edit(_img(step + 1))
            assert len(stack) == stack.pointer + 1
        elif action == "undo":
            stack.undo()
        else:
            stack.redo()
        if len(stack):
            assert 0 <= stack.pointer < len(stack)
        else:
            assert stack.pointer == -1
