"""Tests for the play queue: ordering, wrap-around and shuffle."""

import random

import pytest

from tune_locker.domain.playback.queue import BACKWARD, FORWARD, NO_POSITION, PlayQueue


@pytest.fixture
def queue() -> PlayQueue:
    q = PlayQueue(rng=random.Random(42))
    q.set_queue(["a", "b", "c", "d"], "b")
    return q


def test_new_queue_has_no_position():
    q = PlayQueue()
    assert q.position == NO_POSITION
    assert q.current_id() is None
    assert len(q) == 0


def test_set_queue_starts_at_start_id(queue):
    assert queue.position == 1
    assert queue.current_id() == "b"


def test_set_queue_unknown_start_falls_back_to_zero():
    q = PlayQueue()
    q.set_queue(["a", "b"], "zzz")
    assert q.position == 0
    assert q.current_id() == "a"


def test_set_queue_uses_first_occurrence_of_duplicate():
    q = PlayQueue()
    q.set_queue(["a", "b", "a"], "a")
    assert q.position == 0


def test_set_queue_empty_leaves_no_position():
    q = PlayQueue()
    q.set_queue([], "a")
    assert q.position == NO_POSITION


def test_set_queue_copies_input():
    ids = ["a", "b"]
    q = PlayQueue()
    q.set_queue(ids, "a")
    ids.append("c")
    assert q.ids == ["a", "b"]


def test_forward_wraps_to_start(queue):
    assert queue.advance(FORWARD) == "c"
    assert queue.advance(FORWARD) == "d"
    assert queue.advance(FORWARD) == "a"
    assert queue.position == 0


def test_backward_wraps_to_end():
    q = PlayQueue()
    q.set_queue(["a", "b", "c"], "a")
    assert q.advance(BACKWARD) == "c"
    assert q.advance(BACKWARD) == "b"


@pytest.mark.parametrize("start", ["a", "b", "c", "d", "e"])
def test_forward_length_times_returns_to_start(start):
    ids = ["a", "b", "c", "d", "e"]
    q = PlayQueue()
    q.set_queue(ids, start)
    original = q.position
    for _ in range(len(ids)):
        q.advance(FORWARD)
    assert q.position == original


def test_shuffle_positions_stay_in_range(queue):
    seen = set()
    for _ in range(200):
        track_id = queue.advance(FORWARD, shuffled=True)
        assert 0 <= queue.position < len(queue)
        assert queue.current_id() == track_id
        seen.add(queue.position)
    # Every slot is reachable, including repeats of the previous one
    assert seen == {0, 1, 2, 3}


def test_shuffle_ignores_direction():
    forward = PlayQueue(rng=random.Random(7))
    backward = PlayQueue(rng=random.Random(7))
    for q in (forward, backward):
        q.set_queue(["a", "b", "c", "d", "e"], "a")

    forward_ids = [forward.advance(FORWARD, shuffled=True) for _ in range(10)]
    backward_ids = [backward.advance(BACKWARD, shuffled=True) for _ in range(10)]
    assert forward_ids == backward_ids


def test_advance_empty_queue_is_noop():
    q = PlayQueue()
    assert q.advance(FORWARD) is None
    assert q.advance(BACKWARD, shuffled=True) is None
    assert q.position == NO_POSITION


def test_load_without_start_begins_at_first_on_forward():
    q = PlayQueue()
    q.load(["x", "y"])
    assert q.position == NO_POSITION
    assert q.advance(FORWARD) == "x"


def test_load_without_start_backward_goes_to_end():
    q = PlayQueue()
    q.load(["x", "y", "z"])
    assert q.advance(BACKWARD) == "z"


def test_jump_to(queue):
    assert queue.jump_to(3) == "d"
    assert queue.position == 3
    with pytest.raises(IndexError):
        queue.jump_to(4)
    with pytest.raises(IndexError):
        queue.jump_to(-1)


def test_invalid_direction_rejected(queue):
    with pytest.raises(ValueError):
        queue.advance("sideways")
