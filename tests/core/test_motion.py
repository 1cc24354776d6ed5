import numpy as np
import pytest

from pixelaudit.core.analytics.motion import compare_points, is_motion


def _points(n, offset=0):
    return [(i + offset, i % 7) for i in range(n)]


def test_empty_previous_marks_everything_moved():
    current = _points(500)
    cmp = compare_points([], current, comparison_points=1000, rng=np.random.default_rng(0))
    assert cmp.low_confidence is True
    assert cmp.sample_size == 500
    assert len(cmp.moved_points) == 500
    assert cmp.stable_points == []
    assert cmp.changed_percentage == 100.0


def test_empty_current_is_zero_result():
    cmp = compare_points(_points(10), [], comparison_points=100)
    assert cmp.sample_size == 0
    assert cmp.changed_percentage == 0.0
    assert cmp.low_confidence is False
    assert is_motion(cmp.changed_percentage, 0.1) is False


def test_identical_sets_are_stable():
    pts = _points(200)
    cmp = compare_points(pts, pts, comparison_points=100, rng=np.random.default_rng(1))
    assert cmp.sample_size == 100
    assert cmp.changed_percentage == 0.0
    assert cmp.low_confidence is False


def test_one_pixel_shift_counts_as_moved():
    prev = [(10, 10)]
    cmp = compare_points(prev, [(11, 10)], comparison_points=50, rng=np.random.default_rng(2))
    assert cmp.moved_points == [(11, 10)]
    assert cmp.changed_percentage == 100.0


def test_sample_is_without_replacement_and_bounded():
    prev = _points(300)
    current = _points(150) + _points(300, offset=1000)
    for seed in range(5):
        cmp = compare_points(prev, current, comparison_points=200, rng=np.random.default_rng(seed))
        sampled = cmp.stable_points + cmp.moved_points
        assert len(sampled) == 200
        assert len(set(sampled)) == 200
        assert set(sampled) <= set(current)
        assert 0.0 <= cmp.changed_percentage <= 100.0
        assert cmp.low_confidence is False


def test_low_confidence_only_when_fewer_points_than_requested():
    assert compare_points([], _points(50), 50).low_confidence is False
    assert compare_points([], _points(49), 50).low_confidence is True


def test_seeded_generators_reproduce():
    prev = _points(100)
    current = _points(60) + _points(60, offset=500)
    a = compare_points(prev, current, 50, rng=np.random.default_rng(42))
    b = compare_points(prev, current, 50, rng=np.random.default_rng(42))
    assert a.stable_points == b.stable_points
    assert a.moved_points == b.moved_points


@pytest.mark.parametrize(
    "pct,tol,expected",
    [(10.0, 0.1, True), (9.99, 0.1, False), (0.0, 0.0, True), (100.0, 1.0, True)],
)
def test_is_motion_threshold_inclusive(pct, tol, expected):
    assert is_motion(pct, tol) is expected
