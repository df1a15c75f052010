import pytest

from bench import percentile, random_photos, run_local
from justified_layout import LayoutOptions


def test_random_photos_are_reproducible():
    assert random_photos(20, seed=4) == random_photos(20, seed=4)
    assert [p['id'] for p in random_photos(3, seed=1)] == ['p0', 'p1', 'p2']


def test_percentile():
    values = [1.0, 2.0, 3.0, 4.0, 5.0]
    assert percentile([], 90) == 0.0
    assert percentile(values, 50) == 3.0
    assert percentile(values, 100) == 5.0
    assert percentile(values, 90) == pytest.approx(4.6)


def test_run_local_reports_each_size():
    results = run_local([10, 50], 1000, LayoutOptions(), repeat=1, seed=2)

    assert [r.photo_count for r in results] == [10, 50]
    assert all(r.rows >= 1 for r in results)
    assert all(r.best_s >= 0 for r in results)
