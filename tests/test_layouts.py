import pytest

from conftest import make_photos, random_sizes
from justified_layout import (
    GAP,
    MAX_ROW_HEIGHT,
    LayoutOptions,
    PhotoInput,
    analyze_layout,
    compute_justified_layout,
)


def _flatten(rows):
    return [item.photo_id for row in rows for item in row.items]


def _assert_fills_width(rows, container_width, gap=GAP):
    for row in rows:
        filled = sum(item.display_width for item in row.items) + (row.item_count - 1) * gap
        assert filled == pytest.approx(container_width, abs=0.01)


def test_empty_photos_returns_no_rows():
    assert compute_justified_layout([], 1000, {}) == []


@pytest.mark.parametrize("width", [0, -250])
def test_non_positive_width_returns_no_rows(six_landscape_photos, width):
    assert compute_justified_layout(six_landscape_photos, width, {}) == []


def test_six_landscape_photos_fit_one_row(six_landscape_photos):
    rows = compute_justified_layout(
        six_landscape_photos,
        1000,
        LayoutOptions(min_photos_per_row=2, max_photos_per_row=8, target_row_height=240),
    )

    assert len(rows) == 1
    row = rows[0]
    assert _flatten(rows) == [p.id for p in six_landscape_photos]
    # (1000 - 5 gaps) / (6 * 1.5)
    assert row.height == pytest.approx(980 / 9)
    for item in row.items:
        assert item.aspect_ratio == pytest.approx(1.5)
        assert item.display_width == pytest.approx(980 / 6)
        assert item.display_height == row.height
    _assert_fills_width(rows, 1000)


def test_uniform_squares_split_into_equal_rows():
    rows = compute_justified_layout(make_photos([(1000, 1000)] * 8), 1000)

    assert [row.item_count for row in rows] == [4, 4]
    for row in rows:
        assert row.height == pytest.approx(247)


def test_single_photo_is_capped():
    rows = compute_justified_layout(make_photos([(600, 400)]), 1000)

    assert len(rows) == 1
    assert rows[0].height == MAX_ROW_HEIGHT
    assert rows[0].items[0].display_width == pytest.approx(1000)


def test_fewer_photos_than_minimum_make_one_row():
    photos = make_photos([(600, 400)] * 3)
    rows = compute_justified_layout(photos, 1000, {"min_photos_per_row": 4})

    assert len(rows) == 1
    assert rows[0].item_count == 3
    assert rows[0].height == pytest.approx(992 / 4.5)
    _assert_fills_width(rows, 1000)


@pytest.mark.parametrize("width,height", [(0, 400), (600, 0), (None, 400), (600, None), (-600, 400), (600, -1), ("wide", 400)])
def test_invalid_dimensions_fall_back_to_square(width, height):
    assert PhotoInput(id="x", width=width, height=height).aspect_ratio == 1.0


def test_mappings_are_accepted_as_photos():
    photos = [{"id": f"m{i}", "url": f"/m{i}.jpg", "width": 800, "height": 600} for i in range(5)]
    rows = compute_justified_layout(photos, 900)

    assert _flatten(rows) == [p["id"] for p in photos]
    assert rows[0].items[0].url == "/m0.jpg"


def test_camel_case_options_are_accepted():
    photos = make_photos(random_sizes(25, seed=3))
    rows = compute_justified_layout(photos, 800, {"minPhotosPerRow": 2, "maxPhotosPerRow": 3, "targetRowHeight": 200})

    assert all(row.item_count <= 3 for row in rows)
    assert _flatten(rows) == [p.id for p in photos]


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
@pytest.mark.parametrize("count", [2, 7, 23, 64, 150])
def test_layout_properties_hold_for_mixed_galleries(seed, count):
    options = LayoutOptions(min_photos_per_row=2, max_photos_per_row=8, target_row_height=240)
    # Narrow the range so extreme panoramas don't dominate
    sizes = [(400 + w % 1200, 400 + h % 1200) for w, h in random_sizes(count, seed)]
    photos = make_photos(sizes)

    rows = compute_justified_layout(photos, 1000, options)

    assert _flatten(rows) == [p.id for p in photos]
    for row in rows[:-1]:
        assert options.min_photos_per_row <= row.item_count <= options.max_photos_per_row
    assert 1 <= rows[-1].item_count <= options.max_photos_per_row
    for row in rows:
        assert 0 < row.height <= MAX_ROW_HEIGHT
        assert all(item.display_height == row.height for item in row.items)
    _assert_fills_width(rows, 1000)


def test_layout_is_deterministic():
    photos = make_photos(random_sizes(80, seed=11))
    options = LayoutOptions(min_photos_per_row=3, max_photos_per_row=6, target_row_height=200)

    first = compute_justified_layout(photos, 1280, options)
    second = compute_justified_layout(list(photos), 1280, options)

    assert first == second


def test_uniform_gallery_rows_change_size_smoothly():
    rows = compute_justified_layout(make_photos([(1200, 1200)] * 40), 1000)
    metrics = analyze_layout(rows, 1000)

    assert metrics["photo_count"] == 40
    assert metrics["smooth_transition_ratio"] >= 0.75


@pytest.mark.parametrize("options", [
    {"min_photos_per_row": 5, "max_photos_per_row": 3},
    {"min_photos_per_row": 0, "max_photos_per_row": 0},
    {"min_photos_per_row": -2, "max_photos_per_row": -4},
    {"min_photos_per_row": 9, "max_photos_per_row": 1},
])
def test_pathological_options_still_partition_everything(options):
    photos = make_photos(random_sizes(10, seed=7))
    rows = compute_justified_layout(photos, 1000, options)

    assert _flatten(rows) == [p.id for p in photos]
    assert all(row.item_count >= 1 for row in rows)


def test_shape_variety_keeps_a_complete_partition():
    photos = make_photos(random_sizes(40, seed=21))
    options = LayoutOptions(shape_variety=True)

    rows = compute_justified_layout(photos, 1000, options)

    assert _flatten(rows) == [p.id for p in photos]
    assert rows == compute_justified_layout(photos, 1000, options)
    _assert_fills_width(rows, 1000)


def test_custom_gap_and_height_cap():
    photos = make_photos([(400, 800)] * 3)
    options = LayoutOptions(min_photos_per_row=4, max_row_height=200, gap=10)

    rows = compute_justified_layout(photos, 900, options)

    assert rows[0].height == 200
    _assert_fills_width(rows, 900, gap=10)


def test_extreme_panorama_next_to_squares_still_lays_out():
    photos = make_photos([(1e17, 1)] + [(1000, 1000)] * 3)

    rows = compute_justified_layout(photos, 1000)

    assert _flatten(rows) == [p.id for p in photos]
    for row in rows:
        assert 0 < row.height <= MAX_ROW_HEIGHT
        assert all(item.display_width > 0 for item in row.items)


@pytest.mark.parametrize("container_width,options", [
    (8, {"min_photos_per_row": 3}),
    (150, {"gap": 100}),
    (20, {}),
])
def test_container_narrower_than_gaps_keeps_positive_sizes(container_width, options):
    photos = make_photos([(600, 400)] * 3)

    rows = compute_justified_layout(photos, container_width, options)

    assert _flatten(rows) == [p.id for p in photos]
    for row in rows:
        assert 0 < row.height <= MAX_ROW_HEIGHT
        assert all(item.display_width > 0 for item in row.items)
        assert all(item.display_height == row.height for item in row.items)
