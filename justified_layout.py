"""
Justified photo grid layout
Groups an ordered list of photos into rows that each span the container width,
choosing row breaks with a bounded dynamic-programming search.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from statistics import mean
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

GAP = 4  # spacing between photos, in px
DEFAULT_MIN_PHOTOS_PER_ROW = 2
DEFAULT_MAX_PHOTOS_PER_ROW = 8
DEFAULT_TARGET_ROW_HEIGHT = 240.0
MAX_ROW_HEIGHT = 350.0
DEFAULT_ASPECT_RATIO = 1.0
MIN_DISPLAY_SIZE = 1.0  # floor for row height and available row width, in px

# Row cost weights
FALLBACK_ROW_PENALTY = 2000.0
BALANCE_WEIGHT = 50.0
IDEAL_WEIGHT = 10.0
IDEAL_TOLERANCE = 1.5
SAME_SHAPE_PENALTY = 150.0
SAME_LENGTH_PENALTY = 20.0

# Shape buckets for row signatures
PORTRAIT_MAX_ASPECT = 0.85
LANDSCAPE_MIN_ASPECT = 1.15

_OPTION_ALIASES = {
    "minPhotosPerRow": "min_photos_per_row",
    "maxPhotosPerRow": "max_photos_per_row",
    "targetRowHeight": "target_row_height",
    "maxRowHeight": "max_row_height",
    "shapeVariety": "shape_variety",
}


def _aspect_ratio(width: Any, height: Any) -> float:
    try:
        w = float(width)
        h = float(height)
    except (TypeError, ValueError):
        return DEFAULT_ASPECT_RATIO
    if not (w > 0 and h > 0):
        return DEFAULT_ASPECT_RATIO
    ratio = w / h
    if not math.isfinite(ratio) or ratio <= 0:
        return DEFAULT_ASPECT_RATIO
    return ratio


@dataclass(frozen=True)
class PhotoInput:
    """A photo as supplied by the caller. width/height may be missing."""

    id: str
    url: str = ""
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def aspect_ratio(self) -> float:
        return _aspect_ratio(self.width, self.height)


@dataclass(frozen=True)
class LayoutOptions:
    min_photos_per_row: int = DEFAULT_MIN_PHOTOS_PER_ROW
    max_photos_per_row: int = DEFAULT_MAX_PHOTOS_PER_ROW
    target_row_height: float = DEFAULT_TARGET_ROW_HEIGHT
    max_row_height: float = MAX_ROW_HEIGHT
    gap: float = GAP
    shape_variety: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "LayoutOptions":
        """Build options from snake_case or camelCase keys; None means default."""
        kwargs = {}
        for key, value in values.items():
            name = _OPTION_ALIASES.get(key, key)
            if value is None or name not in cls.__dataclass_fields__:
                continue
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class LayoutItem:
    photo_id: str
    url: str
    aspect_ratio: float
    display_width: float
    display_height: float


@dataclass(frozen=True)
class Row:
    items: Tuple[LayoutItem, ...]
    height: float

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def width(self) -> float:
        """Sum of item widths, gaps excluded."""
        return sum(item.display_width for item in self.items)


@dataclass(frozen=True)
class Placement:
    photo_id: str
    row: int
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Breakpoint:
    name: str
    container_width: float
    options: LayoutOptions


DEFAULT_BREAKPOINTS: Tuple[Breakpoint, ...] = (
    Breakpoint("mobile", 400, LayoutOptions(min_photos_per_row=2, max_photos_per_row=3, target_row_height=180)),
    Breakpoint("tablet", 600, LayoutOptions(min_photos_per_row=2, max_photos_per_row=4, target_row_height=220)),
    Breakpoint("desktop", 960, LayoutOptions(min_photos_per_row=2, max_photos_per_row=5, target_row_height=280)),
)


@dataclass
class _Break:
    cost: float
    prev: int
    last_row_size: float
    signature: str = ""


PhotoLike = Union[PhotoInput, Mapping[str, Any]]
OptionsLike = Union[LayoutOptions, Mapping[str, Any], None]


def _coerce_photo(photo: PhotoLike) -> PhotoInput:
    if isinstance(photo, PhotoInput):
        return photo
    return PhotoInput(
        id=str(photo.get("id", "")),
        url=str(photo.get("url") or ""),
        width=photo.get("width"),
        height=photo.get("height"),
    )


def _resolve_options(options: OptionsLike) -> LayoutOptions:
    if options is None:
        return LayoutOptions()
    if isinstance(options, LayoutOptions):
        return options
    return LayoutOptions.from_mapping(options)


def _shape(aspect_ratio: float) -> str:
    if aspect_ratio < PORTRAIT_MAX_ASPECT:
        return "P"
    if aspect_ratio > LANDSCAPE_MIN_ASPECT:
        return "L"
    return "S"


def _height_penalty(row_height: float) -> float:
    if row_height < 100:
        return 500.0
    if row_height < 150:
        return 100.0
    if row_height > 400:
        return 200.0
    if row_height > 350:
        return 50.0
    return 0.0


def _balance_penalty(row_size: int, previous_size: float) -> float:
    size_diff = abs(row_size - previous_size)
    if size_diff <= 1:
        return 0.0
    return size_diff * size_diff * BALANCE_WEIGHT


def _ideal_penalty(row_size: int, ideal: float) -> float:
    ideal_diff = abs(row_size - ideal)
    if ideal_diff <= IDEAL_TOLERANCE:
        return 0.0
    return (ideal_diff - 1) * IDEAL_WEIGHT


def _variety_penalty(signature: str, previous_signature: str) -> float:
    if not previous_signature:
        return 0.0
    if signature == previous_signature:
        return SAME_SHAPE_PENALTY
    if len(signature) == len(previous_signature):
        return SAME_LENGTH_PENALTY
    return 0.0


def _estimate_ideal_row_size(photo_count: int, options: LayoutOptions) -> float:
    average = (options.min_photos_per_row + options.max_photos_per_row) / 2.0
    estimated_rows = 1
    if average > 0:
        # Half-up rounding; round() would round half to even
        estimated_rows = max(1, int(math.floor(photo_count / average + 0.5)))
    return photo_count / estimated_rows


def _find_row_breaks(ratios: Sequence[float], container_width: float, options: LayoutOptions) -> List[int]:
    """Return the end index of every row, in order."""
    n = len(ratios)
    min_size = max(1, options.min_photos_per_row)
    max_size = max(1, options.max_photos_per_row)
    ideal = _estimate_ideal_row_size(n, options)

    shapes = "".join(_shape(r) for r in ratios) if options.shape_variety else ""

    table = [_Break(cost=0.0, prev=-1, last_row_size=ideal)]
    for i in range(1, n + 1):
        best: Optional[_Break] = None
        lo = max(0, i - max_size)
        # Only the last row may hold fewer than min_size photos
        hi = i - 1 if i == n else i - min_size

        # Grow the row leftwards from i; a per-row sum never loses small
        # ratios next to a huge one the way a global prefix difference can
        row_ratio = sum(ratios[hi + 1:i]) if hi >= lo else 0.0
        for j in range(hi, lo - 1, -1):
            row_ratio += ratios[j]
            size = i - j
            row_height = (container_width - (size - 1) * options.gap) / row_ratio
            signature = shapes[j:i]
            row_cost = (
                abs(row_height - options.target_row_height)
                + _height_penalty(row_height)
                + _balance_penalty(size, table[j].last_row_size)
                + _ideal_penalty(size, ideal)
            )
            if options.shape_variety:
                row_cost += _variety_penalty(signature, table[j].signature)

            total = table[j].cost + row_cost
            # j walks downwards, so <= keeps the earliest break on ties
            if math.isfinite(total) and (best is None or total <= best.cost):
                best = _Break(cost=total, prev=j, last_row_size=size, signature=signature)

        if best is None:
            start = max(0, i - min_size)
            logger.debug(f"No feasible row ending at {i}; forcing row {start}:{i}")
            best = _Break(
                cost=table[start].cost + FALLBACK_ROW_PENALTY,
                prev=start,
                last_row_size=i - start,
                signature=shapes[start:i],
            )
        table.append(best)

    breaks: List[int] = []
    current = n
    while current > 0:
        breaks.append(current)
        current = table[current].prev
    breaks.reverse()
    return breaks


def _build_row(
    photos: Sequence[PhotoInput],
    ratios: Sequence[float],
    container_width: float,
    options: LayoutOptions,
) -> Row:
    total_ratio = sum(ratios)
    # Gaps wider than the container still leave every photo a sliver of width
    available_width = max(container_width - (len(photos) - 1) * options.gap, MIN_DISPLAY_SIZE * len(photos))
    row_height = max(min(available_width / total_ratio, options.max_row_height), MIN_DISPLAY_SIZE)
    items = tuple(
        LayoutItem(
            photo_id=photo.id,
            url=photo.url,
            aspect_ratio=ratio,
            display_width=(ratio / total_ratio) * available_width,
            display_height=row_height,
        )
        for photo, ratio in zip(photos, ratios)
    )
    return Row(items=items, height=row_height)


def compute_justified_layout(
    photos: Sequence[PhotoLike],
    container_width: float,
    options: OptionsLike = None,
) -> List[Row]:
    """Partition photos into justified rows.

    Every row fills container_width (minus the gaps between its items) and
    its height is capped at options.max_row_height. Row breaks minimise the
    sum of per-row costs: distance from the target height, penalties for
    very short or tall rows, for jumps in photo count between adjacent rows
    and for straying from the ideal photos-per-row estimate.

    Never raises: empty input or a non-positive width gives [], invalid
    photo dimensions fall back to a square aspect ratio.
    """
    opts = _resolve_options(options)
    if not photos or container_width is None or not container_width > 0:
        return []

    data = [_coerce_photo(p) for p in photos]
    ratios = [p.aspect_ratio for p in data]

    if len(data) < opts.min_photos_per_row:
        return [_build_row(data, ratios, container_width, opts)]

    rows: List[Row] = []
    start = 0
    for end in _find_row_breaks(ratios, container_width, opts):
        rows.append(_build_row(data[start:end], ratios[start:end], container_width, opts))
        start = end
    return rows


def place_rows(rows: Sequence[Row], gap: float = GAP) -> Tuple[List[Placement], float]:
    """Compute absolute placements and the total grid height.

    Rows stack from y=0 and items flow left to right, both separated by gap.
    """
    placements: List[Placement] = []
    y = 0.0
    for row_index, row in enumerate(rows):
        x = 0.0
        for item in row.items:
            placements.append(
                Placement(
                    photo_id=item.photo_id,
                    row=row_index,
                    x=x,
                    y=y,
                    width=item.display_width,
                    height=item.display_height,
                )
            )
            x += item.display_width + gap
        y += row.height + gap

    total = y - gap if rows else 0.0
    return placements, max(0.0, total)


def compute_responsive_layouts(
    photos: Sequence[PhotoLike],
    breakpoints: Sequence[Breakpoint] = DEFAULT_BREAKPOINTS,
) -> Dict[str, List[Row]]:
    """One layout per breakpoint, keyed by breakpoint name in breakpoint order."""
    return {
        bp.name: compute_justified_layout(photos, bp.container_width, bp.options)
        for bp in breakpoints
    }


def analyze_layout(rows: Sequence[Row], container_width: float, gap: float = GAP) -> Dict[str, Any]:
    """Summary metrics for a computed layout."""
    counts = [row.item_count for row in rows]
    heights = [row.height for row in rows]
    jumps = [abs(a - b) for a, b in zip(counts, counts[1:])]

    if container_width > 0 and rows:
        fills = [(row.width + (row.item_count - 1) * gap) / container_width for row in rows]
        width_fill = mean(fills)
    else:
        width_fill = 0.0

    return {
        "row_count": len(rows),
        "photo_count": sum(counts),
        "photos_per_row": counts,
        "min_photos_per_row": min(counts) if counts else 0,
        "max_photos_per_row": max(counts) if counts else 0,
        "row_heights": heights,
        "average_row_height": mean(heights) if heights else 0.0,
        "max_adjacent_difference": max(jumps) if jumps else 0,
        "smooth_transition_ratio": (sum(1 for j in jumps if j <= 1) / len(jumps)) if jumps else 1.0,
        "width_fill_ratio": width_fill,
    }
