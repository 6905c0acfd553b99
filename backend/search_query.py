from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from geo_lookup import PrecisionClass


ALL_CATEGORIES = "all"


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    segment_id: str


# Ticketmaster segment ids. "all" maps to no segment filter.
CATEGORIES: tuple[Category, ...] = (
    Category(value="all", label="All", segment_id=""),
    Category(value="music", label="Music", segment_id="KZFzniwnSyZfZ7v7nJ"),
    Category(value="sports", label="Sports", segment_id="KZFzniwnSyZfZ7v7nE"),
    Category(value="arts", label="Arts & Theatre", segment_id="KZFzniwnSyZfZ7v7na"),
    Category(value="film", label="Film", segment_id="KZFzniwnSyZfZ7v7nn"),
    Category(value="misc", label="Miscellaneous", segment_id="KZFzniwnSyZfZ7v7n1"),
)
CATEGORY_SEGMENTS: dict[str, str] = {c.value: c.segment_id for c in CATEGORIES}

# Minimum radius (miles) for coarse geocoding matches. A state or country centroid is often
# far from where the events actually are.
RADIUS_FLOORS: dict[PrecisionClass, float] = {
    PrecisionClass.STATE: 200,
    PrecisionClass.COUNTRY: 800,
    PrecisionClass.COUNTY: 100,
}


class SearchFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str = ""
    category_id: str = ""
    radius: float = Field(default=10, gt=0)
    unit: Literal["miles", "km"] = "miles"
    origin_point: Optional[str] = None


def effective_radius(radius: float, precision: Optional[PrecisionClass]) -> float:
    """
    Widen `radius` to the floor for `precision`.
    `precision` is None for auto-detected (IP) origins, which keep the user's radius as-is.
    """
    if precision is None:
        return radius
    return max(radius, RADIUS_FLOORS.get(precision, radius))


def _is_set(value: Any, sentinel: Optional[str] = None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() not in ("", sentinel)
    return True


def _format_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def upstream_search_params(
    *,
    keyword: Optional[str] = None,
    segment_id: Optional[str] = None,
    radius: Any = None,
    unit: Optional[str] = None,
    geo_point: Optional[str] = None,
) -> dict[str, str]:
    """
    Keep only the parameters that carry a value, in a fixed order.
    Empty strings count as unset, and so does the "all" category.
    """
    candidates = (
        ("keyword", keyword, None),
        ("segmentId", segment_id, ALL_CATEGORIES),
        ("radius", radius, None),
        ("unit", unit, None),
        ("geoPoint", geo_point, None),
    )
    return {name: _format_number(value) for name, value, sentinel in candidates if _is_set(value, sentinel)}


def build_search_params(
    search_filter: SearchFilter,
    categories: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    table = CATEGORY_SEGMENTS if categories is None else categories
    category = search_filter.category_id
    segment_id = table.get(category, category)
    return upstream_search_params(
        keyword=search_filter.keyword,
        segment_id=segment_id,
        radius=search_filter.radius,
        unit=search_filter.unit,
        geo_point=search_filter.origin_point,
    )
