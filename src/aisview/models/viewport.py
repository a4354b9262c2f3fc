"""Geographic viewport model."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import Field, ValidationError, model_validator

from aisview.exceptions import ViewportError
from aisview.models._base import AisBaseModel

Bounds = tuple[tuple[float, float], tuple[float, float]]


class Coordinate(AisBaseModel):
    """A ``(longitude, latitude)`` pair in degrees."""

    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)

    def as_pair(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class Viewport(AisBaseModel):
    """The geographic rectangle currently visible to the user.

    The two corners are kept in the order the map reported them, which is
    also the order sent to the server.  ``west`` must lie strictly west of
    ``east``: a region crossing the antimeridian cannot be expressed and is
    rejected.  The corners may be given top-first or bottom-first but must
    not share a latitude.

    Equality is exact over the four coordinates; no tolerance is applied.
    """

    west: Coordinate
    east: Coordinate

    @model_validator(mode="after")
    def _check_corners(self) -> Viewport:
        if not self.west.longitude < self.east.longitude:
            raise ValueError(
                f"west longitude {self.west.longitude} must be less than east longitude {self.east.longitude}"
            )
        if self.west.latitude == self.east.latitude:
            raise ValueError(f"degenerate viewport: both corners at latitude {self.west.latitude}")
        return self

    @classmethod
    def from_bounds(cls, bounds: Sequence[Sequence[float]] | Any) -> Viewport:
        """Build a viewport from ``[[lon, lat], [lon, lat]]``.

        Raises
        ------
        ViewportError
            When *bounds* is not two coordinate pairs or violates the
            viewport invariants.
        """
        if isinstance(bounds, Viewport):
            return bounds
        try:
            (lon1, lat1), (lon2, lat2) = bounds
        except (TypeError, ValueError) as exc:
            raise ViewportError(f"Bounds must be two [lon, lat] pairs, got {bounds!r}") from exc
        try:
            return cls(
                west={"longitude": lon1, "latitude": lat1},
                east={"longitude": lon2, "latitude": lat2},
            )
        except ValidationError as exc:
            messages = "; ".join(err["msg"] for err in exc.errors())
            raise ViewportError(f"Invalid viewport {bounds!r}: {messages}") from exc

    def as_bounds(self) -> Bounds:
        """Return the wire shape ``((lon, lat), (lon, lat))``."""
        return (self.west.as_pair(), self.east.as_pair())

    def same_region(self, other: object) -> bool:
        """Exact structural comparison with another viewport."""
        if not isinstance(other, Viewport):
            return False
        return self.as_bounds() == other.as_bounds()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Viewport):
            return NotImplemented
        return self.same_region(other)

    def __hash__(self) -> int:
        return hash(self.as_bounds())

    @property
    def south(self) -> float:
        return min(self.west.latitude, self.east.latitude)

    @property
    def north(self) -> float:
        return max(self.west.latitude, self.east.latitude)

    @property
    def southwest(self) -> Coordinate:
        return Coordinate(longitude=self.west.longitude, latitude=self.south)

    @property
    def northeast(self) -> Coordinate:
        return Coordinate(longitude=self.east.longitude, latitude=self.north)

    def contains(self, longitude: float, latitude: float) -> bool:
        """Whether the point lies inside the viewport (edges included)."""
        return self.west.longitude <= longitude <= self.east.longitude and self.south <= latitude <= self.north

    def __str__(self) -> str:
        (lon1, lat1), (lon2, lat2) = self.as_bounds()
        return f"[[{lon1:.6f}, {lat1:.6f}], [{lon2:.6f}, {lat2:.6f}]]"
