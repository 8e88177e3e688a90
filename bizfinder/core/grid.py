"""
Grid partitioning

Splits a bounding box into density x density non-overlapping tiles.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..providers.base import BoundingBox, Coordinate, SearchIntensity, Tile

# Absorbs floating error in spans such as (lat + 0.25) - (lat - 0.25).
SPAN_EPSILON = 1e-9


@dataclass(frozen=True)
class GridConfig:
    # Boxes wider or taller than this (degrees) get a denser grid.
    span_threshold_deg: float = 0.5
    scale_step: int = 1
    max_density: int = 6


def grid_density(bounds: BoundingBox, intensity: SearchIntensity, config: GridConfig | None = None) -> int:
    """Base density for the intensity, bumped once for geographically large boxes."""
    config = config or GridConfig()
    density = intensity.base_density
    if max(bounds.lat_span, bounds.lng_span) > config.span_threshold_deg + SPAN_EPSILON:
        density = min(density + config.scale_step, config.max_density)
    return density


def partition(bounds: BoundingBox, density: int) -> List[Tile]:
    """
    Tile (i, j) spans row i of the latitude range and column j of the
    longitude range. Tiles are returned row-major, southwest first.
    """
    if density < 1:
        raise ValueError(f"grid density must be >= 1, got {density}")
    box = bounds.normalized()
    sw = box.southwest
    cell_lat = box.lat_span / density
    cell_lng = box.lng_span / density

    tiles: List[Tile] = []
    for i in range(density):
        # Outer edges come from the box itself so the union matches it exactly.
        south = sw.lat + i * cell_lat
        north = box.northeast.lat if i == density - 1 else sw.lat + (i + 1) * cell_lat
        for j in range(density):
            west = sw.lng + j * cell_lng
            east = box.northeast.lng if j == density - 1 else sw.lng + (j + 1) * cell_lng
            tiles.append(
                Tile(
                    row=i,
                    col=j,
                    bounds=BoundingBox(
                        southwest=Coordinate(lat=south, lng=west),
                        northeast=Coordinate(lat=north, lng=east),
                    ),
                )
            )
    return tiles


def partition_for_intensity(
    bounds: BoundingBox,
    intensity: SearchIntensity,
    config: GridConfig | None = None,
) -> List[Tile]:
    box = bounds.normalized()
    return partition(box, grid_density(box, intensity, config))
