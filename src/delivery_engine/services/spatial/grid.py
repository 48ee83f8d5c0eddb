"""Grid-bucketed spatial index over product origins."""

from __future__ import annotations

import logging
import math
import threading
from typing import Iterable, Optional

from ...config import settings
from ...exceptions import ValidationError
from ...models.domain import GeoPoint, NearbyPage, NearbyProduct, Product
from ..delivery.feasibility import FeasibilityEvaluator
from ..geospatial import bounding_box, haversine_meters_many
from .base import NearbyFilters, SpatialIndex, sort_key_for

logger = logging.getLogger(__name__)

Cell = tuple[int, int]


class GridSpatialIndex(SpatialIndex):
    """Bucket products into fixed-size lat/lon cells.

    A query only visits the cells overlapping the search circle's bounding box,
    so its cost follows local density rather than catalog size. Mutations hold
    the lock briefly; queries copy the candidate set under the lock and do the
    distance work outside it.
    """

    def __init__(
        self,
        *,
        cell_degrees: float | None = None,
        evaluator: FeasibilityEvaluator | None = None,
    ) -> None:
        self.cell_degrees = cell_degrees or settings.spatial_cell_degrees
        if self.cell_degrees <= 0:
            raise ValueError("cell_degrees must be > 0")
        self._lat_cells = int(math.ceil(180.0 / self.cell_degrees))
        self._lon_cells = int(math.ceil(360.0 / self.cell_degrees))
        self._evaluator = evaluator or FeasibilityEvaluator()
        self._buckets: dict[Cell, dict[str, Product]] = {}
        self._products: dict[str, tuple[Cell, Product]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._products)

    def _cell_for(self, latitude: float, longitude: float) -> Cell:
        row = min(int((latitude + 90.0) // self.cell_degrees), self._lat_cells - 1)
        col = int((longitude + 180.0) // self.cell_degrees) % self._lon_cells
        return row, col

    def upsert(self, product: Product) -> None:
        cell = self._cell_for(product.location.latitude, product.location.longitude)
        with self._lock:
            previous = self._products.get(product.product_id)
            if previous is not None and previous[0] != cell:
                self._discard(previous[0], product.product_id)
            self._buckets.setdefault(cell, {})[product.product_id] = product
            self._products[product.product_id] = (cell, product)

    def remove(self, product_id: str) -> Optional[Product]:
        with self._lock:
            entry = self._products.pop(product_id, None)
            if entry is None:
                return None
            self._discard(entry[0], product_id)
            return entry[1]

    def _discard(self, cell: Cell, product_id: str) -> None:
        bucket = self._buckets.get(cell)
        if bucket is None:
            return
        bucket.pop(product_id, None)
        if not bucket:
            del self._buckets[cell]

    def get(self, product_id: str) -> Optional[Product]:
        entry = self._products.get(product_id)
        return entry[1] if entry else None

    def products(self) -> list[Product]:
        with self._lock:
            return [product for _, product in self._products.values()]

    def _cells_covering(self, center: GeoPoint, radius_meters: float) -> set[Cell]:
        lat_min, lat_max, lon_min, lon_max = bounding_box(center, radius_meters)
        row_start = self._cell_for(lat_min, 0.0)[0]
        row_end = self._cell_for(lat_max, 0.0)[0]
        if lon_max - lon_min >= 360.0:
            cols: Iterable[int] = range(self._lon_cells)
        else:
            col_start = int((lon_min + 180.0) // self.cell_degrees)
            col_end = int((lon_max + 180.0) // self.cell_degrees)
            cols = {col % self._lon_cells for col in range(col_start, col_end + 1)}
        cols = tuple(cols)
        return {(row, col) for row in range(row_start, row_end + 1) for col in cols}

    def _snapshot(self, cells: set[Cell]) -> list[Product]:
        with self._lock:
            if len(cells) > len(self._buckets):
                return [p for cell, bucket in self._buckets.items() if cell in cells for p in bucket.values()]
            return [p for cell in cells for p in self._buckets.get(cell, {}).values()]

    def find_within(
        self,
        center: GeoPoint,
        radius_meters: float,
        *,
        filters: NearbyFilters | None = None,
        sort_by: str = "distance",
        skip: int = 0,
        limit: int = 20,
    ) -> NearbyPage:
        if radius_meters <= 0:
            raise ValidationError("radius_meters must be > 0", field="maxDistance")
        if skip < 0:
            raise ValidationError("skip must be >= 0", field="page")
        if limit < 1:
            raise ValidationError("limit must be >= 1", field="limit")

        filters = filters or NearbyFilters()
        candidates = [p for p in self._snapshot(self._cells_covering(center, radius_meters)) if filters.accepts(p)]
        if not candidates:
            return NearbyPage(items=(), total=0, skip=skip, limit=limit)

        distances = haversine_meters_many(
            center,
            [p.location.latitude for p in candidates],
            [p.location.longitude for p in candidates],
        )

        matches: list[NearbyProduct] = []
        for product, distance in zip(candidates, distances.tolist()):
            if distance > radius_meters:
                continue
            if filters.deliverable_only and distance > product.policy.max_radius_meters:
                continue
            quote = self._evaluator.quote(product, distance)
            if filters.max_delivery_minutes is not None and quote.total_estimated_minutes > filters.max_delivery_minutes:
                continue
            matches.append(
                NearbyProduct(
                    product=product,
                    distance_meters=round(distance, 1),
                    estimated_minutes=quote.total_estimated_minutes,
                    fee_minor=quote.fee_minor,
                )
            )

        matches.sort(key=sort_key_for(sort_by))
        page = tuple(matches[skip : skip + limit])
        logger.debug(
            f"Spatial query visited {len(candidates)} candidates, matched {len(matches)} within {radius_meters:.0f}m"
        )
        return NearbyPage(items=page, total=len(matches), skip=skip, limit=limit)
