"""Product catalog loader with database-first approach, falling back to a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError as RecordValidationError

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import Product
from ..schemas.catalog import ProductRecord

logger = logging.getLogger(__name__)


def parse_product_records(rows: Iterable[dict[str, Any]]) -> tuple[Product, ...]:
    """Convert raw catalog rows into domain products, skipping invalid rows."""
    products: list[Product] = []
    for row in rows:
        try:
            products.append(ProductRecord.model_validate(row).to_domain())
        except (RecordValidationError, ValueError) as e:
            logger.warning(f"Skipping invalid product row {row.get('id') or row.get('product_id')!r}: {e}")
    return tuple(products)


def _load_products_from_database() -> tuple[Product, ...] | None:
    """Load products from Supabase. Returns None if database not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table(settings.supabase_products_table).select("*").execute()
    except Exception as e:
        logger.warning(f"Catalog query failed, falling back to file: {e}")
        return None
    if not response.data:
        return None
    products = parse_product_records(response.data)
    return products or None


def _load_products_from_file(source: Path | None = None) -> tuple[Product, ...]:
    """Load products from a JSON file holding a list of records (or {"products": [...]})."""
    path = source or settings.catalog_file
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    rows = payload.get("products", []) if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValueError(f"Catalog file '{path}' must contain a list of products.")
    return parse_product_records(rows)


def load_products(source: Path | None = None) -> tuple[Product, ...]:
    """Get products from the database first, fall back to the JSON catalog file."""
    if source is None:
        db_products = _load_products_from_database()
        if db_products:
            logger.info(f"Loaded {len(db_products)} products from database")
            return db_products

    file_products = _load_products_from_file(source)
    logger.info(f"Loaded {len(file_products)} products from {source or settings.catalog_file}")
    return file_products
