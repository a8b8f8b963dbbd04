from __future__ import annotations

from typing import Optional

from sqlalchemy import func

from assettrack.extensions import db
from assettrack.models import AssetCategory, AssetType, CatalogProduct
from assettrack.utils.tree import flatten_tree


DEFAULT_TYPE = "General"


def iter_catalog_products(categories):
    """Yield (category, type, FlatNode) for every product node at any depth."""
    for category in categories:
        for asset_type in category.types:
            for flat in flatten_tree(
                asset_type.products, parents=(category.name, asset_type.name)
            ):
                yield category, asset_type, flat


def build_product_lookup(categories) -> dict:
    """lowercased product name -> (category name, type name, canonical product name)"""
    lookup = {}
    for category, asset_type, flat in iter_catalog_products(categories):
        key = flat.name.strip().lower()
        if key and key not in lookup:
            lookup[key] = (category.name, asset_type.name, flat.name)
    return lookup


def _find_category(name: str, store_id: Optional[int]):
    query = AssetCategory.query.filter(func.lower(AssetCategory.name) == name.strip().lower())
    if store_id:
        query = query.filter(AssetCategory.store_id == store_id)
    else:
        query = query.filter(AssetCategory.store_id.is_(None))
    return query.first()


def _find_product(asset_type: AssetType, name: str):
    wanted = name.strip().lower()
    for flat in flatten_tree(asset_type.products):
        if flat.name.strip().lower() == wanted:
            return flat.node
    return None


def ensure_catalog_entry(
    category_name: str,
    type_name: Optional[str],
    product_name: str,
    store_id: Optional[int] = None,
    model_number: str = "",
):
    """
    Find or create category > type > product (case-insensitive) and return
    the canonical (category, type, product) names. Caller commits.
    """
    type_name = (type_name or "").strip() or DEFAULT_TYPE
    category_name = category_name.strip()
    product_name = product_name.strip()

    category = _find_category(category_name, store_id)
    if category is None:
        category = AssetCategory(name=category_name, store_id=store_id)
        db.session.add(category)

    asset_type = next(
        (t for t in category.types if t.name.strip().lower() == type_name.lower()), None
    )
    if asset_type is None:
        asset_type = AssetType(name=type_name)
        category.types.append(asset_type)

    product = _find_product(asset_type, product_name)
    if product is None:
        product = CatalogProduct(name=product_name, model_number=(model_number or "").strip())
        asset_type.products.append(product)

    db.session.flush()
    return category.name, asset_type.name, product.name
