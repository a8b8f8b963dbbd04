"""
Per-product asset counts for the category catalog.

Every product node (internal or leaf) of category > type > product > ...
becomes one row. Assets are counted once, grouped by a lowercased
(model_number, product_name) key, and each row is matched to buckets by
model number first and product name second.
"""
from __future__ import annotations

from collections import Counter

from sqlalchemy import func

from assettrack.models import Asset
from assettrack.status import AssetState
from .catalog import iter_catalog_products


COUNT_FIELDS = ("total", "inUse", "inStore", "faulty", "underRepair", "disposed", "scrapped")

_STATE_FIELDS = {
    AssetState.IN_USE.value: "inUse",
    AssetState.FAULTY.value: "faulty",
    AssetState.UNDER_REPAIR.value: "underRepair",
    AssetState.DISPOSED.value: "disposed",
    AssetState.SCRAPPED.value: "scrapped",
}

# model numbers that identify nothing
_BLANK_MODELS = {"", "n/a", "na", "-"}


def _norm(value) -> str:
    return str(value or "").strip().lower()


def bucket_key(model_number, product_name) -> tuple:
    return _norm(model_number), _norm(product_name)


def asset_buckets(query) -> dict:
    """
    One grouped pass over ``query``. Returns {bucket_key: Counter} where the
    counter is keyed by the COUNT_FIELDS names. Groups whose raw values only
    differ by case fold into the same bucket.
    """
    rows = (
        query.with_entities(
            Asset.model_number, Asset.product_name, Asset.state, Asset.status, func.count(Asset.id)
        )
        .group_by(Asset.model_number, Asset.product_name, Asset.state, Asset.status)
        .all()
    )

    buckets = {}
    for model_number, product_name, state, status, count in rows:
        counter = buckets.setdefault(bucket_key(model_number, product_name), Counter())
        counter["total"] += count
        field = _STATE_FIELDS.get(state)
        if field is None and state is None and status == "In Use":
            field = "inUse"
        if field:
            counter[field] += count
    return buckets


def _bucket_index(buckets):
    by_model, by_name = {}, {}
    for key in buckets:
        model_number, product_name = key
        if model_number not in _BLANK_MODELS:
            by_model.setdefault(model_number, set()).add(key)
        if product_name:
            by_name.setdefault(product_name, set()).add(key)
    return by_model, by_name


def match_buckets(row: dict, by_model: dict, by_name: dict) -> set:
    model_number = _norm(row.get("model_number"))
    if model_number not in _BLANK_MODELS and model_number in by_model:
        return set(by_model[model_number])
    return set(by_name.get(_norm(row.get("name")), ()))


def _counts(keys, buckets) -> dict:
    total = Counter()
    for key in keys:
        total.update(buckets[key])
    counts = {name: total.get(name, 0) for name in COUNT_FIELDS}
    counts["inStore"] = max(
        0,
        counts["total"]
        - counts["inUse"]
        - counts["faulty"]
        - counts["underRepair"]
        - counts["disposed"]
        - counts["scrapped"],
    )
    return counts


def catalog_rows(categories) -> list:
    rows = []
    for category, asset_type, flat in iter_catalog_products(categories):
        rows.append({
            "id": flat.node.id,
            "name": flat.name,
            "image": flat.node.image or "",
            "categoryName": category.name,
            "typeName": asset_type.name,
            "categoryId": category.id,
            "typeId": asset_type.id,
            "path": flat.path,
            "hierarchy": flat.hierarchy,
            "model_number": flat.model_number,
        })
    return rows


def summarize(rows: list, buckets: dict) -> list:
    """
    Attach counts to catalog rows and merge rows sharing a name.

    The first row of a name keeps its identity; its counts cover the union
    of buckets matched by every row of that name, each bucket once.
    """
    by_model, by_name = _bucket_index(buckets)
    merged, order = {}, []

    for row in rows:
        name_key = _norm(row.get("name"))
        keys = match_buckets(row, by_model, by_name)
        if name_key in merged:
            merged[name_key][1].update(keys)
            continue
        merged[name_key] = (dict(row), keys)
        order.append(name_key)

    result = []
    for name_key in order:
        row, keys = merged[name_key]
        row.update(_counts(keys, buckets))
        result.append(row)
    return result


def product_stats(categories, asset_query) -> list:
    return summarize(catalog_rows(categories), asset_buckets(asset_query))
