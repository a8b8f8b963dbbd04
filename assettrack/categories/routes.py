from flask import abort, jsonify
from flask_login import login_required
from sqlalchemy import func

from . import bp
from .forms import (
    CategoryForm,
    CategoryUpdateForm,
    TypeForm,
    CatalogProductForm,
    CatalogProductUpdateForm,
)
from .stats import product_stats
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import validate_or_400
from assettrack.models import Asset, AssetCategory, AssetType, CatalogProduct
from assettrack.tenancy import TenantScope, active_store_id, current_scope, get_scoped_or_404
from assettrack.uploads import save_image


# ----------------------------
# Helpers
# ----------------------------

def _visible_categories(scope: TenantScope):
    query = scope.apply(AssetCategory.query, AssetCategory.store_id, include_global=True)
    return query.order_by(AssetCategory.name.asc()).all()


def _get_category(category_id) -> AssetCategory:
    return get_scoped_or_404(AssetCategory, category_id, "Category not found")


def _get_catalog_product(product_id) -> CatalogProduct:
    product = db.session.get(CatalogProduct, product_id)
    if product is None:
        abort(404, description="Product not found")
    category = product.root_type().category
    if category.store_id is not None and not current_scope().allows(category.store_id):
        abort(404, description="Product not found")
    return product


def _same_name(a, b) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


def _category_assets(category: AssetCategory):
    """Assets filed under this category, limited to the category's store."""
    query = Asset.query.filter(Asset.category == category.name)
    if category.store_id is not None:
        query = TenantScope.for_store(category.store_id).apply(query, Asset.store_id)
    return query


def _product_assets(product: CatalogProduct):
    asset_type = product.root_type()
    query = _category_assets(asset_type.category).filter(
        Asset.product_type == asset_type.name,
        Asset.product_name == product.name,
    )
    return query


# ----------------------------
# Listing / stats
# ----------------------------

@bp.route("", methods=["GET"])
@login_required
def list_categories():
    return jsonify([c.to_dict() for c in _visible_categories(current_scope())])


@bp.route("/stats")
@login_required
def category_stats():
    """Products at every level of the catalog with asset counts."""
    scope = current_scope()
    assets = scope.apply(Asset.query, Asset.store_id, Asset.location)
    return jsonify(product_stats(_visible_categories(scope), assets))


# ----------------------------
# Categories
# ----------------------------

@bp.route("", methods=["POST"])
@admin_required
def create_category():
    form = validate_or_400(CategoryForm())
    name = form.name.data.strip()
    store_id = active_store_id()

    query = AssetCategory.query.filter(func.lower(AssetCategory.name) == name.lower())
    if store_id:
        query = query.filter(AssetCategory.store_id == store_id)
    else:
        query = query.filter(AssetCategory.store_id.is_(None))
    if query.first():
        abort(400, description="Category already exists in this store")

    category = AssetCategory(name=name, store_id=store_id)
    if form.image.data:
        category.image = save_image(form.image.data, prefix="category")

    db.session.add(category)
    log_activity("Create Category", f"Created category {name}", store_id=store_id)
    db.session.commit()
    return jsonify(category.to_dict()), 201


@bp.route("/<int:category_id>", methods=["PUT"])
@admin_required
def update_category(category_id):
    category = _get_category(category_id)
    form = validate_or_400(CategoryUpdateForm())
    old_name = category.name
    new_name = (form.name.data or "").strip()

    if form.image.data:
        category.image = save_image(form.image.data, prefix="category")

    if new_name and new_name != old_name:
        renamed = _category_assets(category).update(
            {Asset.category: new_name}, synchronize_session=False
        )
        category.name = new_name
        log_activity(
            "Rename Category",
            f"Renamed category {old_name} to {new_name} ({renamed} assets)",
            store_id=category.store_id,
        )

    db.session.commit()
    return jsonify(category.to_dict())


@bp.route("/<int:category_id>", methods=["DELETE"])
@admin_required
def delete_category(category_id):
    category = _get_category(category_id)

    in_use = _category_assets(category).count()
    if in_use:
        abort(400, description=f"Cannot delete category. It contains {in_use} assets.")

    db.session.delete(category)
    log_activity("Delete Category", f"Deleted category {category.name}", store_id=category.store_id)
    db.session.commit()
    return jsonify({"message": "Category removed"})


# ----------------------------
# Types / products
# ----------------------------

@bp.route("/<int:category_id>/types", methods=["POST"])
@admin_required
def add_type(category_id):
    category = _get_category(category_id)
    form = validate_or_400(TypeForm())
    name = form.name.data.strip()

    if any(_same_name(t.name, name) for t in category.types):
        abort(400, description="Type already exists in this category")

    category.types.append(AssetType(name=name))
    db.session.commit()
    return jsonify(category.to_dict())


@bp.route("/<int:category_id>/types/<type_name>/products", methods=["POST"])
@admin_required
def add_product(category_id, type_name):
    category = _get_category(category_id)
    asset_type = next((t for t in category.types if t.name == type_name), None)
    if asset_type is None:
        abort(404, description="Type not found")

    form = validate_or_400(CatalogProductForm())
    name = form.name.data.strip()
    if any(_same_name(p.name, name) for p in asset_type.products):
        abort(400, description="Product already exists in this type")

    product = CatalogProduct(name=name, model_number=(form.model_number.data or "").strip())
    if form.image.data:
        product.image = save_image(form.image.data)
    asset_type.products.append(product)
    db.session.commit()
    return jsonify(category.to_dict())


@bp.route("/products/<int:product_id>", methods=["PUT"])
@admin_required
def update_product(product_id):
    product = _get_catalog_product(product_id)
    form = validate_or_400(CatalogProductUpdateForm())
    asset_type = product.root_type()
    category = asset_type.category
    old_name = product.name
    new_name = (form.name.data or "").strip()

    if new_name and new_name != old_name:
        siblings = product.parent.children if product.parent is not None else asset_type.products
        if any(p.id != product.id and _same_name(p.name, new_name) for p in siblings):
            abort(400, description="Product already exists in this type")
        _product_assets(product).update({Asset.product_name: new_name}, synchronize_session=False)
        product.name = new_name

    if form.model_number.data is not None and form.model_number.data.strip():
        product.model_number = form.model_number.data.strip()
    if form.image.data:
        product.image = save_image(form.image.data)

    db.session.commit()
    return jsonify(category.to_dict())


@bp.route("/products/<int:product_id>", methods=["DELETE"])
@admin_required
def delete_product(product_id):
    product = _get_catalog_product(product_id)

    in_use = _product_assets(product).count()
    if in_use:
        abort(400, description=f"Cannot delete product. It is used by {in_use} assets.")

    db.session.delete(product)
    db.session.commit()
    return jsonify({"message": "Product removed"})


@bp.route("/products/<int:product_id>/children", methods=["POST"])
@admin_required
def add_child_product(product_id):
    parent = _get_catalog_product(product_id)
    form = validate_or_400(CatalogProductForm())
    name = form.name.data.strip()

    if any(_same_name(c.name, name) for c in parent.children):
        abort(400, description="Child product already exists")

    child = CatalogProduct(name=name, model_number=(form.model_number.data or "").strip())
    if form.image.data:
        child.image = save_image(form.image.data)
    parent.children.append(child)
    db.session.commit()
    return jsonify(parent.root_type().category.to_dict())
