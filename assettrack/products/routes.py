from flask import abort, jsonify
from flask_login import login_required
from sqlalchemy import func

from . import bp
from .forms import ProductForm, ProductUpdateForm
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import json_body, validate_or_400
from assettrack.models import Asset, Product
from assettrack.tenancy import TenantScope, active_store_id, current_scope
from assettrack.uploads import save_image
from assettrack.utils.tree import flatten_tree


def _get_product(product_id) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        abort(404, description="Product not found")
    store_id = product.root().store_id
    if store_id is not None and not current_scope().allows(store_id):
        abort(404, description="Product not found")
    return product


def _root_exists(name: str, store_id) -> bool:
    query = Product.query.filter(
        Product.parent_id.is_(None), func.lower(Product.name) == name.strip().lower()
    )
    if store_id:
        query = query.filter(Product.store_id == store_id)
    else:
        query = query.filter(Product.store_id.is_(None))
    return db.session.query(query.exists()).scalar()


def _has_child(parent: Product, name: str) -> bool:
    wanted = name.strip().lower()
    return any(c.name.strip().lower() == wanted for c in parent.children)


def _check_depth(parent: Product):
    if parent.depth >= Product.MAX_DEPTH:
        abort(400, description=f"Products can be nested at most {Product.MAX_DEPTH} levels deep")


def _assets_named(product: Product):
    query = Asset.query.filter(Asset.product_name == product.name)
    store_id = product.root().store_id
    if store_id is not None:
        query = TenantScope.for_store(store_id).apply(query, Asset.store_id)
    return query


def _visible_roots():
    query = Product.query.filter(Product.parent_id.is_(None))
    query = current_scope().apply(query, Product.store_id, include_global=True)
    return query.order_by(Product.name.asc()).all()


@bp.route("", methods=["GET"])
@login_required
def list_products():
    return jsonify([p.to_dict() for p in _visible_roots()])


@bp.route("/flat")
@login_required
def flat_products():
    """Every node of every visible tree with its " > " path."""
    rows = flatten_tree(_visible_roots())
    return jsonify([
        {
            "id": row.node.id,
            "name": row.name,
            "path": row.path,
            "depth": row.depth,
            "model_number": row.model_number,
            "isLeaf": row.is_leaf,
        }
        for row in rows
    ])


@bp.route("/<int:product_id>", methods=["GET"])
@login_required
def product_detail(product_id):
    return jsonify(_get_product(product_id).to_dict())


@bp.route("", methods=["POST"])
@admin_required
def create_product():
    form = validate_or_400(ProductForm())
    name = form.name.data.strip()
    store_id = active_store_id()

    if _root_exists(name, store_id):
        abort(400, description="Product already exists")

    product = Product(name=name, model_number=(form.model_number.data or "").strip(), store_id=store_id)
    if form.image.data:
        product.image = save_image(form.image.data)
    db.session.add(product)
    db.session.commit()
    return jsonify(product.to_dict()), 201


@bp.route("/<int:product_id>/children", methods=["POST"])
@admin_required
def add_child(product_id):
    parent = _get_product(product_id)
    form = validate_or_400(ProductForm())
    name = form.name.data.strip()

    _check_depth(parent)
    if _has_child(parent, name):
        abort(400, description="Child already exists")

    child = Product(name=name, model_number=(form.model_number.data or "").strip())
    if form.image.data:
        child.image = save_image(form.image.data)
    parent.children.append(child)
    db.session.commit()
    return jsonify(parent.root().to_dict())


@bp.route("/<int:product_id>", methods=["PUT"])
@admin_required
def update_product(product_id):
    product = _get_product(product_id)
    form = validate_or_400(ProductUpdateForm())
    new_name = (form.name.data or "").strip()

    if new_name and new_name != product.name:
        siblings = product.parent.children if product.parent is not None else None
        if siblings is not None and any(
            s.id != product.id and s.name.strip().lower() == new_name.lower() for s in siblings
        ):
            abort(400, description="Child already exists")
        if siblings is None and _root_exists(new_name, product.store_id):
            abort(400, description="Product already exists")
        _assets_named(product).update({Asset.product_name: new_name}, synchronize_session=False)
        product.name = new_name

    if form.model_number.data:
        product.model_number = form.model_number.data.strip()
    if form.image.data:
        product.image = save_image(form.image.data)

    db.session.commit()
    return jsonify(product.to_dict())


@bp.route("/<int:product_id>", methods=["DELETE"])
@admin_required
def delete_product(product_id):
    product = _get_product(product_id)

    in_use = _assets_named(product).count()
    if in_use:
        abort(400, description=f"Cannot delete. Used by {in_use} assets.")

    db.session.delete(product)
    db.session.commit()
    return jsonify({"message": "Product removed"})


@bp.route("/bulk-create", methods=["POST"])
@admin_required
def bulk_create():
    data = json_body()
    names = data.get("names")
    if not isinstance(names, list) or not names:
        abort(400, description="No product names provided")
    names = [str(n or "").strip() for n in names]

    parent_id = data.get("parentId")
    if parent_id:
        try:
            parent = _get_product(int(parent_id))
        except (TypeError, ValueError):
            abort(400, description="Invalid parent product")
        _check_depth(parent)
        for name in names:
            if name and not _has_child(parent, name):
                parent.children.append(Product(name=name))
        db.session.commit()
        return jsonify({"message": "Bulk children created", "parent": parent.to_dict()})

    store_id = active_store_id()
    created = []
    for name in names:
        if name and not _root_exists(name, store_id):
            product = Product(name=name, store_id=store_id)
            db.session.add(product)
            db.session.flush()
            created.append(product)
    db.session.commit()
    return jsonify({
        "message": f"Created {len(created)} root products",
        "items": [p.to_dict() for p in created],
    })
