import os

from assettrack import create_app
from assettrack.extensions import db
from assettrack.models import (
    ROLE_ADMIN,
    ROLE_SUPER_ADMIN,
    AssetCategory,
    AssetType,
    Store,
    User,
)


MAIN_STORES = ("SCY ASSET", "IT ASSET", "NOC ASSET")

SUPER_ADMIN_EMAIL = os.environ.get("SEED_SUPERADMIN_EMAIL", "superadmin@assettrack.local")
SUPER_ADMIN_PASSWORD = os.environ.get("SEED_SUPERADMIN_PASSWORD", "superadmin123")
ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "admin123")

# category -> types
DEFAULT_CATEGORIES = {
    "Camera": ("IP Camera", "Analog Camera"),
    "Reader": ("Card Reader", "Biometric Reader"),
    "Controller": ("Door Controller",),
    "Network": ("Switch", "Router", "Access Point"),
    "Other": ("General",),
}


def get_or_create(model, defaults=None, **kwargs):
    """Simple helper to avoid duplicate seed rows."""
    instance = model.query.filter_by(**kwargs).first()
    if instance:
        return instance, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    instance = model(**params)
    db.session.add(instance)
    return instance, True


def seed():
    """Create main stores, the super admin, store admins and default categories. Needs an app context."""
    print("Seeding initial data...")

    stores = {}
    for name in MAIN_STORES:
        store, created = get_or_create(Store, name=name, defaults={"is_main_store": True})
        if not created and not store.is_main_store:
            store.is_main_store = True
        stores[name] = store
    db.session.flush()

    super_admin, created = get_or_create(
        User,
        email=SUPER_ADMIN_EMAIL,
        defaults={"name": "Super Admin", "role": ROLE_SUPER_ADMIN},
    )
    if created:
        super_admin.set_password(SUPER_ADMIN_PASSWORD)
        print(f"Created Super Admin: {SUPER_ADMIN_EMAIL}")
    elif super_admin.role != ROLE_SUPER_ADMIN:
        super_admin.role = ROLE_SUPER_ADMIN

    for name, store in stores.items():
        prefix = name.split()[0].lower()
        admin, created = get_or_create(
            User,
            email=f"{prefix}@assettrack.local",
            defaults={"name": f"{name.split()[0]} Admin", "role": ROLE_ADMIN, "assigned_store_id": store.id},
        )
        if created:
            admin.set_password(ADMIN_PASSWORD)

    # global categories, visible from every store
    for category_name, type_names in DEFAULT_CATEGORIES.items():
        category, _ = get_or_create(AssetCategory, name=category_name, store_id=None)
        existing = {t.name for t in category.types}
        for type_name in type_names:
            if type_name not in existing:
                category.types.append(AssetType(name=type_name))

    db.session.commit()
    print("Seeding completed.")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        seed()
