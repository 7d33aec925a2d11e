#!/usr/bin/env python
"""Idempotent seed script for a fresh repair shop database.

Creates the main branch, an admin user and a small device catalog (brands,
models, parts). Rows that already exist (matched by name / email) are left alone.

Usage:
    python backend/scripts/seed_demo.py               # seed normally
    python backend/scripts/seed_demo.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/seed_demo.py --no-catalog  # branch + admin only
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from repairshop import create_app, get_db  # type: ignore
from repairshop.models.user import Base, User
from repairshop.models.branch import Branch
from repairshop.models.catalog import Brand, DeviceModel, Part
import repairshop.models.customer  # noqa: F401
import repairshop.models.order  # noqa: F401
import repairshop.models.accounting_entry  # noqa: F401
import repairshop.models.audit  # noqa: F401

MAIN_BRANCH = {'name': 'Main Branch', 'address': '1 High Street', 'phone_number': '+10000000000', 'manager': 'Admin'}

# brand -> model -> [(part name, price cents, stock)]
CATALOG = {
    'Apple': {
        'iPhone 12': [('Screen Replacement', 15000, 25), ('Battery', 8000, 50), ('Charging Port', 6000, 30)],
        'iPhone 13': [('Screen Replacement', 15000, 25), ('Battery', 8000, 50)],
    },
    'Samsung': {
        'Galaxy S21': [('Camera Module', 12000, 15), ('Charging Port', 6000, 30)],
    },
    'Dell': {
        'XPS 15': [('Keyboard Replacement', 9000, 20), ('SSD 512GB', 15000, 15), ('Cooling Fan', 7000, 30)],
    },
}


def ensure_branch(session):
    branch = session.execute(select(Branch).where(Branch.name == MAIN_BRANCH['name'])).scalar_one_or_none()
    if branch:
        return branch, False
    branch = Branch(**MAIN_BRANCH)
    session.add(branch)
    session.flush()
    return branch, True


def ensure_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com').lower()
    user = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if user:
        return user, False
    user = User(name='Admin', email=admin_email, password_hash='', role=User.ROLE_ADMIN)
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    session.flush()
    print(f"[INFO] Created admin user {admin_email} with temporary password.")
    return user, True


def ensure_catalog(session):
    created = 0
    parts_by_name = {p.name: p for p in session.execute(select(Part)).scalars()}
    for brand_name, models in CATALOG.items():
        brand = session.execute(select(Brand).where(Brand.name == brand_name)).scalar_one_or_none()
        if not brand:
            brand = Brand(name=brand_name)
            session.add(brand)
            session.flush()
            created += 1
        for model_name, parts in models.items():
            model = session.execute(
                select(DeviceModel).where(DeviceModel.brand_id == brand.id, DeviceModel.name == model_name)
            ).scalar_one_or_none()
            if not model:
                model = DeviceModel(brand_id=brand.id, name=model_name)
                session.add(model)
                session.flush()
                created += 1
            for part_name, price_cents, stock in parts:
                part = parts_by_name.get(part_name)
                if not part:
                    part = Part(name=part_name, price_cents=price_cents, stock=stock)
                    session.add(part)
                    parts_by_name[part_name] = part
                    created += 1
                if model not in part.models:
                    part.models.append(model)
    return created


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed branch, admin user and demo catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_demo.py\n  dry run: seed_demo.py --dry-run\n"""),
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--no-catalog', action='store_true', help='Skip brands, models and parts')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM orders LIMIT 1'))
        except OperationalError:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())

        _, branch_new = ensure_branch(session)
        ensure_admin(session)
        created_c = 0 if args.no_catalog else ensure_catalog(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Branch would create: {int(branch_new)}, Catalog rows would create: {created_c}")
        else:
            session.commit()
            print(f"[DONE] Branch created: {int(branch_new)}, Catalog rows created: {created_c}")


if __name__ == '__main__':
    main()
