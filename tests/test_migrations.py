from sqlalchemy import create_engine, inspect

from mani_shop.core.config import settings
from run_migrations import run_migrations


def test_upgrade_creates_shop_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "shop.db"
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")

    assert run_migrations() == 0

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"customers", "products", "carts", "cart_items", "orders", "order_items"} <= tables


def test_unknown_revision_reports_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")

    assert run_migrations("0000deadbeef") == 1
