import os
import sys
from importlib import reload
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

USER_ID = "0b6c7f2e-4f0c-4d59-9a43-6a1b2c3d4e5f"
OTHER_USER_ID = "7d1e2f3a-1b2c-4d5e-8f90-112233445566"


@pytest.fixture(scope="function")
def app_module(tmp_path_factory):
    """
    Reload the app with a disposable SQLite DB.
    """
    db_path = tmp_path_factory.mktemp("data") / "test.db"
    new_env = {
        "DB_URL": f"sqlite:///{db_path}",
        "BEARER_TOKEN": "testtoken",
        "POINTS_UNIT": "10000",
    }
    old_env = {k: os.environ.get(k) for k in new_env}
    os.environ.update(new_env)

    try:
        import storefront.config as config
        import storefront.database as database
        import storefront.models.models as models
        import storefront.helpers as helpers
        import storefront.db as store
        import storefront.services as services
        import storefront.security as security
        import storefront.reconciliation as reconciliation
        import storefront.main as main

        reload(config)
        reload(database)
        reload(models)
        reload(helpers)
        reload(store)
        reload(services)
        reload(security)
        reload(reconciliation)
        reload(main)

        main.app.dependency_overrides[main.require_bearer_token] = lambda: None

        models.Base.metadata.drop_all(bind=database.engine)
        models.Base.metadata.create_all(bind=database.engine)
        return main, database, models
    finally:
        for key, value in old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


@pytest.fixture
def db(app_module):
    _, database, _ = app_module
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(app_module):
    """
    Seed one active game with two products, an inactive product and three vouchers.
    """
    _, database, models = app_module
    with database.SessionLocal() as session:
        game = models.Game(name="Mobile Legends", slug="mobile-legends", description="MOBA")
        hidden_game = models.Game(name="Retired Game", slug="retired-game", is_active=False)
        session.add_all([game, hidden_game])
        session.flush()
        diamonds = models.Product(game_id=game.id, name="1000 Diamonds", price=100_000, currency_amount=1000)
        small = models.Product(game_id=game.id, name="86 Diamonds", price=25_000, currency_amount=86)
        retired = models.Product(game_id=game.id, name="Old Pack", price=50_000, currency_amount=400, is_active=False)
        hidden_product = models.Product(game_id=hidden_game.id, name="Gold", price=30_000, currency_amount=10)
        twenty = models.Voucher(name="Diskon 20%", description="20% off", discount_percentage=20, points_required=100)
        ten = models.Voucher(name="Diskon 10%", description="10% off", discount_percentage=10, points_required=50)
        inactive = models.Voucher(name="Expired", discount_percentage=50, points_required=10, is_active=False)
        session.add_all([diamonds, small, retired, hidden_product, twenty, ten, inactive])
        session.commit()
        return {
            "game_id": game.id,
            "hidden_game_id": hidden_game.id,
            "product_id": diamonds.id,
            "small_product_id": small.id,
            "retired_product_id": retired.id,
            "hidden_product_id": hidden_product.id,
            "voucher_20_id": twenty.id,
            "voucher_10_id": ten.id,
            "inactive_voucher_id": inactive.id,
        }


def set_points(app_module, user_id: str, points: int):
    _, database, models = app_module
    with database.SessionLocal() as session:
        profile = session.get(models.Profile, user_id)
        if profile is None:
            profile = models.Profile(id=user_id, name="Tester")
        profile.loyalty_points = points
        session.add(profile)
        session.commit()


@pytest.fixture
def client(app_module):
    main, _, _ = app_module
    with TestClient(main.app) as client:
        yield client
