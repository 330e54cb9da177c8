import os
import tempfile
from decimal import Decimal
from pathlib import Path

# Configure before anything from `checkout` is imported: the engine is
# built at import time from these settings.
_DB_DIR = tempfile.mkdtemp(prefix="checkout-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALG"] = "HS256"
os.environ["LOG_LEVEL"] = "WARNING"
for _name in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from checkout.database import engine  # noqa: E402
from checkout.main import app  # noqa: E402
from checkout.models.product import Product  # noqa: E402
from checkout.models.user import User  # noqa: E402

ADDRESS = {
    "street": "1 Main St",
    "city": "Springfield",
    "zip_code": "12345",
    "country": "US",
}


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture()
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture()
def client():
    return TestClient(app)


def make_user(user_id="u1", role="user"):
    with Session(engine) as s:
        s.add(User(id=user_id, email=f"{user_id}@example.com", name=user_id, role=role))
        s.commit()
    return user_id


def make_product(product_id="P", price="10.00", stock=5, name=None):
    with Session(engine) as s:
        s.add(
            Product(
                id=product_id,
                name=name or f"Product {product_id}",
                price=Decimal(price),
                stock_quantity=stock,
            )
        )
        s.commit()
    return product_id


def stock_of(product_id):
    with Session(engine) as s:
        return s.get(Product, product_id).stock_quantity


def auth_headers(sub, email=None):
    token = jwt.encode(
        {"sub": sub, "email": email or f"{sub}@example.com"},
        "test-secret",
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers():
    make_user("admin-1", role="admin")
    return auth_headers("admin-1")
