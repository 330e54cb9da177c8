"""Concurrent checkouts against the same stock or cart never oversell."""

import threading

from sqlalchemy import func
from sqlmodel import Session, select

from checkout.core.config import Settings
from checkout.core.errors import EmptyOrInvalidOrder, InsufficientStock, StockChanged
from checkout.database import engine
from checkout.models.order import Order
from checkout.repositories.cart_repo import CartRepository
from checkout.repositories.order_repo import OrderRepository
from checkout.repositories.product_repo import ProductRepository
from checkout.schemas.order import OrderCreate
from checkout.services.cart_service import CartService
from checkout.services.order_service import OrderService

from conftest import ADDRESS, make_product, make_user, stock_of


def _service(retries=1, cart_repo=None):
    return OrderService(
        OrderRepository(),
        cart_repo or CartRepository(),
        ProductRepository(),
        settings=Settings(CHECKOUT_CONFLICT_RETRIES=retries),
    )


def _run_concurrently(user_ids, payload, service, rejections=(InsufficientStock, StockChanged)):
    """Run place_order once per entry of user_ids, all started together."""
    barrier = threading.Barrier(len(user_ids))
    results = []
    lock = threading.Lock()

    def worker(user_id):
        barrier.wait()
        with Session(engine) as s:
            try:
                outcome = service.place_order(s, user_id, payload)
            except rejections as exc:
                outcome = exc
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=(u,)) for u in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def _split(results):
    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    return winners, losers


def _order_count():
    with Session(engine) as s:
        return s.exec(select(func.count()).select_from(Order)).one()


def _lines(product_id, quantity=1):
    return OrderCreate(
        items=[{"product_id": product_id, "quantity": quantity}],
        shipping_address=ADDRESS,
    )


class CartReadTogether(CartRepository):
    """Holds every checkout's first cart read until all have made it."""

    def __init__(self, parties):
        self.barrier = threading.Barrier(parties)
        self.seen = set()
        self.seen_lock = threading.Lock()

    def list_items(self, session, cart_id):
        items = super().list_items(session, cart_id)
        with self.seen_lock:
            first = threading.get_ident() not in self.seen
            self.seen.add(threading.get_ident())
        if first:
            self.barrier.wait(timeout=30)
        return items


def test_last_unit_goes_to_exactly_one_buyer():
    make_user("u1")
    make_user("u2")
    make_product("P", "10.00", stock=1)

    results = _run_concurrently(["u1", "u2"], _lines("P"), _service())

    winners, losers = _split(results)
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], (InsufficientStock, StockChanged))
    assert stock_of("P") == 0
    assert _order_count() == 1


def test_many_buyers_never_oversell():
    users = [f"u{i}" for i in range(6)]
    for u in users:
        make_user(u)
    make_product("P", "1.00", stock=3)

    # every lost race leaves one more unit sold, so a few retries are
    # enough for all stock to go
    results = _run_concurrently(users, _lines("P"), _service(retries=5))

    winners, losers = _split(results)
    assert len(winners) + len(losers) == len(users)
    assert len(winners) == 3
    assert all(isinstance(l, InsufficientStock) for l in losers)
    assert stock_of("P") == 0
    assert _order_count() == 3


def test_same_cart_checked_out_twice_makes_one_order():
    make_user("u1")
    make_product("P", "10.00", stock=10)
    with Session(engine) as s:
        CartService(CartRepository(), ProductRepository()).add_to_cart(s, "u1", "P", 2)

    service = _service(cart_repo=CartReadTogether(parties=2))
    results = _run_concurrently(
        ["u1", "u1"],
        OrderCreate(shipping_address=ADDRESS),
        service,
        rejections=(StockChanged, EmptyOrInvalidOrder),
    )

    winners, losers = _split(results)
    assert len(winners) == 1
    assert len(losers) == 1
    assert stock_of("P") == 8
    assert _order_count() == 1
    with Session(engine) as s:
        summary = CartService(CartRepository(), ProductRepository()).get_cart_summary(s, "u1")
    assert summary.items == []
