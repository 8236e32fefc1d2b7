import json

import httpx
import pytest

from storefront.models.schemas import Product
from storefront.services.auth import Identity, static_token
from storefront.services.cart_store import RemoteCartStore

FETCH_URL = "https://cart.test/fetch"
SYNC_URL = "https://cart.test/sync"
ROWS_URL = "https://catalog.test/rows/table/1/"


class ManualClock:
    """Virtual clock: timers only fire when the test advances time."""

    class Timer:
        def __init__(self, when, callback):
            self.when = when
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback):
        timer = self.Timer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        self.timers = [t for t in self.timers if t not in due and not t.cancelled]
        for timer in due:
            timer.callback()


class FakeCartBackend:
    """Records cart writes and serves a stored cart over MockTransport."""

    def __init__(self, stored=None):
        self.stored = stored if stored is not None else []
        self.writes = []
        self.fail_writes = False
        self.fail_reads = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if self.fail_reads:
                return httpx.Response(500, json={"error": "read failed"})
            return httpx.Response(200, json={"cart": self.stored})
        if self.fail_writes:
            return httpx.Response(503, json={"error": "store unavailable"})
        body = json.loads(request.content)
        self.writes.append({"auth": request.headers["Authorization"], **body})
        return httpx.Response(200, json={"ok": True})


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def identity():
    return Identity(user_id="user-1", email="ada@example.com", token_provider=static_token("tok-1"))


@pytest.fixture
def cart_backend():
    return FakeCartBackend()


@pytest.fixture
def cart_store(cart_backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(cart_backend.handler))
    return RemoteCartStore(FETCH_URL, SYNC_URL, client=client)


@pytest.fixture
def shirt():
    return Product(
        item_id=1,
        item_name="Slim Fit Shirt",
        price=29.99,
        color="Red",
        item_size="S",
        stock_quantity=10,
    )


@pytest.fixture
def jeans():
    return Product(
        item_id=2,
        item_name="Classic Jeans",
        price=39.99,
        color="Blue",
        item_size="M",
        stock_quantity=3,
    )


@pytest.fixture
def catalog_records():
    return [
        {"id": 11, "itemID": 1, "itemName": "Slim Fit Shirt", "price": 29.99,
         "color": "Red", "itemSize": "S", "stockQuantity": 10},
        {"id": 12, "itemID": 2, "itemName": "Classic Jeans", "price": 39.99,
         "color": "Blue", "itemSize": "M", "stockQuantity": 3},
        {"id": 13, "itemID": 3, "itemName": "", "price": 9.99,
         "color": "Black", "itemSize": "L", "stockQuantity": 1},
    ]
