import json

import pytest

from app.models import OrderItem, Outlet
from app.orders import OrderStore
from app.outlets import OutletDirectory
from app.store import Store


class RecordingRedis:
    """publish だけを記録する Redis の代役"""

    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))
        return 1


@pytest.fixture
async def store(tmp_path):
    store = Store.from_url(f"sqlite+aiosqlite:///{tmp_path / 'fulfillment.db'}")
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
def offline_store():
    return Store.from_url(None)


@pytest.fixture
def redis():
    return RecordingRedis()


@pytest.fixture
def outlets(store):
    return OutletDirectory(store)


@pytest.fixture
def orders(store, redis):
    return OrderStore(store, redis)


@pytest.fixture
async def seeded(outlets):
    await outlets.seed(
        [
            Outlet(id="o1", name="Main Canteen", base_delivery_time=20),
            Outlet(id="o2", name="Juice Bar", base_delivery_time=10),
            Outlet(id="closed", name="Night Cafe", is_active=False),
        ]
    )
    return outlets


def make_items(*menu_item_ids, quantity=1, unit_price=50.0):
    return [
        OrderItem(menu_item_id=menu_item_id, quantity=quantity, unit_price=unit_price)
        for menu_item_id in menu_item_ids or ("thali",)
    ]
