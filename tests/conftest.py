import pytest
import pytest_asyncio
from tortoise import Tortoise

from stockkeeper.core.config import AlertSettings
from stockkeeper.core.db import MODELS_MODULES
from stockkeeper.models.item import Item
from stockkeeper.notifications.dispatcher import NotificationDispatcher
from stockkeeper.services.alert_engine import AlertEngine
from fakes import FixedClock, RecordingChannel

FALLBACK_EMAIL = "fallback@example.com"


@pytest_asyncio.fixture
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODELS_MODULES})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine(clock):
    return AlertEngine(AlertSettings(fallback_email=FALLBACK_EMAIL), clock=clock)


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def dispatcher(channel):
    return NotificationDispatcher(channel)


@pytest.fixture
def make_item(db):
    """Inserts item rows directly, without running alert evaluation."""

    async def _make(code="GLV-NIT-M", current_inventory=50, threshold=100, pending_po=0, barcode=None, **extra):
        return await Item.create(
            code=code,
            name=extra.pop("name", f"Item {code}"),
            current_inventory=current_inventory,
            pending_po=pending_po,
            safety_stock_threshold=threshold,
            barcode=barcode,
            **extra,
        )

    return _make
