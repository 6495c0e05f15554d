import pytest

from hubsync import notifications
from hubsync.config import SyncConfig
from hubsync.sync import HubSync

from fakes import HUB, SRC_A, SRC_B, FakeStore


@pytest.fixture(autouse=True)
def no_global_notifier(monkeypatch):
    """Each test starts without a Teams notifier installed."""
    monkeypatch.setattr(notifications, "_notifier", None)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def config():
    return SyncConfig(token="secret_test", source_ids=[SRC_A, SRC_B], hub_id=HUB, show_progress=False)


@pytest.fixture
def engine(config, store):
    return HubSync(config, store)
