from unittest.mock import AsyncMock

import fakeredis
import pytest

from Utils.allowlist import AllowListStore
from Utils.licensekeeper import CommandContext, LicenseKeeper, RecordStore
from Utils.pending import PendingLedger
from Utils.systems import find_system

NOW = 1_700_000_000_000


def make_ctx(user_id="1001", now=NOW, settings=None):
    ctx = CommandContext(user_id=user_id, now=now)
    if settings is not None:
        ctx.settings = settings
    return ctx


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client):
    return RecordStore(redis_client)


@pytest.fixture
def allowlists(tmp_path):
    return AllowListStore(str(tmp_path))


@pytest.fixture
def ledger(tmp_path):
    return PendingLedger(str(tmp_path / "pending_licenses.json"))


@pytest.fixture
def verifier():
    mock = AsyncMock()
    mock.verify.return_value = True
    return mock


@pytest.fixture
def roles():
    mock = AsyncMock()
    mock.grant.return_value = True
    mock.revoke.return_value = True
    mock.resync.return_value = ([], [])
    return mock


@pytest.fixture
def groups():
    return AsyncMock()


@pytest.fixture
def keeper(store, allowlists, ledger, verifier, roles, groups):
    return LicenseKeeper(store, allowlists, ledger, verifier, roles=roles, groups=groups)


@pytest.fixture
def lightsabers():
    return find_system("Lightsabers")


@pytest.fixture
def blasters():
    return find_system("Blasters")
