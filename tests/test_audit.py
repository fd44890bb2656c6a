from unittest.mock import AsyncMock, MagicMock

from conftest import NOW, make_ctx
from Utils.audit import AuditEvent, AuditKind, AuditMirror
from Utils.licensekeeper import LicenseKeeper
from Utils.settings import LogSettings


def _event():
    return AuditEvent(kind=AuditKind.REVOKED.value, actor_id="9000", target_id="111",
                      system="Blasters", timestamp=NOW)


def _bot_with_channel(channel):
    bot = MagicMock()
    bot.get_channel.return_value = channel
    bot.fetch_channel = AsyncMock(return_value=channel)
    return bot


async def test_mirror_disabled_sends_nothing():
    channel = MagicMock()
    channel.send = AsyncMock()
    mirror = AuditMirror(_bot_with_channel(channel))

    sent = await mirror.publish(LogSettings(logs_enabled=False, logs_channel_id=55), _event())

    assert sent is False
    channel.send.assert_not_awaited()


async def test_mirror_sends_formatted_line():
    channel = MagicMock()
    channel.send = AsyncMock()
    mirror = AuditMirror(_bot_with_channel(channel))

    sent = await mirror.publish(LogSettings(logs_enabled=True, logs_channel_id=55), _event())

    assert sent is True
    message = channel.send.await_args.args[0]
    assert message.startswith("📝 [2023-11-14T22:13:20+00:00]")
    assert "REVOKED" in message
    assert "**Blasters**" in message


async def test_mirror_failure_is_swallowed():
    channel = MagicMock()
    channel.send = AsyncMock(side_effect=RuntimeError("boom"))
    mirror = AuditMirror(_bot_with_channel(channel))

    assert await mirror.publish(LogSettings(logs_enabled=True, logs_channel_id=55), _event()) is False


async def test_redeem_mirrors_with_request_settings(store, allowlists, ledger, verifier, roles):
    mirror = MagicMock()
    mirror.publish = AsyncMock(return_value=True)
    keeper = LicenseKeeper(store, allowlists, ledger, verifier, roles=roles, mirror=mirror)
    settings = LogSettings(logs_enabled=True, logs_channel_id=55)

    await keeper.redeem(make_ctx(settings=settings), "111", ledger.mint("Lightsabers"))

    published_settings, event = mirror.publish.await_args.args
    assert published_settings is settings
    assert event.kind == AuditKind.REDEEMED.value


def test_event_json_round_trip():
    event = _event()
    assert AuditEvent.from_json(event.to_json()) == event
