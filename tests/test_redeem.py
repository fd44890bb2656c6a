from unittest.mock import AsyncMock

import pytest

from conftest import NOW, make_ctx
from Utils.audit import AuditKind
from Utils.exceptions import (
    AlreadyRedeemedError,
    CooldownActiveError,
    InvalidLicenseError,
    KeyNotPendingError,
    ValidationError,
    VerifierUnavailableError,
)
from Utils.systems import COOLDOWN_MS, DAY_MS


async def test_generated_key_skips_verifier(keeper, ledger, allowlists, verifier, roles, lightsabers):
    key = ledger.mint("Lightsabers")

    result = await keeper.redeem(make_ctx(), "111", key)

    verifier.verify.assert_not_awaited()
    assert result.system.name == "Lightsabers"
    assert result.redemption.roblox_id == "111"
    assert result.redemption.cooldown_ends_at == NOW + COOLDOWN_MS
    assert result.role_granted
    assert key not in ledger
    assert allowlists.read(lightsabers) == ["111"]
    roles.grant.assert_awaited_once_with("1001", lightsabers)
    assert "https://www.roblox.com/groups/32064664" in result.join_hint
    assert "/join_sync Lightsabers" in result.join_hint


async def test_payhip_key_is_verified(keeper, ledger, store, verifier):
    ledger.add("PAYHIP-KEY-1", "Blasters", email="buyer@example.com")

    await keeper.redeem(make_ctx(), "555", "PAYHIP-KEY-1")

    verifier.verify.assert_awaited_once_with("Blasters", "PAYHIP-KEY-1")
    account = await store.get_account("1001")
    assert account.roblox_id == "555"
    assert account.joined_at == NOW
    assert (await store.get_redemption("PAYHIP-KEY-1")).system == "Blasters"


async def test_invalid_license_leaves_ledger(keeper, ledger, store, verifier, allowlists, blasters):
    ledger.add("BAD-KEY", "Blasters")
    verifier.verify.return_value = False

    with pytest.raises(InvalidLicenseError):
        await keeper.redeem(make_ctx(), "555", "BAD-KEY")

    assert "BAD-KEY" in ledger
    assert await store.get_redemption("BAD-KEY") is None
    assert not allowlists.exists(blasters)


async def test_verifier_outage_is_reported(keeper, ledger, verifier):
    ledger.add("SOME-KEY", "Blasters")
    verifier.verify.side_effect = VerifierUnavailableError("Could not verify license right now. Please try again later.")

    with pytest.raises(VerifierUnavailableError, match="try again later"):
        await keeper.redeem(make_ctx(), "555", "SOME-KEY")

    assert "SOME-KEY" in ledger


async def test_unknown_key_mutates_nothing(keeper, store, allowlists, roles, lightsabers):
    with pytest.raises(KeyNotPendingError, match="not recognized or already redeemed"):
        await keeper.redeem(make_ctx(), "111", "NOPE")

    assert await store.get_account("1001") is None
    assert await store.recent_events() == []
    assert not allowlists.exists(lightsabers)
    roles.grant.assert_not_awaited()


async def test_redeemed_key_cannot_be_reused(keeper, ledger):
    key = ledger.mint("Lightsabers")
    await keeper.redeem(make_ctx(), "111", key)

    # Even if the ledger entry came back, the stored redemption wins
    ledger.add(key, "Lightsabers")
    with pytest.raises(AlreadyRedeemedError):
        await keeper.redeem(make_ctx(user_id="2002", now=NOW + 1), "222", key)


async def test_concurrent_insert_is_rejected(store):
    await store.insert_redemption("1001", "Lightsabers", "RACE", "111", NOW, NOW + COOLDOWN_MS)

    with pytest.raises(AlreadyRedeemedError):
        await store.insert_redemption("2002", "Lightsabers", "RACE", "222", NOW, NOW + COOLDOWN_MS)

    assert (await store.get_redemption("RACE")).discord_id == "1001"


async def test_cooldown_blocks_second_key_for_same_system(keeper, ledger):
    await keeper.redeem(make_ctx(), "111", ledger.mint("Lightsabers"))
    second = ledger.mint("Lightsabers")

    with pytest.raises(CooldownActiveError) as excinfo:
        await keeper.redeem(make_ctx(now=NOW + DAY_MS), "111", second)

    assert excinfo.value.days_left == 29
    assert "wait 29 more day(s)" in excinfo.value.message
    assert second in ledger


async def test_other_system_not_affected_by_cooldown(keeper, ledger, allowlists, blasters):
    await keeper.redeem(make_ctx(), "111", ledger.mint("Lightsabers"))

    result = await keeper.redeem(make_ctx(now=NOW + 1), "111", ledger.mint("Blasters"))

    assert result.system.name == "Blasters"
    assert allowlists.read(blasters) == ["111"]


async def test_role_failure_does_not_fail_redemption(keeper, ledger, roles):
    roles.grant.return_value = False

    result = await keeper.redeem(make_ctx(), "111", ledger.mint("Lightsabers"))

    assert result.role_granted is False
    assert result.allowlisted is True


async def test_redemption_is_audited(keeper, ledger, store):
    await keeper.redeem(make_ctx(), "111", ledger.mint("Lightsabers"))

    events = await store.recent_events()
    assert len(events) == 1
    assert events[0].kind == AuditKind.REDEEMED.value
    assert events[0].actor_id == "1001"
    assert events[0].target_id == "111"
    assert events[0].system == "Lightsabers"


async def test_blank_roblox_id_rejected(keeper, ledger):
    key = ledger.mint("Lightsabers")

    with pytest.raises(ValidationError):
        await keeper.redeem(make_ctx(), "   ", key)

    assert key in ledger


async def test_losing_redeem_race_leaves_account_untouched(keeper, ledger, store, allowlists, lightsabers, monkeypatch):
    await store.ensure_account("2002", NOW - 1)
    await store.set_account_roblox("2002", "999")
    ledger.add("RACE", "Lightsabers")
    await store.insert_redemption("1001", "Lightsabers", "RACE", "111", NOW, NOW + COOLDOWN_MS)
    # The loser read the store before the winner's row landed
    monkeypatch.setattr(store, "get_redemption", AsyncMock(return_value=None))

    with pytest.raises(AlreadyRedeemedError):
        await keeper.redeem(make_ctx(user_id="2002"), "555", "RACE")

    assert (await store.get_account("2002")).roblox_id == "999"
    assert "RACE" in ledger
    assert await store.recent_events() == []
    assert not allowlists.exists(lightsabers)


async def test_corrupt_allowlist_does_not_fail_redemption(keeper, ledger, allowlists, roles, store, lightsabers):
    allowlists.path_for(lightsabers).write_text("{not json", encoding="utf-8")
    key = ledger.mint("Lightsabers")

    result = await keeper.redeem(make_ctx(), "111", key)

    assert result.allowlisted is False
    assert result.role_granted is True
    roles.grant.assert_awaited_once_with("1001", lightsabers)
    assert key not in ledger
    assert (await store.get_redemption(key)).roblox_id == "111"
    assert keeper.metrics['failed_projections'] == 1
