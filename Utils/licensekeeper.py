# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import asyncio
import logging
import os
import re
import time
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional, Set, Tuple

import redis.asyncio as redis
from dotenv import load_dotenv

from .allowlist import AllowListStore
from .audit import AuditEvent, AuditKind, AuditMirror
from .exceptions import (
    AlreadyRedeemedError,
    CooldownActiveError,
    InvalidLicenseError,
    KeyNotPendingError,
    LicenseKeeperError,
    MissingCredentialError,
    NoIdentityError,
    NoRedemptionError,
    StoreConnectionError,
    TargetNotFoundError,
    UnknownSystemError,
    ValidationError,
)
from .payhip import PayhipVerifier
from .pending import PendingLedger
from .roblox import RobloxGroupClient
from .roles import DiscordRoleManager
from .settings import LogSettings, SettingsStore
from .systems import (
    COOLDOWN_MS,
    DAY_MS,
    FORCED_KEY_PREFIX,
    GENERATED_KEY_PREFIX,
    SYSTEMS,
    SystemDefinition,
    find_system,
)

load_dotenv()

logger = logging.getLogger(__name__)


# ============================================================================
# LOGGING
# ============================================================================

class ColoredFormatter(logging.Formatter):
    """Colored log formatter for better visibility"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'


def configure_logging(level: int = logging.INFO, log_file: str = 'licensekeeper.log'):
    """Rotating file log plus colored console output"""
    file_handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[file_handler, console_handler], force=True)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def now_ms() -> int:
    return int(time.time() * 1000)


def cooldown_days_left(cooldown_ends_at: int, now: int) -> int:
    """Whole days remaining, rounded up"""
    remaining = max(0, cooldown_ends_at - now)
    return -(-remaining // DAY_MS)


@dataclass
class Account:
    discord_id: str
    roblox_id: Optional[str]
    joined_at: int

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "Account":
        return cls(
            discord_id=data['discord_id'],
            roblox_id=data.get('roblox_id') or None,
            joined_at=int(data.get('joined_at', 0)),
        )


@dataclass
class Redemption:
    id: int
    discord_id: str
    system: str
    license_key: str
    roblox_id: Optional[str]
    verified_at: int
    cooldown_ends_at: int

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "Redemption":
        return cls(
            id=int(data.get('id', 0)),
            discord_id=data['discord_id'],
            system=data['system'],
            license_key=data['license_key'],
            roblox_id=data.get('roblox_id') or None,
            verified_at=int(data['verified_at']),
            cooldown_ends_at=int(data['cooldown_ends_at']),
        )

    def to_hash(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'discord_id': self.discord_id,
            'system': self.system,
            'license_key': self.license_key,
            'roblox_id': self.roblox_id or '',
            'verified_at': self.verified_at,
            'cooldown_ends_at': self.cooldown_ends_at,
        }


@dataclass
class CommandContext:
    """Per-request handle: who is acting, the settings loaded for this request, and the clock"""
    user_id: str
    settings: LogSettings = field(default_factory=LogSettings)
    now: int = field(default_factory=now_ms)


@dataclass
class RedemptionResult:
    redemption: Redemption
    system: SystemDefinition
    role_granted: bool = False
    allowlisted: bool = False

    @property
    def join_hint(self) -> str:
        return (f"➡️ Join the **{self.system.name}** Roblox group: {self.system.group_url}\n"
                f"➡️ After you click “Join Group” in Roblox, run `/join_sync {self.system.name}`.")


@dataclass
class RevocationResult:
    discord_id: str
    resolved_by: str
    revoked: List[Redemption] = field(default_factory=list)
    system_filter: Optional[str] = None


# ============================================================================
# RECORD STORE
# ============================================================================

class RecordStore:
    """Accounts, Redemptions and AuditEvents in Redis.

    Keys:
        account:{discord_id}              hash
        redemption:key:{license_key}      hash, created with HSETNX so a key is consumed once
        redemptions:user:{discord_id}     set of license keys
        redemption_seq                    counter for Redemption.id
        audit_log                         list of JSON events, newest first
    """

    ACCOUNT_KEY = "account:{}"
    REDEMPTION_KEY = "redemption:key:{}"
    USER_INDEX_KEY = "redemptions:user:{}"
    SEQUENCE_KEY = "redemption_seq"
    AUDIT_KEY = "audit_log"

    def __init__(self, redis_client):
        self.redis = redis_client

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_account(self, discord_id: str) -> Optional[Account]:
        data = await self.redis.hgetall(self.ACCOUNT_KEY.format(discord_id))
        if not data:
            return None
        return Account.from_hash(data)

    async def ensure_account(self, discord_id: str, joined_at: int) -> None:
        key = self.ACCOUNT_KEY.format(discord_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hsetnx(key, 'discord_id', discord_id)
            pipe.hsetnx(key, 'joined_at', joined_at)
            await pipe.execute()

    async def set_account_roblox(self, discord_id: str, roblox_id: str) -> None:
        await self.redis.hset(self.ACCOUNT_KEY.format(discord_id), 'roblox_id', roblox_id)

    # ------------------------------------------------------------------
    # Redemptions
    # ------------------------------------------------------------------

    async def insert_redemption(self, discord_id: str, system: str, license_key: str,
                                roblox_id: Optional[str], verified_at: int,
                                cooldown_ends_at: int) -> Redemption:
        key = self.REDEMPTION_KEY.format(license_key)
        claimed = await self.redis.hsetnx(key, 'license_key', license_key)
        if not claimed:
            raise AlreadyRedeemedError(license_key)

        redemption = Redemption(
            id=int(await self.redis.incr(self.SEQUENCE_KEY)),
            discord_id=discord_id,
            system=system,
            license_key=license_key,
            roblox_id=roblox_id,
            verified_at=verified_at,
            cooldown_ends_at=cooldown_ends_at,
        )
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping=redemption.to_hash())
            pipe.sadd(self.USER_INDEX_KEY.format(discord_id), license_key)
            await pipe.execute()
        return redemption

    async def get_redemption(self, license_key: str) -> Optional[Redemption]:
        data = await self.redis.hgetall(self.REDEMPTION_KEY.format(license_key))
        if not data or 'system' not in data:
            return None
        return Redemption.from_hash(data)

    async def redemptions_for(self, discord_id: str) -> List[Redemption]:
        keys = await self.redis.smembers(self.USER_INDEX_KEY.format(discord_id))
        redemptions = []
        for license_key in keys:
            redemption = await self.get_redemption(license_key)
            if redemption:
                redemptions.append(redemption)
        redemptions.sort(key=lambda r: (r.verified_at, r.id))
        return redemptions

    async def all_redemptions(self) -> List[Redemption]:
        pattern = self.REDEMPTION_KEY.format('*')
        redemptions = []
        cursor = 0
        while True:
            cursor, keys = await self.redis.scan(cursor, match=pattern, count=100)
            for key in keys:
                data = await self.redis.hgetall(key)
                if data and 'system' in data:
                    redemptions.append(Redemption.from_hash(data))
            if cursor == 0:
                break
        redemptions.sort(key=lambda r: (r.verified_at, r.id))
        return redemptions

    async def find_by_roblox(self, roblox_id: str, system: Optional[str] = None) -> List[Redemption]:
        return [
            r for r in await self.all_redemptions()
            if r.roblox_id == roblox_id and (system is None or r.system == system)
        ]

    async def update_redemption(self, license_key: str, roblox_id: str, cooldown_ends_at: int) -> None:
        await self.redis.hset(self.REDEMPTION_KEY.format(license_key), mapping={
            'roblox_id': roblox_id,
            'cooldown_ends_at': cooldown_ends_at,
        })

    async def delete_redemption(self, redemption: Redemption) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(self.REDEMPTION_KEY.format(redemption.license_key))
            pipe.srem(self.USER_INDEX_KEY.format(redemption.discord_id), redemption.license_key)
            await pipe.execute()

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> None:
        await self.redis.lpush(self.AUDIT_KEY, event.to_json())

    async def recent_events(self, limit: int = 10) -> List[AuditEvent]:
        raw = await self.redis.lrange(self.AUDIT_KEY, 0, limit - 1)
        return [AuditEvent.from_json(entry) for entry in raw]


# ============================================================================
# LICENSE KEEPER
# ============================================================================

class LicenseKeeper:
    """Redemption, cooldown, revocation and role/allow-list mirroring"""

    def __init__(self, store: RecordStore, allowlists: AllowListStore, ledger: PendingLedger,
                 verifier: PayhipVerifier, roles: DiscordRoleManager = None,
                 groups: RobloxGroupClient = None, mirror: AuditMirror = None,
                 systems: List[SystemDefinition] = None, cooldown_ms: int = COOLDOWN_MS):
        self.store = store
        self.allowlists = allowlists
        self.ledger = ledger
        self.verifier = verifier
        self.roles = roles
        self.groups = groups or RobloxGroupClient()
        self.mirror = mirror
        self.systems = systems if systems is not None else SYSTEMS
        self.cooldown_ms = cooldown_ms

        self.metrics = {
            'redemptions': 0,
            'updates': 0,
            'revocations': 0,
            'force_grants': 0,
            'failed_projections': 0,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_system(self, name: str) -> SystemDefinition:
        system = find_system(name, self.systems)
        if not system:
            raise UnknownSystemError((name or '').strip())
        return system

    @staticmethod
    def _require(value: Optional[str], field_name: str) -> str:
        value = (value or '').strip()
        if not value:
            raise ValidationError(f"Missing {field_name}.", context={'field': field_name})
        return value

    def _check_cooldown(self, rows: List[Redemption], system: SystemDefinition, now: int, action: str):
        for row in rows:
            if now < row.cooldown_ends_at:
                days_left = cooldown_days_left(row.cooldown_ends_at, now)
                raise CooldownActiveError(
                    f"You must wait {days_left} more day(s) before {action} **{system.name}**.",
                    system=system.name, days_left=days_left, cooldown_ends_at=row.cooldown_ends_at)

    async def _record(self, ctx: CommandContext, kind: AuditKind, target_id: Optional[str],
                      system: Optional[str]) -> AuditEvent:
        event = AuditEvent(kind=kind.value, actor_id=ctx.user_id, target_id=target_id,
                           system=system, timestamp=ctx.now)
        await self.store.append_event(event)
        if self.mirror:
            await self.mirror.publish(ctx.settings, event)
        return event

    def _project_add(self, system: SystemDefinition, roblox_id: str) -> bool:
        try:
            self.allowlists.add(system, roblox_id)
            return True
        except (OSError, ValueError) as e:
            self.metrics['failed_projections'] += 1
            logger.error(f"Allow-list update failed for {system.name}: {e}", exc_info=True)
            return False

    async def _project_remove(self, system: SystemDefinition, roblox_id: Optional[str]) -> None:
        if not roblox_id:
            return
        # Another grant may still place the same id on this list
        if await self.store.find_by_roblox(roblox_id, system.name):
            logger.info(f"{roblox_id} still referenced on {system.name}; keeping allow-list entry")
            return
        try:
            self.allowlists.remove(system, roblox_id)
        except (OSError, ValueError) as e:
            self.metrics['failed_projections'] += 1
            logger.error(f"Allow-list update failed for {system.name}: {e}", exc_info=True)

    async def _grant_role(self, discord_id: str, system: SystemDefinition) -> bool:
        if not self.roles:
            return False
        return await self.roles.grant(discord_id, system)

    async def _resolve_user(self, identifier: str) -> Tuple[Optional[str], str]:
        """Discord id first, then a scan of Redemptions for a Roblox id"""
        if await self.store.get_account(identifier) or await self.store.redemptions_for(identifier):
            return identifier, 'discord'
        matches = await self.store.find_by_roblox(identifier)
        if matches:
            return matches[0].discord_id, 'roblox'
        return None, ''

    # ------------------------------------------------------------------
    # Redemption
    # ------------------------------------------------------------------

    async def redeem(self, ctx: CommandContext, roblox_id: str, license_key: str) -> RedemptionResult:
        roblox_id = self._require(roblox_id, 'roblox_id')
        license_key = self._require(license_key, 'license_key')

        grant = self.ledger.get(license_key)
        if grant is None:
            raise KeyNotPendingError(license_key)
        system = self.get_system(grant.system)

        if not license_key.startswith(GENERATED_KEY_PREFIX):
            if not await self.verifier.verify(grant.system, license_key):
                raise InvalidLicenseError("This license key is invalid or has already been used.",
                                          context={'system': system.name})

        if await self.store.get_redemption(license_key):
            raise AlreadyRedeemedError(license_key)

        rows = [r for r in await self.store.redemptions_for(ctx.user_id) if r.system == system.name]
        self._check_cooldown(rows, system, ctx.now, "redeeming another license for")

        # Key claim precedes any account write
        redemption = await self.store.insert_redemption(
            ctx.user_id, system.name, license_key, roblox_id,
            verified_at=ctx.now, cooldown_ends_at=ctx.now + self.cooldown_ms)
        await self.store.ensure_account(ctx.user_id, ctx.now)
        await self.store.set_account_roblox(ctx.user_id, roblox_id)
        self.ledger.pop(license_key)
        await self._record(ctx, AuditKind.REDEEMED, roblox_id, system.name)

        allowlisted = self._project_add(system, roblox_id)
        role_granted = await self._grant_role(ctx.user_id, system)

        self.metrics['redemptions'] += 1
        logger.info(f"{ctx.user_id} redeemed {system.name} for Roblox ID {roblox_id}")
        return RedemptionResult(redemption, system, role_granted=role_granted, allowlisted=allowlisted)

    async def update_identity(self, ctx: CommandContext, system_name: str, new_roblox_id: str) -> Redemption:
        system = self.get_system(system_name)
        new_roblox_id = self._require(new_roblox_id, 'new_id')

        rows = [r for r in await self.store.redemptions_for(ctx.user_id) if r.system == system.name]
        if not rows:
            raise NoRedemptionError(f"You haven't redeemed a license for **{system.name}**.",
                                    context={'system': system.name})
        self._check_cooldown(rows, system, ctx.now, "updating your ID for")

        current = rows[-1]
        old_roblox_id = current.roblox_id
        current.roblox_id = new_roblox_id
        current.cooldown_ends_at = ctx.now + self.cooldown_ms

        await self.store.update_redemption(current.license_key, new_roblox_id, current.cooldown_ends_at)
        await self.store.set_account_roblox(ctx.user_id, new_roblox_id)
        await self._record(ctx, AuditKind.UPDATED, new_roblox_id, system.name)

        await self._project_remove(system, old_roblox_id)
        self._project_add(system, new_roblox_id)

        self.metrics['updates'] += 1
        logger.info(f"{ctx.user_id} moved {system.name} from {old_roblox_id} to {new_roblox_id}")
        return current

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def _revoke_one(self, ctx: CommandContext, redemption: Redemption) -> None:
        await self.store.delete_redemption(redemption)
        await self._record(ctx, AuditKind.REVOKED, redemption.roblox_id, redemption.system)

        system = find_system(redemption.system, self.systems)
        if not system:
            logger.warning(f"Revoked redemption {redemption.license_key} for unknown system {redemption.system}")
            return

        await self._project_remove(system, redemption.roblox_id)

        still_owned = any(r.system == system.name
                          for r in await self.store.redemptions_for(redemption.discord_id))
        if self.roles and not still_owned:
            await self.roles.revoke(redemption.discord_id, system)

    async def revoke(self, ctx: CommandContext, target: str, system_name: Optional[str] = None) -> RevocationResult:
        target = self._require(target, 'target')
        system_filter = self.get_system(system_name) if system_name and system_name.strip() else None

        by_key = await self.store.get_redemption(target)
        if by_key:
            if system_filter and by_key.system != system_filter.name:
                raise ValidationError(
                    f"That license belongs to **{by_key.system}**, not **{system_filter.name}**.",
                    context={'license_key': target})
            await self._revoke_one(ctx, by_key)
            self.metrics['revocations'] += 1
            return RevocationResult(by_key.discord_id, 'license', [by_key],
                                    system_filter.name if system_filter else None)

        discord_id, resolved_by = await self._resolve_user(target)
        if not discord_id:
            raise TargetNotFoundError("No user or license found with that identifier.",
                                      context={'target': target})

        rows = await self.store.redemptions_for(discord_id)
        if not rows:
            raise NoRedemptionError("That user has no active whitelist entries.",
                                    context={'discord_id': discord_id})
        if system_filter:
            rows = [r for r in rows if r.system == system_filter.name]
            if not rows:
                raise NoRedemptionError(f"That user does not have a whitelist for **{system_filter.name}**.",
                                        context={'discord_id': discord_id, 'system': system_filter.name})

        for redemption in rows:
            await self._revoke_one(ctx, redemption)

        self.metrics['revocations'] += len(rows)
        logger.info(f"{ctx.user_id} revoked {len(rows)} redemption(s) from {discord_id} (via {resolved_by})")
        return RevocationResult(discord_id, resolved_by, rows, system_filter.name if system_filter else None)

    async def force_grant(self, ctx: CommandContext, roblox_id: str, system_name: str) -> RedemptionResult:
        roblox_id = self._require(roblox_id, 'roblox_id')
        system = self.get_system(system_name)

        sanitized = re.sub(r"\s+", "_", system.name)
        placeholder = f"{FORCED_KEY_PREFIX}{sanitized}-{roblox_id}-{ctx.now}"

        redemption = await self.store.insert_redemption(
            ctx.user_id, system.name, placeholder, roblox_id,
            verified_at=ctx.now, cooldown_ends_at=ctx.now + self.cooldown_ms)
        await self.store.ensure_account(ctx.user_id, ctx.now)
        await self._record(ctx, AuditKind.FORCE_GRANTED, roblox_id, system.name)

        allowlisted = self._project_add(system, roblox_id)
        role_granted = await self._grant_role(ctx.user_id, system)

        self.metrics['force_grants'] += 1
        logger.info(f"{ctx.user_id} force-whitelisted {roblox_id} for {system.name}")
        return RedemptionResult(redemption, system, role_granted=role_granted, allowlisted=allowlisted)

    async def generate_key(self, ctx: CommandContext, system_name: str) -> str:
        system = self.get_system(system_name)
        key = self.ledger.mint(system.name)
        await self._record(ctx, AuditKind.KEY_GENERATED, None, system.name)
        return key

    async def rebuild_allowlists(self) -> Dict[str, int]:
        """Recompute every allow-list file from the Redemption rows"""
        redemptions = await self.store.all_redemptions()
        counts = {}
        for system in self.systems:
            entries = self.allowlists.overwrite(
                system, (r.roblox_id for r in redemptions if r.system == system.name))
            counts[system.name] = len(entries)
        logger.info(f"Rebuilt allow-lists: {counts}")
        return counts

    # ------------------------------------------------------------------
    # Roles & groups
    # ------------------------------------------------------------------

    async def resync_roles(self, ctx: CommandContext) -> Tuple[List[str], List[str]]:
        if not self.roles:
            raise LicenseKeeperError("Role sync is not available right now.")
        owned: Set[str] = {r.system for r in await self.store.redemptions_for(ctx.user_id)}
        return await self.roles.resync(ctx.user_id, owned, self.systems)

    async def accept_join(self, ctx: CommandContext, system_name: str) -> str:
        system = self.get_system(system_name)
        api_key = system.api_key()
        if not api_key:
            raise MissingCredentialError(f"Missing API key for the **{system.name}** group.",
                                         context={'env': system.api_key_env})

        rows = [r for r in await self.store.redemptions_for(ctx.user_id) if r.system == system.name]
        roblox_id = rows[-1].roblox_id if rows and rows[-1].roblox_id else None
        if not roblox_id:
            account = await self.store.get_account(ctx.user_id)
            roblox_id = account.roblox_id if account else None
        if not roblox_id:
            raise NoIdentityError("No Roblox ID on record. Redeem a license with `/whitelist` first.",
                                  context={'discord_id': ctx.user_id})

        await self.groups.accept_join_request(system.group_id, roblox_id, api_key)
        await self._record(ctx, AuditKind.JOIN_ACCEPTED, roblox_id, system.name)
        return roblox_id

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    async def status(self, ctx: CommandContext) -> Tuple[Account, List[Tuple[Redemption, int]]]:
        account = await self.store.get_account(ctx.user_id)
        if not account:
            raise NoRedemptionError("You have no whitelist records yet.")
        rows = await self.store.redemptions_for(ctx.user_id)
        if not rows:
            raise NoRedemptionError("You haven't redeemed any licenses yet.")
        return account, [(r, cooldown_days_left(r.cooldown_ends_at, ctx.now)) for r in rows]

    async def history(self, ctx: CommandContext) -> List[Redemption]:
        rows = await self.store.redemptions_for(ctx.user_id)
        if not rows:
            raise NoRedemptionError("You have not redeemed any licenses yet.")
        return rows

    async def lookup(self, identifier: str) -> Tuple[str, List[Redemption]]:
        identifier = self._require(identifier, 'discord_or_roblox')
        by_key = await self.store.get_redemption(identifier)
        if by_key:
            discord_id = by_key.discord_id
        else:
            discord_id, _ = await self._resolve_user(identifier)
        if not discord_id:
            raise TargetNotFoundError("No user found with that ID.", context={'target': identifier})

        rows = await self.store.redemptions_for(discord_id)
        if not rows:
            raise NoRedemptionError("That user has no whitelist entries.", context={'discord_id': discord_id})
        return discord_id, rows

    async def recent_events(self, limit: int = 10) -> List[AuditEvent]:
        if limit is None:
            limit = 10
        if limit < 1:
            raise ValidationError("Limit must be at least 1.", context={'limit': limit})
        return await self.store.recent_events(limit)


# ============================================================================
# SHARED INSTANCE
# ============================================================================

_shared_keeper: Optional[LicenseKeeper] = None
_shared_settings: Optional[SettingsStore] = None
_initialization_lock = asyncio.Lock()


async def connect_redis(redis_url: str = None, pool_size: int = 20, timeout: int = 10):
    """Redis client over a connection pool, verified with PING"""
    redis_url = redis_url or os.getenv('REDIS_URL', 'redis://localhost:6379')
    try:
        pool = redis.ConnectionPool.from_url(
            redis_url,
            encoding='utf-8',
            decode_responses=True,
            max_connections=pool_size,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
            retry_on_timeout=True,
            health_check_interval=30
        )
        client = redis.Redis(connection_pool=pool)
        await client.ping()
        logger.info("Connected to Redis")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise StoreConnectionError(f"Redis connection failed: {e}", context={'redis_url': redis_url}, cause=e)


def data_path(name: str) -> str:
    return os.path.join(os.getenv('DATA_DIR', '.'), name)


def get_settings_store() -> SettingsStore:
    global _shared_settings
    if _shared_settings is None:
        _shared_settings = SettingsStore(data_path('settings.json'))
    return _shared_settings


async def get_shared_keeper(bot=None) -> LicenseKeeper:
    """Get or create the shared LicenseKeeper; attaches the bot for roles and log mirroring"""
    global _shared_keeper

    async with _initialization_lock:
        if _shared_keeper is None:
            logger.info("Initializing shared LicenseKeeper...")
            client = await connect_redis()
            _shared_keeper = LicenseKeeper(
                store=RecordStore(client),
                allowlists=AllowListStore(os.getenv('DATA_DIR', '.')),
                ledger=PendingLedger(data_path('pending_licenses.json')),
                verifier=PayhipVerifier(),
                groups=RobloxGroupClient(),
            )

        if bot and _shared_keeper.roles is None:
            _shared_keeper.roles = DiscordRoleManager(bot)
            _shared_keeper.mirror = AuditMirror(bot)
            logger.info("Attached bot to shared LicenseKeeper for roles and log mirroring")

        return _shared_keeper


async def close_shared_keeper():
    global _shared_keeper

    async with _initialization_lock:
        if _shared_keeper is None:
            return
        try:
            await _shared_keeper.store.redis.close()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing shared keeper: {e}")
        finally:
            _shared_keeper = None
