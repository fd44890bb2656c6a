# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import traceback
from datetime import datetime
from typing import Any, Dict


class LicenseKeeperError(Exception):
    """Base exception with detailed context"""
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, context: Dict[str, Any] = None, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()
        self.traceback_str = traceback.format_exc() if cause else None


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationError(LicenseKeeperError):
    """Malformed or missing input"""
    error_code = "VALIDATION_ERROR"


class UnknownSystemError(ValidationError):
    error_code = "UNKNOWN_SYSTEM"

    def __init__(self, system: str, **kwargs):
        super().__init__(f"I don't recognize a system named **{system}**.", context={'system': system}, **kwargs)
        self.system = system


# ============================================================================
# NOT FOUND
# ============================================================================

class KeyNotPendingError(LicenseKeeperError):
    error_code = "KEY_NOT_PENDING"

    def __init__(self, license_key: str):
        super().__init__("That license key was not recognized or already redeemed.",
                         context={'license_key': license_key})


class NoRedemptionError(LicenseKeeperError):
    error_code = "NO_REDEMPTION"


class TargetNotFoundError(LicenseKeeperError):
    error_code = "TARGET_NOT_FOUND"


class NoIdentityError(LicenseKeeperError):
    error_code = "NO_IDENTITY"


class MemberNotFoundError(LicenseKeeperError):
    error_code = "MEMBER_NOT_FOUND"


# ============================================================================
# POLICY
# ============================================================================

class AlreadyRedeemedError(LicenseKeeperError):
    error_code = "ALREADY_REDEEMED"

    def __init__(self, license_key: str):
        super().__init__("That license key has already been redeemed.",
                         context={'license_key': license_key})


class CooldownActiveError(LicenseKeeperError):
    """Cooldown for an (account, system) pair has not elapsed"""
    error_code = "COOLDOWN_ACTIVE"

    def __init__(self, message: str, system: str, days_left: int, cooldown_ends_at: int):
        super().__init__(message, context={
            'system': system,
            'days_left': days_left,
            'cooldown_ends_at': cooldown_ends_at,
        })
        self.system = system
        self.days_left = days_left
        self.cooldown_ends_at = cooldown_ends_at


# ============================================================================
# REMOTE DEPENDENCIES
# ============================================================================

class VerifierUnavailableError(LicenseKeeperError):
    error_code = "VERIFIER_UNAVAILABLE"


class InvalidLicenseError(LicenseKeeperError):
    error_code = "INVALID_LICENSE"


class GroupServiceError(LicenseKeeperError):
    error_code = "GROUP_SERVICE_ERROR"


class MissingCredentialError(LicenseKeeperError):
    error_code = "MISSING_CREDENTIAL"


class StoreConnectionError(LicenseKeeperError):
    """Redis connection failures"""
    error_code = "STORE_UNAVAILABLE"
