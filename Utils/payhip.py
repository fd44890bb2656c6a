# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import hashlib
import hmac
import logging
import os
from typing import Optional

import httpx

from .exceptions import VerifierUnavailableError

logger = logging.getLogger(__name__)

VERIFY_URL = "https://payhip.com/api/v1/license/verify"


def expected_signature(api_key: str) -> str:
    """Payhip signs webhooks with sha256(api key)"""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def signature_matches(signature: Optional[str], api_key: Optional[str]) -> bool:
    if not isinstance(signature, str) or not signature or not api_key:
        return False
    return hmac.compare_digest(signature.encode("utf-8"), expected_signature(api_key).encode("utf-8"))


class PayhipVerifier:
    """Confirms a Payhip-issued license key is genuine and unused"""

    def __init__(self, api_key: str = None, client: httpx.AsyncClient = None, timeout: float = 10.0):
        self.api_key = api_key if api_key is not None else os.getenv("PAYHIP_API_KEY", "")
        self._client = client
        self.timeout = timeout

    async def verify(self, product_key: str, license_key: str) -> bool:
        """Returns the remote validity flag; raises VerifierUnavailableError on transport/HTTP failure"""
        params = {'product_key': product_key, 'license_key': license_key}
        headers = {'Authorization': self.api_key}
        try:
            if self._client is not None:
                response = await self._client.get(VERIFY_URL, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(VERIFY_URL, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Payhip responded with status {e.response.status_code}: {e.response.text[:200]}")
            raise VerifierUnavailableError(
                "Could not verify license right now. Please try again later.",
                context={'status': e.response.status_code}, cause=e)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Payhip verification failed: {e}")
            raise VerifierUnavailableError(
                "Could not verify license right now. Please try again later.", cause=e)

        valid = bool(data.get('valid')) if isinstance(data, dict) else False
        logger.info(f"Payhip verification for {product_key}: valid={valid}")
        return valid
