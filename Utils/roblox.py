# ============================================================================
# LicenseKeeper - Whitelist Automation System
# Copyright © 2025 404ConnerNotFound. All Rights Reserved.
# ============================================================================

import logging

import httpx

from .exceptions import GroupServiceError

logger = logging.getLogger(__name__)

GROUPS_API = "https://groups.roblox.com/v2/groups"


class RobloxGroupClient:
    """Roblox Open Cloud group join-request acceptance"""

    def __init__(self, client: httpx.AsyncClient = None, timeout: float = 10.0):
        self._client = client
        self.timeout = timeout

    async def accept_join_request(self, group_id: str, roblox_id: str, api_key: str) -> None:
        url = f"{GROUPS_API}/{group_id}/join-requests/users/{roblox_id}/accept"
        headers = {'Content-Type': 'application/json', 'x-api-key': api_key}
        try:
            if self._client is not None:
                response = await self._client.post(url, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Join accept for {roblox_id} in group {group_id} "
                           f"returned {e.response.status_code}")
            raise GroupServiceError(
                "The group service rejected the join request.",
                context={'group_id': group_id, 'status': e.response.status_code}, cause=e)
        except httpx.HTTPError as e:
            logger.warning(f"Join accept for {roblox_id} in group {group_id} failed: {e}")
            raise GroupServiceError(
                "Could not reach the group service.",
                context={'group_id': group_id}, cause=e)

        logger.info(f"Accepted join request for {roblox_id} in group {group_id}")
