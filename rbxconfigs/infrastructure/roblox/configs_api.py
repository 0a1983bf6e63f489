"""Endpoints of the Roblox universe-configs web API.

Each method issues one logical request through the ApiClient (which may
retry internally) and translates the outcome into domain models or
domain exceptions. Callers never see auth or rate limit mechanics.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from rbxconfigs.domain.exceptions import ApiError, DraftError
from rbxconfigs.domain.models.common import FlagKey, UniverseId
from rbxconfigs.domain.models.configs import ConfigResult, Flag, GetConfigResponse
from rbxconfigs.infrastructure.http.client import ApiClient
from rbxconfigs.infrastructure.resilience.auth import error_message

logger = logging.getLogger(__name__)

BASE_URL = "https://apis.roblox.com/universe-configs-web-api/v1"
DEPLOYMENT_STRATEGY = "DEPLOYMENT_STRATEGY_IMMEDIATE"
DRAFT_NOT_FOUND = "DraftNotFound"


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise ApiError(response.status_code, error_message(response))


def _json(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise ApiError(response.status_code, f"Invalid JSON in response: {e}") from e
    if not isinstance(body, dict):
        raise ApiError(response.status_code, f"Unexpected response body: {body!r}")
    return body


def _result(body: Dict[str, Any], field: str, action: str) -> ConfigResult:
    raw: Optional[Dict[str, Any]] = body.get(field)
    if raw is None:
        raise DraftError(f"Failed to {action}: response has no '{field}'")
    try:
        result = ConfigResult.from_dict(raw)
    except (TypeError, AttributeError) as e:
        raise DraftError(f"Failed to {action}: malformed '{field}' in response") from e
    if result.is_error:
        raise DraftError(f"Failed to {action}: {result.error_code}", error_code=result.error_code)
    return result


class UniverseConfigsApi:
    """Client for the config/experiment entries of a universe."""

    def __init__(self, client: ApiClient, base_url: str = BASE_URL):
        self.client = client
        self.base_url = base_url.rstrip("/")

    def _draft_url(self, universe_id: UniverseId) -> str:
        return f"{self.base_url}/draft/universes/{universe_id}"

    async def get_config(self, universe_id: UniverseId) -> GetConfigResponse:
        """Fetches the latest published configuration."""
        url = f"{self.base_url}/configurations/universes/{universe_id}/latest"
        response = await self.client.get(url)
        _raise_for_status(response)
        body = _json(response)
        try:
            config = GetConfigResponse.from_dict(body)
        except (KeyError, TypeError, AttributeError) as e:
            raise ApiError(response.status_code, f"Malformed config response: {e!r}") from e
        logger.debug(f"Fetched {len(config.entries)} entries for universe {universe_id} (version {config.config_version})")
        return config

    async def discard_draft(self, universe_id: UniverseId) -> None:
        """Discards any staged changes.

        Raises:
            DraftError: If the API reports an error or no draft was present.
        """
        response = await self.client.delete(self._draft_url(universe_id))
        _raise_for_status(response)
        result = _result(_json(response), "discardStagedResult", "discard draft")
        if result.draft_hash is not None and not result.draft_hash:
            raise DraftError("Failed to discard draft: No draft is present")

    async def publish_draft(self, universe_id: UniverseId) -> None:
        """Publishes staged changes immediately.

        Raises:
            DraftError: If there is no draft to publish.
            ApiError: For any other non-success status.
        """
        response = await self.client.post(
            f"{self._draft_url(universe_id)}/publish",
            json={"message": "", "deploymentStrategy": DEPLOYMENT_STRATEGY},
        )
        if DRAFT_NOT_FOUND in response.text:
            raise DraftError("Failed to publish draft: No draft is present", error_code=DRAFT_NOT_FOUND)
        if not response.is_success:
            raise ApiError(response.status_code, f"Failed to publish draft: HTTP {response.status_code}")

    async def update_flag(self, universe_id: UniverseId, flag: Flag) -> None:
        """Stages a new value for an existing entry."""
        response = await self.client.put(self._draft_url(universe_id), json={"entry": flag.to_dict()})
        _raise_for_status(response)
        _result(_json(response), "updateConfigResult", "upload flag")

    async def upload_flag(self, universe_id: UniverseId, flag: Flag) -> None:
        """Stages a new entry."""
        response = await self.client.post(self._draft_url(universe_id), json={"entry": flag.to_dict()})
        _raise_for_status(response)
        _result(_json(response), "createConfigResult", "upload flag")

    async def delete_flag(self, universe_id: UniverseId, key: FlagKey) -> None:
        """Stages the removal of an entry."""
        response = await self.client.delete(f"{self._draft_url(universe_id)}/entries/{quote(key, safe='')}")
        _raise_for_status(response)
