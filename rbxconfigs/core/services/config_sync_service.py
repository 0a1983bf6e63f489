"""Service synchronising a universe's config entries with a local snapshot.

The snapshot is a JSON object mapping each entry key to
``{"description": ..., "value": ...}``. Uploads and purges stage their
changes in a draft; drafts expire, so the service publishes every
PUBLISH_BATCH_SIZE writes and once more at the end.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict

from rbxconfigs.domain.exceptions import ConfigFileError, RbxConfigsError
from rbxconfigs.domain.interfaces.filesystem import FileSystem
from rbxconfigs.domain.models.common import FilePath, FlagKey, UniverseId
from rbxconfigs.domain.models.configs import (
    Flag,
    GetConfigResponse,
    LocalConfigEntry,
    PurgeSummary,
    UploadSummary,
)
from rbxconfigs.infrastructure.roblox.configs_api import UniverseConfigsApi

logger = logging.getLogger(__name__)

PUBLISH_BATCH_SIZE = 40
DEFAULT_CONFIG_FILE = FilePath("config.json")


def snapshot_from_remote(config: GetConfigResponse) -> Dict[FlagKey, LocalConfigEntry]:
    return {
        item.entry.key: LocalConfigEntry(value=item.entry.entry_value, description=item.entry.description)
        for item in config.entries
    }


def parse_snapshot(content: str) -> Dict[FlagKey, LocalConfigEntry]:
    """Parses a snapshot file.

    Raises:
        ConfigFileError: If the content is not a JSON object of entries.
    """
    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigFileError(f"Failed to parse config file: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigFileError("Failed to parse config file: expected a JSON object of entries")
    try:
        return {FlagKey(key): LocalConfigEntry.from_dict(value) for key, value in raw.items()}
    except ValueError as e:
        raise ConfigFileError(f"Failed to parse config file: {e}") from e


def render_snapshot(entries: Dict[FlagKey, LocalConfigEntry]) -> str:
    return json.dumps({key: entry.to_dict() for key, entry in entries.items()}, indent=2) + "\n"


def same_json_value(a: Any, b: Any) -> bool:
    """Compares two decoded JSON values without Python's numeric coercion.

    ``1``, ``1.0`` and ``true`` are different JSON values, so they must not
    compare equal here.
    """
    return json.dumps(a, sort_keys=True) == json.dumps(b, sort_keys=True)


class ConfigSyncService:
    """Downloads, uploads and purges universe config entries."""

    def __init__(self, configs_api: UniverseConfigsApi, file_system: FileSystem,
                 publish_batch_size: int = PUBLISH_BATCH_SIZE):
        if publish_batch_size <= 0:
            raise ValueError("publish_batch_size must be positive.")
        self.configs_api = configs_api
        self.file_system = file_system
        self.publish_batch_size = publish_batch_size

    async def download(self, universe_id: UniverseId, path: FilePath = DEFAULT_CONFIG_FILE) -> int:
        """Writes the latest remote config to ``path``. Returns the number of entries."""
        config = await self.configs_api.get_config(universe_id)
        entries = snapshot_from_remote(config)
        await self.file_system.write_file(path, render_snapshot(entries))
        logger.info(f"Downloaded {len(entries)} entries of universe {universe_id} to {path}")
        return len(entries)

    async def read_snapshot(self, path: FilePath) -> Dict[FlagKey, LocalConfigEntry]:
        if not await self.file_system.file_exists(path):
            raise ConfigFileError(f"Config file not found: {path}. Run 'download' first to create it.")
        try:
            content = await self.file_system.read_file(path)
        except OSError as e:
            raise ConfigFileError(f"Failed to read config file: {e}") from e
        return parse_snapshot(content)

    async def _publish_if_batch_full(self, universe_id: UniverseId, staged: int) -> bool:
        if staged < self.publish_batch_size:
            return False
        logger.info(f"Reached {staged} staged changes, publishing to avoid draft expiration...")
        await self.configs_api.publish_draft(universe_id)
        return True

    async def upload(self, universe_id: UniverseId, path: FilePath = DEFAULT_CONFIG_FILE) -> UploadSummary:
        """Uploads new and changed entries from ``path`` and publishes them.

        Entries whose remote value already matches are skipped. Per-entry
        failures are logged and reported in the summary, not raised.
        """
        local = await self.read_snapshot(path)

        logger.info("Discarding any existing staged changes...")
        try:
            await self.configs_api.discard_draft(universe_id)
        except RbxConfigsError as e:
            logger.debug(f"Nothing discarded: {e}")

        logger.info("Fetching existing configs...")
        remote = (await self.configs_api.get_config(universe_id)).flags()

        summary = UploadSummary()
        changed = []
        for key, entry in local.items():
            existing = remote.get(key)
            if existing is not None and same_json_value(existing.entry_value, entry.value):
                summary.unchanged.append(key)
            else:
                changed.append(entry.to_flag(key))

        if not changed:
            logger.info("No new or updated flags to upload.")
            return summary
        if summary.unchanged:
            logger.info(f"Ignoring existing flags: {', '.join(summary.unchanged)}")

        staged = 0
        for flag in changed:
            if await self._publish_if_batch_full(universe_id, staged):
                summary.publishes += 1
                staged = 0

            logger.info(f"Uploading flag '{flag.key}'")
            write: Callable[[UniverseId, Flag], Awaitable[None]] = (
                self.configs_api.update_flag if flag.key in remote else self.configs_api.upload_flag
            )
            try:
                await write(universe_id, flag)
                summary.uploaded.append(flag.key)
            except RbxConfigsError as e:
                logger.error(f"Failed to upload flag '{flag.key}': {e}")
                summary.failed.append(flag.key)
            staged += 1

        logger.info("Publishing staged changes...")
        await self.configs_api.publish_draft(universe_id)
        summary.publishes += 1
        return summary

    async def purge(self, universe_id: UniverseId) -> PurgeSummary:
        """Deletes every entry of the universe and publishes the deletions."""
        logger.info(f"Purging all configs from universe: {universe_id}")
        config = await self.configs_api.get_config(universe_id)

        summary = PurgeSummary()
        staged = 0
        for item in config.entries:
            key = item.entry.key
            if await self._publish_if_batch_full(universe_id, staged):
                summary.publishes += 1
                staged = 0

            logger.info(f"Deleting flag '{key}'")
            try:
                await self.configs_api.delete_flag(universe_id, key)
                summary.deleted.append(key)
            except RbxConfigsError as e:
                logger.error(f"Failed to delete flag '{key}': {e}")
                summary.failed.append(key)
            staged += 1

        if config.entries:
            await self.configs_api.publish_draft(universe_id)
            summary.publishes += 1
        return summary

    async def discard(self, universe_id: UniverseId) -> None:
        await self.configs_api.discard_draft(universe_id)

    async def publish(self, universe_id: UniverseId) -> None:
        await self.configs_api.publish_draft(universe_id)
