"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the ConfigSyncService and reports the outcome through the
UserInterface. Each handler returns True on success so the CLI can pick
its exit code.
"""

import logging

from rbxconfigs.core.services.config_sync_service import ConfigSyncService
from rbxconfigs.domain.exceptions import RbxConfigsError
from rbxconfigs.domain.interfaces.user_interface import UserInterface
from rbxconfigs.domain.models.common import FilePath, UniverseId

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the sync service."""

    def __init__(self, sync_service: ConfigSyncService, ui: UserInterface):
        self.sync_service = sync_service
        self.ui = ui

    async def handle_download(self, universe_id: UniverseId, path: FilePath) -> bool:
        logger.info(f"Handling 'download' for universe {universe_id} into {path}")
        try:
            count = await self.sync_service.download(universe_id, path)
        except (RbxConfigsError, OSError) as e:
            logger.error(f"Download failed: {e}", exc_info=True)
            self.ui.display_error(f"Download command failed: {e}")
            return False
        self.ui.display_success(f"Downloaded {count} entries to {path}.")
        return True

    async def handle_upload(self, universe_id: UniverseId, path: FilePath) -> bool:
        logger.info(f"Handling 'upload' for universe {universe_id} from {path}")
        try:
            summary = await self.sync_service.upload(universe_id, path)
        except RbxConfigsError as e:
            logger.error(f"Upload failed: {e}", exc_info=True)
            self.ui.display_error(f"Upload command failed: {e}")
            return False

        if not summary.uploaded and not summary.failed:
            self.ui.display_warning("No new or updated flags to upload.")
            return True

        rows = (
            [{"key": key, "status": "uploaded"} for key in summary.uploaded]
            + [{"key": key, "status": "failed"} for key in summary.failed]
            + [{"key": key, "status": "unchanged"} for key in summary.unchanged]
        )
        self.ui.display_summary("Upload", rows)
        if summary.failed:
            self.ui.display_error(f"{len(summary.failed)} flag(s) failed to upload.")
            return False
        self.ui.display_success(f"Config upload complete ({len(summary.uploaded)} uploaded).")
        return True

    async def handle_purge(self, universe_id: UniverseId) -> bool:
        logger.info(f"Handling 'purge' for universe {universe_id}")
        try:
            summary = await self.sync_service.purge(universe_id)
        except RbxConfigsError as e:
            logger.error(f"Purge failed: {e}", exc_info=True)
            self.ui.display_error(f"Purge command failed: {e}")
            return False
        if summary.failed:
            self.ui.display_error(f"Deleted {len(summary.deleted)} flag(s); {len(summary.failed)} failed: "
                                  f"{', '.join(summary.failed)}")
            return False
        self.ui.display_success(f"Purged {len(summary.deleted)} flag(s).")
        return True

    async def handle_discard(self, universe_id: UniverseId) -> bool:
        self.ui.display_info("Discarding staged changes...")
        try:
            await self.sync_service.discard(universe_id)
        except RbxConfigsError as e:
            logger.error(f"Failed to discard staged changes: {e}")
            self.ui.display_error(f"Failed to discard staged changes: {e}")
            return False
        self.ui.display_success("Staged changes discarded successfully.")
        return True

    async def handle_publish(self, universe_id: UniverseId) -> bool:
        self.ui.display_info("Publishing staged changes...")
        try:
            await self.sync_service.publish(universe_id)
        except RbxConfigsError as e:
            logger.error(f"Failed to publish staged changes: {e}")
            self.ui.display_error(f"Failed to publish staged changes: {e}")
            return False
        self.ui.display_success("Staged changes published successfully.")
        return True
