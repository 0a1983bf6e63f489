import pytest
from unittest.mock import AsyncMock, MagicMock

from rbxconfigs.core.command_handler import CommandHandler
from rbxconfigs.core.services.config_sync_service import ConfigSyncService
from rbxconfigs.domain.exceptions import ConfigFileError, DraftError, TransientError
from rbxconfigs.domain.interfaces.user_interface import UserInterface
from rbxconfigs.domain.models.common import FilePath, UniverseId
from rbxconfigs.domain.models.configs import PurgeSummary, UploadSummary

UNIVERSE = UniverseId(7)
CONFIG_FILE = FilePath("config.json")


@pytest.fixture
def mock_sync_service():
    return AsyncMock(spec=ConfigSyncService)


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def command_handler(mock_sync_service, mock_ui):
    """Fixture to create CommandHandler with a mocked service."""
    return CommandHandler(sync_service=mock_sync_service, ui=mock_ui)


@pytest.mark.asyncio
async def test_handle_download(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    """Test that handle_download calls the service and reports the count."""
    mock_sync_service.download.return_value = 3

    assert await command_handler.handle_download(UNIVERSE, CONFIG_FILE) is True

    mock_sync_service.download.assert_awaited_once_with(UNIVERSE, CONFIG_FILE)
    mock_ui.display_success.assert_called_once_with("Downloaded 3 entries to config.json.")


@pytest.mark.asyncio
async def test_handle_download_error(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    """Test that errors during download are displayed."""
    error = TransientError(OSError("connection reset"), 6)
    mock_sync_service.download.side_effect = error

    assert await command_handler.handle_download(UNIVERSE, CONFIG_FILE) is False

    mock_ui.display_error.assert_called_once_with(f"Download command failed: {error}")
    mock_ui.display_success.assert_not_called()


@pytest.mark.asyncio
async def test_handle_upload_success(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.upload.return_value = UploadSummary(uploaded=["A", "B"], unchanged=["C"], publishes=1)

    assert await command_handler.handle_upload(UNIVERSE, CONFIG_FILE) is True

    mock_ui.display_summary.assert_called_once_with("Upload", [
        {"key": "A", "status": "uploaded"},
        {"key": "B", "status": "uploaded"},
        {"key": "C", "status": "unchanged"},
    ])
    mock_ui.display_success.assert_called_once_with("Config upload complete (2 uploaded).")


@pytest.mark.asyncio
async def test_handle_upload_nothing_to_do(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.upload.return_value = UploadSummary(unchanged=["C"])

    assert await command_handler.handle_upload(UNIVERSE, CONFIG_FILE) is True

    mock_ui.display_warning.assert_called_once_with("No new or updated flags to upload.")
    mock_ui.display_summary.assert_not_called()


@pytest.mark.asyncio
async def test_handle_upload_partial_failure(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.upload.return_value = UploadSummary(uploaded=["A"], failed=["B"], publishes=1)

    assert await command_handler.handle_upload(UNIVERSE, CONFIG_FILE) is False

    mock_ui.display_error.assert_called_once_with("1 flag(s) failed to upload.")


@pytest.mark.asyncio
async def test_handle_upload_bad_file(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.upload.side_effect = ConfigFileError("Failed to parse config file: bad")

    assert await command_handler.handle_upload(UNIVERSE, CONFIG_FILE) is False

    mock_ui.display_error.assert_called_once_with("Upload command failed: Failed to parse config file: bad")


@pytest.mark.asyncio
async def test_handle_purge(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.purge.return_value = PurgeSummary(deleted=["A", "B"], publishes=1)

    assert await command_handler.handle_purge(UNIVERSE) is True

    mock_ui.display_success.assert_called_once_with("Purged 2 flag(s).")


@pytest.mark.asyncio
async def test_handle_purge_with_failures(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.purge.return_value = PurgeSummary(deleted=["A"], failed=["B", "C"], publishes=1)

    assert await command_handler.handle_purge(UNIVERSE) is False

    mock_ui.display_error.assert_called_once_with("Deleted 1 flag(s); 2 failed: B, C")


@pytest.mark.asyncio
async def test_handle_discard(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    assert await command_handler.handle_discard(UNIVERSE) is True

    mock_sync_service.discard.assert_awaited_once_with(UNIVERSE)
    mock_ui.display_info.assert_called_once_with("Discarding staged changes...")
    mock_ui.display_success.assert_called_once_with("Staged changes discarded successfully.")


@pytest.mark.asyncio
async def test_handle_discard_error(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.discard.side_effect = DraftError("Failed to discard draft: No draft is present")

    assert await command_handler.handle_discard(UNIVERSE) is False

    mock_ui.display_error.assert_called_once_with(
        "Failed to discard staged changes: Failed to discard draft: No draft is present"
    )


@pytest.mark.asyncio
async def test_handle_publish(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    assert await command_handler.handle_publish(UNIVERSE) is True

    mock_sync_service.publish.assert_awaited_once_with(UNIVERSE)
    mock_ui.display_success.assert_called_once_with("Staged changes published successfully.")


@pytest.mark.asyncio
async def test_handle_publish_error(command_handler: CommandHandler, mock_sync_service: AsyncMock, mock_ui: MagicMock):
    mock_sync_service.publish.side_effect = DraftError("Failed to publish draft: No draft is present")

    assert await command_handler.handle_publish(UNIVERSE) is False

    mock_ui.display_error.assert_called_once_with(
        "Failed to publish staged changes: Failed to publish draft: No draft is present"
    )
