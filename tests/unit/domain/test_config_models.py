import pytest

from rbxconfigs.domain.exceptions import ApiError, TransientError, WriteConflictError
from rbxconfigs.domain.models.configs import ConfigResult, Flag, GetConfigResponse, LocalConfigEntry


LATEST_CONFIG = {
    "configVersion": 12,
    "entries": [
        {
            "entry": {"key": "MaxPlayers", "description": "Server cap", "entryValue": 20},
            "lastModifiedTime": "2024-05-01T10:00:00Z",
            "lastAccessedTime": "2024-05-02T10:00:00Z",
        },
        {"entry": {"key": "ShopEnabled", "entryValue": True}},
    ],
}


def test_get_config_response_parses_entries():
    config = GetConfigResponse.from_dict(LATEST_CONFIG)

    assert config.config_version == "12"
    assert len(config.entries) == 2
    first = config.entries[0]
    assert first.entry == Flag("MaxPlayers", 20, "Server cap")
    assert first.last_modified_time == "2024-05-01T10:00:00Z"
    assert config.entries[1].entry.description is None


def test_get_config_response_without_entries():
    config = GetConfigResponse.from_dict({"configVersion": 1, "entries": None})
    assert config.entries == []
    assert config.flags() == {}


def test_flags_are_indexed_by_key():
    flags = GetConfigResponse.from_dict(LATEST_CONFIG).flags()
    assert set(flags) == {"MaxPlayers", "ShopEnabled"}
    assert flags["ShopEnabled"].entry_value is True


def test_flag_serializes_to_wire_format():
    assert Flag("Speed", 1.5, "Walk speed").to_dict() == {
        "key": "Speed",
        "description": "Walk speed",
        "entryValue": 1.5,
    }


def test_config_result_success_and_error():
    ok = ConfigResult.from_dict({"isError": False, "data": {"draftHash": "abc"}})
    assert not ok.is_error
    assert ok.draft_hash == "abc"

    failed = ConfigResult.from_dict({"isError": True, "error": {"errorCode": "KeyTooLong", "message": "too long"}})
    assert failed.is_error
    assert failed.error_code == "KeyTooLong"
    assert failed.error_message == "too long"
    assert failed.draft_hash is None


def test_local_entry_round_trip_and_validation():
    entry = LocalConfigEntry.from_dict({"description": None, "value": {"nested": [1, 2]}})
    assert entry.to_dict() == {"description": None, "value": {"nested": [1, 2]}}
    assert entry.to_flag("Nested") == Flag("Nested", {"nested": [1, 2]}, None)

    with pytest.raises(ValueError):
        LocalConfigEntry.from_dict({"description": "no value"})
    with pytest.raises(ValueError):
        LocalConfigEntry.from_dict(5)


def test_error_messages_carry_status_and_attempts():
    assert str(ApiError(404, "NotFound")) == "Request failed with status 404: NotFound"
    conflict = WriteConflictError(400, "ETagMismatch", 5)
    assert conflict.attempts == 5
    assert "gave up after 5 retries" in str(conflict)
    transient = TransientError(OSError("reset"), 3)
    assert "after 3 attempts" in str(transient)
