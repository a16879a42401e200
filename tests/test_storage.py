import pytest

from core.storage import TOKEN_KEY, USER_KEY, MemoryStorage, SqliteStorage


def test_sqlite_storage_round_trip(tmp_path):
    store = SqliteStorage(str(tmp_path / "device.db"), "device-a")

    assert store.get_item(TOKEN_KEY) is None
    store.set_item(TOKEN_KEY, "tok-1")
    store.set_item(TOKEN_KEY, "tok-2")
    assert store.get_item(TOKEN_KEY) == "tok-2"

    store.remove_item(TOKEN_KEY)
    assert store.get_item(TOKEN_KEY) is None


def test_devices_do_not_share_values(tmp_path):
    path = str(tmp_path / "device.db")
    first = SqliteStorage(path, "device-a")
    second = SqliteStorage(path, "device-b")

    first.set_item(USER_KEY, '{"_id": "u1"}')
    second.set_item(USER_KEY, '{"_id": "u2"}')
    first.clear()

    assert first.get_item(USER_KEY) is None
    assert second.get_item(USER_KEY) == '{"_id": "u2"}'


def test_values_survive_a_new_handle(tmp_path):
    path = str(tmp_path / "device.db")
    SqliteStorage(path, "device-a").set_item("tokenExpiry", "1700000000000")
    assert SqliteStorage(path, "device-a").get_item("tokenExpiry") == "1700000000000"


def test_device_id_is_required(tmp_path):
    with pytest.raises(ValueError):
        SqliteStorage(str(tmp_path / "device.db"), "")


def test_memory_storage_stringifies_values():
    store = MemoryStorage()
    store.set_item("tokenExpiry", 123)
    assert store.snapshot() == {"tokenExpiry": "123"}
    store.clear()
    assert store.get_item("tokenExpiry") is None
