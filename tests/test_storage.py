import json

from astn_session.models.user import UserProfile
from astn_session.storage.base import get_data_dir
from astn_session.storage.session import SNAPSHOT_SCHEMA_VERSION, SessionStorage
from tests.conftest import FIXED_NOW


def _profile() -> UserProfile:
    profile = UserProfile.new("user-1", "ana@example.com", FIXED_NOW, name="Ana Ruiz")
    profile.sport = "Soccer"
    return profile


def test_storage_lives_under_data_dir(storage, data_dir) -> None:
    assert storage.data_dir == data_dir / "session_data"
    assert storage.data_dir.is_dir()


def test_load_user_when_nothing_stored(storage) -> None:
    assert storage.load_user() is None
    assert storage.load_token() is None


def test_save_and_load_user(storage) -> None:
    assert storage.save_user(_profile())

    loaded = storage.load_user()

    assert loaded == _profile()


def test_snapshot_is_wrapped_in_versioned_envelope(storage) -> None:
    storage.save_user(_profile())

    raw = json.loads(storage.user_path.read_text())

    assert raw["schema_version"] == SNAPSHOT_SCHEMA_VERSION
    assert "saved_at" in raw
    assert raw["user"]["id"] == "user-1"


def test_loads_bare_legacy_snapshot(storage) -> None:
    storage.user_path.write_text(json.dumps(_profile().to_snapshot()))

    assert storage.load_user().sport == "Soccer"


def test_discards_newer_schema_version(storage) -> None:
    envelope = {"schema_version": SNAPSHOT_SCHEMA_VERSION + 1, "user": _profile().to_snapshot()}
    storage.user_path.write_text(json.dumps(envelope))

    assert storage.load_user() is None


def test_discards_corrupt_snapshot(storage) -> None:
    storage.user_path.write_text("{not json")
    assert storage.load_user() is None

    storage.user_path.write_text(json.dumps({"schema_version": 1, "user": {"id": "user-1"}}))
    assert storage.load_user() is None


def test_token_round_trip_and_clear(storage) -> None:
    storage.save_user(_profile())
    assert storage.save_token("opaque-token")
    assert storage.load_token() == "opaque-token"

    storage.clear()

    assert storage.load_user() is None
    assert storage.load_token() is None
    # Clearing twice is harmless
    storage.clear()


def test_default_data_dir_is_in_home(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("ASTN_DATA_DIR", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert get_data_dir() == tmp_path / ".astn"
    assert SessionStorage().data_dir == tmp_path / ".astn" / "session_data"


def test_explicit_root_overrides_environment(tmp_path) -> None:
    storage = SessionStorage(root=tmp_path / "elsewhere")

    assert storage.data_dir == tmp_path / "elsewhere" / "session_data"
    assert storage.data_dir.is_dir()


def test_token_write_replaces_file_without_leftovers(storage) -> None:
    assert storage.save_token("first")
    assert storage.save_token("second")

    assert storage.load_token() == "second"
    assert sorted(p.name for p in storage.data_dir.iterdir()) == ["auth_token.txt"]


def test_failed_write_keeps_previous_token(storage, monkeypatch) -> None:
    storage.save_token("first")

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("astn_session.storage.base.os.replace", fail_replace)

    assert not storage.save_token("second")
    assert storage.load_token() == "first"
    assert sorted(p.name for p in storage.data_dir.iterdir()) == ["auth_token.txt"]
