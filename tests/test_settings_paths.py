from pathlib import Path

from core import settings


def test_linux_data_dir_with_xdg():
    env = {"XDG_DATA_HOME": "/tmp/xdg"}
    result = settings.get_default_data_dir(
        settings.APP_NAME,
        platform="linux",
        env=env,
        home=Path("/home/test"),
    )
    assert result == Path("/tmp/xdg") / settings.APP_NAME


def test_linux_data_dir_default_home():
    result = settings.get_default_data_dir(
        settings.APP_NAME,
        platform="linux",
        env={},
        home=Path("/home/test"),
    )
    assert result == Path("/home/test/.local/share") / settings.APP_NAME


def test_macos_data_dir():
    result = settings.get_default_data_dir(
        settings.APP_NAME,
        platform="darwin",
        env={},
        home=Path("/Users/test"),
    )
    expected = Path("/Users/test/Library/Application Support") / settings.APP_NAME
    assert result == expected


def test_windows_data_dir_appdata():
    env = {"APPDATA": "C:/Users/test/AppData/Roaming"}
    result = settings.get_default_data_dir(
        settings.APP_NAME,
        platform="win32",
        env=env,
        home=Path("C:/Users/test"),
    )
    expected = Path(env["APPDATA"]) / settings.APP_NAME
    assert result == expected


def test_explicit_data_dir_override():
    env = {"COSTIK_DATA_DIR": "/srv/costik", "XDG_DATA_HOME": "/tmp/xdg"}
    result = settings.get_default_data_dir(settings.APP_NAME, platform="linux", env=env)
    assert result == Path("/srv/costik")


def test_runtime_paths_inside_data_dir():
    assert settings.DB_PATH.parent == settings.DATA_DIR
    assert settings.QUEUE_JSON_PATH.parent == settings.STORAGE_DIR
    assert settings.OFFLINE_USER_PATH.parent == settings.STORAGE_DIR
    assert settings.LOG_PATH.parent == settings.LOG_DIR
    assert settings.SYNC.log_path == settings.LOG_PATH


def test_sync_defaults():
    assert settings.SYNC.max_retries == 3
    assert settings.SYNC.retry_floor_sec == 1.0
    assert settings.SYNC.retry_ceiling_sec == 30.0
    assert settings.SYNC.periodic_interval_sec == 5.0
    assert settings.SYNC.queue_key != settings.SYNC.changes_key
    assert "budget" not in settings.REMOTE.collections
