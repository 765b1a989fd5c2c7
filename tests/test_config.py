import json

import pytest

from rssgator.config import FILENAME, Config, read, read_default_config


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_read_fields(tmp_path):
    path = _write(tmp_path / "cfg.json", {"db_url": "sqlite:///gator.db", "current_user_name": "alice"})
    cfg = read(path)
    assert cfg.db_url == "sqlite:///gator.db"
    assert cfg.current_user_name == "alice"
    assert cfg.file_path == path


def test_missing_fields_default_to_empty(tmp_path):
    cfg = read(_write(tmp_path / "cfg.json", {"db_url": "gator.db"}))
    assert cfg.current_user_name == ""


def test_unknown_fields_ignored(tmp_path):
    cfg = read(_write(tmp_path / "cfg.json", {"db_url": "gator.db", "extra": 1}))
    assert cfg == Config(db_url="gator.db")


def test_set_user_round_trip(tmp_path):
    path = _write(tmp_path / "cfg.json", {"db_url": "gator.db", "current_user_name": "alice"})
    cfg = read(path)
    cfg.set_user("bob")
    assert cfg.current_user_name == "bob"
    again = read(path)
    assert again.current_user_name == "bob"
    assert again.db_url == "gator.db"


def test_set_user_writes_tab_indented_json(tmp_path):
    path = _write(tmp_path / "cfg.json", {"db_url": "x"})
    read(path).set_user("bob")
    assert path.read_text(encoding="utf-8") == '{\n\t"db_url": "x",\n\t"current_user_name": "bob"\n}'


def test_set_user_without_file_raises():
    cfg = Config(db_url="x")
    with pytest.raises(ValueError):
        cfg.set_user("bob")


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read(tmp_path / "absent.json")


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        read(path)


@pytest.mark.parametrize("payload", ["null", "[1, 2]", '{"db_url": 5}'])
def test_wrong_shape_raises(tmp_path, payload):
    path = tmp_path / "cfg.json"
    path.write_text(payload, encoding="utf-8")
    with pytest.raises(ValueError):
        read(path)


def test_read_default_config_uses_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    _write(tmp_path / FILENAME, {"db_url": "home.db", "current_user_name": "carol"})
    cfg = read_default_config()
    assert cfg.db_url == "home.db"
    assert cfg.current_user_name == "carol"
    assert cfg.file_path == tmp_path / FILENAME