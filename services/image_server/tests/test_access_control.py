from services.image_server.services.access_control import FileAccessControl, StaticAccessControl


def test_static_access_control():
    access_control = StaticAccessControl({"christer": "private key", "espen": "other"})

    assert access_control.get_private_key("christer") == "private key"
    assert access_control.get_private_key("unknown") is None
    assert access_control.has_public_key("espen")
    assert not access_control.has_public_key("unknown")
    assert access_control.public_keys == ["christer", "espen"]


def test_file_access_control_substitutes_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "access_control.yml"
    config_file.write_text(
        "keys:\n  christer: ${CHRISTER_PRIVATE_KEY}\n  espen: plain\n", encoding="utf-8"
    )
    monkeypatch.setenv("CHRISTER_PRIVATE_KEY", "from-env")

    access_control = FileAccessControl(str(config_file))
    keys = access_control.load_keys_config()

    assert keys == {"christer": "from-env", "espen": "plain"}
    assert access_control.get_private_key("christer") == "from-env"


def test_file_access_control_missing_file(tmp_path):
    access_control = FileAccessControl(str(tmp_path / "missing.yml"))
    assert access_control.load_keys_config() == {}
    assert access_control.get_private_key("christer") is None


def test_file_access_control_invalid_yaml(tmp_path):
    config_file = tmp_path / "access_control.yml"
    config_file.write_text("keys: [unclosed\n", encoding="utf-8")

    assert FileAccessControl(str(config_file)).load_keys_config() == {}


def test_file_access_control_reload_replaces_keys(tmp_path):
    config_file = tmp_path / "access_control.yml"
    config_file.write_text("keys:\n  christer: one\n", encoding="utf-8")
    access_control = FileAccessControl(str(config_file))
    access_control.load_keys_config()

    config_file.write_text("keys:\n  espen: two\n", encoding="utf-8")
    access_control.load_keys_config()

    assert access_control.public_keys == ["espen"]
