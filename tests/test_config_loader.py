import pytest

from sitedispatch.adapters.config import ConfigLoader, Settings
from sitedispatch.core.exceptions import ConfigError


def write_config(path, content):
    path.write_text(content, encoding="utf-8")
    return path


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError):
        ConfigLoader().load(toml_path=tmp_path / "missing.toml")


def test_invalid_toml(tmp_path):
    path = write_config(tmp_path / "config.toml", "alias-path = [\n")
    with pytest.raises(ConfigError):
        ConfigLoader().load(toml_path=path)


def test_default_file_is_optional(isolated_env):
    assert ConfigLoader().load() == {}

    config_dir = isolated_env / ".sitedispatch"
    config_dir.mkdir()
    write_config(config_dir / "config.toml", 'root = "/var/www"\n')
    assert ConfigLoader().load() == {"root": "/var/www"}


def test_environment_mappings(monkeypatch):
    monkeypatch.setenv("SITED_ALIAS_PATH", "/etc/a:/etc/b")
    monkeypatch.setenv("SITED_TIMEOUT", "30")
    monkeypatch.setenv("SITED_TRANSPORT", "paramiko")
    monkeypatch.setenv("SITED_SSH_OPTIONS", "-p 2222")
    monkeypatch.setenv("SITED_URI", "1")

    assert ConfigLoader().load_env() == {
        "alias-path": "/etc/a:/etc/b",
        "backend": {"timeout": 30, "transport": "paramiko"},
        "ssh": {"options": "-p 2222"},
        "uri": "1",
    }


def test_priority_cli_over_env_over_toml(tmp_path, monkeypatch):
    path = write_config(
        tmp_path / "config.toml",
        """
root = "/from/toml"
uri = "toml.example.com"
alias-path = ["/toml/aliases"]

[backend]
timeout = 10
transport = "ssh"
""",
    )
    monkeypatch.setenv("SITED_ROOT", "/from/env")
    monkeypatch.setenv("SITED_TIMEOUT", "20")

    cfg = ConfigLoader().load(toml_path=path, cli_overrides={"root": "/from/cli", "uri": None})
    assert cfg["root"] == "/from/cli"
    assert cfg["uri"] == "toml.example.com"
    assert cfg["backend"] == {"timeout": 20, "transport": "ssh"}
    assert cfg["alias-path"] == ["/toml/aliases"]


def test_settings_from_config():
    settings = Settings.from_config({
        "alias-path": "/a;/b",
        "alias-conflict": "first",
        "drush-script": "/usr/local/bin/drush",
        "options": {"yes": True},
        "ssh": {"binary": "/usr/bin/ssh", "options": "-o BatchMode=yes"},
        "backend": {"timeout": 15, "transport": "paramiko"},
    })
    assert settings.alias_path == ["/a", "/b"]
    assert settings.alias_conflict == "first"
    assert settings.options == {"yes": True}
    assert settings.ssh_binary == "/usr/bin/ssh"
    assert settings.ssh_options == "-o BatchMode=yes"
    assert settings.timeout == 15
    assert settings.transport == "paramiko"

    defaults = Settings.from_config({})
    assert defaults.alias_path == []
    assert defaults.alias_conflict == "error"
    assert defaults.ssh_binary == "ssh"
    assert defaults.timeout == 0
    assert defaults.transport == "ssh"


@pytest.mark.parametrize(
    "cfg",
    [
        {"alias-conflict": "last"},
        {"backend": {"timeout": "soon"}},
        {"backend": {"timeout": -1}},
        {"options": "yes"},
        {"ssh": "ssh"},
    ],
)
def test_invalid_settings(cfg):
    with pytest.raises(ConfigError):
        Settings.from_config(cfg)


def test_undecodable_config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_bytes(b'root = "\xff"\n')
    with pytest.raises(ConfigError):
        ConfigLoader().load(toml_path=path)
