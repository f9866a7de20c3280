import random

import pytest

from sitedispatch.core.exceptions import ConfigError
from sitedispatch.core.utils import current_user, local_os
from sitedispatch.domain.alias import SiteRecord
from sitedispatch.domain.dispatch import DispatchEngine, format_options, is_remote


@pytest.mark.parametrize(
    "data, expected",
    [
        ({}, False),
        ({"remote-host": ""}, False),
        ({"remote-host": "   "}, False),
        ({"remote-host": None}, False),
        ({"remote-host": 42}, False),
        ({"remote-host": "web1.example.com"}, True),
        ({"remote-host": "10.0.0.5", "remote-user": ""}, True),
    ],
)
def test_is_remote(data, expected):
    assert is_remote(SiteRecord.create("@x", data)) is expected


def test_is_remote_matches_non_empty_host_string():
    rng = random.Random(1234)
    values = ["", " ", "host", "a.b.c", None, 0, 1, True, ["host"], "\t"]
    for _ in range(200):
        data = {}
        if rng.random() < 0.8:
            data["remote-host"] = rng.choice(values)
        if rng.random() < 0.5:
            data["root"] = "/var/www"
        expected = isinstance(data.get("remote-host"), str) and data["remote-host"].strip() != ""
        assert is_remote(SiteRecord.create("@x", data)) is expected


def remote_site(**extra):
    data = {
        "root": "/var/www",
        "uri": "example.com",
        "remote-host": "web1.example.com",
        "remote-user": "deploy",
    }
    data.update(extra)
    return SiteRecord.create("@prod", data)


def test_remote_invocation_argv():
    engine = DispatchEngine()
    options = {
        "#peer": "never sent",
        "root": "/var/www",
        "uri": "example.com",
        "alias-path": "/etc/aliases",
        "yes": True,
        "skip": False,
        "fields": ["name", "uri"],
        "format": "json",
    }
    invocation = engine.build_invocation(remote_site(), "core:status", ["extra arg"], options)

    assert invocation.is_remote
    assert invocation.host == "web1.example.com"
    assert invocation.user == "deploy"
    assert invocation.argv == [
        "ssh",
        "-o",
        "PasswordAuthentication=no",
        "deploy@web1.example.com",
        "drush",
        "--uri=example.com",
        "core:status",
        "'extra arg'",
        "--yes",
        "--fields=name,uri",
        "--format=json",
        "--backend",
    ]
    assert not any(arg.startswith("--#") or arg.startswith("--root") for arg in invocation.argv)
    assert options == {
        "#peer": "never sent",
        "root": "/var/www",
        "uri": "example.com",
        "alias-path": "/etc/aliases",
        "yes": True,
        "skip": False,
        "fields": ["name", "uri"],
        "format": "json",
    }


def test_remote_defaults_and_overrides():
    record = SiteRecord.create("@bare", {"remote-host": "web2", "root": "/srv"})
    invocation = DispatchEngine().build_invocation(record, "version", backend=False)
    assert invocation.argv == ["ssh", "-o", "PasswordAuthentication=no", f"{current_user()}@web2", "drush", "version"]

    record = remote_site(**{
        "ssh-options": "-p 2222 -i ~/.ssh/deploy",
        "path-aliases": {"%drush-script": "/opt/drush/drush"},
    })
    invocation = DispatchEngine(ssh_binary="/usr/bin/ssh").build_invocation(record, "version", backend=False)
    assert invocation.argv[:6] == ["/usr/bin/ssh", "-p", "2222", "-i", "~/.ssh/deploy", "deploy@web1.example.com"]
    assert invocation.argv[6] == "/opt/drush/drush"


def test_configured_default_ssh_options():
    engine = DispatchEngine(ssh_options="-o BatchMode=yes")
    invocation = engine.build_invocation(remote_site(), "version", backend=False)
    assert invocation.argv[1:3] == ["-o", "BatchMode=yes"]


def test_env_vars_exported_before_script():
    record = remote_site(**{"#env-vars": {"PATH": "/opt/php/bin:$PATH", "APP_ENV": "prod"}})
    invocation = DispatchEngine().build_invocation(record, "version", backend=False)
    script_index = invocation.remote_argv.index("drush")
    assert invocation.remote_argv[:script_index] == ["PATH='/opt/php/bin:$PATH'", "APP_ENV=prod"]


def test_windows_remote_quoting():
    record = remote_site(os="Windows")
    invocation = DispatchEngine().build_invocation(record, "echo", ["two words"], backend=False)
    assert invocation.argv[-1] == '"two words"'


def test_local_invocation_is_in_process():
    record = SiteRecord.create("@dev", {"root": "/path/to/drupal", "uri": "dev.example.com"})
    invocation = DispatchEngine().build_invocation(record, "core:status", ["a"], {"yes": True})

    assert invocation.is_local
    assert invocation.argv == []
    assert invocation.record is record
    assert invocation.command == "core:status"
    assert invocation.args == ["a"]
    assert invocation.options == {"yes": True}


def test_format_options():
    assert format_options({
        "#hidden": 1,
        "uri": "x",
        "flag": True,
        "off": False,
        "unset": None,
        "list": ("a", "b"),
        "nested": {"a": 1},
        "count": 3,
        "remote-host": "web1",
        "ssh-options": "-p 22",
    }) == ["--flag", "--list=a,b", "--count=3"]


def test_build_shell():
    engine = DispatchEngine()
    assert engine.build_shell(remote_site()) == [
        "ssh", "-o", "PasswordAuthentication=no", "-t", "deploy@web1.example.com", "cd /var/www && bash -l",
    ]
    assert engine.build_shell(remote_site(), "ls -la", tty=False)[-1] == "cd /var/www && ls -la"


def test_remote_port_adds_ssh_port_flag():
    invocation = DispatchEngine().build_invocation(remote_site(**{"remote-port": 2201}), "version", backend=False)
    assert invocation.argv[:6] == ["ssh", "-o", "PasswordAuthentication=no", "-p", "2201", "deploy@web1.example.com"]

    record = remote_site(**{"remote-port": 2201, "ssh-options": "-p 2202"})
    invocation = DispatchEngine().build_invocation(record, "version", backend=False)
    assert invocation.argv[:4] == ["ssh", "-p", "2202", "deploy@web1.example.com"]


@pytest.mark.parametrize(
    "ssh_options",
    ["-p2200", "-p 2200", "-o Port=2200", "-oPort=2200", "-o 'Port 2200'"],
)
def test_remote_port_not_added_when_options_choose_a_port(ssh_options):
    record = remote_site(**{"remote-port": 2201, "ssh-options": ssh_options})
    invocation = DispatchEngine().build_invocation(record, "version", backend=False)
    assert "2201" not in invocation.argv


@pytest.mark.parametrize("ssh_options", ["-o 'Foo", ["-p", "22"], 22])
def test_invalid_ssh_options_raise_config_error(ssh_options):
    record = remote_site(**{"ssh-options": ssh_options})
    with pytest.raises(ConfigError, match="@prod"):
        DispatchEngine().build_invocation(record, "version")


def test_invalid_configured_ssh_options():
    with pytest.raises(ConfigError, match="ssh.options"):
        DispatchEngine(ssh_options="-o 'Foo").build_invocation(remote_site(), "version")


@pytest.mark.parametrize("host", ["   ", 42, ""])
def test_blank_or_non_string_host_is_local_everywhere(host):
    record = SiteRecord.create("@odd", {"root": "/srv", "remote-host": host})
    assert record.remote_host is None
    assert not record.is_remote
    assert record.os == local_os()
    assert DispatchEngine().build_invocation(record, "version").is_local


def test_remote_host_is_stripped():
    record = remote_site(**{"remote-host": " web1.example.com "})
    invocation = DispatchEngine().build_invocation(record, "version", backend=False)
    assert invocation.host == "web1.example.com"
    assert "deploy@web1.example.com" in invocation.argv
