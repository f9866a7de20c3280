import pytest

from sitedispatch.core.exceptions import ConfigError
from sitedispatch.domain.alias import HostPath
from sitedispatch.domain.dispatch import build_rsync, rsync_options, validate_rsync


def test_two_remote_ends_are_rejected(prod_aliases, make_resolver):
    resolver = make_resolver(prod_aliases)
    source = HostPath.create(resolver, "@prod:%files")
    target = HostPath.create(resolver, "bob@backup.example.com:/backups")

    result = validate_rsync(source, target)
    assert not result.ok
    assert result.error.field == "target"
    assert "two remote" in str(result.error)


def test_local_to_remote(prod_aliases, make_resolver):
    resolver = make_resolver(prod_aliases)
    source = HostPath.create(resolver, "./files/")
    target = HostPath.create(resolver, "@prod:%files")

    assert validate_rsync(source, target).ok
    invocation = build_rsync(source, target)
    assert invocation.kind == "process"
    assert invocation.target == "@prod"
    assert invocation.argv == [
        "rsync",
        "-e",
        "ssh -o PasswordAuthentication=no",
        "-akz",
        "./files/",
        "publisher@prod.example.com:/var/www/sites/default/files",
    ]


def test_remote_record_ssh_options_and_extra_args(alias_dir, write_alias, make_resolver):
    write_alias(
        alias_dir,
        "web.alias.toml",
        """
        root = "/srv/web"
        remote-host = "web.example.com"
        remote-user = "www"
        ssh-options = "-p 2200"
        """,
    )
    resolver = make_resolver(alias_dir)
    source = HostPath.create(resolver, "@web:%files/")
    target = HostPath.create(resolver, "/tmp/files")

    invocation = build_rsync(source, target, {"mode": "rlt"}, extra=["--dry-run"])
    assert invocation.argv == [
        "rsync",
        "-e",
        "ssh -p 2200",
        "-rlt",
        "--dry-run",
        "www@web.example.com:/srv/web/sites/default/files/",
        "/tmp/files",
    ]


def test_rsync_options():
    assert rsync_options({}) == ["-akz"]
    assert rsync_options({}, verbose=True) == ["-akzv", "--stats", "--progress"]
    assert rsync_options({
        "mode": "rultz",
        "include-paths": "css",
        "exclude-paths": "private;tmp",
    }) == ["-rultz", "--include=css", "--exclude=private", "--exclude=tmp"]
    assert rsync_options({"exclude-paths": ["a", "b"]}) == ["-akz", "--exclude=a", "--exclude=b"]


def test_remote_port_added_to_ssh_command(alias_dir, write_alias, make_resolver):
    write_alias(
        alias_dir,
        "web.alias.toml",
        """
        root = "/srv/web"
        remote-host = "web.example.com"
        remote-port = 2222
        """,
    )
    resolver = make_resolver(alias_dir)
    source = HostPath.create(resolver, "/tmp/files/")
    target = HostPath.create(resolver, "@web:%files")

    invocation = build_rsync(source, target)
    assert invocation.argv[1:3] == ["-e", "ssh -o PasswordAuthentication=no -p 2222"]


def test_port_already_in_ssh_options(alias_dir, write_alias, make_resolver):
    write_alias(
        alias_dir,
        "web.alias.toml",
        """
        remote-host = "web.example.com"
        remote-port = 2222
        ssh-options = "-o Port=2200"
        """,
    )
    resolver = make_resolver(alias_dir)
    invocation = build_rsync(HostPath.create(resolver, "/tmp/a/"), HostPath.create(resolver, "@web:/tmp/a"))
    assert invocation.argv[1:3] == ["-e", "ssh -o Port=2200"]


def test_invalid_ssh_options(alias_dir, write_alias, make_resolver):
    write_alias(
        alias_dir,
        "web.alias.toml",
        """
        remote-host = "web.example.com"
        ssh-options = "-o 'Foo"
        """,
    )
    resolver = make_resolver(alias_dir)
    with pytest.raises(ConfigError, match="@web"):
        build_rsync(HostPath.create(resolver, "/tmp/a/"), HostPath.create(resolver, "@web:/tmp/a"))


def test_blank_remote_host_is_a_local_end(alias_dir, write_alias, make_resolver):
    write_alias(
        alias_dir,
        "blank.alias.toml",
        """
        root = "/srv/blank"
        remote-host = "   "
        """,
    )
    resolver = make_resolver(alias_dir)
    target = HostPath.create(resolver, "@blank:/tmp")
    assert not target.is_remote

    invocation = build_rsync(HostPath.create(resolver, "/local"), target)
    assert invocation.argv[-1] == "/tmp"
    assert not any("@" in arg for arg in invocation.argv)
