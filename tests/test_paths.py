import pytest

from sitedispatch.core.exceptions import PathAliasError
from sitedispatch.core.utils import current_user
from sitedispatch.domain.alias import HostPath, PathAliases, SiteRecord


def local_site(**extra):
    data = {"root": "/var/www", "uri": "example.com"}
    data.update(extra)
    return SiteRecord.create("@local", data)


def test_builtin_path_aliases():
    paths = PathAliases(local_site())
    assert paths.get("%root") == "/var/www"
    assert paths.get("%files") == "/var/www/sites/default/files"
    assert paths.get("%dump") is None
    assert paths.evaluate("%files/images") == "/var/www/sites/default/files/images"


def test_root_tracks_the_record():
    paths = PathAliases(local_site(root="/srv/other"))
    assert paths.evaluate("%root/web") == "/srv/other/web"


def test_configured_path_aliases_override_and_chain():
    record = local_site(**{
        "path-aliases": {
            "%files": "files",
            "%private": "%files/private",
            "%dump-dir": "/tmp/dumps",
        }
    })
    paths = PathAliases(record)
    assert paths.get("%files") == "/var/www/files"
    assert paths.get("%private") == "/var/www/files/private"
    assert paths.get("%dump") == "/tmp/dumps/example.com.sql"
    assert paths.resolved()["%private"] == "/var/www/files/private"


def test_self_referencing_path_aliases():
    record = local_site(**{"path-aliases": {"%a": "%b/x", "%b": "%a/y"}})
    with pytest.raises(PathAliasError):
        PathAliases(record).get("%a")


def test_undefined_path_alias():
    with pytest.raises(PathAliasError):
        PathAliases(local_site()).evaluate("%nope/file.txt")


def test_drush_script_local_and_remote():
    local = PathAliases(local_site(), local_drush_script="/usr/local/bin/drush")
    assert local.get("%drush-script") == "/usr/local/bin/drush"
    assert local.get("%drush") == "/usr/local/bin"

    remote = PathAliases(local_site(**{"remote-host": "web1"}), local_drush_script="/usr/local/bin/drush")
    assert remote.get("%drush-script") == "drush"
    assert remote.get("%drush") is None

    blank = PathAliases(local_site(**{"remote-host": "  "}), local_drush_script="/usr/local/bin/drush")
    assert blank.get("%drush-script") == "/usr/local/bin/drush"

    relative = PathAliases(local_site(**{"remote-host": "web1", "path-aliases": {"%drush-script": "vendor/bin/drush"}}))
    assert relative.get("%drush-script") == "/var/www/vendor/bin/drush"


def test_host_path_for_remote_alias(prod_aliases, make_resolver):
    resolver = make_resolver(prod_aliases)

    path = HostPath.create(resolver, "@prod:%files/")
    assert path.is_remote
    assert path.path == "/var/www/sites/default/files/"
    assert path.fully_qualified_path(preserve_trailing_slash=True) == (
        "publisher@prod.example.com:/var/www/sites/default/files/"
    )
    assert path.fully_qualified_path() == "publisher@prod.example.com:/var/www/sites/default/files"

    root = HostPath.create(resolver, "@prod")
    assert root.path == "/var/www"


def test_host_path_for_local_alias_and_plain_paths(prod_aliases, make_resolver):
    resolver = make_resolver(prod_aliases)

    dev = HostPath.create(resolver, "@dev:%files")
    assert not dev.is_remote
    assert dev.fully_qualified_path() == "/path/to/drupal/sites/default/files"

    local = HostPath.create(resolver, "./backup/")
    assert not local.is_remote
    assert local.fully_qualified_path(preserve_trailing_slash=True) == "./backup/"

    adhoc = HostPath.create(resolver, "bob@files.example.com:/data")
    assert adhoc.is_remote
    assert adhoc.fully_qualified_path() == "bob@files.example.com:/data"

    no_user = HostPath.create(resolver, "files.example.com:/data")
    assert no_user.fully_qualified_path() == f"{current_user()}@files.example.com:/data"
