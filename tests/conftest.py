import textwrap

import pytest

from sitedispatch.core.hooks import HookRegistry
from sitedispatch.domain.alias import AliasResolver, ResolverContext


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No user config, no SITED_* variables leaking into tests"""
    import os

    for key in list(os.environ):
        if key.startswith("SITED_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def alias_dir(tmp_path):
    directory = tmp_path / "aliases"
    directory.mkdir()
    return directory


@pytest.fixture
def write_alias():
    """Write a TOML alias file: write_alias(directory, filename, content)"""

    def _write(directory, filename, content):
        path = directory / filename
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_resolver():
    """Resolver over explicit directories only (built-in locations ignored)"""

    def _make(*directories, hooks=None, **kwargs):
        context = ResolverContext(
            alias_path=[str(d) for d in directories],
            default_dirs=[],
            hooks=hooks or HookRegistry(),
            **kwargs,
        )
        return AliasResolver(context)

    return _make


@pytest.fixture
def prod_aliases(alias_dir, write_alias):
    """A local @dev and a remote @prod in one ungrouped aliases.toml"""
    write_alias(
        alias_dir,
        "aliases.toml",
        """
        [dev]
        root = "/path/to/drupal"
        uri = "dev.mydrupalsite.com"

        [prod]
        root = "/var/www"
        uri = "mydrupalsite.com"
        remote-host = "prod.example.com"
        remote-user = "publisher"
        """,
    )
    return alias_dir
