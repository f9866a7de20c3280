import pytest

from sitedispatch.adapters.cli.backend import main, parse_backend_argv
from sitedispatch.domain.dispatch import parse_payload


def test_parse_backend_argv():
    parsed = parse_backend_argv([
        "@prod", "--root=/var/www", "--uri", "example.com", "--backend",
        "sql:query", "SELECT 1", "--db-prefix", "--extra=a,b", "--", "--not-an-option",
    ])
    assert parsed.alias == "@prod"
    assert parsed.command == "sql:query"
    assert parsed.args == ["SELECT 1", "--not-an-option"]
    assert parsed.options == {"db-prefix": True, "extra": "a,b"}
    assert parsed.globals == {"root": "/var/www", "uri": "example.com", "backend": True}
    assert parsed.backend


def test_similar_option_names_are_not_globals():
    parsed = parse_backend_argv(["status", "--uri-scheme=https", "--backend-only", "-l", "site.example.com"])
    assert parsed.options == {"uri-scheme": "https", "backend-only": True}
    assert parsed.globals == {"uri": "site.example.com"}
    assert not parsed.backend


def test_value_option_does_not_swallow_next_option():
    parsed = parse_backend_argv(["--root", "--backend", "version"])
    assert parsed.globals == {"root": None, "backend": True}
    assert parsed.command == "version"


def test_backend_mode_prints_payload(capsys):
    status = main(["--root=/var/www", "--uri=example.com", "--backend", "core:status"])
    assert status == 0
    payload, _ = parse_payload(capsys.readouterr().out)
    assert payload["error_status"] == 0
    assert payload["object"]["root"] == "/var/www"
    assert payload["object"]["uri"] == "example.com"


def test_backend_mode_delimited(capsys):
    main(["--backend", "--delimited", "echo", "x"])
    out = capsys.readouterr().out
    assert out.startswith("DRUSH_BACKEND_OUTPUT_START>>>")
    assert parse_payload(out)[0]["output"] == "x"


def test_failure_reported_in_payload(capsys):
    status = main(["--backend", "no-such-command"])
    assert status == 1
    payload, _ = parse_payload(capsys.readouterr().out)
    assert payload["error_status"] == 1
    assert "no-such-command" in payload["output"]


def test_plain_mode_prints_output(capsys):
    assert main(["echo", "hello", "there"]) == 0
    assert capsys.readouterr().out == "hello there\n"


@pytest.mark.parametrize("argv", [[], ["@missing", "version"]])
def test_plain_mode_errors(argv):
    assert main(argv) == 1
