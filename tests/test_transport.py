import sys

import pytest

from sitedispatch.core.client import read_channel
from sitedispatch.core.exceptions import ConfigError, InvokeTimeoutError, SpawnFailedError
from sitedispatch.domain.alias import SiteRecord
from sitedispatch.domain.dispatch import DispatchEngine, Invocation
from sitedispatch.infrastructure.transport import ParamikoTransport, SubprocessTransport, create_transport


def test_create_transport():
    assert isinstance(create_transport(), SubprocessTransport)
    assert isinstance(create_transport("ssh"), SubprocessTransport)
    assert isinstance(create_transport("Paramiko"), ParamikoTransport)
    with pytest.raises(ConfigError):
        create_transport("telnet")


def test_subprocess_transport_returns_streams_and_status():
    invocation = Invocation(
        kind="process",
        target="@x",
        command="script",
        argv=[sys.executable, "-c", "import sys; print('out'); sys.stderr.write('err'); sys.exit(3)"],
    )
    assert SubprocessTransport().run(invocation) == ("out\n", "err", 3)


def test_subprocess_transport_errors():
    with pytest.raises(SpawnFailedError):
        SubprocessTransport().run(Invocation(kind="process", target="@x", command="none"))

    invocation = Invocation(
        kind="process",
        target="@x",
        command="sleep",
        argv=[sys.executable, "-c", "import sys, time; print('partial', flush=True); time.sleep(5)"],
    )
    with pytest.raises(InvokeTimeoutError) as excinfo:
        SubprocessTransport().run(invocation, timeout=0.5)
    assert "partial" in excinfo.value.stdout


def test_paramiko_connection_params_from_ssh_config(tmp_path):
    ssh_config = tmp_path / "ssh_config"
    ssh_config.write_text(
        "Host web1\n"
        "    HostName 10.0.0.5\n"
        "    Port 2200\n"
        "    IdentityFile ~/.ssh/deploy_key\n",
        encoding="utf-8",
    )
    record = SiteRecord.create("@prod", {"remote-host": "web1", "remote-user": "deploy"})
    invocation = DispatchEngine().build_invocation(record, "version")

    params = ParamikoTransport(ssh_config=str(ssh_config))._connection_params(invocation)
    assert params["host"] == "10.0.0.5"
    assert params["port"] == 2200
    assert params["user"] == "deploy"
    assert params["key_file"].endswith("deploy_key")

    record = SiteRecord.create("@prod", {"remote-host": "web1", "remote-user": "deploy", "remote-port": 2222})
    invocation = DispatchEngine().build_invocation(record, "version")
    assert ParamikoTransport(ssh_config=str(ssh_config))._connection_params(invocation)["port"] == 2222


def test_paramiko_without_ssh_config(tmp_path):
    record = SiteRecord.create("@prod", {"remote-host": "web1", "remote-user": "deploy"})
    invocation = DispatchEngine().build_invocation(record, "version")
    params = ParamikoTransport(ssh_config=str(tmp_path / "missing"))._connection_params(invocation)
    assert params == {"host": "web1", "user": "deploy", "port": 22, "key_file": None}


def test_paramiko_requires_host():
    with pytest.raises(SpawnFailedError):
        ParamikoTransport().run(Invocation(kind="remote", target="@x", command="version"))


class FakeChannel:
    """Exec channel stand-in fed from a list of stdout chunks"""

    def __init__(self, chunks=(), stderr=b"", exit_code=0, endless=False):
        self.chunks = list(chunks)
        self.stderr = stderr
        self.exit_code = exit_code
        self.endless = endless
        self.closed = False

    def recv_ready(self):
        return self.endless or bool(self.chunks)

    def recv(self, size):
        if self.endless:
            return b"tick\n"
        return self.chunks.pop(0)

    def recv_stderr_ready(self):
        return bool(self.stderr)

    def recv_stderr(self, size):
        data, self.stderr = self.stderr, b""
        return data

    def exit_status_ready(self):
        return not self.endless and not self.chunks

    def recv_exit_status(self):
        return self.exit_code

    def close(self):
        self.closed = True


def test_read_channel_collects_output_and_status():
    channel = FakeChannel([b"one\n", b"two\n"], stderr=b"warn\n", exit_code=4)
    assert read_channel(channel, timeout=5) == ("one\ntwo\n", "warn\n", 4)
    assert not channel.closed


def test_read_channel_deadline_covers_whole_run():
    channel = FakeChannel(endless=True)
    with pytest.raises(InvokeTimeoutError) as excinfo:
        read_channel(channel, timeout=0.2, poll_interval=0.01)
    assert channel.closed
    assert excinfo.value.stdout.startswith("tick\n")
