import paramiko
import pytest

from fleetwipe.remote import HostConnectionException, LocalFilesystem, LocalHostConfig, SFTPFilesystem, SSHHostConfig
from fleetwipe.remote import hosts


class FakeSSHClient:
    serverKey = None
    failWith = None
    instances = []

    def __init__(self):
        self.hostKeys = paramiko.HostKeys()
        self.policy = None
        self.connectArgs = None
        self.closed = False
        FakeSSHClient.instances.append(self)

    def load_system_host_keys(self):
        pass

    def get_host_keys(self):
        return self.hostKeys

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def connect(self, **kwargs):
        self.connectArgs = kwargs
        if FakeSSHClient.failWith is not None:
            raise FakeSSHClient.failWith
        if self.hostKeys.lookup(kwargs["hostname"]) is None:
            assert self.policy is not None, "unknown host without a missing key policy"
            self.hostKeys.add(kwargs["hostname"], self.serverKey.get_name(), self.serverKey)

    def open_sftp(self):
        return object()

    def close(self):
        self.closed = True


@pytest.fixture
def fake_ssh(monkeypatch):
    FakeSSHClient.instances = []
    FakeSSHClient.failWith = None
    FakeSSHClient.serverKey = paramiko.RSAKey.generate(1024)
    monkeypatch.setattr(hosts.paramiko, "SSHClient", FakeSSHClient)
    return FakeSSHClient


def test_local_host_config_gives_local_filesystem():
    assert isinstance(LocalHostConfig().connect(), LocalFilesystem)


def test_first_connection_learns_the_hostkey(fake_ssh):
    config = SSHHostConfig("web01.example.com", username="ops", port=2222, timeout=5)

    fs = config.connect()

    assert isinstance(fs, SFTPFilesystem)
    (client,) = fake_ssh.instances
    assert isinstance(client.policy, paramiko.AutoAddPolicy)
    assert client.connectArgs["hostname"] == "web01.example.com"
    assert client.connectArgs["port"] == 2222
    assert client.connectArgs["username"] == "ops"
    assert client.connectArgs["timeout"] == 5
    assert config.hostkey.startswith("web01.example.com ssh-rsa ")


def test_saved_hostkey_is_trusted_without_auto_add(fake_ssh):
    line = paramiko.hostkeys.HostKeyEntry(["web01.example.com"], fake_ssh.serverKey).to_line().strip()
    config = SSHHostConfig("web01.example.com", username="ops", hostkey=line)

    config.connect()

    (client,) = fake_ssh.instances
    assert client.policy is None
    assert config.hostkey == line


def test_connection_errors_become_host_connection_exceptions(fake_ssh):
    fake_ssh.failWith = paramiko.AuthenticationException("Authentication failed.")
    config = SSHHostConfig("web01.example.com", username="ops", password="wrong")

    with pytest.raises(HostConnectionException, match="web01.example.com"):
        config.connect()

    (client,) = fake_ssh.instances
    assert client.closed


def test_socket_errors_become_host_connection_exceptions(fake_ssh):
    fake_ssh.failWith = TimeoutError("timed out")

    with pytest.raises(HostConnectionException, match="timed out"):
        SSHHostConfig("web02.example.com", username="ops").connect()


def test_invalid_saved_hostkey_is_ignored_and_learned_again(fake_ssh):
    config = SSHHostConfig("web01.example.com", username="ops", hostkey="web01.example.com ssh-rsa !!!notbase64")

    fs = config.connect()

    assert isinstance(fs, SFTPFilesystem)
    (client,) = fake_ssh.instances
    assert isinstance(client.policy, paramiko.AutoAddPolicy)
    assert not client.closed
    assert config.hostkey.startswith("web01.example.com ssh-rsa ")
    assert "!!!notbase64" not in config.hostkey


def test_unexpected_errors_still_close_the_client(fake_ssh):
    fake_ssh.failWith = ValueError("unexpected")

    with pytest.raises(ValueError):
        SSHHostConfig("web01.example.com", username="ops").connect()

    (client,) = fake_ssh.instances
    assert client.closed
