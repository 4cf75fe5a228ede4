from collections import deque

import pytest

from redisclusterkit.client import PipelineEmptyError, ReplyError, Resp
from redisclusterkit.connections import (
    DEFAULT_CLIENT_TIMEOUT,
    ERR_NOT_FOUND,
    AdminConnections,
    AdminOptions,
    CommandError,
)


class FakeClient:
    def __init__(self, factory, addr, password, timeout, mapping):
        self.factory = factory
        self.addr = addr
        self.password = password
        self.timeout = timeout
        self.mapping = dict(mapping)
        self.closed = False
        self.commands = []
        self.pipe_replies = deque()

    def cmd(self, command, *args):
        self.commands.append([command, *args])
        return self.factory.replies.get(command, Resp(value="OK"))

    def pipe_resp(self):
        if self.pipe_replies:
            return self.pipe_replies.popleft()
        return Resp(err=PipelineEmptyError())

    def close(self):
        self.closed = True


class Factory:
    def __init__(self, refused=(), replies=None):
        self.refused = set(refused)
        self.replies = replies or {}
        self.created = []

    def __call__(self, addr, password, timeout, mapping):
        if addr in self.refused:
            raise ConnectionRefusedError(addr)
        client = FakeClient(self, addr, password, timeout, mapping)
        self.created.append(client)
        return client


ADDRS = ["10.0.0.1:6379", "10.0.0.2:6379"]


def test_init_connects_all_with_defaults():
    factory = Factory()
    cnx = AdminConnections(ADDRS, None, factory)
    assert sorted(cnx.get_all()) == ADDRS
    assert all(c.timeout == DEFAULT_CLIENT_TIMEOUT for c in factory.created)
    assert cnx.get_auth() is None


def test_init_skips_unreachable_addresses():
    factory = Factory(refused={ADDRS[1]})
    cnx = AdminConnections(ADDRS, None, factory)
    assert list(cnx.get_all()) == [ADDRS[0]]


def test_options_are_applied(tmp_path):
    rename_file = tmp_path / "redis.conf"
    rename_file.write_text("rename-command config abc\nbad line\n")
    password = "password"
    options = AdminOptions(
        connection_timeout=5.0,
        client_name="operator",
        rename_commands_file=str(rename_file),
        password=password,
    )
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], options, factory)
    client = factory.created[0]
    assert client.timeout == 5.0
    assert client.password == password
    assert client.mapping == {"CONFIG": "abc"}
    assert client.commands == [["CLIENT", "SETNAME", "operator"]]
    assert cnx.get_auth() == password


def test_setname_failure_prevents_registration():
    factory = Factory(replies={"CLIENT": Resp(err=ReplyError("ERR denied"))})
    cnx = AdminConnections([], AdminOptions(client_name="operator"), factory)
    with pytest.raises(CommandError):
        cnx.get(ADDRS[0])
    assert cnx.get_all() == {}
    assert factory.created[0].closed


def test_get_reuses_and_connects():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    assert cnx.get(ADDRS[0]) is factory.created[0]
    new_client = cnx.get(ADDRS[1])
    assert new_client is factory.created[1]
    assert cnx.get_all()[ADDRS[1]] is new_client


def test_get_unreachable_raises():
    cnx = AdminConnections([], None, Factory(refused={ADDRS[0]}))
    with pytest.raises(ConnectionRefusedError):
        cnx.get(ADDRS[0])


def test_remove_closes_and_forgets():
    factory = Factory()
    cnx = AdminConnections(ADDRS, None, factory)
    cnx.remove(ADDRS[0])
    assert factory.created[0].closed
    assert list(cnx.get_all()) == [ADDRS[1]]


def test_reset_and_replace_all():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    cnx.replace_all([ADDRS[1]])
    assert factory.created[0].closed
    assert list(cnx.get_all()) == [ADDRS[1]]
    cnx.reset()
    assert cnx.get_all() == {}
    assert factory.created[1].closed


def test_close_keeps_clients():
    factory = Factory()
    cnx = AdminConnections(ADDRS, None, factory)
    cnx.close()
    assert all(c.closed for c in factory.created)
    assert len(cnx.get_all()) == 2


def test_update_replaces_connection():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    old = factory.created[0]
    fresh = cnx.update(ADDRS[0])
    assert old.closed
    assert cnx.get_all()[ADDRS[0]] is fresh
    assert len(factory.created) == 2


def test_get_selected():
    cnx = AdminConnections(ADDRS, None, Factory())
    selected = cnx.get_selected([ADDRS[1], "10.9.9.9:6379"])
    assert list(selected) == [ADDRS[1]]


def test_get_random():
    cnx = AdminConnections([], None, Factory())
    with pytest.raises(LookupError, match=ERR_NOT_FOUND):
        cnx.get_random()
    cnx.add_all(ADDRS)
    assert cnx.get_random() in cnx.get_all().values()


def test_get_different_from():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    with pytest.raises(LookupError):
        cnx.get_different_from(ADDRS[0])
    assert cnx.get_different_from(ADDRS[1]) is factory.created[0]
    cnx.add(ADDRS[1])
    for _ in range(10):
        assert cnx.get_different_from(ADDRS[0]) is cnx.get_all()[ADDRS[1]]


def test_validate_resp_missing_reply():
    cnx = AdminConnections([], None, Factory())
    with pytest.raises(CommandError, match=f"oops: unable to connect to node {ADDRS[0]}"):
        cnx.validate_resp(None, ADDRS[0], "oops")


def test_validate_resp_reply_error_does_not_reconnect():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    with pytest.raises(CommandError, match="unexpected error on node"):
        cnx.validate_resp(Resp(err=ReplyError("ERR x")), ADDRS[0], "oops")
    assert len(factory.created) == 1
    assert not factory.created[0].closed


def test_validate_resp_timeout_reconnects():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    with pytest.raises(CommandError):
        cnx.validate_resp(Resp(err=TimeoutError()), ADDRS[0], "oops")
    assert factory.created[0].closed
    assert len(factory.created) == 2
    assert cnx.get_all()[ADDRS[0]] is factory.created[1]


def test_validate_resp_success_returns_none():
    cnx = AdminConnections([], None, Factory())
    assert cnx.validate_resp(Resp(value="OK"), ADDRS[0], "oops") is None


def test_validate_pipe_resp_all_ok():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    client = factory.created[0]
    client.pipe_replies.extend([Resp(value="OK"), Resp(value="OK")])
    assert cnx.validate_pipe_resp(client, ADDRS[0], "pipe") is True
    assert not client.pipe_replies


def test_validate_pipe_resp_reply_error():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    client = factory.created[0]
    client.pipe_replies.extend([Resp(err=ReplyError("ERR")), Resp(value="OK")])
    assert cnx.validate_pipe_resp(client, ADDRS[0], "pipe") is False
    assert not client.pipe_replies


def test_validate_pipe_resp_network_error_stops():
    factory = Factory()
    cnx = AdminConnections([ADDRS[0]], None, factory)
    client = factory.created[0]
    client.pipe_replies.extend([Resp(err=ConnectionResetError()), Resp(value="OK")])
    assert cnx.validate_pipe_resp(client, ADDRS[0], "pipe") is False
    assert len(client.pipe_replies) == 1
    assert client.closed
    assert len(factory.created) == 2