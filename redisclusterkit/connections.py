"""A pool of admin connections to the nodes of a Redis cluster, keyed by address."""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from redisclusterkit.client import PipelineEmptyError, RedisClient, ReplyError, Resp
from redisclusterkit.utils import build_command_replace_mapping

_log = logging.getLogger(__name__)

DEFAULT_CLIENT_TIMEOUT = 2.0
DEFAULT_CLIENT_NAME = ""
ERR_NOT_FOUND = "unable to find a node to connect"

ClientFactory = Callable[[str, str, float, Mapping[str, str]], Any]


class CommandError(Exception):
    """A command could not be run on a node."""


_CONNECT_ERRORS = (OSError, ReplyError, CommandError, ValueError)


@dataclass
class AdminOptions:
    """Optional settings for admin connections; the timeout is in seconds."""

    connection_timeout: float = 0
    client_name: str = ""
    rename_commands_file: str = ""
    password: str = ""


class AdminConnections:
    """Connections to cluster nodes. Not thread safe."""

    def __init__(
        self,
        addrs: Iterable[str] = (),
        options: AdminOptions | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._clients: dict[str, Any] = {}
        self._client_factory: ClientFactory = client_factory or RedisClient
        self._timeout = DEFAULT_CLIENT_TIMEOUT
        self._commands_mapping: dict[str, str] = {}
        self._client_name = DEFAULT_CLIENT_NAME
        self._password = ""
        if options is not None:
            if options.connection_timeout:
                self._timeout = options.connection_timeout
            if options.rename_commands_file and os.path.exists(options.rename_commands_file):
                self._commands_mapping = build_command_replace_mapping(
                    options.rename_commands_file
                )
            self._client_name = options.client_name
            self._password = options.password
        self.add_all(addrs)

    def get_auth(self) -> str | None:
        """The connection password, or None when none is set."""
        return self._password or None

    def reconnect(self, addr: str) -> None:
        """Drop and re-open the connection to the address."""
        _log.info("reconnecting to %s", addr)
        self.remove(addr)
        self.add(addr)

    def add_all(self, addrs: Iterable[str]) -> None:
        """Connect to every address, ignoring failures."""
        for addr in addrs:
            try:
                self.add(addr)
            except _CONNECT_ERRORS:
                continue

    def replace_all(self, addrs: Iterable[str]) -> None:
        """Close every connection and connect to the given addresses instead."""
        self.reset()
        self.add_all(addrs)

    def reset(self) -> None:
        """Close every connection and empty the pool."""
        for client in self._clients.values():
            client.close()
        self._clients = {}

    def get_all(self) -> dict[str, Any]:
        """All clients keyed by address."""
        return self._clients

    def get_selected(self, addrs: Iterable[str]) -> dict[str, Any]:
        """The clients for those of the addresses that are connected."""
        return {addr: self._clients[addr] for addr in addrs if addr in self._clients}

    def close(self) -> None:
        """Close every connection, keeping them in the pool."""
        for client in self._clients.values():
            client.close()

    def add(self, addr: str) -> None:
        """Connect to the address and register the connection."""
        self.update(addr)

    def remove(self, addr: str) -> None:
        """Close and forget the connection to the address."""
        client = self._clients.pop(addr, None)
        if client is not None:
            client.close()

    def update(self, addr: str) -> Any:
        """Open a fresh connection to the address, closing any current one."""
        current = self._clients.get(addr)
        if current is not None:
            current.close()
        try:
            client = self._connect(addr)
        except _CONNECT_ERRORS:
            _log.info("cannot connect to %s", addr)
            raise
        self._clients[addr] = client
        return client

    def get(self, addr: str) -> Any:
        """The client for the address, connecting first if needed."""
        client = self._clients.get(addr)
        if client is None:
            client = self._connect(addr)
            self._clients[addr] = client
        return client

    def get_random(self) -> Any:
        """A client to a random node; LookupError when the pool is empty."""
        if not self._clients:
            raise LookupError(ERR_NOT_FOUND)
        return random.choice(list(self._clients.values()))

    def get_different_from(self, addr: str) -> Any:
        """A random client whose address differs from ``addr``; LookupError if none."""
        candidates = [client for other, client in self._clients.items() if other != addr]
        if not candidates:
            raise LookupError(ERR_NOT_FOUND)
        return random.choice(candidates)

    def _connect(self, addr: str) -> Any:
        client = self._client_factory(
            addr, self._password, self._timeout, self._commands_mapping
        )
        if self._client_name:
            resp = client.cmd("CLIENT", "SETNAME", self._client_name)
            if resp is None or resp.err is not None:
                client.close()
                reason = "unable to connect" if resp is None else resp.err
                raise CommandError(
                    f"Unable to run command CLIENT SETNAME: unexpected error on node {addr}: "
                    f"{reason}"
                )
        return client

    def _handle_error(self, addr: str, err: BaseException | None) -> bool:
        """Reconnect after a network error; True when that happened."""
        if err is None or not isinstance(err, OSError):
            return False
        try:
            self.reconnect(addr)
        except _CONNECT_ERRORS:
            pass
        return True

    def validate_resp(self, resp: Resp | None, addr: str, err_message: str) -> None:
        """Raise CommandError for a missing or failed reply, reconnecting on network errors."""
        if resp is None:
            message = f"{err_message}: unable to connect to node {addr}"
            _log.error(message)
            raise CommandError(message)
        if resp.err is not None:
            self._handle_error(addr, resp.err)
            _log.error("%s: unexpected error on node %s: %s", err_message, addr, resp.err)
            raise CommandError(
                f"{err_message}: unexpected error on node {addr}: {resp.err}"
            ) from resp.err

    def validate_pipe_resp(self, client: Any, addr: str, err_message: str) -> bool:
        """Read every pipelined reply; False if any failed or the network broke."""
        ok = True
        while True:
            resp = client.pipe_resp()
            if resp is None:
                _log.error("%s: unable to connect to node %s", err_message, addr)
                return False
            if resp.err is None:
                continue
            if isinstance(resp.err, PipelineEmptyError):
                return ok
            _log.error("%s: unexpected error on node %s: %s", err_message, addr, resp.err)
            if self._handle_error(addr, resp.err):
                return False
            ok = False