"""A minimal blocking Redis client speaking RESP, with pipelining and command renaming."""

from __future__ import annotations

import socket
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

_CRLF = b"\r\n"


class ReplyError(Exception):
    """An error reply sent back by the Redis server."""


class PipelineEmptyError(Exception):
    """The pipeline queue holds neither commands nor responses."""

    def __init__(self, message: str = "pipeline queue empty") -> None:
        super().__init__(message)


def _to_str(value: Any) -> str:
    if isinstance(value, BaseException):
        raise value
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="surrogateescape")
    raise TypeError("response is not a string")


@dataclass
class Resp:
    """A reply from the server; ``err`` is set for error replies and network failures."""

    value: Any = None
    err: BaseException | None = None

    def as_str(self) -> str:
        """The reply as a string; raise the reply's error or TypeError."""
        if self.err is not None:
            raise self.err
        return _to_str(self.value)

    def as_list(self) -> list[str]:
        """The reply as a list of strings; raise the reply's error or TypeError."""
        if self.err is not None:
            raise self.err
        if not isinstance(self.value, list):
            raise TypeError("response is not an array")
        return [_to_str(item) for item in self.value]

    def as_map(self) -> dict[str, str]:
        """The reply as a mapping of alternating keys and values."""
        items = self.as_list()
        if len(items) % 2:
            raise TypeError("response has an odd number of elements")
        return dict(zip(items[::2], items[1::2]))


def _flatten(args: Iterable[Any]) -> Iterator[Any]:
    for arg in args:
        if isinstance(arg, (list, tuple)):
            yield from _flatten(arg)
        else:
            yield arg


def _to_bytes(arg: Any) -> bytes:
    if isinstance(arg, (bytes, bytearray)):
        return bytes(arg)
    if isinstance(arg, bool):
        return b"1" if arg else b"0"
    return str(arg).encode("utf-8")


def encode_command(args: Iterable[Any]) -> bytes:
    """Encode a command as a RESP array of bulk strings; nested lists are flattened."""
    parts = [_to_bytes(arg) for arg in _flatten(args)]
    chunks = [b"*%d\r\n" % len(parts)]
    for part in parts:
        chunks += [b"$%d\r\n" % len(part), part, _CRLF]
    return b"".join(chunks)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


class RedisClient:
    """A connection to one Redis server."""

    def __init__(
        self,
        addr: str,
        password: str = "",
        timeout: float = 0,
        commands_mapping: Mapping[str, str] | None = None,
    ) -> None:
        self.addr = addr
        self._commands_mapping = dict(commands_mapping or {})
        self._pending: list[bytes] = []
        self._completed: deque[Resp] = deque()
        self._closed = False
        host, port = _split_addr(addr)
        self._sock = socket.create_connection((host, port), timeout=timeout or None)
        self._reader = self._sock.makefile("rb")
        if password:
            resp = self._call("AUTH", (password,))
            if resp.err is not None:
                self.close()
                raise resp.err

    def __enter__(self) -> RedisClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection."""
        if self._closed:
            return
        self._closed = True
        self._reader.close()
        self._sock.close()

    def _command_name(self, command: str) -> str:
        upper = command.upper()
        return self._commands_mapping.get(upper, upper)

    def _call(self, name: str, args: tuple[Any, ...]) -> Resp:
        try:
            self._sock.sendall(encode_command([name, *args]))
        except OSError as exc:
            return Resp(err=exc)
        return self._read_resp()

    def cmd(self, command: str, *args: Any) -> Resp:
        """Send a command, applying any rename, and return its reply."""
        return self._call(self._command_name(command), args)

    def pipe_append(self, command: str, *args: Any) -> None:
        """Queue a command; replies are read through pipe_resp."""
        self._pending.append(encode_command([self._command_name(command), *args]))

    def pipe_resp(self) -> Resp:
        """The reply to the next queued command; PipelineEmptyError when none is left."""
        if self._completed:
            return self._completed.popleft()
        if not self._pending:
            return Resp(err=PipelineEmptyError())
        payload = b"".join(self._pending)
        count = len(self._pending)
        self._pending.clear()
        try:
            self._sock.sendall(payload)
        except OSError as exc:
            return Resp(err=exc)
        self._completed.extend(self._read_resp() for _ in range(count))
        return self._completed.popleft()

    def pipe_clear(self) -> tuple[int, int]:
        """Drop queued commands and unread replies; return how many of each."""
        dropped = (len(self._pending), len(self._completed))
        self._pending.clear()
        self._completed.clear()
        return dropped

    def read_resp(self) -> Resp:
        """Read one reply without sending anything first."""
        return self._read_resp()

    def _read_resp(self) -> Resp:
        try:
            value = self._read_value()
        except (OSError, ValueError) as exc:
            return Resp(err=exc)
        if isinstance(value, ReplyError):
            return Resp(err=value)
        return Resp(value=value)

    def _read_line(self) -> bytes:
        line = self._reader.readline()
        if not line.endswith(_CRLF):
            raise ConnectionError("connection closed by server")
        return line[:-2]

    def _read_value(self) -> Any:
        line = self._read_line()
        kind, body = line[:1], line[1:]
        if kind == b"+":
            return body.decode("utf-8", errors="surrogateescape")
        if kind == b"-":
            return ReplyError(body.decode("utf-8", errors="surrogateescape"))
        if kind == b":":
            return int(body)
        if kind == b"$":
            length = int(body)
            if length < 0:
                return None
            data = self._reader.read(length + 2)
            if len(data) != length + 2 or not data.endswith(_CRLF):
                raise ConnectionError("truncated bulk reply")
            return data[:-2]
        if kind == b"*":
            length = int(body)
            if length < 0:
                return None
            return [self._read_value() for _ in range(length)]
        raise ValueError(f"unexpected reply type {kind!r}")