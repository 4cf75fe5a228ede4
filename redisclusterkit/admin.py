"""Administration of a Redis cluster through connections to each of its nodes."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from redisclusterkit.clusterinfo import ClusterInfos, ClusterInfosStatus, NodeInfos, decode_node_infos
from redisclusterkit.connections import AdminConnections, AdminOptions, CommandError
from redisclusterkit.errors import ClusterInfosError
from redisclusterkit.node import REDIS_MASTER_ROLE, REDIS_SLAVE_ROLE, Node, is_slave
from redisclusterkit.utils import parse_redis_mem_conf

_log = logging.getLogger(__name__)

DEFAULT_HASH_MAX_SLOTS = 16383
RESET_HARD = "HARD"
RESET_SOFT = "SOFT"

_CLUSTER_KNOWN_NODES_RE = re.compile(r"cluster_known_nodes:([0-9]+)")

# Settings whose values accept memory units and are reported by Redis in bytes.
_MEMORY_CONFIG_KEYS = frozenset(
    {
        "maxmemory",
        "proto-max-bulk-len",
        "client-query-buffer-limit",
        "repl-backlog-size",
        "auto-aof-rewrite-min-size",
        "active-defrag-ignore-bytes",
        "hash-max-ziplist-entries",
        "hash-max-ziplist-value",
        "stream-node-max-bytes",
        "set-max-intset-entries",
        "zset-max-ziplist-entries",
        "zset-max-ziplist-value",
        "hll-sparse-max-bytes",
    }
)


def _split_host_port(addr: str) -> tuple[str, str]:
    """Split host:port, accepting bracketed IPv6 hosts; raise ValueError if malformed."""
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or addr[end + 1 : end + 2] != ":":
            raise ValueError(f"invalid address {addr}")
        return addr[1:end], addr[end + 2 :]
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr}")
    if ":" in host:
        raise ValueError(f"too many colons in address {addr}")
    return host, port


class Admin:
    """Runs cluster administration commands on the nodes of a Redis cluster."""

    def __init__(
        self,
        addrs: Iterable[str] = (),
        options: AdminOptions | None = None,
        connections: AdminConnections | None = None,
    ) -> None:
        self.hash_max_slots = DEFAULT_HASH_MAX_SLOTS
        self._cnx = connections if connections is not None else AdminConnections(addrs, options)

    @property
    def connections(self) -> AdminConnections:
        """The connections to the cluster nodes."""
        return self._cnx

    def close(self) -> None:
        """Close every connection."""
        self._cnx.reset()

    def __enter__(self) -> Admin:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _collect_cluster_infos(self) -> tuple[ClusterInfos, ClusterInfosError | None]:
        infos = ClusterInfos()
        error = ClusterInfosError()
        for addr, client in list(self._cnx.get_all().items()):
            try:
                node_infos = self._get_infos(client, addr)
            except (CommandError, ValueError) as exc:
                _log.info("get redis info failed: %s", exc)
                infos.status = ClusterInfosStatus.PARTIAL
                error.partial = True
                error.errs[addr] = exc
                continue
            if node_infos.node.ip_port() == addr:
                infos.infos[addr] = node_infos
            else:
                _log.info("bad node info retrieved from %s", addr)

        if not error.errs:
            error.inconsistent = not infos.compute_status()
        if infos.status is ClusterInfosStatus.CONSISTENT:
            return infos, None
        return infos, error

    def get_cluster_infos(self) -> ClusterInfos:
        """Node infos of every node; raise ClusterInfosError unless the view is consistent."""
        infos, error = self._collect_cluster_infos()
        if error is not None:
            raise error
        return infos

    def _get_infos(self, client: Any, addr: str) -> NodeInfos:
        resp = client.cmd("CLUSTER", "NODES")
        self._cnx.validate_resp(resp, addr, "unable to retrieve node info")
        try:
            raw = resp.as_str()
        except TypeError as exc:
            raise ValueError(f"wrong format from CLUSTER NODES: {exc}") from exc
        return decode_node_infos(raw, addr)

    def cluster_manager_node_is_empty(self) -> bool:
        """True when every node knows only itself."""
        for addr, client in list(self._cnx.get_all().items()):
            if self._cluster_known_nodes(client, addr) != 1:
                return False
        return True

    def _cluster_known_nodes(self, client: Any, addr: str) -> int:
        resp = client.cmd("CLUSTER", "INFO")
        self._cnx.validate_resp(resp, addr, "unable to retrieve cluster info")
        try:
            raw = resp.as_str()
        except TypeError as exc:
            raise ValueError(f"wrong format from CLUSTER INFO: {exc}") from exc
        match = _CLUSTER_KNOWN_NODES_RE.search(raw)
        if match is None:
            raise ValueError("cluster_known_nodes regex not found")
        return int(match.group(1))

    def attach_slave_to_master(self, slave: Node, master_id: str) -> None:
        """Make the node a replica of the given master."""
        client = self._cnx.get(slave.ip_port())
        resp = client.cmd("CLUSTER", "REPLICATE", master_id)
        self._cnx.validate_resp(resp, slave.ip_port(), "unable to run command REPLICATE")
        slave.set_referent_master(master_id)
        slave.set_role(REDIS_SLAVE_ROLE)

    def add_slots(self, addr: str, slots: Sequence[int]) -> None:
        """Assign the slots to the node at the address."""
        if not slots:
            return
        client = self._cnx.get(addr)
        resp = client.cmd("CLUSTER", "ADDSLOTS", list(slots))
        self._cnx.validate_resp(resp, addr, "unable to run CLUSTER ADDSLOTS")

    def _pipe_setslot(self, client: Any, action: str, slot: int, node_id: str) -> None:
        if node_id:
            client.pipe_append("CLUSTER", "SETSLOT", slot, action, node_id)
        else:
            client.pipe_append("CLUSTER", "SETSLOT", slot, action)

    def set_slots(self, addr: str, action: str, slots: Sequence[int], node_id: str = "") -> None:
        """Run CLUSTER SETSLOT for each slot in one pipeline; node_id may be empty."""
        if not slots:
            return
        client = self._cnx.get(addr)
        for slot in slots:
            self._pipe_setslot(client, action, slot, node_id)
        if not self._cnx.validate_pipe_resp(client, addr, "Cannot SETSLOT"):
            raise CommandError(f"Error occured during CLUSTER SETSLOT {action}")
        client.pipe_clear()

    def set_slot(self, addr: str, action: str, slot: int, node_id: str = "") -> None:
        """Run CLUSTER SETSLOT on a single slot; node_id may be empty."""
        client = self._cnx.get(addr)
        self._pipe_setslot(client, action, slot, node_id)
        if not self._cnx.validate_pipe_resp(client, addr, "Cannot SETSLOT"):
            raise CommandError(f"Error occured during CLUSTER SETSLOT {action}")
        client.pipe_clear()

    def set_config_epoch(self) -> None:
        """Give each node a distinct config epoch, starting at 1."""
        for epoch, (addr, client) in enumerate(list(self._cnx.get_all().items()), start=1):
            resp = client.cmd("CLUSTER", "SET-CONFIG-EPOCH", epoch)
            self._cnx.validate_resp(resp, addr, "unable to run command SET-CONFIG-EPOCH")

    def attach_node_to_cluster(self, addr: str) -> None:
        """Introduce the node at the address to every other connected node."""
        ip, port = _split_host_port(addr)
        clients = list(self._cnx.get_all().items())
        if not clients:
            raise LookupError("no connection for other redis-node found")
        for other_addr, client in clients:
            if other_addr == addr:
                continue
            _log.debug("CLUSTER MEET from %s to %s", other_addr, addr)
            resp = client.cmd("CLUSTER", "MEET", ip, port)
            self._cnx.validate_resp(resp, addr, "cannot attach node to cluster")
        self._cnx.add(addr)
        _log.info("node %s attached properly", addr)

    def get_all_config(self, client: Any, addr: str) -> dict[str, str]:
        """All configuration settings of a node, from CONFIG GET *."""
        resp = client.cmd("CONFIG", "GET", "*")
        self._cnx.validate_resp(resp, addr, "unable to retrieve config")
        try:
            return resp.as_map()
        except TypeError as exc:
            raise ValueError(f"wrong format from CONFIG GET *: {exc}") from exc

    def set_config_if_need(self, new_config: Mapping[str, str]) -> None:
        """Apply each setting on every node where its current value differs."""
        for addr, client in list(self._cnx.get_all().items()):
            old_config = self.get_all_config(client, addr)
            for key, value in new_config.items():
                if key in _MEMORY_CONFIG_KEYS:
                    try:
                        value = parse_redis_mem_conf(value)
                    except ValueError:
                        _log.exception("redis config format err key=%s value=%s", key, value)
                        continue
                if value != old_config.get(key, ""):
                    _log.debug("CONFIG SET %s %s", key, value)
                    resp = client.cmd("CONFIG", "SET", key, value)
                    self._cnx.validate_resp(resp, addr, "unable to retrieve config")

    def get_hash_max_slot(self) -> int:
        """The highest slot number."""
        return self.hash_max_slots

    def migrate_keys(
        self,
        addr: str,
        dest: Node,
        slots: Sequence[int],
        batch: int,
        timeout: int,
        replace: bool,
    ) -> int:
        """Move every key of the slots to dest; return the number of keys moved.

        The timeout is in milliseconds; with replace, existing keys are overwritten.
        """
        if not slots:
            return 0
        client = self._cnx.get(addr)
        return sum(
            self._migrate_slot(client, addr, dest, slot, batch, timeout, replace) for slot in slots
        )

    def migrate_keys_in_slot(
        self, addr: str, dest: Node, slot: int, batch: int, timeout: int, replace: bool
    ) -> int:
        """Move every key of one slot to dest; return the number of keys moved."""
        client = self._cnx.get(addr)
        return self._migrate_slot(client, addr, dest, slot, batch, timeout, replace)

    def _migrate_slot(
        self,
        client: Any,
        addr: str,
        dest: Node,
        slot: int,
        batch: int,
        timeout: int,
        replace: bool,
    ) -> int:
        key_count = 0
        while True:
            resp = client.cmd("CLUSTER", "GETKEYSINSLOT", slot, str(batch))
            self._cnx.validate_resp(resp, addr, "Unable to run command GETKEYSINSLOT")
            try:
                keys = resp.as_list()
            except TypeError as exc:
                _log.error("wrong returned format for CLUSTER GETKEYSINSLOT")
                raise ValueError(f"wrong format from CLUSTER GETKEYSINSLOT: {exc}") from exc
            key_count += len(keys)
            if not keys:
                return key_count
            args = self._migrate_cmd_args(dest, str(timeout), replace, keys)
            resp = client.cmd("MIGRATE", *args)
            self._cnx.validate_resp(resp, addr, "Unable to run command MIGRATE")

    def _migrate_cmd_args(
        self, dest: Node, timeout: str, replace: bool, keys: list[str]
    ) -> list[str]:
        args = [dest.ip, dest.port, "", "0", timeout]
        auth = self._cnx.get_auth()
        if auth is not None:
            args += ["AUTH", auth]
        if replace:
            args.append("REPLACE")
        args.append("KEYS")
        args.extend(keys)
        return args

    def forget_node(self, node_id: str) -> None:
        """Make every other node forget the node, detaching its replicas first."""
        infos, _ = self._collect_cluster_infos()
        for node_addr, node_infos in infos.infos.items():
            node = node_infos.node
            if node.id == node_id:
                continue
            if is_slave(node) and node.master_referent == node_id:
                try:
                    self.detach_slave(node)
                except (CommandError, LookupError, OSError, ValueError):
                    _log.exception("DetachSlave node=%s", node_addr)
                _log.info("detach slave id: %s of master: %s", node.id, node_id)
            try:
                client = self._cnx.get(node_addr)
            except (CommandError, OSError, ValueError):
                _log.exception(
                    "cannot force a forget on node %s, for node %s", node_addr, node_id
                )
                continue
            _log.info("CLUSTER FORGET %s from %s", node_id, node_addr)
            resp = client.cmd("CLUSTER", "FORGET", node_id)
            try:
                self._cnx.validate_resp(resp, node_addr, "Unable to execute FORGET command")
            except CommandError:
                pass
        _log.info("Forget node done: %s", node_id)

    def detach_slave(self, slave: Node) -> None:
        """Reset a replica and bring it back into the cluster as a master."""
        addr = slave.ip_port()
        client = self._cnx.get(addr)
        resp = client.cmd("CLUSTER", "RESET", RESET_SOFT)
        self._cnx.validate_resp(resp, addr, "cannot attach node to cluster")
        self.attach_node_to_cluster(addr)
        slave.set_referent_master("")
        slave.set_role(REDIS_MASTER_ROLE)

    def flush_and_reset(self, addr: str, mode: str) -> None:
        """Flush the node and reset its cluster state in one pipeline."""
        client = self._cnx.get(addr)
        client.pipe_append("FLUSHALL")
        client.pipe_append("CLUSTER", "RESET", mode)
        if not self._cnx.validate_pipe_resp(client, addr, "Cannot reset node"):
            raise CommandError(f"Cannot reset node {addr}")

    def reset_password(self, new_password: str) -> None:
        """Set masterauth and requirepass on every node."""
        clients = list(self._cnx.get_all().items())
        if not clients:
            raise LookupError("no connection for other redis-node found")
        for addr, client in clients:
            _log.info("reset password addr=%s", addr)
            resp = client.cmd("CONFIG", "SET", "masterauth", new_password)
            self._cnx.validate_resp(resp, addr, "cannot set new masterauth")
            resp = client.cmd("CONFIG", "SET", "requirepass", new_password)
            self._cnx.validate_resp(resp, addr, "cannot set new requirepass")