# redisclusterkit

Tools for working with a Redis Cluster from Python: decoding `CLUSTER NODES`
output, reasoning about hash slots, checking that every node sees the same
cluster, and running administrative commands (meet, replicate, forget,
slot assignment, key migration, configuration and password changes).

It has no third-party dependencies and speaks the Redis protocol over plain
sockets.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

- `redisclusterkit.slots`: slot helpers. `decode_slot_range` reads an entry
  from `CLUSTER NODES` (a single slot, a range such as `42-52`, or an
  importing/migrating marker such as `[42->-<node id>]`) and returns the
  plain slots together with an `ImportingSlot` or `MigratingSlot`, if any;
  `slot_ranges_from_slots` and `format_slots` compact slot lists into
  `SlotRange`s; `remove_slots`, `remove_slot`, `add_slots`, `contains` and
  `build_slot_slice` handle slot lists.
- `redisclusterkit.node`: `Node`, `Nodes` (a list with lookup, filter and
  sort helpers) and `NodeRole`, with the predicates `is_master_with_slot`,
  `is_master_with_no_slot`, `is_slave`, the sort key `by_id` and the
  constructor `new_node`.
- `redisclusterkit.cluster`: `Cluster`, a collection of nodes keyed by ID
  with lookups by ID, IP, pod name or any predicate.
- `redisclusterkit.clusterinfo`: `decode_node_infos` parses the output of
  `CLUSTER NODES`; `decode_node_start_time` computes a start time from
  `INFO` output; `ClusterInfos.compute_status` decides whether every node
  agrees on which master owns which slots (`ClusterInfosStatus`).
- `redisclusterkit.client`: `RedisClient`, a small blocking RESP client with
  pipelining (`pipe_append`, `pipe_resp`, `pipe_clear`) and support for
  renamed commands. Replies come back as `Resp` objects.
- `redisclusterkit.connections`: `AdminConnections`, a pool of clients keyed
  by address, configured through `AdminOptions` (timeout in seconds, client
  name, a file of `rename-command` lines, password). A `client_factory` can
  be passed in place of `RedisClient`.
- `redisclusterkit.admin`: `Admin`, the cluster administration operations.
  It can be used as a context manager, which closes every connection.
- `redisclusterkit.errors`: `NodeNotFoundError`, `ClusterInfosError` and the
  checks `is_node_not_found_error`, `is_partial_error`,
  `is_inconsistent_error`.
- `redisclusterkit.confgen`: `generate_redis_conf_content` renders a
  `redis.conf` body from a mapping of settings; `redis_config_map_name` and
  `restore_config_map_name` give the names used for a cluster's config maps.
- `redisclusterkit.utils`: helpers such as `parse_redis_mem_conf` (turns
  `"12mb"` into `"12582912"`), `build_command_replace_mapping` (reads
  `rename-command` lines from a file), `merge_labels`, and the scope checks
  `set_cluster_scoped`, `is_cluster_scoped` and `should_manage`.

## Examples

Slots:

```python
from redisclusterkit.slots import decode_slot_range, format_slots, remove_slots

slots, importing, migrating = decode_slot_range("0-5")
remove_slots(slots, [0, 1])          # [2, 3, 4, 5]
format_slots([0, 1, 2, 7, 8])        # "[0-2 7-8]"
```

Decoding a node's view of the cluster:

```python
from redisclusterkit.clusterinfo import decode_node_infos

infos = decode_node_infos(raw_cluster_nodes_output, "10.0.0.1:6379")
print(infos.node.ip_port(), infos.node.get_role())
for friend in infos.friends:
    print(friend)
```

Administering a cluster:

```python
from redisclusterkit.admin import Admin
from redisclusterkit.connections import AdminOptions

password = "password"
with Admin(["10.0.0.1:6379", "10.0.0.2:6379"], AdminOptions(password=password)) as admin:
    infos = admin.get_cluster_infos()
    admin.attach_node_to_cluster("10.0.0.3:6379")
```

`get_cluster_infos` raises `ClusterInfosError` (from `redisclusterkit.errors`)
when some nodes did not answer or the views disagree. The error holds the
per-address failures in `errs`, and `is_partial_error` /
`is_inconsistent_error` tell the two cases apart. Commands that fail on a
node raise `CommandError` from `redisclusterkit.connections`.

Generating configuration:

```python
from redisclusterkit.confgen import generate_redis_conf_content

generate_redis_conf_content({"maxmemory": "1gb", "appendonly": "yes"})
# "appendonly yes\nmaxmemory 1gb\n"
```

## What it does not do

This is a library, not a running service. It has no command-line program,
does not watch or reconcile cluster resources by itself, and does not create
pods, services, config maps or other deployment objects: `confgen` only
produces the `redis.conf` text and the names for such objects. It does not
back up or restore data to object storage.