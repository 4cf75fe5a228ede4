"""Generation of redis.conf content and config map names for a cluster."""

from __future__ import annotations

from collections.abc import Mapping

RESTORE_SUCCEEDED = "succeeded"
REDIS_CONF_KEY = "redis.conf"


def generate_redis_conf_content(config: Mapping[str, str] | None) -> str:
    """Render settings as ``key value`` lines sorted by key; empty values are skipped."""
    if config is None:
        return ""
    return "".join(f"{key} {config[key]}\n" for key in sorted(config) if config[key])


def redis_config_map_name(cluster_name: str) -> str:
    """Name of the config map holding a cluster's Redis configuration."""
    return f"redis-cluster-{cluster_name}"


def restore_config_map_name(cluster_name: str) -> str:
    """Name of the config map tracking a cluster's restore state."""
    return f"rediscluster-restore-{cluster_name}"