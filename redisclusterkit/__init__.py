"""Redis Cluster toolkit: slots, nodes, cluster views, a RESP client and admin operations."""

__version__ = "0.2.2"