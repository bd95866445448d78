"""
Graph Schema.

Relationship types, property names and store backends used by the benchmark.
"""

from enum import Enum


class RelationType(str, Enum):
    """Relationship types written by the benchmark."""

    LIKES = "LIKES"  # SyntheticNode -> RootNode


class NodeProperty(str, Enum):
    """Property keys on synthetic nodes."""

    NAME = "name"
    ACTIVITY_LEVEL = "activityLevel"
    RANK = "rank"
    GROUP = "group"
    STATUS = "status"
    POINTS = "points"
    CASH = "cash"


class StoreBackend(str, Enum):
    """Available graph store adapters."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    NEO4J = "neo4j"
