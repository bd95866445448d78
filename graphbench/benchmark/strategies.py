"""
Indexing Strategies.

How a synthetic node is written:
- UNIQUE: get-or-create through a named unique index keyed on `name`
- NONE: plain creation, no uniqueness check and no index write

Also builds the synthetic property payload carried by each node.
"""

import random
from enum import Enum
from typing import Any

from graphbench.benchmark.names import NameGenerator
from graphbench.graph.schema import NodeProperty
from graphbench.graph.store import NodeRef, Transaction

DEFAULT_INDEX_NAME = "Whatever"


def _random_long(rng: random.Random) -> int:
    """Signed 64-bit random integer."""
    return rng.getrandbits(64) - (1 << 63)


def synthetic_payload(generator: NameGenerator, rng: random.Random) -> dict[str, Any]:
    """
    Random payload for one node, excluding its name.

    The values carry no meaning; they only add write weight.
    """
    return {
        NodeProperty.ACTIVITY_LEVEL.value: _random_long(rng),
        NodeProperty.RANK.value: _random_long(rng),
        NodeProperty.GROUP.value: generator.next(),
        NodeProperty.STATUS.value: generator.next(),
        NodeProperty.POINTS.value: str(_random_long(rng)),
        NodeProperty.CASH.value: str(_random_long(rng)),
    }


class IndexingStrategy(str, Enum):
    """Node write policy."""

    UNIQUE = "UNIQUE"
    NONE = "NONE"

    @classmethod
    def _missing_(cls, value: object) -> "IndexingStrategy | None":
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "PLAIN":
                return cls.NONE
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def uses_index(self) -> bool:
        return self is IndexingStrategy.UNIQUE

    def create_node(
        self,
        tx: Transaction,
        name: str,
        payload: dict[str, Any] | None = None,
        index_name: str = DEFAULT_INDEX_NAME,
    ) -> NodeRef:
        """
        Write one synthetic node inside tx.

        Under UNIQUE the properties are only written when the node is new;
        an existing node with the same name is returned untouched.
        """
        properties = {NodeProperty.NAME.value: name}
        if payload:
            properties.update(payload)

        if self is IndexingStrategy.UNIQUE:

            def initialize(node: NodeRef, init_tx: Transaction) -> None:
                for key, value in properties.items():
                    init_tx.set_property(node, key, value)

            return tx.get_or_create(index_name, NodeProperty.NAME.value, name, initialize)

        node = tx.create_node()
        for key, value in properties.items():
            tx.set_property(node, key, value)
        return node
