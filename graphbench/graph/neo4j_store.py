"""
Neo4j Graph Store.

Runs the benchmark workload against a Neo4j server through the official
Python driver.

Isolation: every store instance tags the nodes it creates with a unique run
label, so runs sharing one database never see each other's data. Unique
indexes are backed by a uniqueness constraint on a per-run index label and
get-or-create is a MERGE, which takes the constraint's key lock until commit.
"""

import re
import threading
import uuid
from typing import Any

import structlog
from neo4j import Driver, GraphDatabase, ManagedTransaction, Session
from neo4j import Transaction as DriverTransaction
from neo4j.exceptions import DriverError, Neo4jError

from graphbench.config.settings import Neo4jSettings, get_settings
from graphbench.graph.store import (
    GraphStore,
    NodeInitializer,
    NodeRef,
    StoreUnavailable,
    Transaction,
    TransactionFailure,
)

logger = structlog.get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _identifier(value: str, what: str) -> str:
    """Validate a label, type or key before it is interpolated into Cypher."""
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


def _translate(exc: Exception) -> TransactionFailure:
    code = getattr(exc, "code", None) or type(exc).__name__
    error_type = "deadlock" if "Deadlock" in str(code) else "store_error"
    return TransactionFailure(f"Neo4j error [{code}]: {exc}", error_type=error_type)


class Neo4jTransaction(Transaction):
    """Explicit driver transaction on its own session."""

    def __init__(self, store: "Neo4jGraphStore", session: Session) -> None:
        super().__init__()
        self._store = store
        self._session = session
        try:
            self._tx: DriverTransaction = session.begin_transaction()
        except (Neo4jError, DriverError) as e:
            session.close()
            self._closed = True
            raise _translate(e) from e

    def _run_single(self, query: str, **params: Any) -> Any:
        self._check_open()
        try:
            return self._tx.run(query, **params).single()
        except (Neo4jError, DriverError) as e:
            raise _translate(e) from e

    def create_node(self) -> NodeRef:
        record = self._run_single(
            f"CREATE (n:`{self._store.run_label}`) RETURN elementId(n) AS id"
        )
        return NodeRef(record["id"])

    def set_property(self, node: NodeRef, key: str, value: Any) -> None:
        record = self._run_single(
            "MATCH (n) WHERE elementId(n) = $id SET n += $props RETURN elementId(n) AS id",
            id=node.id,
            props={key: value},
        )
        if record is None:
            raise TransactionFailure(f"Node {node.id} not found", error_type="not_found")

    def create_relationship(self, start: NodeRef, end: NodeRef, rel_type: str) -> None:
        rel_type = _identifier(rel_type, "relationship type")
        record = self._run_single(
            f"""
            MATCH (a) WHERE elementId(a) = $start
            MATCH (b) WHERE elementId(b) = $end
            CREATE (a)-[r:`{rel_type}`]->(b)
            RETURN elementId(r) AS id
            """,
            start=start.id,
            end=end.id,
        )
        if record is None:
            raise TransactionFailure(
                f"Cannot link {start.id} -> {end.id}: node not found",
                error_type="not_found",
            )

    def get_node_by_id(self, node_id: int | str) -> NodeRef:
        record = self._run_single(
            "MATCH (n) WHERE elementId(n) = $id RETURN elementId(n) AS id",
            id=node_id,
        )
        if record is None:
            raise TransactionFailure(f"Node {node_id} not found", error_type="not_found")
        return NodeRef(record["id"])

    def get_or_create(
        self,
        index_name: str,
        key: str,
        value: Any,
        initializer: NodeInitializer,
    ) -> NodeRef:
        index_label = self._store.ensure_unique_index(index_name, key)
        record = self._run_single(
            f"""
            MERGE (n:`{index_label}` {{`{key}`: $value}})
            ON CREATE SET n:`{self._store.run_label}`, n._graphbench_created = true
            WITH n, coalesce(n._graphbench_created, false) AS created
            REMOVE n._graphbench_created
            RETURN elementId(n) AS id, created
            """,
            value=value,
        )
        node = NodeRef(record["id"])
        if record["created"]:
            initializer(node, self)
        return node

    def _commit(self) -> None:
        try:
            self._tx.commit()
        except (Neo4jError, DriverError) as e:
            raise _translate(e) from e
        finally:
            self._session.close()

    def _rollback(self) -> None:
        try:
            self._tx.rollback()
        except (Neo4jError, DriverError) as e:
            logger.warning("Rollback failed", error=str(e))
        finally:
            self._session.close()


class Neo4jGraphStore(GraphStore):
    """
    Graph store on a Neo4j server.

    Args:
        settings: Connection settings (defaults to NEO4J_* environment settings)
        cleanup: Delete this run's nodes and constraints on close
    """

    backend = "neo4j"

    def __init__(self, settings: Neo4jSettings | None = None, cleanup: bool = True) -> None:
        self._settings = settings or get_settings().neo4j
        self._cleanup = cleanup
        self.run_label = f"Run_{uuid.uuid4().hex}"
        self._constraints: dict[str, str] = {}
        self._constraints_lock = threading.Lock()

        try:
            self._driver: Driver = GraphDatabase.driver(
                self._settings.uri,
                auth=(self._settings.username, self._settings.password.get_secret_value()),
                max_connection_pool_size=self._settings.max_connection_pool_size,
            )
            self._driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError, ValueError) as e:
            raise StoreUnavailable(
                f"Cannot connect to Neo4j: {e}", location=self._settings.uri
            ) from e

        logger.info("Connected to Neo4j", uri=self._settings.uri, run_label=self.run_label)

    @property
    def location(self) -> str:
        return f"{self._settings.uri}/{self._settings.database}#{self.run_label}"

    def _session(self) -> Session:
        return self._driver.session(database=self._settings.database)

    def begin_transaction(self) -> Transaction:
        return Neo4jTransaction(self, self._session())

    def ensure_unique_index(self, index_name: str, key: str) -> str:
        """
        Create the uniqueness constraint backing a named index, once per run.

        Schema changes cannot share a transaction with data writes, so the
        constraint is created in its own auto-commit query.

        Returns:
            The node label that marks membership in the index
        """
        index_label = f"{self.run_label}_{_identifier(index_name, 'index name')}"
        key = _identifier(key, "index key")
        cache_key = f"{index_label}.{key}"

        with self._constraints_lock:
            if cache_key in self._constraints:
                return index_label

            constraint = f"uniq_{index_label}_{key}"
            try:
                with self._session() as session:
                    session.run(
                        f"CREATE CONSTRAINT `{constraint}` IF NOT EXISTS "
                        f"FOR (n:`{index_label}`) REQUIRE n.`{key}` IS UNIQUE"
                    ).consume()
            except (Neo4jError, DriverError) as e:
                raise _translate(e) from e

            self._constraints[cache_key] = constraint
            logger.info("Unique index created", index=index_name, key=key, constraint=constraint)
        return index_label

    def _read_single(self, query: str, **params: Any) -> Any:
        def work(tx: ManagedTransaction) -> Any:
            return tx.run(query, **params).single()

        with self._session() as session:
            return session.execute_read(work)

    def get_node_by_id(self, node_id: int | str) -> NodeRef | None:
        record = self._read_single(
            f"MATCH (n:`{self.run_label}`) WHERE elementId(n) = $id RETURN elementId(n) AS id",
            id=node_id,
        )
        return NodeRef(record["id"]) if record else None

    def get_node_properties(self, node: NodeRef) -> dict[str, Any]:
        record = self._read_single(
            "MATCH (n) WHERE elementId(n) = $id RETURN properties(n) AS props",
            id=node.id,
        )
        return dict(record["props"]) if record else {}

    def count_nodes(self) -> int:
        record = self._read_single(f"MATCH (n:`{self.run_label}`) RETURN count(n) AS count")
        return record["count"]

    def count_relationships(self, rel_type: str | None = None) -> int:
        pattern = f"[r:`{_identifier(rel_type, 'relationship type')}`]" if rel_type else "[r]"
        record = self._read_single(
            f"MATCH (:`{self.run_label}`)-{pattern}->(:`{self.run_label}`) RETURN count(r) AS count"
        )
        return record["count"]

    def index_size(self, index_name: str) -> int:
        index_label = f"{self.run_label}_{_identifier(index_name, 'index name')}"
        record = self._read_single(f"MATCH (n:`{index_label}`) RETURN count(n) AS count")
        return record["count"]

    def close(self) -> None:
        try:
            if self._cleanup:
                self._drop_run_data()
        finally:
            self._driver.close()
            logger.info("Disconnected from Neo4j", run_label=self.run_label)

    def _drop_run_data(self) -> None:
        with self._session() as session:
            session.run(f"MATCH (n:`{self.run_label}`) DETACH DELETE n").consume()
            for constraint in self._constraints.values():
                session.run(f"DROP CONSTRAINT `{constraint}` IF EXISTS").consume()
        self._constraints.clear()
