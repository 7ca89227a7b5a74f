"""
Named key-value stores for components.

Keys are strings and values are bytes. A component may only open the store
labels granted to it in the manifest. Each label is backed by:
- a DynamoDB table (AWS Lambda)
- a SQLite file under the data directory (local development)
- a process-local dict (tests)
"""

import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

BACKENDS = ("dynamodb", "sqlite", "memory")


class StoreError(Exception):
    """Raised when a store operation fails."""
    pass


class AccessDeniedError(StoreError):
    """Raised when a component opens a store it was not granted."""
    pass


class NoSuchStoreError(StoreError):
    """Raised when no component declares the requested store label."""
    pass


class KeyValueStore:
    """Interface shared by every backend."""

    label: str

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def get_keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):

    def __init__(self, label: str = "default"):
        self.label = label
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes):
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str):
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def get_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class SQLiteStore(KeyValueStore):
    """Store persisted in a single SQLite file."""

    def __init__(self, path: str, label: str = "default"):
        self.label = label
        self.path = path
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        # FastAPI runs sync endpoints in a threadpool
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
            )
            self._conn.commit()
        logger.info(f"Opened SQLite store: label={label}, path={path}")

    def _execute(self, sql: str, params: tuple = ()):
        try:
            with self._lock:
                cursor = self._conn.execute(sql, params)
                rows = cursor.fetchall()
                self._conn.commit()
                return rows
        except sqlite3.Error as e:
            raise StoreError(f"SQLite store '{self.label}' failed: {e}") from e

    def get(self, key: str) -> Optional[bytes]:
        rows = self._execute("SELECT value FROM kv WHERE key = ?", (key,))
        return bytes(rows[0][0]) if rows else None

    def set(self, key: str, value: bytes):
        self._execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, sqlite3.Binary(bytes(value))),
        )

    def delete(self, key: str):
        self._execute("DELETE FROM kv WHERE key = ?", (key,))

    def get_keys(self) -> List[str]:
        return [row[0] for row in self._execute("SELECT key FROM kv ORDER BY key")]

    def close(self):
        with self._lock:
            self._conn.close()


class DynamoDBStore(KeyValueStore):
    """
    Store backed by a DynamoDB table.

    Table schema: partition key "key" (string), binary attribute "value".
    """

    def __init__(self, table_name: str, label: str = "default", region_name: Optional[str] = None):
        self.label = label
        self.table_name = table_name

        if region_name:
            self.dynamodb = boto3.resource("dynamodb", region_name=region_name)
        else:
            self.dynamodb = boto3.resource("dynamodb")

        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDB store: label={label}, table={table_name}")

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self.table.get_item(Key={"key": key})
        except ClientError as e:
            raise StoreError(f"DynamoDB get failed for store '{self.label}': {e}") from e

        item = response.get("Item")
        if item is None:
            return None
        value = item["value"]
        # boto3 returns Binary objects for B attributes
        if hasattr(value, "value"):
            value = value.value
        return bytes(value)

    def set(self, key: str, value: bytes):
        try:
            self.table.put_item(Item={"key": key, "value": bytes(value)})
        except ClientError as e:
            raise StoreError(f"DynamoDB put failed for store '{self.label}': {e}") from e

    def delete(self, key: str):
        try:
            self.table.delete_item(Key={"key": key})
        except ClientError as e:
            raise StoreError(f"DynamoDB delete failed for store '{self.label}': {e}") from e

    def get_keys(self) -> List[str]:
        keys = []
        scan_kwargs = {
            "ProjectionExpression": "#k",
            "ExpressionAttributeNames": {"#k": "key"},
        }
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                keys.extend(item["key"] for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise StoreError(f"DynamoDB scan failed for store '{self.label}': {e}") from e
        return sorted(keys)


def table_env_key(label: str) -> str:
    """Environment variable holding a label's table name, set by the compute stack."""
    return "KV_TABLE_" + label.upper().replace("-", "_")


def table_name_for(label: str, table_prefix: str) -> str:
    """DynamoDB table for a label; KV_TABLE_<LABEL> overrides the default."""
    return os.getenv(table_env_key(label)) or f"{table_prefix}-{label}"


class StoreManager:
    """
    Opens stores by label, enforcing component grants.

    One store instance is kept per label, so every component granted the
    same label sees the same data.
    """

    def __init__(
        self,
        backend: str,
        known_labels: Iterable[str],
        data_dir: str = "./data",
        table_prefix: str = "sentiment-analysis-kv",
        region_name: Optional[str] = None,
    ):
        if backend not in BACKENDS:
            raise StoreError(f"Unknown key-value backend '{backend}', expected one of {', '.join(BACKENDS)}")

        self.backend = backend
        self.known_labels = set(known_labels)
        self.data_dir = data_dir
        self.table_prefix = table_prefix
        self.region_name = region_name
        self._stores: Dict[str, KeyValueStore] = {}
        self._lock = threading.Lock()

    def open(self, label: str, allowed_labels: Iterable[str]) -> KeyValueStore:
        """
        Open a store for a component.

        Args:
            label: Store label (e.g., "default")
            allowed_labels: The component's key_value_stores grant

        Raises:
            AccessDeniedError: If the label is not granted to the component
            NoSuchStoreError: If no component declares the label
        """
        if label not in self.known_labels:
            raise NoSuchStoreError(f"No such key-value store: '{label}'")
        if label not in set(allowed_labels):
            raise AccessDeniedError(f"Access to key-value store '{label}' is not granted")

        with self._lock:
            store = self._stores.get(label)
            if store is None:
                store = self._create(label)
                self._stores[label] = store
            return store

    def _create(self, label: str) -> KeyValueStore:
        if self.backend == "dynamodb":
            return DynamoDBStore(
                table_name_for(label, self.table_prefix),
                label=label,
                region_name=self.region_name,
            )
        if self.backend == "sqlite":
            return SQLiteStore(os.path.join(self.data_dir, f"kv_{label}.db"), label=label)
        return MemoryStore(label=label)
