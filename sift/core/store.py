"""
Model persistence for Sift.

Stores network generations in SQLite. Exactly one row is active at a time:
saving a new generation deactivates the old one in the same transaction,
and a partial unique index rejects a second active row outright.
"""
import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import backoff

from sift.config import get_config
from sift.core.errors import CorruptModelError, PersistenceWriteError, StaleModelError
from sift.core.network import FeedforwardNetwork, NetworkState

# Configure logging
logger = logging.getLogger(__name__)

MODEL_VERSION = "neural-network-v1"

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS models (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        model_version TEXT NOT NULL DEFAULT 'neural-network-v1',
        version INTEGER NOT NULL DEFAULT 0,
        vocabulary TEXT NOT NULL,
        weights_input_hidden TEXT NOT NULL,
        weights_hidden_output TEXT NOT NULL,
        bias_hidden TEXT NOT NULL,
        bias_output TEXT NOT NULL,
        input_size INTEGER NOT NULL,
        hidden_size INTEGER NOT NULL,
        output_size INTEGER NOT NULL,
        learning_rate REAL NOT NULL DEFAULT 0.1,
        training_count INTEGER NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 0,
        last_trained_at TEXT NOT NULL
    )
"""

_ACTIVE_INDEX = """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_models_one_active
    ON models(is_active) WHERE is_active = 1
"""


def _giveup_log(details):
    logger.error(f"Giving up on model database after {details['tries']} attempts")


class ModelStore:
    """
    Persists trained networks and their vocabularies.
    """
    def __init__(self, path: Optional[Union[str, Path]] = None, max_tries: Optional[int] = None):
        """
        Initialize the store and create the schema if needed.

        Args:
            path: SQLite database file (defaults to store.path in config)
            max_tries: Attempts for an operation hitting a locked database
        """
        self.path = Path(path or get_config('store.path', 'sift_models.db'))
        self.max_tries = int(max_tries or get_config('store.max_tries', 3))
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path, timeout=10)

    def _init_db(self):
        """Initialize the SQLite schema."""
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(_SCHEMA)
            conn.execute(_ACTIVE_INDEX)

    def _row_values(self, state: NetworkState) -> Dict[str, Any]:
        params = state.network.to_dict()
        return {
            "vocabulary": json.dumps(list(state.vocabulary)),
            "weights_input_hidden": json.dumps(params["weights_input_hidden"]),
            "weights_hidden_output": json.dumps(params["weights_hidden_output"]),
            "bias_hidden": json.dumps(params["bias_hidden"]),
            "bias_output": json.dumps(params["bias_output"]),
            "input_size": params["input_size"],
            "hidden_size": params["hidden_size"],
            "output_size": params["output_size"],
            "learning_rate": params["learning_rate"],
            "training_count": int(state.training_count),
        }

    def _retrying(self, func):
        return backoff.on_exception(
            backoff.expo,
            sqlite3.OperationalError,
            max_tries=self.max_tries,
            on_giveup=_giveup_log,
        )(func)

    def save(self, state: NetworkState) -> NetworkState:
        """
        Store a new generation and make it the only active model.

        Args:
            state: Freshly trained network state

        Returns:
            The same state, updated with its row id, version and timestamp

        Raises:
            PersistenceWriteError: If the database rejects the write
        """
        values = self._row_values(state)
        trained_at = datetime.now()

        def insert():
            with closing(self._connect()) as conn, conn:
                # Both statements run in one transaction
                conn.execute("UPDATE models SET is_active = 0 WHERE is_active = 1")
                cursor = conn.execute(
                    """
                    INSERT INTO models (
                        model_version, version, vocabulary, weights_input_hidden,
                        weights_hidden_output, bias_hidden, bias_output, input_size,
                        hidden_size, output_size, learning_rate, training_count,
                        is_active, last_trained_at
                    )
                    VALUES (?, 0, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
                    """,
                    (
                        MODEL_VERSION,
                        values["vocabulary"],
                        values["weights_input_hidden"],
                        values["weights_hidden_output"],
                        values["bias_hidden"],
                        values["bias_output"],
                        values["input_size"],
                        values["hidden_size"],
                        values["output_size"],
                        values["learning_rate"],
                        values["training_count"],
                        trained_at.isoformat(),
                    ),
                )
                return cursor.lastrowid

        try:
            model_id = self._retrying(insert)()
        except sqlite3.Error as e:
            raise PersistenceWriteError(f"Failed to save model: {e}", details={"path": str(self.path)}) from e

        state.model_id = model_id
        state.version = 0
        state.last_trained_at = trained_at
        state.persisted = True
        logger.info(f"Saved model {model_id} ({state.training_count} training iterations)")
        return state

    def update(self, state: NetworkState) -> NetworkState:
        """
        Overwrite the active model in place after incremental training.

        The row is only written if it is still active and still at the
        version the state was loaded from.

        Args:
            state: State previously returned by load_active()

        Returns:
            The same state with its version bumped

        Raises:
            StaleModelError: If the row was replaced or updated meanwhile
            PersistenceWriteError: If the database rejects the write
        """
        if state.model_id is None:
            raise PersistenceWriteError("Cannot update a model that was never saved")

        values = self._row_values(state)
        trained_at = datetime.now()

        def write():
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute(
                    """
                    UPDATE models
                    SET weights_input_hidden = ?, weights_hidden_output = ?,
                        bias_hidden = ?, bias_output = ?, learning_rate = ?,
                        training_count = ?, last_trained_at = ?, version = version + 1
                    WHERE id = ? AND version = ? AND is_active = 1
                    """,
                    (
                        values["weights_input_hidden"],
                        values["weights_hidden_output"],
                        values["bias_hidden"],
                        values["bias_output"],
                        values["learning_rate"],
                        values["training_count"],
                        trained_at.isoformat(),
                        state.model_id,
                        state.version,
                    ),
                )
                return cursor.rowcount

        try:
            updated = self._retrying(write)()
        except sqlite3.Error as e:
            raise PersistenceWriteError(f"Failed to update model: {e}", details={"path": str(self.path)}) from e

        if updated != 1:
            raise StaleModelError(
                "Active model changed during training",
                details={"model_id": state.model_id, "version": state.version},
            )

        state.version += 1
        state.last_trained_at = trained_at
        state.persisted = True
        logger.info(f"Updated model {state.model_id} to version {state.version}")
        return state

    def load_active(self) -> Optional[NetworkState]:
        """
        Load the active model.

        Returns:
            NetworkState, or None if no model has been saved

        Raises:
            CorruptModelError: If the database cannot be read or the stored
                row cannot be reconstructed
        """
        def fetch():
            with closing(self._connect()) as conn:
                conn.row_factory = sqlite3.Row
                return conn.execute(
                    """
                    SELECT * FROM models
                    WHERE is_active = 1
                    ORDER BY last_trained_at DESC
                    LIMIT 1
                    """
                ).fetchone()

        try:
            row = self._retrying(fetch)()
        except sqlite3.Error as e:
            raise CorruptModelError(f"Could not read the active model: {e}", details={"path": str(self.path)}) from e

        if row is None:
            logger.info("No saved model found")
            return None

        try:
            network = FeedforwardNetwork.from_dict({
                "input_size": row["input_size"],
                "hidden_size": row["hidden_size"],
                "output_size": row["output_size"],
                "weights_input_hidden": json.loads(row["weights_input_hidden"]),
                "weights_hidden_output": json.loads(row["weights_hidden_output"]),
                "bias_hidden": json.loads(row["bias_hidden"]),
                "bias_output": json.loads(row["bias_output"]),
                "learning_rate": row["learning_rate"],
            })
            vocabulary = json.loads(row["vocabulary"])
            if not isinstance(vocabulary, list) or not all(isinstance(w, str) for w in vocabulary):
                raise CorruptModelError("Stored vocabulary is not a list of words")
            state = NetworkState(
                network=network,
                vocabulary=vocabulary,
                training_count=row["training_count"],
                model_id=row["id"],
                version=row["version"],
                last_trained_at=datetime.fromisoformat(row["last_trained_at"]),
                persisted=True,
            )
        except (TypeError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            raise CorruptModelError(f"Stored model {row['id']} is unreadable: {e}") from e

        logger.info(f"Loaded model {state.model_id} ({state.training_count} training iterations)")
        return state

    def history(self, limit: int = 20) -> List[Dict[str, Any]]:
        """
        List stored model generations, newest first.

        Args:
            limit: Maximum number of rows

        Returns:
            Dicts with id, version, sizes, training count and active flag

        Raises:
            CorruptModelError: If the database cannot be read
        """
        def fetch():
            with closing(self._connect()) as conn:
                conn.row_factory = sqlite3.Row
                return conn.execute(
                    """
                    SELECT id, model_version, version, input_size, hidden_size,
                           training_count, is_active, last_trained_at
                    FROM models
                    ORDER BY id DESC
                    LIMIT ?
                    """,
                    (limit,),
                ).fetchall()

        try:
            rows = self._retrying(fetch)()
        except sqlite3.Error as e:
            raise CorruptModelError(f"Could not read model history: {e}", details={"path": str(self.path)}) from e

        return [
            {
                "id": row["id"],
                "model_version": row["model_version"],
                "version": row["version"],
                "vocabulary_size": row["input_size"],
                "hidden_size": row["hidden_size"],
                "training_count": row["training_count"],
                "is_active": bool(row["is_active"]),
                "last_trained_at": row["last_trained_at"],
            }
            for row in rows
        ]
