import sqlite3
import threading
from contextlib import contextmanager
from typing import Optional, Dict, Iterator, Tuple


class StorageDB:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        self._lock = threading.RLock()
        self._in_atomic = False
        self._init_db()

    def _init_db(self):
        with self._lock:
            # State table: Key-Value store for accounts, code, storage, params
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')
            self.conn.commit()

    def _commit(self):
        if not self._in_atomic:
            self.conn.commit()

    @contextmanager
    def atomic(self):
        """
        Groups writes into one sqlite transaction.

        Commits on normal exit, rolls back every write made inside the block
        if an exception escapes. Not re-entrant.
        """
        with self._lock:
            if self._in_atomic:
                raise RuntimeError("atomic() blocks cannot be nested")
            self.conn.commit()
            self._in_atomic = True
            try:
                yield self
            except BaseException:
                self.conn.rollback()
                raise
            else:
                self.conn.commit()
            finally:
                self._in_atomic = False

    # --- State Methods ---
    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT value FROM state WHERE key = ?', (key,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def set_state(self, key: str, value: str):
        with self._lock:
            self.cursor.execute('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', (key, value))
            self._commit()

    def delete_state(self, key: str):
        with self._lock:
            self.cursor.execute('DELETE FROM state WHERE key = ?', (key,))
            self._commit()

    def get_state_by_prefix(self, prefix: str) -> Dict[str, str]:
        """Returns all keys starting with prefix, ordered by key."""
        with self._lock:
            # substr instead of LIKE: keys may contain '_' and '%'
            self.cursor.execute(
                'SELECT key, value FROM state WHERE substr(key, 1, ?) = ? ORDER BY key',
                (len(prefix), prefix)
            )
            return {row[0]: row[1] for row in self.cursor.fetchall()}

    def iter_state_by_prefix(self, prefix: str, batch_size: int = 500) -> Iterator[Tuple[str, str]]:
        """Streams (key, value) pairs starting with prefix, ordered by key."""
        last_key = prefix
        inclusive = True
        while True:
            with self._lock:
                op = ">=" if inclusive else ">"
                self.cursor.execute(
                    f"SELECT key, value FROM state WHERE key {op} ? AND substr(key, 1, ?) = ? ORDER BY key LIMIT ?",
                    (last_key, len(prefix), prefix, batch_size)
                )
                rows = self.cursor.fetchall()
            if not rows:
                return
            for row in rows:
                yield row[0], row[1]
            last_key = rows[-1][0]
            inclusive = False

    def clear_state(self):
        with self._lock:
            self.cursor.execute('DELETE FROM state')
            self._commit()

    def close(self):
        with self._lock:
            self.conn.close()
