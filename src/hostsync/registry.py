from __future__ import annotations

import logging
import os
import pathlib
import sqlite3
from typing import Any, List, Tuple

from .errors import RegistryReadError

logger = logging.getLogger(__name__)

# Nginx Proxy Manager keeps every proxy host's names as a JSON array.
DEFAULT_REGISTRY_QUERY = "SELECT domain_names FROM proxy_host WHERE is_deleted = 0"


class RegistryReader:
    """
    Brief: Read-only access to the SQLite registry holding hostname arrays.

    Inputs:
      - db_path: Path to the SQLite database file.
      - query: SQL returning one JSON-encoded hostname array per row.

    Outputs:
      - RegistryReader instance; call fetch_rows() for a fresh snapshot.

    Notes:
      - A new connection is opened for every read and closed afterwards so
        no handle is kept on a file another process rewrites.
      - Failures are not retried.
    """

    def __init__(self, db_path: str, query: str = DEFAULT_REGISTRY_QUERY) -> None:
        self.db_path = os.path.expanduser(str(db_path))
        self.query = query

    def _connect(self) -> sqlite3.Connection:
        path = pathlib.Path(self.db_path)
        if not path.is_file():
            raise RegistryReadError(f"registry database {self.db_path} not found")
        # mode=ro never creates the database or its journal.
        uri = f"{path.resolve().as_uri()}?mode=ro"
        return sqlite3.connect(uri, uri=True, timeout=5.0)

    def fetch_rows(self) -> List[Tuple[Any, ...]]:
        """
        Brief: Execute the registry query and return every row.

        Inputs:
          - None.

        Outputs:
          - list[tuple]: Raw rows as returned by sqlite3.

        Raises:
          - RegistryReadError: database missing, locked, corrupt, or the
            query failed.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise RegistryReadError(
                f"cannot open registry {self.db_path}: {exc}"
            ) from exc

        try:
            rows = conn.execute(self.query).fetchall()
        except sqlite3.Error as exc:
            raise RegistryReadError(
                f"registry query failed on {self.db_path}: {exc}"
            ) from exc
        finally:
            conn.close()

        logger.debug("Read %d rows from %s", len(rows), self.db_path)
        return rows
