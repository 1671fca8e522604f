from __future__ import annotations

import psycopg
from psycopg import Connection

from learning_pipeline.config import Settings


def connect(settings: Settings) -> Connection:
    """
    Return a psycopg connection to the staging store.

    - Uses `settings.database_url` (`LAP_DSN`).
    - Leaves autocommit OFF (commits are managed per handler by the loader).
    """
    return psycopg.connect(settings.database_url)
