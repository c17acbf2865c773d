"""Database factory functions for creating database instances."""

from pathlib import Path
from typing import Optional

from tramita import config
from tramita.database.events import ChangeNotifier
from tramita.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None,
    create_schema: bool = True,
    notifier: Optional[ChangeNotifier] = None,
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks TRAMITA_DB_PATH
            environment variable, then defaults to ~/.tramita/tramita.db
        create_schema: Create missing tables on startup
        notifier: Optional change notifier shared between instances

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = config.get_db_path()

    if database_path is None:
        # Default to ~/.tramita/tramita.db
        home = Path.home()
        db_dir = home / ".tramita"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "tramita.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, create_schema=create_schema, notifier=notifier)
