import os
import sqlite3

from tfa_core.settings import get_settings


SCHEMA = '''
CREATE TABLE IF NOT EXISTS users_data (
    namespace TEXT NOT NULL,
    account TEXT NOT NULL,
    name TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, account, name)
)
'''


def setup_database(path: str) -> None:
    """Create the per-account key/value table if it does not exist."""
    if path != ":memory:":
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        conn.execute(SCHEMA)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    setup_database(get_settings().database_file)
    print("Database setup completed successfully!")
