import logging
import os
import time
from urllib.parse import urlparse

import psycopg2

logger = logging.getLogger("wait_for_db")


def wait_for_db(database_url: str, timeout_s: int = 60) -> None:
    """Block until Postgres accepts connections. SQLite needs no waiting."""
    if not database_url or database_url.startswith("sqlite"):
        return

    # SQLAlchemy URL may start with postgresql+psycopg2://
    url = database_url.replace("postgresql+psycopg2://", "postgresql://").replace("postgres://", "postgresql://")
    p = urlparse(url)
    host = p.hostname or "db"
    port = p.port or 5432
    user = p.username or "flightbot"
    password = p.password or "flightbot"
    dbname = (p.path or "/flightbot").lstrip("/") or "flightbot"

    start = time.time()
    logger.info("Waiting for Postgres at %s:%s db=%s user=%s (timeout=%ss)", host, port, dbname, user, timeout_s)
    while True:
        try:
            conn = psycopg2.connect(host=host, port=port, user=user, password=password, dbname=dbname)
            conn.close()
            logger.info("Postgres is ready.")
            return
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                logger.error("Timed out waiting for DB. Last error: %s", e)
                raise
            time.sleep(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    wait_for_db(os.getenv("DATABASE_URL", ""), int(os.getenv("DB_WAIT_TIMEOUT", "60")))
