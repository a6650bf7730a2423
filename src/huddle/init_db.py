"""Create the tables for a local development database."""

import logging

from huddle.db.session import Base, engine

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    logger.info("Database initialized at %s", engine.url.render_as_string(hide_password=True))
