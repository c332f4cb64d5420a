"""
Shared helpers for the QuizGrade CLI subcommands.
"""

import os
from contextlib import contextmanager

from quizgrade.database import get_engine, get_session, init_db


@contextmanager
def cli_session(config):
    """Session for a single CLI command; the engine is released on exit.

    DATABASE_URL, when set, wins over paths.database_file.
    """
    url = os.environ.get("DATABASE_URL")
    engine = get_engine(url=url) if url else get_engine(config["paths"]["database_file"])
    init_db(engine)
    session = get_session(engine)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def resolve_class_id(config, args):
    """Class from --class, then active_class_id in config, then class 1."""
    for candidate in (getattr(args, "class_id", None), config.get("active_class_id")):
        if candidate is not None:
            return int(candidate)
    return 1
