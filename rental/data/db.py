from __future__ import annotations

import logging
from typing import Generator, Optional
from contextlib import contextmanager

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine

from rental.core.settings import load_settings

logger = logging.getLogger(__name__)

_ENGINE: Optional[Engine] = None


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
	"""SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""

	@event.listens_for(engine, "connect")
	def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


def make_engine(url: str, echo: bool = False) -> Engine:
	"""Build an engine for a SQLAlchemy URL (SQLite file, in-memory, or a remote server)."""
	if url.startswith("sqlite"):
		engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
		_enable_sqlite_foreign_keys(engine)
	else:
		engine = create_engine(url, echo=echo, pool_pre_ping=True)
	return engine


def get_engine(echo: bool = False) -> Engine:
	"""Return a singleton SQLAlchemy engine for the configured data store."""
	global _ENGINE
	if _ENGINE is None:
		url = load_settings().resolved_database_url()
		logger.debug("creating engine for %s", url)
		_ENGINE = make_engine(url, echo=echo)
	return _ENGINE


def set_engine(engine: Optional[Engine]) -> None:
	"""Replace the singleton engine (tests, or a CLI --database option). None resets it."""
	global _ENGINE
	if _ENGINE is not None and _ENGINE is not engine:
		_ENGINE.dispose()
	_ENGINE = engine


def create_db_and_tables(echo: bool = False) -> None:
	"""Create all SQLModel tables that do not exist yet."""
	# Ensure models are imported so metadata has all tables
	import rental.data.models  # noqa: F401

	SQLModel.metadata.create_all(get_engine(echo=echo))


def get_session(echo: bool = False) -> Session:
	"""Create a new SQLModel Session bound to the project engine.

	expire_on_commit=False so returned instances keep attribute values after commit
	(avoids refresh on closed sessions when callers use detached instances).
	"""
	return Session(get_engine(echo=echo), expire_on_commit=False)


@contextmanager
def session_scope(echo: bool = False) -> Generator[Session, None, None]:
	"""Run a block inside one transaction: commit on success, roll back on any error.

	Usage:
		with session_scope() as s:
			... use s ...
	"""
	session = get_session(echo=echo)
	try:
		yield session
		session.commit()
	except Exception:
		session.rollback()
		raise
	finally:
		session.close()
