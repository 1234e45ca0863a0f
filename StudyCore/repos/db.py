import sqlite3
from contextlib import contextmanager
from pathlib import Path

from StudyCore.core.paths import db_path

SCHEMA_PATH = Path(__file__).parent.parent / "SQL" / "schema.sql"

def connect():
	"""Open SQLite connection and ensure schema is applied."""
	conn = sqlite3.connect(db_path())
	conn.row_factory = sqlite3.Row
	conn.execute("PRAGMA foreign_keys = ON")
	with open(SCHEMA_PATH, encoding="utf-8") as f:
		conn.executescript(f.read())
	return conn

@contextmanager
def transaction():
	"""Yield a connection; commit on success, roll back on error, always close."""
	conn = connect()
	try:
		with conn:
			yield conn
	finally:
		conn.close()
