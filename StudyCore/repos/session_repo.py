import json
from datetime import datetime

from StudyCore.core.clock import local_today_str, utc_now_iso
from StudyCore.core.models import SessionType, StudySession
from StudyCore.repos import subject_repo
from StudyCore.repos.db import transaction

_COLUMNS = "id, subject_id, topic_id, start_time, end_time, duration, notes, tags, session_type"

def _to_session(row):
	return StudySession(
		id=row["id"],
		subject_id=row["subject_id"],
		topic_id=row["topic_id"],
		start_time=datetime.fromisoformat(row["start_time"]),
		end_time=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
		duration=row["duration"],
		notes=row["notes"],
		tags=json.loads(row["tags"] or "[]"),
		type=SessionType(row["session_type"]),
	)

def _insert(conn, user_id, session):
	return conn.execute(
		"""
		INSERT OR IGNORE INTO sessions
			(id, user_id, subject_id, topic_id, start_time, end_time, local_date,
			 duration, notes, tags, session_type, created_at)
		VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
		""",
		(
			session.id, user_id, session.subject_id, session.topic_id,
			session.start_time.isoformat(),
			session.end_time.isoformat() if session.end_time else None,
			session.start_time.date().isoformat(),
			int(session.duration), session.notes, json.dumps(list(session.tags)),
			session.type.value, utc_now_iso(),
		)
	)

def append_and_fold(user_id, session, fold=True):
	"""Append a session and fold its duration into the cached totals in one transaction.

	Resubmitting a stored session id changes nothing, so retries are safe.
	"""
	with transaction() as conn:
		inserted = _insert(conn, user_id, session).rowcount == 1
		if inserted and fold:
			subject_repo.fold_in(conn, user_id, session.subject_id, session.topic_id, session.duration)
		return inserted

def get_session(user_id, session_id):
	"""Return one session or None."""
	with transaction() as conn:
		cur = conn.execute(
			f"SELECT {_COLUMNS} FROM sessions WHERE user_id=? AND id=?", (user_id, session_id))
		row = cur.fetchone()
		return _to_session(row) if row else None

def list_sessions(user_id, start=None, end=None):
	"""Return sessions newest first, optionally with start_time in [start, end)."""
	query = f"SELECT {_COLUMNS} FROM sessions WHERE user_id=?"
	params = [user_id]
	if start is not None:
		query += " AND start_time >= ?"
		params.append(start.isoformat())
	if end is not None:
		query += " AND start_time < ?"
		params.append(end.isoformat())
	query += " ORDER BY start_time DESC"
	with transaction() as conn:
		return [_to_session(row) for row in conn.execute(query, params).fetchall()]

def replace_all(user_id, sessions):
	"""Replace every session of the user in one transaction (backup import)."""
	with transaction() as conn:
		conn.execute("DELETE FROM sessions WHERE user_id=?", (user_id,))
		for session in sessions:
			_insert(conn, user_id, session)

def today_total_seconds(user_id):
	"""Sum duration for non-wasted sessions with local_date = today."""
	with transaction() as conn:
		cur = conn.execute(
			"SELECT COALESCE(SUM(duration),0) as total FROM sessions WHERE user_id=? AND local_date=? AND session_type != ?",
			(user_id, local_today_str(), SessionType.WASTED.value)
		)
		row = cur.fetchone()
		return row["total"] if row else 0

def get_total_days_studied(user_id):
	"""
	Returns the number of unique days with non-wasted study time.
	"""
	with transaction() as conn:
		cur = conn.execute(
			"SELECT COUNT(DISTINCT local_date) as total FROM sessions WHERE user_id=? AND duration > 0 AND session_type != ?",
			(user_id, SessionType.WASTED.value)
		)
		row = cur.fetchone()
		return row["total"] if row else 0

def get_total_hours_studied(user_id):
	"""
	Returns the total hours studied across all non-wasted sessions.
	"""
	with transaction() as conn:
		cur = conn.execute(
			"SELECT COALESCE(SUM(duration), 0) as total FROM sessions WHERE user_id=? AND session_type != ?",
			(user_id, SessionType.WASTED.value)
		)
		row = cur.fetchone()
		total_seconds = row["total"] if row else 0
		return total_seconds / 3600.0
