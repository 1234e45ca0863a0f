from StudyCore.core.clock import utc_now_iso
from StudyCore.core.models import Subject, Topic
from StudyCore.repos.db import transaction

_SUBJECT_FIELDS = {"name": "name", "color": "color", "total_time": "total_time", "goal_time": "goal_time"}
_TOPIC_FIELDS = {"name": "name", "total_time": "total_time", "progress": "progress"}

def list_subjects(user_id):
	"""Return subjects (with their topics) in creation order."""
	with transaction() as conn:
		subjects = conn.execute(
			"SELECT * FROM subjects WHERE user_id=? ORDER BY created_at, rowid", (user_id,)).fetchall()
		topics = conn.execute(
			"SELECT * FROM topics WHERE user_id=? ORDER BY created_at, rowid", (user_id,)).fetchall()
	by_subject = {}
	for row in topics:
		by_subject.setdefault(row["subject_id"], []).append(Topic(
			id=row["id"], name=row["name"], total_time=row["total_time"], progress=row["progress"]))
	return [
		Subject(
			id=row["id"], name=row["name"], color=row["color"], total_time=row["total_time"],
			goal_time=row["goal_time"], topics=by_subject.get(row["id"], []),
		)
		for row in subjects
	]

def _insert_topic(conn, user_id, subject_id, topic, now):
	conn.execute(
		"""
		INSERT INTO topics (id, subject_id, user_id, name, total_time, progress, created_at, updated_at)
		VALUES (?, ?, ?, ?, ?, ?, ?, ?)
		""",
		(topic.id, subject_id, user_id, topic.name, topic.total_time, topic.progress, now, now)
	)

def _insert_subject(conn, user_id, subject, now):
	conn.execute(
		"""
		INSERT INTO subjects (id, user_id, name, color, total_time, goal_time, created_at, updated_at)
		VALUES (?, ?, ?, ?, ?, ?, ?, ?)
		""",
		(subject.id, user_id, subject.name, subject.color, subject.total_time, subject.goal_time, now, now)
	)
	for topic in subject.topics:
		_insert_topic(conn, user_id, subject.id, topic, now)

def create_subject(user_id, subject):
	"""Insert a subject and any topics it already carries."""
	now = utc_now_iso()
	with transaction() as conn:
		_insert_subject(conn, user_id, subject, now)

def _update(table, columns, user_id, record_id, changes):
	sets = []
	params = []
	for key, value in changes.items():
		if key not in columns:
			raise KeyError(f"unknown {table} field: {key}")
		sets.append(f"{columns[key]}=?")
		params.append(value)
	if not sets:
		return
	sets.append("updated_at=?")
	params.extend([utc_now_iso(), user_id, record_id])
	with transaction() as conn:
		conn.execute(f"UPDATE {table} SET {', '.join(sets)} WHERE user_id=? AND id=?", params)

def update_subject(user_id, subject_id, **changes):
	_update("subjects", _SUBJECT_FIELDS, user_id, subject_id, changes)

def delete_subject(user_id, subject_id):
	"""Delete a subject and the topics it owns."""
	with transaction() as conn:
		conn.execute("DELETE FROM topics WHERE user_id=? AND subject_id=?", (user_id, subject_id))
		conn.execute("DELETE FROM subjects WHERE user_id=? AND id=?", (user_id, subject_id))

def create_topic(user_id, subject_id, topic):
	with transaction() as conn:
		_insert_topic(conn, user_id, subject_id, topic, utc_now_iso())

def update_topic(user_id, topic_id, **changes):
	_update("topics", _TOPIC_FIELDS, user_id, topic_id, changes)

def delete_topic(user_id, topic_id):
	with transaction() as conn:
		conn.execute("DELETE FROM topics WHERE user_id=? AND id=?", (user_id, topic_id))

def fold_in(conn, user_id, subject_id, topic_id, seconds):
	"""Add seconds to a subject's (and optionally a topic's) cached total inside conn's transaction."""
	now = utc_now_iso()
	conn.execute(
		"UPDATE subjects SET total_time = total_time + ?, updated_at=? WHERE user_id=? AND id=?",
		(int(seconds), now, user_id, subject_id)
	)
	if topic_id:
		conn.execute(
			"UPDATE topics SET total_time = total_time + ?, updated_at=? WHERE user_id=? AND id=? AND subject_id=?",
			(int(seconds), now, user_id, topic_id, subject_id)
		)

def set_totals(user_id, subject_id, total_time, topic_totals):
	"""Overwrite cached totals with recomputed values (reconciliation)."""
	now = utc_now_iso()
	with transaction() as conn:
		conn.execute(
			"UPDATE subjects SET total_time=?, updated_at=? WHERE user_id=? AND id=?",
			(int(total_time), now, user_id, subject_id)
		)
		for topic_id, seconds in topic_totals.items():
			conn.execute(
				"UPDATE topics SET total_time=?, updated_at=? WHERE user_id=? AND id=? AND subject_id=?",
				(int(seconds), now, user_id, topic_id, subject_id)
			)

def replace_all(user_id, subjects):
	"""Replace every subject and topic of the user in one transaction."""
	now = utc_now_iso()
	with transaction() as conn:
		conn.execute("DELETE FROM topics WHERE user_id=?", (user_id,))
		conn.execute("DELETE FROM subjects WHERE user_id=?", (user_id,))
		for subject in subjects:
			_insert_subject(conn, user_id, subject, now)
