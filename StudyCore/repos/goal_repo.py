from StudyCore.core.clock import utc_now_iso
from StudyCore.core.models import GoalType, StudyGoal
from StudyCore.repos.db import transaction

_FIELDS = {"type": "goal_type", "target": "target", "current": "current_progress", "subject_id": "subject_id"}

def _to_goal(row):
	return StudyGoal(
		id=row["id"], type=GoalType(row["goal_type"]), target=row["target"],
		current=row["current_progress"], subject_id=row["subject_id"],
	)

def list_goals(user_id):
	with transaction() as conn:
		cur = conn.execute("SELECT * FROM goals WHERE user_id=? ORDER BY created_at, rowid", (user_id,))
		return [_to_goal(row) for row in cur.fetchall()]

def create_goal(user_id, goal):
	now = utc_now_iso()
	with transaction() as conn:
		conn.execute(
			"""
			INSERT INTO goals (id, user_id, goal_type, target, current_progress, subject_id, created_at, updated_at)
			VALUES (?, ?, ?, ?, ?, ?, ?, ?)
			""",
			(goal.id, user_id, goal.type.value, goal.target, goal.current, goal.subject_id, now, now)
		)

def update_goal(user_id, goal_id, **changes):
	sets = []
	params = []
	for key, value in changes.items():
		if key not in _FIELDS:
			raise KeyError(f"unknown goal field: {key}")
		if isinstance(value, GoalType):
			value = value.value
		sets.append(f"{_FIELDS[key]}=?")
		params.append(value)
	if not sets:
		return
	sets.append("updated_at=?")
	params.extend([utc_now_iso(), user_id, goal_id])
	with transaction() as conn:
		conn.execute(f"UPDATE goals SET {', '.join(sets)} WHERE user_id=? AND id=?", params)

def delete_goal(user_id, goal_id):
	with transaction() as conn:
		conn.execute("DELETE FROM goals WHERE user_id=? AND id=?", (user_id, goal_id))

def replace_all(user_id, goals):
	now = utc_now_iso()
	with transaction() as conn:
		conn.execute("DELETE FROM goals WHERE user_id=?", (user_id,))
		for goal in goals:
			conn.execute(
				"""
				INSERT INTO goals (id, user_id, goal_type, target, current_progress, subject_id, created_at, updated_at)
				VALUES (?, ?, ?, ?, ?, ?, ?, ?)
				""",
				(goal.id, user_id, goal.type.value, goal.target, goal.current, goal.subject_id, now, now)
			)
