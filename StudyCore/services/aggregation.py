"""Derived figures for the dashboard and analytics views.

Everything here is a pure function of the session log (plus, where noted,
the in-flight session). Day, week and month boundaries are local wall-clock
midnights, and a session belongs to the day its start_time falls on, even
when it runs past midnight.
"""
from collections import namedtuple
from datetime import datetime, time, timedelta

from StudyCore.core.models import GoalType, SessionType

GoalProgress = namedtuple("GoalProgress", "goal_id current target percent")
BreakdownRow = namedtuple("BreakdownRow", "subject_id name color total count average")
DayTotals = namedtuple("DayTotals", "day study wasted sessions")
Overview = namedtuple("Overview", "total_time total_sessions average_session top_subject")


def counts_as_study(session_type):
	"""True for session types that feed study totals and subject folds."""
	session_type = SessionType(session_type)
	if session_type is SessionType.FOCUS:
		return True
	if session_type is SessionType.BREAK:
		return True
	if session_type is SessionType.MANUAL:
		return True
	if session_type is SessionType.WASTED:
		return False
	raise ValueError(f"unhandled session type: {session_type!r}")


def _midnight(day):
	return datetime.combine(day, time.min)


def period_bounds(period, today, week_start=6):
	"""Return [start, end) local datetimes of the day/week/month containing today.

	week_start is a Python weekday (0 = Monday ... 6 = Sunday).
	"""
	period = GoalType(period)
	if period is GoalType.DAILY:
		start = today
		end = today + timedelta(days=1)
	elif period is GoalType.WEEKLY:
		start = today - timedelta(days=(today.weekday() - week_start) % 7)
		end = start + timedelta(days=7)
	elif period is GoalType.MONTHLY:
		start = today.replace(day=1)
		if start.month == 12:
			end = start.replace(year=start.year + 1, month=1)
		else:
			end = start.replace(month=start.month + 1)
	else:
		raise ValueError(f"unhandled period: {period!r}")
	return _midnight(start), _midnight(end)


def total_for_period(sessions, start, end, exclude_type=None, only_type=None):
	"""Sum durations of sessions whose start_time lies in [start, end)."""
	total = 0
	for s in sessions:
		if not (start <= s.start_time < end):
			continue
		if exclude_type is not None and s.type is SessionType(exclude_type):
			continue
		if only_type is not None and s.type is not SessionType(only_type):
			continue
		total += s.duration
	return total


def study_for_period(sessions, start, end):
	return total_for_period(sessions, start, end, exclude_type=SessionType.WASTED)


def wasted_for_period(sessions, start, end):
	return total_for_period(sessions, start, end, only_type=SessionType.WASTED)


def streak(sessions, today, active_counts=False):
	"""Count consecutive study days ending today.

	active_counts marks today as active when a non-wasted session is
	currently accumulating time. Returns 0 when today has no activity.
	"""
	days = {s.start_time.date() for s in sessions if counts_as_study(s.type)}
	if active_counts:
		days.add(today)
	days = sorted((d for d in days if d <= today), reverse=True)
	if not days or days[0] != today:
		return 0
	count = 1
	for prev, cur in zip(days, days[1:]):
		if (prev - cur).days != 1:
			break
		count += 1
	return count


def _active_qualifies(active, subject_id, start, end):
	if not active or not counts_as_study(active["type"]):
		return False
	if subject_id is not None and active["subject_id"] != subject_id:
		return False
	return start <= active["start_time"] < end


def goal_progress(goal, sessions, today, week_start=6, active=None, active_elapsed=0):
	"""Derive a goal's current seconds and percentage from the log.

	active is the in-flight session snapshot (see TimerService.active_session);
	its live elapsed seconds count when its type and subject qualify.
	"""
	start, end = period_bounds(goal.type, today, week_start)
	current = 0
	for s in sessions:
		if not counts_as_study(s.type):
			continue
		if goal.subject_id is not None and s.subject_id != goal.subject_id:
			continue
		if start <= s.start_time < end:
			current += s.duration
	if _active_qualifies(active, goal.subject_id, start, end):
		current += active_elapsed
	if goal.target <= 0:
		percent = 0.0
	else:
		percent = min(100.0, 100.0 * current / goal.target)
	return GoalProgress(goal.id, current, goal.target, percent)


def subject_breakdown(sessions, subjects):
	"""Per-subject total seconds, session count and average session length."""
	rows = []
	for subject in subjects:
		mine = [s for s in sessions if s.subject_id == subject.id and counts_as_study(s.type)]
		total = sum(s.duration for s in mine)
		count = len(mine)
		rows.append(BreakdownRow(subject.id, subject.name, subject.color, total, count, total / count if count else 0))
	return rows


def most_studied_subject(subjects):
	"""Subject with the largest cached total; first one wins ties."""
	best = None
	for subject in subjects:
		if best is None or subject.total_time > best.total_time:
			best = subject
	return best


def daily_series(sessions, today, days=7):
	"""Study/wasted seconds and study-session count per day, oldest first."""
	series = []
	for offset in range(days - 1, -1, -1):
		day = today - timedelta(days=offset)
		start, end = period_bounds(GoalType.DAILY, day)
		count = sum(1 for s in sessions if start <= s.start_time < end and counts_as_study(s.type))
		series.append(DayTotals(day, study_for_period(sessions, start, end), wasted_for_period(sessions, start, end), count))
	return series


def type_distribution(sessions):
	"""Session count per type, in enum order, zero counts dropped."""
	counts = {t: 0 for t in SessionType}
	for s in sessions:
		counts[SessionType(s.type)] += 1
	return {t: n for t, n in counts.items() if n > 0}


def overview(sessions, subjects):
	study = [s for s in sessions if counts_as_study(s.type)]
	total = sum(s.duration for s in study)
	average = total / len(study) if study else 0
	return Overview(total, len(study), average, most_studied_subject(subjects))


def recompute_totals(sessions, subjects):
	"""Ground-truth totals from the log: {subject_id: (total, {topic_id: total})}."""
	totals = {}
	for subject in subjects:
		topic_totals = {t.id: 0 for t in subject.topics}
		totals[subject.id] = [0, topic_totals]
	for s in sessions:
		if not counts_as_study(s.type) or s.subject_id not in totals:
			continue
		entry = totals[s.subject_id]
		entry[0] += s.duration
		if s.topic_id in entry[1]:
			entry[1][s.topic_id] += s.duration
	return {sid: (total, topics) for sid, (total, topics) in totals.items()}


def pomodoro_progress(elapsed, is_break, focus_len=1500, break_len=300):
	"""Return (percent, complete) of the current pomodoro interval."""
	target = break_len if is_break else focus_len
	if target <= 0:
		return 0.0, False
	return min(100.0, 100.0 * elapsed / target), elapsed >= target
