import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import timedelta

import pydantic
from PySide6.QtCore import QObject, Signal

from StudyCore.core.clock import local_now
from StudyCore.core.config import load_settings
from StudyCore.core.errors import InvalidReferenceError, InvalidStateError, PersistenceError, ValidationError
from StudyCore.core.models import WASTED_SUBJECT_ID, GoalType, SessionType, StudySession, Subject, Topic
from StudyCore.repos import goal_repo, session_repo, subject_repo
from StudyCore.services import aggregation, export_service
from StudyCore.services.goal_service import GoalTracker
from StudyCore.services.timer_service import TimerService

log = logging.getLogger(__name__)


def _frozen(value):
	if isinstance(value, pydantic.BaseModel):
		return value.model_copy(deep=True)
	if isinstance(value, list):
		return [_frozen(v) for v in value]
	return value


@dataclass
class AppState:
	subjects: list = field(default_factory=list)
	sessions: list = field(default_factory=list)
	goals: list = field(default_factory=list)


class StudyController(QObject):
	"""Owns the application state, the timer and the goal tracker for one user.

	Every mutation is applied to the in-memory state first and then written
	to the record store. A failed write is logged, queued for
	retry_pending() and reported through persistence_failed; the local
	change is kept.
	"""
	data_changed = Signal()
	persistence_failed = Signal(str)

	def __init__(self, settings=None, ticker=None, now=None):
		super().__init__()
		self.settings = settings or load_settings()
		self.user_id = self.settings.user_id
		self._now = now or local_now
		self.state = AppState()
		self.pending_writes = []
		self.tracker = GoalTracker(self.state.goals, subject_exists=self._subject_exists)
		self.timer = TimerService(ticker=ticker, now=self._now, resolve=self._resolves, tick_ms=self.settings.tick_ms)
		self.timer.session_finished.connect(self._record)

	# lookups ------------------------------------------------------------
	def find_subject(self, subject_id):
		return next((s for s in self.state.subjects if s.id == subject_id), None)

	def _subject_exists(self, subject_id):
		return self.find_subject(subject_id) is not None

	def _resolves(self, subject_id, topic_id):
		if subject_id == WASTED_SUBJECT_ID:
			return topic_id is None
		subject = self.find_subject(subject_id)
		if subject is None:
			return False
		return topic_id is None or subject.topic(topic_id) is not None

	def _require_subject(self, subject_id):
		subject = self.find_subject(subject_id)
		if subject is None:
			raise InvalidReferenceError(f"unknown subject: {subject_id}")
		return subject

	def _today(self):
		return self._now().date()

	# persistence --------------------------------------------------------
	def _persist(self, operation, func, *args, **kwargs):
		# a queued write must replay the record as it was, not as it becomes
		args = tuple(_frozen(a) for a in args)
		try:
			func(self.user_id, *args, **kwargs)
		except sqlite3.Error as exc:
			error = PersistenceError(operation, exc)
			log.warning("%s; keeping local change, queued for retry", error)
			self.pending_writes.append((operation, func, args, kwargs))
			self.persistence_failed.emit(str(error))
			return error
		return None

	def retry_pending(self):
		"""Re-run queued writes in order; returns how many are still failing."""
		queued, self.pending_writes = self.pending_writes, []
		for operation, func, args, kwargs in queued:
			try:
				func(self.user_id, *args, **kwargs)
			except sqlite3.Error as exc:
				log.warning("retry of %s failed: %s", operation, exc)
				self.pending_writes.append((operation, func, args, kwargs))
		if not self.pending_writes and queued:
			log.info("flushed %d pending writes", len(queued))
		return len(self.pending_writes)

	def load(self):
		"""Read the user's data from the store. On failure keep the current snapshot."""
		try:
			subjects = subject_repo.list_subjects(self.user_id)
			sessions = session_repo.list_sessions(self.user_id)
			goals = goal_repo.list_goals(self.user_id)
		except sqlite3.Error as exc:
			error = PersistenceError("load", exc)
			log.warning("%s; showing last known data", error)
			self.persistence_failed.emit(str(error))
			return False
		self.state.subjects[:] = subjects
		self.state.sessions[:] = sorted(sessions, key=lambda s: s.start_time)
		self.state.goals[:] = goals
		self.data_changed.emit()
		return True

	# subjects and topics ------------------------------------------------
	def add_subject(self, name, color="#3b82f6", goal_time=None):
		name = (name or "").strip()
		if not name:
			raise ValidationError("subject name cannot be empty")
		try:
			subject = Subject(name=name, color=color, goal_time=goal_time)
		except pydantic.ValidationError as exc:
			raise ValidationError(str(exc)) from exc
		self.state.subjects.append(subject)
		self._persist("create subject", subject_repo.create_subject, subject)
		self.data_changed.emit()
		return subject

	def update_subject(self, subject_id, **changes):
		"""Change name, color or goal_time. Cached totals only move through sessions."""
		subject = self._require_subject(subject_id)
		unknown = set(changes) - {"name", "color", "goal_time"}
		if unknown:
			raise ValidationError(f"cannot update subject fields: {', '.join(sorted(unknown))}")
		if "name" in changes:
			changes["name"] = (changes["name"] or "").strip()
			if not changes["name"]:
				raise ValidationError("subject name cannot be empty")
		data = subject.model_dump()
		data.update(changes)
		try:
			Subject.model_validate(data)
		except pydantic.ValidationError as exc:
			raise ValidationError(str(exc)) from exc
		for key, value in changes.items():
			setattr(subject, key, value)
		self._persist("update subject", subject_repo.update_subject, subject_id, **changes)
		self.data_changed.emit()
		return subject

	def delete_subject(self, subject_id):
		"""Remove a subject, its topics and its goals. Logged sessions stay."""
		subject = self._require_subject(subject_id)
		active = self.timer.active_session()
		if active and active["subject_id"] == subject_id:
			raise InvalidStateError("cannot delete the subject of the running session")
		self.state.subjects.remove(subject)
		self._persist("delete subject", subject_repo.delete_subject, subject_id)
		for goal in self.tracker.drop_subject(subject_id):
			self._persist("delete goal", goal_repo.delete_goal, goal.id)
		self.data_changed.emit()

	def add_topic(self, subject_id, name):
		subject = self._require_subject(subject_id)
		name = (name or "").strip()
		if not name:
			raise ValidationError("topic name cannot be empty")
		topic = Topic(name=name)
		subject.topics.append(topic)
		self._persist("create topic", subject_repo.create_topic, subject_id, topic)
		self.data_changed.emit()
		return topic

	def _require_topic(self, subject_id, topic_id):
		topic = self._require_subject(subject_id).topic(topic_id)
		if topic is None:
			raise InvalidReferenceError(f"unknown topic: {topic_id}")
		return topic

	def update_topic_progress(self, subject_id, topic_id, progress):
		topic = self._require_topic(subject_id, topic_id)
		if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
			raise ValidationError("topic progress must be an integer between 0 and 100")
		topic.progress = progress
		self._persist("update topic", subject_repo.update_topic, topic_id, progress=progress)
		self.data_changed.emit()
		return topic

	def delete_topic(self, subject_id, topic_id):
		topic = self._require_topic(subject_id, topic_id)
		active = self.timer.active_session()
		if active and active["topic_id"] == topic_id:
			raise InvalidStateError("cannot delete the topic of the running session")
		self.find_subject(subject_id).topics.remove(topic)
		self._persist("delete topic", subject_repo.delete_topic, topic_id)
		self.data_changed.emit()

	# timer --------------------------------------------------------------
	def start(self, subject_id, topic_id=None, session_type=SessionType.FOCUS):
		self.timer.start(subject_id, topic_id, session_type)

	def start_wasted(self):
		self.timer.start_wasted()

	def pause(self):
		self.timer.pause()

	def resume(self):
		self.timer.resume()

	def stop(self, notes=None):
		return self.timer.stop(notes)

	def add_manual(self, session):
		"""Log a finished session directly, whatever the timer is doing."""
		if not isinstance(session, StudySession):
			raise ValidationError("add_manual expects a StudySession")
		if not self._resolves(session.subject_id, session.topic_id):
			raise InvalidReferenceError(f"unknown subject/topic: {session.subject_id}/{session.topic_id}")
		if session.end_time is None:
			session = session.model_copy(update={"end_time": session.start_time + timedelta(seconds=session.duration)})
		self._record(session)
		return session

	def manual_entry(self, subject_id, start_time, duration, topic_id=None, notes=None, tags=None):
		"""Build and log a manual-type session of duration seconds starting at start_time."""
		try:
			session = StudySession(
				subject_id=subject_id, topic_id=topic_id, start_time=start_time,
				end_time=start_time + timedelta(seconds=int(duration)), duration=duration,
				notes=notes, tags=tags or [], type=SessionType.MANUAL,
			)
		except (pydantic.ValidationError, TypeError, ValueError) as exc:
			raise ValidationError(str(exc)) from exc
		return self.add_manual(session)

	def _record(self, session):
		if any(s.id == session.id for s in self.state.sessions):
			log.debug("session %s already logged", session.id)
			return
		self.state.sessions.append(session)
		fold = aggregation.counts_as_study(session.type)
		if fold:
			subject = self.find_subject(session.subject_id)
			if subject is not None:
				subject.total_time += session.duration
				topic = subject.topic(session.topic_id) if session.topic_id else None
				if topic is not None:
					topic.total_time += session.duration
		self._persist("append session", session_repo.append_and_fold, session, fold=fold)
		self.data_changed.emit()

	# goals --------------------------------------------------------------
	def set_goal(self, goal_type, target, subject_id=None):
		goal, created = self.tracker.set_goal(goal_type, target, subject_id)
		if created:
			self._persist("create goal", goal_repo.create_goal, goal)
		else:
			self._persist("update goal", goal_repo.update_goal, goal.id, target=goal.target)
		self.data_changed.emit()
		return goal

	def update_goal(self, goal_id, **changes):
		goal = self.tracker.update_goal(goal_id, **changes)
		stored = {k: getattr(goal, k) for k in changes}
		self._persist("update goal", goal_repo.update_goal, goal_id, **stored)
		self.data_changed.emit()
		return goal

	def remove_goal(self, goal_id):
		goal = self.tracker.remove_goal(goal_id)
		self._persist("delete goal", goal_repo.delete_goal, goal_id)
		self.data_changed.emit()
		return goal

	# derived figures ----------------------------------------------------
	def _live(self):
		active = self.timer.active_session()
		if active is None:
			return None, 0
		return active, active["elapsed"]

	def _live_in(self, active, elapsed, bounds, wasted=False):
		"""Live elapsed seconds that belong to the window; the bucket is set by start_time."""
		if not active or aggregation.counts_as_study(active["type"]) == wasted:
			return 0
		start, end = bounds
		return elapsed if start <= active["start_time"] < end else 0

	def dashboard(self, today=None):
		today = today or self._today()
		sessions = self.state.sessions
		week_start = self.settings.week_start
		active, elapsed = self._live()

		day = aggregation.period_bounds(GoalType.DAILY, today, week_start)
		week = aggregation.period_bounds(GoalType.WEEKLY, today, week_start)
		month = aggregation.period_bounds(GoalType.MONTHLY, today, week_start)
		goals = self.tracker.progress_all(sessions, today, week_start, active, elapsed)
		daily_goal = self.tracker.find(GoalType.DAILY)
		live_today = self._live_in(active, elapsed, day)
		return {
			"today_study": aggregation.study_for_period(sessions, *day) + live_today,
			"today_wasted": aggregation.wasted_for_period(sessions, *day) + self._live_in(active, elapsed, day, wasted=True),
			"week_study": aggregation.study_for_period(sessions, *week) + self._live_in(active, elapsed, week),
			"month_study": aggregation.study_for_period(sessions, *month) + self._live_in(active, elapsed, month),
			"streak": aggregation.streak(sessions, today, active_counts=live_today > 0),
			"daily_goal": next((g for g in goals if daily_goal is not None and g.goal_id == daily_goal.id), None),
			"goals": goals,
			"active": active,
		}

	def analytics(self, today=None, days=7):
		today = today or self._today()
		sessions = self.state.sessions
		return {
			"overview": aggregation.overview(sessions, self.state.subjects),
			"daily": aggregation.daily_series(sessions, today, days),
			"subjects": aggregation.subject_breakdown(sessions, self.state.subjects),
			"types": aggregation.type_distribution(sessions),
		}

	def pomodoro(self):
		"""Progress of the running interval against the configured pomodoro lengths."""
		active, elapsed = self._live()
		is_break = bool(active) and active["type"] is SessionType.BREAK
		return aggregation.pomodoro_progress(
			elapsed, is_break, self.settings.pomodoro_focus, self.settings.pomodoro_break)

	def reconcile(self):
		"""Recompute cached totals from the log and fix drift; returns corrected subject ids."""
		corrected = []
		truth = aggregation.recompute_totals(self.state.sessions, self.state.subjects)
		for subject in self.state.subjects:
			total, topic_totals = truth[subject.id]
			drifted = subject.total_time != total or any(
				t.total_time != topic_totals[t.id] for t in subject.topics)
			if not drifted:
				continue
			log.info("reconciled subject %s: %s -> %s", subject.id, subject.total_time, total)
			subject.total_time = total
			for topic in subject.topics:
				topic.total_time = topic_totals[topic.id]
			self._persist("reconcile totals", subject_repo.set_totals, subject.id, total, topic_totals)
			corrected.append(subject.id)
		if corrected:
			self.data_changed.emit()
		return corrected

	# export / import ----------------------------------------------------
	def snapshot(self):
		return export_service.build_snapshot(
			self.state.subjects, self.state.sessions, self.state.goals, export_date=self._now())

	def export_to(self, path=None):
		return export_service.export_json(self.snapshot(), path)

	def import_snapshot(self, source):
		"""Replace all of the user's data with a backup document (file path or JSON text)."""
		if self.timer.running:
			raise InvalidStateError("stop the running session before importing")
		snapshot = export_service.load_snapshot(source)
		self.state.subjects[:] = snapshot.subjects
		self.state.sessions[:] = sorted(snapshot.sessions, key=lambda s: s.start_time)
		self.state.goals[:] = snapshot.goals
		self._persist("import subjects", subject_repo.replace_all, snapshot.subjects)
		self._persist("import sessions", session_repo.replace_all, snapshot.sessions)
		self._persist("import goals", goal_repo.replace_all, snapshot.goals)
		self.data_changed.emit()
		return snapshot
