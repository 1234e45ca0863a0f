import logging
from enum import Enum

from PySide6.QtCore import QObject, Signal

from StudyCore.core.clock import local_now, make_ticker
from StudyCore.core.errors import InvalidReferenceError, InvalidStateError, ValidationError
from StudyCore.core.models import WASTED_SUBJECT_ID, SessionType, StudySession, new_id

log = logging.getLogger(__name__)


class TimerState(str, Enum):
	IDLE = "idle"
	RUNNING = "running"
	PAUSED = "paused"


class TimerService(QObject):
	"""Single-session timer: idle -> running <-> paused -> idle.

	Elapsed seconds grow by one per ticker timeout, and only while running.
	Stopping emits the finalized StudySession through session_finished;
	the service itself never touches storage.
	"""
	tick = Signal(int)  # emits elapsed seconds
	state_changed = Signal(str)  # emits 'idle', 'running', 'paused'
	session_finished = Signal(object)  # emits the finalized StudySession

	def __init__(self, ticker=None, now=None, resolve=None, tick_ms=1000):
		super().__init__()
		self.state = TimerState.IDLE
		self.elapsed_sec = 0
		self._active = None
		self._now = now or local_now
		self._resolve = resolve or (lambda subject_id, topic_id: True)
		self._timer = ticker if ticker is not None else make_ticker(tick_ms)
		self._timer.timeout.connect(self._on_tick)

	@property
	def running(self):
		return self.state is not TimerState.IDLE

	@property
	def paused(self):
		return self.state is TimerState.PAUSED

	@property
	def is_wasted(self):
		return self._active is not None and self._active["type"] is SessionType.WASTED

	def active_session(self):
		"""Return a snapshot of the in-flight session, or None when idle."""
		if self._active is None:
			return None
		return dict(self._active, elapsed=self.elapsed_sec)

	def _require(self, *states):
		if self.state not in states:
			allowed = "/".join(s.value for s in states)
			raise InvalidStateError(f"timer is {self.state.value}, expected {allowed}")

	def _begin(self, subject_id, topic_id, session_type):
		self._active = {
			"id": new_id(),
			"subject_id": subject_id,
			"topic_id": topic_id,
			"start_time": self._now(),
			"type": session_type,
		}
		self.elapsed_sec = 0
		self._set_state(TimerState.RUNNING)
		self._timer.start()
		log.debug("started %s session for subject %s", session_type.value, subject_id)

	def start(self, subject_id, topic_id=None, session_type=SessionType.FOCUS):
		self._require(TimerState.IDLE)
		try:
			session_type = SessionType(session_type)
		except ValueError:
			raise ValidationError(f"unknown session type: {session_type!r}") from None
		if session_type is SessionType.WASTED or subject_id == WASTED_SUBJECT_ID:
			return self.start_wasted()
		if session_type not in (SessionType.FOCUS, SessionType.BREAK):
			raise ValidationError(f"cannot time a {session_type.value} session")
		if not subject_id:
			raise InvalidReferenceError("subject id is required")
		if not self._resolve(subject_id, topic_id):
			raise InvalidReferenceError(f"unknown subject/topic: {subject_id}/{topic_id}")
		self._begin(subject_id, topic_id, session_type)

	def start_wasted(self):
		self._require(TimerState.IDLE)
		self._begin(WASTED_SUBJECT_ID, None, SessionType.WASTED)

	def pause(self):
		self._require(TimerState.RUNNING)
		self._timer.stop()
		self._set_state(TimerState.PAUSED)

	def resume(self):
		self._require(TimerState.PAUSED)
		self._timer.start()
		self._set_state(TimerState.RUNNING)

	def pause_resume(self):
		"""Toggle between running and paused (single-button front ends)."""
		if self.paused:
			self.resume()
		else:
			self.pause()

	def stop(self, notes=None):
		"""Finalize the active session and return it. Zero-length sessions are kept."""
		self._require(TimerState.RUNNING, TimerState.PAUSED)
		self._timer.stop()
		active = self._active
		session = StudySession(
			id=active["id"],
			subject_id=active["subject_id"],
			topic_id=active["topic_id"],
			start_time=active["start_time"],
			end_time=self._now(),
			duration=self.elapsed_sec,
			notes=notes or None,
			type=active["type"],
		)
		self._active = None
		self.elapsed_sec = 0
		self._set_state(TimerState.IDLE)
		log.debug("stopped session %s after %ss", session.id, session.duration)
		self.session_finished.emit(session)
		return session

	def _set_state(self, state):
		self.state = state
		self.state_changed.emit(state.value)

	def _on_tick(self):
		if self.state is not TimerState.RUNNING:
			return
		self.elapsed_sec += 1
		self.tick.emit(self.elapsed_sec)
