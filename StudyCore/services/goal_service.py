import logging

import pydantic

from StudyCore.core.errors import InvalidReferenceError, ValidationError
from StudyCore.core.models import GoalType, StudyGoal
from StudyCore.services import aggregation

log = logging.getLogger(__name__)


class GoalTracker:
	"""Holds the user's goals; at most one per (type, subject_id).

	Progress is always derived from the session log through the
	aggregation engine; the stored `current` is only a display cache.
	"""

	def __init__(self, goals=None, subject_exists=None):
		self.goals = goals if goals is not None else []
		self._subject_exists = subject_exists or (lambda subject_id: True)

	def find(self, goal_type, subject_id=None):
		goal_type = GoalType(goal_type)
		return next((g for g in self.goals if g.type is goal_type and g.subject_id == subject_id), None)

	def get(self, goal_id):
		goal = next((g for g in self.goals if g.id == goal_id), None)
		if goal is None:
			raise InvalidReferenceError(f"unknown goal: {goal_id}")
		return goal

	def set_goal(self, goal_type, target, subject_id=None):
		"""Create a goal, or replace the target of the one with the same (type, subject).

		Returns (goal, created).
		"""
		try:
			goal_type = GoalType(goal_type)
		except ValueError:
			raise ValidationError(f"unknown goal type: {goal_type!r}") from None
		try:
			target = int(target)
		except (TypeError, ValueError):
			raise ValidationError(f"goal target must be a number of seconds, got {target!r}") from None
		if target <= 0:
			raise ValidationError("goal target must be a positive number of seconds")
		if subject_id is not None and not self._subject_exists(subject_id):
			raise InvalidReferenceError(f"unknown subject: {subject_id}")
		existing = self.find(goal_type, subject_id)
		if existing is not None:
			existing.target = int(target)
			log.info("replaced %s goal target for subject %s", goal_type.value, subject_id)
			return existing, False
		goal = StudyGoal(type=goal_type, target=int(target), subject_id=subject_id)
		self.goals.append(goal)
		return goal, True

	def update_goal(self, goal_id, **changes):
		"""Apply changes (type, target, subject_id) to a goal after validation."""
		goal = self.get(goal_id)
		unknown = set(changes) - {"type", "target", "current", "subject_id"}
		if unknown:
			raise ValidationError(f"cannot update goal fields: {', '.join(sorted(unknown))}")
		data = goal.model_dump()
		data.update(changes)
		try:
			checked = StudyGoal.model_validate(data)
		except pydantic.ValidationError as exc:
			raise ValidationError(str(exc)) from exc
		if checked.subject_id is not None and not self._subject_exists(checked.subject_id):
			raise InvalidReferenceError(f"unknown subject: {checked.subject_id}")
		clash = self.find(checked.type, checked.subject_id)
		if clash is not None and clash.id != goal_id:
			raise ValidationError(f"a {checked.type.value} goal already exists for this subject")
		for key in ("type", "target", "current", "subject_id"):
			setattr(goal, key, getattr(checked, key))
		return goal

	def remove_goal(self, goal_id):
		goal = self.get(goal_id)
		self.goals.remove(goal)
		return goal

	def drop_subject(self, subject_id):
		"""Forget goals scoped to a deleted subject; returns the removed goals."""
		removed = [g for g in self.goals if g.subject_id == subject_id]
		self.goals[:] = [g for g in self.goals if g.subject_id != subject_id]
		return removed

	def progress(self, goal, sessions, today, week_start=6, active=None, active_elapsed=0):
		result = aggregation.goal_progress(goal, sessions, today, week_start, active, active_elapsed)
		goal.current = result.current
		return result

	def progress_all(self, sessions, today, week_start=6, active=None, active_elapsed=0):
		return [self.progress(g, sessions, today, week_start, active, active_elapsed) for g in self.goals]
