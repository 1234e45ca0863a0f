class StudyError(Exception):
	"""Base class for study tracker errors."""


class InvalidStateError(StudyError):
	"""Timer command issued in a state that forbids it."""


class InvalidReferenceError(StudyError):
	"""Subject or topic id does not resolve."""


class PersistenceError(StudyError):
	"""The record store rejected or failed a write."""

	def __init__(self, operation, cause=None):
		self.operation = operation
		self.cause = cause
		detail = f": {cause}" if cause is not None else ""
		super().__init__(f"{operation} failed{detail}")


class ValidationError(StudyError):
	"""Malformed input rejected before any state change."""
