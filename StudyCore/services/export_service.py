import logging
from pathlib import Path

import pydantic

from StudyCore.core.clock import local_now
from StudyCore.core.errors import ValidationError
from StudyCore.core.models import ExportSnapshot
from StudyCore.core.paths import export_path

log = logging.getLogger(__name__)


def build_snapshot(subjects, sessions, goals, export_date=None):
	"""Freeze the user's data into the interchange document."""
	return ExportSnapshot(
		subjects=[s.model_copy(deep=True) for s in subjects],
		sessions=list(sessions),
		goals=[g.model_copy() for g in goals],
		export_date=export_date or local_now(),
	)


def to_json(snapshot):
	"""Serialize as {subjects, sessions, goals, exportDate} with camelCase keys."""
	return snapshot.model_dump_json(by_alias=True, indent=2)


def export_json(snapshot, path=None):
	"""Write the snapshot to path (default: today's backup file) and return the Path."""
	path = Path(path) if path else export_path()
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(to_json(snapshot), encoding="utf-8")
	log.info("exported %d sessions to %s", len(snapshot.sessions), path)
	return path


def load_snapshot(source):
	"""Parse a snapshot from a path (Path or str) or from JSON text."""
	if isinstance(source, str) and source.lstrip().startswith("{"):
		text = source
	else:
		try:
			text = Path(source).read_text(encoding="utf-8")
		except OSError as exc:
			raise ValidationError(f"cannot read backup file {source}: {exc}") from exc
	try:
		return ExportSnapshot.model_validate_json(text)
	except pydantic.ValidationError as exc:
		raise ValidationError(f"invalid backup document: {exc}") from exc
