import os
from pathlib import Path

from StudyCore.core.clock import local_today_str

def user_data_dir(app_name="StudyCore"):
	"""Return per-user data dir (Windows/macOS/Linux)."""
	if os.name == "nt":
		base = os.environ.get("LOCALAPPDATA", os.path.expanduser("~\\AppData\\Local"))
	elif os.name == "posix":
		base = os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share"))
	else:
		base = os.path.expanduser("~")
	path = Path(base) / app_name
	path.mkdir(parents=True, exist_ok=True)
	return path

def db_path():
	"""Return Path to study.db, honouring STUDYCORE_DB_PATH."""
	override = os.environ.get("STUDYCORE_DB_PATH")
	if override:
		path = Path(override)
		path.parent.mkdir(parents=True, exist_ok=True)
		return path
	return user_data_dir() / "study.db"

def export_path():
	"""Return default Path for today's backup file."""
	return user_data_dir() / f"study-tracker-backup-{local_today_str()}.json"
