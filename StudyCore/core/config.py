import os
from dataclasses import dataclass

from dotenv import load_dotenv

from StudyCore.core.errors import ValidationError

load_dotenv()


@dataclass(frozen=True)
class Settings:
	user_id: str = "local"
	log_level: str = "INFO"
	week_start: int = 6  # Python weekday; 6 = Sunday
	tick_ms: int = 1000
	pomodoro_focus: int = 1500
	pomodoro_break: int = 300


def _int_env(name, default):
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	try:
		return int(raw)
	except ValueError:
		raise ValidationError(f"{name} must be an integer, got {raw!r}") from None


def load_settings():
	"""Read settings from the environment (and .env, if present)."""
	week_start = _int_env("STUDYCORE_WEEK_START", 6)
	if not 0 <= week_start <= 6:
		raise ValidationError("STUDYCORE_WEEK_START must be between 0 and 6")
	tick_ms = _int_env("STUDYCORE_TICK_MS", 1000)
	if tick_ms <= 0:
		raise ValidationError("STUDYCORE_TICK_MS must be positive")
	return Settings(
		user_id=(os.getenv("STUDYCORE_USER_ID") or "local").strip() or "local",
		log_level=(os.getenv("STUDYCORE_LOG_LEVEL") or "INFO").upper(),
		week_start=week_start,
		tick_ms=tick_ms,
		pomodoro_focus=_int_env("STUDYCORE_POMODORO_FOCUS", 1500),
		pomodoro_break=_int_env("STUDYCORE_POMODORO_BREAK", 300),
	)
