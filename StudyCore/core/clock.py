from datetime import datetime, timezone

from PySide6.QtCore import QObject, QTimer, Signal


def local_now():
	"""Return current local wall-clock time (naive, no microseconds)."""
	return datetime.now().replace(microsecond=0)

def utc_now_iso():
	"""Return current UTC time as ISO8601 string (no microseconds)."""
	return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

def local_today_str():
	"""Return local date as YYYY-MM-DD string."""
	return datetime.now().date().isoformat()

def fmt_hms(seconds: int) -> str:
	"""Format seconds as HH:MM:SS."""
	h = seconds // 3600
	m = (seconds % 3600) // 60
	s = seconds % 60
	return f"{h:02}:{m:02}:{s:02}"

def fmt_short(seconds: int) -> str:
	"""Format seconds as '1h 5m' or '5m'."""
	h = int(seconds) // 3600
	m = (int(seconds) % 3600) // 60
	if h > 0:
		return f"{h}h {m}m"
	return f"{m}m"


def make_ticker(interval_ms=1000):
	"""Return a QTimer emitting timeout every interval_ms."""
	timer = QTimer()
	timer.setInterval(interval_ms)
	return timer


class ManualTicker(QObject):
	"""Ticker with the QTimer surface whose ticks are fired by hand."""
	timeout = Signal()

	def __init__(self):
		super().__init__()
		self._active = False

	def start(self):
		self._active = True

	def stop(self):
		self._active = False

	def isActive(self):
		return self._active

	def fire(self, count=1):
		"""Emit count ticks; ignored while stopped, like a stopped QTimer."""
		for _ in range(count):
			if not self._active:
				break
			self.timeout.emit()
