import logging

_configured = False

def setup_logging(level="INFO"):
	"""Configure root logging once for the process."""
	global _configured
	if _configured:
		logging.getLogger().setLevel(level)
		return
	logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')
	_configured = True
