import logging
import os
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_level(level: Union[int, str, None]) -> int:
	"""Turn a level name such as "debug" (or an int) into a logging level."""
	if level is None:
		level = os.getenv("GRAPH_LOG_LEVEL", "INFO")
	if isinstance(level, int):
		return level
	resolved = logging.getLevelName(str(level).upper())
	return resolved if isinstance(resolved, int) else logging.INFO


class CustomLogger:
	"""Configurable logger helper for the graph services.

	Usage:
		logger = CustomLogger().get_logger("graph_portal.layout")
		logger.info("layout ready")

	The level defaults to GRAPH_LOG_LEVEL from the environment.
	"""

	def __init__(self, level: Union[int, str, None] = None):
		self.level = _resolve_level(level)

	def _configure_handler(self, handler: logging.Handler) -> None:
		handler.setFormatter(logging.Formatter(LOG_FORMAT))
		handler.setLevel(self.level)

	def get_logger(self, name: str, level: Optional[int] = None) -> logging.Logger:
		"""Return a logger with a single stream handler attached."""
		logger = logging.getLogger(name)
		logger.setLevel(level if level is not None else self.level)

		# uvicorn reloads import this module twice
		if not logger.handlers:
			handler = logging.StreamHandler()
			self._configure_handler(handler)
			logger.addHandler(handler)

		return logger
