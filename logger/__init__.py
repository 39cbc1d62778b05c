from .custom_logger import CustomLogger

# Callers attach keyword metadata: log.info("Parsed text", node_count=3)
class _GlobalLogger:
	def __init__(self, logger):
		self._logger = logger

	@property
	def name(self) -> str:
		return self._logger.name

	def _format(self, msg: str, kwargs: dict) -> str:
		if not kwargs:
			return msg
		try:
			meta = " | " + ", ".join(f"{k}={v!r}" for k, v in kwargs.items())
		except Exception:
			meta = " | <meta>"
		return msg + meta

	def debug(self, msg: str, **kwargs) -> None:
		self._logger.debug(self._format(msg, kwargs))

	def info(self, msg: str, **kwargs) -> None:
		self._logger.info(self._format(msg, kwargs))

	def warning(self, msg: str, **kwargs) -> None:
		self._logger.warning(self._format(msg, kwargs))

	def error(self, msg: str, **kwargs) -> None:
		self._logger.error(self._format(msg, kwargs))

	def exception(self, msg: str, **kwargs) -> None:
		self._logger.exception(self._format(msg, kwargs))


GLOBAL_LOGGER = _GlobalLogger(CustomLogger().get_logger("graph_portal"))

__all__ = ["CustomLogger", "GLOBAL_LOGGER"]
