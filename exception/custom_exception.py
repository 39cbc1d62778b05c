"""
Exception types for Graph Portal.

GraphPortalException records where the triggering error happened so API
handlers can log a single line with file, line and message.

Usage:
    try:
        ...
    except Exception as e:
        raise GraphPortalException("Layout failed", sys) from e
"""
import sys
import traceback
from typing import Optional


class GraphPortalException(Exception):
    def __init__(self, error_message, error_details: Optional[object] = None):
        super().__init__(str(error_message))
        self.error_message = str(error_message)
        self.file_name = "<unknown>"
        self.lineno = -1
        self.traceback_str = ""

        # error_details is the sys module, as in raise X("...", sys)
        exc_info = error_details.exc_info() if error_details is not None else sys.exc_info()
        exc_type, exc_value, exc_tb = exc_info
        if exc_tb is not None:
            while exc_tb.tb_next is not None:
                exc_tb = exc_tb.tb_next
            self.file_name = exc_tb.tb_frame.f_code.co_filename
            self.lineno = exc_tb.tb_lineno
            self.traceback_str = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

    def __str__(self) -> str:
        if self.lineno < 0:
            return self.error_message
        return f"Error in [{self.file_name}] at line [{self.lineno}] | Message: {self.error_message}"


class InputValidationError(GraphPortalException):
    """Required input (text, nodes, edges) is missing or malformed."""


class LayoutCancelledError(GraphPortalException):
    """The force simulation was stopped by its cancellation event."""
