from .custom_exception import GraphPortalException, InputValidationError, LayoutCancelledError

__all__ = ["GraphPortalException", "InputValidationError", "LayoutCancelledError"]
