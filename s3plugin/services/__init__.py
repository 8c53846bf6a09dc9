from .actions import ACTION_DISPLAY_NAMES, DYNAMIC_PROPERTIES, ActionType
from .errors import ActionValidationError, FileResolutionError, IntegrationError
from .files import StagedFile
from .plugin import ExecutionOutput, S3Plugin

__all__ = [
    "ACTION_DISPLAY_NAMES",
    "DYNAMIC_PROPERTIES",
    "ActionType",
    "ActionValidationError",
    "ExecutionOutput",
    "FileResolutionError",
    "IntegrationError",
    "S3Plugin",
    "StagedFile",
]
