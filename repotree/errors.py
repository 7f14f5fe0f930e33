"""Error handling framework for repotree."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    CONFIGURATION = "configuration"
    DISCOVERY = "discovery"
    LOCAL_SCAN = "local_scan"
    RECONCILIATION = "reconciliation"
    ACTION = "action"
    SYSTEM = "system"


class RepoTreeError(Exception):
    """Base class for every error raised by repotree."""

    category = ErrorCategory.SYSTEM
    error_code = "REPOTREE_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(RepoTreeError):
    """Malformed or missing configuration."""

    category = ErrorCategory.CONFIGURATION
    error_code = "CONFIG_ERROR"


class DiscoveryError(RepoTreeError):
    """The repository host could not be listed or queried."""

    category = ErrorCategory.DISCOVERY
    error_code = "DISCOVERY_ERROR"


class LocalScanError(RepoTreeError):
    """The local filesystem walk failed."""

    category = ErrorCategory.LOCAL_SCAN
    error_code = "LOCAL_SCAN_ERROR"


class AmbiguousMatchError(RepoTreeError):
    """A local repository's remotes matched more than one desired repository."""

    category = ErrorCategory.RECONCILIATION
    error_code = "AMBIGUOUS_MATCH"


class ActionError(RepoTreeError):
    """Failure local to a single action."""

    category = ErrorCategory.ACTION
    error_code = "ACTION_ERROR"


class VCSError(ActionError):
    """A git operation failed."""

    error_code = "GIT_COMMAND_FAILED"


@dataclass
class ErrorResponse:
    """Standardized error response format for tool calls."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns exceptions into logged, structured responses."""

    _TITLES = {
        ErrorCategory.CONFIGURATION: "Configuration error",
        ErrorCategory.DISCOVERY: "Repository discovery failed",
        ErrorCategory.LOCAL_SCAN: "Local repository scan failed",
        ErrorCategory.RECONCILIATION: "Could not build a sync plan",
        ErrorCategory.ACTION: "Sync action failed",
        ErrorCategory.SYSTEM: "Unexpected error",
    }

    def __init__(self):
        self.logger = logging.getLogger('repotree.error_handler')

    def handle_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Build an ErrorResponse for any exception and log it."""
        context = dict(context or {})

        if isinstance(error, RepoTreeError):
            category = error.category
            error_code = error.error_code
            message = error.message
            context.update(error.context)
        elif isinstance(error, PermissionError):
            category = ErrorCategory.SYSTEM
            error_code = "PERMISSION_DENIED"
            message = f"Permission denied: {error}"
        elif isinstance(error, OSError):
            category = ErrorCategory.SYSTEM
            error_code = "FILE_IO_ERROR"
            message = f"File system error: {error}"
        else:
            category = ErrorCategory.SYSTEM
            error_code = "UNEXPECTED_ERROR"
            message = f"Operation failed: {error}"

        error_response = ErrorResponse(
            error=self._TITLES[category],
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context
        )

        log = self.logger.warning if isinstance(error, RepoTreeError) else self.logger.error
        log(
            f"{error_response.error}: {message}",
            extra={
                'operation': category.value,
                'error_code': error_code,
            }
        )

        return error_response

    def create_success_response(self, operation: str, data: Dict[str, Any], context: Dict[str, Any] = None) -> Dict[str, Any]:
        """Create a standardized success response."""
        response = {
            "success": True,
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
            "data": data
        }

        if context:
            response["context"] = context

        return response


# Initialize global error handler
error_handler = ErrorHandler()
