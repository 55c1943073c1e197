"""
Custom exceptions for MDB_BLUEPRINT.

Every error raised while serving a blueprint route derives from
BlueprintError and carries the HTTP status it maps to. Route endpoints
translate them into HTTPException at the handler boundary.
"""

from typing import Any, Dict, Optional


class BlueprintError(RuntimeError):
    """
    Base exception for blueprint errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection,
                 record id, hook name, etc.)
        status_code: HTTP status the error maps to at the handler boundary
    """

    status_code: int = 400

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(BlueprintError):
    """
    Raised when configuration or resource registration is invalid.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ClientInputError(BlueprintError):
    """Raised for malformed request input: invalid JSON body or malformed id."""

    status_code = 400


class InvalidParameterError(ClientInputError):
    """
    Raised when a query-string parameter cannot be used.

    Attributes:
        parameter: Name of the offending parameter
        value: Raw value received (if any)
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if parameter:
            context["parameter"] = parameter
        if value is not None:
            context["value"] = value
        super().__init__(message, context=context)
        self.parameter = parameter
        self.value = value


class NotFoundError(BlueprintError):
    """Raised when the path id is missing or no document matches it."""

    status_code = 404


class StoreOperationError(BlueprintError):
    """
    Raised when the document store rejects an otherwise valid request.

    Attributes:
        operation: Store operation that failed (insert, find, replace, ...)
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.operation = operation


class HookAbortError(BlueprintError):
    """
    Raised when a pre-mutation hook declines the operation.

    Nothing has been written to the store when this is raised.

    Attributes:
        hook: Name of the hook that failed (e.g. "pre_create")
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        hook: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if hook:
            context["hook"] = hook
        super().__init__(message, context=context)
        self.hook = hook


class PostHookError(HookAbortError):
    """
    Raised when a post-mutation hook fails.

    The store mutation that preceded the hook has already been committed
    and is not rolled back.
    """

    committed = True
