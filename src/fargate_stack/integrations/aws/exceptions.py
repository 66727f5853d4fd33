"""Exceptions raised while planning and provisioning a stack."""

from __future__ import annotations


class FargateStackError(Exception):
    """Base exception for fstack.

    Attributes:
        message: Human-readable error message.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(FargateStackError):
    """Invalid or ambiguous input, detected before any plan is built.

    Attributes:
        message: Human-readable error message.
        service_id: Id of the offending service declaration, if any.
        field: Name of the offending field, if any.
    """

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        field: str | None = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error message.
            service_id: Id of the service the problem was found in.
            field: Field that holds the invalid value.
        """
        super().__init__(message)
        self.service_id = service_id
        self.field = field

    def __str__(self) -> str:
        parts = [self.message]
        if self.service_id is not None:
            parts.append(f"[service: {self.service_id}]")
        if self.field is not None:
            parts.append(f"[field: {self.field}]")
        return " ".join(parts)


class ProvisioningError(FargateStackError):
    """Error reported by the provisioning engine while submitting a stack.

    Attributes:
        message: Human-readable error message.
        stack_name: Name of the stack being operated on.
        operation: Engine operation that failed (e.g. ``create_stack``).
        error_code: Error code reported by the engine.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        stack_name: str | None = None,
        operation: str | None = None,
        error_code: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize ProvisioningError.

        Args:
            message: Human-readable error message.
            stack_name: Name of the stack being operated on.
            operation: Engine operation that failed.
            error_code: Error code reported by the engine.
            original_error: The underlying exception.
        """
        super().__init__(message)
        self.stack_name = stack_name
        self.operation = operation
        self.error_code = error_code
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"(code: {self.error_code})")
        if self.stack_name:
            parts.append(f"[stack: {self.stack_name}]")
        return " ".join(parts)


class ProvisioningConnectionError(ProvisioningError):
    """The provisioning endpoint could not be reached or throttled the request.

    These errors are retried by the client before being surfaced.
    """

    def __init__(
        self,
        message: str = "Failed to reach the provisioning endpoint",
        stack_name: str | None = None,
        operation: str | None = None,
        error_code: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            stack_name=stack_name,
            operation=operation,
            error_code=error_code,
            original_error=original_error,
        )


class StackNotFoundError(ProvisioningError):
    """The requested stack does not exist."""

    def __init__(
        self,
        stack_name: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            message=f"stack '{stack_name}' not found",
            stack_name=stack_name,
            operation=operation,
            error_code="ValidationError",
            original_error=original_error,
        )
