"""
Service errors shared by the database and user services.

The HTTP layer translates these into responses (see
``gamevault.api.v1.errors.handle_service_error``).
"""

from typing import Optional, Sequence


class GamevaultError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, code: str = "GAMEVAULT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(GamevaultError):
    """Raised when the server configuration does not allow an operation."""

    def __init__(self, message: str, code: str = "CONFIGURATION_ERROR"):
        super().__init__(message, code)


class InMemoryDatabaseError(ConfigurationError):
    """Raised for backup/restore against an in-memory database."""

    def __init__(self, operation: str):
        super().__init__(
            f"This server can't {operation} its data as it uses an in-memory database.",
            "IN_MEMORY_DATABASE",
        )


class AuthorizationError(GamevaultError):
    """Raised when supplied credentials are wrong or missing."""

    def __init__(self, message: str):
        super().__init__(message, "UNAUTHORIZED")


class ForbiddenError(GamevaultError):
    def __init__(self, message: str, code: str = "FORBIDDEN"):
        super().__init__(message, code)


class AlreadyExistsError(ForbiddenError):
    """Raised when a unique user field is already taken."""

    def __init__(self, field: str):
        super().__init__(
            f"A user with this {field} already exists. (case-insensitive)",
            "ALREADY_EXISTS",
        )
        self.field = field


class BadRequestError(GamevaultError):
    def __init__(self, message: str):
        super().__init__(message, "BAD_REQUEST")


class NotFoundError(GamevaultError):
    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND")


class ProcessExecutionError(GamevaultError):
    """Raised when an external command cannot be spawned or exits non-zero."""

    def __init__(
        self,
        args: Sequence[str],
        message: str,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message, "PROCESS_FAILED")
        self.command = list(args)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class RestoreError(GamevaultError):
    """Restore did not apply; the previous database state is intact."""

    def __init__(self, message: str):
        super().__init__(message, "RESTORE_FAILED")


class InternalError(GamevaultError):
    """Rollback after a failed restore failed; manual intervention required."""

    def __init__(self, message: str):
        super().__init__(message, "INTERNAL_ERROR")


class BackupError(GamevaultError):
    """The backup file could not be written."""

    def __init__(self, message: str):
        super().__init__(message, "BACKUP_FAILED")
