"""Permission grant resource exceptions."""
from __future__ import annotations
from typing import Optional


class PermissionGrantError(Exception):
    """Base exception for all permission grant resource operations."""
    pass


class ConfigValidationError(PermissionGrantError, ValueError):
    """Configuration rejected by the schema before any remote call.

    Attributes:
        errors: One message per failing field
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid permission grant configuration: " + "; ".join(self.errors))


class RemoteOperationError(PermissionGrantError):
    """A remote Graph call failed (transport error or non-success status).

    Attributes:
        object_id: Application object ID the operation targeted
        operation: Operation name (create, read, update, delete)
        cause: Underlying exception, if any
        status_code: HTTP status when one was received
    """

    operation = "operate"
    verb = "operating on"

    def __init__(
        self,
        object_id: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        self.object_id = object_id
        self.cause = cause
        self.status_code = status_code
        reason = detail or (str(cause) if cause is not None else f"unexpected status {status_code}")
        super().__init__(f"Error {self.verb} permission grant for application {object_id!r}: {reason}")


class RemoteCreateError(RemoteOperationError):
    """Remote create failed."""
    operation = "create"
    verb = "creating"


class RemoteReadError(RemoteOperationError):
    """Remote list of grants failed or was ambiguous."""
    operation = "read"
    verb = "retrieving"


class RemoteDeleteError(RemoteOperationError):
    """Remote delete failed."""
    operation = "delete"
    verb = "deleting"


class RemoteUpdateError(RemoteOperationError):
    """Replace (delete then create) failed.

    Attributes:
        phase: "delete", "create" or "read", the step that failed
    """
    operation = "update"
    verb = "replacing"

    drift = False

    def __init__(
        self,
        object_id: str,
        phase: str,
        cause: Optional[BaseException] = None,
        detail: Optional[str] = None,
    ):
        self.phase = phase
        super().__init__(
            object_id,
            cause,
            status_code=getattr(cause, "status_code", None),
            detail=detail or f"{phase} phase failed: {cause}",
        )


class ReplacePartialFailureError(RemoteUpdateError):
    """Delete succeeded but the recreate failed.

    The remote grant is now absent while desired state still describes it
    as present. Nothing is rolled back.
    """

    drift = True

    def __init__(self, object_id: str, cause: Optional[BaseException] = None):
        super().__init__(
            object_id,
            "create",
            cause,
            detail=f"existing grant was deleted but recreating it failed, remote grant is now absent: {cause}",
        )
