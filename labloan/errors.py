"""
Error taxonomy for the loan core.

Everything derives from ValueError so the blueprints can keep catching
``ValueError`` and turning it into ``{"success": False, "message": ...}``.
"""
from __future__ import annotations


class LoanError(ValueError):
    http_status = 400


class RequestNotFound(LoanError):
    http_status = 404

    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Request {request_id} not found")


class EquipmentNotFound(LoanError):
    http_status = 404

    def __init__(self, equipment_id):
        self.equipment_id = equipment_id
        super().__init__(f"Equipment {equipment_id} not found")


class InvalidQuantity(LoanError):
    pass


class InvalidTransition(LoanError):
    http_status = 409

    def __init__(self, current: str, target: str, hint: str | None = None):
        self.current = current
        self.target = target
        msg = f"Cannot change status from '{current}' to '{target}'"
        if hint:
            msg = f"{msg}: {hint}"
        super().__init__(msg)


class InsufficientStock(LoanError):
    http_status = 409

    def __init__(self, equipment_id, available: int, requested: int):
        self.equipment_id = equipment_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Cannot approve: only {available} available, but {requested} requested."
        )


class LedgerUnderflow(LoanError):
    http_status = 409

    def __init__(self, equipment_id, borrowed: int, requested: int):
        self.equipment_id = equipment_id
        self.borrowed = borrowed
        self.requested = requested
        super().__init__(
            f"Cannot release {requested} of equipment {equipment_id}: only {borrowed} borrowed"
        )


class BatchError(LoanError):
    http_status = 409

    def __init__(self, batch_id, message: str, applied: int = 0,
                 failed_request_id=None, cause: Exception | None = None):
        self.batch_id = batch_id
        self.applied = applied
        self.failed_request_id = failed_request_id
        self.cause = cause
        super().__init__(message)


class PartialWriteFailure(LoanError):
    """
    The state change is committed but a later write of the same operation
    (notification) failed. ``request`` is whatever the committed step returned,
    ``failures`` lists ``(type, request_id, error)`` for every failed write.
    """
    http_status = 500

    def __init__(self, message: str, request=None, cause: Exception | None = None, failures=None):
        self.request = request
        self.cause = cause
        self.failures = failures or []
        super().__init__(message)
