"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NetworkFailure(DomainException):
    """Request never completed (connection error, timeout, cancellation upstream)"""

    pass


class ServerRejected(DomainException):
    """Upstream service answered with a 4xx/5xx status"""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message or f"Request rejected with status {status_code}")


class CompensationFailed(DomainException):
    """Primary settlement succeeded but a dependent loan/savings action did not"""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"{step} failed: {reason}")


class SettlementInProgress(DomainException):
    """A settlement for the same bill is still outstanding"""

    pass


class BillNotFound(DomainException):
    """Bill is not present in the current bill list"""

    pass
