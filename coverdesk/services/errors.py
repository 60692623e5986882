"""
Erreurs métier typées / Typed domain errors.
Chaque erreur porte un code stable et le statut HTTP associé.
Each error carries a stable code and its HTTP status.
"""


class LifecycleError(Exception):
    """Erreur de cycle de vie / Lifecycle error (base class)."""

    status_code: int = 400
    code: str = "lifecycle_error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class NotFound(LifecycleError):
    """Referenced entity not found."""
    status_code = 404
    code = "not_found"


class InactiveContractType(NotFound):
    """Contract type is not active."""
    code = "inactive_contract_type"


class InvalidDuration(LifecycleError):
    """Contract duration outside the contract type bounds."""
    status_code = 422
    code = "invalid_duration"


class ItemConflict(LifecycleError):
    """Item already covered by an active contract over this period."""
    status_code = 409
    code = "item_conflict"


class ContractVoided(LifecycleError):
    """Contract is void."""
    status_code = 409
    code = "contract_voided"


class OutOfCoverageWindow(LifecycleError):
    """Claim date outside the contract coverage window."""
    status_code = 422
    code = "out_of_coverage_window"


class TheftNotCovered(LifecycleError):
    """Contract type does not insure theft."""
    status_code = 422
    code = "theft_not_covered"


class TheftNotConfirmed(LifecycleError):
    """Theft must first be confirmed by a police report."""
    status_code = 409
    code = "theft_not_confirmed"


class CoverageExceeded(LifecycleError):
    """Running coverage total would exceed the maximum sum insured."""
    status_code = 409
    code = "coverage_exceeded"


class InvalidTransition(LifecycleError):
    """Claim status transition not allowed."""
    status_code = 409
    code = "invalid_transition"


class InvalidStatus(LifecycleError):
    """Unknown claim status."""
    status_code = 422
    code = "invalid_status"


class RepairNotAllowed(LifecycleError):
    """Claim cannot be sent to repair."""
    status_code = 409
    code = "repair_not_allowed"


class UserExists(LifecycleError):
    """Username already taken."""
    status_code = 409
    code = "user_exists"


class InvalidCredentials(LifecycleError):
    """Invalid credentials."""
    status_code = 401
    code = "invalid_credentials"


class Busy(LifecycleError):
    """Aggregate busy, retries exhausted."""
    status_code = 503
    code = "busy"
