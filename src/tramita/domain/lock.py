"""Terminal-status guard shared by every mutating path."""

from typing import Iterable, Optional

from tramita.domain.entities import Case, StatusDef
from tramita.domain.errors import CaseLockedError

# Historical special case: commitment/liquidation was the closing status of
# the first deployments and stays terminal whatever its configured flag says.
COMMITMENT_LIQUIDATION_LABEL = "EMPENHO / LIQUIDAÇÃO"


def is_terminal_status(status: Optional[str], status_defs: Iterable[StatusDef]) -> bool:
    """Check whether a status name locks the case that reaches it."""
    if status is None:
        return False
    if status == COMMITMENT_LIQUIDATION_LABEL:
        return True
    for status_def in status_defs:
        if status_def.name == status:
            return status_def.is_final
    return False


def is_locked(case: Case, status_defs: Iterable[StatusDef]) -> bool:
    return is_terminal_status(case.status, status_defs)


def ensure_unlocked(case: Case, status_defs: Iterable[StatusDef]) -> None:
    """Raise CaseLockedError if the case is in a terminal status."""
    if is_locked(case, status_defs):
        raise CaseLockedError(case.id, case.status)
