from __future__ import annotations


class CancellationToken:
    """Flag handed to an aggregation pass; set when its result is no longer wanted.

    Cancelling never interrupts in-flight store calls. The pass checks the
    token once everything has resolved and drops its result if it was set.
    """

    __slots__ = ("_cancelled", "reason")

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {state}>"
