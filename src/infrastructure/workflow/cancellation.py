"""Cooperative cancellation for a single run."""


class RunCancelled(Exception):
    """Raised at a suspension point after cancel() was requested."""


class CancellationToken:
    """Checked before every model call and every tool call.

    An in-flight model request is not aborted; only the next step is prevented.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelled("Run cancelled by user")
