"""
Exception hierarchy for the deal analysis service.

Two families:
- ClientError: an external dependency failed (model API, benchmark lookup,
  database write)
- PipelineError: the request or a model response could not be interpreted

Only RequestValidationError reaches the HTTP caller. Every other error is
caught at the narrowest scope and becomes a fallback value or a log line;
PartialSuccessResult collects the per-row outcomes of the persistence
fan-out so one failed write never hides the others.
"""

from dataclasses import dataclass, field
from typing import Any


class DealAnalysisError(Exception):
    """Root of every error raised by this package; carries debug context."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


# =============================================================================
# External dependencies
# =============================================================================


class ClientError(DealAnalysisError):
    """An external service failed."""


class UpstreamModelError(ClientError):
    """The model call did not produce a response (network, auth, quota)."""


class ModelRateLimitError(UpstreamModelError):
    """The model API throttled the request."""


class ModelRefusalError(UpstreamModelError):
    """The model API rejected the prompt on policy grounds."""


class ModelTimeoutError(UpstreamModelError):
    """No response within the per-call budget."""


class StandardsLookupError(ClientError):
    """The industry benchmark service was unreachable or answered badly."""


class PersistenceError(ClientError):
    """A result row could not be written after retries."""


# =============================================================================
# Request and response interpretation
# =============================================================================


class PipelineError(DealAnalysisError):
    """The pipeline could not interpret its input."""


class RequestValidationError(PipelineError):
    """The request body is malformed or lacks dealData, dealId or userId."""


class ParseError(PipelineError):
    """The model answered, but not with the expected JSON."""


# =============================================================================
# Persistence outcomes
# =============================================================================


@dataclass
class ItemResult:
    """Outcome of one write in a fan-out."""

    item_id: str | None
    success: bool
    error: DealAnalysisError | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class PartialSuccessResult:
    """
    Per-item outcomes of a fan-out where items fail independently.

    Items keep their insertion order; succeeded and failed are views over it.
    """

    items: list[ItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.items if r.success]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.items if not r.success]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.items if r.success)

    @property
    def failure_count(self) -> int:
        return len(self.items) - self.success_count

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0

    @property
    def partial_success(self) -> bool:
        return 0 < self.success_count < self.total_count

    def add_success(self, item_id: str | None = None, data: dict[str, Any] | None = None) -> None:
        self.items.append(ItemResult(item_id, True, data=data or {}))

    def add_failure(
        self,
        error: DealAnalysisError,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.items.append(ItemResult(item_id, False, error=error, data=data or {}))

    def failed_tables(self) -> list[str]:
        """Distinct tables with at least one failed write, in first-failure order."""
        tables: dict[str, None] = {}
        for r in self.failed:
            if 'table' in r.data:
                tables[r.data['table']] = None
        return list(tables)

    def to_dict(self) -> dict[str, Any]:
        failed = self.failed
        return {
            'success_count': self.success_count,
            'failure_count': len(failed),
            'total_count': self.total_count,
            'all_succeeded': not failed,
            'succeeded_ids': [r.item_id for r in self.succeeded if r.item_id],
            'failed_ids': [r.item_id for r in failed if r.item_id],
            'failed_tables': self.failed_tables(),
            'errors': [
                {'item_id': r.item_id, 'error': str(r.error)}
                for r in failed
                if r.error is not None
            ],
        }


# =============================================================================
# Model error classification
# =============================================================================

# Checked in order; the first matching marker decides the error type
_MODEL_ERROR_MARKERS: tuple[tuple[type[UpstreamModelError], str, tuple[str, ...]], ...] = (
    (ModelRateLimitError, 'Model rate limit exceeded', ('rate limit', 'rate_limit')),
    (ModelRefusalError, 'Model refused request', ('content policy', 'refused')),
    (ModelTimeoutError, 'Model call timed out', ('timed out', 'timeout')),
)


def wrap_model_error(exc: Exception, context: dict[str, Any] | None = None) -> UpstreamModelError:
    """
    Classify a model SDK exception into the UpstreamModelError family.

    Already-classified errors pass through unchanged. Classification is by
    message text, so any SDK or transport exception can be passed in.
    """
    if isinstance(exc, UpstreamModelError):
        return exc

    ctx = dict(context or {})
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    text = str(exc).lower()
    for error_cls, label, markers in _MODEL_ERROR_MARKERS:
        if any(marker in text for marker in markers):
            return error_cls(f"{label}: {exc}", context=ctx)

    if isinstance(exc, TimeoutError):
        return ModelTimeoutError(f"Model call timed out: {exc}", context=ctx)
    return UpstreamModelError(f"Model API error: {exc}", context=ctx)
