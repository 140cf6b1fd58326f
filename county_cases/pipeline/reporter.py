"""Per-run status accumulation and summary rendering."""

from __future__ import annotations

from dataclasses import dataclass

from county_cases.common.constants import ERROR_FIELD_SEPARATOR, SUMMARY_SEPARATOR

OK = "OK"
FAIL = "FAIL"
WARN = "WARN"


@dataclass(frozen=True)
class StepStatus:
    step: str
    marker: str
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.marker != FAIL

    def render(self) -> str:
        text = f"{self.step} {self.marker}"
        if self.detail:
            text = f"{text}: {self.detail}"
        return text


def _attr(error: BaseException, name: str) -> str | None:
    value = getattr(error, name, None)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def describe_error(error: BaseException) -> str:
    """Normalise an exception into ``code - details - message - hint``.

    The code is the remote error code when the store supplied one, otherwise the
    pipeline error code. Missing parts are left out.
    """
    code = _attr(error, "code") or _attr(error, "error_code") or error.__class__.__name__
    message = _attr(error, "message") or str(error).strip() or None
    parts = [code, _attr(error, "details"), message, _attr(error, "hint")]
    return ERROR_FIELD_SEPARATOR.join(part for part in parts if part)


class RunReporter:
    """Collects one status per pipeline step for a single run."""

    def __init__(self) -> None:
        self._entries: list[StepStatus] = []

    def append(self, status: StepStatus) -> StepStatus:
        self._entries.append(status)
        return status

    def ok(self, step: str, detail: str | None = None) -> StepStatus:
        return self.append(StepStatus(step=step, marker=OK, detail=detail))

    def warn(self, step: str, detail: str | None = None) -> StepStatus:
        return self.append(StepStatus(step=step, marker=WARN, detail=detail))

    def fail(self, step: str, error: BaseException | str) -> StepStatus:
        detail = error if isinstance(error, str) else describe_error(error)
        return self.append(StepStatus(step=step, marker=FAIL, detail=detail))

    @property
    def statuses(self) -> tuple[StepStatus, ...]:
        return tuple(self._entries)

    @property
    def has_failures(self) -> bool:
        return any(not status.ok for status in self._entries)

    def render(self) -> str:
        message = SUMMARY_SEPARATOR.join(status.render() for status in self._entries)
        self._entries.clear()
        return message
