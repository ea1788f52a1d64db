"""Outcome of one pipeline run."""

from dataclasses import dataclass
from typing import Optional

from reel_relay.constants import (
    EXIT_CODE_EMPTY_QUEUE,
    EXIT_CODE_FAILURE,
    EXIT_CODE_SUCCESS,
    RunOutcome,
    RunStage,
)

_EXIT_CODES = {
    RunOutcome.SUCCESS: EXIT_CODE_SUCCESS,
    RunOutcome.EMPTY: EXIT_CODE_EMPTY_QUEUE,
    RunOutcome.FAILED: EXIT_CODE_FAILURE,
}


@dataclass(frozen=True)
class RunResult:
    """What happened to the item a run picked, if any.

    ``stage`` is the last stage reached; for failures it is the stage that
    failed. ``hint`` is operator guidance for a known publish error.
    """

    outcome: RunOutcome
    item_id: Optional[int] = None
    stage: RunStage = RunStage.IDLE
    reason: Optional[str] = None
    media_id: Optional[str] = None
    hint: Optional[str] = None

    @classmethod
    def success(cls, item_id: int, media_id: Optional[str] = None) -> "RunResult":
        return cls(RunOutcome.SUCCESS, item_id=item_id, stage=RunStage.DONE, media_id=media_id)

    @classmethod
    def empty(cls) -> "RunResult":
        return cls(RunOutcome.EMPTY)

    @classmethod
    def failed(
        cls,
        stage: RunStage,
        reason: str,
        item_id: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> "RunResult":
        return cls(RunOutcome.FAILED, item_id=item_id, stage=stage, reason=reason, hint=hint)

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self.outcome]

    @property
    def ok(self) -> bool:
        return self.outcome != RunOutcome.FAILED
