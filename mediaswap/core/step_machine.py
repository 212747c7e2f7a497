"""Linear step state machine for replacement operations.

Enforces:
- Valid state transitions only (VALID_STEP_TRANSITIONS table)
- Steps start in order; a step may start once every earlier step has
  finished, whether it passed or failed
- Every transition recorded in the operation journal
"""

from __future__ import annotations

from mediaswap.core.journal import ReplacementJournal
from mediaswap.models.operations import (
    VALID_STEP_TRANSITIONS,
    WORK_STEPS,
    JournalEntry,
    ReplacementStep,
    StepState,
)

_FINISHED = {StepState.PASSED, StepState.FAILED}


class InvalidStepTransitionError(RuntimeError):
    """Raised when a requested step transition is not valid."""


class StepMachine:
    """Tracks step states per operation.

    Parameters
    ----------
    journal:
        The journal to record transitions into.
    """

    def __init__(self, journal: ReplacementJournal) -> None:
        self._journal = journal
        # In-memory state cache: operation_id -> {step -> StepState}
        self._states: dict[str, dict[ReplacementStep, StepState]] = {}

    def initialize(self, operation_id: str) -> dict[ReplacementStep, StepState]:
        """Set every work step to PENDING for a new operation."""
        states = {step: StepState.PENDING for step in WORK_STEPS}
        self._states[operation_id] = states
        return dict(states)

    def get_state(self, operation_id: str, step: ReplacementStep) -> StepState:
        return self._require(operation_id)[step]

    def get_all_states(self, operation_id: str) -> dict[ReplacementStep, StepState]:
        """Return a snapshot of all step states for an operation."""
        return dict(self._require(operation_id))

    def transition(
        self,
        operation_id: str,
        step: ReplacementStep,
        target: StepState,
        *,
        detail: str = "",
    ) -> JournalEntry:
        """Move *step* to *target*, recording the transition.

        Raises ``InvalidStepTransitionError`` for a transition outside the
        table, an unknown step, or a step started before its predecessors
        finished.
        """
        states = self._require(operation_id)
        if step not in states:
            raise InvalidStepTransitionError(f"{step.value} is not a work step")

        current = states[step]
        allowed = VALID_STEP_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidStepTransitionError(
                f"Cannot transition {step.value} from {current.value} to {target.value}. "
                f"Allowed: {[s.value for s in allowed]}"
            )

        if target == StepState.RUNNING:
            earlier = WORK_STEPS[: WORK_STEPS.index(step)]
            pending = [s.value for s in earlier if states[s] not in _FINISHED]
            if pending:
                raise InvalidStepTransitionError(
                    f"Cannot start {step.value}: earlier steps unfinished: "
                    f"{', '.join(pending)}"
                )

        entry = self._journal.append(
            JournalEntry(
                operation_id=operation_id,
                step=step.value,
                transition=f"{current.value}->{target.value}",
                detail=detail,
            )
        )
        states[step] = target
        return entry

    def is_complete(self, operation_id: str) -> bool:
        return all(s in _FINISHED for s in self._require(operation_id).values())

    def _require(self, operation_id: str) -> dict[ReplacementStep, StepState]:
        if operation_id not in self._states:
            raise InvalidStepTransitionError(
                f"Operation {operation_id} was not initialized"
            )
        return self._states[operation_id]
