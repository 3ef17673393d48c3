from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from .options import RunOptions

if TYPE_CHECKING:
    from .context import SetupContext

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    APPLIED = "applied"
    SKIPPED_BY_FLAG = "skipped-by-flag"
    SKIPPED_DEPENDENCY_UNMET = "skipped-dependency-unmet"
    ALREADY_SATISFIED = "already-satisfied"
    FAILED = "failed"


MET = {Outcome.APPLIED, Outcome.ALREADY_SATISFIED}


class StepError(RuntimeError):
    """A step action failed; ``remediation`` tells the user how to finish it by hand."""

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class Gate(Protocol):
    """A named precondition some steps depend on."""

    name: str
    hint: str

    def ensure(self) -> bool:
        ...


class Step:
    """A single idempotent provisioning step.

    Subclasses set ``step_id`` and override ``is_satisfied`` (the idempotency
    guard: side-effect free, checks observable end state) and ``run`` (the
    action, all side effects through ``ctx.executor``).

    ``phase`` names the CLI flag group that can switch the step off; None
    means always on. ``depends_on`` lists earlier step ids and/or gate names.
    """

    step_id: str = ""
    phase: Optional[str] = None
    fatal: bool = False
    depends_on: Tuple[str, ...] = ()
    remediation: str = ""

    def __init__(self, options: RunOptions) -> None:
        self.enabled = options.is_enabled(self.phase)

    def is_satisfied(self, ctx: "SetupContext") -> bool:
        return False

    def run(self, ctx: "SetupContext") -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class StepResult:
    step_id: str
    outcome: Outcome
    detail: str = ""
    remediation: str = ""
    duration_s: float = 0.0


@dataclass(frozen=True)
class RunReport:
    results: Tuple[StepResult, ...]
    not_run: Tuple[str, ...] = ()
    preview: bool = False
    aborted: bool = False

    @property
    def exit_code(self) -> int:
        return 1 if self.aborted else 0

    def outcome_of(self, step_id: str) -> Optional[Outcome]:
        for r in self.results:
            if r.step_id == step_id:
                return r.outcome
        return None

    def steps_with(self, outcome: Outcome) -> List[str]:
        return [r.step_id for r in self.results if r.outcome is outcome]

    def summary_lines(self) -> List[str]:
        lines = []
        for r in self.results:
            suffix = f" ({r.detail})" if r.detail else ""
            lines.append(f"{r.step_id:<20} {r.outcome.value}{suffix}")
        for step_id in self.not_run:
            lines.append(f"{step_id:<20} not run")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preview": self.preview,
            "aborted": self.aborted,
            "results": [
                {"step": r.step_id, "outcome": r.outcome.value, "detail": r.detail}
                for r in self.results
            ],
            "not_run": list(self.not_run),
        }


def validate_steps(steps: Sequence[Step], gates: Mapping[str, Gate]) -> None:
    """Ids are unique; each dependency is an earlier step or a known gate."""
    seen: List[str] = []
    for step in steps:
        if not step.step_id:
            raise ValueError(f"{type(step).__name__} has no step_id")
        if step.step_id in seen:
            raise ValueError(f"Duplicate step id: {step.step_id}")
        for dep in step.depends_on:
            if dep not in seen and dep not in gates:
                raise ValueError(f"Step {step.step_id} depends on unknown or later step/gate: {dep}")
        seen.append(step.step_id)


def _unmet_dependency(
    step: Step,
    outcomes: Mapping[str, Outcome],
    gates: Mapping[str, Gate],
) -> Optional[Tuple[str, str]]:
    """Return (dependency, hint) for the first unmet dependency, else None."""
    for dep in step.depends_on:
        if dep in outcomes:
            if outcomes[dep] not in MET:
                return dep, f"step '{dep}' was {outcomes[dep].value}"
            continue
        gate = gates[dep]
        try:
            met = gate.ensure()
        except Exception as e:
            logger.warning("Gate %s could not be evaluated: %s", dep, e)
            met = False
        if not met:
            return dep, gate.hint
    return None


def _check_satisfied(step: Step, ctx: "SetupContext") -> bool:
    # An undecidable guard means "not satisfied": attempt the action.
    try:
        return bool(step.is_satisfied(ctx))
    except Exception as e:
        logger.debug("Idempotency check for %s failed (%s); treating as not satisfied", step.step_id, e)
        return False


def run_pipeline(*, steps: Sequence[Step], ctx: "SetupContext") -> RunReport:
    """Run steps in order.

    For each step: flag, then dependencies, then idempotency guard, then the
    action. A failing action never propagates past this loop; a fatal one
    stops the run and the remaining steps are reported as not run.
    """

    validate_steps(steps, ctx.gates)

    results: List[StepResult] = []
    outcomes: Dict[str, Outcome] = {}
    aborted = False
    not_run: List[str] = []

    def record(
        step: Step,
        outcome: Outcome,
        detail: str = "",
        remediation: str = "",
        started: Optional[float] = None,
    ) -> None:
        duration = time.monotonic() - started if started is not None else 0.0
        results.append(
            StepResult(
                step_id=step.step_id,
                outcome=outcome,
                detail=detail,
                remediation=remediation,
                duration_s=duration,
            )
        )
        outcomes[step.step_id] = outcome

    for index, step in enumerate(steps):
        if not step.enabled:
            logger.info("Skipping step %s (disabled by flag)", step.step_id)
            record(step, Outcome.SKIPPED_BY_FLAG)
            continue

        unmet = _unmet_dependency(step, outcomes, ctx.gates)
        if unmet is not None:
            dep, hint = unmet
            logger.warning("Skipping step %s (dependency %s unmet): %s", step.step_id, dep, hint)
            record(step, Outcome.SKIPPED_DEPENDENCY_UNMET, detail=f"needs {dep}", remediation=hint)
            continue

        if _check_satisfied(step, ctx):
            logger.info("Skipping step %s (already satisfied)", step.step_id)
            record(step, Outcome.ALREADY_SATISFIED)
            continue

        logger.info("Running step %s", step.step_id)
        started = time.monotonic()
        try:
            step.run(ctx)
        except Exception as e:
            remediation = getattr(e, "remediation", None) or step.remediation
            detail = str(e).splitlines()[0] if str(e) else type(e).__name__
            record(step, Outcome.FAILED, detail=detail, remediation=remediation, started=started)
            if step.fatal:
                logger.error("Step %s failed (fatal): %s", step.step_id, e)
                if remediation:
                    logger.error("To fix: %s", remediation)
                aborted = True
                not_run = [s.step_id for s in steps[index + 1:]]
                break
            logger.warning("Step %s failed: %s", step.step_id, e)
            if remediation:
                logger.warning("To fix: %s", remediation)
            continue

        record(step, Outcome.APPLIED, started=started)

    return RunReport(
        results=tuple(results),
        not_run=tuple(not_run),
        preview=ctx.options.preview,
        aborted=aborted,
    )
