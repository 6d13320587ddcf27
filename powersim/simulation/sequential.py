"""
Group-sequential trial runner.

One simulated trial is driven through an explicit state machine:

    Running(look=1)
        analyze dataset.prefix(cumulative_n[look])
        p < threshold[look]      -> StoppedSignificant(look, fit)
        look is the final look   -> StoppedFinal(look, fit)
        otherwise                -> Running(look + 1)

StoppedSignificant and StoppedFinal are terminal. The driving loop runs
only while the state is Running, so no look after a stop is ever
analyzed. Each look sees a prefix of the same full dataset: later looks
are supersets of earlier ones, as participants accumulate in a real trial.
"""

from __future__ import annotations

from dataclasses import dataclass

from powersim.core.exceptions import FitFailure
from powersim.simulation._common import Dataset, FitResult, StopState, TrialOutcome
from powersim.simulation.analyzer import TrialAnalyzer
from powersim.simulation.design import LookSchedule


@dataclass(frozen=True)
class Running:
    look: int            # 1-based look about to be analyzed
    n_failed_looks: int = 0


@dataclass(frozen=True)
class StoppedSignificant:
    look: int
    fit: FitResult
    n_failed_looks: int


@dataclass(frozen=True)
class StoppedFinal:
    look: int
    fit: FitResult
    n_failed_looks: int


TrialState = Running | StoppedSignificant | StoppedFinal


def safe_analyze(analyzer: TrialAnalyzer, dataset: Dataset, target: int) -> FitResult:
    """Run the analyzer, converting a raised FitFailure into a failed FitResult."""
    try:
        return analyzer.analyze(dataset, target)
    except FitFailure as e:
        return FitResult.failure_of(e.reason)


class SequentialTrialRunner:
    """
    Applies a LookSchedule to one full trial dataset.

    Args:
        schedule: Looks and their nominal thresholds.
        analyzer: TrialAnalyzer used at every look.
        target: Coefficient index passed to the analyzer.
    """

    def __init__(self, schedule: LookSchedule, analyzer: TrialAnalyzer, target: int = 1):
        self.schedule = schedule
        self.analyzer = analyzer
        self.target = target

    def step(self, state: Running, dataset: Dataset) -> TrialState:
        """Analyze the look named by a Running state and transition."""
        j = state.look - 1
        prefix = dataset.prefix(self.schedule.cumulative_n[j])
        fit = safe_analyze(self.analyzer, prefix, self.target)
        n_failed = state.n_failed_looks + int(fit.failed)

        if fit.significant(self.schedule.thresholds[j]):
            return StoppedSignificant(look=state.look, fit=fit, n_failed_looks=n_failed)
        if state.look == self.schedule.n_looks:
            return StoppedFinal(look=state.look, fit=fit, n_failed_looks=n_failed)
        return Running(look=state.look + 1, n_failed_looks=n_failed)

    def run(self, dataset: Dataset) -> TrialOutcome:
        """Drive the state machine to a terminal state."""
        if len(dataset) < self.schedule.final_n:
            raise ValueError(
                f"dataset has {len(dataset)} records but the final look "
                f"needs {self.schedule.final_n}"
            )

        state: TrialState = Running(look=1)
        n_analyses = 0
        while isinstance(state, Running):
            state = self.step(state, dataset)
            n_analyses += 1

        if isinstance(state, StoppedSignificant):
            stop = StopState.STOPPED_SIGNIFICANT
        else:
            stop = StopState.STOPPED_FUTILITY_OR_FINAL

        j = state.look - 1
        return TrialOutcome(
            state=stop,
            look=state.look,
            cumulative_n=self.schedule.cumulative_n[j],
            threshold=self.schedule.thresholds[j],
            fit=state.fit,
            n_analyses=n_analyses,
            n_failed_looks=state.n_failed_looks,
        )
