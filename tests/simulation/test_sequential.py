"""
Tests for the group-sequential trial runner.

A counting mock analyzer scripts the p-value at each look and records the
size of every analyzed prefix, so the tests can check exactly which looks
were analyzed and that nothing is analyzed after a stop.
"""

import numpy as np
import pytest

from powersim.core.exceptions import FitFailure
from powersim.simulation import (
    FitResult, LookSchedule, SequentialTrialRunner, StopState, simulate,
)
from powersim.simulation.sequential import (
    Running, StoppedFinal, StoppedSignificant, safe_analyze,
)


@pytest.fixture
def schedule():
    return LookSchedule.build([20, 40, 60], [0.01, 0.02, 0.05])


@pytest.fixture
def dataset():
    return simulate([0.4, 0.3], seed=1, n=60)


class RaisingAnalyzer:
    def analyze(self, dataset, target=1):
        raise FitFailure("boom", reason='separation')


# ---------------------------------------------------------------------------
# State machine transitions
# ---------------------------------------------------------------------------

class TestStep:

    def test_continue(self, schedule, dataset, counting_analyzer):
        runner = SequentialTrialRunner(schedule, counting_analyzer([0.5]))
        assert runner.step(Running(look=1), dataset) == Running(look=2)

    def test_stop_significant(self, schedule, dataset, counting_analyzer):
        runner = SequentialTrialRunner(schedule, counting_analyzer([0.001]))
        state = runner.step(Running(look=1), dataset)
        assert isinstance(state, StoppedSignificant)
        assert state.look == 1

    def test_final_look_not_significant(self, schedule, dataset, counting_analyzer):
        runner = SequentialTrialRunner(schedule, counting_analyzer([0.2]))
        state = runner.step(Running(look=3), dataset)
        assert isinstance(state, StoppedFinal)
        assert state.fit.p_value == 0.2

    def test_threshold_is_strict(self, schedule, dataset, counting_analyzer):
        runner = SequentialTrialRunner(schedule, counting_analyzer([0.01]))
        assert runner.step(Running(look=1), dataset) == Running(look=2)


# ---------------------------------------------------------------------------
# Full trials
# ---------------------------------------------------------------------------

class TestRun:

    def test_stops_at_first_crossing(self, schedule, dataset, counting_analyzer):
        analyzer = counting_analyzer([0.5, 0.001, 0.0])
        outcome = SequentialTrialRunner(schedule, analyzer).run(dataset)

        assert analyzer.sizes == [20, 40]
        assert outcome.state is StopState.STOPPED_SIGNIFICANT
        assert outcome.significant
        assert outcome.look == 2
        assert outcome.cumulative_n == 40
        assert outcome.threshold == 0.02
        assert outcome.n_analyses == 2

    def test_runs_to_final(self, schedule, dataset, counting_analyzer):
        analyzer = counting_analyzer([0.5, 0.5, 0.5])
        outcome = SequentialTrialRunner(schedule, analyzer).run(dataset)

        assert analyzer.sizes == [20, 40, 60]
        assert outcome.state is StopState.STOPPED_FUTILITY_OR_FINAL
        assert not outcome.significant
        assert outcome.look == 3
        assert outcome.n_analyses == 3

    def test_significant_at_final(self, schedule, dataset, counting_analyzer):
        outcome = SequentialTrialRunner(
            schedule, counting_analyzer([0.5, 0.5, 0.03]),
        ).run(dataset)
        assert outcome.state is StopState.STOPPED_SIGNIFICANT
        assert outcome.look == 3

    def test_stop_at_first_look(self, schedule, dataset, counting_analyzer):
        analyzer = counting_analyzer([0.0001])
        outcome = SequentialTrialRunner(schedule, analyzer).run(dataset)
        assert analyzer.sizes == [20]
        assert outcome.n_analyses == 1

    def test_failed_interim_continues(self, schedule, dataset, counting_analyzer):
        analyzer = counting_analyzer([None, 0.001])
        outcome = SequentialTrialRunner(schedule, analyzer).run(dataset)
        assert outcome.look == 2
        assert outcome.significant
        assert outcome.n_failed_looks == 1

    def test_failed_final_look(self, schedule, dataset, counting_analyzer):
        analyzer = counting_analyzer([0.5, 0.5, None])
        outcome = SequentialTrialRunner(schedule, analyzer).run(dataset)
        assert outcome.state is StopState.STOPPED_FUTILITY_OR_FINAL
        assert outcome.fit.failure == 'scripted'
        assert outcome.n_failed_looks == 1

    def test_raised_fit_failure_is_recovered(self, schedule, dataset):
        outcome = SequentialTrialRunner(schedule, RaisingAnalyzer()).run(dataset)
        assert outcome.look == 3
        assert outcome.fit.failure == 'separation'
        assert outcome.n_failed_looks == 3

    def test_prefixes_are_nested(self, schedule, dataset):
        seen = []

        class Recorder:
            def analyze(self, ds, target=1):
                seen.append(np.array(ds.outcome))
                return FitResult(0.0, 1.0, 0.5)

        SequentialTrialRunner(schedule, Recorder()).run(dataset)
        for earlier, later in zip(seen, seen[1:]):
            np.testing.assert_array_equal(later[:len(earlier)], earlier)
        np.testing.assert_array_equal(seen[-1], dataset.outcome)

    def test_dataset_too_short(self, schedule, counting_analyzer):
        short = simulate([0.4, 0.3], seed=1, n=50)
        with pytest.raises(ValueError, match="final look"):
            SequentialTrialRunner(schedule, counting_analyzer([0.5])).run(short)


class TestSafeAnalyze:

    def test_passes_through(self, dataset, counting_analyzer):
        fit = safe_analyze(counting_analyzer([0.3]), dataset, 1)
        assert fit.p_value == 0.3

    def test_converts_fit_failure(self, dataset):
        fit = safe_analyze(RaisingAnalyzer(), dataset, 1)
        assert fit.failure == 'separation'

    def test_other_errors_propagate(self, dataset):
        class Broken:
            def analyze(self, ds, target=1):
                raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            safe_analyze(Broken(), dataset, 1)
