"""
Tests for the Result[P] envelope.
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from powersim.core.result import Result


@dataclass(frozen=True)
class FakeParams:
    value: float


class TestResult:

    def test_fields(self):
        r = Result(params=FakeParams(1.0), info={'reps': 10}, timing=None, backend_name='cpu')
        assert r.params.value == 1.0
        assert r.info['reps'] == 10
        assert r.timing is None
        assert r.warnings == ()

    def test_frozen(self):
        r = Result(params=FakeParams(1.0), info={}, timing=None, backend_name='cpu')
        with pytest.raises(FrozenInstanceError):
            r.backend_name = 'other'

    def test_has_warning(self):
        r = Result(
            params=FakeParams(1.0), info={}, timing=None, backend_name='cpu',
            warnings=("12 of 100 repetitions (12.0%) had a fit failure",),
        )
        assert r.has_warning("fit failure")
        assert not r.has_warning("cancelled")
