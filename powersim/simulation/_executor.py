"""
Fork-join execution of independent repetitions.

Each unit of work is a pure function of its seed. Units run inline
(n_jobs=1) or on a concurrent.futures pool, and results are returned in
seed order once every launched unit has finished, so the reduction step
never depends on scheduling.

Cancellation is cooperative: cancel_check() is polled before each unit is
launched. Once it returns True nothing new is launched, in-flight units
finish, and SimulationCancelled is raised. No partial result escapes.
"""

from __future__ import annotations

import os
from concurrent.futures import (
    FIRST_COMPLETED, ProcessPoolExecutor, ThreadPoolExecutor, wait,
)
from typing import Any, Callable, Sequence, TypeVar

from powersim.core.exceptions import SimulationCancelled

T = TypeVar('T')

ProgressCallback = Callable[[int, int], Any]
CancelCheck = Callable[[], bool]

EXECUTORS = ('thread', 'process')

# Units kept in flight per worker
_WINDOW_PER_WORKER = 4


def resolve_n_jobs(n_jobs: int) -> int:
    """-1 means one worker per CPU."""
    if n_jobs == -1:
        return os.cpu_count() or 1
    return n_jobs


def fork_join(
    fn: Callable[[int], T],
    seeds: Sequence[int],
    *,
    n_jobs: int = 1,
    executor: str = 'thread',
    progress: ProgressCallback | None = None,
    cancel_check: CancelCheck | None = None,
) -> list[T]:
    """
    Evaluate fn(seed) for every seed and return results in seed order.

    With executor='process', fn and its bound arguments must be picklable.

    Raises:
        SimulationCancelled: If cancel_check() returned True before all
            units were launched.
    """
    total = len(seeds)
    results: list[Any] = [None] * total
    n_jobs = resolve_n_jobs(n_jobs)

    if n_jobs == 1:
        for i, seed in enumerate(seeds):
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled(
                    f"simulation cancelled after {i} of {total} repetitions",
                    completed=i, total=total,
                )
            results[i] = fn(seed)
            if progress is not None:
                progress(i + 1, total)
        return results

    pool_cls = ThreadPoolExecutor if executor == 'thread' else ProcessPoolExecutor
    window = _WINDOW_PER_WORKER * n_jobs
    completed = 0
    next_i = 0
    cancelled = False

    with pool_cls(max_workers=n_jobs) as pool:
        pending: dict[Any, int] = {}
        while True:
            while not cancelled and next_i < total and len(pending) < window:
                if cancel_check is not None and cancel_check():
                    cancelled = True
                    break
                pending[pool.submit(fn, seeds[next_i])] = next_i
                next_i += 1

            if not pending:
                break

            finished, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in finished:
                i = pending.pop(future)
                results[i] = future.result()
                completed += 1
                if progress is not None:
                    progress(completed, total)

    if cancelled:
        raise SimulationCancelled(
            f"simulation cancelled after {completed} of {total} repetitions",
            completed=completed, total=total,
        )
    return results
