"""
Objective evaluation for sweep trials.

An objective is any callable that takes a hyperparameter assignment and
returns an error (lower is better). :class:`ObjectiveEvaluator` is the
standard one: it trains a model family on the training split and returns
the mean squared error on the held-out split. :func:`run_trial` wraps a
single call into a recorded :class:`~factor_tuning.sweeps.results.Trial`.
"""

from __future__ import annotations

import logging
import math
import multiprocessing
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from sklearn.metrics import mean_squared_error

from .results import Trial, TrialStatus

if TYPE_CHECKING:
    from ..datasets import Dataset
    from ..models import ModelFamily

logger = logging.getLogger(__name__)

Objective = Callable[[Dict[str, Any]], float]


class EvaluationError(RuntimeError):
    """Raised when a trial cannot produce a usable error value."""


class TrialTimeoutError(EvaluationError):
    """Raised when a trial runs past its deadline."""


class SearchAbortedError(RuntimeError):
    """Raised by a driver that stops the whole search on a failed trial."""

    def __init__(self, message: str, trial: Optional[Trial] = None):
        super().__init__(message)
        self.trial = trial


class ObjectiveEvaluator:
    """Train on the training split, return held-out mean squared error."""

    def __init__(
        self,
        model: "ModelFamily",
        dataset: "Dataset",
        fixed_params: Optional[Mapping[str, Any]] = None,
    ):
        self.model = model
        self.dataset = dataset
        self.fixed_params = dict(fixed_params or {})

    def __call__(self, params: Mapping[str, Any]) -> float:
        return self.evaluate(params)

    def evaluate(self, params: Mapping[str, Any]) -> float:
        hyperparameters = {**self.fixed_params, **params}
        data = self.dataset

        try:
            fitted = self.model.train(data.train_features, data.train_target, hyperparameters)
            predictions = self.model.predict(fitted, data.test_features)
            error = float(mean_squared_error(data.test_target, predictions))
        except Exception as e:  # pylint: disable=broad-except
            raise EvaluationError(f"{self.model.name} failed with {hyperparameters}: {e}") from e

        if not math.isfinite(error):
            raise EvaluationError(f"{self.model.name} produced a non-finite error with {hyperparameters}")
        return error


def _timed_worker(conn, objective: Objective, params: Dict[str, Any]) -> None:
    conn.send(("ready", None))
    try:
        value = objective(params)
    except Exception as e:  # pylint: disable=broad-except
        conn.send(("error", str(e) or type(e).__name__))
    else:
        conn.send(("ok", value))
    finally:
        conn.close()


def _call_with_timeout(objective: Objective, params: Dict[str, Any], timeout: Optional[float]) -> Any:
    """Call ``objective`` in a child process that is terminated at the deadline.

    The clock starts once the child reports it is running, so interpreter
    start-up is not charged to the trial. Timed objectives must be picklable.
    """
    if timeout is None:
        return objective(params)

    context = multiprocessing.get_context("spawn")
    receiver, sender = context.Pipe(duplex=False)
    process = context.Process(target=_timed_worker, args=(sender, objective, params))
    try:
        process.start()
    except Exception:
        receiver.close()
        raise
    finally:
        sender.close()

    try:
        receiver.recv()
        if not receiver.poll(timeout):
            raise TrialTimeoutError(f"Timeout after {timeout} seconds")
        status, payload = receiver.recv()
    except EOFError as e:
        process.join()
        raise EvaluationError(f"Objective process exited with code {process.exitcode}") from e
    finally:
        if process.is_alive():
            process.terminate()
        process.join()
        receiver.close()

    if status == "error":
        raise EvaluationError(payload)
    return payload


def run_trial(
    objective: Objective,
    params: Mapping[str, Any],
    index: int,
    timeout: Optional[float] = None,
    phase: str = "grid",
) -> Trial:
    """Evaluate one assignment and record the outcome.

    Failures never become a numeric result: any exception, a timeout or a
    non-finite error produces a FAILED trial carrying the message.
    """
    params = dict(params)
    start_time = time.perf_counter()

    try:
        error = float(_call_with_timeout(objective, params, timeout))
        if not math.isfinite(error):
            raise EvaluationError(f"Objective returned a non-finite error: {error}")
    except Exception as e:  # pylint: disable=broad-except
        runtime = time.perf_counter() - start_time
        logger.warning("Trial %d failed after %.2fs: %s", index, runtime, e)
        return Trial(
            index=index,
            parameters=params,
            error=None,
            status=TrialStatus.FAILED,
            message=str(e) or type(e).__name__,
            runtime=runtime,
            phase=phase,
        )

    runtime = time.perf_counter() - start_time
    logger.debug("Trial %d: error=%.6g in %.2fs", index, error, runtime)
    return Trial(index=index, parameters=params, error=error, runtime=runtime, phase=phase)
