"""Runners executing one task per sample, serially or in worker processes.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import dataclasses
import logging
import multiprocessing
import threading
import traceback
import typing
from abc import ABC, abstractmethod
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Callable, Generic, Optional, Protocol, Sequence

from ampliqc.exception import AmpliqcError
from ampliqc.utils import get_process_pool_executor

logger = logging.getLogger(__name__)


class NamedTask(Protocol):
    """A unit of work identified by a name, usually a sample id."""

    name: str


TaskT = typing.TypeVar("TaskT", bound=NamedTask)
ResultT = typing.TypeVar("ResultT")


class WorkerException(Exception):
    """An exception that occurred in a worker process.

    Embeds the original exception and the traceback string.
    """

    def __init__(self, wrapped_exception, tb_str):
        """Initialize a WorkerException."""
        super().__init__(wrapped_exception, tb_str)
        self.e = wrapped_exception
        self.tb_str = tb_str

    def __str__(self):
        """Return a string representation of the exception."""
        return f"{self.e}\nwith traceback:\n{self.tb_str}"


@dataclasses.dataclass
class RunnerResult(Generic[ResultT]):
    """The results of a run, in task order.

    :ivar results: the results of all tasks that completed
    :ivar cancelled: the names of the tasks that never completed
    """

    results: list[ResultT] = dataclasses.field(default_factory=list)
    cancelled: list[str] = dataclasses.field(default_factory=list)


def _call_in_worker(fn, task):
    # Tracebacks do not survive pickling, so unexpected errors are sent back
    # with their formatted traceback. ampliqc errors are passed on as they are.
    try:
        return fn(task)
    except AmpliqcError:
        raise
    except Exception as e:
        raise WorkerException(e, traceback.format_exc()) from None


class SampleRunner(ABC):
    """Run a function over a sequence of tasks.

    Runners support cooperative cancellation: after :meth:`cancel` no
    further tasks are started, while tasks that already started run to
    completion. A `KeyboardInterrupt` during a run cancels it.
    """

    def __init__(self):
        """Initialize the runner."""
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        """Return True if the runner has been cancelled."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop scheduling new tasks."""
        self._cancel_event.set()

    @abstractmethod
    def run(
        self, fn: Callable[[TaskT], ResultT], tasks: Sequence[TaskT]
    ) -> RunnerResult[ResultT]:
        """Apply `fn` to every task.

        :param fn: a picklable, module level function
        :param tasks: the tasks to run
        :returns RunnerResult: the results in task order and the cancelled tasks
        """

    def close(self) -> None:  # noqa: B027
        """Release the resources held by the runner."""

    def __enter__(self):
        """Initialize the runner."""
        return self

    def __exit__(self, *args):
        """Close the runner."""
        self.close()


class SerialSampleRunner(SampleRunner):
    """Run all tasks one after the other in the current process."""

    def run(
        self, fn: Callable[[TaskT], ResultT], tasks: Sequence[TaskT]
    ) -> RunnerResult[ResultT]:
        """Apply `fn` to every task in order."""
        result: RunnerResult[ResultT] = RunnerResult()
        for index, task in enumerate(tasks):
            if self.cancelled:
                result.cancelled.extend(t.name for t in tasks[index:])
                break
            try:
                result.results.append(fn(task))
            except KeyboardInterrupt:
                logger.warning("Interrupted while processing %s", task.name)
                self.cancel()
                result.cancelled.extend(t.name for t in tasks[index:])
                break

        return result


class ParallelSampleRunner(SampleRunner):
    """Run tasks concurrently in a pool of worker processes.

    Log records of the workers are forwarded to the logging listener of
    the main process.

    :param n_workers: the maximum number of worker processes
    :param logging_setup: the `LoggingSetup` receiving worker log records
    """

    def __init__(self, n_workers: int, logging_setup=None):
        """Initialize the runner."""
        super().__init__()
        if n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {n_workers}")
        self._n_workers = n_workers
        self._logging_setup = logging_setup
        self._futures: list[Future] = []

    def cancel(self) -> None:
        """Stop scheduling new tasks and cancel the pending ones."""
        super().cancel()
        for future in self._futures:
            future.cancel()

    def run(
        self, fn: Callable[[TaskT], ResultT], tasks: Sequence[TaskT]
    ) -> RunnerResult[ResultT]:
        """Apply `fn` to every task in a process pool."""
        if not tasks:
            return RunnerResult()

        n_workers = min(self._n_workers, len(tasks))
        logger.debug("Running %s tasks on %s worker processes", len(tasks), n_workers)
        completed: dict[int, ResultT] = {}

        with get_process_pool_executor(
            nbr_cores=n_workers, logging_setup=self._logging_setup
        ) as executor:
            index_of = {}
            for index, task in enumerate(tasks):
                future = executor.submit(_call_in_worker, fn, task)
                index_of[future] = index
                self._futures.append(future)

            if self.cancelled:
                self.cancel()

            pending = set(index_of)
            try:
                while pending:
                    try:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    except KeyboardInterrupt:
                        logger.warning("Interrupted, cancelling pending samples")
                        self.cancel()
                        continue

                    for future in done:
                        if not future.cancelled():
                            completed[index_of[future]] = future.result()
            except BaseException:
                self.cancel()
                raise
            finally:
                self._futures = []

        result: RunnerResult[ResultT] = RunnerResult()
        for index, task in enumerate(tasks):
            if index in completed:
                result.results.append(completed[index])
            else:
                result.cancelled.append(task.name)
        return result


def make_runner(threads: int = 1, logging_setup=None) -> SampleRunner:
    """Return a runner for the requested degree of parallelism.

    :param threads: the number of worker processes, -1 or 0 for all cores
    :param logging_setup: the `LoggingSetup` receiving worker log records
    """
    if threads <= 0:
        threads = multiprocessing.cpu_count()
    if threads == 1:
        return SerialSampleRunner()
    return ParallelSampleRunner(threads, logging_setup=logging_setup)
