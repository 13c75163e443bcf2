"""Tests for the sample runners.

Copyright © 2025 Pixelgen Technologies AB.
"""

import operator
import pickle
from types import SimpleNamespace

import pytest

from ampliqc.exception import MatePairingError
from ampliqc.read_processing.runners import (
    ParallelSampleRunner,
    SerialSampleRunner,
    WorkerException,
    _call_in_worker,
    make_runner,
)


def make_tasks(*names):
    return [SimpleNamespace(name=name) for name in names]


def test_serial_runner_keeps_task_order():
    with SerialSampleRunner() as runner:
        result = runner.run(lambda t: t.name.lower(), make_tasks("A", "B", "C"))

    assert result.results == ["a", "b", "c"]
    assert result.cancelled == []


def test_serial_runner_cancelled_before_start():
    runner = SerialSampleRunner()
    runner.cancel()

    result = runner.run(operator.attrgetter("name"), make_tasks("A", "B"))

    assert runner.cancelled
    assert result.results == []
    assert result.cancelled == ["A", "B"]


def test_serial_runner_cancel_during_run():
    runner = SerialSampleRunner()

    def fn(task):
        if task.name == "B":
            runner.cancel()
        return task.name

    result = runner.run(fn, make_tasks("A", "B", "C", "D"))

    # the running task completes, later tasks are not started
    assert result.results == ["A", "B"]
    assert result.cancelled == ["C", "D"]


def test_serial_runner_keyboard_interrupt():
    def fn(task):
        if task.name == "B":
            raise KeyboardInterrupt
        return task.name

    runner = SerialSampleRunner()
    result = runner.run(fn, make_tasks("A", "B", "C"))

    assert runner.cancelled
    assert result.results == ["A"]
    assert result.cancelled == ["B", "C"]


def test_serial_runner_propagates_errors():
    def fn(task):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        SerialSampleRunner().run(fn, make_tasks("A"))


def test_call_in_worker_wraps_unexpected_errors():
    def fn(task):
        raise RuntimeError("boom")

    with pytest.raises(WorkerException) as excinfo:
        _call_in_worker(fn, make_tasks("A")[0])

    assert isinstance(excinfo.value.e, RuntimeError)
    assert "boom" in str(excinfo.value)
    assert "Traceback" in excinfo.value.tb_str


def test_call_in_worker_passes_ampliqc_errors():
    def fn(task):
        raise MatePairingError("out of step", sample_id=task.name)

    with pytest.raises(MatePairingError):
        _call_in_worker(fn, make_tasks("A")[0])


def test_exceptions_survive_pickling():
    error = pickle.loads(pickle.dumps(MatePairingError("out of step", "f.fq.gz", "S1")))
    assert str(error) == "out of step"
    assert error.path == "f.fq.gz"
    assert error.sample_id == "S1"

    wrapped = pickle.loads(pickle.dumps(WorkerException(ValueError("x"), "tb")))
    assert wrapped.tb_str == "tb"


def test_parallel_runner():
    with ParallelSampleRunner(2) as runner:
        result = runner.run(operator.attrgetter("name"), make_tasks("A", "B", "C"))

    assert result.results == ["A", "B", "C"]
    assert result.cancelled == []


def test_parallel_runner_no_tasks():
    result = ParallelSampleRunner(2).run(operator.attrgetter("name"), [])
    assert result.results == []


def test_parallel_runner_invalid_workers():
    with pytest.raises(ValueError):
        ParallelSampleRunner(0)


def test_make_runner():
    assert isinstance(make_runner(1), SerialSampleRunner)
    assert isinstance(make_runner(3), ParallelSampleRunner)
