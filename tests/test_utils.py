"""Copyright © 2025 Pixelgen Technologies AB."""

import json
import logging

import click
import pytest
from click.testing import CliRunner

from ampliqc.exception import EmptyReadFileError, MissingMateError, PathUnwritableError
from ampliqc.utils import (
    check_input_file,
    create_output_stage_dir,
    reverse_complement,
    timer,
    write_parameters_file,
)


@pytest.mark.parametrize(
    "seq,expected",
    (
        ("ACGT", "ACGT"),
        ("AACCN", "NGGTT"),
        ("acg", "CGT"),
        ("", ""),
    ),
)
def test_reverse_complement(seq, expected):
    assert reverse_complement(seq) == expected


def test_timer(caplog):
    @timer
    def my_func():
        return "foo"

    with caplog.at_level(logging.INFO):
        res = my_func()
        assert res == "foo"
        assert "Finished ampliqc my_func in" in caplog.text


def test_check_input_file(tmp_path):
    good = tmp_path / "reads.fastq.gz"
    good.write_bytes(b"not empty")
    check_input_file(good)

    empty = tmp_path / "empty.fastq.gz"
    empty.write_bytes(b"")
    with pytest.raises(EmptyReadFileError) as excinfo:
        check_input_file(empty, sample_id="S1")
    assert excinfo.value.sample_id == "S1"

    with pytest.raises(MissingMateError):
        check_input_file(tmp_path / "missing.fastq.gz")


def test_create_output_stage_dir(tmp_path):
    stage = create_output_stage_dir(tmp_path / "out", "filtered")
    assert stage.is_dir()
    assert stage == tmp_path / "out" / "filtered"
    # existing directories are reused
    assert create_output_stage_dir(tmp_path / "out", "filtered") == stage


def test_create_output_stage_dir_unwritable(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(PathUnwritableError) as excinfo:
        create_output_stage_dir(blocker, "filtered")
    assert excinfo.value.path == blocker / "filtered"


def test_write_parameters_file(tmp_path):
    output_file = tmp_path / "params.json"

    @click.command()
    @click.option("--threads", default=1, type=click.INT)
    @click.option("--output", type=click.Path())
    @click.pass_context
    def cmd(ctx, threads, output):
        write_parameters_file(ctx, output_file, command_path="ampliqc test")

    result = CliRunner().invoke(cmd, ["--threads", "4", "--output", "out"])
    assert result.exit_code == 0

    data = json.loads(output_file.read_text())
    assert data["cli"]["command"] == "ampliqc test"
    assert data["cli"]["options"]["--threads"] == 4
    assert data["cli"]["options"]["--output"].endswith("out")
