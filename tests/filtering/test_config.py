"""Tests for the filter configuration.

Copyright © 2025 Pixelgen Technologies AB.
"""

import pytest

from ampliqc.exception import ConfigurationError
from ampliqc.filtering import FilterConfig


def test_defaults():
    config = FilterConfig()

    assert config.trim_left == (0, 0)
    assert config.trunc_len == (0, 0)
    assert config.max_n == 0
    assert config.max_expected_error == (None, None)
    assert config.trunc_quality == 2
    assert config.remove_phix is False


def test_scalar_values_apply_to_both_mates():
    config = FilterConfig(trim_left=17, trunc_len=200, max_expected_error=2)

    assert config.trim_left == (17, 17)
    assert config.trunc_len == (200, 200)
    assert config.max_expected_error == (2.0, 2.0)


def test_config_is_immutable():
    config = FilterConfig()
    with pytest.raises(Exception):
        config.max_n = 3  # type: ignore


@pytest.mark.parametrize(
    "settings",
    (
        {"max_n": -1},
        {"trim_left": (-1, 0)},
        {"trim_left": (20, 0), "trunc_len": (20, 0)},
        {"trim_left": (10, 0), "trim_right": (10, 0), "trunc_len": (20, 0)},
        {"remove_phix": True},
        {"unknown_setting": 1},
        {"max_expected_error": (-0.5, 1)},
    ),
)
def test_invalid_configuration(settings):
    with pytest.raises(ConfigurationError):
        FilterConfig(**settings)


def test_trim_left_without_truncation_is_valid():
    config = FilterConfig(trim_left=(20, 20))
    assert config.trunc_len == (0, 0)


def test_with_overrides():
    config = FilterConfig(max_n=1)
    updated = config.with_overrides(max_n=2, trunc_quality=None)

    assert config.max_n == 1
    assert updated.max_n == 2
    assert updated.trunc_quality is None

    with pytest.raises(ConfigurationError):
        config.with_overrides(trim_left=(30, 0), trunc_len=(20, 0))


def test_from_yaml(tmp_path):
    path = tmp_path / "filter.yaml"
    path.write_text(
        "trim_left: [17, 21]\n"
        "trunc_len: [249, 200]\n"
        "max_expected_error: [2, 5]\n"
        "trunc_quality: 2\n"
    )

    config = FilterConfig.from_yaml(path)

    assert config.trim_left == (17, 21)
    assert config.trunc_len == (249, 200)
    assert config.max_expected_error == (2.0, 5.0)


def test_from_yaml_overrides(tmp_path):
    path = tmp_path / "filter.yaml"
    path.write_text("max_n: 3\ntrunc_quality: 10\n")

    config = FilterConfig.from_yaml(path, max_n=0, trunc_quality=None)

    assert config.max_n == 0
    # None does not override
    assert config.trunc_quality == 10


def test_from_yaml_empty_file(tmp_path):
    path = tmp_path / "filter.yml"
    path.write_text("")

    assert FilterConfig.from_yaml(path) == FilterConfig()


@pytest.mark.parametrize(
    "filename,content",
    (
        ("filter.yaml", "- a\n- list\n"),
        ("filter.yaml", "max_n: [unclosed\n"),
        ("filter.txt", "max_n: 1\n"),
        ("filter.yaml", "max_n: many\n"),
    ),
)
def test_from_yaml_invalid(tmp_path, filename, content):
    path = tmp_path / filename
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        FilterConfig.from_yaml(path)


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        FilterConfig.from_yaml(tmp_path / "missing.yaml")
