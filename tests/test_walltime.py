# tests/test_walltime.py
import numpy as np
import pytest

from slurm_estimate.walltime import format_walltime, parse_walltime, round_up_minutes


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("45", 45.0),
        ("1:30", 90.0),
        ("0:09.32", 9.32),
        ("0:45:00", 2700.0),
        ("12:00:00", 43200.0),
        ("1-02:00:00", 93600.0),
        ("2-12", 216000.0),
        ("1-00:30", 88200.0),
    ],
)
def test_parse_walltime_forms(text, seconds):
    assert parse_walltime(text) == pytest.approx(seconds)


def test_parse_walltime_numbers():
    assert parse_walltime(120) == 120.0
    assert parse_walltime(np.int64(60)) == 60.0
    assert parse_walltime(2.5) == 2.5


@pytest.mark.parametrize("bad", ["", "abc", "1:75", "1:00:61", "-5", "1:2:3:4"])
def test_parse_walltime_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_walltime(bad)


def test_parse_walltime_rejects_bool_and_negative():
    with pytest.raises(TypeError):
        parse_walltime(True)
    with pytest.raises(ValueError):
        parse_walltime(-1.0)


def test_format_walltime():
    assert format_walltime(13500) == "03:45:00"
    assert format_walltime(93600) == "1-02:00:00"
    assert format_walltime(59.2) == "00:01:00"
    assert format_walltime(13500.000000001) == "03:45:00"


def test_round_up_minutes():
    assert round_up_minutes(13500.0) == 13500.0
    assert round_up_minutes(13501.0) == 13560.0
