import pytest

from slurm_estimate import BenchmarkSeries, HardwareProfile, SafetyFactor


@pytest.fixture()
def climate_series():
    # 2%, 5% and 10% of the dataset; 45 minutes at the largest size
    return BenchmarkSeries(
        [
            {"size": 2, "wall": "0:09:00"},
            {"size": 5, "wall": "0:22:30"},
            {"size": 10, "wall": "0:45:00"},
        ]
    )


@pytest.fixture()
def eight_cores():
    return HardwareProfile(core_count=8)


@pytest.fixture()
def climate_factors():
    return [
        SafetyFactor("failures", 1.4),
        SafetyFactor("development", 2.0),
        SafetyFactor("scaling", 1.2),
    ]


@pytest.fixture()
def climate_log(tmp_path):
    path = tmp_path / "bench.log"
    path.write_text(
        "# climate model, one node\n"
        "size=2% wall=0:09:00 host=node01\n"
        "size=5% wall=0:22:30 host=node01\n"
        "size=10% wall=0:45:00 host=node02\n",
        encoding="utf-8",
    )
    return path
