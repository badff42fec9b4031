# tests/test_command.py
import json
import logging

import pytest
from click.testing import CliRunner

from slurm_estimate import command
from slurm_estimate.command import cli

CLIMATE_POINTS = ["--point", "2=0:09:00", "--point", "5=0:22:30", "--point", "10=0:45:00"]
CLIMATE_FACTORS = ["--factor", "failures=1.4", "--factor", "development=2.0", "--factor", "scaling=1.2"]


@pytest.fixture(autouse=True)
def _detach_cli_log_handler():
    yield
    if command._handler is not None:
        logging.getLogger("slurm_estimate").removeHandler(command._handler)
        command._handler = None


@pytest.fixture()
def runner():
    return CliRunner()


def _kv(output):
    return dict(line.split("=", 1) for line in output.splitlines() if "=" in line)


def test_estimate_climate_study(runner):
    result = runner.invoke(
        cli,
        ["estimate", *CLIMATE_POINTS, "--target", "50", "--cores", "8", "--runs", "50", *CLIMATE_FACTORS,
         "--format", "kv"],
    )
    assert result.exit_code == 0, result.output
    pairs = _kv(result.output)
    assert float(pairs["core_hours_per_run"]) == pytest.approx(30.0)
    assert float(pairs["base_core_hours"]) == pytest.approx(1500.0)
    assert float(pairs["total_core_hours"]) == pytest.approx(5040.0)


def test_estimate_text_with_sbatch(runner, climate_log):
    result = runner.invoke(
        cli, ["estimate", "--log", str(climate_log), "--target", "50", "--cores", "8", "--sbatch"]
    )
    assert result.exit_code == 0, result.output
    assert "TOTAL REQUEST: 30.00 core-hours" in result.output
    assert "#SBATCH --time=03:45:00" in result.output


def test_estimate_json(runner):
    result = runner.invoke(cli, ["estimate", *CLIMATE_POINTS, "--target", "50", "--cores", "8", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["full_wall_time_h"] == pytest.approx(3.75)


def test_insufficient_data_fails(runner):
    result = runner.invoke(cli, ["estimate", "--point", "10=0:45:00", "--target", "50", "--cores", "8"])
    assert result.exit_code == 1
    assert "InsufficientDataError" in result.output


def test_invalid_factor_fails(runner):
    result = runner.invoke(
        cli, ["estimate", *CLIMATE_POINTS, "--target", "50", "--cores", "8", "--factor", "failures=0"]
    )
    assert result.exit_code == 1
    assert "InvalidFactorError" in result.output


def test_out_of_range_target_warns_but_succeeds(runner):
    result = runner.invoke(cli, ["estimate", *CLIMATE_POINTS, "--target", "500", "--cores", "8"])
    assert result.exit_code == 0, result.output
    assert "WARNING: target size 500" in result.output


def test_missing_inputs_are_usage_errors(runner):
    result = runner.invoke(cli, ["estimate", *CLIMATE_POINTS, "--cores", "8"])
    assert result.exit_code == 2
    result = runner.invoke(cli, ["estimate", "--target", "50", "--cores", "8"])
    assert result.exit_code == 2
    result = runner.invoke(cli, ["estimate", "--point", "10", "--target", "50", "--cores", "8"])
    assert result.exit_code == 2


def test_job_file_with_overrides(runner, tmp_path):
    job = tmp_path / "job.yml"
    job.write_text(
        "observations: [[2, '0:09:00'], [10, '0:45:00']]\n"
        "target_size: 50\n"
        "hardware: {cores: 8}\n"
        "runs: 50\n"
        "safety_factors: {failures: 1.4, development: 2.0, scaling: 1.2}\n"
    )
    result = runner.invoke(cli, ["estimate", "--job", str(job), "--format", "kv"])
    assert result.exit_code == 0, result.output
    assert float(_kv(result.output)["total_core_hours"]) == pytest.approx(5040.0)

    result = runner.invoke(cli, ["estimate", "--job", str(job), "--cores", "16", "--runs", "1", "--format", "kv"])
    assert result.exit_code == 0, result.output
    assert float(_kv(result.output)["total_core_hours"]) == pytest.approx(60.0 * 3.36)


def test_broken_job_yaml_fails_cleanly(runner, tmp_path):
    job = tmp_path / "job.yml"
    job.write_text("observations: [[2, '0:09:00']\ntarget_size: 50\n")
    for args in (["estimate", "--job", str(job), "--cores", "8"], ["fit", "--job", str(job)],
                 ["sweep", "--job", str(job), "--cores", "8"]):
        result = runner.invoke(cli, args)
        assert result.exit_code == 1, result.output
        assert isinstance(result.exception, SystemExit)
        assert "Error" in result.output


def test_job_with_missing_log_fails_cleanly(runner, tmp_path):
    job = tmp_path / "job.yml"
    job.write_text("log: nowhere.log\ntarget_size: 50\nhardware: {cores: 8}\n")
    result = runner.invoke(cli, ["estimate", "--job", str(job)])
    assert result.exit_code == 1, result.output
    assert isinstance(result.exception, SystemExit)
    assert "FileNotFoundError" in result.output


def test_broken_global_config_fails_cleanly(runner, tmp_path):
    config = tmp_path / "estimator.yml"
    config.write_text("estimator: {max_degree: 2\n")
    result = runner.invoke(
        cli, ["--config", str(config), "estimate", *CLIMATE_POINTS, "--target", "50", "--cores", "8"]
    )
    assert result.exit_code == 1, result.output
    assert isinstance(result.exception, SystemExit)


def test_log_without_sizes_combines_with_points(runner, tmp_path):
    log = tmp_path / "notes.log"
    log.write_text("# nothing measured yet\nstarting run\n")
    result = runner.invoke(cli, ["fit", "--log", str(log), *CLIMATE_POINTS, "--target", "50"])
    assert result.exit_code == 0, result.output
    assert "predicted wall time at 50: 03:45:00" in result.output


def test_global_config_file(runner, tmp_path):
    config = tmp_path / "estimator.yml"
    config.write_text("estimator:\n  max_extrapolation_ratio: 2\n")
    result = runner.invoke(
        cli, ["--config", str(config), "estimate", *CLIMATE_POINTS, "--target", "50", "--cores", "8"]
    )
    assert result.exit_code == 0, result.output
    assert "WARNING" in result.output


def test_fit_command(runner, climate_log):
    result = runner.invoke(cli, ["fit", "--log", str(climate_log), "--target", "50"])
    assert result.exit_code == 0, result.output
    assert "linear" in result.output
    assert "predicted wall time at 50: 03:45:00" in result.output


def test_sweep_command(runner):
    result = runner.invoke(
        cli, ["sweep", *CLIMATE_POINTS, "--target", "50", "--cores", "4", "--cores", "8", "--runs", "50"]
    )
    assert result.exit_code == 0, result.output
    assert "total_core_hours" in result.output
    assert "1500" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "slurm-estimate" in result.output
