"""Command line entry point: ``slurm-estimate``."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import click
import yaml
from tabulate import tabulate

from . import __version__ as VERSION
from .benchmark import BenchmarkSeries, Observation, parse_log
from .config import EstimateJob, EstimatorConfig, load_job, parse_factors
from .errors import EstimationError, ExtrapolationRangeError
from .estimator import ResourceEstimator
from .report import format_json, format_kv, format_model, format_text, sbatch_directives
from .resources import HardwareProfile
from .walltime import format_walltime

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LEVELS = {0: logging.WARNING, 1: logging.INFO}

_handler: Optional[logging.Handler] = None


def configure_logging(verbosity: int) -> None:
    """Send ``slurm_estimate`` log records to stderr at the requested verbosity."""

    global _handler
    logger = logging.getLogger("slurm_estimate")
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(_LEVELS.get(verbosity, logging.DEBUG))


class NaturalOrderGroup(click.Group):
    """ Force click to keep the order of commands """
    def list_commands(self, ctx):
        return self.commands.keys()


def _parse_point(text: str) -> Observation:
    size, sep, wall = text.partition("=")
    if not sep:
        raise click.BadParameter(f"expected SIZE=WALL, got {text!r}", param_hint="--point")
    try:
        return Observation.from_spec((size, wall))
    except (TypeError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--point") from exc


def _series_from_options(log: Optional[Path], points: Sequence[str], job: Optional[EstimateJob]) -> BenchmarkSeries:
    observations = [_parse_point(point) for point in points]
    if log is not None:
        observations.extend(parse_log(log.read_text(encoding="utf-8")))
    if observations:
        return BenchmarkSeries(observations)
    if job is not None:
        return job.series
    raise click.UsageError("no benchmark data: pass --log, --point or --job")


def _estimator_config(
    ctx: click.Context,
    job: Optional[EstimateJob],
    max_degree: Optional[int],
    r2_threshold: Optional[float],
    max_ratio: Optional[float],
) -> EstimatorConfig:
    config = ctx.obj["config"]
    if job is not None and job.config is not None:
        config = job.config
    overrides = {
        "max_degree": max_degree,
        "r2_threshold": r2_threshold,
        "max_extrapolation_ratio": max_ratio,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def _fail(exc: Exception) -> click.ClickException:
    return click.ClickException(f"{type(exc).__name__}: {exc}")


data_options = [
    click.option("--job", "job_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                 help="YAML estimate job; command line options override its values."),
    click.option("--log", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                 help="Benchmark log with lines like 'size=10 wall=0:45:00'."),
    click.option("--point", "points", multiple=True, metavar="SIZE=WALL",
                 help="A single benchmark measurement, e.g. 10=0:45:00. Repeatable."),
]

fit_options = [
    click.option("--max-degree", type=click.IntRange(0, 3), default=None,
                 help="Highest polynomial degree to try. Default: 3."),
    click.option("--r2-threshold", type=click.FloatRange(0, 1, min_open=True), default=None,
                 help="R^2 a fit must reach to be accepted. Default: 0.98."),
    click.option("--max-ratio", type=click.FloatRange(min=1), default=None,
                 help="Warn when the target exceeds this multiple of the largest "
                      "benchmarked size. Default: 10."),
]

request_options = [
    click.option("--target", type=click.FloatRange(min=0, min_open=True), default=None,
                 help="Input size of the production run."),
    click.option("--efficiency", type=click.FloatRange(0, 1, min_open=True), default=None,
                 help="Parallel efficiency of the production runs. Default: 1."),
    click.option("--benchmark-cores", type=click.IntRange(min=1), default=None,
                 help="Cores used for the benchmark runs; enables efficiency scaling."),
    click.option("--runs", type=click.IntRange(min=1), default=None,
                 help="Number of production runs. Default: 1."),
    click.option("--factor", "factors", multiple=True, metavar="NAME=VALUE",
                 help="Safety factor, e.g. failures=1.4. Repeatable; replaces the job's factors."),
]


def _apply(options):
    def decorator(func):
        for option in reversed(options):
            func = option(func)
        return func
    return decorator


def _resolve_request(
    job: Optional[EstimateJob],
    target: Optional[float],
    efficiency: Optional[float],
    benchmark_cores: Optional[int],
    runs: Optional[int],
    factors: Tuple[str, ...],
):
    if target is None:
        if job is None:
            raise click.UsageError("missing --target")
        target = job.target_size
    if efficiency is None:
        efficiency = job.hardware.parallel_efficiency if job is not None else 1.0
    if benchmark_cores is None and job is not None:
        benchmark_cores = job.benchmark_cores
    if runs is None:
        runs = job.run_count if job is not None else 1
    try:
        parsed = parse_factors(list(factors)) if factors else (job.factors if job is not None else ())
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--factor") from exc
    return target, efficiency, benchmark_cores, runs, parsed


@click.group(cls=NaturalOrderGroup)
@click.version_option(VERSION, prog_name="slurm-estimate")
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or fit details (-vv) to stderr.")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML file with estimator settings.")
@click.pass_context
def cli(ctx, verbose, config_path):
    """Turn benchmark timings into HPC core-hour requests."""
    configure_logging(verbose)
    try:
        config = EstimatorConfig.from_yaml(config_path) if config_path else EstimatorConfig()
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        raise _fail(exc) from exc
    ctx.obj = {"config": config}


###################
# Fit Command
###################

@cli.command(help="Fit a scaling model to benchmark timings.")
@_apply(data_options + fit_options)
@click.option("--target", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Also predict the wall time at this input size.")
@click.pass_context
def fit(ctx, job_path, log, points, max_degree, r2_threshold, max_ratio, target):
    try:
        job = load_job(job_path) if job_path else None
        series = _series_from_options(log, points, job)
        estimator = ResourceEstimator(_estimator_config(ctx, job, max_degree, r2_threshold, max_ratio))
        model = estimator.fit(series)
    except (EstimationError, OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        raise _fail(exc) from exc

    click.echo(format_model(model))
    if target is None:
        return
    try:
        wall_time = estimator.extrapolate(model, target)
    except ExtrapolationRangeError as exc:
        click.echo(f"warning: {exc}", err=True)
        wall_time = exc.wall_time
    except (EstimationError, ValueError) as exc:
        raise _fail(exc) from exc
    click.echo(f"\npredicted wall time at {target:g}: {format_walltime(wall_time)} ({wall_time:.1f} s)")


###################
# Estimate Command
###################

@cli.command(help="Estimate the core-hours to request for a set of production runs.")
@_apply(data_options + request_options)
@click.option("--cores", type=click.IntRange(min=1), default=None, help="Cores per production run.")
@_apply(fit_options)
@click.option("--format", "output_format", type=click.Choice(["text", "kv", "json"]), default="text",
              show_default=True, help="Report format.")
@click.option("--sbatch", is_flag=True, default=False, help="Append suggested #SBATCH directives.")
@click.pass_context
def estimate(ctx, job_path, log, points, target, efficiency, benchmark_cores, runs, factors, cores,
             max_degree, r2_threshold, max_ratio, output_format, sbatch):
    try:
        job = load_job(job_path) if job_path else None
        series = _series_from_options(log, points, job)
        target, efficiency, benchmark_cores, runs, parsed = _resolve_request(
            job, target, efficiency, benchmark_cores, runs, factors
        )
        if cores is None:
            if job is None:
                raise click.UsageError("missing --cores")
            cores = job.hardware.core_count
        hardware = HardwareProfile(core_count=cores, parallel_efficiency=efficiency)
        estimator = ResourceEstimator(_estimator_config(ctx, job, max_degree, r2_threshold, max_ratio))
        request = estimator.estimate(series, target, hardware, runs, parsed, benchmark_cores=benchmark_cores)
    except (EstimationError, OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        raise _fail(exc) from exc

    if output_format == "json":
        click.echo(format_json(request))
    elif output_format == "kv":
        click.echo(format_kv(request))
    else:
        click.echo(format_text(request, series))
    if sbatch:
        click.echo("\n" + "\n".join(sbatch_directives(request)))


###################
# Sweep Command
###################

@cli.command(help="Compare core-hour requests across core counts.")
@_apply(data_options + request_options)
@click.option("--cores", "core_counts", type=click.IntRange(min=1), multiple=True, required=True,
              help="Cores per production run. Repeatable.")
@_apply(fit_options)
@click.pass_context
def sweep(ctx, job_path, log, points, target, efficiency, benchmark_cores, runs, factors, core_counts,
          max_degree, r2_threshold, max_ratio):
    try:
        job = load_job(job_path) if job_path else None
        series = _series_from_options(log, points, job)
        target, efficiency, benchmark_cores, runs, parsed = _resolve_request(
            job, target, efficiency, benchmark_cores, runs, factors
        )
        profiles = [HardwareProfile(core_count=count, parallel_efficiency=efficiency) for count in core_counts]
        estimator = ResourceEstimator(_estimator_config(ctx, job, max_degree, r2_threshold, max_ratio))
        frame = estimator.sweep(series, target, profiles, runs, parsed, benchmark_cores=benchmark_cores)
    except (EstimationError, OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        raise _fail(exc) from exc

    columns = ["core_count", "full_wall_time_h", "core_hours_per_run", "base_core_hours", "total_core_hours"]
    click.echo(tabulate(frame[columns].values.tolist(), headers=columns, floatfmt=".4g"))
    for warning in frame["warnings"].unique():
        if warning:
            click.echo(f"warning: {warning}", err=True)
