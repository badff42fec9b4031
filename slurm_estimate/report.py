"""Rendering of fitted models and resource requests."""

from __future__ import annotations

import json
from typing import List, Optional

from tabulate import tabulate

from .benchmark import BenchmarkSeries
from .estimator import ResourceRequest
from .scaling import ScalingModel
from .walltime import format_walltime, round_up_minutes


def _heading(title: str) -> List[str]:
    return [title, "-" * len(title)]


def format_model(model: ScalingModel) -> str:
    rows = [
        ("kind", model.kind),
        ("degree", model.degree),
        ("coefficients", ", ".join(f"{c:.6g}" for c in model.coefficients)),
        ("R^2", f"{model.r_squared:.6f}"),
        ("benchmarked sizes", f"{model.min_size:g} .. {model.max_size:g}"),
        ("observations", model.n_observations),
    ]
    return "\n".join(_heading("Scaling model") + [model.describe(), "", tabulate(rows, tablefmt="plain")])


def format_series(series: BenchmarkSeries) -> str:
    frame = series.to_frame()
    table = tabulate(
        frame.values.tolist(),
        headers=["input size", "wall time (s)", "wall time"],
        floatfmt=("g", ".1f", ""),
    )
    return "\n".join(_heading("Benchmark observations") + [table])


def format_text(request: ResourceRequest, series: Optional[BenchmarkSeries] = None) -> str:
    """Human-readable report."""

    sections: List[str] = []
    if series is not None:
        sections.append(format_series(series))
    sections.append(format_model(request.model))

    rows = [
        ("target size", f"{request.target_size:g}"),
        ("wall time per run", f"{format_walltime(request.full_wall_time)} ({request.full_wall_time_hours:.4g} h)"),
        ("cores per run", request.hardware.core_count),
        ("parallel efficiency", f"{request.hardware.parallel_efficiency:g}"),
        ("core-hours per run", f"{request.core_hours_per_run:.6g}"),
        ("runs", request.run_count),
        ("core-hours (all runs)", f"{request.base_core_hours:.6g}"),
    ]
    sections.append("\n".join(_heading("Resource request") + [tabulate(rows, tablefmt="plain")]))

    if request.factors:
        factor_rows = [(factor.name, f"x{factor.value:g}") for factor in request.factors]
        factor_rows.append(("combined", f"x{request.safety_multiplier:.6g}"))
        sections.append("\n".join(_heading("Safety factors") + [tabulate(factor_rows, tablefmt="plain")]))

    sections.append(f"TOTAL REQUEST: {request.total_core_hours:,.2f} core-hours")
    for warning in request.warnings:
        sections.append(f"WARNING: {warning}")
    return "\n\n".join(sections)


def format_kv(request: ResourceRequest) -> str:
    """One ``key=value`` pair per line, for shell scripts and grep."""

    lines: List[str] = []
    for key, value in request.to_dict().items():
        if key == "safety_factors":
            lines.extend(f"safety_factor.{name}={factor:g}" for name, factor in value.items())  # type: ignore[union-attr]
        elif key == "model_coefficients":
            lines.append(f"{key}={','.join(repr(c) for c in value)}")  # type: ignore[union-attr]
        elif key == "warnings":
            lines.extend(f"warning={warning}" for warning in value)  # type: ignore[union-attr]
        else:
            lines.append(f"{key}={value}")
    return "\n".join(lines)


def format_json(request: ResourceRequest) -> str:
    return json.dumps(request.to_dict(), indent=2)


def sbatch_directives(request: ResourceRequest) -> List[str]:
    """``#SBATCH`` lines for one production run of the request."""

    return [
        f"#SBATCH --time={format_walltime(round_up_minutes(request.full_wall_time))}",
        "#SBATCH --ntasks=1",
        f"#SBATCH --cpus-per-task={request.hardware.core_count}",
    ]

