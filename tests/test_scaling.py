# tests/test_scaling.py
import pytest

from slurm_estimate import (
    BenchmarkSeries,
    ExtrapolationRangeError,
    InsufficientDataError,
    NonPositiveWallTimeError,
    ScalingModel,
    extrapolate,
    fit_scaling,
)


@pytest.mark.parametrize(
    "sizes, a, b",
    [
        ([1, 2], 3.0, 10.0),
        ([1, 2, 4, 8], 270.0, 0.0),
        ([0.5, 1.5, 2.5, 10, 20], 12.5, 300.0),
    ],
)
def test_points_on_a_line_give_linear_model(sizes, a, b):
    series = BenchmarkSeries([(x, a * x + b) for x in sizes])
    model = fit_scaling(series)
    assert model.degree == 1
    assert model.kind == "linear"
    assert model.coefficients == pytest.approx((a, b), abs=1e-6)
    assert model.r_squared == pytest.approx(1.0)


def test_interpolation_is_exact_at_observed_sizes(climate_series):
    model = fit_scaling(climate_series)
    for obs in climate_series:
        assert extrapolate(model, obs.input_size) == pytest.approx(obs.wall_time)


def test_quadratic_data_picks_degree_two():
    series = BenchmarkSeries([(x, x * x + 1) for x in [1, 2, 3, 4, 5]])
    model = fit_scaling(series)
    assert model.degree == 2
    assert model.coefficients == pytest.approx((1.0, 0.0, 1.0), abs=1e-6)


def test_lowest_degree_meeting_threshold_wins():
    series = BenchmarkSeries([(x, x * x + 1) for x in [1, 2, 3, 4, 5]])
    # linear R^2 is about 0.963
    assert fit_scaling(series, r2_threshold=0.95).degree == 1


def test_constant_series_gives_constant_model():
    model = fit_scaling(BenchmarkSeries([(1, 60), (2, 60), (3, 60)]))
    assert model.degree == 0
    assert model.r_squared == 1.0
    assert model.evaluate(100) == pytest.approx(60.0)


def test_falls_back_to_highest_allowed_degree():
    series = BenchmarkSeries([(1, 10), (2, 30), (3, 15), (4, 35)])
    model = fit_scaling(series, max_degree=1)
    assert model.degree == 1
    assert model.r_squared < 0.98


def test_degree_capped_by_observation_count():
    series = BenchmarkSeries([(1, 10), (2, 40)])
    assert fit_scaling(series, max_degree=3).degree <= 1


def test_repeated_sizes_cap_degree():
    model = fit_scaling(BenchmarkSeries([(1, 60), (1, 62)]))
    assert model.degree == 0
    assert model.evaluate(1) == pytest.approx(61.0)


def test_fit_accepts_plain_pairs(climate_series):
    model = fit_scaling([(10, "0:45:00"), (2, 540), {"size": 5, "wall": "0:22:30"}])
    assert model == fit_scaling(climate_series)
    assert model.degree == 1


def test_single_observation_is_insufficient():
    with pytest.raises(InsufficientDataError):
        fit_scaling(BenchmarkSeries([(10, 2700)]))


def test_invalid_fit_arguments(climate_series):
    with pytest.raises(ValueError):
        fit_scaling(climate_series, max_degree=4)
    with pytest.raises(ValueError):
        fit_scaling(climate_series, r2_threshold=0.0)
    with pytest.raises(TypeError):
        fit_scaling(climate_series, max_degree=1.5)


def test_model_invariant_degree_below_observations():
    with pytest.raises(InsufficientDataError):
        ScalingModel(coefficients=(1.0, 2.0, 3.0), r_squared=1.0, min_size=1.0, max_size=2.0, n_observations=2)


def test_extrapolation_far_outside_range_is_flagged(climate_series):
    model = fit_scaling(climate_series)
    with pytest.raises(ExtrapolationRangeError) as info:
        extrapolate(model, 500)
    assert info.value.ratio == pytest.approx(50.0)
    assert info.value.wall_time == pytest.approx(135000.0)
    assert isinstance(info.value, UserWarning)


def test_extrapolation_ratio_is_configurable(climate_series):
    model = fit_scaling(climate_series)
    assert extrapolate(model, 500, max_ratio=50) == pytest.approx(135000.0)
    with pytest.raises(ExtrapolationRangeError):
        extrapolate(model, 50, max_ratio=2)


def test_extrapolate_rejects_bad_targets(climate_series):
    model = fit_scaling(climate_series)
    with pytest.raises(ValueError):
        extrapolate(model, 0)
    with pytest.raises(ValueError):
        extrapolate(model, 10, max_ratio=0.5)


def test_negative_prediction_is_fatal():
    model = fit_scaling(BenchmarkSeries([(1, 100), (2, 50)]))
    with pytest.raises(NonPositiveWallTimeError):
        extrapolate(model, 4)


def test_describe(climate_series):
    assert fit_scaling(climate_series).describe().startswith("wall = 270*x + ")
