"""
Tests for the continuous subset-sum relaxation.
"""
import asyncio
from itertools import combinations

import numpy as np
import pytest

from agents.StressTestAgent import mock_stress_test_result
from experiments.SubsetSumExperiment import (
    INITIAL_LR,
    MIN_LR,
    STANDARD_SET,
    SubsetSumRelaxation,
    cosine_learning_rate,
    generate_problem_instance,
    project_trajectory,
    run_subset_sum,
    simulate_subset_sum,
    smooth_abs_gradient,
    subset_energy,
    subset_gradient,
)
from experiments.frame_loop import CancelFlag


class TestHelpers:

    def test_smooth_abs_gradient(self):
        assert smooth_abs_gradient(0.0) == 1e-8
        assert smooth_abs_gradient(1e-9) == 1e-8
        assert smooth_abs_gradient(-1e-9) == -1e-8
        assert smooth_abs_gradient(0.5) == 0.5

    def test_cosine_schedule_endpoints(self):
        assert cosine_learning_rate(0, 5000) == pytest.approx(INITIAL_LR)
        assert cosine_learning_rate(5000, 5000) == pytest.approx(MIN_LR)
        assert MIN_LR < cosine_learning_rate(2500, 5000) < INITIAL_LR

    def test_energy_and_gradient(self):
        s = np.asarray(STANDARD_SET, dtype=float)
        assert subset_energy(np.zeros(5), s) == pytest.approx(1e-6)
        assert subset_energy(np.ones(5), s) == pytest.approx(1.0)
        assert subset_gradient(np.zeros(5), s).tolist() == [0.5] * 5

    @pytest.mark.parametrize("seed", range(5))
    def test_instance_has_zero_sum_subset(self, seed):
        values = generate_problem_instance(8, 20, np.random.default_rng(seed))
        assert len(values) == 8
        assert any(
            sum(combo) == 0
            for k in range(1, len(values) + 1)
            for combo in combinations(values, k)
        )

    def test_instance_too_small(self):
        with pytest.raises(ValueError):
            generate_problem_instance(1)

    def test_projection(self):
        rng = np.random.default_rng(0)
        points = project_trajectory(rng.random((10, 5)).tolist())
        assert len(points) == 10
        for x, y in points:
            assert 5 - 1e-9 <= x <= 95 + 1e-9
            assert 5 - 1e-9 <= y <= 95 + 1e-9

    def test_projection_needs_two_points(self):
        assert project_trajectory([[0.1, 0.2]]) == []


class TestRelaxation:

    def test_standard_run(self):
        result = simulate_subset_sum("Standard", seed=0)
        assert result["problem"] == STANDARD_SET
        assert len(result["costHistory"]) == 50
        assert len(result["trajectory"]) == 50
        assert len(result["projection"]) == 50
        assert set(result["selection"]) <= {0, 1}
        assert result["sum"] == sum(result["subset"])
        assert result["status"] in ("Converged", "Failed")
        assert result["log"][1].startswith("Step 1000/5000")
        assert result["log"][-1] == f"Final Sum: {result['sum']}"

    def test_seeded_runs_repeat(self):
        assert simulate_subset_sum("Standard", seed=7)["costHistory"] == simulate_subset_sum("Standard", seed=7)["costHistory"]

    def test_critical_instance(self):
        relaxation = SubsetSumRelaxation("Critical", seed=1)
        assert len(relaxation.problem) == 40
        assert relaxation.log[0] == "--- Starting CRITICAL STRESS TEST Relaxation ---"

    def test_advance_stops_at_snapshots(self):
        relaxation = SubsetSumRelaxation("Standard", seed=0)
        frame = relaxation.advance()
        assert frame["step"] == 100
        assert len(frame["x"]) == 5

    def test_custom_problem(self):
        result = simulate_subset_sum("Standard", seed=0, problem=[3, -3, 4])
        assert result["problem"] == [3, -3, 4]

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            SubsetSumRelaxation("Impossible")

    def test_empty_problem(self):
        with pytest.raises(ValueError):
            SubsetSumRelaxation("Standard", problem=[])


class TestRunSubsetSum:

    def test_stress_test_analysis(self, mock_settings):
        frames = []
        output = asyncio.run(run_subset_sum("Standard", settings=mock_settings, on_frame=frames.append, seed=0))
        assert output["frames"] == 50
        assert len(frames) == 50
        assert output["analysis"] == mock_stress_test_result()

    def test_cancel(self, mock_settings):
        cancel = CancelFlag()

        def on_frame(frame):
            if frame["step"] >= 300:
                cancel.cancel()

        output = asyncio.run(run_subset_sum("Standard", settings=mock_settings, on_frame=on_frame, cancel=cancel, seed=0))
        assert output["cancelled"] is True
        assert output["frames"] == 3
        assert output["analysis"] is None

    def test_renderer_errors_do_not_stop_the_run(self, mock_settings):
        def broken(frame):
            raise RuntimeError("chart gone")

        output = asyncio.run(run_subset_sum("Standard", settings=mock_settings, on_frame=broken, seed=0, commentary=False))
        assert output["frames"] == 50
        assert output["cancelled"] is False
        assert output["result"]["log"][-2] == "--- Optimization Finished ---"
