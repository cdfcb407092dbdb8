"""Unit tests for the configuration driven optimization helpers."""
from __future__ import annotations

import contextlib
import csv
import io
import math
import tempfile
import unittest
from pathlib import Path

from minituna import optimization
from minituna.config import OptimizationConfig
from minituna.evaluators import MixedSpaceEvaluator, quadratic
from minituna.storage import TrialState
from minituna.study import create_study


MIXED_SPACE = {
    "n_layers": {"type": "int", "low": 1, "high": 6},
    "dropout": {"type": "float", "low": 0.0, "high": 0.5},
    "learning_rate": {"type": "float", "low": 1e-5, "high": 1e-1, "log": True},
    "optimizer": {"type": "categorical", "choices": ["adam", "sgd", "rmsprop"]},
}


class SampleParamsTests(unittest.TestCase):
    def test_sample_params_covers_every_parameter_type(self) -> None:
        study = create_study(seed=5)
        captured = {}

        def objective(trial) -> float:
            captured.update(optimization.sample_params(trial, MIXED_SPACE))
            return 0.0

        study.optimize(objective, n_trials=1)

        self.assertEqual(set(captured), set(MIXED_SPACE))
        self.assertIsInstance(captured["n_layers"], int)
        self.assertTrue(0.0 <= captured["dropout"] <= 0.5)
        self.assertTrue(1e-5 <= captured["learning_rate"] <= 1e-1)
        self.assertIn(captured["optimizer"], {"adam", "sgd", "rmsprop"})
        self.assertEqual(study.trials[0].params, captured)

    def test_unknown_parameter_type_fails_the_trial(self) -> None:
        study = create_study(seed=0)
        with contextlib.redirect_stdout(io.StringIO()):
            study.optimize(
                lambda trial: optimization.sample_params(trial, {"code": {"type": "llm_only"}}),
                n_trials=1,
            )
        self.assertIs(study.trials[0].state, TrialState.FAILED)


class BuildObjectiveTests(unittest.TestCase):
    def _run(self, evaluator, metric_name: str = "f", n_trials: int = 3):
        sink: dict = {}
        objective = optimization.build_objective(
            evaluator,
            {"x": {"type": "int", "low": 0, "high": 10}},
            metric_name=metric_name,
            seed=1,
            metrics_sink=sink,
        )
        study = create_study(seed=1)
        with contextlib.redirect_stdout(io.StringIO()):
            study.optimize(objective, n_trials=n_trials)
        return study, sink

    def test_float_evaluator_result_becomes_the_metric(self) -> None:
        study, sink = self._run(lambda params, seed: float(params["x"]) * 2.0)
        for trial in study.trials:
            self.assertIs(trial.state, TrialState.COMPLETED)
            self.assertEqual(trial.value, trial.params["x"] * 2.0)
            self.assertEqual(sink[trial.number], {"f": trial.value})

    def test_prefixed_metric_is_accepted(self) -> None:
        study, _ = self._run(lambda params, seed: {"metric_f": 1.5, "status": "ok"})
        self.assertTrue(all(trial.value == 1.5 for trial in study.trials))

    def test_error_status_fails_the_trial(self) -> None:
        study, sink = self._run(lambda params, seed: {"f": 0.0, "status": "error"})
        self.assertTrue(all(trial.state is TrialState.FAILED for trial in study.trials))
        self.assertEqual(len(sink), 3)

    def test_timed_out_payload_fails_the_trial(self) -> None:
        study, _ = self._run(lambda params, seed: {"f": 0.0, "status": "ok", "timed_out": True})
        self.assertTrue(all(trial.state is TrialState.FAILED for trial in study.trials))

    def test_missing_metric_fails_the_trial(self) -> None:
        study, _ = self._run(lambda params, seed: {"other": 1.0})
        self.assertTrue(all(trial.state is TrialState.FAILED for trial in study.trials))

    def test_non_numeric_metric_fails_the_trial(self) -> None:
        study, _ = self._run(lambda params, seed: {"f": "high"})
        self.assertTrue(all(trial.state is TrialState.FAILED for trial in study.trials))


class LoadEvaluatorTests(unittest.TestCase):
    def test_plain_function_is_used_directly(self) -> None:
        evaluator = optimization.load_evaluator(
            {"module": "minituna.evaluators.quadratic", "callable": "quadratic_objective"}
        )
        self.assertEqual(evaluator({"x": 3, "y": 5}, None)["f"], 0.0)

    def test_single_argument_callable_is_treated_as_factory(self) -> None:
        evaluator = optimization.load_evaluator(
            {
                "module": "minituna.evaluators.mixed",
                "callable": "create_mixed_evaluator",
                "noise": 0.25,
            }
        )
        self.assertIsInstance(evaluator, MixedSpaceEvaluator)
        self.assertEqual(evaluator.noise, 0.25)

    def test_non_callable_target_is_rejected(self) -> None:
        with self.assertRaises(TypeError):
            optimization.load_evaluator(
                {"module": "minituna.evaluators.mixed", "callable": "OPTIMIZER_PENALTY"}
            )

    def test_unsupported_sampler_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            optimization.build_sampler({"sampler": "tpe"}, seed=None)


class TrialLoggerTests(unittest.TestCase):
    def test_logger_handles_prefixed_and_unprefixed_metrics(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "log.csv"
            metrics = {
                "metric_fidelity": 0.87,
                "energy": -0.5,
            }
            params = {"width": 2}

            with optimization.TrialLogger(
                log_path,
                params.keys(),
                ["fidelity", "metric_energy"],
            ) as logger:
                logger.log(0, TrialState.COMPLETED, params, metrics)

            with log_path.open(newline="", encoding="utf-8") as handle:
                rows = list(csv.DictReader(handle))

        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["state"], "completed")
        self.assertEqual(row["param_width"], "2")
        self.assertIn("metric_fidelity", row)
        self.assertIn("metric_energy", row)
        self.assertNotIn("metric_metric_energy", row)
        self.assertAlmostEqual(float(row["metric_fidelity"]), 0.87)
        self.assertAlmostEqual(float(row["metric_energy"]), -0.5)

    def test_logger_appends_without_repeating_header(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "log.csv"
            for number in range(2):
                with optimization.TrialLogger(log_path, ["x"], ["f"]) as logger:
                    logger.log(number, TrialState.FAILED, {}, {})
            with log_path.open(newline="", encoding="utf-8") as handle:
                rows = list(csv.DictReader(handle))

        self.assertEqual([row["trial"] for row in rows], ["0", "1"])
        self.assertEqual(rows[0]["param_x"], "")


class RunOptimizationTests(unittest.TestCase):
    def _config(self, tmpdir: str, **overrides) -> dict:
        data = {
            "metadata": {"name": "quadratic", "description": "integer bowl"},
            "seed": 0,
            "search": {"sampler": "random", "n_trials": 12, "metric": "f"},
            "search_space": {
                "x": {"type": "int", "low": 0, "high": 10},
                "y": {"type": "int", "low": 0, "high": 10},
            },
            "evaluator": {
                "module": "minituna.evaluators.quadratic",
                "callable": "quadratic_objective",
            },
            "report": {"output_dir": str(Path(tmpdir) / "reports"), "metrics": ["f", "distance"]},
            "artifacts": {"log_file": str(Path(tmpdir) / "runs" / "log.csv")},
        }
        data.update(overrides)
        return OptimizationConfig.model_validate(data).model_dump(mode="python")

    def test_run_writes_log_and_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = self._config(tmpdir)
            with contextlib.redirect_stdout(io.StringIO()):
                result = optimization.run_optimization(config)

            self.assertEqual(result.trials_completed, 12)
            self.assertEqual(result.trials_failed, 0)
            self.assertIsNone(result.early_stopped_reason)
            self.assertEqual(
                result.best_value,
                quadratic(result.best_params["x"], result.best_params["y"]),
            )
            self.assertEqual(result.best_metrics["f"], result.best_value)

            assert result.log_path is not None and result.report_path is not None
            with result.log_path.open(newline="", encoding="utf-8") as handle:
                rows = list(csv.DictReader(handle))
            self.assertEqual(len(rows), 12)
            self.assertEqual(
                min(float(row["metric_f"]) for row in rows),
                result.best_value,
            )
            for row in rows:
                expected = quadratic(int(row["param_x"]), int(row["param_y"]))
                self.assertEqual(float(row["metric_f"]), expected)

            report = result.report_path.read_text(encoding="utf-8")
            self.assertIn("# Experiment Report  quadratic", report)
            self.assertIn(f"Best trial: {result.best_trial}", report)
            self.assertEqual(result.report_path.name, "quadratic.md")

    def test_stopping_max_trials_caps_the_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = self._config(tmpdir, stopping={"max_trials": 3})
            with contextlib.redirect_stdout(io.StringIO()):
                result = optimization.run_optimization(config)
        self.assertEqual(result.trials_completed, 3)

    def test_run_without_successful_trials_reports_nan(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = self._config(
                tmpdir,
                evaluator={
                    "module": "minituna.evaluators.mixed",
                    "callable": "create_mixed_evaluator",
                },
            )
            with contextlib.redirect_stdout(io.StringIO()):
                result = optimization.run_optimization(config)

            self.assertEqual(result.trials_completed, 0)
            self.assertEqual(result.trials_failed, 12)
            self.assertIsNone(result.best_trial)
            self.assertTrue(math.isnan(result.best_value))
            assert result.report_path is not None
            self.assertIn(
                "No completed trial produced a finite objective value.",
                result.report_path.read_text(encoding="utf-8"),
            )


if __name__ == "__main__":
    unittest.main()
