"""Unit tests for the Simulator driver."""

import json

import pandas as pd
import pytest

from hpa_behavior.config.behavior import behavior_from_yaml
from hpa_behavior.config.config import MetricSettings, RunConfig, SimulationSettings
from hpa_behavior.core.errors import ConfigurationError
from hpa_behavior.core.models import BehaviorConfig, DirectionConfig
from hpa_behavior.simulation.simulator import Simulator, SimulatorState


def constant_simulator(value=250.0, **simulation):
    config = RunConfig(simulation=SimulationSettings(**simulation))
    return Simulator(config, metric_source=lambda t: value)


class TestLifecycle:
    """Test the Idle -> Running <-> Paused -> Idle state machine."""

    def test_starts_idle(self):
        sim = Simulator()
        assert sim.status == SimulatorState.IDLE
        assert sim.t == 0
        assert sim.replicas == 3

    def test_pump_does_nothing_unless_running(self):
        sim = Simulator()
        assert sim.pump(10.0) == []
        assert sim.timeline == []

    def test_start_and_pause(self):
        sim = Simulator()
        sim.start()
        assert sim.status == SimulatorState.RUNNING
        sim.pump(3.0)
        sim.pause()
        assert sim.status == SimulatorState.PAUSED
        assert sim.pump(5.0) == []
        assert sim.t == 3.0

    def test_resume_continues(self):
        sim = Simulator()
        sim.start()
        sim.pump(2.0)
        sim.pause()
        sim.resume()
        sim.pump(2.0)
        assert sim.t == 4.0

    def test_step_advances_one_tick_and_pauses(self):
        sim = Simulator()
        sim.start()
        result = sim.step()
        assert sim.status == SimulatorState.PAUSED
        assert result.sample.t == 1.0
        assert len(sim.timeline) == 1

    def test_step_from_idle(self):
        sim = Simulator()
        sim.step()
        assert sim.status == SimulatorState.PAUSED
        assert sim.t == 1.0

    def test_clear_resets_everything(self):
        sim = constant_simulator()
        sim.run(60)
        assert sim.replicas != 3
        sim.clear()
        assert sim.status == SimulatorState.IDLE
        assert sim.t == 0
        assert sim.replicas == 3
        assert sim.timeline == []
        assert sim.decisions == []
        assert sim.state.desired_history == []


class TestPump:
    """Test decomposition of real elapsed time into fixed ticks."""

    def test_remainder_carries_over(self):
        sim = Simulator()
        sim.start()
        assert len(sim.pump(2.5)) == 2
        assert len(sim.pump(0.5)) == 1
        assert sim.t == 3.0

    def test_speed_multiplies_elapsed_time(self):
        sim = constant_simulator(speed=4.0)
        sim.start()
        assert len(sim.pump(1.0)) == 4

    def test_time_step_size(self):
        sim = constant_simulator(time_step_seconds=0.5)
        sim.start()
        results = sim.pump(2.0)
        assert len(results) == 4
        assert sim.t == 2.0

    def test_negative_elapsed(self):
        sim = Simulator()
        sim.start()
        with pytest.raises(ValueError):
            sim.pump(-1.0)

    def test_pumped_run_matches_batch_run(self):
        pumped = constant_simulator()
        pumped.start()
        for _ in range(120):
            pumped.pump(0.5)

        batch = constant_simulator()
        batch.run(60)

        pd.testing.assert_frame_equal(pumped.timeline_frame(), batch.timeline_frame())
        pd.testing.assert_frame_equal(pumped.decisions_frame(), batch.decisions_frame())


class TestRun:
    """Test batch runs."""

    def test_tick_and_decision_counts(self):
        sim = constant_simulator()
        sim.run(60)
        assert len(sim.timeline) == 60
        assert len(sim.decisions) == 4
        assert sim.status == SimulatorState.PAUSED

    def test_default_duration(self):
        sim = constant_simulator(duration_seconds=30)
        sim.run()
        assert sim.t == 30.0

    def test_invalid_duration(self):
        with pytest.raises(ConfigurationError):
            Simulator().run(0)

    def test_noisy_runs_are_reproducible(self):
        config = RunConfig(metric=MetricSettings(scenario="noisy", seed=7))
        first = Simulator(config).run(300)
        second = Simulator(config).run(300)
        pd.testing.assert_frame_equal(first["timeline"], second["timeline"])
        pd.testing.assert_frame_equal(first["decisions"], second["decisions"])

    def test_rerun_after_clear_is_identical(self):
        sim = Simulator(RunConfig(metric=MetricSettings(scenario="noisy", seed=11)))
        first = sim.run(240)
        sim.clear()
        second = sim.run(240)
        pd.testing.assert_frame_equal(first["timeline"], second["timeline"])
        pd.testing.assert_frame_equal(first["decisions"], second["decisions"])

    def test_results_contents(self):
        results = constant_simulator().run(60)
        assert list(results["timeline"].columns) == ["t", "metric", "replicas", "desired", "stabilized"]
        assert len(results["decisions"]) == 4
        assert results["metrics"]["run"]["ticks"] == 60
        assert results["metrics"]["replicas"]["final"] == 50


class TestLiveEdits:
    """Test edits applied while a run is in progress."""

    def test_update_behavior_applies_to_next_sync(self):
        sim = constant_simulator()
        sim.run(15)
        assert sim.replicas == 7

        frozen = BehaviorConfig(
            scale_up=DirectionConfig(select_policy="Disabled"),
            scale_down=sim.config.behavior.scale_down,
        )
        sim.update_behavior(frozen)
        sim.run(30)
        assert sim.replicas == 7
        assert sim.config.behavior == frozen
        assert len(sim.decisions) == 3

    def test_update_limits_clamps_at_next_sync(self):
        sim = constant_simulator(value=100.0)
        sim.run(15)
        sim.update_limits(min_replicas=5)
        assert sim.replicas == 3
        sim.run(15)
        assert sim.replicas == 5
        assert sim.config.simulation.min_replicas == 5

    def test_update_target_rebuilds_scenario(self):
        sim = Simulator(RunConfig(metric=MetricSettings(scenario="constant")))
        sim.update_limits(target=200)
        result = sim.step()
        assert result.sample.metric == 200.0

    @pytest.mark.parametrize(
        "kwargs",
        [{"min_replicas": -1}, {"min_replicas": 60}, {"max_replicas": 0}, {"target": 0}],
    )
    def test_invalid_limits(self, kwargs):
        sim = Simulator()
        with pytest.raises(ConfigurationError):
            sim.update_limits(**kwargs)

    def test_update_speed_while_running(self):
        sim = constant_simulator()
        sim.start()
        assert len(sim.pump(1.0)) == 1
        sim.update_timing(speed=5.0)
        assert sim.status == SimulatorState.RUNNING
        assert len(sim.pump(1.0)) == 5
        assert sim.t == 6.0
        assert sim.config.simulation.speed == 5.0

    def test_update_time_step_keeps_history(self):
        sim = constant_simulator()
        sim.run(10)
        sim.update_timing(time_step_seconds=0.5)
        sim.start()
        assert len(sim.pump(2.0)) == 4
        assert len(sim.timeline) == 14
        assert sim.t == 12.0

    def test_update_sync_period(self):
        sim = constant_simulator()
        sim.update_timing(sync_period_seconds=5)
        sim.run(15)
        assert [d.t for d in sim.decisions] == [5.0, 10.0, 15.0]
        assert sim.config.simulation.sync_period_seconds == 5

    @pytest.mark.parametrize(
        "kwargs",
        [{"speed": 0}, {"time_step_seconds": -1}, {"sync_period_seconds": float("nan")}, {"speed": True}],
    )
    def test_invalid_timing(self, kwargs):
        sim = Simulator()
        with pytest.raises(ConfigurationError):
            sim.update_timing(**kwargs)
        assert sim.config.simulation.speed == 1.0

    def test_apply_template_resets(self):
        sim = Simulator()
        sim.run(30)
        sim.apply_template("limit-scale-down-10p-per-min")
        assert sim.status == SimulatorState.IDLE
        assert sim.t == 0
        assert sim.replicas == 40
        assert sim.state.max_replicas == 100
        assert sim.config.metric.scenario == "rise-and-fall"

    def test_apply_unknown_template(self):
        with pytest.raises(ConfigurationError):
            Simulator().apply_template("nope")


class TestSaveResults:
    """Test writing run artifacts."""

    def test_writes_run_directory(self, tmp_path):
        sim = constant_simulator()
        sim.run(60)
        run_dir = sim.save_results(str(tmp_path))

        assert run_dir.parent == tmp_path
        assert run_dir.name.startswith("run_")
        for name in ("timeline.csv", "decisions.csv", "behavior.yaml", "metrics.json"):
            assert (run_dir / name).exists()

        timeline = pd.read_csv(run_dir / "timeline.csv")
        assert len(timeline) == 60

        with open(run_dir / "metrics.json") as f:
            metrics = json.load(f)
        assert metrics["run"]["sync_decisions"] == 4

        assert behavior_from_yaml((run_dir / "behavior.yaml").read_text()) == sim.config.behavior

    def test_defaults_to_configured_directory(self, tmp_path):
        config = RunConfig(output={"directory": str(tmp_path / "out")})
        sim = Simulator(config)
        sim.run(15)
        run_dir = sim.save_results()
        assert run_dir.parent == tmp_path / "out"
