"""
Tests for scenario builders and presets.
"""

import pytest

from dosepower.core.scenarios import (
    DEFAULT_SCENARIO_CONFIG,
    ScenarioRunner,
    linear_scenario,
    null_scenario,
    preset_scenarios,
    scenario_from_mappings,
)
from dosepower.errors import ConfigurationError


class TestLinearScenario:
    def test_reference_multipliers(self):
        s = linear_scenario("modeled", [0, 1, 2, 3], top_effect=0.85, top_variance=2.0)
        assert s.effect_map == pytest.approx({0: 1.0, 1: 0.95, 2: 0.9, 3: 0.85})
        assert s.variance_map == pytest.approx({0: 1.0, 1: 4 / 3, 2: 5 / 3, 3: 2.0})

    def test_control_is_exactly_identity(self):
        s = linear_scenario("x", [0, 1, 2, 3], top_effect=0.3, top_variance=7.0)
        assert s.multipliers(0) == (1.0, 1.0)

    def test_interpolation_follows_dose_level(self):
        s = linear_scenario("uneven", [0, 1, 10], top_effect=0.5, top_variance=3.0)
        assert s.effect_map[1] == pytest.approx(0.95)
        assert s.variance_map[1] == pytest.approx(1.2)
        assert s.variance_map[10] == pytest.approx(3.0)

    def test_variance_monotone_in_dose(self):
        s = linear_scenario("up", [0, 1, 2, 3, 4], top_effect=1.0, top_variance=2.5)
        values = [s.variance_map[d] for d in [0, 1, 2, 3, 4]]
        assert all(b > a for a, b in zip(values, values[1:]))

    def test_modeled_preset_variance_strictly_increasing(self):
        modeled = preset_scenarios([0, 1, 2, 3])["modeled"]
        values = [modeled.variance_map[d] for d in [0, 1, 2, 3]]
        assert all(b > a for a, b in zip(values, values[1:]))

    def test_invalid_dose_levels(self):
        with pytest.raises(ConfigurationError):
            linear_scenario("bad", [1, 2], top_effect=0.9)

    def test_non_positive_top_variance(self):
        with pytest.raises(ConfigurationError, match="must be > 0"):
            linear_scenario("bad", [0, 1], top_effect=0.9, top_variance=0.0)

    def test_non_numeric_top_effect(self):
        with pytest.raises(ConfigurationError, match="top_effect"):
            linear_scenario("bad", [0, 1], top_effect="0.9")


class TestOtherBuilders:
    def test_null_scenario(self):
        s = null_scenario([0, 1, 2, 3])
        assert s.label == "null"
        assert all(s.multipliers(d) == (1.0, 1.0) for d in [0, 1, 2, 3])

    def test_from_mappings(self):
        s = scenario_from_mappings("explicit", {0: 1.0, 2: 0.8}, {0: 1.0, 2: 1.5})
        assert s.multipliers(2) == (0.8, 1.5)

    def test_presets_cover_dose_levels(self):
        presets = preset_scenarios([0, 5, 10])
        assert list(presets) == list(DEFAULT_SCENARIO_CONFIG)
        for scenario in presets.values():
            scenario.require([0, 5, 10])
        assert presets["modeled"].effect_map[10] == pytest.approx(0.85)

    def test_custom_preset_defaults_variance(self):
        presets = preset_scenarios([0, 1], {"strong": {"top_effect": 0.5}})
        assert presets["strong"].variance_map == {0: 1.0, 1: 1.0}


class TestScenarioRunner:
    def test_runs_every_scenario_in_order(self, modeled_scenario):
        from dosepower.core.results import PowerResult

        calls = []

        def fake_find_power(scenario):
            calls.append(scenario.label)
            return {"results": {"power_results": [PowerResult("liver", 10, 100)]}}

        runner = ScenarioRunner({"modeled": modeled_scenario, "null": null_scenario([0, 1, 2, 3])})
        result = runner.run_power_analysis(fake_find_power)

        assert calls == ["modeled", "null"]
        assert list(result["scenarios"]) == ["modeled", "null"]
        table = result["comparison"]
        assert list(table["scenario"]) == ["modeled", "null"]
        assert list(table["power_percent"]) == ["10.00%", "10.00%"]
