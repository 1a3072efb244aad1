"""
DosePower - Monte Carlo power analysis for dose-trend tests.

This module provides the main DosePower class for estimating the power of
the Jonckheere-Terpstra trend test in a toxicology study design.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .core import (
    DEFAULT_SCENARIO_CONFIG,
    SIGNIFICANCE_LEVEL,
    Design,
    EndpointSpec,
    ResultsProcessor,
    Scenario,
    ScenarioRunner,
    SimulationRunner,
    build_power_table,
    linear_scenario,
    preset_scenarios,
    scenario_from_mappings,
)
from .errors import ConfigurationError
from .utils.formatters import _format_results
from .utils.parsers import _parse_endpoints, _parse_multipliers
from .utils.validators import (
    _validate_alternative,
    _validate_dose_levels,
    _validate_group_size,
    _validate_group_size_range,
    _validate_parallel_settings,
    _validate_power,
    _validate_random_stream,
    _validate_seed,
    _validate_simulations,
)
from .utils.visualization import _create_power_plot


class DosePower:
    """Monte Carlo power analysis for ordered dose-response designs.

    Simulates repeated toxicology studies from pilot summary statistics
    (control mean and SD per endpoint), applies the Jonckheere-Terpstra
    trend test to each simulated study and reports the proportion of
    studies in which the null hypothesis is rejected at alpha = 0.05.

    Configuration methods (``set_*``) validate their input immediately
    and return ``self`` for method chaining. The frozen ``Design`` is
    assembled by ``build_design()`` right before a run.

    Attributes:
        seed: Random seed (default: 1563).
        group_size: Animals per dose group (default: 10).
        dose_levels: Dose levels, control first (default: ``[0, 1, 2, 3]``).
        n_simulations: Simulated studies per endpoint (default: 10000).
        alternative: Trend direction (default: ``"two-sided"``).
        random_stream: ``"run"`` or ``"iteration"`` (default: ``"run"``).
        power: Target power in percent (default: 80.0).
        parallel: Run iteration chunks in joblib workers (default: False).
        n_cores: Number of worker processes.

    Example:
        >>> model = DosePower("liver=2.08(0.13)")
        >>> model.set_effects("0=1, 1=0.95, 2=0.9, 3=0.85")
        >>> model.set_variance_multipliers("0=1, 1=1.333, 2=1.667, 3=2")
        >>> model.find_power(group_size=10)

        >>> model.use_linear_scenario(top_effect=0.85, top_variance=2.0)
        >>> model.find_group_size(from_size=5, to_size=30, by=5)
    """

    def __init__(self, endpoints: Union[None, str, Dict, Iterable[EndpointSpec]] = None):
        """Initialise the analysis with optional endpoints.

        Args:
            endpoints: ``"name=mean(sd), ..."`` string, ``{name: (mean,
                sd)}`` dict, or an iterable of ``EndpointSpec``.
        """
        self.seed = 1563
        self.group_size = 10
        self.dose_levels: List[int] = [0, 1, 2, 3]
        self.n_simulations = 10000
        self.alternative = "two-sided"
        self.random_stream = "run"
        self.power = 80.0

        import multiprocessing as mp

        self.parallel = False
        self.n_cores = max(1, (mp.cpu_count() or 1) // 2)

        self._endpoints: Dict[str, EndpointSpec] = {}
        self._effects: Optional[Dict[int, float]] = None
        self._variances: Optional[Dict[int, float]] = None
        self._scenario: Optional[Scenario] = None
        self._linear: Optional[Dict[str, Any]] = dict(label="modeled", **DEFAULT_SCENARIO_CONFIG["modeled"])
        self._scenario_configs: Optional[Dict[str, Dict[str, float]]] = None
        self._scenario_label = "custom"

        if endpoints is not None:
            self.set_endpoints(endpoints)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def alpha(self) -> float:
        """Significance level of the trend test (fixed)."""
        return SIGNIFICANCE_LEVEL

    @property
    def endpoints(self) -> List[EndpointSpec]:
        """Endpoints in declared order."""
        return list(self._endpoints.values())

    @property
    def scenario(self) -> Scenario:
        """Scenario for the current dose levels."""
        return self._resolve_scenario()

    # =========================================================================
    # Endpoint configuration
    # =========================================================================

    def add_endpoint(self, name: str, control_mean: float, control_sd: float):
        """Add one endpoint from pilot summary statistics.

        Args:
            name: Endpoint name (unique).
            control_mean: Control group mean.
            control_sd: Control group standard deviation (> 0).

        Returns:
            self: For method chaining.

        Raises:
            ConfigurationError: If the name is taken or the values are invalid.
        """
        if name in self._endpoints:
            raise ConfigurationError(f"Endpoint '{name}' already defined")
        self._endpoints[name] = EndpointSpec(name, control_mean, control_sd)
        return self

    def set_endpoints(self, endpoints: Union[str, Dict, Iterable[EndpointSpec]]):
        """Replace all endpoints.

        Args:
            endpoints: ``"liver=2.08(0.13), kidney=1.52(0.09)"``,
                ``{"liver": (2.08, 0.13)}`` or an iterable of ``EndpointSpec``.

        Returns:
            self: For method chaining.
        """
        if isinstance(endpoints, str):
            items = [EndpointSpec(name, mean, sd) for name, (mean, sd) in _parse_endpoints(endpoints).items()]
        elif isinstance(endpoints, dict):
            items = [EndpointSpec(name, *values) for name, values in endpoints.items()]
        else:
            items = list(endpoints)
            for item in items:
                if not isinstance(item, EndpointSpec):
                    raise TypeError(f"endpoints must contain EndpointSpec objects, got {type(item).__name__}")

        self._endpoints = {}
        for item in items:
            if item.name in self._endpoints:
                raise ConfigurationError(f"Endpoint '{item.name}' defined more than once")
            self._endpoints[item.name] = item
        return self

    # =========================================================================
    # Design configuration
    # =========================================================================

    def set_dose_levels(self, dose_levels: Iterable[int]):
        """Set the dose levels (control = 0 first, strictly increasing).

        Returns:
            self: For method chaining.
        """
        levels = list(dose_levels)
        _validate_dose_levels(levels).raise_if_invalid()
        self.dose_levels = levels
        return self

    def set_group_size(self, group_size: int):
        """Set animals per dose group (identical for control and treated groups).

        Returns:
            self: For method chaining.
        """
        _validate_group_size(group_size).raise_if_invalid()
        self.group_size = group_size
        return self

    def set_simulations(self, n_simulations: int):
        """Set the number of simulated studies per endpoint.

        Returns:
            self: For method chaining.
        """
        result = _validate_simulations(n_simulations)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()
        self.n_simulations = n_simulations
        return self

    def set_seed(self, seed: int):
        """Set the random seed. Identical settings and seed give identical results.

        Returns:
            self: For method chaining.
        """
        _validate_seed(seed).raise_if_invalid()
        self.seed = seed
        print(f"Seed set to: {seed}")
        return self

    def set_alternative(self, alternative: str):
        """Set the trend direction: ``"two-sided"``, ``"increasing"`` or ``"decreasing"``.

        Returns:
            self: For method chaining.
        """
        _validate_alternative(alternative).raise_if_invalid()
        self.alternative = alternative
        return self

    def set_random_stream(self, random_stream: str):
        """Choose the random stream layout.

        Args:
            random_stream: ``"run"`` (one generator for the whole run,
                sequential only) or ``"iteration"`` (independent generator
                per endpoint and iteration, parallel-safe).

        Returns:
            self: For method chaining.
        """
        _validate_random_stream(random_stream).raise_if_invalid()
        if random_stream == "run" and self.parallel:
            print("Warning: the 'run' stream is sequential only. Disabling parallel processing.")
            self.parallel = False
        self.random_stream = random_stream
        return self

    def set_parallel(self, enable: bool = True, n_cores: Optional[int] = None):
        """Enable or disable parallel processing of iteration chunks.

        Requires ``joblib``. Parallel runs need independent per-iteration
        random streams, so enabling it switches ``random_stream`` to
        ``"iteration"``.

        Returns:
            self: For method chaining.
        """
        if enable is False:
            self.parallel, self.n_cores = False, 1
            return self

        try:
            import joblib  # noqa: F401
        except ImportError:
            print("Warning: joblib not available. Install with: pip install joblib")
            print("Warning: Continuing with sequential processing.")
            self.parallel = False
            return self

        settings, result = _validate_parallel_settings(enable, n_cores)
        result.raise_if_invalid()
        self.parallel, self.n_cores = settings
        if self.random_stream != "iteration":
            print("Warning: parallel processing uses per-iteration random streams. Switching random_stream to 'iteration'.")
            self.random_stream = "iteration"
        return self

    def set_power(self, power: float):
        """Set the target power (percent) used by ``find_group_size``.

        Returns:
            self: For method chaining.
        """
        _validate_power(power).raise_if_invalid()
        self.power = float(power)
        return self

    # =========================================================================
    # Scenario configuration
    # =========================================================================

    def set_effects(self, effects: Union[str, Dict[int, float]], label: str = "custom"):
        """Set effect (mean) multipliers per dose level.

        Args:
            effects: ``"0=1, 1=0.95, 2=0.9, 3=0.85"`` or ``{dose: multiplier}``.
            label: Scenario label.

        Returns:
            self: For method chaining.
        """
        self._effects = _parse_multipliers(effects) if isinstance(effects, str) else dict(effects)
        self._scenario_label = label
        self._scenario = None
        self._linear = None
        return self

    def set_variance_multipliers(self, variances: Union[str, Dict[int, float]]):
        """Set standard-deviation multipliers per dose level.

        Args:
            variances: ``"0=1, 1=1.333, 2=1.667, 3=2"`` or ``{dose: multiplier}``.

        Returns:
            self: For method chaining.
        """
        self._variances = _parse_multipliers(variances) if isinstance(variances, str) else dict(variances)
        self._scenario = None
        self._linear = None
        return self

    def set_scenario(self, scenario: Scenario):
        """Use a prebuilt ``Scenario``.

        Returns:
            self: For method chaining.
        """
        if not isinstance(scenario, Scenario):
            raise TypeError(f"scenario must be a Scenario, got {type(scenario).__name__}")
        self._scenario = scenario
        self._effects = self._variances = None
        self._linear = None
        return self

    def use_linear_scenario(self, top_effect: float, top_variance: float = 1.0, label: str = "linear"):
        """Interpolate multipliers linearly between control and the top dose.

        The scenario follows the dose levels in effect at run time.

        Returns:
            self: For method chaining.
        """
        linear_scenario(label, self.dose_levels, top_effect, top_variance)
        self._linear = {"label": label, "top_effect": top_effect, "top_variance": top_variance}
        self._scenario = None
        self._effects = self._variances = None
        return self

    def set_scenario_configs(self, configs_dict: Dict[str, Dict[str, float]]):
        """Set the named scenarios compared by ``find_power(scenarios=True)``.

        Provided configs are merged with ``DEFAULT_SCENARIO_CONFIG``.

        Args:
            configs_dict: ``{label: {"top_effect": ..., "top_variance": ...}}``.

        Returns:
            self: For method chaining.
        """
        if not isinstance(configs_dict, dict):
            raise TypeError("configs_dict must be a dictionary")

        merged = {k: dict(v) for k, v in DEFAULT_SCENARIO_CONFIG.items()}
        for label, config in configs_dict.items():
            if "top_effect" not in config and label not in merged:
                raise ConfigurationError(f"Scenario '{label}' needs a 'top_effect'")
            merged.setdefault(label, {}).update(config)

        self._scenario_configs = merged
        print(f"Custom scenario configs set: {', '.join(configs_dict.keys())}")
        return self

    def _resolve_scenario(self) -> Scenario:
        if self._scenario is not None:
            return self._scenario
        if self._linear is not None:
            return linear_scenario(self._linear["label"], self.dose_levels, self._linear["top_effect"], self._linear["top_variance"])
        if self._effects is None:
            raise ConfigurationError("Effect multipliers not set. Use set_effects()")
        if self._variances is None:
            raise ConfigurationError("Variance multipliers not set. Use set_variance_multipliers()")
        return scenario_from_mappings(self._scenario_label, self._effects, self._variances)

    # =========================================================================
    # Design assembly
    # =========================================================================

    def build_design(self, group_size: Optional[int] = None, scenario: Optional[Scenario] = None) -> Design:
        """Assemble the frozen ``Design`` from the current settings.

        Args:
            group_size: Override the configured group size.
            scenario: Override the configured scenario.

        Raises:
            ConfigurationError: If the settings do not form a complete design.
        """
        if not self._endpoints:
            raise ConfigurationError("No endpoints defined. Use set_endpoints() or add_endpoint()")
        return Design(
            endpoints=tuple(self._endpoints.values()),
            scenario=scenario if scenario is not None else self._resolve_scenario(),
            group_size=self.group_size if group_size is None else group_size,
            dose_levels=tuple(self.dose_levels),
            iteration_count=self.n_simulations,
            random_seed=self.seed,
            alternative=self.alternative,
            random_stream=self.random_stream,
        )

    # =========================================================================
    # Analyses
    # =========================================================================

    def find_power(
        self,
        group_size: Optional[int] = None,
        print_results: bool = True,
        scenarios: bool = False,
        summary: str = "short",
        return_results: bool = False,
        progress_callback=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ):
        """
        Estimate trend-test power for every endpoint.

        Args:
            group_size: Animals per dose group (default: configured value)
            print_results: Whether to print results
            scenarios: Also run every named scenario preset
            summary: Output detail level ("short" or "long")
            return_results: Return results dict
            progress_callback: Progress reporting control:
                - ``None`` (default): auto-use ``PrintReporter`` when
                  *print_results* is ``True``.
                - ``False``: explicitly disable progress.
                - callable ``(current, total)``: custom callback.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            dict or None: If *return_results* is ``True``, a dictionary with
            ``"model"`` (design metadata) and ``"results"`` (``power_results``
            list and ``table`` DataFrame). With ``scenarios=True`` the dict
            holds ``"scenarios"`` and a ``"comparison"`` table instead.
        """
        design = self.build_design(group_size)
        scenario_map = self._scenario_map(design) if scenarios else {design.scenario.label: design.scenario}

        reporter = self._make_reporter(progress_callback, print_results, len(scenario_map), 1, design)

        if scenarios:
            runner = ScenarioRunner(scenario_map)
            result = runner.run_power_analysis(
                lambda scenario: self._run_find_power(design.with_changes(scenario=scenario), reporter, cancel_check),
                progress=reporter,
            )
        else:
            if reporter is not None:
                reporter.start()
            result = self._run_find_power(design, reporter, cancel_check)

        if reporter is not None:
            reporter.finish()

        if print_results:
            print(f"\n{'=' * 80}")
            print("SCENARIO-BASED DOSE-TREND POWER ANALYSIS RESULTS" if scenarios else "DOSE-TREND POWER ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(_format_results("scenario_power" if scenarios else "power", result, summary))

        return result if return_results else None

    def find_group_size(
        self,
        from_size: int = 5,
        to_size: int = 30,
        by: int = 5,
        print_results: bool = True,
        summary: str = "short",
        return_results: bool = False,
        plot: bool = False,
        progress_callback=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ):
        """
        Find the smallest group size reaching the target power per endpoint.

        Args:
            from_size: Smallest group size to test
            to_size: Largest group size to test
            by: Step between group sizes
            print_results: Whether to print results
            summary: Output detail level ("short" or "long")
            return_results: Return results dict
            plot: Draw power against group size
            progress_callback: See ``find_power``.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            dict or None: If *return_results* is ``True``, a dictionary with
            ``"model"`` and ``"results"`` (group sizes tested, powers by
            endpoint in percent, first group size achieving the target, and
            a long-form ``table``).
        """
        validation_result = _validate_group_size_range(from_size, to_size, by)
        for warning in validation_result.warnings:
            print(f"Warning: {warning}")
        validation_result.raise_if_invalid()

        group_sizes = list(range(from_size, to_size + 1, by))
        designs = [self.build_design(n) for n in group_sizes]
        reporter = self._make_reporter(progress_callback, print_results, 1, len(group_sizes), designs[0])
        if reporter is not None:
            reporter.start()

        results = []
        for n, design in zip(group_sizes, designs):
            power_result = self._run_find_power(design, reporter, cancel_check)
            results.append((n, power_result["results"]["power_results"]))

        if reporter is not None:
            reporter.finish()

        processor = ResultsProcessor(target_power=self.power)
        analysis_results = processor.process_group_size_results(results, designs[0].endpoint_names)
        analysis_results["table"] = processor.group_size_table(results)

        result = {
            "model": {
                **self._design_summary(designs[0]),
                "group_size_range": {"from_size": from_size, "to_size": to_size, "by": by},
            },
            "results": analysis_results,
        }

        if print_results:
            print(f"\n{'=' * 80}")
            print("GROUP SIZE ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(_format_results("group_size", result, summary))

        if plot:
            _create_power_plot(
                group_sizes=analysis_results["group_sizes_tested"],
                powers_by_endpoint=analysis_results["powers_by_endpoint"],
                first_achieved=analysis_results["first_achieved"],
                target_power=self.power,
                title=f"Trend Test Power ({designs[0].scenario.label})",
            )

        return result if return_results else None

    # =========================================================================
    # Internals
    # =========================================================================

    def _scenario_map(self, design: Design) -> Dict[str, Scenario]:
        scenario_map = {design.scenario.label: design.scenario}
        presets = preset_scenarios(design.dose_levels, self._scenario_configs)
        for label, scenario in presets.items():
            if label in scenario_map and scenario_map[label] != scenario:
                label = f"{label} (preset)"
            scenario_map.setdefault(label, scenario)
        return scenario_map

    def _make_reporter(self, progress_callback, print_results, n_scenarios, n_group_sizes, design):
        from .progress import PrintReporter, ProgressReporter, compute_total_simulations

        if progress_callback is None:
            effective_cb = PrintReporter() if print_results else None
        elif progress_callback is False:
            effective_cb = None
        else:
            effective_cb = progress_callback

        if effective_cb is None:
            return None
        total = compute_total_simulations(design.iteration_count, len(design.endpoints), n_group_sizes, n_scenarios)
        return ProgressReporter(total, effective_cb)

    def _design_summary(self, design: Design) -> Dict[str, Any]:
        return {
            "endpoints": design.endpoint_names,
            "group_size": design.group_size,
            "dose_levels": list(design.dose_levels),
            "n_simulations": design.iteration_count,
            "alpha": self.alpha,
            "alternative": design.alternative,
            "seed": design.random_seed,
            "random_stream": design.random_stream,
            "scenario": design.scenario.label,
            "multipliers": [(d, *design.scenario.multipliers(d)) for d in design.dose_levels],
            "target_power": self.power,
            "parallel": self.parallel,
        }

    def _run_find_power(self, design: Design, progress=None, cancel_check=None) -> Dict[str, Any]:
        """Run the simulation for one design and return a power result dict."""
        runner = SimulationRunner(parallel=self.parallel, n_cores=self.n_cores)
        power_results = runner.run(design, progress=progress, cancel_check=cancel_check)
        return {
            "model": self._design_summary(design),
            "results": {
                "power_results": power_results,
                "table": build_power_table(power_results),
            },
        }

    def __repr__(self):
        return f"DosePower(endpoints={list(self._endpoints)}, group_size={self.group_size}, dose_levels={self.dose_levels})"
