"""
Shared pytest fixtures for DosePower tests.
"""

import contextlib
import io

import pytest


@pytest.fixture
def suppress_output():
    """Silence stdout and stderr (reports and progress) for a test."""
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
        yield


@pytest.fixture
def liver():
    """Reference endpoint from the pilot study."""
    from dosepower import EndpointSpec

    return EndpointSpec("liver", 2.08, 0.13)


@pytest.fixture
def modeled_scenario():
    """Linear 15% decrease of the mean and doubled SD at the top dose."""
    from dosepower import Scenario

    return Scenario.from_mappings(
        "modeled",
        {0: 1.0, 1: 0.95, 2: 0.9, 3: 0.85},
        {0: 1.0, 1: 4 / 3, 2: 5 / 3, 3: 2.0},
    )


@pytest.fixture
def sample_model():
    """Two-endpoint model with the modeled scenario and few simulations."""
    import dosepower

    model = dosepower.DosePower("liver=2.08(0.13), kidney=1.52(0.09)")
    model.set_effects("0=1, 1=0.95, 2=0.9, 3=0.85", label="modeled")
    model.set_variance_multipliers("0=1, 1=1.333, 2=1.667, 3=2")
    model.n_simulations = 200
    return model
