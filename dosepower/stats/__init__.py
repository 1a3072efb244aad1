"""Statistical routines: synthetic data generation and the dose-trend test."""

from . import data_generation as data_generation
from . import trend_tests as trend_tests
