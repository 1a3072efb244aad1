"""
Group Size Calculation Example
==============================

This example finds the smallest number of animals per dose group that
reaches 80% power for each endpoint.
"""

from dosepower import DosePower

print("=" * 60)
print("GROUP SIZE CALCULATION EXAMPLE")
print("=" * 60)

# 1. Endpoints and design
model = DosePower("liver=2.08(0.13), kidney=1.52(0.09), body_weight=312(21)")
model.set_dose_levels([0, 1, 2, 3])
model.set_simulations(2000)

# 2. Assume a linear 10% decrease and a 50% larger SD at the top dose
model.use_linear_scenario(top_effect=0.9, top_variance=1.5)

# 3. Sweep group sizes with a detailed report and a power curve
print("\n1. GROUP SIZE SWEEP:")
model.set_power(80)
model.find_group_size(from_size=4, to_size=24, by=4, summary="long", plot=True)

# 4. One-sided test for a decrease
print("\n2. ONE-SIDED (DECREASING) TEST:")
model.set_alternative("decreasing")
model.find_group_size(from_size=4, to_size=24, by=4)
