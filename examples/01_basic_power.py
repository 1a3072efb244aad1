"""
Basic Power Analysis Example
============================

This example estimates the power of the Jonckheere-Terpstra trend test for
a 28-day rodent study with a control group and three dose groups.
Pilot data give the control mean and SD of each organ weight.
"""

import dosepower

# Example: repeated-dose toxicity study
# Research question: Would 10 animals per group detect a dose-related
# decrease in organ weight?

print("=" * 60)
print("BASIC POWER ANALYSIS EXAMPLE")
print("=" * 60)

# 1. Define endpoints from pilot summary statistics: name=mean(sd)
model = dosepower.DosePower("liver=2.08(0.13), kidney=1.52(0.09)")

# 2. Describe the assumed true effect per dose level
# Effect multipliers scale the control mean, variance multipliers the control SD.
# Here the mean falls by 15% and the SD doubles at the top dose.
model.set_effects("0=1, 1=0.95, 2=0.9, 3=0.85", label="modeled")
model.set_variance_multipliers("0=1, 1=1.333, 2=1.667, 3=2")

print("\nDesign setup complete:")
print(f"Endpoints: {', '.join(e.name for e in model.endpoints)}")
print(f"Dose levels: {model.dose_levels}")

# 3. Calculate power for 10 animals per dose group
print("\n1. POWER AT n=10 PER GROUP:")
model.find_power(group_size=10, summary="short")

# 4. Compare with the named presets ("null" should give power near 5%)
print("\n2. SCENARIO COMPARISON:")
model.find_power(group_size=10, scenarios=True)

# 5. Keep the result table for further processing
result = model.find_power(group_size=10, print_results=False, return_results=True)
print("\n3. RESULT TABLE:")
print(result["results"]["table"])
