"""
Parallel Execution Example
==========================

Per-iteration random streams make every simulated study independent of
execution order, so iterations can run in worker processes (requires
joblib) and still give exactly the sequential result.
"""

from dosepower import DosePower, TqdmReporter

model = DosePower("liver=2.08(0.13)")
model.use_linear_scenario(top_effect=0.85, top_variance=2.0)
model.set_random_stream("iteration")

sequential = model.find_power(print_results=False, return_results=True, progress_callback=False)

model.set_parallel(True, n_cores=4)
parallel = model.find_power(print_results=False, return_results=True, progress_callback=TqdmReporter(desc="liver"))

print(sequential["results"]["table"])
print(parallel["results"]["table"])
print("Identical:", sequential["results"]["table"].equals(parallel["results"]["table"]))
