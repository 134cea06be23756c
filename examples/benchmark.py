import time

import anyrng
import numpy as np
from matplotlib import pyplot as plt
from scipy.stats import norm


SAMPLE_SIZES = [1000, 5000, 10000, 50000, 100000, 500000, 1000000, 5000000, 10000000]

sampler = anyrng.build_sampler(anyrng.Density.normal(0.0, 1.0), -6.0, 6.0, tol=1e-7)
print(f"Sampler built with {sampler.interval_count} intervals")

rng = np.random.default_rng(42)

hermite_times = []
scalar_times = []
scipy_times = []

for N_SAMPLES in SAMPLE_SIZES:
    print(f"\n{'=' * 60}")
    print(f"Testing with {N_SAMPLES:,} samples")
    print(f"{'=' * 60}")

    u = rng.random(N_SAMPLES)

    # Vectorised Hermite inversion
    start = time.time()
    x_hermite = sampler.transform(u)
    hermite_time = time.time() - start
    hermite_times.append(hermite_time)
    print(f"Hermite transform time: {hermite_time:.6f} seconds")

    # Scalar queries using the search index
    n_scalar = min(N_SAMPLES, 100000)
    start = time.time()
    for value in u[:n_scalar]:
        sampler.sample(value)
    scalar_time = (time.time() - start) * N_SAMPLES / n_scalar
    scalar_times.append(scalar_time)
    print(f"Scalar sample time (extrapolated): {scalar_time:.6f} seconds")

    # Exact inverse CDF from scipy
    start = time.time()
    x_exact = norm.ppf(u)
    scipy_time = time.time() - start
    scipy_times.append(scipy_time)
    print(f"scipy.stats.norm.ppf time: {scipy_time:.6f} seconds")

    print(f"Max |x_hermite - x_exact|: {np.max(np.abs(x_hermite - x_exact)):.3e}")
    print(f"\nSpeedup (Hermite vs scipy): {scipy_time / hermite_time:.2f}x")

plt.figure(figsize=(8, 6), dpi=100, layout="constrained")
plt.loglog(SAMPLE_SIZES, hermite_times, "o-", label="Hermite (vectorised)", linewidth=2, markersize=8)
plt.loglog(SAMPLE_SIZES, scalar_times, "s-", label="Hermite (scalar)", linewidth=2, markersize=8)
plt.loglog(SAMPLE_SIZES, scipy_times, "^-", label="scipy ppf", linewidth=2, markersize=8)

plt.xlabel("Number of Samples", fontsize=12)
plt.ylabel("Execution Time (seconds)", fontsize=12)
plt.title("Inverse CDF Transform Performance Comparison", fontsize=14)
plt.legend(fontsize=11)
plt.show()
