#!/usr/bin/env python3
"""Fermi-Dirac Sampling Example

Build an inversion sampler for the relativistic Fermi-Dirac momentum density
f(x) = x^2 / (exp((x - mu) / T) + 1) and transform uniform variates with it.
"""

import time

import numpy as np
from anyrng import Density, Sampler

T = 1.0  # temperature
mu = 0.0  # chemical potential

# Initialize the inverse transform sampler
start = time.time()
sampler = Sampler.build(Density.fermi_dirac(T, mu), 1e-5, 25.0, tol=1e-5)
print(f"Built {sampler.interval_count} intervals in {time.time() - start:.3f} s")

# Uniform variates come from numpy
rng = np.random.default_rng(12345)

# Test the sampler
u = rng.random()
x = sampler.sample(u)
print(f"u = {u:f}")
print(f"x = F^-1(u) = {x:f}")
print(f"f(x) = {sampler.density(u):f}")

# Generate a million random numbers
num = 1_000_000
start = time.time()
samples = sampler.transform(rng.random(num))
print(f"\nMean: {samples.mean():e}  (expected: 3.151)")
print(f"Time elapsed: {time.time() - start:.5f} s")
