"""Tests for the numerical inversion sampler."""

import math

import numpy as np
import pytest

from anyrng import (
    Density,
    DensityNotAvailableError,
    InvalidDomainError,
    Sampler,
    SamplerTable,
    build_sampler,
)

try:
    from scipy.stats import beta as beta_dist

    HAS_SCIPY = True
except ImportError:
    HAS_SCIPY = False


U_GRID = np.concatenate([[0.0, 1e-12], np.linspace(0.0, 1.0, 2001)[1:-1], [1 - 1e-12]])

# Round trips compare against the exact CDF, while refinement checks the fits
# against the midpoint rule. The fit error can also peak slightly off the CDF
# midpoint where it is checked.
QUADRATURE_ALLOWANCE = 2e-7

DENSE_U = np.arange(1, 200_000) / 200_000


def truncated_normal_cdf(x, xl, xr):
    def phi(z):
        return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))

    return (phi(x) - phi(xl)) / (phi(xr) - phi(xl))


@pytest.fixture(scope="module")
def normal_sampler():
    return Sampler.build(Density.normal(0.0, 1.0), -5.0, 5.0, tol=1e-6)


@pytest.fixture(scope="module")
def exponential_sampler():
    return Sampler.build(Density(lambda x, p: math.exp(-x)), 0.0, 10.0, tol=1e-6)


class TestSamplerBuild:
    """Test sampler construction."""

    def test_invalid_domain(self):
        """Test that xl >= xr raises InvalidDomainError."""
        with pytest.raises(InvalidDomainError):
            Sampler.build(Density.normal(), 1.0, -1.0)

    def test_density_type_error(self):
        """Test that a bare callable is rejected."""
        with pytest.raises(TypeError):
            Sampler.build(lambda x, p: 1.0, 0.0, 1.0)

    def test_build_sampler_shorthand(self):
        """Test the convenience function."""
        sampler = build_sampler(Density.uniform(), 0.0, 1.0, index_length=10)
        assert sampler.index_length == 10
        assert sampler.interval_count == 32

    def test_tiny_tolerance_warning_points_at_caller(self):
        """Test that a tolerance warning from build names the calling line."""
        with pytest.warns(UserWarning, match="quadrature resolution") as record:
            Sampler.build(Density.uniform(), 0.0, 1.0, tol=1e-13)
        assert record[0].filename == __file__

    def test_shorthand_warning_points_at_caller(self):
        """Test the same attribution through build_sampler."""
        with pytest.warns(UserWarning, match="quadrature resolution") as record:
            build_sampler(Density.uniform(), 0.0, 1.0, tol=1e-13)
        assert record[0].filename == __file__

    def test_attributes(self, normal_sampler):
        """Test the read-only table attributes."""
        assert normal_sampler.xl == -5.0
        assert normal_sampler.xr == 5.0
        assert normal_sampler.tol == 1e-6
        assert normal_sampler.has_density
        assert normal_sampler.index_length == 100
        assert abs(normal_sampler.norm - 1.0 / math.erf(5.0 / math.sqrt(2.0))) < 1e-6
        assert "intervals=" in repr(normal_sampler)

    def test_index_is_read_only(self, normal_sampler):
        """Test that the finished index cannot be modified."""
        with pytest.raises(ValueError):
            normal_sampler.index[0] = 1


class TestSample:
    """Test the inverse-CDF query."""

    def test_within_domain(self, normal_sampler):
        """Test that every sample lies in [xl, xr]."""
        xs = [normal_sampler.sample(u) for u in U_GRID]
        assert min(xs) >= -5.0
        assert max(xs) <= 5.0

    def test_non_decreasing(self, normal_sampler):
        """Test that sample(u) is non-decreasing in u."""
        xs = np.array([normal_sampler.sample(u) for u in U_GRID])
        assert np.all(np.diff(xs) >= -1e-12)

    def test_endpoints(self, normal_sampler):
        """Test that u = 0 maps to xl and u -> 1 to xr."""
        assert normal_sampler.sample(0.0) == -5.0
        assert abs(normal_sampler.sample(1 - 1e-15) - 5.0) < 1e-3

    def test_clamping(self, normal_sampler):
        """Test that u outside [0, 1) is clamped."""
        assert normal_sampler.sample(-0.5) == normal_sampler.sample(0.0)
        assert normal_sampler.sample(1.0) == normal_sampler.sample(1.5)
        assert normal_sampler.sample(1.0) <= 5.0

    def test_nan_error(self, normal_sampler):
        """Test that a NaN variate raises ValueError."""
        with pytest.raises(ValueError):
            normal_sampler.sample(float("nan"))

    def test_normal_round_trip(self, normal_sampler):
        """Test F(sample(u)) ~ u for the truncated standard normal."""
        for u in U_GRID[1:-1]:
            x = normal_sampler.sample(u)
            assert abs(truncated_normal_cdf(x, -5.0, 5.0) - u) <= (
                normal_sampler.tol + QUADRATURE_ALLOWANCE
            )

    def test_normal_dense_round_trip(self, normal_sampler):
        """Test the round trip of the vectorised path on a dense grid."""
        x = normal_sampler.transform(DENSE_U)
        F = np.vectorize(truncated_normal_cdf)(x, -5.0, 5.0)
        err = np.abs(F - DENSE_U)
        assert err.max() <= normal_sampler.tol + QUADRATURE_ALLOWANCE

    def test_normal_quantiles(self, normal_sampler):
        """Test well-known quantiles of the standard normal."""
        assert abs(normal_sampler.sample(0.5)) < 1e-5
        assert abs(normal_sampler.sample(0.975) - 1.959964) < 1e-4

    def test_exponential_round_trip(self, exponential_sampler):
        """Test F(sample(u)) ~ u for a truncated exponential."""
        scale = 1.0 - math.exp(-10.0)
        for u in U_GRID[1:-1]:
            x = exponential_sampler.sample(u)
            assert abs((1.0 - math.exp(-x)) / scale - u) <= (
                exponential_sampler.tol + QUADRATURE_ALLOWANCE
            )

    @pytest.mark.parametrize("xr", [20.0, 40.0])
    def test_light_exponential_tail(self, xr):
        """Test a long exponential domain whose tail mass is below tol."""
        sampler = Sampler.build(Density.exponential(1.0), 0.0, xr, tol=1e-6)
        x = sampler.transform(DENSE_U)
        F = -np.expm1(-x) / -math.expm1(-xr)
        assert np.abs(F - DENSE_U).max() <= sampler.tol + QUADRATURE_ALLOWANCE
        assert sampler.sample(1 - 1e-12) <= xr

    def test_fermi_dirac_long_domain(self):
        """Test that a domain far into the Fermi-Dirac tail builds."""
        sampler = Sampler.build(Density.fermi_dirac(), 1e-5, 40.0, tol=1e-5)
        x = sampler.transform(DENSE_U)
        assert np.all(np.diff(x) >= 0)
        assert x[0] >= 1e-5 and x[-1] <= 40.0

    def test_uniform_identity(self):
        """Test that the uniform density gives sample(u) ~ u."""
        sampler = Sampler.build(Density.uniform(0.0, 1.0), 0.0, 1.0, tol=1e-8)
        assert sampler.interval_count <= 32
        for u in U_GRID:
            assert abs(sampler.sample(u) - u) < 1e-9

    def test_fermi_dirac_mean(self):
        """Test the mean of the Fermi-Dirac momentum density."""
        sampler = Sampler.build(Density.fermi_dirac(1.0, 0.0), 1e-5, 25.0, tol=1e-5)
        n = 100_000
        u = (np.arange(n) + 0.5) / n
        x = sampler.transform(u)

        # <x> = (7/8 * 3! * zeta(4)) / (3/4 * 2! * zeta(3))
        zeta3, zeta4 = 1.2020569031595942, math.pi**4 / 90
        expected = (7 / 8 * 6 * zeta4) / (3 / 4 * 2 * zeta3)
        assert abs(x.mean() - expected) < 5e-3

    @pytest.mark.skipif(not HAS_SCIPY, reason="scipy not installed")
    def test_beta_round_trip(self):
        """Test F(sample(u)) ~ u for a truncated Beta(2, 5)."""
        xl, xr = 0.01, 0.9
        # Finer quadrature keeps the CDF values within the allowance
        sampler = Sampler.build(
            Density.beta(2.0, 5.0), xl, xr, tol=1e-6, n_quadrature=4000
        )
        Fl, Fr = beta_dist.cdf([xl, xr], 2.0, 5.0)
        for u in U_GRID[1:-1:10]:
            x = sampler.sample(u)
            F = (beta_dist.cdf(x, 2.0, 5.0) - Fl) / (Fr - Fl)
            assert abs(F - u) <= sampler.tol + QUADRATURE_ALLOWANCE


class TestDensityLookup:
    """Test the density query."""

    def test_matches_density_function(self, normal_sampler):
        """Test density(u) ~ norm * f(sample(u))."""
        dens = Density.normal(0.0, 1.0)
        for u in U_GRID[1:-1:5]:
            x = normal_sampler.sample(u)
            expected = normal_sampler.norm * dens.value(x)
            assert abs(normal_sampler.density(u) - expected) < 1e-5

    def test_peak_value(self, normal_sampler):
        """Test the density at the median of the standard normal."""
        assert abs(normal_sampler.density(0.5) - 1.0 / math.sqrt(2 * math.pi)) < 1e-5

    def test_unavailable_without_derivative(self, exponential_sampler):
        """Test that density lookup needs a derivative."""
        assert not exponential_sampler.has_density
        with pytest.raises(DensityNotAvailableError):
            exponential_sampler.density(0.5)
        with pytest.raises(DensityNotAvailableError):
            exponential_sampler.density_array([0.5])

    def test_unavailable_is_runtime_error(self, exponential_sampler):
        """Test that DensityNotAvailableError is a RuntimeError."""
        with pytest.raises(RuntimeError):
            exponential_sampler.density(0.5)


class TestLocate:
    """Test interval location."""

    def test_located_interval_contains_u(self, normal_sampler):
        """Test that the located interval satisfies Fl <= u <= Fr."""
        for u in U_GRID:
            iv = normal_sampler.intervals[normal_sampler.locate(u)]
            assert iv.Fl <= u <= iv.Fr

    def test_first_and_last(self, normal_sampler):
        """Test the extreme variates."""
        assert normal_sampler.locate(0.0) == 0
        assert normal_sampler.locate(1.0) == normal_sampler.interval_count - 1


class TestVectorized:
    """Test the array queries."""

    def test_transform_matches_sample(self, normal_sampler):
        """Test that transform agrees with the scalar path."""
        x = normal_sampler.transform(U_GRID)
        expected = [normal_sampler.sample(u) for u in U_GRID]
        np.testing.assert_allclose(x, expected, rtol=0, atol=1e-12)

    def test_density_array_matches_density(self, normal_sampler):
        """Test that density_array agrees with the scalar path."""
        f = normal_sampler.density_array(U_GRID)
        expected = [normal_sampler.density(u) for u in U_GRID]
        np.testing.assert_allclose(f, expected, rtol=0, atol=1e-12)

    def test_transform_clamps(self, normal_sampler):
        """Test clamping of out-of-range variates in arrays."""
        x = normal_sampler.transform([-1.0, 2.0])
        assert x[0] == -5.0
        assert x[1] <= 5.0

    def test_transform_nan_error(self, normal_sampler):
        """Test that NaN variates raise ValueError."""
        with pytest.raises(ValueError):
            normal_sampler.transform([0.5, float("nan")])

    def test_transform_random_variates(self, normal_sampler):
        """Test moments of transformed numpy uniforms."""
        u = np.random.default_rng(42).random(1_000_000)
        x = normal_sampler.transform(u)
        assert abs(x.mean()) < 0.01
        assert abs(x.var() - 1.0) < 0.01


class TestExport:
    """Test exporting and restoring the table."""

    def test_export_shapes(self, normal_sampler):
        """Test the shapes of the exported arrays."""
        table = normal_sampler.export()
        n = normal_sampler.interval_count
        assert table.endpoints.shape == (n + 1,)
        assert table.a.shape == (n, 4)
        assert table.b.shape == (n, 4)
        assert table.index.shape == (100,)
        assert table.endpoints[0] == 0.0
        assert table.endpoints[-1] == 1.0

    def test_from_table(self, normal_sampler):
        """Test that a restored sampler gives identical answers."""
        restored = Sampler.from_table(normal_sampler.export())
        assert restored.interval_count == normal_sampler.interval_count
        for u in U_GRID[::7]:
            assert restored.sample(u) == normal_sampler.sample(u)
            assert restored.density(u) == normal_sampler.density(u)
        for ours, theirs in zip(restored.intervals, normal_sampler.intervals):
            assert ours.l == theirs.l
            assert ours.r == theirs.r

    def test_save_and_load(self, normal_sampler, tmp_path):
        """Test persistence through an npz archive."""
        path = tmp_path / "normal.npz"
        normal_sampler.export().save(path)
        restored = Sampler.from_table(SamplerTable.load(path))

        assert restored.has_density
        assert restored.norm == normal_sampler.norm
        np.testing.assert_array_equal(restored.index, normal_sampler.index)
        np.testing.assert_array_equal(
            restored.transform(U_GRID), normal_sampler.transform(U_GRID)
        )

    def test_inconsistent_table(self, normal_sampler):
        """Test that mismatched arrays raise ValueError."""
        table = normal_sampler.export()
        bad = SamplerTable(
            xl=table.xl,
            xr=table.xr,
            norm=table.norm,
            tol=table.tol,
            endpoints=table.endpoints,
            a=table.a[:-1],
            b=table.b,
            index=table.index,
            has_density=table.has_density,
        )
        with pytest.raises(ValueError):
            Sampler.from_table(bad)

    def test_index_out_of_range(self, normal_sampler):
        """Test that index entries past the last interval are rejected."""
        table = normal_sampler.export()
        bad_index = table.index.copy()
        bad_index[-1] = normal_sampler.interval_count
        bad = SamplerTable(
            xl=table.xl,
            xr=table.xr,
            norm=table.norm,
            tol=table.tol,
            endpoints=table.endpoints,
            a=table.a,
            b=table.b,
            index=bad_index,
            has_density=table.has_density,
        )
        with pytest.raises(ValueError):
            Sampler.from_table(bad)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
