"""One step of the iterative solution: interpolated discontinuities and their dispersion integrals."""

from __future__ import annotations

import cmath
import math
import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import Akima1DInterpolator, CubicSpline

from .kinematics import EPS, Kinematics

IEPS = 1j * EPS

# 15-point Kronrod rule with its embedded 7-point Gauss rule
_K15_NODES = (
    0.207784955007898467600689403773245,
    0.405845151377397166906606412076961,
    0.586087235467691130294144845693013,
    0.741531185599394439863864773280788,
    0.864864423359769072789712788640926,
    0.949107912342758524526189684047851,
    0.991455371120812639206854697526329,
)
_K15_WEIGHTS = (
    0.204432940075298892414161999234649,
    0.190350578064785409913256402421014,
    0.169004726639267902826583426598550,
    0.140653259715525918745189590510238,
    0.104790010322250183839876322541518,
    0.063092092629978553290700663189204,
    0.022935322010529224963732008058970,
)
_K15_CENTER_WEIGHT = 0.209482141084727828012999174891714
_G7_WEIGHTS = (
    0.381830050505118944950369775488975,
    0.279705391489276667901467771423780,
    0.129484966168869693270611432679082,
)
_G7_CENTER_WEIGHT = 0.417959183673469387755102040816327

# Coefficients of the expansions near the regular thresholds, by singularity order
_RTH_COEFFS = {
    1: ((15, -12, 4, 8), (-5, 8, -4, 4), (3, -4, 4, 8)),
    3: ((35, -20, 4, 8), (-21, 16, -4, 4), (15, -12, 4, 8)),
    5: ((63, -28, 4, 8), (-45, 24, -4, 4), (35, -20, 4, 8)),
    7: ((99, -36, 4, 8), (-77, 32, -4, 4), (63, -28, 4, 8)),
}

# Coefficients of the expansions near the pseudo-threshold, by sign(eps) * order
_PTH_COEFFS = {
    +1: ((-3, 3, -2), (3, -4, 4), (1, -1, 2)),
    -1: ((3, 3, 2), (-3, -4, -4), (1, 1, 2)),
    +3: ((-6, 5, -2), (-8, 8, -4), (3, -3, 2)),
    -3: ((6, 5, 2), (-8, -8, -4), (3, 3, 2)),
}


def _gk15(f: Callable[[float], complex], a: float, b: float) -> Tuple[complex, float]:
    centre = 0.5 * (a + b)
    half = 0.5 * (b - a)
    fc = f(centre)
    kronrod = _K15_CENTER_WEIGHT * fc
    gauss = _G7_CENTER_WEIGHT * fc
    for j, (node, weight) in enumerate(zip(_K15_NODES, _K15_WEIGHTS)):
        pair = f(centre - half * node) + f(centre + half * node)
        kronrod += weight * pair
        if j % 2 == 1:
            gauss += _G7_WEIGHTS[j // 2] * pair
    return kronrod * half, abs((kronrod - gauss) * half)


def _integrate(f: Callable[[float], complex], a: float, b: float, max_depth: int, tol: float = 1e-9) -> complex:
    """Adaptive Gauss-Kronrod quadrature with bisection up to max_depth levels."""
    value, error = _gk15(f, a, b)
    if max_depth <= 0 or error <= tol * abs(value):
        return value
    mid = 0.5 * (a + b)
    return _integrate(f, a, mid, max_depth - 1, tol) + _integrate(f, mid, b, max_depth - 1, tol)


def _central_difference(f: Callable[[float], complex], x: float, h: float, order: int) -> complex:
    """Four-point central finite difference of first or second order."""
    if order == 1:
        return (-f(x + 2 * h) + 8 * f(x + h) - 8 * f(x - h) + f(x - 2 * h)) / (12 * h)
    if order == 2:
        return (
            -f(x + 2 * h) + 16 * f(x + h) - 30 * f(x) + 16 * f(x - h) - f(x - 2 * h)
        ) / (12 * h * h)
    raise ValueError(f"unsupported derivative order {order}")


def _real_interpolator(x: np.ndarray, y: np.ndarray, kind: str):
    if kind == "cspline":
        return CubicSpline(x, y, bc_type="natural")
    if kind == "akima":
        return Akima1DInterpolator(x, y)
    raise ValueError(f"unknown interpolation type {kind!r}")


class _ComplexInterpolator:
    """Interpolation of a complex function from its real and imaginary parts."""

    def __init__(self, x: Sequence[float], re: Sequence[float], im: Sequence[float], kind: str) -> None:
        xs = np.asarray(x, dtype=float)
        self._re = _real_interpolator(xs, np.asarray(re, dtype=float), kind)
        self._im = _real_interpolator(xs, np.asarray(im, dtype=float), kind)

    def __call__(self, s: float, nu: int = 0) -> complex:
        return complex(float(self._re(s, nu)), float(self._im(s, nu)))


@dataclass
class Settings:
    """Integration, interpolation and matching parameters of the solution procedure."""

    infinitesimal: float = 1e-5
    interpolation_offset: float = 1e-3
    expansion_offsets: Tuple[float, float, float] = (1e-2, 5e-2, 1e-2)
    matching_intervals: Tuple[float, float, float] = (1e-2, 5e-2, 1e-2)
    exclusion_offsets: Tuple[float, float] = (1e-2, 1e-2)
    exclusion_points: int = 10
    intermediate_energy: float = 3.0
    cutoff: float = 20.0
    omnes_cutoff: float = 1000.0
    interpolation_points: Tuple[int, int, int] = (300, 20, 100)
    interpolation_type: str = "cspline"
    derivative_h: float = 1e-4
    omnes_integrator_depth: int = 5
    angular_integrator_depth: int = 5
    pseudo_integrator_depth: int = 5
    cauchy_integrator_depth: int = 5


@dataclass
class BasisGrid:
    """Tabulated discontinuities of every basis function on a grid of real s."""

    n_singularity: int
    s_list: Sequence[float]
    s_around_pth: Sequence[float] = field(default_factory=list)
    re_list: List[Sequence[float]] = field(default_factory=list)
    im_list: List[Sequence[float]] = field(default_factory=list)

    def n_basis(self) -> int:
        return len(self.re_list)


class Iteration:
    """Interpolated discontinuities of one isobar at a single step of the iteration.

    Constructed without a grid it is the zeroth iteration, whose integral vanishes.
    """

    def __init__(
        self,
        kinematics: Optional[Kinematics] = None,
        grid: Optional[BasisGrid] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._disc: List[_ComplexInterpolator] = []
        self._initialized = False
        if grid is None:
            self._zeroth = True
            return
        if kinematics is None:
            raise ValueError("an iteration with data needs kinematics")
        self._zeroth = False
        self._kin = kinematics
        self._settings = settings if settings is not None else Settings()
        self._n = int(grid.n_singularity)
        self._l = (self._n - 1) // 2
        self._sth, self._pth, self._rth = kinematics.sth, kinematics.pth, kinematics.rth
        self._build(grid)

    @classmethod
    def zeroth(cls) -> "Iteration":
        """The homogeneous iteration with a trivial inhomogeneity."""
        return cls()

    @property
    def is_zeroth(self) -> bool:
        return self._zeroth

    @property
    def n_basis(self) -> int:
        return len(self._disc)

    # ------------------------------------------------------------------
    # Setup

    def _build(self, grid: BasisGrid) -> None:
        if len(grid.re_list) != len(grid.im_list):
            raise ValueError("real and imaginary parts hold different numbers of basis functions")
        for re, im in zip(grid.re_list, grid.im_list):
            if not len(re) == len(im) == len(grid.s_list):
                raise ValueError("discontinuity tables do not match the s grid")

        kind = self._settings.interpolation_type
        self._disc = [
            _ComplexInterpolator(grid.s_list, re, im, kind)
            for re, im in zip(grid.re_list, grid.im_list)
        ]

        offsets = self._settings.expansion_offsets
        indices = range(len(self._disc))
        self._sth_expansion = [self._rthreshold_expansion(i, self._sth, +offsets[0]) for i in indices]
        self._below_rth_expansion = [self._rthreshold_expansion(i, self._rth, -offsets[2]) for i in indices]
        self._above_rth_expansion = [self._rthreshold_expansion(i, self._rth, +offsets[2]) for i in indices]
        self._below_pth_expansion = [self._pthreshold_expansion(i, -offsets[1]) for i in indices]
        self._above_pth_expansion = [self._pthreshold_expansion(i, +offsets[1]) for i in indices]

        # Values around the pseudo-threshold are interpolated across the singular region
        around = list(grid.s_around_pth)
        if not around:
            return
        self._excluded_above: List[_ComplexInterpolator] = []
        self._excluded_below: List[_ComplexInterpolator] = []
        for i in indices:
            plus = [self.integral(i, s + IEPS) for s in around]
            minus = [self.integral(i, s - IEPS) for s in around]
            self._excluded_above.append(
                _ComplexInterpolator(around, [z.real for z in plus], [z.imag for z in plus], "akima")
            )
            self._excluded_below.append(
                _ComplexInterpolator(around, [z.real for z in minus], [z.imag for z in minus], "akima")
            )
        self._initialized = True

    def _check_index(self, i: int) -> None:
        if not 0 <= i < len(self._disc):
            raise IndexError("Requested out of scope basis function!")

    # ------------------------------------------------------------------
    # Integrands

    def ksf_inhomogeneity(self, i: int, s: float) -> complex:
        """Interpolated discontinuity of basis function i, zero outside (sth, cutoff)."""
        self._check_index(i)
        s = float(s)
        if s <= self._sth or s >= self._settings.cutoff or self._zeroth:
            return 0j
        return self._disc[i](s)

    def half_regularized_integrand(self, i: int, s: float) -> complex:
        """The discontinuity divided by nu^n, expanded analytically near sth and rth."""
        self._check_index(i)
        s = float(s)
        if abs(s - self._sth) < self._settings.infinitesimal:
            return 0j

        xi = self._settings.matching_intervals
        nus = self._kin.nu(s, xi) ** self._n

        close_to_sth = abs(s - self._sth) < xi[0]
        close_to_rth = abs(s - self._rth) < xi[2]
        if not close_to_sth and not close_to_rth:
            return self.ksf_inhomogeneity(i, s) / nus

        if close_to_sth:
            s_exp, coeffs = self._sth, self._sth_expansion[i]
        else:
            s_exp = self._rth
            coeffs = self._above_rth_expansion[i] if s > self._rth else self._below_rth_expansion[i]

        expansion = sum(c * abs(s - s_exp) ** j for j, c in enumerate(coeffs))
        return expansion / nus

    def regularized_integrand(self, i: int, s: float) -> complex:
        """The integrand with the pseudo-threshold singularity subtracted as well."""
        self._check_index(i)
        s = float(s)
        if s < self._sth:
            return 0j

        xi = self._settings.matching_intervals[1]
        close_to_pth = abs(s - self._pth) < xi
        coeffs = self._below_pth_expansion[i] if s < self._pth else self._above_pth_expansion[i]
        ks = self._k(s)

        if not close_to_pth:
            subtracted = self.half_regularized_integrand(i, s)
            for j in range(self._l + 1):
                subtracted -= coeffs[j] * (self._pth - s) ** j
            return subtracted / ks ** self._n

        return sum(coeffs[j] * ks ** (j - 1 - self._l) for j in range(self._l + 1, len(coeffs)))

    # ------------------------------------------------------------------
    # Threshold expansions

    def _rthreshold_expansion(self, i: int, s: float, e: float) -> Tuple[complex, complex, complex]:
        table = _RTH_COEFFS.get(self._n)
        if table is None:
            warnings.warn(f"Invalid singularity order (n={self._n})!", UserWarning, stacklevel=2)
            nan = complex(math.nan, math.nan)
            return nan, nan, nan

        x = s + e
        disc = self._disc[i]
        f, fp, fpp = disc(x), disc(x, 1), disc(x, 2)
        return tuple(
            (c0 * f + c1 * e * fp + c2 * e * e * fpp) / (c3 * abs(e) ** (self._n / 2 + k))
            for k, (c0, c1, c2, c3) in enumerate(table)
        )

    def _pthreshold_expansion(self, i: int, epsilon: float) -> Tuple[complex, complex, complex, complex]:
        key = int(math.copysign(1, epsilon)) * self._n
        table = _PTH_COEFFS.get(key)
        if table is None:
            raise ValueError(f"Invalid singularity order (n={self._n})!")

        def f(s: float) -> complex:
            return self.half_regularized_integrand(i, s)

        h = self._settings.derivative_h
        x = self._pth + epsilon
        f0 = f(self._pth)
        fe = f(x)
        fp = _central_difference(f, x, h, 1)
        fpp = _central_difference(f, x, h, 2)

        e = abs(epsilon)
        higher = tuple(
            (c0 * (fe - f0) + c1 * e * fp + c2 * e * e * fpp) / e ** ((self._l + 1 + k) / 2)
            for k, (c0, c1, c2) in enumerate(table)
        )
        return (f0,) + higher

    # ------------------------------------------------------------------
    # Dispersion integrals

    def _k(self, s: complex) -> complex:
        """Square root of (pth - s) continued along the real axis."""
        s = complex(s)
        if abs(s.imag) >= self._settings.infinitesimal or s.real <= self._pth:
            return cmath.sqrt(self._pth - s)
        return 1j * cmath.sqrt(s - self._pth)

    def integral(self, i: int, s: complex) -> complex:
        """Dispersion integral over the discontinuity, without the Omnes factor."""
        s = complex(s)
        if abs(s) < EPS or self._zeroth:
            return 0j
        self._check_index(i)

        inf = self._settings.infinitesimal
        cutoff = self._settings.cutoff
        if s.real < self._sth or abs(s.imag) > inf:
            return self._disperse_with_pth(i, s, (self._sth, cutoff))

        x = s.real
        eps = inf if s.imag >= 0 else -inf
        p = (x + self._pth) / 2
        lower, upper = (self._sth, p), (p, cutoff)

        below, above = self._settings.exclusion_offsets
        if self._initialized and self._pth - below <= x <= self._pth + above:
            table = self._excluded_above if eps > 0 else self._excluded_below
            return table[i](x)

        z = complex(x, eps)
        if p <= self._pth:
            return self._disperse_with_cauchy(i, z, lower) + self._disperse_with_pth(i, z, upper)
        return self._disperse_with_pth(i, z, lower) + self._disperse_with_cauchy(i, z, upper)

    def _q(self, n: int, s: complex, bounds: Tuple[float, float]) -> complex:
        """Analytic integral of 1 / ((pth - x)^(n/2) (x - s)) over the bounds."""
        if n <= 0 or n % 2 == 0:
            return 0j
        ks, kx, ky = self._k(s), self._k(bounds[0]), self._k(bounds[1])
        if n == 1:
            return 2 * (cmath.atanh(kx / ks) - cmath.atanh(ky / ks)) / ks
        return (2 / ky - 2 / kx + self._q(n - 2, s, bounds)) / (self._pth - s) / (n - 2)

    def _disperse_with_pth(self, i: int, s: complex, bounds: Tuple[float, float]) -> complex:
        def integrand(x: float) -> complex:
            return self.regularized_integrand(i, x) / (x - s)

        depth = self._settings.pseudo_integrator_depth
        result = _integrate(integrand, bounds[0], self._pth, depth) + _integrate(
            integrand, self._pth, bounds[1], depth
        )
        coeffs = self._below_pth_expansion[i] if s.real < self._pth else self._above_pth_expansion[i]
        for j in range(self._l + 1):
            result += coeffs[j] * self._q(self._n - 2 * j, s, bounds)
        return result

    def _disperse_with_cauchy(self, i: int, s: complex, bounds: Tuple[float, float]) -> complex:
        a = self.half_regularized_integrand(i, s.real)

        def integrand(x: float) -> complex:
            return (self.half_regularized_integrand(i, x) - a) / (x - s) / self._k(x) ** self._n

        depth = self._settings.cauchy_integrator_depth
        result = _integrate(integrand, bounds[0], s.real, depth) + _integrate(
            integrand, s.real, bounds[1], depth
        )
        return result + a * self._q(self._n, s, bounds)