"""Kinematics of a one-to-three decay into equal-mass particles."""

from __future__ import annotations

import cmath
import math
from typing import List, Sequence, Tuple

import numpy as np
from scipy.interpolate import CubicSpline

from .plot2d import Plot2D

EPS = 1e-9

_N_INTERP = 100


def _is_zero(x: complex, tol: float = EPS) -> bool:
    return abs(x) < tol


def _are_equal(a: float, b: float, tol: float = EPS) -> bool:
    return abs(a - b) < tol


def _rsqrt(x: float) -> float:
    return math.sqrt(x) if x >= 0 else math.nan


def _kallen(a: complex, b: complex, c: complex) -> complex:
    return a * a + b * b + c * c - 2 * (a * b + b * c + c * a)


class Kinematics:
    """Masses, thresholds and integration contours of a decay M -> m m m."""

    def __init__(self, m_parent: float, m_daughter: float) -> None:
        self._m_parent = float(m_parent)
        self._m_daughter = float(m_daughter)
        self._curve_splines = None
        self._jacobian_splines = None
        self._interpolate_curve()

    def __repr__(self) -> str:
        return f"Kinematics(m_parent={self._m_parent!r}, m_daughter={self._m_daughter!r})"

    # ------------------------------------------------------------------
    # Masses and thresholds

    @property
    def M(self) -> float:
        return self._m_parent

    @property
    def m(self) -> float:
        return self._m_daughter

    @property
    def M2(self) -> float:
        return self.M * self.M

    @property
    def m2(self) -> float:
        return self.m * self.m

    @property
    def sth(self) -> float:
        """Two-particle threshold (2m)^2."""
        return 4.0 * self.m2

    @property
    def pth(self) -> float:
        """Pseudo-threshold (M - m)^2."""
        return (self.M - self.m) ** 2

    @property
    def rth(self) -> float:
        """Final-state threshold (M + m)^2."""
        return (self.M + self.m) ** 2

    @property
    def sigma(self) -> float:
        """Sum s + t + u on the mass shell."""
        return self.M2 + 3 * self.m2

    @property
    def r(self) -> float:
        return self.sigma / 3

    @property
    def s0(self) -> float:
        """Centre of the Dalitz plot."""
        return self.r

    @property
    def A(self) -> float:
        return self.sth

    @property
    def B(self) -> float:
        return (self.M2 - self.m2) / 2

    @property
    def C(self) -> float:
        return self.pth

    @property
    def D(self) -> float:
        return self.rth

    # ------------------------------------------------------------------
    # Momenta

    def momentum_initial(self, s: complex) -> complex:
        """Centre-of-mass momentum of the initial state."""
        s = complex(s)
        return cmath.sqrt(_kallen(s, self.M2, self.m2)) / cmath.sqrt(4 * s)

    def momentum_final(self, s: complex) -> complex:
        """Centre-of-mass momentum of the final state."""
        s = complex(s)
        return cmath.sqrt(_kallen(s, self.m2, self.m2)) / cmath.sqrt(4 * s)

    def kacser(self, s: complex) -> complex:
        """Kacser function 4pq with its continuation along the real axis."""
        s = complex(s)
        kappa = (
            cmath.sqrt(1 - self.sth / s)
            * cmath.sqrt(self.pth - s)
            * cmath.sqrt(self.rth - s)
        )
        if s.real < self.sth or not _is_zero(s.imag):
            return kappa
        region = (s.real >= self.pth) + (s.real > self.rth)
        if region == 0:
            return complex(abs(kappa))
        if region == 1:
            return 1j * abs(kappa)
        return complex(-abs(kappa))

    def kz(self, s: complex, t: complex) -> complex:
        return 2 * t + s - self.M2 - 3 * self.m2

    def nu(self, s: float, xi: Sequence[float] = (EPS, EPS, EPS)) -> complex:
        """Kacser function with the regular-threshold singularities removed."""
        sth, rth = self.sth, self.rth
        region = (
            (s >= sth + xi[0])
            + (s >= rth - xi[2])
            + (s >= rth)
            + (s >= rth + xi[2])
        )
        if region == 0:
            return complex(_rsqrt(rth - s) / _rsqrt(s)) if s > 0 else complex(math.nan)
        if region == 1:
            return complex(_rsqrt(rth - s) * _rsqrt(1 - sth / s))
        if region == 2:
            return complex(_rsqrt(1 - sth / s))
        if region == 3:
            return 1j * _rsqrt(1 - sth / s)
        return 1j * _rsqrt(s - rth) * _rsqrt(1 - sth / s)

    # ------------------------------------------------------------------
    # Boundaries of the physical regions

    def kibble(self, s: complex, t: complex, u: complex) -> complex:
        return s * t * u - self.m2 * (self.M2 - self.m2) ** 2

    def in_decay_region(self, s: float, t: float) -> bool:
        return complex(self.kibble(s, t, self.sigma - s - t)).real >= 0

    def t_plus(self, s: float) -> complex:
        return (self.sigma - s + self.kacser(s)) / 2

    def t_minus(self, s: float) -> complex:
        return (self.sigma - s - self.kacser(s)) / 2

    # ------------------------------------------------------------------
    # Curved part of the angular integration contour

    def _interpolate_curve(self) -> None:
        phis = np.linspace(0.0, 2 * math.pi, _N_INTERP)
        points = np.array([self.t_curve(phi) for phi in phis])
        re_curve = CubicSpline(phis, points.real, bc_type="natural")
        im_curve = CubicSpline(phis, points.imag, bc_type="natural")
        self._curve_splines = (re_curve, im_curve)

        re_deriv = re_curve.derivative()(phis)
        im_deriv = im_curve.derivative()(phis)
        self._jacobian_splines = (
            CubicSpline(phis, re_deriv, bc_type="natural"),
            CubicSpline(phis, im_deriv, bc_type="natural"),
        )

    def t_curve(self, phi: float) -> complex:
        """Point on the curved contour at polar angle phi."""
        if self._curve_splines is None:
            return self.radius(phi) * cmath.exp(1j * phi)
        re_curve, im_curve = self._curve_splines
        return complex(float(re_curve(phi)), float(im_curve(phi)))

    def jacobian(self, phi: float) -> complex:
        """Derivative of the curved contour with respect to phi."""
        re_jac, im_jac = self._jacobian_splines
        return complex(float(re_jac(phi)), float(im_jac(phi)))

    def phi_plus(self, s: float) -> float:
        """Upper angular bound on the curved contour for s in [pth, rth]."""
        if s > self.rth or s < self.pth:
            raise ValueError(f"s = {s} lies outside the egg region")
        cosine = (self.sigma - s) * math.sqrt(s) / (self.M2 - self.m2) / self.m / 2
        if not _are_equal(abs(cosine), 1):
            return math.acos(max(-1.0, min(1.0, cosine)))
        return 0.0 if cosine > 0 else math.pi

    def phi_minus(self, s: float) -> float:
        return 2 * math.pi - self.phi_plus(s)

    def radius(self, phi: float) -> float:
        """Modulus of the curved contour at polar angle phi."""
        cosphi = math.cos(phi)
        if _is_zero(cosphi):
            return (self.M2 - self.m2) * self.m / self.sigma
        arg = (cosphi * self.m * (self.M2 - self.m2)) ** 2
        arg *= 2 / (self.sigma / 3) ** 3
        theta = math.acos(max(-1.0, min(1.0, arg - 1))) / 3
        if cosphi < 0:
            return (self.sigma / 3) * (1 - 2 * math.cos(theta)) / 2 / cosphi
        return (self.sigma / 3) * (1 + 2 * math.cos(theta + math.pi / 3)) / 2 / cosphi

    # ------------------------------------------------------------------
    # Dalitz region

    def dalitz_boundary(self, n: int = 300) -> Tuple[List[float], List[float]]:
        """Boundary of the decay region: t_plus going up in s, then t_minus going back."""
        if n < 1:
            raise ValueError("n must be positive")
        ss: List[float] = []
        ts: List[float] = []
        for i in range(n + 1):
            s = self.sth + (self.pth - self.sth) * i / n
            ss.append(s)
            ts.append(self.t_plus(s).real)
        for i in range(n + 1):
            s = self.pth + (self.sth - self.pth) * i / n
            ss.append(s)
            ts.append(self.t_minus(s).real)
        return ss, ts

    def new_dalitz_plot(self, filename: str = "", n: int = 300) -> Plot2D:
        """A 2D plot clipped to the physical decay region."""
        plot = Plot2D(filename=filename)
        plot.set_region(*self.dalitz_boundary(n))
        return plot