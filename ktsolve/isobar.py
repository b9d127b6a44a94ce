"""Single-variable isobar functions built from an Omnes function and iterated dispersion integrals."""

from __future__ import annotations

import cmath
import math
import warnings
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import CubicSpline

from .iteration import BasisGrid, Iteration, Settings, _central_difference, _integrate
from .kinematics import EPS, Kinematics

PhaseShift = Callable[[float], float]
Kernel = Callable[[object, complex, complex], complex]
DrivingTerm = Callable[[complex], complex]


class Isobar:
    """One isobar of a three-body decay amplitude and the history of its iterations.

    The basis functions are Omega(s) * (P(s) + s^n / pi * I(s)), where Omega is the
    Omnes function of the elastic phase shift, P the polynomial driving term that
    belongs to this isobar (if any) and I the dispersion integral of the current
    iteration.
    """

    def __init__(
        self,
        kinematics: Kinematics,
        isobar_id: object,
        angular_momentum: int,
        phase_shift: Optional[PhaseShift] = None,
        *,
        n_basis: int = 1,
        driving_terms: Optional[Mapping[int, DrivingTerm]] = None,
        max_sub: int = 1,
        kernel: Optional[Kernel] = None,
        name: str = "isobar",
        settings: Optional[Settings] = None,
    ) -> None:
        if angular_momentum < 0:
            raise ValueError("angular momentum must be non-negative")
        if n_basis < 1:
            raise ValueError("an isobar needs at least one basis function")
        self._kin = kinematics
        self._id = isobar_id
        self._l = int(angular_momentum)
        self._phase = phase_shift
        self._n_basis = int(n_basis)
        self._driving_terms = dict(driving_terms or {})
        # No subtractions still leaves one power of s in front of the integral
        self._max_sub = int(max_sub) if max_sub else 1
        self._kernel = kernel
        self.name = name
        self._settings = settings if settings is not None else Settings()
        self._iterations: List[Iteration] = [Iteration.zeroth()]
        self._lhc_spline: Optional[CubicSpline] = None
        self._s_list, self._s_around_pth = self._build_grids()

    def __repr__(self) -> str:
        return f"Isobar(name={self.name!r}, id={self._id!r}, l={self._l})"

    # ------------------------------------------------------------------
    # Properties

    @property
    def isobar_id(self) -> object:
        return self._id

    @property
    def angular_momentum(self) -> int:
        return self._l

    @property
    def n_basis(self) -> int:
        return self._n_basis

    @property
    def max_sub(self) -> int:
        return self._max_sub

    @property
    def kinematics(self) -> Kinematics:
        return self._kin

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def s_list(self) -> List[float]:
        return list(self._s_list)

    @property
    def s_around_pth(self) -> List[float]:
        return list(self._s_around_pth)

    @property
    def iterations(self) -> Tuple[Iteration, ...]:
        return tuple(self._iterations)

    def get_iteration(self, index: Optional[int] = None) -> Iteration:
        """The iteration with the given index, or the latest one."""
        return self._iterations[-1 if index is None else index]

    # ------------------------------------------------------------------
    # Physics input, overridable by subclasses

    def phase_shift(self, s: float) -> float:
        """Elastic phase shift which drives the Omnes function."""
        if self._phase is None:
            raise ValueError("no phase shift given for this isobar")
        return float(self._phase(s))

    def ksf_kernel(self, isobar_id: object, s: complex, t: complex) -> complex:
        """Kernel of the angular average over the isobar with the given id."""
        if self._kernel is None:
            return 0j
        return complex(self._kernel(isobar_id, s, t))

    # ------------------------------------------------------------------
    # Grids

    def _build_grids(self) -> Tuple[List[float], List[float]]:
        st = self._settings
        pth = self._kin.pth
        eps = st.interpolation_offset

        # Regions of different graining, separated by small gaps to keep the grid increasing
        s0 = self._kin.sth
        s1 = pth - 1.5 * st.expansion_offsets[1] - eps
        s2 = pth + 1.5 * st.expansion_offsets[1]
        s3 = st.intermediate_energy
        s4 = st.cutoff
        if s3 <= s2 or s2 <= s1:
            warnings.warn(
                "Intermediate energy chosen below pseudo-threshold! May cause interpolation troubles...",
                UserWarning,
                stacklevel=3,
            )

        n0, n2, n4 = st.interpolation_points
        n1 = int((s1 - s0) / (s3 - s0) * n0)
        n3 = n0 - n1
        segments = (
            np.linspace(s0, s1, n1),
            np.linspace(s1 + eps, s2, n2),
            np.linspace(s2 + eps, s3, n3),
            np.linspace(s3 + eps, s4, n4),
        )
        s_list = [float(s) for s in np.concatenate(segments)]

        half = st.exclusion_points // 2
        below, above = st.exclusion_offsets
        around = np.concatenate(
            (
                np.linspace(pth - 2 * below, pth - below, half + 1),
                np.linspace(pth + above, pth + 2 * above, half + 1),
            )
        )
        return s_list, [float(s) for s in around]

    # ------------------------------------------------------------------
    # Omnes function and left-hand cut

    def _split_integral(self, integrand: Callable[[float], complex]) -> complex:
        st = self._settings
        low, mid, high = self._kin.sth, st.intermediate_energy, st.omnes_cutoff
        depth = st.omnes_integrator_depth
        return _integrate(integrand, low, mid, depth) + _integrate(integrand, mid, high, depth)

    def omnes(self, s: complex) -> complex:
        """Once-subtracted Omnes function of the phase shift on the first sheet."""
        s = complex(s)
        if s.imag < 0:
            return self.omnes(s.conjugate()).conjugate()

        inf = self._settings.infinitesimal
        if s.imag > inf:
            def far(x: float) -> complex:
                return self.phase_shift(x) * (s / x) / (x - s)

            return cmath.exp(self._split_integral(far) / math.pi)

        # Close to the real axis the principal value is handled by subtraction
        low = self._kin.sth
        shifted = s + 1j * inf
        rhc = 0.0 if s.real <= low else self.phase_shift(s.real)

        def near(x: float) -> complex:
            return (self.phase_shift(x) - rhc) * (s / x) / (x - shifted)

        integral = self._split_integral(near)
        logarithm = rhc * cmath.log(1 - shifted / low) if rhc else 0j
        return cmath.exp((integral - logarithm) / math.pi)

    def _interpolate_lhc(self) -> CubicSpline:
        ieps = 1j * self._settings.infinitesimal
        values = [math.sin(self.phase_shift(s)) / abs(self.omnes(s + ieps)) for s in self._s_list]
        return CubicSpline(self._s_list, values, bc_type="natural")

    def lhc(self, s: float) -> float:
        """sin(delta) / |Omega| on the right-hand cut, zero below threshold."""
        if s <= self._kin.sth:
            return 0.0
        if self._lhc_spline is None:
            self._lhc_spline = self._interpolate_lhc()
        return float(self._lhc_spline(s))

    # ------------------------------------------------------------------
    # Basis functions

    def basis_function(self, basis_id: int, s: complex, iteration: Optional[int] = None) -> complex:
        """Basis function at s from the given iteration, by default the latest one.

        Out-of-range iterations or basis functions give zero.
        """
        if iteration is None:
            iteration = len(self._iterations) - 1
        if not 0 <= iteration < len(self._iterations):
            return 0j
        if not 0 <= basis_id < self._n_basis:
            return 0j

        s = complex(s)
        term = self._driving_terms.get(basis_id)
        polynomial = complex(term(s)) if term is not None else 0j
        if abs(s) < EPS:
            return polynomial
        dispersive = s ** self._max_sub / math.pi * self._iterations[iteration].integral(basis_id, s)
        return self.omnes(s) * (polynomial + dispersive)

    def basis_derivative(self, basis_id: int, x: float, eps: float = 1e-5, order: int = 1) -> complex:
        """First or second derivative of a basis function along the real axis."""
        return _central_difference(lambda s: self.basis_function(basis_id, s), float(x), eps, order)

    def evaluate(self, s: complex, parameters: Sequence[complex]) -> complex:
        """Sum of the basis functions weighted by the subtraction parameters."""
        if len(parameters) != self._n_basis:
            raise ValueError(
                f"expected {self._n_basis} parameters, got {len(parameters)}"
            )
        return sum(
            (complex(p) * self.basis_function(i, s) for i, p in enumerate(parameters)),
            0j,
        )

    # ------------------------------------------------------------------
    # Iterating

    def calculate_next(self, previous: Sequence["Isobar"]) -> BasisGrid:
        """Tabulate the next discontinuity from the current state of the given isobars."""
        re_list: List[List[float]] = []
        im_list: List[List[float]] = []
        for i in range(self._n_basis):
            values = [
                self.lhc(s) / s ** self._max_sub * self.pinocchio_integral(i, s, previous)
                for s in self._s_list
            ]
            re_list.append([v.real for v in values])
            im_list.append([v.imag for v in values])
        return BasisGrid(
            n_singularity=2 * self._l + 1,
            s_list=list(self._s_list),
            s_around_pth=list(self._s_around_pth),
            re_list=re_list,
            im_list=im_list,
        )

    def pinocchio_integral(self, basis_id: int, s: float, previous: Sequence["Isobar"]) -> complex:
        """Angular average along the pinocchio path for real s above threshold."""
        kin = self._kin
        if s < kin.A:
            raise ValueError("Trying to evaluate angular integral below threshold!")

        region = (s > kin.B) + (s > kin.C) + (s > kin.D)
        if region == 2:
            return self._curved_segment(basis_id, s, previous)

        sp = kin.t_plus(s).real
        sm = kin.t_minus(s).real
        if region == 1:
            # t_plus lies above the cut, t_minus below it
            return self._linear_segment(basis_id, kin.sth, sp, +1, s, previous) + self._linear_segment(
                basis_id, sm, kin.sth, -1, s, previous
            )
        return self._linear_segment(basis_id, sm, sp, 0, s, previous)

    def _linear_segment(
        self,
        basis_id: int,
        lower: float,
        upper: float,
        sign: int,
        s: float,
        previous: Sequence["Isobar"],
    ) -> complex:
        shift = sign * 1j * self._settings.infinitesimal

        def integrand(t: float) -> complex:
            total = 0j
            for other in previous:
                kernel = self.ksf_kernel(other.isobar_id, s, t)
                if abs(kernel) < EPS:
                    continue
                total += kernel * other.basis_function(basis_id, t + shift)
            return total

        return _integrate(integrand, lower, upper, self._settings.angular_integrator_depth)

    def _curved_segment(self, basis_id: int, s: float, previous: Sequence["Isobar"]) -> complex:
        kin = self._kin

        def integrand(phi: float) -> complex:
            t = kin.t_curve(phi)
            total = 0j
            for other in previous:
                kernel = self.ksf_kernel(other.isobar_id, s, t)
                if abs(kernel) < EPS:
                    continue
                total += kernel * other.basis_function(basis_id, t)
            return total * kin.jacobian(phi)

        return _integrate(
            integrand, kin.phi_minus(s), kin.phi_plus(s), self._settings.angular_integrator_depth
        )

    def add_iteration(self, grid: BasisGrid) -> Iteration:
        """Interpolate a tabulated discontinuity and store it as the latest iteration."""
        iteration = Iteration(self._kin, grid, self._settings)
        self._iterations.append(iteration)
        return iteration

    def import_iteration(self, filename: str, n_basis: int) -> Iteration:
        """Load a discontinuity table with columns s, Re f_0, Im f_0, Re f_1, ... as the latest iteration."""
        data = np.loadtxt(filename, ndmin=2)
        expected = 2 * n_basis + 1
        if data.shape[1] != expected:
            raise ValueError(f"expected {expected} columns in {filename}, found {data.shape[1]}")
        columns = data.T
        s_list = [float(s) for s in columns[0]]
        if s_list[-1] < self._settings.cutoff:
            raise ValueError("Cutoff set to higher than imported data! Will cause interpolation errors.")
        self._s_list = s_list

        grid = BasisGrid(
            n_singularity=2 * self._l + 1,
            s_list=list(s_list),
            s_around_pth=list(self._s_around_pth),
            re_list=[list(columns[1 + 2 * i]) for i in range(n_basis)],
            im_list=[list(columns[2 + 2 * i]) for i in range(n_basis)],
        )
        return self.add_iteration(grid)