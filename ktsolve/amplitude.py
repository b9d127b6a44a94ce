"""Full one-to-three decay amplitude assembled from isobars in the s, t and u channels."""

from __future__ import annotations

import math
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .isobar import Isobar
from .iteration import _central_difference, _integrate
from .kinematics import EPS, Kinematics
from .plot2d import Plot2D

PrefactorEntry = Union[complex, float, Callable[[complex, complex, complex], complex]]


def _mixed_partial(f, x: float, y: float, h: float) -> float:
    """Central finite-difference estimate of d^2 f / dx dy."""
    return (f(x + h, y + h) - f(x + h, y - h) - f(x - h, y + h) + f(x - h, y - h)) / (4 * h * h)


def _channel_term(
    table: Mapping[object, PrefactorEntry], isobar_id: object, s: complex, t: complex, u: complex
) -> complex:
    """Look up the prefactor of an isobar in one channel; absent isobars contribute zero."""
    entry = table.get(isobar_id)
    if entry is None:
        return 0j
    if callable(entry):
        return complex(entry(s, t, u))
    return complex(entry)


class Amplitude:
    """Sum of isobars weighted by channel prefactors.

    The channel structure is given either by mappings from isobar id to a
    prefactor (a constant or a callable of s, t, u) passed to the constructor,
    or by overriding ``prefactor_s``, ``prefactor_t`` and ``prefactor_u`` in a
    subclass. Isobars without an entry do not contribute to that channel.
    All isobars share one set of subtraction parameters, one per basis function.
    """

    def __init__(
        self,
        kinematics: Kinematics,
        isobars: Iterable[Isobar] = (),
        name: str = "amplitude",
        parameters: Optional[Sequence[complex]] = None,
        s_prefactors: Optional[Mapping[object, PrefactorEntry]] = None,
        t_prefactors: Optional[Mapping[object, PrefactorEntry]] = None,
        u_prefactors: Optional[Mapping[object, PrefactorEntry]] = None,
    ) -> None:
        self._kin = kinematics
        self.name = name
        self._isobars: List[Isobar] = list(isobars)
        sizes = {iso.n_basis for iso in self._isobars}
        if len(sizes) > 1:
            raise ValueError("all isobars must share the same number of basis functions")
        self._n_basis = sizes.pop() if sizes else 0
        self._parameters: List[complex] = [1 + 0j] * self._n_basis
        self._s_terms = dict(s_prefactors or {})
        self._t_terms = dict(t_prefactors or {})
        self._u_terms = dict(u_prefactors or {})
        if parameters is not None:
            self.set_parameters(parameters)

    def __repr__(self) -> str:
        return f"Amplitude(name={self.name!r}, isobars={len(self._isobars)})"

    # ------------------------------------------------------------------
    # Accessors

    @property
    def kinematics(self) -> Kinematics:
        return self._kin

    @property
    def isobars(self) -> Tuple[Isobar, ...]:
        return tuple(self._isobars)

    @property
    def n_pars(self) -> int:
        """Number of free subtraction parameters."""
        return self._n_basis

    @property
    def parameters(self) -> List[complex]:
        return list(self._parameters)

    def set_parameters(self, pars: Sequence[complex]) -> None:
        """Replace the subtraction parameters."""
        pars = [complex(p) for p in pars]
        if len(pars) != self._n_basis:
            raise ValueError(
                f"Parameter vector of unexpected size: expected {self._n_basis}, got {len(pars)}"
            )
        self._parameters = pars

    def process_fitter_parameters(self, pars: Sequence[complex]) -> List[complex]:
        """Hook to transform parameters handed over by a fitter; the identity by default."""
        return list(pars)

    # ------------------------------------------------------------------
    # Channel structure

    def combinatorial_factor(self) -> float:
        """Factor dividing the width, e.g. for identical particles."""
        return 1.0

    def prefactor_s(self, isobar_id: object, s: complex, t: complex, u: complex) -> complex:
        """Weight of the isobar evaluated at s."""
        return _channel_term(self._s_terms, isobar_id, s, t, u)

    def prefactor_t(self, isobar_id: object, s: complex, t: complex, u: complex) -> complex:
        """Weight of the isobar evaluated at t."""
        return _channel_term(self._t_terms, isobar_id, s, t, u)

    def prefactor_u(self, isobar_id: object, s: complex, t: complex, u: complex) -> complex:
        """Weight of the isobar evaluated at u."""
        return _channel_term(self._u_terms, isobar_id, s, t, u)

    def prefactors(self) -> float:
        """Inverse normalisation of the differential width."""
        return 32 * (2 * math.pi * self._kin.M) ** 3 * self.combinatorial_factor()

    # ------------------------------------------------------------------
    # Evaluation

    def evaluate(self, s: complex, t: complex, u: Optional[complex] = None) -> complex:
        """The amplitude; u defaults to the on-shell value Sigma - s - t."""
        if u is None:
            u = self._kin.sigma - s - t
        result = 0j
        channels = (
            (self.prefactor_s, s),
            (self.prefactor_t, t),
            (self.prefactor_u, u),
        )
        for prefactor, variable in channels:
            for iso in self._isobars:
                term = complex(prefactor(iso.isobar_id, s, t, u))
                if abs(term) < EPS:
                    continue
                result += term * iso.evaluate(variable, self._parameters)
        return result

    # ------------------------------------------------------------------
    # Widths

    def differential_width(self, s: float, t: Optional[float] = None) -> float:
        """Doubly differential width in (s, t), or singly differential in s when t is omitted."""
        kin = self._kin
        if t is not None:
            u = kin.sigma - s - t
            if complex(kin.kibble(s, t, u)).real < 0:
                raise ValueError("Evaluating outside decay region!")
            return abs(self.evaluate(s, t, u)) ** 2 / self.prefactors()

        if not kin.sth <= s <= kin.pth:
            raise ValueError("Evaluating outside decay region!")

        def integrand(tt: float) -> float:
            return abs(self.evaluate(s, tt, kin.sigma - s - tt)) ** 2 / self.prefactors()

        low = kin.t_minus(s).real
        high = kin.t_plus(s).real
        return float(_integrate(integrand, low, high, 0).real)

    def width(self) -> float:
        """Width integrated over the whole decay region."""
        kin = self._kin
        return float(_integrate(self.differential_width, kin.sth, kin.pth, 0).real)

    # ------------------------------------------------------------------
    # Dalitz plot parameters

    def dalitz_parameters(self, eps: float = 1e-5, m2: Optional[float] = None) -> Tuple[float, ...]:
        """Dalitz plot parameters (g, h, j, k, f) in the convention used for K -> 3 pi.

        m2 sets the scale of the Dalitz variables and defaults to the daughter mass squared.
        """
        if m2 is None:
            m2 = self._kin.m2
        s0 = self._kin.s0
        norm = abs(self.evaluate(s0, s0)) ** 2
        if norm == 0:
            raise ValueError("amplitude vanishes at the centre of the Dalitz plot")

        def f(s: float, u: float) -> float:
            return abs(self.evaluate(s, 3 * s0 - s - u)) ** 2 / norm

        def fs(s: float) -> float:
            return f(s, s0)

        def fu(u: float) -> float:
            return f(s0, u)

        dfds = _central_difference(fs, s0, eps, 1)
        dfdu = _central_difference(fu, s0, eps, 1)
        d2fds2 = _central_difference(fs, s0, eps, 2)
        d2fdu2 = _central_difference(fu, s0, eps, 2)
        d2fdsdu = _mixed_partial(f, s0, s0, eps)

        c = -m2 / 2
        dfdx = c * dfds
        dfdy = c * (dfds - 2 * dfdu)
        d2fdx2 = c * c * d2fds2
        d2fdxdy = c * c * (d2fds2 - 2 * d2fdsdu)
        d2fdy2 = c * c * (d2fds2 - 4 * d2fdsdu + 4 * d2fdu2)

        g = dfdy
        h = d2fdy2 / 2
        j = dfdx
        k = d2fdx2 / 2
        fpar = d2fdxdy
        return tuple(float(complex(v).real) for v in (g, h, j, k, fpar))

    # ------------------------------------------------------------------
    # Plots

    def _grid(self, n: int):
        if n < 2:
            raise ValueError("n must be at least 2")
        kin = self._kin
        smin, smax = kin.sth, kin.pth
        for i in range(n):
            si = smin + (smax - smin) * i / (n - 1)
            tmin = kin.t_minus(si).real
            tmax = kin.t_plus(si).real
            for j in range(n):
                tij = tmin + (tmax - tmin) * j / (n - 1)
                yield si, tij, self.evaluate(si, tij, kin.sigma - si - tij)

    @staticmethod
    def _labels(units: str) -> Tuple[str, str]:
        xlabel, ylabel = r"$\sigma_1$", r"$\sigma_2$"
        if units:
            xlabel += " " + units
            ylabel += " " + units
        return xlabel, ylabel

    def plot_re_im(self, units: str = "", n: int = 100) -> List[Plot2D]:
        """Plots of the real and imaginary parts over the decay region."""
        points = list(self._grid(n))
        s = [p[0] for p in points]
        t = [p[1] for p in points]
        xlabel, ylabel = self._labels(units)

        plots = []
        for title, part in ((r"Re$(A)$", lambda z: z.real), (r"Im$(A)$", lambda z: z.imag)):
            plot = self._kin.new_dalitz_plot()
            plot.set_data(s, t, [part(p[2]) for p in points])
            plot.title = title
            plot.xlabel, plot.ylabel = xlabel, ylabel
            plots.append(plot)
        return plots

    def plot_dalitz(self, units: str = "", n: int = 100) -> Plot2D:
        """Plot of |A| over the decay region."""
        points = list(self._grid(n))
        plot = self._kin.new_dalitz_plot()
        plot.set_data([p[0] for p in points], [p[1] for p in points], [abs(p[2]) for p in points])
        plot.xlabel, plot.ylabel = self._labels(units)
        return plot