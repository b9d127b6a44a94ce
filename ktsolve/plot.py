"""Line plots of curves, data points, bands and markers, drawn with matplotlib."""

from __future__ import annotations

import warnings
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Sequence, Tuple, Union

import numpy as np
from matplotlib.figure import Figure

PALETTE = (
    "tab:blue",
    "tab:red",
    "tab:green",
    "tab:orange",
    "tab:purple",
    "tab:brown",
    "tab:pink",
    "tab:olive",
    "tab:cyan",
    "tab:gray",
)

_MARKERS = ("o", "s", "^", "v", "D", "*", "P", "X")

DEFAULT_LINEWIDTH = 3.0
DEFAULT_MARKERWIDTH = 2.0


@dataclass
class EntryStyle:
    """How a single curve or set of points is drawn."""

    color: str = "black"
    linestyle: str = "solid"
    label: str = ""
    add_to_legend: bool = False
    marker: Optional[str] = None


@dataclass
class _Entry:
    kind: str
    x: np.ndarray
    y: np.ndarray
    style: EntryStyle
    yerr: Optional[np.ndarray] = None
    xerr: Optional[np.ndarray] = None
    hatch: Optional[str] = None


@dataclass
class _Line:
    value: float
    color: str
    linestyle: str


@dataclass
class _Shade:
    xmin: float
    xmax: float
    color: str


def _vector(values: Sequence[float], name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional")
    return array


def _same_length(*arrays: np.ndarray) -> None:
    if len({len(a) for a in arrays}) != 1:
        raise ValueError("all arrays must have the same length")


StyleArg = Union[EntryStyle, str, None]


class Plot:
    """A single figure of curves and data points that can be drawn or saved to file."""

    def __init__(
        self,
        filename: str = "",
        *,
        xlabel: str = "",
        ylabel: str = "",
        n_points: int = 100,
        xlog: bool = False,
        ylog: bool = False,
        xrange: Optional[Tuple[float, float]] = None,
        yrange: Optional[Tuple[float, float]] = None,
        legend: bool = True,
        legend_position: Optional[Tuple[float, float]] = None,
        preliminary: bool = False,
        print_points: bool = False,
        line_scale: float = 1.0,
    ) -> None:
        self.filename = filename
        self.xlabel = xlabel
        self.ylabel = ylabel
        self.n_points = n_points
        self.xlog = xlog
        self.ylog = ylog
        self.xrange = xrange
        self.yrange = yrange
        self.legend = legend
        self.legend_position = legend_position
        self.preliminary = preliminary
        self.print_points = print_points
        self.line_scale = line_scale
        self.header: Optional[str] = None

        self._entries: Deque[_Entry] = deque()
        self._vlines: List[_Line] = []
        self._hlines: List[_Line] = []
        self._shaded: List[_Shade] = []
        self._n_data = 0
        self._n_curve = -1
        self._n_legend = 0

    # ------------------------------------------------------------------
    # State

    @property
    def entries(self) -> Tuple[_Entry, ...]:
        """Entries in drawing order: data points and bands first, then curves."""
        return tuple(self._entries)

    @property
    def n_legend(self) -> int:
        """Number of entries expected on the legend."""
        return self._n_legend

    def color_offset(self, n: int) -> None:
        """Advance the running colour index by n."""
        self._n_curve += n

    def _current_color(self) -> str:
        return PALETTE[max(self._n_curve, 0) % len(PALETTE)]

    def _resolve_style(self, style: StyleArg) -> EntryStyle:
        if isinstance(style, EntryStyle):
            return style
        label = style or ""
        self._n_curve += 1
        return EntryStyle(
            color=self._current_color(),
            linestyle="solid",
            label=label,
            add_to_legend=bool(label),
        )

    def _sample(self, bounds: Sequence[float], f: Callable[[float], float]) -> Tuple[List[float], List[float]]:
        low, high = (float(b) for b in bounds)
        if self.n_points < 2:
            raise ValueError("n_points must be at least 2")
        if self.xlog:
            if low <= 0 or high <= 0:
                raise ValueError("logarithmic sampling needs positive bounds")
            xs = np.exp(np.linspace(np.log(low), np.log(high), self.n_points))
        else:
            xs = np.linspace(low, high, self.n_points)
        x_list, fx_list = [], []
        for x in xs:
            fx = float(f(float(x)))
            x_list.append(float(x))
            fx_list.append(fx)
            if self.print_points:
                print(float(x), fx)
        return x_list, fx_list

    # ------------------------------------------------------------------
    # Data points

    def add_data(self, x, y, yerr, xerr=None, color: str = "dimgrey") -> None:
        """Add data points with errors; each set gets its own marker."""
        xs, ys, dy = _vector(x, "x"), _vector(y, "y"), _vector(yerr, "yerr")
        dx = None if xerr is None else _vector(xerr, "xerr")
        _same_length(xs, ys, dy, *([] if dx is None else [dx]))

        style = EntryStyle(
            color=color,
            linestyle="none",
            marker=_MARKERS[self._n_data % len(_MARKERS)],
            add_to_legend=False,
        )
        self._n_data += 1
        self._n_legend += 1
        self._entries.appendleft(_Entry("data", xs, ys, style, yerr=dy, xerr=dx))

    # ------------------------------------------------------------------
    # Curves

    def add_curve(self, x, fx, style: StyleArg = None) -> None:
        """Add a curve from tabulated points; a string style is a legend label."""
        xs, ys = _vector(x, "x"), _vector(fx, "fx")
        _same_length(xs, ys)
        resolved = self._resolve_style(style)
        if resolved.add_to_legend:
            self._n_legend += 1
        self._entries.append(_Entry("curve", xs, ys, resolved))

    def add_function(self, bounds, f: Callable[[float], float], style: StyleArg = None) -> Tuple[List[float], List[float]]:
        """Sample f over the bounds, add it as a curve and return the sampled points."""
        resolved = self._resolve_style(style)
        xs, fxs = self._sample(bounds, f)
        self.add_curve(xs, fxs, resolved)
        return xs, fxs

    def add_dashed(self, x, fx) -> None:
        """Add a dashed curve in the colour of the latest full curve, kept off the legend."""
        xs, ys = _vector(x, "x"), _vector(fx, "fx")
        _same_length(xs, ys)
        style = EntryStyle(color=self._current_color(), linestyle="dashed", add_to_legend=False)
        self._entries.append(_Entry("curve", xs, ys, style))

    def add_dashed_function(self, bounds, f: Callable[[float], float]) -> Tuple[List[float], List[float]]:
        """Sample f over the bounds and add it as a dashed curve."""
        xs, fxs = self._sample(bounds, f)
        self.add_dashed(xs, fxs)
        return xs, fxs

    def add_band(self, x, lower, upper, fill: Optional[str] = None) -> None:
        """Add an error band between lower and upper; fill is an optional hatch pattern."""
        xs, lo, hi = _vector(x, "x"), _vector(lower, "lower"), _vector(upper, "upper")
        _same_length(xs, lo, hi)
        style = EntryStyle(color=self._current_color(), add_to_legend=False)
        self._entries.appendleft(
            _Entry("band", xs, (lo + hi) / 2, style, yerr=(hi - lo) / 2, hatch=fill)
        )

    # ------------------------------------------------------------------
    # Decorations

    def add_vertical(self, x, color: str = "black", linestyle: str = "dashed") -> None:
        """Add a vertical line at x, or one at each value of a sequence."""
        for value in np.atleast_1d(np.asarray(x, dtype=float)):
            self._vlines.append(_Line(float(value), color, linestyle))

    def add_horizontal(self, y, color: str = "black", linestyle: str = "solid") -> None:
        """Add a horizontal line at y, or one at each value of a sequence."""
        for value in np.atleast_1d(np.asarray(y, dtype=float)):
            self._hlines.append(_Line(float(value), color, linestyle))

    def shade_region(self, xmin: float, xmax: float, color: str = "grey") -> None:
        """Shade the vertical strip between xmin and xmax."""
        if xmax < xmin:
            raise ValueError("xmax must not be below xmin")
        self._shaded.append(_Shade(float(xmin), float(xmax), color))

    def add_header(self, text: str) -> None:
        """Set a header shown at the top of the legend."""
        self.header = text

    # ------------------------------------------------------------------
    # Output

    def draw(self, ax):
        """Draw everything onto a matplotlib axes and return it."""
        for entry in self._entries:
            style = entry.style
            label = style.label if style.add_to_legend else "_nolegend_"
            if entry.kind == "data":
                ax.errorbar(
                    entry.x,
                    entry.y,
                    yerr=entry.yerr,
                    xerr=entry.xerr,
                    fmt=style.marker or "o",
                    color=style.color,
                    alpha=0.9,
                    elinewidth=DEFAULT_MARKERWIDTH * self.line_scale,
                    label=label,
                )
            elif entry.kind == "band":
                ax.fill_between(
                    entry.x,
                    entry.y - entry.yerr,
                    entry.y + entry.yerr,
                    color=style.color,
                    alpha=0.25,
                    hatch=entry.hatch,
                    label=label,
                )
            else:
                ax.plot(
                    entry.x,
                    entry.y,
                    color=style.color,
                    linestyle=style.linestyle,
                    linewidth=DEFAULT_LINEWIDTH * self.line_scale,
                    alpha=0.9,
                    label=label,
                )

        if self.xlog:
            ax.set_xscale("log")
        if self.ylog:
            ax.set_yscale("log")
        if self.xrange is not None:
            ax.set_xlim(*self.xrange)
        if self.yrange is not None:
            ax.set_ylim(*self.yrange)

        xmin, xmax = ax.get_xlim()
        for shade in self._shaded:
            low, high = max(shade.xmin, xmin), min(shade.xmax, xmax)
            if low < high:
                ax.axvspan(low, high, color=shade.color, alpha=0.1, linewidth=0)
        ax.set_xlim(xmin, xmax)

        width = 0.7 * self.line_scale * DEFAULT_LINEWIDTH
        for line in self._vlines:
            ax.axvline(line.value, color=line.color, linestyle=line.linestyle, linewidth=width, alpha=0.7)
        for line in self._hlines:
            ax.axhline(line.value, color=line.color, linestyle=line.linestyle, linewidth=width, alpha=0.7)

        ax.set_xlabel(self.xlabel)
        ax.set_ylabel(self.ylabel)

        if self.preliminary:
            ax.text(
                0.33, 0.15, "PRELIMINARY",
                transform=ax.transAxes, color="grey", alpha=0.5, fontsize=24,
            )

        location = {}
        if self.legend_position is not None:
            location = {"loc": "lower left", "bbox_to_anchor": tuple(self.legend_position)}
        handles, labels = ax.get_legend_handles_labels()
        if self.legend and (handles or self.header):
            ax.legend(handles, labels, title=self.header, frameon=False, **location)
        elif self.header:
            ax.legend(handles=[], labels=[], title=self.header, frameon=False, **location)
        return ax

    def save(self, filename: Optional[str] = None) -> bool:
        """Draw the plot and write it to file; returns False when there is nothing to draw."""
        if filename is not None:
            self.filename = filename
        if not self._entries:
            warnings.warn("No entries added! Nothing saved.", UserWarning, stacklevel=2)
            return False
        if not self.filename:
            raise ValueError("no filename given")
        figure = Figure()
        self.draw(figure.add_subplot())
        figure.savefig(self.filename)
        return True