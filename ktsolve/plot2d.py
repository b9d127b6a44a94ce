"""Two-dimensional colour maps of scattered data, optionally clipped to a region."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import matplotlib
import numpy as np
from matplotlib.figure import Figure
from matplotlib.path import Path
from scipy.interpolate import griddata

_Bounds = Tuple[float, float]


def _as_vector(values: Sequence[float], name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional")
    return array


def _as_bounds(values: Sequence[float], name: str) -> _Bounds:
    low, high = (float(v) for v in values)
    if not low < high:
        raise ValueError(f"{name} must be an increasing pair")
    return low, high


@dataclass
class Plot2D:
    """A colour map of z(x, y) drawn on a regular grid interpolated from scattered points."""

    filename: str = ""
    title: str = ""
    xlabel: str = ""
    ylabel: str = ""
    nbins: int = 300
    ncontours: int = 256
    palette: str = "viridis"
    inverted: bool = False
    _data: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = field(
        default=None, init=False, repr=False
    )
    _region: Optional[Tuple[np.ndarray, np.ndarray]] = field(
        default=None, init=False, repr=False
    )
    _xbounds: Optional[_Bounds] = field(default=None, init=False, repr=False)
    _ybounds: Optional[_Bounds] = field(default=None, init=False, repr=False)
    _zbounds: Optional[_Bounds] = field(default=None, init=False, repr=False)

    def set_data(self, x, y, z) -> None:
        """Replace the scattered points to be plotted."""
        xs, ys, zs = (_as_vector(v, n) for v, n in ((x, "x"), (y, "y"), (z, "z")))
        if not len(xs) == len(ys) == len(zs):
            raise ValueError("x, y and z must have the same length")
        self._data = (xs, ys, zs)

    def set_region(self, x, y) -> None:
        """Restrict the drawn map to the polygon with the given vertices."""
        xs, ys = _as_vector(x, "x"), _as_vector(y, "y")
        if len(xs) != len(ys):
            raise ValueError("region x and y must have the same length")
        if len(xs) < 3:
            raise ValueError("a region needs at least three vertices")
        self._region = (xs, ys)

    def set_ranges(self, xrange, yrange, zrange=None) -> None:
        """Fix the axis ranges and, optionally, the colour scale."""
        self._xbounds = _as_bounds(xrange, "xrange")
        self._ybounds = _as_bounds(yrange, "yrange")
        if zrange is not None:
            self._zbounds = _as_bounds(zrange, "zrange")

    def _colormap(self):
        cmap = matplotlib.colormaps[self.palette].resampled(self.ncontours)
        return cmap.reversed() if self.inverted else cmap

    def draw(self, ax):
        """Draw the map onto a matplotlib axes and return the mesh artist."""
        if self._data is None:
            raise ValueError("no data to draw")
        x, y, z = self._data

        xs = np.linspace(x.min(), x.max(), self.nbins)
        ys = np.linspace(y.min(), y.max(), self.nbins)
        grid_x, grid_y = np.meshgrid(xs, ys)
        grid_z = np.ma.masked_invalid(
            griddata((x, y), z, (grid_x, grid_y), method="linear")
        )

        if self._region is not None:
            outline = Path(np.column_stack(self._region))
            inside = outline.contains_points(
                np.column_stack([grid_x.ravel(), grid_y.ravel()])
            ).reshape(grid_x.shape)
            grid_z = np.ma.masked_where(~inside, grid_z)

        vmin, vmax = self._zbounds if self._zbounds is not None else (None, None)
        mesh = ax.pcolormesh(
            grid_x,
            grid_y,
            grid_z,
            cmap=self._colormap(),
            shading="nearest",
            vmin=vmin,
            vmax=vmax,
        )
        ax.figure.colorbar(mesh, ax=ax)

        if self._region is not None:
            rx, ry = self._region
            ax.plot(np.append(rx, rx[0]), np.append(ry, ry[0]), color="black", linewidth=2)

        if self._xbounds is not None:
            ax.set_xlim(*self._xbounds)
        if self._ybounds is not None:
            ax.set_ylim(*self._ybounds)

        ax.set_title(self.title)
        ax.set_xlabel(self.xlabel)
        ax.set_ylabel(self.ylabel)
        return mesh

    def save(self, filename: Optional[str] = None) -> None:
        """Draw the map and write it to a file; a given filename replaces the stored one."""
        if filename is not None:
            self.filename = filename
        if not self.filename:
            raise ValueError("no filename given")
        figure = Figure()
        self.draw(figure.add_subplot())
        figure.savefig(self.filename)