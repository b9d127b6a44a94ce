# ktsolve

Numerical building blocks for solving Khuri–Treiman (KT) equations by
iteration. The equations describe the decay of one particle into three
particles of equal mass, for example ω → 3π or η → 3π.

The decay amplitude is split into single-variable *isobars*. Each isobar
starts from the Omnès function of its elastic phase shift. Each iteration
then adds a dispersion integral over a left-hand-cut discontinuity. That
discontinuity comes from angular averages of the other isobars, taken along
the complex "pinocchio" path. The dispersion integrals treat the
singularities at threshold, at pseudo-threshold and at the final-state
threshold analytically.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Main names | Purpose |
| --- | --- | --- |
| `ktsolve.kinematics` | `Kinematics` | Masses, thresholds, Kacser function, integration bounds, the curved part of the pinocchio path, the Dalitz boundary |
| `ktsolve.iteration` | `Settings`, `BasisGrid`, `Iteration` | Numerical settings, tabulated discontinuities, and the dispersion integrals of one iteration step |
| `ktsolve.isobar` | `Isobar` | Omnès function, basis functions, the next discontinuity, import of precomputed iterations |
| `ktsolve.amplitude` | `Amplitude` | Sum of isobars over the s, t and u channels, widths, Dalitz plot parameters, Dalitz plots |
| `ktsolve.plot` | `Plot`, `EntryStyle` | Line plots of curves, data points, bands, lines and shaded regions |
| `ktsolve.plot2d` | `Plot2D` | Colour maps of scattered data, optionally clipped to a polygon |

## Kinematics

`Kinematics(m_parent, m_daughter)` holds everything that depends only on the
masses. Thresholds and special points are properties (`sth`, `pth`, `rth`,
`sigma`, `s0`, `A`–`D`):

```python
from ktsolve.kinematics import Kinematics

kin = Kinematics(0.782, 0.138)        # parent mass and daughter mass

s = 0.3
print(kin.t_minus(s), kin.t_plus(s))  # limits of the angular integration
print(kin.in_decay_region(0.3, 0.2))  # inside the Dalitz region?

x, y = kin.dalitz_boundary(300)       # outline of the physical region
```

`phi_plus` and `phi_minus` raise `ValueError` for s outside
[`pth`, `rth`].

## Isobars

An `Isobar` gets an identifier, an angular momentum and a phase shift. It
also takes its subtraction structure and the kernel of the angular average.
You can pass these as callables, or override `phase_shift` and `ksf_kernel`
in a subclass:

```python
from ktsolve.isobar import Isobar

def delta(s):
    ...                               # elastic phase shift in radians

def kernel(other_id, s, t):
    ...                               # kernel for the isobar with id other_id

pwave = Isobar(
    kin, "P", 1, delta,
    n_basis=2,
    driving_terms={0: lambda s: 1, 1: lambda s: s},
    max_sub=2,
    kernel=kernel,
    name="pwave",
)
```

Every isobar begins with a zeroth iteration, so `basis_function(i, s)` is
the Omnès function times its driving term. Numerical choices are set with a
`ktsolve.iteration.Settings` instance passed as `settings=`. These include
cutoffs, grid sizes, integration depths, matching intervals and the
interpolation type (`"cspline"` or `"akima"`).

### Iterating

The package does not drive the iteration for you. `calculate_next` takes the
current isobars and tabulates the next discontinuity as a `BasisGrid`.
`add_iteration` interpolates that grid and stores it as the latest
iteration. Compute all grids first, so that each one is built from the same
step:

```python
isobars = [pwave]
for _ in range(4):
    grids = [iso.calculate_next(isobars) for iso in isobars]
    for iso, grid in zip(isobars, grids):
        iso.add_iteration(grid)

pwave.basis_function(0, 0.3 + 1e-9j)               # latest iteration
pwave.basis_function(0, 0.3 + 1e-9j, iteration=1)  # an earlier one
```

`Isobar.import_iteration(filename, n_basis)` reads back a whitespace-separated
table whose columns are s, Re f₀, Im f₀, Re f₁, Im f₁, …. It raises
`ValueError` if the column count is wrong or if the table ends below
`Settings.cutoff`.

## Amplitudes

An `Amplitude` combines isobars, which must all have the same number of basis
functions, with one shared set of subtraction parameters. The weight of each
isobar in each channel comes from mappings of isobar id to a constant or to a
callable of (s, t, u). You can also override `prefactor_s`, `prefactor_t`
and `prefactor_u` in a subclass:

```python
from ktsolve.amplitude import Amplitude

amp = Amplitude(
    kin, [pwave],
    s_prefactors={"P": 1}, t_prefactors={"P": 1}, u_prefactors={"P": 1},
    parameters=[300, 2.88j],
)

s, t = 0.2, 0.15
amp.evaluate(s, t)                   # u from the on-shell condition
amp.differential_width(s, t)         # doubly differential width
amp.differential_width(s)            # integrated over t
amp.width()                          # fully integrated width
g, h, j, k, f = amp.dalitz_parameters(1e-5, 0.138**2)
```

`differential_width` raises `ValueError` outside the decay region.
`set_parameters` raises `ValueError` when the number of parameters is wrong.
Override `combinatorial_factor` for identical particles in the final state,
and `process_fitter_parameters` to transform parameters.

## Plotting

`Plot` and `Plot2D` draw with matplotlib, either onto an axes you pass to
`draw(ax)` or straight to a file with `save(filename)`:

```python
from ktsolve.plot import Plot

p = Plot("pwave.pdf", xlabel="s", ylabel="F(s)")
p.add_function((0.0, 1.0), lambda s: pwave.basis_function(0, s + 1e-9j).real, "Re")
p.add_dashed_function((0.0, 1.0), lambda s: pwave.basis_function(0, s + 1e-9j).imag)
p.shade_region(kin.sth, kin.pth)
p.add_vertical(kin.rth)
p.save()
```

`Plot.save` warns and returns `False` if nothing has been added.
`Amplitude.plot_dalitz` and `Amplitude.plot_re_im` return `Plot2D` maps of
|A|, Re A and Im A over the decay region. `Kinematics.new_dalitz_plot` gives
an empty `Plot2D` that is already clipped to that region:

```python
amp.plot_dalitz("[GeV^2]", 100).save("dalitz.pdf")
```

## What is not included

- No phase shifts, kernels or channel prefactors for particular decays. You
  supply them yourself.
- No routine that runs the iteration loop or times it, and no export of a
  solution to files. Only import is provided.
- No fitting to data, and no readers for experimental data sets.
- No arranging of several plots on one page.
- No command-line program. The package is a library.