import cmath
import math

import numpy as np
import pytest
from matplotlib.figure import Figure

from ktsolve.kinematics import Kinematics


@pytest.fixture
def kin():
    return Kinematics(4.0, 1.0)


def test_threshold_ordering(kin):
    assert kin.sth < kin.pth < kin.rth
    assert kin.sigma == pytest.approx(3 * kin.s0)
    assert kin.A == kin.sth and kin.C == kin.pth and kin.D == kin.rth


def test_t_bounds_sum(kin):
    for s in (kin.sth + 0.1, 5.0, kin.pth - 0.1):
        total = kin.t_plus(s) + kin.t_minus(s)
        assert total == pytest.approx(kin.sigma - s)


def test_t_bounds_on_kibble_zero(kin):
    for s in (kin.sth + 0.2, 6.0, kin.pth - 0.2):
        for t in (kin.t_plus(s), kin.t_minus(s)):
            value = kin.kibble(s, t, kin.sigma - s - t)
            assert abs(value) < 1e-8 * kin.m2 * (kin.M2 - kin.m2) ** 2


def test_kacser_square_in_each_region(kin):
    for s in (kin.sth + 0.5, 0.5 * (kin.pth + kin.rth), kin.rth + 3.0):
        expected = (1 - kin.sth / s) * (kin.pth - s) * (kin.rth - s)
        assert kin.kacser(s) ** 2 == pytest.approx(expected)


def test_kacser_continuation_phases(kin):
    below = kin.kacser(kin.sth + 0.5)
    egg = kin.kacser(0.5 * (kin.pth + kin.rth))
    above = kin.kacser(kin.rth + 3.0)
    assert below.real > 0 and below.imag == 0
    assert egg.imag > 0 and egg.real == 0
    assert above.real < 0 and above.imag == 0


def test_kacser_complex_is_principal(kin):
    s = 5.0 + 0.5j
    expected = (
        cmath.sqrt(1 - kin.sth / s) * cmath.sqrt(kin.pth - s) * cmath.sqrt(kin.rth - s)
    )
    assert kin.kacser(s) == pytest.approx(expected)


def test_momentum_final_vanishes_at_threshold(kin):
    assert abs(kin.momentum_final(kin.sth)) < 1e-12


def test_momentum_initial_vanishes_at_pseudothreshold(kin):
    assert abs(kin.momentum_initial(kin.pth)) < 1e-6


def test_nu_relates_to_kacser(kin):
    for s in (kin.sth + 0.5, 6.0, kin.pth - 0.5):
        assert kin.nu(s) * math.sqrt(kin.pth - s) == pytest.approx(kin.kacser(s))


def test_nu_imaginary_above_rth(kin):
    value = kin.nu(kin.rth + 2.0)
    assert value.real == 0 and value.imag > 0


def test_centre_in_decay_region(kin):
    assert kin.in_decay_region(kin.s0, kin.s0)
    assert not kin.in_decay_region(kin.rth, kin.rth)


def test_phi_bounds_at_special_points(kin):
    assert kin.phi_plus(kin.pth) == 0.0
    assert kin.phi_plus(kin.rth) == math.pi
    assert kin.phi_minus(kin.pth) == pytest.approx(2 * math.pi)


def test_phi_bounds_symmetric(kin):
    s = 0.5 * (kin.pth + kin.rth)
    assert kin.phi_plus(s) + kin.phi_minus(s) == pytest.approx(2 * math.pi)


def test_phi_plus_outside_egg(kin):
    with pytest.raises(ValueError):
        kin.phi_plus(kin.pth - 1.0)
    with pytest.raises(ValueError):
        kin.phi_plus(kin.rth + 1.0)


def test_radius_at_right_angle(kin):
    assert kin.radius(math.pi / 2) == pytest.approx((kin.M2 - kin.m2) * kin.m / kin.sigma)


def test_t_curve_matches_radius_at_nodes(kin):
    for i in (0, 17, 42, 80):
        phi = 2 * math.pi * i / 99
        expected = kin.radius(phi) * cmath.exp(1j * phi)
        assert kin.t_curve(phi) == pytest.approx(expected, rel=1e-9, abs=1e-9)


def test_jacobian_is_derivative_at_nodes(kin):
    phi = 2 * math.pi * 30 / 99
    h = 1e-6
    numeric = (kin.t_curve(phi + h) - kin.t_curve(phi - h)) / (2 * h)
    assert kin.jacobian(phi) == pytest.approx(numeric, rel=1e-5)


def test_dalitz_boundary_shape(kin):
    ss, ts = kin.dalitz_boundary(50)
    assert len(ss) == len(ts) == 102
    assert ss[0] == pytest.approx(kin.sth)
    assert ss[50] == pytest.approx(kin.pth)
    assert ss[-1] == pytest.approx(kin.sth)
    assert ts[0] == pytest.approx(kin.t_plus(kin.sth).real)


def test_dalitz_boundary_rejects_zero(kin):
    with pytest.raises(ValueError):
        kin.dalitz_boundary(0)


def test_new_dalitz_plot_clips_region(kin):
    plot = kin.new_dalitz_plot("dalitz.png", 40)
    assert plot.filename == "dalitz.png"
    grid = np.linspace(kin.sth, kin.pth, 12)
    s, t = np.meshgrid(grid, grid)
    plot.nbins = 15
    plot.set_data(s.ravel(), t.ravel(), (s + t).ravel())
    figure = Figure()
    mesh = plot.draw(figure.add_subplot())
    mask = np.ma.getmaskarray(np.ma.asarray(mesh.get_array()))
    assert 0 < mask.sum() < mask.size