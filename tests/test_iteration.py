import numpy as np
import pytest

from ktsolve.iteration import IEPS, BasisGrid, Iteration, Settings
from ktsolve.kinematics import Kinematics

KIN = Kinematics(5.0, 1.0)  # sth = 4, pth = 16, rth = 36
S_LIST = np.linspace(4.0, 60.0, 561)


def make_settings():
    return Settings(
        cutoff=50.0,
        intermediate_energy=40.0,
        pseudo_integrator_depth=0,
        cauchy_integrator_depth=0,
    )


def around_pth(settings):
    n = settings.exclusion_points // 2
    e0, e1 = settings.exclusion_offsets
    pth = KIN.pth
    return list(np.linspace(pth - 2 * e0, pth - e0, n + 1)) + list(
        np.linspace(pth + e1, pth + 2 * e1, n + 1)
    )


def first_re(s):
    return np.sin(s / 7.0) * (s - 4.0)


def first_im(s):
    return 0.05 * (s - 4.0) ** 1.5


def second_re(s):
    return np.cos(s / 5.0) * (s - 4.0) / 10.0


def second_im(s):
    return 0.01 * (s - 4.0) ** 2


def make_grid(n=1, settings=None, with_sum=False):
    settings = settings or make_settings()
    re = [first_re(S_LIST), second_re(S_LIST)]
    im = [first_im(S_LIST), second_im(S_LIST)]
    if with_sum:
        re.append(re[0] + 2 * re[1])
        im.append(im[0] + 2 * im[1])
    return BasisGrid(
        n_singularity=n,
        s_list=list(S_LIST),
        s_around_pth=around_pth(settings),
        re_list=re,
        im_list=im,
    )


@pytest.fixture(scope="module")
def s_wave():
    settings = make_settings()
    return Iteration(KIN, make_grid(1, settings), settings)


@pytest.fixture(scope="module")
def summed():
    settings = make_settings()
    return Iteration(KIN, make_grid(1, settings, with_sum=True), settings)


def test_grid_counts_basis_functions():
    assert make_grid().n_basis() == 2
    assert make_grid(with_sum=True).n_basis() == 3


def test_zeroth_integral_vanishes():
    zeroth = Iteration.zeroth()
    assert zeroth.is_zeroth
    assert zeroth.integral(0, 10.0 + 1j) == 0


def test_zeroth_has_no_discontinuity():
    with pytest.raises(IndexError):
        Iteration.zeroth().ksf_inhomogeneity(0, 10.0)


def test_inhomogeneity_matches_data_at_nodes(s_wave):
    for k in (50, 120, 300):
        s = S_LIST[k]
        expected = complex(first_re(s), first_im(s))
        assert s_wave.ksf_inhomogeneity(0, s) == pytest.approx(expected, rel=1e-9, abs=1e-12)


@pytest.mark.parametrize("s", [3.0, 4.0, 50.0, 55.0])
def test_inhomogeneity_vanishes_outside_range(s_wave, s):
    assert s_wave.ksf_inhomogeneity(0, s) == 0


def test_out_of_range_basis_index(s_wave):
    with pytest.raises(IndexError):
        s_wave.ksf_inhomogeneity(2, 10.0)
    with pytest.raises(IndexError):
        s_wave.half_regularized_integrand(5, 10.0)
    with pytest.raises(IndexError):
        s_wave.regularized_integrand(2, 10.0)
    with pytest.raises(IndexError):
        s_wave.integral(2, 10.0 + 1j)


def test_half_regularized_vanishes_at_threshold(s_wave):
    assert s_wave.half_regularized_integrand(0, KIN.sth) == 0


def test_regularized_vanishes_below_threshold(s_wave):
    assert s_wave.regularized_integrand(1, 3.0) == 0


def test_integral_vanishes_at_origin(s_wave):
    assert s_wave.integral(0, 0.0) == 0


@pytest.mark.parametrize("s", [-3.0, 10.0, 25.0, 20.0 + 2.0j, 45.0])
def test_integral_is_linear_in_discontinuity(summed, s):
    combined = summed.integral(2, s)
    expected = summed.integral(0, s) + 2 * summed.integral(1, s)
    assert combined == pytest.approx(expected, rel=1e-8, abs=1e-10)


@pytest.mark.parametrize("x", [6.0, 12.0, 20.0, 30.0])
def test_integrands_are_linear(summed, x):
    for method in (summed.half_regularized_integrand, summed.regularized_integrand):
        assert method(2, x) == pytest.approx(method(0, x) + 2 * method(1, x), rel=1e-8, abs=1e-12)


@pytest.mark.parametrize("n", [1, 3])
def test_excluded_region_joins_direct_evaluation(n):
    settings = make_settings()
    iteration = Iteration(KIN, make_grid(n, settings), settings)
    edge = KIN.pth - settings.exclusion_offsets[0]
    outside = iteration.integral(0, edge - 1e-7 + IEPS)
    inside = iteration.integral(0, edge + 1e-7 + IEPS)
    assert abs(outside - inside) <= 1e-4 * max(1.0, abs(outside))


def test_integral_decays_far_from_axis(s_wave):
    near = s_wave.integral(0, 1e4j)
    far = s_wave.integral(0, 1e8j)
    assert abs(far) < abs(near) / 100


def test_unsupported_singularity_order():
    with pytest.raises(ValueError):
        Iteration(KIN, make_grid(5), make_settings())


def test_invalid_singularity_order_warns():
    with pytest.warns(UserWarning):
        with pytest.raises(ValueError):
            Iteration(KIN, make_grid(2), make_settings())


def test_mismatched_tables_rejected():
    grid = make_grid()
    grid.re_list[0] = grid.re_list[0][:-1]
    with pytest.raises(ValueError):
        Iteration(KIN, grid, make_settings())