import math

import pytest

from ktsolve.amplitude import Amplitude
from ktsolve.isobar import Isobar
from ktsolve.iteration import Settings
from ktsolve.kinematics import Kinematics
from ktsolve.plot2d import Plot2D


def _settings():
    return Settings(
        intermediate_energy=30.0,
        cutoff=60.0,
        interpolation_points=(30, 5, 10),
    )


def _isobar(kin, isobar_id="F", n_basis=2):
    terms = {0: lambda s: 1.0, 1: lambda s: s}
    return Isobar(
        kin,
        isobar_id,
        0,
        lambda s: 0.0,
        n_basis=n_basis,
        driving_terms={i: terms[i] for i in range(n_basis)},
        settings=_settings(),
    )


class SChannel(Amplitude):
    def prefactor_s(self, isobar_id, s, t, u):
        return 1.0


class AllChannels(Amplitude):
    def prefactor_s(self, isobar_id, s, t, u):
        return 1.0

    def prefactor_t(self, isobar_id, s, t, u):
        return 1.0

    def prefactor_u(self, isobar_id, s, t, u):
        return 1.0


class Identical(SChannel):
    def combinatorial_factor(self):
        return 2.0


@pytest.fixture
def kin():
    return Kinematics(4.0, 1.0)


@pytest.fixture
def constant(kin):
    return SChannel(kin, [_isobar(kin)], parameters=[2.0, 0.0])


def test_default_prefactors_give_zero(kin):
    amp = Amplitude(kin, [_isobar(kin)])
    assert amp.evaluate(5.0, 6.0) == 0


def test_s_channel_evaluation(kin):
    amp = SChannel(kin, [_isobar(kin)], parameters=[1.0, 3.0])
    assert amp.evaluate(5.0, 6.0) == pytest.approx(1.0 + 3.0 * 5.0)


def test_default_u_is_on_shell(kin):
    amp = AllChannels(kin, [_isobar(kin)], parameters=[0.0, 1.0])
    s, t = 5.0, 6.0
    u = kin.sigma - s - t
    assert amp.evaluate(s, t) == pytest.approx(amp.evaluate(s, t, u))
    assert amp.evaluate(s, t).real == pytest.approx(kin.sigma)


def test_parameters_round_trip(kin):
    amp = SChannel(kin, [_isobar(kin)])
    amp.set_parameters([1 + 2j, -3.0])
    assert amp.parameters == [1 + 2j, -3 + 0j]
    assert amp.n_pars == 2


def test_set_parameters_wrong_size(kin):
    amp = SChannel(kin, [_isobar(kin)])
    with pytest.raises(ValueError):
        amp.set_parameters([1.0])


def test_mismatched_isobars_rejected(kin):
    with pytest.raises(ValueError):
        Amplitude(kin, [_isobar(kin, "F", 2), _isobar(kin, "G", 1)])


def test_process_fitter_parameters_is_identity(kin):
    amp = SChannel(kin, [_isobar(kin)])
    assert amp.process_fitter_parameters([1.0, 2j]) == [1.0, 2j]


def test_prefactors_formula(kin):
    amp = SChannel(kin, [_isobar(kin)])
    assert amp.combinatorial_factor() == 1.0
    assert amp.prefactors() == pytest.approx(32 * (2 * math.pi * 4.0) ** 3)
    assert Identical(kin, [_isobar(kin)]).prefactors() == pytest.approx(2 * amp.prefactors())


def test_doubly_differential_width(constant):
    kin = constant.kinematics
    s = 6.0
    t = kin.sigma / 2 - s / 2
    assert constant.differential_width(s, t) == pytest.approx(4.0 / constant.prefactors())


def test_doubly_differential_width_outside(constant):
    with pytest.raises(ValueError):
        constant.differential_width(1.0, 1.0)


def test_singly_differential_width_constant(constant):
    kin = constant.kinematics
    s = 6.5
    length = (kin.t_plus(s) - kin.t_minus(s)).real
    expected = 4.0 / constant.prefactors() * length
    assert constant.differential_width(s) == pytest.approx(expected, rel=1e-8)


def test_singly_differential_width_outside(constant):
    with pytest.raises(ValueError):
        constant.differential_width(20.0)


def test_width_scales_quadratically(kin):
    small = SChannel(kin, [_isobar(kin)], parameters=[1.0, 0.0])
    large = SChannel(kin, [_isobar(kin)], parameters=[2.0, 0.0])
    assert small.width() > 0
    assert large.width() == pytest.approx(4 * small.width(), rel=1e-9)


def test_dalitz_parameters_constant(constant):
    for value in constant.dalitz_parameters(1e-3):
        assert value == pytest.approx(0.0, abs=1e-6)


def test_dalitz_parameters_linear_invariants(kin):
    amp = SChannel(kin, [_isobar(kin)], parameters=[0.0, 1.0])
    g, h, j, k, f = amp.dalitz_parameters(1e-3)
    assert g < 0
    assert g == pytest.approx(j, rel=1e-6)
    assert h == pytest.approx(k, rel=1e-4)
    assert f == pytest.approx(2 * k, rel=1e-4)


def test_dalitz_parameters_vanishing_centre(kin):
    amp = SChannel(kin, [_isobar(kin)], parameters=[0.0, 0.0])
    with pytest.raises(ValueError):
        amp.dalitz_parameters()


def test_plot_dalitz(constant, tmp_path):
    plot = constant.plot_dalitz("[GeV]", n=10)
    assert isinstance(plot, Plot2D)
    assert plot.xlabel.endswith("[GeV]")
    target = tmp_path / "dalitz.png"
    plot.save(str(target))
    assert target.stat().st_size > 0


def test_plot_re_im(constant):
    re_plot, im_plot = constant.plot_re_im(n=8)
    assert re_plot.title == r"Re$(A)$"
    assert im_plot.title == r"Im$(A)$"
    assert re_plot.xlabel == r"$\sigma_1$"


def test_plot_needs_two_points(constant):
    with pytest.raises(ValueError):
        constant.plot_dalitz(n=1)