"""Kinematics, isobars, iterations, amplitudes and plots for Khuri-Treiman solutions of three-body decays."""

__version__ = "0.1.0"

__all__ = ["amplitude", "isobar", "iteration", "kinematics", "plot", "plot2d"]