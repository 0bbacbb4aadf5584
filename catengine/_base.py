"""
Base utilities for the estimation engine.

This module provides the clamping constant, the logistic helper shared by the
binary and graded families, the error type used for numeric-domain failures
and the argument validators used across constructors.
"""

import math

import numpy as np

# Cube root of machine epsilon; keeps every probability away from 0 and 1.
EPS = (2.0**-52) ** (1.0 / 3.0)


class NumericDomainError(ValueError):
    """
    Raised when theta is too extreme for the model to produce usable values.

    Signals that category probabilities became indistinguishable or that a
    normalizer collapsed to zero or infinity. Callers should re-bracket theta
    or abort the current selection rather than retry.
    """


def logistic(x: float, clamp: bool = True) -> float:
    """
    Logistic transform ``exp(x) / (1 + exp(x))``.

    Overflow of ``exp(x)`` maps to ``1 - EPS`` instead of ``inf / inf``.
    With ``clamp=True`` the result is also clamped into ``[EPS, 1 - EPS]``.
    """
    try:
        e = math.exp(x)
    except OverflowError:
        return 1.0 - EPS
    if math.isinf(e):
        return 1.0 - EPS
    value = e / (1.0 + e)
    return clamp_probability(value) if clamp else value


def clamp_probability(p: float) -> float:
    """Clamp a probability into ``[EPS, 1 - EPS]``."""
    if p > 1.0 - EPS:
        return 1.0 - EPS
    if p < EPS:
        return EPS
    return p


def _validate_positive_int(name: str, value: int, min_value: int = 1) -> int:
    """Validate a positive integer hyperparameter."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    ivalue = int(value)
    if ivalue < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got {ivalue}")
    return ivalue


def _validate_positive_float(name: str, value: float) -> float:
    """Validate a finite, strictly positive scalar."""
    fvalue = float(value)
    if not np.isfinite(fvalue) or fvalue <= 0.0:
        raise ValueError(f"{name} must be a finite scalar > 0.0, got {value!r}")
    return fvalue


def _validate_finite_float(name: str, value: float) -> float:
    """Validate a finite scalar."""
    fvalue = float(value)
    if not np.isfinite(fvalue):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return fvalue


def _validate_bracket(lower: float, upper: float) -> tuple[float, float]:
    """Validate an ordered, finite interval."""
    lo = _validate_finite_float("lower", lower)
    hi = _validate_finite_float("upper", upper)
    if not lo < hi:
        raise ValueError(f"lower must be < upper, got [{lo}, {hi}]")
    return lo, hi


__all__ = [
    "EPS",
    "NumericDomainError",
    "logistic",
    "clamp_probability",
]
