"""
Prior distributions on the latent trait.

Method context:
    Estimators use a prior in two places. Bayesian point estimates integrate
    the density against the likelihood

    .. math::
        \\hat\\theta_{\\text{EAP}}
        =
        \\frac{\\int \\theta\\,\\pi(\\theta)L(\\theta)\\,d\\theta}
             {\\int \\pi(\\theta)L(\\theta)\\,d\\theta},

    and the root-finding estimates regularize the score with the quadratic
    prior term

    .. math::
        \\frac{\\partial}{\\partial\\theta}\\log\\pi(\\theta)
        \\approx -\\frac{\\theta-\\mu}{\\sigma^2},

    where ``mu = param0`` and ``sigma = param1``. This module defines reusable
    prior classes exposing both pieces through a common ``Prior`` interface.

"""

from abc import ABC, abstractmethod
from typing import Callable

import numpy as np
from scipy.stats import norm, t

from ._base import _validate_finite_float, _validate_positive_float


class Prior(ABC):
    """
    Abstract interface for priors on the latent trait ``theta``.

    Notes:
        Priors are immutable once built. ``param1`` is always strictly
        positive.
    """

    @abstractmethod
    def density(self, theta: float) -> float:
        """
        Evaluate the prior density at ``theta``.

        Args:
            theta: Latent trait value.

        Returns:
            Positive density value.
        """
        pass

    @property
    @abstractmethod
    def param0(self) -> float:
        """Location parameter."""

    @property
    @abstractmethod
    def param1(self) -> float:
        """Scale parameter, strictly positive."""

    def __call__(self, theta: float) -> float:
        return self.density(theta)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(param0={self.param0}, param1={self.param1})"


class NormalPrior(Prior):
    """
    Gaussian prior on the latent trait.

    Args:
        mean: Prior location.
        sd: Positive prior standard deviation.

    Formula:
        .. math::
            \\pi(\\theta) = \\frac{1}{\\mathrm{sd}}\\,
            \\phi\\left(\\frac{\\theta-\\mathrm{mean}}{\\mathrm{sd}}\\right)

    Examples:
        >>> prior = NormalPrior(mean=0.0, sd=1.0)
        >>> round(prior.density(0.0), 6)
        0.398942
    """

    def __init__(self, mean: float = 0.0, sd: float = 1.0):
        """
        Initialize Gaussian prior parameters.

        Raises:
            ValueError: If ``sd <= 0`` or either value is not finite.
        """
        self.mean = _validate_finite_float("mean", mean)
        self.sd = _validate_positive_float("sd", sd)

    def density(self, theta: float) -> float:
        return float(norm.pdf(theta, loc=self.mean, scale=self.sd))

    @property
    def param0(self) -> float:
        return self.mean

    @property
    def param1(self) -> float:
        return self.sd


class StudentTPrior(Prior):
    """
    Location-scale Student-t prior on the latent trait.

    Method context:
        Heavy-tailed alternative to :class:`NormalPrior` that shrinks extreme
        estimates less aggressively.

    Args:
        loc: Prior location.
        scale: Positive scale.
        df: Positive degrees of freedom.

    Examples:
        >>> prior = StudentTPrior(loc=0.0, scale=1.0, df=1.0)
        >>> round(prior.density(0.0), 6)
        0.31831
    """

    def __init__(self, loc: float = 0.0, scale: float = 1.0, df: float = 1.0):
        self.loc = _validate_finite_float("loc", loc)
        self.scale = _validate_positive_float("scale", scale)
        self.df = _validate_positive_float("df", df)

    def density(self, theta: float) -> float:
        return float(t.pdf(theta, self.df, loc=self.loc, scale=self.scale))

    @property
    def param0(self) -> float:
        return self.loc

    @property
    def param1(self) -> float:
        return self.scale


class CustomPrior(Prior):
    """
    User-defined prior density wrapper.

    Args:
        density_fn: Callable mapping ``theta`` to a positive density.
        param0: Location used by the regularized score.
        param1: Positive scale used by the regularized score.

    Examples:
        >>> prior = CustomPrior(lambda x: float(np.exp(-abs(x)) / 2.0), 0.0, 1.0)
        >>> prior.density(0.0)
        0.5
    """

    def __init__(
        self,
        density_fn: Callable[[float], float],
        param0: float = 0.0,
        param1: float = 1.0,
    ):
        """
        Raises:
            ValueError: If ``density_fn`` is not callable or ``param1 <= 0``.
        """
        if not callable(density_fn):
            raise ValueError("density_fn must be callable")
        self._density_fn = density_fn
        self._param0 = _validate_finite_float("param0", param0)
        self._param1 = _validate_positive_float("param1", param1)

    def density(self, theta: float) -> float:
        return float(self._density_fn(theta))

    @property
    def param0(self) -> float:
        return self._param0

    @property
    def param1(self) -> float:
        return self._param1


def coerce_prior(prior: Prior | float | None) -> Prior:
    """Normalize a prior argument; a float is read as a normal standard deviation."""
    if prior is None:
        return NormalPrior()
    if isinstance(prior, Prior):
        return prior
    if isinstance(prior, (int, float, np.floating)) and not isinstance(prior, bool):
        return NormalPrior(mean=0.0, sd=float(prior))
    raise TypeError(
        f"prior must be a Prior object or float, got {type(prior).__name__}"
    )


__all__ = [
    "Prior",
    "NormalPrior",
    "StudentTPrior",
    "CustomPrior",
    "coerce_prior",
]
