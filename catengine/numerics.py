"""
Numerical primitives: fixed-subinterval quadrature and Brent root-finding.

Both primitives are stateless with respect to the function they are handed.
The integrator is non-adaptive: the domain is split into a fixed number of
equal subintervals and each one is integrated with the same Gauss-Legendre
rule, so results are deterministic for fixed inputs.
"""

import logging
from typing import Callable

import numpy as np
from scipy.optimize import brentq

from ._base import (
    NumericDomainError,
    _validate_bracket,
    _validate_positive_float,
    _validate_positive_int,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBINTERVALS = 10
DEFAULT_QUADRATURE_ORDER = 21
DEFAULT_BRACKET = (-5.0, 5.0)
DEFAULT_RTOL = 1e-7
DEFAULT_XTOL = 2e-12
DEFAULT_MAX_ITER = 100


class Integrator:
    """
    Composite Gauss-Legendre integrator over ``[lower, upper]``.

    Args:
        order: Number of Gauss-Legendre nodes per subinterval (``>= 1``).

    Formula:
        .. math::
            \\int_a^b f(x)\\,dx \\approx
            \\sum_{s=1}^{S}\\frac{h}{2}\\sum_{q=1}^{Q}
            w_q\\,f\\left(a + (s-1)h + \\frac{h}{2}(x_q+1)\\right),
            \\quad h = \\frac{b-a}{S}

    Examples:
        >>> integrator = Integrator()
        >>> round(integrator.integrate(lambda x: x**2, 10, 0.0, 3.0), 10)
        9.0
    """

    def __init__(self, order: int = DEFAULT_QUADRATURE_ORDER):
        self.order = _validate_positive_int("order", order)
        self._nodes, self._weights = np.polynomial.legendre.leggauss(self.order)

    def integrate(
        self,
        f: Callable[[float], float],
        subintervals: int,
        lower: float,
        upper: float,
    ) -> float:
        """
        Integrate ``f`` over ``[lower, upper]``.

        Args:
            f: Real-valued function of one real argument.
            subintervals: Positive number of equal-width subintervals.
            lower: Lower integration limit.
            upper: Upper integration limit, must exceed ``lower``.

        Returns:
            Approximation of the definite integral.
        """
        subintervals = _validate_positive_int("subintervals", subintervals)
        lower, upper = _validate_bracket(lower, upper)

        edges = np.linspace(lower, upper, subintervals + 1)
        half = 0.5 * (edges[1] - edges[0])
        total = 0.0
        for left in edges[:-1]:
            mid = left + half
            for x, w in zip(self._nodes, self._weights):
                total += w * f(float(mid + half * x))
        return float(total * half)

    def __repr__(self) -> str:
        return f"Integrator(order={self.order})"


class RootFinder:
    """
    Brent bracketing root-finder with an iteration cap.

    Method context:
        Convergence is declared once the bracket satisfies
        ``|hi - lo| < xtol + rtol * min(|lo|, |hi|)``. When ``max_iter`` is
        reached first, the last iterate is returned and a warning is logged;
        this is a soft failure, not an exception.

    Args:
        bracket: Search interval ``(lo, hi)``.
        rtol: Relative tolerance.
        xtol: Absolute tolerance (``brentq`` requires it to be positive).
        max_iter: Maximum number of iterations.
    """

    def __init__(
        self,
        bracket: tuple[float, float] = DEFAULT_BRACKET,
        rtol: float = DEFAULT_RTOL,
        xtol: float = DEFAULT_XTOL,
        max_iter: int = DEFAULT_MAX_ITER,
    ):
        self.bracket = _validate_bracket(*bracket)
        self.rtol = _validate_positive_float("rtol", rtol)
        self.xtol = _validate_positive_float("xtol", xtol)
        self.max_iter = _validate_positive_int("max_iter", max_iter)

    def find_root(self, f: Callable[[float], float]) -> float:
        """
        Locate a root of ``f`` inside the configured bracket.

        Args:
            f: Real-valued function with a sign change over the bracket.

        Returns:
            Root estimate, or the last iterate if ``max_iter`` was hit.

        Raises:
            NumericDomainError: If ``f`` has no sign change over the bracket
                or evaluates to a non-finite value at an endpoint.
        """
        lo, hi = self.bracket
        f_lo = f(lo)
        f_hi = f(hi)
        if not (np.isfinite(f_lo) and np.isfinite(f_hi)):
            raise NumericDomainError(
                f"Function is not finite at the bracket endpoints [{lo}, {hi}]."
            )
        if f_lo == 0.0:
            return lo
        if f_hi == 0.0:
            return hi
        if np.sign(f_lo) == np.sign(f_hi):
            raise NumericDomainError(
                f"No sign change over [{lo}, {hi}]; the estimate lies outside "
                "the bracket."
            )

        root, result = brentq(
            f,
            lo,
            hi,
            xtol=self.xtol,
            rtol=self.rtol,
            maxiter=self.max_iter,
            full_output=True,
            disp=False,
        )
        if not result.converged:
            logger.warning(
                "Root-finder stopped after %d iterations without converging "
                "(flag=%s); returning last iterate %.6g",
                result.iterations,
                result.flag,
                root,
            )
        return float(root)

    def __repr__(self) -> str:
        return (
            f"RootFinder(bracket={self.bracket}, rtol={self.rtol}, "
            f"max_iter={self.max_iter})"
        )


__all__ = [
    "Integrator",
    "RootFinder",
    "DEFAULT_SUBINTERVALS",
    "DEFAULT_QUADRATURE_ORDER",
    "DEFAULT_BRACKET",
    "DEFAULT_RTOL",
    "DEFAULT_MAX_ITER",
]
