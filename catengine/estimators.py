"""
Latent trait estimation and item information criteria.

Notation
--------

Let :math:`A` be the set of answered items (optionally extended with one
hypothetical item, see :class:`catengine.questions.Hypothetical`) and
:math:`u_j` the answer to item :math:`j`. The likelihood is

.. math::
    L(\\theta) = \\exp\\left(\\sum_{j\\in A}\\log P_j(u_j\\mid\\theta)\\right),

accumulated in log-space and exponentiated at the end. It still underflows for
very long tests; no rescaling is attempted.

Three interchangeable point-estimate strategies share every criterion:

- :class:`MAPEstimator`: root of the prior-regularized score,
- :class:`MLEEstimator`: root of the plain score,
- :class:`EAPEstimator`: posterior mean by quadrature over
  ``[lower_bound, upper_bound]``.

Every criterion that needs a what-if answer takes a ``Hypothetical`` overlay,
so the shared ``QuestionSet`` is never mutated during a computation.
"""

import copy
import logging
import math
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

from ._base import NumericDomainError, _validate_positive_int
from ._types import EstimationMethod
from .models import ModelFamily, get_model_family
from .numerics import DEFAULT_SUBINTERVALS, Integrator, RootFinder
from .priors import Prior, coerce_prior
from .questions import Hypothetical, QuestionSet

logger = logging.getLogger(__name__)


class Estimator(ABC):
    """
    Shared likelihood, derivative and information machinery.

    Args:
        questions: Item bank and answer state. Read, never mutated.
        prior: Prior on theta. A float is read as a normal standard deviation.
            Defaults to ``NormalPrior(0, 1)``.
        integrator: Quadrature primitive. Defaults to :class:`Integrator`.
        root_finder: Root-finding primitive. Defaults to :class:`RootFinder`.
        subintervals: Fixed subinterval count passed to the integrator.

    Notes:
        Not reentrant with respect to concurrent *answer recording*; callers
        must not record answers while a selection is running.
    """

    name: str = "estimator"

    def __init__(
        self,
        questions: QuestionSet,
        prior: Prior | float | None = None,
        integrator: Integrator | None = None,
        root_finder: RootFinder | None = None,
        subintervals: int = DEFAULT_SUBINTERVALS,
    ):
        if not isinstance(questions, QuestionSet):
            raise TypeError(
                f"questions must be a QuestionSet, got {type(questions).__name__}"
            )
        self.questions = questions
        self.prior = coerce_prior(prior)
        self.integrator = integrator if integrator is not None else Integrator()
        self.root_finder = root_finder if root_finder is not None else RootFinder()
        self.subintervals = _validate_positive_int("subintervals", subintervals)

    @property
    def family(self) -> ModelFamily:
        return get_model_family(self.questions.model)

    def for_questions(self, questions: QuestionSet) -> "Estimator":
        """Same configuration bound to another question set."""
        clone = copy.copy(self)
        clone.questions = questions
        return clone

    # ------------------------------------------------------------------
    # Probabilities and likelihood
    # ------------------------------------------------------------------

    def probability(self, theta: float, item: int) -> np.ndarray:
        """
        Category probabilities of ``item`` at ``theta``.

        Raises:
            IndexError: If ``item`` is not a valid question id.
            NumericDomainError: If theta is too extreme for the model.
        """
        return self.family.probability(theta, self.questions.item(item))

    def log_likelihood(
        self, theta: float, hypothetical: Hypothetical | None = None
    ) -> float:
        family = self.family
        total = 0.0
        for item, answer in self.questions.responses(hypothetical):
            total += family.log_answer_probability(
                theta, self.questions.item(item), answer
            )
        return total

    def likelihood(
        self, theta: float, hypothetical: Hypothetical | None = None
    ) -> float:
        """Joint likelihood of the recorded (and hypothetical) answers."""
        return math.exp(self.log_likelihood(theta, hypothetical))

    # ------------------------------------------------------------------
    # Score and observed information
    # ------------------------------------------------------------------

    def _prior_score(self, theta: float) -> float:
        return (theta - self.prior.param0) / self.prior.param1**2

    def _prior_curvature(self) -> float:
        return 1.0 / self.prior.param1**2

    def d1ll(
        self,
        theta: float,
        use_prior: bool = False,
        hypothetical: Hypothetical | None = None,
    ) -> float:
        """
        First derivative of the log-likelihood.

        Args:
            theta: Trait value.
            use_prior: Subtract ``(theta - param0) / param1^2``.
            hypothetical: Optional extra answer.

        Returns:
            Score at ``theta``. With no answers at all, only the prior term
            ``-(theta - param0) / param1^2`` is returned.
        """
        if not self.questions.has_responses(hypothetical):
            return -self._prior_score(theta)
        family = self.family
        total = 0.0
        for item, answer in self.questions.responses(hypothetical):
            total += family.first_derivative(theta, self.questions.item(item), answer)
        return total - self._prior_score(theta) if use_prior else total

    def d2ll(
        self,
        theta: float,
        use_prior: bool = False,
        hypothetical: Hypothetical | None = None,
    ) -> float:
        """
        Second derivative of the log-likelihood.

        Returns:
            Curvature at ``theta``. With no answers at all, only the prior
            term ``-1 / param1^2`` is returned.
        """
        if not self.questions.has_responses(hypothetical):
            return -self._prior_curvature()
        family = self.family
        total = 0.0
        for item, answer in self.questions.responses(hypothetical):
            total += family.second_derivative(theta, self.questions.item(item), answer)
        return total - self._prior_curvature() if use_prior else total

    def obs_inf(self, theta: float, item: int, answer: int | None = None) -> float:
        """
        Observed information of one item.

        Args:
            theta: Trait value.
            item: Question id.
            answer: Answer to evaluate. Defaults to the recorded answer.

        Raises:
            ValueError: If ``answer`` is omitted and ``item`` is unanswered,
                or ``answer`` is not a valid category.
        """
        index = self.questions.check_item(item)
        if answer is None:
            answer = self.questions.answers[index]
            if answer is None:
                raise ValueError(
                    f"Question {index} has no recorded answer; pass one explicitly."
                )
        answer = self.questions.check_answer(index, answer)
        return self.family.observed_information(
            theta, self.questions.item(index), answer
        )

    def fisher_inf(self, theta: float, item: int) -> float:
        """Fisher information of one item at ``theta``."""
        return self.family.fisher_information(theta, self.questions.item(item))

    def test_information(
        self, theta: float, hypothetical: Hypothetical | None = None
    ) -> float:
        """Sum of item Fisher information over the answered items at ``theta``."""
        return sum(
            self.fisher_inf(theta, item)
            for item, _ in self.questions.responses(hypothetical)
        )

    def fisher_test_info(self, hypothetical: Hypothetical | None = None) -> float:
        """Test information evaluated at the current point estimate."""
        theta = self.estimate_theta(hypothetical)
        return self.test_information(theta, hypothetical)

    # ------------------------------------------------------------------
    # Point estimates
    # ------------------------------------------------------------------

    @abstractmethod
    def estimate_theta(self, hypothetical: Hypothetical | None = None) -> float:
        """Point estimate of theta."""

    @abstractmethod
    def estimate_se(self, hypothetical: Hypothetical | None = None) -> float:
        """Standard error of :meth:`estimate_theta`."""

    def _integrate(
        self, f: Callable[[float], float], lower: float, upper: float
    ) -> float:
        return self.integrator.integrate(f, self.subintervals, lower, upper)

    def _integrate_domain(self, f: Callable[[float], float]) -> float:
        return self._integrate(
            f, self.questions.lower_bound, self.questions.upper_bound
        )

    def _confidence_window(self, theta: float) -> tuple[float, float] | None:
        delta = self.questions.z[0] * math.sqrt(self.test_information(theta))
        if not delta > 0.0:
            return None
        return theta - delta, theta + delta

    # ------------------------------------------------------------------
    # Divergence and information-weighted criteria
    # ------------------------------------------------------------------

    def kl(self, theta_not: float, item: int, theta: float) -> float:
        """KL divergence for ``item`` between ``theta_not`` and ``theta``."""
        return self.family.kl_divergence(theta_not, theta, self.questions.item(item))

    def expected_kl(self, item: int) -> float:
        """
        KL divergence integrated over the confidence window around the estimate.

        The window half-width is ``z[0] * sqrt(test_information)``; with no
        information the window is empty and the result is ``0``.
        """
        self.questions.check_item(item)
        theta = self.estimate_theta()
        window = self._confidence_window(theta)
        if window is None:
            return 0.0
        return self._integrate(lambda t: self.kl(t, item, theta), *window)

    def likelihood_kl(self, item: int) -> float:
        """KL divergence weighted by the likelihood over the trait domain."""
        self.questions.check_item(item)
        theta = self.estimate_theta()
        return self._integrate_domain(
            lambda t: self.likelihood(t) * self.kl(t, item, theta)
        )

    def posterior_kl(self, item: int) -> float:
        """KL divergence weighted by likelihood times prior over the trait domain."""
        self.questions.check_item(item)
        theta = self.estimate_theta()
        return self._integrate_domain(
            lambda t: self.prior.density(t) * self.likelihood(t) * self.kl(t, item, theta)
        )

    def pwi(self, item: int) -> float:
        """Fisher information weighted by likelihood times prior."""
        self.questions.check_item(item)
        return self._integrate_domain(
            lambda t: self.likelihood(t) * self.prior.density(t) * self.fisher_inf(t, item)
        )

    def lwi(self, item: int) -> float:
        """Fisher information weighted by the likelihood."""
        self.questions.check_item(item)
        return self._integrate_domain(
            lambda t: self.likelihood(t) * self.fisher_inf(t, item)
        )

    def fii(self, item: int) -> float:
        """Fisher information integrated over the confidence window."""
        self.questions.check_item(item)
        theta = self.estimate_theta()
        window = self._confidence_window(theta)
        if window is None:
            return 0.0
        return self._integrate(lambda t: self.fisher_inf(t, item), *window)

    # ------------------------------------------------------------------
    # Expectations over the candidate's answer categories
    # ------------------------------------------------------------------

    def _predicted_categories(self, item: int) -> list[tuple[int, float]]:
        index = self.questions.check_item(item)
        masses = self.family.category_probabilities(
            self.estimate_theta(), self.questions.item(index)
        )
        return list(zip(self.questions.categories(index), masses))

    def expected_pv(self, item: int) -> float:
        """
        Expected posterior variance after administering ``item``.

        Formula:
            .. math::
                EPV_j = \\sum_k P_{jk}(\\hat\\theta)\\,
                \\mathrm{SE}^2\\left(\\hat\\theta \\mid u_j = k\\right)
        """
        total = 0.0
        for answer, mass in self._predicted_categories(item):
            se = self.estimate_se(Hypothetical(item, answer))
            total += mass * se**2
        return float(total)

    def expected_obs_inf(self, item: int) -> float:
        """
        Expected observed information of ``item``.

        Each category's observed information is evaluated at the estimate
        re-computed with that answer, then weighted by its predicted mass.
        """
        total = 0.0
        for answer, mass in self._predicted_categories(item):
            theta_k = self.estimate_theta(Hypothetical(item, answer))
            total += mass * self.obs_inf(theta_k, item, answer)
        return float(total)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(questions={self.questions!r}, prior={self.prior!r})"


class MAPEstimator(Estimator):
    """
    Maximum a posteriori estimate via Brent root-finding.

    Formula:
        .. math::
            \\hat\\theta: \\quad
            \\frac{\\partial \\ell}{\\partial\\theta}
            - \\frac{\\theta-\\mu}{\\sigma^2} = 0,
            \\qquad
            \\mathrm{SE} = \\left(-\\ell''(\\hat\\theta) + \\sigma^{-2}\\right)^{-1/2}
    """

    name = "MAP"

    def estimate_theta(self, hypothetical: Hypothetical | None = None) -> float:
        return self.root_finder.find_root(
            lambda theta: self.d1ll(theta, use_prior=True, hypothetical=hypothetical)
        )

    def estimate_se(self, hypothetical: Hypothetical | None = None) -> float:
        theta = self.estimate_theta(hypothetical)
        information = -self.d2ll(theta, use_prior=True, hypothetical=hypothetical)
        if not information > 0.0:
            raise NumericDomainError(
                f"Posterior curvature is not negative at theta={theta:.6g}."
            )
        return 1.0 / math.sqrt(information)


class MLEEstimator(Estimator):
    """
    Maximum likelihood estimate via Brent root-finding.

    Method context:
        With no answers the score degenerates to the prior term, so the
        estimate falls back to the prior location. The standard error is the
        inverse square root of the test information; it is infinite when
        nothing informative has been answered.
    """

    name = "MLE"

    def estimate_theta(self, hypothetical: Hypothetical | None = None) -> float:
        return self.root_finder.find_root(
            lambda theta: self.d1ll(theta, use_prior=False, hypothetical=hypothetical)
        )

    def estimate_se(self, hypothetical: Hypothetical | None = None) -> float:
        information = self.fisher_test_info(hypothetical)
        if not information > 0.0:
            return math.inf
        return 1.0 / math.sqrt(information)


class EAPEstimator(Estimator):
    """
    Expected a posteriori estimate by fixed-subinterval quadrature.

    Formula:
        .. math::
            \\hat\\theta = \\frac{\\int \\theta\\,\\pi(\\theta)L(\\theta)\\,d\\theta}
                                 {\\int \\pi(\\theta)L(\\theta)\\,d\\theta},
            \\qquad
            \\mathrm{SE}^2 = \\frac{\\int (\\theta-\\hat\\theta)^2\\pi(\\theta)L(\\theta)\\,d\\theta}
                                   {\\int \\pi(\\theta)L(\\theta)\\,d\\theta}
    """

    name = "EAP"

    def _posterior_mass(self, hypothetical: Hypothetical | None) -> float:
        mass = self._integrate_domain(
            lambda t: self.prior.density(t) * self.likelihood(t, hypothetical)
        )
        if not mass > 0.0 or not np.isfinite(mass):
            raise NumericDomainError(
                "Posterior normalizing constant underflowed to zero."
            )
        return mass

    def estimate_theta(self, hypothetical: Hypothetical | None = None) -> float:
        numerator = self._integrate_domain(
            lambda t: t * self.prior.density(t) * self.likelihood(t, hypothetical)
        )
        return numerator / self._posterior_mass(hypothetical)

    def estimate_se(self, hypothetical: Hypothetical | None = None) -> float:
        theta = self.estimate_theta(hypothetical)
        numerator = self._integrate_domain(
            lambda t: (t - theta) ** 2
            * self.prior.density(t)
            * self.likelihood(t, hypothetical)
        )
        return math.sqrt(numerator / self._posterior_mass(hypothetical))


_ESTIMATORS: dict[str, type[Estimator]] = {
    "MAP": MAPEstimator,
    "MLE": MLEEstimator,
    "EAP": EAPEstimator,
}


def create_estimator(
    method: EstimationMethod, questions: QuestionSet, **kwargs
) -> Estimator:
    """
    Build an estimator by name.

    Args:
        method: ``"MAP"``, ``"MLE"`` or ``"EAP"`` (case-insensitive).
        questions: Item bank and answer state.
        **kwargs: Forwarded to the estimator constructor.

    Raises:
        ValueError: If ``method`` is unknown.
    """
    key = str(method).strip().upper()
    if key not in _ESTIMATORS:
        raise ValueError(f"Unknown estimation method: {method!r}. Use 'MAP', 'MLE', or 'EAP'.")
    return _ESTIMATORS[key](questions, **kwargs)


__all__ = [
    "Estimator",
    "MAPEstimator",
    "MLEEstimator",
    "EAPEstimator",
    "create_estimator",
]
