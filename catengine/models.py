"""
Item response model families.

Notation
--------

For item ``j`` with discrimination :math:`a_j`, boundary parameters
:math:`b_{j1},\\dots,b_{jk}` and guessing floor :math:`c_j`, each family maps a
latent trait value :math:`\\theta` to the probabilities of the item's response
categories, together with the first and second derivatives of the item's
log-likelihood contribution.

- ``ltm``/``tpm`` (binary):

  .. math::
      P_j(\\theta) = c_j + (1-c_j)\\,\\sigma(b_j + a_j\\theta)

- ``grm`` (graded response), cumulative boundaries padded with 0 and 1:

  .. math::
      F_{jk}(\\theta) = \\sigma(b_{jk} - a_j\\theta),\\qquad
      P_{jk} = F_{jk} - F_{j,k-1}

- ``gpcm`` (generalized partial credit):

  .. math::
      s_0 = a_j\\theta,\\quad s_i = s_{i-1} + a_j(\\theta - b_{ji}),\\quad
      P_{ji} = \\frac{e^{s_i}}{\\sum_l e^{s_l}}

The sign of the exponent differs between the binary and graded families; both
are kept exactly as written since swapping one reverses its monotonicity.

Answers are ``0``/``1`` for binary items and ``1..K`` for polytomous items.
"""

import math
from abc import ABC, abstractmethod

import numpy as np

from ._base import EPS, NumericDomainError, clamp_probability, logistic
from .questions import ItemParams


class ModelFamily(ABC):
    """
    Probability model shared by every item of a test.

    Subclasses implement the closed forms for one family. All methods take
    the item's parameters explicitly so a family object carries no state.
    """

    name: str

    @abstractmethod
    def probability(self, theta: float, item: ItemParams) -> np.ndarray:
        """
        Category probabilities of ``item`` at ``theta``.

        Returns:
            Array of length 1 (probability of a correct answer) for binary
            items, or of length ``K`` for polytomous items.
        """

    @abstractmethod
    def category_probabilities(self, theta: float, item: ItemParams) -> np.ndarray:
        """Probabilities aligned with the item's answer categories."""

    @abstractmethod
    def log_answer_probability(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        """Log-probability of ``answer``."""

    @abstractmethod
    def first_derivative(self, theta: float, item: ItemParams, answer: int) -> float:
        """First derivative of the item log-likelihood with respect to theta."""

    @abstractmethod
    def second_derivative(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        """Second derivative of the item log-likelihood with respect to theta."""

    def observed_information(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        """Negative second derivative of the item log-likelihood."""
        return -self.second_derivative(theta, item, answer)

    @abstractmethod
    def fisher_information(self, theta: float, item: ItemParams) -> float:
        """Expected information of ``item`` at ``theta``."""

    def kl_divergence(self, theta_not: float, theta: float, item: ItemParams) -> float:
        """
        Kullback-Leibler divergence of the response distribution at ``theta``
        from the one at ``theta_not``.

        .. math::
            KL_j(\\theta_0\\,\\|\\,\\hat\\theta)
            = \\sum_k P_{jk}(\\theta_0)
            \\left[\\log P_{jk}(\\theta_0) - \\log P_{jk}(\\hat\\theta)\\right]
        """
        p_not = self.category_probabilities(theta_not, item)
        p_hat = self.category_probabilities(theta, item)
        return float(np.sum(p_not * (np.log(p_not) - np.log(p_hat))))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class BinaryLogistic(ModelFamily):
    """
    Two/three-parameter logistic model (``ltm``/``tpm``).

    Method context:
        ``ltm`` and ``tpm`` share every formula; ``ltm`` items simply carry a
        zero guessing floor. Observed and Fisher information coincide.
    """

    def __init__(self, name: str = "ltm"):
        self.name = name

    def p_correct(self, theta: float, item: ItemParams) -> float:
        """Probability of a correct answer, clamped into ``[EPS, 1 - EPS]``."""
        core = logistic(item.difficulty[0] + item.discrimination * theta, clamp=False)
        guess = item.guessing
        return clamp_probability(guess + (1.0 - guess) * core)

    def probability(self, theta: float, item: ItemParams) -> np.ndarray:
        return np.array([self.p_correct(theta, item)])

    def category_probabilities(self, theta: float, item: ItemParams) -> np.ndarray:
        p = self.p_correct(theta, item)
        return np.array([1.0 - p, p])

    def log_answer_probability(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        p = self.p_correct(theta, item)
        return answer * math.log(p) + (1 - answer) * math.log(1.0 - p)

    def first_derivative(self, theta: float, item: ItemParams, answer: int) -> float:
        p = self.p_correct(theta, item)
        guess = item.guessing
        return (
            item.discrimination * ((p - guess) / (p * (1.0 - guess))) * (answer - p)
        )

    def _information(self, theta: float, item: ItemParams) -> float:
        p = self.p_correct(theta, item)
        guess = item.guessing
        weight = (p - guess) / (1.0 - guess)
        return (item.discrimination * weight) ** 2 * ((1.0 - p) / p)

    def second_derivative(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        # Expected-curvature form; independent of the answer.
        return -self._information(theta, item)

    def fisher_information(self, theta: float, item: ItemParams) -> float:
        return self._information(theta, item)

    def kl_divergence(self, theta_not: float, theta: float, item: ItemParams) -> float:
        p_not = self.p_correct(theta_not, item)
        p_hat = self.p_correct(theta, item)
        first = p_not * (math.log(p_not) - math.log(p_hat))
        second = (1.0 - p_not) * (math.log(1.0 - p_not) - math.log(1.0 - p_hat))
        return first + second


class GradedResponse(ModelFamily):
    """
    Graded response model (``grm``).

    Method context:
        Category ``k`` (1-based) has mass ``F_k - F_{k-1}`` over the padded
        cumulative sequence ``[0, F_1, ..., F_{K-1}, 1]``. With
        ``w_k = F_k (1 - F_k)`` the item score is

        .. math::
            \\frac{\\partial \\ell}{\\partial\\theta}
            = -a\\,\\frac{w_k - w_{k-1}}{F_k - F_{k-1}}.
    """

    name = "grm"

    def cumulative(self, theta: float, item: ItemParams) -> np.ndarray:
        """
        Padded cumulative sequence ``[0, F_1, ..., F_k, 1]``.

        Raises:
            NumericDomainError: If two adjacent values coincide, i.e. theta is
                too extreme to distinguish the categories.
        """
        a = item.discrimination
        cdf = np.empty(len(item.difficulty) + 2)
        cdf[0] = 0.0
        cdf[-1] = 1.0
        for k, b in enumerate(item.difficulty, start=1):
            cdf[k] = logistic(b - a * theta)
        if np.any(cdf[1:] == cdf[:-1]):
            raise NumericDomainError("Theta value too extreme for numerical routines.")
        return cdf

    def probability(self, theta: float, item: ItemParams) -> np.ndarray:
        return np.diff(self.cumulative(theta, item))

    def category_probabilities(self, theta: float, item: ItemParams) -> np.ndarray:
        return self.probability(theta, item)

    def _bracketing(self, theta: float, item: ItemParams, answer: int):
        cdf = self.cumulative(theta, item)
        upper = cdf[answer]
        lower = cdf[answer - 1]
        return upper, lower, upper - lower

    def log_answer_probability(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        _, _, p = self._bracketing(theta, item, answer)
        return math.log(p)

    def first_derivative(self, theta: float, item: ItemParams, answer: int) -> float:
        upper, lower, p = self._bracketing(theta, item, answer)
        w = upper * (1.0 - upper) - lower * (1.0 - lower)
        return -item.discrimination * (w / p)

    def second_derivative(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        upper, lower, p = self._bracketing(theta, item, answer)
        q_upper = 1.0 - upper
        q_lower = 1.0 - lower
        w_upper = upper * q_upper
        w_lower = lower * q_lower
        w = w_upper - w_lower

        first_term = (
            -w_lower * (q_lower - lower) + w_upper * (q_upper - upper)
        ) / p
        second_term = w**2 / p**2
        return item.discrimination**2 * (first_term - second_term)

    def fisher_information(self, theta: float, item: ItemParams) -> float:
        cdf = self.cumulative(theta, item)
        w = cdf * (1.0 - cdf)
        return float(
            item.discrimination**2 * np.sum(np.diff(w) ** 2 / np.diff(cdf))
        )


class PartialCredit(ModelFamily):
    """
    Generalized partial credit model (``gpcm``).

    Method context:
        With unnormalized masses ``f_i = exp(s_i)`` and their derivatives
        ``f_i' = x_i f_i``, ``f_i'' = x_i^2 f_i`` where ``x_i = a (i + 1)``,
        the category derivatives follow from the quotient rule applied to
        ``f_i / g`` with ``g = sum_i f_i``:

        .. math::
            P_i' = \\frac{g f_i' - f_i g'}{g^2},\\qquad
            P_i'' = \\frac{g^2 (f_i'' g - f_i g'') - (g f_i' - f_i g')\\,2 g g'}{g^4}
    """

    name = "gpcm"

    def _unnormalized(self, theta: float, item: ItemParams) -> np.ndarray:
        a = item.discrimination
        steps = a * (theta - np.asarray(item.difficulty, dtype=float))
        sums = a * theta + np.concatenate(([0.0], np.cumsum(steps)))
        with np.errstate(over="ignore"):
            return np.exp(sums)

    @staticmethod
    def _check_normalizer(total: float) -> None:
        if total == 0.0 or not np.isfinite(total):
            raise NumericDomainError("Theta value too extreme for numerical routines.")

    def probability(self, theta: float, item: ItemParams) -> np.ndarray:
        f = self._unnormalized(theta, item)
        total = float(np.sum(f))
        self._check_normalizer(total)
        return f / total

    def category_probabilities(self, theta: float, item: ItemParams) -> np.ndarray:
        return self.probability(theta, item)

    def derivatives(
        self, theta: float, item: ItemParams
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        First and second derivatives of every category probability.

        Returns:
            Tuple ``(first, second)`` of arrays with one entry per category.
        """
        f = self._unnormalized(theta, item)
        x = item.discrimination * np.arange(1, f.size + 1, dtype=float)
        f_prime = f * x
        f_primeprime = f * x**2

        g = float(np.sum(f))
        self._check_normalizer(g)
        g_prime = float(np.sum(f_prime))
        g_primeprime = float(np.sum(f_primeprime))

        b = g * g
        b2 = b * b
        b_prime = 2.0 * g * g_prime
        if not np.isfinite(b2):
            raise NumericDomainError("Theta value too extreme for numerical routines.")

        numer = g * f_prime - f * g_prime
        numer_prime = f_primeprime * g - g_primeprime * f
        first = numer / b
        second = (b * numer_prime - numer * b_prime) / b2
        return first, second

    def first_derivative(self, theta: float, item: ItemParams, answer: int) -> float:
        index = answer - 1
        p = self.probability(theta, item)[index]
        first, _ = self.derivatives(theta, item)
        return float(first[index] / p)

    def second_derivative(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        index = answer - 1
        p = self.probability(theta, item)[index]
        first, second = self.derivatives(theta, item)
        return float(-((first[index] ** 2 / p**2) - (second[index] / p)))

    def log_answer_probability(
        self, theta: float, item: ItemParams, answer: int
    ) -> float:
        return math.log(self.probability(theta, item)[answer - 1])

    def fisher_information(self, theta: float, item: ItemParams) -> float:
        p = self.probability(theta, item)
        first, second = self.derivatives(theta, item)
        return float(np.sum(first**2 / p - second))


_FAMILIES: dict[str, ModelFamily] = {
    "ltm": BinaryLogistic("ltm"),
    "tpm": BinaryLogistic("tpm"),
    "grm": GradedResponse(),
    "gpcm": PartialCredit(),
}


def get_model_family(model: str) -> ModelFamily:
    """
    Return the model family for a model tag.

    Raises:
        ValueError: If ``model`` is not one of ``ltm``, ``tpm``, ``grm``, ``gpcm``.
    """
    key = str(model).strip().lower()
    try:
        return _FAMILIES[key]
    except KeyError:
        raise ValueError(
            f"Unknown model: {model!r}. Use 'ltm', 'tpm', 'grm', or 'gpcm'."
        ) from None


__all__ = [
    "ModelFamily",
    "BinaryLogistic",
    "GradedResponse",
    "PartialCredit",
    "get_model_family",
    "EPS",
]
