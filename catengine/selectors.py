"""
Item selection criteria for adaptive testing.

Every selector scores each not-yet-administered item with one estimator
criterion and returns a :class:`Selection`. Candidates are scanned in
ascending item id order and compared strictly, so ties go to the lowest id.
Whether the best score is the largest or the smallest is fixed per criterion
(see ``Selector.maximize``).

Available Criteria
------------------

- ``MFI``: Fisher information at the current estimate (max)
- ``MEI``: expected observed information (max)
- ``EPV``: expected posterior variance (min)
- ``MLWI``: likelihood-weighted information (max)
- ``MPWI``: posterior-weighted information (max)
- ``MFII``: Fisher information integrated over a confidence window (max)
- ``KL``: KL divergence integrated over a confidence window (max)
- ``LKL``: likelihood-weighted KL divergence (max)
- ``PKL``: posterior-weighted KL divergence (max)
- ``RANDOM``: uniform random draw (max)
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import numpy as np

from ._base import NumericDomainError
from ._types import Criterion, ScoreArray
from .estimators import Estimator
from .questions import QuestionSet
from .utils import rank_scores

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """
    Outcome of one selection call.

    Attributes:
        item: Chosen question id.
        values: Score per candidate, aligned with ``questions``.
        questions: Candidate question ids in scan order.
        question_names: Display labels aligned with ``questions``.
        name: Criterion name.
        maximize: Whether larger scores are better for this criterion.
    """

    item: int
    values: ScoreArray
    questions: list[int]
    question_names: list[str]
    name: str
    maximize: bool = True

    @property
    def question_name(self) -> str:
        return self.question_names[self.questions.index(self.item)]

    def ranking(self, method: str = "competition") -> np.ndarray:
        """Rank candidates, best first, with :func:`catengine.utils.rank_scores`."""
        scores = self.values if self.maximize else -self.values
        return rank_scores(scores)[method]


class Selector(ABC):
    """
    Base class for selection criteria.

    Args:
        estimator: Estimator bound to the session's question set.
    """

    name: str = ""
    maximize: bool = True

    def __init__(self, estimator: Estimator):
        if not isinstance(estimator, Estimator):
            raise TypeError(
                f"estimator must be an Estimator, got {type(estimator).__name__}"
            )
        self.estimator = estimator

    @property
    def questions(self) -> QuestionSet:
        return self.estimator.questions

    @abstractmethod
    def score(self, item: int) -> float:
        """Criterion value for one candidate item."""

    def for_questions(self, questions: QuestionSet) -> "Selector":
        """Same criterion bound to another question set."""
        clone = copy.copy(self)
        clone.estimator = self.estimator.for_questions(questions)
        return clone

    def _scorer(self) -> Callable[[int], float]:
        # Hook for criteria that share work across candidates.
        return self.score

    def _better(self, value: float, best: float) -> bool:
        return value > best if self.maximize else value < best

    def select_item(self) -> Selection:
        """
        Score every candidate and pick the best one.

        Raises:
            ValueError: If every question has been answered.
            NumericDomainError: If a score computation fails or no candidate
                produces a finite score.
        """
        candidates = list(self.questions.nonapplicable_rows)
        if not candidates:
            raise ValueError("No unanswered questions remain to select from.")

        values = np.empty(len(candidates), dtype=float)
        names = []
        best_item = None
        best_value = -np.inf if self.maximize else np.inf
        score = self._scorer()

        for i, item in enumerate(candidates):
            names.append(self.questions.question_names[item])
            values[i] = score(item)
            if np.isfinite(values[i]) and self._better(values[i], best_value):
                best_item = item
                best_value = values[i]

        if best_item is None:
            raise NumericDomainError(
                f"{self.name}: no candidate produced a finite score."
            )

        logger.debug(
            "%s selected question %d (%s) with score %.6g among %d candidates",
            self.name,
            best_item,
            self.questions.question_names[best_item],
            best_value,
            len(candidates),
        )
        return Selection(
            item=best_item,
            values=values,
            questions=candidates,
            question_names=names,
            name=self.name,
            maximize=self.maximize,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(estimator={self.estimator!r})"


class MFISelector(Selector):
    """Maximum Fisher information at the current estimate."""

    name = "MFI"

    def _scorer(self) -> Callable[[int], float]:
        theta = self.estimator.estimate_theta()
        return lambda item: self.estimator.fisher_inf(theta, item)

    def score(self, item: int) -> float:
        return self.estimator.fisher_inf(self.estimator.estimate_theta(), item)


class MEISelector(Selector):
    """Maximum expected observed information."""

    name = "MEI"

    def score(self, item: int) -> float:
        return self.estimator.expected_obs_inf(item)


class MEPVSelector(Selector):
    """Minimum expected posterior variance."""

    name = "EPV"
    maximize = False

    def score(self, item: int) -> float:
        return self.estimator.expected_pv(item)


class MLWISelector(Selector):
    """Maximum likelihood-weighted information."""

    name = "MLWI"

    def score(self, item: int) -> float:
        return self.estimator.lwi(item)


class MPWISelector(Selector):
    """Maximum posterior-weighted information."""

    name = "MPWI"

    def score(self, item: int) -> float:
        return self.estimator.pwi(item)


class MFIISelector(Selector):
    """Maximum Fisher information integrated over a confidence window."""

    name = "MFII"

    def score(self, item: int) -> float:
        return self.estimator.fii(item)


class KLSelector(Selector):
    """Maximum KL divergence over a confidence window."""

    name = "KL"

    def score(self, item: int) -> float:
        return self.estimator.expected_kl(item)


class LKLSelector(Selector):
    """Maximum likelihood-weighted KL divergence."""

    name = "LKL"

    def score(self, item: int) -> float:
        return self.estimator.likelihood_kl(item)


class PKLSelector(Selector):
    """Maximum posterior-weighted KL divergence."""

    name = "PKL"

    def score(self, item: int) -> float:
        return self.estimator.posterior_kl(item)


class RandomSelector(Selector):
    """
    Uniform random selection.

    Args:
        estimator: Estimator bound to the session's question set.
        seed: Seed or ``numpy.random.Generator`` for reproducible draws.
    """

    name = "RANDOM"

    def __init__(
        self,
        estimator: Estimator,
        seed: int | np.random.Generator | None = None,
    ):
        super().__init__(estimator)
        self.rng = np.random.default_rng(seed)

    def score(self, item: int) -> float:
        self.questions.check_item(item)
        return float(self.rng.random())


_SELECTORS: dict[str, type[Selector]] = {
    cls.name: cls
    for cls in (
        MFISelector,
        MEISelector,
        MEPVSelector,
        MLWISelector,
        MPWISelector,
        MFIISelector,
        KLSelector,
        LKLSelector,
        PKLSelector,
        RandomSelector,
    )
}


def create_selector(criterion: Criterion, estimator: Estimator, **kwargs) -> Selector:
    """
    Build a selector by criterion name.

    Args:
        criterion: One of ``MFI``, ``MEI``, ``EPV``, ``MLWI``, ``MPWI``,
            ``MFII``, ``KL``, ``LKL``, ``PKL``, ``RANDOM`` (case-insensitive).
        estimator: Estimator bound to the session's question set.
        **kwargs: Forwarded to the selector constructor.

    Raises:
        ValueError: If ``criterion`` is unknown.
    """
    key = str(criterion).strip().upper()
    if key not in _SELECTORS:
        raise ValueError(
            f"Unknown criterion: {criterion!r}. Use one of {sorted(_SELECTORS)}."
        )
    return _SELECTORS[key](estimator, **kwargs)


__all__ = [
    "Selection",
    "Selector",
    "MFISelector",
    "MEISelector",
    "MEPVSelector",
    "MLWISelector",
    "MPWISelector",
    "MFIISelector",
    "KLSelector",
    "LKLSelector",
    "PKLSelector",
    "RandomSelector",
    "create_selector",
]
