"""
Item parameters and respondent answer state.

A :class:`QuestionSet` stores one entry per test item in parallel sequences
indexed by item id, plus the answers recorded so far. It is mutated only by
:meth:`QuestionSet.record_answer` and :meth:`QuestionSet.clear_answer`.

What-if computations never touch the stored answers. They pass a
:class:`Hypothetical` overlay instead, and read answer state through
:meth:`QuestionSet.responses`, which merges the overlay on the fly.
"""

import copy
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from ._base import _validate_bracket
from ._types import Answer, ModelName

MODELS: tuple[str, ...] = ("ltm", "tpm", "grm", "gpcm")
BINARY_MODELS: tuple[str, ...] = ("ltm", "tpm")


@dataclass(frozen=True)
class ItemParams:
    """Parameters of a single item."""

    discrimination: float
    difficulty: tuple[float, ...]
    guessing: float = 0.0

    @property
    def n_categories(self) -> int:
        """Number of response categories for a polytomous item."""
        return len(self.difficulty) + 1


@dataclass(frozen=True)
class Hypothetical:
    """
    Overlay answering ``item`` with ``answer`` on top of the recorded state.

    Reads through the overlay see ``applicable_rows | {item}`` with
    ``answers[item]`` replaced by ``answer``. The underlying question set is
    left untouched.
    """

    item: int
    answer: int


class QuestionSet:
    """
    Item bank for one respondent session.

    Args:
        model: Test-wide model tag, one of ``ltm``, ``tpm``, ``grm``, ``gpcm``.
        discrimination: Slope per item.
        difficulty: Boundary parameters per item. Length 1 for binary models,
            number of categories minus one for polytomous models. A scalar is
            accepted for binary models.
        guessing: Pseudo-guessing floor per item (binary models only).
            Defaults to zeros.
        answers: Optional initial answers; ``None`` or ``NaN`` marks unanswered
            items. Integer-valued floats are accepted as categories.
        question_names: Display labels, defaults to ``q0 .. q{n-1}``.
        lower_bound: Lower end of the trait integration domain.
        upper_bound: Upper end of the trait integration domain.
        z: z-score constants for confidence-window criteria.

    Raises:
        ValueError: On unknown model tags, mismatched lengths, malformed
            boundaries or invalid answers.
    """

    def __init__(
        self,
        model: ModelName,
        discrimination: Sequence[float],
        difficulty: Sequence[Sequence[float] | float],
        guessing: Sequence[float] | None = None,
        answers: Sequence[Answer] | None = None,
        question_names: Sequence[str] | None = None,
        lower_bound: float = -5.0,
        upper_bound: float = 5.0,
        z: Sequence[float] = (0.9,),
    ):
        model_name = str(model).strip().lower()
        if model_name not in MODELS:
            raise ValueError(
                f"Unknown model: {model!r}. Use 'ltm', 'tpm', 'grm', or 'gpcm'."
            )
        self.model: str = model_name

        self.discrimination = np.asarray(discrimination, dtype=float)
        if self.discrimination.ndim != 1 or self.discrimination.size == 0:
            raise ValueError("discrimination must be a non-empty 1D sequence.")
        if not np.all(np.isfinite(self.discrimination)):
            raise ValueError("discrimination must contain only finite values.")
        n = int(self.discrimination.shape[0])

        if len(difficulty) != n:
            raise ValueError(
                f"difficulty has {len(difficulty)} entries, expected {n}."
            )
        self.difficulty: list[tuple[float, ...]] = [
            self._coerce_difficulty(i, d) for i, d in enumerate(difficulty)
        ]

        if guessing is None:
            self.guessing = np.zeros(n, dtype=float)
        else:
            self.guessing = np.asarray(guessing, dtype=float)
            if self.guessing.shape != (n,):
                raise ValueError(f"guessing must have shape ({n},).")
            if np.any(self.guessing < 0.0) or np.any(self.guessing >= 1.0):
                raise ValueError("guessing must lie in [0, 1).")

        if question_names is None:
            self.question_names = [f"q{i}" for i in range(n)]
        else:
            if len(question_names) != n:
                raise ValueError(f"question_names must have {n} entries.")
            self.question_names = [str(name) for name in question_names]

        self.lower_bound, self.upper_bound = _validate_bracket(
            lower_bound, upper_bound
        )
        self.z = tuple(float(v) for v in z)
        if not self.z:
            raise ValueError("z must contain at least one value.")

        self.answers: list[Answer] = [None] * n
        self.applicable_rows: list[int] = []
        self.nonapplicable_rows: list[int] = list(range(n))

        if answers is not None:
            if len(answers) != n:
                raise ValueError(f"answers must have {n} entries.")
            for item, answer in enumerate(answers):
                answer = self._coerce_answer(answer)
                if answer is not None:
                    self.record_answer(item, answer)

    @staticmethod
    def _coerce_answer(answer):
        # NaN marks a missing answer in tabular input; other floats must be
        # integer-valued and are left for check_answer otherwise.
        if isinstance(answer, (float, np.floating)):
            if np.isnan(answer):
                return None
            if float(answer).is_integer():
                return int(answer)
        return answer

    def _coerce_difficulty(self, item: int, value) -> tuple[float, ...]:
        values = np.atleast_1d(np.asarray(value, dtype=float))
        if values.ndim != 1 or values.size == 0:
            raise ValueError(f"difficulty[{item}] must be a non-empty sequence.")
        if not np.all(np.isfinite(values)):
            raise ValueError(f"difficulty[{item}] must contain only finite values.")
        if self.model in BINARY_MODELS and values.size != 1:
            raise ValueError(
                f"difficulty[{item}] must have exactly one value for "
                f"model '{self.model}', got {values.size}."
            )
        if self.model == "grm" and np.any(np.diff(values) <= 0.0):
            raise ValueError(
                f"difficulty[{item}] must be strictly increasing for model 'grm'."
            )
        return tuple(float(v) for v in values)

    def __len__(self) -> int:
        return len(self.answers)

    @property
    def is_binary(self) -> bool:
        return self.model in BINARY_MODELS

    def check_item(self, item: int) -> int:
        """Return ``item`` as an int, raising ``IndexError`` if out of range."""
        if isinstance(item, bool) or not isinstance(item, (int, np.integer)):
            raise TypeError(f"item must be an integer, got {type(item).__name__}")
        index = int(item)
        if not 0 <= index < len(self.answers):
            raise IndexError(
                f"Question {index} is out of range for a set of "
                f"{len(self.answers)} questions."
            )
        return index

    def item(self, item: int) -> ItemParams:
        """Parameters of ``item``."""
        index = self.check_item(item)
        return ItemParams(
            discrimination=float(self.discrimination[index]),
            difficulty=self.difficulty[index],
            guessing=float(self.guessing[index]),
        )

    def categories(self, item: int) -> range:
        """Valid answer categories for ``item``."""
        index = self.check_item(item)
        if self.is_binary:
            return range(0, 2)
        return range(1, len(self.difficulty[index]) + 2)

    def check_answer(self, item: int, answer: int) -> int:
        """Validate that ``answer`` is a category of ``item``."""
        if isinstance(answer, bool) or not isinstance(answer, (int, np.integer)):
            raise TypeError(
                f"answer must be an integer, got {type(answer).__name__}"
            )
        valid = self.categories(item)
        if int(answer) not in valid:
            raise ValueError(
                f"Answer {answer} is not a valid category for question {item} "
                f"(expected {valid.start}..{valid.stop - 1})."
            )
        return int(answer)

    def record_answer(self, item: int, answer: int) -> None:
        """Store a real answer and move ``item`` to the applicable rows."""
        index = self.check_item(item)
        self.answers[index] = self.check_answer(index, answer)
        if index in self.nonapplicable_rows:
            self.nonapplicable_rows.remove(index)
            self.applicable_rows.append(index)
            self.applicable_rows.sort()

    def clear_answer(self, item: int) -> None:
        """Forget the answer to ``item`` and make it a candidate again."""
        index = self.check_item(item)
        self.answers[index] = None
        if index in self.applicable_rows:
            self.applicable_rows.remove(index)
            self.nonapplicable_rows.append(index)
            self.nonapplicable_rows.sort()

    def responses(
        self, hypothetical: Hypothetical | None = None
    ) -> Iterator[tuple[int, int]]:
        """
        Yield ``(item, answer)`` pairs counted toward the likelihood.

        Args:
            hypothetical: Optional overlay adding (or overriding) one answer.

        Returns:
            Iterator over pairs in ascending item order.
        """
        if hypothetical is None:
            for item in self.applicable_rows:
                yield item, self.answers[item]
            return

        extra = self.check_item(hypothetical.item)
        extra_answer = self.check_answer(extra, hypothetical.answer)
        pending = True
        for item in self.applicable_rows:
            if pending and extra <= item:
                yield extra, extra_answer
                pending = False
                if item == extra:
                    continue
            yield item, self.answers[item]
        if pending:
            yield extra, extra_answer

    def has_responses(self, hypothetical: Hypothetical | None = None) -> bool:
        return bool(self.applicable_rows) or hypothetical is not None

    def copy(self) -> "QuestionSet":
        """Independent copy, answers included."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"QuestionSet(model={self.model!r}, n_items={len(self)}, "
            f"answered={len(self.applicable_rows)})"
        )


__all__ = ["QuestionSet", "ItemParams", "Hypothetical", "MODELS", "BINARY_MODELS"]
