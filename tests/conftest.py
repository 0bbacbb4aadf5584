from __future__ import annotations

import numpy as np
import pytest

from catengine import QuestionSet


@pytest.fixture
def ltm_questions() -> QuestionSet:
    return QuestionSet(
        model="ltm",
        discrimination=[1.0, 1.5, 0.8, 2.0, 1.2],
        difficulty=[[0.0], [-0.5], [1.0], [0.3], [-1.2]],
        question_names=["q_a", "q_b", "q_c", "q_d", "q_e"],
    )


@pytest.fixture
def tpm_questions() -> QuestionSet:
    return QuestionSet(
        model="tpm",
        discrimination=[1.2, 0.9, 1.7, 1.1],
        difficulty=[[0.2], [-0.4], [0.8], [-1.0]],
        guessing=[0.2, 0.1, 0.25, 0.15],
    )


@pytest.fixture
def grm_questions() -> QuestionSet:
    return QuestionSet(
        model="grm",
        discrimination=[1.0, 1.4, 0.9, 1.8],
        difficulty=[[-1.0, 1.0], [-1.5, 0.0, 1.5], [-0.5, 0.5], [-2.0, -0.5, 0.7, 2.0]],
    )


@pytest.fixture
def gpcm_questions() -> QuestionSet:
    return QuestionSet(
        model="gpcm",
        discrimination=[1.0, 0.7, 1.3, 1.1],
        difficulty=[[-1.0, 1.0], [-0.5, 0.2, 1.1], [0.0, 0.8], [-1.2, -0.3, 0.4]],
    )


@pytest.fixture(params=["ltm", "tpm", "grm", "gpcm"])
def any_questions(
    request,
    ltm_questions: QuestionSet,
    tpm_questions: QuestionSet,
    grm_questions: QuestionSet,
    gpcm_questions: QuestionSet,
) -> QuestionSet:
    return {
        "ltm": ltm_questions,
        "tpm": tpm_questions,
        "grm": grm_questions,
        "gpcm": gpcm_questions,
    }[request.param]


@pytest.fixture
def answered_questions(any_questions: QuestionSet) -> QuestionSet:
    """Question set with its first two items answered in a middle category."""
    for item in (0, 1):
        categories = list(any_questions.categories(item))
        any_questions.record_answer(item, categories[len(categories) // 2])
    return any_questions


@pytest.fixture(scope="session")
def theta_grid() -> np.ndarray:
    return np.linspace(-3.0, 3.0, 13)
