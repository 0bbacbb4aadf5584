"""Catengine package for latent trait estimation and adaptive item selection.

Modules
------------------
- ``catengine.questions`` holds item parameters and answer state, plus the
  ``Hypothetical`` overlay used for what-if computations.
- ``catengine.models`` provides the ``ltm``/``tpm``, ``grm`` and ``gpcm``
  probability families with closed-form derivatives and information.
- ``catengine.priors`` provides priors on the latent trait.
- ``catengine.numerics`` provides fixed-subinterval quadrature and Brent
  root-finding.
- ``catengine.estimators`` provides MAP, MLE and EAP estimators and every
  item-scoring criterion.
- ``catengine.selectors`` provides the item selection criteria.
- ``catengine.tree`` pre-computes branching schemes.
- ``catengine.utils`` provides ranking utilities for candidate scores.

"""

__version__ = "0.1.0"

from . import estimators, models, numerics, priors, questions, selectors, tree, utils
from ._base import EPS, NumericDomainError
from .estimators import (
    EAPEstimator,
    Estimator,
    MAPEstimator,
    MLEEstimator,
    create_estimator,
)
from .models import get_model_family
from .numerics import Integrator, RootFinder
from .priors import CustomPrior, NormalPrior, Prior, StudentTPrior
from .questions import Hypothetical, ItemParams, QuestionSet
from .selectors import Selection, Selector, create_selector
from .tree import flatten_tree, make_tree

__all__ = [
    "estimators",
    "models",
    "numerics",
    "priors",
    "questions",
    "selectors",
    "tree",
    "utils",
    "EPS",
    "NumericDomainError",
    "Estimator",
    "MAPEstimator",
    "MLEEstimator",
    "EAPEstimator",
    "create_estimator",
    "get_model_family",
    "Integrator",
    "RootFinder",
    "Prior",
    "NormalPrior",
    "StudentTPrior",
    "CustomPrior",
    "QuestionSet",
    "ItemParams",
    "Hypothetical",
    "Selection",
    "Selector",
    "create_selector",
    "make_tree",
    "flatten_tree",
]
