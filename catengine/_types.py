"""Shared type aliases for model tags, answers and selection criteria."""

from typing import Literal, TypeAlias

import numpy as np

ModelName: TypeAlias = Literal["ltm", "tpm", "grm", "gpcm"]
Answer: TypeAlias = int | None
Criterion: TypeAlias = Literal[
    "MFI", "MEI", "EPV", "MLWI", "MPWI", "MFII", "KL", "LKL", "PKL", "RANDOM"
]
EstimationMethod: TypeAlias = Literal["MAP", "MLE", "EAP"]
ScoreArray: TypeAlias = np.ndarray
