"""
Pre-computed branching schemes.

:func:`make_tree` walks every answer path a respondent could take: it selects
the next item, records each possible answer on a private copy of the question
set, and recurses until ``length_threshold`` answers are on record. The
session's own question set is never modified.

The number of branches grows as ``K ** length_threshold`` for ``K`` answer
categories, so this is meant for short tests.
"""

import logging
from typing import Any

from ._base import _validate_positive_int
from .selectors import Selector

logger = logging.getLogger(__name__)

Tree = dict[str, Any]


def _leaf(selector: Selector) -> Tree:
    selection = selector.select_item()
    return {"item": selection.item, "next": selection.question_name, "answers": {}}


def make_tree(selector: Selector, length_threshold: int) -> Tree:
    """
    Build the complete branching scheme from the selector's current state.

    Args:
        selector: Selection criterion bound to the session's question set.
        length_threshold: Total number of recorded answers after which a
            branch stops growing and only names its next item.

    Returns:
        Nested mapping ``{"item", "next", "answers"}`` where ``answers`` maps
        each answer category to the sub-tree reached by giving that answer,
        or to ``None`` once the item pool is exhausted.

    Examples:
        >>> tree = make_tree(selector, length_threshold=2)  # doctest: +SKIP
        >>> tree["next"], sorted(tree["answers"])  # doctest: +SKIP
        ('q3', [0, 1])
    """
    length_threshold = _validate_positive_int("length_threshold", length_threshold)

    def build(current: Selector) -> Tree:
        node = _leaf(current)
        item = node["item"]
        for answer in current.questions.categories(item):
            branch_questions = current.questions.copy()
            branch_questions.record_answer(item, answer)
            if not branch_questions.nonapplicable_rows:
                node["answers"][answer] = None
                continue
            branch = current.for_questions(branch_questions)
            if len(branch_questions.applicable_rows) < length_threshold:
                node["answers"][answer] = build(branch)
            else:
                node["answers"][answer] = _leaf(branch)
        return node

    tree = build(selector)
    logger.debug("Built branching tree rooted at %s", tree["next"])
    return tree


def flatten_tree(tree: Tree, question_names: list[str]) -> list[dict[str, Any]]:
    """
    Flatten a branching tree into one row per node.

    Args:
        tree: Output of :func:`make_tree`.
        question_names: Column labels, one per question.

    Returns:
        Rows in breadth-first order. Each row maps every question name to the
        answer given along the path (``None`` where not asked) and
        ``"next_item"`` to the item administered next.
    """
    rows = []
    frontier = [(tree, {})]
    while frontier:
        next_frontier = []
        for node, path in frontier:
            row = {name: path.get(name) for name in question_names}
            row["next_item"] = node["next"]
            rows.append(row)
            for answer, child in node["answers"].items():
                if child is None:
                    continue
                child_path = dict(path)
                child_path[node["next"]] = answer
                next_frontier.append((child, child_path))
        frontier = next_frontier
    return rows


__all__ = ["make_tree", "flatten_tree"]
