# src/apps/exams/services/question_selector.py
"""
Question Selector

Draws the question subset and option presentation for a new attempt.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..models import Question


@dataclass
class Selection:
    """Presentation snapshot frozen on an attempt at creation."""
    question_order: List[str]
    option_orderings: Dict[str, Dict[str, str]] = field(default_factory=dict)
    option_letter_order: Dict[str, List[str]] = field(default_factory=dict)


def select_questions(
    questions: Sequence[Question],
    questions_per_exam: Optional[int],
    randomize_options: bool = True,
    rng: Optional[random.Random] = None,
) -> Selection:
    """
    Pick the questions for one attempt.

    The whole bank is shuffled uniformly and then cut to
    ``questions_per_exam``. ``None`` or 0 keeps every question, as does a
    bank smaller than the requested count.

    Multiple-choice questions get a frozen copy of their letter to text
    mapping. Letters keep their text; only the presentation order of the
    letters is shuffled when ``randomize_options`` is set.

    Args:
        questions: The exam's full bank
        questions_per_exam: Requested subset size
        randomize_options: Shuffle option presentation order
        rng: Random source, a freshly seeded generator when omitted

    Returns:
        Selection
    """
    rng = rng or random.Random()

    pool = list(questions)
    rng.shuffle(pool)

    if questions_per_exam and questions_per_exam < len(pool):
        pool = pool[:questions_per_exam]

    selection = Selection(question_order=[str(q.id) for q in pool])

    for question in pool:
        if not question.is_multiple_choice:
            continue

        mapping = dict(question.options or {})
        letters = list(mapping)
        if randomize_options:
            rng.shuffle(letters)

        selection.option_orderings[str(question.id)] = {
            letter: mapping[letter] for letter in letters
        }
        selection.option_letter_order[str(question.id)] = letters

    return selection
