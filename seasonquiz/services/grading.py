"""Answer grading for multiple-choice trivia questions.

An answer is correct only when it is exactly the designated correct option.
Anything else, including a differently spelled or cased variant of it or a
string that is not one of the options, is wrong.  There is no partial credit.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def grade_answer(submitted: str | None, correct_answer: str | None) -> bool:
    """Return True when *submitted* selects the correct option.

    Args:
        submitted: The option the user picked (may be empty when time ran out)
        correct_answer: The question's designated correct option

    Returns:
        True if the answer is the correct option, character for character.
    """
    if not submitted or correct_answer is None:
        return False

    is_correct = submitted == correct_answer
    logger.debug("Graded %r against %r → %s", submitted[:40], correct_answer[:40], is_correct)
    return is_correct
