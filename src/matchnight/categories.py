"""
Category classification.

A participant's category is picked by majority vote over the option codes
they chose, independent of which questions those codes were given for.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from .models import Category
from .questions import Questionnaire, default_questionnaire

# Shown when a stored match carries a key the questionnaire does not define.
FALLBACK_CATEGORY = Category(key="default", title="Matched", emoji="💫")


def dominant_code(answers: Mapping[int, str], alphabet) -> Optional[str]:
    """
    Most frequent code in ``answers``; ties go to the code that comes first
    in ``alphabet``.  Codes outside the alphabet are ignored.  Returns None
    when nothing was counted.
    """
    counts: Dict[str, int] = {code: 0 for code in alphabet}
    for code in answers.values():
        if code in counts:
            counts[code] += 1

    best = None
    best_count = 0
    for code in alphabet:
        if counts[code] > best_count:
            best, best_count = code, counts[code]
    return best


def classify(answers: Mapping[int, str], questionnaire: Optional[Questionnaire] = None) -> Category:
    """Derive the category for one participant's answers.

    Total over any answer set: an empty set, or one whose dominant code has
    no mapping, falls back to the questionnaire's default category.
    """
    q = questionnaire or default_questionnaire()
    code = dominant_code(answers, q.alphabet)
    key = q.code_categories.get(code, q.default_category) if code else q.default_category
    return q.category(key)


def category_for(key: str, questionnaire: Optional[Questionnaire] = None) -> Category:
    """Display lookup for a stored category key."""
    q = questionnaire or default_questionnaire()
    return q.categories.get(key, FALLBACK_CATEGORY)
