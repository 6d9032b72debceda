"""
Questionnaire definition.

The questionnaire is configuration data (``data/questions.json`` by default,
or the file named by ``QUESTIONS_PATH``).  It is validated once when loaded
and never mutated afterwards.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import QuestionnaireError
from .models import Category, Option, Question

logger = logging.getLogger(__name__)

DEFAULT_QUESTIONS_PATH = Path(__file__).resolve().parent / "data" / "questions.json"


class Questionnaire:
    """
    Ordered, fixed-length sequence of questions plus the category table.

    Attributes:
        questions: Questions in answering order; ids are exactly 1..N.
        alphabet: Canonical option codes, highest tie-break priority first.
        categories: Category key -> Category.
        code_categories: Option code -> category key.
        default_category: Category key for empty or unmapped answer sets.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        alphabet: Sequence[str],
        categories: Dict[str, Category],
        code_categories: Dict[str, str],
        default_category: str,
    ) -> None:
        self.questions: Tuple[Question, ...] = tuple(questions)
        self.alphabet: Tuple[str, ...] = tuple(alphabet)
        self.categories = dict(categories)
        self.code_categories = dict(code_categories)
        self.default_category = default_category
        self._by_id = {q.id: q for q in self.questions}
        self._validate()

    def _validate(self) -> None:
        if not self.questions:
            raise QuestionnaireError("Questionnaire has no questions")
        if len(set(self.alphabet)) != len(self.alphabet):
            raise QuestionnaireError("Option alphabet has duplicate codes")
        for code in self.alphabet:
            if not (isinstance(code, str) and len(code) == 1 and code.isalpha()):
                raise QuestionnaireError(f"Option code must be a single letter: {code!r}")

        expected = list(range(1, len(self.questions) + 1))
        if [q.id for q in self.questions] != expected:
            raise QuestionnaireError("Question ids must be 1..N in order")

        for q in self.questions:
            codes = q.option_codes
            if not codes:
                raise QuestionnaireError(f"Question {q.id} has no options")
            if len(set(codes)) != len(codes):
                raise QuestionnaireError(f"Question {q.id} has duplicate option codes")
            unknown = [c for c in codes if c not in self.alphabet]
            if unknown:
                raise QuestionnaireError(f"Question {q.id} uses codes outside the alphabet: {unknown}")

        if self.default_category not in self.categories:
            raise QuestionnaireError(f"Unknown default category: {self.default_category!r}")
        for code, key in self.code_categories.items():
            if key not in self.categories:
                raise QuestionnaireError(f"Code {code!r} maps to unknown category {key!r}")

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self):
        return iter(self.questions)

    @property
    def ids(self) -> List[int]:
        return [q.id for q in self.questions]

    def question_at(self, index: int) -> Question:
        """Question at zero-based position ``index``."""
        return self.questions[index]

    def get(self, question_id: int) -> Optional[Question]:
        return self._by_id.get(question_id)

    def option_codes(self, question_id: int) -> Tuple[str, ...]:
        q = self._by_id.get(question_id)
        return q.option_codes if q else ()

    def is_valid_option(self, question_id: int, code: Any) -> bool:
        return isinstance(code, str) and code in self.option_codes(question_id)

    def category(self, key: str) -> Category:
        return self.categories.get(key) or self.categories[self.default_category]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Questionnaire":
        try:
            questions = [
                Question(
                    id=int(q["id"]),
                    category=q["category"],
                    text=q["text"],
                    options=tuple(Option(id=o["id"], text=o["text"]) for o in q["options"]),
                )
                for q in data["questions"]
            ]
            alphabet = data.get("alphabet") or sorted(
                {o.id for q in questions for o in q.options}
            )
            categories: Dict[str, Category] = {}
            code_categories: Dict[str, str] = {}
            for key, c in data["categories"].items():
                categories[key] = Category(key=key, title=c["title"], emoji=c.get("emoji", ""))
                if c.get("code"):
                    code_categories[c["code"]] = key
            default_category = data["default_category"]
        except (KeyError, TypeError, ValueError) as e:
            raise QuestionnaireError(f"Malformed questionnaire data: {e}") from e

        return cls(questions, alphabet, categories, code_categories, default_category)


def load_questionnaire(path: Optional[str] = None) -> Questionnaire:
    """
    Load and validate the questionnaire.

    Args:
        path: JSON file to read.  Defaults to ``QUESTIONS_PATH`` or the
            packaged questions.
    Raises:
        QuestionnaireError: If the file is missing or malformed.
    """
    filepath = Path(path or os.environ.get("QUESTIONS_PATH") or DEFAULT_QUESTIONS_PATH)
    if not filepath.exists():
        raise QuestionnaireError(f"Questionnaire file not found: {filepath}")

    logger.info("Loading questionnaire from %s", filepath)
    with filepath.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise QuestionnaireError(f"Questionnaire file is not valid JSON: {e}") from e

    return Questionnaire.from_dict(data)


_default: Optional[Questionnaire] = None


def default_questionnaire() -> Questionnaire:
    """The packaged questionnaire, loaded once per process."""
    global _default
    if _default is None:
        _default = load_questionnaire()
    return _default
