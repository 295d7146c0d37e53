"""Benchmark question catalogue."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import ConfigError

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    """Difficulty levels for benchmark questions."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class BenchmarkQuestion(BaseModel):
    """A single benchmark prompt. Instances are immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    prompt_text: str = Field(..., alias="text", description="Sent verbatim to the model")
    category: str = Field(default="general")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    expected_type: str = Field(default="", description="Descriptive tag, not checked")

    @field_validator("prompt_text")
    @classmethod
    def validate_prompt_text(cls, v):
        """Ensure prompt text is not empty."""
        if not v.strip():
            raise ValueError("Prompt text cannot be empty")
        return v

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.prompt_text,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "expected_type": self.expected_type,
        }


def _q(id: str, text: str, category: str, expected_type: str, difficulty: str) -> BenchmarkQuestion:
    return BenchmarkQuestion(
        id=id, prompt_text=text, category=category,
        expected_type=expected_type, difficulty=Difficulty(difficulty),
    )


DEFAULT_QUESTIONS: Tuple[BenchmarkQuestion, ...] = (
    # basic
    _q("basic_1",
       "Peux-tu me dire si tu fonctionnes correctement ? Réponds simplement par \"Oui, je fonctionne correctement\".",
       "basic", "confirmation", "easy"),
    _q("basic_2",
       "Peux-tu me parler en français ? Écris une phrase simple en français pour confirmer que tu comprends cette langue.",
       "basic", "french_response", "easy"),
    # medical
    _q("medical_1",
       "Quels sont les symptômes principaux de l'hypertension artérielle ?",
       "medical", "list", "easy"),
    _q("medical_2",
       "Expliquez le mécanisme d'action des inhibiteurs de l'ECA dans le traitement de l'hypertension.",
       "medical", "explanation", "medium"),
    _q("medical_3",
       "Décrivez les étapes de la glycolyse et son importance dans le métabolisme cellulaire.",
       "medical", "detailed_explanation", "hard"),
    # general
    _q("general_1",
       "Résumez les causes principales du réchauffement climatique.",
       "general", "summary", "easy"),
    _q("general_2",
       "Expliquez le concept de l'intelligence artificielle et ses applications actuelles.",
       "general", "explanation", "medium"),
    # coding
    _q("coding_1",
       "Écrivez une fonction Python qui calcule la suite de Fibonacci jusqu'au n-ième terme.",
       "coding", "code", "medium"),
    # reasoning
    _q("reasoning_1",
       "Si tous les A sont B, et tous les B sont C, que peut-on dire de la relation entre A et C ?",
       "reasoning", "logical_reasoning", "easy"),
    _q("reasoning_2",
       "Un train part de Paris à 14h00 à 120 km/h vers Lyon (450 km). Un autre train part de Lyon à 14h30 "
       "à 100 km/h vers Paris. À quelle heure et à quelle distance de Paris vont-ils se croiser ?",
       "reasoning", "mathematical_problem", "hard"),
)


class QuestionBank:
    """Read-only lookup over an ordered set of questions."""

    def __init__(self, questions: Optional[Iterable[BenchmarkQuestion]] = None):
        self._questions: Dict[str, BenchmarkQuestion] = {}
        for question in (DEFAULT_QUESTIONS if questions is None else questions):
            if question.id in self._questions:
                raise ConfigError(f"Duplicate question id: {question.id}")
            self._questions[question.id] = question

    @classmethod
    def from_file(cls, path: str, include_defaults: bool = True) -> "QuestionBank":
        """Load custom questions from JSON, optionally after the built-in ones.

        Accepts a list of question objects or ``{"questions": [...]}``.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Questions file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Questions file {path} is not valid JSON: {e}") from e

        entries = data.get("questions", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ConfigError(f"Questions file {path} must hold a list of questions")

        try:
            loaded = [BenchmarkQuestion.model_validate(entry) for entry in entries]
        except ValidationError as e:
            raise ConfigError(f"Invalid question in {path}: {e}") from e

        logger.info(f"Loaded {len(loaded)} custom questions from {Path(path).name}")
        questions = list(DEFAULT_QUESTIONS) + loaded if include_defaults else loaded
        return cls(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._questions

    def all(self) -> List[BenchmarkQuestion]:
        return list(self._questions.values())

    def get(self, question_id: str) -> Optional[BenchmarkQuestion]:
        return self._questions.get(question_id)

    def resolve(self, question_ids: Iterable[str]) -> Tuple[List[BenchmarkQuestion], List[str]]:
        """Split ids into known questions (caller order, no repeats) and unknown ids."""
        found: List[BenchmarkQuestion] = []
        dropped: List[str] = []
        seen = set()
        for question_id in question_ids:
            if question_id in seen:
                continue
            seen.add(question_id)
            question = self._questions.get(question_id)
            if question is None:
                dropped.append(question_id)
            else:
                found.append(question)
        return found, dropped

    def categories(self) -> List[str]:
        return list(dict.fromkeys(q.category for q in self._questions.values()))

    def difficulties(self) -> List[str]:
        return list(dict.fromkeys(q.difficulty.value for q in self._questions.values()))

    def by_category(self, category: str) -> List[BenchmarkQuestion]:
        return [q for q in self._questions.values() if q.category == category]

    def describe(self) -> Dict[str, Any]:
        """Catalogue payload for API and CLI listings."""
        return {
            "available_questions": [q.to_dict() for q in self._questions.values()],
            "total_questions": len(self._questions),
            "categories": self.categories(),
            "difficulties": self.difficulties(),
        }
