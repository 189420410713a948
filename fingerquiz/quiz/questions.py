"""
Quiz question records as delivered by the question supply.

Questions arrive already generated; this module only validates them and
re-numbers appended batches so ids stay unique inside a session.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Sequence, Tuple

OPTIONS_PER_QUESTION = 4


@dataclass(frozen=True)
class Question:
    id: int
    prompt: str
    options: Tuple[str, ...]
    correct_index: int
    explanation: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'id', int(self.id))
        object.__setattr__(self, 'correct_index', int(self.correct_index))
        object.__setattr__(self, 'options', tuple(str(o) for o in self.options))
        if not str(self.prompt).strip():
            raise ValueError(f"Question {self.id} has an empty prompt")
        if len(self.options) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"Question {self.id} needs exactly {OPTIONS_PER_QUESTION} options, got {len(self.options)}"
            )
        if not 0 <= self.correct_index < OPTIONS_PER_QUESTION:
            raise ValueError(f"Question {self.id} has correct index {self.correct_index} outside 0..3")

    def is_correct(self, option_index) -> bool:
        return option_index is not None and int(option_index) == self.correct_index

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """
        Accepts snake_case keys or the generator's camelCase keys
        ({"id", "question", "options", "correctAnswer", "explanation"}).
        """
        try:
            return cls(
                id=int(data['id']),
                prompt=data.get('prompt', data.get('question', '')),
                options=tuple(data['options']),
                correct_index=int(data.get('correct_index', data.get('correctAnswer'))),
                explanation=data.get('explanation', '') or '',
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed question record: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'question': self.prompt,
            'options': list(self.options),
            'correctAnswer': self.correct_index,
            'explanation': self.explanation,
        }


def parse_questions(payload: Any) -> List[Question]:
    """Parse a JSON payload: either a list of records or {"questions": [...]}."""
    if isinstance(payload, dict):
        payload = payload.get('questions')
    if not isinstance(payload, list):
        raise ValueError("Question payload must be a list or an object with a 'questions' list")
    return [Question.from_dict(item) for item in payload]


def reindex_batch(existing: Sequence[Question], fetched: Sequence[Question]) -> List[Question]:
    """
    Renumber `fetched` so its ids continue after the highest id in `existing`.
    Appended ids are strictly greater than every prior id and pairwise unique.
    """
    next_id = max((q.id for q in existing), default=0) + 1
    return [replace(q, id=next_id + offset) for offset, q in enumerate(fetched)]


__all__ = [
    'OPTIONS_PER_QUESTION',
    'Question',
    'parse_questions',
    'reindex_batch',
]
