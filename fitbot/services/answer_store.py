from typing import Any, Dict, List, Optional, Tuple

from .questionnaire import QuestionRegistry


class AnswerStore:
    """
    Raw answers of one questionnaire session, keyed by question id,
    together with the last validation error of each question.
    """
    def __init__(self, registry: QuestionRegistry):
        self.registry = registry
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, Optional[str]] = {}

    def set_answer(self, question_id: str, raw_value: Any) -> None:
        # Errors are only recomputed by validate(), not on every change.
        self.registry.index_of(question_id)
        self.values[question_id] = raw_value
        self.errors.pop(question_id, None)

    def validate(self, question_id: str) -> Optional[str]:
        question = self.registry.by_id(question_id)
        error = question.validate(self.values.get(question_id))
        self.errors[question_id] = error
        return error

    def clear_error(self, question_id: str) -> None:
        self.errors.pop(question_id, None)

    def value(self, question_id: str) -> Any:
        return self.values.get(question_id)

    def error(self, question_id: str) -> Optional[str]:
        return self.errors.get(question_id)

    def is_answered(self, question_id: str) -> bool:
        return question_id in self.values

    def snapshot(self) -> List[Tuple[str, Any]]:
        """ (id, raw value) pairs of answered questions, in questionnaire order. """
        return [(q.id, self.values[q.id]) for q in self.registry if q.id in self.values]

    def answered_labels(self, upto: int) -> List[Tuple[str, str]]:
        """
        (question title, display value) rows for the questions before step `upto`,
        used for the "answers so far" summary.
        """
        rows = []
        for index in range(min(upto, self.registry.count())):
            question = self.registry.get(index)
            if question.id in self.values:
                rows.append((question.title.rstrip('?'), question.display_value(self.values[question.id])))
        return rows
