import enum
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ..data.program_questionnaire_data import question_definitions_program


class QuestionKind(str, enum.Enum):
    NUMBER = "number"
    FREE_TEXT = "free_text"
    SINGLE_CHOICE = "single_choice"


@dataclass(frozen=True)
class QuestionOption:
    value: str
    label: str


# --- Validation rules ---
# Rules are plain data; evaluate_rule() is the only place that interprets them.

@dataclass(frozen=True)
class RequiredRule:
    message: str


@dataclass(frozen=True)
class RangeRule:
    minimum: float
    maximum: float
    message: str
    integer: bool = False


@dataclass(frozen=True)
class MinLengthRule:
    min_length: int
    message: str


@dataclass(frozen=True)
class ChoiceRule:
    values: Tuple[str, ...]
    message: str


ValidationRule = Union[RequiredRule, RangeRule, MinLengthRule, ChoiceRule]

# Plain ASCII decimals only: no exponents, underscores or non-ASCII digits
NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)", re.ASCII)


def _is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    return isinstance(raw, str) and not raw.strip()


def parse_number(raw: Any, integer: bool = False) -> Optional[Union[int, float]]:
    """
    Parses a raw answer into a finite number, or returns None.
    With `integer=True` only whole numbers are accepted.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        text = str(raw).strip()
        if not NUMBER_PATTERN.fullmatch(text):
            return None
        number = float(text)
    if not math.isfinite(number):
        return None
    if integer:
        if not number.is_integer():
            return None
        return int(number)
    return number


def evaluate_rule(rule: ValidationRule, raw: Any) -> Optional[str]:
    """Returns the rule's error message if `raw` violates it, otherwise None."""
    if isinstance(rule, RequiredRule):
        return rule.message if _is_blank(raw) else None

    if isinstance(rule, RangeRule):
        number = parse_number(raw, integer=rule.integer)
        if number is None or not (rule.minimum <= number <= rule.maximum):
            return rule.message
        return None

    if isinstance(rule, MinLengthRule):
        if raw is None or len(str(raw).strip()) < rule.min_length:
            return rule.message
        return None

    if isinstance(rule, ChoiceRule):
        if _is_blank(raw) or str(raw) not in rule.values:
            return rule.message
        return None

    raise TypeError(f"Unknown validation rule: {rule!r}")


@dataclass(frozen=True)
class QuestionSpec:
    """A single question of the questionnaire with its validation rules."""
    id: str
    title: str
    kind: QuestionKind
    rules: Tuple[ValidationRule, ...]
    options: Tuple[QuestionOption, ...] = ()
    subtitle: Optional[str] = None
    placeholder: Optional[str] = None

    def validate(self, raw: Any) -> Optional[str]:
        for rule in self.rules:
            error = evaluate_rule(rule, raw)
            if error:
                return error
        return None

    def option_label(self, value: Any) -> Optional[str]:
        for option in self.options:
            if option.value == str(value):
                return option.label
        return None

    def display_value(self, raw: Any) -> str:
        """Human readable form of a stored answer (option label for choices)."""
        if self.kind == QuestionKind.SINGLE_CHOICE:
            return self.option_label(raw) or str(raw)
        return str(raw)

    def coerce(self, raw: Any) -> Union[int, float, str]:
        """Converts an already validated raw answer to its payload type."""
        if self.kind == QuestionKind.NUMBER:
            integer = any(isinstance(rule, RangeRule) and rule.integer for rule in self.rules)
            number = parse_number(raw, integer=integer)
            if number is None:
                raise ValueError(f"Answer for '{self.id}' is not a number: {raw!r}")
            return number
        return str(raw)


class QuestionRegistry:
    """
    Immutable, ordered list of questions. The position of a question in the
    registry is its step index.
    """
    def __init__(self, questions: Iterable[QuestionSpec]):
        self._questions: Tuple[QuestionSpec, ...] = tuple(questions)
        self._index_by_id: Dict[str, int] = {}

        if not self._questions:
            raise ValueError("A questionnaire needs at least one question.")

        for index, question in enumerate(self._questions):
            if question.id in self._index_by_id:
                raise ValueError(f"Duplicate question id: {question.id}")
            self._check_options(question)
            self._index_by_id[question.id] = index

    @staticmethod
    def _check_options(question: QuestionSpec) -> None:
        if question.kind == QuestionKind.SINGLE_CHOICE:
            if not question.options:
                raise ValueError(f"Choice question '{question.id}' has no options.")
            values = [option.value for option in question.options]
            if len(values) != len(set(values)):
                raise ValueError(f"Choice question '{question.id}' has duplicate option values.")
        elif question.options:
            raise ValueError(f"Question '{question.id}' of kind '{question.kind.value}' cannot have options.")

    def get(self, index: int) -> QuestionSpec:
        return self._questions[index]

    def count(self) -> int:
        return len(self._questions)

    def index_of(self, question_id: str) -> int:
        return self._index_by_id[question_id]

    def by_id(self, question_id: str) -> QuestionSpec:
        return self._questions[self.index_of(question_id)]

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[QuestionSpec]:
        return iter(self._questions)


def question_from_definition(q_def: Dict[str, Any]) -> QuestionSpec:
    """ Builds a QuestionSpec from a declarative question definition. """
    kind = QuestionKind(q_def['type'])
    message = q_def['error']
    options = tuple(QuestionOption(value=str(value), label=label) for value, label in q_def.get('options', []))

    rules: List[ValidationRule] = [RequiredRule(message)]
    if kind == QuestionKind.NUMBER:
        bounds = q_def['range']
        rules.append(RangeRule(
            minimum=bounds['min'],
            maximum=bounds['max'],
            message=message,
            integer=bounds.get('integer', False),
        ))
    elif kind == QuestionKind.FREE_TEXT:
        rules.append(MinLengthRule(q_def.get('min_length', 1), message))
    elif kind == QuestionKind.SINGLE_CHOICE:
        rules.append(ChoiceRule(tuple(option.value for option in options), message))

    return QuestionSpec(
        id=q_def['id'],
        title=q_def['title'],
        kind=kind,
        rules=tuple(rules),
        options=options,
        subtitle=q_def.get('subtitle'),
        placeholder=q_def.get('placeholder'),
    )


def build_registry(definitions: Iterable[Dict[str, Any]]) -> QuestionRegistry:
    return QuestionRegistry(question_from_definition(q_def) for q_def in definitions)


def program_registry() -> QuestionRegistry:
    """ The fitness program questionnaire. """
    return build_registry(question_definitions_program)
