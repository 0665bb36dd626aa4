import pytest

from fitbot.services.questionnaire import (
    ChoiceRule,
    MinLengthRule,
    QuestionKind,
    QuestionOption,
    QuestionRegistry,
    QuestionSpec,
    RangeRule,
    RequiredRule,
    evaluate_rule,
    parse_number,
)


def test_registry_order_and_lookup(registry):
    ids = [question.id for question in registry]
    assert ids == [
        "age", "weight", "height", "injuries",
        "fitness_goal", "workout_days", "fitness_level", "dietary_restrictions",
    ]
    assert registry.count() == len(registry) == 8
    assert registry.get(0).id == "age"
    assert registry.index_of("fitness_level") == 6
    assert registry.by_id("height").kind == QuestionKind.NUMBER


def test_choice_questions_carry_options(registry):
    workout_days = registry.by_id("workout_days")
    assert [option.value for option in workout_days.options] == ["2", "3", "4", "5", "6", "7"]
    assert workout_days.option_label("3") == "3 days per week"
    assert registry.by_id("age").options == ()


@pytest.mark.parametrize("raw", ["10", "12", "101", "abc", "", None, "30.5", "nan"])
def test_age_rejects_out_of_range_or_malformed(registry, raw):
    assert registry.by_id("age").validate(raw) == "Please enter a valid age between 13 and 100"


@pytest.mark.parametrize("raw", ["13", "100", "30", 42, " 55 "])
def test_age_accepts_inclusive_range(registry, raw):
    assert registry.by_id("age").validate(raw) is None


@pytest.mark.parametrize("question_id,low,high", [("weight", "30", "300"), ("height", "100", "250")])
def test_decimal_ranges_are_inclusive(registry, question_id, low, high):
    question = registry.by_id(question_id)
    assert question.validate(low) is None
    assert question.validate(high) is None
    assert question.validate("75.5" if question_id == "weight" else "180.5") is None
    assert question.validate("29.9" if question_id == "weight" else "99") is not None
    assert question.validate("inf") is not None


def test_free_text_requires_two_trimmed_characters(registry):
    injuries = registry.by_id("injuries")
    assert injuries.validate(" ") == 'Please provide information about injuries or write "None"'
    assert injuries.validate(" a ") is not None
    assert injuries.validate("None") is None
    assert injuries.validate("Bad knee") is None


def test_single_choice_requires_declared_value(registry):
    goal = registry.by_id("fitness_goal")
    assert goal.validate("strength") is None
    assert goal.validate("flexibility") == "Please select your primary fitness goal"
    assert goal.validate("") == "Please select your primary fitness goal"
    assert registry.by_id("workout_days").validate(5) is None


def test_validation_is_deterministic(registry):
    for question in registry:
        for raw in ["", "5", "None", "strength", "120", None]:
            assert question.validate(raw) == question.validate(raw)


def test_evaluate_rule_dispatch():
    assert evaluate_rule(RequiredRule("required"), "  ") == "required"
    assert evaluate_rule(RangeRule(1, 5, "range", integer=True), "3") is None
    assert evaluate_rule(RangeRule(1, 5, "range", integer=True), "3.5") == "range"
    assert evaluate_rule(MinLengthRule(3, "short"), "ab") == "short"
    assert evaluate_rule(ChoiceRule(("a", "b"), "choice"), "b") is None

    with pytest.raises(TypeError):
        evaluate_rule(object(), "x")


def test_parse_number():
    assert parse_number("42", integer=True) == 42
    assert parse_number("42.0", integer=True) == 42
    assert parse_number("7.25") == 7.25
    assert parse_number(True) is None
    assert parse_number("1e400") is None
    assert parse_number(" 75.5 ") == 75.5
    assert parse_number("-3") == -3.0


@pytest.mark.parametrize("raw", ["1_00", "1e2", "１００", "0x64", "75,5", "+", "."])
def test_weight_accepts_plain_decimals_only(registry, raw):
    assert parse_number(raw) is None
    assert registry.by_id("weight").validate(raw) == "Please enter a valid weight between 30-300 kg"


def test_coerce_uses_payload_types(registry):
    assert registry.by_id("age").coerce("30") == 30
    assert isinstance(registry.by_id("age").coerce("30"), int)
    assert registry.by_id("weight").coerce("75") == 75.0
    assert registry.by_id("workout_days").coerce("4") == "4"
    assert registry.by_id("injuries").coerce("None") == "None"


def _choice(question_id, values):
    options = tuple(QuestionOption(value, value.title()) for value in values)
    return QuestionSpec(
        id=question_id,
        title="Pick one",
        kind=QuestionKind.SINGLE_CHOICE,
        rules=(ChoiceRule(values, "pick"),),
        options=options,
    )


def test_registry_rejects_misconfiguration():
    with pytest.raises(ValueError):
        QuestionRegistry([])
    with pytest.raises(ValueError):
        QuestionRegistry([_choice("a", ("x",)), _choice("a", ("y",))])
    with pytest.raises(ValueError):
        QuestionRegistry([_choice("a", ("x", "x"))])
    with pytest.raises(ValueError):
        QuestionRegistry([QuestionSpec(
            id="text",
            title="Text",
            kind=QuestionKind.FREE_TEXT,
            rules=(),
            options=(QuestionOption("x", "X"),),
        )])
