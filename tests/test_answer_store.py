import pytest

from fitbot.services.answer_store import AnswerStore


def test_validate_stores_and_returns_error(registry):
    store = AnswerStore(registry)
    store.set_answer("age", "10")

    assert store.validate("age") == "Please enter a valid age between 13 and 100"
    assert store.error("age") == "Please enter a valid age between 13 and 100"


def test_set_answer_clears_error_without_revalidating(registry):
    store = AnswerStore(registry)
    store.set_answer("age", "10")
    store.validate("age")

    store.set_answer("age", "1")

    assert store.error("age") is None
    assert store.value("age") == "1"


def test_set_then_validate_valid_value_clears_prior_error(registry):
    store = AnswerStore(registry)
    store.set_answer("injuries", " ")
    assert store.validate("injuries") is not None

    store.set_answer("injuries", "None")
    assert store.validate("injuries") is None
    assert store.errors["injuries"] is None


def test_validate_missing_answer(registry):
    store = AnswerStore(registry)
    assert store.validate("fitness_goal") == "Please select your primary fitness goal"


def test_unknown_question_id_is_rejected(registry):
    store = AnswerStore(registry)
    with pytest.raises(KeyError):
        store.set_answer("shoe_size", "42")


def test_snapshot_follows_questionnaire_order(registry):
    store = AnswerStore(registry)
    store.set_answer("height", "180")
    store.set_answer("age", "30")

    assert store.snapshot() == [("age", "30"), ("height", "180")]


def test_answered_labels_use_option_labels(registry):
    store = AnswerStore(registry)
    store.set_answer("age", "30")
    store.set_answer("fitness_goal", "muscle_gain")

    rows = store.answered_labels(upto=registry.index_of("fitness_goal") + 1)

    assert rows == [
        ("What is your age", "30"),
        ("What is your primary fitness goal", "Gaining Muscle"),
    ]
    assert store.answered_labels(upto=0) == []
