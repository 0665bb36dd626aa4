from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from ..services.questionnaire import QuestionKind
from ..services.wizard import WizardView

START_PROGRAM = "program_start"
BACK = "program_back"
RETRY = "program_retry"
CHOICE_PREFIX = "program_choice"


def choice_callback_data(step_index: int, value: str) -> str:
    # Step index instead of question id keeps callback data under the 64-byte limit
    return f"{CHOICE_PREFIX}:{step_index}:{value}"


def get_start_program_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="Generate my program →", callback_data=START_PROGRAM)]
    ])


def get_question_keyboard(view: WizardView) -> InlineKeyboardMarkup | None:
    """
    Generates the keyboard for the active question: one button per option for
    choice questions, plus a 'Previous' button after the first step.
    """
    buttons = []

    if view.question.kind == QuestionKind.SINGLE_CHOICE:
        for option in view.question.options:
            text = option.label
            if view.value is not None and str(view.value) == option.value:
                text = f"✅ {text}"
            buttons.append([InlineKeyboardButton(
                text=text,
                callback_data=choice_callback_data(view.current_index, option.value),
            )])

    if view.can_go_back:
        buttons.append([InlineKeyboardButton(text="← Previous", callback_data=BACK)])

    if not buttons:
        return None
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_retry_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="Try again", callback_data=RETRY)],
        [InlineKeyboardButton(text="← Back to last question", callback_data=BACK)],
    ])
