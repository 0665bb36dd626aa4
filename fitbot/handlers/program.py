import logging
from aiogram import Router, F, types, html
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.utils.markdown import hbold, hitalic
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..keyboards.program import (
    BACK,
    CHOICE_PREFIX,
    RETRY,
    START_PROGRAM,
    get_question_keyboard,
    get_retry_keyboard,
)
from ..services.outcomes import FatalFailure, Success
from ..services.program_history import record_submission
from ..services.questionnaire import QuestionKind
from ..services.wizard import WizardPhase, WizardSession, WizardSessionManager, WizardView
from ..states.program import ProgramFSM

router = Router()

BUSY_TEXT = (
    f"{hbold('Generating Your Program')}\n\n"
    "Creating your personalized fitness and nutrition plan...\n"
    "This may take a few moments..."
)


def render_question_text(view: WizardView) -> str:
    """ Text of the question card for the active step. """
    question = view.question
    lines = [
        f"Question {view.step_number} of {view.total} · {view.progress_percent}%",
        "",
        hbold(question.title),
    ]
    if question.subtitle:
        lines.append(hitalic(question.subtitle))
    if question.kind != QuestionKind.SINGLE_CHOICE:
        if question.placeholder:
            lines += ["", html.quote(question.placeholder)]
        if view.value is not None:
            lines += ["", f"Current answer: {html.quote(str(view.value))}"]
    if view.error:
        lines += ["", f"⚠️ {html.quote(view.error)}"]
    if view.answers_so_far:
        lines += ["", hbold("Your answers so far:")]
        lines += [f"{html.quote(title)}: {html.quote(value)}" for title, value in view.answers_so_far]
    return "\n".join(lines)


def render_outcome_text(view: WizardView) -> str:
    outcome = view.outcome
    if isinstance(outcome, Success):
        return (
            f"{hbold('Your program is ready!')}\n\n"
            "Your personalized fitness and nutrition plan has been generated."
        )
    if isinstance(outcome, FatalFailure) and outcome.is_not_authenticated:
        return f"{html.quote(outcome.message)}: send /start to register, then try again."
    message = outcome.message if outcome else "Unknown error"
    return f"Failed to generate your fitness program: {html.quote(message)}. Please try again."


async def _show(message: types.Message, text: str, reply_markup=None, edit: bool = False) -> None:
    if edit:
        try:
            await message.edit_text(text, reply_markup=reply_markup)
            return
        except TelegramBadRequest as e:
            # Editing to identical content is rejected by Telegram
            logging.debug(f"Could not edit message {message.message_id}: {e}")
            return
    await message.answer(text, reply_markup=reply_markup)


async def _notify_admins(bot, settings: Settings, user: types.User) -> None:
    admin_notification_text = (
        f"🏋️ <b>New fitness program generated!</b>\n\n"
        f"User: {html.quote(user.full_name)} (@{user.username})\n"
        f"ID: <code>{user.id}</code>"
    )
    for admin_id in settings.admin_ids_list:
        try:
            await bot.send_message(admin_id, admin_notification_text)
        except Exception as e:
            logging.error(f"Failed to send program notification to admin {admin_id}: {e}")


async def _advance_and_show(
    message: types.Message,
    user: types.User,
    wizard: WizardSession,
    wizard_sessions: WizardSessionManager,
    state: FSMContext,
    session: AsyncSession,
    settings: Settings,
    edit: bool,
) -> None:
    """ Advances the wizard and renders whatever state it ends up in. """
    async def show_busy(_: WizardView) -> None:
        await _show(message, BUSY_TEXT, edit=edit)

    view = await wizard.advance(on_submitting=show_busy)

    if view.phase == WizardPhase.ANSWERING:
        await _show(message, render_question_text(view), get_question_keyboard(view), edit=edit)
        return

    if wizard.abandoned or view.outcome is None:
        return

    try:
        await record_submission(session, user.id, view.outcome)
    except Exception as e:
        logging.error(f"Failed to record program request of user {user.id}: {e}", exc_info=True)

    if view.phase == WizardPhase.COMPLETED:
        wizard_sessions.discard(user.id)
        await state.clear()
        await _show(message, render_outcome_text(view), edit=edit)
        await _notify_admins(message.bot, settings, user)
    else:
        await _show(message, render_outcome_text(view), get_retry_keyboard(), edit=edit)


async def _start_session(message: types.Message, user: types.User, state: FSMContext, wizard_sessions: WizardSessionManager, edit: bool) -> None:
    wizard = wizard_sessions.start(user.id)
    await state.set_state(ProgramFSM.ANSWERING)
    view = wizard.view()
    await _show(message, render_question_text(view), get_question_keyboard(view), edit=edit)


@router.callback_query(F.data == START_PROGRAM)
async def start_program_handler(cb: types.CallbackQuery, state: FSMContext, wizard_sessions: WizardSessionManager):
    await _start_session(cb.message, cb.from_user, state, wizard_sessions, edit=True)
    await cb.answer()


@router.message(Command("program"))
async def program_command_handler(message: types.Message, state: FSMContext, wizard_sessions: WizardSessionManager):
    await _start_session(message, message.from_user, state, wizard_sessions, edit=False)


@router.message(Command("cancel"))
async def cancel_handler(message: types.Message, state: FSMContext, wizard_sessions: WizardSessionManager):
    wizard_sessions.discard(message.from_user.id)
    await state.clear()
    await message.answer("Questionnaire cancelled. Send /program to start again.")


@router.message(ProgramFSM.ANSWERING, F.text)
async def text_answer_handler(
    message: types.Message,
    state: FSMContext,
    wizard_sessions: WizardSessionManager,
    session: AsyncSession,
    settings: Settings,
):
    """ Handles typed answers for number and free-text questions. """
    wizard = wizard_sessions.get(message.from_user.id)
    if wizard is None:
        await state.clear()
        await message.answer("Your questionnaire has expired. Send /program to start again.")
        return

    if wizard.phase == WizardPhase.SUBMITTING:
        await message.answer("Your program is being generated, please wait...")
        return
    if not wizard.is_answering:
        await message.answer("Please use the buttons to continue.")
        return

    question = wizard.current_question
    if question.kind == QuestionKind.SINGLE_CHOICE:
        await message.answer("Please use the buttons to answer this question.")
        return

    wizard.set_answer(question.id, message.text)
    await _advance_and_show(message, message.from_user, wizard, wizard_sessions, state, session, settings, edit=False)


@router.callback_query(F.data.startswith(f"{CHOICE_PREFIX}:"))
async def choice_answer_handler(
    cb: types.CallbackQuery,
    state: FSMContext,
    wizard_sessions: WizardSessionManager,
    session: AsyncSession,
    settings: Settings,
):
    """ Handles single-choice answers. """
    _, index_str, value = cb.data.split(":", 2)

    wizard = wizard_sessions.get(cb.from_user.id)
    if wizard is None:
        await cb.answer("This questionnaire is no longer active. Send /program to start again.", show_alert=True)
        return
    if not wizard.is_answering or int(index_str) != wizard.current_index:
        # Button of a step that is no longer active, or a submission is in flight
        await cb.answer()
        return

    await cb.answer()
    wizard.set_answer(wizard.current_question.id, value)
    await _advance_and_show(cb.message, cb.from_user, wizard, wizard_sessions, state, session, settings, edit=True)


@router.callback_query(F.data == BACK)
async def back_handler(cb: types.CallbackQuery, wizard_sessions: WizardSessionManager):
    wizard = wizard_sessions.get(cb.from_user.id)
    if wizard is None:
        await cb.answer("This questionnaire is no longer active.", show_alert=True)
        return

    if wizard.phase == WizardPhase.FAILED:
        # Back from a failed submission returns to the last question, answers intact
        view = wizard.retry()
    elif wizard.view().can_go_back:
        view = wizard.retreat()
    else:
        await cb.answer("You are at the first question.", show_alert=True)
        return

    await _show(cb.message, render_question_text(view), get_question_keyboard(view), edit=True)
    await cb.answer()


@router.callback_query(F.data == RETRY)
async def retry_handler(
    cb: types.CallbackQuery,
    state: FSMContext,
    wizard_sessions: WizardSessionManager,
    session: AsyncSession,
    settings: Settings,
):
    wizard = wizard_sessions.get(cb.from_user.id)
    if wizard is None or wizard.phase != WizardPhase.FAILED:
        await cb.answer()
        return

    await cb.answer()
    wizard.retry()
    await _advance_and_show(cb.message, cb.from_user, wizard, wizard_sessions, state, session, settings, edit=True)
