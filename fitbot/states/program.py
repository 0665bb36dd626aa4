from aiogram.fsm.state import StatesGroup, State


class ProgramFSM(StatesGroup):
    """
    Finite State Machine for the program questionnaire.
    Only routes free-text answers; the questionnaire flow itself lives in WizardSession.
    """
    ANSWERING = State()
