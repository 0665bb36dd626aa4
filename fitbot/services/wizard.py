import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .answer_store import AnswerStore
from .identity import IdentityProvider
from .outcomes import RetryableFailure, SubmissionOutcome, Success, ValidationError
from .program_service import ProgramSubmissionPipeline
from .questionnaire import QuestionRegistry, QuestionSpec


class WizardPhase(str, enum.Enum):
    ANSWERING = "answering"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class WizardView:
    """Everything the presentation layer needs to render the session after a transition."""
    phase: WizardPhase
    current_index: int
    total: int
    question: QuestionSpec
    value: Any = None
    error: Optional[str] = None
    outcome: Optional[SubmissionOutcome] = None
    answers_so_far: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def step_number(self) -> int:
        return self.current_index + 1

    @property
    def progress_percent(self) -> int:
        # Half-up rounding, so step 1 of 8 shows 13%
        return int(self.step_number * 100 / self.total + 0.5)

    @property
    def is_last_step(self) -> bool:
        return self.current_index == self.total - 1

    @property
    def can_go_back(self) -> bool:
        return self.phase == WizardPhase.ANSWERING and self.current_index > 0


SubmittingCallback = Callable[[WizardView], Awaitable[None]]


class WizardSession:
    """
    State machine of one questionnaire run.

    answering(i) --advance, valid, i < N-1--> answering(i+1)
    answering(N-1) --advance, valid--> submitting --> completed | failed
    failed --retry--> answering(N-1)

    Calls that are not allowed in the current phase are ignored and leave
    the session unchanged.
    """

    def __init__(
        self,
        registry: QuestionRegistry,
        pipeline: ProgramSubmissionPipeline,
        identity: IdentityProvider,
    ):
        self.registry = registry
        self.pipeline = pipeline
        self.identity = identity
        self.answers = AnswerStore(registry)
        self.current_index = 0
        self.phase = WizardPhase.ANSWERING
        self.outcome: Optional[SubmissionOutcome] = None
        self.abandoned = False
        self.submission_count = 0

    @property
    def current_question(self) -> QuestionSpec:
        return self.registry.get(self.current_index)

    @property
    def is_answering(self) -> bool:
        return self.phase == WizardPhase.ANSWERING and not self.abandoned

    def validation_error(self) -> Optional[ValidationError]:
        question = self.current_question
        message = self.answers.error(question.id)
        return ValidationError(question.id, message) if message else None

    def view(self) -> WizardView:
        question = self.current_question
        return WizardView(
            phase=self.phase,
            current_index=self.current_index,
            total=self.registry.count(),
            question=question,
            value=self.answers.value(question.id),
            error=self.answers.error(question.id),
            outcome=self.outcome,
            answers_so_far=self.answers.answered_labels(self.current_index),
        )

    def set_answer(self, question_id: str, value: Any) -> bool:
        if not self.is_answering:
            logging.debug(f"set_answer ignored in phase {self.phase.value}")
            return False
        self.answers.set_answer(question_id, value)
        return True

    async def advance(self, on_submitting: Optional[SubmittingCallback] = None) -> WizardView:
        """
        Validates the current answer and moves forward. On the last question a
        valid answer starts the submission; `on_submitting` is awaited with the
        busy view right before the request goes out.
        """
        if not self.is_answering:
            logging.debug(f"advance ignored in phase {self.phase.value}")
            return self.view()

        question = self.current_question
        if self.answers.validate(question.id):
            logging.debug(f"Answer for '{question.id}' rejected, staying on step {self.current_index}")
            return self.view()

        if self.current_index < self.registry.count() - 1:
            self.current_index += 1
            return self.view()

        await self._submit(on_submitting)
        return self.view()

    def retreat(self) -> WizardView:
        if not self.is_answering or self.current_index == 0:
            return self.view()
        self.answers.clear_error(self.current_question.id)
        self.current_index -= 1
        return self.view()

    def retry(self) -> WizardView:
        if self.phase != WizardPhase.FAILED or self.abandoned:
            logging.debug(f"retry ignored in phase {self.phase.value}")
            return self.view()
        self.phase = WizardPhase.ANSWERING
        self.current_index = self.registry.count() - 1
        self.outcome = None
        return self.view()

    def abandon(self) -> None:
        """ Marks the session as discarded; a pending outcome will be dropped. """
        self.abandoned = True

    async def _submit(self, on_submitting: Optional[SubmittingCallback]) -> None:
        # The phase switch happens before the first await, so every
        # concurrent advance() sees SUBMITTING and is ignored.
        self.phase = WizardPhase.SUBMITTING
        self.outcome = None
        self.submission_count += 1

        try:
            if on_submitting is not None:
                await on_submitting(self.view())
        except Exception as e:
            logging.error(f"Could not render busy state: {e}", exc_info=True)

        try:
            token = await self.identity.resolve_token()
            outcome = await self.pipeline.submit(self.answers, token)
        except Exception as e:
            logging.error(f"Program submission failed unexpectedly: {e}", exc_info=True)
            outcome = RetryableFailure(message=str(e) or e.__class__.__name__)

        if self.abandoned:
            logging.info("Session was abandoned during submission, outcome discarded.")
            return

        self.outcome = outcome
        self.phase = WizardPhase.COMPLETED if isinstance(outcome, Success) else WizardPhase.FAILED


class WizardSessionManager:
    """
    Owns the live questionnaire sessions, one per chat user.
    Starting a new session for a user abandons the previous one.

    With `idle_timeout` set, sessions untouched for that many seconds are
    discarded the next time the manager is used. A session that is
    submitting is never expired.
    """

    def __init__(
        self,
        registry: QuestionRegistry,
        pipeline: ProgramSubmissionPipeline,
        identity_factory: Callable[[int], IdentityProvider],
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.pipeline = pipeline
        self.identity_factory = identity_factory
        self.idle_timeout = idle_timeout
        self.clock = clock
        self._sessions: Dict[int, WizardSession] = {}
        self._last_seen: Dict[int, float] = {}

    def start(self, user_id: int) -> WizardSession:
        self.discard(user_id)
        self.prune()
        session = WizardSession(self.registry, self.pipeline, self.identity_factory(user_id))
        self._sessions[user_id] = session
        self._last_seen[user_id] = self.clock()
        logging.info(f"Started program questionnaire for user {user_id}")
        return session

    def get(self, user_id: int) -> Optional[WizardSession]:
        self.prune()
        session = self._sessions.get(user_id)
        if session is not None:
            self._last_seen[user_id] = self.clock()
        return session

    def discard(self, user_id: int) -> None:
        session = self._sessions.pop(user_id, None)
        self._last_seen.pop(user_id, None)
        if session is not None:
            session.abandon()
            logging.info(f"Discarded program questionnaire of user {user_id}")

    def prune(self) -> int:
        """ Discards idle sessions and returns how many were removed. """
        if self.idle_timeout is None:
            return 0
        deadline = self.clock() - self.idle_timeout
        expired = [
            user_id for user_id, session in self._sessions.items()
            if session.phase != WizardPhase.SUBMITTING and self._last_seen[user_id] < deadline
        ]
        for user_id in expired:
            logging.info(f"Questionnaire of user {user_id} expired after {self.idle_timeout}s idle")
            self.discard(user_id)
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
