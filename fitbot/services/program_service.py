import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import aiohttp
from pydantic import BaseModel, ConfigDict

from .answer_store import AnswerStore
from .outcomes import (
    INCOMPLETE_ANSWERS,
    INVALID_ANSWERS,
    FatalFailure,
    ProgramApiError,
    RetryableFailure,
    SubmissionOutcome,
    Success,
    not_authenticated,
)


class ProgramRequestPayload(BaseModel):
    """ Body of a "generate program" request. Built once per submission attempt. """
    model_config = ConfigDict(frozen=True)

    user_id: str
    age: int
    height: float
    weight: float
    injuries: str
    workout_days: int
    fitness_goal: str
    fitness_level: str
    dietary_restrictions: str


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ProgramTransport(Protocol):
    async def post(self, payload: Dict[str, Any]) -> TransportResponse:
        ...


class AiohttpProgramTransport:
    """
    Sends program requests to the external endpoint over a shared aiohttp session.
    The session is created on first use and must be closed with close().
    """

    def __init__(self, endpoint_url: str, timeout: Optional[float] = None):
        self.endpoint_url = endpoint_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def post(self, payload: Dict[str, Any]) -> TransportResponse:
        session = self._get_session()
        async with session.post(self.endpoint_url, json=payload) as response:
            body = await response.text()
            return TransportResponse(status=response.status, body=body)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logging.info("Program API client session closed.")


def _error_message(response: TransportResponse) -> str:
    """ Structured `error` field of a failed response, or a generic message with the status. """
    try:
        body = json.loads(response.body)
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return f"API Error ({response.status})"


class ProgramSubmissionPipeline:
    """
    Turns a completed answer store into a single "generate program" request
    and classifies the result. Never retries on its own.
    """

    def __init__(self, transport: ProgramTransport):
        self.transport = transport

    def build_payload(self, answers: AnswerStore, identity_token: str) -> ProgramRequestPayload:
        fields = {question.id: question.coerce(answers.value(question.id)) for question in answers.registry}
        return ProgramRequestPayload(user_id=identity_token, **fields)

    async def submit(self, answers: AnswerStore, identity_token: Optional[str]) -> SubmissionOutcome:
        if not identity_token:
            logging.warning("Program submission rejected: no authenticated user.")
            return not_authenticated()

        missing = [question.id for question in answers.registry if not answers.is_answered(question.id)]
        if missing:
            logging.error(f"Program submission rejected, unanswered questions: {missing}")
            return FatalFailure(message=f"Missing answers: {', '.join(missing)}", code=INCOMPLETE_ANSWERS)

        try:
            payload = self.build_payload(answers, identity_token)
        except ValueError as e:
            logging.error(f"Could not build program request for user {identity_token}: {e}")
            return FatalFailure(message=str(e), code=INVALID_ANSWERS)

        logging.info(f"Submitting fitness program data for user {identity_token}")
        try:
            data = await self._exchange(payload)
        except ProgramApiError as e:
            logging.warning(f"Program API rejected request for user {identity_token} (status {e.status}): {e}")
            return RetryableFailure(message=str(e))
        except Exception as e:
            logging.error(f"Error generating program for user {identity_token}: {e}", exc_info=True)
            return RetryableFailure(message=str(e) or e.__class__.__name__)

        logging.info(f"Program generated successfully for user {identity_token}")
        return Success(data=data)

    async def _exchange(self, payload: ProgramRequestPayload) -> Any:
        response = await self.transport.post(payload.model_dump())
        logging.info(f"Program API response status: {response.status}")

        if not response.ok:
            raise ProgramApiError(_error_message(response), status=response.status)

        result = json.loads(response.body)
        if not isinstance(result, dict):
            raise ProgramApiError("Malformed response from program API", status=response.status)
        if result.get("success"):
            return result.get("data")
        raise ProgramApiError(result.get("error") or "Failed to generate program", status=response.status)
