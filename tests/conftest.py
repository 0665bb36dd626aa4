import asyncio
import json

import pytest

from fitbot.services.identity import StaticIdentity
from fitbot.services.program_service import ProgramSubmissionPipeline, TransportResponse
from fitbot.services.questionnaire import program_registry
from fitbot.services.wizard import WizardSession


VALID_ANSWERS = {
    "age": "30",
    "weight": "75",
    "height": "180",
    "injuries": "None",
    "fitness_goal": "strength",
    "workout_days": "4",
    "fitness_level": "intermediate",
    "dietary_restrictions": "Vegetarian",
}


class FakeTransport:
    """Records every request and replies with a canned response or error."""

    def __init__(self, status=200, body=None, error=None):
        self.status = status
        self.body = json.dumps({"success": True, "data": {"program_id": "p1"}}) if body is None else body
        self.error = error
        self.calls = []

    async def post(self, payload):
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return TransportResponse(status=self.status, body=self.body)


class BlockingTransport(FakeTransport):
    """Holds the request open until `release` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def post(self, payload):
        self.calls.append(payload)
        self.started.set()
        await self.release.wait()
        return TransportResponse(status=self.status, body=self.body)


async def answer_all(wizard, answers=None):
    """Answers every question in order and advances past each one."""
    answers = answers or VALID_ANSWERS
    view = wizard.view()
    for question in wizard.registry:
        wizard.set_answer(question.id, answers[question.id])
        view = await wizard.advance()
    return view


@pytest.fixture
def registry():
    return program_registry()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_wizard(registry):
    def _make(transport=None, token="user_123"):
        transport = transport or FakeTransport()
        return WizardSession(registry, ProgramSubmissionPipeline(transport), StaticIdentity(token))
    return _make
