"""Tests for the Fallback Orchestrator."""

import asyncio
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tests.support.helpers import Account, Positive, StubModelClient, Tag, User
from unwrap_or_ai.exceptions import BackendRejectedError, ModelTimeoutError, ModelUnreachableError, UnsupportedTypeError
from unwrap_or_ai.llm import deadline_after
from unwrap_or_ai.orchestrator import (
    FallbackOrchestrator,
    OperationContext,
    OutcomeSource,
    SynthesisPolicy,
    SynthesisState,
)
from unwrap_or_ai.result import Err, Ok
from unwrap_or_ai.validation import RejectionKind

VALID = '{"id": 7, "name": "Ada"}'
WRONG_KIND = '{"id": "seven"}'

CONTEXT = OperationContext(operation_name="get_user", arguments=(("user_id", "42"),))


def _orchestrator(client: StubModelClient, max_attempts: int = 3) -> FallbackOrchestrator:
    return FallbackOrchestrator(client=client, policy=SynthesisPolicy(max_attempts=max_attempts, deadline_seconds=5.0))


class TestRecovery:
    """Test synthesis after a failure."""

    @pytest.mark.asyncio
    async def test_valid_answer_on_first_attempt(self):
        client = StubModelClient(VALID)
        outcome = await _orchestrator(client).synthesize_outcome(Err("user 42 not found"), CONTEXT, User)

        assert outcome.value == User(id=7, name="Ada")
        assert outcome.source is OutcomeSource.MODEL
        assert outcome.from_model
        assert outcome.attempts == 1
        assert outcome.states == (
            SynthesisState.IDLE,
            SynthesisState.PROMPTING,
            SynthesisState.AWAITING_RESPONSE,
            SynthesisState.VALIDATING,
            SynthesisState.MATERIALIZING,
            SynthesisState.SUCCEEDED,
        )
        assert client.calls == 1
        assert "user 42 not found" in client.user_message()

    @pytest.mark.asyncio
    async def test_rejection_carried_into_next_prompt(self):
        """Test that the second prompt names the field the first answer got wrong."""
        client = StubModelClient(WRONG_KIND, VALID)
        outcome = await _orchestrator(client).synthesize_outcome(Err("user 42 not found"), CONTEXT, User)

        assert outcome.value == User(id=7, name="Ada")
        assert outcome.attempts == 2
        assert outcome.last_rejection is not None
        assert outcome.last_rejection.kind == RejectionKind.KIND_MISMATCH
        assert "# Correction" not in client.user_message(0)
        assert "# Correction" in client.user_message(1)
        assert "`id`" in client.user_message(1)
        assert client.prompts[1].attempt == 2
        assert SynthesisState.RETRYING in outcome.states

    @pytest.mark.asyncio
    async def test_materialization_failure_is_retried(self):
        """Test that an out-of-range value is treated like a validation rejection."""
        client = StubModelClient('{"id": -1, "name": "Ada"}', VALID)
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, User)

        assert outcome.value == User(id=7, name="Ada")
        assert outcome.attempts == 2
        assert outcome.last_rejection.kind == RejectionKind.CONSTRAINT_VIOLATION
        assert outcome.last_rejection.path == "id"
        assert "`id`" in client.user_message(1)

    @pytest.mark.asyncio
    async def test_retry_bound(self):
        """Test that persistent invalid output stops after max_attempts calls."""
        client = StubModelClient("not json at all")
        outcome = await _orchestrator(client, max_attempts=4).synthesize_outcome(Err("boom"), CONTEXT, User)

        assert client.calls == 4
        assert outcome.source is OutcomeSource.DEFAULT
        assert outcome.from_default
        assert outcome.value == User(id=0, name="")
        assert outcome.attempts == 4
        assert outcome.last_rejection.kind == RejectionKind.UNPARSEABLE
        assert outcome.states[-1] is SynthesisState.EXHAUSTED_FALLBACK
        assert outcome.states.count(SynthesisState.RETRYING) == 3

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_default(self):
        """Test that a backend timeout yields the deterministic default immediately."""
        client = StubModelClient(ModelTimeoutError("deadline elapsed"))
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, User)

        assert outcome.value == User(id=0, name="")
        assert outcome.source is OutcomeSource.DEFAULT
        assert outcome.terminal_error.startswith("ModelTimeoutError")
        assert client.calls == 1

    @pytest.mark.parametrize(
        "error",
        [ModelUnreachableError("no API key"), BackendRejectedError("backend answered 401", status_code=401)],
    )
    @pytest.mark.asyncio
    async def test_transport_errors_fall_back(self, error: Exception):
        client = StubModelClient(error)
        value = await _orchestrator(client).synthesize(Err("boom"), CONTEXT, User)

        assert value == User(id=0, name="")
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_exception_becomes_failure_reason(self):
        client = StubModelClient(VALID)
        await _orchestrator(client).synthesize(ConnectionError("database temporarily unavailable"), CONTEXT, User)

        assert "ConnectionError: database temporarily unavailable" in client.user_message()

    @pytest.mark.asyncio
    async def test_none_is_a_failure(self):
        """Test that an absent value is synthesized like an error."""
        client = StubModelClient(VALID)
        assert await _orchestrator(client).synthesize(None, CONTEXT, User) == User(id=7, name="Ada")
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_deadline_passed_to_client(self):
        client = StubModelClient(WRONG_KIND, VALID)
        deadline = deadline_after(30)
        await _orchestrator(client).synthesize(Err("boom"), CONTEXT, User, deadline=deadline)

        assert client.deadlines == [deadline, deadline]

    @pytest.mark.asyncio
    async def test_default_deadline_from_policy(self):
        client = StubModelClient(VALID)
        await _orchestrator(client).synthesize(Err("boom"), CONTEXT, User)

        assert client.deadlines[0] is not None

    @pytest.mark.asyncio
    async def test_concurrent_syntheses(self):
        """Test that one orchestrator serves many concurrent syntheses."""
        client = StubModelClient(VALID)
        orchestrator = _orchestrator(client)
        values = await asyncio.gather(*(orchestrator.synthesize(Err(f"e{i}"), CONTEXT, User) for i in range(10)))

        assert all(value == User(id=7, name="Ada") for value in values)
        assert client.calls == 10


class TestTargetTypes:
    """Test synthesis into types with their own construction rules."""

    @pytest.mark.asyncio
    async def test_dataclass_rejecting_default(self):
        """Test that a default refused by __post_init__ is still returned as a value."""
        client = StubModelClient(ModelTimeoutError("deadline elapsed"))
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, Positive)

        assert outcome.source is OutcomeSource.DEFAULT
        assert isinstance(outcome.value, Positive)
        assert outcome.value.amount == 0

    @pytest.mark.asyncio
    async def test_self_materializing_type(self):
        """Test that a rejection from __synthesis_materialize__ is retried like any other."""
        client = StubModelClient('"a tag that is far too long"', '"hello"')
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, Tag)

        assert outcome.value == Tag("hello")
        assert outcome.source is OutcomeSource.MODEL
        assert outcome.attempts == 2
        assert outcome.last_rejection.kind == RejectionKind.CONSTRAINT_VIOLATION

    @pytest.mark.asyncio
    async def test_self_materializing_type_default(self):
        client = StubModelClient(ModelTimeoutError("deadline elapsed"))
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, Tag)

        assert outcome.value == Tag("")
        assert outcome.source is OutcomeSource.DEFAULT

    @pytest.mark.asyncio
    async def test_validation_alias_answer_accepted(self):
        client = StubModelClient('{"userId": 5}')
        outcome = await _orchestrator(client).synthesize_outcome(Err("boom"), CONTEXT, Account)

        assert outcome.source is OutcomeSource.MODEL
        assert outcome.value.user_id == 5
        assert client.calls == 1


class TestPassThrough:
    """Test that successful results skip synthesis entirely."""

    @pytest.mark.asyncio
    async def test_ok_bypasses_everything(self):
        client = StubModelClient(VALID)
        with patch("unwrap_or_ai.orchestrator.build_schema") as mock_build:
            outcome = await _orchestrator(client).synthesize_outcome(Ok(User(id=1, name="Zed")), CONTEXT, User)

        assert outcome.value == User(id=1, name="Zed")
        assert outcome.source is OutcomeSource.ORIGINAL
        assert outcome.attempts == 0
        mock_build.assert_not_called()
        assert client.calls == 0

    @pytest.mark.asyncio
    async def test_plain_value_passes_through(self):
        client = StubModelClient(VALID)
        value = User(id=2, name="Yan")
        assert await _orchestrator(client).synthesize(value, CONTEXT, User) is value
        assert client.calls == 0


class TestErrors:
    """Test the errors that do escape."""

    @pytest.mark.asyncio
    async def test_unsupported_type_raises(self):
        client = StubModelClient(VALID)
        with pytest.raises(UnsupportedTypeError):
            await _orchestrator(client).synthesize(Err("boom"), CONTEXT, int | str)
        assert client.calls == 0

    def test_policy_requires_an_attempt(self):
        with pytest.raises(ValidationError):
            SynthesisPolicy(max_attempts=0)


def _lookup(user_id: int, verbose: bool = False) -> User:
    """Look a user up by id."""
    raise KeyError(user_id)


class TestOperationContext:
    """Test description of failed calls."""

    def test_from_call_binds_arguments(self):
        context = OperationContext.from_call(_lookup, (42,), {"verbose": True})

        assert context.operation_name == "_lookup"
        assert context.arguments == (("user_id", "42"), ("verbose", "True"))
        assert context.doc == "Look a user up by id."
        assert "def _lookup" in context.source

    def test_source_can_be_omitted(self):
        assert OperationContext.from_call(_lookup, (1,), include_source=False).source is None

    def test_unbindable_arguments_listed_positionally(self):
        context = OperationContext.from_call(_lookup, (1, 2, 3))
        assert context.arguments == (("arg0", "1"), ("arg1", "2"), ("arg2", "3"))
