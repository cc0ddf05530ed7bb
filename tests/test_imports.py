"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_session_schema(self):
        from card_agent.schemas.session_schema import IssueType, Session

        assert IssueType.FRAUD_ALERT == "fraud_alert"
        assert IssueType.FEE_WAIVER.label == "fee waiver"
        assert Session is not None

    def test_import_customer_schema(self):
        from card_agent.schemas.customer_schema import Customer

        customer = Customer.model_validate({"id": "c1", "fullName": "Pat Doe"})
        assert customer.full_name == "Pat Doe"
        assert customer.cards == []

    def test_import_speech_schema(self):
        from card_agent.schemas.speech_schema import TranscriptSource

        assert TranscriptSource.VOICE_CHAIN == "voice_chain"


class TestConversationImports:
    def test_package_reexports(self):
        from card_agent.conversation import SessionStateMachine, SessionStatus

        assert SessionStateMachine().current_state == SessionStatus.INTAKE_COMPLETE


class TestPipelineImports:
    def test_package_reexports(self):
        from card_agent.pipeline import (
            ActionDispatcher,
            ResolutionPipeline,
            SessionStore,
            SummaryBuilder,
            TranscriptAcquirer,
            normalize_stt_response,
        )

        assert callable(normalize_stt_response)
        assert all(
            cls is not None
            for cls in (ActionDispatcher, ResolutionPipeline, SessionStore, SummaryBuilder, TranscriptAcquirer)
        )


class TestErrorHierarchy:
    def test_all_errors_share_base(self):
        from card_agent.errors import (
            EmptyInputError,
            InvalidStateError,
            NotFoundError,
            ResolutionError,
            UpstreamServiceError,
        )

        for cls in (EmptyInputError, InvalidStateError, NotFoundError, UpstreamServiceError):
            assert issubclass(cls, ResolutionError)

    def test_context_in_message(self):
        from card_agent.errors import NotFoundError

        err = NotFoundError("Session not found", context={"session_id": "sess_x"})
        assert str(err) == "Session not found | context={'session_id': 'sess_x'}"
