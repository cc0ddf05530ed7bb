from card_agent.pipeline.dispatcher import ActionDispatcher
from card_agent.pipeline.pipeline import ResolutionPipeline
from card_agent.pipeline.session_store import SessionStore
from card_agent.pipeline.summary import SummaryBuilder
from card_agent.pipeline.transcript import TranscriptAcquirer, normalize_stt_response

__all__ = [
    "ResolutionPipeline",
    "TranscriptAcquirer",
    "ActionDispatcher",
    "SessionStore",
    "SummaryBuilder",
    "normalize_stt_response",
]
