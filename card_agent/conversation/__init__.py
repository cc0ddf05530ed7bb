from card_agent.conversation.state_machine import (
    SessionStateMachine,
    SessionStatus,
    TransitionTrigger,
)

__all__ = [
    "SessionStateMachine",
    "SessionStatus",
    "TransitionTrigger",
]
