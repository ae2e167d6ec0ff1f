"""
Base state machine class for all flow state machines.

Provides transition logging and flow info retrieval.
"""

from typing import Any, Dict, Optional
from statemachine import StateMachine
import structlog


class FlowMachine(StateMachine):
    """
    Base class for all flow state machines.
    
    Features:
    - Structured logging on every transition
    - get_flow_info() for diagnostics
    """
    
    def __init__(
        self,
        flow_context: Optional[Dict[str, Any]] = None,
        submission_id: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize flow machine.
        
        Args:
            flow_context: Extra key/values attached to every transition log
            submission_id: Submission identifier for logging
            **kwargs: Additional context passed to StateMachine
        """
        self.flow_context = flow_context or {}
        self.submission_id = submission_id
        self.logger = structlog.get_logger(__name__)
        super().__init__(**kwargs)
    
    @property
    def state_id(self) -> str:
        return self.current_state.id
    
    def get_flow_info(self) -> Dict[str, Any]:
        """
        Returns current state + allowed events.
        
        Returns:
            Dict with state, allowed_events and final flag
        """
        return {
            "state": self.current_state.id,
            "allowed_events": [getattr(e, "id", None) or e.name for e in self.allowed_events],
            "final": self.current_state.final,
        }
    
    def after_transition(self, event, source, target):
        self.logger.debug(
            "state_transition",
            flow=type(self).__name__,
            transition_event=str(getattr(event, "id", event)),
            from_state=source.id,
            to_state=target.id,
            submission_id=self.submission_id,
            **self.flow_context,
        )
