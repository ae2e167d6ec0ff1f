"""
Response Gate State Machine.

Guards the terminal response of a request so exactly one body is produced.
"""

from typing import Any, Optional
from statemachine import State

from .base import FlowMachine


class ResponseGate(FlowMachine):
    """
    Exactly-once gate: not_sent -> sent.
    
    The first claim wins and stores the response payload; later claims are
    refused and logged.
    """
    
    not_sent = State(initial=True, value="not_sent")
    sent = State(value="sent", final=True)
    
    mark_sent = not_sent.to(sent)
    
    def __init__(self, **kwargs):
        self.payload: Optional[Any] = None
        super().__init__(**kwargs)
    
    @property
    def is_sent(self) -> bool:
        return self.current_state.id == "sent"
    
    def claim(self, payload: Any = None) -> bool:
        """
        Try to produce the response.
        
        Returns:
            True for the first claim, False for every later one
        """
        if self.is_sent:
            self.logger.warning(
                "response_already_sent",
                submission_id=self.submission_id,
                **self.flow_context,
            )
            return False
        self.mark_sent()
        self.payload = payload
        return True
