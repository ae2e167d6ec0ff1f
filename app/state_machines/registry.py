"""
State machine registry for dynamic instantiation.

Provides factory function to create state machine instances by flow type.
"""

from typing import Any, Dict, Optional
from .base import FlowMachine


FLOW_REGISTRY: Dict[str, str] = {
    "submission": "SubmissionFlowMachine",
    "response": "ResponseGate",
}


def get_flow_machine(
    flow_type: str,
    flow_context: Optional[Dict[str, Any]] = None,
    submission_id: Optional[str] = None,
    **kwargs
) -> FlowMachine:
    """
    Factory to instantiate state machine by flow type.
    
    Args:
        flow_type: Type of flow (submission, response)
        flow_context: Extra logging context
        submission_id: Submission identifier for logging
        **kwargs: Additional context
        
    Returns:
        Instantiated state machine
        
    Raises:
        ValueError: If flow_type is not registered
    """
    if flow_type not in FLOW_REGISTRY:
        raise ValueError(
            f"Unknown flow type: {flow_type}. "
            f"Available: {list(FLOW_REGISTRY.keys())}"
        )
    
    if flow_type == "submission":
        from .submission_flow import SubmissionFlowMachine
        return SubmissionFlowMachine(flow_context=flow_context, submission_id=submission_id, **kwargs)
    elif flow_type == "response":
        from .response_gate import ResponseGate
        return ResponseGate(flow_context=flow_context, submission_id=submission_id, **kwargs)
    else:
        raise ValueError(f"Flow type {flow_type} not implemented yet")
