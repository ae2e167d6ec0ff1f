"""
State machine infrastructure for request flows.

This package provides state machines for the submission lifecycle and the
exactly-once response gate.
"""

from .base import FlowMachine
from .registry import get_flow_machine, FLOW_REGISTRY
from .response_gate import ResponseGate
from .submission_flow import SubmissionFlowMachine

__all__ = [
    "FlowMachine",
    "ResponseGate",
    "SubmissionFlowMachine",
    "get_flow_machine",
    "FLOW_REGISTRY",
]
