"""
Submission Flow State Machine.

Tracks one contact submission through its fixed side-effect sequence:
optional spreadsheet mirror, admin notification, sender confirmation.
No state is visited twice.
"""

from statemachine import State

from .base import FlowMachine


class SubmissionFlowMachine(FlowMachine):
    """State machine for a single submission's lifecycle."""
    
    received = State(initial=True, value="received")
    mirrored = State(value="mirrored")
    admin_email_attempted = State(value="admin_email_attempted")
    confirmation_attempted = State(value="confirmation_attempted")
    finalized = State(value="finalized", final=True)
    
    record_mirror = received.to(mirrored)
    attempt_admin_email = received.to(admin_email_attempted) | mirrored.to(admin_email_attempted)
    attempt_confirmation = admin_email_attempted.to(confirmation_attempted)
    finalize = confirmation_attempted.to(finalized)
