"""Certificate approval gate.

Public API::

    from roster.approval import DomainApprovalGate

    gate = DomainApprovalGate(registry, contact_email="ops@example.com")
    payload = gate({"domain": "example.com"}, None)
"""

from roster.approval.gate import (
    ApprovalDecision,
    ApprovalRequest,
    DomainApprovalGate,
    ExistingCertificate,
    approve,
)

__all__ = [
    "ApprovalDecision",
    "ApprovalRequest",
    "DomainApprovalGate",
    "ExistingCertificate",
    "approve",
]
