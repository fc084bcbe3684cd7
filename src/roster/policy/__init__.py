"""Certificate-policy document management.

Public API::

    from roster.policy import PolicyDefaults, PolicyStore, reconcile_policy_file

    store = PolicyStore("/var/lib/roster/greenlock.d/config.json")
    defaults = PolicyDefaults(base_path=str(store.path.parent),
                              subscriber_email="ops@example.com")
    result = reconcile_policy_file(store, registry.domains, defaults)
"""

from roster.policy.models import (
    CertificatePolicyDocument,
    PolicyDefaults,
    SiteCertEntry,
)
from roster.policy.reconciler import (
    ReconcileResult,
    build_site_entries,
    reconcile,
    reconcile_policy_file,
    serialize,
)
from roster.policy.store import PolicyStore

__all__ = [
    "CertificatePolicyDocument",
    "PolicyDefaults",
    "PolicyStore",
    "ReconcileResult",
    "SiteCertEntry",
    "build_site_entries",
    "reconcile",
    "reconcile_policy_file",
    "serialize",
]
