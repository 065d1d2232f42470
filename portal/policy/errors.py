"""
MORIS Policy — Errors
=======================
Engine-internal errors for policy handling. Matching and resolution
never raise these; they come from editing operations.
"""


class PolicyError(Exception):
    """Base error for policy operations."""
    pass


class PolicyNotFound(PolicyError):
    """Requested policy id is not in the set."""

    def __init__(self, policy_id: str):
        self.policy_id = policy_id
        super().__init__(f"Policy '{policy_id}' not found.")


class InheritedPolicyReadOnly(PolicyError):
    """An organisation-inherited policy cannot be edited from a project."""

    def __init__(self, policy_id: str, source_org_node_id: str = ""):
        self.policy_id = policy_id
        self.source_org_node_id = source_org_node_id
        source = f" (defined on organisation node '{source_org_node_id}')" if source_org_node_id else ""
        super().__init__(
            f"Policy '{policy_id}' is inherited{source} and is read-only "
            f"from this project; edit it at its defining scope."
        )
