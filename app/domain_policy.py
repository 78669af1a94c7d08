from __future__ import annotations

from dataclasses import dataclass

LIFECYCLE_IN_DESIGN = "In design"
LIFECYCLE_LAUNCHED = "Launched"


@dataclass(frozen=True)
class DomainPolicy:
    match_token: str
    state_field: str
    initial_value: str
    terminal_value: str
    versioned: bool


DEFAULT_POLICY = DomainPolicy(
    match_token="",
    state_field="state",
    initial_value="acknowledged",
    terminal_value="completed",
    versioned=False,
)

# First match wins, so more specific tokens must come first.
POLICIES: tuple[DomainPolicy, ...] = (
    DomainPolicy("order", "state", "acknowledged", "completed", False),
    DomainPolicy("inventory", "status", "created", "active", False),
    DomainPolicy("candidate", "lifecycleStatus", LIFECYCLE_IN_DESIGN, LIFECYCLE_LAUNCHED, True),
    DomainPolicy("catalog", "lifecycleStatus", LIFECYCLE_IN_DESIGN, LIFECYCLE_LAUNCHED, True),
    DomainPolicy("category", "lifecycleStatus", LIFECYCLE_IN_DESIGN, LIFECYCLE_LAUNCHED, True),
    DomainPolicy("specification", "lifecycleStatus", LIFECYCLE_IN_DESIGN, LIFECYCLE_LAUNCHED, True),
    DomainPolicy("offering", "lifecycleStatus", LIFECYCLE_IN_DESIGN, LIFECYCLE_LAUNCHED, True),
)


def resolve_policy(domain: str | None) -> DomainPolicy:
    lowered = (domain or "").lower()
    if not lowered:
        return DEFAULT_POLICY
    for policy in POLICIES:
        if policy.match_token in lowered:
            return policy
    return DEFAULT_POLICY
