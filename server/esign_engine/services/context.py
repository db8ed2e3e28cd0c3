from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Who is acting and from where; stamped on every audit event."""

    actor_id: str = "system"
    ip_address: str = "unknown"
    user_agent: str = "unknown"
