from fastapi import Depends, Request

from esign_engine.api.dependencies.auth import Actor, get_current_actor
from esign_engine.services.context import RequestContext

UNKNOWN = "unknown"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None and request.client.host:
        return request.client.host
    return UNKNOWN


async def get_request_context(request: Request, actor: Actor = Depends(get_current_actor)) -> RequestContext:
    return RequestContext(
        actor_id=actor.id,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN,
    )
