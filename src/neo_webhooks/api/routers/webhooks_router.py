"""
Webhooks router.

Subscription management and event intake over HTTP. Domain exceptions
propagate to the handlers registered in ``api.exception_handlers``.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from ...features.webhooks.module import WebhookPlatform
from ..dependencies import get_platform
from ..models import (
    RegisterSubscriptionRequest,
    DeactivateSubscriptionRequest,
    RaiseEventRequest,
    SubscriptionResponse,
    RegisteredSubscriptionResponse,
    SubscriptionListResponse,
    DeactivationResponse,
    EventAcceptedResponse,
)

router = APIRouter(tags=["Webhooks"])


@router.post(
    "/subscriptions",
    response_model=RegisteredSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register webhook subscription",
)
async def register_subscription(
    request: RegisterSubscriptionRequest,
    platform: WebhookPlatform = Depends(get_platform),
) -> RegisteredSubscriptionResponse:
    """Register a callback for one or more event types of a tenant.

    When no secret is supplied one is generated and returned in this
    response only.
    """
    subscription = await platform.registry.register(
        tenant_id=request.tenant_id,
        url=request.url,
        secret=request.secret,
        event_types=request.event_types,
        headers=request.headers,
    )
    response = RegisteredSubscriptionResponse.from_domain(subscription)
    if request.secret is None:
        response.secret = subscription.secret.decode("ascii")
    return response


@router.get(
    "/subscriptions",
    response_model=SubscriptionListResponse,
    summary="List tenant subscriptions",
)
async def list_subscriptions(
    tenant_id: str = Query(..., min_length=1, description="Owning tenant"),
    platform: WebhookPlatform = Depends(get_platform),
) -> SubscriptionListResponse:
    subscriptions = await platform.registry.list_for_tenant(tenant_id)
    items = [SubscriptionResponse.from_domain(s) for s in subscriptions]
    return SubscriptionListResponse(items=items, total=len(items))


@router.get(
    "/subscriptions/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Get subscription",
)
async def get_subscription(
    subscription_id: str,
    platform: WebhookPlatform = Depends(get_platform),
) -> SubscriptionResponse:
    subscription = await platform.registry.get(subscription_id)
    return SubscriptionResponse.from_domain(subscription)


@router.post(
    "/subscriptions/{subscription_id}/deactivate",
    response_model=DeactivationResponse,
    summary="Deactivate subscription",
)
async def deactivate_subscription(
    subscription_id: str,
    request: DeactivateSubscriptionRequest,
    platform: WebhookPlatform = Depends(get_platform),
) -> DeactivationResponse:
    """Manual deactivation; deactivating an inactive subscription is a no-op."""
    changed = await platform.registry.deactivate(subscription_id, request.reason)
    subscription = await platform.registry.get(subscription_id)
    return DeactivationResponse(
        subscription=SubscriptionResponse.from_domain(subscription),
        changed=changed,
    )


@router.post(
    "/subscriptions/{subscription_id}/reactivate",
    response_model=SubscriptionResponse,
    summary="Reactivate subscription",
)
async def reactivate_subscription(
    subscription_id: str,
    platform: WebhookPlatform = Depends(get_platform),
) -> SubscriptionResponse:
    subscription = await platform.registry.reactivate(subscription_id)
    await platform.failure_tracker.record_success(subscription.id)
    return SubscriptionResponse.from_domain(subscription)


@router.delete(
    "/subscriptions/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete subscription",
)
async def delete_subscription(
    subscription_id: str,
    platform: WebhookPlatform = Depends(get_platform),
) -> Response:
    await platform.registry.delete(subscription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/events",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Raise event",
)
async def raise_event(
    request: RaiseEventRequest,
    platform: WebhookPlatform = Depends(get_platform),
) -> EventAcceptedResponse:
    """Accept an event for asynchronous delivery to matching subscriptions."""
    platform.raise_event(request.tenant_id, request.event_type, request.payload)
    return EventAcceptedResponse(tenant_id=request.tenant_id, event_type=request.event_type)
