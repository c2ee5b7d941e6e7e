"""Contact router - public contact form endpoint"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from ...rate_limiter import enforce_rate_limit
from ...shared.validators import client_ip
from .schemas import ContactRequest, ContactResponse
from .service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])


def get_client_ip(request: Request) -> str:
    return client_ip(
        request.headers.get("X-Forwarded-For"),
        request.client.host if request.client else None,
    )


async def contact_rate_limit(request: Request, ip: str = Depends(get_client_ip)) -> None:
    """Per-IP limit, checked before the body is looked at"""
    await enforce_rate_limit(request.app.state.contact_rate_limiter, f"contact:{ip}")


def get_contact_service(request: Request) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(request.app.state.notifier, request.app.state.captcha_verifier)


@router.post("/contact", response_model=ContactResponse, dependencies=[Depends(contact_rate_limit)])
@router.post(
    "/api/contact",
    response_model=ContactResponse,
    dependencies=[Depends(contact_rate_limit)],
    include_in_schema=False,
)
async def submit_contact(
    data: ContactRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    ip: str = Depends(get_client_ip),
    service: ContactService = Depends(get_contact_service),
):
    """Forward a contact form submission to the business owner"""
    contact = await service.submit(data, ip)
    background_tasks.add_task(
        request.app.state.notifier.send_contact_autoreply, contact.name, contact.email
    )
    return ContactResponse(message="Message sent")
