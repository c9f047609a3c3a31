"""
Dependencies exposing the application context to routes.
"""
from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from imagestudio.config import Settings
from imagestudio.context import AppContext
from imagestudio.services.credit_service import CreditService
from imagestudio.services.generation_service import ImageGenerationClient
from imagestudio.services.payment_service import PaymentGateway


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_settings(context: AppContext = Depends(get_context)) -> Settings:
    return context.settings


async def get_db(context: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    """One session per request, closed (and rolled back if open) afterwards."""
    async with context.session_factory() as session:
        yield session


def get_credit_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> CreditService:
    return CreditService(db, free_credits=settings.FREE_CREDITS)


def get_image_client(context: AppContext = Depends(get_context)) -> ImageGenerationClient:
    return context.image_client


def get_payment_gateway(context: AppContext = Depends(get_context)) -> PaymentGateway:
    return context.payment_gateway
