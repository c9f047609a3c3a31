"""
Image generation route.

Balance is checked before calling the backend so empty accounts never cost
an upstream call; the credit itself is deducted only after the backend has
returned an image.
"""
import base64
import binascii

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from imagestudio.dependencies.auth import get_current_user, TokenPayload
from imagestudio.dependencies.context import get_credit_service, get_db, get_image_client
from imagestudio.exceptions import (
    GenerationError,
    UpstreamConfigError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from imagestudio.logging_config import get_logger
from imagestudio.metrics import track_generation
from imagestudio.services.credit_service import CreditService
from imagestudio.services.generation_service import ImageGenerationClient

MAX_PROMPT_LENGTH = 1000
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB decoded
NO_CREDITS_MESSAGE = "No credits remaining. Please purchase more credits."

router = APIRouter(prefix="/api", tags=["generate"])


class GenerateRequest(BaseModel):
    """Request model for image generation."""
    prompt: str
    image: str | None = None
    style: str | None = None

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt is required and must be a non-empty string.")
        if len(value) > MAX_PROMPT_LENGTH:
            raise ValueError(f"Prompt must be {MAX_PROMPT_LENGTH} characters or less.")
        return value

    @field_validator("image")
    @classmethod
    def validate_image(cls, value: str | None) -> str | None:
        # Only runs when the field is sent; an explicit null is invalid
        if value is None:
            raise ValueError("Image must be a valid base64 encoded string.")
        try:
            decoded = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Image must be a valid base64 encoded string.")
        if not decoded:
            raise ValueError("Image must be a valid base64 encoded string.")
        if len(decoded) > MAX_IMAGE_SIZE:
            raise ValueError("Image size must be 10MB or less.")
        return value


@router.post("/generate")
async def generate_image(
    request: GenerateRequest,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    credit_service: CreditService = Depends(get_credit_service),
    image_client: ImageGenerationClient = Depends(get_image_client)
):
    """
    Generate an image from a prompt and optional reference image.

    Costs one credit, charged only on success.
    """
    user_id = current_user.sub
    log = get_logger(user_id=user_id)

    await credit_service.ensure_free_credits(user_id)
    balance = await credit_service.get_balance(user_id)
    # No transaction may stay open across the upstream call
    await db.commit()

    if balance <= 0:
        track_generation("no_credits")
        raise GenerationError(402, NO_CREDITS_MESSAGE, code="NO_CREDITS")

    try:
        image = await image_client.generate(
            prompt=request.prompt,
            image=request.image,
            style=request.style
        )
    except UpstreamTimeoutError as e:
        track_generation("timeout")
        raise GenerationError(504, str(e))
    except UpstreamRateLimitError as e:
        track_generation("rate_limited")
        raise GenerationError(429, str(e))
    except UpstreamConfigError as e:
        track_generation("config_error")
        log.error("generation_config_error", error=str(e))
        raise GenerationError(500, str(e))
    except UpstreamError as e:
        track_generation("upstream_error")
        log.warning("generation_upstream_error", error=str(e))
        raise GenerationError(500, str(e))

    if not await credit_service.consume(user_id):
        # Balance was spent by a concurrent request while this one generated
        track_generation("no_credits")
        log.warning("generation_credit_unavailable_after_success")
        raise GenerationError(402, NO_CREDITS_MESSAGE, code="NO_CREDITS")

    track_generation("success")
    log.info("generation_succeeded", balance_before=balance)
    return {"success": True, "image": image}
