"""
Application context.

Holds the process-wide resources (database engine, session factory, external
clients) built once at startup and handed to request handlers through
FastAPI dependencies.
"""
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from imagestudio.config import Settings
from imagestudio.database import create_engine, create_session_factory
from imagestudio.services.generation_service import ImageGenerationClient
from imagestudio.services.payment_service import PaymentGateway


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    image_client: ImageGenerationClient
    payment_gateway: PaymentGateway

    async def aclose(self) -> None:
        await self.image_client.aclose()
        await self.engine.dispose()


def build_context(settings: Settings) -> AppContext:
    """Construct every shared resource from settings."""
    engine = create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        image_client=ImageGenerationClient(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            api_base=settings.GEMINI_API_BASE,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
        ),
        payment_gateway=PaymentGateway(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            webhook_tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        ),
    )
