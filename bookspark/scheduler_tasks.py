"""Scheduler tasks: the hourly digest broadcast."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bookspark.db.session import async_session_factory
from bookspark.services.digest_generator import DigestBatchResult, DigestGenerator
from bookspark.services.email_service import EmailService

logger = logging.getLogger(__name__)


async def send_due_digests(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    email_service: EmailService | None = None,
) -> DigestBatchResult:
    """Walk every digest-enabled user; the generator decides who is due this hour."""
    async with session_factory() as db:
        generator = DigestGenerator(db, email_service or EmailService())
        return await generator.generate_digest_for_all_users()

