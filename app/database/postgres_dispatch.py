from __future__ import annotations
import logging
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy import insert

from app.database.dispatch_repository import DispatchRepository
from app.database.tables import metadata, build_dispatch_table
from app.schemas.outcome import DispatchRecord

logger = logging.getLogger("submission.repository")

class PostgresDispatchRepository(DispatchRepository):
    def __init__(self, engine: AsyncEngine, table_name: str):
        self.engine = engine
        self.table = build_dispatch_table(table_name)
        self.session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def ensure_schema(self) -> None:
        logger.info("Ensuring schema for audit table %s", self.table.name)
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready")

    async def insert_dispatch(self, record: DispatchRecord) -> None:
        stmt = insert(self.table).values(**record.as_row())
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()
        logger.debug("Dispatch recorded",
                     extra={"sent_id": record.sent_id, "to_email_address": record.to_email_address, "status": record.status})
