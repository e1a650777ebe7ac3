# app/main.py
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
import uvicorn

from app.core.config import Settings, load_settings
from app.routers.v1 import health

from sqlalchemy.ext.asyncio import create_async_engine
from app.database.postgres_dispatch import PostgresDispatchRepository
from app.services.archive import GcsArchiveStore
from app.services.audit import AuditRecorder
from app.services.consumer_service import SubmissionConsumerService
from app.services.fetcher import SubmissionFetcher
from app.services.notifier import MailgunNotifier
from app.services.pipeline import SubmissionPipeline


def build_pipeline(settings: Settings, repo: PostgresDispatchRepository) -> SubmissionPipeline:
    return SubmissionPipeline(
        fetcher=SubmissionFetcher(timeout=settings.download_timeout_seconds),
        archiver=GcsArchiveStore(
            encoded_credentials=settings.google_credentials,
            bucket_name=settings.bucket_name,
        ),
        notifier=MailgunNotifier(
            api_key=settings.mailgun_api_key,
            domain=settings.email_domain,
            sender=settings.email_sender,
            base_url=settings.mailgun_base_url,
            timeout=settings.email_timeout_seconds,
        ),
        recorder=AuditRecorder(repo),
        process_all_records=settings.process_all_records,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    engine = create_async_engine(settings.postgres_url, echo=settings.sql_echo, pool_pre_ping=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        dispatch_repository = PostgresDispatchRepository(engine, settings.audit_table)

        await dispatch_repository.ensure_schema()

        consumer = SubmissionConsumerService(
            pipeline=build_pipeline(settings, dispatch_repository),
            rabbitmq_url=settings.rabbitmq_url,
            exchange_name=settings.exchange_name,
            queue_name=settings.queue_name,
            prefetch_count=settings.prefetch_count,
            durable=True,
        )
        app.state.consumer = consumer
        await consumer.start()

        try:
            yield
        finally:
            try:
                await consumer.stop()
            finally:
                # Chiudi connessione DB
                await engine.dispose()

    app = FastAPI(
        title="Submission Microservice",
        description="Archiviazione delle submission e notifica dell'esito agli studenti",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    return app


app = create_app()


def run() -> None:
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
