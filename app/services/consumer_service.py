# app/services/consumer_service.py
import asyncio
import logging
from typing import Optional
import aio_pika
from aio_pika import ExchangeType, IncomingMessage

from app.services.pipeline import SubmissionPipeline

logger = logging.getLogger(__name__)

class SubmissionConsumerService:
    """
    Consumer della coda delle submission: ogni messaggio e' un envelope di
    trigger e viene passato alla pipeline come run indipendente.
    Nessun retry: i messaggi non processabili vengono rifiutati senza requeue.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        rabbitmq_url: str,
        *,
        exchange_name: str = "elearning.submissions",
        queue_name: str = "submissions.archive",
        heartbeat: int = 30,
        durable: bool = True,
        prefetch_count: int = 10,
    ) -> None:
        self.pipeline = pipeline
        self.rabbitmq_url = rabbitmq_url
        self.exchange_name = exchange_name
        self.queue_name = queue_name
        self.heartbeat = heartbeat
        self.durable = durable
        self.prefetch_count = prefetch_count

        # risorse AMQP
        self._conn: Optional[aio_pika.RobustConnection] = None
        self._channel: Optional[aio_pika.RobustChannel] = None
        self._exchange: Optional[aio_pika.Exchange] = None
        self._consumer_tag: Optional[str] = None

        # lock per operazioni critiche (close/ensure)
        self._lock = asyncio.Lock()

    # -----------------------------
    # Lifecycle
    # -----------------------------
    async def connect(self, max_retries: int = 5, delay: int = 3) -> None:
        """Apre connessione e dichiara exchange; i tentativi valgono solo all'avvio."""
        attempt = 0
        while True:
            try:
                logger.debug("Tentativo connessione RabbitMQ #%s", attempt + 1)
                self._conn = await aio_pika.connect_robust(
                    self.rabbitmq_url,
                    heartbeat=self.heartbeat,
                )
                self._channel = await self._conn.channel()
                await self._channel.set_qos(prefetch_count=self.prefetch_count)

                self._exchange = await self._channel.declare_exchange(
                    self.exchange_name, ExchangeType.DIRECT, durable=self.durable
                )

                logger.info("Connessione a RabbitMQ stabilita.")
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                attempt += 1
                logger.warning("Connessione fallita: %s", exc)
                if attempt >= max_retries:
                    logger.error(
                        "Impossibile connettersi a RabbitMQ dopo %s tentativi.", max_retries
                    )
                    raise
                await asyncio.sleep(delay)

    async def close(self) -> None:
        """Chiude in modo pulito consumer, canale e connessione."""
        async with self._lock:
            if self._channel and not self._channel.is_closed and self._consumer_tag:
                try:
                    await self._channel.basic_cancel(self._consumer_tag)
                except Exception:
                    logger.exception("Errore durante cancel consumer tag=%s", self._consumer_tag)
                finally:
                    self._consumer_tag = None

            try:
                if self._channel and not self._channel.is_closed:
                    logger.debug("Chiusura canale RabbitMQ.")
                    await self._channel.close()
            finally:
                if self._conn and not self._conn.is_closed:
                    logger.debug("Chiusura connessione RabbitMQ.")
                    await self._conn.close()

            self._conn = None
            self._channel = None
            self._exchange = None

    def is_ready(self) -> bool:
        return bool(
            self._conn
            and not self._conn.is_closed
            and self._channel
            and not self._channel.is_closed
            and self._exchange
        )

    # -----------------------------
    # Consumo
    # -----------------------------
    async def start(self) -> None:
        async with self._lock:
            await self.connect()
            assert self._channel is not None and self._exchange is not None

            queue = await self._channel.declare_queue(
                name=self.queue_name,
                durable=self.durable,
                exclusive=False,
                auto_delete=False,
            )
            await queue.bind(self._exchange, routing_key=self.queue_name)
            self._consumer_tag = await queue.consume(self.on_message, no_ack=False)
        logger.info("SubmissionConsumerService in ascolto su %s (consumer tag=%s)",
                    self.queue_name, self._consumer_tag)

    async def stop(self) -> None:
        await self.close()
        logger.info("SubmissionConsumerService arrestato.")

    async def on_message(self, message: IncomingMessage) -> None:
        try:
            results = await self.pipeline.handle_payload(message.body)
        except Exception:
            logger.exception("Errore inatteso durante la run della pipeline")
            await message.nack(requeue=False)
            return

        if not results:
            # trigger non decodificabile: niente side effect, messaggio scartato
            await message.nack(requeue=False)
            return

        await message.ack()
        for result in results:
            logger.info("Submission processed",
                        extra={"studentEmail": result.event.student_email,
                               "assignmentName": result.event.assignment_name,
                               "outcome": result.outcome.value,
                               "recorded": result.recorded})
