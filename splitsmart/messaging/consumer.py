import json
import logging
from typing import Callable, Optional
import pika
from splitsmart.core.config import settings
from splitsmart.db.database import SessionLocal
from splitsmart.messaging.handlers import MalformedMessageError, RetryLaterError, handle_identity_event

logger = logging.getLogger(__name__)


def process_message(body: bytes, session_factory: Callable = SessionLocal) -> bool:
    """
    Decode and apply one identity event.

    Returns:
        bool: True if the message was handled (or can never be), False if it
        should be redelivered
    """
    try:
        message_data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        logger.error(f"Dropping undecodable identity event: {e}")
        return True

    db = session_factory()
    try:
        handle_identity_event(db, message_data)
        return True
    except MalformedMessageError as e:
        logger.error(f"Dropping identity event: {e}")
        return True
    except RetryLaterError as e:
        logger.warning(f"Deferring identity event: {e}")
        return False
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to apply identity event, will retry: {e}")
        return False
    finally:
        db.close()


class IdentityEventConsumer:
    """Consumes identity and membership events from RabbitMQ"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.RABBITMQ_URL
        self.connection: Optional[pika.BlockingConnection] = None
        self.channel = None

    def connect(self) -> None:
        """Establish connection to RabbitMQ and declare the queue binding"""
        try:
            self.connection = pika.BlockingConnection(pika.URLParameters(self.url))
            self.channel = self.connection.channel()
            self.channel.exchange_declare(
                exchange=settings.IDENTITY_EVENTS_EXCHANGE, exchange_type="topic", durable=True
            )
            self.channel.queue_declare(queue=settings.IDENTITY_EVENTS_QUEUE, durable=True)
            for routing_key in ("user.registered", "group.member.added"):
                self.channel.queue_bind(
                    queue=settings.IDENTITY_EVENTS_QUEUE,
                    exchange=settings.IDENTITY_EVENTS_EXCHANGE,
                    routing_key=routing_key,
                )
            self.channel.basic_qos(prefetch_count=1)
            logger.info("RabbitMQ consumer connected successfully")
        except Exception as e:
            logger.error(f"Failed to connect RabbitMQ consumer: {e}")
            raise

    def on_message(self, channel, method, properties, body: bytes) -> None:
        if process_message(body):
            channel.basic_ack(delivery_tag=method.delivery_tag)
        else:
            channel.basic_nack(delivery_tag=method.delivery_tag, requeue=True)

    def start_consuming(self) -> None:
        if not self.connection or self.connection.is_closed:
            self.connect()
        self.channel.basic_consume(queue=settings.IDENTITY_EVENTS_QUEUE, on_message_callback=self.on_message)
        logger.info(f"Consuming identity events from {settings.IDENTITY_EVENTS_QUEUE}")
        self.channel.start_consuming()

    def stop_consuming(self) -> None:
        if self.connection and not self.connection.is_closed:
            # Safe to call from another thread
            self.connection.add_callback_threadsafe(self.channel.stop_consuming)

    def disconnect(self) -> None:
        """Close RabbitMQ connection"""
        if self.connection and not self.connection.is_closed:
            self.connection.close()
        logger.info("RabbitMQ consumer disconnected")
