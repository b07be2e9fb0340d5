import logging
import threading
import time
from typing import Optional
from splitsmart.messaging.consumer import IdentityEventConsumer

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 5


class BackgroundConsumerManager:
    """Runs the identity event consumer in a daemon thread"""

    def __init__(self, consumer: Optional[IdentityEventConsumer] = None):
        self.consumer_thread: Optional[threading.Thread] = None
        self.is_running = False
        self.consumer = consumer or IdentityEventConsumer()

    def start_background_consumer(self):
        """Start the background consumer in a separate thread"""
        if self.is_running:
            logger.warning("Background consumer is already running")
            return

        self.is_running = True
        self.consumer_thread = threading.Thread(
            target=self._run_consumer,
            daemon=True,
            name="RabbitMQ-Consumer"
        )
        self.consumer_thread.start()
        logger.info("Background RabbitMQ consumer started")

    def stop_background_consumer(self):
        """Stop the background consumer"""
        if not self.is_running:
            logger.warning("Background consumer is not running")
            return

        self.is_running = False
        self.consumer.stop_consuming()

        if self.consumer_thread and self.consumer_thread.is_alive():
            self.consumer_thread.join(timeout=5)
            if self.consumer_thread.is_alive():
                logger.warning("Consumer thread did not stop gracefully")

        self.consumer.disconnect()
        logger.info("Background RabbitMQ consumer stopped")

    def _run_consumer(self):
        """Consume until stopped, reconnecting after broker failures"""
        while self.is_running:
            try:
                self.consumer.start_consuming()
            except Exception as e:
                if not self.is_running:
                    break
                logger.error(f"Error in consumer loop, reconnecting in {RECONNECT_DELAY_SECONDS}s: {e}")
                time.sleep(RECONNECT_DELAY_SECONDS)
            else:
                # start_consuming returned, so we were asked to stop
                break
        logger.info("Consumer thread finished")


# Global manager instance
_consumer_manager: Optional[BackgroundConsumerManager] = None


def get_consumer_manager() -> BackgroundConsumerManager:
    """Get or create background consumer manager instance"""
    global _consumer_manager
    if _consumer_manager is None:
        _consumer_manager = BackgroundConsumerManager()
    return _consumer_manager


def start_background_consumer():
    get_consumer_manager().start_background_consumer()


def stop_background_consumer():
    get_consumer_manager().stop_background_consumer()
