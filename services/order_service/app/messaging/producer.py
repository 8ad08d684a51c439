import json
import logging

import pika

from ..config import EVENTS_EXCHANGE, RABBITMQ_HOST

logger = logging.getLogger("order_events")


class RabbitMQProducer:
    """
    Publishes order events to a topic exchange.
    A connection is opened per event: BlockingConnection must not be shared
    between the worker threads that serve requests.
    """

    def __init__(self, host=RABBITMQ_HOST, exchange_name=EVENTS_EXCHANGE):
        self.host = host
        self.exchange_name = exchange_name

    def publish(self, routing_key: str, event_data: dict) -> None:
        """
        Publishes one event. Broker failures are logged and never raised,
        so a placement outcome does not depend on the broker.

        Args:
            routing_key (str): The topic key (e.g., 'order.placed', 'order.failed').
            event_data (dict): The data payload to send.
        """
        try:
            connection = pika.BlockingConnection(
                pika.ConnectionParameters(
                    host=self.host,
                    heartbeat=600,
                    blocked_connection_timeout=300
                )
            )
        except pika.exceptions.AMQPError as e:
            logger.error(f"RabbitMQ unavailable, dropping event '{routing_key}': {e}")
            return

        try:
            channel = connection.channel()
            channel.exchange_declare(exchange=self.exchange_name, exchange_type='topic', durable=True)
            channel.basic_publish(
                exchange=self.exchange_name,
                routing_key=routing_key,
                body=json.dumps(event_data, default=str),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Make message persistent
                    content_type='application/json'
                )
            )
            logger.info(f"Sent event '{routing_key}': {event_data}")
        except pika.exceptions.AMQPError as e:
            logger.error(f"Failed to publish event '{routing_key}': {e}")
        finally:
            connection.close()


class LoggingPublisher:
    """Used when no broker is configured: events only go to the log."""

    def publish(self, routing_key: str, event_data: dict) -> None:
        logger.info(f"Event '{routing_key}': {event_data}")


def get_publisher():
    if RABBITMQ_HOST:
        return RabbitMQProducer()
    return LoggingPublisher()
