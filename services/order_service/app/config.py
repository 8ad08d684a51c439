import os

# Service configuration, read from environment variables.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orders.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Inventory service used for item lookups and stock reservation.
INVENTORY_SERVICE_URL = os.getenv("INVENTORY_SERVICE_URL", "http://inventory_service:8000")
INVENTORY_TIMEOUT_MS = int(os.getenv("INVENTORY_TIMEOUT_MS", "2000"))

# What placement does when a basket entry fails after earlier entries were
# reserved: "compensate" releases them and marks the order FAILED, "abort"
# leaves the partial order as it is.
ORDER_FAILURE_POLICY = os.getenv("ORDER_FAILURE_POLICY", "compensate")

# Order events go to RabbitMQ only when a broker host is configured.
RABBITMQ_HOST = os.getenv("RABBITMQ_HOST")
EVENTS_EXCHANGE = os.getenv("EVENTS_EXCHANGE", "events")
