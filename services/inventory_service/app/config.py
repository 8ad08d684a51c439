import os

# Service configuration, read from environment variables.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./inventory.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Seed the demo catalog on startup when the items table is empty.
INVENTORY_SEED = os.getenv("INVENTORY_SEED", "1").strip() in {"1", "true", "True", "yes"}
