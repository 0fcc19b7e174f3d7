from tortoise import Tortoise
from stockkeeper.core.config import DB_URL
import logging
from logging import INFO

log = logging.getLogger("stockkeeper.db")

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)

# Define all models modules for the ORM
MODELS_MODULES = [
    "stockkeeper.models.item",
    "stockkeeper.models.purchase_order",
    "stockkeeper.models.alert",
    "stockkeeper.models.usage",
    "stockkeeper.models.user",
    "stockkeeper.models.outbox",
    "stockkeeper.models.processed_event",
]

async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Initializes the Tortoise ORM connection and generates schemas."""
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        if generate_schemas:
            # safe=True: only create tables that do not exist yet
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database at {db_url}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise

async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
