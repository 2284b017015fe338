"""
Serverless entry point for the Helpdesk Service API
"""
import os

# Serverless invocations are short-lived; the breach sweep runs elsewhere
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("SLA_EVALUATION_INTERVAL", "0")

from mangum import Mangum

from src.infrastructure.database import init_database
from src.main import app
from src.shared.infrastructure.logging import setup_logging
from src.config import settings

# Lifespan is disabled, so logging and the engine are set up at import time
setup_logging(settings.log_level, settings.environment)
init_database()

handler = Mangum(app, lifespan="off")
