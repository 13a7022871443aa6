import os
import logging
from typing import Any, Dict, Optional
from sqlalchemy.orm import declarative_base

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("sso_service")

# Declarative base shared by all ORM models of the service
Base = declarative_base()


class BaseMicroservice:
    """
    Base class for the service components. Provides:
    - Error/event logging
    - Standard response envelope
    """
    def __init__(self, service_name: str = "sso_service"):
        self.service_name = service_name
        self.logger = logger if service_name == "sso_service" else logger.getChild(service_name)

    def envelope(self, data: Any = None, message: str = "success", **extra) -> Dict[str, Any]:
        """Standard {status, message, data} body; extra keys go at the top level."""
        body = {"status": "ok", "message": message, "data": data}
        body.update(extra)
        return body

    def log_event(self, event: str, details: Optional[Dict[str, Any]] = None):
        self.logger.info(f"EVENT: {event} | Details: {details}")

    def log_error(self, error: Exception, context: str = ""):
        self.logger.error(f"ERROR: {error.__class__.__name__}: {str(error)} | Context: {context}")
