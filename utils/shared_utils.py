"""
Shared utility functions for routers and services
"""
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def log_endpoint_event(endpoint: str, user_id: Optional[int] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    line = f"{endpoint} | user={user_id if user_id is not None else 'none'} | {result} | {json.dumps(details or {}, default=str)}"
    if result == "success":
        logger.info(line)
    else:
        logger.warning(line)
