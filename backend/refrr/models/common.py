"""
Common Models
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional


class MessageResponse(BaseModel):
    """Small acknowledgment body"""
    message: str


class MaintenanceResult(BaseModel):
    """Result of an admin maintenance pass"""
    message: str
    affected: int


class HealthStatus(BaseModel):
    """Health check status"""
    status: str = "ok"
    timestamp: str
    version: str
    dependencies: Optional[Dict[str, Any]] = None
