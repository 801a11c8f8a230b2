"""
Audit logging for authentication events.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import asyncio
import logging
import uuid


class AuthEventType(Enum):
    """Points in the token lifecycle that are reported to the audit logger"""
    TOKEN_FOUND = "token_found"
    TOKEN_VALIDATED = "token_validated"
    TOKEN_REJECTED = "token_rejected"
    TOKEN_REVIVED = "token_revived"
    LOGIN = "login"
    LOGOUT = "logout"
    AUTHENTICATION_FAILED = "authentication_failed"


@dataclass
class AuthEvent:
    """Audit event for an authentication step"""
    event_type: AuthEventType
    subject_id: Any = None
    origin: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: Dict[str, Any] = field(default_factory=dict)
    event_id: str = ""

    def __post_init__(self):
        if not self.event_id:
            self.event_id = str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "subject_id": self.subject_id,
            "origin": self.origin,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class AuditLogger(ABC):
    """Abstract base class for audit logging"""

    @abstractmethod
    async def log(self, event: AuthEvent) -> None:
        """Log an audit event"""
        pass

    async def get_events(
        self,
        event_type: Optional[AuthEventType] = None,
        subject_id: Any = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuthEvent]:
        """Retrieve audit events; loggers that do not retain events return none"""
        return []

    async def close(self) -> None:
        """Close the audit logger and release resources"""
        pass


class LoggingAuditLogger(AuditLogger):
    """Audit logger that writes events through the standard logging module"""

    def __init__(self, logger_name: str = "authgate.audit", level: int = logging.INFO):
        self.logger = logging.getLogger(logger_name)
        self.level = level

    async def log(self, event: AuthEvent) -> None:
        level = logging.WARNING if event.event_type in (
            AuthEventType.TOKEN_REJECTED,
            AuthEventType.AUTHENTICATION_FAILED,
        ) else self.level
        self.logger.log(
            level,
            f"{event.event_type.value} subject={event.subject_id!r} origin={event.origin}",
            extra={"auth_event": event.to_dict()},
        )


class MemoryAuditLogger(AuditLogger):
    """In-memory audit logger for development and testing"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.events: deque = deque(maxlen=max_entries)
        self._lock = asyncio.Lock()

    async def log(self, event: AuthEvent) -> None:
        """Log an audit event to memory"""
        async with self._lock:
            self.events.append(event)

    async def get_events(
        self,
        event_type: Optional[AuthEventType] = None,
        subject_id: Any = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuthEvent]:
        """Events matching every given filter, oldest first"""

        def matches(event: AuthEvent) -> bool:
            return (
                (event_type is None or event.event_type == event_type)
                and (subject_id is None or event.subject_id == subject_id)
                and (start_time is None or event.timestamp >= start_time)
                and (end_time is None or event.timestamp <= end_time)
            )

        async with self._lock:
            return [event for event in self.events if matches(event)]


def create_audit_logger(logger_type: str = "logging", **kwargs) -> AuditLogger:
    """
    Factory function to create audit loggers

    Args:
        logger_type: Type of logger ("logging", "memory" or "metrics")
        **kwargs: Additional arguments for the logger

    Returns:
        AuditLogger instance
    """
    if logger_type == "logging":
        return LoggingAuditLogger(**kwargs)
    elif logger_type == "memory":
        max_entries = kwargs.get("max_entries", 1000)
        return MemoryAuditLogger(max_entries)
    elif logger_type == "metrics":
        from .metrics import MetricsAuditLogger
        return MetricsAuditLogger(**kwargs)
    else:
        raise ValueError(f"Unknown logger type: {logger_type}")
