"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-automation", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Ticket Service ==========
    ticket_service_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the ticket service"
    )
    ticket_service_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the ticket service"
    )
    ticket_service_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for ticket service calls",
        ge=0.1,
        le=30
    )

    # ========== SLA ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    sla_warning_percent: int = Field(
        default=80,
        description="Percent of the SLA window after which a deadline is at risk",
        ge=0,
        le=100
    )
    sla_sweep_interval_seconds: int = Field(
        default=60,
        description="Seconds between SLA monitor sweeps",
        ge=10
    )

    # ========== Automation ==========
    hourly_check_interval_seconds: int = Field(
        default=3600,
        description="Seconds between HOURLY_CHECK sweeps",
        ge=60
    )
    max_concurrent_tickets: int = Field(
        default=8,
        description="Tickets processed in parallel (work within a ticket is sequential)",
        ge=1
    )
    notification_queue_size: int = Field(
        default=1000,
        description="Capacity of the notification outbox",
        ge=1
    )
    scheduler_enabled: bool = Field(
        default=True,
        description="Run the periodic jobs in-process"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Trigger(str):
    """Events that cause rule evaluation."""
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    HOURLY_CHECK = "HOURLY_CHECK"


class ConditionField(str):
    """Ticket fields a condition can test."""
    SUBJECT = "subject"
    PRIORITY = "priority"
    DEPARTMENT_ID = "departmentId"
    STATUS = "status"
    REQUESTER_EMAIL = "requesterEmail"
    HOURS_SINCE_UPDATE = "hoursSinceUpdate"


class ConditionOperator(str):
    """Comparison operators."""
    CONTAINS = "contains"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class ActionType(str):
    """Side effects a rule can apply."""
    ASSIGN_DEPARTMENT = "assign_department"
    ASSIGN_USER = "assign_user"
    SET_PRIORITY = "set_priority"
    SET_STATUS = "set_status"
    ADD_TAG = "add_tag"
    SEND_NOTIFICATION = "send_notification"


class TicketPriority(str):
    """Ticket priority levels."""
    URGENT = "URGENT"
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    NEW = "NEW"
    OPEN = "OPEN"
    WAITING_REQUESTER = "WAITING_REQUESTER"
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    REOPENED = "REOPENED"


class DeadlineType(str):
    """The two SLA clocks tracked per ticket."""
    FIRST_RESPONSE = "first_response"
    RESOLUTION = "resolution"


class DeadlineState(str):
    """Per-deadline SLA states."""
    PENDING = "PENDING"
    AT_RISK = "AT_RISK"
    BREACHED = "BREACHED"
    SATISFIED = "SATISFIED"


class NotificationKind(str):
    """Notification request kinds."""
    SLA_WARNING = "SLA_WARNING"
    SLA_BREACH = "SLA_BREACH"
    AUTOMATION = "AUTOMATION"


class AuditAction(str):
    """Audit trail action names."""
    AUTOMATION_ACTION = "AUTOMATION_ACTION"
    RULE_CREATE = "RULE_CREATE"
    RULE_UPDATE = "RULE_UPDATE"
    RULE_DELETE = "RULE_DELETE"
    RULE_TOGGLE = "RULE_TOGGLE"
    SLA_TRACKING_CREATE = "SLA_TRACKING_CREATE"
    SLA_TRACKING_RECOMPUTE = "SLA_TRACKING_RECOMPUTE"
    SLA_WARNING = "SLA_WARNING"
    SLA_BREACH = "SLA_BREACH"


# ========== Lists for validation ==========

VALID_TRIGGERS = [Trigger.TICKET_CREATED, Trigger.TICKET_UPDATED, Trigger.HOURLY_CHECK]
STRING_FIELDS = [
    ConditionField.SUBJECT, ConditionField.PRIORITY,
    ConditionField.STATUS, ConditionField.REQUESTER_EMAIL
]
NUMERIC_FIELDS = [ConditionField.DEPARTMENT_ID, ConditionField.HOURS_SINCE_UPDATE]
VALID_CONDITION_FIELDS = STRING_FIELDS + NUMERIC_FIELDS
STRING_OPERATORS = [
    ConditionOperator.CONTAINS, ConditionOperator.EQUALS,
    ConditionOperator.NOT_EQUALS, ConditionOperator.STARTS_WITH,
    ConditionOperator.ENDS_WITH
]
NUMERIC_OPERATORS = [
    ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS,
    ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN
]
VALID_CONDITION_OPERATORS = STRING_OPERATORS + [
    ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN
]
VALID_ACTION_TYPES = [
    ActionType.ASSIGN_DEPARTMENT, ActionType.ASSIGN_USER,
    ActionType.SET_PRIORITY, ActionType.SET_STATUS,
    ActionType.ADD_TAG, ActionType.SEND_NOTIFICATION
]
VALID_PRIORITIES = [
    TicketPriority.URGENT, TicketPriority.HIGH,
    TicketPriority.NORMAL, TicketPriority.LOW
]
VALID_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.WAITING_REQUESTER,
    TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    TicketStatus.REOPENED
]
CLOSED_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]
VALID_DEADLINE_TYPES = [DeadlineType.FIRST_RESPONSE, DeadlineType.RESOLUTION]
VALID_DEADLINE_STATES = [
    DeadlineState.PENDING, DeadlineState.AT_RISK,
    DeadlineState.BREACHED, DeadlineState.SATISFIED
]
