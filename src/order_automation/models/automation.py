"""Pydantic models for status rules, orders and the status ledger."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from order_automation.config.constants import EMAIL_TYPES, SEND_STATUS_PENDING


class StatusRule(BaseModel):
    """A configured trigger status -> target status transition."""

    id: str
    trigger_status: str
    target_status: str
    wait_business_days: int = Field(default=0, ge=0)
    description: Optional[str] = None
    customer_email_subject: Optional[str] = None
    customer_email_body: Optional[str] = None
    internal_recipient: Optional[str] = None
    additional_recipients: List[str] = Field(default_factory=list)
    is_active: bool = True

    class Config:
        from_attributes = True

    @property
    def has_customer_template(self) -> bool:
        """Both subject and body are required for customer-facing content."""
        return bool(self.customer_email_subject and self.customer_email_body)


class OrderStatusNote(BaseModel):
    """One entry of the append-only status ledger."""

    id: Optional[int] = None
    order_id: str
    status: str
    content: Optional[str] = None
    created_at: datetime
    is_automated: bool = False
    triggered_by_rule_id: Optional[str] = None

    class Config:
        from_attributes = True


class Customer(BaseModel):
    """Customer referenced by an order."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class Order(BaseModel):
    """Order header; notes reference it through order_id."""

    id: str
    customer_id: str
    order_number: Optional[str] = None

    class Config:
        from_attributes = True


class OrderItem(BaseModel):
    """Line item used for the order summary placeholder."""

    sku: Optional[str] = None
    details: Optional[str] = None
    qty: int = 1
    price: Optional[float] = None

    class Config:
        from_attributes = True


class SendAttempt(BaseModel):
    """One logged notification dispatch."""

    id: Optional[str] = None
    order_id: str
    status_rule_id: Optional[str] = None
    email_type: str
    recipient: str
    subject: str
    message: str
    status: str = SEND_STATUS_PENDING
    error_message: Optional[str] = None
    provider_message_id: Optional[str] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("email_type")
    @classmethod
    def check_email_type(cls, value: str) -> str:
        if value not in EMAIL_TYPES:
            raise ValueError(f"Unknown email type: {value}")
        return value
