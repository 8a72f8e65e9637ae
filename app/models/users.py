"""
User Data Models

This module contains account-level records: credits, subscriptions and
favourites. They are maintained by the billing process; this server reads
them and only writes favourites.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.shared import FirestoreBaseModel


class BaseUserCredits(BaseModel):
    """Base user credits model shared between Firestore and API."""

    user_id: str = Field(..., description="Associated user ID")
    credits_balance: int = Field(0, ge=0, description="Current credit balance")
    level: str = Field("free", description="Account level")
    total_credits_purchased: int = Field(0, ge=0, description="Credits bought")
    total_credits_used: int = Field(0, ge=0, description="Credits spent")
    last_purchase_date: Optional[datetime] = Field(
        None, description="Last credit purchase timestamp"
    )
    created_at: datetime = Field(..., description="Record creation timestamp")
    updated_at: datetime = Field(..., description="Last balance update timestamp")


class UserCredits(BaseUserCredits, FirestoreBaseModel):
    """User credits document model for user_credits collection."""

    pass


class BaseUserSubscription(BaseModel):
    """Base user subscription model shared between Firestore and API."""

    user_id: str = Field(..., description="Associated user ID")
    plan_type: str = Field(..., description="Subscription plan")
    status: str = Field(..., description="Subscription status")
    credits_per_period: int = Field(..., ge=0, description="Credits granted per period")
    subscription_interval: Optional[str] = Field(None, description="Billing interval")
    start_date: datetime = Field(..., description="Subscription start")
    end_date: datetime = Field(..., description="Current period end")
    next_renewal_date: datetime = Field(..., description="Next renewal")
    auto_renew: bool = Field(True, description="Whether the plan renews")
    cancellation_date: Optional[datetime] = Field(None, description="Cancellation time")
    payment_method: Optional[str] = Field(None, description="Payment method")
    price_paid: Optional[float] = Field(None, description="Price paid")
    created_at: datetime = Field(..., description="Record creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class UserSubscription(BaseUserSubscription, FirestoreBaseModel):
    """User subscription document model for user_subscriptions collection."""

    id: str = Field(..., description="Document ID")


class Favorite(FirestoreBaseModel):
    """User favourite document model for user_favorites collection."""

    user_id: str = Field(..., description="Associated user ID")
    task_id: str = Field(..., description="Favourited task definition ID")
    created_at: datetime = Field(..., description="Creation timestamp")
