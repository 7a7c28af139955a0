"""
Database schema
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData, String, Table, Text, Uuid,
)

metadata = MetaData()

# Users table (authentication)
users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("email", String(255), unique=True, nullable=False),
    Column("password_hash", String(255), nullable=False),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("role", String(20), nullable=False, index=True),  # business, customer, admin
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

# Businesses (1:1 with a business account)
businesses = Table(
    "businesses",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False),
    Column("name", String(255), nullable=False),
    Column("business_type", String(100)),
    Column("industry", String(100)),
    Column("website", String(500)),
    Column("description", Text),
    Column("contact_email", String(255)),
    Column("contact_phone", String(50)),
    Column("notification_email", String(255)),
    Column("status", String(20), nullable=False),  # active, inactive, suspended
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

# Campaigns
campaigns = Table(
    "campaigns",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("business_id", Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("reward_type", String(20), nullable=False),  # percentage, fixed
    Column("reward_value", Float, nullable=False),
    Column("reward_description", String(500), nullable=False),
    Column("status", String(20), nullable=False, index=True),  # draft, active, paused, completed
    Column("start_date", DateTime),
    Column("expiration_date", DateTime),
    Column("max_referrals", Integer),
    Column("total_referrals", Integer, nullable=False, default=0),
    Column("successful_referrals", Integer, nullable=False, default=0),
    Column("conversion_rate", Float, nullable=False, default=0.0),
    Column("reward_redemptions", Integer, nullable=False, default=0),
    Column("analytics_updated_at", DateTime),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

# Referrals
referrals = Table(
    "referrals",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("campaign_id", Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("business_id", Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("referrer_email", String(255), index=True),
    Column("referred_email", String(255)),
    Column("referred_name", String(255)),
    Column("referred_phone", String(50)),
    Column("code", String(32), unique=True, nullable=False),
    Column("status", String(20), nullable=False, index=True),  # pending, approved, rejected, completed, expired
    Column("completion_source", String(20)),  # referred, business
    Column("view_count", Integer, nullable=False, default=0),
    Column("last_viewed", DateTime),
    Column("ip_address", String(64)),
    Column("user_agent", String(500)),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Column("completed_at", DateTime),
)
