"""
SQLAlchemy ORM models -- relational schema for the Metior platform.

Tables
------
companies               -- startups / companies (entity_type "company")
investors               -- financial organisations (entity_type "investor")
funding_rounds          -- rounds raised by companies
investments             -- investor participation in funding rounds
milestones              -- company milestones
offices                 -- company office locations
users                   -- platform accounts
sessions                -- session tokens (viewer lookup)
plugin_installations    -- per-user installed plugins + enabled flag + settings
entity_plugin_overrides -- per-user, per-entity override presence record
entity_plugin_configs   -- plugin ids inside an entity override
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

class Company(Base):
    __tablename__ = "companies"

    id = Column(String(64), primary_key=True)
    permalink = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(512), nullable=False, index=True)
    category_code = Column(String(128), default="", index=True)
    status = Column(String(50), default="operating", index=True)
    founded_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    description = Column(Text, default="")
    homepage_url = Column(String(512), default="")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    funding_rounds = relationship("FundingRound", back_populates="company")
    milestones = relationship("Milestone", back_populates="company")
    offices = relationship("Office", back_populates="company")

    __table_args__ = (
        Index("ix_companies_category_status", "category_code", "status"),
    )


class FundingRound(Base):
    __tablename__ = "funding_rounds"

    id = Column(String(64), primary_key=True)
    company_id = Column(String(64), ForeignKey("companies.id"), nullable=False, index=True)
    round_code = Column(String(64), default="")
    raised_amount = Column(Float, default=0)
    raised_currency_code = Column(String(8), default="USD")
    funded_at = Column(DateTime, nullable=True)

    company = relationship("Company", back_populates="funding_rounds")
    investments = relationship("Investment", back_populates="funding_round")


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(64), ForeignKey("companies.id"), nullable=False, index=True)
    milestone_code = Column(String(128), default="")
    description = Column(Text, default="")
    milestone_at = Column(DateTime, nullable=True)
    source_url = Column(String(512), default="")

    company = relationship("Company", back_populates="milestones")


class Office(Base):
    __tablename__ = "offices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(64), ForeignKey("companies.id"), nullable=False, index=True)
    description = Column(String(255), default="")
    city = Column(String(128), default="")
    country_code = Column(String(8), default="")

    company = relationship("Company", back_populates="offices")


# ---------------------------------------------------------------------------
# Investors
# ---------------------------------------------------------------------------

class Investor(Base):
    __tablename__ = "investors"

    id = Column(String(64), primary_key=True)
    permalink = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(512), nullable=False, index=True)
    description = Column(Text, default="")
    homepage_url = Column(String(512), default="")
    founded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    investments = relationship("Investment", back_populates="investor")


class Investment(Base):
    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    funding_round_id = Column(String(64), ForeignKey("funding_rounds.id"), nullable=False, index=True)
    investor_id = Column(String(64), ForeignKey("investors.id"), nullable=False, index=True)

    funding_round = relationship("FundingRound", back_populates="investments")
    investor = relationship("Investor", back_populates="investments")

    __table_args__ = (
        UniqueConstraint("funding_round_id", "investor_id", name="uq_investment_round_investor"),
    )


# ---------------------------------------------------------------------------
# Users & sessions
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), default="")
    created_at = Column(DateTime, default=func.now())

    sessions = relationship("Session", back_populates="user")


class Session(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=func.now())

    user = relationship("User", back_populates="sessions")


# ---------------------------------------------------------------------------
# Plugin installations & entity overrides
# ---------------------------------------------------------------------------

class PluginInstallation(Base):
    __tablename__ = "plugin_installations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    plugin_id = Column(String(128), nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    settings = Column(JSON, default=dict)
    installed_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "plugin_id", name="uq_installation_user_plugin"),
    )


class EntityPluginOverride(Base):
    __tablename__ = "entity_plugin_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    plugins = relationship(
        "EntityPluginConfig",
        back_populates="override",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "entity_type", "entity_id", name="uq_override_user_entity"),
    )


class EntityPluginConfig(Base):
    __tablename__ = "entity_plugin_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    override_id = Column(
        Integer,
        ForeignKey("entity_plugin_overrides.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalised so uninstall can delete by (user, plugin) in one statement
    user_id = Column(String(64), nullable=False)
    plugin_id = Column(String(128), nullable=False)

    override = relationship("EntityPluginOverride", back_populates="plugins")

    __table_args__ = (
        UniqueConstraint("override_id", "plugin_id", name="uq_config_override_plugin"),
        Index("ix_config_user_plugin", "user_id", "plugin_id"),
    )
