"""
SQLAlchemy models for SwapStation.
"""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DECIMAL, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"

    account_id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    fullname = Column(String(50), nullable=False)
    phone_number = Column(String(11))
    citizen_id = Column(String(12))
    driving_license = Column(String(12))
    permission = Column(String(20), nullable=False, default="driver")
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vehicles = relationship("Vehicle", back_populates="owner", cascade="all, delete-orphan")


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    token = Column(String(64), primary_key=True)
    account_id = Column(String(36), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)


class VerificationCode(Base):
    """Six-digit code mailed for email verification (``register``) or password reset (``reset``)."""

    __tablename__ = "verification_codes"

    code_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), nullable=False, index=True)
    purpose = Column(String(20), nullable=False)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    verified_at = Column(DateTime)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())


class BatteryType(Base):
    __tablename__ = "battery_types"

    battery_type_id = Column(Integer, primary_key=True)
    battery_type_code = Column(String(50), nullable=False, unique=True)
    capacity_kwh = Column(DECIMAL(6, 2))


class VehicleModel(Base):
    __tablename__ = "vehicle_models"

    model_id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    brand = Column(String(100), nullable=False)
    battery_type_id = Column(Integer, ForeignKey("battery_types.battery_type_id"), nullable=False)
    battery_slot = Column(Integer, nullable=False, default=1)
    avg_energy_usage = Column(DECIMAL(5, 2))

    battery_type = relationship("BatteryType")


class Vehicle(Base):
    __tablename__ = "vehicles"

    vehicle_id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    vin = Column(String(17), nullable=False, unique=True)
    model_id = Column(Integer, ForeignKey("vehicle_models.model_id"), nullable=False)
    license_plate = Column(String(9), nullable=False)
    battery_soh = Column(Integer, nullable=False, default=100)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("Account", back_populates="vehicles")
    model = relationship("VehicleModel")


class Station(Base):
    __tablename__ = "stations"

    station_id = Column(Integer, primary_key=True)
    station_name = Column(String(200), nullable=False)
    address = Column(Text, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    status = Column(String(20), nullable=False, default="operational")
    created_at = Column(DateTime, server_default=func.now())

    batteries = relationship("Battery", back_populates="station", cascade="all, delete-orphan")


class Battery(Base):
    __tablename__ = "batteries"

    battery_id = Column(Integer, primary_key=True)
    station_id = Column(Integer, ForeignKey("stations.station_id", ondelete="CASCADE"), index=True)
    battery_type_id = Column(Integer, ForeignKey("battery_types.battery_type_id"), nullable=False)
    soh = Column(Integer, nullable=False, default=100)
    status = Column(String(20), nullable=False, default="available")
    booking_id = Column(String(36), ForeignKey("bookings.booking_id", ondelete="SET NULL"))

    station = relationship("Station", back_populates="batteries")
    battery_type = relationship("BatteryType")


class Booking(Base):
    __tablename__ = "bookings"

    booking_id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.vehicle_id", ondelete="CASCADE"), nullable=False)
    station_id = Column(Integer, ForeignKey("stations.station_id"), nullable=False)
    battery_quantity = Column(Integer, nullable=False, default=1)
    scheduled_time = Column(DateTime, nullable=False)
    scheduled_end_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    source = Column(String(20), nullable=False, default="app")
    create_time = Column(DateTime, server_default=func.now())
    completed_time = Column(DateTime)
    swap_started_at = Column(DateTime)

    account = relationship("Account")
    vehicle = relationship("Vehicle")
    station = relationship("Station")
    batteries = relationship("Battery", foreign_keys=[Battery.booking_id])


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    plan_id = Column(Integer, primary_key=True)
    plan_name = Column(String(100), nullable=False)
    description = Column(Text)
    plan_fee = Column(DECIMAL(12, 2), nullable=False)
    deposit_fee = Column(DECIMAL(12, 2), nullable=False, default=0)
    penalty_fee = Column(DECIMAL(12, 2), nullable=False, default=0)
    battery_cap = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, nullable=False, default=True)


class Subscription(Base):
    __tablename__ = "subscriptions"

    subscription_id = Column(String(36), primary_key=True, default=_uuid)
    account_id = Column(String(36), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.vehicle_id", ondelete="CASCADE"), nullable=False)
    plan_id = Column(Integer, ForeignKey("subscription_plans.plan_id"), nullable=False)
    status = Column(String(20), nullable=False, default="pending_payment")
    total_amount = Column(DECIMAL(12, 2), nullable=False)
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    swaps_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    plan = relationship("SubscriptionPlan")
    vehicle = relationship("Vehicle")
