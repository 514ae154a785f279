"""Enum definitions for users and meter readings."""

from enum import Enum


class Role(str, Enum):
    """Closed set of user roles."""

    USER = "user"
    ADMIN = "admin"


class ReadingStatus(str, Enum):
    """Approval workflow state of a meter reading."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReadingUnit(str, Enum):
    """Unit the reading value is expressed in."""

    KWH = "kWh"
    UNITS = "units"


class DistanceUnit(str, Enum):
    """Unit of a radius search distance."""

    MILES = "mi"
    KILOMETERS = "km"
