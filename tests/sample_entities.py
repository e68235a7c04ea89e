"""
Entity types shared by the test suite.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from mdb_context import Entity, TimestampedEntity


class Status(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Address:
    city: str = ""
    zip_code: str = ""


@dataclass
class Order(Entity):
    total: int = 0
    customer: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class Customer(TimestampedEntity):
    name: str = ""
    status: Status = Status.OPEN
    address: Address | None = None
    scores: dict[str, int] = field(default_factory=dict)
    cache_hint: str = field(default="", metadata={"persist": False})


@dataclass
class PageView(Entity):
    path: str = ""


@dataclass
class Invoice(Entity):
    amount: int = 0


@dataclass
class Shipment(Entity):
    carrier: str = ""
    placed_at: datetime | None = None
