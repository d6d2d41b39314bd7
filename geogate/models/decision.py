"""Terminal outcomes of one pass through the geoip gate."""

from dataclasses import dataclass
from typing import Any
from typing import Union

from geogate.models.location import LocationRecord


@dataclass(frozen=True)
class Allow:
    ip: str
    location: LocationRecord


@dataclass(frozen=True)
class Deny:
    status_code: int
    message: str
    ip: str
    location: LocationRecord

    def body(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "message": self.message}


@dataclass(frozen=True)
class Error:
    status_code: int
    message: str
    ip: str | None = None
    location: LocationRecord | None = None

    def body(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "message": self.message}


Decision = Union[Allow, Deny, Error]
