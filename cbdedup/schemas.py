"""Core data models."""

import zlib
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageFormat(str, Enum):
    """Kind of broadcast message."""

    ETWS = "etws"  # Earthquake and Tsunami Warning System
    CMAS = "cmas"  # Commercial Mobile Alert System
    GSM = "gsm"  # Plain cell broadcast


class Location(BaseModel):
    """Network identifiers of the cell a broadcast was received on.

    ``None`` marks an identifier the network (or the history store) did not
    provide.
    """

    model_config = ConfigDict(frozen=True)

    plmn: Optional[str] = Field(None, description="Mobile country + network code")
    lac: Optional[int] = Field(None, description="Location area code")
    cid: Optional[int] = Field(None, description="Cell id")


class EtwsInfo(BaseModel):
    """ETWS warning metadata carried by ETWS primary/secondary notifications."""

    model_config = ConfigDict(frozen=True)

    warning_type: int
    emergency_user_alert: bool = False
    activate_popup: bool = False
    primary: bool = False
    warning_security_information: Optional[bytes] = None


class BroadcastMessage(BaseModel):
    """Decoded broadcast message as handed over by the radio layer."""

    service_category: int = Field(..., description="Message identifier / channel")
    serial_number: int = Field(..., description="Operator-assigned serial number")
    location: Location = Field(default_factory=Location)
    body: str = Field("", description="Message text")
    message_format: MessageFormat = Field(default=MessageFormat.GSM)
    etws_info: Optional[EtwsInfo] = None
    delivery_time: Optional[int] = Field(None, description="Epoch milliseconds")

    @property
    def is_etws(self) -> bool:
        return self.message_format == MessageFormat.ETWS


def body_hash(text: Optional[str]) -> int:
    """Stable 32-bit hash of a message body (0 for an absent body)."""
    if text is None:
        return 0
    return zlib.crc32(text.encode("utf-8"))


def message_body_hash(message: BroadcastMessage) -> int:
    """Body hash used for duplicate detection.

    Some carriers reuse serial numbers for distinct ETWS warnings, so the body
    takes part in ETWS identity. For every other kind only category, serial
    number and location count.
    """
    return body_hash(message.body) if message.is_etws else 0


class SetFingerprint(BaseModel):
    """Identity of a message inside the bounded identity set."""

    model_config = ConfigDict(frozen=True)

    service_category: int
    serial_number: int
    location: Location
    body_hash: int = 0
    etws_info: Optional[EtwsInfo] = None

    @classmethod
    def from_message(cls, message: BroadcastMessage) -> "SetFingerprint":
        return cls(
            service_category=message.service_category,
            serial_number=message.serial_number,
            location=message.location,
            body_hash=message_body_hash(message),
            etws_info=message.etws_info,
        )

    def __eq__(self, other: object) -> bool:
        if other is self:
            return True
        if not isinstance(other, SetFingerprint):
            return NotImplemented
        if (self.etws_info is None) != (other.etws_info is None):
            return False
        if self.etws_info is not None and self.etws_info != other.etws_info:
            return False
        return (
            self.service_category == other.service_category
            and self.serial_number == other.serial_number
            and self.location == other.location
            and self.body_hash == other.body_hash
        )

    def __hash__(self) -> int:
        value = (
            hash(self.location)
            + 5 * self.service_category
            + 7 * self.serial_number
            + 13 * self.body_hash
        )
        if self.etws_info is not None:
            value += hash(self.etws_info)
        return value


class WindowFingerprint(BaseModel):
    """Identity of a message inside the sliding window log.

    Unlike :class:`SetFingerprint` the full body text must match, and the
    delivery time decides how long the entry stays relevant.
    """

    model_config = ConfigDict(frozen=True)

    service_category: int
    serial_number: int
    location: Location
    body_hash: int = 0
    message_body: Optional[str] = None
    delivery_time: int

    @classmethod
    def from_message(cls, message: BroadcastMessage, delivery_time: int) -> "WindowFingerprint":
        return cls(
            service_category=message.service_category,
            serial_number=message.serial_number,
            location=message.location,
            body_hash=message_body_hash(message),
            message_body=message.body,
            delivery_time=delivery_time,
        )

    def __eq__(self, other: object) -> bool:
        if other is self:
            return True
        if not isinstance(other, WindowFingerprint):
            return NotImplemented
        # An unknown body can't prove two alerts are the same one.
        if self.message_body is None or other.message_body is None:
            return False
        return (
            self.service_category == other.service_category
            and self.serial_number == other.serial_number
            and self.location == other.location
            and self.body_hash == other.body_hash
            and self.message_body == other.message_body
        )

    def __hash__(self) -> int:
        return (
            hash(self.location)
            + 5 * self.service_category
            + 7 * self.serial_number
            + 13 * self.body_hash
        )
