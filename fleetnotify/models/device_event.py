"""
Device event model
"""

from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Traccar event kinds this service knows how to phrase."""
    DEVICE_ONLINE = "deviceOnline"
    DEVICE_OFFLINE = "deviceOffline"
    DEVICE_UNKNOWN = "deviceUnknown"
    DEVICE_INACTIVE = "deviceInactive"
    DEVICE_MOVING = "deviceMoving"
    DEVICE_STOPPED = "deviceStopped"
    DEVICE_OVERSPEED = "deviceOverspeed"
    DEVICE_FUEL_DROP = "deviceFuelDrop"
    IGNITION_ON = "ignitionOn"
    IGNITION_OFF = "ignitionOff"
    GEOFENCE_ENTER = "geofenceEnter"
    GEOFENCE_EXIT = "geofenceExit"
    ALARM = "alarm"
    MAINTENANCE = "maintenance"
    DRIVER_CHANGED = "driverChanged"
    TEXT_MESSAGE = "textMessage"

    @classmethod
    def parse(cls, value) -> Optional["EventType"]:
        try:
            return cls(value)
        except ValueError:
            return None


class DeviceEvent(BaseModel):
    """An event forwarded by Traccar. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    device_id: Union[int, str]
    name: Optional[str] = None
    # Kept as the raw string so unknown kinds still reach the default template
    type: str = Field(min_length=1)
    event_time: Optional[datetime] = None
    attributes: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    geofence_id: Optional[int] = None
    position_id: Optional[int] = None
    maintenance_id: Optional[int] = None

    @field_validator('attributes')
    @classmethod
    def freeze_attributes(cls, value):
        # frozen=True does not reach inside the mapping
        return MappingProxyType(dict(value))

    @property
    def event_type(self) -> Optional[EventType]:
        return EventType.parse(self.type)

    @property
    def label(self) -> str:
        """Device name, or a generated label when Traccar sent none."""
        if self.name and self.name.strip():
            return self.name.strip()
        return f"Device {self.device_id}"

    def attribute(self, key: str, default: str = "") -> str:
        value = self.attributes.get(key)
        if value is None or value == "":
            return default
        return str(value)

    def delivery_data(self) -> Dict[str, Any]:
        """Fields forwarded to the client app as the push data payload."""
        return {
            "name": self.name,
            "type": self.type,
            "eventTime": self.event_time.isoformat() if self.event_time else None,
            "deviceId": self.device_id,
            "eventId": self.id,
            "geofenceId": self.geofence_id,
            "positionId": self.position_id,
            "maintenanceId": self.maintenance_id,
        }
