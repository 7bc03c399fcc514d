"""
Turns Traccar device events into notification text.

Every EventType has exactly one template; anything else falls back to the
default template, so composing never fails on an unknown or partial event.
"""
import math
from typing import Callable, Dict

from fleetnotify.models.device_event import DeviceEvent, EventType
from fleetnotify.models.notification import NotificationContent

KNOTS_TO_KMH = 1.852

Template = Callable[[DeviceEvent], NotificationContent]


def _content(title, body):
    return NotificationContent(title=title, body=body)


def _speed_kmh(speed):
    """Traccar speed (knots) as whole km/h, or None when unusable."""
    if not isinstance(speed, (int, float)) or isinstance(speed, bool):
        return None
    try:
        kmh = speed * KNOTS_TO_KMH
    except OverflowError:
        return None
    if not math.isfinite(kmh):
        return None
    return round(kmh)


def _overspeed(event: DeviceEvent) -> NotificationContent:
    body = f"{event.label} exceeded the speed limit"
    kmh = _speed_kmh(event.attributes.get('speed'))
    if kmh is not None:
        body = f"{body} ({kmh} km/h)"
    return _content('Speed Limit Exceeded', body)


TEMPLATES: Dict[EventType, Template] = {
    EventType.DEVICE_ONLINE: lambda e: _content('Device Online', f"{e.label} is online"),
    EventType.DEVICE_OFFLINE: lambda e: _content('Device Offline', f"{e.label} is offline"),
    EventType.DEVICE_UNKNOWN: lambda e: _content('Device Status Unknown', f"{e.label} status is unknown"),
    EventType.DEVICE_INACTIVE: lambda e: _content('Device Inactive', f"{e.label} has been inactive"),
    EventType.DEVICE_MOVING: lambda e: _content('Movement Detected', f"{e.label} is moving"),
    EventType.DEVICE_STOPPED: lambda e: _content('Device Stopped', f"{e.label} has stopped"),
    EventType.DEVICE_OVERSPEED: _overspeed,
    EventType.DEVICE_FUEL_DROP: lambda e: _content('Fuel Drop', f"{e.label}: fuel level dropped"),
    EventType.IGNITION_ON: lambda e: _content('Ignition On', f"{e.label}: ignition on"),
    EventType.IGNITION_OFF: lambda e: _content('Ignition Off', f"{e.label}: ignition off"),
    EventType.GEOFENCE_ENTER: lambda e: _content(
        'Geofence', f"{e.label} entered {e.attribute('geofenceName')}".rstrip()),
    EventType.GEOFENCE_EXIT: lambda e: _content(
        'Geofence', f"{e.label} exited {e.attribute('geofenceName')}".rstrip()),
    EventType.ALARM: lambda e: _content('Alarm', f"{e.label}: {e.attribute('alarm', 'Alarm triggered')}"),
    EventType.MAINTENANCE: lambda e: _content(
        'Maintenance Required', f"{e.label}: {e.attribute('maintenanceName', 'maintenance due')}"),
    EventType.DRIVER_CHANGED: lambda e: _content(
        'Driver Changed', f"{e.label}: driver {e.attribute('driverUniqueId', 'changed')}"),
    EventType.TEXT_MESSAGE: lambda e: _content(
        'Message Received', f"{e.label}: {e.attribute('message', 'new message')}"),
}


def default_template(event: DeviceEvent) -> NotificationContent:
    return _content('Notification', f"{event.label}: {event.type}")


class MessageComposer:
    def __init__(self, templates: Dict[EventType, Template] = None):
        self.templates = templates if templates is not None else TEMPLATES

    def compose(self, event: DeviceEvent) -> NotificationContent:
        template = self.templates.get(event.event_type, default_template)
        return template(event)
