"""
Tests for notification text composition
"""
import pytest

from fleetnotify.models.device_event import DeviceEvent, EventType
from fleetnotify.services.message_composer import TEMPLATES, MessageComposer


def make_event(event_type, name='Truck-7', **attributes):
    return DeviceEvent(device_id=42, name=name, type=event_type, attributes=attributes)


class TestMessageComposer:

    def setup_method(self):
        self.composer = MessageComposer()

    def test_every_event_type_has_a_template(self):
        assert set(TEMPLATES) == set(EventType)

    @pytest.mark.parametrize('event_type', list(EventType))
    def test_known_types_produce_title_and_body(self, event_type):
        content = self.composer.compose(make_event(event_type.value))
        assert content.title
        assert content.body
        assert content.title != 'Notification'

    @pytest.mark.parametrize('event_type', list(EventType))
    def test_known_types_survive_missing_name_and_attributes(self, event_type):
        content = self.composer.compose(make_event(event_type.value, name=None))
        assert content.body.startswith('Device 42')

    def test_unknown_type_uses_default_template(self):
        content = self.composer.compose(make_event('commandResult'))
        assert content.title == 'Notification'
        assert content.body == 'Truck-7: commandResult'

    def test_device_offline(self):
        content = self.composer.compose(make_event('deviceOffline'))
        assert content.title == 'Device Offline'
        assert content.body == 'Truck-7 is offline'

    def test_blank_name_falls_back_to_device_label(self):
        content = self.composer.compose(make_event('deviceOnline', name='   '))
        assert content.body == 'Device 42 is online'

    def test_geofence_uses_geofence_name(self):
        content = self.composer.compose(make_event('geofenceEnter', geofenceName='Depot'))
        assert content.title == 'Geofence'
        assert content.body == 'Truck-7 entered Depot'

    def test_geofence_without_name_has_empty_fallback(self):
        content = self.composer.compose(make_event('geofenceExit'))
        assert content.body == 'Truck-7 exited'

    def test_alarm_description(self):
        content = self.composer.compose(make_event('alarm', alarm='sos'))
        assert content.body == 'Truck-7: sos'

    def test_alarm_without_description(self):
        content = self.composer.compose(make_event('alarm'))
        assert content.body == 'Truck-7: Alarm triggered'

    def test_overspeed_converts_knots_to_kmh(self):
        content = self.composer.compose(make_event('deviceOverspeed', speed=54.0))
        assert content.body == 'Truck-7 exceeded the speed limit (100 km/h)'

    def test_overspeed_ignores_non_numeric_speed(self):
        content = self.composer.compose(make_event('deviceOverspeed', speed='fast'))
        assert content.body == 'Truck-7 exceeded the speed limit'

    @pytest.mark.parametrize('speed', [float('nan'), float('inf'), float('-inf'), 10 ** 400])
    def test_overspeed_ignores_non_finite_speed(self, speed):
        content = self.composer.compose(make_event('deviceOverspeed', speed=speed))
        assert content.body == 'Truck-7 exceeded the speed limit'
