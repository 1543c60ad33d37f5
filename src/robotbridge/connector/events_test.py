import unittest
from unittest.mock import Mock

from hamcrest import assert_that, contains_string, is_

from robotbridge.connector.events import ConnectionObserver, ConnectionStateChangedEvent, \
    ConnectorActivatedEvent, ConnectorDeactivatedEvent, ConnectorStatusEvent
from robotbridge.connector.state import ConnectionState


class ConnectionObserverTest(unittest.TestCase):

    def setUp(self):
        self.sut = ConnectionObserver()
        self.sut.on_state_changed = Mock()
        self.sut.on_status = Mock()
        self.sut.on_activated = Mock()
        self.sut.on_deactivated = Mock()
        self.connector = Mock()

    def test_state_changed(self):
        event = ConnectionStateChangedEvent(self.connector, ConnectionState.POLLING, ConnectionState.CONNECTED_IDLE)
        self.sut(event)
        self.sut.on_state_changed.assert_called_once_with(ConnectionState.POLLING, event)

    def test_status(self):
        event = ConnectorStatusEvent(self.connector, "program started")
        self.sut(event)
        self.sut.on_status.assert_called_once_with("program started", event)

    def test_activation(self):
        self.sut(ConnectorActivatedEvent(self.connector))
        self.sut(ConnectorDeactivatedEvent(self.connector))
        self.sut.on_activated.assert_called_once_with(self.connector)
        self.sut.on_deactivated.assert_called_once_with(self.connector)

    def test_other_events_ignored(self):
        self.sut(object())
        self.sut.on_state_changed.assert_not_called()

    def test_default_callbacks_do_nothing(self):
        ConnectionObserver()(ConnectorStatusEvent(self.connector, "x"))

    def test_event_string(self):
        event = ConnectionStateChangedEvent('c', ConnectionState.ERROR, ConnectionState.POLLING, 'lost')
        assert_that(str(event), contains_string("'detail': 'lost'"))

    def test_connected_states(self):
        assert_that(ConnectionState.POLLING.connected, is_(True))
        assert_that(ConnectionState.DISCOVERING.connected, is_(False))
