"""
Events published by connectors and the supervisor. Handlers are registered on an EventSource and
are called on the thread that fired the event, usually the connector's worker. A UI that must
handle them on its own thread registers on a QueuedEventSource and calls publish() from its loop.
"""
from robotbridge.support.mixins import StringerMixin


class ConnectorEvent(StringerMixin):
    """ base class for connector events. """
    def __init__(self, connector):
        self.connector = connector


class ConnectionStateChangedEvent(ConnectorEvent):
    """ The connector moved to a new state. detail is a human readable reason, possibly empty. """
    def __init__(self, connector, state, previous, detail=''):
        super().__init__(connector)
        self.state = state
        self.previous = previous
        self.detail = detail


class ConnectorStatusEvent(ConnectorEvent):
    """
    A status line for the user, such as a program that was started or a device action that failed.
    error is the exception behind a failure, or None.
    """
    def __init__(self, connector, message, error=None):
        super().__init__(connector)
        self.message = message
        self.error = error


class ConnectorActivatedEvent(ConnectorEvent):
    """ The supervisor found the connector's device and started its worker. """


class ConnectorDeactivatedEvent(ConnectorEvent):
    """ The supervisor stopped the connector's worker. """


class ConnectionObserver:
    """
    Adapts connector events to callbacks. Register an instance as an event handler;
    subclasses override the callbacks they are interested in.
    """

    def __call__(self, event):
        if isinstance(event, ConnectionStateChangedEvent):
            self.on_state_changed(event.state, event)
        elif isinstance(event, ConnectorStatusEvent):
            self.on_status(event.message, event)
        elif isinstance(event, ConnectorActivatedEvent):
            self.on_activated(event.connector)
        elif isinstance(event, ConnectorDeactivatedEvent):
            self.on_deactivated(event.connector)

    def on_state_changed(self, state, event):
        pass

    def on_status(self, message, event):
        pass

    def on_activated(self, connector):
        pass

    def on_deactivated(self, connector):
        pass
