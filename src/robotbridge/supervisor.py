import logging
import threading

from robotbridge.connector.connector import Connector
from robotbridge.connector.events import ConnectorActivatedEvent, ConnectorDeactivatedEvent
from robotbridge.connector.state import ConnectionState
from robotbridge.protocol.messages import ServerEndpoint
from robotbridge.protocol.transport import TransportClient
from robotbridge.support.async_loop import AsyncLoop
from robotbridge.support.events import EventSource

logger = logging.getLogger(__name__)


class ConnectorSupervisor(AsyncLoop):
    """
    Decides which connector runs.

    While no connector is active, the presence probe of each connector is polled in priority order.
    The first connector whose device is present is started, and the others are left alone until the
    active connector is back in discovery with its device gone. Then it is stopped and probing resumes
    across all connectors.

    The supervision loop runs on the calling thread with run(), or on a background thread with start().
    Either way, stop() stops the active connector and shuts down the transport.

    Fires ConnectorActivatedEvent and ConnectorDeactivatedEvent.

    :param connectors: the connectors in priority order, highest first
    :param transport: the transport shared by the connectors
    :param endpoint: the server addresses shared by the connectors
    :param interval: seconds between presence probes
    """

    def __init__(self, connectors, transport: TransportClient, endpoint: ServerEndpoint, events=None, interval=0.2):
        super().__init__(name='supervisor')
        self.connectors = list(connectors)
        self.transport = transport
        self.endpoint = endpoint
        self.events = events if events is not None else EventSource()
        self.interval = interval
        self._active = None
        self._active_lock = threading.RLock()

    @property
    def active(self) -> Connector:
        """ the connector presently running, or None. """
        return self._active

    def update_server_address(self, address):
        """
        Points all connectors at a different server. Calls already in progress finish against the old address.
        :param address: host:port
        """
        self.endpoint.update(address)
        logger.info("server address is now %s", self.endpoint.address)

    def abort(self):
        """ Ends the active connector's session at the user's request. """
        active = self._active
        return active.abort() if active is not None else False

    def supervise(self):
        """
        Makes one supervision pass.
        :return: the active connector, or None if no device is present.
        """
        with self._active_lock:
            active = self._active
            if active is not None:
                if active.alive and not self._finished(active):
                    return active
                self._deactivate(active)
            for connector in self.connectors:
                if connector.present:
                    self._activate(connector)
                    return connector
            return None

    @staticmethod
    def _finished(connector):
        return connector.state is ConnectionState.DISCOVERING and not connector.present

    def _activate(self, connector):
        logger.info("%s device found", connector.role.name)
        self._active = connector
        connector.start()
        self.events.fire(ConnectorActivatedEvent(connector))

    def _deactivate(self, connector):
        with self._active_lock:
            if self._active is not connector:
                return
            self._active = None
        connector.stop()
        logger.info("%s connector stopped", connector.role.name)
        self.events.fire(ConnectorDeactivatedEvent(connector))

    def loop(self):
        self.supervise()
        self.stop_event.wait(self.interval)

    def run(self):
        """ Supervises on the calling thread until stop() is called. """
        self._run()

    def shutdown(self):
        """ template method called when the supervision loop exits. """
        active = self._active
        if active is not None:
            self._deactivate(active)

    def stop(self, timeout=None):
        super().stop(timeout)
        self.shutdown()
        self.transport.shutdown()
