"""
Assembles the transport, connectors and supervisor from the settings.
"""
import logging

from robotbridge.config.settings import BridgeSettings
from robotbridge.connector.base import ConnectorRole
from robotbridge.connector.connector import Connector
from robotbridge.connector.serial_presence import SerialPresenceProbe
from robotbridge.protocol.messages import ServerEndpoint
from robotbridge.protocol.transport import TransportClient
from robotbridge.supervisor import ConnectorSupervisor
from robotbridge.support.events import EventSource

logger = logging.getLogger(__name__)


def build_transport(settings: BridgeSettings) -> TransportClient:
    return TransportClient(connect_timeout=settings.connect_timeout, read_timeout=settings.read_timeout,
                           verify=settings.verify_tls)


def build_roles(settings: BridgeSettings, actions_factory, probe_factory=SerialPresenceProbe):
    """
    Creates a ConnectorRole for each configured role, in priority order.
    :param actions_factory: callable(role_settings) returning the DeviceActions for the role
    :param probe_factory: callable(vid_pids) returning the presence probe
    """
    return [ConnectorRole(r.name, probe_factory(r.vid_pid), actions_factory(r), r.firmware_files)
            for r in settings.roles]


def build_supervisor(settings: BridgeSettings, roles, events=None) -> ConnectorSupervisor:
    """
    Builds a supervisor with one connector per role. All connectors share the endpoint, the transport
    and the event source.
    :param roles: ConnectorRole instances in priority order
    :param events: the event source observers register with
    """
    events = events if events is not None else EventSource()
    endpoint = ServerEndpoint(settings.server_address, settings.scheme)
    transport = build_transport(settings)
    connectors = [Connector(role, transport, endpoint, events,
                            discovery_interval=settings.discovery_interval,
                            presence_interval=settings.presence_interval,
                            reregister_period=settings.reregister_period)
                  for role in roles]
    logger.debug("connectors for %s", ', '.join(role.name for role in roles))
    return ConnectorSupervisor(connectors, transport, endpoint, events, settings.supervise_interval)
