import logging
import threading

from robotbridge.connector.base import ConnectorError, ConnectorRole, DeviceActionError, RegisterRejectedError
from robotbridge.connector.dispatch import CommandDispatch
from robotbridge.connector.events import ConnectionStateChangedEvent, ConnectorStatusEvent
from robotbridge.connector.state import ConnectionState
from robotbridge.protocol.errors import TransportCancelledError, TransportError
from robotbridge.protocol.messages import CMD_PUSH, CMD_REGISTER, CMD_REGISTER_ERROR, PushRequest, ServerEndpoint
from robotbridge.protocol.transport import CancellationToken, TransportClient
from robotbridge.support.async_loop import AsyncLoop
from robotbridge.support.events import EventSource
from robotbridge.support.retry_strategy import PeriodRetryStrategy

logger = logging.getLogger(__name__)

KEY_ROLE = 'role'
KEY_CONNECTION = 'connection'


class Connector(AsyncLoop):
    """
    Connects one device role to the server.

    The worker thread waits for the device, registers it, then long-polls the server and carries out
    each command until the session ends. It then goes back to discovery and registers again once the
    retry period has passed, for as long as the worker runs.

    All state changes are made on the worker thread. Other threads may read `state`, call `abort()`
    to end the session, and `connect()` to allow a new session after an abort.

    :param role: the presence probe and device actions for the device
    :param transport: makes the server calls
    :param endpoint: the server addresses, shared by all connectors
    :param events: receives ConnectionStateChangedEvent and ConnectorStatusEvent
    :param discovery_interval: seconds between presence probes while discovering
    :param presence_interval: seconds between presence probes while a long-poll is in progress
    :param reregister_period: minimum seconds between registrations
    """

    def __init__(self, role: ConnectorRole, transport: TransportClient, endpoint: ServerEndpoint, events=None,
                 discovery_interval=1.0, presence_interval=0.5, reregister_period=5.0, log=logger):
        super().__init__(name='connector-%s' % role.name, log=log)
        self.role = role
        self.transport = transport
        self.endpoint = endpoint
        self.events = events if events is not None else EventSource()
        self.discovery_interval = discovery_interval
        self.retry_strategy = PeriodRetryStrategy(reregister_period)
        self.dispatch = CommandDispatch(transport, endpoint, role)
        self.cancellation = CancellationToken(guard=role.present, guard_interval=presence_interval)
        self._state = ConnectionState.DISCOVERING
        self._state_lock = threading.Lock()
        self._token = ''
        self._abort_requested = threading.Event()
        self._held = threading.Event()      # set after a user abort until connect() or the device is unplugged
        self._command = None
        self._failure = None
        self._handlers = {
            ConnectionState.DISCOVERING: self._discover,
            ConnectionState.REGISTERING: self._register,
            ConnectionState.CONNECTED_IDLE: self._idle,
            ConnectionState.POLLING: self._poll,
            ConnectionState.EXECUTING: self._execute,
            ConnectionState.ERROR: self._error,
            ConnectionState.DISCONNECTING: self._disconnect,
        }

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    @property
    def token(self):
        """ the session token, empty while not registered. """
        return self._token

    @property
    def present(self):
        return self.role.present()

    @property
    def held(self):
        return self._held.is_set()

    def abort(self):
        """
        Ends the session at the user's request. A long-poll in progress is cancelled straight away.
        The connector does not register again until connect() is called or the device is reconnected.
        :return: True if a call was in flight and was cancelled.
        """
        self._abort_requested.set()
        self._held.set()
        cancelled = self.cancellation.cancel()
        logger.info("%s: disconnect requested%s", self.role.name, " - cancelled call in progress" if cancelled else "")
        return cancelled

    def connect(self):
        """ Allows the connector to register the device again after an abort. """
        self._abort_requested.clear()
        self._held.clear()
        self.retry_strategy.reset()

    def stop(self, timeout=None):
        self.stop_event.set()
        self.cancellation.cancel()
        super().stop(timeout)

    def loop(self):
        state = self.state
        next_state, detail = self._handlers[state]()
        self._transition(next_state, detail)

    def shutdown(self):
        """ called on the worker thread as it exits. Unplugging the device releases a user abort. """
        self._token = ''
        if not self.role.present():
            self._release()
        self._transition(ConnectionState.DISCOVERING)

    def exception_handler(self, e):
        self.logger.exception("%s: unexpected error in state %s", self.role.name, self.state.name)
        self._token = ''
        self._failure = e
        self._transition(ConnectionState.ERROR, str(e) or type(e).__name__)

    def _transition(self, state, detail=''):
        with self._state_lock:
            previous = self._state
            self._state = state
        if previous is not state:
            logger.debug("%s: %s -> %s %s", self.role.name, previous.name, state.name, detail)
            self._fire(ConnectionStateChangedEvent(self, state, previous, detail))

    def _status(self, message, error=None):
        if error is not None:
            logger.warning("%s: %s", self.role.name, message)
        else:
            logger.info("%s: %s", self.role.name, message)
        self._fire(ConnectorStatusEvent(self, message, error))

    def _fire(self, event):
        try:
            self.events.fire(event)
        except Exception:
            logger.exception("%s: event handler failed for %s", self.role.name, type(event).__name__)

    def _release(self):
        self._held.clear()
        self._abort_requested.clear()

    def _request(self, cmd):
        fields = dict(self.role.actions.device_info())
        fields[KEY_ROLE] = self.role.name
        fields[KEY_CONNECTION] = self.state.value
        return PushRequest(cmd, self._token, fields)

    def _wait(self, seconds):
        self.stop_event.wait(max(0, seconds))

    # state handlers, each returns the next state and a detail message

    def _discover(self):
        if not self.role.present():
            self._release()
            self._wait(self.discovery_interval)
            return ConnectionState.DISCOVERING, ''
        if self._held.is_set() or not self.running():
            self._wait(self.discovery_interval)
            return ConnectionState.DISCOVERING, ''
        delay = self.retry_strategy()
        if delay > 0:
            self._wait(min(delay, self.discovery_interval))
            return ConnectionState.DISCOVERING, ''
        logger.info("%s: device found", self.role.name)
        return ConnectionState.REGISTERING, ''

    def _register(self):
        self.cancellation.reset()
        if self._abort_requested.is_set():
            return ConnectionState.DISCONNECTING, 'disconnected by user'
        try:
            response = self.transport.push(self.endpoint, self._request(CMD_REGISTER), self.cancellation)
        except TransportCancelledError:
            return ConnectionState.DISCONNECTING, self._cancel_reason()
        except TransportError as e:
            return self._fail(e, "registration failed: %s" % e)
        if response.cmd == CMD_REGISTER_ERROR:
            return self._fail(RegisterRejectedError(response.reason))
        if not response.token:
            return self._fail(RegisterRejectedError("no token in response"))
        self._token = response.token
        logger.info("%s: registered with %s", self.role.name, self.endpoint.address)
        return ConnectionState.CONNECTED_IDLE, 'registered'

    def _idle(self):
        if self._abort_requested.is_set():
            return ConnectionState.DISCONNECTING, 'disconnected by user'
        if not self.role.present():
            return ConnectionState.DISCONNECTING, 'device disconnected'
        return ConnectionState.POLLING, ''

    def _poll(self):
        self.cancellation.reset()
        if self._abort_requested.is_set():
            return ConnectionState.DISCONNECTING, 'disconnected by user'
        try:
            response = self.transport.push(self.endpoint, self._request(CMD_PUSH), self.cancellation)
        except TransportCancelledError:
            return ConnectionState.DISCONNECTING, self._cancel_reason()
        except TransportError as e:
            return self._fail(e, "connection to server lost: %s" % e)
        command = self.dispatch.resolve(response)
        logger.debug("%s: server command %s", self.role.name, command.tag)
        if command.next_state is ConnectionState.ERROR:
            return self._fail(ConnectorError(command.reason))
        if command.next_state is ConnectionState.EXECUTING:
            self._command = command
        elif command.action is not None:
            self._run_action(command)
        return command.next_state, command.tag

    def _execute(self):
        command, self._command = self._command, None
        if command is None:
            return ConnectionState.CONNECTED_IDLE, ''
        try:
            self._run_action(command)
        except TransportCancelledError:
            return ConnectionState.DISCONNECTING, self._cancel_reason()
        except TransportError as e:
            return self._fail(e, "%s failed: %s" % (command.tag.lower(), e))
        return ConnectionState.CONNECTED_IDLE, command.tag

    def _run_action(self, command):
        """ runs the command's action. Device failures are reported as a status and the session carries on. """
        try:
            message = command.action(self._request(CMD_PUSH), self.cancellation)
        except DeviceActionError as e:
            self._status("%s failed on the device: %s" % (command.tag.lower(), e), e)
        else:
            self._status(message)

    def _error(self):
        failure, self._failure = self._failure, None
        error = failure if failure is not None else ConnectorError("connection error")
        self._status(str(error), error)
        return ConnectionState.DISCONNECTING, str(error)

    def _disconnect(self):
        self._token = ''
        self._command = None
        self._abort_requested.clear()
        self.cancellation.reset()
        logger.info("%s: disconnected", self.role.name)
        return ConnectionState.DISCOVERING, ''

    def _fail(self, error, message=None):
        self._token = ''
        self._failure = error
        return ConnectionState.ERROR, message or str(error)

    def _cancel_reason(self):
        if self._abort_requested.is_set():
            return 'disconnected by user'
        if not self.running():
            return 'stopped'
        return 'device disconnected'

    def __str__(self):
        return "Connector(%s, %s)" % (self.role.name, self.state.name)
