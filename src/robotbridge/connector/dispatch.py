import logging

from robotbridge.connector.base import ConnectorRole, RegisterRejectedError
from robotbridge.connector.state import ConnectionState
from robotbridge.protocol.messages import CMD_ABORT, CMD_DISCONNECT, CMD_DOWNLOAD, CMD_REGISTER_ERROR, CMD_REPEAT, \
    CMD_UPDATE, PushResponse, ServerEndpoint
from robotbridge.protocol.transport import TransportClient
from robotbridge.support.mixins import StringerMixin

logger = logging.getLogger(__name__)


class Command(StringerMixin):
    """
    What the connector does with one server response.

    :param tag: the response command
    :param next_state: the state the connector moves to on receiving the command
    :param action: callable(request, token) run by the connector, or None. It returns a status
        message for the user.
    :param reason: why the command is an error, for the ERROR state
    """
    def __init__(self, tag, next_state, action=None, reason=''):
        self.tag = tag
        self.next_state = next_state
        self.action = action
        self.reason = reason


class CommandDispatch:
    """
    Maps server commands to actions on the device and, for downloads, to further calls on the transport.

    REPEAT      poll again
    DOWNLOAD    fetch the program and run it
    UPDATE      fetch the firmware file(s) and flash them
    ABORT       stop the action running on the device
    DISCONNECT  end the session
    anything else, including REGISTER_ERROR, is an error
    """

    def __init__(self, transport: TransportClient, endpoint: ServerEndpoint, role: ConnectorRole):
        self.transport = transport
        self.endpoint = endpoint
        self.role = role

    def resolve(self, response: PushResponse) -> Command:
        tag = response.cmd
        if tag == CMD_REPEAT:
            return Command(tag, ConnectionState.CONNECTED_IDLE)
        if tag == CMD_DOWNLOAD:
            return Command(tag, ConnectionState.EXECUTING, self.download)
        if tag == CMD_UPDATE:
            files = (response.filename,) if response.filename else self.role.firmware_files
            return Command(tag, ConnectionState.EXECUTING, lambda request, token: self.update(files, token))
        if tag == CMD_ABORT:
            return Command(tag, ConnectionState.CONNECTED_IDLE, self.abort)
        if tag == CMD_DISCONNECT:
            return Command(tag, ConnectionState.DISCONNECTING)
        if tag == CMD_REGISTER_ERROR:
            return Command(tag, ConnectionState.ERROR, reason=str(RegisterRejectedError(response.reason)))
        return Command(tag, ConnectionState.ERROR, reason="unknown command from server: %s" % tag)

    def download(self, request, token=None):
        artifact = self.transport.download_program(self.endpoint, request, token)
        logger.info("downloaded program %s (%d bytes)", artifact.filename, len(artifact))
        self.role.actions.run_program(artifact)
        return "program %s started" % artifact.filename

    def update(self, files, token=None):
        if not files:
            return "no firmware files to update"
        for fw_file in files:
            artifact = self.transport.download_firmware(self.endpoint, fw_file, token)
            logger.info("downloaded firmware %s as %s (%d bytes)", fw_file, artifact.filename, len(artifact))
            self.role.actions.flash_firmware(artifact)
        return "firmware updated: %s" % ', '.join(files)

    def abort(self, request=None, token=None):
        self.role.actions.abort_running_action()
        return "running program aborted"
