from abc import abstractmethod

from robotbridge.support.mixins import StringerMixin


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class RegisterRejectedError(ConnectorError):
    """ The server refused to register the device. """
    def __init__(self, reason=''):
        super().__init__("registration rejected: %s" % (reason or 'no reason given'))
        self.reason = reason


class DeviceActionError(ConnectorError):
    """ A device collaborator failed to run, flash or abort. """


class DeviceActions:
    """
    The device-specific side of a connector. Implementations know how to run a program or
    flash firmware on one family of devices. The connector only calls these methods from
    its worker thread.
    """

    def device_info(self) -> dict:
        """
        Telemetry sent with every push request, e.g. firmware version and battery level.
        The keys 'cmd' and 'token' are reserved for the protocol and are ignored.
        """
        return {}

    @abstractmethod
    def run_program(self, artifact):
        """ Runs the compiled user program. Raises DeviceActionError on failure. """
        raise NotImplementedError

    @abstractmethod
    def flash_firmware(self, artifact):
        """ Installs a firmware image. Raises DeviceActionError on failure. """
        raise NotImplementedError

    @abstractmethod
    def abort_running_action(self):
        """ Stops whatever program or flash is running on the device. """
        raise NotImplementedError


class ConnectorRole(StringerMixin):
    """
    The capabilities that distinguish one connector from another: a presence probe and the
    device actions, along with the firmware files fetched when the server asks for an update.

    :param name: the role name sent to the server, e.g. 'primary'
    :param probe: a callable returning True while the device is attached
    :param actions: the DeviceActions for the device
    :param firmware_files: firmware file names fetched, in order, for an UPDATE command that
        doesn't name a file
    """
    def __init__(self, name, probe, actions: DeviceActions, firmware_files=()):
        self.name = name
        self.probe = probe
        self.actions = actions
        self.firmware_files = tuple(firmware_files)

    def present(self) -> bool:
        return bool(self.probe())
