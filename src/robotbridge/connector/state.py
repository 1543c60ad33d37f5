from enum import Enum


class ConnectionState(Enum):
    """ The states a connector moves through while serving a device. """
    DISCOVERING = 'discovering'         # waiting for the device to be present
    REGISTERING = 'registering'         # announcing the device to the server
    CONNECTED_IDLE = 'connected'        # registered, between polls
    POLLING = 'polling'                 # waiting on the server for the next command
    EXECUTING = 'executing'             # running a downloaded program or flashing firmware
    DISCONNECTING = 'disconnecting'
    ERROR = 'error'

    @property
    def connected(self):
        """ True for the states where the server knows the device. """
        return self in (ConnectionState.CONNECTED_IDLE, ConnectionState.POLLING, ConnectionState.EXECUTING)
