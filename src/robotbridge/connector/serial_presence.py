"""
Presence probes for devices attached to a USB serial port. A device is recognised by the
USB vendor and product id in the port's hardware id.
"""

import logging
import re
import threading

from serial.tools import list_ports

logger = logging.getLogger(__name__)


# 'USB VID:PID=2B04:C006 SER=00000000050C LOCATION=20-5'
def matches(text, regex):
    """
    >>> bool(matches("A", "a"))
    True
    >>> bool(matches("A", "b"))
    False
    >>> bool(matches("USB VID:PID=2B04:C006 SER=00000000050C LOCATION=20-5", r"USB VID\\:PID=2b04\\:c006.*"))
    True
    """
    return re.match(regex, text, flags=re.IGNORECASE)


def vid_pid_pattern(vid_pid):
    """
    Builds the hardware id regex for a 'VID:PID' pair.
    >>> vid_pid_pattern('2341:0043')
    'USB VID:PID=2341:0043.*'
    """
    vid, pid = vid_pid.strip().split(':')
    return 'USB VID:PID=%s:%s.*' % (re.escape(vid), re.escape(pid))


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for the serial ports presently attached
    """
    return tuple(list_ports.comports())


class SerialPresenceProbe:
    """
    Reports whether a serial port with one of the given USB ids is attached.

    :param vid_pids: iterable of 'VID:PID' strings, e.g. '2341:0043'
    :param ports: callable returning the attached ports. Defaults to listing the system's serial ports.
    """

    def __init__(self, vid_pids, ports=serial_port_info):
        self.patterns = tuple(vid_pid_pattern(v) for v in vid_pids)
        self._ports = ports
        self.device = None     # the ListPortInfo last found
        self._lock = threading.Lock()

    def find(self):
        """ :return: the first attached port that matches, or None """
        for port in self._ports():
            if any(matches(port.hwid or '', pattern) for pattern in self.patterns):
                return port
        return None

    def __call__(self):
        """ probes the ports. Called from both the supervisor and the connector thread. """
        with self._lock:
            device = self.find()
            if (device is None) != (self.device is None):
                if device is not None:
                    logger.info("available device: %s", device.device)
                else:
                    logger.info("unavailable device: %s", self.device.device)
            self.device = device
        return device is not None
