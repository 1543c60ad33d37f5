import logging
import os

from robotbridge.connector.base import DeviceActionError, DeviceActions

logger = logging.getLogger(__name__)


class DirectoryDeviceActions(DeviceActions):
    """
    Device actions that hand artifacts over by writing them to a directory, where a device
    specific tool (a flasher, a file copy to the brick) picks them up.

    Programs are written to the directory itself and firmware to its 'firmware' subdirectory.

    :param directory: where artifacts are written
    :param info: telemetry reported to the server with each push
    """
    default_program_name = 'program.bin'
    default_firmware_name = 'firmware.bin'

    def __init__(self, directory, info=None):
        self.directory = directory
        self.info = dict(info or {})
        self.last_written = None

    def device_info(self):
        return dict(self.info)

    def run_program(self, artifact):
        self.last_written = self._write(self.directory, artifact.filename or self.default_program_name, artifact.data)

    def flash_firmware(self, artifact):
        directory = os.path.join(self.directory, 'firmware')
        self.last_written = self._write(directory, artifact.filename or self.default_firmware_name, artifact.data)

    def abort_running_action(self):
        logger.info("abort requested, nothing is running from %s", self.directory)

    @staticmethod
    def _write(directory, filename, data):
        # the server chooses the name, so never let it escape the directory
        path = os.path.join(directory, os.path.basename(filename))
        try:
            os.makedirs(directory, exist_ok=True)
            with open(path, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise DeviceActionError("could not write %s: %s" % (path, e)) from e
        logger.info("wrote %d bytes to %s", len(data), path)
        return path
