import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from hamcrest import assert_that, calling, is_, raises

from robotbridge.connector.base import DeviceActionError
from robotbridge.connector.file_actions import DirectoryDeviceActions
from robotbridge.protocol.messages import BinaryArtifact


class DirectoryDeviceActionsTest(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.sut = DirectoryDeviceActions(os.path.join(self.directory, 'primary'), {'brickname': 'primary'})

    def tearDown(self):
        shutil.rmtree(self.directory)

    def read(self, path):
        with open(path, 'rb') as f:
            return f.read()

    def test_device_info_is_a_copy(self):
        info = self.sut.device_info()
        info['battery'] = 1
        assert_that(self.sut.device_info(), is_({'brickname': 'primary'}))

    def test_run_program_writes_artifact(self):
        self.sut.run_program(BinaryArtifact(b'\x01\x02', 'prog.bin'))
        path = os.path.join(self.directory, 'primary', 'prog.bin')
        assert_that(self.sut.last_written, is_(path))
        assert_that(self.read(path), is_(b'\x01\x02'))

    def test_unnamed_program(self):
        self.sut.run_program(BinaryArtifact(b'x'))
        assert_that(os.path.basename(self.sut.last_written), is_('program.bin'))

    def test_flash_firmware_writes_to_firmware_directory(self):
        self.sut.flash_firmware(BinaryArtifact(b'fw', 'ev3menu.rbf'))
        assert_that(self.read(os.path.join(self.directory, 'primary', 'firmware', 'ev3menu.rbf')), is_(b'fw'))

    def test_filename_cannot_leave_directory(self):
        self.sut.run_program(BinaryArtifact(b'x', '../../escape.bin'))
        assert_that(self.sut.last_written, is_(os.path.join(self.directory, 'primary', 'escape.bin')))

    @patch('builtins.open', side_effect=PermissionError("read only"))
    def test_write_failure_is_a_device_error(self, open_):
        assert_that(calling(self.sut.run_program).with_args(BinaryArtifact(b'x', 'p.bin')),
                    raises(DeviceActionError, "read only"))

    def test_abort_with_nothing_running(self):
        self.sut.abort_running_action()
