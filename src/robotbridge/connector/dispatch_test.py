import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, calling, contains_string, is_, none, raises

from robotbridge.connector.base import ConnectorRole, DeviceActionError
from robotbridge.connector.dispatch import CommandDispatch
from robotbridge.connector.state import ConnectionState
from robotbridge.protocol.errors import UnreachableError
from robotbridge.protocol.messages import BinaryArtifact, CMD_PUSH, PushRequest, PushResponse


class CommandDispatchTest(unittest.TestCase):

    def setUp(self):
        self.transport = Mock()
        self.endpoint = Mock()
        self.actions = Mock()
        self.role = ConnectorRole('primary', Mock(return_value=True), self.actions, ['runtime', 'ev3menu'])
        self.sut = CommandDispatch(self.transport, self.endpoint, self.role)
        self.request = PushRequest(CMD_PUSH, 'abc')
        self.token = Mock()

    def test_repeat(self):
        command = self.sut.resolve(PushResponse('REPEAT'))
        assert_that(command.next_state, is_(ConnectionState.CONNECTED_IDLE))
        assert_that(command.action, is_(none()))

    def test_disconnect(self):
        command = self.sut.resolve(PushResponse('DISCONNECT'))
        assert_that(command.next_state, is_(ConnectionState.DISCONNECTING))
        assert_that(command.action, is_(none()))

    def test_register_error_gives_reason(self):
        command = self.sut.resolve(PushResponse('REGISTER_ERROR', payload={'reason': 'token in use'}))
        assert_that(command.next_state, is_(ConnectionState.ERROR))
        assert_that(command.reason, contains_string('token in use'))

    def test_unknown_command_is_an_error(self):
        command = self.sut.resolve(PushResponse('CONFIGURATION'))
        assert_that(command.next_state, is_(ConnectionState.ERROR))
        assert_that(command.reason, contains_string('CONFIGURATION'))

    def test_download_runs_program(self):
        artifact = BinaryArtifact(b'\x01' * 128, 'prog.bin')
        self.transport.download_program.return_value = artifact
        command = self.sut.resolve(PushResponse('DOWNLOAD'))
        assert_that(command.next_state, is_(ConnectionState.EXECUTING))
        message = command.action(self.request, self.token)
        self.transport.download_program.assert_called_once_with(self.endpoint, self.request, self.token)
        self.actions.run_program.assert_called_once_with(artifact)
        assert_that(message, contains_string('prog.bin'))

    def test_download_failure_is_not_run(self):
        self.transport.download_program.side_effect = UnreachableError()
        command = self.sut.resolve(PushResponse('DOWNLOAD'))
        assert_that(calling(command.action).with_args(self.request, self.token), raises(UnreachableError))
        self.actions.run_program.assert_not_called()

    def test_update_named_file(self):
        artifact = BinaryArtifact(b'fw', 'menu.rbf')
        self.transport.download_firmware.return_value = artifact
        command = self.sut.resolve(PushResponse('UPDATE', payload={'filename': 'ev3menu'}))
        assert_that(command.next_state, is_(ConnectionState.EXECUTING))
        command.action(self.request, self.token)
        self.transport.download_firmware.assert_called_once_with(self.endpoint, 'ev3menu', self.token)
        self.actions.flash_firmware.assert_called_once_with(artifact)

    def test_update_without_file_uses_role_firmware(self):
        self.transport.download_firmware.side_effect = lambda endpoint, name, token: BinaryArtifact(b'x', name)
        command = self.sut.resolve(PushResponse('UPDATE'))
        command.action(self.request, self.token)
        assert_that(self.transport.download_firmware.call_args_list,
                    is_([call(self.endpoint, 'runtime', self.token), call(self.endpoint, 'ev3menu', self.token)]))
        assert_that(self.actions.flash_firmware.call_count, is_(2))

    def test_update_with_no_files_does_nothing(self):
        self.role.firmware_files = ()
        command = self.sut.resolve(PushResponse('UPDATE'))
        command.action(self.request, self.token)
        self.transport.download_firmware.assert_not_called()

    def test_abort(self):
        command = self.sut.resolve(PushResponse('ABORT'))
        assert_that(command.next_state, is_(ConnectionState.CONNECTED_IDLE))
        command.action(self.request, self.token)
        self.actions.abort_running_action.assert_called_once_with()

    def test_device_failure_propagates(self):
        self.transport.download_program.return_value = BinaryArtifact(b'x', 'p')
        self.actions.run_program.side_effect = DeviceActionError("no space")
        command = self.sut.resolve(PushResponse('DOWNLOAD'))
        assert_that(calling(command.action).with_args(self.request, self.token), raises(DeviceActionError))
