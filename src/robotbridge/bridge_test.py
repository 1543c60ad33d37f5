import os
import shutil
import tempfile
import unittest
from unittest.mock import Mock, patch

from click.testing import CliRunner
from hamcrest import assert_that, contains_string, instance_of, is_

from robotbridge.bridge import build_roles, build_supervisor
from robotbridge.cli import main
from robotbridge.config.settings import BridgeSettings, RoleSettings
from robotbridge.connector.events import ConnectorStatusEvent
from robotbridge.support.events import QueuedEventSource


def settings_with_roles():
    settings = BridgeSettings()
    settings.server_address = 'lab:1999'
    settings.read_timeout = 30.0
    settings.roles = [RoleSettings('primary', ['0694:0005'], ['runtime'], 1),
                      RoleSettings('auxiliary', ['2341:0043'], (), 2)]
    return settings


class BridgeTest(unittest.TestCase):

    def test_roles_built_in_order(self):
        probe_factory = Mock(side_effect=lambda vid_pids: Mock(return_value=False))
        roles = build_roles(settings_with_roles(), lambda role: Mock(name=role.name), probe_factory)
        assert_that([r.name for r in roles], is_(['primary', 'auxiliary']))
        assert_that(roles[0].firmware_files, is_(('runtime',)))
        probe_factory.assert_any_call(['2341:0043'])

    def test_supervisor_shares_transport_and_endpoint(self):
        settings = settings_with_roles()
        roles = build_roles(settings, lambda role: Mock(), lambda vid_pids: Mock(return_value=False))
        sut = build_supervisor(settings, roles)
        assert_that(len(sut.connectors), is_(2))
        assert_that(sut.endpoint.snapshot().push, is_('https://lab:1999/rest/pushcmd'))
        for connector in sut.connectors:
            assert_that(connector.transport, is_(sut.transport))
            assert_that(connector.endpoint, is_(sut.endpoint))
            assert_that(connector.events, is_(sut.events))
        assert_that(sut.transport.read_timeout, is_(30.0))


class PortInfo:
    def __init__(self, device, hwid):
        self.device = device
        self.hwid = hwid


class CommandLineTest(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.config = os.path.join(self.directory, 'robotbridge.cfg')
        self.runner = CliRunner()

    def tearDown(self):
        shutil.rmtree(self.directory)

    def invoke(self, *args):
        return self.runner.invoke(main, ['--config', self.config, '--log-file', ''] + list(args))

    @patch('robotbridge.cli.serial_port_info')
    def test_ports_lists_matching_roles(self, ports):
        ports.return_value = (PortInfo('/dev/ttyACM0', 'USB VID:PID=0694:0005 SER=1'),
                              PortInfo('/dev/ttyS0', 'n/a'))
        result = self.invoke('ports')
        assert_that(result.exit_code, is_(0))
        assert_that(result.output, contains_string('/dev/ttyACM0\tUSB VID:PID=0694:0005 SER=1\tprimary'))
        assert_that(result.output, contains_string('/dev/ttyS0\tn/a\t-'))

    @patch('robotbridge.cli.serial_port_info', return_value=())
    def test_ports_none_attached(self, ports):
        assert_that(self.invoke('ports').output, contains_string('no serial ports found'))

    @patch('robotbridge.cli.build_supervisor')
    def test_run_until_interrupted(self, build):
        supervisor = build.return_value
        supervisor.endpoint.address = 'lab:2000'
        supervisor.alive = True
        supervisor.stop_event.wait.side_effect = KeyboardInterrupt()
        result = self.invoke('run', '--server', 'lab:2000', '--download-dir', self.directory)
        assert_that(result.exit_code, is_(0))
        assert_that(result.output, contains_string('connecting to lab:2000'))
        settings = build.call_args[0][0]
        assert_that(settings.server_address, is_('lab:2000'))
        supervisor.stop.assert_called_once_with()
        supervisor.start.assert_called_once_with()

    @patch('robotbridge.cli.build_supervisor')
    def test_run_echoes_worker_events_on_main_thread(self, build):
        supervisor = Mock()
        supervisor.alive = True
        supervisor.stop_event.wait.side_effect = KeyboardInterrupt()
        connector = Mock()
        connector.role.name = 'primary'

        def build_with_events(settings, roles, events):
            assert_that(events, is_(instance_of(QueuedEventSource)))
            events.fire(ConnectorStatusEvent(connector, "program prog.bin started"))
            return supervisor
        build.side_effect = build_with_events
        result = self.invoke('run', '--download-dir', self.directory)
        assert_that(result.output, contains_string('[primary] program prog.bin started'))

    def test_invalid_configuration_fails(self):
        with open(self.config, 'w') as f:
            f.write("read_timeout = 1\n")
        result = self.invoke('ports')
        assert_that(result.exit_code, is_(1))


if __name__ == '__main__':
    unittest.main()
