import logging
import os

import click
from configobj import ConfigObjError

from robotbridge.bridge import build_roles, build_supervisor
from robotbridge.config.settings import load_settings
from robotbridge.connector.events import ConnectionObserver
from robotbridge.connector.file_actions import DirectoryDeviceActions
from robotbridge.connector.serial_presence import SerialPresenceProbe, serial_port_info
from robotbridge.support.events import QueuedEventSource

logger = logging.getLogger(__name__)

default_log_file = os.path.join(os.path.expanduser('~'), '.robotbridge', 'robotbridge.log')
log_format = '%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s'
publish_interval = 0.1


def configure_logging(verbose=False, log_file=None):
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter(log_format)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)
    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        except OSError as e:
            logger.warning("not logging to %s: %s", log_file, e)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            logger.info("Logging to file: %s", log_file)


class EchoObserver(ConnectionObserver):
    """ prints a status line for each state change and status message. """

    def on_state_changed(self, state, event):
        line = "[%s] %s" % (event.connector.role.name, state.value)
        click.echo(line + (" (%s)" % event.detail if event.detail else ""))

    def on_status(self, message, event):
        click.echo("[%s] %s" % (event.connector.role.name, message), err=event.error is not None)

    def on_activated(self, connector):
        click.echo("%s device found" % connector.role.name)

    def on_deactivated(self, connector):
        click.echo("%s device removed" % connector.role.name)


@click.group()
@click.option('--config', 'user_file', type=click.Path(dir_okay=False), default=None,
              help="Configuration file overriding the defaults (default: ~/robotbridge.cfg)")
@click.option('--verbose', '-v', is_flag=True, default=False, help="Log debug output")
@click.option('--log-file', type=click.Path(dir_okay=False), default=default_log_file, show_default=True,
              help="File the log is written to. Pass an empty string to log to the console only.")
@click.pass_context
def main(ctx, user_file, verbose, log_file):
    """Connects a robot attached over USB to the programming server."""
    configure_logging(verbose, log_file)
    try:
        ctx.obj = load_settings(user_file)
    except ConfigObjError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.option('--server', '-s', default=None, help="Server address as host:port, overriding the configuration")
@click.option('--download-dir', '-d', type=click.Path(file_okay=False), default='.', show_default=True,
              help="Directory downloaded programs and firmware are written to")
@click.pass_obj
def run(settings, server, download_dir):
    """Waits for a device and connects it to the server until interrupted."""
    if server:
        settings.server_address = server
    events = QueuedEventSource()
    events += EchoObserver()
    roles = build_roles(settings, lambda role: DirectoryDeviceActions(os.path.join(download_dir, role.name),
                                                                      {'brickname': role.name}))
    supervisor = build_supervisor(settings, roles, events)
    click.echo("connecting to %s, waiting for a device (Ctrl-C to quit)" % supervisor.endpoint.address)
    supervisor.start()
    try:
        # events from the worker threads are echoed here, on the main thread
        while supervisor.alive:
            events.publish()
            supervisor.stop_event.wait(publish_interval)
    except KeyboardInterrupt:
        click.echo("stopping")
    finally:
        supervisor.stop()
        events.publish()


@main.command()
@click.pass_obj
def ports(settings):
    """Lists the serial ports and the role each one is recognised as."""
    attached = serial_port_info()
    if not attached:
        click.echo("no serial ports found")
    for port in attached:
        roles = [r.name for r in settings.roles if SerialPresenceProbe(r.vid_pid, lambda: (port,)).find()]
        click.echo("%s\t%s\t%s" % (port.device, port.hwid, ', '.join(roles) or '-'))


if __name__ == '__main__':  # pragma no cover
    main()
