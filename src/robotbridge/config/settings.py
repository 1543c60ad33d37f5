from robotbridge.config.config import apply_conf, fetch_conf_path, load_config
from robotbridge.support.mixins import StringerMixin


class RoleSettings(StringerMixin):
    """ How to recognise one device role, and the firmware it is updated with. """
    def __init__(self, name, vid_pid=(), firmware_files=(), priority=0):
        self.name = name
        self.vid_pid = list(vid_pid)
        self.firmware_files = list(firmware_files)
        self.priority = priority


class BridgeSettings(StringerMixin):
    """ The settings the bridge runs with. The defaults are overridden by the configuration files. """

    def __init__(self):
        self.server_address = 'localhost:1999'
        self.scheme = 'https'
        self.verify_tls = True
        self.connect_timeout = 10.0
        self.read_timeout = 60.0
        self.supervise_interval = 0.2
        self.discovery_interval = 1.0
        self.presence_interval = 0.5
        self.reregister_period = 5.0
        self.roles = []

    def apply(self, config):
        """ copies the values from a validated configuration. """
        apply_conf(config, self)
        roles = fetch_conf_path(config, ['roles']) or {}
        self.roles = sorted((self._role(name, roles[name]) for name in roles), key=lambda r: r.priority)
        return self

    @staticmethod
    def _role(name, conf):
        role = RoleSettings(name)
        apply_conf(conf, role)
        return role


def load_settings(user_file=None, **kwargs):
    """
    Loads the settings from the configuration files.
    :param user_file: the user override file, defaults to ~/robotbridge.cfg
    :param kwargs: passed to load_config
    """
    return BridgeSettings().apply(load_config(user_file=user_file, **kwargs))
