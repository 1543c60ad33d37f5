"""
Loads the bridge settings from configuration files.

Files are named after the configuration and layered, later files overriding earlier ones:
- <name>.default.cfg    shipped with the package
- <name>.<os>.cfg       platform specialization, e.g. robotbridge.windows.cfg
- <name>.cfg            a local file next to the defaults
- ~/<name>.cfg          the user's override
The result is validated against <name>.schema.cfg, which also supplies defaults and converts types.
"""
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

config_name = 'robotbridge'
config_directory = os.path.dirname(__file__)


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file, named after the base followed by a period and
    the specialization, or just the base name when no specialization is given.
    A missing file gives an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser('~/' + name + config_extension)


def validation_errors(config, result):
    """
    Describes the keys that failed validation.
    :return: a list of strings, one per failure
    """
    errors = []
    for section_list, key, error in flatten_errors(config, result):
        section = '/'.join(section_list) or 'top level'
        if key is None:
            errors.append("missing section %s" % section)
        else:
            errors.append("%s in %s: %s" % (key, section, error or 'missing value'))
    return errors


def load_config(name=config_name, directory=config_directory, user_file=None):
    """
        Loads all the configuration files that relate to the given name, flattened into a single
        validated configuration.
    :param directory: the location of the configuration files
    :param user_file: the user override. Defaults to ~/<name>.cfg
    :return: the validated ConfigObj
    """
    schema = config_filename(config_flavor(name, 'schema'), directory)
    config = ConfigObj(configspec=schema)
    config.merge(config_flavor_file(name, directory, 'default'))
    config.merge(config_flavor_file(name, directory, os_name()))
    config.merge(config_flavor_file(name, directory))
    config.merge(load_config_file_base(user_file or user_config_file(name), must_exist=False))

    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation: %s"
                             % (name, '; '.join(validation_errors(config, result))))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:   An iterable that lists the names of the sections to resolve
    :return: The configuration object identified by the path, or None
    """
    for p in path:    # lookup specific section
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf


def apply_conf(conf: Section, target):
    """
    Applies the values in a configuration section to a target object, setting each attribute
    the target already has. Subsections are left out.
    """
    for k in conf.scalars:
        if hasattr(target, k):
            setattr(target, k, conf[k])
