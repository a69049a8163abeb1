#!/usr/bin/env python3

install_path = '/opt/nginx-modrebuild/'

import os
from libnmr import file_filter

_settings_dict = False

def config_file():
    return install_path + 'etc/config'

def get(setting_name):
    """
    Get the setting value for a given key.
    The value is stripped of head and tail white space.
    The settings file is only read the first time this function is called.
    Subsequent calls reach into a cached dictionary of values.

    Args:
        setting_name - The index key to look up the setting.
    """
    if(_settings_dict == False):
        _populate_settings()
    return _settings_dict[setting_name]

def set(setting_name, value):
    """
    Set the setting value for a given key and persist it to the config file.

    Args:
        setting_name - The index key for the setting.
        value - The new value for the setting.
    """
    global _settings_dict
    if(_settings_dict != False):
        _settings_dict[setting_name] = value
    UpdateSetting(setting_name, value).run()

def get_bool(setting_name):
    """
    Same as get(setting_name), but converts the return value to a boolean value.

    Args:
        setting_name - The index key to look up the setting.
    """
    setting = get(setting_name)
    if setting == True:
        return True
    if setting == False:
        return False
    setting = setting.lower()
    return setting == 'true' \
        or setting == '1' \
        or setting == 'on' \
        or setting == 'yes'

def get_int(setting_name):
    """
    Same as get(setting_name), but converts the return value to an integer.
    Values like "4.0" are truncated.

    Args:
        setting_name - The index key to look up the setting.
    """
    return int(float(get(setting_name)))

def reset():
    """Drop the cached settings so the next get() re-reads the config file."""
    global _settings_dict
    _settings_dict = False

class UpdateSetting(file_filter.FileFilter):
    """A FileFilter to change a setting."""
    def __init__(self, name, value):
        self.setting_name = name
        self.setting_value = str(value)
        filename = config_file()
        config_dir = os.path.dirname(filename)
        if not os.path.exists(config_dir):
            os.makedirs(config_dir)
        super().__init__(filename)

    def filter_stream(self, in_stream, out_stream):
        added_line = False
        new_line = self.setting_name + ': ' + self.setting_value + '\n'
        for line in in_stream:
            index = line.find(':')
            if index != -1 and not line.lstrip().startswith('#'):
                name = line[:index].lower().strip()
                if name == self.setting_name:
                    line = new_line
                    added_line = True
            out_stream.write(line)
        if not added_line:
            out_stream.write(new_line)
        return True

def _populate_settings():
    """
    Populate the settings cache from the defaults and the config file.
    """
    global _settings_dict
    _settings_dict = _get_default_settings()
    filename = config_file()
    if os.path.exists(filename):
        with open(filename) as config:
            for line in config:
                index = line.find(':')
                if index != -1:
                    name = line[:index].lower().strip()
                    value = line[index+1:].strip()

                    # skip comments
                    if not name.startswith('#'):
                        _settings_dict[name] = value
    else:
        _autodetect_defaults()

def _autodetect_defaults():
    # size the make job count to the host
    from libnmr import system
    cpu_count = system.cpu_count()
    if cpu_count > 0:
        set('make_jobs', str(cpu_count))

def _get_default_settings():
    """
    Returns a dictionary populated with the default settings.
    """
    return {
        'install_path': install_path,
        'nginx_binary': 'nginx',
        'nginx_conf': '/etc/nginx/nginx.conf',
        'module_dir': '/usr/lib/nginx/modules/',
        'work_dir_base': '/tmp/',
        'nginx_mirror': 'https://nginx.org/download/',
        'service_name': 'nginx',

        'make_jobs': '1',
        'service_settle_seconds': '1',
        'log_tail_lines': '20',
        'install_build_deps': True,

        'compact_help': False
    }
