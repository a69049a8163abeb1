#!/usr/bin/env python3

from libnmr import command_index

def _help():
    print('nmr setting (list|get) [example_key] # List out all settings or just the value of one setting')
    print('nmr setting set example_key example_value # Set the value of a setting')
index = command_index.CategoryIndex('setting', _help)

def _list(setting_name):
    from libnmr import settings
    if settings._settings_dict == False:
        settings._populate_settings()
    if setting_name:
        setting_name = setting_name.lower()
        if setting_name not in settings._settings_dict:
            print('Unknown setting ' + setting_name)
            return False
        print(str(settings.get(setting_name)))
    else:
        from tabulate import tabulate
        table = []
        for key in sorted(settings._settings_dict):
            table.append([ key, settings._settings_dict[key] ])
        print()
        print(tabulate(table, ['Key', 'Value']))
        print()
index.register_command('list', _list, rootonly=False)
index.register_command('get', _list, rootonly=False)

def _set(setting_key, more):
    if not setting_key:
        print('Please provide a key and value')
        return False
    if not more or len(more) == 0:
        print('Please provide the new value')
        return False
    value = more[0]
    from libnmr import settings
    settings.set(setting_key.lower(), value)
index.register_command('set', _set)
