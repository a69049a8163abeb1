#!/usr/bin/env python3

from libnmr import command_index

def _help():
    print('nmr module list  # List the rebuilt modules, their installed size and load_module state')
    print('nmr module backups  # List module backups taken before each install')
    print('nmr module rollback [backup-v00000000000000]  # Copy a backup\'s modules back into place')
index = command_index.CategoryIndex('module', _help)

def _list():
    import os
    from tabulate import tabulate
    from libnmr import module_index, nginx_conf, settings
    module_dir = settings.get('module_dir')
    conf = settings.get('nginx_conf')
    table = []
    for module in module_index.Index().modules():
        installed = os.path.join(module_dir, module.artifact_name)
        size = '-'
        if os.path.isfile(installed):
            size = os.path.getsize(installed)
        table.append([module.slug, module.artifact_name, size, nginx_conf.module_state(conf, module.artifact_name)])
    print()
    print(tabulate(table, ['Module', 'Artifact', 'Bytes', 'load_module']))
    print()
index.register_command('list', _list, rootonly=False)

def _backups():
    from tabulate import tabulate
    from libnmr import installer, settings
    snapshots = installer.list_snapshots(settings.get('module_dir'))
    if len(snapshots) == 0:
        print('No module backups found')
        return
    table = []
    for snapshot in snapshots:
        table.append([snapshot.name(), ', '.join(snapshot.files), snapshot.size()])
    print()
    print(tabulate(table, ['Backup', 'Modules', 'Bytes']))
    print()
index.register_command('backups', _backups, rootonly=False)

def _rollback(name):
    from libnmr import errors, input_util, installer, logger, nginx, settings
    module_dir = settings.get('module_dir')
    snapshots = [s for s in installer.list_snapshots(module_dir) if len(s.files) > 0]
    if len(snapshots) == 0:
        print('No module backups to roll back to')
        return False
    if not name:
        name = input_util.select_from('Select a backup to restore', [s.name() for s in reversed(snapshots)])
        if not name:
            return False
    snapshot = installer.get_snapshot(module_dir, name)
    if snapshot == False or len(snapshot.files) == 0:
        print(name + ' is not a module backup in ' + module_dir)
        return False
    log = logger.Log(False)
    try:
        restored = installer.restore_snapshot(snapshot, module_dir)
    except errors.InstallError as e:
        log.error(str(e))
        return False
    for restored_name, size in restored:
        log.log('  ' + restored_name + ' (' + str(size) + ' bytes)')
    log.ok('Restored modules from ' + snapshot.path)
    try:
        binary = nginx.find_binary(settings.get('nginx_binary'))
    except errors.NginxEnvironmentError as e:
        log.warn(str(e))
        return False
    if nginx.test_config(binary, log):
        log.ok('Config is valid. Restart nginx to load the restored modules.')
    else:
        log.warn('nginx -t failed with the restored modules')
        return False
index.register_command('rollback', _rollback)
