#!/usr/bin/env python3

import sys
from libnmr import command_index

def _help():
    print('nmr rebuild run [`yes`]  # Rebuild all modules against the installed nginx and restart it')
    print('nmr rebuild check  # Report whether nginx changed version since the last rebuild')
    print('nmr rebuild configure  # Print the configure command a rebuild would run')
    print('nmr rebuild deps  # Install the packages needed to compile the modules')
index = command_index.CategoryIndex('rebuild', _help)

def _print_failure(log, error):
    log.error(str(error))
    if len(error.log_tail) > 0:
        log.log('Last ' + str(len(error.log_tail)) + ' lines:')
        for line in error.log_tail:
            log.log('  ' + line)
    if len(error.guidance) > 0:
        log.log('')
        for line in error.guidance:
            log.log('  ' + line)

def _run(confirmed):
    import os
    from libnmr import errors, input_util, logger, rebuild, settings, system
    if confirmed != 'yes':
        if not input_util.confirm('Rebuild nginx modules and restart nginx?'):
            print('Cancelled')
            return False
    logfile = rebuild.log_name()
    logdir = os.path.dirname(logfile)
    if not os.path.exists(logdir):
        os.makedirs(logdir)
    with open(logfile, 'w+', errors='replace') as open_log:
        log = logger.Log(open_log, sys.stdout.isatty())
        if settings.get_bool('install_build_deps'):
            log.info('Installing build dependencies...')
            if system.install_build_packages(log):
                log.ok('Dependencies ready')
            else:
                log.warn('Build dependencies may be incomplete, continuing')
        job = rebuild.ModuleRebuild(log)
        try:
            job.run()
        except errors.RebuildError as e:
            _print_failure(log, e)
            if job.work_dir:
                log.log('Build files kept in ' + job.work_dir)
            log.log('Log: ' + logfile)
            return False
        try:
            rebuild.record_built_version(job.version)
        except OSError as e:
            log.warn('Modules rebuilt but unable to record the built version: ' + str(e))
    return True
index.register_command('run', _run)

def _check():
    from libnmr import errors, nginx, rebuild, settings, version
    try:
        binary = nginx.find_binary(settings.get('nginx_binary'))
        installed, flags = nginx.probe(binary)
    except errors.NginxEnvironmentError as e:
        print(str(e))
        return False
    built = rebuild.get_built_version()
    if built == False:
        print('No rebuild recorded. Modules should be rebuilt for nginx ' + installed)
    elif built == installed:
        print('Modules were built for nginx ' + installed + '. No rebuild needed.')
    elif version.first_is_higher(installed, built):
        print('nginx was upgraded from ' + built + ' to ' + installed + '. Run: nmr rebuild run')
    else:
        print('nginx was downgraded from ' + built + ' to ' + installed + '. Run: nmr rebuild run')
index.register_command('check', _check, rootonly=False)

def _configure():
    import shlex
    from libnmr import builder, errors, module_index, nginx, rebuild, settings
    try:
        binary = nginx.find_binary(settings.get('nginx_binary'))
        installed, flags = nginx.probe(binary)
    except errors.NginxEnvironmentError as e:
        print(str(e))
        return False
    work_dir = rebuild.work_dir_name(settings.get('work_dir_base'), installed)
    module_dirs = []
    for module in module_index.Index().modules():
        module.build_dir = work_dir
        module_dirs.append(module.source_dir())
    print('cd ' + nginx.NginxSource(installed, work_dir).source_dir())
    print(' '.join(shlex.quote(arg) for arg in builder.configure_command(flags.tokens, module_dirs)))
index.register_command('configure', _configure, rootonly=False)

def _deps():
    from libnmr import logger, system
    log = logger.Log(False, sys.stdout.isatty())
    log.info('Installing build dependencies...')
    if not system.install_build_packages(log):
        log.error('Unable to install build dependencies')
        return False
    log.ok('Dependencies ready')
index.register_command('deps', _deps)
