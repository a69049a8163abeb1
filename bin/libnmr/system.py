#!/usr/bin/env python3

import os
import subprocess

# build toolchain and headers needed to compile nginx plus the three modules
build_packages = {
    'apt': ['build-essential', 'git', 'libpcre3-dev', 'libssl-dev',
        'zlib1g-dev', 'libmaxminddb-dev', 'dpkg-dev'],
    'dnf': ['gcc', 'make', 'git', 'pcre-devel', 'openssl-devel',
        'zlib-devel', 'libmaxminddb-devel'],
}
build_packages['yum'] = build_packages['dnf']

def get_package_manager():
    if os.path.exists('/usr/bin/apt-get'):
        return 'apt'
    if os.path.exists('/usr/bin/dnf'):
        return 'dnf'
    if os.path.exists('/usr/bin/yum'):
        return 'yum'
    return False

def cpu_count():
    """
    Get the number of processing units available, or 0 if unknown.
    """
    count = subprocess.getoutput('nproc').strip()
    if count.isdigit():
        return int(count)
    return 0

def install_build_packages(log, manager=False):
    """
    Install the packages needed to compile nginx modules. Returns True if the
    package manager reported success.

    Args:
        log - An open logger
        manager - (optional) Force a package manager instead of detecting one
    """
    if manager == False:
        manager = get_package_manager()
    if manager not in build_packages:
        log.warn('No supported package manager found; skipping build dependencies')
        return False
    if manager == 'apt':
        command = ['apt-get', 'install', '-y', '--no-install-recommends']
    else:
        command = [manager, 'install', '-y']
    command.extend(build_packages[manager])
    try:
        return log.run(command, print_log=False) == 0
    except OSError as e:
        log.warn('Unable to run ' + command[0] + ': ' + str(e))
        return False
