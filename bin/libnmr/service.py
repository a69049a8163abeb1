#!/usr/bin/env python3

import subprocess
from libnmr import logger

def restart(service_name, log=logger.Log(False)):
    """
    Restart a system service, starting it if it was stopped. Returns the exit
    code of systemctl.

    Args:
        service_name - The name of the service to restart
        log - An open logger
    """
    return log.run(['systemctl', 'restart', service_name + '.service'])

def is_active(service_name):
    """
    Check if a system service is currently running.

    Args:
        service_name - The name of the service to check
    """
    command = ['systemctl', 'is-active', '--quiet', service_name + '.service']
    return subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL).returncode == 0

def status(service_name, lines=8):
    """
    Get the first lines of the systemctl status report.

    Args:
        service_name - The name of the service
        lines - (optional) How many lines to return
    """
    command = ['systemctl', 'status', service_name + '.service', '--no-pager', '-l']
    result = subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, universal_newlines=True)
    return result.stdout.splitlines()[:lines]
