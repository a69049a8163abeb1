#!/usr/bin/env python3

import os
import subprocess
from collections import deque

RED = '\033[0;31m'
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
CYAN = '\033[0;36m'
RESET = '\033[0m'

class Log():
    """
    Create an output stream that logs both to the CLI and optionally to a file.
    """
    def __init__(self, open_log_file=False, color=True):
        """
        Create an output stream that logs both to the CLI and optionally to a
        file.

        Args:
            open_log_file - A file that has already been opened with 'w' or 'a'.
                Set this to False to prevent logging to a file.
            color - (optional) Set to False to print status lines without ANSI
                color codes
        """
        self.open_log_file = open_log_file
        self.color = color

    def run(self, command, print_log=True, env=False, cwd=None):
        """
        A convenience method to run CLI commands that stream their output to both
        the screen and to the open log file at the same time.

        Args:
            command - An array containing the command and each of it's arguments
            print_log - (optional) You can set this to False to have the output
                go to the log file but not to the screen
            env - (optional) A replacement environment for the command
            cwd - (optional) The directory to run the command in
        """
        if env == False:
            env = dict(os.environ)
        process = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, env=env, cwd=cwd)
        while True:
            line = process.stdout.readline()
            if not line and process.returncode is not None:
                break
            if len(line) == 0:
                break
            log_line = line.decode("utf-8", errors="replace").rstrip()
            if print_log:
                print(log_line)
            if self.open_log_file != False:
                self.open_log_file.write(log_line + '\n')
        process.communicate()
        return process.returncode

    def log(self, line, print_log=True):
        """
        Output a string to the screen and log file.

        Args:
            line - The string to print to the screen and log file
            print_log - (optional) You can set this to False to have the output
                go to the log file but not to the screen
        """
        if print_log:
            print(line)
        if self.open_log_file:
            self.open_log_file.write(line + '\n')

    def _status(self, color, marker, line):
        if self.color:
            print(color + marker + line + RESET)
        else:
            print(marker + line)
        if self.open_log_file:
            self.open_log_file.write(marker + line + '\n')

    def info(self, line):
        """Print the start of a step."""
        self._status(CYAN, '> ', line)

    def ok(self, line):
        """Print a completed step."""
        self._status(GREEN, 'OK ', line)

    def warn(self, line):
        self._status(YELLOW, 'WARNING: ', line)

    def error(self, line):
        self._status(RED, 'ERROR: ', line)

    def banner(self, line):
        rule = '=' * (len(line) + 8)
        self._status(GREEN, '', rule)
        self._status(GREEN, '', '    ' + line)
        self._status(GREEN, '', rule)

def tail(filename, count=20):
    """
    Get the last lines of a text file as an array without trailing new lines.
    A missing file gives an empty array.

    Args:
        filename - The file to read
        count - (optional) The maximum number of lines to return
    """
    if not os.path.exists(filename):
        return []
    with open(filename, errors='replace') as text:
        return [line.rstrip('\n') for line in deque(text, maxlen=count)]
