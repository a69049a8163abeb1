#!/usr/bin/env python3

import re
import shlex
import shutil
import subprocess
from libnmr import builder, errors, logger, version

flags_marker = 'configure arguments:'
version_needle = re.compile(r'nginx version: nginx/(\S+)')

class BuildFlags():
    """
    The configure arguments an nginx binary was built with. The raw text is
    kept as reported and split into shell tokens so quoted values such as
    --with-cc-opt='-g -O2' stay a single argument.
    """
    def __init__(self, raw):
        self.raw = raw.strip()
        self.tokens = shlex.split(self.raw)

    def __iter__(self):
        return iter(self.tokens)

    def __len__(self):
        return len(self.tokens)

def find_binary(name='nginx'):
    """
    Resolve the nginx binary from a name or path.

    Args:
        name - The binary name to search the PATH for, or a full path
    """
    path = shutil.which(name)
    if path == None:
        raise errors.NginxEnvironmentError(name + ' not found in PATH')
    return path

def version_report(binary):
    """
    Get the text nginx prints for -V. nginx writes it to stderr.

    Args:
        binary - The full path to the nginx binary
    """
    try:
        result = subprocess.run([binary, '-V'], stdout=subprocess.PIPE, stderr=subprocess.STDOUT, universal_newlines=True)
    except OSError as e:
        raise errors.NginxEnvironmentError('Unable to run ' + binary + ' -V: ' + str(e))
    if result.returncode != 0:
        raise errors.NginxEnvironmentError(binary + ' -V exited with code ' + str(result.returncode))
    return result.stdout

def parse_version(report):
    """
    Extract the version from nginx -V (or -v) output.

    Args:
        report - The text reported by nginx
    """
    match = version_needle.search(report)
    if match == None or not version.is_version(match.group(1)):
        raise errors.NginxEnvironmentError('Unable to read an nginx version from: ' + report.strip()[:200])
    return match.group(1)

def parse_build_flags(report):
    """
    Extract everything following "configure arguments:" as a BuildFlags set.
    The flags are not interpreted.

    Args:
        report - The text reported by nginx -V
    """
    index = report.find(flags_marker)
    if index == -1:
        raise errors.NginxEnvironmentError('nginx -V did not report its configure arguments')
    lines = report[index + len(flags_marker):].splitlines()
    blob = ''
    if len(lines) > 0:
        blob = lines[0]
    try:
        return BuildFlags(blob)
    except ValueError as e:
        raise errors.NginxEnvironmentError('Unable to split configure arguments: ' + str(e))

def probe(binary):
    """
    Get the installed nginx version and the flags it was configured with.

    Args:
        binary - The full path to the nginx binary
    """
    report = version_report(binary)
    return parse_version(report), parse_build_flags(report)

def test_config(binary, log=logger.Log(False)):
    """
    Have nginx validate its configuration. Returns True if nginx accepts it.

    Args:
        binary - The full path to the nginx binary
        log - An open logger
    """
    return log.run([binary, '-t']) == 0

class NginxSource(builder.AbstractArchiveBuilder):
    """
    The nginx source tree for one exact release.
    """
    def __init__(self, source_version, build_dir, mirror='https://nginx.org/download/'):
        if not mirror.endswith('/'):
            mirror += '/'
        self.mirror = mirror
        super().__init__('nginx', build_dir, source_version)

    def get_source_url(self):
        return self.mirror + 'nginx-' + self.source_version + '.tar.gz'

    def source_dir(self):
        return self.build_dir + 'nginx-' + self.source_version + '/'
