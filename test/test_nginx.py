#!/usr/bin/python3
import os
import shutil
import tarfile
import tempfile
import unittest
from unittest import mock

import requests

from libnmr import errors, logger, nginx

REPORT = """nginx version: nginx/1.28.2
built by gcc 13.2.0 (Ubuntu 13.2.0-23ubuntu4)
built with OpenSSL 3.0.13 30 Jan 2024
TLS SNI support enabled
configure arguments: --prefix=/etc/nginx --sbin-path=/usr/sbin/nginx --with-cc-opt='-g -O2 -fstack-protector-strong' --with-http_ssl_module
"""

def quiet_log():
    return logger.Log(False, color=False)

class TestProbe(unittest.TestCase):
    def testParseVersion(self):
        self.assertEqual(nginx.parse_version(REPORT), '1.28.2')

    def testParseVersionRejectsNonNumeric(self):
        with self.assertRaises(errors.NginxEnvironmentError):
            nginx.parse_version('nginx version: nginx/1.28.2-beta\n')

    def testParseVersionWithoutVersionLine(self):
        with self.assertRaises(errors.NginxEnvironmentError):
            nginx.parse_version('bash: nginx: command not found\n')

    def testBuildFlagsKeepOrderAndQuotedValues(self):
        flags = nginx.parse_build_flags(REPORT)
        self.assertEqual(flags.tokens, [
            '--prefix=/etc/nginx',
            '--sbin-path=/usr/sbin/nginx',
            '--with-cc-opt=-g -O2 -fstack-protector-strong',
            '--with-http_ssl_module',
        ])
        self.assertEqual(len(flags), 4)

    def testBuildFlagsWithoutMarker(self):
        with self.assertRaises(errors.NginxEnvironmentError):
            nginx.parse_build_flags('nginx version: nginx/1.28.2\n')

    def testEmptyBuildFlags(self):
        flags = nginx.parse_build_flags('nginx version: nginx/1.28.2\nconfigure arguments:')
        self.assertEqual(flags.tokens, [])

    def testProbeRunsDashCapitalV(self):
        result = mock.Mock(returncode=0, stdout=REPORT)
        with mock.patch('libnmr.nginx.subprocess.run', return_value=result) as run:
            version, flags = nginx.probe('/usr/sbin/nginx')
        self.assertEqual(run.call_args[0][0], ['/usr/sbin/nginx', '-V'])
        self.assertEqual(version, '1.28.2')
        self.assertEqual(flags.tokens[0], '--prefix=/etc/nginx')

    def testProbeFailsWhenBinaryCannotRun(self):
        with mock.patch('libnmr.nginx.subprocess.run', side_effect=FileNotFoundError('nginx')):
            with self.assertRaises(errors.NginxEnvironmentError):
                nginx.probe('/usr/sbin/nginx')

    def testMissingBinary(self):
        with mock.patch('libnmr.nginx.shutil.which', return_value=None):
            with self.assertRaises(errors.NginxEnvironmentError):
                nginx.find_binary('nginx')

    def testTestConfigUsesExitCode(self):
        log = mock.Mock()
        log.run.return_value = 1
        self.assertFalse(nginx.test_config('/usr/sbin/nginx', log))
        log.run.assert_called_once_with(['/usr/sbin/nginx', '-t'])

class TestNginxSource(unittest.TestCase):
    def setUp(self):
        self.build_dir = tempfile.mkdtemp() + '/'

    def tearDown(self):
        shutil.rmtree(self.build_dir)

    def testUrlDependsOnlyOnVersion(self):
        first = nginx.NginxSource('1.28.2', '/tmp/a/')
        second = nginx.NginxSource('1.28.2', '/var/tmp/b/')
        self.assertEqual(first.get_source_url(), 'https://nginx.org/download/nginx-1.28.2.tar.gz')
        self.assertEqual(first.get_source_url(), second.get_source_url())
        self.assertNotEqual(first.get_source_url(), nginx.NginxSource('1.26.3', '/tmp/a/').get_source_url())

    def testMirrorWithoutSlash(self):
        source = nginx.NginxSource('1.28.2', '/tmp/', 'http://mirror.example.com/nginx')
        self.assertEqual(source.get_source_url(), 'http://mirror.example.com/nginx/nginx-1.28.2.tar.gz')

    def testUnknownVersionIsFetchError(self):
        response = requests.Response()
        response.status_code = 404
        response.url = 'https://nginx.org/download/nginx-9.9.9.tar.gz'
        source = nginx.NginxSource('9.9.9', self.build_dir)
        with mock.patch('libnmr.builder.requests.get', return_value=response) as get:
            with self.assertRaises(errors.FetchError):
                source.fetch(quiet_log())
        self.assertEqual(get.call_count, 1)

    def testConnectionErrorIsFetchError(self):
        source = nginx.NginxSource('1.28.2', self.build_dir)
        with mock.patch('libnmr.builder.requests.get', side_effect=requests.ConnectionError('offline')):
            with self.assertRaises(errors.FetchError):
                source.fetch(quiet_log())

    def testFetchExtractsArchive(self):
        staging = tempfile.mkdtemp()
        os.makedirs(os.path.join(staging, 'nginx-1.28.2'))
        with open(os.path.join(staging, 'nginx-1.28.2', 'configure'), 'w') as f:
            f.write('#!/bin/sh\n')
        archive = os.path.join(staging, 'nginx-1.28.2.tar.gz')
        with tarfile.open(archive, 'w:gz') as tar:
            tar.add(os.path.join(staging, 'nginx-1.28.2'), arcname='nginx-1.28.2')
        with open(archive, 'rb') as f:
            data = f.read()
        shutil.rmtree(staging)

        response = mock.Mock()
        response.iter_content.return_value = [data]
        source = nginx.NginxSource('1.28.2', self.build_dir)
        with mock.patch('libnmr.builder.requests.get', return_value=response):
            source.fetch(quiet_log())
        self.assertTrue(os.path.isfile(source.source_dir() + 'configure'))
        self.assertFalse(os.path.exists(source.archive_name()))

if __name__ == '__main__':
    unittest.main()
