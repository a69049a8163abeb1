#!/usr/bin/python3
import datetime
import os
import shutil
import stat
import tempfile
import unittest
from unittest import mock

from libnmr import builder, errors, installer

NAMES = ['ndk_http_module.so', 'ngx_http_set_misc_module.so', 'ngx_http_geoip2_module.so']

def write(path, data):
    with open(path, 'wb') as f:
        f.write(data)

def read(path):
    with open(path, 'rb') as f:
        return f.read()

class TestInstaller(unittest.TestCase):
    def setUp(self):
        self.root = tempfile.mkdtemp()
        self.module_dir = os.path.join(self.root, 'modules')
        self.objs = os.path.join(self.root, 'objs')
        os.makedirs(self.module_dir)
        os.makedirs(self.objs)
        self.artifacts = []
        for name in NAMES:
            path = os.path.join(self.objs, name)
            write(path, b'new ' + name.encode())
            self.artifacts.append(builder.BuildArtifact(False, path, os.path.getsize(path)))

    def tearDown(self):
        shutil.rmtree(self.root)

    def testSnapshotOnlyHoldsExistingArtifacts(self):
        write(os.path.join(self.module_dir, NAMES[0]), b'old ndk')
        snapshot = installer.create_snapshot(self.module_dir, NAMES)
        self.assertEqual(snapshot.files, [NAMES[0]])
        self.assertEqual(sorted(os.listdir(snapshot.path)), [NAMES[0]])
        self.assertEqual(read(os.path.join(snapshot.path, NAMES[0])), b'old ndk')
        # copied, not moved
        self.assertTrue(os.path.exists(os.path.join(self.module_dir, NAMES[0])))

    def testFirstInstallHasEmptySnapshot(self):
        snapshot = installer.create_snapshot(self.module_dir, NAMES)
        self.assertEqual(snapshot.files, [])
        self.assertTrue(os.path.isdir(snapshot.path))

    def testSnapshotsInTheSameSecondAreDistinct(self):
        now = datetime.datetime(2026, 10, 19, 12, 0, 0)
        first = installer.create_snapshot(self.module_dir, NAMES, now)
        second = installer.create_snapshot(self.module_dir, NAMES, now)
        self.assertEqual(first.name(), 'backup-v20261019120000')
        self.assertEqual(second.name(), 'backup-v20261019120000-2')
        self.assertEqual([s.name() for s in installer.list_snapshots(self.module_dir)],
            [first.name(), second.name()])

    def testInstallReplacesWithFixedMode(self):
        old = os.path.join(self.module_dir, NAMES[1])
        write(old, b'old set-misc')
        os.chmod(old, 0o600)
        installed = installer.install_artifacts(self.artifacts, self.module_dir)
        self.assertEqual([name for name, size in installed], NAMES)
        for name, size in installed:
            path = os.path.join(self.module_dir, name)
            self.assertEqual(read(path), b'new ' + name.encode())
            self.assertEqual(size, len(b'new ' + name.encode()))
            self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o644)
        leftovers = [f for f in os.listdir(self.module_dir) if f.startswith('.')]
        self.assertEqual(leftovers, [])

    def testInstallFailureIsInstallError(self):
        with mock.patch('libnmr.installer.os.replace', side_effect=PermissionError('read-only')):
            with self.assertRaises(errors.InstallError):
                installer.install_artifacts(self.artifacts, self.module_dir)
        self.assertEqual(os.listdir(self.module_dir), [])

    def testFailedCopyLeavesNoTempFile(self):
        write(os.path.join(self.module_dir, NAMES[0]), b'old ndk')
        with mock.patch('libnmr.installer.shutil.copyfileobj', side_effect=OSError(28, 'No space left on device')):
            with self.assertRaises(errors.InstallError):
                installer.install_artifacts(self.artifacts, self.module_dir)
        self.assertEqual(os.listdir(self.module_dir), [NAMES[0]])
        self.assertEqual(read(os.path.join(self.module_dir, NAMES[0])), b'old ndk')

    def testRestoreSnapshot(self):
        for name in NAMES:
            write(os.path.join(self.module_dir, name), b'old ' + name.encode())
        snapshot = installer.create_snapshot(self.module_dir, NAMES)
        installer.install_artifacts(self.artifacts, self.module_dir)
        restored = installer.restore_snapshot(snapshot, self.module_dir)
        self.assertEqual(len(restored), 3)
        for name in NAMES:
            self.assertEqual(read(os.path.join(self.module_dir, name)), b'old ' + name.encode())
        found = installer.get_snapshot(self.module_dir, snapshot.name())
        self.assertEqual(found.files, sorted(NAMES))
        self.assertEqual(found.size(), sum(len(b'old ' + n.encode()) for n in NAMES))

if __name__ == '__main__':
    unittest.main()
