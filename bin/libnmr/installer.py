#!/usr/bin/env python3

import os
import glob
import shutil
import datetime
from tempfile import NamedTemporaryFile
from libnmr import errors

backup_prefix = 'backup-v'
artifact_mode = 0o644

class BackupSnapshot():
    """
    A directory of copies of the artifacts that were installed before a run
    replaced them. It is written once and never changed afterwards.
    """
    def __init__(self, path, timestamp, files):
        self.path = path
        self.timestamp = timestamp
        self.files = files

    def name(self):
        return os.path.basename(self.path.rstrip('/'))

    def size(self):
        total = 0
        for name in self.files:
            total += os.path.getsize(os.path.join(self.path, name))
        return total

def _snapshot_path(module_dir, stamp):
    """
    Pick an unused backup directory name. Runs within the same second get a
    numeric suffix.
    """
    path = os.path.join(module_dir, backup_prefix + stamp)
    suffix = 1
    while os.path.exists(path):
        suffix += 1
        path = os.path.join(module_dir, backup_prefix + stamp + '-' + str(suffix))
    return path

def create_snapshot(module_dir, names, now=False):
    """
    Copy every currently installed artifact into a new backup directory.
    Artifacts that are not installed yet are skipped.

    Args:
        module_dir - The live nginx module directory
        names - The artifact file names to back up
        now - (optional) The datetime to stamp the snapshot with
    """
    if now == False:
        now = datetime.datetime.now()
    stamp = now.strftime('%Y%m%d%H%M%S')
    try:
        path = _snapshot_path(module_dir, stamp)
        os.makedirs(path)
        files = []
        for name in names:
            installed = os.path.join(module_dir, name)
            if os.path.isfile(installed):
                shutil.copy2(installed, os.path.join(path, name))
                files.append(name)
    except OSError as e:
        raise errors.InstallError('Unable to back up modules: ' + str(e))
    return BackupSnapshot(path, stamp, files)

def install_file(source, target_dir, name=False):
    """
    Install one file with a fixed mode. The data is written to a temporary
    file beside the target and renamed over it so nginx never sees a partly
    written module.

    Args:
        source - The file to install
        target_dir - The directory to install to
        name - (optional) The installed file name, defaults to the source name
    """
    if name == False:
        name = os.path.basename(source)
    target = os.path.join(target_dir, name)
    temp = NamedTemporaryFile(dir=target_dir, prefix='.' + name + '.', delete=False)
    temp_name = temp.name
    try:
        with temp, open(source, 'rb') as data:
            shutil.copyfileobj(data, temp)
        os.chmod(temp_name, artifact_mode)
        os.replace(temp_name, target)
    except OSError:
        os.remove(temp_name)
        raise
    return os.path.getsize(target)

def install_artifacts(artifacts, module_dir):
    """
    Install freshly built artifacts into the live module directory, replacing
    any previous file of the same name. Returns [name, size] pairs of what was
    installed.

    Args:
        artifacts - BuildArtifacts that passed the post build check
        module_dir - The live nginx module directory
    """
    installed = []
    for artifact in artifacts:
        try:
            size = install_file(artifact.path, module_dir)
        except OSError as e:
            raise errors.InstallError('Unable to install ' + artifact.name() + ': ' + str(e))
        installed.append([artifact.name(), size])
    return installed

def list_snapshots(module_dir):
    """
    Get all backup snapshots in a module directory, oldest first.

    Args:
        module_dir - The live nginx module directory
    """
    snapshots = []
    for path in sorted(glob.glob(os.path.join(module_dir, backup_prefix + '*'))):
        if not os.path.isdir(path):
            continue
        stamp = os.path.basename(path)[len(backup_prefix):]
        files = sorted(os.path.basename(f) for f in glob.glob(os.path.join(path, '*.so')))
        snapshots.append(BackupSnapshot(path, stamp, files))
    return snapshots

def get_snapshot(module_dir, name):
    for snapshot in list_snapshots(module_dir):
        if snapshot.name() == name:
            return snapshot
    return False

def restore_snapshot(snapshot, module_dir):
    """
    Copy the files of a backup snapshot back into the module directory. This
    only copies files; restarting nginx is left to the operator.

    Args:
        snapshot - The BackupSnapshot to restore
        module_dir - The live nginx module directory
    """
    restored = []
    for name in snapshot.files:
        try:
            size = install_file(os.path.join(snapshot.path, name), module_dir)
        except OSError as e:
            raise errors.InstallError('Unable to restore ' + name + ': ' + str(e))
        restored.append([name, size])
    return restored
