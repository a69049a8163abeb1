#!/usr/bin/env python3

import os
import tarfile
import requests
import subprocess
from libnmr import logger, errors
from abc import ABC, abstractmethod

def configure_command(flags, module_dirs):
    """
    Get the configure command that replays the original nginx build flags
    verbatim and registers each module as a dynamic module. Nothing else is
    added.

    Args:
        flags - The ordered configure tokens reported by nginx -V
        module_dirs - The source directory of each module, in registration order
    """
    command = ['./configure']
    command.extend(flags)
    for module_dir in module_dirs:
        command.append('--add-dynamic-module=' + module_dir.rstrip('/'))
    return command

def make_command(target, jobs=1):
    return ['make', '-j' + str(jobs), target]

class AbstractBuilder(ABC):
    """
    An abstract class for a source tree that is fetched into a build directory.
    """
    def __init__(self, slug, build_dir="/tmp/", source_version=False):
        self.slug = slug
        self.source_version = source_version
        self.build_dir = build_dir

    @abstractmethod
    def get_source_url(self):
        """
        This method returns the download path for the software which often
        includes the version number.
        """
        pass

    @abstractmethod
    def source_dir(self):
        """
        Returns the path of the source code directory following a download.
        """
        pass

    @abstractmethod
    def fetch_source(self, source, log):
        """
        Fetch the source code of the software and extract it if needed.
        Raises FetchError if the source can not be retrieved.

        Args:
            source - The source URL
            log - An open logger
        """
        pass

    def dependencies(self):
        """
        Returns a list of slugs of the other software this builder relies on.
        """
        return []

    def fetch(self, log):
        """Fetch the source code from the builder's own source URL."""
        return self.fetch_source(self.get_source_url(), log)

class AbstractArchiveBuilder(AbstractBuilder):
    """Abstract class for source packages downloaded as tar files."""

    def archive_name(self):
        source = self.get_source_url()
        return self.build_dir + source.split('/')[-1]

    def fetch_source(self, source, log):
        """
        Download the source tar file with a single request and extract it.
        """
        mode = 'r:gz'
        if source.endswith('.tar.bz2'):
            mode = 'r:bz2'
        tarname = self.archive_name()
        if not os.path.exists(self.build_dir):
            os.makedirs(self.build_dir)
        log.log('Downloading ' + source)
        try:
            response = requests.get(source, stream=True)
            response.raise_for_status()
            with open(tarname, "wb") as f:
                for chunk in response.iter_content(chunk_size=65536):
                    f.write(chunk)
        except (requests.RequestException, OSError) as e:
            raise errors.FetchError('Unable to download ' + source + ': ' + str(e))
        try:
            with tarfile.open(tarname, mode) as tar:
                tar.extractall(self.build_dir)
        except (tarfile.TarError, OSError) as e:
            raise errors.FetchError('Unable to extract ' + tarname + ': ' + str(e))
        finally:
            if os.path.exists(tarname):
                os.remove(tarname)
        if not os.path.isdir(self.source_dir()):
            raise errors.FetchError(tarname + ' did not contain ' + self.source_dir())

class AbstractGitBuilder(AbstractBuilder):
    "Abstract class for source trees cloned from a git repository."
    def __init__(self, slug, build_dir="/tmp/", branch=False):
        self.branch = branch
        super().__init__(slug, build_dir)

    def get_clone_args(self):
        return ['--depth=1']

    def clone_command(self, source):
        command = ['git', 'clone', '-q']
        command.extend(self.get_clone_args())
        if self.branch:
            command.extend(['--branch', self.branch])
        command.extend([source, self.source_dir().rstrip('/')])
        return command

    def fetch_source(self, source, log):
        """
        Make a shallow clone of the latest revision. There is no retry.
        """
        try:
            retval = log.run(self.clone_command(source), print_log=False)
        except OSError as e:
            raise errors.FetchError('Unable to run git: ' + str(e))
        if retval != 0:
            raise errors.FetchError('git clone of ' + source + ' failed (exit code ' + str(retval) + ')')

    def resolved_revision(self):
        """
        Get the tag or short commit hash that was checked out, or False if the
        source directory is not a git checkout.
        """
        target = self.source_dir()
        for command in (['git', '-C', target, 'describe', '--tags'],
                ['git', '-C', target, 'rev-parse', '--short', 'HEAD']):
            result = subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, universal_newlines=True)
            if result.returncode == 0 and len(result.stdout.strip()) > 0:
                return result.stdout.strip()
        return False

class MakeToolchain():
    """
    Runs the nginx build system. Each method returns the exit code of the
    command so a replacement toolchain can be injected for testing.
    """
    def configure(self, source_dir, flags, module_dirs, log):
        return log.run(configure_command(flags, module_dirs), print_log=False, cwd=source_dir)

    def make(self, source_dir, target, jobs, log):
        return log.run(make_command(target, jobs), print_log=False, cwd=source_dir)

class BuildArtifact():
    def __init__(self, module, path, size):
        self.module = module
        self.path = path
        self.size = size

    def name(self):
        return os.path.basename(self.path)

class ModuleBuild():
    """
    Compiles the dynamic modules inside an nginx source tree without
    rebuilding the nginx binary itself.
    """
    target = 'modules'

    def __init__(self, source_dir, flags, modules, log_dir, toolchain=False, jobs=1, tail_lines=20):
        """
        Args:
            source_dir - The extracted nginx source directory
            flags - The ordered configure tokens reported by nginx -V
            modules - The module descriptors to register, already fetched
            log_dir - Where configure.log and make.log are written
            toolchain - (optional) An object providing configure() and make()
            jobs - (optional) The number of parallel make jobs
            tail_lines - (optional) How many log lines to surface on failure
        """
        self.source_dir = source_dir
        self.flags = flags
        self.modules = modules
        self.log_dir = log_dir
        self.toolchain = toolchain or MakeToolchain()
        self.jobs = jobs
        self.tail_lines = tail_lines

    def configure_log_name(self):
        return os.path.join(self.log_dir, 'configure.log')

    def make_log_name(self):
        return os.path.join(self.log_dir, 'make.log')

    def module_dirs(self):
        return [module.source_dir() for module in self.modules]

    def configure(self):
        logfile = self.configure_log_name()
        with open(logfile, 'w+') as open_log:
            try:
                retval = self.toolchain.configure(self.source_dir, self.flags, self.module_dirs(), logger.Log(open_log))
            except OSError as e:
                open_log.write(str(e) + '\n')
                retval = 127
        if retval != 0:
            raise errors.ConfigureError('configure failed (exit code ' + str(retval) + ')',
                logger.tail(logfile, self.tail_lines))

    def compile(self):
        logfile = self.make_log_name()
        with open(logfile, 'w+') as open_log:
            try:
                retval = self.toolchain.make(self.source_dir, self.target, self.jobs, logger.Log(open_log))
            except OSError as e:
                open_log.write(str(e) + '\n')
                retval = 127
        if retval != 0:
            raise errors.BuildError('make ' + self.target + ' failed (exit code ' + str(retval) + ')',
                logger.tail(logfile, self.tail_lines))

    def collect_artifacts(self):
        """
        Check that every module produced a non-empty .so file in objs/ and
        return them as BuildArtifacts. A build that exited cleanly but left an
        artifact missing still fails here.
        """
        artifacts = []
        for module in self.modules:
            path = os.path.join(self.source_dir, 'objs', module.artifact_name)
            if not os.path.isfile(path):
                raise errors.ArtifactMissingError('Expected ' + module.artifact_name + ' not found in objs/')
            size = os.path.getsize(path)
            if size == 0:
                raise errors.ArtifactMissingError(module.artifact_name + ' in objs/ is empty')
            artifacts.append(BuildArtifact(module, path, size))
        return artifacts

    def run(self):
        self.configure()
        self.compile()
        return self.collect_artifacts()
