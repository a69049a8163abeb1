#!/usr/bin/env python3

import os
import time
import shutil
from libnmr import builder, errors, installer, module_index, nginx, nginx_conf, service, settings

def work_dir_name(base, version):
    if not base.endswith('/'):
        base += '/'
    return base + 'nginx-modules-build-' + version + '/'

def log_name():
    return settings.get('install_path') + 'var/log/rebuild.log'

def built_version_file():
    return settings.get('install_path') + 'var/built-version'

def get_built_version():
    """
    Get the nginx version the modules were last successfully rebuilt for, or
    False if there has been no successful rebuild.
    """
    filename = built_version_file()
    if not os.path.exists(filename):
        return False
    with open(filename) as stamp:
        built = stamp.read().strip()
    if len(built) == 0:
        return False
    return built

def record_built_version(version):
    filename = built_version_file()
    state_dir = os.path.dirname(filename)
    if not os.path.exists(state_dir):
        os.makedirs(state_dir)
    with open(filename, 'w+') as stamp:
        stamp.write(version + '\n')

class ModuleRebuild():
    """
    Rebuild the registered dynamic modules against the installed nginx and
    swap them into place. The stages run strictly in order and the first
    failure raises a RebuildError that ends the run. Nothing is retried and
    nothing is rolled back automatically; the backup snapshot taken before
    install is the way back.

    The module directory and nginx configuration are edited in place without
    locking, so only one rebuild may run against them at a time.
    """
    def __init__(self, log, modules=False, binary=False, module_dir=False, nginx_conf_file=False,
            work_dir_base=False, toolchain=False, jobs=False, service_name=False,
            settle_seconds=None, tail_lines=False, mirror=False):
        self.log = log
        self.modules = modules or module_index.Index().modules()
        self.binary_name = binary or settings.get('nginx_binary')
        self.module_dir = module_dir or settings.get('module_dir')
        self.nginx_conf_file = nginx_conf_file or settings.get('nginx_conf')
        self.work_dir_base = work_dir_base or settings.get('work_dir_base')
        self.toolchain = toolchain or builder.MakeToolchain()
        self.jobs = max(1, jobs or settings.get_int('make_jobs'))
        self.service_name = service_name or settings.get('service_name')
        if settle_seconds is None:
            settle_seconds = settings.get_int('service_settle_seconds')
        self.settle_seconds = settle_seconds
        self.tail_lines = tail_lines or settings.get_int('log_tail_lines')
        self.mirror = mirror or settings.get('nginx_mirror')

        self.binary = False
        self.version = False
        self.flags = False
        self.work_dir = False
        self.source = False
        self.revisions = {}
        self.artifacts = []
        self.snapshot = False
        self.installed = []

    def artifact_names(self):
        return [module.artifact_name for module in self.modules]

    def probe(self):
        self.binary = nginx.find_binary(self.binary_name)
        self.version, self.flags = nginx.probe(self.binary)
        self.work_dir = work_dir_name(self.work_dir_base, self.version)
        self.log.info('Nginx version: ' + self.version)
        self.log.info('Module dir:    ' + self.module_dir)
        self.log.info('Work dir:      ' + self.work_dir)

    def prepare_work_dir(self):
        """Start from an empty work dir, discarding leftovers of a failed run."""
        try:
            if os.path.exists(self.work_dir):
                shutil.rmtree(self.work_dir)
            os.makedirs(self.work_dir)
        except OSError as e:
            raise errors.NginxEnvironmentError('Unable to prepare work dir ' + self.work_dir + ': ' + str(e))

    def fetch(self):
        self.log.info('Downloading nginx-' + self.version + ' sources...')
        self.source = nginx.NginxSource(self.version, self.work_dir, self.mirror)
        self.source.fetch(self.log)
        self.log.ok('nginx sources ready')

        self.log.info('Cloning module sources...')
        for module in self.modules:
            module.build_dir = self.work_dir
            module.fetch(self.log)
            revision = module.resolved_revision()
            self.revisions[module.slug] = revision
            self.log.ok(module.repository_name() + ' @ ' + str(revision))

    def build(self):
        unmet = module_index.unmet_dependencies(self.modules)
        if len(unmet) > 0:
            slug, dependency = unmet[0]
            raise errors.ConfigureError(slug + ' must be registered after ' + dependency)
        self.log.info('Running ./configure...')
        build = builder.ModuleBuild(self.source.source_dir(), self.flags.tokens, self.modules,
            self.work_dir, self.toolchain, self.jobs, self.tail_lines)
        build.configure()
        self.log.ok('Configure successful')
        self.log.info('Compiling modules (make -j' + str(self.jobs) + ' ' + build.target + ')...')
        build.compile()
        self.log.ok('Compilation successful')
        self.artifacts = build.collect_artifacts()
        self.log.ok('All ' + str(len(self.artifacts)) + ' .so files built')

    def backup(self):
        self.log.info('Backing up old modules...')
        self.snapshot = installer.create_snapshot(self.module_dir, self.artifact_names())
        for name in self.snapshot.files:
            self.log.log('  backed up: ' + name)
        self.log.ok('Old modules saved to ' + self.snapshot.path)

    def install(self):
        self.log.info('Installing new modules to ' + self.module_dir + '...')
        self.installed = installer.install_artifacts(self.artifacts, self.module_dir)
        for name, size in self.installed:
            self.log.log('  ' + name + ' (' + str(size) + ' bytes)')
        self.log.ok('Modules installed')

    def reconcile(self):
        self.log.info('Restoring load_module directives in ' + self.nginx_conf_file + '...')
        if not os.path.isfile(self.nginx_conf_file):
            raise errors.NginxEnvironmentError(self.nginx_conf_file + ' not found')
        loads = nginx_conf.EnableLoadModules(self.nginx_conf_file, self.artifact_names())
        self.run_conf_filter(loads)
        for line in loads.enabled:
            self.log.log('  enabled: ' + line)
        for name in loads.missing:
            self.log.warn('No load_module directive for ' + name + ' in ' + self.nginx_conf_file)
        for module in self.modules:
            if module.feature_keyword:
                features = nginx_conf.EnableFeatureDirectives(self.nginx_conf_file, module.feature_keyword)
                self.run_conf_filter(features)
                for line in features.changed_lines:
                    self.log.log('  enabled: ' + line.strip())
        self.log.ok(os.path.basename(self.nginx_conf_file) + ' restored')

    def run_conf_filter(self, conf_filter):
        """
        Rewrite the nginx configuration. The modules are already installed at
        this point, so a failure carries the same guidance as a failed
        config test.
        """
        try:
            conf_filter.run()
        except (OSError, UnicodeError) as e:
            raise errors.InstallError('Unable to update ' + self.nginx_conf_file + ': ' + str(e),
                guidance=self.rollback_guidance())

    def rollback_guidance(self):
        guidance = [
            self.binary + ' -t 2>&1          # see exact error',
            '$EDITOR ' + self.nginx_conf_file + '     # edit config',
        ]
        if self.snapshot != False and len(self.snapshot.files) > 0:
            guidance.append('Rollback: cp ' + os.path.join(self.snapshot.path, '*.so') + ' ' + self.module_dir)
        return guidance

    def verify(self):
        self.log.info('Testing nginx configuration...')
        try:
            valid = nginx.test_config(self.binary, self.log)
        except OSError as e:
            raise errors.ConfigValidationError('Unable to run ' + self.binary + ' -t: ' + str(e),
                guidance=self.rollback_guidance())
        if not valid:
            raise errors.ConfigValidationError('nginx -t failed after module install. Manual fix required',
                guidance=self.rollback_guidance())
        self.log.ok('Config is valid')
        self.log.info('Starting nginx...')
        try:
            retval = service.restart(self.service_name, self.log)
        except OSError as e:
            raise errors.ServiceStartError('Unable to run systemctl: ' + str(e))
        if retval != 0:
            raise errors.ServiceStartError(self.service_name + ' failed to start (exit code ' + str(retval)
                + '). Check: journalctl -xeu ' + self.service_name + '.service')
        time.sleep(self.settle_seconds)
        try:
            active = service.is_active(self.service_name)
        except OSError as e:
            raise errors.ServiceStartError('Unable to run systemctl: ' + str(e))
        if not active:
            raise errors.ServiceStartError(self.service_name + ' started but is not active. Check: journalctl -xeu '
                + self.service_name + '.service')

    def report(self):
        self.log.log('')
        self.log.banner('nginx ' + self.version + ' + ALL MODULES RUNNING')
        self.log.log('')
        for line in nginx.version_report(self.binary).splitlines()[:2]:
            self.log.log(line)
        self.log.log('')
        self.log.log('Active load_module directives:')
        for line in nginx_conf.active_load_modules(self.nginx_conf_file):
            self.log.log(line)
        self.log.log('')
        try:
            for line in service.status(self.service_name):
                self.log.log(line)
        except OSError as e:
            self.log.warn('Unable to read the ' + self.service_name + ' status: ' + str(e))

    def cleanup(self):
        self.log.info('Cleaning up ' + self.work_dir + '...')
        shutil.rmtree(self.work_dir, ignore_errors=True)
        self.log.ok('Done. Backup at: ' + self.snapshot.path)

    def run(self):
        """
        Run every stage in order. Returns True once nginx is running with the
        new modules; raises a RebuildError otherwise, leaving the work dir for
        inspection.
        """
        self.probe()
        self.prepare_work_dir()
        self.fetch()
        self.build()
        self.backup()
        self.install()
        self.reconcile()
        self.verify()
        self.report()
        self.cleanup()
        return True
