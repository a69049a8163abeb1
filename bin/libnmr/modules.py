#!/usr/bin/env python3

from libnmr import builder

class AbstractNginxModule(builder.AbstractGitBuilder):
    """
    A third party nginx module that is cloned from git and compiled as a
    dynamic module against the installed nginx.
    """
    # the .so file make modules leaves in objs/
    artifact_name = False
    # a word marking feature directives that are switched off alongside the
    # load_module line
    feature_keyword = False

    def repository_name(self):
        return self.get_source_url().rstrip('/').split('/')[-1][:-4]

    def source_dir(self):
        return self.build_dir + self.repository_name() + '/'

class DevelKitModule(AbstractNginxModule):
    """The Nginx Development Kit, needed by set-misc."""
    artifact_name = 'ndk_http_module.so'

    def __init__(self):
        super().__init__('ndk')

    def get_source_url(self):
        return 'https://github.com/vision5/ngx_devel_kit.git'

class SetMiscModule(AbstractNginxModule):
    artifact_name = 'ngx_http_set_misc_module.so'

    def __init__(self):
        super().__init__('set-misc')

    def get_source_url(self):
        return 'https://github.com/openresty/set-misc-nginx-module.git'

    def dependencies(self):
        return ['ndk']

class GeoIP2Module(AbstractNginxModule):
    """GeoIP2 lookups through libmaxminddb."""
    artifact_name = 'ngx_http_geoip2_module.so'
    feature_keyword = 'geoip2'

    def __init__(self):
        super().__init__('geoip2')

    def get_source_url(self):
        return 'https://github.com/leev/ngx_http_geoip2_module.git'
