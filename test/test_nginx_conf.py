#!/usr/bin/python3
import os
import shutil
import tempfile
import unittest
from unittest import mock

from libnmr import nginx_conf

NAMES = ['ndk_http_module.so', 'ngx_http_set_misc_module.so', 'ngx_http_geoip2_module.so']

DISABLED_CONF = """user www-data;
worker_processes auto;
# load_module modules/ndk_http_module.so;
# load_module modules/ngx_http_set_misc_module.so; # v1.28.0
# load_module /usr/lib/nginx/modules/ngx_http_geoip2_module.so;
load_module modules/ngx_stream_module.so;
# load_module modules/ngx_http_image_filter_module.so;

http {
    # geoip2 /usr/share/GeoIP/GeoLite2-Country.mmdb {
    #     auto_reload 60m;
    #     $geoip2_data_country_code country iso_code;
    # }
    # map $geoip2_data_country_code $allowed { default yes; } # DISABLED v1.28.0
    # geoip2 lookups are configured above
    # gzip on;
    include /etc/nginx/conf.d/*.conf;
}
"""

class TestParseLine(unittest.TestCase):
    def testDisabledDirective(self):
        directive = nginx_conf.parse_line('# load_module modules/ndk_http_module.so;\n')
        self.assertTrue(directive.disabled)
        self.assertEqual(directive.name(), 'load_module')
        self.assertEqual(directive.argument(), 'modules/ndk_http_module.so')
        self.assertEqual(directive.enabled_line(), 'load_module modules/ndk_http_module.so;\n')

    def testPlainCommentIsNotDirective(self):
        self.assertFalse(nginx_conf.parse_line('# geoip2 lookups are configured above\n'))
        self.assertFalse(nginx_conf.parse_line('\n'))

    def testNestedIndentIsKept(self):
        directive = nginx_conf.parse_line('    #     auto_reload 60m;\n')
        self.assertEqual(directive.enabled_line(), '        auto_reload 60m;\n')

class TestReconcile(unittest.TestCase):
    def setUp(self):
        self.dir = tempfile.mkdtemp()
        self.conf = os.path.join(self.dir, 'nginx.conf')

    def tearDown(self):
        shutil.rmtree(self.dir)

    def write_conf(self, text):
        with open(self.conf, 'w') as f:
            f.write(text)

    def read_conf(self):
        with open(self.conf) as f:
            return f.read()

    def testSingleLineScenario(self):
        self.write_conf('# load_module modules/ndk_http_module.so;\n')
        loads = nginx_conf.EnableLoadModules(self.conf, NAMES)
        self.assertTrue(loads.run())
        self.assertEqual(self.read_conf(), 'load_module modules/ndk_http_module.so;\n')
        self.assertEqual(loads.missing, NAMES[1:])

    def testNonUtf8BytesPassThrough(self):
        with open(self.conf, 'wb') as f:
            f.write(b'# caf\xe9 server\n# load_module modules/ndk_http_module.so; # r\xe9sum\xe9\n')
        loads = nginx_conf.EnableLoadModules(self.conf, NAMES)
        self.assertTrue(loads.run())
        with open(self.conf, 'rb') as f:
            self.assertEqual(f.read(), b'# caf\xe9 server\nload_module modules/ndk_http_module.so;\n')
        self.assertEqual(loads.enabled, ['load_module modules/ndk_http_module.so;'])
        self.assertEqual(os.listdir(self.dir), ['nginx.conf'])

    def testFailedFilterLeavesNoTempFile(self):
        self.write_conf(DISABLED_CONF)
        loads = nginx_conf.EnableLoadModules(self.conf, NAMES)
        with mock.patch.object(loads, 'filter_stream', side_effect=OSError(28, 'No space left on device')):
            with self.assertRaises(OSError):
                loads.run()
        self.assertEqual(os.listdir(self.dir), ['nginx.conf'])
        self.assertEqual(self.read_conf(), DISABLED_CONF)

    def testLoadModulesEnabledAndOthersUntouched(self):
        self.write_conf(DISABLED_CONF)
        nginx_conf.EnableLoadModules(self.conf, NAMES).run()
        lines = self.read_conf().splitlines()
        self.assertIn('load_module modules/ndk_http_module.so;', lines)
        self.assertIn('load_module modules/ngx_http_set_misc_module.so;', lines)
        self.assertIn('load_module /usr/lib/nginx/modules/ngx_http_geoip2_module.so;', lines)
        self.assertIn('# load_module modules/ngx_http_image_filter_module.so;', lines)
        self.assertIn('    # gzip on;', lines)
        self.assertEqual(len(lines), len(DISABLED_CONF.splitlines()))

    def testNeverTwoActiveDirectives(self):
        self.write_conf('load_module modules/ndk_http_module.so;\n'
            '# load_module modules/ndk_http_module.so;\n'
            '# load_module modules/ngx_http_geoip2_module.so;\n'
            '# load_module modules/ngx_http_geoip2_module.so; # old\n')
        loads = nginx_conf.EnableLoadModules(self.conf, NAMES)
        loads.run()
        self.assertEqual(loads.already_active, [NAMES[0]])
        self.assertEqual(nginx_conf.active_load_modules(self.conf), [
            'load_module modules/ndk_http_module.so;',
            'load_module modules/ngx_http_geoip2_module.so;',
        ])

    def testUnknownDisableConventionIsLeftAlone(self):
        text = '#load_module_off modules/ndk_http_module.so;\n// load_module modules/ngx_http_geoip2_module.so;\n'
        self.write_conf(text)
        loads = nginx_conf.EnableLoadModules(self.conf, NAMES)
        self.assertFalse(loads.run())
        self.assertEqual(self.read_conf(), text)
        self.assertEqual(loads.missing, NAMES)

    def testGeoip2FeatureDirectives(self):
        self.write_conf(DISABLED_CONF)
        features = nginx_conf.EnableFeatureDirectives(self.conf, 'geoip2')
        self.assertTrue(features.run())
        lines = self.read_conf().splitlines()
        self.assertIn('    geoip2 /usr/share/GeoIP/GeoLite2-Country.mmdb {', lines)
        self.assertIn('        auto_reload 60m;', lines)
        self.assertIn('        $geoip2_data_country_code country iso_code;', lines)
        self.assertIn('    }', lines)
        self.assertIn('    map $geoip2_data_country_code $allowed { default yes; }', lines)
        self.assertIn('    # geoip2 lookups are configured above', lines)
        self.assertIn('    # gzip on;', lines)
        # load_module lines belong to EnableLoadModules
        self.assertIn('# load_module /usr/lib/nginx/modules/ngx_http_geoip2_module.so;', lines)

    def testModuleState(self):
        self.write_conf(DISABLED_CONF)
        self.assertEqual(nginx_conf.module_state(self.conf, 'ngx_stream_module.so'), 'active')
        self.assertEqual(nginx_conf.module_state(self.conf, NAMES[0]), 'disabled')
        self.assertEqual(nginx_conf.module_state(self.conf, 'ngx_mail_module.so'), 'absent')

if __name__ == '__main__':
    unittest.main()
