#!/usr/bin/env python3
"""Test that every subpackage imports on its own in a fresh interpreter"""

import os
import subprocess
import sys
import unittest

MODULES = [
    'looseins',
    'looseins.core',
    'looseins.coordinate',
    'looseins.attitude',
    'looseins.satellite',
    'looseins.satellite.ephemeris',
    'looseins.satellite.satellite_position',
    'looseins.gnss',
    'looseins.gnss.geometry',
    'looseins.gnss.spp',
    'looseins.rtk',
    'looseins.rtk.rtk_processor',
    'looseins.sensors',
    'looseins.fusion',
    'looseins.io',
    'looseins.config',
    'looseins.logger',
    'looseins.app',
]

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class TestImports(unittest.TestCase):

    def test_import_first(self):
        for module in MODULES:
            with self.subTest(module=module):
                result = subprocess.run([sys.executable, '-c', f'import {module}'],
                                        capture_output=True, text=True, cwd=REPO_ROOT)
                self.assertEqual(result.returncode, 0, result.stderr)


if __name__ == '__main__':
    unittest.main()
