#!/usr/bin/env python3
"""
Module registrations. module_index imports every file in this directory, in
name order, so each one can register its modules.
"""

import glob
import os

directory = os.path.dirname(os.path.realpath(__file__)) + '/'
__all__ = sorted(os.path.basename(name)[:-3] for name in glob.glob(directory + '*.py')
    if not os.path.basename(name).startswith('_'))
