#!/usr/bin/env python3
"""
CLI command categories. command_index imports every *_com.py file in this
directory so each one can register its commands.
"""

import glob
import os

directory = os.path.dirname(os.path.realpath(__file__)) + '/'
__all__ = sorted(os.path.basename(name)[:-3] for name in glob.glob(directory + '*_com.py'))
