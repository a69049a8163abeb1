#!/usr/bin/env python3

import re

version_pattern = re.compile(r'^[0-9]+(\.[0-9]+)+$')

def is_version(text):
    """
    Return True if the text is a strict dotted numeric version like 1.28.2.

    Args:
        text - The string to test
    """
    if not text:
        return False
    return version_pattern.match(text) != None

def first_is_higher(v1, v2, case_insensitive=True):
    """
    Return a boolean value to indicate if the first software version number is
    higher than the second.

    Args:
        v1 - The first version string to compare
        v2 - The second version string to compare
    """
    v1_split = v1.split('.')
    v2_split = v2.split('.')
    higher = len(v1_split) > len(v2_split)
    i = 0
    max = len(v1_split)
    if len(v2_split) < max:
        max = len(v2_split)
    while i < max:
        v1_node = v1_split[i]
        v2_node = v2_split[i]
        if v1_node.isdigit() and v2_node.isdigit():
            v1_node = int(v1_node)
            v2_node = int(v2_node)
        elif case_insensitive:
            v1_node = v1_node.lower()
            v2_node = v2_node.lower()
        if v1_node > v2_node:
            return True
        if v2_node > v1_node:
            return False
        i += 1
    return higher
