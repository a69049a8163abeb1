#!/usr/bin/env python3

class Index():
    """
    A class for tracking all modules that get rebuilt. Each module should be
    registered from a file in bin/builders that imports this class and calls
    register_module on it. Modules are kept in registration order, which is
    also the order they are handed to configure, so a module must be
    registered after the modules it depends on.
    """
    index = []

    def register_module(self, module):
        """
        Register a module to be rebuilt.
        """
        for i in Index.index:
            if module.slug == i.slug:
                return False
        Index.index.append(module)
        return True

    def modules(self):
        return list(Index.index)


# Since the builders we are importing import this file,
# this import line needs to be after the declaration
# for Index()
from builders import *


def unmet_dependencies(module_list=False):
    """
    Get [slug, dependency] pairs for modules whose dependencies are not
    registered ahead of them.

    Args:
        module_list - (optional) The modules to check instead of the registry
    """
    if module_list == False:
        module_list = Index().modules()
    seen = []
    unmet = []
    for module in module_list:
        for dependency in module.dependencies():
            if dependency not in seen:
                unmet.append([module.slug, dependency])
        seen.append(module.slug)
    return unmet
