#!/usr/bin/env python3

from libnmr import module_index, modules

index = module_index.Index()
index.register_module( modules.DevelKitModule() )
index.register_module( modules.SetMiscModule() )
index.register_module( modules.GeoIP2Module() )
