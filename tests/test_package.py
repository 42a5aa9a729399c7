import importlib

import pytest

import workloop

MODULES = ['cli', 'codec', 'context', 'environment', 'errors', 'events', 'loop', 'registry', 'scheduler', 'slots']


def test_exports():
    for name in workloop.__all__:
        assert hasattr(workloop, name), name


def test_namespace_holds_only_public_surface():
    assert 'log' not in vars(workloop)


@pytest.mark.parametrize('modname', MODULES)
def test_module_docstrings(modname):
    module = importlib.import_module('workloop.' + modname)
    assert module.__doc__
