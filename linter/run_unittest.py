# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Run test_*.py modules from tests/ directories of the packages.

Run from the repository root: python -m linter.run_unittest [package ...]
"""
import importlib
import logging
import sys
import unittest
from pathlib import Path
from pathlib import PurePath

_logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).parent.parent
PACKAGES = ['host_access', 'proxmox', 'nas', 'nas_setup', 'nas_manage']


def main(args):
    suite = unittest.TestSuite()
    for path in _test_files(args or PACKAGES):
        module = importlib.import_module(module_name(path))
        _logger.debug("Load: %r", module)
        suite.addTests(unittest.defaultTestLoader.loadTestsFromModule(module))
    _logger.info("Run %d tests", suite.countTestCases())
    result = unittest.TextTestRunner(stream=sys.stdout, verbosity=2).run(suite)
    return 0 if result.wasSuccessful() else 10


def _test_files(packages):
    for package in packages:
        yield from sorted((REPO_ROOT / package).glob('tests/test_*.py'))


def module_name(path: PurePath) -> str:
    """Dotted name of a module file under the repository root.

    >>> module_name(REPO_ROOT / 'nas/tests/test_state.py')
    'nas.tests.test_state'
    >>> module_name(REPO_ROOT / 'nas/__init__.py')
    'nas'
    """
    parts = path.relative_to(REPO_ROOT).with_suffix('').parts
    if parts[-1] == '__init__':
        parts = parts[:-1]
    return '.'.join(parts)


if __name__ == '__main__':
    assert str(REPO_ROOT) in sys.path
    exit(main(sys.argv[1:]))
