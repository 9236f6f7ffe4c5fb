# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import doctest
import importlib
import logging
import sys
from argparse import ArgumentParser

from linter.run_unittest import PACKAGES
from linter.run_unittest import REPO_ROOT
from linter.run_unittest import module_name

_logger = logging.getLogger(__name__)


def main(args):
    parser = ArgumentParser(description="Run doctests of every module outside tests/")
    parser.add_argument(
        'package', nargs='*', default=[*PACKAGES, 'doubles', 'linter'],
        help="default: %(default)s")
    parsed_args = parser.parse_args(args)
    failed = attempted = 0
    for name in _modules(parsed_args.package):
        result = doctest.testmod(importlib.import_module(name))
        _logger.debug("%s: %d examples, %d failed", name, result.attempted, result.failed)
        failed += result.failed
        attempted += result.attempted
    print(f"Doctests: {attempted} examples, {failed} failed")
    return 10 if failed else 0


def _modules(packages):
    for package in packages:
        for path in sorted((REPO_ROOT / package).rglob('*.py')):
            if 'tests' not in path.relative_to(REPO_ROOT).parts:
                yield module_name(path)


if __name__ == '__main__':
    assert str(REPO_ROOT) in sys.path
    exit(main(sys.argv[1:]))
