"""Implementation of the 'check' subcommand: run the tests in a test file or directory."""
import sys

import argparse_subcommand as ap_sub

import base as b
import prvr.constants as c
import prvr.report as report
import prvr.runner

meaning = """Runs perevir tests: converts each test's input and compares it with the expected output.
Exits with status 0 iff all tests that are not disabled passed (or were accepted).
"""


def add_arguments(subparser: ap_sub.ArgumentParser):
    subparser.add_argument('-a', '--accept', action='store_true', default=False,
                           help="accept the actual results as correct and update the test files")
    subparser.add_argument('-f', '--format', metavar="format", default=c.DEFAULT_READER_FORMAT,
                           help=f"reader format of the test files (default: {c.DEFAULT_READER_FORMAT})")
    subparser.add_argument('--log', default="INFO", choices=b.loglevels.keys(),
                           help="Log level for logging to stdout (default: INFO)")
    subparser.add_argument('--report', metavar="yamlfile", default=None,
                           help="also write the results to this YAML file")
    subparser.add_argument('path',
                           help="test file, or directory of test files (not searched recursively)")


def execute(pargs: ap_sub.Namespace):
    b.set_loglevel(pargs.log)
    runner = prvr.runner.TestRunner()
    results = runner.run_path(pargs.path, accepting=pargs.accept, format=pargs.format)
    report.print_summary(results)
    if pargs.report:
        report.write_yaml_report(results, pargs.report)
    b.finalmessage()
    sys.exit(0 if report.all_succeeded(results) else 1)
