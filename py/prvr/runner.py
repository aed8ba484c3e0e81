"""
Running tests: produce the actual result of a test's input, compare it with
the expected output, then report the difference or accept the actual result.
"""
import dataclasses
import shlex
import typing as tg

import base as b
import prvr.accept as accept
import prvr.constants as c
import prvr.doctree as dt
import prvr.pandoc
import prvr.report as report
import prvr.testcase as tc
import prvr.testgroup as tgroup
from prvr.errors import (CommandError, EngineError, MissingOutput, PerevirError,
                         UnparsableExpected)
from prvr.report import Outcome, TestResult

Reader = tg.Callable[[str, list], dt.Document]  # (text, attr) -> document


class PipelineExecutor:
    """Reads a test's input and runs it through the test's filters."""

    def __init__(self, engine: prvr.pandoc.Pandoc, reader: tg.Optional[Reader] = None):
        self.engine = engine
        self.reader = reader

    def get_doc(self, block: dt.Element) -> dt.Document:
        if block['t'] == 'CodeBlock':
            text = dt.code_text(block) + "\n\n"  # code blocks lose their final newline
            if self.reader:
                return self.reader(text, dt.get_attr(block))
            attributes, classes = dt.attributes(block), dt.classes(block)
            format = attributes.get('format') or (classes[0] if classes else c.DEFAULT_READER_FORMAT)
            return self.engine.read(text, format, attributes.get('extensions', ""))
        return dt.document(dt.div_content(block))

    def execute(self, test: tc.TestCase) -> dt.Document:
        actual = self.get_doc(test.require_input())
        env = prvr.pandoc.FilterEnv(target_format=test.target_format)
        for filtername in test.options.filters:
            if filtername == c.CITEPROC_FILTER:
                actual = self.engine.citeproc(actual)
            else:
                actual = self.engine.run_filter(actual, filtername, env)
        return actual


def softbreaks_to_spaces() -> dt.Visitors:
    return {'SoftBreak': lambda el: dt.space()}


def metastrings_to_inlines() -> dt.Visitors:
    def str2inlines(value: dt.Element):
        return {'t': 'MetaInlines', 'c': dt.text_to_inlines(value['c'])}
    return {'MetaString': str2inlines}


@dataclasses.dataclass
class Comparison:
    outcome: Outcome  # PASS, FAIL, or DISABLED
    actual: tg.Optional[accept.Result] = None
    expected: tg.Optional[accept.Result] = None


class ComparisonEngine:
    """Decides how a test is compared and compares."""

    def __init__(self, engine: prvr.pandoc.Pandoc, executor: PipelineExecutor,
                 writers: tg.Optional[accept.Writers] = None):
        self.engine = engine
        self.executor = executor
        self.writers = writers or {}

    def compare(self, test: tc.TestCase, accepting=False) -> Comparison:
        """
        In accept mode, a missing or unreadable expected output is no error:
        the comparison then simply fails.
        """
        options = test.options
        if options.disable:
            return Comparison(Outcome.DISABLED)
        if test.is_command_test:
            return self.compare_command(test, accepting)
        if self.compares_strings(test, options.compare_mode):
            expected = self.expected_text(test, accepting)
            actual = accept.serialize(self.engine, self.writers, self.executor.execute(test),
                                      test.target_format, test.target_extensions)
            return Comparison(Outcome.PASS if actual == expected else Outcome.FAIL, actual, expected)
        expected = self.expected_doc(test, accepting)
        actual = self.executor.execute(test)
        for modifier in self.modifier_filters(options):
            actual = dt.walk(actual, modifier)
            expected = expected and dt.walk(expected, modifier)
        same = expected is not None and dt.equal(actual, expected)
        return Comparison(Outcome.PASS if same else Outcome.FAIL, actual, expected)

    def compares_strings(self, test: tc.TestCase, mode: tc.CompareMode) -> bool:
        if test.output is not None and test.output['t'] == 'Div':
            return False  # Div contents are documents already
        return mode is tc.CompareMode.STRINGS or test.target_format in self.writers

    @staticmethod
    def modifier_filters(options: tc.TestOptions) -> list[dt.Visitors]:
        result = []
        if options.ignore_softbreaks:
            result.append(softbreaks_to_spaces())
        if options.metastrings_to_inlines:
            result.append(metastrings_to_inlines())
        return result

    def expected_doc(self, test: tc.TestCase, accepting=False) -> tg.Optional[dt.Document]:
        output = test.output
        if output is None:
            if accepting:
                return None
            raise MissingOutput(test.filepath)
        if output['t'] == 'Div':
            return dt.document(dt.div_content(output))
        try:
            return self.engine.read(dt.code_text(output), test.target_format, test.target_extensions)
        except EngineError as ex:
            if accepting:
                return None
            raise UnparsableExpected(test.target_format + test.target_extensions,
                                     ex.stderr.strip()) from ex

    @staticmethod
    def expected_text(test: tc.TestCase, accepting=False) -> tg.Optional[str]:
        if test.output is None:
            if accepting:
                return None
            raise MissingOutput(test.filepath)
        return dt.code_text(test.output)

    def compare_command(self, test: tc.TestCase, accepting=False) -> Comparison:
        """Pipes the input text through the pandoc command line of the test; compares the text."""
        args = shlex.split(dt.code_text(test.command))
        if not args or args.pop(0) != 'pandoc':
            raise CommandError("Must be a pandoc command.")
        input_ = test.require_input()
        if input_['t'] != 'CodeBlock':
            raise CommandError("A command test needs a code block as input.")
        if test.output is not None and test.output['t'] != 'CodeBlock':
            raise CommandError("A command test needs a code block as output.")
        expected = self.expected_text(test, accepting)
        if expected is not None:
            expected += "\n"  # code blocks lose their final newline
        actual = self.engine.pipe(args, dt.code_text(input_))
        return Comparison(Outcome.PASS if actual == expected else Outcome.FAIL, actual, expected)


class TestRunner:
    def __init__(self, engine: tg.Optional[prvr.pandoc.Pandoc] = None,
                 reader: tg.Optional[Reader] = None,
                 writers: tg.Optional[accept.Writers] = None):
        self.engine = engine or prvr.pandoc.Pandoc()
        self.executor = PipelineExecutor(self.engine, reader)
        self.comparer = ComparisonEngine(self.engine, self.executor, writers)
        self.rewriter = accept.AcceptanceRewriter(self.engine, writers)

    def run_test(self, test: tc.TestCase, accepting=False) -> TestResult:
        try:
            comparison = self.comparer.compare(test, accepting)
            if comparison.outcome is not Outcome.FAIL:
                return TestResult(test.filepath, comparison.outcome)
            if accepting:
                self.rewriter.accept(test, comparison.actual)
                return TestResult(test.filepath, Outcome.ACCEPTED)
            self.report_failure(comparison)
            return TestResult(test.filepath, Outcome.FAIL, "actual result differs from expected output")
        except (PerevirError, OSError) as ex:
            return TestResult(test.filepath, Outcome.FAIL, str(ex))

    def report_failure(self, comparison: Comparison):
        """Diff of expected and actual, documents written in native format."""
        expected, actual = comparison.expected, comparison.actual
        if isinstance(actual, str) or isinstance(expected, str):
            report.print_diff(expected or "", actual or "")
            return
        standalone = dt.has_meta(actual) or dt.has_meta(expected)
        report.print_diff(self.engine.write(expected, c.NATIVE_FORMAT, standalone=standalone),
                          self.engine.write(actual, c.NATIVE_FORMAT, standalone=standalone))

    def run_test_group(self, group: tgroup.TestGroup, parser: tc.TestParser,
                       accepting=False) -> list[TestResult]:
        """Runs the tests one by one; a broken test file fails only its own test."""
        results = []
        for entry in group.entries:
            entry.load(parser)
            if entry.state is tgroup.EntryState.PARSE_FAILED:
                result = TestResult(entry.filepath, Outcome.FAIL, str(entry.error))
            else:
                result = self.run_test(entry.testcase.with_defaults(group.options), accepting)
            report.print_status(result)
            results.append(result)
        return results

    def run_path(self, path: str, accepting=False,
                 format: str = c.DEFAULT_READER_FORMAT) -> list[TestResult]:
        b.debug(f"collecting tests from '{path}'")
        group = tgroup.TestGroup.from_path(path, self.engine)
        return self.run_test_group(group, tc.TestParser(self.engine, format), accepting)
