"""Reporting test results: status lines, diffs, summary table, YAML report file."""
import dataclasses
import datetime as dt
import difflib
import enum
import typing as tg

import rich

import base as b


class Outcome(enum.Enum):
    PASS = "passed"
    FAIL = "FAILED"
    DISABLED = "disabled"
    ACCEPTED = "accepted"


@dataclasses.dataclass
class TestResult:
    filepath: str
    outcome: Outcome
    message: str = ""

    @property
    def success(self) -> bool:
        return self.outcome is not Outcome.FAIL

    def __str__(self) -> str:
        return f"{self.outcome.value}: {self.filepath}" + (f" ({self.message})" if self.message else "")


def print_status(result: TestResult):
    if result.outcome is Outcome.FAIL:
        b.error(str(result))
    elif result.outcome is Outcome.DISABLED:
        b.warning(str(result))
    else:
        b.info(str(result))


def diff_lines(expected: str, actual: str) -> list[str]:
    """Context diff in the manner of 'diff -c expected actual'."""
    return list(difflib.context_diff(expected.splitlines(keepends=True),
                                     actual.splitlines(keepends=True),
                                     fromfile='expected', tofile='actual'))


def print_diff(expected: str, actual: str):
    b.print_diff(diff_lines(expected, actual))


def all_succeeded(results: tg.Iterable[TestResult]) -> bool:
    return all(r.success for r in results)


def print_summary(results: list[TestResult]):
    if not results:
        b.warning("No tests found.")
        return
    table = b.Table()
    table.add_column("Outcome")
    table.add_column("#Tests", justify="right")
    for outcome in Outcome:
        count = sum(1 for r in results if r.outcome is outcome)
        if count:
            table.add_row(outcome.value, str(count))
    rich.print(table)


def write_yaml_report(results: list[TestResult], output_file: str):
    report_data = {
        'timestamp': dt.datetime.now().isoformat(timespec='seconds'),
        'total': len(results),
        'succeeded': all_succeeded(results),
        'results': [dict(file=r.filepath, outcome=r.outcome.name.lower(), message=r.message)
                    for r in results],
    }
    b.spit_yaml(output_file, report_data)
    b.info(f"YAML report saved to: {output_file}")
