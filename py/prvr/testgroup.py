"""Test files found at a path, plus the options shared by all of them."""
import dataclasses
import enum
import os
import typing as tg

import base as b
import prvr.constants as c
import prvr.doctree as dt
import prvr.testcase as tc
from prvr.errors import EngineError, PerevirError

if tg.TYPE_CHECKING:
    import prvr.pandoc


class EntryState(enum.Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"
    PARSE_FAILED = "parse failed"


@dataclasses.dataclass
class TestEntry:
    """A test file that is parsed only when it is about to run."""
    filepath: str
    state: EntryState = EntryState.UNPARSED
    testcase: tg.Optional[tc.TestCase] = None
    error: tg.Optional[Exception] = None

    def load(self, parser: tc.TestParser) -> 'TestEntry':
        if self.state is EntryState.UNPARSED:
            try:
                self.testcase = parser.create_test(self.filepath)
                self.state = EntryState.PARSED
            except (PerevirError, OSError, UnicodeDecodeError) as ex:
                self.error = ex
                self.state = EntryState.PARSE_FAILED
        return self


@dataclasses.dataclass
class TestGroup:
    entries: list[TestEntry]
    options: b.StrAnyDict  # defaults for every test of the group

    @classmethod
    def from_path(cls, path: str, engine: 'prvr.pandoc.Pandoc') -> 'TestGroup':
        """
        A file yields a group of one, a directory a group of all files directly in it.
        Options come from the options file next to the file or in the directory.
        """
        if os.path.isdir(path):
            testfiles = []
            optionsfile = None
            for name in sorted(os.listdir(path)):
                filepath = os.path.join(path, name)
                if name == c.OPTIONS_FILENAME:
                    optionsfile = filepath
                elif os.path.isdir(filepath):
                    b.debug(f"skipping subdirectory '{filepath}'")
                else:
                    testfiles.append(filepath)
        elif os.path.exists(path):
            testfiles = [path]
            optionsfile = os.path.join(os.path.dirname(path), c.OPTIONS_FILENAME)
            if not os.path.isfile(optionsfile):
                optionsfile = None
        else:
            b.critical(f"'{path}' does not exist")
        options = read_options(optionsfile, engine) if optionsfile else {}
        return cls([TestEntry(fp) for fp in testfiles], options)


def read_options(optionsfile: str, engine: 'prvr.pandoc.Pandoc') -> b.StrAnyDict:
    """Reads an options file as the metadata block of an otherwise empty markdown document."""
    b.debug(f"reading group options from '{optionsfile}'")
    text = b.slurp(optionsfile)
    if not text.lstrip().startswith('---'):
        text = f"---\n{text.rstrip()}\n---\n"
    try:
        meta = engine.read(text, c.DEFAULT_READER_FORMAT)['meta']
    except EngineError as ex:
        b.critical(f"'{optionsfile}': {ex.stderr.strip()}")
    return dt.meta_dict(meta)
