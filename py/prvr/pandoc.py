"""Technical operations on the pandoc executable, exchanging documents as pandoc JSON."""
import dataclasses
import json
import os
import subprocess as sp
import sys
import tempfile
import typing as tg

import base as b
import prvr.constants as c
import prvr.doctree as dt
from prvr.errors import EngineError, FilterError

# Runs a Lua filter on a JSON document from stdin; FORMAT is what the filter would see
# when converting to the target format.
LUA_FILTER_RUNNER = """\
local filter, format = arg[1], arg[2]
local env = setmetatable({FORMAT = format}, {__index = _G})
local doc = pandoc.read(io.read 'a', 'json')
doc = pandoc.utils.run_lua_filter(doc, filter, env)
io.write(pandoc.write(doc, 'json'))
"""


@dataclasses.dataclass(frozen=True)
class FilterEnv:
    """What a filter is told about the conversion it takes part in."""
    target_format: str


class Pandoc:
    """The document engine: parse, serialize, process citations, run filters."""

    def __init__(self, command: b.OStr = None):
        self.command = command or os.environ.get(c.PANDOC_COMMAND_ENV, c.PANDOC_COMMAND_DEFAULT)
        self._api_version = None

    @property
    def api_version(self) -> list[int]:
        if self._api_version is None:
            self._api_version = self.read("")['pandoc-api-version']
        return self._api_version

    def read(self, text: str, format: str = c.DEFAULT_READER_FORMAT, extensions: str = "") -> dt.Document:
        output = self.pipe(['--from', format + extensions, '--to', 'json'], text)
        return json.loads(output)

    def write(self, doc: dt.Document, format: str, extensions: str = "",
              standalone=False, wrap: b.OStr = None) -> str:
        """Like pandoc.write in Lua: the result has no final newline."""
        args = ['--from', 'json', '--to', format + extensions]
        if standalone:
            args.append('--standalone')
        if wrap:
            args.append(f'--wrap={wrap}')
        output = self.pipe(args, self.dumps(doc))
        return output[:-1] if output.endswith('\n') else output

    def citeproc(self, doc: dt.Document) -> dt.Document:
        try:
            output = self.pipe(['--from', 'json', '--to', 'json', '--citeproc'], self.dumps(doc))
        except EngineError as ex:
            raise FilterError(c.CITEPROC_FILTER, ex.stderr.strip()) from ex
        return json.loads(output)

    def run_filter(self, doc: dt.Document, filterpath: str, env: FilterEnv) -> dt.Document:
        if not os.path.isfile(filterpath):
            raise FilterError(filterpath, "no such filter file")
        b.debug(f"running filter '{filterpath}' for target format '{env.target_format}'")
        if filterpath.endswith('.lua'):
            return self._run_lua_filter(doc, filterpath, env)
        if filterpath.endswith('.py'):
            cmd = [sys.executable, filterpath, env.target_format]
        else:
            cmd = [filterpath, env.target_format]
        try:
            run = sp.run(cmd, input=self.dumps(doc), capture_output=True, encoding='utf8')
        except OSError as ex:
            raise FilterError(filterpath, str(ex)) from ex
        if run.returncode != 0:
            raise FilterError(filterpath, run.stderr.strip() or f"exit code {run.returncode}")
        try:
            return json.loads(run.stdout)
        except json.JSONDecodeError as ex:
            raise FilterError(filterpath, f"output is not a JSON document: {ex}") from ex

    def _run_lua_filter(self, doc: dt.Document, filterpath: str, env: FilterEnv) -> dt.Document:
        with tempfile.NamedTemporaryFile('wt', suffix='.lua', encoding='utf8', delete=False) as script:
            script.write(LUA_FILTER_RUNNER)
        try:
            output = self.pipe(['lua', script.name, filterpath, env.target_format], self.dumps(doc))
        except EngineError as ex:
            raise FilterError(filterpath, ex.stderr.strip()) from ex
        finally:
            os.unlink(script.name)
        return json.loads(output)

    def pipe(self, args: tg.Sequence[str], input: str) -> str:
        """Runs pandoc with args, feeding input to stdin; returns stdout."""
        cmd = [self.command, *args]
        try:
            run = sp.run(cmd, input=input, capture_output=True, encoding='utf8')
        except FileNotFoundError:
            b.critical(f"pandoc executable '{self.command}' not found (set {c.PANDOC_COMMAND_ENV}?)")
        if run.returncode != 0:
            raise EngineError(cmd, run.returncode, run.stderr)
        return run.stdout

    def dumps(self, doc: dt.Document) -> str:
        if 'pandoc-api-version' not in doc:
            doc = dict(doc, **{'pandoc-api-version': self.api_version})
        return json.dumps(doc, ensure_ascii=False)
