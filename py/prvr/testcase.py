"""
Test definitions: one test file is one TestCase.

A test file is a document (markdown by default) holding an input block,
an expected-output block and, optionally, a command block, recognized by
their identifiers (see prvr.blocks). Per-test options live in the
'perevir' metadata field, e.g.

    ---
    perevir:
      filters: [smallcaps.lua]
      ignore-softbreaks: true
    ---

    ```{#input .markdown}
    Stuff is *important*!
    ```

    ```{#output .native}
    [ Para [ Str "Stuff" , Space , Str "is" , Space , Emph [ Str "important" ] , Str "!" ] ]
    ```

Headings work as block markers too: a heading whose (auto-)identifier is
'input' or 'expected' turns the section below it into the input or output.
"""
import dataclasses
import enum
import typing as tg

import base as b
import prvr.blocks as blocks
import prvr.constants as c
import prvr.doctree as dt
from prvr.errors import AmbiguousBlock, MissingInput, UnknownCompareMode

if tg.TYPE_CHECKING:
    import prvr.pandoc


class CompareMode(enum.Enum):
    DOCUMENTS = "documents"
    STRINGS = "strings"


@dataclasses.dataclass
class TestOptions:
    """The options a test understands; unknown option names are ignored."""
    filters: list[str] = dataclasses.field(default_factory=list)
    ignore_softbreaks: bool = False
    metastrings_to_inlines: bool = False
    compare: str = CompareMode.DOCUMENTS.value
    disable: bool = False

    @classmethod
    def from_mapping(cls, mapping: b.StrAnyDict) -> 'TestOptions':
        filters = mapping.get('filters') or []
        if isinstance(filters, str):
            filters = [filters]
        return cls(filters=[str(f) for f in filters],
                   ignore_softbreaks=_as_bool(mapping.get('ignore-softbreaks')),
                   metastrings_to_inlines=_as_bool(mapping.get('metastrings-to-inlines')),
                   compare=str(mapping.get('compare') or CompareMode.DOCUMENTS.value),
                   disable=_as_bool(mapping.get('disable')))

    @property
    def compare_mode(self) -> CompareMode:
        try:
            return CompareMode(self.compare)
        except ValueError:
            raise UnknownCompareMode(self.compare) from None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', 'on', '1')
    return bool(value)


@dataclasses.dataclass
class TestCase:
    filepath: str  # "" for tests not read from a file
    document: dt.Document  # the full test file; only acceptance modifies it
    meta_options: b.StrAnyDict  # option name -> plain value, as found in the file
    input: tg.Optional[dt.Element] = None  # CodeBlock or Div
    output: tg.Optional[dt.Element] = None  # CodeBlock or Div
    command: tg.Optional[dt.Element] = None  # CodeBlock
    output_is_section: bool = False  # output is the section below a heading

    @property
    def options(self) -> TestOptions:
        return TestOptions.from_mapping(self.meta_options)

    @property
    def is_command_test(self) -> bool:
        return self.command is not None

    @property
    def target_format(self) -> str:
        """Format of the expected output; filters see it as the target format."""
        if self.output is None or self.output['t'] != 'CodeBlock':
            return c.NATIVE_FORMAT
        classes = dt.classes(self.output)
        format = dt.attributes(self.output).get('format') or (classes[0] if classes else c.NATIVE_FORMAT)
        return c.NATIVE_FORMAT if format in c.NATIVE_FORMAT_ALIASES else format

    @property
    def target_extensions(self) -> str:
        if self.output is None or self.output['t'] != 'CodeBlock':
            return ""
        return dt.attributes(self.output).get('extensions', "")

    def require_input(self) -> dt.Element:
        if self.input is None:
            raise MissingInput(self.filepath)
        return self.input

    def with_defaults(self, defaults: b.StrAnyDict) -> 'TestCase':
        """This test with group-wide options added; the test's own settings win."""
        merged = dict(self.meta_options)
        for name, value in defaults.items():
            if name not in merged:
                merged[name] = value
        return dataclasses.replace(self, meta_options=merged)


class TestParser:
    """Turns test files into TestCases."""

    def __init__(self, engine: 'prvr.pandoc.Pandoc', format: str = c.DEFAULT_READER_FORMAT):
        self.engine = engine
        self.format = format

    def create_test(self, filepath: str) -> TestCase:
        with open(filepath, 'rt', encoding='utf8') as f:
            text = f.read()
        return self.parse(text, filepath)

    def parse(self, text: str, filepath: str = "") -> TestCase:
        return self.from_document(self.engine.read(text, self.format), filepath)

    def from_document(self, doc: dt.Document, filepath: str = "") -> TestCase:
        found = self.find_test_blocks(doc, filepath)
        input_ = self.in_document(doc, found.get(blocks.Role.INPUT))
        output = self.in_document(doc, found.get(blocks.Role.OUTPUT))
        if input_ is not None and dt.is_section(input_):
            input_ = dt.without_section_header(input_)
        output_is_section = output is not None and dt.is_section(output)
        if output_is_section:
            output = dt.without_section_header(output)
        return TestCase(filepath=filepath, document=doc,
                        meta_options=self.options_of(doc, filepath),
                        input=input_, output=output, command=found.get(blocks.Role.COMMAND),
                        output_is_section=output_is_section)

    @staticmethod
    def find_test_blocks(doc: dt.Document, filepath: str = "") -> dict[blocks.Role, dt.Element]:
        """Input, output, and command element of doc, looked for in its sectioned form."""
        found = {}
        for el in dt.elements(dt.make_sections(doc['blocks'])):
            role = blocks.role_of(el)
            if role is None:
                continue
            if role in found:
                raise AmbiguousBlock(role.value, filepath)
            found[role] = el
        return found

    @staticmethod
    def in_document(doc: dt.Document, el: tg.Optional[dt.Element]) -> tg.Optional[dt.Element]:
        """The element of doc that el was made from; sectioning rebuilds Divs that hold headings."""
        if el is None or el['t'] != 'Div' or dt.is_section(el):
            return el
        for candidate in dt.elements(doc['blocks']):
            if candidate.get('t') == 'Div' and dt.identifier(candidate) == dt.identifier(el):
                return candidate
        return el

    @staticmethod
    def options_of(doc: dt.Document, filepath: str = "") -> b.StrAnyDict:
        metavalue = doc.get('meta', {}).get(c.OPTIONS_METAFIELD)
        if metavalue is None:
            return {}
        options = dt.meta_to_python(metavalue)
        if not isinstance(options, dict):
            b.warning(f"'{c.OPTIONS_METAFIELD}' metadata is not a mapping; ignored", file=filepath)
            return {}
        return options
