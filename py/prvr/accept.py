"""Accept mode: write the actual result into a test file as its new expected output."""
import re
import typing as tg

import base as b
import prvr.constants as c
import prvr.doctree as dt
from prvr.errors import PerevirError

if tg.TYPE_CHECKING:
    import prvr.pandoc
    import prvr.testcase

Writers = dict[str, tg.Callable[[dt.Document], str]]
Result = tg.Union[dt.Document, str]


def serialize(engine: 'prvr.pandoc.Pandoc', writers: Writers, doc: dt.Document,
              format: str, extensions: str = "") -> str:
    """doc as text in the given format; with a template if doc has metadata, so it survives."""
    if format in writers:
        return writers[format](doc)
    return engine.write(doc, format, extensions, standalone=dt.has_meta(doc))


class AcceptanceRewriter:
    def __init__(self, engine: 'prvr.pandoc.Pandoc', writers: tg.Optional[Writers] = None):
        self.engine = engine
        self.writers = writers or {}

    def accept(self, test: 'prvr.testcase.TestCase', actual: Result):
        """Puts actual into the test's output block (or a new one at the end) and rewrites the file."""
        output = test.output
        if output is None or output['t'] == 'CodeBlock':
            if isinstance(actual, str):
                actual_str = actual
            else:
                actual_str = serialize(self.engine, self.writers, actual,
                                       test.target_format, test.target_extensions)
            if output is None:
                test.document['blocks'].append(dt.code_block(actual_str, c.EXPECTED_ID))
            else:
                dt.set_code_text(output, actual_str)
        else:
            if isinstance(actual, str):
                raise PerevirError(f"cannot put text output into the Div '{dt.identifier(output)}'")
            if test.output_is_section:
                self.replace_section(test.document, dt.identifier(output), actual['blocks'])
            else:
                dt.set_div_content(output, actual['blocks'])
        b.spit(test.filepath, self.render(test.document) + "\n")

    @staticmethod
    def replace_section(doc: dt.Document, ident: str, newblocks: list[dt.Element]):
        """Replaces what follows the heading `ident`, up to the next heading of its rank or higher."""
        extent = dt.section_extent(doc['blocks'], ident)
        if extent is None:
            raise PerevirError(f"cannot find the heading of output section '{ident}'")
        blocklist, start, end = extent
        blocklist[start+1:end] = newblocks

    def render(self, doc: dt.Document) -> str:
        """doc as markdown with code blocks fenced the GitHub way and line wrapping unchanged."""
        githubbish = dt.walk(doc, {'CodeBlock': self.language_fenced})
        return self.engine.write(githubbish, c.ACCEPT_WRITER_FORMAT,
                                 standalone=True, wrap='preserve')

    def language_fenced(self, codeblock: dt.Element) -> tg.Optional[dt.Element]:
        """Code block with first class 'lang' as raw markdown with fence "``` lang {...}"."""
        classes = dt.classes(codeblock)
        if not classes:
            return None
        identifier, attributes = dt.identifier(codeblock), dt.attributes(codeblock)
        rest = dt.code_block(dt.code_text(codeblock), identifier, classes[1:], attributes)
        mdcode = self.engine.write(dt.document([rest]), 'markdown')
        if not mdcode.startswith('`'):
            return None  # an indented code block: keep the class instead
        fenced = re.sub(r'^(`+)', lambda mm: f"{mm.group(1)} {classes[0]}", mdcode, count=1)
        return dt.raw_block('markdown', fenced)
