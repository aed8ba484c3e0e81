DEFAULT_READER_FORMAT = "markdown"  # test files and input blocks without a format
NATIVE_FORMAT = "native"  # pandoc's own serialization; default for expected blocks
NATIVE_FORMAT_ALIASES = ("haskell",)  # class names that mean NATIVE_FORMAT
CITEPROC_FILTER = "citeproc"  # reserved filter name, not a file
OPTIONS_FILENAME = "perevir.yaml"  # group-wide options, sibling of the test files
OPTIONS_METAFIELD = "perevir"  # metadata field holding per-test options
EXPECTED_ID = "expected"  # identifier given to newly appended output blocks
PANDOC_COMMAND_ENV = "PEREVIR_PANDOC"  # overrides the pandoc executable
PANDOC_COMMAND_DEFAULT = "pandoc"
ACCEPT_WRITER_FORMAT = "markdown-fenced_divs-simple_tables"  # for rewritten test files
SECTION_CLASS = "section"  # class of the Divs created by make_sections
