"""Exceptions that fail a single test; the runner catches them and carries on."""


class PerevirError(Exception):
    pass


class AmbiguousBlock(PerevirError):
    """Two elements of one test file claim the same role."""
    def __init__(self, role: str, filepath: str = ""):
        self.role = role
        self.filepath = filepath
        super().__init__(f"Found two potential {role} blocks, bailing out.")


class MissingInput(PerevirError):
    def __init__(self, filepath: str = ""):
        self.filepath = filepath
        super().__init__(f"No input found in test file '{filepath}'")


class MissingOutput(PerevirError):
    def __init__(self, filepath: str = ""):
        self.filepath = filepath
        super().__init__(f"No expected output found in test file '{filepath}'")


class UnparsableExpected(PerevirError):
    def __init__(self, format: str, reason: str):
        self.format = format
        self.reason = reason
        super().__init__(f"Could not read the expected output as '{format}':\n{reason}")


class FilterError(PerevirError):
    def __init__(self, filter: str, reason: str):
        self.filter = filter
        self.reason = reason
        super().__init__(f"Filter '{filter}' failed: {reason}")


class UnknownCompareMode(PerevirError):
    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unknown compare mode '{mode}' (use 'documents' or 'strings')")


class CommandError(PerevirError):
    """A command test whose command line is not a pandoc invocation."""


class EngineError(PerevirError):
    """The document engine rejected its input or could not be run."""
    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_ = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"'{' '.join(args)}' exited with {returncode}: {stderr.strip()}")
