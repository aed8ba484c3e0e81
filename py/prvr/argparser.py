import importlib.metadata
import os

import argparse_subcommand as ap_sub


class PerevirArgParser(ap_sub.ArgumentParser):
    """One-trick pony class for obtaining the version-bearing description only when needed."""

    def format_help(self):
        self.description = f"perevir {self.get_version()}: Test tool for pandoc document transformations."
        return super().format_help()

    @staticmethod
    def get_version() -> str:
        try:
            return importlib.metadata.version('perevir')
        except importlib.metadata.PackageNotFoundError:  # development tree: py/prvr/argparser.py
            import tomllib
            topdir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
            with open(os.path.join(topdir, "pyproject.toml"), 'rb') as f:
                return tomllib.load(f)['project']['version']
