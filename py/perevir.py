#!/usr/bin/env python3
import sys

import base as b
import prvr.argparser
import prvr.subcmd  # this is where the subcommands will be found


def main():  # uses sys.argv
    """Calls subcommand given on command line"""
    parser = prvr.argparser.PerevirArgParser(description="-")  # description is set lazily
    parser.scan("prvr.subcmd.*")
    args = parser.parse_args()
    try:
        parser.execute_subcommand(args)
    except b.CritialError:
        sys.exit(1)  # b.critical has already printed a message


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass  # quit silently
