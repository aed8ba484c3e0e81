"""Shortcut typenames, global constants, basic helpers."""
import logging
import time
import typing as tg

import rich
import rich.console
import rich.markup
import rich.table
import yaml


starttime = time.time()
num_errors = 0
msgs_seen = set()
loglevel = logging.ERROR
loglevels = dict(DEBUG=logging.DEBUG, INFO=logging.INFO, WARNING=logging.WARNING,
                 ERROR=logging.ERROR, CRITICAL=logging.CRITICAL)
err_console = rich.console.Console(stderr=True, highlight=False)

OStr = tg.Optional[str]
StrAnyDict = dict[str, tg.Any]  # JSON or YAML structure


def set_loglevel(level: str):
    global loglevel
    if level in loglevels:
        loglevel = loglevels[level]
    else:
        pass  # simply ignore nonexisting loglevels


class CritialError(Exception):
    pass


def slurp(resource: str) -> str:
    """Reads local file."""
    try:
        with open(resource, 'rt', encoding='utf8') as f:
            return f.read()
    except OSError:
        critical(f"'{resource}' cannot be read")


def spit(filename: str, content: str):
    with open(filename, 'wt', encoding='utf8') as f:
        f.write(content)


def spit_yaml(filename: str, content: tg.Any):
    spit(filename, yaml.safe_dump(content, sort_keys=False, allow_unicode=True))


def debug(msg: str):
    if loglevel <= logging.DEBUG:
        rich_print(msg)


def info(msg: str):
    if loglevel <= logging.INFO:
        rich_print(msg, "green")


def warning(msg: str, file: str = None):
    if loglevel <= logging.WARNING:
        msg = _process_params(msg, file)
        rich_print(msg, "yellow")


def error(msg: str, file: str = None):
    if loglevel <= logging.ERROR:
        msg = _process_params(msg, file)
        rich_print(msg, "red", count=1)


def critical(msg: str):
    rich_print(msg, "bold red", count=1)
    raise CritialError(msg)


def finalmessage():
    timing = "%.1f seconds" % (time.time() - starttime)
    if num_errors > 0:
        info(f"==== {num_errors} error{plural_s(num_errors)}. {timing}. ====")
    else:
        info(f"::: {timing} :::")


def plural_s(number, value="s") -> str:
    return value if number != 1 else ""


def Table() -> rich.table.Table:
    """An empty Table in default perevir style"""
    return rich.table.Table(show_header=True, header_style="bold yellow",
                            show_edge=False, show_footer=False)


def rich_print(msg: str, enclose_in_tag: tg.Optional[str] = None, count=0):
    """Print any message; errors are counted once per distinct message."""
    global num_errors, msgs_seen
    if msg not in msgs_seen:
        msgs_seen.add(msg)
        num_errors += count
    msg = rich.markup.escape(msg)
    if enclose_in_tag:
        msg = f"[{enclose_in_tag}]{msg}[/{enclose_in_tag}]"
    rich.print(msg)


def print_diff(difflines: tg.Iterable[str]):
    """Write diff lines to stderr, colored by their leading marker."""
    styles = {'+': "green", '-': "red", '!': "yellow", '*': "bold", '@': "cyan"}
    for line in difflines:
        style = styles.get(line[:1])
        text = rich.markup.escape(line.rstrip('\n'))
        err_console.print(f"[{style}]{text}[/{style}]" if style else text)


def _process_params(msg: str, file: tg.Optional[str]):
    if file:
        msg = f"File '{file}':\n   {msg}"
    return msg


def _testmode_reset():
    """reset error counter; avoid text wrapping of b.error() etc."""
    global num_errors, msgs_seen, starttime
    starttime = time.time()
    num_errors = 0
    msgs_seen = set()
    rich.get_console()._width = 10000
