#!/usr/bin/env python3
"""
Name: du
Description: display disk usage statistics
Author: Greg Hewgill, greg@hewgill.com (Original Perl Author)
License: perl
"""

import sys
import os
import re
import stat
import math
from collections import namedtuple

# Constants
EX_SUCCESS = 0
EX_FAILURE = 1
VERSION = '1.2'
SIZE_WIDTH = 8
BYTE_CONV = 1024
UNITS = ('K', 'M', 'G', 'T')
MAX_DEPTH_OPTION = '--max-depth='
UNLIMITED = -1

USAGE = """\
usage: {prog} [-ach] [--max-depth=N] [file ...]

Summarize disk usage of each FILE, recursively for directories.

  -a              write counts for all files, not just directories
  -c              produce a grand total
  -h              print sizes in human readable format (e.g., 1K 234M 2G)
  --max-depth=N   print the total for a directory only if it is N or
                  fewer levels below the command line argument
  --help          display this help and exit
  --version       output version information and exit
"""

Configuration = namedtuple(
    'Configuration',
    ['show_all', 'grand_total', 'human_readable', 'max_depth', 'program_name'],
    defaults=[False, False, False, UNLIMITED, 'du'],
)


def depth_ok(depth, max_depth):
    """True if an entry `depth` levels below its target may be reported."""
    return max_depth == UNLIMITED or depth <= max_depth


def _ceil_div(n, d):
    return -(-n // d)


def format_human(kib):
    """
    Renders a size in KiB with a K/M/G/T suffix.

    The largest unit keeping the scaled value at or above 1 is used. Values
    of 10 or more are rounded up to a whole unit, smaller ones are rounded
    up to the nearest tenth. The arithmetic stays in integers so exact
    boundaries (1024K, 10M, ...) never drift upwards.
    """
    if not kib:
        return '0'

    divisor = 1
    unit = UNITS[0]
    for power, candidate in enumerate(UNITS):
        if kib >= BYTE_CONV ** power:
            divisor = BYTE_CONV ** power
            unit = candidate

    if kib >= 10 * divisor:
        return f"{_ceil_div(kib, divisor)}{unit}"
    tenths = _ceil_div(kib * 10, divisor)
    return f"{tenths // 10}.{tenths % 10}{unit}"


def block_usage(stats):
    """
    Returns the space allocated to an entry in KiB (512-byte blocks halved).
    """
    blocks = getattr(stats, 'st_blocks', None)
    if blocks is None:
        # No block count on this platform; round the byte size up to blocks.
        blocks = math.ceil(stats.st_size / 512)
    return blocks // 2


def is_file(mode):
    return stat.S_ISREG(mode) or stat.S_ISLNK(mode)


def child_path(parent, name):
    """Joins a directory and an entry name the way they are reported."""
    if parent == '/':
        return parent + name
    return f"{parent}/{name}"


def write_line(stream, text):
    """
    Writes `text` and a newline as raw bytes, so names that do not decode
    cleanly come out exactly as they are on disk.
    """
    buffer = getattr(stream, 'buffer', None)
    if buffer is None:
        stream.write(text + '\n')
        return
    stream.flush()
    buffer.write(os.fsencode(text) + b'\n')
    buffer.flush()


class DiskUsageTraverser:
    """
    Walks the command line targets, printing usage lines and collecting the
    grand total. The configuration is never modified once handed in.
    """
    def __init__(self, config):
        self.config = config

    def error(self, message):
        write_line(sys.stderr, f"{self.config.program_name}: {message}")

    def print_usage(self, size, path):
        """
        Writes one report line and hands `size` back for accumulation.
        """
        if self.config.human_readable:
            field = format_human(size)
        else:
            field = str(size)
        write_line(sys.stdout, f"{field:<{SIZE_WIDTH}}{path}")
        return size

    def run(self, paths):
        """
        Reports every target and returns the process exit status.
        """
        exit_status = EX_SUCCESS
        grand_total = 0

        if not paths:
            grand_total = self.walk('.', 0)

        for path in paths:
            try:
                stats = os.lstat(path)
            except OSError as e:
                self.error(f"cannot access '{path}': {e.strerror}")
                exit_status = EX_FAILURE
                continue

            # Named targets are always shown, -a only filters what we find.
            if is_file(stats.st_mode):
                grand_total += self.print_usage(block_usage(stats), path)
            elif stat.S_ISDIR(stats.st_mode):
                grand_total += self.walk(path, 0)

        if self.config.grand_total:
            self.print_usage(grand_total, 'total')

        return exit_status

    def walk(self, path, depth):
        """
        Sums the usage of a directory tree rooted at `path`.

        The directory's own blocks seed the total and every entry below it is
        added whether or not it gets a line of its own. A directory that
        cannot be read contributes only its own blocks.
        """
        config = self.config
        try:
            total = block_usage(os.lstat(path))
        except OSError as e:
            self.error(f"cannot access '{path}': {e.strerror}")
            return 0

        try:
            entries = os.scandir(path)
        except OSError as e:
            self.error(f"cannot read directory '{path}': {e.strerror}")
            return total

        with entries:
            try:
                for entry in entries:
                    total += self._visit(child_path(path, entry.name), depth + 1)
            except OSError as e:
                self.error(f"cannot read directory '{path}': {e.strerror}")
                return total

        if depth_ok(depth, config.max_depth):
            self.print_usage(total, path)
        return total

    def _visit(self, path, depth):
        try:
            stats = os.lstat(path)
        except OSError as e:
            # Removed between listing and stat.
            self.error(f"cannot access '{path}': {e.strerror}")
            return 0

        if (is_file(stats.st_mode) and self.config.show_all
                and depth_ok(depth, self.config.max_depth)):
            return self.print_usage(block_usage(stats), path)
        if stat.S_ISDIR(stats.st_mode):
            return self.walk(path, depth)
        return block_usage(stats)


def usage_error(program_name):
    write_line(sys.stderr, f"Try '{program_name} --help' for more information.")
    sys.exit(EX_FAILURE)


def parse_args(argv, program_name='du'):
    """
    Turns the argument list into a (Configuration, paths) pair.

    Options may be clustered (-ach) and mixed with operands in any order.
    Every bad option is reported before giving up, so one run shows all of
    them.
    """
    show_all = grand_total = human_readable = False
    max_depth = UNLIMITED
    paths = []
    invalid = show_help = show_version = False

    args = list(argv)
    while args:
        arg = args.pop(0)

        if arg == '--':
            paths.extend(args)
            break
        elif arg == '--help':
            show_help = True
        elif arg == '--version':
            show_version = True
        elif arg.startswith(MAX_DEPTH_OPTION):
            value = arg[len(MAX_DEPTH_OPTION):]
            if re.fullmatch(r'[0-9]+', value):
                max_depth = int(value)
            else:
                write_line(sys.stderr, f"{program_name}: invalid maximum depth '{value}'")
                invalid = True
        elif arg.startswith('--'):
            write_line(sys.stderr, f"{program_name}: unrecognized option '{arg}'")
            invalid = True
        elif arg.startswith('-') and arg != '-':
            for c in arg[1:]:
                if c == 'a':
                    show_all = True
                elif c == 'c':
                    grand_total = True
                elif c == 'h':
                    human_readable = True
                else:
                    write_line(sys.stderr, f"{program_name}: invalid option -- '{c}'")
                    invalid = True
        else:
            paths.append(arg)

    if invalid:
        usage_error(program_name)

    if show_help:
        write_line(sys.stdout, USAGE.format(prog=program_name).rstrip('\n'))
        sys.exit(EX_SUCCESS)
    if show_version:
        write_line(sys.stdout, f"{program_name} (Python Power Tools) {VERSION}")
        sys.exit(EX_SUCCESS)

    config = Configuration(show_all, grand_total, human_readable, max_depth, program_name)
    return config, paths


def main(argv=None):
    """Parses arguments and reports disk usage for each target."""
    if argv is None:
        argv = sys.argv[1:]
    program_name = os.path.basename(sys.argv[0]) or 'du'

    config, paths = parse_args(argv, program_name)
    traverser = DiskUsageTraverser(config)
    sys.exit(traverser.run(paths))


if __name__ == "__main__":
    main()
