"""
jet - Just Edit Text

Replace all the substrings matched by regular expressions in one or more
files. Directories are walked recursively and every file in the tree is
edited.

Usage:
  jet [options] pattern replacement input-files...
  jet [options] -e pattern1 replacement1 -e pattern2 replacement2 input-files...

When -e is used more than once, the pairs are applied in the order they are
given, each one to the output of the one before it. The replacement is
inserted as written, except that $1 or ${1} is replaced by the first group,
$name or ${name} by a named group, and $$ by a single dollar sign. Use - as
the only input file to edit stdin and print to stdout.
"""
import re
import sys
import argparse

from . import logme
from .config import (DEFAULT_DEPTH, DEFAULT_GLOB, ConfigError,
                     TraversalConfig, UsageError, build_chain)
from .walker import Walker

PAIR_FLAGS  = ('-e', '--expression')
VALUE_FLAGS = ('-g', '--glob', '-l', '--max-depth', '-j', '--jobs', '--log')

EPILOG = """\
Examples:
  jet "foo" "bar" my/path1 my/path2
    Replace all occurrences of "foo" with "bar" in the files under my/path1
    and my/path2.

  jet -e "foo" "bar" -e "baz" "qux" my/path1 my/path2
    Replace all occurrences of "foo" with "bar" and "baz" with "qux" in the
    files under my/path1 and my/path2.

  jet -p -v "foo" "bar" my/path1
    Replace "foo" with "bar" in my/path1 and print the results to stdout
    with verbose output.

  jet -e "foo" "bar" -e "baz" "qux" -g "*.txt" -a my/path1
    Replace "foo" with "bar" and "baz" with "qux" in all text files,
    including hidden files, under my/path1.
"""


def split_pairs(argv):
    """Pull every -e pattern replacement out of argv.

    Returns (pairs, remaining) with pairs in command line order. Values of
    other options are never read as -e, and nothing after -- is touched.
    """
    pairs = []
    rest  = []
    args  = iter(argv)
    for arg in args:
        if arg == '--':
            rest.append(arg)
            rest.extend(args)
            break
        if arg in PAIR_FLAGS:
            pair = (next(args, None), next(args, None))
            if None in pair:
                raise UsageError('{} needs a pattern and a replacement'
                                 .format(arg))
            pairs.append(pair)
            continue
        rest.append(arg)
        if arg in VALUE_FLAGS:
            value = next(args, None)
            if value is not None:
                rest.append(value)
    return pairs, rest


def get_parser():
    """Command Line Argument Parsing"""
    parser = argparse.ArgumentParser(
        prog='jet', description=__doc__, epilog=EPILOG,
        usage=argparse.SUPPRESS,
        formatter_class=argparse.RawDescriptionHelpFormatter)

    # Optional Arguments
    parser.add_argument('-p', dest='to_stdout', action='store_true',
                        help="Print to stdout instead of modifying files.")
    parser.add_argument('-v', dest='verbose', action='store_true',
                        help="Enable verbose mode; explain what is being "
                        "done.")
    parser.add_argument('-g', '--glob', default=DEFAULT_GLOB,
                        help="Only process files matching the given glob "
                        "pattern.")
    parser.add_argument('-a', dest='include_hidden', action='store_true',
                        help="Include hidden files (those starting with a "
                        "dot).")
    parser.add_argument('-l', '--max-depth', type=int, default=DEFAULT_DEPTH,
                        help="Maximum depth for directory traversal.")
    parser.add_argument('-r', '--replace-names', action='store_true',
                        help="Replace matches in file and directory names.")
    parser.add_argument('-n', '--names-only', action='store_true',
                        help="Only replace matching names, ignoring file "
                        "contents.")
    parser.add_argument('-j', '--jobs', type=int,
                        help="Edit at most this many files at once "
                        "(Default: no limit).")
    parser.add_argument('--progress', action='store_true',
                        help="Show a progress bar of edited files.")
    parser.add_argument('--log', dest='logfile',
                        help="Write diagnostics to this file instead of "
                        "STDERR.")
    parser.add_argument('-e', '--expression', nargs=2,
                        metavar=('pattern', 'replacement'),
                        help="Specify a regular expression pattern and "
                        "replacement. Can be used multiple times.")

    # Positional Arguments
    parser.add_argument('args', nargs='*', metavar='input-files',
                        help="pattern replacement input-files... or only "
                        "input-files... when -e is used.")

    return parser


def parse_args(argv):
    """Return a validated TraversalConfig from argv.

    Raises ConfigError for missing or conflicting arguments and re.error for
    invalid patterns.
    """
    pairs, rest = split_pairs(argv)
    args = get_parser().parse_intermixed_args(rest)

    # With -e every positional is a path, otherwise the first two are the
    # pattern and the replacement.
    positional = args.args
    if pairs:
        if not positional:
            raise UsageError('no input files given')
        paths = positional
    else:
        if len(positional) < 3:
            raise UsageError('a pattern, a replacement, and input files '
                             'are required')
        pairs = [tuple(positional[:2])]
        paths = positional[2:]

    config = TraversalConfig(
        build_chain(pairs), paths, glob=args.glob,
        include_hidden=args.include_hidden, max_depth=args.max_depth,
        replace_names=args.replace_names, names_only=args.names_only,
        to_stdout=args.to_stdout, verbose=args.verbose, jobs=args.jobs,
        progress=args.progress, logfile=args.logfile,
    )
    return config.validate()


def main(argv=None):
    """Run as a script."""
    if argv is None:
        argv = sys.argv[1:]

    try:
        config = parse_args(argv)
    except ConfigError as err:
        logme.log(err, kind='error')
        if isinstance(err, UsageError):
            sys.stderr.write(get_parser().format_help())
        return 1
    except re.error as err:
        logme.log('invalid pattern: {}'.format(err), kind='error')
        return 1

    logme.log('replacing {}'.format(config.chain), config.logfile,
              level=config.level)
    Walker(config).walk()
    return 0


if __name__ == '__main__' and '__file__' in globals():
    sys.exit(main())
