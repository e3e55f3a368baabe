"""
Logging with timestamps and optional log files.

================================================================================

          FILE: logme
        AUTHOR: jet contributors
   DESCRIPTION: Print a timestamped message to a logfile or STDERR.
                If a terminal is used, colored flags are added.
                Colored flags are INFO, WARNING, ERROR, or CRITICAL.
                'level' can also be provided, logs will only print if
                kind >= level. critical>error>warn>info>debug

                Worker threads share the output, so every message is
                written as a single call under a module lock.

         USAGE: from jet import logme
                logme.log("Screw up!", <outfile>, kind='warn'|'error'|'info',
                          level='error')

                All arguments are optional except for the initial message.

================================================================================
"""
import sys
import bz2
import gzip
import logging
import threading
from datetime import datetime as dt

__all__ = ['log']

###################################
#  Constants for printing colors  #
###################################

WHITE  = '\033[97m'
YELLOW = '\033[93m'
RED    = '\033[91m'
BOLD   = '\033[1m'
ENDC   = '\033[0m'

LEVEL_MAP = {'debug': 0, 'info': 1, 'warn': 2, 'error': 3, 'critical': 4,
             'd': 0, 'i': 1, 'w': 2, 'e': 3, 'c': 4,
             0: 0, 1: 1, 2: 2, 3: 3, 4: 4, None: 0}
FLAG_MAP  = {0: 'DEBUG', 1: 'INFO', 2: 'WARNING', 3: 'ERROR',
             4: 'CRITICAL'}

_LOCK = threading.Lock()


def log(message, logfile=None, kind='info', level=None):
    """Print a string to logfile.

    :message: The message to print.
    :logfile: Optional file to log to, defaults to STDERR. Can be a path,
              an open file handle, or a logging object.
    :kind:    Prefix. Defaults to 'info', options:
        'debug':    '<timestamp> | DEBUG --> '
        'info':     '<timestamp> | INFO --> '
        'warn':     '<timestamp> | WARNING --> '
        'error':    '<timestamp> | ERROR --> '
        'critical': '<timestamp> | CRITICAL --> '
    :level:   The minimum print level, same flags as 'kind', messages with a
              kind below it are dropped.
    """
    message = str(message)
    kind = _get_level(kind)
    if kind < _get_level(level):
        return

    if logfile is None:
        logfile = sys.stderr

    with _LOCK:
        if isinstance(logfile, (logging.RootLogger, logging.Logger)):
            _logit(message, logfile, kind)
        elif isinstance(logfile, str):
            with _open_zipped(logfile, 'a') as outfile:
                _logit(message, outfile, kind)
        else:
            _logit(message, logfile, kind, color=_isatty(logfile))


###############################################################################
#                              Private Functions                              #
###############################################################################


def _get_level(kind):
    """Return the integer level for a kind or level flag."""
    try:
        return LEVEL_MAP[kind]
    except KeyError:
        raise ValueError('Invalid kind {}'.format(kind))


def _logit(message, output, kind, color=False):
    """Write message to file either with color or not.

    output must be filehandle or logging object.
    """
    if isinstance(output, (logging.RootLogger, logging.Logger)):
        output.log((kind + 1) * 10, message)
        return

    now = dt.now()
    timestamp = "{0}.{1:<3}".format(now.strftime("%Y%m%d %H:%M:%S"),
                                    str(int(now.microsecond/1000)))

    flag = FLAG_MAP[kind]
    flag_len = len('{0} | {1} --> '.format(timestamp, flag)) - 2

    if color:
        flag = _color(flag)

    # Format multiline message
    lines = message.split('\n')
    if len(lines) != 1:
        message = lines[0] + '\n'
        for line in lines[1:-1]:
            message = message + ''.ljust(flag_len, '-') + '> ' + line + '\n'
        message = message + ''.ljust(flag_len, '-') + '> ' + lines[-1]
    output.write('{0} | {1} --> {2}\n'.format(timestamp, flag, message))
    output.flush()


def _color(flag):
    """Return the flag with correct color codes."""
    if flag == 'INFO':
        return BOLD + WHITE + flag + ENDC
    if flag == 'WARNING':
        return BOLD + YELLOW + flag + ENDC
    if flag in ('ERROR', 'CRITICAL'):
        return BOLD + RED + flag + ENDC
    return flag


def _isatty(output):
    """Return True if output is a terminal."""
    isatty = getattr(output, 'isatty', None)
    return bool(isatty and isatty())


def _open_zipped(infile, mode='r'):
    """Open a plain, gzipped, or bz2 log file path."""
    mode = mode[0] + 't'
    if infile.endswith('.gz'):
        return gzip.open(infile, mode)
    if infile.endswith('.bz2'):
        return bz2.open(infile, mode)
    return open(infile, mode)
