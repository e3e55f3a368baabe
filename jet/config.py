"""
Run configuration shared read-only by the walker and the edit workers.
"""
import os

from .transform import TransformChain

############################
#  Customizable constants  #
############################

DEFAULT_GLOB  = '*'
DEFAULT_DEPTH = -1  # Negative means no limit
STDIN         = '-'  # Path argument meaning stdin/stdout
TERMINATOR    = b'\x00'  # Ends stdin input early


class ConfigError(Exception):

    """Raised when the command line cannot produce a valid run."""

    pass


class UsageError(ConfigError):

    """Raised when required arguments are missing."""

    pass


class TraversalConfig(object):

    """Everything a run needs to know, built once before walking.

    :chain:          The TransformChain to apply.
    :paths:          Files, directories, or STDIN, normalized on init.
    :glob:           Base names must match this to be edited.
    :include_hidden: Enter hidden directories and edit hidden files.
    :max_depth:      Skip directories deeper than this, -1 for no limit.
    :replace_names:  Also replace matches in file and directory names.
    :names_only:     Only replace matches in names, never touch contents.
    :to_stdout:      Print edited contents instead of writing them back.
    :verbose:        Log every rename and every write.
    :jobs:           Maximum number of concurrent file tasks, None for no
                     limit.
    :progress:       Show a progress bar of finished file tasks.
    :logfile:        Write diagnostics here instead of STDERR.
    """

    def __init__(self, chain, paths, glob=DEFAULT_GLOB, include_hidden=False,
                 max_depth=DEFAULT_DEPTH, replace_names=False,
                 names_only=False, to_stdout=False, verbose=False, jobs=None,
                 progress=False, logfile=None):
        if not isinstance(chain, TransformChain):
            chain = build_chain(chain)
        self.chain          = chain
        self.paths          = [os.path.normpath(p) for p in paths]
        self.glob           = glob
        self.include_hidden = include_hidden
        self.max_depth      = int(max_depth)
        self.replace_names  = replace_names
        self.names_only     = names_only
        self.to_stdout      = to_stdout
        self.verbose        = verbose
        self.jobs           = jobs
        self.progress       = progress
        self.logfile        = logfile

    @property
    def names(self):
        """True if file and directory names should be edited."""
        return self.replace_names or self.names_only

    @property
    def level(self):
        """The minimum level diagnostics are logged at."""
        return 'info' if self.verbose else 'warn'

    @property
    def uses_stdin(self):
        """True if the only path is STDIN."""
        return STDIN in self.paths

    def validate(self):
        """Raise ConfigError if this configuration cannot be run."""
        if not len(self.chain):
            raise UsageError('no pattern and replacement given')
        if not self.paths:
            raise UsageError('no input files given')
        if len(self.paths) > 1 and self.uses_stdin:
            raise ConfigError(
                'cannot edit multiple files and stdin at the same time'
            )
        if self.jobs is not None and self.jobs < 1:
            raise ConfigError(
                'jobs must be a positive number, not {}'.format(self.jobs)
            )
        return self

    def __repr__(self):
        return ('TraversalConfig(chain={}, paths={}, glob={!r}, '
                'max_depth={})').format(self.chain, self.paths, self.glob,
                                         self.max_depth)


def build_chain(pairs):
    """Return a TransformChain from (pattern, replacement) string pairs.

    Raises re.error on the first invalid pattern.
    """
    return TransformChain.from_pairs(pairs)
