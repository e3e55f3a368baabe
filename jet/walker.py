"""
Walk files and directory trees and hand matching entries to a Dispatcher.

The walk itself runs on the calling thread, depth first, directories before
their contents and siblings in name order. Every entry that survives the
depth, hidden, and glob checks is edited on its own thread; walk() waits for
all of them before it returns.
"""
import os
import stat

from . import logme
from .config import STDIN
from .dispatch import Dispatcher, FileTask, TaskGroup, match_glob

__all__ = ['Walker', 'depth', 'is_hidden']


class Walker(object):

    """Filtered depth first walk over the configured paths.

    :config:     A TraversalConfig.
    :dispatcher: Optional Dispatcher, one is built from config if not given.
    """

    def __init__(self, config, dispatcher=None):
        self.config     = config
        self.dispatcher = dispatcher if dispatcher else Dispatcher(config)
        self.group      = None

    def log(self, message, kind='info'):
        logme.log(message, self.config.logfile, kind=kind,
                  level=self.config.level)

    def walk(self, paths=None):
        """Edit every path in paths, or in config.paths if None.

        STDIN is handled right away. Everything else is walked and
        dispatched, and this only returns once every task is done.
        """
        if paths is None:
            paths = self.config.paths
        self.group = None
        try:
            for path in paths:
                if path == STDIN:
                    self.dispatcher.edit_stdin()
                    continue
                # Only file tasks need the group and its progress bar
                if self.group is None:
                    self.group = TaskGroup(self.config.jobs,
                                           self.config.progress)
                self.walk_tree(path)
        finally:
            if self.group is not None:
                self.group.wait()

    def walk_tree(self, root):
        """Walk root, a file being a tree of one."""
        try:
            is_dir = stat.S_ISDIR(os.lstat(root).st_mode)
        except OSError as err:
            self.process_entry(root, False, err)
            return

        stack = [(root, is_dir)]
        while stack:
            path, is_dir = stack.pop()
            if not self.process_entry(path, is_dir) or not is_dir:
                continue
            try:
                with os.scandir(path) as entries:
                    children = sorted(
                        (entry.name, entry.is_dir(follow_symlinks=False))
                        for entry in entries
                    )
            except OSError as err:
                self.process_entry(path, is_dir, err)
                continue
            # Reversed so the first name is popped first
            for name, child_is_dir in reversed(children):
                stack.append(
                    (os.path.normpath(os.path.join(path, name)), child_is_dir)
                )

    def process_entry(self, path, is_dir, err=None):
        """Filter one entry and dispatch it if it passes.

        Returns False if the walk should not descend into this entry.
        """
        if err is not None:
            self.log(err, 'error')
            return False

        # Too deep, skip the whole directory
        if is_dir and 0 <= self.config.max_depth < depth(path):
            return False

        # Skip hidden files unless asked not to
        if is_hidden(os.path.basename(path)) and \
                not self.config.include_hidden:
            return False

        if match_glob(self.config.glob, path):
            self.dispatch(FileTask(path, is_dir))
        return True

    def dispatch(self, task):
        """Edit task on its own thread."""
        self.group.spawn(self.dispatcher.run, task)


###############################################################################
#                              Helper Functions                               #
###############################################################################


def depth(path):
    """Return the depth of path as its separator count plus one."""
    return path.count(os.sep) + 1


def is_hidden(name):
    """Return True if name starts with a dot and is not . or .."""
    return name not in ('.', '..') and name.startswith('.')
