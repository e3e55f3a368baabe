"""
Apply a TransformChain to single files, their names, or stdin.

Every selected file becomes a FileTask that runs on its own thread. A
TaskGroup counts the tasks still running so the walker can wait for all of
them before returning.
"""
import os
import sys
import threading
from fnmatch import fnmatchcase

from tqdm import tqdm

from . import logme
from .config import TERMINATOR

__all__ = ['FileTask', 'TaskGroup', 'Dispatcher']


class FileTask(object):

    """One filesystem entry selected for editing."""

    def __init__(self, path, is_dir=False):
        self.path   = path
        self.is_dir = is_dir

    def __repr__(self):
        return 'FileTask({!r}, is_dir={})'.format(self.path, self.is_dir)


class TaskGroup(object):

    """Run callables on their own threads and wait for all of them.

    :jobs:     Maximum number of callables running at once, None for no
               limit.
    :progress: Show a progress bar of finished tasks on STDERR.
    """

    def __init__(self, jobs=None, progress=False):
        self.pending = 0
        self._done   = threading.Condition()
        self._slots  = threading.BoundedSemaphore(jobs) if jobs else None
        self._bar    = tqdm(unit='files', file=sys.stderr) if progress \
            else None

    def spawn(self, func, *args):
        """Start func(*args) on a new thread."""
        if self._slots:
            self._slots.acquire()
        with self._done:
            self.pending += 1
        thread = threading.Thread(target=self._run, args=(func, args))
        try:
            thread.start()
        except RuntimeError:
            self._finish()
            raise
        return thread

    def _run(self, func, args):
        try:
            func(*args)
        finally:
            self._finish()

    def _finish(self):
        """Release a slot and count one task as done."""
        if self._slots:
            self._slots.release()
        with self._done:
            self.pending -= 1
            if self._bar is not None:
                self._bar.update(1)
            if not self.pending:
                self._done.notify_all()

    def wait(self):
        """Block until every spawned task has finished."""
        with self._done:
            while self.pending:
                self._done.wait()
        if self._bar is not None:
            self._bar.close()


class Dispatcher(object):

    """Edit file contents and names with a TransformChain.

    :config: A TraversalConfig, read-only.
    :stdin:  Binary stream to read in stdin mode, defaults to sys.stdin.
    :stdout: Binary stream for printed output, defaults to sys.stdout.
    """

    def __init__(self, config, stdin=None, stdout=None):
        self.config  = config
        self.chain   = config.chain
        self._stdin  = stdin
        self._stdout = stdout
        self._write  = threading.Lock()

    @property
    def stdin(self):
        if self._stdin is not None:
            return self._stdin
        return getattr(sys.stdin, 'buffer', sys.stdin)

    @property
    def stdout(self):
        if self._stdout is not None:
            return self._stdout
        return getattr(sys.stdout, 'buffer', sys.stdout)

    def log(self, message, kind='info'):
        """Log message with the configured logfile and level."""
        logme.log(message, self.config.logfile, kind=kind,
                  level=self.config.level)

    ####################
    #  Task Execution  #
    ####################

    def run(self, task):
        """Edit one FileTask: its name first, then its contents."""
        if self.config.names:
            task.path = self.edit_filename(task.path)
        if task.is_dir or self.config.names_only:
            return
        if self.match_glob(task.path):
            self.edit(task.path)

    def match_glob(self, path):
        """Return True if the base name of path matches the glob."""
        return match_glob(self.config.glob, path)

    def edit(self, path):
        """Replace matches in the contents of path.

        In stdout mode the result is printed and the file is left alone.
        Otherwise the file is only rewritten if some pattern matches.
        """
        try:
            with open(path, 'rb') as fin:
                content = fin.read()
        except OSError as err:
            self.log(err, 'error')
            return

        if self.config.to_stdout:
            self.emit(self.chain.replace_all(content))
            return

        if not self.chain.match(content):
            return

        try:
            mode = os.stat(path).st_mode & 0o777
        except OSError as err:
            self.log(err, 'error')
            return

        self.log('writing {}'.format(path))
        try:
            _write_file(path, self.chain.replace_all(content), mode)
        except OSError as err:
            self.log(err, 'error')

    def edit_filename(self, path):
        """Rename path within its directory, return the new path.

        The old path is returned if the name does not change or the rename
        fails.
        """
        dirname, base = os.path.split(path)
        newbase = os.fsdecode(self.chain.replace_all(os.fsencode(base)))

        # Nothing to do if the name has no matches
        if newbase == base:
            return path
        newpath = os.path.join(dirname, newbase)

        self.log('renaming {} to {}'.format(path, newpath))
        try:
            os.rename(path, newpath)
        except OSError as err:
            self.log(err, 'error')
            return path
        return newpath

    def edit_stdin(self):
        """Replace matches in stdin up to the terminator, print to stdout."""
        try:
            content = read_until(self.stdin, TERMINATOR)
        except OSError as err:
            self.log(err, 'error')
            return
        self.emit(self.chain.replace_all(content))

    def emit(self, content):
        """Write one whole result to stdout."""
        with self._write:
            self.stdout.write(content)
            self.stdout.flush()


###############################################################################
#                              Helper Functions                               #
###############################################################################


def match_glob(glob, path):
    """Return True if the base name of path matches glob, case sensitive."""
    return fnmatchcase(os.path.basename(path), glob)


def read_until(stream, terminator, size=65536):
    """Read stream up to and including terminator, or to the end.

    Anything after the terminator is discarded.
    """
    read = getattr(stream, 'read1', stream.read)
    chunks = []
    while True:
        chunk = read(size)
        if not chunk:
            break
        end = chunk.find(terminator)
        if end >= 0:
            chunks.append(chunk[:end + len(terminator)])
            break
        chunks.append(chunk)
    return b''.join(chunks)


def _write_file(path, content, mode):
    """Truncate and write path, creating it with mode if needed."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, 'wb') as fout:
        fout.write(content)
