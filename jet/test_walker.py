"""Test walker.py and dispatch.py: filtering, edits, renames, and stdin."""
import io
import os
import time
import threading
from jet.config import TraversalConfig
from jet.dispatch import Dispatcher, FileTask, TaskGroup, read_until
from jet.walker import Walker, depth, is_hidden

FOO_BAR = [('foo', 'bar')]

###############################################################################
#                           Non-Test Functions                                #
###############################################################################


def write_file(filename, string=b'foo'):
    """Write bytes to a file, creating parent directories."""
    dirname = os.path.dirname(str(filename))
    if dirname and not os.path.isdir(dirname):
        os.makedirs(dirname)
    with open(str(filename), 'wb') as fout:
        fout.write(string)


def read_file(filename):
    """Return the bytes in a file."""
    with open(str(filename), 'rb') as fin:
        return fin.read()


def run(paths, pairs=FOO_BAR, stdin=None, stdout=None, **kwargs):
    """Walk paths with a fresh config, return the config."""
    config = TraversalConfig(pairs, [str(p) for p in paths], **kwargs)
    config.validate()
    dispatcher = Dispatcher(config, stdin=stdin, stdout=stdout)
    Walker(config, dispatcher).walk()
    return config


###############################################################################
#                               Test Functions                                #
###############################################################################


def test_depth():
    """Depth is the separator count plus one."""
    assert depth('foo') == 1
    assert depth(os.path.join('foo', 'bar')) == 2
    assert depth(os.path.join('foo', 'bar', 'baz')) == 3
    assert depth(os.sep + 'foo') == 2


def test_is_hidden():
    """Dot names are hidden, except . and .."""
    assert is_hidden('.git') is True
    assert is_hidden('.hidden.txt') is True
    assert is_hidden('.') is False
    assert is_hidden('..') is False
    assert is_hidden('visible') is False
    assert is_hidden('') is False


def test_edit_file_with_chain(tmp_path):
    """Every pair is applied to a single file, in order."""
    path = tmp_path / 'file.txt'
    write_file(path, b'foo baz foo baz')
    run([path], pairs=[('foo', 'bar'), ('baz', 'qux')])
    assert read_file(path) == b'bar qux bar qux'


def test_hidden_files_skipped(tmp_path):
    """Hidden files are left alone by default."""
    write_file(tmp_path / 'foo.txt', b'foo')
    write_file(tmp_path / '.hidden.txt', b'foo')
    run([tmp_path], pairs=[('foo', '')], glob='*.txt')
    assert read_file(tmp_path / 'foo.txt') == b''
    assert read_file(tmp_path / '.hidden.txt') == b'foo'


def test_hidden_dirs_skipped(tmp_path):
    """Hidden directories are not entered unless asked."""
    inside = tmp_path / '.git' / 'config'
    write_file(inside, b'foo')
    run([tmp_path])
    assert read_file(inside) == b'foo'
    run([tmp_path], include_hidden=True)
    assert read_file(inside) == b'bar'


def test_hidden_root_skipped(tmp_path):
    """A hidden root is filtered like any other entry."""
    path = tmp_path / '.hidden'
    write_file(path, b'foo')
    run([path])
    assert read_file(path) == b'foo'


def test_glob(tmp_path):
    """Files whose name does not match the glob are not edited."""
    write_file(tmp_path / 'a.txt', b'foo')
    write_file(tmp_path / 'a.md', b'foo')
    write_file(tmp_path / 'sub' / 'b.txt', b'foo')
    run([tmp_path], glob='*.txt')
    assert read_file(tmp_path / 'a.txt') == b'bar'
    assert read_file(tmp_path / 'sub' / 'b.txt') == b'bar'
    assert read_file(tmp_path / 'a.md') == b'foo'


def test_glob_is_case_sensitive(tmp_path):
    """Glob matching does not fold case."""
    write_file(tmp_path / 'A.TXT', b'foo')
    run([tmp_path], glob='*.txt')
    assert read_file(tmp_path / 'A.TXT') == b'foo'


def test_max_depth(tmp_path, monkeypatch):
    """Directories deeper than max_depth are skipped with their contents."""
    monkeypatch.chdir(str(tmp_path))
    write_file(os.path.join('a', 'one.txt'))
    write_file(os.path.join('a', 'b', 'two.txt'))
    write_file(os.path.join('a', 'b', 'c', 'three.txt'))

    run(['a'], max_depth=1)
    assert read_file(os.path.join('a', 'one.txt')) == b'bar'
    assert read_file(os.path.join('a', 'b', 'two.txt')) == b'foo'
    assert read_file(os.path.join('a', 'b', 'c', 'three.txt')) == b'foo'

    run(['a'], max_depth=2)
    assert read_file(os.path.join('a', 'b', 'two.txt')) == b'bar'
    assert read_file(os.path.join('a', 'b', 'c', 'three.txt')) == b'foo'

    run(['a'], max_depth=-1)
    assert read_file(os.path.join('a', 'b', 'c', 'three.txt')) == b'bar'


def test_max_depth_from_current_dir(tmp_path, monkeypatch):
    """Children of . are one level deep, like the root."""
    monkeypatch.chdir(str(tmp_path))
    write_file(os.path.join('a', 'one.txt'))
    write_file(os.path.join('a', 'b', 'two.txt'))
    run(['.'], max_depth=1)
    assert read_file(os.path.join('a', 'one.txt')) == b'bar'
    assert read_file(os.path.join('a', 'b', 'two.txt')) == b'foo'


def test_names_only(tmp_path):
    """Names only renames files and leaves contents alone."""
    write_file(tmp_path / 'foo.txt', b'foo')
    run([tmp_path / 'foo.txt'], names_only=True)
    assert not os.path.exists(str(tmp_path / 'foo.txt'))
    assert read_file(tmp_path / 'bar.txt') == b'foo'


def test_names_only_directory(tmp_path):
    """Directories are renamed too."""
    os.makedirs(str(tmp_path / 'foo_dir'))
    run([tmp_path / 'foo_dir'], names_only=True)
    assert os.path.isdir(str(tmp_path / 'bar_dir'))
    assert not os.path.exists(str(tmp_path / 'foo_dir'))


def test_replace_names(tmp_path):
    """Replace names edits the name and then the renamed file."""
    write_file(tmp_path / 'foo.txt', b'foo foo')
    run([tmp_path / 'foo.txt'], replace_names=True)
    assert not os.path.exists(str(tmp_path / 'foo.txt'))
    assert read_file(tmp_path / 'bar.txt') == b'bar bar'


def test_replace_names_rechecks_glob(tmp_path):
    """Contents are left alone if the new name fails the glob."""
    write_file(tmp_path / 'foo.txt', b'foo')
    run([tmp_path / 'foo.txt'], replace_names=True, glob='foo*')
    assert read_file(tmp_path / 'bar.txt') == b'foo'


def test_hidden_not_renamed(tmp_path):
    """Hidden files keep their name without include_hidden."""
    write_file(tmp_path / '.foo', b'foo')
    run([tmp_path], names_only=True)
    assert os.path.exists(str(tmp_path / '.foo'))
    run([tmp_path], names_only=True, include_hidden=True)
    assert os.path.exists(str(tmp_path / '.bar'))


def test_rename_failure(tmp_path, capsys):
    """A failed rename is logged and the file is edited where it is."""
    write_file(tmp_path / 'foo', b'foo')
    write_file(tmp_path / 'bar' / 'keep', b'keep')
    run([tmp_path / 'foo'], replace_names=True)
    assert read_file(tmp_path / 'foo') == b'bar'
    assert read_file(tmp_path / 'bar' / 'keep') == b'keep'
    assert 'ERROR' in capsys.readouterr().err


def test_to_stdout(tmp_path):
    """Print mode writes results to stdout and leaves files alone."""
    path = tmp_path / 'file.txt'
    write_file(path, b'foo baz')
    out = io.BytesIO()
    run([path], to_stdout=True, stdout=out)
    assert out.getvalue() == b'bar baz'
    assert read_file(path) == b'foo baz'


def test_no_match_not_written(tmp_path):
    """Files without a match are not rewritten."""
    path = tmp_path / 'file.txt'
    write_file(path, b'nothing here')
    os.utime(str(path), (1000000, 1000000))
    run([path])
    assert os.stat(str(path)).st_mtime == 1000000


def test_mode_preserved(tmp_path):
    """Permission bits survive a rewrite."""
    path = tmp_path / 'script.sh'
    write_file(path, b'echo foo')
    os.chmod(str(path), 0o751)
    run([path])
    assert read_file(path) == b'echo bar'
    assert os.stat(str(path)).st_mode & 0o777 == 0o751


def test_verbose(tmp_path, capsys):
    """Verbose mode logs renames and writes."""
    path = tmp_path / 'foo.txt'
    write_file(path, b'foo')
    run([path], replace_names=True, verbose=True)
    err = capsys.readouterr().err
    assert 'renaming {} to {}'.format(path, tmp_path / 'bar.txt') in err
    assert 'writing {}'.format(tmp_path / 'bar.txt') in err


def test_quiet(tmp_path, capsys):
    """Without verbose nothing is logged for a clean run."""
    path = tmp_path / 'foo.txt'
    write_file(path, b'foo')
    run([path], replace_names=True)
    assert capsys.readouterr().err == ''


def test_missing_path(tmp_path, capsys):
    """A missing path is logged and the run goes on."""
    write_file(tmp_path / 'file.txt', b'foo')
    run([tmp_path / 'missing', tmp_path / 'file.txt'])
    assert 'ERROR' in capsys.readouterr().err
    assert read_file(tmp_path / 'file.txt') == b'bar'


def test_many_files(tmp_path):
    """Every file in a wide tree is edited before walk returns."""
    for i in range(50):
        write_file(tmp_path / 'd{}'.format(i % 5) / 'f{}'.format(i), b'foo')
    run([tmp_path], jobs=4)
    for i in range(50):
        assert read_file(
            tmp_path / 'd{}'.format(i % 5) / 'f{}'.format(i)) == b'bar'


def test_progress(tmp_path, capsys):
    """The progress bar counts files on STDERR."""
    write_file(tmp_path / 'a', b'foo')
    write_file(tmp_path / 'b', b'foo')
    run([tmp_path], progress=True)
    assert 'files' in capsys.readouterr().err


def test_stdin():
    """Stdin is read up to the terminator and printed."""
    out = io.BytesIO()
    run(['-'], pairs=[('foo', 'bar'), ('baz', 'qux')],
        stdin=io.BytesIO(b'foo baz foo\x00ignored'), stdout=out)
    assert out.getvalue() == b'bar qux bar\x00'


def test_stdin_progress(capsys):
    """Stdin runs draw no progress bar."""
    out = io.BytesIO()
    run(['-'], stdin=io.BytesIO(b'foo'), stdout=out, progress=True)
    assert out.getvalue() == b'bar'
    assert capsys.readouterr().err == ''


def test_stdin_without_terminator():
    """Stdin without a terminator is read to the end."""
    out = io.BytesIO()
    run(['-'], stdin=io.BytesIO(b'foo\nfoo\n'), stdout=out)
    assert out.getvalue() == b'bar\nbar\n'


def test_read_until():
    """Terminators are found across chunk boundaries."""
    stream = io.BytesIO(b'abcdef\x00gh')
    assert read_until(stream, b'\x00', size=3) == b'abcdef\x00'


def test_dispatch_directory_task(tmp_path):
    """Directory tasks are never read as files."""
    os.makedirs(str(tmp_path / 'foo'))
    config = TraversalConfig(FOO_BAR, [str(tmp_path)])
    task = FileTask(str(tmp_path / 'foo'), is_dir=True)
    Dispatcher(config).run(task)
    assert task.path == str(tmp_path / 'foo')


def test_task_group_waits():
    """wait() only returns once every task is done."""
    done = []
    group = TaskGroup()
    for i in range(10):
        group.spawn(lambda n: (time.sleep(0.01), done.append(n)), i)
    group.wait()
    assert sorted(done) == list(range(10))
    assert group.pending == 0


def test_task_group_jobs():
    """No more than jobs tasks run at once."""
    lock = threading.Lock()
    state = {'running': 0, 'most': 0}

    def task():
        with lock:
            state['running'] += 1
            state['most'] = max(state['most'], state['running'])
        time.sleep(0.01)
        with lock:
            state['running'] -= 1

    group = TaskGroup(jobs=2)
    for _ in range(8):
        group.spawn(task)
    group.wait()
    assert state['most'] <= 2
    assert state['running'] == 0
