import contextlib
import os
import shutil
import tempfile


@contextlib.contextmanager
def atomic_write(path):
    """
    Open a temporary file next to ``path`` for writing and move it over
    ``path`` only when the block finishes without an exception.

    The target may be the file being read, as long as reading is done
    before the block exits.
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix='.pngfiles-', suffix='.png', dir=directory)
    try:
        with os.fdopen(fd, 'wb') as f:
            yield f
        if os.path.exists(path):
            shutil.copymode(path, tmp_path)
        else:
            #mkstemp creates 0600, new files follow the umask like open() would
            umask = os.umask(0)
            os.umask(umask)
            os.chmod(tmp_path, 0o666 & ~umask)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_path)
        raise
