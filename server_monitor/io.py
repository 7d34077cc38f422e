import os
import tempfile

from rich.console import Console

from server_monitor import log

LOGGER = log.get_logger(__name__)


def current_umask():
    umask = os.umask(0)
    os.umask(umask)
    return umask


def report_mode(file_path):
    """Mode of the existing report, or what a plain open() would create."""
    try:
        return os.stat(file_path).st_mode & 0o777
    except FileNotFoundError:
        return 0o666 & ~current_umask()


def write_report(text, file_path):
    """
    Replace 'file_path' with 'text'.

    The text is written to a temporary file next to the destination which is
    then renamed over it, so readers see either the previous report or the
    new one in full.
    """
    directory = os.path.dirname(os.path.abspath(file_path))
    mode = report_mode(file_path)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".server-monitor-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fi:
            fi.write(text)
            fi.flush()
            os.fsync(fi.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, file_path)
    except BaseException:
        os.unlink(tmp_path)
        raise
    LOGGER.debug(f"Wrote report to '{file_path}'")


def save_report(text, file_path):
    """
    Write the report file, logging rather than raising when it cannot be
    written. Returns whether the file was written.
    """
    try:
        write_report(text, file_path)
    except OSError as exc:
        LOGGER.error(f"Cannot save report to '{file_path}': {exc}")
        return False
    return True


def emit(renderable, console=None):
    if console is None:
        console = Console(highlight=False)
    console.print(renderable)
