"""Sanity checks for the machine the reports are produced on."""

import os
import socket
import sys
import tempfile

from ..runners.runner import Engine


def python_supported() -> None:
    assert sys.version_info >= (3, 9), f"Python {sys.version.split()[0]} is too old"


def hostname_known() -> None:
    assert socket.gethostname(), "host name is empty"


def temp_dir_writable() -> None:
    with tempfile.TemporaryFile() as f:
        f.write(b"reportkit")


def posix_separator() -> None:
    assert os.sep == "/"


def discover():
    engine = Engine("environment", "Environment")
    engine.add_test("python", python_supported, "Python version is supported")
    engine.add_test("hostname", hostname_known, "Host name can be captured")
    engine.add_test("tempdir", temp_dir_writable, "Temporary directory is writable")
    posix = engine.add_container("posix", "POSIX")
    posix.add_test("separator", posix_separator, "Path separator is '/'")
    if os.name != "posix":
        posix.mark_skipped(f"not a POSIX platform: {os.name}")
    return [engine]
