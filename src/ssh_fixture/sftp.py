"""SFTP subsystem backed by the local filesystem.

The handler set follows the local-filesystem ``StubSFTPServer`` from
paramiko's own test suite (LGPL-2.1, Copyright (C) 2003-2009 Robey
Pointer), with error mapping folded into a decorator.
"""

import functools
import os

import paramiko
from paramiko import SFTPAttributes, SFTPHandle, SFTPServer, SFTPServerInterface

from ssh_fixture.types import SubsystemFactory

SFTP_SUBSYSTEM = "sftp"


def _sftp_status(func):
    """Report an ``OSError`` raised by ``func`` as the matching SFTP status code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OSError as e:
            return SFTPServer.convert_errno(e.errno)

    return wrapper


def _file_mode(flags: int) -> str:
    """Translate ``os.open`` flags into the matching ``fdopen`` mode."""
    append = flags & os.O_APPEND
    if flags & os.O_WRONLY:
        return "ab" if append else "wb"
    if flags & os.O_RDWR:
        return "a+b" if append else "r+b"
    return "rb"


class LocalSFTPHandle(SFTPHandle):
    """Open file on the local filesystem."""

    def __init__(self, path: str, flags: int, fileobj) -> None:
        super().__init__(flags)
        self.filename = path
        self.readfile = fileobj
        self.writefile = fileobj

    @_sftp_status
    def stat(self):
        return SFTPAttributes.from_stat(os.fstat(self.readfile.fileno()))

    @_sftp_status
    def chattr(self, attr):
        SFTPServer.set_file_attr(self.filename, attr)
        return paramiko.SFTP_OK


class LocalSFTPServer(SFTPServerInterface):
    """Serve SFTP requests straight from the local filesystem.

    Paths are used as given by the client; relative paths resolve against
    the server process's working directory.
    """

    @_sftp_status
    def list_folder(self, path):
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                attr = SFTPAttributes.from_stat(entry.stat(), entry.name)
                entries.append(attr)
        return entries

    @_sftp_status
    def stat(self, path):
        return SFTPAttributes.from_stat(os.stat(path))

    @_sftp_status
    def lstat(self, path):
        return SFTPAttributes.from_stat(os.lstat(path))

    @_sftp_status
    def open(self, path, flags, attr):
        mode = getattr(attr, "st_mode", None)
        fd = os.open(path, flags, 0o666 if mode is None else mode)
        if (flags & os.O_CREAT) and attr is not None:
            # Permissions were applied by os.open
            attr._flags &= ~attr.FLAG_PERMISSIONS
            SFTPServer.set_file_attr(path, attr)
        return LocalSFTPHandle(path, flags, os.fdopen(fd, _file_mode(flags)))

    @_sftp_status
    def remove(self, path):
        os.remove(path)
        return paramiko.SFTP_OK

    @_sftp_status
    def rename(self, oldpath, newpath):
        # Plain SFTP rename never overwrites
        if os.path.exists(newpath):
            return paramiko.SFTP_FAILURE
        os.rename(oldpath, newpath)
        return paramiko.SFTP_OK

    @_sftp_status
    def posix_rename(self, oldpath, newpath):
        os.replace(oldpath, newpath)
        return paramiko.SFTP_OK

    @_sftp_status
    def mkdir(self, path, attr):
        os.mkdir(path)
        if attr is not None:
            SFTPServer.set_file_attr(path, attr)
        return paramiko.SFTP_OK

    @_sftp_status
    def rmdir(self, path):
        os.rmdir(path)
        return paramiko.SFTP_OK

    @_sftp_status
    def chattr(self, path, attr):
        SFTPServer.set_file_attr(path, attr)
        return paramiko.SFTP_OK

    @_sftp_status
    def symlink(self, target_path, path):
        os.symlink(target_path, path)
        return paramiko.SFTP_OK

    @_sftp_status
    def readlink(self, path):
        return os.readlink(path)


def sftp_subsystem_factory() -> SubsystemFactory:
    """The SFTP subsystem served from the local filesystem."""
    return SubsystemFactory(SFTP_SUBSYSTEM, SFTPServer, (LocalSFTPServer,))
