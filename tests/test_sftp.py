"""Tests for the SFTP subsystem."""

import stat

import pytest

from ssh_fixture.sftp import SFTP_SUBSYSTEM, LocalSFTPServer, sftp_subsystem_factory


@pytest.fixture
def sftp(authenticated_client):
    """SFTP session on the fixture server."""
    client = authenticated_client.open_sftp()
    yield client
    client.close()


def test_subsystem_factory():
    """Test the subsystem is registered under its conventional name."""
    factory = sftp_subsystem_factory()
    assert factory.name == SFTP_SUBSYSTEM == "sftp"
    assert factory.args == (LocalSFTPServer,)


def test_upload_and_download(sftp, sftp_root, tmp_path):
    """Test files round-trip through the server."""
    local = tmp_path / "upload.txt"
    local.write_text("payload\n")
    remote = str(sftp_root / "remote.txt")

    sftp.put(str(local), remote)
    assert (sftp_root / "remote.txt").read_text() == "payload\n"

    downloaded = tmp_path / "download.txt"
    sftp.get(remote, str(downloaded))
    assert downloaded.read_text() == "payload\n"


def test_listdir_and_stat(sftp, sftp_root):
    """Test directory listings and attributes come from the filesystem."""
    (sftp_root / "a.txt").write_text("abc")
    (sftp_root / "nested").mkdir()

    assert sorted(sftp.listdir(str(sftp_root))) == ["a.txt", "nested"]
    assert sftp.stat(str(sftp_root / "a.txt")).st_size == 3
    assert stat.S_ISDIR(sftp.stat(str(sftp_root / "nested")).st_mode)


def test_directory_operations(sftp, sftp_root):
    """Test mkdir, rename, remove and rmdir."""
    directory = str(sftp_root / "made")
    sftp.mkdir(directory)
    assert (sftp_root / "made").is_dir()

    with sftp.open(directory + "/f.txt", "w") as f:
        f.write("x")
    sftp.rename(directory + "/f.txt", directory + "/g.txt")
    assert (sftp_root / "made" / "g.txt").read_text() == "x"

    sftp.remove(directory + "/g.txt")
    sftp.rmdir(directory)
    assert not (sftp_root / "made").exists()


def test_symlink(sftp, sftp_root):
    """Test links are created and resolved."""
    (sftp_root / "target.txt").write_text("t")
    link = str(sftp_root / "link.txt")

    sftp.symlink(str(sftp_root / "target.txt"), link)
    assert sftp.readlink(link) == str(sftp_root / "target.txt")
    assert stat.S_ISLNK(sftp.lstat(link).st_mode)


def test_missing_file(sftp, sftp_root):
    """Test filesystem errors map to SFTP errors."""
    with pytest.raises(FileNotFoundError):
        sftp.stat(str(sftp_root / "nope"))


def test_rename_never_overwrites(sftp, sftp_root):
    """Test plain rename refuses an existing target and posix-rename replaces it."""
    (sftp_root / "old.txt").write_text("old")
    (sftp_root / "new.txt").write_text("new")
    old, new = str(sftp_root / "old.txt"), str(sftp_root / "new.txt")

    with pytest.raises(OSError):
        sftp.rename(old, new)
    assert (sftp_root / "new.txt").read_text() == "new"

    sftp.posix_rename(old, new)
    assert (sftp_root / "new.txt").read_text() == "old"
    assert not (sftp_root / "old.txt").exists()


def test_append_and_chmod(sftp, sftp_root):
    """Test append mode and attribute changes reach the local file."""
    path = sftp_root / "log.txt"
    path.write_text("a")

    with sftp.open(str(path), "a") as f:
        f.write("b")
    sftp.chmod(str(path), 0o600)

    assert path.read_text() == "ab"
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
