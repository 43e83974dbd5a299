import os
import stat

import pytest

from common.file_utils import (
    backup_file,
    remove_file,
    render_managed_block,
    upsert_managed_block,
    write_file_atomic,
)

BEGIN = "# >>> managed >>>"
END = "# <<< managed <<<"


def test_write_file_atomic_creates_file_with_mode(tmp_path, mock_logger):
    target = tmp_path / "keyrings" / "docker.gpg"

    changed = write_file_atomic(b"key-bytes", target, 0o644, None, mock_logger)

    assert changed is True
    assert target.read_bytes() == b"key-bytes"
    assert stat.S_IMODE(target.stat().st_mode) == 0o644
    assert [p.name for p in target.parent.iterdir()] == ["docker.gpg"]


def test_write_file_atomic_same_content_is_a_no_op(tmp_path, mock_logger):
    target = tmp_path / "docker.sources"
    target.write_bytes(b"Types: deb\n")
    before = target.stat().st_mtime_ns

    changed = write_file_atomic(b"Types: deb\n", target, 0o644, None, mock_logger)

    assert changed is False
    assert target.stat().st_mtime_ns == before


def test_write_file_atomic_replaces_content(tmp_path, mock_logger):
    target = tmp_path / "docker.sources"
    target.write_bytes(b"old")

    assert write_file_atomic(b"new", target, 0o600, None, mock_logger) is True
    assert target.read_bytes() == b"new"
    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_write_file_atomic_uses_elevated_install_when_not_writable(
    mocker, tmp_path, mock_logger
):
    mocker.patch("common.file_utils._directory_is_writable", return_value=False)
    mock_elevated = mocker.patch("common.file_utils.run_elevated_command")
    target = tmp_path / "root-owned" / "docker.gpg"

    write_file_atomic(b"key", target, 0o644, None, mock_logger)

    first, second = mock_elevated.call_args_list
    assert first[0][0] == ["install", "-d", "-m", "0755", str(target.parent)]
    assert second[0][0][:3] == ["install", "-m", "0644"]
    assert second[0][0][-1] == str(target)
    staged = second[0][0][3]
    assert not os.path.exists(staged)


def test_remove_file(tmp_path, mock_logger):
    target = tmp_path / "docker.list"
    target.write_text("deb ...")

    assert remove_file(target, None, mock_logger) is True
    assert not target.exists()
    assert remove_file(target, None, mock_logger) is False


def test_backup_file_missing_returns_none(tmp_path, mock_logger):
    assert backup_file(tmp_path / ".zshrc", None, mock_logger) is None


def test_backup_file_copies_content(tmp_path, mock_logger):
    source = tmp_path / ".zshrc"
    source.write_text("alias ll='ls -lah'\n")

    backup = backup_file(source, None, mock_logger)

    assert backup.name.startswith(".zshrc.bak.")
    assert backup.read_text() == "alias ll='ls -lah'\n"


def test_upsert_managed_block_appends_and_preserves_user_content(
    tmp_path, mock_logger
):
    zshrc = tmp_path / ".zshrc"
    zshrc.write_text("alias ll='ls -lah'\n")

    changed = upsert_managed_block(zshrc, "export A=1", BEGIN, END, None, mock_logger)

    assert changed is True
    assert zshrc.read_text() == (
        "alias ll='ls -lah'\n\n" + render_managed_block("export A=1", BEGIN, END)
    )
    assert len(list(tmp_path.glob(".zshrc.bak.*"))) == 1


def test_upsert_managed_block_replaces_existing_block(tmp_path, mock_logger):
    zshrc = tmp_path / ".zshrc"
    zshrc.write_text(
        "before\n" + render_managed_block("export A=1", BEGIN, END) + "after\n"
    )

    upsert_managed_block(zshrc, "export A=2", BEGIN, END, None, mock_logger)

    content = zshrc.read_text()
    assert content == "before\n" + render_managed_block("export A=2", BEGIN, END) + "after\n"
    assert content.count(BEGIN) == 1


def test_upsert_managed_block_unchanged_writes_nothing(tmp_path, mock_logger):
    zshrc = tmp_path / ".zshrc"
    upsert_managed_block(zshrc, "export A=1", BEGIN, END, None, mock_logger)
    first = zshrc.read_text()

    changed = upsert_managed_block(zshrc, "export A=1", BEGIN, END, None, mock_logger)

    assert changed is False
    assert zshrc.read_text() == first
    assert list(tmp_path.glob(".zshrc.bak.*")) == []


def test_upsert_managed_block_rejects_unterminated_block(tmp_path, mock_logger):
    zshrc = tmp_path / ".zshrc"
    zshrc.write_text(f"{BEGIN}\nexport A=1\n")

    with pytest.raises(ValueError):
        upsert_managed_block(zshrc, "export A=2", BEGIN, END, None, mock_logger)
