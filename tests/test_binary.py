import logging

import pytest

from repocat import BINARY_EXTENSIONS, is_binary


@pytest.mark.parametrize("name", ["logo.png", "LOGO.PNG", "report.pdf", "app.sqlite", "lib.so"])
def test_known_extension_is_binary_without_reading(tmp_path, name):
    path = tmp_path / name
    path.write_text("plain text, no nul bytes here")
    assert is_binary(path)


def test_known_extension_does_not_need_the_file_to_exist(tmp_path, caplog):
    assert is_binary(tmp_path / "missing.zip")
    assert caplog.records == []


def test_plain_text_is_not_binary(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello\nworld\n")
    assert not is_binary(path)


def test_empty_file_is_not_binary(tmp_path):
    path = tmp_path / "empty.cfg"
    path.write_bytes(b"")
    assert not is_binary(path)


def test_nul_in_prefix_is_binary(tmp_path):
    path = tmp_path / "blob.dat"
    path.write_bytes(b"abc\x00def")
    assert is_binary(path)


def test_nul_at_last_sniffed_byte_is_binary(tmp_path):
    path = tmp_path / "edge.dat"
    path.write_bytes(b"a" * 1023 + b"\x00")
    assert is_binary(path)


def test_nul_past_prefix_is_missed(tmp_path):
    path = tmp_path / "late.dat"
    path.write_bytes(b"a" * 2000 + b"\x00" + b"tail")
    assert not is_binary(path)


def test_custom_extension_set(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<p>hi</p>")
    assert not is_binary(path)
    assert is_binary(path, extensions=BINARY_EXTENSIONS | {".html"})


def test_unreadable_file_counts_as_binary_and_is_logged(tmp_path, caplog):
    path = tmp_path / "gone.txt"
    with caplog.at_level(logging.ERROR):
        assert is_binary(path)
    assert "gone.txt" in caplog.text
    assert "Error reading file" in caplog.text
