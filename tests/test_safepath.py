import os

import pytest

from archdiagram.safepath import (
    UnsafePathError,
    validate_output_path,
    validate_scan_path,
)


def test_scan_path_valid_returns_absolute(tmp_path):
    assert validate_scan_path(tmp_path) == os.path.abspath(tmp_path)


def test_scan_path_empty():
    with pytest.raises(UnsafePathError, match="path is required"):
        validate_scan_path("")


def test_scan_path_not_exist():
    with pytest.raises(UnsafePathError, match="does not exist"):
        validate_scan_path("/nonexistent/path/xyz123")


def test_scan_path_not_directory(tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    with pytest.raises(UnsafePathError, match="not a directory"):
        validate_scan_path(f)


@pytest.mark.parametrize("directory", ["/etc", "/proc", "/sys", "/dev", "/etc/ssl"])
def test_scan_path_sensitive_system(directory):
    with pytest.raises(UnsafePathError, match="is not allowed"):
        validate_scan_path(directory)


@pytest.mark.parametrize("dot_dir", [".ssh", ".gnupg", ".aws", ".config/gcloud"])
def test_scan_path_sensitive_dot_dirs(tmp_path, monkeypatch, dot_dir):
    monkeypatch.setenv("HOME", str(tmp_path))
    sensitive = tmp_path / dot_dir
    sensitive.mkdir(parents=True)
    with pytest.raises(UnsafePathError, match="is not allowed"):
        validate_scan_path(sensitive)


def test_scan_path_sensitive_dot_dir_nested(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    nested = tmp_path / ".ssh" / "keys"
    nested.mkdir(parents=True)
    with pytest.raises(UnsafePathError, match="is not allowed"):
        validate_scan_path(nested)


def test_scan_path_similar_name_is_allowed(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    lookalike = tmp_path / ".sshx"
    lookalike.mkdir()
    assert validate_scan_path(lookalike) == os.path.abspath(lookalike)


def test_output_path_valid_subpath(tmp_path):
    base = str(tmp_path)
    result = validate_output_path(os.path.join(base, "snapshot.json"), base)
    assert result == os.path.join(os.path.realpath(base), "snapshot.json")


def test_output_path_valid_nested(tmp_path):
    base = str(tmp_path)
    result = validate_output_path(os.path.join(base, "sub", "out.json"), base)
    assert result == os.path.join(os.path.realpath(base), "sub", "out.json")


def test_output_path_empty(tmp_path):
    with pytest.raises(UnsafePathError, match="file path is required"):
        validate_output_path("", tmp_path)


def test_output_path_dot_dot_traversal(tmp_path):
    base = str(tmp_path)
    with pytest.raises(UnsafePathError, match="outside allowed directory"):
        validate_output_path(os.path.join(base, "..", "evil.json"), base)


def test_output_path_absolute_outside(tmp_path):
    with pytest.raises(UnsafePathError, match="outside allowed directory"):
        validate_output_path("/tmp/evil.json", tmp_path)


def test_output_path_sibling_directory(tmp_path):
    base = str(tmp_path)
    with pytest.raises(UnsafePathError, match="outside allowed directory"):
        validate_output_path(base + "attack/file.json", base)


def test_output_path_equals_base(tmp_path):
    with pytest.raises(UnsafePathError, match="equals base directory"):
        validate_output_path(tmp_path, tmp_path)


def test_output_path_missing_base(tmp_path):
    missing = tmp_path / "missing"
    with pytest.raises(UnsafePathError, match="base directory"):
        validate_output_path(missing / "out.json", missing)


def test_output_path_rejects_symlink_escape(tmp_path):
    base = tmp_path / "base"
    outside = tmp_path / "outside"
    base.mkdir()
    outside.mkdir()
    link = base / "trapdoor"
    os.symlink(outside, link)
    with pytest.raises(UnsafePathError, match="outside allowed directory"):
        validate_output_path(link / "secret.json", base)


def test_output_path_rejects_has_prefix_sibling_trick(tmp_path):
    base = tmp_path / "base"
    sibling = tmp_path / "baseEvil"
    base.mkdir()
    sibling.mkdir()
    with pytest.raises(UnsafePathError, match="outside allowed directory"):
        validate_output_path(sibling / "out.json", base)


def test_output_path_symlinked_base_is_resolved(tmp_path):
    real = tmp_path / "real"
    real.mkdir()
    alias = tmp_path / "alias"
    os.symlink(real, alias)
    result = validate_output_path(alias / "out.json", alias)
    assert result == os.path.join(os.path.realpath(real), "out.json")