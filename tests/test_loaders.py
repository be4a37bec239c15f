"""Tests for the read-name list loader."""

import gzip

import pytest

from samsift.errors import LoadError
from samsift.loaders import load_read_names


class TestLoadReadNames:
    """Test read-name list parsing and validation."""

    def test_one_per_line(self, read_list_file):
        """The fixture list without a trailing newline loads all names."""
        assert load_read_names(read_list_file) == frozenset({"A", "C", "D"})

    def test_first_token_blank_lines_and_duplicates(self, temp_dir):
        """Only the first token counts; blanks and repeats are harmless."""
        path = temp_dir / "names.txt"
        path.write_text("read_1\tsome note\n\n  \nread_2\nread_1\n")
        assert load_read_names(path) == frozenset({"read_1", "read_2"})

    def test_windows_line_endings(self, temp_dir):
        path = temp_dir / "names.txt"
        path.write_bytes(b"r1\r\nr2\r\n")
        assert load_read_names(path) == frozenset({"r1", "r2"})

    def test_gzipped(self, temp_dir):
        path = temp_dir / "names.txt.gz"
        with gzip.open(path, "wt") as f:
            f.write("SRR1.1\nSRR1.2\n")
        assert load_read_names(path) == frozenset({"SRR1.1", "SRR1.2"})

    def test_empty_file(self, dummy_file):
        """A list without names is a load error."""
        with pytest.raises(LoadError, match="contains no read names"):
            load_read_names(dummy_file)

    def test_invalid_name(self, temp_dir):
        """'@' is outside the QNAME alphabet."""
        path = temp_dir / "names.txt"
        path.write_text("good\nbad@name\n")
        with pytest.raises(LoadError, match=r"names.txt:2"):
            load_read_names(path)

    def test_name_too_long(self, temp_dir):
        path = temp_dir / "names.txt"
        path.write_text("x" * 255 + "\n")
        with pytest.raises(LoadError, match="not a valid read name"):
            load_read_names(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(LoadError, match="Unable to read"):
            load_read_names(temp_dir / "absent.txt")

    def test_binary_file(self, temp_dir):
        path = temp_dir / "names.bin"
        path.write_bytes(b"\xff\xfe\x00\x81")
        with pytest.raises(LoadError):
            load_read_names(path)
