from pathlib import Path

import pytest

from formflow.ingestion.models import SourceFile
from formflow.processing.file_store import FileStore, filled_form_path, original_form_path, safe_stem


class TestPaths:
    def test_original_form_path(self, tmp_path: Path) -> None:
        path = original_form_path(tmp_path, "user-1", "abc", "My Form.PDF")
        assert path == tmp_path / "user-1" / "abc.pdf"

    def test_filled_form_path(self, tmp_path: Path) -> None:
        path = filled_form_path(tmp_path, "user-1", "abc", "My Form.pdf", "PDF")
        assert path == tmp_path / "user-1" / "filled_abc_My_Form.pdf"

    @pytest.mark.parametrize(("name", "expected"), [("../../etc", "etc"), ("a b/c", "c"), ("", "form")])
    def test_safe_stem(self, name: str, expected: str) -> None:
        assert safe_stem(name) == expected


class TestFileStore:
    def test_save_and_load_original(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path / "forms", tmp_path / "filled")
        ref = store.save_original("u1", "p1", SourceFile("form.txt", "text/plain", b"Name:"))

        assert ref.file_name == "form.txt"
        assert ref.size == 5
        assert store.load(ref.storage_path) == b"Name:"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path, tmp_path)
        with pytest.raises(FileNotFoundError):
            store.load(str(tmp_path / "missing.pdf"))

    def test_save_filled_and_remove(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path / "forms", tmp_path / "filled")
        path = store.save_filled("u1", "p1", "form.pdf", b"%PDF", "PDF")
        assert path.read_bytes() == b"%PDF"

        store.remove(str(path), str(tmp_path / "never-existed"))
        assert not path.exists()
