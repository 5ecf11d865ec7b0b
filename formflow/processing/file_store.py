import re
from pathlib import Path, PurePath

from formflow.ingestion.models import SourceFile
from formflow.processing.models import OriginalFormRef

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_stem(file_name: str) -> str:
    return _UNSAFE.sub("_", PurePath(file_name).stem) or "form"


def original_form_path(root: Path, user_id: str, processing_id: str, file_name: str) -> Path:
    """{root}/{user_id}/{processing_id}{suffix}"""
    suffix = PurePath(file_name).suffix.lower()
    return root / safe_stem(user_id) / f"{processing_id}{suffix}"


def filled_form_path(
    root: Path, user_id: str, processing_id: str, file_name: str, fmt: str
) -> Path:
    """{root}/{user_id}/filled_{processing_id}_{stem}.{format}"""
    name = f"filled_{processing_id}_{safe_stem(file_name)}.{fmt.lower()}"
    return root / safe_stem(user_id) / name


class FileStore:
    """Local-disk storage for uploaded forms and filled outputs."""

    def __init__(self, forms_root: Path, filled_root: Path) -> None:
        self._forms_root = forms_root
        self._filled_root = filled_root

    def save_original(
        self, user_id: str, processing_id: str, source: SourceFile
    ) -> OriginalFormRef:
        path = original_form_path(self._forms_root, user_id, processing_id, source.file_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(source.data)
        return OriginalFormRef(
            file_name=source.file_name,
            size=source.size,
            mime_type=source.mime_type,
            storage_path=str(path),
        )

    def load(self, storage_path: str) -> bytes:
        """Read stored bytes.

        Raises:
            FileNotFoundError: if nothing is stored at ``storage_path``.
        """
        path = Path(storage_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def save_filled(
        self, user_id: str, processing_id: str, file_name: str, data: bytes, fmt: str
    ) -> Path:
        path = filled_form_path(self._filled_root, user_id, processing_id, file_name, fmt)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def remove(self, *storage_paths: str) -> None:
        for storage_path in storage_paths:
            Path(storage_path).unlink(missing_ok=True)
