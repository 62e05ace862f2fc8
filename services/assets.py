import logging
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from services.errors import AssetError, AssetErrorKind
from services.results import Err, Ok, Result

logger = logging.getLogger(__name__)


class AssetStore(Protocol):
    async def store(self, data: bytes, original_filename: str, max_size: int) -> Result[str]: ...

    async def delete(self, filename: str) -> Result[None]: ...


def generate_filename(original_filename: str) -> str:
    """
    Новое имя файла: базовое имя + uuid4 + исходное расширение.

    "photo.final.png" -> "photo<hex>.png"
    """
    name = Path(original_filename.replace("\\", "/")).name
    parts = name.split(".")
    base = parts[0] or "file"
    if len(parts) > 1 and parts[-1]:
        return f"{base}{uuid4().hex}.{parts[-1]}"
    return f"{base}{uuid4().hex}"


def check_size(data: bytes, max_size: int) -> Result[None]:
    if len(data) > max_size:
        return Err(AssetError(AssetErrorKind.TOO_LARGE, f"File too big. Should be at most {max_size} bytes"))
    return Ok(None)


class LocalAssetStore:
    """Хранит загруженные файлы в каталоге на диске (UPLOAD_DIR)."""

    def __init__(self, root):
        self.root = Path(root)

    def path_for(self, filename: str) -> Path:
        return self.root / Path(filename).name

    async def store(self, data: bytes, original_filename: str, max_size: int) -> Result[str]:
        checked = check_size(data, max_size)
        if isinstance(checked, Err):
            return checked

        filename = generate_filename(original_filename)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            # "xb" -- никогда не перезаписываем существующий файл
            with open(self.path_for(filename), "xb") as buffer:
                buffer.write(data)
        except OSError as exc:
            logger.error("Could not write asset %s: %s", filename, exc)
            return Err(AssetError(AssetErrorKind.WRITE_FAILURE, "File could not be saved"))

        logger.info("Stored asset %s (%d bytes)", filename, len(data))
        return Ok(filename)

    async def delete(self, filename: str) -> Result[None]:
        try:
            self.path_for(filename).unlink()
        except OSError as exc:
            logger.warning("Could not delete asset %s: %s", filename, exc)
            return Err(AssetError(AssetErrorKind.DELETE_FAILURE, "File could not be deleted"))

        logger.info("Deleted asset %s", filename)
        return Ok(None)
