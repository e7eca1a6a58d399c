import io
import os
from dataclasses import dataclass
from typing import BinaryIO, Optional


@dataclass
class SelectedFile:
    """A file the user picked, not yet uploaded."""

    name: str
    size: int
    content: BinaryIO

    @classmethod
    def from_path(cls, path) -> "SelectedFile":
        return cls(
            name=os.path.basename(path),
            size=os.path.getsize(path),
            content=open(path, "rb"),
        )

    @classmethod
    def from_bytes(cls, name, data: bytes) -> "SelectedFile":
        return cls(name=name, size=len(data), content=io.BytesIO(data))

    @classmethod
    def from_upload(cls, uploaded) -> "SelectedFile":
        # Streamlit's UploadedFile is a BytesIO with .name and .size
        return cls(name=uploaded.name, size=uploaded.size, content=uploaded)

    def rewind(self):
        self.content.seek(0)

    def close(self):
        self.content.close()


@dataclass(frozen=True)
class UploadResult:
    download_url: str
    short_code: Optional[str] = None
    expires_at: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "UploadResult":
        return cls(
            download_url=payload["downloadUrl"],
            short_code=payload.get("shortCode"),
            expires_at=payload.get("expiresAt"),
            message=payload.get("message"),
        )
