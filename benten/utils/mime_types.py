"""拡張子 -> Content-Type の対応表"""
from types import MappingProxyType


# B2にContent-Typeの判定を任せる場合の値
AUTO_CONTENT_TYPE = "b2/x-auto"

CONTENT_TYPES = MappingProxyType({
    # audio
    "mp3": "audio/mpeg",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    # video
    "mp4": "video/mp4",
    "mkv": "video/x-matroska",
    "mov": "video/quicktime",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    # image
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # documents / archives
    "pdf": "application/pdf",
    "txt": "text/plain",
    "json": "application/json",
    "zip": "application/zip",
})


def content_type_for(extension: str) -> str:
    """拡張子に対応するContent-Type（不明ならb2/x-auto）"""
    return CONTENT_TYPES.get(extension.lower().lstrip("."), AUTO_CONTENT_TYPE)
