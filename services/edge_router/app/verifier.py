from typing import Optional


ASSET_CONTENT_TYPES = (
    "javascript",
    "css",
    "image/",
    "font/",
    "application/font",
    "application/json",
    "application/octet-stream",
)


def is_asset_response(content_type: Optional[str]) -> bool:
    # Evita cachear como inmutable una pagina de error servida por el CDN
    if not content_type:
        return False
    return any(marker in content_type for marker in ASSET_CONTENT_TYPES)
