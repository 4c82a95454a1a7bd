from typing import Iterable, Optional, Tuple


def is_html(content_type: Optional[str]) -> bool:
    return bool(content_type) and "text/html" in content_type


def rewrite_html(body: str, origin_map: Iterable[Tuple[str, str]]) -> str:
    """Reemplaza cada URL absoluta de CDN por su prefijo local.

    Sustitucion literal, sin parsear HTML: no cubre variantes con
    percent-encoding ni URLs protocol-relative (``//cdn...``).
    """
    for origin, prefix in origin_map:
        body = body.replace(origin, prefix)
    return body


def decode_body(raw: bytes, encoding: Optional[str]) -> str:
    # Estricto: un cuerpo mal codificado no se reescribe a medias
    return raw.decode(encoding or "utf-8")
