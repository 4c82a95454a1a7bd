from dataclasses import dataclass
from typing import List, Tuple

from .classifier import RouteClassification
from .config import PageOrigin, RouterSettings


@dataclass(frozen=True)
class AssetCandidate:
    path: str
    origin: str
    provider: str


def strip_prefix(path: str, prefix: str) -> str:
    # el resto siempre queda anclado en "/": nunca puede tocar la autoridad del origen
    rest = path[len(prefix):]
    return rest if rest.startswith("/") else "/" + rest


class OriginRegistry:
    """Tablas de ruteo de solo lectura, construidas una vez al arrancar."""

    def __init__(self, settings: RouterSettings):
        self.settings = settings
        self._by_prefix = {cdn.prefix: cdn for cdn in settings.cdn_origins}

    @property
    def prefixes(self) -> Tuple[str, ...]:
        return self.settings.prefixes

    def resolve_asset_origins(self, path: str, classification: RouteClassification) -> List[AssetCandidate]:
        if not classification.is_asset:
            return []
        cdn = self._by_prefix.get(classification.cdn_prefix)
        if cdn is not None:
            return [AssetCandidate(strip_prefix(path, cdn.prefix), cdn.origin, cdn.provider)]
        default = self.settings.default_cdn
        if default is not None:
            return [AssetCandidate(path, default.origin, default.provider)]
        # Multi-CDN: solo se prueban los prefijos con los que la ruta empieza
        return [
            AssetCandidate(strip_prefix(path, cdn.prefix), cdn.origin, cdn.provider)
            for cdn in self.settings.cdn_origins
            if path.startswith(cdn.prefix)
        ]

    def is_frontend_path(self, path: str) -> bool:
        if path in self.settings.frontend_paths:
            return True
        prefix = self.settings.frontend_prefix
        return bool(prefix) and (path == prefix or path.startswith(prefix + "/"))

    def resolve_page_origin(self, path: str) -> PageOrigin:
        secondary = self.settings.secondary
        if secondary is None or self.is_frontend_path(path):
            return self.settings.primary
        return secondary

    def origin_map(self) -> List[Tuple[str, str]]:
        pairs = [(cdn.origin, cdn.prefix) for cdn in self.settings.cdn_origins]
        default = self.settings.default_cdn
        if default is not None and default.prefix and (default.origin, default.prefix) not in pairs:
            pairs.append((default.origin, default.prefix))
        return pairs
