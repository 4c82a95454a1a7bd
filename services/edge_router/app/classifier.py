from dataclasses import dataclass
from typing import Iterable, Literal, Optional


ASSET_EXTENSIONS = (
    ".js", ".css", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif",
    ".woff", ".woff2", ".ttf", ".eot", ".ico", ".json", ".map",
)

RouteKind = Literal["asset", "page"]


@dataclass(frozen=True)
class RouteClassification:
    kind: RouteKind
    cdn_prefix: Optional[str] = None

    @property
    def is_asset(self) -> bool:
        return self.kind == "asset"


PAGE = RouteClassification("page")


def is_asset_path(path: str) -> bool:
    return path.lower().endswith(ASSET_EXTENSIONS)


def classify(path: str, prefixes: Iterable[str] = ()) -> RouteClassification:
    """Clasifica una ruta (ya sin escapar) como asset o pagina.

    Sin extension conocida siempre es pagina, aunque lleve prefijo de CDN.
    """
    if not is_asset_path(path):
        return PAGE
    for prefix in prefixes:
        if path.startswith(prefix + "/"):
            return RouteClassification("asset", prefix)
    return RouteClassification("asset")
