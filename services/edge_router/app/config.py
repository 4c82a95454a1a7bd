import os
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ONE_YEAR = 31_536_000
DEFAULT_CACHE_CONTROL = f"public, max-age={ONE_YEAR}, immutable"


class ConfigError(ValueError):
    """Configuración de orígenes inválida; se detecta al arrancar."""


def _check_origin(value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"origen invalido: {value!r}")
    return value.rstrip("/")


class PageOrigin(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: str
    provider: str = Field(..., min_length=1)

    @field_validator("origin")
    @classmethod
    def validate_origin(cls, value: str) -> str:
        return _check_origin(value)

    @property
    def authority(self) -> str:
        return urlsplit(self.origin).netloc


class CdnOrigin(PageOrigin):
    # None solo para el CDN por defecto sin prefijo local
    prefix: str | None = None

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value.startswith("/") or value == "/" or value.endswith("/"):
            raise ValueError(f"prefijo invalido: {value!r}")
        return value


class RouterSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: PageOrigin
    secondary: PageOrigin | None = None
    cdn_origins: tuple[CdnOrigin, ...] = ()
    default_cdn: CdnOrigin | None = None
    frontend_paths: frozenset[str] = frozenset({"/"})
    frontend_prefix: str | None = "/blog"
    upstream_timeout: float = Field(20.0, gt=0)
    cache_control: str = DEFAULT_CACHE_CONTROL
    cache_ttl: int = Field(ONE_YEAR, ge=0)

    @field_validator("cdn_origins")
    @classmethod
    def validate_cdn_prefixes(cls, value: tuple[CdnOrigin, ...]) -> tuple[CdnOrigin, ...]:
        prefixes = []
        for cdn in value:
            if cdn.prefix is None:
                raise ValueError(f"{cdn.origin} requiere prefijo")
            for other in prefixes:
                if cdn.prefix == other or cdn.prefix.startswith(other + "/") or other.startswith(cdn.prefix + "/"):
                    raise ValueError(f"prefijos solapados: {other} / {cdn.prefix}")
            prefixes.append(cdn.prefix)
        return value

    @model_validator(mode="after")
    def validate_origin_urls(self) -> "RouterSettings":
        urls = [cdn.origin for cdn in self.cdn_origins]
        if self.default_cdn is not None and self.default_cdn.origin not in urls:
            urls.append(self.default_cdn.origin)
        for i, a in enumerate(urls):
            for j, b in enumerate(urls):
                if i != j and a in b:
                    raise ValueError(f"origen {a} contenido en {b}")
        return self

    @property
    def prefixes(self) -> tuple[str, ...]:
        return tuple(cdn.prefix for cdn in self.cdn_origins)


def _parse_cdn_entry(raw: str, prefix: str | None = None) -> CdnOrigin:
    origin, _, provider = raw.partition("|")
    origin = origin.strip()
    provider = provider.strip() or urlsplit(origin).hostname or "cdn"
    return CdnOrigin(origin=origin, provider=provider, prefix=prefix)


def parse_cdn_origins(raw: str) -> tuple[CdnOrigin, ...]:
    """Parsea ``/_wfcdn=https://cdn.example.com|webflow-cdn,/_jsd=...``.

    El orden de la lista define la prioridad.
    """
    entries = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "=" not in entry:
            raise ConfigError(f"entrada CDN_ORIGINS invalida: {entry!r}")
        prefix, value = entry.split("=", 1)
        entries.append(_parse_cdn_entry(value, prefix.strip()))
    return tuple(entries)


def _split_paths(raw: str) -> frozenset[str]:
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


def load_settings(environ=None) -> RouterSettings:
    env = os.environ if environ is None else environ
    try:
        cdn_origins = parse_cdn_origins(
            env.get("CDN_ORIGINS", "/_wfcdn=https://cdn.prod.website-files.com|webflow-cdn")
        )
        default_raw = env.get("DEFAULT_CDN", "").strip()
        if default_raw.lower() == "none":
            default_cdn = None
        elif default_raw:
            default_cdn = _parse_cdn_entry(default_raw)
        else:
            # Variante de dos orígenes: el primer CDN atiende también rutas sin prefijo
            default_cdn = cdn_origins[0] if cdn_origins else None

        secondary_url = env.get("WORDPRESS_URL") or env.get("OTHER_URL")
        secondary = PageOrigin(origin=secondary_url, provider="wordpress") if secondary_url else None

        return RouterSettings(
            primary=PageOrigin(origin=env.get("WEBFLOW_URL", "http://webflow:8080"), provider="webflow"),
            secondary=secondary,
            cdn_origins=cdn_origins,
            default_cdn=default_cdn,
            frontend_paths=_split_paths(env.get("FRONTEND_PATHS", "/")),
            frontend_prefix=env.get("FRONTEND_PREFIX", "/blog").rstrip("/") or None,
            upstream_timeout=float(env.get("UPSTREAM_TIMEOUT", "20")),
        )
    except ConfigError:
        raise
    except ValueError as e:
        # pydantic.ValidationError hereda de ValueError
        raise ConfigError(str(e)) from e
