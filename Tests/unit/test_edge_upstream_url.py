import asyncio

import httpx
import pytest

from services.edge_router.app.config import PageOrigin, RouterSettings
from services.edge_router.app.proxy_router import EdgeProxy, FallThrough, upstream_url
from services.edge_router.app.registry import AssetCandidate


@pytest.mark.parametrize("path", ["/@evil.example/x.js", "/:abc/x.js", "/.evil.example/x.js", "@evil.example/x.js"])
def test_el_path_no_cambia_el_host(path):
    url = upstream_url("https://cdn.prod.website-files.com", path, keep_origin_path=True)
    assert url.host == "cdn.prod.website-files.com"
    assert url.port is None
    assert url.path.startswith("/")


def test_cdn_conserva_el_path_del_origen():
    url = upstream_url("https://cdn.jsdelivr.net/npm", "/lib@1/lib.min.js", "v=2", keep_origin_path=True)
    assert str(url) == "https://cdn.jsdelivr.net/npm/lib@1/lib.min.js?v=2"


def test_pagina_solo_usa_la_autoridad():
    url = upstream_url("https://site.webflow.io/base", "/contact", "a=1&b=2")
    assert str(url) == "https://site.webflow.io/contact?a=1&b=2"


def test_path_con_porcentaje_se_escapa():
    url = upstream_url("https://wp.example.com", "/100% real")
    assert url.raw_path == b"/100%25%20real"


def test_url_invalida_cae_a_pagina():
    def handler(request):
        raise AssertionError("no debe enviarse")

    settings = RouterSettings(primary=PageOrigin(origin="https://site.webflow.io", provider="webflow"))
    bad = AssetCandidate("/x.js", "https://cdn.example.com:abc", "bad-cdn")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await EdgeProxy(settings, client).fetch_asset(bad, "")

    result = asyncio.run(run())
    assert isinstance(result, FallThrough)
    assert "invalid asset url" in result.reason
