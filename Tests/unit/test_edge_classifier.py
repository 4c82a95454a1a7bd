import pytest

from services.edge_router.app.classifier import ASSET_EXTENSIONS, classify
from services.edge_router.app.verifier import is_asset_response


PREFIXES = ("/_wfcdn", "/_jsd")


@pytest.mark.parametrize("ext", ASSET_EXTENSIONS)
def test_extension_es_asset_sin_importar_mayusculas(ext):
    assert classify(f"/static/file{ext}").is_asset
    assert classify(f"/static/FILE{ext.upper()}").is_asset


@pytest.mark.parametrize("path", ["", "/", "/contact", "/blog/my-post", "/_wfcdn", "/_wfcdn/", "/app.js/", "/file.jsx", "/x.html"])
def test_sin_extension_es_pagina(path):
    c = classify(path, PREFIXES)
    assert c.kind == "page"
    assert c.cdn_prefix is None


def test_prefijo_cdn_se_conserva():
    c = classify("/_jsd/npm/lib@1/dist/lib.min.js", PREFIXES)
    assert c.is_asset
    assert c.cdn_prefix == "/_jsd"


def test_prefijo_requiere_separador():
    c = classify("/_wfcdnx/app.js", PREFIXES)
    assert c.is_asset
    assert c.cdn_prefix is None


def test_asset_sin_prefijo():
    assert classify("/styles/site.css", PREFIXES).cdn_prefix is None


@pytest.mark.parametrize(
    "content_type",
    [
        "application/javascript",
        "text/css; charset=utf-8",
        "image/png",
        "font/woff2",
        "application/font-woff",
        "application/json",
        "application/octet-stream",
    ],
)
def test_content_type_de_asset(content_type):
    assert is_asset_response(content_type)


@pytest.mark.parametrize("content_type", [None, "", "text/plain", "text/html; charset=utf-8", "IMAGE/PNG"])
def test_content_type_no_asset(content_type):
    assert not is_asset_response(content_type)
