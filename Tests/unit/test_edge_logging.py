import io
import json
import logging

from services.edge_router.app.logging_conf import EdgeJsonFormatter, configure_logging


def test_formato_json_con_campos_de_ruteo():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(EdgeJsonFormatter("%(timestamp)s %(level)s %(message)s", service_name="edge-test"))
    logger = logging.getLogger("edge-test-formatter")
    logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel(logging.INFO)

    logger.info("asset fall-through", extra={"cid": "c-1", "provider": "webflow-cdn", "reason": "text/plain"})

    record = json.loads(stream.getvalue())
    assert record["message"] == "asset fall-through"
    assert record["level"] == "INFO"
    assert record["service"] == "edge-test"
    assert record["cid"] == "c-1"
    assert record["provider"] == "webflow-cdn"
    assert record["reason"] == "text/plain"


def test_configure_logging_no_duplica_handlers():
    logger = configure_logging("edge-test-config")
    configure_logging("edge-test-config")
    assert len(logger.handlers) == 1
    assert logger.propagate is False
