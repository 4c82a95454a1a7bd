import logging
import time
from pythonjsonlogger import jsonlogger


# Campos de ruteo que se copian al registro JSON cuando vienen en ``extra``
ROUTING_FIELDS = ("cid", "provider", "target", "reason")


class EdgeJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args, service_name: str = "edge-router", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        # el formato declara timestamp/level, que llegan en None desde el record
        if not log_record.get("timestamp"):
            log_record["timestamp"] = time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())
        if not log_record.get("level"):
            log_record["level"] = record.levelname
        log_record.setdefault("service", getattr(record, 'service', self.service_name))
        for name in ROUTING_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_record[name] = value


def configure_logging(service_name: str = "edge-router") -> logging.Logger:
    logger = logging.getLogger(service_name)
    # create_app puede llamarse varias veces (tests); un solo handler
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(EdgeJsonFormatter("%(timestamp)s %(level)s %(message)s", service_name=service_name))
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
