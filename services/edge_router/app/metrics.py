from fastapi import FastAPI
from prometheus_client import CollectorRegistry, Counter
from prometheus_fastapi_instrumentator import Instrumentator


METRICS_PATH = "/_edge/metrics"


class ProxyMetrics:
    # Registro propio por app: create_app se invoca varias veces en los tests
    def __init__(self, registry: CollectorRegistry):
        self.registry = registry
        self.responses = Counter(
            "edge_proxy_responses_total",
            "Respuestas entregadas por el router, por origen y etapa del pipeline",
            ["provider", "path"],
            registry=registry,
        )

    def record(self, provider: str, path: str) -> None:
        self.responses.labels(provider=provider, path=path).inc()


def setup_metrics(app: FastAPI) -> ProxyMetrics:
    metrics = ProxyMetrics(CollectorRegistry())
    Instrumentator(excluded_handlers=[METRICS_PATH], registry=metrics.registry).instrument(app).expose(
        app, endpoint=METRICS_PATH
    )
    return metrics
