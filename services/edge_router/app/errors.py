class UpstreamError(Exception):
    """El origen de paginas no respondio o su respuesta no se pudo procesar."""

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


class BodyRewriteError(UpstreamError):
    pass
