from novaapi.handlers import novaapi, probes

__all__ = [
    "novaapi",
    "probes",
]
