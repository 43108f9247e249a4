"""HTTP surface for the formation engine.

This package provides the FastAPI application, request/response models and
logging setup. All computation is delegated to a ``formation.compute`` host.
"""

__version__ = "1.0.0"
