"""FastAPI bootstrap for the GEXFLOW analytics endpoints."""
from fastapi import FastAPI

from gexflow import __version__
from gexflow.api import attach_routes
from gexflow.config import setup_logging


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="GEXFLOW Analytics API", version=__version__)
    attach_routes(app)
    return app


app = create_app()
