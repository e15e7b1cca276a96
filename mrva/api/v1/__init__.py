"""
API v1 - Variant Analysis REST API

Versioned endpoints with OpenAPI/Swagger documentation.
"""

import os

from flask import Blueprint
from flask_restx import Api

API_VERSION = os.getenv("API_VERSION", "v1")

api_v1_bp = Blueprint("api_v1", __name__, url_prefix=f"/api/{API_VERSION}")

api = Api(
    api_v1_bp,
    version="1.0",
    title="Variant Analysis API",
    description="Submit, monitor, cancel and collect multi-repository variant analyses",
    doc="/docs",
)

# Namespaces import the api for their models
from .namespaces import variant_analysis_ns  # noqa: E402

api.add_namespace(variant_analysis_ns, path="/variant-analyses")
