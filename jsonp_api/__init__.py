"""jsonp_api — serve Python functions as JSON or JSONP endpoints."""

from jsonp_api.app import JsonpAPI
from jsonp_api.errors import APIError, BodyUnavailable, SerializationFailed
from jsonp_api.jsonp import JsonpSerializer, is_valid_callback
from jsonp_api.pipeline import Pipeline
from jsonp_api.request import Request
from jsonp_api.response import Response
from jsonp_api.serializer import JsonSerializer

__all__ = [
    "APIError",
    "BodyUnavailable",
    "JsonSerializer",
    "JsonpAPI",
    "JsonpSerializer",
    "Pipeline",
    "Request",
    "Response",
    "SerializationFailed",
    "is_valid_callback",
]

__version__ = "1.0.0"
