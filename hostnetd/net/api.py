# This file is part of hostnetd. See LICENSE file for license information.
"""Handlers for the network configuration endpoint.

The HTTP transport lives outside of hostnetd; it hands the request method
and decoded (or raw JSON) body to NetworkAPI.handle() and renders the
returned Response.
"""
import logging
import threading
from typing import Any, NamedTuple, Optional

from hostnetd import settings, util
from hostnetd.net.apply import NetworkApplier
from hostnetd.net.network_config import (
    NetworkConfig,
    from_dict,
    merge_config,
    to_dict,
    validate,
)
from hostnetd.net.schema import validate_network_config_schema
from hostnetd.net.state import NetworkState

LOG = logging.getLogger(__name__)


class Response(NamedTuple):
    status_code: int
    body: Any


def sync_response(metadata: Any = None) -> Response:
    return Response(
        200,
        {
            "type": "sync",
            "status": "Success",
            "status_code": 200,
            "metadata": metadata,
        },
    )


def error_response(status_code: int, error: Any) -> Response:
    return Response(
        status_code,
        {
            "type": "error",
            "error": str(error) if error else "",
            "error_code": status_code,
        },
    )


def bad_request(error: Any) -> Response:
    return error_response(400, error)


def not_implemented(error: Any = None) -> Response:
    return error_response(501, error or "not implemented")


class NetworkAPI:
    def __init__(
        self,
        state: NetworkState,
        applier: NetworkApplier,
        apply_timeout: Optional[float] = None,
    ):
        self.state = state
        self.applier = applier
        if apply_timeout is None:
            apply_timeout = settings.CFG_BUILTIN["api_apply_timeout"]
        self.apply_timeout = apply_timeout

    def handle(
        self,
        method: str,
        body: Any = None,
        cancel: Optional[threading.Event] = None,
    ) -> Response:
        method = method.upper()
        if method == "GET":
            return self.get()
        if method in ("PUT", "PATCH"):
            return self.update(method, body, cancel=cancel)
        return not_implemented()

    def get(self) -> Response:
        active = self.state.snapshot()
        return sync_response(to_dict(active) if active is not None else None)

    def update(
        self,
        method: str,
        body: Any,
        cancel: Optional[threading.Event] = None,
    ) -> Response:
        """Replace (PUT) or merge into (PATCH) the active configuration.

        The new configuration becomes active only if it applied
        successfully; on any failure the previous one is kept.
        """

        def build(current: Optional[NetworkConfig]) -> NetworkConfig:
            data = body
            if isinstance(data, (str, bytes)):
                data = util.load_json(data)
            if not isinstance(data, dict):
                raise TypeError("request body must be a JSON object")
            if method == "PATCH" and current is not None:
                data = merge_config(current, data)
            validate_network_config_schema(data)
            cfg = from_dict(data)
            validate(cfg)
            return cfg

        def apply(cfg: NetworkConfig):
            self.applier.apply(cfg, self.apply_timeout, cancel=cancel)

        try:
            self.state.replace(build, apply)
        except (ValueError, TypeError, OSError, RuntimeError) as e:
            util.logexc(LOG, "Network %s request failed", method)
            return bad_request(e)
        return sync_response()
