"""HTTP layer: versioned blueprints mounted under ``API_BASE_PREFIX``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def _join(*segments: str) -> str:
    parts = [s.strip("/") for s in segments if s.strip("/")]
    return "/" + "/".join(parts)


def mount(app: Flask, prefix: str, registry: Iterable[tuple[Blueprint, str]]) -> None:
    """
    Register each ``(blueprint, relative_prefix)`` pair below ``prefix``.

    An empty relative prefix mounts the blueprint at ``prefix`` itself, which
    is how ``/health`` ends up at ``/api/v1/health``.
    """
    for bp, rel_prefix in registry:
        app.register_blueprint(bp, url_prefix=_join(prefix, rel_prefix))


def init_app(app: Flask) -> None:
    """Mount API v1 (``/api/v1`` by default)."""

    from authsvc.api.v1 import API_VERSION, REGISTRY

    mount(app, _join(app.config.get("API_BASE_PREFIX", "/api"), API_VERSION), REGISTRY)


__all__ = ["init_app", "mount"]
