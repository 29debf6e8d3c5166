"""Unit tests for version management.

Validates:
- Version is read dynamically from pyproject.toml (single source of truth)
- __version__ in dandi/__init__.py matches pyproject.toml
- /health endpoint returns version
"""

from __future__ import annotations

import re

import httpx

import dandi as dandi_pkg
from dandi import main as main_module


def _read_pyproject_version() -> str:
    """Read version directly from pyproject.toml for comparison."""
    import tomllib
    from pathlib import Path

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    with open(pyproject_path, "rb") as f:
        data = tomllib.load(f)
    return data["project"]["version"]


SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$")


class TestVersionConsistency:
    """Verify that all version sources agree."""

    def test_version_is_valid_semver(self):
        assert SEMVER_RE.match(dandi_pkg.__version__), (
            f"__version__ '{dandi_pkg.__version__}' is not valid semver"
        )

    def test_init_version_matches_pyproject(self):
        pyproject_version = _read_pyproject_version()
        assert dandi_pkg.__version__ == pyproject_version

    def test_fastapi_app_version_matches_pyproject(self):
        app = main_module.create_app()
        assert app.version == _read_pyproject_version()


class TestHealthEndpointVersion:
    """Verify /health endpoint returns version."""

    async def test_health_returns_version(self):
        app = main_module.create_app()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": dandi_pkg.__version__}
