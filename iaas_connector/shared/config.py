"""Configuration helpers — read from environment variables."""

from __future__ import annotations

import os


def get_env(name: str, default: str | None = None) -> str:
    """Get an environment variable, raising if missing and no default."""
    value = os.environ.get(name, default)
    if value is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def get_int_env(name: str, default: int | None = None) -> int | None:
    """Get an integer environment variable; empty values fall back to default."""
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


# Login user for default credentials on AWS images
VM_USER_LOGIN = lambda: get_env("VM_USER_LOGIN", "admin")
# Single region used by the OpenStack backend
OPENSTACK_REGION = lambda: get_env("OS_REGION_NAME", "RegionOne")
# Optional override, e.g. LocalStack
AWS_ENDPOINT_URL = lambda: get_env("AWS_ENDPOINT_URL", "")
CONNECT_TIMEOUT = lambda: get_int_env("IAAS_CONNECT_TIMEOUT", 10)
READ_TIMEOUT = lambda: get_int_env("IAAS_READ_TIMEOUT", 60)
# None means scan every free address before allocating
MAX_ADDRESS_CANDIDATES = lambda: get_int_env("IAAS_MAX_ADDRESS_CANDIDATES")
