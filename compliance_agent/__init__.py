"""
compliance_agent package bootstrap.

Rule-based compliance checks, LLM-assisted anomaly detection and risk
scoring for IT Park resident companies.
"""

from importlib import metadata


def get_version() -> str:
    """Return the package version if installed, else '0.0.0'."""
    try:
        return metadata.version("compliance-agent")
    except metadata.PackageNotFoundError:  # pragma: no cover - best effort only
        return "0.0.0"


__all__ = ["get_version"]
