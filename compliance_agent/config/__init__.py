"""
Runtime configuration resolved from the environment.
"""

from .settings import AdvisorConfig, ServerConfig, resolve_advisor_config, resolve_server_config

__all__ = ["AdvisorConfig", "ServerConfig", "resolve_advisor_config", "resolve_server_config"]
