"""
HTTP surface for the compliance agent.

Routes accept a company snapshot plus its rules and return the analysis
result; `server.main` runs the app under uvicorn.
"""

from .app import create_app

__all__ = ["create_app"]
