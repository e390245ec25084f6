"""
AI Experiments MCP Server

A Model Context Protocol server that gives language-model hosts user
memory, persona-scoped document retrieval, URL content extraction and
code execution backed by the AI experiments backend.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config.settings import Config, load_config
from .server import AIExperimentsMCPServer

__all__ = [
    "AIExperimentsMCPServer",
    "Config",
    "load_config",
    "__version__",
    "__license__",
]
